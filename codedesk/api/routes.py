import json
from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from codedesk.api.dependencies import cancel_on_disconnect, get_assistant, get_repository
from codedesk.core.exceptions import (
    AssistantError,
    RequestValidationError,
    RunNotFoundError,
    ThreadNotFoundError,
    ThreadSyncError,
    UpstreamServiceError,
)
from codedesk.schemas.common import EndpointInfo, ErrorEnvelope, HealthResponse
from codedesk.schemas.generate import GenerateResponse
from codedesk.schemas.review import ReviewResponse
from codedesk.schemas.runs import (
    RunRecord,
    ThreadCreateRequest,
    ThreadListResponse,
    ThreadRecord,
    ThreadSyncRequest,
    ThreadUpdateRequest,
)
from codedesk.services.assistant import CodeAssistant
from codedesk.services.validation import validate_request
from codedesk.storage.repository import RunRepository

router = APIRouter()


class InvalidJsonBody(Exception):
    pass


def error_response(status_code: int, error: str, details: list[str] | None = None) -> JSONResponse:
    envelope = ErrorEnvelope(error=error, details=details)
    return JSONResponse(status_code=status_code, content=envelope.model_dump(exclude_none=True))


def assistant_error_response(exc: AssistantError) -> JSONResponse:
    return error_response(exc.status_code, exc.label, exc.details)


async def read_json(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidJsonBody() from exc


@router.get("/health", response_model=HealthResponse)
async def health_check(assistant: CodeAssistant = Depends(get_assistant)):
    try:
        await assistant.ping()
    except UpstreamServiceError as exc:
        return assistant_error_response(exc)
    return HealthResponse(status="ok")


@router.get("/api/review", response_model=EndpointInfo)
async def review_info() -> EndpointInfo:
    return EndpointInfo(endpoint="/api/review", message="Review API is running")


@router.get("/api/generate", response_model=EndpointInfo)
async def generate_info() -> EndpointInfo:
    return EndpointInfo(endpoint="/api/generate", message="Generate API is running")


@router.post("/api/review", response_model=ReviewResponse)
async def review_code(
    request: Request,
    thread_id: str | None = Query(None, alias="threadId"),
    assistant: CodeAssistant = Depends(get_assistant),
):
    try:
        body = await read_json(request)
        async with cancel_on_disconnect(request) as cancel:
            return await assistant.review(body, thread_id=thread_id, cancel=cancel)
    except InvalidJsonBody:
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")
    except AssistantError as exc:
        return assistant_error_response(exc)


@router.post("/api/generate", response_model=GenerateResponse)
async def generate_code(
    request: Request,
    thread_id: str | None = Query(None, alias="threadId"),
    assistant: CodeAssistant = Depends(get_assistant),
):
    try:
        body = await read_json(request)
        async with cancel_on_disconnect(request) as cancel:
            return await assistant.generate(body, thread_id=thread_id, cancel=cancel)
    except InvalidJsonBody:
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")
    except AssistantError as exc:
        return assistant_error_response(exc)


@router.post("/api/threads", response_model=ThreadRecord, status_code=status.HTTP_201_CREATED)
async def create_thread(request: Request, repository: RunRepository = Depends(get_repository)):
    try:
        body = validate_request(ThreadCreateRequest, await read_json(request))
    except InvalidJsonBody:
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")
    except RequestValidationError as exc:
        return assistant_error_response(exc)
    return repository.create_thread(
        body.title, body.mode, body.response_language, pinned=body.pinned, workspace=body
    )


@router.get("/api/threads", response_model=ThreadListResponse)
async def list_threads(repository: RunRepository = Depends(get_repository)) -> ThreadListResponse:
    return ThreadListResponse(threads=repository.list_threads())


@router.put("/api/threads", response_model=ThreadListResponse)
async def replace_threads(request: Request, repository: RunRepository = Depends(get_repository)):
    try:
        body = validate_request(ThreadSyncRequest, await read_json(request))
        threads = repository.replace_threads(body.threads)
    except InvalidJsonBody:
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")
    except (RequestValidationError, ThreadSyncError) as exc:
        return assistant_error_response(exc)
    return ThreadListResponse(threads=threads)


@router.get("/api/threads/{thread_id}", response_model=ThreadRecord)
async def get_thread(thread_id: str, repository: RunRepository = Depends(get_repository)):
    try:
        return repository.get_thread(thread_id)
    except ThreadNotFoundError:
        return error_response(status.HTTP_404_NOT_FOUND, "Thread not found", [thread_id])


@router.patch("/api/threads/{thread_id}", response_model=ThreadRecord)
async def update_thread(thread_id: str, request: Request, repository: RunRepository = Depends(get_repository)):
    try:
        body = validate_request(ThreadUpdateRequest, await read_json(request))
        return repository.update_thread(thread_id, body)
    except InvalidJsonBody:
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")
    except RequestValidationError as exc:
        return assistant_error_response(exc)
    except ThreadNotFoundError:
        return error_response(status.HTTP_404_NOT_FOUND, "Thread not found", [thread_id])


@router.get("/api/runs/{run_id}", response_model=RunRecord)
async def get_run(run_id: str, repository: RunRepository = Depends(get_repository)):
    try:
        return repository.get_run(run_id)
    except RunNotFoundError:
        return error_response(status.HTTP_404_NOT_FOUND, "Run not found", [run_id])
