import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol, TypeVar

from codedesk.core.exceptions import (
    AssistantError,
    RequestCancelledError,
    RequestValidationError,
    RunNotFoundError,
)
from codedesk.schemas.common import OperationKind
from codedesk.schemas.generate import GenerateInputEcho, GenerateRequest, GenerateResponse, GenerateResult
from codedesk.schemas.review import ReviewInputEcho, ReviewRequest, ReviewResponse, ReviewResult
from codedesk.schemas.runs import RunStatus
from codedesk.services.cancellation import CancellationToken
from codedesk.services.files import collect_review_files
from codedesk.services.prompts import GenerateInput, build_generate_prompt, build_review_prompt
from codedesk.services.retry import RetryPolicy
from codedesk.services.validation import parse_model_output, validate_request
from codedesk.storage.repository import RunRepository

logger = logging.getLogger(__name__)

_R = TypeVar("_R", ReviewResponse, GenerateResponse)
_O = TypeVar("_O", ReviewResult, GenerateResult)


class TextGenerator(Protocol):
    async def generate_text(self, prompt: str, cancel: CancellationToken | None = None) -> str: ...

    async def health(self) -> bool: ...


class CodeAssistant:
    """Runs the review and generate operations end to end and records each one as a run."""

    def __init__(
        self,
        client: TextGenerator,
        retry: RetryPolicy | None = None,
        runs: RunRepository | None = None,
    ) -> None:
        self._client = client
        self._retry = retry or RetryPolicy()
        self._runs = runs

    async def ping(self) -> None:
        await self._client.health()

    async def review(
        self,
        payload: Mapping[str, Any] | Any,
        *,
        thread_id: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> ReviewResponse:
        async def work() -> ReviewResponse:
            request = validate_request(ReviewRequest, payload)
            files = collect_review_files(request)
            prompt = build_review_prompt(files, request.response_language)
            result = await self._complete(prompt, ReviewResult, cancel)
            primary = files[0]
            return ReviewResponse(
                input=ReviewInputEcho(
                    filename=primary.filename,
                    language=primary.language,
                    response_language=request.response_language,
                    line_count=primary.line_count,
                    file_count=len(files),
                    total_line_count=sum(item.line_count for item in files),
                ),
                summary=result.summary,
                issues=list(result.issues),
                refactored_code=result.refactored_code,
                suggested_tests=list(result.suggested_tests),
            )

        return await self._run(OperationKind.review, thread_id, work)

    async def generate(
        self,
        payload: Mapping[str, Any] | Any,
        *,
        thread_id: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> GenerateResponse:
        async def work() -> GenerateResponse:
            request = validate_request(GenerateRequest, payload)
            data = GenerateInput(
                prompt=request.prompt,
                language=request.language,
                style=request.style,
                response_language=request.response_language,
            )
            result = await self._complete(build_generate_prompt(data), GenerateResult, cancel)
            return GenerateResponse(
                input=GenerateInputEcho(
                    language=data.language,
                    style=data.style,
                    response_language=data.response_language,
                    prompt_length=len(data.prompt),
                ),
                summary=result.summary,
                code=result.code,
                notes=list(result.notes),
            )

        return await self._run(OperationKind.generate, thread_id, work)

    async def _complete(self, prompt: str, model: type[_O], cancel: CancellationToken | None) -> _O:
        async def attempt() -> _O:
            text = await self._client.generate_text(prompt, cancel)
            return parse_model_output(text, model)

        return await self._retry.run(attempt, cancel)

    async def _run(
        self, mode: OperationKind, thread_id: str | None, work: Callable[[], Awaitable[_R]]
    ) -> _R:
        if self._runs is None:
            return await work()

        if thread_id is not None and not self._runs.thread_exists(thread_id):
            raise RequestValidationError([f"threadId: thread {thread_id} does not exist"])

        run = self._runs.create_run(mode, thread_id)
        logger.info("Run %s started (%s)", run.id, mode.value)
        try:
            response = await work()
        except RequestCancelledError as exc:
            self._finish(run.id, RunStatus.cancelled, error_message=exc.message)
            logger.info("Run %s cancelled", run.id)
            raise
        except asyncio.CancelledError:
            self._finish(run.id, RunStatus.cancelled, error_message="Operation was cancelled")
            raise
        except AssistantError as exc:
            self._finish(run.id, RunStatus.failed, error_message=exc.message)
            logger.warning("Run %s failed: %s", run.id, exc.message)
            raise
        except Exception as exc:
            self._finish(run.id, RunStatus.failed, error_message=str(exc) or type(exc).__name__)
            logger.exception("Run %s failed unexpectedly", run.id)
            raise

        self._finish(run.id, RunStatus.success, result=response)
        logger.info("Run %s succeeded", run.id)
        return response

    def _finish(self, run_id: str, status: RunStatus, **outcome) -> None:
        try:
            self._runs.finish_run(run_id, status, **outcome)
        except RunNotFoundError:
            logger.warning("Run %s was removed before it finished", run_id)
