from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import ConfigDict, Field, TypeAdapter, field_validator, model_validator

from codedesk.schemas.common import (
    CamelModel,
    CodeLanguage,
    InboundModel,
    NonBlankStr,
    OperationKind,
    ResponseLanguage,
)
from codedesk.schemas.generate import GenerateResponse, GenerateStyle
from codedesk.schemas.review import ReviewResponse

OperationResponse = Annotated[Union[ReviewResponse, GenerateResponse], Field(discriminator="mode")]

operation_response_adapter: TypeAdapter[ReviewResponse | GenerateResponse] = TypeAdapter(OperationResponse)


class RunStatus(str, Enum):
    running = "running"
    success = "success"
    failed = "failed"
    cancelled = "cancelled"


TERMINAL_STATUSES = frozenset({RunStatus.success, RunStatus.failed, RunStatus.cancelled})


class RunRecord(CamelModel):
    id: str
    thread_id: str | None = None
    mode: OperationKind
    status: RunStatus
    created_at: int
    updated_at: int
    result: OperationResponse | None = None
    error_message: str | None = None


class WorkspaceFile(InboundModel):
    """A review file kept in a thread's workspace."""

    id: NonBlankStr
    filename: NonBlankStr
    language: NonBlankStr
    code: str
    line_count: int = Field(..., ge=0)


workspace_files_adapter = TypeAdapter(list[WorkspaceFile])


class ThreadWorkspace(InboundModel):
    """Editor state saved with a thread so it reopens where it was left."""

    review_code: str = ""
    review_language: CodeLanguage = "typescript"
    review_filename: NonBlankStr = "snippet.ts"
    review_files: list[WorkspaceFile] = Field(default_factory=list)
    generate_prompt: str = ""
    generate_language: CodeLanguage = "typescript"
    generate_style: GenerateStyle = "clean"


class ThreadCreateRequest(ThreadWorkspace):
    title: NonBlankStr
    mode: OperationKind
    pinned: bool = False
    response_language: ResponseLanguage = "ko"


class ThreadUpdateRequest(InboundModel):
    """Partial thread update. Omitted fields keep their stored value."""

    title: NonBlankStr | None = None
    mode: OperationKind | None = None
    pinned: bool | None = None
    response_language: ResponseLanguage | None = None
    review_code: str | None = None
    review_language: CodeLanguage | None = None
    review_filename: NonBlankStr | None = None
    review_files: list[WorkspaceFile] | None = None
    generate_prompt: str | None = None
    generate_language: CodeLanguage | None = None
    generate_style: GenerateStyle | None = None
    active_run_id: str | None = None

    @field_validator(
        "title",
        "mode",
        "pinned",
        "response_language",
        "review_code",
        "review_language",
        "review_filename",
        "review_files",
        "generate_prompt",
        "generate_language",
        "generate_style",
        mode="before",
    )
    @classmethod
    def _reject_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class ThreadRecord(ThreadWorkspace):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    mode: OperationKind
    pinned: bool = False
    response_language: ResponseLanguage
    active_run_id: str | None = None
    created_at: int
    updated_at: int
    runs: list[RunRecord] = Field(default_factory=list)


class ThreadListResponse(CamelModel):
    ok: Literal[True] = True
    threads: list[ThreadRecord]


class RunSnapshot(InboundModel):
    id: NonBlankStr
    mode: OperationKind
    status: RunStatus
    created_at: int = Field(..., ge=0)
    updated_at: int = Field(..., ge=0)
    result: OperationResponse | None = None
    error_message: str | None = None


class ThreadSnapshot(ThreadWorkspace):
    """A full thread as a client holds it, used to replace the stored set."""

    id: NonBlankStr
    title: NonBlankStr
    mode: OperationKind
    pinned: bool = False
    response_language: ResponseLanguage = "ko"
    active_run_id: str | None = None
    created_at: int | None = Field(None, ge=0)
    updated_at: int | None = Field(None, ge=0)
    runs: list[RunSnapshot] = Field(default_factory=list)


class ThreadSyncRequest(InboundModel):
    threads: list[ThreadSnapshot]

    @model_validator(mode="after")
    def _ids_are_unique(self):
        thread_ids = [thread.id for thread in self.threads]
        run_ids = [run.id for thread in self.threads for run in thread.runs]
        for kind, ids in (("thread", thread_ids), ("run", run_ids)):
            seen = set()
            for item_id in ids:
                if item_id in seen:
                    raise ValueError(f"duplicate {kind} id {item_id!r}")
                seen.add(item_id)
        return self
