from typing import Annotated, Any, Literal

from pydantic import BeforeValidator, ConfigDict, Field

from codedesk.schemas.common import CamelModel, InboundModel, NonBlankStr, ResponseLanguage

MAX_REVIEW_FILES = 12
MAX_REVIEW_CHARS = 80_000

Severity = Literal["low", "medium", "high"]


def _integral_float_to_int(value: Any) -> Any:
    # JSON numbers like 3.0 are still whole line numbers.
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


LineNumber = Annotated[int, BeforeValidator(_integral_float_to_int), Field(gt=0)]


class ReviewFileInput(InboundModel):
    filename: NonBlankStr
    code: NonBlankStr
    language: NonBlankStr | None = None


class ReviewRequest(InboundModel):
    """Inbound review payload: a ``files`` list, the legacy inline ``code`` form, or both."""

    code: NonBlankStr | None = None
    filename: NonBlankStr | None = None
    language: NonBlankStr | None = None
    files: Annotated[list[ReviewFileInput], Field(min_length=1)] | None = None
    response_language: ResponseLanguage = "ko"


class ReviewIssue(InboundModel):
    model_config = ConfigDict(strict=True, frozen=True)

    id: str
    severity: Severity
    title: str
    message: str
    line: LineNumber


class ReviewResult(InboundModel):
    """What the model must return for a review."""

    model_config = ConfigDict(strict=True, frozen=True)

    summary: str
    issues: list[ReviewIssue]
    refactored_code: str
    suggested_tests: list[str]


class ReviewInputEcho(CamelModel):
    filename: str
    language: str
    response_language: ResponseLanguage
    line_count: int = Field(..., ge=0)
    file_count: int = Field(..., ge=1)
    total_line_count: int = Field(..., ge=0)


class ReviewResponse(CamelModel):
    ok: Literal[True] = True
    mode: Literal["review"] = "review"
    input: ReviewInputEcho
    summary: str
    issues: list[ReviewIssue]
    refactored_code: str
    suggested_tests: list[str]
