from typing import Literal

from pydantic import ConfigDict, Field

from codedesk.schemas.common import CamelModel, CodeLanguage, InboundModel, NonBlankStr, ResponseLanguage

GenerateLanguage = CodeLanguage
GenerateStyle = Literal["clean", "fast", "explain"]


class GenerateRequest(InboundModel):
    prompt: NonBlankStr
    language: GenerateLanguage = "typescript"
    style: GenerateStyle = "clean"
    response_language: ResponseLanguage = "ko"


class GenerateResult(InboundModel):
    """What the model must return for a generation."""

    model_config = ConfigDict(strict=True, frozen=True)

    summary: str
    code: str
    notes: list[str]


class GenerateInputEcho(CamelModel):
    language: GenerateLanguage
    style: GenerateStyle
    response_language: ResponseLanguage
    prompt_length: int = Field(..., ge=0)


class GenerateResponse(CamelModel):
    ok: Literal[True] = True
    mode: Literal["generate"] = "generate"
    input: GenerateInputEcho
    summary: str
    code: str
    notes: list[str]
