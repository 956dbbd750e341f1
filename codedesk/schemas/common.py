from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

ResponseLanguage = Literal["ko", "en"]

CodeLanguage = Literal["typescript", "javascript", "python", "java", "kotlin"]

NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class OperationKind(str, Enum):
    review = "review"
    generate = "generate"


class CamelModel(BaseModel):
    """Base for wire models: snake_case attributes, camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InboundModel(BaseModel):
    """Base for payloads parsed from callers or from the model: camelCase keys only."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=False)


class ErrorEnvelope(BaseModel):
    ok: Literal[False] = False
    error: str
    details: list[str] | None = None


class EndpointInfo(BaseModel):
    ok: Literal[True] = True
    endpoint: str
    message: str
    method: Literal["POST"] = "POST"


class HealthResponse(BaseModel):
    status: Literal["ok"]
