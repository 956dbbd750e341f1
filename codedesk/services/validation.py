import json
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from codedesk.core.exceptions import OutputFormatError, OutputSchemaError, RequestValidationError

_M = TypeVar("_M", bound=BaseModel)


def format_validation_errors(error: ValidationError) -> list[str]:
    """Render pydantic errors as ``"<dotted.path>: <message>"``, ``root`` for the top level."""
    messages = []
    for issue in error.errors():
        path = ".".join(str(part) for part in issue["loc"]) or "root"
        messages.append(f"{path}: {issue['msg']}")
    return messages


def validate_request(model: type[_M], payload: Mapping[str, Any] | Any) -> _M:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationError(format_validation_errors(exc)) from exc


def parse_model_output(text: str, model: type[_M]) -> _M:
    """Decode raw model text, then construct the strict result type from it."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise OutputFormatError("Gemini returned non-JSON output") from exc

    try:
        return model.model_validate(data)
    except ValidationError as exc:
        violations = format_validation_errors(exc)
        raise OutputSchemaError(
            f"Gemini output schema mismatch: {', '.join(violations)}", violations
        ) from exc
