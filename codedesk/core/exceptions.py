class AssistantError(Exception):
    """Base class for failures surfaced to API callers as an error envelope."""

    status_code = 502
    label = "Request failed"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def details(self) -> list[str]:
        return [self.message]


class RequestValidationError(AssistantError):
    """Raised when a caller payload does not match the request contract."""

    status_code = 400
    label = "Invalid request body"

    def __init__(self, details: list[str]) -> None:
        super().__init__(", ".join(details))
        self._details = list(details)

    @property
    def details(self) -> list[str]:
        return list(self._details)


class UpstreamServiceError(AssistantError):
    """Raised when the Gemini API call fails or returns an unusable envelope."""

    label = "LLM provider request failed"

    def __init__(self, message: str, *, retryable: bool = False, status_code: int | None = None) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.upstream_status = status_code


class UpstreamTimeoutError(UpstreamServiceError):
    """Raised when a request to Gemini exceeds the timeout."""

    label = "LLM request timed out"

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=True)


class RequestCancelledError(AssistantError):
    """Raised when the caller aborts an operation while it is in flight."""

    label = "LLM request cancelled"


class OutputFormatError(AssistantError):
    """Raised when the model output is not valid JSON."""

    label = "LLM returned malformed output"


class OutputSchemaError(AssistantError):
    """Raised when the model output is JSON but does not match the result contract."""

    label = "LLM output did not match the expected schema"

    def __init__(self, message: str, violations: list[str]) -> None:
        super().__init__(message)
        self.violations = list(violations)


class RetriesExhaustedError(AssistantError):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, last_error: AssistantError, attempts: int) -> None:
        super().__init__(last_error.message)
        self.last_error = last_error
        self.attempts = attempts
        self.label = last_error.label


class RunStateError(Exception):
    """Raised on an invalid run lifecycle transition."""


class ThreadNotFoundError(LookupError):
    pass


class RunNotFoundError(LookupError):
    pass


class ThreadSyncError(AssistantError):
    """Raised when a thread snapshot set conflicts with stored runs."""

    status_code = 409
    label = "Thread sync failed"
