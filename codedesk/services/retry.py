import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from codedesk.core.config import Settings
from codedesk.core.exceptions import AssistantError, RetriesExhaustedError, UpstreamServiceError
from codedesk.services.cancellation import CancellationToken, race

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, UpstreamServiceError) and exc.retryable


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed attempt budget with a constant pause between attempts.

    Only retryable ``UpstreamServiceError`` failures (timeouts, 429, 5xx,
    network errors) are attempted again. Malformed or schema-mismatched model
    output is terminal: the same prompt at the same temperature rarely fixes it.
    """

    max_attempts: int = 3
    delay: float = 3.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False, compare=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(max_attempts=settings.max_attempts, delay=settings.retry_delay)

    async def run(self, fn: Callable[[], Awaitable[_T]], cancel: CancellationToken | None = None) -> _T:
        for attempt in range(1, self.max_attempts + 1):
            if cancel is not None:
                cancel.raise_if_cancelled()
            try:
                return await fn()
            except AssistantError as exc:
                if not is_retryable(exc):
                    raise
                if attempt == self.max_attempts:
                    raise RetriesExhaustedError(exc, attempts=attempt) from exc
                logger.warning(
                    "Attempt %d/%d failed: %s; retrying in %.1fs",
                    attempt,
                    self.max_attempts,
                    exc.message,
                    self.delay,
                )
            await self._pause(cancel)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _pause(self, cancel: CancellationToken | None) -> None:
        if cancel is None:
            await self.sleep(self.delay)
        else:
            await race(self.sleep(self.delay), cancel)
