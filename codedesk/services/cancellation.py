import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from codedesk.core.exceptions import RequestCancelledError

_T = TypeVar("_T")


class CancellationToken:
    """Caller-owned abort signal passed down through the retry and transport layers."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason = "Request cancelled by caller"

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            if reason:
                self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelledError(self.reason)


async def race(
    awaitable: Awaitable[_T], token: CancellationToken | None, timeout: float | None = None
) -> _T:
    """Await ``awaitable`` unless ``token`` fires or ``timeout`` elapses first.

    The losing work is cancelled and awaited before returning. Cancellation
    takes priority over a result that completed in the same tick.

    Raises:
        RequestCancelledError: the token fired.
        asyncio.TimeoutError: ``timeout`` elapsed.
    """
    if token is not None and token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        token.raise_if_cancelled()

    work = asyncio.ensure_future(awaitable)
    watchers: set[asyncio.Future] = {work}
    stop = None
    if token is not None:
        stop = asyncio.ensure_future(token.wait())
        watchers.add(stop)

    try:
        done, _ = await asyncio.wait(watchers, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        pending = [w for w in watchers if not w.done()]
        for watcher in pending:
            watcher.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    if stop is not None and stop in done:
        if work.done() and not work.cancelled():
            work.exception()
        token.raise_if_cancelled()  # type: ignore[union-attr]
    if work in done:
        return work.result()
    raise asyncio.TimeoutError
