import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import Request

from codedesk.services.assistant import CodeAssistant
from codedesk.services.cancellation import CancellationToken
from codedesk.storage.repository import RunRepository

logger = logging.getLogger(__name__)

DISCONNECT_POLL_INTERVAL = 0.5


def get_assistant(request: Request) -> CodeAssistant:
    return request.app.state.assistant


def get_repository(request: Request) -> RunRepository:
    return request.app.state.repository


@contextlib.asynccontextmanager
async def cancel_on_disconnect(request: Request) -> AsyncIterator[CancellationToken]:
    """Yield a token that fires when the HTTP client goes away mid-request.

    Enter only after the request body has been read; polling for a disconnect
    consumes ASGI receive messages.
    """
    token = CancellationToken()

    async def watch() -> None:
        while not token.cancelled:
            if await request.is_disconnected():
                logger.info("Client disconnected from %s; cancelling", request.url.path)
                token.cancel("Client disconnected")
                return
            await asyncio.sleep(DISCONNECT_POLL_INTERVAL)

    watcher = asyncio.create_task(watch())
    try:
        yield token
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher
