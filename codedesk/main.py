import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from codedesk.api.routes import router as api_router
from codedesk.core.config import get_settings
from codedesk.core.logging import configure_logging
from codedesk.services.assistant import CodeAssistant
from codedesk.services.llm_client import GeminiClient
from codedesk.services.retry import RetryPolicy
from codedesk.storage.db import get_connection, resolve_database_path
from codedesk.storage.repository import RunRepository

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    conn = get_connection(resolve_database_path(settings.database_url))
    client = GeminiClient.from_settings(settings)
    repository = RunRepository(conn)
    app.state.settings = settings
    app.state.llm_client = client
    app.state.repository = repository
    app.state.assistant = CodeAssistant(client, RetryPolicy.from_settings(settings), repository)
    logger.info("Using %s model %s", settings.llm_provider, settings.gemini_model)
    try:
        yield
    finally:
        await client.aclose()
        conn.close()


def create_app() -> FastAPI:
    application = FastAPI(title="Code Assistant Workspace", version="0.1.0", lifespan=lifespan)
    application.include_router(api_router)
    return application


app = create_app()
