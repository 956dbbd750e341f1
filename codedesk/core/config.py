from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GEMINI_FALLBACK_MODEL = "gemini-2.5-flash"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", env_ignore_empty=True
    )

    llm_provider: Literal["gemini"] = Field(default="gemini", alias="LLM_PROVIDER")
    gemini_api_key: str = Field(..., alias="GEMINI_API_KEY")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta", alias="GEMINI_BASE_URL"
    )
    gemini_model: str = Field(default=GEMINI_FALLBACK_MODEL, alias="GEMINI_MODEL")
    http_timeout: float = Field(default=300.0, gt=0, alias="HTTP_TIMEOUT")
    max_attempts: int = Field(default=3, ge=1, alias="MAX_ATTEMPTS")
    retry_delay: float = Field(default=3.0, ge=0, alias="RETRY_DELAY")
    database_url: str = Field(default="file:./data/codedesk.db", alias="DATABASE_URL")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    environment: Literal["local", "dev", "prod"] | None = Field(default=None, alias="ENVIRONMENT")

    @field_validator("llm_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: object) -> object:
        if isinstance(value, str):
            provider = value.strip().lower()
            if provider and provider != "gemini":
                raise ValueError(f'Unsupported LLM_PROVIDER: {provider}. Supported value is "gemini".')
            return provider or "gemini"
        return value

    @field_validator("gemini_api_key")
    @classmethod
    def _require_api_key(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("GEMINI_API_KEY is not configured")
        return value

    @field_validator("gemini_model")
    @classmethod
    def _fallback_model(cls, value: str) -> str:
        return value.strip() or GEMINI_FALLBACK_MODEL


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]  # Pydantic Settings loads from .env
