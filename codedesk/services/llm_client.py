import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx

from codedesk.core.config import Settings
from codedesk.core.exceptions import UpstreamServiceError, UpstreamTimeoutError
from codedesk.services.cancellation import CancellationToken, race

logger = logging.getLogger(__name__)

TEMPERATURE = 0.2


def build_payload(prompt: str) -> dict[str, Any]:
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "temperature": TEMPERATURE,
        },
    }


def _embedded_error(payload: Any) -> str | None:
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return None


def extract_text(payload: Any) -> str:
    """Pull the joined text parts of the first candidate out of a generateContent body."""
    if not isinstance(payload, dict):
        raise UpstreamServiceError("Gemini returned an invalid response payload")

    message = _embedded_error(payload)
    if message is not None:
        raise UpstreamServiceError(message)

    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        raise UpstreamServiceError("Gemini returned no candidates")

    first = candidates[0] if isinstance(candidates[0], dict) else {}
    content = first.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts:
        raise UpstreamServiceError("Gemini returned empty content")

    text = "\n".join(
        part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)
    ).strip()
    if not text:
        raise UpstreamServiceError("Gemini returned empty text output")
    return text


class GeminiClient:
    """One-shot transport to the Gemini ``generateContent`` endpoint. Retries live in RetryPolicy."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiClient":
        client = httpx.AsyncClient(
            base_url=settings.gemini_base_url,
            headers={"Content-Type": "application/json"},
            timeout=settings.http_timeout,
        )
        return cls(client, settings)

    @property
    def model(self) -> str:
        return self._settings.gemini_model

    async def aclose(self) -> None:
        await self._client.aclose()

    async def health(self) -> bool:
        try:
            response = await self._client.get(
                "/models", params={"key": self._settings.gemini_api_key}, timeout=5.0
            )
            response.raise_for_status()
            return True
        except httpx.RequestError as exc:  # pragma: no cover - guard path
            raise UpstreamServiceError(f"Gemini health failed: {exc}", retryable=True) from exc
        except httpx.HTTPStatusError as exc:
            raise UpstreamServiceError(
                f"Gemini health failed: HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc

    async def generate_text(self, prompt: str, cancel: CancellationToken | None = None) -> str:
        endpoint = f"/models/{quote(self.model, safe='')}:generateContent"
        request = self._client.post(
            endpoint,
            params={"key": self._settings.gemini_api_key},
            json=build_payload(prompt),
        )
        timeout = self._settings.http_timeout
        try:
            response = await race(request, cancel, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise UpstreamTimeoutError(f"Gemini request timed out after {timeout:g}s") from exc
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError(f"Gemini request timed out: {exc}") from exc
        except httpx.RequestError as exc:
            raise UpstreamServiceError(f"Gemini request error: {exc}", retryable=True) from exc

        try:
            payload: Any = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            status = response.status_code
            message = _embedded_error(payload)
            retryable = status == 429 or status >= 500
            logger.debug("Gemini responded %s (retryable=%s)", status, retryable)
            raise UpstreamServiceError(
                f"Gemini API error: {message}" if message is not None else f"Gemini API error: HTTP {status}",
                retryable=retryable,
                status_code=status,
            )

        return extract_text(payload)
