"""Gemini generateContent client used for fallback transcription and review scoring."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx

from oralmarks.errors import ProviderAuthError, ProviderEmptyResponse, TransportError

logger = logging.getLogger(__name__)

PROVIDER_NAME = "gemini"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
SAFE_FALLBACK_MODEL = "gemini-2.5-flash"

_WRONG_KEY_MARKERS = ("api keys are not supported", "expected oauth2", "credentials_missing")
_SCOPE_MARKERS = ("insufficient authentication scopes", "access_token_scope_insufficient")


def resolve_model(model: str) -> str:
    """Preview/experimental models reject AI Studio keys; use a generally available one."""
    if "preview" in model or "exp" in model or model.startswith("gemini-3"):
        return SAFE_FALLBACK_MODEL
    return model


def auth_hint(message: str) -> str | None:
    """Return an actionable hint for an auth rejection, or None when it is not one."""
    lowered = message.lower()
    if any(marker in lowered for marker in _WRONG_KEY_MARKERS):
        return (
            "Gemini rejected API-key auth for this request: the key looks like the wrong type. "
            "Use a Google AI Studio key (not a Vertex-only or OAuth setup); verify with "
            "`curl -sS \"https://generativelanguage.googleapis.com/v1beta/models?key=$GOOGLE_API_KEY\" | head`."
        )
    if any(marker in lowered for marker in _SCOPE_MARKERS):
        return (
            "Gemini accepted the credential but it lacks the required scope. "
            "Enable the Generative Language API for the key's project or grant the "
            "generative-language scope."
        )
    return None


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        *,
        timeout_seconds: float = 60.0,
        base_url: str = GEMINI_BASE_URL,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key.strip():
            raise ValueError("GOOGLE_API_KEY is not configured")
        self._api_key = api_key.strip()
        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.Client(timeout=timeout_seconds)

    def close(self) -> None:
        self._client.close()

    def generate_json(self, model: str, system: str, parts: list[dict[str, Any]], *, operation: str) -> Any:
        """Run one JSON-mode generateContent request and return the decoded payload."""
        safe_model = resolve_model(model)
        payload = {
            "systemInstruction": {"parts": [{"text": system}]},
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"temperature": 0.2, "responseMimeType": "application/json"},
        }
        started = time.perf_counter()
        try:
            response = self._client.post(
                f"{self._base_url}/{safe_model}:generateContent",
                params={"key": self._api_key},
                json=payload,
            )
        except httpx.TimeoutException as exc:
            raise TransportError(provider=PROVIDER_NAME, message=f"Gemini request timed out: {exc}", status_code=504) from exc
        except httpx.RequestError as exc:
            raise TransportError(provider=PROVIDER_NAME, message=f"Gemini request failed: {exc}") from exc

        logger.info(
            "gemini/generate",
            extra={
                "provider": PROVIDER_NAME,
                "operation": operation,
                "model": safe_model,
                "status_code": response.status_code,
                "elapsed_ms": int((time.perf_counter() - started) * 1000),
            },
        )

        data = _decode_body(response)
        if response.status_code >= 400:
            message = _error_message(data) or f"Gemini request failed with status {response.status_code}."
            hint = auth_hint(message)
            if hint or response.status_code in (401, 403):
                raise ProviderAuthError(provider=PROVIDER_NAME, message=message, hint=hint)
            raise TransportError(provider=PROVIDER_NAME, message=message, status_code=response.status_code)

        text = _candidate_text(data)
        if not text:
            raise ProviderEmptyResponse(provider=PROVIDER_NAME, message="Gemini returned empty response.")
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ProviderEmptyResponse(provider=PROVIDER_NAME, message=f"Gemini returned non-JSON output: {exc}") from exc


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(data: Any) -> str | None:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return None


def _candidate_text(data: Any) -> str | None:
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    if isinstance(text, str) and text.strip():
        return text
    return None
