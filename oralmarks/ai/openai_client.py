"""OpenAI client construction and error translation."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import httpx
import openai
from openai import OpenAI

from oralmarks.errors import ProviderAuthError, ProviderError, TransportError

PROVIDER_NAME = "openai"

_WRONG_KEY_HINT = (
    "OpenAI rejected the credential: check OPENAI_API_KEY holds a secret API key (sk-...) "
    "rather than an organization/project id or an expired key."
)
_SCOPE_HINT = (
    "OpenAI accepted the key but it lacks permission for this endpoint. "
    "Grant the key model/audio request scopes (restricted keys) or use an unrestricted project key."
)


def build_openai_client(api_key: str, timeout_seconds: float = 60.0, max_retries: int = 2) -> OpenAI:
    if not api_key.strip():
        raise RuntimeError("OPENAI_API_KEY is not set")
    return OpenAI(api_key=api_key.strip(), timeout=timeout_seconds, max_retries=max_retries)


def translate_openai_error(exc: Exception) -> ProviderError:
    """Map an SDK or transport exception onto the provider error taxonomy."""
    if isinstance(exc, (openai.APITimeoutError, httpx.TimeoutException, TimeoutError)):
        return TransportError(provider=PROVIDER_NAME, message=f"OpenAI request timed out: {exc}", status_code=504)
    if isinstance(exc, openai.APIConnectionError):
        return TransportError(provider=PROVIDER_NAME, message=f"OpenAI request failed: {exc}")
    if isinstance(exc, openai.AuthenticationError):
        return ProviderAuthError(provider=PROVIDER_NAME, message=f"OpenAI authentication failed: {exc.message}", hint=_WRONG_KEY_HINT)
    if isinstance(exc, openai.PermissionDeniedError):
        return ProviderAuthError(provider=PROVIDER_NAME, message=f"OpenAI permission denied: {exc.message}", hint=_SCOPE_HINT)
    if isinstance(exc, openai.APIStatusError):
        return TransportError(provider=PROVIDER_NAME, message=f"OpenAI request failed: {exc.message}", status_code=exc.status_code)
    return TransportError(provider=PROVIDER_NAME, message=f"OpenAI request failed: {exc}")


@contextmanager
def openai_errors() -> Iterator[None]:
    """Re-raise OpenAI SDK failures as ProviderError subclasses."""
    try:
        yield
    except (openai.OpenAIError, httpx.HTTPError, TimeoutError) as exc:
        raise translate_openai_error(exc) from exc
