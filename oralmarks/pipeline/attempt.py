"""Explicit result wrapper for calls whose failure is tolerated."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from oralmarks.errors import BlobDownloadError, ProviderError

T = TypeVar("T")

TOLERATED_ERRORS = (ProviderError, BlobDownloadError)


@dataclass
class Attempt(Generic[T]):
    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def attempt(fn: Callable[..., T], *args, **kwargs) -> Attempt[T]:
    """Call ``fn`` and capture provider or blob failures instead of raising them."""
    try:
        return Attempt(value=fn(*args, **kwargs))
    except TOLERATED_ERRORS as exc:
        return Attempt(error=exc)
