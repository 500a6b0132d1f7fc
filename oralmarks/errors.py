"""Exception hierarchy for the submission scoring pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field


class ScoringError(Exception):
    """Base class for every error raised by the scoring pipeline."""


class SubmissionNotFound(ScoringError):
    pass


class InvalidSubmissionState(ScoringError):
    pass


class ConfigurationError(ScoringError):
    """Setup problem that makes the whole run impossible."""


class RubricsMissing(ConfigurationError):
    pass


class NoRecordingsFound(ScoringError):
    pass


class AllQuestionsFailed(ScoringError):
    pass


@dataclass(eq=False)
class ProviderError(ScoringError):
    """A transcription or scoring provider call failed."""

    provider: str
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class ProviderUnconfigured(ProviderError, ConfigurationError):
    pass


@dataclass(eq=False)
class ProviderAuthError(ProviderError):
    hint: str | None = None

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} {self.hint}"
        return self.message


@dataclass(eq=False)
class ProviderEmptyResponse(ProviderError):
    pass


@dataclass(eq=False)
class TransportError(ProviderError):
    status_code: int | None = None


@dataclass(eq=False)
class MalformedScoreOutput(ProviderError):
    fields: list[str] = field(default_factory=list)


@dataclass(eq=False)
class BlobDownloadError(ScoringError):
    bucket: str
    path: str
    message: str

    def __str__(self) -> str:
        return self.message
