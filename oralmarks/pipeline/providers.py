"""Provider selection, resolved once from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from oralmarks.ai.gemini import GeminiClient
from oralmarks.ai.openai_client import build_openai_client
from oralmarks.errors import ProviderUnconfigured
from oralmarks.grading.base import Scorer
from oralmarks.grading.gemini_scorer import GeminiScorer
from oralmarks.grading.openai_scorer import OpenAIScorer
from oralmarks.settings import Settings
from oralmarks.transcription.base import TranscriptProvider
from oralmarks.transcription.gemini_provider import GeminiTranscriber
from oralmarks.transcription.openai_provider import OpenAITranscriber

logger = logging.getLogger(__name__)

UNCONFIGURED_MESSAGE = (
    "Transcription and scoring are not configured. Set OPENAI_API_KEY (recommended), "
    "or enable Gemini by setting ENABLE_GEMINI=1 and GOOGLE_API_KEY (AI Studio key)."
)


@dataclass(frozen=True)
class ProviderSet:
    transcriber: TranscriptProvider | None
    scorer: Scorer | None
    reviewer: Scorer | None = None

    def ensure_configured(self) -> None:
        if self.transcriber is None or self.scorer is None:
            raise ProviderUnconfigured(provider="none", message=UNCONFIGURED_MESSAGE)


def resolve_providers(settings: Settings) -> ProviderSet:
    """Pick the primary provider and, when independent from it, a reviewer.

    OpenAI is primary whenever its key is present; Gemini then acts as reviewer
    if enabled. With Gemini alone it becomes the primary and nothing reviews it.
    """
    gemini: GeminiClient | None = None
    if settings.gemini_configured:
        gemini = GeminiClient(settings.google_api_key or "", timeout_seconds=settings.provider_timeout_seconds)

    if settings.openai_configured:
        client = build_openai_client(
            settings.openai_api_key or "",
            timeout_seconds=settings.provider_timeout_seconds,
            max_retries=settings.provider_max_retries,
        )
        reviewer = None
        if gemini is not None and settings.review_enabled:
            reviewer = GeminiScorer(gemini, model=settings.gemini_review_model)
        return ProviderSet(
            transcriber=OpenAITranscriber(
                client,
                model=settings.openai_transcribe_model,
                pause_threshold_seconds=settings.pause_threshold_seconds,
            ),
            scorer=OpenAIScorer(client, model=settings.openai_score_model),
            reviewer=reviewer,
        )

    if gemini is not None:
        return ProviderSet(
            transcriber=GeminiTranscriber(
                gemini,
                model=settings.gemini_transcribe_model,
                pause_threshold_seconds=settings.pause_threshold_seconds,
            ),
            scorer=GeminiScorer(gemini, model=settings.gemini_score_model),
        )

    logger.warning("providers/unconfigured", extra={"gemini_enabled": settings.gemini_enabled})
    return ProviderSet(transcriber=None, scorer=None)
