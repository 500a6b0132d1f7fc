"""Primary speech-to-text provider backed by the OpenAI transcription endpoint."""

from __future__ import annotations

import logging
import time
from typing import Any

from oralmarks.ai.openai_client import PROVIDER_NAME, openai_errors
from oralmarks.errors import ProviderEmptyResponse
from oralmarks.transcription.base import TranscriptProvider, TranscriptResult, WordTiming, audio_filename
from oralmarks.transcription.pauses import DEFAULT_PAUSE_THRESHOLD_SECONDS, render_transcript

logger = logging.getLogger(__name__)


class OpenAITranscriber(TranscriptProvider):
    name = PROVIDER_NAME

    def __init__(self, client: Any, model: str = "whisper-1", pause_threshold_seconds: float = DEFAULT_PAUSE_THRESHOLD_SECONDS) -> None:
        self._client = client
        self._model = model
        self._pause_threshold_seconds = pause_threshold_seconds

    def _request_options(self) -> dict[str, Any]:
        # Only whisper models return word-level timestamps.
        if self._model.startswith("whisper"):
            return {"response_format": "verbose_json", "timestamp_granularities": ["word"]}
        return {"response_format": "json"}

    def transcribe(self, audio: bytes, mime_type: str) -> TranscriptResult:
        started = time.perf_counter()
        with openai_errors():
            response = self._client.audio.transcriptions.create(
                model=self._model,
                file=(audio_filename(mime_type), audio, mime_type),
                **self._request_options(),
            )
        logger.info(
            "transcribe/openai",
            extra={
                "provider": self.name,
                "model": self._model,
                "audio_bytes": len(audio),
                "elapsed_ms": int((time.perf_counter() - started) * 1000),
            },
        )

        text = getattr(response, "text", None)
        if not isinstance(text, str):
            raise ProviderEmptyResponse(provider=self.name, message="OpenAI transcription returned empty response.")
        words = [
            WordTiming(word=str(item.word), start=float(item.start), end=float(item.end))
            for item in (getattr(response, "words", None) or [])
        ]
        duration = getattr(response, "duration", None)
        return TranscriptResult(
            text=render_transcript(text, words, self._pause_threshold_seconds),
            provider=self.name,
            words=words,
            duration_seconds=float(duration) if isinstance(duration, (int, float)) else None,
        )
