"""Fallback multimodal transcription through Gemini."""

from __future__ import annotations

import base64
import logging

from pydantic import BaseModel, ValidationError

from oralmarks.ai.gemini import PROVIDER_NAME, GeminiClient
from oralmarks.errors import ProviderEmptyResponse
from oralmarks.transcription.base import TranscriptProvider, TranscriptResult, WordTiming
from oralmarks.transcription.pauses import DEFAULT_PAUSE_THRESHOLD_SECONDS, render_transcript

logger = logging.getLogger(__name__)

TRANSCRIBE_SYSTEM_PROMPT = (
    "You are a transcription engine. Return ONLY JSON: "
    '{"transcript": "...", "words": [{"word": "...", "start": 0.0, "end": 0.0}]}. '
    "start and end are seconds from the beginning of the audio. Omit words if you cannot time them. No markdown."
)
TRANSCRIBE_USER_PROMPT = "Transcribe the audio verbatim. If unclear, do your best; do not invent content."


class _TimedWord(BaseModel):
    word: str
    start: float
    end: float


class _TimedWords(BaseModel):
    words: list[_TimedWord]


class GeminiTranscriber(TranscriptProvider):
    name = PROVIDER_NAME

    def __init__(self, client: GeminiClient, model: str = "gemini-2.5-flash", pause_threshold_seconds: float = DEFAULT_PAUSE_THRESHOLD_SECONDS) -> None:
        self._client = client
        self._model = model
        self._pause_threshold_seconds = pause_threshold_seconds

    def transcribe(self, audio: bytes, mime_type: str) -> TranscriptResult:
        data = self._client.generate_json(
            self._model,
            TRANSCRIBE_SYSTEM_PROMPT,
            [
                {"text": TRANSCRIBE_USER_PROMPT},
                {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(audio).decode("utf-8")}},
            ],
            operation="transcribe",
        )
        transcript = data.get("transcript") if isinstance(data, dict) else None
        if not isinstance(transcript, str):
            raise ProviderEmptyResponse(provider=self.name, message="Gemini transcription returned no transcript.")

        words = _parse_words(data.get("words"))
        return TranscriptResult(
            text=render_transcript(transcript, words, self._pause_threshold_seconds),
            provider=self.name,
            words=words,
            duration_seconds=words[-1].end if words else None,
        )


def _parse_words(raw: object) -> list[WordTiming]:
    if not raw:
        return []
    try:
        parsed = _TimedWords.model_validate({"words": raw})
    except ValidationError as exc:
        logger.warning("transcribe/gemini discarded malformed word timings", extra={"errors": exc.error_count()})
        return []
    return [WordTiming(word=item.word, start=item.start, end=item.end) for item in parsed.words]
