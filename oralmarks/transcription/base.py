"""Transcript provider interfaces."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass
class WordTiming:
    word: str
    start: float
    end: float


@dataclass
class TranscriptResult:
    text: str
    provider: str
    words: list[WordTiming] = field(default_factory=list)
    duration_seconds: float | None = None


class TranscriptProvider(Protocol):
    """Speech-to-text provider protocol."""

    name: str

    def transcribe(self, audio: bytes, mime_type: str) -> TranscriptResult:
        """Convert recorded audio into text, annotated with long pauses."""


def audio_filename(mime_type: str) -> str:
    """Pick an upload filename whose extension matches the recording format."""
    mime = mime_type.lower()
    if "webm" in mime:
        return "audio.webm"
    if "mpeg" in mime:
        return "audio.mp3"
    if "wav" in mime:
        return "audio.wav"
    return "audio.bin"
