"""Pause-marker rendering and removal for cached transcripts.

Cached transcripts keep long silences inline as ``(pause 7.2s)`` so an educator
reviewing the recording can see where the student stopped to think. The copy
handed to a scorer is stripped of those markers so grading stays on content.
"""

from __future__ import annotations

import re

from oralmarks.transcription.base import WordTiming

DEFAULT_PAUSE_THRESHOLD_SECONDS = 5.0

_PAUSE_MARKER = re.compile(r"[(\[]pause\s+\d+(?:\.\d+)?\s*s[)\]]", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def format_pause(seconds: float) -> str:
    return f"(pause {seconds:.1f}s)"


def annotate_pauses(words: list[WordTiming], threshold_seconds: float = DEFAULT_PAUSE_THRESHOLD_SECONDS) -> str:
    """Render timed words as text, marking every gap of at least ``threshold_seconds``."""
    tokens: list[str] = []
    previous: WordTiming | None = None
    for word in words:
        text = word.word.strip()
        if not text:
            continue
        if previous is not None:
            gap = word.start - previous.end
            if gap >= threshold_seconds:
                tokens.append(format_pause(gap))
        tokens.append(text)
        previous = word
    return " ".join(tokens)


def strip_pauses(text: str) -> str:
    """Remove pause markers and collapse whitespace."""
    return _WHITESPACE.sub(" ", _PAUSE_MARKER.sub(" ", text)).strip()


def render_transcript(text: str, words: list[WordTiming], threshold_seconds: float) -> str:
    """Prefer word-level rendering so pauses can be placed; fall back to plain text."""
    if words:
        rendered = annotate_pauses(words, threshold_seconds)
        if rendered:
            return rendered
    return text.strip()
