"""Scorer interfaces."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Protocol

MIN_SCORE = 1
MAX_SCORE = 5


def clamp_score(value: float) -> int:
    """Round half-up and clamp into [MIN_SCORE, MAX_SCORE]; NaN maps to the floor."""
    if math.isnan(value):
        return MIN_SCORE
    if math.isinf(value):
        return MAX_SCORE if value > 0 else MIN_SCORE
    return max(MIN_SCORE, min(MAX_SCORE, math.floor(value + 0.5)))


@dataclass
class DimensionScore:
    score: int
    justification: str


@dataclass
class ScoreResult:
    reasoning: DimensionScore
    evidence: DimensionScore
    model_name: str = ""

    def as_payload(self) -> dict[str, Any]:
        return {
            "reasoning": {"score": self.reasoning.score, "justification": self.reasoning.justification},
            "evidence": {"score": self.evidence.score, "justification": self.evidence.justification},
        }


class Scorer(Protocol):
    """Scorer protocol grading one transcript against the reasoning and evidence rubrics."""

    name: str

    def score(
        self,
        question_text: str,
        transcript: str,
        rubric_reasoning: str,
        rubric_evidence: str,
        *,
        primary: ScoreResult | None = None,
    ) -> ScoreResult:
        """Return both rubric scores. ``primary`` is set when reviewing another scorer's output."""
