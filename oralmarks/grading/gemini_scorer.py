"""Rubric scoring and review through Gemini."""

from __future__ import annotations

from oralmarks.ai.gemini import PROVIDER_NAME, GeminiClient
from oralmarks.grading.base import Scorer, ScoreResult
from oralmarks.grading.prompts import build_prompts
from oralmarks.grading.schema import parse_score_output


class GeminiScorer(Scorer):
    name = PROVIDER_NAME

    def __init__(self, client: GeminiClient, model: str = "gemini-2.5-flash") -> None:
        self._client = client
        self._model = model

    def score(
        self,
        question_text: str,
        transcript: str,
        rubric_reasoning: str,
        rubric_evidence: str,
        *,
        primary: ScoreResult | None = None,
    ) -> ScoreResult:
        system, user = build_prompts(question_text, transcript, rubric_reasoning, rubric_evidence, primary)
        data = self._client.generate_json(
            self._model,
            system,
            [{"text": user}],
            operation="review" if primary is not None else "score",
        )
        return parse_score_output(data, provider=self.name, model_name=self._model)
