"""Rubric scoring through the OpenAI Responses API with strict structured output."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from oralmarks.ai.openai_client import PROVIDER_NAME, openai_errors
from oralmarks.errors import ProviderEmptyResponse
from oralmarks.grading.base import Scorer, ScoreResult
from oralmarks.grading.prompts import build_prompts
from oralmarks.grading.schema import build_score_response_schema, parse_score_output

logger = logging.getLogger(__name__)


def build_score_request(model: str, system: str, user: str, schema: dict[str, Any]) -> dict[str, Any]:
    return {
        "model": model,
        "input": [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        "text": {
            "format": {
                "type": "json_schema",
                "name": "rubric_scores",
                "strict": True,
                "schema": schema,
            }
        },
    }


class OpenAIScorer(Scorer):
    name = PROVIDER_NAME

    def __init__(self, client: Any, model: str = "gpt-5-mini-2025-08-07") -> None:
        self._client = client
        self._model = model
        self._schema = build_score_response_schema()

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
        request_payload = build_score_request(self._model, system, user, self._schema)

        started = time.perf_counter()
        with openai_errors():
            response = self._client.responses.create(**request_payload)
        logger.info(
            "score/openai",
            extra={
                "provider": self.name,
                "model": self._model,
                "review": primary is not None,
                "elapsed_ms": int((time.perf_counter() - started) * 1000),
            },
        )

        output_text = getattr(response, "output_text", None)
        if not isinstance(output_text, str) or not output_text.strip():
            raise ProviderEmptyResponse(provider=self.name, message="OpenAI returned empty response.")
        try:
            data = json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise ProviderEmptyResponse(provider=self.name, message=f"OpenAI returned non-JSON output: {exc}") from exc
        return parse_score_output(data, provider=self.name, model_name=self._model)
