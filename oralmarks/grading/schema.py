"""Structured-output schema and strict parsing for rubric scores."""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError, field_validator

from oralmarks.errors import MalformedScoreOutput
from oralmarks.grading.base import MAX_SCORE, MIN_SCORE, DimensionScore, ScoreResult, clamp_score

MAX_JUSTIFICATION_LENGTH = 1000


@dataclass
class SchemaBuildError(Exception):
    message: str

    def __str__(self) -> str:
        return self.message


def _base_score_schema() -> dict[str, Any]:
    dimension = {
        "type": "object",
        "properties": {
            "score": {"type": "integer"},
            "justification": {"type": "string"},
        },
    }
    return {
        "type": "object",
        "properties": {
            "reasoning": copy.deepcopy(dimension),
            "evidence": copy.deepcopy(dimension),
        },
    }


def _ensure_strict_schema_node(node: object) -> None:
    if isinstance(node, list):
        for item in node:
            _ensure_strict_schema_node(item)
        return

    if not isinstance(node, dict):
        return

    if node.get("type") == "object":
        properties = node.get("properties")
        if not isinstance(properties, dict):
            properties = {}
            node["properties"] = properties
        node["additionalProperties"] = False
        node["required"] = list(properties.keys())

    properties = node.get("properties")
    if isinstance(properties, dict):
        for value in properties.values():
            _ensure_strict_schema_node(value)

    items = node.get("items")
    if items is not None:
        _ensure_strict_schema_node(items)


def validate_schema_strictness(schema: dict[str, Any]) -> None:
    def _walk(node: object, path: str) -> None:
        if isinstance(node, list):
            for idx, item in enumerate(node):
                _walk(item, f"{path}[{idx}]")
            return

        if not isinstance(node, dict):
            return

        if node.get("type") == "object":
            if node.get("additionalProperties") is not False:
                raise SchemaBuildError(f"Object at {path} missing additionalProperties=false")
            if not isinstance(node.get("required"), list):
                raise SchemaBuildError(f"Object at {path} missing required list")

        for key, value in node.items():
            _walk(value, f"{path}.{key}")

    _walk(schema, "schema")


def build_score_response_schema() -> dict[str, Any]:
    schema = _base_score_schema()
    _ensure_strict_schema_node(schema)
    validate_schema_strictness(schema)
    return schema


def coerce_score(value: object) -> float:
    """Accept numbers and numeric strings; reject everything else."""
    if isinstance(value, bool):
        raise ValueError("score must be a number, not a boolean")
    if isinstance(value, int):
        # Arbitrarily large ints overflow float(); anything out of range clamps anyway.
        return float(max(MIN_SCORE - 1, min(MAX_SCORE + 1, value)))
    if isinstance(value, float):
        return value
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            raise ValueError(f"score {value!r} is not numeric") from None
        if not math.isfinite(parsed):
            raise ValueError(f"score {value!r} is not a finite number")
        return parsed
    raise ValueError(f"score must be a number, got {type(value).__name__}")


class _DimensionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    score: int
    justification: StrictStr

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, value: object) -> int:
        return clamp_score(coerce_score(value))

    @field_validator("justification")
    @classmethod
    def _truncate(cls, value: str) -> str:
        return value[:MAX_JUSTIFICATION_LENGTH]


class _ScorePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reasoning: _DimensionPayload
    evidence: _DimensionPayload


def parse_score_output(data: object, *, provider: str, model_name: str = "") -> ScoreResult:
    """Decode a provider's JSON into a ScoreResult, failing loudly on any shape mismatch."""
    try:
        payload = _ScorePayload.model_validate(data)
    except ValidationError as exc:
        fields = [".".join(str(part) for part in error["loc"]) or "<root>" for error in exc.errors()]
        raise MalformedScoreOutput(
            provider=provider,
            message=f"Scoring output invalid ({', '.join(fields)}).",
            fields=fields,
        ) from exc
    return ScoreResult(
        reasoning=DimensionScore(score=payload.reasoning.score, justification=payload.reasoning.justification),
        evidence=DimensionScore(score=payload.evidence.score, justification=payload.evidence.justification),
        model_name=model_name,
    )
