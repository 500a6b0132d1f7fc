from __future__ import annotations

import math

import pytest

from oralmarks.errors import MalformedScoreOutput
from oralmarks.grading.base import clamp_score
from oralmarks.grading.schema import (
    MAX_JUSTIFICATION_LENGTH,
    SchemaBuildError,
    build_score_response_schema,
    parse_score_output,
    validate_schema_strictness,
)


def _payload(reasoning_score: object = 4, evidence_score: object = 3) -> dict[str, object]:
    return {
        "reasoning": {"score": reasoning_score, "justification": "Explains the cause."},
        "evidence": {"score": evidence_score, "justification": "Cites one observation."},
    }


@pytest.mark.parametrize(
    ("value", "expected"),
    [(3, 3), (0, 1), (-4, 1), (9, 5), (2.5, 3), (3.49, 3), (4.5, 5), (math.inf, 5), (-math.inf, 1), (math.nan, 1)],
)
def test_clamp_score(value: float, expected: int) -> None:
    assert clamp_score(value) == expected


def test_parse_valid_output() -> None:
    result = parse_score_output(_payload(), provider="openai", model_name="gpt-test")

    assert result.reasoning.score == 4
    assert result.evidence.score == 3
    assert result.reasoning.justification == "Explains the cause."
    assert result.model_name == "gpt-test"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("4", 4), (" 2.6 ", 3), (7, 5), (0.2, 1), ("-3", 1), (10**400, 5), (-(10**400), 1), (1e308, 5)],
)
def test_numeric_scores_are_coerced_and_clamped(raw: object, expected: int) -> None:
    result = parse_score_output(_payload(reasoning_score=raw), provider="openai")

    assert result.reasoning.score == expected


@pytest.mark.parametrize("raw", [True, None, "four", "nan", "inf", [3], {"value": 3}])
def test_non_numeric_scores_are_rejected(raw: object) -> None:
    with pytest.raises(MalformedScoreOutput) as exc_info:
        parse_score_output(_payload(reasoning_score=raw), provider="gemini")

    assert exc_info.value.provider == "gemini"
    assert "reasoning.score" in exc_info.value.fields


def test_missing_dimension_is_rejected_with_field_name() -> None:
    with pytest.raises(MalformedScoreOutput) as exc_info:
        parse_score_output({"reasoning": {"score": 3, "justification": "ok"}}, provider="openai")

    assert exc_info.value.fields == ["evidence"]
    assert "evidence" in str(exc_info.value)


def test_non_string_justification_is_rejected() -> None:
    payload = _payload()
    payload["evidence"]["justification"] = 12

    with pytest.raises(MalformedScoreOutput) as exc_info:
        parse_score_output(payload, provider="openai")

    assert exc_info.value.fields == ["evidence.justification"]


def test_non_object_output_is_rejected() -> None:
    with pytest.raises(MalformedScoreOutput):
        parse_score_output(["not", "an", "object"], provider="openai")


def test_long_justification_is_truncated() -> None:
    payload = _payload()
    payload["reasoning"]["justification"] = "x" * (MAX_JUSTIFICATION_LENGTH + 250)

    result = parse_score_output(payload, provider="openai")

    assert len(result.reasoning.justification) == MAX_JUSTIFICATION_LENGTH


def test_score_schema_is_strict_for_all_object_nodes() -> None:
    schema = build_score_response_schema()

    assert schema["required"] == ["reasoning", "evidence"]
    assert schema["additionalProperties"] is False
    for dimension in ("reasoning", "evidence"):
        node = schema["properties"][dimension]
        assert node["additionalProperties"] is False
        assert node["required"] == ["score", "justification"]


def test_schema_validation_rejects_non_strict_shape() -> None:
    invalid_schema = {"type": "object", "properties": {"x": {"type": "object", "properties": {"a": {"type": "string"}}}}}
    with pytest.raises(SchemaBuildError):
        validate_schema_strictness(invalid_schema)
