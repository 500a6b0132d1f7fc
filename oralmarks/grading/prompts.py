"""Prompt text shared by the scoring providers."""

from __future__ import annotations

import json

from oralmarks.grading.base import ScoreResult

GRADER_SYSTEM_PROMPT = (
    "You are a strict grader. Return ONLY JSON: reasoning{score,justification}, "
    "evidence{score,justification}. Scores are integers 1-5."
)

REVIEWER_SYSTEM_PROMPT = (
    "You are a strict grading reviewer. Return ONLY JSON: reasoning{score,justification}, "
    "evidence{score,justification}. Scores are integers 1-5."
)


def _shared_context(question_text: str, transcript: str, rubric_reasoning: str, rubric_evidence: str) -> str:
    return (
        f"Question:\n{question_text}\n\n"
        f"Student transcript:\n{transcript}\n\n"
        f"Reasoning rubric instructions:\n{rubric_reasoning}\n\n"
        f"Evidence rubric instructions:\n{rubric_evidence}"
    )


def build_score_prompt(question_text: str, transcript: str, rubric_reasoning: str, rubric_evidence: str) -> str:
    return (
        _shared_context(question_text, transcript, rubric_reasoning, rubric_evidence)
        + "\n\nRules:\n"
        "- Provide a score 1-5 for each rubric.\n"
        "- Justification must quote or reference transcript specifics.\n"
        "- If transcript is empty or irrelevant, score low with clear explanation."
    )


def build_review_prompt(
    question_text: str,
    transcript: str,
    rubric_reasoning: str,
    rubric_evidence: str,
    primary: ScoreResult,
) -> str:
    return (
        "Review the following grading and correct if needed.\n\n"
        + _shared_context(question_text, transcript, rubric_reasoning, rubric_evidence)
        + f"\n\nPrimary scoring:\n{json.dumps(primary.as_payload())}"
        + "\n\nRules:\n"
        "- If you agree, keep the same scores.\n"
        "- If you disagree, adjust scores and explain why, quoting transcript specifics.\n"
        "- Keep justifications concise."
    )


def build_prompts(
    question_text: str,
    transcript: str,
    rubric_reasoning: str,
    rubric_evidence: str,
    primary: ScoreResult | None,
) -> tuple[str, str]:
    """Return (system, user) prompts for a first-pass grade or a review."""
    if primary is None:
        return GRADER_SYSTEM_PROMPT, build_score_prompt(question_text, transcript, rubric_reasoning, rubric_evidence)
    return REVIEWER_SYSTEM_PROMPT, build_review_prompt(question_text, transcript, rubric_reasoning, rubric_evidence, primary)
