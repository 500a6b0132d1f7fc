"""Merge a primary score with an independent reviewer's score.

Per rubric dimension: agreement keeps the primary score, a one-point gap takes
the rounded average, and a gap of two or more defers to the reviewer. Every
reconciled justification keeps both original texts so an educator can audit how
the final score was reached.
"""

from __future__ import annotations

from oralmarks.grading.base import DimensionScore, ScoreResult, clamp_score

MAX_RECONCILED_JUSTIFICATION_LENGTH = 1200
MINOR_DISAGREEMENT_LABEL = "minor disagreement"
OVERRIDE_LABEL = "review override"


def _label(name: str) -> str:
    return {"openai": "OpenAI", "gemini": "Gemini"}.get(name, name.capitalize())


def reconcile_dimension(
    primary: DimensionScore,
    review: DimensionScore,
    primary_name: str = "primary",
    reviewer_name: str = "reviewer",
) -> DimensionScore:
    primary_label = _label(primary_name)
    reviewer_label = _label(reviewer_name)

    if primary.score == review.score:
        text = f"{primary.justification}\n\n{reviewer_label} review (agree): {review.justification}"
        return DimensionScore(score=primary.score, justification=text[:MAX_RECONCILED_JUSTIFICATION_LENGTH])

    if abs(primary.score - review.score) == 1:
        final = clamp_score((primary.score + review.score) / 2)
        reason = MINOR_DISAGREEMENT_LABEL
    else:
        final = review.score
        reason = OVERRIDE_LABEL

    body = f"{primary_label}: {primary.justification}\n\n{reviewer_label} review: {review.justification}"
    # The decision line always survives truncation.
    footer = f"\n\nFinal score chosen: {final} ({reason})"
    text = body[: MAX_RECONCILED_JUSTIFICATION_LENGTH - len(footer)] + footer
    return DimensionScore(score=final, justification=text)


def reconcile(
    primary: ScoreResult,
    review: ScoreResult,
    primary_name: str = "primary",
    reviewer_name: str = "reviewer",
) -> ScoreResult:
    return ScoreResult(
        reasoning=reconcile_dimension(primary.reasoning, review.reasoning, primary_name, reviewer_name),
        evidence=reconcile_dimension(primary.evidence, review.evidence, primary_name, reviewer_name),
        model_name=f"{primary.model_name}+{review.model_name}".strip("+"),
    )
