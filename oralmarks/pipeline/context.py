"""Assemble the question text and transcript handed to a scorer."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from oralmarks.transcription.pauses import strip_pauses

logger = logging.getLogger(__name__)

MAX_EVIDENCE_QUESTIONS = 2
SUMMARY_FALLBACK = "Summary unavailable."


@dataclass
class EvidenceAnalysis:
    summary: str
    questions: list[str]


def parse_evidence_analysis(raw: str | None) -> EvidenceAnalysis | None:
    """Decode the stored ``{summary, questions[]}`` blob; None when absent or unusable."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("score/evidence analysis is not JSON")
        return None
    if not isinstance(data, dict):
        return None

    summary = data.get("summary")
    summary_text = summary.strip() if isinstance(summary, str) else ""
    questions = data.get("questions")
    cleaned = [item.strip() for item in questions if isinstance(item, str) and item.strip()] if isinstance(questions, list) else []
    cleaned = cleaned[:MAX_EVIDENCE_QUESTIONS]
    if not summary_text and not cleaned:
        return None
    return EvidenceAnalysis(summary=summary_text or SUMMARY_FALLBACK, questions=cleaned)


def build_question_text(question_text: str, analysis: EvidenceAnalysis | None) -> str:
    if analysis is None:
        return question_text
    lines = [question_text, "", "Evidence image context:", f"Summary: {analysis.summary}"]
    if analysis.questions:
        lines.append("Follow-up questions about the evidence:")
        lines.extend(f"- {item}" for item in analysis.questions)
    return "\n".join(lines)


def build_scoring_transcript(primary: str, followup: str | None = None, followup_prompt: str | None = None) -> str:
    """Strip pause markers and join the primary answer with an optional spoken follow-up.

    Returns an empty string when there is nothing to grade.
    """
    primary_text = strip_pauses(primary)
    followup_text = strip_pauses(followup) if followup else ""
    if not followup_text:
        return primary_text

    sections = [f"Initial response:\n{primary_text}"]
    if followup_prompt and followup_prompt.strip():
        sections.append(f"Follow-up question:\n{followup_prompt.strip()}")
    sections.append(f"Follow-up response:\n{followup_text}")
    return "\n\n".join(sections)
