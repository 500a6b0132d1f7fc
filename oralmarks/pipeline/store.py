"""Store reads and writes used by the scoring orchestrator."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import or_, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session, select

from oralmarks.errors import RubricsMissing
from oralmarks.grading.base import ScoreResult
from oralmarks.models import (
    EvidenceImage,
    Question,
    QuestionScore,
    ResponseStage,
    Rubric,
    RubricType,
    ScoringStatus,
    Submission,
    SubmissionResponse,
    SubmissionStatus,
    utcnow,
)

MAX_ERROR_LENGTH = 800
CLAIMABLE_STATUSES = (ScoringStatus.PENDING, ScoringStatus.ERROR)

_UPSERT_INSERTS = {"sqlite": sqlite_insert, "postgresql": pg_insert}
_SCORE_KEY = ("submission_id", "question_id", "scorer_type")


@dataclass
class RubricPair:
    reasoning: str
    evidence: str


def claim_submission(session: Session, submission_id: int) -> bool:
    """Atomically move scoring_status from pending/error to running.

    Returns False when another caller already holds or took the claim.
    """
    result = session.exec(
        update(Submission)
        .where(Submission.id == submission_id, Submission.scoring_status.in_(CLAIMABLE_STATUSES))
        .values(scoring_status=ScoringStatus.RUNNING, scoring_started_at=utcnow(), scoring_error=None)
    )
    session.commit()
    return result.rowcount == 1


def reset_scoring(session: Session, submission_id: int) -> None:
    """Return a submission to pending so a manual re-score can claim it."""
    session.exec(
        update(Submission)
        .where(Submission.id == submission_id)
        .values(scoring_status=ScoringStatus.PENDING, scoring_started_at=None, scored_at=None, scoring_error=None)
    )
    session.commit()


def mark_complete(session: Session, submission_id: int) -> None:
    session.exec(
        update(Submission)
        .where(Submission.id == submission_id)
        .values(scoring_status=ScoringStatus.COMPLETE, scored_at=utcnow(), scoring_error=None)
    )
    session.commit()


def mark_error(session: Session, submission_id: int, message: str) -> None:
    session.exec(
        update(Submission)
        .where(Submission.id == submission_id)
        .values(scoring_status=ScoringStatus.ERROR, scoring_error=message[:MAX_ERROR_LENGTH])
    )
    session.commit()


def load_questions(session: Session, submission: Submission) -> list[Question]:
    """Shared assessment questions plus any generated for this submission, in order."""
    statement = (
        select(Question)
        .where(
            Question.assessment_id == submission.assessment_id,
            or_(Question.submission_id.is_(None), Question.submission_id == submission.id),
        )
        .order_by(Question.order_index, Question.id)
    )
    return list(session.exec(statement).all())


def load_rubrics(session: Session, assessment_id: int) -> RubricPair:
    rubrics = session.exec(select(Rubric).where(Rubric.assessment_id == assessment_id).order_by(Rubric.id)).all()
    by_type: dict[RubricType, str] = {}
    for rubric in rubrics:
        if rubric.instructions and rubric.instructions.strip():
            by_type.setdefault(rubric.rubric_type, rubric.instructions)
    reasoning = by_type.get(RubricType.REASONING)
    evidence = by_type.get(RubricType.EVIDENCE)
    if not reasoning or not evidence:
        raise RubricsMissing("Rubrics missing.")
    return RubricPair(reasoning=reasoning, evidence=evidence)


def index_responses(session: Session, submission_id: int) -> dict[tuple[int, ResponseStage], SubmissionResponse]:
    """Index responses by (question, stage); the earliest row wins."""
    rows = session.exec(
        select(SubmissionResponse).where(SubmissionResponse.submission_id == submission_id).order_by(SubmissionResponse.id)
    ).all()
    indexed: dict[tuple[int, ResponseStage], SubmissionResponse] = {}
    for row in rows:
        indexed.setdefault((row.question_id, row.stage), row)
    return indexed


def index_evidence_images(session: Session, submission_id: int) -> dict[int, EvidenceImage]:
    rows = session.exec(
        select(EvidenceImage).where(EvidenceImage.submission_id == submission_id).order_by(EvidenceImage.id)
    ).all()
    indexed: dict[int, EvidenceImage] = {}
    for row in rows:
        indexed.setdefault(row.question_id, row)
    return indexed


def cache_transcript(session: Session, response: SubmissionResponse, transcript: str, duration_seconds: float | None) -> None:
    response.transcript = transcript
    if response.duration_seconds is None and duration_seconds is not None:
        response.duration_seconds = duration_seconds
    session.add(response)
    session.commit()


def upsert_question_scores(session: Session, submission_id: int, question_id: int, result: ScoreResult) -> None:
    """Write both rubric rows for a question, overwriting any earlier scoring."""
    now = utcnow()
    rows = [
        {
            "submission_id": submission_id,
            "question_id": question_id,
            "scorer_type": scorer_type,
            "score": dimension.score,
            "justification": dimension.justification,
            "updated_at": now,
        }
        for scorer_type, dimension in ((RubricType.REASONING, result.reasoning), (RubricType.EVIDENCE, result.evidence))
    ]

    insert = _UPSERT_INSERTS.get(session.get_bind().dialect.name)
    if insert is not None:
        statement = insert(QuestionScore).values(rows)
        statement = statement.on_conflict_do_update(
            index_elements=list(_SCORE_KEY),
            set_={
                "score": statement.excluded.score,
                "justification": statement.excluded.justification,
                "updated_at": statement.excluded.updated_at,
            },
        )
        session.exec(statement)
    else:
        for row in rows:
            existing = session.exec(
                select(QuestionScore).where(
                    QuestionScore.submission_id == submission_id,
                    QuestionScore.question_id == question_id,
                    QuestionScore.scorer_type == row["scorer_type"],
                )
            ).first()
            if existing is None:
                session.add(QuestionScore(**row))
            else:
                existing.score = row["score"]
                existing.justification = row["justification"]
                existing.updated_at = now
                session.add(existing)
    session.commit()


def pending_submission_ids(session: Session, limit: int) -> list[int]:
    """Oldest submitted submissions still waiting for (or retrying) scoring."""
    statement = (
        select(Submission.id)
        .where(Submission.status == SubmissionStatus.SUBMITTED, Submission.scoring_status.in_(CLAIMABLE_STATUSES))
        .order_by(Submission.submitted_at, Submission.id)
        .limit(limit)
    )
    return [submission_id for submission_id in session.exec(statement).all() if submission_id is not None]
