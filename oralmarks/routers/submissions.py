"""Submission scoring endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from oralmarks.db import get_session
from oralmarks.errors import InvalidSubmissionState, ScoringError, SubmissionNotFound
from oralmarks.models import QuestionScore, Submission
from oralmarks.pipeline.score_submission import SubmissionScorer, build_submission_scorer
from oralmarks.schemas import QuestionScoreRead, ScoreRunResponse, SubmissionScoresRead

router = APIRouter(prefix="/submissions", tags=["submissions"])


def get_submission_scorer(session: Session = Depends(get_session)) -> SubmissionScorer:
    return build_submission_scorer(session)


@router.post("/{submission_id}/score", response_model=ScoreRunResponse)
def score_submission(
    submission_id: int,
    force: bool = Query(default=False),
    scorer: SubmissionScorer = Depends(get_submission_scorer),
    session: Session = Depends(get_session),
) -> ScoreRunResponse:
    try:
        if force:
            scorer.reset(submission_id)
        result = scorer.score(submission_id)
    except SubmissionNotFound as exc:
        raise HTTPException(status_code=404, detail="Submission not found") from exc
    except InvalidSubmissionState as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ScoringError as exc:
        raise HTTPException(status_code=500, detail=str(exc) or "Scoring failed.") from exc

    submission = session.get(Submission, submission_id)
    if submission is not None:
        session.refresh(submission)
    return ScoreRunResponse(
        ok=True,
        ran=result.ran,
        scoring_status=submission.scoring_status if submission else result.scoring_status,
        scoring_error=submission.scoring_error if submission else None,
    )


@router.get("/{submission_id}/scores", response_model=SubmissionScoresRead)
def get_submission_scores(submission_id: int, session: Session = Depends(get_session)) -> SubmissionScoresRead:
    submission = session.get(Submission, submission_id)
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    rows = session.exec(
        select(QuestionScore)
        .where(QuestionScore.submission_id == submission_id)
        .order_by(QuestionScore.question_id, QuestionScore.scorer_type)
    ).all()

    return SubmissionScoresRead(
        submission_id=submission.id,
        status=submission.status,
        scoring_status=submission.scoring_status,
        scoring_error=submission.scoring_error,
        scoring_started_at=submission.scoring_started_at,
        scored_at=submission.scored_at,
        scores=[
            QuestionScoreRead(
                question_id=row.question_id,
                scorer_type=row.scorer_type,
                score=row.score,
                justification=row.justification,
                updated_at=row.updated_at,
            )
            for row in rows
        ],
    )
