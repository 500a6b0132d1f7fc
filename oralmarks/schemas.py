"""Request and response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from oralmarks.models import RubricType, ScoringStatus, SubmissionStatus


class ScoreRunResponse(BaseModel):
    ok: bool
    ran: bool
    scoring_status: ScoringStatus
    scoring_error: str | None = None


class QuestionScoreRead(BaseModel):
    question_id: int
    scorer_type: RubricType
    score: int
    justification: str
    updated_at: datetime


class SubmissionScoresRead(BaseModel):
    submission_id: int
    status: SubmissionStatus
    scoring_status: ScoringStatus
    scoring_error: str | None
    scoring_started_at: datetime | None
    scored_at: datetime | None
    scores: list[QuestionScoreRead] = Field(default_factory=list)


class CronScoreItem(BaseModel):
    id: int
    ok: bool
    error: str | None = None


class CronScoreResult(BaseModel):
    ok: bool
    processed: int
    results: list[CronScoreItem] = Field(default_factory=list)
