"""SQLModel ORM models for OralMarks."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Return timezone-aware UTC now timestamp."""
    return datetime.now(timezone.utc)


class SubmissionStatus(str, Enum):
    STARTED = "started"
    SUBMITTED = "submitted"
    RESTARTED = "restarted"


class ScoringStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    ERROR = "error"


class ResponseStage(str, Enum):
    PRIMARY = "primary"
    FOLLOWUP = "followup"


class RubricType(str, Enum):
    REASONING = "reasoning"
    EVIDENCE = "evidence"


AUDIO_FOLLOWUP_TYPE = "audio_followup"
EVIDENCE_FOLLOWUP_TYPES = frozenset({"evidence_followup", "artifact_followup"})


class Assessment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    created_at: datetime = Field(default_factory=utcnow)


class Submission(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    assessment_id: int = Field(foreign_key="assessment.id", index=True)
    student_id: str = Field(index=True)
    status: SubmissionStatus = Field(default=SubmissionStatus.STARTED)
    scoring_status: ScoringStatus = Field(default=ScoringStatus.PENDING, index=True)
    scoring_error: Optional[str] = None
    scoring_started_at: Optional[datetime] = None
    scored_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)


class Question(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    assessment_id: int = Field(foreign_key="assessment.id", index=True)
    # Set only for questions generated for a single submission.
    submission_id: Optional[int] = Field(default=None, foreign_key="submission.id", index=True)
    order_index: int = 0
    question_text: str
    question_type: Optional[str] = None

    @property
    def expects_audio_followup(self) -> bool:
        return self.question_type == AUDIO_FOLLOWUP_TYPE

    @property
    def expects_evidence_followup(self) -> bool:
        return self.question_type in EVIDENCE_FOLLOWUP_TYPES


class Rubric(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    assessment_id: int = Field(foreign_key="assessment.id", index=True)
    rubric_type: RubricType
    instructions: str


class SubmissionResponse(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    submission_id: int = Field(foreign_key="submission.id", index=True)
    question_id: int = Field(foreign_key="question.id", index=True)
    storage_bucket: Optional[str] = None
    storage_path: str
    mime_type: Optional[str] = None
    transcript: Optional[str] = None
    duration_seconds: Optional[float] = None
    stage: ResponseStage = Field(default=ResponseStage.PRIMARY)
    ai_followup_question: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class EvidenceImage(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    submission_id: int = Field(foreign_key="submission.id", index=True)
    question_id: int = Field(foreign_key="question.id", index=True)
    storage_bucket: Optional[str] = None
    storage_path: str
    mime_type: Optional[str] = None
    ai_analysis_json: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class QuestionScore(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("submission_id", "question_id", "scorer_type"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    submission_id: int = Field(foreign_key="submission.id", index=True)
    question_id: int = Field(foreign_key="question.id", index=True)
    scorer_type: RubricType
    score: int
    justification: str
    updated_at: datetime = Field(default_factory=utcnow)
