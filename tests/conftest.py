from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlmodel import Session, SQLModel, create_engine

from oralmarks.errors import ProviderError
from oralmarks.grading.base import DimensionScore, ScoreResult
from oralmarks.models import (
    Assessment,
    EvidenceImage,
    Question,
    ResponseStage,
    Rubric,
    RubricType,
    ScoringStatus,
    Submission,
    SubmissionResponse,
    SubmissionStatus,
    utcnow,
)
from oralmarks.pipeline.providers import ProviderSet
from oralmarks.pipeline.score_submission import SubmissionScorer
from oralmarks.storage_provider import LocalDiskProvider
from oralmarks.transcription.base import TranscriptResult

RECORDINGS_BUCKET = "student-recordings"

_PROVIDER_ENV = (
    "OPENAI_API_KEY",
    "ORALMARKS_OPENAI_API_KEY",
    "GOOGLE_API_KEY",
    "GEMINI_API_KEY",
    "GOOGLE_GENERATIVE_AI_KEY",
    "ORALMARKS_GOOGLE_API_KEY",
    "ENABLE_GEMINI",
    "GEMINI_ENABLED",
    "ORALMARKS_GEMINI_ENABLED",
    "BACKEND_API_KEY",
    "CRON_SECRET",
    "ORALMARKS_CRON_SECRET",
)


@pytest.fixture(autouse=True)
def _reset_storage_provider() -> None:
    from oralmarks.storage_provider import reset_storage_provider

    reset_storage_provider()
    yield
    reset_storage_provider()


@pytest.fixture(autouse=True)
def _clear_provider_env(monkeypatch) -> None:
    for name in _PROVIDER_ENV:
        monkeypatch.delenv(name, raising=False)


class FakeTranscriber:
    """Echoes the stored audio bytes back as the transcript."""

    name = "fake-stt"

    def __init__(self, failures: dict[str, ProviderError] | None = None) -> None:
        self.failures = failures or {}
        self.calls: list[tuple[bytes, str]] = []

    def transcribe(self, audio: bytes, mime_type: str) -> TranscriptResult:
        self.calls.append((audio, mime_type))
        text = audio.decode("utf-8")
        if text in self.failures:
            raise self.failures[text]
        return TranscriptResult(text=text, provider=self.name, duration_seconds=3.0)


class FakeScorer:
    """Returns fixed scores; fails for transcripts containing a configured marker."""

    def __init__(
        self,
        name: str = "openai",
        reasoning: int = 4,
        evidence: int = 3,
        failures: dict[str, ProviderError] | None = None,
    ) -> None:
        self.name = name
        self.reasoning = reasoning
        self.evidence = evidence
        self.failures = failures or {}
        self.calls: list[dict[str, object]] = []

    def score(self, question_text, transcript, rubric_reasoning, rubric_evidence, *, primary=None) -> ScoreResult:
        self.calls.append(
            {
                "question_text": question_text,
                "transcript": transcript,
                "rubric_reasoning": rubric_reasoning,
                "rubric_evidence": rubric_evidence,
                "primary": primary,
            }
        )
        for marker, error in self.failures.items():
            if marker in transcript:
                raise error
        return ScoreResult(
            reasoning=DimensionScore(score=self.reasoning, justification=f"{self.name} reasoning"),
            evidence=DimensionScore(score=self.evidence, justification=f"{self.name} evidence"),
            model_name=f"{self.name}-model",
        )


class Seeder:
    def __init__(self, session: Session, storage: LocalDiskProvider) -> None:
        self.session = session
        self.storage = storage

    def _save(self, row):
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def assessment(self, *, rubrics: bool = True) -> Assessment:
        assessment = self._save(Assessment(title="Photosynthesis oral check"))
        if rubrics:
            self._save(Rubric(assessment_id=assessment.id, rubric_type=RubricType.REASONING, instructions="Explain causes."))
            self._save(Rubric(assessment_id=assessment.id, rubric_type=RubricType.EVIDENCE, instructions="Cite observations."))
        return assessment

    def submission(
        self,
        assessment: Assessment,
        *,
        status: SubmissionStatus = SubmissionStatus.SUBMITTED,
        scoring_status: ScoringStatus = ScoringStatus.PENDING,
    ) -> Submission:
        return self._save(
            Submission(
                assessment_id=assessment.id,
                student_id="student-1",
                status=status,
                scoring_status=scoring_status,
                submitted_at=utcnow() if status == SubmissionStatus.SUBMITTED else None,
            )
        )

    def question(
        self,
        assessment: Assessment,
        text: str,
        order_index: int = 0,
        *,
        question_type: str | None = None,
        submission: Submission | None = None,
    ) -> Question:
        return self._save(
            Question(
                assessment_id=assessment.id,
                submission_id=submission.id if submission else None,
                order_index=order_index,
                question_text=text,
                question_type=question_type,
            )
        )

    def response(
        self,
        submission: Submission,
        question: Question,
        spoken: str | None,
        *,
        stage: ResponseStage = ResponseStage.PRIMARY,
        transcript: str | None = None,
        ai_followup_question: str | None = None,
        mime_type: str | None = "audio/webm",
        path: str | None = None,
    ) -> SubmissionResponse:
        path = path or f"{submission.id}/{question.id}/{stage.value}.webm"
        if spoken is not None:
            self.storage.put_bytes(RECORDINGS_BUCKET, path, spoken.encode("utf-8"), "audio/webm")
        return self._save(
            SubmissionResponse(
                submission_id=submission.id,
                question_id=question.id,
                storage_path=path,
                mime_type=mime_type,
                transcript=transcript,
                stage=stage,
                ai_followup_question=ai_followup_question,
            )
        )

    def evidence(self, submission: Submission, question: Question, analysis: dict | str | None) -> EvidenceImage:
        raw = analysis if isinstance(analysis, str) or analysis is None else json.dumps(analysis)
        return self._save(
            EvidenceImage(
                submission_id=submission.id,
                question_id=question.id,
                storage_path=f"{submission.id}/{question.id}/evidence.png",
                mime_type="image/png",
                ai_analysis_json=raw,
            )
        )


@pytest.fixture()
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'scoring.db'}", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def storage(tmp_path) -> LocalDiskProvider:
    return LocalDiskProvider(tmp_path / "objects")


@pytest.fixture()
def seed(session, storage) -> Seeder:
    return Seeder(session, storage)


@pytest.fixture()
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture()
def scorer() -> FakeScorer:
    return FakeScorer()


@pytest.fixture()
def make_submission_scorer(storage):
    def _make(session: Session, transcriber, scorer, reviewer=None) -> SubmissionScorer:
        providers = ProviderSet(transcriber=transcriber, scorer=scorer, reviewer=reviewer)
        return SubmissionScorer(session, storage, providers, recordings_bucket=RECORDINGS_BUCKET)

    return _make


@pytest.fixture()
def fakes():
    """Expose the fake provider classes to tests that need custom instances."""

    class _Fakes:
        Transcriber = FakeTranscriber
        Scorer = FakeScorer

    return _Fakes
