"""Submission scoring orchestrator.

One call owns one submission's scoring run: it claims the submission, walks
its questions in order, transcribes and grades every recorded answer, and
writes a terminal scoring status. Per-question failures are counted and the
loop moves on; setup failures and runs where nothing could be scored end the
whole run in ``error`` and are re-raised to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from sqlmodel import Session

from oralmarks.errors import (
    AllQuestionsFailed,
    InvalidSubmissionState,
    NoRecordingsFound,
    ProviderError,
    ScoringError,
    SubmissionNotFound,
)
from oralmarks.grading.reconcile import reconcile
from oralmarks.models import EvidenceImage, Question, ResponseStage, ScoringStatus, Submission, SubmissionResponse, SubmissionStatus
from oralmarks.pipeline import store
from oralmarks.pipeline.attempt import TOLERATED_ERRORS, attempt
from oralmarks.pipeline.context import build_question_text, build_scoring_transcript, parse_evidence_analysis
from oralmarks.pipeline.providers import ProviderSet, resolve_providers
from oralmarks.settings import settings
from oralmarks.storage_provider import StorageProvider, get_storage_provider

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "audio/webm"
EMPTY_TRANSCRIPT_MESSAGE = "Empty transcript."


class OutcomeKind(str, Enum):
    SCORED = "scored"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class QuestionOutcome:
    kind: OutcomeKind
    message: str | None = None

    @classmethod
    def scored(cls) -> "QuestionOutcome":
        return cls(OutcomeKind.SCORED)

    @classmethod
    def skipped(cls) -> "QuestionOutcome":
        return cls(OutcomeKind.SKIPPED)

    @classmethod
    def failed(cls, message: str) -> "QuestionOutcome":
        return cls(OutcomeKind.FAILED, message)


@dataclass
class ScoringTally:
    attempted: int = 0
    scored: int = 0
    errors: int = 0
    first_error: str | None = None

    def record(self, outcome: QuestionOutcome) -> None:
        if outcome.kind is OutcomeKind.SKIPPED:
            return
        self.attempted += 1
        if outcome.kind is OutcomeKind.SCORED:
            self.scored += 1
            return
        self.errors += 1
        if self.first_error is None:
            self.first_error = outcome.message

    def summary(self) -> str:
        return f"{self.errors} question(s) failed during transcription/scoring. {self.first_error or ''}".strip()


@dataclass
class ScoringRunResult:
    submission_id: int
    scoring_status: ScoringStatus
    ran: bool
    tally: ScoringTally = field(default_factory=ScoringTally)


class SubmissionScorer:
    """Scores submissions against one resolved set of providers."""

    def __init__(
        self,
        session: Session,
        storage: StorageProvider,
        providers: ProviderSet,
        *,
        recordings_bucket: str = "student-recordings",
    ) -> None:
        self._session = session
        self._storage = storage
        self._providers = providers
        self._recordings_bucket = recordings_bucket

    def reset(self, submission_id: int) -> None:
        """Force re-score: drop the current scoring state back to pending."""
        submission = self._session.get(Submission, submission_id)
        if submission is None:
            raise SubmissionNotFound("Submission not found.")
        if submission.status != SubmissionStatus.SUBMITTED:
            raise InvalidSubmissionState("Submission is not submitted.")
        store.reset_scoring(self._session, submission_id)
        logger.info("score/reset", extra={"submission_id": submission_id})

    def score(self, submission_id: int) -> ScoringRunResult:
        submission = self._session.get(Submission, submission_id)
        if submission is None:
            raise SubmissionNotFound("Submission not found.")
        if submission.status != SubmissionStatus.SUBMITTED:
            raise InvalidSubmissionState("Submission is not submitted.")
        if submission.scoring_status == ScoringStatus.COMPLETE:
            return ScoringRunResult(submission_id, ScoringStatus.COMPLETE, ran=False)

        observed = submission.scoring_status
        if not store.claim_submission(self._session, submission_id):
            logger.info(
                "score/claim not acquired",
                extra={"submission_id": submission_id, "observed_status": observed.value},
            )
            self._session.refresh(submission)
            return ScoringRunResult(submission_id, submission.scoring_status, ran=False)
        logger.info("score/claim acquired", extra={"submission_id": submission_id})

        try:
            tally = self._run(submission)
        except Exception as exc:
            self._session.rollback()
            store.mark_error(self._session, submission_id, str(exc) or "Scoring failed.")
            if isinstance(exc, ScoringError):
                logger.warning("score/run failed", extra={"submission_id": submission_id, "error": str(exc)})
            else:
                logger.exception("score/run crashed", extra={"submission_id": submission_id})
            raise

        status = ScoringStatus.ERROR if tally.errors else ScoringStatus.COMPLETE
        logger.info(
            "score/finished",
            extra={
                "submission_id": submission_id,
                "scoring_status": status.value,
                "attempted": tally.attempted,
                "scored": tally.scored,
                "errors": tally.errors,
            },
        )
        return ScoringRunResult(submission_id, status, ran=True, tally=tally)

    def _run(self, submission: Submission) -> ScoringTally:
        self._providers.ensure_configured()
        submission_id = submission.id
        questions = store.load_questions(self._session, submission)
        rubrics = store.load_rubrics(self._session, submission.assessment_id)
        responses = store.index_responses(self._session, submission_id)
        evidence = store.index_evidence_images(self._session, submission_id)

        tally = ScoringTally()
        for question in questions:
            outcome = self._score_question(
                submission_id,
                question,
                primary=responses.get((question.id, ResponseStage.PRIMARY)),
                followup=responses.get((question.id, ResponseStage.FOLLOWUP)),
                evidence=evidence.get(question.id),
                rubrics=rubrics,
            )
            tally.record(outcome)

        if tally.attempted == 0:
            raise NoRecordingsFound("No recordings found for this submission.")
        if tally.scored == 0:
            raise AllQuestionsFailed(tally.summary())

        # Terminal write: always the last write of the run.
        if tally.errors:
            store.mark_error(self._session, submission_id, tally.summary())
        else:
            store.mark_complete(self._session, submission_id)
        return tally

    def _score_question(
        self,
        submission_id: int,
        question: Question,
        *,
        primary: SubmissionResponse | None,
        followup: SubmissionResponse | None,
        evidence: EvidenceImage | None,
        rubrics: store.RubricPair,
    ) -> QuestionOutcome:
        if primary is None:
            return QuestionOutcome.skipped()
        log_extra = {"submission_id": submission_id, "question_id": question.id}

        try:
            primary_transcript = self._transcript_for(primary)
        except TOLERATED_ERRORS as exc:
            logger.warning("score/transcription failed", extra={**log_extra, "error": str(exc)})
            return QuestionOutcome.failed(str(exc) or "Transcription failed.")

        followup_transcript = None
        if question.expects_audio_followup and followup is not None:
            fetched = attempt(self._transcript_for, followup)
            if fetched.ok:
                followup_transcript = fetched.value
            else:
                # The follow-up only adds context; grade the primary answer alone.
                logger.info("score/followup transcription skipped", extra={**log_extra, "error": str(fetched.error)})

        transcript = build_scoring_transcript(
            primary_transcript,
            followup_transcript,
            (followup.ai_followup_question if followup else None) or primary.ai_followup_question,
        )
        if not transcript:
            return QuestionOutcome.failed(EMPTY_TRANSCRIPT_MESSAGE)

        analysis = None
        if question.expects_evidence_followup and evidence is not None:
            analysis = parse_evidence_analysis(evidence.ai_analysis_json)
        question_text = build_question_text(question.question_text, analysis)

        scorer = self._providers.scorer
        try:
            result = scorer.score(question_text, transcript, rubrics.reasoning, rubrics.evidence)
        except ProviderError as exc:
            logger.warning("score/scoring failed", extra={**log_extra, "provider": exc.provider, "error": str(exc)})
            return QuestionOutcome.failed(str(exc) or "Scoring failed.")

        reviewer = self._providers.reviewer
        if reviewer is not None:
            review = attempt(
                reviewer.score,
                question_text,
                transcript,
                rubrics.reasoning,
                rubrics.evidence,
                primary=result,
            )
            if review.ok:
                result = reconcile(result, review.value, primary_name=scorer.name, reviewer_name=reviewer.name)
            else:
                # Reviewer is advisory; the primary score stands.
                logger.warning("score/review failed", extra={**log_extra, "error": str(review.error)})

        store.upsert_question_scores(self._session, submission_id, question.id, result)
        return QuestionOutcome.scored()

    def _transcript_for(self, response: SubmissionResponse) -> str:
        """Return the cached transcript, transcribing and caching it on first use."""
        if response.transcript:
            return response.transcript

        bucket = response.storage_bucket or self._recordings_bucket
        blob = self._storage.get_object(bucket, response.storage_path)
        mime_type = response.mime_type or blob.content_type or DEFAULT_MIME_TYPE
        if mime_type == "application/octet-stream":
            mime_type = DEFAULT_MIME_TYPE

        result = self._providers.transcriber.transcribe(blob.data, mime_type)
        store.cache_transcript(self._session, response, result.text, result.duration_seconds)
        return result.text


def score_pending(scorer: SubmissionScorer, session: Session, limit: int) -> list[dict[str, object]]:
    """Score a batch of waiting submissions; one failure never stops the batch."""
    limit = max(1, min(10, limit))
    results: list[dict[str, object]] = []
    for submission_id in store.pending_submission_ids(session, limit):
        try:
            scorer.score(submission_id)
        except ScoringError as exc:
            results.append({"id": submission_id, "ok": False, "error": str(exc)})
            continue
        except Exception as exc:
            # Already recorded on the submission by the scorer.
            logger.exception("cron/score failed", extra={"submission_id": submission_id})
            results.append({"id": submission_id, "ok": False, "error": str(exc) or type(exc).__name__})
            continue
        results.append({"id": submission_id, "ok": True})
    return results


def build_submission_scorer(session: Session) -> SubmissionScorer:
    return SubmissionScorer(
        session,
        get_storage_provider(),
        resolve_providers(settings),
        recordings_bucket=settings.recordings_bucket,
    )


def score_submission(submission_id: int, *, session: Session, force: bool = False) -> ScoringRunResult:
    """Score one submission with providers resolved from settings; ``force`` re-scores from pending."""
    scorer = build_submission_scorer(session)
    if force:
        scorer.reset(submission_id)
    return scorer.score(submission_id)
