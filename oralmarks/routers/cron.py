"""Scheduled batch scoring endpoint."""

from __future__ import annotations

import logging
import os

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlmodel import Session

from oralmarks.db import get_session
from oralmarks.pipeline.score_submission import SubmissionScorer, score_pending
from oralmarks.routers.submissions import get_submission_scorer
from oralmarks.schemas import CronScoreItem, CronScoreResult
from oralmarks.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


def _cron_secret() -> str:
    return os.getenv("CRON_SECRET", "").strip() or (settings.cron_secret or "").strip()


def require_cron_secret(request: Request) -> None:
    secret = _cron_secret()
    if not secret:
        return
    if request.headers.get("Authorization", "") != f"Bearer {secret}":
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/score-pending", response_model=CronScoreResult, dependencies=[Depends(require_cron_secret)])
def score_pending_submissions(
    limit: int | None = Query(default=None),
    scorer: SubmissionScorer = Depends(get_submission_scorer),
    session: Session = Depends(get_session),
) -> CronScoreResult:
    batch_limit = limit if limit is not None else settings.cron_batch_limit
    results = score_pending(scorer, session, batch_limit)
    logger.info(
        "cron/score-pending",
        extra={"processed": len(results), "failed": sum(1 for item in results if not item["ok"])},
    )
    return CronScoreResult(ok=True, processed=len(results), results=[CronScoreItem(**item) for item in results])
