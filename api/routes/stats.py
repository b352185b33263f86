"""
Monitor run statistics endpoint
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from api.dependencies import get_db
from schemas.api import RunStatsResponse, MonitorRunSummary
from models.monitor_run import MonitorRun
from models.base import RunStatus, utcnow
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/stats", tags=["Statistics"])


@router.get("/runs", response_model=RunStatsResponse)
async def get_run_stats(
    request: Request,
    limit: int = Query(10, ge=1, le=100, description="Number of recent runs to return"),
    db: AsyncSession = Depends(get_db)
):
    """
    Get monitor run history.

    Returns:
    - Total number of recorded runs
    - Most recent successful and failed run
    - Recent run summaries, newest first
    """
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    logger.info(f"[{request_id}] GET /stats/runs")

    total_runs_result = await db.execute(
        select(func.count()).select_from(MonitorRun)
    )
    total_runs = total_runs_result.scalar() or 0

    last_success_result = await db.execute(
        select(func.max(MonitorRun.completed_at)).where(MonitorRun.status == RunStatus.SUCCESS)
    )
    last_failure_result = await db.execute(
        select(func.max(MonitorRun.completed_at)).where(
            MonitorRun.status.in_([RunStatus.FAILED, RunStatus.PARTIAL])
        )
    )

    recent_runs_result = await db.execute(
        select(MonitorRun)
        .order_by(MonitorRun.started_at.desc())
        .limit(limit)
    )
    recent_runs = [MonitorRunSummary.model_validate(run) for run in recent_runs_result.scalars().all()]

    return RunStatsResponse(
        timestamp=utcnow(),
        total_runs=total_runs,
        last_success=last_success_result.scalar(),
        last_failure=last_failure_result.scalar(),
        recent_runs=recent_runs
    )
