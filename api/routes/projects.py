"""
On-demand checks for a single project.

Errors are not absorbed here: they propagate to the exception handlers
registered in api.main, which map them to HTTP status codes.
"""

import asyncio
from fastapi import APIRouter, Depends, HTTPException, Request
from api.dependencies import get_runner
from monitoring.runner import MonitorRunner, CheckStatus
from schemas.api import (
    CommitCheckResponse,
    CommitInfo,
    StaleCheckRequest,
    StaleCheckResponse,
    ErrorResponse
)
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/projects",
    tags=["Projects"],
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}}
)


@router.post("/{project_id}/commits/check", response_model=CommitCheckResponse)
async def check_commits(
    project_id: str,
    request: Request,
    runner: MonitorRunner = Depends(get_runner)
):
    """
    Look for new commits on the project's repository right now.

    Notifies the owner about every commit newer than the stored checkpoint and
    advances the checkpoint, exactly like a cron pass would.
    """
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    logger.info(f"[{request_id}] POST /projects/{project_id}/commits/check")

    try:
        outcome = await runner.check_subject_events(project_id)
    except asyncio.TimeoutError:
        raise HTTPException(status_code=504, detail="Commit check timed out")

    if outcome.events == CheckStatus.DISABLED:
        return CommitCheckResponse(new_commits=0, message="Commit watcher disabled")

    commits = [
        CommitInfo(sha=e.id, message=e.message, author=e.author_name, url=e.url)
        for e in outcome.new_events
    ]
    message = f"Found {len(commits)} new commits" if commits else "No new commits"
    return CommitCheckResponse(new_commits=len(commits), commits=commits, message=message)


@router.post("/{project_id}/journey/check-stale", response_model=StaleCheckResponse)
async def check_stale_journey(
    project_id: str,
    payload: StaleCheckRequest,
    request: Request,
    runner: MonitorRunner = Depends(get_runner)
):
    """
    Check whether the project's journal has gone quiet.

    Only the owner (payload.user_id) gets a reminder; anyone else, or an
    anonymous caller, just sees the verdict.
    """
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    logger.info(f"[{request_id}] POST /projects/{project_id}/journey/check-stale")

    try:
        outcome = await runner.check_subject_staleness(
            project_id,
            requested_by=payload.user_id,
            remind=bool(payload.user_id)
        )
    except asyncio.TimeoutError:
        raise HTTPException(status_code=504, detail="Staleness check timed out")

    if outcome.staleness == CheckStatus.DISABLED:
        message = "Project is not watched"
    elif not outcome.stale:
        message = "Journey is up to date"
    elif outcome.reminded:
        message = "Reminder sent"
    elif payload.user_id != outcome.owner_id:
        message = "Journey is stale; only the owner is reminded"
    else:
        message = "Journey is stale; reminder already sent"

    return StaleCheckResponse(
        stale=bool(outcome.stale),
        notified=outcome.reminded,
        last_entry_at=outcome.last_entry_at,
        message=message
    )
