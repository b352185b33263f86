"""
Cron trigger endpoints.

Each endpoint runs one monitor pass and reports how many subjects were
processed and how many notifications were created. The bearer secret is
checked before anything else runs.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from api.dependencies import get_runner, verify_cron_secret
from monitoring.runner import MonitorRunner, Check, ALL_CHECKS
from schemas.api import TriggerResponse, TriggerErrorResponse
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/cron",
    tags=["Cron"],
    dependencies=[Depends(verify_cron_secret)],
    responses={401: {"model": TriggerErrorResponse}, 500: {"model": TriggerErrorResponse}}
)


async def _trigger(request: Request, runner: MonitorRunner, checks, label: str):
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    logger.info(f"[{request_id}] Cron trigger: {label}")

    try:
        summary = await runner.run_once(trigger="cron", checks=checks)
    except Exception:
        logger.exception(f"[{request_id}] Cron trigger {label} failed")
        return JSONResponse(
            status_code=500,
            content=TriggerErrorResponse(error="monitor failed").model_dump()
        )

    return TriggerResponse(processed=summary.processed_count, notified=summary.notified_count)


@router.get("/monitor", response_model=TriggerResponse)
async def run_monitor(request: Request, runner: MonitorRunner = Depends(get_runner)):
    """Commit watch and journal reminders for every subject"""
    return await _trigger(request, runner, ALL_CHECKS, "monitor")


@router.get("/commit-monitor", response_model=TriggerResponse)
async def run_commit_monitor(request: Request, runner: MonitorRunner = Depends(get_runner)):
    return await _trigger(request, runner, (Check.EVENTS,), "commit-monitor")


@router.get("/journey-reminders", response_model=TriggerResponse)
async def run_journey_reminders(request: Request, runner: MonitorRunner = Depends(get_runner)):
    return await _trigger(request, runner, (Check.STALENESS,), "journey-reminders")
