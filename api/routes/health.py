"""
Health check endpoint with database and checkpoint status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, text
from api.dependencies import get_db
from schemas.api import HealthCheckResponse, CheckpointInfo
from models.checkpoint import SubjectCheckpoint
from models.base import CheckpointStatus, utcnow
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


def overall_status(db_connected: bool, total: int, failed: int) -> str:
    if not db_connected:
        return "unhealthy"
    if failed and failed == total:
        return "unhealthy"
    if failed:
        return "degraded"
    return "healthy"


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Checkpoint status for every watched subject
    """

    # Check database connectivity
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    checkpoints = []
    successful = 0
    failed = 0

    if db_connected:
        try:
            result = await db.execute(select(SubjectCheckpoint).order_by(SubjectCheckpoint.subject_id))
            for checkpoint in result.scalars().all():
                if checkpoint.status == CheckpointStatus.FAILED:
                    failed += 1
                elif checkpoint.status == CheckpointStatus.SUCCESS:
                    successful += 1
                checkpoints.append(CheckpointInfo.model_validate(checkpoint))
        except Exception as e:
            logger.error(f"Failed to fetch checkpoints: {str(e)}")

    return HealthCheckResponse(
        status=overall_status(db_connected, len(checkpoints), failed),
        timestamp=utcnow(),
        database_connected=db_connected,
        checkpoints=checkpoints,
        total_subjects=len(checkpoints),
        successful_subjects=successful,
        failed_subjects=failed
    )
