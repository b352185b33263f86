"""
Notification inbox endpoints: list, mark read, and a live SSE stream
"""

import asyncio
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from api.dependencies import get_db, get_broker
from api.sse import format_sse_event, KEEPALIVE
from models.notification import Notification
from monitoring.broker import NotificationBroker
from schemas.api import NotificationListResponse, NotificationResponse, MarkReadResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["Notifications"])

DEFAULT_LIMIT = 50
HEARTBEAT_SECONDS = 15.0


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    user_id: str = Query(..., description="Recipient"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=200, description="Maximum notifications to return"),
    db: AsyncSession = Depends(get_db)
):
    """Newest notifications first, plus the recipient's unread count"""
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
    )
    items = result.scalars().all()

    unread_result = await db.execute(
        select(func.count()).select_from(Notification).where(
            Notification.user_id == user_id,
            Notification.read.is_(False)
        )
    )

    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        unread_count=unread_result.scalar() or 0
    )


@router.post("/read-all", response_model=MarkReadResponse)
async def mark_all_read(
    user_id: str = Query(..., description="Recipient"),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
    )
    await db.commit()
    logger.info(f"Marked {result.rowcount} notifications read for user {user_id}")
    return MarkReadResponse(updated=result.rowcount or 0)


@router.post("/{notification_id}/read", response_model=MarkReadResponse)
async def mark_read(notification_id: str, db: AsyncSession = Depends(get_db)):
    notification = await db.get(Notification, notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")

    updated = 0
    if not notification.read:
        notification.read = True
        await db.commit()
        updated = 1
    return MarkReadResponse(updated=updated)


@router.get("/stream")
async def stream_notifications(
    request: Request,
    user_id: str = Query(..., description="Recipient"),
    broker: NotificationBroker = Depends(get_broker)
):
    """
    Server-sent events for notifications created while the client listens.

    Nothing is replayed; clients load the backlog with GET /notifications.
    """
    subscription = broker.subscribe(user_id)

    async def event_generator():
        seq = 0
        try:
            while True:
                if await request.is_disconnected():
                    break
                try:
                    payload = await asyncio.wait_for(subscription.get(), timeout=HEARTBEAT_SECONDS)
                except asyncio.TimeoutError:
                    yield KEEPALIVE
                    continue
                seq += 1
                yield format_sse_event(seq, "notification", payload)
        finally:
            subscription.close()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"}
    )
