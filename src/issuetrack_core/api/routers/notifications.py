"""Notifications API router. Every endpoint acts on the caller's own notifications."""
import logging
from math import ceil
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session as DbSession

from ...authorization import Session
from ...notifications import NotificationService
from ...schemas import MarkAllReadResponse, NotificationListResponse, NotificationResponse
from ..dependencies import get_db, not_found, require_session

logger = logging.getLogger("issuetrack-core.notifications")

router = APIRouter(tags=["notifications"])


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Unread notifications plus those read in the last day, newest first."""
    service = NotificationService(db)
    notifications, total = service.get_user_notifications(session.user.id, page, page_size)

    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        unread_count=service.get_unread_count(session.user.id),
        page=page,
        page_size=page_size,
        total_pages=ceil(total / page_size) if total > 0 else 0,
    )


@router.patch("/{notification_id}/read", status_code=204)
async def mark_notification_read(
    notification_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Mark one of the caller's notifications read."""
    if not NotificationService(db).mark_as_read(notification_id, session.user.id):
        raise not_found("Notification", notification_id)
    return None


@router.post("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Mark all of the caller's notifications read."""
    updated = NotificationService(db).mark_all_as_read(session.user.id)
    return MarkAllReadResponse(updated=updated)
