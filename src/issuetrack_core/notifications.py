"""In-app notifications.

Notifications are only rows in the ``notifications`` table. The ``notify_*``
helpers add rows to the session without committing, so they land in the same
transaction as the change that triggered them.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import or_, and_, update
from sqlalchemy.orm import Session, joinedload

from . import models
from .models import NotificationType

logger = logging.getLogger("issuetrack-core.notifications")

# Read notifications stay visible in the list for this long
READ_NOTIFICATION_RETENTION = timedelta(days=1)


class NotificationService:
    """Creates and queries notifications for one database session."""

    def __init__(self, db: Session):
        self.db = db

    def create_notification(
        self,
        notification_type: NotificationType,
        message: str,
        user_id: UUID,
        issue_id: Optional[UUID] = None,
    ) -> models.Notification:
        notification = models.Notification(
            type=notification_type,
            message=message,
            user_id=user_id,
            issue_id=issue_id,
        )
        self.db.add(notification)
        logger.debug(f"Queued {notification_type.value} notification for user {user_id}")
        return notification

    def notify_issue_assigned(self, issue_id: UUID, assigned_to_id: UUID, issue_title: str) -> models.Notification:
        return self.create_notification(
            NotificationType.ISSUE_ASSIGNED,
            f"You have been assigned to issue: {issue_title}",
            assigned_to_id,
            issue_id,
        )

    def notify_comment_added(
        self,
        issue_id: UUID,
        issue_title: str,
        comment_author_name: str,
        user_to_notify_id: UUID,
    ) -> models.Notification:
        return self.create_notification(
            NotificationType.COMMENT_ADDED,
            f"{comment_author_name} commented on issue: {issue_title}",
            user_to_notify_id,
            issue_id,
        )

    def notify_status_changed(
        self,
        issue_id: UUID,
        issue_title: str,
        new_status: models.IssueStatus,
        user_to_notify_id: UUID,
    ) -> models.Notification:
        status_name = getattr(new_status, "value", new_status)
        return self.create_notification(
            NotificationType.STATUS_CHANGED,
            f"Status changed to {status_name} for issue: {issue_title}",
            user_to_notify_id,
            issue_id,
        )

    def notify_issue_due_soon(
        self,
        issue_id: UUID,
        issue_title: str,
        due_date: datetime,
        user_to_notify_id: UUID,
        now: Optional[datetime] = None,
    ) -> models.Notification:
        now = now or datetime.utcnow()
        days_until_due = math.ceil((due_date - now).total_seconds() / 86400)
        return self.create_notification(
            NotificationType.ISSUE_DUE_SOON,
            f"Issue due in {days_until_due} days: {issue_title}",
            user_to_notify_id,
            issue_id,
        )

    def notify_issue_participants(
        self,
        issue: models.Issue,
        actor_id: Optional[UUID],
        notify,
    ) -> int:
        """
        Call ``notify(user_id)`` for the assignee and the reporter of ``issue``.

        The acting user is never notified about their own change, and a user who
        is both reporter and assignee is notified once.

        Returns:
            Number of notifications created
        """
        recipients = []
        for user_id in (issue.assigned_to_id, issue.reported_by_id):
            if user_id is None or user_id in recipients:
                continue
            if actor_id is not None and str(user_id) == str(actor_id):
                continue
            recipients.append(user_id)

        for user_id in recipients:
            notify(user_id)
        return len(recipients)

    def get_user_notifications(
        self,
        user_id: UUID,
        page: int = 1,
        page_size: int = 20,
        now: Optional[datetime] = None,
    ) -> tuple[list[models.Notification], int]:
        """
        Get notifications for a user: every unread one plus those read recently.

        Args:
            user_id: Recipient user UUID
            page: 1-based page number
            page_size: Page size
            now: Reference time (defaults to utcnow)

        Returns:
            Tuple of (notifications, total count), newest first
        """
        cutoff = (now or datetime.utcnow()) - READ_NOTIFICATION_RETENTION
        query = self.db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            or_(
                models.Notification.read.is_(False),
                and_(
                    models.Notification.read.is_(True),
                    models.Notification.read_at >= cutoff,
                ),
            ),
        )

        total = query.count()
        notifications = (
            query.options(joinedload(models.Notification.issue))
            .order_by(models.Notification.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return notifications, total

    def get_unread_count(self, user_id: UUID) -> int:
        return (
            self.db.query(models.Notification)
            .filter(models.Notification.user_id == user_id, models.Notification.read.is_(False))
            .count()
        )

    def mark_as_read(self, notification_id: UUID, user_id: UUID) -> bool:
        """
        Mark one notification read. Only the recipient can do this.

        Returns:
            True if a notification owned by ``user_id`` was updated
        """
        result = self.db.execute(
            update(models.Notification)
            .where(
                models.Notification.id == notification_id,
                models.Notification.user_id == user_id,
            )
            .values(read=True, read_at=datetime.utcnow())
        )
        self.db.commit()
        return result.rowcount > 0

    def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark all unread notifications of a user read. Returns how many changed."""
        result = self.db.execute(
            update(models.Notification)
            .where(
                models.Notification.user_id == user_id,
                models.Notification.read.is_(False),
            )
            .values(read=True, read_at=datetime.utcnow())
        )
        self.db.commit()
        logger.info(f"Marked {result.rowcount} notifications read for user {user_id}")
        return result.rowcount
