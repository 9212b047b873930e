"""CRUD operations for users, clients, issues, comments and files."""
import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import or_, and_, case, update
from sqlalchemy.orm import Session, joinedload

from . import models
from .date_utils import get_default_due_date
from .errors import Conflict
from .notifications import NotificationService
from .state_machine import ACTIVE_STATUSES, STATUS_SORT_ORDER

logger = logging.getLogger("issuetrack-core.crud")

DUE_SOON_WINDOW = timedelta(days=10)
DOMAIN_EXPIRY_WINDOW = timedelta(days=30)


def _status_sort_expression():
    """Build SQLAlchemy CASE expression for status-based sorting.

    Active work sorts first, closed issues last.
    """
    return case(
        *[(models.Issue.status == status, order)
          for status, order in STATUS_SORT_ORDER.items()],
        else_=99
    )


def _value(v) -> Optional[str]:
    if v is None:
        return None
    if isinstance(v, datetime):
        return v.isoformat()
    return str(getattr(v, "value", v))


# ============================================================================
# User CRUD Operations
# ============================================================================

def get_user(db: Session, user_id: UUID) -> Optional[models.User]:
    """
    Get a user by ID.

    Args:
        db: Database session
        user_id: User UUID

    Returns:
        User instance or None if not found
    """
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email.lower()).first()


def list_users(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    role: Optional[models.Role] = None,
) -> tuple[list[models.User], int]:
    """
    List users with pagination.

    Args:
        db: Database session
        skip: Number of records to skip
        limit: Maximum number of records to return
        role: Optional role filter

    Returns:
        Tuple of (users list, total count)
    """
    query = db.query(models.User)
    if role:
        query = query.filter(models.User.role == role)

    total = query.count()
    users = query.order_by(models.User.created_at.desc()).offset(skip).limit(limit).all()
    return users, total


def create_user(
    db: Session,
    email: str,
    name: Optional[str] = None,
    role: models.Role = models.Role.USER,
    image: Optional[str] = None,
) -> models.User:
    """
    Create a new user.

    Raises:
        Conflict: If a user with the same email already exists
    """
    if get_user_by_email(db, email):
        raise Conflict(f"A user with email {email} already exists")

    db_user = models.User(email=email.lower(), name=name, role=role, image=image)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info(f"Created user {db_user.id} ({db_user.email}, {role.value})")
    return db_user


def update_user(db: Session, user_id: UUID, **fields) -> Optional[models.User]:
    """
    Update a user's profile fields.

    Fields whose value is None are left unchanged.

    Returns:
        Updated user or None if not found

    Raises:
        Conflict: If the new email belongs to another user
    """
    db_user = get_user(db, user_id)
    if not db_user:
        return None

    email = fields.get("email")
    if email is not None and email.lower() != db_user.email:
        if get_user_by_email(db, email):
            raise Conflict(f"A user with email {email} already exists")
        fields["email"] = email.lower()

    for field_name, value in fields.items():
        if value is not None:
            setattr(db_user, field_name, value)

    db.commit()
    db.refresh(db_user)
    logger.debug(f"Updated user {user_id}")
    return db_user


def delete_user(db: Session, user_id: UUID) -> bool:
    """
    Delete a user.

    Returns:
        True if deleted, False if not found

    Raises:
        Conflict: If the user still reports issues, comments or files
    """
    db_user = get_user(db, user_id)
    if not db_user:
        return False

    has_content = (
        db.query(models.Issue).filter(models.Issue.reported_by_id == user_id).first()
        or db.query(models.Comment).filter(models.Comment.created_by_id == user_id).first()
        or db.query(models.File).filter(models.File.uploaded_by_id == user_id).first()
    )
    if has_content:
        raise Conflict("User has reported issues, comments or files and cannot be deleted")

    db.delete(db_user)
    db.commit()
    logger.info(f"Deleted user {user_id}")
    return True


# ============================================================================
# Client CRUD Operations
# ============================================================================

def get_client(db: Session, client_id: UUID) -> Optional[models.Client]:
    return (
        db.query(models.Client)
        .options(joinedload(models.Client.manager))
        .filter(models.Client.id == client_id)
        .first()
    )


def list_clients(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    status: Optional[models.ClientStatus] = None,
    manager_id: Optional[UUID] = None,
    search: Optional[str] = None,
) -> tuple[list[models.Client], int]:
    """
    List clients with pagination.

    Args:
        db: Database session
        skip: Number of records to skip
        limit: Maximum number of records to return
        status: Optional status filter
        manager_id: If provided, only clients managed by this user
        search: Case-insensitive match on name or email

    Returns:
        Tuple of (clients list, total count)
    """
    query = db.query(models.Client)

    if status:
        query = query.filter(models.Client.status == status)
    if manager_id:
        query = query.filter(models.Client.manager_id == manager_id)
    if search:
        query = query.filter(or_(
            models.Client.name.ilike(f"%{search}%"),
            models.Client.email.ilike(f"%{search}%"),
        ))

    total = query.count()
    clients = (
        query.options(joinedload(models.Client.manager))
        .order_by(models.Client.name.asc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return clients, total


def create_client(db: Session, **fields) -> models.Client:
    """
    Create a new client.

    Args:
        db: Database session
        **fields: Column values (name is required)

    Returns:
        Created client instance
    """
    db_client = models.Client(**fields)
    db.add(db_client)
    db.commit()
    db.refresh(db_client)
    logger.info(f"Created client {db_client.id} ({db_client.name})")
    return db_client


def update_client(db: Session, client_id: UUID, **fields) -> Optional[models.Client]:
    """
    Update a client. Only fields present in ``fields`` are written.

    Returns:
        Updated client or None if not found
    """
    db_client = get_client(db, client_id)
    if not db_client:
        return None

    for field_name, value in fields.items():
        setattr(db_client, field_name, value)

    db.commit()
    db.refresh(db_client)
    logger.debug(f"Updated client {client_id}")
    return db_client


def deactivate_client(db: Session, client_id: UUID) -> Optional[models.Client]:
    """
    Soft delete a client by moving it to INACTIVE.

    Returns:
        The client or None if not found
    """
    db_client = get_client(db, client_id)
    if not db_client:
        return None

    db_client.status = models.ClientStatus.INACTIVE
    db.commit()
    db.refresh(db_client)
    logger.info(f"Deactivated client {client_id}")
    return db_client


# ============================================================================
# Domain Name CRUD Operations
# ============================================================================

def list_domain_names(db: Session, client_id: UUID) -> list[models.DomainName]:
    return (
        db.query(models.DomainName)
        .filter(models.DomainName.client_id == client_id)
        .order_by(models.DomainName.name.asc())
        .all()
    )


def get_domain_name(db: Session, client_id: UUID, domain_name_id: UUID) -> Optional[models.DomainName]:
    return db.query(models.DomainName).filter(
        models.DomainName.id == domain_name_id,
        models.DomainName.client_id == client_id,
    ).first()


def create_domain_name(db: Session, client_id: UUID, **fields) -> models.DomainName:
    db_domain = models.DomainName(client_id=client_id, **fields)
    db.add(db_domain)
    db.commit()
    db.refresh(db_domain)
    logger.info(f"Added domain {db_domain.name} to client {client_id}")
    return db_domain


def update_domain_name(
    db: Session,
    client_id: UUID,
    domain_name_id: UUID,
    **fields,
) -> Optional[models.DomainName]:
    db_domain = get_domain_name(db, client_id, domain_name_id)
    if not db_domain:
        return None

    for field_name, value in fields.items():
        setattr(db_domain, field_name, value)

    db.commit()
    db.refresh(db_domain)
    return db_domain


def delete_domain_name(db: Session, client_id: UUID, domain_name_id: UUID) -> bool:
    db_domain = get_domain_name(db, client_id, domain_name_id)
    if not db_domain:
        return False

    db.delete(db_domain)
    db.commit()
    logger.info(f"Deleted domain {domain_name_id} from client {client_id}")
    return True


def get_expiring_domains(
    db: Session,
    now: Optional[datetime] = None,
    window: timedelta = DOMAIN_EXPIRY_WINDOW,
    manager_id: Optional[UUID] = None,
) -> list[models.DomainName]:
    """
    Get ACTIVE domains expiring between now and ``now + window``.

    Args:
        db: Database session
        now: Reference time (defaults to utcnow)
        window: How far ahead to look
        manager_id: If provided, only domains of clients managed by this user

    Returns:
        Domains ordered by expiration date, soonest first
    """
    now = now or datetime.utcnow()
    query = (
        db.query(models.DomainName)
        .join(models.Client)
        .options(joinedload(models.DomainName.client))
        .filter(
            models.DomainName.domain_status == models.DomainStatus.ACTIVE,
            models.DomainName.domain_expiration.isnot(None),
            models.DomainName.domain_expiration >= now,
            models.DomainName.domain_expiration <= now + window,
        )
    )
    if manager_id:
        query = query.filter(models.Client.manager_id == manager_id)

    return query.order_by(models.DomainName.domain_expiration.asc()).all()


# ============================================================================
# Issue CRUD Operations
# ============================================================================

def create_issue_history(
    db: Session,
    issue: models.Issue,
    change_type: str,
    user_id: Optional[UUID],
    field_name: Optional[str] = None,
    old_value=None,
    new_value=None,
) -> models.IssueHistory:
    """Add a history entry for an issue change. The caller commits."""
    history = models.IssueHistory(
        issue_id=issue.id,
        change_type=change_type,
        field_name=field_name,
        old_value=_value(old_value),
        new_value=_value(new_value),
        changed_by_user_id=user_id,
    )
    db.add(history)
    return history


def get_issue(db: Session, issue_id: UUID) -> Optional[models.Issue]:
    """
    Get an issue by ID, with reporter and assignee loaded.

    Args:
        db: Database session
        issue_id: Issue UUID

    Returns:
        Issue instance or None if not found
    """
    return (
        db.query(models.Issue)
        .options(
            joinedload(models.Issue.reported_by),
            joinedload(models.Issue.assigned_to),
        )
        .filter(models.Issue.id == issue_id)
        .first()
    )


def list_issues(
    db: Session,
    skip: int = 0,
    limit: int = 10,
    status: Optional[models.IssueStatus] = None,
    priority: Optional[models.IssuePriority] = None,
    assigned_to_id: Optional[UUID] = None,
    reported_by_id: Optional[UUID] = None,
    client_id: Optional[UUID] = None,
    visible_to_user_id: Optional[UUID] = None,
    sort_by_status: bool = False,
) -> tuple[list[models.Issue], int]:
    """
    List issues with filtering and pagination.

    Args:
        db: Database session
        skip: Number of records to skip
        limit: Maximum number of records to return
        status: Optional status filter
        priority: Optional priority filter
        assigned_to_id: Optional assignee filter
        reported_by_id: Optional reporter filter
        client_id: Optional client filter
        visible_to_user_id: If provided, only issues this user reported or is assigned to
        sort_by_status: Order by workflow status before recency

    Returns:
        Tuple of (issues list, total count)
    """
    query = db.query(models.Issue)

    if status:
        query = query.filter(models.Issue.status == status)
    if priority:
        query = query.filter(models.Issue.priority == priority)
    if assigned_to_id:
        query = query.filter(models.Issue.assigned_to_id == assigned_to_id)
    if reported_by_id:
        query = query.filter(models.Issue.reported_by_id == reported_by_id)
    if client_id:
        query = query.filter(models.Issue.client_id == client_id)

    if visible_to_user_id:
        query = query.filter(or_(
            models.Issue.reported_by_id == visible_to_user_id,
            models.Issue.assigned_to_id == visible_to_user_id,
        ))

    total = query.count()

    if sort_by_status:
        query = query.order_by(_status_sort_expression(), models.Issue.updated_at.desc())
    else:
        query = query.order_by(models.Issue.updated_at.desc())

    issues = (
        query.options(
            joinedload(models.Issue.reported_by),
            joinedload(models.Issue.assigned_to),
        )
        .offset(skip)
        .limit(limit)
        .all()
    )
    return issues, total


def create_issue(
    db: Session,
    reported_by_id: UUID,
    title: str,
    due_date: Optional[datetime] = None,
    assigned_to_id: Optional[UUID] = None,
    **fields,
) -> models.Issue:
    """
    Create a new issue in status NEW.

    Args:
        db: Database session
        reported_by_id: Reporting user (the caller)
        title: Issue title
        due_date: Due date, defaults to ten business days from now
        assigned_to_id: Optional initial assignee (notified)
        **fields: Other issue columns

    Returns:
        Created issue instance
    """
    db_issue = models.Issue(
        title=title,
        status=models.IssueStatus.NEW,
        reported_by_id=reported_by_id,
        assigned_to_id=assigned_to_id,
        due_date=due_date or get_default_due_date(),
        **fields,
    )
    db.add(db_issue)
    db.flush()

    create_issue_history(db, db_issue, "created", reported_by_id)

    if assigned_to_id and str(assigned_to_id) != str(reported_by_id):
        NotificationService(db).notify_issue_assigned(db_issue.id, assigned_to_id, title)

    db.commit()
    db.refresh(db_issue)
    logger.info(f"Created issue {db_issue.id} reported by {reported_by_id}")
    return db_issue


def update_issue(
    db: Session,
    issue: models.Issue,
    user_id: Optional[UUID],
    **fields,
) -> models.Issue:
    """
    Update plain issue fields and record due date changes in history.

    Status and assignment have dedicated operations and are not accepted here.

    Returns:
        Updated issue
    """
    for field_name, value in fields.items():
        old_value = getattr(issue, field_name)
        if old_value == value:
            continue
        if field_name == "due_date":
            create_issue_history(db, issue, "due_date_changed", user_id, "due_date", old_value, value)
        setattr(issue, field_name, value)

    db.commit()
    db.refresh(issue)
    logger.debug(f"Updated issue {issue.id}")
    return issue


def update_issue_status(
    db: Session,
    issue: models.Issue,
    expected_status: models.IssueStatus,
    new_status: models.IssueStatus,
    user_id: Optional[UUID],
) -> models.Issue:
    """
    Persist a status change that has already been validated against ``expected_status``.

    The write is a conditional UPDATE that only matches while the stored status
    still equals ``expected_status``. History and notifications for assignee and
    reporter (never the acting user) are written in the same transaction.

    Args:
        db: Database session
        issue: The issue being changed
        expected_status: Status the transition was validated against
        new_status: Target status
        user_id: Acting user

    Returns:
        Updated issue

    Raises:
        Conflict: If the status changed since it was read
    """
    if expected_status == new_status:
        return issue

    result = db.execute(
        update(models.Issue)
        .where(
            models.Issue.id == issue.id,
            models.Issue.status == expected_status,
        )
        .values(status=new_status, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        logger.warning(
            f"Status of issue {issue.id} changed concurrently; "
            f"expected {expected_status.value}, refusing {new_status.value}"
        )
        raise Conflict(
            f"Issue status changed since it was read (expected {expected_status.value}). "
            "Reload the issue and try again."
        )

    create_issue_history(db, issue, "status_changed", user_id, "status", expected_status, new_status)

    notifications = NotificationService(db)
    notifications.notify_issue_participants(
        issue,
        user_id,
        lambda recipient_id: notifications.notify_status_changed(issue.id, issue.title, new_status, recipient_id),
    )

    db.commit()
    db.refresh(issue)
    logger.info(f"Issue {issue.id} transitioned: {expected_status.value} -> {new_status.value}")
    return issue


def assign_issue(
    db: Session,
    issue: models.Issue,
    assigned_to_id: Optional[UUID],
    user_id: Optional[UUID],
) -> models.Issue:
    """
    Assign an issue to a user, or clear the assignee with None.

    The new assignee is notified unless they assigned themselves.

    Returns:
        Updated issue
    """
    old_assignee = issue.assigned_to_id
    if old_assignee == assigned_to_id:
        return issue

    issue.assigned_to_id = assigned_to_id
    change_type = "assigned" if assigned_to_id else "unassigned"
    create_issue_history(db, issue, change_type, user_id, "assigned_to_id", old_assignee, assigned_to_id)

    if assigned_to_id and str(assigned_to_id) != str(user_id):
        NotificationService(db).notify_issue_assigned(issue.id, assigned_to_id, issue.title)

    db.commit()
    db.refresh(issue)
    logger.info(f"Assigned issue {issue.id} to {assigned_to_id}")
    return issue


def delete_issue(db: Session, issue: models.Issue) -> None:
    """Delete an issue with its comments, files, notifications and history."""
    issue_id = issue.id
    db.delete(issue)
    db.commit()
    logger.info(f"Deleted issue {issue_id}")


def get_issue_history(db: Session, issue_id: UUID, limit: int = 50) -> list[models.IssueHistory]:
    """
    Get history for an issue, newest first.

    Args:
        db: Database session
        issue_id: Issue UUID
        limit: Maximum number of entries to return

    Returns:
        List of IssueHistory entries
    """
    return db.query(models.IssueHistory).options(
        joinedload(models.IssueHistory.changed_by_user)
    ).filter(
        models.IssueHistory.issue_id == issue_id
    ).order_by(
        models.IssueHistory.changed_at.desc()
    ).limit(limit).all()


def _due_soon_query(db: Session, now: datetime, window: timedelta):
    """Active issues due after ``now`` and no later than ``now + window``."""
    return db.query(models.Issue).filter(
        models.Issue.status.in_(ACTIVE_STATUSES),
        models.Issue.due_date.isnot(None),
        models.Issue.due_date > now,
        models.Issue.due_date <= now + window,
    )


def list_due_soon_issues(
    db: Session,
    skip: int = 0,
    limit: int = 20,
    visible_to_user_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
    window: timedelta = DUE_SOON_WINDOW,
) -> tuple[list[models.Issue], int]:
    """
    List active issues due within ``window``, soonest first.

    Args:
        db: Database session
        skip: Number of records to skip
        limit: Maximum number of records to return
        visible_to_user_id: If provided, only issues this user reported or is assigned to
        now: Reference time (defaults to utcnow)
        window: How far ahead to look

    Returns:
        Tuple of (issues list, total count)
    """
    query = _due_soon_query(db, now or datetime.utcnow(), window)
    if visible_to_user_id:
        query = query.filter(or_(
            models.Issue.reported_by_id == visible_to_user_id,
            models.Issue.assigned_to_id == visible_to_user_id,
        ))

    total = query.count()
    issues = query.order_by(models.Issue.due_date.asc()).offset(skip).limit(limit).all()
    return issues, total


def get_due_soon_issues(
    db: Session,
    now: Optional[datetime] = None,
    window: timedelta = DUE_SOON_WINDOW,
) -> list[models.Issue]:
    """
    Get active issues due within ``window`` that were not reminded about today.

    Args:
        db: Database session
        now: Reference time (defaults to utcnow)
        window: How far ahead to look

    Returns:
        Issues ordered by due date
    """
    now = now or datetime.utcnow()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

    already_reminded = models.Issue.notifications.any(and_(
        models.Notification.type == models.NotificationType.ISSUE_DUE_SOON,
        models.Notification.created_at >= start_of_day,
    ))

    return (
        _due_soon_query(db, now, window)
        .filter(~already_reminded)
        .order_by(models.Issue.due_date.asc())
        .all()
    )


def send_due_soon_reminders(db: Session, now: Optional[datetime] = None) -> tuple[int, int]:
    """
    Notify assignee and reporter of every issue returned by ``get_due_soon_issues``.

    Returns:
        Tuple of (issues found, notifications created)
    """
    now = now or datetime.utcnow()
    issues = get_due_soon_issues(db, now)
    notifications = NotificationService(db)

    sent = 0
    for issue in issues:
        sent += notifications.notify_issue_participants(
            issue,
            None,
            lambda recipient_id, issue=issue: notifications.notify_issue_due_soon(
                issue.id, issue.title, issue.due_date, recipient_id, now
            ),
        )

    db.commit()
    logger.info(f"Sent {sent} due-soon reminders for {len(issues)} issues")
    return len(issues), sent


# ============================================================================
# Comment CRUD Operations
# ============================================================================

def list_comments(db: Session, issue_id: UUID) -> list[models.Comment]:
    return (
        db.query(models.Comment)
        .options(joinedload(models.Comment.created_by))
        .filter(models.Comment.issue_id == issue_id)
        .order_by(models.Comment.created_at.asc())
        .all()
    )


def get_comment(db: Session, comment_id: UUID) -> Optional[models.Comment]:
    return db.query(models.Comment).filter(models.Comment.id == comment_id).first()


def create_comment(
    db: Session,
    issue: models.Issue,
    author: models.User,
    text: str,
) -> models.Comment:
    """
    Add a comment to an issue and notify its reporter and assignee.

    Args:
        db: Database session
        issue: Issue being commented on
        author: Comment author
        text: Comment text

    Returns:
        Created comment
    """
    db_comment = models.Comment(text=text, issue_id=issue.id, created_by_id=author.id)
    db.add(db_comment)

    notifications = NotificationService(db)
    author_name = author.name or author.email
    notifications.notify_issue_participants(
        issue,
        author.id,
        lambda recipient_id: notifications.notify_comment_added(issue.id, issue.title, author_name, recipient_id),
    )

    db.commit()
    db.refresh(db_comment)
    logger.info(f"User {author.id} commented on issue {issue.id}")
    return db_comment


def delete_comment(db: Session, comment: models.Comment) -> None:
    comment_id = comment.id
    db.delete(comment)
    db.commit()
    logger.info(f"Deleted comment {comment_id}")


# ============================================================================
# File CRUD Operations
# ============================================================================

def create_file(db: Session, **fields) -> models.File:
    db_file = models.File(**fields)
    db.add(db_file)
    db.commit()
    db.refresh(db_file)
    logger.info(f"Recorded file {db_file.id} ({db_file.original_name})")
    return db_file


def get_file(db: Session, file_id: UUID) -> Optional[models.File]:
    return db.query(models.File).filter(models.File.id == file_id).first()


def list_issue_files(db: Session, issue_id: UUID) -> list[models.File]:
    return (
        db.query(models.File)
        .filter(models.File.issue_id == issue_id)
        .order_by(models.File.created_at.desc())
        .all()
    )


def delete_file(db: Session, db_file: models.File) -> None:
    file_id = db_file.id
    db.delete(db_file)
    db.commit()
    logger.info(f"Deleted file record {file_id}")
