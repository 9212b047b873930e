"""Issues API router.

Issues track reported problems for a client.

Lifecycle: NEW -> ASSIGNED -> IN_PROGRESS -> NEEDS_REVIEW -> FIXED -> CLOSED
(see state_machine for the full transition matrix)
"""
import logging
from datetime import datetime
from math import ceil
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session as DbSession

from ... import crud
from ...authorization import Session, check_role, is_admin
from ...date_utils import is_not_past_date
from ...errors import ApiError
from ...models import Issue, IssuePriority, IssueStatus, Role
from ...schemas import (
    DueSoonResponse,
    IssueAssign,
    IssueCreate,
    IssueDueDateUpdate,
    IssueHistoryResponse,
    IssueListResponse,
    IssueResponse,
    IssueStatusUpdate,
    IssueUpdate,
)
from ...state_machine import get_allowed_next_statuses, validate_status_transition
from ..dependencies import (
    authorize,
    get_db,
    issue_context,
    limit_issue_submission,
    not_found,
    require_session,
)

logger = logging.getLogger("issuetrack-core.issues")

router = APIRouter(tags=["issues"])


def _get_issue_or_404(db: DbSession, issue_id: UUID) -> Issue:
    issue = crud.get_issue(db, issue_id)
    if not issue:
        raise not_found("Issue", issue_id)
    return issue


def _sees_all_issues(session: Session) -> bool:
    return check_role(session, Role.ADMIN, Role.DEVELOPER)


def _require_due_date_editor(session: Session) -> None:
    if not check_role(session, Role.ADMIN, Role.ACCOUNT_MANAGER):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins and account managers can update due dates",
        )


def _validate_due_date(due_date: Optional[datetime]) -> None:
    if due_date is not None and not is_not_past_date(due_date):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Due date cannot be in the past",
        )


def _require_existing_user(db: DbSession, user_id: Optional[UUID]) -> None:
    if user_id and not crud.get_user(db, user_id):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Assigned user does not exist",
        )


def _change_status(db: DbSession, session: Session, issue: Issue, new_status: IssueStatus) -> Issue:
    """Authorize, validate and persist a status change."""
    authorize(session, "issue", "updateStatus", issue_context(issue))

    current_status = issue.status
    try:
        validate_status_transition(current_status, new_status)
    except ApiError as e:
        raise e.to_http_exception()

    if current_status == new_status:
        return issue

    try:
        return crud.update_issue_status(db, issue, current_status, new_status, session.user.id)
    except ApiError as e:
        raise e.to_http_exception()


@router.get("/", response_model=IssueListResponse)
async def list_issues(
    status: Optional[IssueStatus] = None,
    priority: Optional[IssuePriority] = None,
    assigned_to_id: Optional[UUID] = None,
    reported_by_id: Optional[UUID] = None,
    client_id: Optional[UUID] = None,
    sort_by_status: bool = Query(False, description="Order by workflow status first"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """List issues. Only admins and developers see issues they are not involved in."""
    authorize(session, "issue", "list")

    issues, total = crud.list_issues(
        db,
        skip=(page - 1) * page_size,
        limit=page_size,
        status=status,
        priority=priority,
        assigned_to_id=assigned_to_id,
        reported_by_id=reported_by_id,
        client_id=client_id,
        visible_to_user_id=None if _sees_all_issues(session) else session.user.id,
        sort_by_status=sort_by_status,
    )

    return IssueListResponse(
        items=[IssueResponse.model_validate(i) for i in issues],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=ceil(total / page_size) if total > 0 else 0,
    )


@router.post(
    "/",
    response_model=IssueResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(limit_issue_submission)],
)
async def create_issue(
    data: IssueCreate,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Create an issue reported by the caller. New issues start in NEW."""
    authorize(session, "issue", "create")

    if data.due_date is not None:
        _validate_due_date(data.due_date)
    _require_existing_user(db, data.assigned_to_id)
    if data.client_id and not crud.get_client(db, data.client_id):
        raise not_found("Client", data.client_id)

    fields = data.model_dump(exclude={"title", "due_date", "assigned_to_id"})
    issue = crud.create_issue(
        db,
        reported_by_id=session.user.id,
        title=data.title,
        due_date=data.due_date,
        assigned_to_id=data.assigned_to_id,
        **fields,
    )
    return IssueResponse.model_validate(issue)


@router.get("/due-soon", response_model=IssueListResponse)
async def list_due_soon_issues(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Active issues visible to the caller that are due in the next ten days."""
    authorize(session, "issue", "list")

    issues, total = crud.list_due_soon_issues(
        db,
        skip=(page - 1) * page_size,
        limit=page_size,
        visible_to_user_id=None if _sees_all_issues(session) else session.user.id,
    )

    return IssueListResponse(
        items=[IssueResponse.model_validate(i) for i in issues],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=ceil(total / page_size) if total > 0 else 0,
    )


@router.post("/due-soon/notify", response_model=DueSoonResponse)
async def send_due_soon_reminders(
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Send today's due-soon reminders. Meant to be called once a day by a scheduler."""
    if not is_admin(session):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can trigger due date reminders",
        )

    issues_found, sent = crud.send_due_soon_reminders(db)
    return DueSoonResponse(issues_found=issues_found, notifications_sent=sent)


@router.get("/{issue_id}", response_model=IssueResponse)
async def get_issue(
    issue_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Get an issue by ID."""
    issue = _get_issue_or_404(db, issue_id)
    authorize(session, "issue", "view", issue_context(issue))
    return IssueResponse.model_validate(issue)


@router.patch("/{issue_id}", response_model=IssueResponse)
async def update_issue(
    issue_id: UUID,
    data: IssueUpdate,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """
    Update an issue.

    A ``status`` in the body is handled exactly like the status endpoint, and a
    ``due_date`` exactly like the due-date endpoint.
    """
    issue = _get_issue_or_404(db, issue_id)
    authorize(session, "issue", "update", issue_context(issue))

    updates = data.model_dump(exclude_unset=True)
    new_status = updates.pop("status", None)
    for required_field in ("title", "priority"):
        if updates.get(required_field, "") is None:
            updates.pop(required_field)

    if "due_date" in updates:
        _require_due_date_editor(session)
        _validate_due_date(updates["due_date"])
    if updates.get("client_id") and not crud.get_client(db, updates["client_id"]):
        raise not_found("Client", updates["client_id"])

    if new_status is not None:
        # Validate before writing anything so a rejected transition leaves the issue untouched
        authorize(session, "issue", "updateStatus", issue_context(issue))
        try:
            validate_status_transition(issue.status, new_status)
        except ApiError as e:
            raise e.to_http_exception()

    if updates:
        issue = crud.update_issue(db, issue, session.user.id, **updates)
    if new_status is not None:
        issue = _change_status(db, session, issue, IssueStatus(new_status))

    return IssueResponse.model_validate(issue)


@router.delete("/{issue_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_issue(
    issue_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Delete an issue. Not gated by status."""
    issue = _get_issue_or_404(db, issue_id)
    authorize(session, "issue", "delete", issue_context(issue))
    crud.delete_issue(db, issue)
    return None


@router.patch("/{issue_id}/status", response_model=IssueResponse)
async def update_issue_status(
    issue_id: UUID,
    data: IssueStatusUpdate,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Move an issue to a new status along the transition matrix."""
    issue = _get_issue_or_404(db, issue_id)
    issue = _change_status(db, session, issue, data.status)
    return IssueResponse.model_validate(issue)


@router.get("/{issue_id}/transitions", response_model=list[str])
async def get_allowed_transitions(
    issue_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Get allowed status transitions for an issue."""
    issue = _get_issue_or_404(db, issue_id)
    authorize(session, "issue", "view", issue_context(issue))
    return [s.value for s in get_allowed_next_statuses(issue.status)]


@router.patch("/{issue_id}/assign", response_model=IssueResponse)
async def assign_issue(
    issue_id: UUID,
    data: IssueAssign,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Assign an issue to a user, or unassign it. Admins and account managers only."""
    if not check_role(session, Role.ADMIN, Role.ACCOUNT_MANAGER):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only Admins and Account Managers can assign issues",
        )

    issue = _get_issue_or_404(db, issue_id)
    _require_existing_user(db, data.assigned_to_id)

    issue = crud.assign_issue(db, issue, data.assigned_to_id, session.user.id)
    return IssueResponse.model_validate(issue)


@router.patch("/{issue_id}/due-date", response_model=IssueResponse)
async def update_issue_due_date(
    issue_id: UUID,
    data: IssueDueDateUpdate,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Change an issue's due date. Admins and account managers only; not in the past."""
    _require_due_date_editor(session)
    issue = _get_issue_or_404(db, issue_id)
    _validate_due_date(data.due_date)

    issue = crud.update_issue(db, issue, session.user.id, due_date=data.due_date)
    return IssueResponse.model_validate(issue)


@router.get("/{issue_id}/history", response_model=list[IssueHistoryResponse])
async def get_issue_history(
    issue_id: UUID,
    limit: int = Query(50, ge=1, le=100),
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Get issue change history."""
    issue = _get_issue_or_404(db, issue_id)
    authorize(session, "issue", "view", issue_context(issue))

    history = crud.get_issue_history(db, issue.id, limit)
    return [
        IssueHistoryResponse(
            id=h.id,
            issue_id=h.issue_id,
            change_type=h.change_type,
            field_name=h.field_name,
            old_value=h.old_value,
            new_value=h.new_value,
            changed_by=h.changed_by_user_id,
            changed_by_email=h.changed_by_user.email if h.changed_by_user else None,
            changed_at=h.changed_at,
        )
        for h in history
    ]
