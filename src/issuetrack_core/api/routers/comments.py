"""Comments API router.

Anyone who can view an issue can read and add comments on it.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session as DbSession

from ... import crud, models
from ...authorization import Session, is_admin, is_owner
from ...schemas import CommentCreate, CommentResponse
from ..dependencies import authorize, get_current_user, get_db, issue_context, not_found, require_session

logger = logging.getLogger("issuetrack-core.comments")

router = APIRouter(tags=["comments"])


def _get_viewable_issue(db: DbSession, session: Session, issue_id: UUID) -> models.Issue:
    issue = crud.get_issue(db, issue_id)
    if not issue:
        raise not_found("Issue", issue_id)
    authorize(session, "issue", "view", issue_context(issue))
    return issue


@router.get("/issues/{issue_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    issue_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """List comments on an issue, oldest first."""
    issue = _get_viewable_issue(db, session, issue_id)
    return crud.list_comments(db, issue.id)


@router.post(
    "/issues/{issue_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    issue_id: UUID,
    data: CommentCreate,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
    current_user: models.User = Depends(get_current_user),
):
    """Comment on an issue. The reporter and assignee are notified."""
    issue = _get_viewable_issue(db, session, issue_id)
    return crud.create_comment(db, issue, current_user, data.text)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Delete a comment. Only its author or an admin can do this."""
    comment = crud.get_comment(db, comment_id)
    if not comment:
        raise not_found("Comment", comment_id)

    if not (is_admin(session) or is_owner(session, comment.created_by_id)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have permission to delete this comment",
        )

    crud.delete_comment(db, comment)
    return None
