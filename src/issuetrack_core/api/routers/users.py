"""Users API router.

User management is admin only, except that users can edit their own profile.
Only admins can change a role.
"""
import logging
from math import ceil
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session as DbSession

from ... import crud
from ...authorization import Session, is_admin
from ...errors import ApiError
from ...models import Role
from ...schemas import UserCreate, UserListResponse, UserResponse, UserUpdate
from ..dependencies import authorize, get_db, not_found, require_session

logger = logging.getLogger("issuetrack-core.users")

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Get the calling user."""
    user = crud.get_user(db, session.user.id)
    if not user:
        raise not_found("User", session.user.id)
    return user


@router.get("/", response_model=UserListResponse)
async def list_users(
    role: Optional[Role] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """List users."""
    authorize(session, "user", "list")

    users, total = crud.list_users(db, skip=(page - 1) * page_size, limit=page_size, role=role)
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=ceil(total / page_size) if total > 0 else 0,
    )


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Create a user."""
    authorize(session, "user", "create")

    try:
        user = crud.create_user(db, email=data.email, name=data.name, role=data.role, image=data.image)
    except ApiError as e:
        raise e.to_http_exception()
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Get a user by ID."""
    authorize(session, "user", "view")
    user = crud.get_user(db, user_id)
    if not user:
        raise not_found("User", user_id)
    return user


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Update a user. Users may edit themselves; only admins may change roles."""
    authorize(session, "user", "update", {"user_id": user_id})
    if not crud.get_user(db, user_id):
        raise not_found("User", user_id)

    updates = data.model_dump(exclude_unset=True)
    if "role" in updates and not is_admin(session):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can change user roles",
        )

    try:
        user = crud.update_user(db, user_id, **updates)
    except ApiError as e:
        raise e.to_http_exception()

    if "role" in updates:
        logger.info(f"User {session.user.id} set role of {user_id} to {user.role.value}")
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Delete a user."""
    authorize(session, "user", "delete")
    if not crud.get_user(db, user_id):
        raise not_found("User", user_id)

    if str(user_id) == str(session.user.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )

    try:
        crud.delete_user(db, user_id)
    except ApiError as e:
        raise e.to_http_exception()
    return None
