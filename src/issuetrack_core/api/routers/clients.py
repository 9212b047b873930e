"""Clients API router.

Account managers only see and edit the clients they manage. Deleting a client
moves it to INACTIVE instead of removing the row.
"""
import logging
from math import ceil
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session as DbSession

from ... import crud, models
from ...authorization import Session, is_account_manager, is_owner
from ...models import ClientStatus
from ...schemas import ClientCreate, ClientListResponse, ClientResponse, ClientUpdate
from ..dependencies import authorize, get_db, not_found, require_session

logger = logging.getLogger("issuetrack-core.clients")

router = APIRouter(tags=["clients"])


def get_accessible_client(db: DbSession, session: Session, client_id: UUID, action: str) -> models.Client:
    """
    Fetch a client and check that the caller may perform ``action`` on it.

    Raises:
        HTTPException: 404 if missing, 401/403 if not allowed
    """
    client = crud.get_client(db, client_id)
    if not client:
        raise not_found("Client", client_id)

    authorize(session, "client", action)

    if is_account_manager(session) and not is_owner(session, client.manager_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You don't have permission to {action} this client",
        )
    return client


@router.get("/", response_model=ClientListResponse)
async def list_clients(
    status: Optional[ClientStatus] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """List clients. Account managers only see their own clients."""
    authorize(session, "client", "list")

    clients, total = crud.list_clients(
        db,
        skip=(page - 1) * page_size,
        limit=page_size,
        status=status,
        manager_id=session.user.id if is_account_manager(session) else None,
        search=search,
    )

    return ClientListResponse(
        items=[ClientResponse.model_validate(c) for c in clients],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=ceil(total / page_size) if total > 0 else 0,
    )


@router.post("/", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    data: ClientCreate,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Create a client. The caller becomes the manager unless one is given."""
    authorize(session, "client", "create")

    fields = data.model_dump()
    if fields.get("manager_id") is None:
        fields["manager_id"] = session.user.id
    elif not crud.get_user(db, fields["manager_id"]):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Manager does not exist",
        )

    client = crud.create_client(db, **fields)
    return ClientResponse.model_validate(client)


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Get a client by ID."""
    client = get_accessible_client(db, session, client_id, "view")
    return ClientResponse.model_validate(client)


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: UUID,
    data: ClientUpdate,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Update a client."""
    get_accessible_client(db, session, client_id, "update")

    updates = data.model_dump(exclude_unset=True)
    for required_field in ("name", "status"):
        if updates.get(required_field, "") is None:
            updates.pop(required_field)
    if updates.get("manager_id") and not crud.get_user(db, updates["manager_id"]):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Manager does not exist",
        )

    client = crud.update_client(db, client_id, **updates)
    return ClientResponse.model_validate(client)


@router.delete("/{client_id}", response_model=ClientResponse)
async def delete_client(
    client_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Deactivate a client. Admins only."""
    get_accessible_client(db, session, client_id, "delete")
    client = crud.deactivate_client(db, client_id)
    return ClientResponse.model_validate(client)
