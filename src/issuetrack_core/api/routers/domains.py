"""Client domain names API router."""
import logging
from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session as DbSession

from ... import crud
from ...authorization import Session, is_account_manager
from ...schemas import DomainNameCreate, DomainNameResponse, DomainNameUpdate, ExpiringDomainResponse
from ..dependencies import authorize, get_db, not_found, require_session
from .clients import get_accessible_client

logger = logging.getLogger("issuetrack-core.domains")

router = APIRouter(tags=["domains"])


@router.get("/domains/expiring", response_model=list[ExpiringDomainResponse])
async def list_expiring_domains(
    days: int = Query(30, ge=1, le=365),
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Active domains expiring in the next ``days`` days."""
    authorize(session, "client", "list")

    domains = crud.get_expiring_domains(
        db,
        window=timedelta(days=days),
        manager_id=session.user.id if is_account_manager(session) else None,
    )
    return [
        ExpiringDomainResponse(
            **DomainNameResponse.model_validate(d).model_dump(),
            client_name=d.client.name,
        )
        for d in domains
    ]


@router.get("/clients/{client_id}/domain-names", response_model=list[DomainNameResponse])
async def list_domain_names(
    client_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """List a client's domains."""
    client = get_accessible_client(db, session, client_id, "view")
    return crud.list_domain_names(db, client.id)


@router.post(
    "/clients/{client_id}/domain-names",
    response_model=DomainNameResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_domain_name(
    client_id: UUID,
    data: DomainNameCreate,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Add a domain to a client."""
    client = get_accessible_client(db, session, client_id, "update")
    return crud.create_domain_name(db, client.id, **data.model_dump())


@router.patch("/clients/{client_id}/domain-names/{domain_name_id}", response_model=DomainNameResponse)
async def update_domain_name(
    client_id: UUID,
    domain_name_id: UUID,
    data: DomainNameUpdate,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Update a client's domain."""
    client = get_accessible_client(db, session, client_id, "update")

    updates = data.model_dump(exclude_unset=True)
    if updates.get("name", "") is None:
        updates.pop("name")

    domain = crud.update_domain_name(db, client.id, domain_name_id, **updates)
    if not domain:
        raise not_found("Domain name", domain_name_id)
    return domain


@router.delete("/clients/{client_id}/domain-names/{domain_name_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_domain_name(
    client_id: UUID,
    domain_name_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """Remove a domain from a client."""
    client = get_accessible_client(db, session, client_id, "update")
    if not crud.delete_domain_name(db, client.id, domain_name_id):
        raise not_found("Domain name", domain_name_id)
    return None
