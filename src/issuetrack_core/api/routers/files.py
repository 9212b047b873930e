"""File attachments API router."""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DbSession

from ... import crud
from ...authorization import Session, is_admin, is_owner
from ...config import get_settings
from ...schemas import FileResponse
from ...storage import ObjectStore, StorageError
from ..dependencies import authorize, get_db, get_object_store, issue_context, not_found, require_session

logger = logging.getLogger("issuetrack-core.files")

router = APIRouter(tags=["files"])


@router.post("/upload", response_model=FileResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    issue_id: Optional[UUID] = Form(None),
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
    store: ObjectStore = Depends(get_object_store),
):
    """Upload an attachment, optionally linked to an issue the caller can view."""
    if issue_id is not None:
        issue = crud.get_issue(db, issue_id)
        if not issue:
            raise not_found("Issue", issue_id)
        authorize(session, "issue", "view", issue_context(issue))

    max_bytes = get_settings().max_upload_bytes
    # One byte past the limit is enough to reject the upload
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size exceeds the {max_bytes // (1024 * 1024)}MB limit",
        )

    original_name = file.filename or "file"
    mime_type = file.content_type or "application/octet-stream"
    try:
        key, url = store.put(data, original_name, mime_type)
    except StorageError as e:
        logger.error(f"Upload of {original_name} failed: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to store file")

    try:
        db_file = crud.create_file(
            db,
            filename=key,
            original_name=original_name,
            mime_type=mime_type,
            size=len(data),
            key=key,
            url=url,
            uploaded_by_id=session.user.id,
            issue_id=issue_id,
        )
    except SQLAlchemyError:
        logger.error(f"Failed to record upload {key}, removing stored object", exc_info=True)
        store.delete(key)
        raise
    return db_file


@router.get("/issue/{issue_id}", response_model=list[FileResponse])
async def list_issue_files(
    issue_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
):
    """List attachments of an issue."""
    issue = crud.get_issue(db, issue_id)
    if not issue:
        raise not_found("Issue", issue_id)
    authorize(session, "issue", "view", issue_context(issue))
    return crud.list_issue_files(db, issue.id)


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    file_id: UUID,
    db: DbSession = Depends(get_db),
    session: Session = Depends(require_session),
    store: ObjectStore = Depends(get_object_store),
):
    """Delete an attachment. Only the uploader or an admin can do this."""
    db_file = crud.get_file(db, file_id)
    if not db_file:
        raise not_found("File", file_id)

    if not (is_admin(session) or is_owner(session, db_file.uploaded_by_id)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have permission to delete this file",
        )

    try:
        store.delete(db_file.key)
    except StorageError as e:
        logger.error(f"Failed to delete object {db_file.key}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete file")

    crud.delete_file(db, db_file)
    return None
