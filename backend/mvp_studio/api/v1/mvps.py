"""Project (MVP) read, update and soft-delete endpoints."""
from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from mvp_studio.database import get_db
from mvp_studio.models import Mvp
from mvp_studio.schemas.common import MessageResponse, MvpStatus
from mvp_studio.schemas.mvp import MvpListItem, MvpListResponse, MvpResponse, MvpSortField, MvpUpdate
from mvp_studio.services.auth_dependency import AuthenticatedUser, get_current_user
from mvp_studio.services.studio_persistence import ProjectStore

router = APIRouter()
logger = logging.getLogger(__name__)

_DOCUMENT_FIELDS = {
    "app_blueprint": "blueprint",
    "screen_prompts": "screen_prompts",
    "app_flow": "flow",
    "export_prompts": "export",
}
_REQUIRED_COLUMNS = {"app_name", "platforms", "app_description", "status", "generated_prompt"}


def _get_owned_or_404(store: ProjectStore, mvp_id: str) -> Mvp:
    mvp = store.get_project(mvp_id)
    if not mvp:
        raise HTTPException(status_code=404, detail="MVP not found")
    return mvp


@router.get("", response_model=MvpListResponse)
def list_mvps(
    status: MvpStatus | None = None,
    sort_by: MvpSortField = Query("created_at", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    limit: int = Query(50, ge=1, le=100),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the caller's projects. Abandoned ones appear only when asked for by status."""
    query = db.query(Mvp).filter(Mvp.user_id == user.id)
    if status:
        query = query.filter(Mvp.status == status.value)
    else:
        query = query.filter(Mvp.status != MvpStatus.ABANDONED.value)

    total = query.count()
    column = getattr(Mvp, sort_by)
    order = column.asc() if sort_order == "asc" else column.desc()
    mvps = query.order_by(order, Mvp.id).limit(limit).all()
    return MvpListResponse(items=[MvpListItem.model_validate(m) for m in mvps], total=total)


@router.get("/{mvp_id}", response_model=MvpResponse)
def get_mvp(
    mvp_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _get_owned_or_404(ProjectStore(db, user.id), mvp_id)


@router.patch("/{mvp_id}", response_model=MvpResponse)
def update_mvp(
    mvp_id: str,
    payload: MvpUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = ProjectStore(db, user.id)
    mvp = _get_owned_or_404(store, mvp_id)

    update_data = payload.model_dump(
        mode="json", exclude_unset=True, exclude=set(_DOCUMENT_FIELDS) | {"completion_stage"}
    )
    for field, value in update_data.items():
        # Required columns ignore explicit nulls
        if value is None and field in _REQUIRED_COLUMNS:
            continue
        setattr(mvp, field, value)

    store.apply_documents(mvp, **{
        name: getattr(payload, field)
        for field, name in _DOCUMENT_FIELDS.items()
        if field in payload.model_fields_set
    })
    if payload.completion_stage is not None:
        mvp.advance_completion(payload.completion_stage)

    db.commit()
    db.refresh(mvp)
    logger.info("Updated MVP %s (%s)", mvp.id, ", ".join(sorted(payload.model_fields_set)))
    return mvp


@router.delete("/{mvp_id}", response_model=MessageResponse)
def delete_mvp(
    mvp_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Soft delete: the row stays (it still counts toward the quota) as Abandoned."""
    mvp = _get_owned_or_404(ProjectStore(db, user.id), mvp_id)
    mvp.status = MvpStatus.ABANDONED.value
    db.commit()
    logger.info("Abandoned MVP %s", mvp_id)
    return MessageResponse(message="MVP deleted successfully")
