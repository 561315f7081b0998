"""Prompt template library: search, CRUD, usage metrics and rendering."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from mvp_studio.database import get_db
from mvp_studio.models import PromptTemplate
from mvp_studio.schemas.common import MessageResponse, ProjectComplexity, TemplateType
from mvp_studio.schemas.template import (
    TemplateCreate,
    TemplateListResponse,
    TemplateMetricsUpdate,
    TemplateRenderRequest,
    TemplateRenderResponse,
    TemplateResponse,
    TemplateUpdate,
)
from mvp_studio.services.auth_dependency import AuthenticatedUser, get_current_user
from mvp_studio.services.template_library import TemplateError, check_template, render_template

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_active_or_404(db: Session, template_id: str) -> PromptTemplate:
    template = (
        db.query(PromptTemplate)
        .filter(PromptTemplate.id == template_id, PromptTemplate.is_active.is_(True))
        .first()
    )
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


def _get_own_or_404(db: Session, user_id: str, template_id: str) -> PromptTemplate:
    template = (
        db.query(PromptTemplate)
        .filter(PromptTemplate.id == template_id, PromptTemplate.created_by == user_id)
        .first()
    )
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.get("", response_model=TemplateListResponse)
def list_templates(
    query: str | None = None,
    target_tool: str | None = Query(None, alias="targetTool"),
    template_type: TemplateType | None = Query(None, alias="templateType"),
    complexity: ProjectComplexity | None = None,
    limit: int = Query(10, ge=1, le=50),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Active templates, best performing first."""
    q = db.query(PromptTemplate).filter(PromptTemplate.is_active.is_(True))
    if query:
        pattern = f"%{query.strip()}%"
        q = q.filter(or_(
            PromptTemplate.template_name.ilike(pattern),
            PromptTemplate.use_case.ilike(pattern),
            PromptTemplate.template_content.ilike(pattern),
        ))
    if target_tool:
        q = q.filter(PromptTemplate.target_tool == target_tool)
    if template_type:
        q = q.filter(PromptTemplate.template_type == template_type.value)
    if complexity:
        q = q.filter(PromptTemplate.project_complexity == complexity.value)

    templates = (
        q.order_by(
            func.coalesce(PromptTemplate.success_rate, -1.0).desc(),
            PromptTemplate.usage_count.desc(),
            PromptTemplate.template_name,
        )
        .limit(limit)
        .all()
    )
    return TemplateListResponse(
        templates=[TemplateResponse.model_validate(t) for t in templates],
        count=len(templates),
    )


@router.post("", response_model=TemplateResponse, status_code=201)
def create_template(
    payload: TemplateCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        check_template(payload.template_content, payload.required_variables, payload.optional_variables)
    except TemplateError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    template = PromptTemplate(created_by=user.id, **payload.model_dump(mode="json"))
    db.add(template)
    db.commit()
    db.refresh(template)
    logger.info("Created prompt template %s (%s) for user %s", template.id, template.template_name, user.id)
    return template


@router.get("/{template_id}", response_model=TemplateResponse)
def get_template(
    template_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _get_active_or_404(db, template_id)


@router.put("/{template_id}", response_model=TemplateResponse)
def update_template(
    template_id: str,
    payload: TemplateUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit one of the caller's templates. A content change bumps the version."""
    template = _get_own_or_404(db, user.id, template_id)
    changes = {k: v for k, v in payload.model_dump(mode="json", exclude_unset=True).items() if v is not None}

    content = changes.get("template_content", template.template_content)
    required = changes.get("required_variables", template.required_variables)
    optional = changes.get("optional_variables", template.optional_variables)
    try:
        check_template(content, required, optional)
    except TemplateError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    if content != template.template_content:
        template.version += 1
    for field, value in changes.items():
        setattr(template, field, value)
    db.commit()
    db.refresh(template)
    return template


@router.delete("/{template_id}", response_model=MessageResponse)
def retire_template(
    template_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    template = _get_own_or_404(db, user.id, template_id)
    template.is_active = False
    db.commit()
    logger.info("Retired prompt template %s", template_id)
    return MessageResponse(message="Prompt template deleted successfully")


@router.patch("/{template_id}/metrics", response_model=TemplateResponse)
def record_template_usage(
    template_id: str,
    payload: TemplateMetricsUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Count one use and store the latest success rate / confidence."""
    template = _get_active_or_404(db, template_id)
    template.usage_count = PromptTemplate.usage_count + 1
    if payload.success_rate is not None:
        template.success_rate = payload.success_rate
    if payload.confidence_score is not None:
        template.avg_confidence_score = payload.confidence_score
    db.commit()
    db.refresh(template)
    return template


@router.post("/{template_id}/render", response_model=TemplateRenderResponse)
def render(
    template_id: str,
    payload: TemplateRenderRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    template = _get_active_or_404(db, template_id)
    try:
        content = render_template(
            template.template_content,
            template.required_variables,
            template.optional_variables,
            payload.variables,
        )
    except TemplateError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return TemplateRenderResponse(template_id=template.id, version=template.version, content=content)
