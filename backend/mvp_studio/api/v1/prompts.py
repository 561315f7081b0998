"""Generated prompt library: listing, feedback, archival, validation and assembly."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from mvp_studio.config import Settings, get_settings
from mvp_studio.database import get_db
from mvp_studio.models import GeneratedPrompt
from mvp_studio.schemas.common import MessageResponse, PromptType
from mvp_studio.schemas.prompt import (
    PromptFeedbackUpdate,
    PromptListResponse,
    PromptResponse,
    PromptValidateRequest,
    PromptValidationResponse,
)
from mvp_studio.schemas.studio import PromptAssembleRequest, PromptAssembleResponse, WizardState
from mvp_studio.services import wizard
from mvp_studio.services.auth_dependency import AuthenticatedUser, get_current_user
from mvp_studio.services.knowledge_client import search_knowledge
from mvp_studio.services.prompt_assembler import assemble
from mvp_studio.services.prompt_validator import validate_prompt
from mvp_studio.services.stage_runner import EXPORT_KNOWLEDGE_CATEGORIES, resolve_target_tool
from mvp_studio.services.studio_persistence import ProjectStore

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_owned_or_404(db: Session, user_id: str, prompt_id: str) -> GeneratedPrompt:
    prompt = (
        db.query(GeneratedPrompt)
        .filter(GeneratedPrompt.id == prompt_id, GeneratedPrompt.user_id == user_id)
        .first()
    )
    if not prompt:
        raise HTTPException(status_code=404, detail="Prompt not found")
    return prompt


@router.get("", response_model=PromptListResponse)
def list_prompts(
    mvp_id: str | None = Query(None, alias="mvpId"),
    prompt_type: PromptType | None = Query(None, alias="promptType"),
    favorite: bool | None = None,
    include_archived: bool = Query(False, alias="includeArchived"),
    include_history: bool = Query(False, alias="includeHistory"),
    limit: int = Query(100, ge=1, le=500),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Current versions only, unless ``includeHistory`` is set."""
    query = db.query(GeneratedPrompt).filter(GeneratedPrompt.user_id == user.id)
    if mvp_id:
        query = query.filter(GeneratedPrompt.mvp_id == mvp_id)
    if prompt_type:
        query = query.filter(GeneratedPrompt.prompt_type == prompt_type.value)
    if favorite is not None:
        query = query.filter(GeneratedPrompt.is_favorite.is_(favorite))
    if not include_archived:
        query = query.filter(GeneratedPrompt.is_archived.is_(False))
    if not include_history:
        query = query.filter(GeneratedPrompt.is_current_version.is_(True))

    total = query.count()
    prompts = (
        query.order_by(GeneratedPrompt.created_at.desc(), GeneratedPrompt.version.desc())
        .limit(limit)
        .all()
    )
    return PromptListResponse(items=[PromptResponse.model_validate(p) for p in prompts], total=total)


@router.post("/validate", response_model=PromptValidationResponse)
def validate(payload: PromptValidateRequest, user: AuthenticatedUser = Depends(get_current_user)):
    result = validate_prompt(payload.prompt)
    return PromptValidationResponse(
        is_valid=result.is_valid,
        score=result.score,
        issues=result.issues,
        suggestions=result.suggestions,
    )


@router.post("/generate", response_model=PromptAssembleResponse)
async def generate_prompt(
    payload: PromptAssembleRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Assemble the idea, screen or export prompt for a tool, without an LLM call.

    Accepts a full wizard snapshot (``state``) or just the first two stages.
    The assembled text is scored by the prompt validator and logged.
    """
    if payload.state is not None:
        state = wizard.from_snapshot(payload.state)
    else:
        state = WizardState(app_idea=payload.app_idea, validation_questions=payload.validation_questions)
    if state.app_idea is None:
        raise HTTPException(status_code=400, detail="App name and description are required")

    tool = resolve_target_tool(state, payload.target_tool)
    knowledge = []
    if payload.use_knowledge:
        knowledge = await search_knowledge(
            f"{state.app_idea.app_name}: {state.app_idea.idea_description}",
            categories=EXPORT_KNOWLEDGE_CATEGORIES,
            target_tools=[tool.value],
            settings=settings,
        )

    text = assemble(state, tool, payload.stage, knowledge, screen_id=payload.screen_id)
    result = validate_prompt(text)

    await run_in_threadpool(
        ProjectStore(db, user.id).log_generation,
        f"assemble_{payload.stage}",
        mvp_id=state.project_id,
        target_tool=tool.value,
        knowledge_count=len(knowledge),
        validation_score=result.score,
    )
    return PromptAssembleResponse(
        prompt=text,
        stage=payload.stage,
        target_tool=tool,
        knowledge_count=len(knowledge),
        validation=PromptValidationResponse(
            is_valid=result.is_valid,
            score=result.score,
            issues=result.issues,
            suggestions=result.suggestions,
        ),
    )


@router.get("/{prompt_id}", response_model=PromptResponse)
def get_prompt(
    prompt_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _get_owned_or_404(db, user.id, prompt_id)


@router.patch("/{prompt_id}", response_model=PromptResponse)
def update_prompt_feedback(
    prompt_id: str,
    payload: PromptFeedbackUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Record rating, feedback, favorite or archived. Content is never editable."""
    prompt = _get_owned_or_404(db, user.id, prompt_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in ("is_favorite", "is_archived"):
            continue
        setattr(prompt, field, value)
    db.commit()
    db.refresh(prompt)
    return prompt


@router.delete("/{prompt_id}", response_model=MessageResponse)
def archive_prompt(
    prompt_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    prompt = _get_owned_or_404(db, user.id, prompt_id)
    prompt.is_archived = True
    db.commit()
    logger.info("Archived prompt %s", prompt_id)
    return MessageResponse(message="Prompt archived")
