"""MVP Studio endpoints: save, session snapshots, stage generation, enhancement."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from mvp_studio.config import Settings, get_settings
from mvp_studio.database import get_db
from mvp_studio.models import StudioSession
from mvp_studio.schemas.prompt import PromptValidationResponse
from mvp_studio.schemas.studio import (
    NavigateRequest,
    NavigateResponse,
    SessionResponse,
    SessionSaveRequest,
    StageEnhanceRequest,
    StageRunRequest,
    StageRunResponse,
    StudioSaveRequest,
    StudioSaveResponse,
)
from mvp_studio.services import wizard
from mvp_studio.services.auth_dependency import AuthenticatedUser, get_current_user
from mvp_studio.services.quota_reconciler import QuotaReconciler, RedisQuotaCounter, get_quota_counter
from mvp_studio.services.stage_enhancer import STAGE_SUGGESTION_CATEGORIES, enhance_stage, stage_suggestions
from mvp_studio.services.stage_runner import run_stage
from mvp_studio.services.studio_persistence import ProjectStore, infer_completion_stage, payload_documents

router = APIRouter()
logger = logging.getLogger(__name__)

_STAGE_LOG_NAMES = {3: "blueprint", 4: "screen_prompts", 5: "app_flow", 6: "export"}


def _session_response(session: StudioSession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        project_id=session.mvp_id,
        current_stage=session.current_stage,
        completed_stages=list(session.completed_stages or []),
        stale_stages=list(session.stale_stages or []),
        elapsed_seconds=session.elapsed_seconds,
        is_completed=session.is_completed,
        schema_version=session.schema_version,
        snapshot=session.session_data,
    )


# ── Save ───────────────────────────────────────────────────────────────

@router.post("/save", response_model=StudioSaveResponse)
def save_studio_project(
    payload: StudioSaveRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    counter: RedisQuotaCounter = Depends(get_quota_counter),
    settings: Settings = Depends(get_settings),
):
    """Create or update the project behind a wizard run.

    A new project goes through the quota check first; updating an owned
    project never consumes quota.
    """
    store = ProjectStore(db, user.id)

    if payload.project_id:
        mvp = store.get_project(payload.project_id)
        if not mvp:
            raise HTTPException(status_code=404, detail="Project not found")
        mvp = store.save_studio_project(mvp, payload)
        message = "MVP Studio project updated successfully"
    else:
        QuotaReconciler(db, counter, settings).enforce(user.id)
        mvp = store.create_project(
            payload.app_idea,
            payload.validation_questions,
            is_studio_project=True,
            completion_stage=payload.completion_stage or infer_completion_stage(payload),
            documents=payload_documents(payload),
        )
        message = "MVP Studio project saved successfully"

    stored = store.store_studio_prompts(mvp, payload)
    logger.info("Saved studio project %s (stage %d, %d prompt rows)", mvp.id, mvp.completion_stage, stored)
    return StudioSaveResponse(
        project_id=mvp.id,
        message=message,
        completion_stage=mvp.completion_stage,
        prompts_stored=stored,
    )


# ── Sessions ───────────────────────────────────────────────────────────

@router.get("/sessions", response_model=SessionResponse)
def get_session(
    project_id: str | None = Query(None, alias="projectId"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = ProjectStore(db, user.id).load_session(project_id)
    if not session:
        raise HTTPException(status_code=404, detail="No saved session")
    return _session_response(session)


@router.put("/sessions", response_model=SessionResponse)
def put_session(
    payload: SessionSaveRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Upsert the auto-save snapshot. The snapshot must parse as a wizard state."""
    state = wizard.from_snapshot(payload.snapshot)
    project_id = payload.project_id or state.project_id

    store = ProjectStore(db, user.id)
    if project_id and not store.get_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    if project_id and state.project_id != project_id:
        state = wizard.reduce(state, wizard.AttachProject(project_id))

    return _session_response(store.save_session(state, project_id))


# ── Stage transitions ──────────────────────────────────────────────────

@router.post("/stages/{stage}/run", response_model=StageRunResponse)
async def run_wizard_stage(
    payload: StageRunRequest,
    stage: int = Path(..., ge=1, le=6),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Generate the document for stage 3-6 and return the advanced state."""
    state = wizard.from_snapshot(payload.state)
    run = await run_stage(state, stage, payload.target_tool, settings)

    validation = None
    if run.validation is not None:
        validation = PromptValidationResponse(
            is_valid=run.validation.is_valid,
            score=run.validation.score,
            issues=run.validation.issues,
            suggestions=run.validation.suggestions,
        )

    # Sync DB write: keep it off the event loop
    await run_in_threadpool(
        ProjectStore(db, user.id).log_generation,
        _STAGE_LOG_NAMES[int(run.stage)],
        mvp_id=state.project_id,
        target_tool=run.target_tool.value if run.target_tool else None,
        knowledge_count=run.knowledge_count,
        validation_score=run.validation.score if run.validation else None,
        used_fallback=run.used_fallback,
    )
    return StageRunResponse(
        stage=int(run.stage),
        target_tool=run.target_tool,
        used_fallback=run.used_fallback,
        knowledge_count=run.knowledge_count,
        validation=validation,
        state=wizard.to_snapshot(run.state),
    )


@router.post("/navigate", response_model=NavigateResponse)
def navigate(payload: NavigateRequest, user: AuthenticatedUser = Depends(get_current_user)):
    state = wizard.from_snapshot(payload.state)
    state = wizard.reduce(state, wizard.GoToStage(wizard.Stage(payload.stage)))
    return NavigateResponse(state=wizard.to_snapshot(state))


# ── Knowledge enhancement ──────────────────────────────────────────────

@router.post("/enhance-stage")
async def enhance_wizard_stage(
    payload: StageEnhanceRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    enhancement = await enhance_stage(payload.stage, payload.data, settings)
    project_id = payload.data.get("projectId")
    await run_in_threadpool(
        ProjectStore(db, user.id).log_generation,
        f"enhance_{enhancement.stage.value}",
        mvp_id=project_id if isinstance(project_id, str) else None,
        target_tool=enhancement.target_tool.value,
        knowledge_count=len(enhancement.knowledge),
        confidence_score=enhancement.confidence_score,
    )
    return {"success": True, **enhancement.to_payload()}


@router.get("/enhance-stage")
async def get_stage_suggestions(
    stage: str | None = None,
    query: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    if not stage or not query:
        raise HTTPException(status_code=400, detail="Stage and query parameters are required")
    if stage not in STAGE_SUGGESTION_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Unknown stage: {stage}")
    suggestions = await stage_suggestions(stage, query, settings)
    return {"success": True, "stage": stage, "suggestions": suggestions}
