"""One-shot MVP generation: quota check, project row, AI prompt."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mvp_studio.config import Settings, get_settings
from mvp_studio.database import get_db
from mvp_studio.models import Mvp
from mvp_studio.schemas.studio import GenerateMvpRequest, GenerateMvpResponse
from mvp_studio.services.auth_dependency import AuthenticatedUser, get_current_user
from mvp_studio.services.quota_reconciler import QuotaReconciler, RedisQuotaCounter, get_quota_counter
from mvp_studio.services.stage_runner import generate_mvp_prompt
from mvp_studio.services.studio_persistence import ProjectStore

router = APIRouter()
logger = logging.getLogger(__name__)


def _store_generated_prompt(db: Session, mvp: Mvp, text: str) -> None:
    mvp.generated_prompt = text
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to store generated prompt for project %s", mvp.id)
        raise


@router.post("/generate-mvp", response_model=GenerateMvpResponse)
async def generate_mvp(
    payload: GenerateMvpRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    counter: RedisQuotaCounter = Depends(get_quota_counter),
    settings: Settings = Depends(get_settings),
):
    """Create a project from the idea and validation answers.

    The quota slot is taken before anything is written; a 429 leaves no rows
    behind. Database and Redis calls are synchronous and run in the threadpool.
    """
    quota = await run_in_threadpool(QuotaReconciler(db, counter, settings).enforce, user.id)

    store = ProjectStore(db, user.id)
    mvp = await run_in_threadpool(store.create_project, payload.app_idea, payload.validation_questions)

    text, tool, used_fallback = await generate_mvp_prompt(
        payload.app_idea, payload.validation_questions, settings
    )
    await run_in_threadpool(_store_generated_prompt, db, mvp, text)

    await run_in_threadpool(
        store.log_generation,
        "generate_mvp",
        mvp_id=mvp.id,
        target_tool=tool.value,
        used_fallback=used_fallback,
    )
    logger.info(
        "Generated MVP %s for user %s (tool=%s, fallback=%s, remaining=%d)",
        mvp.id, user.id, tool.value, used_fallback, quota.remaining,
    )
    return GenerateMvpResponse(
        project_id=mvp.id,
        target_tool=tool,
        used_fallback=used_fallback,
        rate_limit_info=quota.to_info(),
    )
