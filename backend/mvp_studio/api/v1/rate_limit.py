"""Monthly quota status and counter reset."""
from __future__ import annotations

import logging

import redis
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from mvp_studio.config import Settings, get_settings
from mvp_studio.database import get_db
from mvp_studio.schemas.common import MessageResponse, RateLimitResponse
from mvp_studio.services.auth_dependency import AuthenticatedUser, get_current_user
from mvp_studio.services.quota_reconciler import QuotaReconciler, RedisQuotaCounter, get_quota_counter

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/mvp", response_model=RateLimitResponse)
def get_mvp_rate_limit(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    counter: RedisQuotaCounter = Depends(get_quota_counter),
    settings: Settings = Depends(get_settings),
):
    """Database-derived usage for the current window. Never consumes."""
    status = QuotaReconciler(db, counter, settings).check_status(user.id)
    return RateLimitResponse(rate_limit_info=status.to_info())


@router.post("/clear", response_model=MessageResponse)
def clear_rate_limit(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    counter: RedisQuotaCounter = Depends(get_quota_counter),
    settings: Settings = Depends(get_settings),
):
    """Drop the user's Redis counter keys so the next consume recounts from zero.

    The database count still applies, so this cannot grant extra projects.
    """
    reconciler = QuotaReconciler(db, counter, settings)
    try:
        reconciler.clear(user.id)
    except redis.RedisError as exc:
        logger.error("Rate limit clear failed for user %s: %s", user.id, exc)
        raise HTTPException(status_code=503, detail="Quota store unavailable")
    reconciler.record_manual_clear(user.id)
    return MessageResponse(message="Rate limit cleared successfully")
