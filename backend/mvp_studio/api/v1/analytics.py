"""Generation analytics over the caller's prompt generation logs."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from mvp_studio.database import get_db
from mvp_studio.schemas.analytics import AnalyticsDateRange, AnalyticsResponse, GenerationAnalytics
from mvp_studio.services.auth_dependency import AuthenticatedUser, get_current_user
from mvp_studio.services.generation_analytics import (
    AnalyticsRangeError,
    load_generation_analytics,
    resolve_range,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=AnalyticsResponse)
def get_analytics(
    timeframe: Literal["day", "week", "month", "year"] = "month",
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    target_tool: str | None = Query(None, alias="targetTool"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Summarize the caller's generations; ``startDate``/``endDate`` override ``timeframe``."""
    try:
        date_range = resolve_range(timeframe, start_date, end_date)
    except AnalyticsRangeError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    summary = load_generation_analytics(db, user.id, date_range, target_tool)
    return AnalyticsResponse(
        analytics=GenerationAnalytics.model_validate(summary),
        timeframe="custom" if start_date else timeframe,
        date_range=AnalyticsDateRange(start=date_range.start, end=date_range.end),
    )
