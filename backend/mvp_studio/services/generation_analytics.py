"""Per-user aggregation of prompt generation logs.

Every stage run, enhancement and assembly writes a ``PromptGenerationLog``
row. This module summarizes a user's rows over a time range: volume, quality
bands, per-tool and per-stage breakdowns, a day-by-day trend and knowledge
usage.

A row's confidence is its ``confidence_score`` when set, otherwise its
``validation_score`` scaled to 0-1. Rows with neither are counted as
"unscored" and left out of every average.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from sqlalchemy.orm import Session

from mvp_studio.models import PromptGenerationLog

logger = logging.getLogger(__name__)

TIMEFRAMES: dict[str, timedelta] = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}

HIGH_QUALITY = 0.8
LOW_QUALITY = 0.5
MAX_RANGE = timedelta(days=366)


class AnalyticsRangeError(ValueError):
    """The requested date range is malformed (HTTP 400)."""


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime


def resolve_range(
    timeframe: str = "month",
    start: datetime | None = None,
    end: datetime | None = None,
    now: datetime | None = None,
) -> DateRange:
    """An explicit ``start``/``end`` pair wins over *timeframe*."""
    now = now or datetime.now(timezone.utc)
    if (start is None) != (end is None):
        raise AnalyticsRangeError("start_date and end_date must be given together")
    if start is not None:
        start, end = _utc(start), _utc(end)
        if start > end:
            raise AnalyticsRangeError("start_date must not be after end_date")
        if end - start > MAX_RANGE:
            raise AnalyticsRangeError(f"Date range cannot exceed {MAX_RANGE.days} days")
        return DateRange(start, end)
    if timeframe not in TIMEFRAMES:
        raise AnalyticsRangeError(f"Unknown timeframe: {timeframe}")
    return DateRange(now - TIMEFRAMES[timeframe], now)


def confidence_of(log: PromptGenerationLog) -> float | None:
    if log.confidence_score is not None:
        return float(log.confidence_score)
    if log.validation_score is not None:
        return log.validation_score / 100
    return None


def summarize(logs: Iterable[PromptGenerationLog], date_range: DateRange) -> dict:
    """Aggregate *logs* (already filtered to *date_range*) into plain dicts."""
    logs = list(logs)
    scores = [s for s in (confidence_of(log) for log in logs) if s is not None]

    return {
        "total_generations": len(logs),
        "average_confidence_score": _mean(scores),
        "success_rate": _mean([0 if log.used_fallback else 1 for log in logs]),
        "top_tools": _breakdown(logs, lambda log: log.target_tool or "unknown", "tool"),
        "top_stages": _breakdown(logs, lambda log: log.stage, "stage"),
        "quality_metrics": {
            "high_quality": sum(1 for s in scores if s > HIGH_QUALITY),
            "medium_quality": sum(1 for s in scores if LOW_QUALITY <= s <= HIGH_QUALITY),
            "low_quality": sum(1 for s in scores if s < LOW_QUALITY),
            "unscored": len(logs) - len(scores),
        },
        "generation_trends": _trends(logs, date_range),
        "knowledge_metrics": {
            "knowledge_backed_generations": sum(1 for log in logs if log.knowledge_count > 0),
            "total_snippets": sum(log.knowledge_count for log in logs),
            "average_snippets": _mean([log.knowledge_count for log in logs]),
        },
    }


def load_generation_analytics(
    db: Session,
    user_id: str,
    date_range: DateRange,
    target_tool: str | None = None,
) -> dict:
    query = db.query(PromptGenerationLog).filter(
        PromptGenerationLog.user_id == user_id,
        PromptGenerationLog.created_at >= date_range.start,
        PromptGenerationLog.created_at <= date_range.end,
    )
    if target_tool:
        query = query.filter(PromptGenerationLog.target_tool == target_tool)
    logs = query.order_by(PromptGenerationLog.created_at).all()
    logger.debug("Summarizing %d generation logs for user %s", len(logs), user_id)
    return summarize(logs, date_range)


# ── Internal ───────────────────────────────────────────────────────────

def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _utc(value: datetime) -> datetime:
    return _aware(value).astimezone(timezone.utc)


def _mean(values: list) -> float | None:
    return round(sum(values) / len(values), 4) if values else None


def _breakdown(logs: list, key, label: str) -> list[dict]:
    groups: dict[str, list] = defaultdict(list)
    for log in logs:
        groups[key(log)].append(log)
    rows = [
        {
            label: name,
            "count": len(members),
            "avg_confidence": _mean([s for s in (confidence_of(m) for m in members) if s is not None]),
        }
        for name, members in groups.items()
    ]
    return sorted(rows, key=lambda row: (-row["count"], row[label]))


def _trends(logs: list, date_range: DateRange) -> list[dict]:
    """One entry per calendar day (UTC) in the range, zero-filled."""
    by_day: dict[date, list] = defaultdict(list)
    for log in logs:
        by_day[_utc(log.created_at).date()].append(log)

    days = []
    day = date_range.start.astimezone(timezone.utc).date()
    last = date_range.end.astimezone(timezone.utc).date()
    while day <= last:
        members = by_day.get(day, [])
        days.append({
            "date": day.isoformat(),
            "count": len(members),
            "avg_confidence": _mean([s for s in (confidence_of(m) for m in members) if s is not None]),
        })
        day += timedelta(days=1)
    return days
