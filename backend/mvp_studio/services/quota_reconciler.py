"""Monthly MVP quota: a fast Redis sliding-window counter reconciled against the database.

Two counters exist for the same budget:

  - **Quota store** (Redis sorted set per user and calendar month): atomic
    check-and-increment, safe under concurrent requests for one user.
  - **Relational store** (``mvps`` rows created in the trailing window): the
    auditable ground truth.

Only a request that is about to create a project may consume a slot. Status
reads (``check_status``) count database rows and never touch Redis. When the
two counters disagree the database wins: ``reconcile`` clears the Redis key
and retries the consume exactly once.

Usage::

    reconciler = QuotaReconciler(db, counter)
    status = reconciler.enforce(user.id)   # raises QuotaExceededError
"""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import redis
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mvp_studio.config import Settings, get_settings
from mvp_studio.models import Mvp, RateLimitEvent
from mvp_studio.schemas.common import RateLimitInfo

logger = logging.getLogger(__name__)

FAIL_CLOSED_RESET = timedelta(hours=24)


# ── Results and errors ─────────────────────────────────────────────────

@dataclass
class QuotaStatus:
    """Outcome of a quota read or consume."""
    allowed: bool
    limit: int
    used: int
    remaining: int
    reset_at: datetime

    @property
    def reset_ms(self) -> int:
        return int(self.reset_at.timestamp() * 1000)

    @property
    def reset_date(self) -> str:
        """Human date such as ``July 4, 2025``."""
        return f"{self.reset_at:%B} {self.reset_at.day}, {self.reset_at.year}"

    def to_info(self) -> RateLimitInfo:
        return RateLimitInfo(
            limit=self.limit,
            remaining=self.remaining,
            used=self.used,
            reset=self.reset_ms,
            reset_date=self.reset_date,
        )


class QuotaExceededError(Exception):
    """The user may not create another project right now (HTTP 429)."""

    def __init__(self, message: str, status: QuotaStatus):
        super().__init__(message)
        self.message = message
        self.status = status


# ── Quota store ────────────────────────────────────────────────────────

class RedisQuotaCounter:
    """Sliding-window counter stored as a Redis sorted set of timestamps.

    ``consume`` runs as a WATCH/MULTI/EXEC transaction (retried by redis-py on
    ``WatchError``), so concurrent consumers for the same key can never push
    the window past ``limit``.
    """

    def __init__(self, client: redis.Redis):
        self._client = client

    def consume(self, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
        """Try to take one slot. Returns ``(allowed, used_after_call)``."""
        now_ms = int(time.time() * 1000)
        window_ms = window_seconds * 1000
        floor = now_ms - window_ms
        member = f"{now_ms}-{uuid.uuid4().hex[:12]}"

        def _attempt(pipe) -> tuple[bool, int]:
            used = pipe.zcount(key, f"({floor}", "+inf")
            allowed = used < limit
            pipe.multi()
            pipe.zremrangebyscore(key, "-inf", floor)
            if allowed:
                pipe.zadd(key, {member: now_ms})
            pipe.pexpire(key, window_ms)
            return allowed, used + 1 if allowed else used

        return self._client.transaction(_attempt, key, value_from_callable=True)

    def clear(self, keys: list[str]) -> None:
        if keys:
            self._client.delete(*keys)


def get_quota_counter():
    """FastAPI dependency yielding a request-scoped Redis quota counter."""
    client = redis.from_url(get_settings().REDIS_URL, socket_timeout=5, socket_connect_timeout=5)
    try:
        yield RedisQuotaCounter(client)
    finally:
        client.close()


# ── Reconciler ─────────────────────────────────────────────────────────

class QuotaReconciler:
    """Decides whether a user may create a project and keeps Redis honest."""

    def __init__(
        self,
        db: Session,
        counter: RedisQuotaCounter,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.db = db
        self.counter = counter
        self.settings = settings or get_settings()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def limit(self) -> int:
        return self.settings.MVP_MONTHLY_LIMIT

    @property
    def window(self) -> timedelta:
        return timedelta(days=self.settings.MVP_LIMIT_WINDOW_DAYS)

    # ── Keys ───────────────────────────────────────────────────────────

    def period_key(self, user_id: str) -> str:
        """``mvp-generation:{user}:{YYYY-MM}`` for the current calendar month."""
        now = self._clock()
        return f"mvp-generation:{user_id}:{now.year}-{now.month:02d}"

    def counter_key(self, user_id: str, limit: int | None = None) -> str:
        limit = self.limit if limit is None else limit
        days = self.settings.MVP_LIMIT_WINDOW_DAYS
        return f"{self.settings.RATE_LIMIT_PREFIX}/{limit}-requests/{days}d:{self.period_key(user_id)}"

    def _all_counter_keys(self, user_id: str) -> list[str]:
        keys = [self.counter_key(user_id)]
        for legacy in self.settings.legacy_limits:
            key = self.counter_key(user_id, legacy)
            if key not in keys:
                keys.append(key)
        return keys

    # ── Operations ─────────────────────────────────────────────────────

    def check_status(self, user_id: str) -> QuotaStatus:
        """Count projects created in the trailing window. Never touches Redis.

        Fail-closed: a database error reports ``allowed=False, remaining=0``.
        """
        now = self._clock()
        if not self.settings.RATE_LIMIT_ENABLED:
            return QuotaStatus(True, self.limit, 0, self.limit, now + self.window)

        try:
            used = (
                self.db.query(func.count(Mvp.id))
                .filter(Mvp.user_id == user_id, Mvp.created_at >= now - self.window)
                .scalar()
            ) or 0
        except SQLAlchemyError as exc:
            logger.error("Quota count failed for user %s: %s", user_id, exc)
            self.db.rollback()
            return QuotaStatus(False, self.limit, self.limit, 0, now + FAIL_CLOSED_RESET)

        remaining = max(0, self.limit - used)
        return QuotaStatus(remaining > 0, self.limit, min(used, self.limit), remaining, now + self.window)

    def consume(self, user_id: str) -> QuotaStatus:
        """Atomically take one slot from the Redis counter.

        Only call this when a project is about to be created. Redis errors
        count as "not allowed".
        """
        now = self._clock()
        if not self.settings.RATE_LIMIT_ENABLED:
            return QuotaStatus(True, self.limit, 0, self.limit, now + self.window)

        try:
            allowed, used = self.counter.consume(
                self.counter_key(user_id), self.limit, int(self.window.total_seconds())
            )
        except redis.RedisError as exc:
            logger.error("Quota store unavailable for user %s: %s", user_id, exc)
            return QuotaStatus(False, self.limit, self.limit, 0, now + FAIL_CLOSED_RESET)

        used = min(used, self.limit)
        return QuotaStatus(allowed, self.limit, used, self.limit - used, now + self.window)

    def clear(self, user_id: str) -> None:
        """Delete the current and legacy counter keys. Raises ``redis.RedisError``."""
        self.counter.clear(self._all_counter_keys(user_id))
        logger.info("Cleared quota counter for user %s", user_id)

    def reconcile(self, user_id: str) -> QuotaStatus:
        """Clear the Redis counter and retry ``consume`` exactly once."""
        try:
            self.clear(user_id)
        except redis.RedisError as exc:
            logger.error("Could not clear quota counter for user %s: %s", user_id, exc)
        return self.consume(user_id)

    def enforce(self, user_id: str) -> QuotaStatus:
        """Full check-then-consume protocol for project-creating requests.

        Raises ``QuotaExceededError`` when the database says the budget is
        spent, or when Redis still refuses after one reconcile. In the second
        case the error carries the database-derived numbers.

        The Redis counter alone is atomic; this protocol is not. Two requests
        racing for the last slot can both pass: the loser's refused consume
        looks like a stale counter because the winner's project row is not
        committed yet, so the key is cleared and the retry succeeds. The
        monthly limit can therefore be overshot by the number of concurrent
        creations in flight.
        """
        pre = self.check_status(user_id)
        if not pre.allowed:
            raise QuotaExceededError(
                f"Monthly MVP generation limit reached ({pre.limit} MVPs). "
                f"Limit resets on {pre.reset_date}.",
                pre,
            )

        result = self.consume(user_id)
        if result.allowed:
            return result

        logger.warning(
            "Quota mismatch for user %s: database shows %d remaining but the counter refused; reconciling",
            user_id, pre.remaining,
        )
        retry = self.reconcile(user_id)
        if retry.allowed:
            self._record_event(user_id, "mismatch_cleared", pre)
            return retry

        fresh = self.check_status(user_id)
        self._record_event(user_id, "inconsistent", fresh)
        raise QuotaExceededError(
            "Rate limit system detected inconsistency. Based on database count, "
            f"you have used {fresh.used}/{fresh.limit} MVPs this month.",
            QuotaStatus(False, fresh.limit, fresh.used, fresh.remaining, fresh.reset_at),
        )

    def record_manual_clear(self, user_id: str) -> None:
        self._record_event(user_id, "manual_clear", None)

    # ── Internal ───────────────────────────────────────────────────────

    def _record_event(self, user_id: str, event: str, status: QuotaStatus | None) -> None:
        """Best-effort audit row; failures are logged and swallowed."""
        try:
            self.db.add(RateLimitEvent(
                user_id=user_id,
                period_key=self.period_key(user_id),
                event=event,
                db_used=status.used if status else None,
                limit=self.limit,
            ))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Failed to record rate-limit event %s for %s: %s", event, user_id, exc)
