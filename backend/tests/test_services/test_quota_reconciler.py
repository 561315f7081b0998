"""Tests for the monthly quota reconciler."""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from unittest.mock import MagicMock

import fakeredis
import pytest
import redis
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from mvp_studio.models import Mvp, RateLimitEvent
from mvp_studio.services.quota_reconciler import (
    QuotaExceededError,
    QuotaReconciler,
    QuotaStatus,
    RedisQuotaCounter,
)

USER = "user-quota"


def _add_projects(db, count, user_id=USER):
    for i in range(count):
        db.add(Mvp(
            user_id=user_id,
            app_name=f"App {i}",
            platforms=["web"],
            style="Minimal & Clean",
            app_description="desc",
        ))
    db.commit()


class BrokenCounter:
    def consume(self, key, limit, window_seconds):
        raise redis.ConnectionError("quota store down")

    def clear(self, keys):
        raise redis.ConnectionError("quota store down")


class RefusingCounter:
    """Counter that always says the window is full."""

    def __init__(self):
        self.clears = 0

    def consume(self, key, limit, window_seconds):
        return False, limit

    def clear(self, keys):
        self.clears += 1


class SpyCounter(RedisQuotaCounter):
    def __init__(self, client):
        super().__init__(client)
        self.clears = 0

    def clear(self, keys):
        self.clears += 1
        super().clear(keys)


class TestQuotaStatus:
    def test_reset_date_format(self):
        status = QuotaStatus(True, 3, 1, 2, datetime(2025, 7, 4, 12, 0, tzinfo=timezone.utc))
        assert status.reset_date == "July 4, 2025"

    def test_reset_is_unix_ms(self):
        reset_at = datetime(2025, 7, 4, tzinfo=timezone.utc)
        status = QuotaStatus(True, 3, 1, 2, reset_at)
        assert status.reset_ms == int(reset_at.timestamp()) * 1000

    def test_to_info_serializes_camel_case(self):
        info = QuotaStatus(True, 3, 1, 2, datetime(2025, 1, 31, tzinfo=timezone.utc)).to_info()
        dumped = info.model_dump(by_alias=True)
        assert dumped["resetDate"] == "January 31, 2025"
        assert dumped["remaining"] == 2


class TestKeys:
    def test_period_and_counter_keys(self, db_session, quota_counter, settings):
        clock = lambda: datetime(2025, 6, 15, tzinfo=timezone.utc)  # noqa: E731
        reconciler = QuotaReconciler(db_session, quota_counter, settings, clock=clock)
        assert reconciler.period_key("abc") == "mvp-generation:abc:2025-06"
        assert reconciler.counter_key("abc") == "@clndr/ratelimit/3-requests/30d:mvp-generation:abc:2025-06"
        assert reconciler.counter_key("abc", 10).startswith("@clndr/ratelimit/10-requests/30d:")


class TestCheckStatus:
    def test_counts_projects_in_window(self, db_session, quota_counter, settings):
        _add_projects(db_session, 2)
        _add_projects(db_session, 3, user_id="someone-else")
        status = QuotaReconciler(db_session, quota_counter, settings).check_status(USER)
        assert status.allowed is True
        assert status.used == 2
        assert status.remaining == 1

    def test_exhausted(self, db_session, quota_counter, settings):
        _add_projects(db_session, 3)
        status = QuotaReconciler(db_session, quota_counter, settings).check_status(USER)
        assert status.allowed is False
        assert status.remaining == 0

    def test_never_touches_redis(self, db_session, settings):
        status = QuotaReconciler(db_session, BrokenCounter(), settings).check_status(USER)
        assert status.allowed is True

    def test_fails_closed_on_database_error(self, quota_counter, settings):
        db = MagicMock(spec=Session)
        db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        status = QuotaReconciler(db, quota_counter, settings).check_status(USER)
        assert status.allowed is False
        assert status.remaining == 0
        db.rollback.assert_called_once()

    def test_used_never_decreases_as_projects_are_added(self, db_session, quota_counter, settings):
        reconciler = QuotaReconciler(db_session, quota_counter, settings)
        seen = []
        for _ in range(3):
            _add_projects(db_session, 1)
            seen.append(reconciler.check_status(USER).used)
        assert seen == sorted(seen)


class TestConsume:
    def test_at_most_limit_sequential(self, db_session, quota_counter, settings):
        reconciler = QuotaReconciler(db_session, quota_counter, settings)
        results = [reconciler.consume(USER).allowed for _ in range(8)]
        assert results.count(True) == 3
        assert results[:3] == [True, True, True]

    def test_at_most_limit_concurrent(self, db_session, fake_redis, settings):
        counter = RedisQuotaCounter(fake_redis)
        reconciler = QuotaReconciler(db_session, counter, settings)
        key = reconciler.counter_key(USER)
        window = settings.MVP_LIMIT_WINDOW_DAYS * 86400

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: counter.consume(key, 3, window)[0], range(8)))

        assert results.count(True) == 3
        assert fake_redis.zcard(key) == 3

    def test_fails_closed_on_redis_error(self, db_session, settings):
        status = QuotaReconciler(db_session, BrokenCounter(), settings).consume(USER)
        assert status.allowed is False
        assert status.remaining == 0

    def test_disabled_always_allows(self, db_session, settings):
        settings.RATE_LIMIT_ENABLED = False
        reconciler = QuotaReconciler(db_session, BrokenCounter(), settings)
        assert reconciler.consume(USER).allowed is True
        assert reconciler.check_status(USER).remaining == 3


class TestEnforce:
    def test_consumes_one_slot(self, db_session, quota_counter, settings):
        _add_projects(db_session, 1)
        status = QuotaReconciler(db_session, quota_counter, settings).enforce(USER)
        assert status.allowed is True

    def test_database_exhausted_raises_with_reset_date(self, db_session, quota_counter, settings):
        _add_projects(db_session, 3)
        with pytest.raises(QuotaExceededError) as excinfo:
            QuotaReconciler(db_session, quota_counter, settings).enforce(USER)
        assert excinfo.value.message.startswith("Monthly MVP generation limit reached (3 MVPs).")
        assert "Limit resets on" in excinfo.value.message
        assert excinfo.value.status.remaining == 0

    def test_agreeing_stores_never_reconcile(self, db_session, fake_redis, settings):
        counter = SpyCounter(fake_redis)
        reconciler = QuotaReconciler(db_session, counter, settings)
        reconciler.enforce(USER)
        _add_projects(db_session, 1)
        reconciler.enforce(USER)
        assert counter.clears == 0

    def test_stale_counter_is_cleared_and_retried(self, db_session, quota_counter, settings):
        reconciler = QuotaReconciler(db_session, quota_counter, settings)
        for _ in range(3):
            reconciler.consume(USER)  # counter full, database empty

        status = reconciler.enforce(USER)

        assert status.allowed is True
        events = db_session.query(RateLimitEvent).filter_by(user_id=USER).all()
        assert [e.event for e in events] == ["mismatch_cleared"]

    def test_racing_requests_for_last_slot_can_both_pass(self, db_session, quota_counter, settings):
        _add_projects(db_session, 2)
        reconciler = QuotaReconciler(db_session, quota_counter, settings)
        for _ in range(2):
            reconciler.consume(USER)  # counter agrees with the database

        first = reconciler.enforce(USER)
        second = reconciler.enforce(USER)  # first project row not inserted yet

        assert first.allowed is True
        assert second.allowed is True
        events = db_session.query(RateLimitEvent).filter_by(user_id=USER).all()
        assert [e.event for e in events] == ["mismatch_cleared"]

    def test_persistent_mismatch_reports_database_numbers(self, db_session, settings):
        _add_projects(db_session, 1)
        counter = RefusingCounter()

        with pytest.raises(QuotaExceededError) as excinfo:
            QuotaReconciler(db_session, counter, settings).enforce(USER)

        assert counter.clears == 1
        assert "Rate limit system detected inconsistency" in excinfo.value.message
        assert "you have used 1/3 MVPs this month" in excinfo.value.message
        assert excinfo.value.status.used == 1
        assert excinfo.value.status.allowed is False
        events = db_session.query(RateLimitEvent).filter_by(user_id=USER).all()
        assert [e.event for e in events] == ["inconsistent"]


class TestReconcile:
    def test_reconcile_on_agreeing_stores_matches_plain_consume(self, db_session, fake_redis, settings):
        reconciled = QuotaReconciler(db_session, RedisQuotaCounter(fake_redis), settings).reconcile(USER)
        plain = QuotaReconciler(db_session, RedisQuotaCounter(fakeredis.FakeRedis(server=fakeredis.FakeServer())), settings).consume(USER)
        assert reconciled.allowed == plain.allowed
        assert reconciled.used == plain.used

    def test_clears_legacy_keys(self, db_session, fake_redis, settings):
        reconciler = QuotaReconciler(db_session, RedisQuotaCounter(fake_redis), settings)
        legacy_key = reconciler.counter_key(USER, 10)
        fake_redis.zadd(legacy_key, {"old": 1})
        reconciler.clear(USER)
        assert fake_redis.exists(legacy_key) == 0

    def test_survives_clear_failure(self, db_session, settings):
        status = QuotaReconciler(db_session, BrokenCounter(), settings).reconcile(USER)
        assert status.allowed is False
