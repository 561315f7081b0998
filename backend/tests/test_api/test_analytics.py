"""Tests for the generation analytics endpoint."""
from datetime import datetime, timezone

import pytest

from mvp_studio.models import PromptGenerationLog

BASE = "/api/v1/rag/analytics"
JANUARY = {"startDate": "2026-01-01T00:00:00Z", "endDate": "2026-01-03T23:59:59Z"}


def _at(day, hour):
    return datetime(2026, 1, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def logs(db_session, test_user, other_user):
    db_session.add_all([
        PromptGenerationLog(
            user_id=test_user.id, stage="blueprint", target_tool="lovable",
            validation_score=90, used_fallback=True, created_at=_at(1, 10),
        ),
        PromptGenerationLog(
            user_id=test_user.id, stage="export", target_tool="cursor",
            validation_score=70, knowledge_count=3, created_at=_at(1, 12),
        ),
        PromptGenerationLog(
            user_id=test_user.id, stage="enhance_blueprint", target_tool="lovable",
            confidence_score=0.4, knowledge_count=2, created_at=_at(3, 9),
        ),
        PromptGenerationLog(
            user_id=test_user.id, stage="screen_prompts", target_tool="lovable", created_at=_at(3, 9),
        ),
        PromptGenerationLog(
            user_id=test_user.id, stage="export", target_tool="lovable",
            validation_score=100, created_at=datetime(2025, 12, 20, tzinfo=timezone.utc),
        ),
        PromptGenerationLog(
            user_id=other_user.id, stage="export", target_tool="bolt",
            validation_score=10, created_at=_at(2, 8),
        ),
    ])
    db_session.commit()


class TestAnalytics:
    def test_summary_for_custom_range(self, client, logs):
        resp = client.get(BASE, params=JANUARY)

        assert resp.status_code == 200
        body = resp.json()
        assert body["timeframe"] == "custom"
        analytics = body["analytics"]
        assert analytics["totalGenerations"] == 4
        assert analytics["averageConfidenceScore"] == pytest.approx(0.6667)
        assert analytics["successRate"] == 0.75
        assert analytics["qualityMetrics"] == {
            "highQuality": 1, "mediumQuality": 1, "lowQuality": 1, "unscored": 1,
        }
        assert [(t["tool"], t["count"]) for t in analytics["topTools"]] == [("lovable", 3), ("cursor", 1)]
        assert analytics["topTools"][0]["avgConfidence"] == pytest.approx(0.65)
        assert analytics["knowledgeMetrics"] == {
            "knowledgeBackedGenerations": 2, "totalSnippets": 5, "averageSnippets": 1.25,
        }

    def test_daily_trend_is_zero_filled(self, client, logs):
        trends = client.get(BASE, params=JANUARY).json()["analytics"]["generationTrends"]
        assert [(d["date"], d["count"]) for d in trends] == [
            ("2026-01-01", 2), ("2026-01-02", 0), ("2026-01-03", 2),
        ]
        assert trends[0]["avgConfidence"] == pytest.approx(0.8)
        assert trends[1]["avgConfidence"] is None

    def test_tool_filter(self, client, logs):
        analytics = client.get(BASE, params={**JANUARY, "targetTool": "cursor"}).json()["analytics"]
        assert analytics["totalGenerations"] == 1
        assert analytics["topStages"] == [{"stage": "export", "count": 1, "avgConfidence": 0.7}]

    def test_empty_timeframe(self, client, logs):
        body = client.get(f"{BASE}?timeframe=day").json()
        assert body["timeframe"] == "day"
        assert body["analytics"]["totalGenerations"] == 0
        assert body["analytics"]["averageConfidenceScore"] is None
        assert body["analytics"]["successRate"] is None

    def test_start_without_end(self, client):
        resp = client.get(BASE, params={"startDate": "2026-01-01T00:00:00Z"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "start_date and end_date must be given together"

    def test_start_after_end(self, client):
        resp = client.get(BASE, params={"startDate": "2026-02-01T00:00:00Z", "endDate": "2026-01-01T00:00:00Z"})
        assert resp.status_code == 400

    def test_unknown_timeframe(self, client):
        assert client.get(f"{BASE}?timeframe=decade").status_code == 400

    def test_requires_auth(self, anonymous_client):
        assert anonymous_client.get(BASE).status_code == 401
