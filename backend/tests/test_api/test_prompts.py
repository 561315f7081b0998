"""Tests for the generated prompt library."""
import pytest

from mvp_studio.models import GeneratedPrompt, PromptGenerationLog
from mvp_studio.services import wizard


@pytest.fixture
def prompts(db_session, test_user, other_user):
    rows = [
        GeneratedPrompt(
            user_id=test_user.id, prompt_key="unified", title="Guide v1", content="old",
            prompt_type="unified", target_tool="lovable", version=1, is_current_version=False,
        ),
        GeneratedPrompt(
            user_id=test_user.id, prompt_key="unified", title="Guide v2", content="new",
            prompt_type="unified", target_tool="lovable", version=2, is_current_version=True,
        ),
        GeneratedPrompt(
            user_id=test_user.id, prompt_key="screen_prompt:login", title="Login", content="login",
            prompt_type="screen_prompt", target_tool="lovable", screen_id="login", is_rag_enhanced=True,
        ),
        GeneratedPrompt(
            user_id=other_user.id, prompt_key="unified", title="Not mine", content="theirs",
            prompt_type="unified", target_tool="cursor",
        ),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return {row.title: row.id for row in rows}


class TestListPrompts:
    def test_current_versions_only(self, client, prompts):
        body = client.get("/api/v1/prompts").json()
        assert body["total"] == 2
        assert {item["title"] for item in body["items"]} == {"Guide v2", "Login"}

    def test_history(self, client, prompts):
        body = client.get("/api/v1/prompts?includeHistory=true&promptType=unified").json()
        assert sorted(item["version"] for item in body["items"]) == [1, 2]

    def test_favorites(self, client, prompts):
        client.patch(f"/api/v1/prompts/{prompts['Login']}", json={"is_favorite": True})
        body = client.get("/api/v1/prompts?favorite=true").json()
        assert [item["title"] for item in body["items"]] == ["Login"]


class TestFeedback:
    def test_rating_and_feedback(self, client, prompts):
        resp = client.patch(f"/api/v1/prompts/{prompts['Guide v2']}", json={"user_rating": 5, "user_feedback": "Worked"})
        assert resp.status_code == 200
        assert resp.json()["user_rating"] == 5
        assert resp.json()["content"] == "new"

    def test_rating_out_of_range(self, client, prompts):
        assert client.patch(f"/api/v1/prompts/{prompts['Login']}", json={"user_rating": 9}).status_code == 400

    def test_content_is_not_editable(self, client, prompts):
        resp = client.patch(f"/api/v1/prompts/{prompts['Login']}", json={"content": "rewritten"})
        assert resp.json()["content"] == "login"

    def test_other_users_prompt(self, client, prompts):
        assert client.get(f"/api/v1/prompts/{prompts['Not mine']}").status_code == 404


class TestArchive:
    def test_archived_prompts_are_hidden(self, client, prompts):
        resp = client.delete(f"/api/v1/prompts/{prompts['Login']}")
        assert resp.json() == {"success": True, "message": "Prompt archived"}

        assert client.get("/api/v1/prompts").json()["total"] == 1
        assert client.get("/api/v1/prompts?includeArchived=true").json()["total"] == 2


class TestValidate:
    def test_scores_prompt(self, client):
        resp = client.post("/api/v1/prompts/validate", json={"prompt": "Make it nice"})
        body = resp.json()
        assert body["isValid"] is False
        assert "Prompt is too short" in body["issues"]
        assert body["suggestions"]


class TestGeneratePrompt:
    def test_idea_prompt_from_first_two_stages(self, client, generate_payload, db_session):
        resp = client.post("/api/v1/prompts/generate", json={**generate_payload, "targetTool": "bolt"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["stage"] == "idea"
        assert body["targetTool"] == "bolt"
        assert body["knowledgeCount"] == 0
        assert "TaskMaster Pro" in body["prompt"]
        assert 0 <= body["validation"]["score"] <= 100

        log = db_session.query(PromptGenerationLog).one()
        assert log.stage == "assemble_idea"
        assert log.target_tool == "bolt"
        assert log.validation_score == body["validation"]["score"]

    def test_screen_prompt_for_chosen_screen(self, client, full_state):
        screen = full_state.screen_prompts[-1]
        resp = client.post("/api/v1/prompts/generate", json={
            "state": wizard.to_snapshot(full_state),
            "stage": "screen",
            "screenId": screen.screen_id,
        })

        assert resp.status_code == 200
        assert screen.title in resp.json()["prompt"]

    def test_export_prompt_uses_detected_tool(self, client, full_state):
        resp = client.post("/api/v1/prompts/generate", json={
            "state": wizard.to_snapshot(full_state),
            "stage": "export",
        })

        assert resp.status_code == 200
        assert resp.json()["targetTool"] == "lovable"
        assert resp.json()["stage"] == "export"

    def test_screen_stage_without_screen_prompts(self, client, validated_state):
        resp = client.post("/api/v1/prompts/generate", json={
            "state": wizard.to_snapshot(validated_state),
            "stage": "screen",
        })
        assert resp.status_code == 400
        assert "stage 4" in resp.json()["error"]

    def test_unknown_screen(self, client, full_state):
        resp = client.post("/api/v1/prompts/generate", json={
            "state": wizard.to_snapshot(full_state),
            "stage": "screen",
            "screenId": "nope",
        })
        assert resp.status_code == 400

    def test_app_idea_is_required(self, client, db_session):
        resp = client.post("/api/v1/prompts/generate", json={"stage": "idea"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "App name and description are required"
        assert db_session.query(PromptGenerationLog).count() == 0

    def test_unknown_stage(self, client, generate_payload):
        resp = client.post("/api/v1/prompts/generate", json={**generate_payload, "stage": "flow"})
        assert resp.status_code == 400

    def test_log_written_off_event_loop(self, client, generate_payload, db_write_contexts):
        client.post("/api/v1/prompts/generate", json=generate_payload)
        assert db_write_contexts == [("log_generation", "worker thread")]
