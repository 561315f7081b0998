"""Tests for the prompt template library endpoints."""
import pytest

from mvp_studio.models import PromptTemplate

BASE = "/api/v1/rag/templates"


def _template(**overrides):
    body = {
        "template_name": "Dashboard skeleton",
        "template_content": "Build {{app_name}} for {{audience}}. {{extra}}",
        "template_type": "skeleton",
        "target_tool": "lovable",
        "use_case": "Admin dashboards",
        "project_complexity": "medium",
        "required_variables": ["app_name", "audience"],
        "optional_variables": ["extra"],
    }
    body.update(overrides)
    return body


@pytest.fixture
def library(db_session, test_user, other_user):
    rows = [
        PromptTemplate(
            created_by=test_user.id, template_name="Auth flow", template_content="Add login to {{app_name}}",
            template_type="feature", target_tool="cursor", use_case="Authentication",
            project_complexity="simple", required_variables=["app_name"], success_rate=0.9, usage_count=4,
        ),
        PromptTemplate(
            created_by=other_user.id, template_name="Speed pass", template_content="Profile and optimize",
            template_type="optimization", target_tool="general", use_case="Performance",
            project_complexity="complex", success_rate=0.95, usage_count=1,
        ),
        PromptTemplate(
            created_by=other_user.id, template_name="Untested", template_content="Fix the crash",
            template_type="debugging", target_tool="cursor", use_case="Crashes",
            project_complexity="simple", usage_count=10,
        ),
        PromptTemplate(
            created_by=test_user.id, template_name="Retired", template_content="Old",
            template_type="feature", use_case="Auth", project_complexity="simple", is_active=False,
        ),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return {row.template_name: row.id for row in rows}


class TestCreate:
    def test_create(self, client, test_user):
        resp = client.post(BASE, json=_template())

        assert resp.status_code == 201
        body = resp.json()
        assert body["created_by"] == test_user.id
        assert body["version"] == 1
        assert body["usage_count"] == 0
        assert body["is_active"] is True

    def test_required_variable_must_be_referenced(self, client):
        resp = client.post(BASE, json=_template(required_variables=["app_name", "deadline"]))
        assert resp.status_code == 400
        assert "deadline" in resp.json()["error"]

    def test_unknown_tool(self, client):
        assert client.post(BASE, json=_template(target_tool="notepad")).status_code == 400

    def test_bad_variable_name(self, client):
        assert client.post(BASE, json=_template(optional_variables=["not a name"])).status_code == 400


class TestList:
    def test_best_performing_first_and_active_only(self, client, library):
        body = client.get(BASE).json()
        assert [t["template_name"] for t in body["templates"]] == ["Speed pass", "Auth flow", "Untested"]
        assert body["count"] == 3

    def test_filters(self, client, library):
        body = client.get(f"{BASE}?targetTool=cursor&templateType=debugging").json()
        assert [t["template_name"] for t in body["templates"]] == ["Untested"]

        body = client.get(f"{BASE}?query=auth").json()
        assert [t["template_name"] for t in body["templates"]] == ["Auth flow"]

        body = client.get(f"{BASE}?complexity=simple&limit=1").json()
        assert body["count"] == 1

    def test_retired_template_is_not_found(self, client, library):
        assert client.get(f"{BASE}/{library['Retired']}").status_code == 404


class TestUpdateAndDelete:
    def test_content_change_bumps_version(self, client, library):
        resp = client.put(f"{BASE}/{library['Auth flow']}", json={"template_content": "Add OAuth login to {{app_name}}"})
        assert resp.status_code == 200
        assert resp.json()["version"] == 2

        resp = client.put(f"{BASE}/{library['Auth flow']}", json={"use_case": "OAuth"})
        assert resp.json()["version"] == 2
        assert resp.json()["use_case"] == "OAuth"

    def test_update_rechecks_variables(self, client, library):
        resp = client.put(f"{BASE}/{library['Auth flow']}", json={"template_content": "No placeholders"})
        assert resp.status_code == 400

    def test_other_users_template(self, client, library):
        assert client.put(f"{BASE}/{library['Speed pass']}", json={"use_case": "x"}).status_code == 404
        assert client.delete(f"{BASE}/{library['Speed pass']}").status_code == 404

    def test_delete_is_soft(self, client, library, db_session):
        resp = client.delete(f"{BASE}/{library['Auth flow']}")
        assert resp.json() == {"success": True, "message": "Prompt template deleted successfully"}

        assert client.get(f"{BASE}/{library['Auth flow']}").status_code == 404
        assert db_session.get(PromptTemplate, library["Auth flow"]) is not None


class TestUsage:
    def test_metrics(self, client, library):
        resp = client.patch(f"{BASE}/{library['Speed pass']}/metrics", json={"success_rate": 0.5, "confidence_score": 0.7})
        body = resp.json()
        assert body["usage_count"] == 2
        assert body["success_rate"] == 0.5
        assert body["avg_confidence_score"] == 0.7

    def test_metrics_out_of_range(self, client, library):
        assert client.patch(f"{BASE}/{library['Speed pass']}/metrics", json={"success_rate": 2}).status_code == 400

    def test_render(self, client):
        created = client.post(BASE, json=_template()).json()
        resp = client.post(f"{BASE}/{created['id']}/render", json={"variables": {"app_name": "Trailmate", "audience": "hikers"}})
        assert resp.status_code == 200
        assert resp.json()["content"] == "Build Trailmate for hikers. "

    def test_render_missing_required(self, client):
        created = client.post(BASE, json=_template()).json()
        resp = client.post(f"{BASE}/{created['id']}/render", json={"variables": {"app_name": "Trailmate"}})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Missing required template variables: audience"
