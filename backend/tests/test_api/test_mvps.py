"""Tests for the project (MVP) endpoints."""
import pytest

from mvp_studio.services.stage_runner import fallback_blueprint
from mvp_studio.services.studio_persistence import ProjectStore


@pytest.fixture
def project(db_session, test_user, app_idea, validation):
    return ProjectStore(db_session, test_user.id).create_project(app_idea, validation, generated_prompt="Build it")


class TestListMvps:
    def test_only_own_projects(self, client, project, db_session, other_user, mobile_idea, validation):
        ProjectStore(db_session, other_user.id).create_project(mobile_idea, validation)

        body = client.get("/api/v1/mvps").json()

        assert body["total"] == 1
        assert [item["id"] for item in body["items"]] == [project.id]

    def test_abandoned_hidden_unless_requested(self, client, project):
        client.delete(f"/api/v1/mvps/{project.id}")

        assert client.get("/api/v1/mvps").json()["total"] == 0
        abandoned = client.get("/api/v1/mvps?status=Abandoned").json()
        assert [item["status"] for item in abandoned["items"]] == ["Abandoned"]

    def test_sorting(self, client, db_session, test_user, app_idea, mobile_idea, validation):
        store = ProjectStore(db_session, test_user.id)
        store.create_project(app_idea, validation)
        store.create_project(mobile_idea, validation)

        names = [i["app_name"] for i in client.get("/api/v1/mvps?sortBy=app_name&sortOrder=asc").json()["items"]]
        assert names == ["TaskMaster Pro", "Trailmate"]

    def test_bad_sort_field(self, client):
        assert client.get("/api/v1/mvps?sortBy=user_id").status_code == 400


class TestGetMvp:
    def test_includes_questionnaire(self, client, project):
        body = client.get(f"/api/v1/mvps/{project.id}").json()
        assert body["app_name"] == "TaskMaster Pro"
        assert body["platforms"] == ["web"]
        assert body["questionnaire"]["idea_validated"] is True
        assert body["app_blueprint"] is None

    def test_not_found_for_other_user(self, client, db_session, other_user, app_idea, validation):
        theirs = ProjectStore(db_session, other_user.id).create_project(app_idea, validation)
        resp = client.get(f"/api/v1/mvps/{theirs.id}")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "MVP not found"}


class TestUpdateMvp:
    def test_status_and_fields(self, client, project):
        resp = client.patch(f"/api/v1/mvps/{project.id}", json={"status": "Launched", "target_users": "Agencies"})
        assert resp.json()["status"] == "Launched"
        assert resp.json()["target_users"] == "Agencies"

        # any status may follow any other
        back = client.patch(f"/api/v1/mvps/{project.id}", json={"status": "Yet To Build"})
        assert back.json()["status"] == "Yet To Build"

    def test_null_required_column_is_ignored(self, client, project):
        body = client.patch(f"/api/v1/mvps/{project.id}", json={"app_name": None, "style_description": None}).json()
        assert body["app_name"] == "TaskMaster Pro"
        assert body["style_description"] is None

    def test_completion_stage_is_monotonic(self, client, project):
        assert client.patch(f"/api/v1/mvps/{project.id}", json={"completion_stage": 3}).json()["completion_stage"] == 3
        assert client.patch(f"/api/v1/mvps/{project.id}", json={"completion_stage": 2}).json()["completion_stage"] == 3

    def test_stage_document(self, client, project, app_idea):
        blueprint = fallback_blueprint(app_idea).model_dump(mode="json", by_alias=True)
        body = client.patch(f"/api/v1/mvps/{project.id}", json={"app_blueprint": blueprint}).json()
        assert body["app_blueprint"]["navigationFlow"] == blueprint["navigationFlow"]

    def test_invalid_status(self, client, project):
        assert client.patch(f"/api/v1/mvps/{project.id}", json={"status": "Shipped"}).status_code == 400


class TestDeleteMvp:
    def test_soft_delete(self, client, project, db_session):
        resp = client.delete(f"/api/v1/mvps/{project.id}")
        assert resp.json() == {"success": True, "message": "MVP deleted successfully"}

        db_session.refresh(project)
        assert project.status == "Abandoned"
        # abandoned projects still count toward the quota
        assert client.get("/api/v1/rate-limit/mvp").json()["rateLimitInfo"]["used"] == 1
