"""Test configuration and fixtures."""
import asyncio

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mvp_studio.config import Settings, get_settings
from mvp_studio.database import Base, build_engine, create_tables, get_db
from mvp_studio.main import create_app
from mvp_studio.schemas.studio import AppIdea, ValidationQuestions, WizardState
from mvp_studio.services import wizard
from mvp_studio.services.auth_dependency import AuthenticatedUser, get_current_user
from mvp_studio.services.quota_reconciler import RedisQuotaCounter, get_quota_counter
from mvp_studio.services.stage_runner import build_app_flow, fallback_blueprint, fallback_screen_prompt
from mvp_studio.services.studio_persistence import ProjectStore
from mvp_studio.services.wizard import Stage, SubmitStage

TEST_USER = AuthenticatedUser(id="user-1111", email="founder@example.com")
OTHER_USER = AuthenticatedUser(id="user-2222", email="someone@example.com")
JWT_SECRET = "test-jwt-secret"


@pytest.fixture
def settings():
    """Settings with no LLM key and no knowledge service, so every fallback runs."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        LLM_API_KEY="",
        KNOWLEDGE_SEARCH_URL="",
        AUTH_JWT_SECRET=JWT_SECRET,
        AUTH_JWT_AUDIENCE="authenticated",
        MVP_MONTHLY_LIMIT=3,
        RATE_LIMIT_ENABLED=True,
    )


@pytest.fixture
def engine():
    """In-memory SQLite shared across sessions through a single connection."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_tables(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer())


@pytest.fixture
def quota_counter(fake_redis):
    return RedisQuotaCounter(fake_redis)


@pytest.fixture
def app(session_factory, quota_counter, settings):
    """Application with the database, quota store and settings swapped for test doubles."""
    application = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_quota_counter] = lambda: quota_counter
    application.dependency_overrides[get_settings] = lambda: settings
    return application


@pytest.fixture
def test_user():
    return TEST_USER


@pytest.fixture
def other_user():
    return OTHER_USER


@pytest.fixture
def client(app):
    """Client authenticated as ``TEST_USER``."""
    app.dependency_overrides[get_current_user] = lambda: TEST_USER
    return TestClient(app)


@pytest.fixture
def anonymous_client(app):
    """Client going through the real bearer-token check."""
    return TestClient(app)


# ── Domain samples ─────────────────────────────────────────────────────

@pytest.fixture
def app_idea():
    return AppIdea(
        app_name="TaskMaster Pro",
        platforms=("web",),
        design_style="minimal",
        idea_description="A task manager that helps small teams plan sprints and track deadlines.",
        target_audience="Remote startup teams of 3-10 people",
    )


@pytest.fixture
def mobile_idea():
    return AppIdea(
        app_name="Trailmate",
        platforms=("web", "mobile"),
        design_style="playful",
        style_description="Bright greens, rounded cards",
        idea_description="Log hikes, share trail photos and plan weekend routes with friends.",
        target_audience="Weekend hikers",
    )


@pytest.fixture
def validation():
    return ValidationQuestions(
        has_validated=True,
        has_discussed=True,
        motivation="Our own team keeps missing deadlines.",
        project_complexity="medium",
        technical_experience="intermediate",
    )


@pytest.fixture
def validated_state(app_idea, validation):
    """Wizard state with stages 1 and 2 completed."""
    return WizardState(
        current_stage=3,
        completed_stages=(1, 2),
        app_idea=app_idea,
        validation_questions=validation,
    )


@pytest.fixture
def generate_payload():
    return {
        "appIdea": {
            "appName": "TaskMaster Pro",
            "platforms": ["web"],
            "designStyle": "minimal",
            "ideaDescription": "A task manager that helps small teams plan sprints and track deadlines.",
            "targetAudience": "Remote startup teams of 3-10 people",
        },
        "validationQuestions": {
            "hasValidated": True,
            "hasDiscussed": False,
            "motivation": "Scratching our own itch",
        },
    }


@pytest.fixture
def full_state(validated_state):
    """Wizard state with stages 1-5 completed from the fallback producers."""
    idea = validated_state.app_idea
    blueprint = fallback_blueprint(idea)
    state = wizard.reduce(validated_state, SubmitStage(Stage.BLUEPRINT, blueprint))
    state = wizard.reduce(state, SubmitStage(
        Stage.SCREEN_PROMPTS, [fallback_screen_prompt(idea, blueprint, s) for s in blueprint.screens]
    ))
    return wizard.reduce(state, SubmitStage(Stage.FLOW, build_app_flow(idea, blueprint)))


@pytest.fixture
def db_write_contexts(monkeypatch):
    """Record whether each ``ProjectStore`` write ran on the event loop or a worker thread."""
    contexts = []

    def _tracked(method):
        def wrapper(self, *args, **kwargs):
            try:
                asyncio.get_running_loop()
                contexts.append((method.__name__, "event loop"))
            except RuntimeError:
                contexts.append((method.__name__, "worker thread"))
            return method(self, *args, **kwargs)
        return wrapper

    for name in ("create_project", "log_generation"):
        monkeypatch.setattr(ProjectStore, name, _tracked(getattr(ProjectStore, name)))
    return contexts
