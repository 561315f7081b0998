"""Relational persistence for studio projects, sessions and prompt rows.

``ProjectStore`` is scoped to one authenticated user; every query filters on
that user id, so rows owned by someone else are simply not found.

Write policy:
  - Project + Questionnaire are created in ONE transaction.
  - Completion stage only moves forward.
  - Prompt rows and generation logs are auxiliary: failures are logged,
    rolled back and never fail the parent request.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mvp_studio.models import GeneratedPrompt, Mvp, PromptGenerationLog, Questionnaire, StudioSession
from mvp_studio.schemas.common import MvpStatus, PromptType
from mvp_studio.schemas.studio import (
    AppBlueprint,
    AppFlow,
    AppIdea,
    ExportPrompts,
    ScreenPrompt,
    StudioSaveRequest,
    ValidationQuestions,
    WizardState,
)
from mvp_studio.services import wizard
from mvp_studio.services.prompt_assembler import render_blueprint, render_screen

logger = logging.getLogger(__name__)


def _dump(document) -> dict:
    return document.model_dump(mode="json", by_alias=True)


def payload_documents(payload: StudioSaveRequest) -> dict:
    """Stage documents of a save payload as ``apply_documents`` keyword arguments."""
    return {
        "blueprint": payload.app_blueprint,
        "screen_prompts": payload.screen_prompts,
        "flow": payload.app_flow,
        "export": payload.export_prompts,
    }


def infer_completion_stage(payload: StudioSaveRequest) -> int:
    """Highest stage whose document is present in a save payload."""
    if payload.export_prompts is not None:
        return 6
    if payload.app_flow is not None:
        return 5
    if payload.screen_prompts:
        return 4
    if payload.app_blueprint is not None:
        return 3
    return 2


class ProjectStore:
    """Owner-scoped access to projects, questionnaires, sessions and prompts."""

    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id

    # ── Projects ───────────────────────────────────────────────────────

    def get_project(self, project_id: str) -> Mvp | None:
        return (
            self.db.query(Mvp)
            .filter(Mvp.id == project_id, Mvp.user_id == self.user_id)
            .first()
        )

    def create_project(
        self,
        app_idea: AppIdea,
        validation: ValidationQuestions,
        *,
        generated_prompt: str = "",
        is_studio_project: bool = False,
        completion_stage: int = 1,
        documents: dict | None = None,
    ) -> Mvp:
        """Insert the project and its questionnaire in one transaction.

        *documents* holds optional stage documents keyed like
        ``apply_documents``. Raises ``SQLAlchemyError`` after rolling back
        both rows.
        """
        mvp = Mvp(
            user_id=self.user_id,
            generated_prompt=generated_prompt,
            status=MvpStatus.YET_TO_BUILD.value,
            completion_stage=completion_stage,
            is_mvp_studio_project=is_studio_project,
        )
        self._apply_idea(mvp, app_idea)
        mvp.questionnaire = Questionnaire(user_id=self.user_id)
        self._apply_validation(mvp.questionnaire, validation)
        if documents:
            self.apply_documents(mvp, **documents)

        try:
            self.db.add(mvp)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to create project for user %s", self.user_id)
            raise
        self.db.refresh(mvp)
        logger.info("Created project %s (%s) for user %s", mvp.id, mvp.app_name, self.user_id)
        return mvp

    def save_studio_project(self, mvp: Mvp, payload: StudioSaveRequest) -> Mvp:
        """Apply a wizard save to an existing project (same transaction for both rows)."""
        self._apply_idea(mvp, payload.app_idea)
        if mvp.questionnaire is None:
            mvp.questionnaire = Questionnaire(user_id=self.user_id)
        self._apply_validation(mvp.questionnaire, payload.validation_questions)
        self.apply_documents(mvp, **payload_documents(payload))
        mvp.is_mvp_studio_project = True
        mvp.advance_completion(payload.completion_stage or infer_completion_stage(payload))

        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to update project %s", mvp.id)
            raise
        self.db.refresh(mvp)
        return mvp

    def apply_documents(
        self,
        mvp: Mvp,
        *,
        blueprint: AppBlueprint | None = None,
        screen_prompts: list[ScreenPrompt] | tuple[ScreenPrompt, ...] | None = None,
        flow: AppFlow | None = None,
        export: ExportPrompts | None = None,
    ) -> None:
        """Copy any supplied stage documents onto the row (no commit)."""
        if blueprint is not None:
            mvp.app_blueprint = _dump(blueprint)
        if screen_prompts is not None:
            mvp.screen_prompts = [_dump(p) for p in screen_prompts]
        if flow is not None:
            mvp.app_flow = _dump(flow)
        if export is not None:
            mvp.export_prompts = _dump(export)
            mvp.generated_prompt = export.unified_prompt

    @staticmethod
    def _apply_idea(mvp: Mvp, app_idea: AppIdea) -> None:
        mvp.app_name = app_idea.app_name
        mvp.platforms = [p.value for p in app_idea.platforms]
        mvp.style = app_idea.design_style.label
        mvp.style_description = app_idea.style_description
        mvp.app_description = app_idea.idea_description
        mvp.target_users = app_idea.target_audience

    @staticmethod
    def _apply_validation(questionnaire: Questionnaire, validation: ValidationQuestions) -> None:
        questionnaire.idea_validated = validation.has_validated
        questionnaire.talked_to_people = validation.has_discussed
        questionnaire.motivation = validation.motivation
        questionnaire.preferred_ai_tool = (
            validation.preferred_ai_tool.value if validation.preferred_ai_tool else None
        )
        questionnaire.project_complexity = validation.project_complexity
        questionnaire.technical_experience = validation.technical_experience

    # ── Prompt rows ────────────────────────────────────────────────────

    def store_studio_prompts(self, mvp: Mvp, payload: StudioSaveRequest) -> int:
        """Best-effort: write enhanced blueprint/screen rows and the export row.

        Returns the number of new prompt versions written.
        """
        rows: list[dict] = []
        app_idea = payload.app_idea
        tool = payload.export_prompts.target_tool.value if payload.export_prompts else "general"

        blueprint = payload.app_blueprint
        if blueprint is not None and blueprint.rag_enhanced:
            rows.append(dict(
                prompt_key="blueprint",
                title=f"{app_idea.app_name} - App Blueprint",
                content=render_blueprint(app_idea, blueprint),
                prompt_type=PromptType.BLUEPRINT.value,
                stage_number=3,
                is_rag_enhanced=True,
                confidence_score=blueprint.confidence_score,
                enhancement_suggestions=list(blueprint.suggestions),
                tool_optimizations=list(blueprint.tool_specific_recommendations),
                tags=["blueprint", "architecture"],
            ))

        for prompt in payload.screen_prompts or ():
            if not prompt.rag_enhanced:
                continue
            rows.append(dict(
                prompt_key=f"screen_prompt:{prompt.screen_id}",
                title=f"{app_idea.app_name} - {prompt.title}",
                content=render_screen(app_idea, prompt),
                prompt_type=PromptType.SCREEN_PROMPT.value,
                stage_number=4,
                screen_id=prompt.screen_id,
                is_rag_enhanced=True,
                confidence_score=prompt.confidence_score,
                tool_optimizations=list(prompt.tool_optimizations),
                tags=["screen", prompt.screen_id],
            ))

        export = payload.export_prompts
        if export is not None and export.unified_prompt.strip():
            rows.append(dict(
                prompt_key="unified",
                title=f"{app_idea.app_name} - Complete Implementation Guide",
                content=export.unified_prompt,
                prompt_type=PromptType.UNIFIED.value,
                stage_number=6,
                confidence_score=(export.validation_score / 100) if export.validation_score is not None else None,
                enhancement_suggestions=list(export.validation_issues),
                tags=["export", export.target_tool.value],
            ))

        if not rows:
            return 0

        written = 0
        try:
            for row in rows:
                if self._add_prompt_version(mvp.id, row, tool):
                    written += 1
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Failed to store prompt rows for project %s: %s", mvp.id, exc)
            return 0
        return written

    def _add_prompt_version(self, mvp_id: str, row: dict, tool: str) -> bool:
        """Add a new current version unless the content is unchanged."""
        current = (
            self.db.query(GeneratedPrompt)
            .filter(
                GeneratedPrompt.user_id == self.user_id,
                GeneratedPrompt.mvp_id == mvp_id,
                GeneratedPrompt.prompt_key == row["prompt_key"],
                GeneratedPrompt.is_current_version.is_(True),
            )
            .first()
        )
        if current is not None and current.content == row["content"] and current.target_tool == tool:
            return False

        latest = (
            self.db.query(func.max(GeneratedPrompt.version))
            .filter(
                GeneratedPrompt.user_id == self.user_id,
                GeneratedPrompt.mvp_id == mvp_id,
                GeneratedPrompt.prompt_key == row["prompt_key"],
            )
            .scalar()
        ) or 0
        if current is not None:
            current.is_current_version = False

        self.db.add(GeneratedPrompt(
            user_id=self.user_id,
            mvp_id=mvp_id,
            target_tool=tool,
            version=latest + 1,
            is_current_version=True,
            **row,
        ))
        return True

    # ── Generation logs ────────────────────────────────────────────────

    def log_generation(
        self,
        stage: str,
        *,
        mvp_id: str | None = None,
        target_tool: str | None = None,
        knowledge_count: int = 0,
        confidence_score: float | None = None,
        validation_score: int | None = None,
        used_fallback: bool = False,
    ) -> None:
        """Best-effort analytics row.

        *mvp_id* usually comes from a client-held snapshot; it is linked only
        when the project belongs to this user, otherwise the row is unlinked.
        """
        try:
            if mvp_id is not None and self.get_project(mvp_id) is None:
                logger.debug("Not linking %s log to project %s (not owned by %s)", stage, mvp_id, self.user_id)
                mvp_id = None
            self.db.add(PromptGenerationLog(
                user_id=self.user_id,
                mvp_id=mvp_id,
                stage=stage,
                target_tool=target_tool,
                knowledge_count=knowledge_count,
                confidence_score=confidence_score,
                validation_score=validation_score,
                used_fallback=used_fallback,
            ))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Failed to log %s generation for user %s: %s", stage, self.user_id, exc)

    # ── Sessions ───────────────────────────────────────────────────────

    def load_session(self, project_id: str | None = None) -> StudioSession | None:
        """Latest snapshot for the user, optionally for one project."""
        query = self.db.query(StudioSession).filter(StudioSession.user_id == self.user_id)
        if project_id is not None:
            query = query.filter(StudioSession.mvp_id == project_id)
        return query.order_by(StudioSession.last_saved_at.desc()).first()

    def save_session(self, state: WizardState, project_id: str | None = None) -> StudioSession:
        """Upsert the snapshot for (user, project). Last write wins."""
        query = self.db.query(StudioSession).filter(StudioSession.user_id == self.user_id)
        if project_id is None:
            query = query.filter(StudioSession.mvp_id.is_(None))
        else:
            query = query.filter(StudioSession.mvp_id == project_id)
        session = query.first()
        if session is None:
            session = StudioSession(user_id=self.user_id, mvp_id=project_id)
            self.db.add(session)

        session.session_data = wizard.to_snapshot(state)
        session.schema_version = state.schema_version
        session.current_stage = state.current_stage
        session.completed_stages = list(state.completed_stages)
        session.stale_stages = list(state.stale_stages)
        session.elapsed_seconds = state.elapsed_seconds
        session.is_completed = wizard.is_complete(state)
        session.last_saved_at = datetime.now(timezone.utc)

        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to save studio session for user %s", self.user_id)
            raise
        self.db.refresh(session)
        return session
