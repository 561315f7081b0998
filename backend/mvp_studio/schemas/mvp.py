"""MVP schemas for request/response validation."""
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field
from mvp_studio.schemas.common import MvpStatus, Platform
from mvp_studio.schemas.studio import AppBlueprint, AppFlow, ExportPrompts, ScreenPrompt


class QuestionnaireResponse(BaseModel):
    idea_validated: bool
    talked_to_people: bool
    motivation: str | None
    preferred_ai_tool: str | None
    project_complexity: str | None
    technical_experience: str | None

    model_config = {"from_attributes": True}


class MvpUpdate(BaseModel):
    app_name: str | None = Field(None, min_length=1, max_length=255)
    platforms: list[Platform] | None = Field(None, min_length=1)
    style_description: str | None = None
    app_description: str | None = Field(None, min_length=1)
    target_users: str | None = None
    generated_prompt: str | None = None
    # Any status may follow any other
    status: MvpStatus | None = None
    completion_stage: int | None = Field(None, ge=1, le=6)
    app_blueprint: AppBlueprint | None = None
    screen_prompts: list[ScreenPrompt] | None = None
    app_flow: AppFlow | None = None
    export_prompts: ExportPrompts | None = None


class MvpResponse(BaseModel):
    id: str
    user_id: str
    app_name: str
    platforms: list[str]
    style: str
    style_description: str | None
    app_description: str
    target_users: str | None
    generated_prompt: str
    status: MvpStatus
    completion_stage: int
    is_mvp_studio_project: bool
    app_blueprint: dict | None = None
    screen_prompts: list | None = None
    app_flow: dict | None = None
    export_prompts: dict | None = None
    questionnaire: QuestionnaireResponse | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MvpListItem(BaseModel):
    id: str
    app_name: str
    platforms: list[str]
    style: str
    status: MvpStatus
    completion_stage: int
    is_mvp_studio_project: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MvpListResponse(BaseModel):
    success: bool = True
    items: list[MvpListItem]
    total: int


MvpSortField = Literal["created_at", "updated_at", "app_name", "status"]
