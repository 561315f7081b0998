"""Generated prompt schemas."""
from datetime import datetime
from pydantic import BaseModel, Field
from mvp_studio.schemas.common import CamelModel, PromptType


class PromptResponse(BaseModel):
    id: str
    mvp_id: str | None
    prompt_key: str
    title: str
    content: str
    prompt_type: PromptType
    target_tool: str
    stage_number: int | None
    screen_id: str | None
    is_rag_enhanced: bool
    confidence_score: float | None
    enhancement_suggestions: list[str]
    tool_optimizations: list[str]
    knowledge_sources: list
    tags: list[str]
    version: int
    is_current_version: bool
    user_rating: int | None
    user_feedback: str | None
    is_favorite: bool
    is_archived: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PromptFeedbackUpdate(BaseModel):
    """Only feedback and archival fields are mutable; content never is."""
    user_rating: int | None = Field(None, ge=1, le=5)
    user_feedback: str | None = None
    is_favorite: bool | None = None
    is_archived: bool | None = None


class PromptValidateRequest(BaseModel):
    prompt: str


class PromptValidationResponse(CamelModel):
    is_valid: bool
    score: int
    issues: list[str]
    suggestions: list[str]


class PromptListResponse(BaseModel):
    success: bool = True
    items: list[PromptResponse]
    total: int
