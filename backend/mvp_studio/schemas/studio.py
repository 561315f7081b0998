"""Studio schemas: the six stage documents, the wizard state, and request bodies.

Stage documents are frozen and carry a ``schema_version`` so the shape
written by a generator and the shape read back by the front end cannot
drift silently. Every generated document also records its ``source``.
"""
from typing import Literal

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from mvp_studio.schemas.common import (
    CamelModel,
    DesignStyle,
    DocumentSource,
    EnhanceStage,
    Platform,
    RateLimitInfo,
    TargetTool,
)
from mvp_studio.schemas.prompt import PromptValidationResponse

DOCUMENT_SCHEMA_VERSION = 1


class StageDocument(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ── Stage 1 / 2: user input ────────────────────────────────────────────

class AppIdea(StageDocument):
    app_name: str = Field(..., min_length=1, max_length=255)
    platforms: tuple[Platform, ...] = Field(..., min_length=1)
    design_style: DesignStyle
    style_description: str | None = None
    idea_description: str = Field(..., min_length=1)
    target_audience: str | None = None


class ValidationQuestions(StageDocument):
    has_validated: bool = False
    has_discussed: bool = False
    motivation: str | None = None
    preferred_ai_tool: TargetTool | None = Field(None, alias="preferredAITool")
    project_complexity: Literal["simple", "medium", "complex"] | None = None
    technical_experience: Literal["beginner", "intermediate", "advanced"] | None = None


# ── Stage 3: blueprint ─────────────────────────────────────────────────

class Screen(StageDocument):
    id: str
    name: str
    purpose: str = ""
    components: tuple[str, ...] = ()
    navigation: tuple[str, ...] = ()
    type: str = "main"  # main | auth | onboarding | settings | modal


class UserRole(StageDocument):
    name: str
    description: str = ""
    permissions: tuple[str, ...] = ()


class DataModel(StageDocument):
    name: str
    description: str = ""
    fields: tuple[str, ...] = ()
    relationships: tuple[str, ...] = ()


class AppBlueprint(StageDocument):
    schema_version: int = DOCUMENT_SCHEMA_VERSION
    source: DocumentSource = DocumentSource.AI
    screens: tuple[Screen, ...] = ()
    user_roles: tuple[UserRole, ...] = ()
    data_models: tuple[DataModel, ...] = ()
    navigation_flow: str = ""
    architecture: str = ""
    suggested_pattern: str | None = None
    # RAG enhancement (filled by the stage enhancer)
    rag_enhanced: bool = False
    confidence_score: float | None = None
    suggestions: tuple[str, ...] = ()
    tool_specific_recommendations: tuple[str, ...] = ()
    security_considerations: tuple[str, ...] = ()
    scalability_notes: tuple[str, ...] = ()


# ── Stage 4: per-screen prompts ────────────────────────────────────────

class ScreenPrompt(StageDocument):
    schema_version: int = DOCUMENT_SCHEMA_VERSION
    source: DocumentSource = DocumentSource.AI
    screen_id: str
    title: str
    layout: str = ""
    components: str = ""
    behavior: str = ""
    conditional_logic: str = ""
    style_hints: str = ""
    rag_enhanced: bool = False
    confidence_score: float | None = None
    tool_optimizations: tuple[str, ...] = ()
    design_guidelines: tuple[str, ...] = ()


# ── Stage 5: navigation flow ───────────────────────────────────────────

class AppFlow(StageDocument):
    schema_version: int = DOCUMENT_SCHEMA_VERSION
    source: DocumentSource = DocumentSource.TEMPLATE
    flow_logic: str
    conditional_routing: tuple[str, ...] = ()
    back_button_behavior: str = ""
    modal_logic: str = ""
    screen_transitions: tuple[str, ...] = ()


# ── Stage 6: export ────────────────────────────────────────────────────

class ExportPrompts(StageDocument):
    schema_version: int = DOCUMENT_SCHEMA_VERSION
    source: DocumentSource = DocumentSource.TEMPLATE
    unified_prompt: str
    screen_by_screen_prompts: tuple[ScreenPrompt, ...] = ()
    target_tool: TargetTool
    validation_score: int | None = None
    validation_issues: tuple[str, ...] = ()


# ── Wizard state ───────────────────────────────────────────────────────

WIZARD_SCHEMA_VERSION = 1


class WizardState(StageDocument):
    """Immutable value holding everything the six-stage wizard has collected."""

    schema_version: int = WIZARD_SCHEMA_VERSION
    project_id: str | None = None
    current_stage: int = Field(1, ge=1, le=6)
    completed_stages: tuple[int, ...] = ()
    stale_stages: tuple[int, ...] = ()
    elapsed_seconds: int = Field(0, ge=0)

    app_idea: AppIdea | None = None
    validation_questions: ValidationQuestions | None = None
    app_blueprint: AppBlueprint | None = None
    screen_prompts: tuple[ScreenPrompt, ...] = ()
    app_flow: AppFlow | None = None
    export_prompts: ExportPrompts | None = None


# ── Request bodies ─────────────────────────────────────────────────────

class GenerateMvpRequest(CamelModel):
    app_idea: AppIdea
    validation_questions: ValidationQuestions


class StudioSaveRequest(CamelModel):
    project_id: str | None = None
    app_idea: AppIdea
    validation_questions: ValidationQuestions
    app_blueprint: AppBlueprint | None = None
    screen_prompts: list[ScreenPrompt] | None = None
    app_flow: AppFlow | None = None
    export_prompts: ExportPrompts | None = None
    completion_stage: int | None = Field(None, ge=1, le=6)


class SessionSaveRequest(CamelModel):
    project_id: str | None = None
    snapshot: dict


class SessionResponse(CamelModel):
    id: str
    project_id: str | None
    current_stage: int
    completed_stages: list[int]
    stale_stages: list[int]
    elapsed_seconds: int
    is_completed: bool
    schema_version: int
    snapshot: dict


class StageRunRequest(CamelModel):
    state: dict
    target_tool: TargetTool | None = None


class NavigateRequest(CamelModel):
    state: dict
    stage: int = Field(..., ge=1, le=6)


class StageEnhanceRequest(CamelModel):
    stage: EnhanceStage
    data: dict


class PromptAssembleRequest(CamelModel):
    """Either a wizard snapshot in ``state`` or a bare idea (+ validation answers)."""
    state: dict | None = None
    app_idea: AppIdea | None = None
    validation_questions: ValidationQuestions | None = None
    stage: Literal["idea", "screen", "export"] = "idea"
    target_tool: TargetTool | None = None
    screen_id: str | None = None
    use_knowledge: bool = True


# ── Responses ──────────────────────────────────────────────────────────

class GenerateMvpResponse(CamelModel):
    success: bool = True
    project_id: str
    target_tool: TargetTool
    used_fallback: bool
    rate_limit_info: RateLimitInfo


class StudioSaveResponse(CamelModel):
    success: bool = True
    project_id: str
    message: str
    completion_stage: int
    prompts_stored: int = 0


class StageRunResponse(CamelModel):
    success: bool = True
    stage: int
    target_tool: TargetTool | None = None
    used_fallback: bool
    knowledge_count: int = 0
    validation: PromptValidationResponse | None = None
    state: dict


class NavigateResponse(CamelModel):
    success: bool = True
    state: dict


class PromptAssembleResponse(CamelModel):
    success: bool = True
    prompt: str
    stage: str
    target_tool: TargetTool
    knowledge_count: int = 0
    validation: PromptValidationResponse
