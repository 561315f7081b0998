"""Shared / common schemas: enums, camelCase base model, envelopes."""
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ── Enums ──────────────────────────────────────────────────────────────

class Platform(str, Enum):
    WEB = "web"
    MOBILE = "mobile"


class DesignStyle(str, Enum):
    MINIMAL = "minimal"
    PLAYFUL = "playful"
    BUSINESS = "business"

    @property
    def label(self) -> str:
        return DESIGN_STYLE_LABELS[self]


DESIGN_STYLE_LABELS: dict[DesignStyle, str] = {
    DesignStyle.MINIMAL: "Minimal & Clean",
    DesignStyle.PLAYFUL: "Playful & Animated",
    DesignStyle.BUSINESS: "Business & Professional",
}


class MvpStatus(str, Enum):
    YET_TO_BUILD = "Yet To Build"
    BUILT = "Built"
    LAUNCHED = "Launched"
    ABANDONED = "Abandoned"


class TargetTool(str, Enum):
    LOVABLE = "lovable"
    CURSOR = "cursor"
    V0 = "v0"
    BOLT = "bolt"
    CLAUDE = "claude"
    CHATGPT = "chatgpt"


class PromptType(str, Enum):
    BLUEPRINT = "blueprint"
    SCREEN_PROMPT = "screen_prompt"
    UNIFIED = "unified"
    EXPORT = "export"


class DocumentSource(str, Enum):
    AI = "ai"              # parsed from the LLM response
    FALLBACK = "fallback"  # deterministic placeholder after an LLM failure
    TEMPLATE = "template"  # deterministic by design (flow, export)


class EnhanceStage(str, Enum):
    BLUEPRINT = "blueprint"
    SCREEN_PROMPTS = "screen_prompts"


class TemplateType(str, Enum):
    SKELETON = "skeleton"
    FEATURE = "feature"
    OPTIMIZATION = "optimization"
    DEBUGGING = "debugging"


class ProjectComplexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


# ── Base models ────────────────────────────────────────────────────────

class CamelModel(BaseModel):
    """Wire models shared with the studio front end (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RateLimitInfo(CamelModel):
    limit: int
    remaining: int
    used: int
    reset: int  # unix ms
    reset_date: str


class RateLimitResponse(CamelModel):
    success: bool = True
    rate_limit_info: RateLimitInfo


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    rate_limit_info: RateLimitInfo | None = Field(None, serialization_alias="rateLimitInfo")
