"""Prompt template schemas."""
import re
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from mvp_studio.schemas.common import ProjectComplexity, TemplateType
from mvp_studio.services.template_library import TEMPLATE_TOOLS

_VARIABLE_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _check_tool(value: str | None) -> str | None:
    if value is not None and value not in TEMPLATE_TOOLS:
        raise ValueError(f"target_tool must be one of: {', '.join(sorted(TEMPLATE_TOOLS))}")
    return value


def _check_names(value: list[str] | None) -> list[str] | None:
    if value is None:
        return None
    bad = [v for v in value if not _VARIABLE_NAME.fullmatch(v)]
    if bad:
        raise ValueError(f"invalid variable names: {', '.join(bad)}")
    return list(dict.fromkeys(value))


class TemplateCreate(BaseModel):
    template_name: str = Field(..., min_length=1, max_length=255)
    template_content: str = Field(..., min_length=1)
    template_type: TemplateType
    target_tool: str = "general"
    use_case: str = Field(..., min_length=1, max_length=255)
    project_complexity: ProjectComplexity
    required_variables: list[str] = Field(default_factory=list)
    optional_variables: list[str] = Field(default_factory=list)

    @field_validator("target_tool")
    @classmethod
    def check_target_tool(cls, v):
        return _check_tool(v)

    @field_validator("required_variables", "optional_variables")
    @classmethod
    def check_variable_names(cls, v):
        return _check_names(v)


class TemplateUpdate(BaseModel):
    """Fields left out (or null) keep their stored value."""
    template_name: str | None = Field(None, min_length=1, max_length=255)
    template_content: str | None = Field(None, min_length=1)
    template_type: TemplateType | None = None
    target_tool: str | None = None
    use_case: str | None = Field(None, min_length=1, max_length=255)
    project_complexity: ProjectComplexity | None = None
    required_variables: list[str] | None = None
    optional_variables: list[str] | None = None

    @field_validator("target_tool")
    @classmethod
    def check_target_tool(cls, v):
        return _check_tool(v)

    @field_validator("required_variables", "optional_variables")
    @classmethod
    def check_variable_names(cls, v):
        return _check_names(v)


class TemplateMetricsUpdate(BaseModel):
    success_rate: float | None = Field(None, ge=0, le=1)
    confidence_score: float | None = Field(None, ge=0, le=1)


class TemplateRenderRequest(BaseModel):
    variables: dict[str, str] = Field(default_factory=dict)


class TemplateRenderResponse(BaseModel):
    success: bool = True
    template_id: str
    version: int
    content: str


class TemplateResponse(BaseModel):
    id: str
    created_by: str
    template_name: str
    template_content: str
    template_type: TemplateType
    target_tool: str
    use_case: str
    project_complexity: ProjectComplexity
    required_variables: list[str]
    optional_variables: list[str]
    version: int
    is_active: bool
    usage_count: int
    success_rate: float | None
    avg_confidence_score: float | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TemplateListResponse(BaseModel):
    success: bool = True
    templates: list[TemplateResponse]
    count: int
