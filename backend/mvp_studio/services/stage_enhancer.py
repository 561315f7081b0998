"""Knowledge-backed enhancement of the blueprint and screen-prompt stages.

Enhancement never regenerates a document. It retrieves knowledge snippets
for the stage, then layers recommendations, guidelines and a confidence
score on top of what the user already has.

Confidence starts at 0.4:
  - +0.2 when the document has screens
  - +0.2 when it has data models (blueprint) or written prompts (screens)
  - +0.1 when more than five snippets were retrieved
  - +0.1 when the target tool has its own optimization list
capped at 1.0.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from mvp_studio.config import Settings
from mvp_studio.schemas.common import EnhanceStage, TargetTool
from mvp_studio.schemas.studio import (
    AppBlueprint,
    AppIdea,
    ScreenPrompt,
    ValidationQuestions,
)
from mvp_studio.services.knowledge_client import KnowledgeSnippet, search_knowledge, sort_snippets
from mvp_studio.services.prompt_assembler import render_screen
from mvp_studio.services.tool_profiles import ToolProfile, detect_target_tool, get_profile
from mvp_studio.services.wizard import WizardTransitionError
from mvp_studio.utils.prompts import STYLE_SCREEN_GUIDANCE

logger = logging.getLogger(__name__)

BLUEPRINT_CATEGORIES = [
    "architecture", "data_modeling", "screen_design", "user_flows",
    "backend", "database", "authentication", "api_design",
]

SCREEN_PROMPTS_CATEGORIES = [
    "ui_design", "component_patterns", "responsive_design", "accessibility",
    "design_systems", "user_interface", "frontend", "styling",
]

# Categories for the knowledge suggestions shown next to each wizard stage
STAGE_SUGGESTION_CATEGORIES: dict[str, list[str]] = {
    "app_idea": ["ideation", "market_research", "app_concepts"],
    "validation": ["validation_methods", "market_analysis", "user_research"],
    "blueprint": ["architecture", "data_modeling", "screen_design"],
    "screen_prompts": ["ui_design", "component_patterns", "responsive_design"],
    "flow_description": ["navigation", "user_experience", "flow_patterns"],
    "export_composer": ["tool_optimization", "prompt_engineering", "deployment"],
}

_COMPLEXITY_LEVEL = {"simple": "beginner", "medium": "intermediate", "complex": "advanced"}


@dataclass
class StageEnhancement:
    stage: EnhanceStage
    target_tool: TargetTool
    confidence_score: float
    suggestions: list[str]
    knowledge: list[KnowledgeSnippet]
    blueprint: AppBlueprint | None = None
    screen_prompts: tuple[ScreenPrompt, ...] = ()
    optimized_prompts: dict[str, str] = field(default_factory=dict)
    design_system_guidelines: list[str] = field(default_factory=list)
    component_patterns: list[str] = field(default_factory=list)
    tool_optimizations: list[str] = field(default_factory=list)

    def to_payload(self) -> dict:
        """camelCase body for the enhance-stage response."""
        payload = {
            "stage": self.stage.value,
            "targetTool": self.target_tool.value,
            "confidenceScore": self.confidence_score,
            "suggestions": self.suggestions,
            "relevantKnowledge": [
                {
                    "id": k.id,
                    "title": k.title,
                    "documentType": k.document_type,
                    "categories": list(k.categories),
                    "similarityScore": k.similarity_score,
                }
                for k in self.knowledge
            ],
        }
        if self.blueprint is not None:
            payload["enhancedBlueprint"] = self.blueprint.model_dump(mode="json", by_alias=True)
        if self.screen_prompts:
            payload["enhancedPrompts"] = {
                "screens": [p.model_dump(mode="json", by_alias=True) for p in self.screen_prompts],
                "optimizedPrompts": self.optimized_prompts,
                "designSystemGuidelines": self.design_system_guidelines,
                "componentPatterns": self.component_patterns,
                "toolSpecificOptimizations": self.tool_optimizations,
            }
        return payload


# ── Entry point ────────────────────────────────────────────────────────

async def enhance_stage(stage: EnhanceStage, data: dict, settings: Settings | None = None) -> StageEnhancement:
    """Parse the stage payload and run the matching enhancer.

    *data* carries ``appIdea``, ``validationQuestions`` and either
    ``appBlueprint`` or ``screenPrompts``.
    """
    stage = EnhanceStage(stage)
    needed = "appBlueprint" if stage == EnhanceStage.BLUEPRINT else "screenPrompts"
    if not data.get("appIdea") or not data.get("validationQuestions") or not data.get(needed):
        label = "blueprint" if stage == EnhanceStage.BLUEPRINT else "screen prompts"
        raise WizardTransitionError(
            f"App idea, validation questions, and {label} data are required for this stage"
        )

    try:
        app_idea = AppIdea.model_validate(data["appIdea"])
        validation = ValidationQuestions.model_validate(data["validationQuestions"])
        if stage == EnhanceStage.BLUEPRINT:
            blueprint = AppBlueprint.model_validate(data["appBlueprint"])
        else:
            prompts = tuple(ScreenPrompt.model_validate(p) for p in data["screenPrompts"])
    except (ValidationError, TypeError) as exc:
        detail = exc.errors()[0]["msg"] if isinstance(exc, ValidationError) else str(exc)
        raise WizardTransitionError(f"Invalid {stage.value} payload: {detail}") from exc

    if stage == EnhanceStage.BLUEPRINT:
        return await enhance_blueprint(app_idea, validation, blueprint, settings)
    return await enhance_screen_prompts(app_idea, validation, prompts, settings)


async def stage_suggestions(stage: str, query: str, settings: Settings | None = None) -> list[dict]:
    """Short knowledge previews for one wizard stage."""
    snippets = await search_knowledge(
        query,
        categories=STAGE_SUGGESTION_CATEGORIES.get(stage, []),
        max_results=5,
        settings=settings,
    )
    return [
        {
            "title": s.title,
            "content": s.content[:200] + "..." if len(s.content) > 200 else s.content,
            "relevance": s.similarity_score,
            "categories": list(s.categories),
        }
        for s in sort_snippets(snippets)
    ]


# ── Blueprint ──────────────────────────────────────────────────────────

async def enhance_blueprint(
    app_idea: AppIdea,
    validation: ValidationQuestions,
    blueprint: AppBlueprint,
    settings: Settings | None = None,
) -> StageEnhancement:
    tool = detect_target_tool(app_idea, validation)
    profile = get_profile(tool)
    query = (
        f"{app_idea.app_name} {app_idea.idea_description} architecture "
        f"{' '.join(p.value for p in app_idea.platforms)} {tool.value}"
    )
    knowledge = sort_snippets(await search_knowledge(
        query, categories=BLUEPRINT_CATEGORIES, target_tools=[tool.value], max_results=8, settings=settings,
    ))
    logger.debug(
        "Blueprint enhancement for %s: %d snippets (complexity=%s)",
        app_idea.app_name, len(knowledge),
        _COMPLEXITY_LEVEL.get(validation.project_complexity or "medium"),
    )

    confidence = _confidence(bool(blueprint.screens), bool(blueprint.data_models), knowledge, profile)
    suggestions = []
    if not blueprint.architecture:
        suggestions.append("Define a clear application architecture")
    if not blueprint.data_models:
        suggestions.append("Add data models to better structure your application")
    if knowledge:
        suggestions.append(f"Apply insights from {len(knowledge)} relevant architecture patterns")
    suggestions.append(f"Optimize for {profile.name} development workflow")

    enhanced = blueprint.model_copy(update={
        "architecture": _enhance_architecture(blueprint, knowledge, profile),
        "rag_enhanced": True,
        "confidence_score": confidence,
        "suggestions": tuple(suggestions),
        "tool_specific_recommendations": profile.blueprint_optimizations,
        "security_considerations": tuple(_security_considerations(knowledge)),
        "scalability_notes": tuple(_scalability_notes(knowledge)),
    })
    return StageEnhancement(
        stage=EnhanceStage.BLUEPRINT,
        target_tool=tool,
        confidence_score=confidence,
        suggestions=suggestions,
        knowledge=knowledge,
        blueprint=enhanced,
        tool_optimizations=list(profile.blueprint_optimizations),
    )


def _enhance_architecture(blueprint: AppBlueprint, knowledge: list[KnowledgeSnippet], profile: ToolProfile) -> str:
    architecture = blueprint.architecture or "Standard web application architecture"
    marker = "\n\nTool-Specific Recommendations:"
    if marker in architecture:
        # already enhanced once; rebuild from the original text
        architecture = architecture.split(marker, 1)[0]
    sections = [architecture]
    if profile.blueprint_optimizations:
        sections.append("Tool-Specific Recommendations:\n" + "\n".join(profile.blueprint_optimizations))
    insights = [k.content[:200] for k in knowledge if "architecture" in k.categories][:3]
    if insights:
        sections.append("Architecture Insights:\n" + "\n".join(insights))
    return "\n\n".join(sections)


def _security_considerations(knowledge: list[KnowledgeSnippet]) -> list[str]:
    notes = [
        "Implement proper authentication and authorization",
        "Use HTTPS for all communications",
        "Validate and sanitize all user inputs",
    ]
    for k in knowledge:
        text = k.content.lower()
        if not ("security" in text or "authentication" in text or "authentication" in k.categories):
            continue
        if "RLS" in k.content or "row level security" in text:
            _add_once(notes, "Implement Row Level Security (RLS) for data protection")
        if "JWT" in k.content or "token" in text:
            _add_once(notes, "Use secure token-based authentication")
    return notes


def _scalability_notes(knowledge: list[KnowledgeSnippet]) -> list[str]:
    notes = [
        "Design for horizontal scaling",
        "Implement proper caching strategies",
        "Optimize database queries and indexes",
    ]
    for k in knowledge:
        text = k.content.lower()
        if not ("scalability" in text or "performance" in text or "performance" in k.categories):
            continue
        if "CDN" in k.content:
            _add_once(notes, "Consider CDN for static asset delivery")
        if "microservices" in text:
            _add_once(notes, "Consider microservices architecture for complex applications")
    return notes


# ── Screen prompts ─────────────────────────────────────────────────────

async def enhance_screen_prompts(
    app_idea: AppIdea,
    validation: ValidationQuestions,
    prompts: tuple[ScreenPrompt, ...],
    settings: Settings | None = None,
) -> StageEnhancement:
    tool = detect_target_tool(app_idea, validation)
    profile = get_profile(tool)
    style = app_idea.design_style.value
    query = f"UI design {style} {' '.join(p.value for p in app_idea.platforms)} components {tool.value}"
    knowledge = sort_snippets(await search_knowledge(
        query, categories=SCREEN_PROMPTS_CATEGORIES, target_tools=[tool.value], max_results=10, settings=settings,
    ))

    has_written = any(p.layout or p.components or p.behavior for p in prompts)
    confidence = _confidence(bool(prompts), has_written, knowledge, profile)

    suggestions = []
    if not has_written:
        suggestions.append("Generate detailed prompts for each screen")
    if any("accessibility" in k.categories for k in knowledge):
        suggestions.append("Include accessibility considerations in your UI design")
    if any("responsive_design" in k.categories for k in knowledge):
        suggestions.append("Implement responsive design patterns for all screen sizes")
    suggestions.append(f"Optimize UI components for {profile.name} development")

    guidelines = _design_system_guidelines(knowledge, tool)
    patterns = _component_patterns(knowledge, tool)
    ui_patterns = [
        k.content[:150] for k in knowledge
        if "ui_design" in k.categories or "component_patterns" in k.categories
    ][:3]

    optimized: dict[str, str] = {}
    for prompt in prompts:
        text = render_screen(app_idea, prompt)
        if profile.screen_optimizations:
            text += f"\n## {profile.name} Optimizations\n" + "\n".join(f"- {o}" for o in profile.screen_optimizations)
        text += f"\n\n## {app_idea.design_style.label} Design Style\n{STYLE_SCREEN_GUIDANCE[style]}"
        if ui_patterns:
            text += "\n\n## Relevant UI Patterns\n" + "\n".join(ui_patterns)
        optimized[prompt.screen_id] = text

    enhanced = tuple(
        p.model_copy(update={
            "rag_enhanced": True,
            "confidence_score": confidence,
            "tool_optimizations": profile.screen_optimizations,
            "design_guidelines": tuple(guidelines),
        })
        for p in prompts
    )
    return StageEnhancement(
        stage=EnhanceStage.SCREEN_PROMPTS,
        target_tool=tool,
        confidence_score=confidence,
        suggestions=suggestions,
        knowledge=knowledge,
        screen_prompts=enhanced,
        optimized_prompts=optimized,
        design_system_guidelines=guidelines,
        component_patterns=patterns,
        tool_optimizations=list(profile.screen_optimizations),
    )


def _design_system_guidelines(knowledge: list[KnowledgeSnippet], tool: TargetTool) -> list[str]:
    guidelines = [
        "Maintain consistent spacing and typography",
        "Use a cohesive color palette throughout",
        "Implement reusable component patterns",
    ]
    if tool == TargetTool.LOVABLE:
        guidelines += ["Use shadcn/ui components for consistency", "Follow Tailwind CSS design tokens"]
    elif tool == TargetTool.V0:
        guidelines += ["Focus on modern, visually appealing components", "Implement smooth animations and transitions"]

    for k in knowledge:
        text = k.content.lower()
        if "design_systems" not in k.categories and "design system" not in text:
            continue
        if "atomic design" in text:
            _add_once(guidelines, "Follow atomic design principles (atoms, molecules, organisms)")
        if "accessibility" in text:
            _add_once(guidelines, "Ensure WCAG 2.1 compliance for accessibility")
    return guidelines


def _component_patterns(knowledge: list[KnowledgeSnippet], tool: TargetTool) -> list[str]:
    patterns = [
        "Use composition over inheritance for components",
        "Implement proper prop validation and TypeScript interfaces",
        "Create reusable, single-responsibility components",
    ]
    if tool == TargetTool.LOVABLE:
        patterns += ["Leverage shadcn/ui base components", "Use React hooks for state management"]
    elif tool == TargetTool.CURSOR:
        patterns += ["Focus on clean, maintainable component code", "Implement proper error boundaries"]

    for k in knowledge:
        text = k.content.lower()
        if "component_patterns" not in k.categories and "component" not in text:
            continue
        if "compound components" in text:
            _add_once(patterns, "Use compound component patterns for complex UI")
        if "render props" in text:
            _add_once(patterns, "Consider render props for flexible component APIs")
    return patterns


# ── Shared ─────────────────────────────────────────────────────────────

def _confidence(has_screens: bool, has_detail: bool, knowledge: list, profile: ToolProfile) -> float:
    score = 0.4
    if has_screens:
        score += 0.2
    if has_detail:
        score += 0.2
    if len(knowledge) > 5:
        score += 0.1
    if profile.has_optimizations:
        score += 0.1
    return round(min(score, 1.0), 2)


def _add_once(items: list[str], item: str) -> None:
    if item not in items:
        items.append(item)
