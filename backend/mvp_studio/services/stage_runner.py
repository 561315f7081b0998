"""Server-side producers for the generated wizard stages.

  - Stage 3: blueprint from the LLM, deterministic fallback on any failure
  - Stage 4: one prompt per blueprint screen, LLM-refined with fallback
  - Stage 5: navigation-flow document (template)
  - Stage 6: unified export prompt via the prompt assembler

Every produced document records its ``source`` (``ai`` / ``fallback`` /
``template``). ``run_stage`` ties a producer to the state machine: it checks
prerequisites, produces the document and applies ``SubmitStage``.

The single-shot generator (``generate_mvp_prompt``) lives here too: it asks
the LLM to expand the assembled idea prompt and falls back to that prompt.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from mvp_studio.config import Settings, get_settings
from mvp_studio.schemas.common import DocumentSource, Platform, TargetTool
from mvp_studio.schemas.studio import (
    AppBlueprint,
    AppFlow,
    AppIdea,
    DataModel,
    ExportPrompts,
    Screen,
    ScreenPrompt,
    UserRole,
    ValidationQuestions,
    WizardState,
)
from mvp_studio.services import wizard
from mvp_studio.services.knowledge_client import KnowledgeSnippet, search_knowledge
from mvp_studio.services.llm_generation_client import generate_text
from mvp_studio.services.prompt_assembler import AssemblyStage, assemble
from mvp_studio.services.prompt_validator import PromptValidation, validate_prompt
from mvp_studio.services.tool_profiles import detect_target_tool, get_profile
from mvp_studio.services.wizard import Stage, WizardTransitionError
from mvp_studio.utils.json_utils import (
    safe_parse_json,
    validate_blueprint_schema,
    validate_screen_prompts_schema,
)
from mvp_studio.utils.prompts import (
    BLUEPRINT_JSON_TEMPLATE,
    SCREEN_PROMPTS_JSON_TEMPLATE,
    SCREEN_STYLE_HINTS,
)

logger = logging.getLogger(__name__)

EXPORT_KNOWLEDGE_CATEGORIES = ["ui_patterns", "architecture", "best_practices"]


@dataclass
class StageRun:
    """Result of running one generated stage."""
    state: WizardState
    stage: int
    used_fallback: bool
    target_tool: TargetTool | None = None
    knowledge_count: int = 0
    validation: PromptValidation | None = None


# ── Stage 3: blueprint ─────────────────────────────────────────────────

def fallback_blueprint(app_idea: AppIdea) -> AppBlueprint:
    """Deterministic blueprint built only from the idea fields.

    The app name and description appear verbatim in ``architecture``.
    """
    has_mobile = Platform.MOBILE in app_idea.platforms
    screens = [
        Screen(
            id="home", name="Home Screen", purpose="Main landing page with key features",
            components=("Header", "Navigation", "Hero Section", "Feature Cards"),
            navigation=("login", "signup", "features"), type="main",
        ),
        Screen(
            id="login", name="Login Screen", purpose="User authentication",
            components=("Login Form", "Social Login", "Forgot Password Link"),
            navigation=("home", "signup", "dashboard"), type="auth",
        ),
        Screen(
            id="dashboard", name="Dashboard", purpose="Main user interface after login",
            components=("Sidebar", "Main Content", "User Profile", "Quick Actions"),
            navigation=("profile", "settings", "features"), type="main",
        ),
    ]
    if has_mobile:
        screens.append(Screen(
            id="onboarding", name="Onboarding Flow", purpose="Introduce new users to the app",
            components=("Welcome Screen", "Feature Tour", "Permissions"),
            navigation=("login", "signup"), type="onboarding",
        ))

    flow = ["Home -> Login/Signup -> Dashboard -> Features", "Dashboard <-> Profile <-> Settings"]
    if has_mobile:
        flow.append("Onboarding -> Login/Signup")

    return AppBlueprint(
        source=DocumentSource.FALLBACK,
        screens=tuple(screens),
        user_roles=(
            UserRole(
                name="Regular User",
                description="Standard user with basic app functionality",
                permissions=("view_content", "create_content", "edit_own_content"),
            ),
            UserRole(
                name="Admin",
                description="Administrator with full access to app features",
                permissions=("view_content", "create_content", "edit_content", "delete_content", "manage_users"),
            ),
        ),
        data_models=(
            DataModel(
                name="User", description="User account information",
                fields=("id", "email", "name", "avatar", "role", "created_at"),
                relationships=("has_many_content", "belongs_to_role"),
            ),
            DataModel(
                name="Content", description="Main content entity",
                fields=("id", "title", "description", "user_id", "status", "created_at"),
                relationships=("belongs_to_user",),
            ),
        ),
        navigation_flow="\n".join(flow),
        architecture=(
            f"Component-based architecture with state management for {app_idea.app_name}. "
            f"{app_idea.idea_description}"
        ),
        suggested_pattern="MVC (Model-View-Controller) pattern",
    )


async def generate_blueprint(
    app_idea: AppIdea,
    validation: ValidationQuestions | None,
    settings: Settings | None = None,
) -> AppBlueprint:
    """Ask the LLM for a blueprint; fall back on any failure."""
    prompt = BLUEPRINT_JSON_TEMPLATE.format(
        app_name=app_idea.app_name,
        description=app_idea.idea_description,
        platforms=", ".join(p.value for p in app_idea.platforms),
        style_label=app_idea.design_style.label,
        target_users=app_idea.target_audience or "General users",
        complexity=(validation.project_complexity if validation else None) or "medium",
    )
    raw = await generate_text(prompt, settings)
    if raw is None:
        return fallback_blueprint(app_idea)

    parsed = safe_parse_json(raw)
    if not parsed.ok:
        logger.warning("Blueprint answer was not JSON; using fallback. Preview: %s", parsed.raw_preview[:200])
        return fallback_blueprint(app_idea)

    ok, violations = validate_blueprint_schema(parsed.data)
    if not ok:
        logger.warning("Blueprint answer failed schema checks (%s); using fallback", "; ".join(violations[:3]))
        return fallback_blueprint(app_idea)

    try:
        return AppBlueprint.model_validate({**parsed.data, "source": DocumentSource.AI})
    except ValidationError as exc:
        logger.warning("Blueprint answer rejected: %s; using fallback", exc.errors()[0]["msg"])
        return fallback_blueprint(app_idea)


# ── Stage 4: screen prompts ────────────────────────────────────────────

def fallback_screen_prompt(app_idea: AppIdea, blueprint: AppBlueprint, screen: Screen) -> ScreenPrompt:
    style = app_idea.design_style.value
    platforms = [p.value for p in app_idea.platforms]
    components = "\n".join(f"- {c}: Interactive and responsive" for c in screen.components)
    style_notes = app_idea.style_description or ""
    roles = ", ".join(r.name for r in blueprint.user_roles) or "all users"

    return ScreenPrompt(
        source=DocumentSource.FALLBACK,
        screen_id=screen.id,
        title=f"{screen.name} Implementation",
        layout=(
            f"Create a {style} {screen.name.lower()} with the following layout:\n"
            f"- Purpose: {screen.purpose}\n"
            f"- Platform: {', '.join(platforms)}\n"
            f"- Components: {', '.join(screen.components)}\n"
            f"- Navigation: Links to {', '.join(screen.navigation) or 'none'}"
        ),
        components=(
            f"Implement these components for {screen.name}:\n{components}\n\nStyle: {style}"
            + (f"\nAdditional style notes: {style_notes}" if style_notes else "")
        ),
        behavior=(
            f"Add these behaviors to {screen.name}:\n"
            "- User interactions for all clickable elements\n"
            "- Form validation (if applicable)\n"
            "- Loading states for async operations\n"
            "- Error handling and user feedback\n"
            f"- Responsive design for {' and '.join(platforms)}"
        ),
        conditional_logic=(
            f"Implement conditional logic for {screen.name}:\n"
            "- Show/hide elements based on user state\n"
            f"- Handle different user roles: {roles}\n"
            "- Navigation guards and permissions\n"
            "- Dynamic content based on data availability"
        ),
        style_hints=(
            f"Style this {screen.name} with {style} design:\n"
            f"- {SCREEN_STYLE_HINTS[style]}\n"
            "- Consistent with overall app theme\n"
            "- Accessible and user-friendly"
            + (f"\n- {style_notes}" if style_notes else "")
        ),
    )


async def generate_screen_prompts(
    app_idea: AppIdea,
    blueprint: AppBlueprint,
    target_tool: TargetTool,
    settings: Settings | None = None,
) -> tuple[ScreenPrompt, ...]:
    """One prompt per blueprint screen, in blueprint order.

    A single LLM call refines all screens; any screen the answer leaves out
    (or the whole answer, on failure) gets the templated fallback.
    """
    if not blueprint.screens:
        raise WizardTransitionError("The blueprint has no screens to write prompts for")

    fallbacks = [fallback_screen_prompt(app_idea, blueprint, s) for s in blueprint.screens]

    prompt = SCREEN_PROMPTS_JSON_TEMPLATE.format(
        tool_name=get_profile(target_tool).name,
        app_name=app_idea.app_name,
        platforms=", ".join(p.value for p in app_idea.platforms),
        style_label=app_idea.design_style.label,
        description=app_idea.idea_description,
        roles=", ".join(r.name for r in blueprint.user_roles) or "General users",
        screens="\n".join(
            f"- {s.id}: {s.name} ({s.type}) - {s.purpose}. Components: {', '.join(s.components)}"
            for s in blueprint.screens
        ),
    )
    raw = await generate_text(prompt, settings)
    if raw is None:
        return tuple(fallbacks)

    parsed = safe_parse_json(raw)
    ok, violations = validate_screen_prompts_schema(parsed.data) if parsed.ok else (False, ["not JSON"])
    if not ok:
        logger.warning("Screen prompt answer unusable (%s); using fallback", "; ".join(violations[:3]))
        return tuple(fallbacks)

    by_id: dict[str, dict] = {}
    for item in parsed.data["screens"]:
        by_id.setdefault(str(item["screenId"]), item)

    result: list[ScreenPrompt] = []
    for screen, fallback in zip(blueprint.screens, fallbacks):
        item = by_id.get(screen.id)
        if item is None:
            result.append(fallback)
            continue
        try:
            result.append(ScreenPrompt.model_validate({
                **item,
                "screenId": screen.id,
                "title": item.get("title") or fallback.title,
                "conditionalLogic": item.get("conditionalLogic") or fallback.conditional_logic,
                "styleHints": item.get("styleHints") or fallback.style_hints,
                "source": DocumentSource.AI,
            }))
        except ValidationError as exc:
            logger.warning("Screen prompt for %s rejected: %s", screen.id, exc.errors()[0]["msg"])
            result.append(fallback)
    return tuple(result)


# ── Stage 5: flow ──────────────────────────────────────────────────────

def build_app_flow(app_idea: AppIdea, blueprint: AppBlueprint | None = None) -> AppFlow:
    has_mobile = Platform.MOBILE in app_idea.platforms
    style = app_idea.design_style.value
    roles = ", ".join(r.name for r in blueprint.user_roles) if blueprint and blueprint.user_roles else None

    flow_logic = (
        f"App Flow Logic for {app_idea.app_name}:\n\n"
        f"1. Entry Point: {'Onboarding -> ' if has_mobile else ''}Home Screen\n"
        "2. Authentication Flow: Login/Signup -> Dashboard\n"
        "3. Main Navigation: Dashboard <-> Features <-> Profile <-> Settings\n"
        "4. Content Flow: Browse -> View Details -> Actions -> Feedback\n"
        "5. Exit Points: Logout -> Home, App Close -> Save State\n\n"
        "Key Considerations:\n"
        f"- {style} design principles throughout\n"
        f"- Responsive behavior for {' and '.join(p.value for p in app_idea.platforms)} platforms\n"
        f"- User role-based access control{f' ({roles})' if roles else ''}"
    )

    transitions = [
        "Fade transitions for content changes",
        "Slide transitions for navigation",
        "Scale animations for modal open/close",
        "Loading spinners for async operations",
    ]
    if style == "playful":
        transitions += ["Bounce effects for interactive elements", "Colorful progress indicators"]
    elif style == "minimal":
        transitions += ["Subtle fade effects", "Clean slide animations"]
    else:
        transitions += ["Professional slide transitions", "Structured progress indicators"]

    return AppFlow(
        source=DocumentSource.TEMPLATE,
        flow_logic=flow_logic,
        conditional_routing=(
            "If user is not authenticated -> Redirect to Login",
            "If user lacks permissions -> Show Access Denied",
            "If content is loading -> Show Loading State",
            "If error occurs -> Show Error Page with Retry",
            "If offline -> Show Offline Mode",
            f"If {'mobile' if has_mobile else 'web'} -> Optimize for platform",
        ),
        back_button_behavior=(
            "- From Dashboard -> Exit app confirmation\n"
            "- From Feature screens -> Return to Dashboard\n"
            "- From Modal -> Close modal, return to previous screen\n"
            "- From Forms -> Confirm unsaved changes\n"
            "- From Error pages -> Return to last valid screen\n"
            "- Maintain navigation history stack"
        ),
        modal_logic=(
            "- Confirmation dialogs for destructive actions\n"
            "- Form modals for quick data entry\n"
            "- Image/content viewers for media\n"
            "- Settings overlays for quick access\n"
            "- Error/success notifications\n"
            "- Loading overlays for async operations"
        ),
        screen_transitions=tuple(transitions),
    )


# ── Stage 6: export ────────────────────────────────────────────────────

def build_export(
    state: WizardState,
    target_tool: TargetTool,
    knowledge: list[KnowledgeSnippet] | None = None,
) -> tuple[ExportPrompts, PromptValidation]:
    unified = assemble(state, target_tool, AssemblyStage.EXPORT, knowledge)
    validation = validate_prompt(unified)
    export = ExportPrompts(
        source=DocumentSource.TEMPLATE,
        unified_prompt=unified,
        screen_by_screen_prompts=state.screen_prompts,
        target_tool=target_tool,
        validation_score=validation.score,
        validation_issues=tuple(validation.issues),
    )
    return export, validation


# ── Orchestration ──────────────────────────────────────────────────────

def resolve_target_tool(state: WizardState, requested: TargetTool | None = None) -> TargetTool:
    if requested is not None:
        return requested
    if state.export_prompts is not None:
        return state.export_prompts.target_tool
    return detect_target_tool(state.app_idea, state.validation_questions)


async def run_stage(
    state: WizardState,
    stage: int,
    target_tool: TargetTool | None = None,
    settings: Settings | None = None,
) -> StageRun:
    """Produce the document for a generated stage and submit it.

    Parameters
    ----------
    state : accumulated wizard state
    stage : 3, 4, 5 or 6 (stages 1 and 2 are user input)
    target_tool : tool for stages 4 and 6; detected from the idea if omitted

    Raises
    ------
    WizardTransitionError : the stage is not generated, or upstream data is missing
    """
    settings = settings or get_settings()
    if stage not in (Stage.BLUEPRINT, Stage.SCREEN_PROMPTS, Stage.FLOW, Stage.EXPORT):
        raise WizardTransitionError(f"Stage {stage} is filled in by the user and cannot be generated")
    wizard.require_stage_inputs(state, stage)
    stage = Stage(stage)
    tool = resolve_target_tool(state, target_tool)

    if stage == Stage.BLUEPRINT:
        document = await generate_blueprint(state.app_idea, state.validation_questions, settings)
        run = StageRun(state, stage, document.source == DocumentSource.FALLBACK, tool)
    elif stage == Stage.SCREEN_PROMPTS:
        document = await generate_screen_prompts(state.app_idea, state.app_blueprint, tool, settings)
        used_fallback = any(p.source == DocumentSource.FALLBACK for p in document)
        run = StageRun(state, stage, used_fallback, tool)
    elif stage == Stage.FLOW:
        document = build_app_flow(state.app_idea, state.app_blueprint)
        run = StageRun(state, stage, False, tool)
    else:
        knowledge = await search_knowledge(
            f"{state.app_idea.app_name}: {state.app_idea.idea_description}",
            categories=EXPORT_KNOWLEDGE_CATEGORIES,
            target_tools=[tool.value],
            settings=settings,
        )
        document, validation = build_export(state, tool, knowledge)
        run = StageRun(state, stage, False, tool, len(knowledge), validation)

    run.state = wizard.reduce(state, wizard.SubmitStage(stage, document))
    logger.info("Stage %d generated (tool=%s, fallback=%s)", stage, tool.value, run.used_fallback)
    return run


async def generate_mvp_prompt(
    app_idea: AppIdea,
    validation: ValidationQuestions,
    settings: Settings | None = None,
) -> tuple[str, TargetTool, bool]:
    """Single-shot prompt for ``generate-mvp``.

    Returns ``(prompt_text, target_tool, used_fallback)``. The assembled idea
    prompt is sent to the LLM; when the LLM is unavailable the assembled
    prompt itself is returned.
    """
    tool = detect_target_tool(app_idea, validation)
    state = WizardState(app_idea=app_idea, validation_questions=validation)
    assembled = assemble(state, tool, AssemblyStage.IDEA)

    text = await generate_text(assembled, settings)
    if text is None:
        return assembled, tool, True
    return text.strip(), tool, False
