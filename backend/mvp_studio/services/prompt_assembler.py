"""Deterministic prompt assembly for the three studio prompt kinds.

Given the accumulated wizard state, a target tool and an assembly stage, the
assembler substitutes fields into a fixed template (``utils/prompts.py``)
and wraps the result in the tool's prefix and suffix. Identical inputs always
yield byte-identical output: knowledge snippets are sorted before rendering
and nothing time- or randomness-dependent enters the text.

Usage::

    text = assemble(state, TargetTool.LOVABLE, AssemblyStage.IDEA)
    text = assemble(state, tool, AssemblyStage.SCREEN, screen_id="home")
    text = assemble(state, tool, AssemblyStage.EXPORT, knowledge=snippets)
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable

from mvp_studio.schemas.common import Platform, TargetTool
from mvp_studio.schemas.studio import (
    AppBlueprint,
    AppIdea,
    ScreenPrompt,
    ValidationQuestions,
    WizardState,
)
from mvp_studio.services.knowledge_client import KnowledgeSnippet, sort_snippets
from mvp_studio.services.tool_profiles import ToolProfile, get_profile
from mvp_studio.services.wizard import WizardTransitionError
from mvp_studio.utils.prompts import (
    BUTTON_STYLE,
    EXPORT_FOOTER,
    EXPORT_TEMPLATE,
    IDEA_TEMPLATE,
    LOADING_STYLE,
    SCREEN_TEMPLATE,
    UI_REQUIREMENTS,
    VISUAL_LANGUAGE,
)

logger = logging.getLogger(__name__)


class AssemblyStage(str, Enum):
    IDEA = "idea"
    SCREEN = "screen"
    EXPORT = "export"


# ── Public API ─────────────────────────────────────────────────────────

def assemble(
    state: WizardState,
    target_tool: TargetTool | str,
    stage: AssemblyStage | str,
    knowledge: Iterable[KnowledgeSnippet] | None = None,
    *,
    screen_id: str | None = None,
) -> str:
    """Render the prompt for *stage* and wrap it for *target_tool*.

    Parameters
    ----------
    state : accumulated wizard state; ``app_idea`` is always required
    target_tool : tool whose profile supplies prefix, suffix and requirements
    stage : ``idea`` (full-app skeleton), ``screen`` (one screen) or
        ``export`` (unified implementation guide)
    knowledge : optional retrieved snippets, appended in a stable order
    screen_id : screen to render for the ``screen`` stage (first one if omitted)

    Raises
    ------
    WizardTransitionError : the state lacks the data the stage renders from
    """
    stage = AssemblyStage(stage)
    profile = get_profile(target_tool)
    if state.app_idea is None:
        raise WizardTransitionError("Prompt assembly requires the app idea (stage 1)")

    if stage == AssemblyStage.IDEA:
        body = render_idea(state.app_idea, state.validation_questions, profile)
    elif stage == AssemblyStage.SCREEN:
        body = render_screen(state.app_idea, _pick_screen(state, screen_id))
    else:
        body = render_export(state, profile)

    text = _wrap(body, profile, sort_snippets(knowledge or ()))
    if stage == AssemblyStage.EXPORT:
        text = f"{text}\n\n{EXPORT_FOOTER}"
    return text


def render_idea(app_idea: AppIdea, validation: ValidationQuestions | None, profile: ToolProfile) -> str:
    style = app_idea.design_style
    validation = validation or ValidationQuestions()
    platforms = set(app_idea.platforms)
    has_web = Platform.WEB in platforms
    has_mobile = Platform.MOBILE in platforms

    if has_web and has_mobile:
        approach = "cross-platform responsive"
    elif has_mobile:
        approach = "mobile-first native feel"
    else:
        approach = "responsive web-first"

    motivation = (validation.motivation or "").strip()
    motivation_section = ""
    if motivation:
        motivation_section = (
            "\n**7. Motivation-Driven Design**\n"
            f'- Reflect the builder\'s goal ("{motivation}") in the hero copy and onboarding\n'
        )

    return IDEA_TEMPLATE.format(
        tool_name=profile.name,
        app_name=app_idea.app_name,
        platforms=_platform_label(app_idea.platforms),
        style_label=style.label,
        style_details_line=_line("Style Details", app_idea.style_description),
        description=app_idea.idea_description,
        target_users_line=_line("Target Users", app_idea.target_audience),
        validation_status="Validated" if validation.has_validated else "Not yet validated",
        research_status="Discussed with potential users" if validation.has_discussed else "No user discussions yet",
        motivation_line=_line("Motivation", motivation),
        visual_language=VISUAL_LANGUAGE[style.value],
        approach=approach,
        validation_screen=(
            "Feature showcase highlighting the validated user needs"
            if validation.has_validated
            else "Onboarding flow that explains the core value quickly"
        ),
        navigation_pattern=(
            "bottom tab bar with a clear primary action"
            if has_mobile
            else "top navigation bar with a collapsible sidebar"
        ),
        platform_forms=(
            "Touch-friendly forms with native-feeling inputs"
            if has_mobile
            else "Forms with inline validation and full keyboard support"
        ),
        framework=", ".join(profile.tech_stack),
        button_style=BUTTON_STYLE[style.value],
        loading_style=LOADING_STYLE[style.value],
        motivation_section=motivation_section,
        platforms_joined=_platforms_and(app_idea.platforms),
    )


def render_screen(app_idea: AppIdea, prompt: ScreenPrompt) -> str:
    return SCREEN_TEMPLATE.format(
        app_name=app_idea.app_name,
        title=prompt.title,
        layout=prompt.layout or "Not specified",
        components=prompt.components or "Not specified",
        behavior=prompt.behavior or "Not specified",
        conditional_logic=prompt.conditional_logic or "None",
        style_hints=prompt.style_hints or "Follow the app design style",
    )


def render_export(state: WizardState, profile: ToolProfile) -> str:
    app_idea = state.app_idea
    validation = state.validation_questions or ValidationQuestions()
    blueprint = state.app_blueprint or AppBlueprint()
    flow = state.app_flow
    style = app_idea.design_style

    target_section = ""
    if app_idea.target_audience:
        target_section = f"\n## Target Audience\n{app_idea.target_audience}\n"

    technical = [f"- {req}" for req in profile.requirements]
    technical.append(f"- Tech stack: {', '.join(profile.tech_stack)}")
    ui = [f"- {req}" for req in UI_REQUIREMENTS[style.value]]
    ui.append(f"- Responsive layouts for {_platforms_and(app_idea.platforms)}")

    return EXPORT_TEMPLATE.format(
        app_name=app_idea.app_name,
        platforms=_platform_label(app_idea.platforms),
        style_label=style.label,
        tool_name=profile.name,
        description=app_idea.idea_description,
        target_audience_section=target_section,
        motivation=validation.motivation or "Not specified",
        validated="Completed" if validation.has_validated else "Pending",
        discussed="Completed" if validation.has_discussed else "Pending",
        architecture=blueprint.architecture or "Not specified",
        pattern_line=(
            f"\n**Suggested Pattern:** {blueprint.suggested_pattern}\n" if blueprint.suggested_pattern else ""
        ),
        screens_section=_screens_section(state),
        roles_section=_bullets(f"**{r.name}**: {r.description}" for r in blueprint.user_roles),
        models_section=_bullets(
            f"**{m.name}**: {m.description}" + (f" (fields: {', '.join(m.fields)})" if m.fields else "")
            for m in blueprint.data_models
        ),
        flow_logic=(flow.flow_logic if flow else blueprint.navigation_flow) or "Not specified",
        conditional_routing=_bullets(flow.conditional_routing if flow else ()),
        back_button_behavior=(flow.back_button_behavior if flow else "") or "Not specified",
        screen_transitions=_bullets(flow.screen_transitions if flow else ()),
        technical_requirements="\n".join(technical),
        ui_requirements="\n".join(ui),
        platforms_and=_platforms_and(app_idea.platforms, suffix=False),
        style_notes_line=_line("Style Notes", app_idea.style_description, bullet=True),
    )


def render_blueprint(app_idea: AppIdea, blueprint: AppBlueprint) -> str:
    """Plain-text rendering of a blueprint, stored as a prompt row."""
    lines = [f"# {app_idea.app_name} - App Blueprint", "", "## Architecture", blueprint.architecture or "Not specified"]
    if blueprint.suggested_pattern:
        lines += ["", f"**Suggested Pattern:** {blueprint.suggested_pattern}"]
    lines += ["", "## Screens"]
    for screen in blueprint.screens:
        lines.append(f"- **{screen.name}** ({screen.type}): {screen.purpose}")
        if screen.components:
            lines.append(f"  - Components: {', '.join(screen.components)}")
    lines += ["", "## User Roles", _bullets(f"{r.name}: {r.description}" for r in blueprint.user_roles)]
    lines += ["", "## Data Models", _bullets(f"{m.name}: {', '.join(m.fields)}" for m in blueprint.data_models)]
    lines += ["", "## Navigation Flow", blueprint.navigation_flow or "Not specified"]
    for heading, items in (
        ("Tool Recommendations", blueprint.tool_specific_recommendations),
        ("Security Considerations", blueprint.security_considerations),
        ("Scalability Notes", blueprint.scalability_notes),
    ):
        if items:
            lines += ["", f"## {heading}", _bullets(items)]
    return "\n".join(lines)


# ── Internal ───────────────────────────────────────────────────────────

def _wrap(body: str, profile: ToolProfile, knowledge: list[KnowledgeSnippet]) -> str:
    parts = [profile.prefix, body]
    if knowledge:
        parts.append(_knowledge_section(knowledge))
    parts.append(profile.suffix)
    parts.append(f"TARGET AI TOOL: {profile.name}\nFRAMEWORK APPROACH: {profile.framework}")
    return "\n\n".join(part.strip() for part in parts)


def _knowledge_section(knowledge: list[KnowledgeSnippet]) -> str:
    blocks = ["## Relevant Knowledge"]
    for snippet in knowledge:
        blocks.append(f"### {snippet.title} ({snippet.document_type})\n{snippet.content.strip()}")
    return "\n\n".join(blocks)


def _pick_screen(state: WizardState, screen_id: str | None) -> ScreenPrompt:
    if not state.screen_prompts:
        raise WizardTransitionError("Screen prompt assembly requires generated screen prompts (stage 4)")
    if screen_id is None:
        return state.screen_prompts[0]
    for prompt in state.screen_prompts:
        if prompt.screen_id == screen_id:
            return prompt
    raise WizardTransitionError(f"Unknown screen: {screen_id}")


def _screens_section(state: WizardState) -> str:
    if state.screen_prompts:
        blocks = []
        for i, prompt in enumerate(state.screen_prompts, 1):
            blocks.append(
                f"### {i}. {prompt.title}\n"
                f"**Layout:** {prompt.layout or 'Not specified'}\n"
                f"**Components:** {prompt.components or 'Not specified'}\n"
                f"**Behavior:** {prompt.behavior or 'Not specified'}\n"
                f"**Conditional Logic:** {prompt.conditional_logic or 'None'}\n"
            )
        return "\n".join(blocks)

    screens = state.app_blueprint.screens if state.app_blueprint else ()
    if not screens:
        return "No screens defined yet.\n"
    return "\n".join(
        f"### {i}. {s.name}\n{s.purpose}\n**Components:** {', '.join(s.components) or 'Not specified'}\n"
        for i, s in enumerate(screens, 1)
    )


def _bullets(items: Iterable[str]) -> str:
    rendered = [f"- {item}" for item in items]
    return "\n".join(rendered) if rendered else "- Not specified"


def _line(label: str, value: str | None, bullet: bool = False) -> str:
    value = (value or "").strip()
    if not value:
        return ""
    return f"{'- ' if bullet else ''}**{label}:** {value}\n"


def _platform_label(platforms) -> str:
    return ", ".join(p.value.title() for p in sorted(set(platforms), key=lambda p: p.value, reverse=True))


def _platforms_and(platforms, suffix: bool = True) -> str:
    names = [p.value for p in sorted(set(platforms), key=lambda p: p.value, reverse=True)]
    joined = " and ".join(names)
    if not suffix:
        return joined
    return f"{joined} platform" if len(names) == 1 else f"{joined} platforms"
