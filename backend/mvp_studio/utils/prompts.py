"""Prompt template library for the MVP Studio stages.

Three families:
  - Rendering templates (``IDEA_TEMPLATE``, ``SCREEN_TEMPLATE``,
    ``EXPORT_TEMPLATE``): filled by the prompt assembler to produce the text a
    user pastes into an AI coding tool.
  - Structured-generation templates (``BLUEPRINT_JSON_TEMPLATE``,
    ``SCREEN_PROMPTS_JSON_TEMPLATE``): sent to the LLM, which must answer
    with one JSON object.
  - Fixed phrase tables keyed by design style.

Templates use ``str.format`` placeholders; optional lines are rendered by the
caller and passed in already terminated with a newline (or as ``""``).
"""

IDEA_TEMPLATE = """You are an expert UI/UX design strategist who writes build prompts for AI development tools. Analyze the app below and produce one detailed, UI-focused implementation prompt that {tool_name} can act on immediately, without clarifying questions.

## APP CONTEXT

**App Name:** {app_name}
**Platforms:** {platforms}
**Design Style:** {style_label}
{style_details_line}**App Description:** {description}
{target_users_line}
**Validation Status:** {validation_status} | **User Research:** {research_status}
{motivation_line}
## PROMPT STRUCTURE TO PRODUCE

**1. Design System & Theme**
- Brand personality: how "{style_label}" translates into mood, shapes and imagery
- Visual language: {visual_language}
- Color system: 2-3 primary colors, supporting palette, semantic colors (success, warning, error, info), an 8-10 step neutral scale
- Typography: fonts that embody "{style_label}", a mobile and desktop type scale, weights 400-700
- Spacing: 4px base unit, consistent component padding, 12-column responsive grid

**2. Screen Breakdown ({approach})**
For each screen define its purpose, layout structure, key UI components, navigation and interactions, and responsive behavior. Cover at least:
- Landing / home screen with a clear value proposition
- {validation_screen}
- Navigation system ({navigation_pattern})
- User profile and settings
- {platform_forms}

**3. Technical UI Implementation**
- Framework: {framework}
- Styling: Tailwind CSS with shadcn/ui components
- State: React hooks for UI state, clearly marked integration points for future data
- Icons: one consistent icon library
- Button hierarchy: primary ({button_style}), secondary, ghost, destructive

**4. Responsive Design Requirements**
- Breakpoints sm 640px, md 768px, lg 1024px, xl 1280px
- Mobile: 44px minimum touch targets and thumb-zone placement
- Desktop: hover states, keyboard navigation, multi-column layouts

**5. Accessibility & Visual Polish**
- WCAG 2.1 AA contrast validated against the "{style_label}" palette
- Semantic HTML, ARIA labels, visible focus indicators
- Loading states: {loading_style}
- Empty, error and success states that match the design aesthetic

**6. Placeholder Integration Points**
- Component props ready for real API data
- UI prepared for authenticated and anonymous states
- Forms and actions ready for backend wiring
{motivation_section}
## FINAL REQUIREMENTS

The prompt you write must be immediately actionable, component-focused and consistent with the "{style_label}" aesthetic, tailored to {platforms_joined}, and structured so backend functionality can be added later without visual rework."""


SCREEN_TEMPLATE = """# {app_name} - {title}

## Layout
{layout}

## Components
{components}

## Behavior
{behavior}

## Conditional Logic
{conditional_logic}

## Style Hints
{style_hints}
"""


EXPORT_TEMPLATE = """# {app_name} - Complete Implementation Guide

## Project Overview
**App Name:** {app_name}
**Platforms:** {platforms}
**Design Style:** {style_label}
**Target Tool:** {tool_name}

## App Description
{description}
{target_audience_section}
## User Motivation & Validation
{motivation}

Validation Status:
- Market Research: {validated}
- User Discussions: {discussed}

## Architecture Overview
{architecture}
{pattern_line}
## Screens & Components
{screens_section}
## User Roles
{roles_section}
## Data Models
{models_section}
## App Flow & Navigation
{flow_logic}

### Conditional Routing
{conditional_routing}

### Back Button Behavior
{back_button_behavior}

### Screen Transitions
{screen_transitions}

## Technical Requirements
{technical_requirements}

## UI Requirements
{ui_requirements}

## Implementation Instructions
1. Start with the basic project structure
2. Implement authentication and user management
3. Create the main navigation and routing
4. Build each screen according to the detailed prompts
5. Add the app flow and conditional logic
6. Style according to {style_label} design principles
7. Test on {platforms_and} platforms

## Style Guidelines
- **Design Style:** {style_label}
{style_notes_line}- **Responsive:** Optimize for {platforms_and}
- **Accessibility:** Follow WCAG guidelines
- **Performance:** Optimize for fast loading and smooth interactions

## Next Steps
1. Copy this prompt to {tool_name}
2. Start with the project setup and basic structure
3. Implement screens one by one using the detailed prompts
4. Test functionality and user flow
5. Iterate based on user feedback
"""

EXPORT_FOOTER = "---\nGenerated by BuildTrix MVP Studio"


BLUEPRINT_JSON_TEMPLATE = """You are an expert mobile and web app architect. Design the full app structure for the idea below.

[App Name]: {app_name}
[User Idea]: {description}
[Platforms]: {platforms}
[Design Style]: {style_label}
[Target Users]: {target_users}
[Complexity]: {complexity}

Respond with ONE JSON object and nothing else, using exactly these keys:
{{
  "screens": [{{"id": "kebab-case-id", "name": "Screen Name", "purpose": "...", "components": ["..."], "navigation": ["other-screen-id"], "type": "main|auth|onboarding|settings|modal"}}],
  "userRoles": [{{"name": "...", "description": "...", "permissions": ["..."]}}],
  "dataModels": [{{"name": "...", "description": "...", "fields": ["..."], "relationships": ["..."]}}],
  "navigationFlow": "Home -> Login -> Dashboard ...",
  "architecture": "one paragraph",
  "suggestedPattern": "e.g. MVC, feature-based"
}}

Be comprehensive but practical for an MVP. Do not repeat information across keys."""


SCREEN_PROMPTS_JSON_TEMPLATE = """You are a senior UI engineer writing build instructions for {tool_name}.

App: {app_name} ({platforms}, {style_label} style)
Description: {description}
User roles: {roles}

Screens:
{screens}

For EVERY screen above, write implementation guidance. Respond with ONE JSON object and nothing else:
{{
  "screens": [{{"screenId": "<id from the list>", "title": "...", "layout": "...", "components": "...", "behavior": "...", "conditionalLogic": "...", "styleHints": "..."}}]
}}"""


# ── Phrase tables ──────────────────────────────────────────────────────

VISUAL_LANGUAGE: dict[str, str] = {
    "minimal": "clean lines, ample white space, subtle shadows, geometric shapes",
    "playful": "rounded corners, vibrant colors, micro-animations, friendly illustrations",
    "business": "professional typography, structured layouts, corporate color schemes, formal imagery",
}

BUTTON_STYLE: dict[str, str] = {
    "minimal": "subtle gradients, clean borders",
    "playful": "rounded, vibrant colors, hover animations",
    "business": "structured, professional appearance",
}

LOADING_STYLE: dict[str, str] = {
    "minimal": "clean skeleton loaders with subtle animation",
    "playful": "bouncy loading animations and colorful progress indicators",
    "business": "professional progress bars and discrete loading indicators",
}

SCREEN_STYLE_HINTS: dict[str, str] = {
    "minimal": "Clean lines, plenty of whitespace, subtle shadows, neutral colors",
    "playful": "Bright colors, rounded corners, animations, fun illustrations",
    "business": "Professional colors, structured layout, clear hierarchy, corporate feel",
}

STYLE_SCREEN_GUIDANCE: dict[str, str] = {
    "minimal": (
        "- Use clean, simple layouts with plenty of white space\n"
        "- Focus on essential elements only\n"
        "- Use subtle colors and typography"
    ),
    "playful": (
        "- Include vibrant colors and engaging animations\n"
        "- Use rounded corners and friendly typography\n"
        "- Add micro-interactions for delight"
    ),
    "business": (
        "- Use professional color schemes and typography\n"
        "- Focus on data presentation and efficiency\n"
        "- Include clear hierarchy and navigation"
    ),
}

UI_REQUIREMENTS: dict[str, tuple[str, ...]] = {
    "minimal": ("Clean, minimal design", "Plenty of whitespace", "Simple color palette"),
    "playful": ("Vibrant colors and gradients", "Engaging animations and transitions", "Fun, interactive elements"),
    "business": ("Professional appearance", "Corporate color scheme", "Formal typography"),
}
