"""Per-tool phrasing, requirements and optimizations for the supported AI coding tools.

The assembler never changes its algorithm per tool; it looks the tool up here
and wraps or extends the rendered prompt with the profile's text.
"""
from __future__ import annotations

from dataclasses import dataclass

from mvp_studio.schemas.common import TargetTool
from mvp_studio.schemas.studio import AppIdea, ValidationQuestions


@dataclass(frozen=True)
class ToolProfile:
    tool: TargetTool
    name: str
    framework: str
    prefix: str
    suffix: str
    requirements: tuple[str, ...]
    tech_stack: tuple[str, ...]
    blueprint_optimizations: tuple[str, ...] = ()
    screen_optimizations: tuple[str, ...] = ()

    @property
    def has_optimizations(self) -> bool:
        return bool(self.blueprint_optimizations or self.screen_optimizations)


_CONVERSATIONAL_REQUIREMENTS = (
    "Provide step-by-step implementation guide",
    "Include clear code examples and explanations",
    "Mention best practices and common pitfalls",
    "Suggest testing and validation approaches",
    "Offer alternative solutions when applicable",
)

TOOL_PROFILES: dict[TargetTool, ToolProfile] = {
    TargetTool.LOVABLE: ToolProfile(
        tool=TargetTool.LOVABLE,
        name="Lovable.dev",
        framework="C.L.E.A.R",
        prefix=(
            "You are building with Lovable.dev. Follow the C.L.E.A.R. framework "
            "(Context, Logic, Examples, Actions, Results).\n\n"
            "LOVABLE GUIDELINES:\n"
            "- React with TypeScript only\n"
            "- Supabase for authentication and data\n"
            "- Tailwind CSS with shadcn/ui components\n"
            "- Responsive, mobile-first layouts\n"
            "- Keep project context in the Knowledge Base"
        ),
        suffix=(
            "LOVABLE-SPECIFIC OPTIMIZATIONS:\n"
            "- Break complex features into incremental steps\n"
            "- State Supabase schema requirements explicitly\n"
            "- Name Tailwind classes and responsive breakpoints\n"
            "- Use Chat mode to clarify before large changes"
        ),
        requirements=(
            "Use React with TypeScript for all components",
            "Integrate Supabase for authentication and database",
            "Style with Tailwind CSS and shadcn/ui components",
            "Implement responsive design with mobile-first approach",
            "Follow accessibility best practices (ARIA labels, semantic HTML)",
            "Use Lovable's Knowledge Base for project context",
        ),
        tech_stack=("React", "TypeScript", "Tailwind CSS", "Supabase", "shadcn/ui"),
        blueprint_optimizations=(
            "Use Supabase for backend and database",
            "Implement Row Level Security (RLS) policies",
            "Design for React with TypeScript",
            "Plan for shadcn/ui component integration",
            "Consider real-time subscriptions for live data",
        ),
        screen_optimizations=(
            "Use shadcn/ui components for consistent design",
            "Implement Tailwind CSS for styling",
            "Follow mobile-first responsive design",
            "Include proper loading states and error handling",
            "Use Supabase Auth for authentication flows",
        ),
    ),
    TargetTool.CURSOR: ToolProfile(
        tool=TargetTool.CURSOR,
        name="Cursor",
        framework="Code-Focused",
        prefix=(
            "You are working in the Cursor IDE. Favor clean, maintainable code "
            "and precise, file-by-file instructions.\n\n"
            "CURSOR GUIDELINES:\n"
            "- Describe the file structure before writing code\n"
            "- Be exact about each change\n"
            "- Include error handling"
        ),
        suffix=(
            "CURSOR-SPECIFIC INSTRUCTIONS:\n"
            "- Target specific files and functions\n"
            "- Show before/after snippets for edits\n"
            "- Provide TypeScript types and interfaces\n"
            "- Note testing considerations"
        ),
        requirements=(
            "Provide clear file structure and code organization",
            "Use modern TypeScript patterns and best practices",
            "Implement proper error handling and validation",
            "Include comprehensive type definitions",
            "Focus on maintainable, readable code",
        ),
        tech_stack=("TypeScript", "Node.js", "Modern JavaScript"),
        blueprint_optimizations=(
            "Focus on clean, maintainable code architecture",
            "Implement proper TypeScript interfaces",
            "Design modular component structure",
            "Plan for easy refactoring and debugging",
            "Consider code organization and file structure",
        ),
        screen_optimizations=(
            "Write semantic, accessible HTML structure",
            "Implement proper component composition",
            "Use consistent naming conventions",
            "Include comprehensive error handling",
            "Focus on code readability and maintainability",
        ),
    ),
    TargetTool.V0: ToolProfile(
        tool=TargetTool.V0,
        name="v0.dev",
        framework="Component-Focused",
        prefix=(
            "You are creating components with v0.dev. Aim for accessible, "
            "reusable React components with a modern look.\n\n"
            "V0 GUIDELINES:\n"
            "- Tailwind CSS for styling\n"
            "- Accessibility built in\n"
            "- Visual polish and clear hierarchy"
        ),
        suffix=(
            "V0-SPECIFIC REQUIREMENTS:\n"
            "- Mobile-first, responsive components\n"
            "- Semantic HTML with ARIA labels\n"
            "- Loading, error, hover, focus and active states"
        ),
        requirements=(
            "Create reusable React components with proper props",
            "Implement responsive design with Tailwind CSS",
            "Include accessibility features (ARIA, semantic HTML)",
            "Design for mobile-first approach",
            "Use modern CSS patterns and animations",
        ),
        tech_stack=("React", "TypeScript", "Tailwind CSS", "Next.js"),
        blueprint_optimizations=(
            "Design component-first architecture",
            "Plan for interactive UI elements",
            "Consider animation and micro-interactions",
            "Design for component reusability",
            "Focus on visual hierarchy and layout",
        ),
        screen_optimizations=(
            "Create visually appealing, modern interfaces",
            "Implement smooth animations and transitions",
            "Use contemporary design patterns",
            "Focus on user experience and interactions",
            "Ensure visual consistency across screens",
        ),
    ),
    TargetTool.BOLT: ToolProfile(
        tool=TargetTool.BOLT,
        name="Bolt.new",
        framework="Full-Stack Web",
        prefix=(
            "You are building a complete web application in Bolt.new.\n\n"
            "BOLT GUIDELINES:\n"
            "- Browser-compatible technologies only (WebContainer)\n"
            "- Working end-to-end features over stubs\n"
            "- Proper state management"
        ),
        suffix=(
            "BOLT-SPECIFIC CONSIDERATIONS:\n"
            "- No native binaries\n"
            "- Error boundaries around major sections\n"
            "- Split large features into small steps"
        ),
        requirements=(
            "Build complete web application with modern stack",
            "Use browser-compatible technologies only",
            "Implement proper state management",
            "Consider WebContainer environment limitations",
            "Focus on rapid prototyping and iteration",
        ),
        tech_stack=("React", "TypeScript", "Vite", "CSS Modules"),
        blueprint_optimizations=(
            "Plan full-stack application architecture",
            "Design for rapid prototyping and deployment",
            "Consider both frontend and backend integration",
            "Plan for scalable application structure",
            "Design API endpoints and data flow",
        ),
        screen_optimizations=(
            "Create production-ready UI components",
            "Implement proper state management",
            "Design for full-stack integration",
            "Include proper form handling and validation",
            "Consider deployment and hosting requirements",
        ),
    ),
    TargetTool.CLAUDE: ToolProfile(
        tool=TargetTool.CLAUDE,
        name="Claude",
        framework="Conversational AI",
        prefix=(
            "You are an AI assistant guiding a software build. Give step-by-step "
            "instructions and explain the reasoning behind each decision."
        ),
        suffix=(
            "APPROACH:\n"
            "- Break the work into small steps\n"
            "- Show code with explanations\n"
            "- Call out pitfalls and testing strategies"
        ),
        requirements=_CONVERSATIONAL_REQUIREMENTS,
        tech_stack=("React", "TypeScript", "Modern CSS"),
    ),
    TargetTool.CHATGPT: ToolProfile(
        tool=TargetTool.CHATGPT,
        name="ChatGPT",
        framework="Conversational AI",
        prefix=(
            "You are an AI assistant helping with software development. Give "
            "practical, actionable guidance with working examples."
        ),
        suffix=(
            "APPROACH:\n"
            "- Use clear, structured responses\n"
            "- Include code snippets with explanations\n"
            "- Provide testing and validation steps"
        ),
        requirements=_CONVERSATIONAL_REQUIREMENTS,
        tech_stack=("React", "TypeScript", "Modern CSS"),
    ),
}


def get_profile(tool: TargetTool | str) -> ToolProfile:
    return TOOL_PROFILES[TargetTool(tool)]


def detect_target_tool(app_idea: AppIdea, validation: ValidationQuestions | None = None) -> TargetTool:
    """Pick the tool the prompt is written for.

    An explicit ``preferredAITool`` wins. Otherwise keywords in the idea
    description and motivation decide, and the fallback is Lovable for web
    projects and Cursor for everything else.
    """
    if validation is not None and validation.preferred_ai_tool is not None:
        return validation.preferred_ai_tool

    motivation = (validation.motivation or "") if validation is not None else ""
    text = f"{app_idea.idea_description} {motivation}".lower()

    if "lovable" in text or ("react" in text and "supabase" in text):
        return TargetTool.LOVABLE
    if "cursor" in text or "code editor" in text:
        return TargetTool.CURSOR
    if "v0" in text or ("component" in text and "ui" in text):
        return TargetTool.V0
    if "bolt" in text or ("web app" in text and "full stack" in text):
        return TargetTool.BOLT
    if "claude" in text:
        return TargetTool.CLAUDE
    if "chatgpt" in text or "gpt" in text:
        return TargetTool.CHATGPT

    return TargetTool.LOVABLE if "web" in {p.value for p in app_idea.platforms} else TargetTool.CURSOR
