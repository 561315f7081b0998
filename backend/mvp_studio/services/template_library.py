"""Prompt template variables: parsing, validation and rendering.

Template content uses ``{{name}}`` placeholders. Every required variable
must appear in the content; rendering fails when one is missing or blank.
Optional variables that are not supplied render as an empty string, and
placeholders that are not declared at all are left untouched.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable

from mvp_studio.schemas.common import TargetTool

logger = logging.getLogger(__name__)

VARIABLE_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")
TEMPLATE_TOOLS = frozenset(t.value for t in TargetTool) | {"general"}


class TemplateError(ValueError):
    """Template content or render variables are inconsistent (HTTP 400)."""


def template_variables(content: str) -> list[str]:
    """Placeholder names in order of first appearance."""
    seen: list[str] = []
    for name in VARIABLE_PATTERN.findall(content):
        if name not in seen:
            seen.append(name)
    return seen


def check_template(content: str, required: Iterable[str], optional: Iterable[str] = ()) -> None:
    """Raise ``TemplateError`` unless the declared variables fit the content."""
    required = list(required)
    optional = list(optional)
    placeholders = set(template_variables(content))

    unreferenced = [v for v in required if v not in placeholders]
    if unreferenced:
        raise TemplateError(
            f"Template content does not reference required variables: {', '.join(unreferenced)}"
        )
    overlap = sorted(set(required) & set(optional))
    if overlap:
        raise TemplateError(f"Variables cannot be both required and optional: {', '.join(overlap)}")


def render_template(
    content: str,
    required: Iterable[str],
    optional: Iterable[str],
    values: dict[str, str],
) -> str:
    """Substitute *values* into *content*.

    Raises
    ------
    TemplateError : a required variable is missing or blank
    """
    required = list(required)
    declared = set(required) | set(optional)
    missing = [v for v in required if not str(values.get(v, "")).strip()]
    if missing:
        raise TemplateError(f"Missing required template variables: {', '.join(missing)}")

    def _substitute(match: re.Match) -> str:
        name = match.group(1)
        if name not in declared:
            return match.group(0)
        return str(values.get(name, ""))

    rendered = VARIABLE_PATTERN.sub(_substitute, content)
    logger.debug("Rendered template with %d variables", len(values))
    return rendered
