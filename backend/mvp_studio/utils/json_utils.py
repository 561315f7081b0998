"""JSON extraction and schema checks for structured LLM answers.

The blueprint and screen-prompt stages ask the model for one JSON object.
Answers often arrive wrapped in reasoning tags, markdown fences or chatty
preambles, so every answer goes through the same pipeline:

1. **Sanitize**: drop reasoning blocks and code fences, trim
2. **Direct parse**: ``json.loads`` on the cleaned text
3. **Balanced-brace extraction**: scan for the first complete ``{...}``
4. **Failure**: ``ParseResult.ok`` is False and the caller falls back

Parsed objects are then checked with ``validate_blueprint_schema`` /
``validate_screen_prompts_schema`` before being turned into documents.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_REASONING_TAGS = ("think", "reasoning", "thought")


# ── Sanitization ───────────────────────────────────────────────────────

def sanitize_llm_output(raw: str) -> str:
    """Remove reasoning blocks (closed or unclosed) and markdown fences."""
    if not raw:
        return ""

    text = raw
    for tag in _REASONING_TAGS:
        text = re.sub(rf"<{tag}>.*?</{tag}>", "", text, flags=re.DOTALL | re.IGNORECASE)
    for tag in _REASONING_TAGS:
        text = re.sub(rf"<{tag}>.*$", "", text, flags=re.DOTALL | re.IGNORECASE)

    text = re.sub(r"```(?:json|JSON)?\s*\n?", "", text)
    return text.strip()


# ── Balanced-brace extraction ──────────────────────────────────────────

def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring, or ``None``.

    Braces inside JSON string literals are ignored.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if escaped:
            escaped = False
        elif ch == "\\" and in_string:
            escaped = True
        elif ch == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


# ── Parse pipeline ─────────────────────────────────────────────────────

class ParseResult:
    """Outcome of ``safe_parse_json`` with previews for logging."""

    __slots__ = ("data", "method", "raw_preview")

    def __init__(self, data: dict[str, Any] | None, method: str, raw_preview: str = ""):
        self.data = data
        self.method = method  # "direct" | "extraction" | "failed"
        self.raw_preview = raw_preview

    @property
    def ok(self) -> bool:
        return self.data is not None


def safe_parse_json(raw: str | None) -> ParseResult:
    """Extract one JSON object from an LLM answer."""
    raw_preview = (raw or "")[:300]
    sanitized = sanitize_llm_output(raw or "")

    try:
        data = json.loads(sanitized)
        if isinstance(data, dict):
            return ParseResult(data, "direct", raw_preview)
    except ValueError:
        pass

    extracted = extract_json_object(sanitized)
    if extracted:
        try:
            data = json.loads(extracted)
            if isinstance(data, dict):
                return ParseResult(data, "extraction", raw_preview)
        except ValueError:
            pass

    return ParseResult(None, "failed", raw_preview)


# ── Schema checks ──────────────────────────────────────────────────────

def validate_blueprint_schema(data: dict[str, Any]) -> tuple[bool, list[str]]:
    """Check a parsed blueprint answer. Returns ``(is_valid, violations)``."""
    violations: list[str] = []

    screens = data.get("screens")
    if not isinstance(screens, list) or not screens:
        violations.append("'screens' must be a non-empty list")
    else:
        for i, screen in enumerate(screens):
            if not isinstance(screen, dict):
                violations.append(f"screens[{i}] is not an object")
            elif not screen.get("id") or not screen.get("name"):
                violations.append(f"screens[{i}] needs 'id' and 'name'")

    for key in ("userRoles", "dataModels"):
        value = data.get(key)
        if value is not None and not isinstance(value, list):
            violations.append(f"'{key}' is not a list: {type(value).__name__}")

    for key in ("navigationFlow", "architecture"):
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            violations.append(f"'{key}' is not a string: {type(value).__name__}")

    return (len(violations) == 0, violations)


def validate_screen_prompts_schema(data: dict[str, Any]) -> tuple[bool, list[str]]:
    """Check a parsed screen-prompts answer."""
    violations: list[str] = []
    screens = data.get("screens")
    if not isinstance(screens, list) or not screens:
        return (False, ["'screens' must be a non-empty list"])

    for i, item in enumerate(screens):
        if not isinstance(item, dict):
            violations.append(f"screens[{i}] is not an object")
            continue
        if not item.get("screenId"):
            violations.append(f"screens[{i}] is missing 'screenId'")
        for key in ("layout", "components", "behavior"):
            if not isinstance(item.get(key), str):
                violations.append(f"screens[{i}].{key} must be a string")

    return (len(violations) == 0, violations)
