"""Heuristic scoring of assembled prompts.

Scores a prompt 0-100 from a handful of text checks. The result only
annotates a prompt for display and logging; it never blocks assembly.

  - +25 for each key section word (context, requirements, technical, ui)
  - -10 when shorter than 200 characters, -5 when longer than 2000
  - -10 when vague words appear more than three times in total
  - -10 when placeholder tokens are left in the text

Usage::

    result = validate_prompt(text)
    if not result.is_valid:
        log(result.issues)
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

REQUIRED_SECTIONS = ("context", "requirements", "technical", "ui")
VAGUE_WORDS = ("nice", "good", "better", "improve", "enhance")
MIN_LENGTH = 200
MAX_LENGTH = 2000
VALID_THRESHOLD = 60

_PLACEHOLDER_RE = re.compile(r"\bTODO\b|\bTBD\b|lorem ipsum|\[placeholder\]|\{\{.*?\}\}", re.IGNORECASE)

DEFAULT_SUGGESTIONS = (
    "Be more specific about requirements",
    "Include technical stack details",
    "Add UI/UX specifications",
    "Define success criteria",
)


@dataclass
class PromptValidation:
    is_valid: bool
    score: int
    issues: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


def validate_prompt(prompt: str) -> PromptValidation:
    """Score *prompt* and list what is missing."""
    lowered = prompt.lower()
    issues: list[str] = []
    score = 0

    for section in REQUIRED_SECTIONS:
        if section in lowered:
            score += 25
        else:
            issues.append(f"Missing {section} section")

    if len(prompt) < MIN_LENGTH:
        issues.append("Prompt is too short")
        score -= 10
    elif len(prompt) > MAX_LENGTH:
        issues.append("Prompt might be too long")
        score -= 5

    # substring counts, so "goodness" counts as "good"
    vague_count = sum(lowered.count(word) for word in VAGUE_WORDS)
    if vague_count > 3:
        issues.append("Prompt contains vague language")
        score -= 10

    if _PLACEHOLDER_RE.search(prompt):
        issues.append("Prompt contains placeholder text")
        score -= 10

    score = max(0, min(100, score))
    is_valid = score >= VALID_THRESHOLD
    return PromptValidation(
        is_valid=is_valid,
        score=score,
        issues=issues,
        suggestions=[] if is_valid else list(DEFAULT_SUGGESTIONS),
    )
