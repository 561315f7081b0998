"""Six-stage MVP Studio wizard as a pure state-transition function.

``reduce(state, action)`` takes an immutable ``WizardState`` and returns a new
one; the input is never modified. Stages are linear::

    1 idea → 2 validation → 3 blueprint → 4 screen prompts → 5 flow → 6 export

A stage can be submitted only once every earlier stage is complete. Going
back is always allowed. Re-submitting a stage whose later stages were already
completed keeps their data but marks them stale, so the client knows which
artifacts were built from outdated input.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from pydantic import ValidationError

from mvp_studio.schemas.studio import (
    WIZARD_SCHEMA_VERSION,
    AppBlueprint,
    AppFlow,
    AppIdea,
    ExportPrompts,
    ScreenPrompt,
    ValidationQuestions,
    WizardState,
)

logger = logging.getLogger(__name__)


class Stage(IntEnum):
    IDEA = 1
    VALIDATION = 2
    BLUEPRINT = 3
    SCREEN_PROMPTS = 4
    FLOW = 5
    EXPORT = 6


FINAL_STAGE = Stage.EXPORT

# Which WizardState field each stage fills, and the document type it accepts
_STAGE_FIELDS: dict[Stage, tuple[str, type]] = {
    Stage.IDEA: ("app_idea", AppIdea),
    Stage.VALIDATION: ("validation_questions", ValidationQuestions),
    Stage.BLUEPRINT: ("app_blueprint", AppBlueprint),
    Stage.SCREEN_PROMPTS: ("screen_prompts", ScreenPrompt),
    Stage.FLOW: ("app_flow", AppFlow),
    Stage.EXPORT: ("export_prompts", ExportPrompts),
}
_STAGE_NUMBERS = frozenset(int(s) for s in Stage)


class WizardTransitionError(ValueError):
    """A transition was requested whose upstream data is missing (HTTP 400)."""


# ── Actions ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SubmitStage:
    stage: Stage
    document: object  # the stage's document; a sequence of ScreenPrompt for stage 4


@dataclass(frozen=True)
class GoToStage:
    stage: Stage


@dataclass(frozen=True)
class TrackTime:
    seconds: int


@dataclass(frozen=True)
class AttachProject:
    project_id: str


@dataclass(frozen=True)
class ResetWizard:
    pass


Action = Union[SubmitStage, GoToStage, TrackTime, AttachProject, ResetWizard]


# ── Queries ────────────────────────────────────────────────────────────

def initial_state() -> WizardState:
    return WizardState()


def has_document(state: WizardState, stage: int) -> bool:
    """Whether the document *stage* produces is present (non-empty for stage 4)."""
    field, _ = _STAGE_FIELDS[Stage(stage)]
    value = getattr(state, field)
    if stage == Stage.SCREEN_PROMPTS:
        return bool(value)
    return value is not None


def missing_prerequisites(state: WizardState, stage: int) -> list[int]:
    """Earlier stages that must be completed, with their documents, before *stage*."""
    return [
        s for s in range(1, stage)
        if s not in state.completed_stages or not has_document(state, s)
    ]


def require_stage_inputs(state: WizardState, stage: int) -> None:
    """Raise ``WizardTransitionError`` unless every stage before *stage* is complete
    and its document is present."""
    missing = missing_prerequisites(state, stage)
    if missing:
        names = ", ".join(Stage(s).name.lower().replace("_", " ") for s in missing)
        raise WizardTransitionError(
            f"Stage {stage} requires the earlier stages to be completed first: {names}"
        )


def is_complete(state: WizardState) -> bool:
    return (
        FINAL_STAGE in state.completed_stages
        and state.export_prompts is not None
        and bool(state.export_prompts.unified_prompt.strip())
    )


def furthest_stage(state: WizardState) -> int:
    return max(state.completed_stages, default=1)


# ── Reducer ────────────────────────────────────────────────────────────

def reduce(state: WizardState, action: Action) -> WizardState:
    """Apply *action* to *state* and return the new state."""
    if isinstance(action, SubmitStage):
        return _submit(state, Stage(action.stage), action.document)

    if isinstance(action, GoToStage):
        target = Stage(action.stage)
        if target > state.current_stage:
            require_stage_inputs(state, target)
        return state.model_copy(update={"current_stage": int(target)})

    if isinstance(action, TrackTime):
        if action.seconds < 0:
            raise WizardTransitionError("Elapsed time cannot be negative")
        return state.model_copy(update={"elapsed_seconds": state.elapsed_seconds + action.seconds})

    if isinstance(action, AttachProject):
        return state.model_copy(update={"project_id": action.project_id})

    if isinstance(action, ResetWizard):
        return initial_state()

    raise TypeError(f"Unknown wizard action: {action!r}")


def _submit(state: WizardState, stage: Stage, document: object) -> WizardState:
    require_stage_inputs(state, stage)
    field, doc_type = _STAGE_FIELDS[stage]

    if stage == Stage.SCREEN_PROMPTS:
        value = tuple(_coerce(item, doc_type) for item in (document or ()))
        if not value:
            raise WizardTransitionError("Stage 4 needs at least one screen prompt")
    else:
        if document is None:
            raise WizardTransitionError(f"Stage {int(stage)} needs a document")
        value = _coerce(document, doc_type)

    resubmitted = stage in state.completed_stages
    completed = set(state.completed_stages) | {int(stage)}
    stale = set(state.stale_stages) - {int(stage)}
    if resubmitted:
        downstream = {s for s in completed if s > stage}
        if downstream:
            logger.debug("Stage %d resubmitted; marking %s stale", stage, sorted(downstream))
        stale |= downstream

    return state.model_copy(update={
        field: value,
        "completed_stages": tuple(sorted(completed)),
        "stale_stages": tuple(sorted(stale)),
        "current_stage": min(int(stage) + 1, int(FINAL_STAGE)),
    })


def _coerce(document: object, doc_type: type):
    if isinstance(document, doc_type):
        return document
    try:
        return doc_type.model_validate(document)
    except ValidationError as exc:
        raise WizardTransitionError(f"Invalid {doc_type.__name__} document: {exc.errors()[0]['msg']}") from exc


# ── Snapshots ──────────────────────────────────────────────────────────

def to_snapshot(state: WizardState) -> dict:
    """Serialize the state as the opaque JSON document stored per session."""
    return state.model_dump(mode="json", by_alias=True)


def from_snapshot(document: dict) -> WizardState:
    """Rebuild a state from a stored snapshot.

    Snapshots written before versioning (no ``schemaVersion``) are read as
    version 1. Versions newer than this server understands are rejected, and
    so is any snapshot that lists a stage as completed without its document.
    """
    if not isinstance(document, dict):
        raise WizardTransitionError("Snapshot must be a JSON object")
    version = document.get("schemaVersion", document.get("schema_version", 1))
    if not isinstance(version, int) or version > WIZARD_SCHEMA_VERSION:
        raise WizardTransitionError(f"Unsupported snapshot schema version: {version!r}")
    try:
        state = WizardState.model_validate({**document, "schemaVersion": WIZARD_SCHEMA_VERSION})
    except ValidationError as exc:
        err = exc.errors()[0]
        location = ".".join(str(p) for p in err["loc"])
        raise WizardTransitionError(f"Invalid snapshot at {location}: {err['msg']}") from exc

    unknown = [s for s in state.completed_stages if s not in _STAGE_NUMBERS]
    if unknown:
        raise WizardTransitionError(f"Invalid snapshot: unknown completed stages {unknown}")
    hollow = [s for s in state.completed_stages if not has_document(state, s)]
    if hollow:
        raise WizardTransitionError(
            f"Invalid snapshot: stages {hollow} are marked completed but their documents are missing"
        )
    return state
