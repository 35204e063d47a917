"""
Pydantic schemas returned by the lifecycle services.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import ArtifactKind, ArtifactStatus, TransitionAction


class PatternValidation(BaseModel):
    """Result of checking a component naming pattern."""

    valid: bool
    errors: List[str] = Field(default_factory=list)


class TransitionRecord(BaseModel):
    """A persisted status change, as returned by history queries."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    artifact_id: str
    from_status: ArtifactStatus
    to_status: ArtifactStatus
    action: TransitionAction
    created_at: datetime
    created_by_id: str


class ArtifactSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: ArtifactKind
    name: str
    release_id: str
    created_at: datetime


class TransitionResult(BaseModel):
    """Outcome of a successful ``transition`` call."""

    status: ArtifactStatus
    artifact: ArtifactSummary
    successor: Optional[ArtifactSummary] = Field(
        None, description="Artifact auto-created by this transition, if any"
    )


class SuccessorSummary(BaseModel):
    """Counts from one rebalancing pass between an artifact and its successor."""

    moved: int = 0
    created: int = 0
    updated: int = 0
    successor_artifact_id: str = ""


class TransitionCheck(BaseModel):
    """Non-raising evaluation of an action against a status."""

    action: TransitionAction
    from_status: ArtifactStatus
    target_status: ArtifactStatus
    allowed: bool
    blockers: List[str] = Field(default_factory=list)


class TransitionPreflight(BaseModel):
    """What would happen if ``action`` were applied to an artifact now."""

    action: TransitionAction
    from_status: ArtifactStatus
    to_status: ArtifactStatus
    allowed: bool
    blockers: List[str] = Field(default_factory=list)
    expected_side_effects: List[str] = Field(default_factory=list)
    artifact: ArtifactSummary
    history_preview: List[TransitionRecord] = Field(default_factory=list)
    next_artifact_name: Optional[str] = None
    has_successor: Optional[bool] = None


class DefaultSelection(BaseModel):
    selected_component_ids: List[str] = Field(default_factory=list)
