"""
Release lifecycle domain: the deployment state machine for built versions and
patches, successor auto-provisioning, and component rebalancing between an
artifact and its successor.
"""

from ..db.action_history import (
    ActionHistoryService,
    ActionLogger,
    ActionStatus,
    DbActionLogger,
    NoopActionLogger,
    SubactionInput,
)
from .artifact_service import ArtifactService, ComponentService, ReleaseService
from .enums import ArtifactKind, ArtifactStatus, ReleaseScope, TransitionAction
from .errors import (
    InvalidStateError,
    InvalidTransitionError,
    LifecycleError,
    MissingSuccessorError,
    NotFoundError,
    UnsupportedTransitionError,
    ValidationError,
)
from .hooks import HookContext, TransitionHooks, default_hooks, provision_successor
from .kinds import BUILT_VERSION, PATCH, KindProfile, get_profile
from .naming import expand_pattern, parse_trailing_increment, validate_pattern
from .preflight import TransitionPreflightService
from .rules import (
    TRANSITION_RULES,
    check_transition,
    derive_status,
    is_contiguous,
    validate_transition,
)
from .schemas import (
    ArtifactSummary,
    DefaultSelection,
    SuccessorSummary,
    TransitionPreflight,
    TransitionRecord,
    TransitionResult,
)
from .status_service import (
    ArtifactStatusService,
    BuiltVersionStatusService,
    PatchStatusService,
)
from .successor_service import (
    SuccessorBuiltService,
    SuccessorPatchService,
    SuccessorService,
)

__all__ = [
    # Action history
    "ActionHistoryService",
    "ActionLogger",
    "ActionStatus",
    "DbActionLogger",
    "NoopActionLogger",
    "SubactionInput",
    # Enums and kinds
    "ArtifactKind",
    "ArtifactStatus",
    "ReleaseScope",
    "TransitionAction",
    "BUILT_VERSION",
    "PATCH",
    "KindProfile",
    "get_profile",
    # Errors
    "LifecycleError",
    "NotFoundError",
    "InvalidTransitionError",
    "UnsupportedTransitionError",
    "InvalidStateError",
    "MissingSuccessorError",
    "ValidationError",
    # Rules and naming
    "TRANSITION_RULES",
    "check_transition",
    "validate_transition",
    "derive_status",
    "is_contiguous",
    "expand_pattern",
    "validate_pattern",
    "parse_trailing_increment",
    # Hooks
    "HookContext",
    "TransitionHooks",
    "default_hooks",
    "provision_successor",
    # Schemas
    "ArtifactSummary",
    "DefaultSelection",
    "SuccessorSummary",
    "TransitionPreflight",
    "TransitionRecord",
    "TransitionResult",
    # Services
    "ArtifactStatusService",
    "BuiltVersionStatusService",
    "PatchStatusService",
    "SuccessorService",
    "SuccessorBuiltService",
    "SuccessorPatchService",
    "TransitionPreflightService",
    "ReleaseService",
    "ArtifactService",
    "ComponentService",
]
