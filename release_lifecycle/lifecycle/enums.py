"""
Canonical enums for the release lifecycle.

Values are the strings persisted in the database and accepted from callers.
"""

from enum import Enum


class ArtifactStatus(str, Enum):
    """Deployment state of a built version or patch."""

    IN_DEVELOPMENT = "in_development"
    IN_DEPLOYMENT = "in_deployment"
    ACTIVE = "active"
    DEPRECATED = "deprecated"


class TransitionAction(str, Enum):
    """Actions that move an artifact between states."""

    START_DEPLOYMENT = "startDeployment"
    CANCEL_DEPLOYMENT = "cancelDeployment"
    MARK_ACTIVE = "markActive"
    REVERT_TO_DEPLOYMENT = "revertToDeployment"
    DEPRECATE = "deprecate"
    REACTIVATE = "reactivate"


class ReleaseScope(str, Enum):
    """Whether a component is on every artifact or opt-in per artifact."""

    GLOBAL = "global"
    VERSION_BOUND = "version_bound"


class ArtifactKind(str, Enum):
    """The two artifact entities that share the lifecycle."""

    BUILT_VERSION = "built_version"
    PATCH = "patch"


INITIAL_STATUS = ArtifactStatus.IN_DEVELOPMENT
