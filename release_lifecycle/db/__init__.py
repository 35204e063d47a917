"""
Database package for Release Lifecycle.
"""

from .base import Base, get_engine, session_scope, transaction
from .models import (
    ArtifactModel,
    ArtifactTransitionModel,
    ComponentVersionModel,
    ReleaseComponentModel,
    ReleaseModel,
)
from .action_log_models import ActionLogModel, ActionSubactionLogModel

__all__ = [
    "Base",
    "get_engine",
    "session_scope",
    "transaction",
    "ReleaseModel",
    "ArtifactModel",
    "ArtifactTransitionModel",
    "ReleaseComponentModel",
    "ComponentVersionModel",
    "ActionLogModel",
    "ActionSubactionLogModel",
]
