"""
Release Lifecycle

Deployment state tracking for release artifacts and hand-off of component
versions between consecutive artifacts.
"""

import importlib.metadata

__version__ = importlib.metadata.version("release-lifecycle")

from .lifecycle import (
    ArtifactKind,
    ArtifactStatus,
    ArtifactStatusService,
    LifecycleError,
    ReleaseScope,
    SuccessorService,
    TransitionAction,
)

__all__ = [
    "ArtifactKind",
    "ArtifactStatus",
    "ArtifactStatusService",
    "LifecycleError",
    "ReleaseScope",
    "SuccessorService",
    "TransitionAction",
]
