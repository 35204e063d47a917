"""
Client-facing errors raised by the lifecycle services.

Each error carries a stable ``code`` and structured ``details`` so callers can
render it without parsing the message. Persistence errors are not wrapped.
"""

from typing import Any, Dict, Optional


class LifecycleError(Exception):
    """Base class for lifecycle client errors."""

    code = "LIFECYCLE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(LifecycleError):
    """A referenced artifact or release does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str, **extra: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} not found: {entity_id}", {"id": entity_id, **extra}
        )


class InvalidTransitionError(LifecycleError):
    """The artifact's current status does not match the action's source state."""

    code = "INVALID_TRANSITION"

    def __init__(self, current: str, expected: str, action: str):
        self.current = current
        self.expected = expected
        self.action = action
        super().__init__(
            f"Invalid transition from {current} via {action}. Expected {expected}.",
            {"from": current, "expected": expected, "action": action},
        )


class UnsupportedTransitionError(LifecycleError):
    """The requested action is not part of the transition table."""

    code = "UNSUPPORTED_TRANSITION"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unsupported transition: {action}", {"action": action})


class InvalidStateError(LifecycleError):
    """Successor rebalancing attempted outside ``in_deployment``."""

    code = "INVALID_STATE"

    def __init__(self, status: str):
        self.status = status
        super().__init__(
            "Operation only allowed from in_deployment", {"status": status}
        )


class MissingSuccessorError(LifecycleError):
    """Rebalancing attempted before the successor artifact exists."""

    code = "MISSING_SUCCESSOR"

    def __init__(self, artifact_id: str):
        super().__init__(
            "Successor artifact not found", {"artifactId": artifact_id}
        )


class ValidationError(LifecycleError):
    """Caller input failed validation."""

    code = "VALIDATION_ERROR"
