"""
Status transition engine.

Applies one action to one artifact: re-reads the current status inside the
transaction, checks it against the transition table, appends the transition
row and runs the hooks for the statuses left and entered. Audit entries are
buffered during the transaction and handed to the action logger only after
it commits.
"""

from typing import List, Optional, Union

import structlog
from sqlalchemy.orm import Session

from ..db.action_history import ActionLogger, SubactionInput, deliver_subactions
from ..db.base import transaction
from .enums import ArtifactKind, ArtifactStatus, TransitionAction
from .errors import LifecycleError, NotFoundError
from .hooks import HookContext, TransitionHooks, default_hooks
from .kinds import KindProfile, get_profile
from .repository import ArtifactRepository
from .rules import TRANSITION_RULES, parse_action, validate_transition
from .schemas import ArtifactSummary, TransitionRecord, TransitionResult

logger = structlog.get_logger(__name__)


class ArtifactStatusService:
    """Service for moving artifacts of one kind through the deployment states."""

    def __init__(
        self,
        db: Session,
        kind: Union[ArtifactKind, str, KindProfile] = ArtifactKind.BUILT_VERSION,
        hooks: Optional[TransitionHooks] = None,
    ):
        self.db = db
        self.profile = get_profile(kind)
        self.repository = ArtifactRepository(db, self.profile)
        self.hooks = hooks if hooks is not None else default_hooks()
        self.logger = logger.bind(kind=self.profile.kind.value)

    def get_history(self, artifact_id: str) -> List[TransitionRecord]:
        """Transitions for an artifact, oldest first."""
        return [
            TransitionRecord.model_validate(row)
            for row in self.repository.history(artifact_id)
        ]

    def get_current_status(self, artifact_id: str) -> ArtifactStatus:
        """``to_status`` of the newest transition, or ``in_development``."""
        return self.repository.current_status(artifact_id)

    def transition(
        self,
        artifact_id: str,
        action: Union[TransitionAction, str],
        user_id: str,
        action_logger: Optional[ActionLogger] = None,
    ) -> TransitionResult:
        """Apply ``action`` to an artifact.

        Args:
            artifact_id: Artifact to transition
            action: One of the six transition actions (aliases accepted)
            user_id: Authenticated caller, recorded on the transition
            action_logger: Optional action logger for the audit trail

        Returns:
            TransitionResult with the new status and any auto-created successor

        Raises:
            NotFoundError: artifact does not exist (for this kind)
            InvalidTransitionError: current status is not the action's source
            UnsupportedTransitionError: unknown action
        """
        parsed = parse_action(action)
        rule = TRANSITION_RULES[parsed]
        audit_trail: List[SubactionInput] = []
        log = self.logger.bind(artifact_id=artifact_id, action=parsed.value)

        try:
            with transaction(self.db):
                artifact = self.repository.get(artifact_id, for_update=True)
                if artifact is None:
                    raise NotFoundError(self.profile.display, artifact_id)
                audit_trail.append(
                    SubactionInput(
                        subaction_type=self.profile.subaction("transition.verify"),
                        message=f"Transition {artifact.name} via {parsed.value}",
                        metadata={"artifactId": artifact_id, "action": parsed.value},
                    )
                )

                current = self.repository.current_status(artifact_id)
                validate_transition(current, parsed)

                self.repository.append_transition(
                    artifact, current, rule.to_status, parsed, user_id
                )
                audit_trail.append(
                    SubactionInput(
                        subaction_type=self.profile.subaction("transition.persist"),
                        message=f"Recorded transition {parsed.value}",
                        metadata={
                            "from": current.value,
                            "to": rule.to_status.value,
                            "artifactId": artifact_id,
                        },
                    )
                )

                ctx = HookContext(
                    db=self.db,
                    repository=self.repository,
                    profile=self.profile,
                    artifact=artifact,
                    action=parsed,
                    user_id=user_id,
                    audit_trail=audit_trail,
                )
                self.hooks.run_exit(current, ctx)
                self.hooks.run_enter(rule.to_status, ctx)

                result = TransitionResult(
                    status=rule.to_status,
                    artifact=ArtifactSummary.model_validate(artifact),
                    successor=(
                        ArtifactSummary.model_validate(ctx.successor)
                        if ctx.successor is not None
                        else None
                    ),
                )
        except LifecycleError as e:
            log.info("transition_rejected", error=e.code, details=e.details)
            raise

        log.info(
            "artifact_transitioned",
            from_status=rule.from_status.value,
            to_status=rule.to_status.value,
            successor_id=result.successor.id if result.successor else None,
        )
        deliver_subactions(action_logger, audit_trail)
        return result

    # Convenience explicit methods

    def start_deployment(self, artifact_id: str, user_id: str, **kwargs) -> TransitionResult:
        return self.transition(artifact_id, TransitionAction.START_DEPLOYMENT, user_id, **kwargs)

    def cancel_deployment(self, artifact_id: str, user_id: str, **kwargs) -> TransitionResult:
        return self.transition(artifact_id, TransitionAction.CANCEL_DEPLOYMENT, user_id, **kwargs)

    def mark_active(self, artifact_id: str, user_id: str, **kwargs) -> TransitionResult:
        return self.transition(artifact_id, TransitionAction.MARK_ACTIVE, user_id, **kwargs)

    def revert_to_deployment(self, artifact_id: str, user_id: str, **kwargs) -> TransitionResult:
        return self.transition(artifact_id, TransitionAction.REVERT_TO_DEPLOYMENT, user_id, **kwargs)

    def deprecate(self, artifact_id: str, user_id: str, **kwargs) -> TransitionResult:
        return self.transition(artifact_id, TransitionAction.DEPRECATE, user_id, **kwargs)

    def reactivate(self, artifact_id: str, user_id: str, **kwargs) -> TransitionResult:
        return self.transition(artifact_id, TransitionAction.REACTIVATE, user_id, **kwargs)


class BuiltVersionStatusService(ArtifactStatusService):
    def __init__(self, db: Session, hooks: Optional[TransitionHooks] = None):
        super().__init__(db, ArtifactKind.BUILT_VERSION, hooks)


class PatchStatusService(ArtifactStatusService):
    def __init__(self, db: Session, hooks: Optional[TransitionHooks] = None):
        super().__init__(db, ArtifactKind.PATCH, hooks)
