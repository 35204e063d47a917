"""
Successor rebalancing.

Once an artifact is ``in_deployment`` and its successor exists, the caller
picks which components ship with the artifact being deployed. Selected
components keep their row on the artifact and get a fresh seed row on the
successor; unselected components have their row moved to the successor, since
they are not part of this deployment.
"""

from typing import Iterable, Optional, Union

import structlog
from sqlalchemy.orm import Session

from ..db.action_history import ActionLogger, SubactionInput, deliver_subactions
from ..db.base import transaction
from ..db.models import ArtifactModel, ComponentVersionModel, ReleaseModel
from .enums import ArtifactKind, ArtifactStatus, ReleaseScope
from .errors import (
    InvalidStateError,
    LifecycleError,
    MissingSuccessorError,
    NotFoundError,
    ValidationError,
)
from .kinds import KindProfile, get_profile
from .naming import component_version_name, naming_tokens, token_snapshot
from .repository import ArtifactRepository
from .schemas import SuccessorSummary

logger = structlog.get_logger(__name__)


class SuccessorService:
    """Arranges component versions between an artifact and its successor."""

    def __init__(
        self,
        db: Session,
        kind: Union[ArtifactKind, str, KindProfile] = ArtifactKind.BUILT_VERSION,
    ):
        self.db = db
        self.profile = get_profile(kind)
        self.repository = ArtifactRepository(db, self.profile)
        self.logger = logger.bind(kind=self.profile.kind.value)

    def create_successor(
        self,
        artifact_id: str,
        selected_component_ids: Iterable[str],
        user_id: str,
        action_logger: Optional[ActionLogger] = None,
    ) -> SuccessorSummary:
        """Apply a component selection to an artifact and its successor.

        Global components are always treated as selected.

        Raises:
            ValidationError: empty selection, or a bare string instead of ids
            NotFoundError: artifact does not exist (for this kind)
            InvalidStateError: artifact is not ``in_deployment``
            MissingSuccessorError: no sibling was created after the artifact
        """
        if isinstance(selected_component_ids, str):
            raise ValidationError(
                "Selected components must be a list of ids",
                {"selectedComponentIds": selected_component_ids},
            )
        selected = set(selected_component_ids or [])
        if not selected:
            raise ValidationError("At least one component must be selected")

        log = self.logger.bind(artifact_id=artifact_id, user_id=user_id)
        summary = SuccessorSummary()

        try:
            with transaction(self.db):
                artifact = self.repository.get(artifact_id, for_update=True)
                if artifact is None:
                    raise NotFoundError(self.profile.display, artifact_id)

                status = self.repository.current_status(artifact_id)
                if status != ArtifactStatus.IN_DEPLOYMENT:
                    raise InvalidStateError(status.value)

                successor = self.repository.next_sibling(artifact)
                if successor is None:
                    raise MissingSuccessorError(artifact_id)

                release = self.repository.get_release(artifact.release_id)
                if release is None:
                    raise NotFoundError("Release", artifact.release_id)

                self._arrange(artifact, successor, release, selected, summary)
                summary.successor_artifact_id = successor.id
        except LifecycleError as e:
            log.info("rebalance_rejected", error=e.code, details=e.details)
            raise

        log.info(
            "successor_rebalanced",
            moved=summary.moved,
            created=summary.created,
            updated=summary.updated,
            successor_id=summary.successor_artifact_id,
        )
        deliver_subactions(
            action_logger,
            [
                SubactionInput(
                    subaction_type=self.profile.arrange_subaction,
                    message=f"Rebalanced successor components for {artifact_id}",
                    metadata=summary.model_dump(),
                )
            ],
        )
        return summary

    def _arrange(
        self,
        artifact: ArtifactModel,
        successor: ArtifactModel,
        release: ReleaseModel,
        selected: set,
        summary: SuccessorSummary,
    ) -> None:
        components = self.repository.list_components()
        selected = selected | {
            c.id for c in components if c.release_scope == ReleaseScope.GLOBAL.value
        }
        current_rows = self.repository.component_rows(artifact.id)
        successor_rows = self.repository.component_rows(successor.id)

        for component in components:
            current = current_rows.get(component.id)
            succ = successor_rows.get(component.id)

            if component.id in selected:
                if succ is not None:
                    computed = self._name(component.naming_pattern, release, successor, succ.increment)
                    if computed:
                        succ.name = computed
                    succ.token_values = self._snapshot(release, successor, succ.increment)
                    summary.updated += 1
                else:
                    self._seed(component, release, successor)
                    summary.created += 1

                # Backfill so the deployed artifact's record shows every selected component
                if current is None:
                    self._seed(component, release, artifact)
                    summary.created += 1
                continue

            # Unselected: nothing to do once the row has already been moved
            if current is None:
                continue
            if succ is not None:
                self.db.delete(succ)
                self.db.flush()
            current.artifact_id = successor.id
            current.name = (
                self._name(component.naming_pattern, release, successor, current.increment)
                or current.name
            )
            current.token_values = self._snapshot(release, successor, current.increment)
            summary.moved += 1

        self.db.flush()

    def _name(self, pattern, release, artifact, increment) -> Optional[str]:
        return component_version_name(
            pattern, naming_tokens(release.name, artifact.name, increment)
        )

    def _snapshot(self, release, artifact, increment):
        return token_snapshot(self.profile.name_token, release.name, artifact.name, increment)

    def _seed(self, component, release, artifact) -> ComponentVersionModel:
        row = ComponentVersionModel(
            release_component_id=component.id,
            artifact_id=artifact.id,
            name=self._name(component.naming_pattern, release, artifact, 0)
            or f"{artifact.name}-{component.id}-0",
            increment=0,
            token_values=self._snapshot(release, artifact, 0),
        )
        self.db.add(row)
        return row


class SuccessorBuiltService(SuccessorService):
    def __init__(self, db: Session):
        super().__init__(db, ArtifactKind.BUILT_VERSION)


class SuccessorPatchService(SuccessorService):
    def __init__(self, db: Session):
        super().__init__(db, ArtifactKind.PATCH)
