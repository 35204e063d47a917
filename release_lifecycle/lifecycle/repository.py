"""
Query helpers for one artifact kind.

All reads that guard a precondition take ``for_update=True`` so that, on
databases with row locks, a concurrent transaction touching the same artifact
or release waits until this one commits.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..db.models import (
    ArtifactModel,
    ArtifactTransitionModel,
    ComponentVersionModel,
    ReleaseComponentModel,
    ReleaseModel,
)
from ..primitives import strictly_after
from .enums import ArtifactStatus, TransitionAction
from .kinds import KindProfile
from .rules import derive_status


class ArtifactRepository:
    """Artifact, transition and component version access scoped to one kind."""

    def __init__(self, db: Session, profile: KindProfile):
        self.db = db
        self.profile = profile

    # Artifacts

    def _artifacts(self):
        return self.db.query(ArtifactModel).filter(
            ArtifactModel.kind == self.profile.kind.value
        )

    def get(self, artifact_id: str, for_update: bool = False) -> Optional[ArtifactModel]:
        query = self._artifacts().filter(ArtifactModel.id == artifact_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_release(
        self, release_id: str, for_update: bool = False
    ) -> Optional[ReleaseModel]:
        query = self.db.query(ReleaseModel).filter(ReleaseModel.id == release_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def list_by_release(self, release_id: str) -> List[ArtifactModel]:
        """Artifacts of this kind in a release, newest first."""
        return (
            self._artifacts()
            .filter(ArtifactModel.release_id == release_id)
            .order_by(ArtifactModel.created_at.desc())
            .all()
        )

    def _newer_siblings(self, artifact: ArtifactModel):
        return self._artifacts().filter(
            ArtifactModel.release_id == artifact.release_id,
            ArtifactModel.created_at > artifact.created_at,
        )

    def has_newer_sibling(self, artifact: ArtifactModel) -> bool:
        return self._newer_siblings(artifact).first() is not None

    def next_sibling(self, artifact: ArtifactModel) -> Optional[ArtifactModel]:
        """The successor: the earliest sibling created after ``artifact``."""
        return (
            self._newer_siblings(artifact)
            .order_by(ArtifactModel.created_at.asc())
            .first()
        )

    def create_artifact(
        self,
        release: ReleaseModel,
        name: str,
        user_id: str,
        token_values: Optional[Dict[str, Any]] = None,
    ) -> ArtifactModel:
        newest = (
            self._artifacts()
            .filter(ArtifactModel.release_id == release.id)
            .order_by(ArtifactModel.created_at.desc())
            .first()
        )
        artifact = ArtifactModel(
            kind=self.profile.kind.value,
            name=name,
            release_id=release.id,
            created_by_id=user_id,
            created_at=strictly_after(newest.created_at if newest else None),
            token_values=token_values or {},
        )
        self.db.add(artifact)
        self.db.flush()
        return artifact

    # Transitions

    def latest_transition(self, artifact_id: str) -> Optional[ArtifactTransitionModel]:
        return (
            self.db.query(ArtifactTransitionModel)
            .filter(ArtifactTransitionModel.artifact_id == artifact_id)
            .order_by(ArtifactTransitionModel.created_at.desc())
            .first()
        )

    def current_status(self, artifact_id: str) -> ArtifactStatus:
        latest = self.latest_transition(artifact_id)
        return derive_status([latest] if latest else [])

    def history(self, artifact_id: str) -> List[ArtifactTransitionModel]:
        return (
            self.db.query(ArtifactTransitionModel)
            .filter(ArtifactTransitionModel.artifact_id == artifact_id)
            .order_by(ArtifactTransitionModel.created_at.asc())
            .all()
        )

    def append_transition(
        self,
        artifact: ArtifactModel,
        from_status: ArtifactStatus,
        to_status: ArtifactStatus,
        action: TransitionAction,
        user_id: str,
    ) -> ArtifactTransitionModel:
        latest = self.latest_transition(artifact.id)
        row = ArtifactTransitionModel(
            artifact_id=artifact.id,
            from_status=from_status.value,
            to_status=to_status.value,
            action=action.value,
            created_by_id=user_id,
            created_at=strictly_after(latest.created_at if latest else None),
        )
        self.db.add(row)
        self.db.flush()
        return row

    # Components

    def list_components(self) -> List[ReleaseComponentModel]:
        return (
            self.db.query(ReleaseComponentModel)
            .order_by(ReleaseComponentModel.created_at.asc())
            .all()
        )

    def component_rows(self, artifact_id: str) -> Dict[str, ComponentVersionModel]:
        """Component versions on an artifact keyed by release component id."""
        rows = (
            self.db.query(ComponentVersionModel)
            .filter(ComponentVersionModel.artifact_id == artifact_id)
            .all()
        )
        return {row.release_component_id: row for row in rows}
