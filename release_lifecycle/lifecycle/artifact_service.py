"""
Creation and lookup of releases, artifacts and release components.

Releases reserve artifact names through ``last_used_increment``; creating a
release reserves increment 0 for its initial artifact.
"""

from typing import Dict, List, Optional, Union

import structlog
from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..db.action_history import ActionLogger, SubactionInput, deliver_subactions
from ..db.base import transaction
from ..db.models import (
    ArtifactModel,
    ComponentVersionModel,
    ReleaseComponentModel,
    ReleaseModel,
)
from .enums import ArtifactKind, ArtifactStatus, ReleaseScope
from .errors import NotFoundError, ValidationError
from .kinds import KindProfile, get_profile
from .naming import (
    component_version_name,
    naming_tokens,
    parse_trailing_increment,
    token_snapshot,
    validate_pattern,
)
from .repository import ArtifactRepository
from .schemas import DefaultSelection

logger = structlog.get_logger(__name__)


def _seed_components(
    db: Session,
    profile: KindProfile,
    release: ReleaseModel,
    artifact: ArtifactModel,
    components: List[ReleaseComponentModel],
    subaction_type: str,
    audit_trail: List[SubactionInput],
) -> int:
    """Create an increment-0 component version for each component with a usable pattern."""
    seeded = 0
    for component in components:
        name = component_version_name(
            component.naming_pattern, naming_tokens(release.name, artifact.name, 0)
        )
        if name is None:
            continue
        db.add(
            ComponentVersionModel(
                release_component_id=component.id,
                artifact_id=artifact.id,
                name=name,
                increment=0,
                token_values=token_snapshot(
                    profile.name_token, release.name, artifact.name, 0
                ),
            )
        )
        audit_trail.append(
            SubactionInput(
                subaction_type=subaction_type,
                message=f"Seeded {component.name} for {artifact.name}",
                metadata={"releaseComponentId": component.id, "artifactId": artifact.id},
            )
        )
        seeded += 1
    db.flush()
    return seeded


class ComponentService:
    """Service for managing release component definitions."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        name: str,
        naming_pattern: Optional[str] = None,
        release_scope: Union[ReleaseScope, str] = ReleaseScope.VERSION_BOUND,
    ) -> ReleaseComponentModel:
        """Create a component; a non-blank pattern must validate."""
        if naming_pattern and naming_pattern.strip():
            check = validate_pattern(naming_pattern)
            if not check.valid:
                raise ValidationError(
                    "Invalid naming pattern",
                    {"pattern": naming_pattern, "errors": check.errors},
                )

        with transaction(self.db):
            component = ReleaseComponentModel(
                name=name.strip(),
                naming_pattern=naming_pattern,
                release_scope=ReleaseScope(release_scope).value,
            )
            self.db.add(component)
        self.db.refresh(component)
        return component

    def get(self, component_id: str) -> Optional[ReleaseComponentModel]:
        return self.db.get(ReleaseComponentModel, component_id)

    def list(self) -> List[ReleaseComponentModel]:
        return (
            self.db.query(ReleaseComponentModel)
            .order_by(ReleaseComponentModel.created_at)
            .all()
        )


class ReleaseService:
    """Service for managing releases and their initial artifact."""

    def __init__(self, db: Session):
        self.db = db

    def create_release(
        self,
        user_id: str,
        name: str,
        kind: Union[ArtifactKind, str, KindProfile] = ArtifactKind.BUILT_VERSION,
        action_logger: Optional[ActionLogger] = None,
    ) -> ReleaseModel:
        """Create a release with its initial artifact ``"{name}.0"``.

        Every component with a valid naming pattern is seeded on the initial
        artifact at increment 0.
        """
        profile = get_profile(kind)
        repo = ArtifactRepository(self.db, profile)
        audit_trail: List[SubactionInput] = []
        release_name = name.strip()

        with transaction(self.db):
            release = ReleaseModel(name=release_name, created_by_id=user_id)
            self.db.add(release)
            self.db.flush()
            audit_trail.append(
                SubactionInput(
                    subaction_type="releaseVersion.persist",
                    message=f"Release {release.name} stored",
                    metadata={"id": release.id},
                )
            )

            increment = 0
            artifact = repo.create_artifact(
                release,
                f"{release.name}.{increment}",
                user_id,
                token_values={"release_version": release.name, "increment": increment},
            )
            audit_trail.append(
                SubactionInput(
                    subaction_type=profile.subaction("autoCreate"),
                    message=f"Initial {profile.display.lower()} {artifact.name} created",
                    metadata={"id": artifact.id, "releaseId": release.id},
                )
            )
            release.last_used_increment = increment

            _seed_components(
                self.db,
                profile,
                release,
                artifact,
                repo.list_components(),
                "componentVersion.seed",
                audit_trail,
            )

        self.db.refresh(release)
        logger.info("release_created", release_id=release.id, name=release.name)
        deliver_subactions(action_logger, audit_trail)
        return release

    def get(self, release_id: str) -> Optional[ReleaseModel]:
        return self.db.get(ReleaseModel, release_id)

    def get_by_name(self, name: str) -> Optional[ReleaseModel]:
        return self.db.query(ReleaseModel).filter(ReleaseModel.name == name).first()

    def list(self, limit: int = 100, offset: int = 0) -> List[ReleaseModel]:
        return (
            self.db.query(ReleaseModel)
            .order_by(desc(ReleaseModel.created_at))
            .offset(offset)
            .limit(limit)
            .all()
        )


class ArtifactService:
    """Service for manually created artifacts of one kind."""

    def __init__(
        self,
        db: Session,
        kind: Union[ArtifactKind, str, KindProfile] = ArtifactKind.BUILT_VERSION,
    ):
        self.db = db
        self.profile = get_profile(kind)
        self.repository = ArtifactRepository(db, self.profile)

    def create(
        self,
        user_id: str,
        release_id: str,
        name: str,
        action_logger: Optional[ActionLogger] = None,
    ) -> ArtifactModel:
        """Create an artifact by name and seed the global components on it.

        The release counter is left alone; the increment in the token snapshot
        is read from the trailing segment of ``name``.
        """
        audit_trail: List[SubactionInput] = []
        artifact_name = name.strip()

        with transaction(self.db):
            release = self.repository.get_release(release_id)
            if release is None:
                raise NotFoundError("Release", release_id)

            artifact = self.repository.create_artifact(
                release,
                artifact_name,
                user_id,
                token_values={
                    "release_version": release.name,
                    "increment": parse_trailing_increment(artifact_name),
                },
            )
            audit_trail.append(
                SubactionInput(
                    subaction_type=self.profile.subaction("persist"),
                    message=f"{self.profile.display} {artifact.name} created",
                    metadata={"id": artifact.id, "releaseId": release.id},
                )
            )

            globals_only = [
                c
                for c in self.repository.list_components()
                if c.release_scope == ReleaseScope.GLOBAL.value
            ]
            _seed_components(
                self.db,
                self.profile,
                release,
                artifact,
                globals_only,
                "componentVersion.populate",
                audit_trail,
            )

        self.db.refresh(artifact)
        deliver_subactions(action_logger, audit_trail)
        return artifact

    def get(self, artifact_id: str) -> Optional[ArtifactModel]:
        return self.repository.get(artifact_id)

    def list_by_release(self, release_id: str) -> List[ArtifactModel]:
        return self.repository.list_by_release(release_id)

    def list_component_versions(self, artifact_id: str) -> List[ComponentVersionModel]:
        return (
            self.db.query(ComponentVersionModel)
            .filter(ComponentVersionModel.artifact_id == artifact_id)
            .order_by(ComponentVersionModel.created_at)
            .all()
        )

    def get_default_selection(self, artifact_id: str) -> DefaultSelection:
        """Components to preselect when deploying ``artifact_id``.

        Those present on the newest active artifact of the release, plus every
        global component.
        """
        artifact = self.repository.get(artifact_id)
        if artifact is None:
            raise NotFoundError(self.profile.display, artifact_id)

        global_ids = [
            c.id
            for c in self.repository.list_components()
            if c.release_scope == ReleaseScope.GLOBAL.value
        ]

        active: Optional[ArtifactModel] = None
        for sibling in self.repository.list_by_release(artifact.release_id):
            if self.repository.current_status(sibling.id) == ArtifactStatus.ACTIVE:
                active = sibling
                break

        if active is None:
            return DefaultSelection(selected_component_ids=global_ids)

        selected: Dict[str, None] = dict.fromkeys(
            self.repository.component_rows(active.id)
        )
        for component_id in global_ids:
            selected.setdefault(component_id, None)
        return DefaultSelection(selected_component_ids=list(selected))
