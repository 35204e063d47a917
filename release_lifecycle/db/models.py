"""
SQLAlchemy models for Release Lifecycle.

Releases own artifacts (built versions and patches, one table with a ``kind``
column). Artifacts own an append-only transition log and a mutable set of
component versions. Status is not a column: it is the ``to_status`` of the
newest transition.
"""

from typing import Any, Dict

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..primitives import generate_id, utc_now
from .base import Base


# These mirror release_lifecycle/lifecycle/enums.py
artifact_kind_enum = Enum("built_version", "patch", name="artifact_kind")

artifact_status_enum = Enum(
    "in_development",
    "in_deployment",
    "active",
    "deprecated",
    name="artifact_status",
)

transition_action_enum = Enum(
    "startDeployment",
    "cancelDeployment",
    "markActive",
    "revertToDeployment",
    "deprecate",
    "reactivate",
    name="transition_action",
)

release_scope_enum = Enum("global", "version_bound", name="release_scope")


def _iso(value):
    return value.isoformat() if value else None


class ReleaseModel(Base):
    """A release version: the owning group of artifacts and their name counter."""

    __tablename__ = "release_versions"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False, unique=True, index=True)

    # Increment reserved for the most recently created artifact; -1 = none yet
    last_used_increment = Column(Integer, nullable=False, default=-1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    created_by_id = Column(String(128), nullable=False)

    artifacts = relationship(
        "ArtifactModel",
        back_populates="release",
        order_by="ArtifactModel.created_at",
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "last_used_increment": self.last_used_increment,
            "created_at": _iso(self.created_at),
            "created_by_id": self.created_by_id,
        }


class ArtifactModel(Base):
    """A built version or patch within a release."""

    __tablename__ = "artifacts"

    id = Column(String(36), primary_key=True, default=generate_id)
    kind = Column(artifact_kind_enum, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    release_id = Column(
        String(36), ForeignKey("release_versions.id"), nullable=False, index=True
    )

    # Orders siblings within a release; the successor is the next one created
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    created_by_id = Column(String(128), nullable=False)

    # Snapshot of the naming tokens used to render ``name``
    token_values = Column(JSON, nullable=False, default=dict)

    release = relationship("ReleaseModel", back_populates="artifacts")
    transitions = relationship(
        "ArtifactTransitionModel",
        back_populates="artifact",
        order_by="ArtifactTransitionModel.created_at",
    )
    component_versions = relationship(
        "ComponentVersionModel", back_populates="artifact"
    )

    __table_args__ = (
        UniqueConstraint("kind", "release_id", "name", name="uq_artifacts_kind_release_name"),
        Index("ix_artifacts_release_kind_created", "release_id", "kind", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "release_id": self.release_id,
            "created_at": _iso(self.created_at),
            "created_by_id": self.created_by_id,
            "token_values": self.token_values,
        }


class ArtifactTransitionModel(Base):
    """Append-only status change event for an artifact."""

    __tablename__ = "artifact_transitions"

    id = Column(String(36), primary_key=True, default=generate_id)
    artifact_id = Column(String(36), ForeignKey("artifacts.id"), nullable=False)
    from_status = Column(artifact_status_enum, nullable=False)
    to_status = Column(artifact_status_enum, nullable=False)
    action = Column(transition_action_enum, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    created_by_id = Column(String(128), nullable=False)

    artifact = relationship("ArtifactModel", back_populates="transitions")

    __table_args__ = (
        Index("ix_artifact_transitions_artifact_created", "artifact_id", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "artifact_id": self.artifact_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "action": self.action,
            "created_at": _iso(self.created_at),
            "created_by_id": self.created_by_id,
        }


class ReleaseComponentModel(Base):
    """A deployable component and the pattern used to name its versions."""

    __tablename__ = "release_components"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False, unique=True)
    naming_pattern = Column(Text, nullable=True)
    release_scope = Column(
        release_scope_enum, nullable=False, default="version_bound", index=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    component_versions = relationship(
        "ComponentVersionModel", back_populates="release_component"
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "naming_pattern": self.naming_pattern,
            "release_scope": self.release_scope,
            "created_at": _iso(self.created_at),
        }


class ComponentVersionModel(Base):
    """Per-artifact, per-component build record."""

    __tablename__ = "component_versions"

    id = Column(String(36), primary_key=True, default=generate_id)
    release_component_id = Column(
        String(36), ForeignKey("release_components.id"), nullable=False, index=True
    )
    artifact_id = Column(
        String(36), ForeignKey("artifacts.id"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    increment = Column(Integer, nullable=False, default=0)
    token_values = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    artifact = relationship("ArtifactModel", back_populates="component_versions")
    release_component = relationship(
        "ReleaseComponentModel", back_populates="component_versions"
    )

    __table_args__ = (
        UniqueConstraint(
            "artifact_id",
            "release_component_id",
            name="uq_component_versions_artifact_component",
        ),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "release_component_id": self.release_component_id,
            "artifact_id": self.artifact_id,
            "name": self.name,
            "increment": self.increment,
            "token_values": self.token_values,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
