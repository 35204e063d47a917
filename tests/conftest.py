"""Test configuration and fixtures."""

from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy.orm import sessionmaker

from release_lifecycle.db import Base
from release_lifecycle.db.base import create_database_engine
from release_lifecycle.db.models import ArtifactModel, ReleaseModel
from release_lifecycle.lifecycle import (
    ActionStatus,
    ArtifactKind,
    ArtifactService,
    ComponentService,
    ReleaseScope,
    ReleaseService,
    SubactionInput,
)


class RecordingActionLogger:
    """Action logger that keeps subactions in memory."""

    id = "recording-action"

    def __init__(self):
        self.entries: List[SubactionInput] = []
        self.completed: Optional[ActionStatus] = None

    @property
    def types(self) -> List[str]:
        return [e.subaction_type for e in self.entries]

    def subaction(self, entry: SubactionInput) -> None:
        self.entries.append(entry)

    def complete(self, status, message=None, metadata=None) -> None:
        self.completed = status


class FailingActionLogger:
    """Action logger whose storage is down."""

    id = "failing-action"

    def subaction(self, entry: SubactionInput) -> None:
        raise RuntimeError("action log unavailable")

    def complete(self, status, message=None, metadata=None) -> None:
        raise RuntimeError("action log unavailable")


@pytest.fixture
def db_session():
    """Create a fresh in-memory database for each test."""
    engine = create_database_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def recorder() -> RecordingActionLogger:
    return RecordingActionLogger()


@pytest.fixture
def components(db_session) -> Dict[str, Any]:
    """Two global app components and two version-bound ones."""
    service = ComponentService(db_session)
    return {
        "ios": service.create("iosApp", "app.ios.{built_version}", ReleaseScope.GLOBAL),
        "android": service.create(
            "androidApp", "app.android.{built_version}", ReleaseScope.GLOBAL
        ),
        "web": service.create("webApp", "web.{built_version}.{increment}"),
        "api": service.create("api", "api.{release_version}-{increment}"),
    }


@pytest.fixture
def release(db_session, components) -> ReleaseModel:
    """Release 177 with its initial built version 177.0."""
    return ReleaseService(db_session).create_release("user-1", "177")


@pytest.fixture
def initial(db_session, release) -> ArtifactModel:
    """The 177.0 built version."""
    return find_artifact(db_session, release, "177.0")


def find_artifact(
    db_session, release, name, kind=ArtifactKind.BUILT_VERSION
) -> ArtifactModel:
    for artifact in ArtifactService(db_session, kind).list_by_release(release.id):
        if artifact.name == name:
            return artifact
    raise AssertionError(f"artifact {name} not found")


def component_ids_on(db_session, artifact_id: str) -> set:
    rows = ArtifactService(db_session).list_component_versions(artifact_id)
    return {row.release_component_id for row in rows}
