"""
Tests for rebalancing component versions between an artifact and its successor.
"""

import pytest

from release_lifecycle.db.models import ComponentVersionModel
from release_lifecycle.lifecycle import (
    ArtifactStatusService,
    ComponentService,
    InvalidStateError,
    MissingSuccessorError,
    NotFoundError,
    SuccessorBuiltService,
    SuccessorService,
    TransitionHooks,
    ValidationError,
)

from conftest import FailingActionLogger, component_ids_on


@pytest.fixture
def deployed(db_session, initial):
    """177.0 in deployment with its auto-created successor 177.1."""
    result = ArtifactStatusService(db_session).start_deployment(initial.id, "user-1")
    return initial, result.successor


def _row(db_session, artifact_id, component_id):
    return (
        db_session.query(ComponentVersionModel)
        .filter(
            ComponentVersionModel.artifact_id == artifact_id,
            ComponentVersionModel.release_component_id == component_id,
        )
        .one()
    )


class TestCreateSuccessor:
    def test_selected_stay_unselected_move(self, db_session, components, deployed):
        artifact, successor = deployed
        web, api = components["web"], components["api"]

        summary = SuccessorService(db_session).create_successor(
            artifact.id, [web.id], "user-1"
        )

        assert summary.moved == 1
        assert summary.created == 3
        assert summary.updated == 0
        assert summary.successor_artifact_id == successor.id

        all_ids = {c.id for c in components.values()}
        assert component_ids_on(db_session, artifact.id) == all_ids - {api.id}
        assert component_ids_on(db_session, successor.id) == all_ids

        moved = _row(db_session, successor.id, api.id)
        assert moved.name == "api.177-0"
        assert moved.token_values == {
            "release_version": "177",
            "built_version": "177.1",
            "increment": 0,
        }

        seeded = _row(db_session, successor.id, web.id)
        assert seeded.name == "web.177.1.0"
        assert seeded.increment == 0

    def test_global_components_always_selected(self, db_session, components, deployed):
        artifact, successor = deployed

        SuccessorService(db_session).create_successor(
            artifact.id, [components["api"].id], "user-1"
        )

        on_artifact = component_ids_on(db_session, artifact.id)
        assert components["ios"].id in on_artifact
        assert components["android"].id in on_artifact
        assert components["web"].id not in on_artifact
        assert _row(db_session, successor.id, components["ios"].id).name == "app.ios.177.1"

    def test_repeat_is_idempotent(self, db_session, components, deployed):
        artifact, successor = deployed
        service = SuccessorBuiltService(db_session)
        service.create_successor(artifact.id, [components["web"].id], "user-1")
        total = db_session.query(ComponentVersionModel).count()

        summary = service.create_successor(artifact.id, [components["web"].id], "user-1")

        assert (summary.moved, summary.created, summary.updated) == (0, 0, 3)
        assert db_session.query(ComponentVersionModel).count() == total
        assert len(component_ids_on(db_session, artifact.id)) == 3
        assert len(component_ids_on(db_session, successor.id)) == 4

    def test_changed_selection_replaces_successor_row(self, db_session, components, deployed):
        artifact, successor = deployed
        web, api = components["web"], components["api"]
        service = SuccessorService(db_session)
        service.create_successor(artifact.id, [web.id], "user-1")
        original_web_row = _row(db_session, artifact.id, web.id).id

        summary = service.create_successor(artifact.id, [api.id], "user-1")

        # web moves over its seeded copy, api is backfilled on the deployed artifact
        assert (summary.moved, summary.created, summary.updated) == (1, 1, 3)
        assert _row(db_session, successor.id, web.id).id == original_web_row
        assert component_ids_on(db_session, artifact.id) == {
            components["ios"].id,
            components["android"].id,
            api.id,
        }
        assert len(component_ids_on(db_session, successor.id)) == 4

    def test_backfills_missing_source_rows(self, db_session, components, deployed):
        artifact, successor = deployed
        docs = ComponentService(db_session).create("docs", "docs-{release_version}")

        summary = SuccessorService(db_session).create_successor(
            artifact.id, [docs.id], "user-1"
        )

        assert summary.moved == 2
        assert summary.created == 4
        assert _row(db_session, artifact.id, docs.id).name == "docs-177"
        assert _row(db_session, successor.id, docs.id).name == "docs-177"

    def test_component_without_pattern_gets_fallback_name(self, db_session, components, deployed):
        artifact, successor = deployed
        bare = ComponentService(db_session).create("bare")

        SuccessorService(db_session).create_successor(artifact.id, [bare.id], "user-1")

        assert _row(db_session, successor.id, bare.id).name == f"177.1-{bare.id}-0"
        assert _row(db_session, artifact.id, bare.id).name == f"177.0-{bare.id}-0"


class TestCreateSuccessorGuards:
    def test_empty_selection(self, db_session):
        with pytest.raises(ValidationError):
            SuccessorService(db_session).create_successor("anything", [], "user-1")

    def test_bare_string_selection_rejected(self, db_session, components, deployed):
        artifact, _ = deployed
        before = db_session.query(ComponentVersionModel).count()

        with pytest.raises(ValidationError) as exc_info:
            SuccessorService(db_session).create_successor(
                artifact.id, components["web"].id, "user-1"
            )

        assert exc_info.value.details == {"selectedComponentIds": components["web"].id}
        assert db_session.query(ComponentVersionModel).count() == before

    def test_unknown_artifact(self, db_session, components):
        with pytest.raises(NotFoundError):
            SuccessorService(db_session).create_successor(
                "missing", [components["web"].id], "user-1"
            )

    def test_not_in_deployment_writes_nothing(self, db_session, components, initial):
        before = {
            row.id: (row.artifact_id, row.name)
            for row in db_session.query(ComponentVersionModel).all()
        }

        with pytest.raises(InvalidStateError) as exc_info:
            SuccessorService(db_session).create_successor(
                initial.id, [components["web"].id], "user-1"
            )

        assert exc_info.value.details == {"status": "in_development"}
        after = {
            row.id: (row.artifact_id, row.name)
            for row in db_session.query(ComponentVersionModel).all()
        }
        assert after == before

    def test_missing_successor(self, db_session, components, initial):
        # Without the provisioning hook no successor exists
        ArtifactStatusService(db_session, hooks=TransitionHooks()).start_deployment(
            initial.id, "user-1"
        )

        with pytest.raises(MissingSuccessorError):
            SuccessorService(db_session).create_successor(
                initial.id, [components["web"].id], "user-1"
            )


class TestCreateSuccessorAudit:
    def test_single_arrange_entry(self, db_session, components, deployed, recorder):
        artifact, _ = deployed

        summary = SuccessorService(db_session).create_successor(
            artifact.id, [components["web"].id], "user-1", action_logger=recorder
        )

        assert recorder.types == ["successorBuiltVersion.arrange"]
        assert recorder.entries[0].metadata == summary.model_dump()

    def test_logger_failure_is_not_fatal(self, db_session, components, deployed):
        artifact, successor = deployed

        summary = SuccessorService(db_session).create_successor(
            artifact.id,
            [components["web"].id],
            "user-1",
            action_logger=FailingActionLogger(),
        )

        assert summary.successor_artifact_id == successor.id
        assert len(component_ids_on(db_session, successor.id)) == 4
