"""
Tests for action history.

Verifies:
- ActionHistoryService start/complete and subaction ordering
- Keyset pagination by session token and by user
- deliver_subactions swallows and logs logger failures
"""

from structlog.testing import capture_logs

from release_lifecycle.db.action_history import ActionHistoryPage, deliver_subactions
from release_lifecycle.db.action_log_models import ActionLogModel
from release_lifecycle.lifecycle import (
    ActionHistoryService,
    ActionStatus,
    ArtifactStatusService,
    NoopActionLogger,
    SubactionInput,
)

from conftest import FailingActionLogger


class TestActionLogger:
    def test_start_and_complete(self, db_session):
        history = ActionHistoryService(db_session)
        action_logger = history.start_action(
            "builtVersion.transition", " Start deployment ", "user-1", session_token="s1"
        )

        action_logger.complete(ActionStatus.FAILED, message="boom", metadata={"code": 1})

        row = history.get(action_logger.id)
        assert row.message == "boom"
        assert row.status == "failed"
        assert row.meta == {"code": 1}
        assert row.session_token == "s1"

    def test_records_service_subactions_in_order(self, db_session, initial):
        history = ActionHistoryService(db_session)
        action_logger = history.start_action("builtVersion.transition", "deploy", "user-1")

        ArtifactStatusService(db_session).start_deployment(
            initial.id, "user-1", action_logger=action_logger
        )
        action_logger.complete(ActionStatus.SUCCESS)

        data = history.get(action_logger.id).to_dict()
        assert [s["subaction_type"] for s in data["subactions"]] == [
            "builtVersion.transition.verify",
            "builtVersion.transition.persist",
            "builtVersion.successor.create",
        ]

    def test_finalize_action(self, db_session):
        history = ActionHistoryService(db_session)
        action_id = history.start_action("patch.arrange", "arrange", "user-1").id

        history.finalize_action(action_id, ActionStatus.CANCELLED, message=" stopped ")

        row = history.get(action_id)
        assert row.status == "cancelled"
        assert row.message == "stopped"

    def test_record_subaction_trims_message(self, db_session):
        history = ActionHistoryService(db_session)
        action_id = history.start_action("release.create", "create", "user-1").id

        history.record_subaction(
            action_id, SubactionInput(subaction_type="releaseVersion.persist", message="  stored  ")
        )

        row = db_session.get(ActionLogModel, action_id)
        assert row.subactions[0].message == "stored"

    def test_noop_logger(self):
        action_logger = NoopActionLogger()
        action_logger.subaction(SubactionInput(subaction_type="x", message="y"))
        action_logger.complete(ActionStatus.SUCCESS)
        assert action_logger.id is None


class TestListBySession:
    def _seed(self, db_session, count, **kwargs):
        history = ActionHistoryService(db_session)
        return [
            history.start_action("test.action", f"action {i}", **kwargs).id
            for i in range(count)
        ]

    def test_paginates_newest_first(self, db_session):
        ids = self._seed(db_session, 7, user_id="user-1", session_token="s1")
        history = ActionHistoryService(db_session)

        first = history.list_by_session("s1", None, limit=5)
        assert len(first.items) == 5
        assert first.has_more
        assert first.next_cursor == first.items[-1]["id"]

        second = history.list_by_session("s1", None, limit=5, cursor=first.next_cursor)
        assert len(second.items) == 2
        assert not second.has_more
        assert second.next_cursor is None

        seen = [item["id"] for item in first.items + second.items]
        assert sorted(seen) == sorted(ids)

        created = [item["created_at"] for item in first.items + second.items]
        assert created == sorted(created, reverse=True)

    def test_default_page_size(self, db_session):
        self._seed(db_session, 6, user_id="user-1", session_token="s1")

        page = ActionHistoryService(db_session).list_by_session("s1", None)

        assert len(page.items) == 5
        assert page.has_more

    def test_falls_back_to_user(self, db_session):
        self._seed(db_session, 2, user_id="user-1")
        self._seed(db_session, 1, user_id="user-2")

        page = ActionHistoryService(db_session).list_by_session(None, "user-2")

        assert len(page.items) == 1
        assert page.items[0]["created_by_id"] == "user-2"

    def test_session_token_takes_precedence(self, db_session):
        self._seed(db_session, 2, user_id="user-1", session_token="s1")
        self._seed(db_session, 3, user_id="user-1", session_token="s2")

        page = ActionHistoryService(db_session).list_by_session("s2", "user-1")

        assert len(page.items) == 3

    def test_no_filter_returns_empty_page(self, db_session):
        self._seed(db_session, 2, user_id="user-1")

        assert ActionHistoryService(db_session).list_by_session(None, None) == ActionHistoryPage()


class TestDeliverSubactions:
    def test_failure_logged_not_raised(self):
        entries = [SubactionInput(subaction_type="patch.persist", message="stored")]

        with capture_logs() as logs:
            deliver_subactions(FailingActionLogger(), entries)

        assert logs[0]["event"] == "subaction_log_failed"
        assert logs[0]["log_level"] == "warning"
        assert logs[0]["subaction_type"] == "patch.persist"

    def test_none_logger(self):
        deliver_subactions(None, [SubactionInput(subaction_type="x", message="y")])
