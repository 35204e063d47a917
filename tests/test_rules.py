"""Tests for the deployment state machine table and status derivation."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from release_lifecycle.lifecycle import (
    TRANSITION_RULES,
    ArtifactStatus,
    InvalidTransitionError,
    TransitionAction,
    UnsupportedTransitionError,
    check_transition,
    derive_status,
    is_contiguous,
    validate_transition,
)
from release_lifecycle.lifecycle.rules import TRANSITION_SIDE_EFFECTS, get_rule, parse_action

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _event(minutes, from_status, to_status):
    return SimpleNamespace(
        created_at=T0 + timedelta(minutes=minutes),
        from_status=from_status,
        to_status=to_status,
    )


class TestTransitionTable:
    def test_every_action_has_a_rule(self):
        assert set(TRANSITION_RULES) == set(TransitionAction)
        assert set(TRANSITION_SIDE_EFFECTS) == set(TransitionAction)

    def test_rules_stay_inside_status_set(self):
        for rule in TRANSITION_RULES.values():
            assert rule.from_status in ArtifactStatus
            assert rule.to_status in ArtifactStatus
            assert rule.from_status != rule.to_status

    def test_every_status_reachable_from_initial(self):
        reached = {ArtifactStatus.IN_DEVELOPMENT}
        frontier = [ArtifactStatus.IN_DEVELOPMENT]
        while frontier:
            status = frontier.pop()
            for rule in TRANSITION_RULES.values():
                if rule.from_status == status and rule.to_status not in reached:
                    reached.add(rule.to_status)
                    frontier.append(rule.to_status)
        assert reached == set(ArtifactStatus)

    @pytest.mark.parametrize(
        "action,from_status,to_status",
        [
            ("startDeployment", "in_development", "in_deployment"),
            ("cancelDeployment", "in_deployment", "in_development"),
            ("markActive", "in_deployment", "active"),
            ("revertToDeployment", "active", "in_deployment"),
            ("deprecate", "active", "deprecated"),
            ("reactivate", "deprecated", "active"),
        ],
    )
    def test_rule_endpoints(self, action, from_status, to_status):
        rule = get_rule(action)
        assert rule.from_status.value == from_status
        assert rule.to_status.value == to_status


class TestParseAction:
    def test_aliases(self):
        assert parse_action("setActive") == TransitionAction.MARK_ACTIVE
        assert parse_action("archive") == TransitionAction.DEPRECATE

    def test_enum_passthrough(self):
        assert parse_action(TransitionAction.REACTIVATE) is TransitionAction.REACTIVATE

    def test_unknown(self):
        with pytest.raises(UnsupportedTransitionError) as exc_info:
            parse_action("ship")
        assert exc_info.value.to_dict() == {
            "error": "UNSUPPORTED_TRANSITION",
            "message": "Unsupported transition: ship",
            "details": {"action": "ship"},
        }


class TestCheckTransition:
    def test_allowed(self):
        check = check_transition("in_development", "startDeployment")
        assert check.allowed
        assert check.blockers == []
        assert check.target_status == ArtifactStatus.IN_DEPLOYMENT

    def test_blocked(self):
        check = check_transition(ArtifactStatus.ACTIVE, "startDeployment")
        assert not check.allowed
        assert len(check.blockers) == 1

    def test_validate_raises(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition(ArtifactStatus.DEPRECATED, TransitionAction.DEPRECATE)
        assert exc_info.value.current == "deprecated"
        assert exc_info.value.expected == "active"


class TestDeriveStatus:
    def test_empty_log(self):
        assert derive_status([]) == ArtifactStatus.IN_DEVELOPMENT

    def test_uses_newest_regardless_of_input_order(self):
        events = [
            _event(2, "in_deployment", "active"),
            _event(0, "in_development", "in_deployment"),
            _event(5, "active", "deprecated"),
        ]
        assert derive_status(events) == ArtifactStatus.DEPRECATED

    def test_contiguity(self):
        good = [
            _event(0, "in_development", "in_deployment"),
            _event(1, "in_deployment", "in_development"),
        ]
        gap = [
            _event(0, "in_development", "in_deployment"),
            _event(1, "active", "deprecated"),
        ]
        assert is_contiguous(good)
        assert not is_contiguous(gap)
        assert is_contiguous([])
