"""
The deployment state machine.

The transition table is shared by every artifact kind. Status is never stored
on the artifact; it is derived from the ordered transition log.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Union

from .enums import INITIAL_STATUS, ArtifactStatus, TransitionAction
from .errors import InvalidTransitionError, UnsupportedTransitionError
from .schemas import TransitionCheck


@dataclass(frozen=True)
class TransitionRule:
    from_status: ArtifactStatus
    to_status: ArtifactStatus


TRANSITION_RULES: Dict[TransitionAction, TransitionRule] = {
    TransitionAction.START_DEPLOYMENT: TransitionRule(
        ArtifactStatus.IN_DEVELOPMENT, ArtifactStatus.IN_DEPLOYMENT
    ),
    TransitionAction.CANCEL_DEPLOYMENT: TransitionRule(
        ArtifactStatus.IN_DEPLOYMENT, ArtifactStatus.IN_DEVELOPMENT
    ),
    TransitionAction.MARK_ACTIVE: TransitionRule(
        ArtifactStatus.IN_DEPLOYMENT, ArtifactStatus.ACTIVE
    ),
    TransitionAction.REVERT_TO_DEPLOYMENT: TransitionRule(
        ArtifactStatus.ACTIVE, ArtifactStatus.IN_DEPLOYMENT
    ),
    TransitionAction.DEPRECATE: TransitionRule(
        ArtifactStatus.ACTIVE, ArtifactStatus.DEPRECATED
    ),
    TransitionAction.REACTIVATE: TransitionRule(
        ArtifactStatus.DEPRECATED, ArtifactStatus.ACTIVE
    ),
}

# Older client spellings still accepted on input.
ACTION_ALIASES: Dict[str, TransitionAction] = {
    "setActive": TransitionAction.MARK_ACTIVE,
    "archive": TransitionAction.DEPRECATE,
}

TRANSITION_SIDE_EFFECTS: Dict[TransitionAction, List[str]] = {
    TransitionAction.START_DEPLOYMENT: [
        "Auto-creates successor artifact when needed",
        "Locks artifact for deployment planning",
    ],
    TransitionAction.CANCEL_DEPLOYMENT: ["Reopens artifact for edits"],
    TransitionAction.MARK_ACTIVE: [
        "Marks artifact as live",
        "Updates default selections",
    ],
    TransitionAction.REVERT_TO_DEPLOYMENT: [
        "Moves artifact back to deployment planning"
    ],
    TransitionAction.DEPRECATE: ["Marks artifact as deprecated"],
    TransitionAction.REACTIVATE: ["Returns deprecated artifact to active"],
}


def parse_action(action: Union[TransitionAction, str]) -> TransitionAction:
    """Coerce caller input to a ``TransitionAction``, honouring aliases."""
    if isinstance(action, TransitionAction):
        return action
    if action in ACTION_ALIASES:
        return ACTION_ALIASES[action]
    try:
        return TransitionAction(action)
    except ValueError:
        raise UnsupportedTransitionError(str(action)) from None


def get_rule(action: Union[TransitionAction, str]) -> TransitionRule:
    return TRANSITION_RULES[parse_action(action)]


def check_transition(
    current: Union[ArtifactStatus, str], action: Union[TransitionAction, str]
) -> TransitionCheck:
    """Evaluate ``action`` against ``current`` without raising."""
    parsed = parse_action(action)
    rule = TRANSITION_RULES[parsed]
    current = ArtifactStatus(current)
    blockers = []
    if current != rule.from_status:
        blockers.append(
            f"Artifact is {current.value}; {parsed.value} requires "
            f"{rule.from_status.value}"
        )
    return TransitionCheck(
        action=parsed,
        from_status=current,
        target_status=rule.to_status,
        allowed=not blockers,
        blockers=blockers,
    )


def validate_transition(
    current: Union[ArtifactStatus, str], action: Union[TransitionAction, str]
) -> TransitionRule:
    """Return the rule for ``action`` or raise ``InvalidTransitionError``."""
    parsed = parse_action(action)
    rule = TRANSITION_RULES[parsed]
    current = ArtifactStatus(current)
    if current != rule.from_status:
        raise InvalidTransitionError(
            current=current.value,
            expected=rule.from_status.value,
            action=parsed.value,
        )
    return rule


def _ordered(transitions: Iterable) -> List:
    return sorted(transitions, key=lambda t: t.created_at)


def derive_status(transitions: Iterable) -> ArtifactStatus:
    """Fold a transition log into the current status.

    Items only need ``created_at`` and ``to_status`` attributes.
    """
    ordered = _ordered(transitions)
    if not ordered:
        return INITIAL_STATUS
    return ArtifactStatus(ordered[-1].to_status)


def is_contiguous(transitions: Sequence) -> bool:
    """True when each transition starts where the previous one ended."""
    expected = INITIAL_STATUS
    for t in _ordered(transitions):
        if ArtifactStatus(t.from_status) != expected:
            return False
        expected = ArtifactStatus(t.to_status)
    return True
