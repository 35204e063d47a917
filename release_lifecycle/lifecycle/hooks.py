"""
Transition side effects.

Hooks run inside the transition's transaction, after the transition row has
been written: exit hooks for the status being left, then enter hooks for the
status being entered. An exception from a hook rolls the whole transition
back.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, DefaultDict, List, Optional, Union

import structlog
from sqlalchemy.orm import Session

from ..db.action_history import SubactionInput
from ..db.models import ArtifactModel
from .enums import ArtifactStatus, TransitionAction
from .kinds import KindProfile
from .repository import ArtifactRepository

logger = structlog.get_logger(__name__)


@dataclass
class HookContext:
    db: Session
    repository: ArtifactRepository
    profile: KindProfile
    artifact: ArtifactModel
    action: TransitionAction
    user_id: str
    audit_trail: List[SubactionInput] = field(default_factory=list)
    successor: Optional[ArtifactModel] = None


Hook = Callable[[HookContext], None]


class TransitionHooks:
    """Registry of hooks keyed by the status being entered or left."""

    def __init__(self):
        self._enter: DefaultDict[ArtifactStatus, List[Hook]] = defaultdict(list)
        self._exit: DefaultDict[ArtifactStatus, List[Hook]] = defaultdict(list)

    def on_enter(
        self, status: Union[ArtifactStatus, str], hook: Hook
    ) -> "TransitionHooks":
        self._enter[ArtifactStatus(status)].append(hook)
        return self

    def on_exit(
        self, status: Union[ArtifactStatus, str], hook: Hook
    ) -> "TransitionHooks":
        self._exit[ArtifactStatus(status)].append(hook)
        return self

    def run_enter(self, status: Union[ArtifactStatus, str], ctx: HookContext) -> None:
        for hook in self._enter.get(ArtifactStatus(status), []):
            hook(ctx)

    def run_exit(self, status: Union[ArtifactStatus, str], ctx: HookContext) -> None:
        for hook in self._exit.get(ArtifactStatus(status), []):
            hook(ctx)


def provision_successor(ctx: HookContext) -> None:
    """Create the next artifact in the release unless a newer one exists.

    The release row is locked while its ``last_used_increment`` is read and
    bumped, so two transitions can never claim the same increment.
    """
    repo = ctx.repository
    artifact = ctx.artifact
    log = logger.bind(artifact_id=artifact.id, kind=ctx.profile.kind.value)

    release = repo.get_release(artifact.release_id, for_update=True)
    if release is None:
        return

    if repo.has_newer_sibling(artifact):
        log.debug("successor_exists")
        return

    next_increment = release.last_used_increment + 1
    successor = repo.create_artifact(
        release, f"{release.name}.{next_increment}", ctx.user_id
    )
    ctx.audit_trail.append(
        SubactionInput(
            subaction_type=ctx.profile.subaction("successor.create"),
            message=f"Auto-created successor {successor.name}",
            metadata={"successorId": successor.id, "releaseId": release.id},
        )
    )

    release.last_used_increment = next_increment

    # Stamp the token snapshot once the successor row exists
    successor.token_values = {
        "release_version": release.name,
        "increment": next_increment,
    }
    ctx.db.flush()
    ctx.successor = successor
    log.info("successor_created", successor_id=successor.id, name=successor.name)


def default_hooks() -> TransitionHooks:
    return TransitionHooks().on_enter(ArtifactStatus.IN_DEPLOYMENT, provision_successor)
