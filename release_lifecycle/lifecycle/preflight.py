"""
Transition preflight: what an action would do, without doing it.
"""

from typing import Optional, Union

from sqlalchemy.orm import Session

from .enums import ArtifactKind, TransitionAction
from .errors import NotFoundError
from .kinds import KindProfile, get_profile
from .repository import ArtifactRepository
from .rules import TRANSITION_SIDE_EFFECTS, check_transition, parse_action
from .schemas import ArtifactSummary, TransitionPreflight, TransitionRecord

HISTORY_PREVIEW_LIMIT = 5


class TransitionPreflightService:
    def __init__(
        self,
        db: Session,
        kind: Union[ArtifactKind, str, KindProfile] = ArtifactKind.BUILT_VERSION,
    ):
        self.db = db
        self.profile = get_profile(kind)
        self.repository = ArtifactRepository(db, self.profile)

    def get_preflight(
        self,
        artifact_id: str,
        action: Union[TransitionAction, str],
        release_id: Optional[str] = None,
    ) -> TransitionPreflight:
        artifact = self.repository.get(artifact_id)
        if artifact is None:
            raise NotFoundError(self.profile.display, artifact_id)
        if release_id is not None and artifact.release_id != release_id:
            raise NotFoundError(
                self.profile.display, artifact_id, releaseId=release_id
            )

        parsed = parse_action(action)
        current = self.repository.current_status(artifact_id)
        check = check_transition(current, parsed)
        history = [
            TransitionRecord.model_validate(row)
            for row in self.repository.history(artifact_id)
        ][-HISTORY_PREVIEW_LIMIT:]

        preflight = TransitionPreflight(
            action=parsed,
            from_status=current,
            to_status=check.target_status,
            allowed=check.allowed,
            blockers=check.blockers,
            expected_side_effects=TRANSITION_SIDE_EFFECTS[parsed],
            artifact=ArtifactSummary.model_validate(artifact),
            history_preview=history,
        )

        if parsed == TransitionAction.START_DEPLOYMENT:
            release = self.repository.get_release(artifact.release_id)
            has_successor = self.repository.has_newer_sibling(artifact)
            preflight.has_successor = has_successor
            if release is not None and not has_successor:
                preflight.next_artifact_name = (
                    f"{release.name}.{release.last_used_increment + 1}"
                )

        return preflight
