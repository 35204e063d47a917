"""
Per-kind capabilities for the shared lifecycle engine.

Built versions and patches follow the same state machine and successor rules.
A ``KindProfile`` carries the few things that differ between them: how audit
entries are labelled and which naming token holds the artifact name.
"""

from dataclasses import dataclass
from typing import Dict, Union

from .enums import ArtifactKind


@dataclass(frozen=True)
class KindProfile:
    kind: ArtifactKind
    label: str
    display: str
    name_token: str

    @property
    def arrange_subaction(self) -> str:
        return f"successor{self.label[0].upper()}{self.label[1:]}.arrange"

    def subaction(self, suffix: str) -> str:
        return f"{self.label}.{suffix}"


BUILT_VERSION = KindProfile(
    kind=ArtifactKind.BUILT_VERSION,
    label="builtVersion",
    display="Built version",
    name_token="built_version",
)

PATCH = KindProfile(
    kind=ArtifactKind.PATCH,
    label="patch",
    display="Patch",
    name_token="patch",
)

KIND_PROFILES: Dict[ArtifactKind, KindProfile] = {
    ArtifactKind.BUILT_VERSION: BUILT_VERSION,
    ArtifactKind.PATCH: PATCH,
}


def get_profile(kind: Union[ArtifactKind, str, KindProfile]) -> KindProfile:
    """Resolve a kind value (enum, string or profile) to its profile."""
    if isinstance(kind, KindProfile):
        return kind
    return KIND_PROFILES[ArtifactKind(kind)]
