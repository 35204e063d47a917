"""
Component version naming.

Naming patterns are plain strings with ``{token}`` placeholders, e.g.
``app.ios.{built_version}``. Only the tokens in ``ALLOWED_TOKENS`` are
recognised; anything else makes the pattern invalid.
"""

import math
import re
from typing import Dict, List, Mapping, Optional, Union

from .schemas import PatternValidation

TokenValue = Union[str, int]

ALLOWED_TOKENS = (
    "{release_version}",
    "{built_version}",
    "{patch}",
    "{increment}",
)

_TOKEN_RE = re.compile(r"\{[^}]+\}")


def validate_pattern(pattern: str) -> PatternValidation:
    """Check a pattern for unknown tokens and unbalanced braces."""
    errors: List[str] = []
    for token in _TOKEN_RE.findall(pattern):
        if token not in ALLOWED_TOKENS:
            errors.append(f"Unknown token: {token}")

    depth = 0
    for ch in pattern:
        if ch == "{":
            depth += 1
        elif ch == "}":
            if depth == 0:
                errors.append("Unmatched closing brace: '}'")
            else:
                depth -= 1
    if depth > 0:
        errors.append("Unmatched opening brace: '{'")

    return PatternValidation(valid=not errors, errors=errors)


def expand_pattern(pattern: str, tokens: Mapping[str, TokenValue]) -> str:
    """Substitute every ``{key}`` in ``pattern`` with ``str(tokens[key])``."""
    result = pattern
    for key, value in tokens.items():
        result = result.replace("{" + key + "}", str(value))
    return result


def naming_tokens(
    release_name: str, artifact_name: str, increment: int
) -> Dict[str, TokenValue]:
    """Token set used to name a component version on an artifact.

    The artifact name is exposed as both ``built_version`` and ``patch`` so
    one component pattern serves either artifact kind.
    """
    return {
        "release_version": release_name,
        "built_version": artifact_name,
        "patch": artifact_name,
        "increment": increment,
    }


def component_version_name(
    pattern: Optional[str], tokens: Mapping[str, TokenValue]
) -> Optional[str]:
    """Expanded name, or None when the pattern is blank or invalid."""
    if not pattern or not pattern.strip():
        return None
    if not validate_pattern(pattern).valid:
        return None
    return expand_pattern(pattern, tokens)


def parse_trailing_increment(name: str) -> Union[int, float]:
    """Numeric value of the last dot-separated segment of ``name``, else 0.

    "177.3" -> 3, "177" -> 177, "177.rc" -> 0, "177." -> 0.
    """
    last = name.strip().split(".")[-1].strip()
    if not last:
        return 0
    try:
        value = float(last)
    except ValueError:
        return 0
    if not math.isfinite(value):
        return 0
    return int(value) if value.is_integer() else value


def token_snapshot(
    name_token: str, release_name: str, artifact_name: str, increment: int
) -> Dict[str, TokenValue]:
    """Tokens persisted on a component version for auditability."""
    return {
        "release_version": release_name,
        name_token: artifact_name,
        "increment": increment,
    }
