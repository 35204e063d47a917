"""Tests for component version naming."""

import pytest

from release_lifecycle.lifecycle.naming import (
    component_version_name,
    expand_pattern,
    naming_tokens,
    parse_trailing_increment,
    token_snapshot,
    validate_pattern,
)


class TestValidatePattern:
    @pytest.mark.parametrize(
        "pattern",
        [
            "app.ios.{built_version}",
            "{release_version}-{patch}-{increment}",
            "static-name",
        ],
    )
    def test_valid(self, pattern):
        result = validate_pattern(pattern)
        assert result.valid
        assert result.errors == []

    def test_unknown_token(self):
        result = validate_pattern("app.{build}")
        assert not result.valid
        assert result.errors == ["Unknown token: {build}"]

    def test_unbalanced_braces(self):
        assert validate_pattern("app.{built_version").errors == [
            "Unmatched opening brace: '{'"
        ]
        assert validate_pattern("app}").errors == ["Unmatched closing brace: '}'"]


class TestExpandPattern:
    def test_expands_all_tokens(self):
        tokens = naming_tokens("177", "177.2", 4)
        assert expand_pattern("{release_version}/{built_version}/{increment}", tokens) == "177/177.2/4"
        assert expand_pattern("p-{patch}", tokens) == "p-177.2"

    def test_repeated_token(self):
        assert expand_pattern("{increment}.{increment}", {"increment": 3}) == "3.3"

    def test_component_version_name_requires_usable_pattern(self):
        tokens = naming_tokens("177", "177.0", 0)
        assert component_version_name(None, tokens) is None
        assert component_version_name("   ", tokens) is None
        assert component_version_name("x.{nope}", tokens) is None
        assert component_version_name("app.{built_version}", tokens) == "app.177.0"


class TestParseTrailingIncrement:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("177.3", 3),
            ("177", 177),
            ("1.2.15", 15),
            ("177.rc", 0),
            ("177.", 0),
            ("", 0),
            ("177.inf", 0),
            (" 177.4 ", 4),
        ],
    )
    def test_trailing_segment(self, name, expected):
        assert parse_trailing_increment(name) == expected


def test_token_snapshot_uses_kind_token():
    assert token_snapshot("patch", "177", "177.1", 2) == {
        "release_version": "177",
        "patch": "177.1",
        "increment": 2,
    }
