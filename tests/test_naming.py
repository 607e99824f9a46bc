from __future__ import annotations

import re
from pathlib import Path

import pytest

from oci_discover.naming import MATCH_ALL_NAME, artifact_path, sanitize_filter_name

SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


@pytest.mark.parametrize(
    "pattern,expected",
    [
        ("web.*", "webwildcard"),
        ("db.*", "dbwildcard"),
        (".*db.*", "wildcarddbwildcard"),
        ("^prod-.*", "start_prod-wildcard"),
        ("^test-.*$", "start_test-wildcardend"),
        ("(web|app)[0-9]+", "paren_weborappparenbracket_0-9bracketplus"),
        ("a{2}b?", "abrace_2bracebquestion"),
        ("\\d+", "backslashdplus"),
        ("web 01/app", "web_01_app"),
        ("__acc__", "acc"),
        ("acc", "acc"),
    ],
)
def test_sanitize_filter_name_ordered_substitutions(pattern: str, expected: str) -> None:
    assert sanitize_filter_name(pattern) == expected


def test_match_all_pattern_maps_to_reserved_name() -> None:
    assert sanitize_filter_name(".*") == MATCH_ALL_NAME == "all_instances"


@pytest.mark.parametrize("pattern", ["all_instances", "^all_instances", "all instances", ".*.*", "(.*)"])
def test_only_match_all_yields_reserved_name(pattern: str) -> None:
    assert sanitize_filter_name(pattern) != MATCH_ALL_NAME


def test_dot_star_replaced_before_generic_pass() -> None:
    # If the generic pass ran first, "a.*b" would become "a_b".
    assert sanitize_filter_name("a.*b") == "awildcardb"


def test_empty_result_falls_back_to_unique_names() -> None:
    first = sanitize_filter_name(".")
    second = sanitize_filter_name("._.")
    assert first.startswith("filter_")
    assert second.startswith("filter_")
    assert first != second
    assert SAFE.match(first)


@pytest.mark.parametrize("pattern", ["web.*", "x**", "[a-z]{3}$", "é+ü", "a b\tc", "---"])
def test_sanitized_names_are_filesystem_safe(pattern: str) -> None:
    assert SAFE.match(sanitize_filter_name(pattern))


def test_distinct_patterns_can_collide() -> None:
    assert sanitize_filter_name("web-.*") == sanitize_filter_name("web-wildcard") == "web-wildcard"


def test_artifact_path_uses_csv_suffix(tmp_path: Path) -> None:
    assert artifact_path(tmp_path, "web.*") == tmp_path / "webwildcard.csv"
    assert artifact_path(tmp_path, ".*") == tmp_path / "all_instances.csv"
