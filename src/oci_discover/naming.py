from __future__ import annotations

import itertools
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Tuple

MATCH_ALL_PATTERN = ".*"
MATCH_ALL_NAME = "all_instances"
ARTIFACT_SUFFIX = ".csv"

# Applied strictly in this order; each step sees the previous step's output.
# ".*" must run before the generic character pass, otherwise its "." would
# already have become "_".
REGEX_TOKEN_WORDS: List[Tuple[str, str]] = [
    (".*", "wildcard"),
    ("^", "start_"),
    ("$", "end"),
    ("[", "bracket_"),
    ("]", "bracket"),
    ("(", "paren_"),
    (")", "paren"),
    ("|", "or"),
    ("+", "plus"),
    ("?", "question"),
    ("{", "brace_"),
    ("}", "brace"),
    ("\\", "backslash"),
]

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_UNDERSCORE_RUNS = re.compile(r"_+")
_fallback_seq = itertools.count(1)


def _fallback_name() -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return f"filter_{ts}_{next(_fallback_seq)}"


def sanitize_filter_name(pattern: str) -> str:
    """
    Turn a filter regex into a filesystem-safe base name made of letters,
    digits, "_" and "-".

    - ".*" maps to "all_instances"; no other pattern can produce that name.
    - Common regex metacharacters become words (see REGEX_TOKEN_WORDS).
    - Anything else unsafe becomes "_", runs of "_" collapse, edges are trimmed.
    - A pattern that sanitizes to nothing gets a unique "filter_<ts>_<n>" name.
    """
    if pattern == MATCH_ALL_PATTERN:
        return MATCH_ALL_NAME

    name = pattern
    for token, word in REGEX_TOKEN_WORDS:
        name = name.replace(token, word)
    name = _UNSAFE_CHARS.sub("_", name)
    name = _UNDERSCORE_RUNS.sub("_", name).strip("_")

    if not name:
        return _fallback_name()
    if name == MATCH_ALL_NAME:
        return f"filter_{name}"
    return name


def artifact_path(outdir: Path, pattern: str) -> Path:
    return outdir / f"{sanitize_filter_name(pattern)}{ARTIFACT_SUFFIX}"
