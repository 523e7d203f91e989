from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, cast

AUTHOR_KEYS: frozenset[str] = frozenset({"author", "authorMeta"})
COMMENT_PATTERN = re.compile("comment", re.IGNORECASE)
DEFAULT_MAX_DEPTH = 32

_LEADING_INTEGER_PATTERN = re.compile(r"^\s*([+-]?\d+)")


def to_number(value: Any) -> int:
    """
    Coerce a scraped value to a non-negative integer.

    Text is read like a lenient integer parse: leading digits count,
    anything after them is ignored ("12.9k" -> 12). Everything that cannot
    be read as a number becomes 0, and negative results are floored to 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return max(0, int(value))
    if isinstance(value, str):
        match = _LEADING_INTEGER_PATTERN.match(value)
        if match is None:
            return 0
        return max(0, int(match.group(1)))
    return 0


def extract_metric(
    record: Mapping[str, Any],
    candidates: Iterable[Any],
    *,
    name_pattern: re.Pattern[str] | str = COMMENT_PATTERN,
    excluded_keys: frozenset[str] = AUTHOR_KEYS,
) -> int:
    for candidate in candidates:
        number = to_number(candidate)
        if number > 0:
            return number
    return deep_field_search(record, name_pattern, excluded_keys=excluded_keys)


def deep_field_search(
    record: Any,
    name_pattern: re.Pattern[str] | str,
    *,
    excluded_keys: frozenset[str] = AUTHOR_KEYS,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> int:
    """
    Depth-first, pre-order search for a positive numeric field whose key
    matches `name_pattern` (case-insensitive).

    Subtrees under `excluded_keys` are skipped so numeric ids inside author
    metadata never masquerade as metrics. Returns 0 when nothing matches.
    """
    pattern = (
        name_pattern
        if isinstance(name_pattern, re.Pattern)
        else re.compile(re.escape(name_pattern), re.IGNORECASE)
    )
    return _visit(record, pattern, excluded_keys, max_depth)


def _visit(
    node: Any,
    pattern: re.Pattern[str],
    excluded_keys: frozenset[str],
    remaining_depth: int,
) -> int:
    if remaining_depth < 0:
        return 0

    for key, child in _children(node):
        if key is not None and _is_scalar_number(child) and pattern.search(key):
            number = to_number(child)
            if number > 0:
                return number
        if not _is_container(child):
            continue
        if key is not None and key in excluded_keys:
            continue
        found = _visit(child, pattern, excluded_keys, remaining_depth - 1)
        if found > 0:
            return found
    return 0


def _children(node: Any) -> list[tuple[str | None, Any]]:
    if isinstance(node, Mapping):
        mapping = cast(Mapping[object, Any], node)
        return [(str(key), value) for key, value in mapping.items()]
    if _is_sequence(node):
        return [(None, item) for item in cast(Sequence[Any], node)]
    return []


def _is_container(value: Any) -> bool:
    return isinstance(value, Mapping) or _is_sequence(value)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _is_scalar_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, str))
