"""Data-path selectors (`$`, `$.values.value`) over the event payload.

Only the dotted subset of JSONPath is supported: a root `$` followed by zero
or more field names. That is what `InputPath` and `ResultPath` need.
"""

from __future__ import annotations

import copy
from typing import Any

ROOT = "$"


class PathError(ValueError):
    pass


def _segments(path: str) -> list[str]:
    if path == ROOT:
        return []
    if not path.startswith(ROOT + "."):
        raise PathError(f"Unsupported data path {path!r}")
    parts = path[len(ROOT) + 1 :].split(".")
    if any(not p for p in parts):
        raise PathError(f"Empty segment in data path {path!r}")
    return parts


def select(document: Any, path: str | None) -> Any:
    """Return the sub-value of `document` at `path`.

    A `None` path selects an empty object, as `"InputPath": null` does.
    """

    if path is None:
        return {}
    current = document
    for segment in _segments(path):
        if not isinstance(current, dict) or segment not in current:
            raise PathError(f"Data path {path!r} does not match the payload")
        current = current[segment]
    return current


def merge(document: Any, path: str | None, value: Any) -> Any:
    """Return a copy of `document` with `value` placed at `path`.

    `$` replaces the whole document; `None` discards `value`. Intermediate
    objects are created as needed.
    """

    if path is None:
        return document
    segments = _segments(path)
    if not segments:
        return value
    if not isinstance(document, dict):
        raise PathError(f"Cannot apply data path {path!r} to a non-object payload")

    result = copy.copy(document)
    current = result
    for segment in segments[:-1]:
        child = current.get(segment)
        if child is None:
            child = {}
        elif not isinstance(child, dict):
            raise PathError(f"Data path {path!r} crosses a non-object value at {segment!r}")
        else:
            child = copy.copy(child)
        current[segment] = child
        current = child
    current[segments[-1]] = value
    return result
