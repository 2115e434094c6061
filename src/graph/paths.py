# src/graph/paths.py — v1
"""Schema path helpers.

A schema path addresses a value inside artifact content with dot and
bracket notation: ``apis[0].auth_required``. The artifact root is the
empty path. Keys that cannot appear bare (containing ``.``, ``[``, ``]``
or ``"``, or empty) are written as JSON strings in brackets:
``file_structure["package.json"]``.
"""

from __future__ import annotations

import copy
import json
import re
from typing import Any, Union

PathSegment = Union[str, int]

_SEGMENT_RE = re.compile(r'\[(\d+)\]|\[("(?:[^"\\]|\\.)*")\]|([^.\[\]"]+)')
_ARRAY_INDEX_RE = re.compile(r"\[(\d+)\]$")
_BARE_KEY_RE = re.compile(r'[^.\[\]"]+')


def join_key(base: str, key: str) -> str:
    if not _BARE_KEY_RE.fullmatch(key):
        return f"{base}[{json.dumps(key)}]"
    return f"{base}.{key}" if base else key


def join_index(base: str, index: int) -> str:
    return f"{base}[{index}]"


def node_id(artifact_type: str, path: str) -> str:
    """Graph node id for a path inside an artifact."""
    if path.startswith("["):
        return f"{artifact_type}{path}"
    return f"{artifact_type}.{path}"


def last_key(path: str) -> str:
    """Final object key of a path ('' for array items and the root)."""
    segments = parse_path(path)
    if not segments or isinstance(segments[-1], int):
        return ""
    return segments[-1]


def array_index(path: str) -> int | None:
    """Index of a path that ends in an array element, else None."""
    match = _ARRAY_INDEX_RE.search(path)
    return int(match.group(1)) if match else None


def parse_path(path: str) -> list[PathSegment]:
    """Split a schema path into keys (str) and indices (int).

    Raises:
        ValueError: If the path contains characters outside any segment.
    """
    segments: list[PathSegment] = []
    pos = 0
    for match in _SEGMENT_RE.finditer(path):
        gap = path[pos:match.start()]
        index, quoted, key = match.groups()
        expected = "." if key is not None and segments else ""
        if gap != expected:
            raise ValueError(f"Malformed schema path: {path!r}")
        if index is not None:
            segments.append(int(index))
        elif quoted is not None:
            segments.append(json.loads(quoted))
        else:
            segments.append(key)
        pos = match.end()
    if path[pos:]:
        raise ValueError(f"Malformed schema path: {path!r}")
    return segments


def get_at_path(content: Any, path: str) -> Any:
    """Value at ``path``.

    Raises:
        KeyError: If any segment does not exist.
    """
    current = content
    for segment in parse_path(path):
        try:
            current = current[segment]
        except (KeyError, IndexError, TypeError) as exc:
            raise KeyError(path) from exc
    return current


def set_at_path(content: Any, path: str, value: Any) -> Any:
    """Return a deep copy of ``content`` with ``value`` stored at ``path``.

    Missing object keys along the way are created; array indices must exist.

    Raises:
        KeyError: If an array index is out of range or a segment crosses a scalar.
        ValueError: For the empty (root) path.
    """
    segments = parse_path(path)
    if not segments:
        raise ValueError("Cannot set the artifact root")

    result = copy.deepcopy(content)
    current = result
    for position, segment in enumerate(segments):
        is_last = position == len(segments) - 1
        if isinstance(segment, int):
            if not isinstance(current, list) or segment >= len(current):
                raise KeyError(path)
            if is_last:
                current[segment] = copy.deepcopy(value)
            else:
                current = current[segment]
            continue
        if not isinstance(current, dict):
            raise KeyError(path)
        if is_last:
            current[segment] = copy.deepcopy(value)
        else:
            if segment not in current or current[segment] is None:
                nxt = segments[position + 1]
                current[segment] = [] if isinstance(nxt, int) else {}
            current = current[segment]
    return result
