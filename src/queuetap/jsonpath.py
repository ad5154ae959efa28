from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Iterator

from queuetap.errors import MalformedPathError

JsonValue = dict[str, Any] | list[Any] | str | int | float | bool | None

_INDEX_TOKEN = re.compile(r"\[([0-9]+)\]")


@dataclass(frozen=True)
class PathSegment:
    """One step of a replacement path: an object key or an array index."""

    kind: str  # "key" | "index"
    value: str | int


def _split_tokens(path: str) -> Iterator[str]:
    for part in path.split("."):
        open_at = part.find("[")
        close_at = part.find("]")
        if open_at < 0 or close_at < 0:
            yield part
            continue
        if close_at < open_at:
            raise MalformedPathError(f"Unbalanced brackets in JSON path part: {part!r}")
        # Only the first bracket pair of a part is honoured; "a[0][1]" yields "a", "[0]".
        yield part[:open_at]
        yield f"[{part[open_at + 1 : close_at]}]"


def parse_json_path(path: str) -> list[PathSegment]:
    """Parse a dot/bracket replacement path (e.g. `users[0].email`)."""
    segments: list[PathSegment] = []
    for token in _split_tokens(path):
        if not token:
            continue
        match = _INDEX_TOKEN.fullmatch(token)
        if match:
            segments.append(PathSegment(kind="index", value=int(match.group(1))))
        else:
            segments.append(PathSegment(kind="key", value=token))

    if not segments:
        raise MalformedPathError(f"JSON path cannot be empty: {path!r}")
    return segments


def _resolve(node: object, segment: PathSegment) -> tuple[dict[str, Any] | list[Any], str | int] | None:
    """Locate the container slot a segment addresses, or None when it does not resolve."""
    if segment.kind == "index":
        if isinstance(node, list) and isinstance(segment.value, int) and 0 <= segment.value < len(node):
            return node, segment.value
        return None
    if isinstance(node, dict) and segment.value in node:
        return node, segment.value
    return None


def _try_replace_at(node: object, segments: list[PathSegment], placeholder: str) -> bool:
    if not segments:
        return False

    slot = _resolve(node, segments[0])
    if slot is None:
        return False
    container, key = slot

    if len(segments) == 1:
        container[key] = placeholder  # type: ignore[index]
        return True
    return _try_replace_at(container[key], segments[1:], placeholder)  # type: ignore[index]


def _children(node: object) -> list[object]:
    if isinstance(node, list):
        return list(node)
    if isinstance(node, dict):
        return list(node.values())
    return []


def _search_descendants(node: object, segments: list[PathSegment], placeholder: str) -> int:
    count = 1 if _try_replace_at(node, segments, placeholder) else 0
    for child in _children(node):
        count += _search_descendants(child, segments, placeholder)
    return count


def replace_all(root: JsonValue, segments: list[PathSegment], placeholder: str) -> int:
    """Replace every value addressed by `segments`, anchored at the root or any descendant.

    The tree is mutated in place; each replaced slot becomes the string
    `placeholder`. Unresolvable segments count as a non-match rather than an
    error. Returns the number of slots replaced.
    """
    return _search_descendants(root, segments, placeholder)


def collect_json_paths(data: JsonValue) -> list[str]:
    """All concrete paths reachable in a parsed JSON value, sorted and deduplicated."""
    paths: set[str] = set()
    _collect(data, "", paths)
    return sorted(paths)


def _collect(node: object, prefix: str, paths: set[str]) -> None:
    if isinstance(node, dict):
        for key, value in node.items():
            path = f"{prefix}.{key}" if prefix else key
            paths.add(path)
            _collect(value, path, paths)
    elif isinstance(node, list):
        for i, value in enumerate(node):
            path = f"{prefix}[{i}]"
            paths.add(path)
            _collect(value, path, paths)


def extract_json_paths(text: str) -> list[str]:
    """Parse JSON text and list its paths; malformed text yields an empty list."""
    try:
        return collect_json_paths(json.loads(text))
    except (TypeError, ValueError, RecursionError):
        return []
