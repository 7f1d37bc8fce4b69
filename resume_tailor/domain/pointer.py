"""Structural get/set/remove over nested resume documents.

Pointers are ``/``-delimited paths (``/experience/0/achievements/2``).
Numeric segments index lists, other segments index mappings, ``-`` means
"one past the end" of a list, and ``~1`` / ``~0`` escape ``/`` and ``~``.

``set_by_pointer`` and ``remove_by_pointer`` never touch their input: every
container on the path is shallow-copied and everything else is shared.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional, Union

from ..errors import PathError

_INDEX_RE = re.compile(r"^(?:0|[1-9]\d*)$")


class _Absent:
    """Sentinel returned by :func:`get_by_pointer` for missing paths."""

    _instance: Optional["_Absent"] = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def split_pointer(pointer: str) -> List[str]:
    """Decode *pointer* into its segments. ``""`` and ``"/"`` address the root."""
    if pointer in ("", "/"):
        return []
    if not isinstance(pointer, str) or not pointer.startswith("/"):
        raise PathError(f"Invalid pointer: {pointer!r}", {"pointer": pointer})
    return [_decode(segment) for segment in pointer[1:].split("/")]


def join_pointer(*segments: Union[str, int]) -> str:
    """Build a pointer from raw segments, escaping as needed."""
    if not segments:
        return "/"
    return "/" + "/".join(_encode(str(segment)) for segment in segments)


def get_by_pointer(doc: Any, pointer: str) -> Any:
    """Return the value at *pointer*, or :data:`ABSENT`. Never raises."""
    try:
        segments = split_pointer(pointer)
    except PathError:
        return ABSENT

    current = doc
    for segment in segments:
        if isinstance(current, list):
            if segment == "-" and current:
                current = current[-1]
                continue
            if not _INDEX_RE.match(segment) or int(segment) >= len(current):
                return ABSENT
            current = current[int(segment)]
        elif isinstance(current, dict):
            if segment not in current:
                return ABSENT
            current = current[segment]
        else:
            return ABSENT
    return current


def set_by_pointer(doc: Any, pointer: str, value: Any) -> Any:
    """Return a copy of *doc* with *value* stored at *pointer*.

    Missing intermediate containers are created (a list when the next
    segment is numeric, a mapping otherwise). Raises :class:`PathError`
    when a step lands on a scalar or a list index is out of range.
    """
    segments = split_pointer(pointer)
    if not segments:
        return value
    return _set(doc, segments, value, pointer)


def remove_by_pointer(doc: Any, pointer: str) -> Any:
    """Return a copy of *doc* without the value at *pointer*.

    Removing a list element shifts later elements down. A path that does
    not exist leaves the document unchanged (the same object is returned).
    """
    segments = split_pointer(pointer)
    if not segments:
        raise PathError("Cannot remove the document root", {"pointer": pointer})
    return _remove(doc, segments, pointer)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _decode(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def _encode(segment: str) -> str:
    return segment.replace("~", "~0").replace("/", "~1")


def _list_index(segment: str, length: int, pointer: str, for_set: bool) -> int:
    if segment == "-":
        return length if for_set else length - 1
    if not _INDEX_RE.match(segment):
        raise PathError(
            f"List index expected, got {segment!r}",
            {"pointer": pointer, "segment": segment},
        )
    return int(segment)


def _new_container(next_segment: str) -> Any:
    return [] if next_segment == "-" or _INDEX_RE.match(next_segment) else {}


def _set(container: Any, segments: List[str], value: Any, pointer: str) -> Any:
    head, rest = segments[0], segments[1:]

    if isinstance(container, list):
        index = _list_index(head, len(container), pointer, for_set=True)
        if index > len(container):
            raise PathError(
                f"List index {index} out of range",
                {"pointer": pointer, "length": len(container)},
            )
        clone = list(container)
        if index == len(clone):
            clone.append(ABSENT)
        if rest:
            child = clone[index]
            if child is ABSENT:
                child = _new_container(rest[0])
            clone[index] = _set(child, rest, value, pointer)
        else:
            clone[index] = value
        return clone

    if isinstance(container, dict):
        clone = dict(container)
        if rest:
            child = container.get(head, ABSENT)
            if child is ABSENT:
                child = _new_container(rest[0])
            clone[head] = _set(child, rest, value, pointer)
        else:
            clone[head] = value
        return clone

    raise PathError(
        f"Cannot traverse into {type(container).__name__} at segment {head!r}",
        {"pointer": pointer, "segment": head},
    )


def _remove(container: Any, segments: List[str], pointer: str) -> Any:
    head, rest = segments[0], segments[1:]

    if isinstance(container, list):
        index = _list_index(head, len(container), pointer, for_set=False)
        if index < 0 or index >= len(container):
            return container
        if not rest:
            return container[:index] + container[index + 1 :]
        child = container[index]
        updated = _remove(child, rest, pointer)
        if updated is child:
            return container
        clone = list(container)
        clone[index] = updated
        return clone

    if isinstance(container, dict):
        if head not in container:
            return container
        if not rest:
            return {key: val for key, val in container.items() if key != head}
        child = container[head]
        updated = _remove(child, rest, pointer)
        if updated is child:
            return container
        clone = dict(container)
        clone[head] = updated
        return clone

    raise PathError(
        f"Cannot traverse into {type(container).__name__} at segment {head!r}",
        {"pointer": pointer, "segment": head},
    )
