"""Nested Document Paths.

This module defines the typed path used to address a value inside a nested
patient document, together with the read/write helpers that walk documents
along such a path.

A path is an ordered tuple of segments:
    - ``str``: a dictionary key (``"patientDetails"``)
    - ``int``: a zero-based position in a list (sibling slot)
    - ``KeyMatch``: the list entry whose ``field`` equals ``value``
      (stimulation test result for ``time == "30 min"``)

Architecture:
    - Pure domain helpers with no infrastructure dependencies
    - Writes never mutate their input; callers receive a new document
"""

import copy
from dataclasses import dataclass
from typing import Any, Iterator, Union


class _Missing:
    """Sentinel for "no value at this path" (distinct from an explicit None)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


MISSING = _Missing()


@dataclass(frozen=True)
class KeyMatch:
    """Selects the list entry whose ``field`` equals ``value``."""

    field: str
    value: str

    def __str__(self) -> str:
        return f"[{self.field}={self.value}]"


Segment = Union[str, int, KeyMatch]


@dataclass(frozen=True)
class FieldPath:
    """Immutable address of a value inside a nested document."""

    segments: tuple

    @classmethod
    def parse(cls, dotted: str) -> "FieldPath":
        """Build a path from a plain dotted string (dictionary keys only)."""
        if not dotted:
            raise ValueError("Path cannot be empty")
        return cls(tuple(dotted.split(".")))

    def child(self, segment: Segment) -> "FieldPath":
        return FieldPath(self.segments + (segment,))

    @property
    def root(self) -> str:
        return self.segments[0]

    @property
    def canonical(self) -> str:
        """Dotted path with list positions and key matches removed.

        ``history.familyHistory.siblings[1].age`` and
        ``history.familyHistory.siblings[0].age`` share the canonical path
        ``history.familyHistory.siblings.age``.
        """
        return ".".join(s for s in self.segments if isinstance(s, str))

    def __str__(self) -> str:
        parts = []
        for segment in self.segments:
            if isinstance(segment, int):
                parts.append(f"[{segment}]")
            elif isinstance(segment, KeyMatch):
                parts.append(str(segment))
            else:
                parts.append(("." if parts else "") + segment)
        return "".join(parts)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)


def _find_keyed(entries: list, match: KeyMatch) -> Any:
    for entry in entries:
        if isinstance(entry, dict) and entry.get(match.field) == match.value:
            return entry
    return MISSING


def get_value(document: Any, path: FieldPath) -> Any:
    """Read the value at ``path``, returning ``MISSING`` when any step is absent."""
    current = document
    for segment in path:
        if isinstance(segment, str):
            if not isinstance(current, dict) or segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(segment, int):
            if not isinstance(current, list) or segment >= len(current):
                return MISSING
            current = current[segment]
        else:
            if not isinstance(current, list):
                return MISSING
            current = _find_keyed(current, segment)
            if current is MISSING:
                return MISSING
    return current


def _container_for(next_segment: Segment) -> Any:
    return {} if isinstance(next_segment, str) else []


def _descend(current: Any, segment: Segment, next_segment: Segment) -> Any:
    """Return the child container for ``segment``, creating it on demand."""
    if isinstance(segment, str):
        child = current.get(segment)
        if not isinstance(child, (dict, list)):
            child = _container_for(next_segment)
            current[segment] = child
        return child

    if isinstance(segment, int):
        while len(current) <= segment:
            current.append({})
        if not isinstance(current[segment], dict):
            current[segment] = {}
        return current[segment]

    entry = _find_keyed(current, segment)
    if entry is MISSING:
        entry = {segment.field: segment.value}
        current.append(entry)
    return entry


def set_value(document: dict, path: FieldPath, value: Any) -> None:
    """Set ``value`` at ``path`` in place, creating intermediate containers.

    List positions beyond the current length are padded with empty entries;
    keyed entries that do not exist yet are appended with their key field set.

    Raises:
        ValueError: If the final segment does not address a dictionary key
    """
    segments = path.segments
    if not isinstance(segments[-1], str):
        raise ValueError(f"Path must end with a field name: {path}")

    current = document
    for index, segment in enumerate(segments[:-1]):
        current = _descend(current, segment, segments[index + 1])
    current[segments[-1]] = value


def with_value(document: dict, path: FieldPath, value: Any) -> dict:
    """Return a deep copy of ``document`` with ``value`` set at ``path``."""
    updated = copy.deepcopy(document)
    set_value(updated, path, value)
    return updated
