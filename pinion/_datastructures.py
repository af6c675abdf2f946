"""
Object path helpers for dot-path bindings.

A path such as ``"request.body[0].id"`` is parsed once into
``("request", "body", 0, "id")`` and evaluated against mappings, sequences
and plain objects. Missing intermediate segments produce ``MISSING``
instead of raising.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

Segment = Union[str, int]
ObjectPath = Tuple[Segment, ...]


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

_TOKEN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def parse_path(text: Optional[str]) -> ObjectPath:
    """
    Parse a dot path with optional index syntax.

    >>> parse_path("body[0].id")
    ('body', 0, 'id')
    """
    if not text:
        return ()
    segments = []
    position = 0
    for match in _TOKEN.finditer(text):
        gap = text[position:match.start()]
        if gap.strip("."):
            raise ValueError(f"Invalid path expression '{text}'")
        name, index = match.groups()
        segments.append(int(index) if index is not None else name)
        position = match.end()
    if text[position:].strip("."):
        raise ValueError(f"Invalid path expression '{text}'")
    return tuple(segments)


def get_child_value(obj: Any, path: Sequence[Segment]) -> Any:
    """Walk ``path`` from ``obj``; return ``MISSING`` when a segment is absent."""
    current = obj
    for segment in path:
        if current is None or current is MISSING:
            return MISSING
        if isinstance(segment, int):
            if isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
                if -len(current) <= segment < len(current):
                    current = current[segment]
                    continue
            return MISSING
        if isinstance(current, Mapping):
            current = current.get(segment, MISSING)
        else:
            current = getattr(current, segment, MISSING)
    return current
