"""
Data types for the property tree.

This module provides:
- FlatEntry: one (key, value) pair from a flat property source
- FlatSource: an ordered sequence of FlatEntry tagged with an origin name
- Scalar / Node: the two variants of a value in an expanded tree
- MergedMap: type alias for the merged flat view (full key -> value)
"""

from __future__ import annotations

import collections.abc as _abc
import dataclasses as _dataclasses
import typing as _typing

# Segment delimiter for flat keys ("server.port" -> ("server", "port"))
DELIMITER = "."

# Merged flat view. Insertion order is the first-seen position of each key.
MergedMap: _typing.TypeAlias = dict[str | None, _typing.Any]


@_dataclasses.dataclass(frozen=True, slots=True)
class FlatEntry:
    """A single flat property: dot-delimited key and its value."""

    key: str | None
    value: _typing.Any = None


@_dataclasses.dataclass(frozen=True)
class FlatSource(_abc.Sequence[FlatEntry]):
    """
    Ordered flat property entries from one origin.

    The origin (usually a file location) is kept for diagnostics only and
    never affects the built tree.

    Example:
        >>> src = FlatSource.from_mapping({"server.port": 8080}, origin="app.yaml")
        >>> src[0]
        FlatEntry(key='server.port', value=8080)
    """

    entries: tuple[FlatEntry, ...] = ()
    origin: str | None = None

    @classmethod
    def from_mapping(
        cls,
        mapping: _abc.Mapping[_typing.Any, _typing.Any],
        origin: str | None = None,
    ) -> FlatSource:
        """Create a source from a mapping, keeping its iteration order."""
        return cls(tuple(FlatEntry(k, v) for k, v in mapping.items()), origin)

    @classmethod
    def from_pairs(
        cls,
        pairs: _abc.Iterable[tuple[_typing.Any, _typing.Any]],
        origin: str | None = None,
    ) -> FlatSource:
        """Create a source from (key, value) pairs. Duplicate keys are kept."""
        return cls(tuple(FlatEntry(k, v) for k, v in pairs), origin)

    @_typing.overload
    def __getitem__(self, index: int) -> FlatEntry: ...

    @_typing.overload
    def __getitem__(self, index: slice) -> _abc.Sequence[FlatEntry]: ...

    def __getitem__(self, index: int | slice) -> FlatEntry | _abc.Sequence[FlatEntry]:
        return self.entries[index]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> _typing.Iterator[FlatEntry]:
        return iter(self.entries)


@_dataclasses.dataclass(frozen=True, slots=True)
class Scalar:
    """Leaf value in an expanded tree."""

    value: _typing.Any


@_dataclasses.dataclass(eq=True, slots=True)
class Node:
    """
    Intermediate value in an expanded tree.

    Maps segment names to Scalar or Node children. Children keep the order
    in which they were first bound.
    """

    children: dict[str, Value] = _dataclasses.field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.children)

    def __iter__(self) -> _typing.Iterator[str]:
        return iter(self.children)

    def __contains__(self, segment: object) -> bool:
        return segment in self.children

    def __getitem__(self, segment: str) -> Value:
        return self.children[segment]

    def lookup(self, key: str) -> Value | None:
        """
        Find the value at a dot-delimited path.

        Returns:
            The Scalar or Node at the path, or None if any segment is
            missing or the walk hits a scalar before the last segment.
        """
        current: Value = self
        for segment in key.split(DELIMITER):
            if not isinstance(current, Node):
                return None
            child = current.children.get(segment)
            if child is None:
                return None
            current = child
        return current

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to plain nested dicts for serialization."""
        result: dict[str, _typing.Any] = {}
        for segment, child in self.children.items():
            if isinstance(child, Node):
                result[segment] = child.to_dict()
            elif isinstance(child, Scalar):
                result[segment] = child.value
            else:
                raise TypeError(f"Unknown tree value type: {type(child).__name__}")
        return result


# A tree value is exactly one of the two variants
Value: _typing.TypeAlias = Scalar | Node
