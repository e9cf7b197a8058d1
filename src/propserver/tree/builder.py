"""
Hierarchy builder: flat dot-delimited property keys to nested trees.

Converts ordered flat property sources (e.g. {"server.port": 8080}) into a
nested tree ({"server": {"port": 8080}}) in two passes:

1. merge: apply sources in ascending priority; later sources win per key
2. expand: split every merged key on "." and bind it into the tree

Collision policy (lenient, the default): last writer wins. A longer key
replaces a scalar that sits on its path, and a shorter key replaces a
subtree that sits at its final segment. Either way the earlier value is
discarded. Strict mode raises KeyCollisionError instead.

The builder holds no mutable state; one instance can be shared freely.
"""

from __future__ import annotations

import collections.abc as _abc
import logging as _logging
import typing as _typing

import propserver.tree._types as _types

_logger = _logging.getLogger(__name__)

SourceLike: _typing.TypeAlias = "_types.FlatSource | _abc.Mapping[_typing.Any, _typing.Any]"


class KeyCollisionError(ValueError):
    """Raised in strict mode when a key would replace a scalar with a subtree or vice versa."""

    def __init__(self, key: str, existing_key: str, message: str) -> None:
        self.key = key
        self.existing_key = existing_key
        super().__init__(f"Key '{key}' collides with '{existing_key}': {message}")


def _as_source(source: SourceLike) -> _types.FlatSource:
    if isinstance(source, _types.FlatSource):
        return source
    return _types.FlatSource.from_mapping(source)


def _split_key(key: _typing.Any) -> list[str]:
    """Split a flat key into segments. Empty keys and empty segments yield nothing."""
    if key is None:
        return []
    text = str(key).strip()
    if not text:
        return []
    return [part for part in text.split(_types.DELIMITER) if part]


def _first_leaf_key(node: _types.Node, prefix: str) -> str:
    """Full key of the first scalar under node, or prefix if it has none."""
    for segment, child in node.children.items():
        key = f"{prefix}{_types.DELIMITER}{segment}"
        if isinstance(child, _types.Node):
            return _first_leaf_key(child, key)
        return key
    return prefix


def put(
    root: _types.Node,
    key: _typing.Any,
    value: _typing.Any,
    *,
    strict: bool = False,
) -> None:
    """
    Bind one flat key into a tree.

    Args:
        root: Tree to modify in place.
        key: Dot-delimited key (e.g. "a.b.c"). None or blank keys are skipped.
        value: Value bound at the final segment.
        strict: Raise KeyCollisionError instead of discarding data on collision.

    Raises:
        KeyCollisionError: Only when strict is True.
    """
    parts = _split_key(key)
    if not parts:
        return

    current = root
    for depth, part in enumerate(parts[:-1]):
        existing = current.children.get(part)

        if isinstance(existing, _types.Node):
            current = existing
            continue

        if isinstance(existing, _types.Scalar):
            existing_key = _types.DELIMITER.join(parts[: depth + 1])
            if strict:
                raise KeyCollisionError(
                    _types.DELIMITER.join(parts),
                    existing_key,
                    "a value is already set where a nested section is needed",
                )
            _logger.warning(
                "Key %r replaces the value of %r with a nested section",
                _types.DELIMITER.join(parts),
                existing_key,
            )
        elif existing is not None:
            raise TypeError(f"Unknown tree value type: {type(existing).__name__}")

        child = _types.Node()
        current.children[part] = child
        current = child

    last = parts[-1]
    existing = current.children.get(last)
    if isinstance(existing, _types.Node):
        full_key = _types.DELIMITER.join(parts)
        if strict:
            raise KeyCollisionError(
                full_key,
                _first_leaf_key(existing, full_key),
                "a nested section is already set where a value is needed",
            )
        _logger.warning("Key %r replaces a nested section with a value", full_key)

    current.children[last] = _types.Scalar(value)


class HierarchyBuilder:
    """
    Builds nested trees from ordered flat property sources.

    Example:
        >>> builder = HierarchyBuilder()
        >>> tree = builder.build([{"server.port": 8080}, {"server.port": 9090}])
        >>> tree.to_dict()
        {'server': {'port': 9090}}

    Args:
        strict: Reject scalar/subtree collisions with KeyCollisionError
            instead of applying last-writer-wins.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self._strict = strict

    @property
    def strict(self) -> bool:
        return self._strict

    def merge(self, sources: _abc.Iterable[SourceLike]) -> _types.MergedMap:
        """
        Merge flat sources in ascending priority.

        A key keeps the position where it was first seen; its value comes
        from the last source that set it. None values become "".

        Args:
            sources: Flat sources, lowest priority first.

        Returns:
            Merged flat map (full key -> value).
        """
        merged: _types.MergedMap = {}
        origins: dict[_typing.Any, str | None] = {}

        for source in sources:
            flat_source = _as_source(source)
            for entry in flat_source:
                value = "" if entry.value is None else entry.value
                if entry.key in merged and _logger.isEnabledFor(_logging.DEBUG):
                    _logger.debug(
                        "Key %r from %s overrides value from %s",
                        entry.key,
                        flat_source.origin or "<unnamed>",
                        origins.get(entry.key) or "<unnamed>",
                    )
                merged[entry.key] = value
                origins[entry.key] = flat_source.origin

        return merged

    def expand(self, flat: _abc.Mapping[_typing.Any, _typing.Any]) -> _types.Node:
        """
        Expand a merged flat map into a fresh tree.

        Keys are applied in the mapping's iteration order, which decides
        the winner of any collision.

        Raises:
            KeyCollisionError: Only in strict mode.
        """
        root = _types.Node()
        for key, value in flat.items():
            put(root, key, value, strict=self._strict)
        return root

    def build(self, sources: _abc.Iterable[SourceLike]) -> _types.Node:
        """Merge sources, then expand the result."""
        return self.expand(self.merge(sources))


_default_builder = HierarchyBuilder()


def merge(sources: _abc.Iterable[SourceLike]) -> _types.MergedMap:
    """Merge flat sources with the default (lenient) builder."""
    return _default_builder.merge(sources)


def expand(flat: _abc.Mapping[_typing.Any, _typing.Any]) -> _types.Node:
    """Expand a flat map with the default (lenient) builder."""
    return _default_builder.expand(flat)


def build(sources: _abc.Iterable[SourceLike]) -> _types.Node:
    """Merge and expand flat sources with the default (lenient) builder."""
    return _default_builder.build(sources)
