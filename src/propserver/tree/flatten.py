"""Flatten nested mappings (parsed YAML) into flat property sources."""

from __future__ import annotations

import collections.abc as _abc
import typing as _typing

import propserver.tree._types as _types


def _walk(
    value: _typing.Any,
    prefix: str,
    index_lists: bool,
    out: list[tuple[str, _typing.Any]],
) -> None:
    if isinstance(value, _abc.Mapping):
        if not value and prefix and index_lists:
            out.append((prefix, ""))
            return
        for key, child in value.items():
            name = str(key)
            full_key = f"{prefix}{_types.DELIMITER}{name}" if prefix else name
            _walk(child, full_key, index_lists, out)
        return

    if index_lists and isinstance(value, list):
        if not value:
            out.append((prefix, ""))
            return
        for i, item in enumerate(value):
            _walk(item, f"{prefix}[{i}]", index_lists, out)
        return

    out.append((prefix, value))


def flatten(
    mapping: _abc.Mapping[_typing.Any, _typing.Any],
    origin: str | None = None,
    *,
    index_lists: bool = True,
) -> _types.FlatSource:
    """
    Flatten a nested mapping into dot-delimited entries.

    Example:
        >>> flatten({"server": {"port": 8080, "hosts": ["a", "b"]}}).entries
        (FlatEntry(key='server.port', value=8080),
         FlatEntry(key='server.hosts[0]', value='a'),
         FlatEntry(key='server.hosts[1]', value='b'))

    Args:
        mapping: Nested mapping to flatten. Non-string keys are converted with str().
        origin: Origin name attached to the result.
        index_lists: Emit list items as "key[i]" entries, and empty nested
            lists and mappings as "". When False, lists are kept whole as
            leaf values and empty nested mappings produce no entries, so a
            settings layer with "section: {}" leaves lower layers intact.

    Returns:
        FlatSource with entries in depth-first document order. An empty
        top-level mapping produces no entries.
    """
    out: list[tuple[str, _typing.Any]] = []
    _walk(mapping, "", index_lists, out)
    return _types.FlatSource.from_pairs(out, origin)
