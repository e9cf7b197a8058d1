"""
Serialization of property trees.

YAML output is block style with a fixed indent and keeps the tree's key
order, so the document reads in the same order the keys were first seen.
"""

import json as _json

import yaml as _yaml

import propserver.tree as tree

YAML_MEDIA_TYPE = "application/x-yaml"


class _BlockDumper(_yaml.SafeDumper):
    """SafeDumper that indents sequences nested in mappings."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        super().increase_indent(flow, False)


def to_yaml(node: tree.Node, *, indent: int = 2) -> str:
    """
    Render a tree as a block-style YAML document.

    Args:
        node: Tree to render.
        indent: Indent width in spaces.

    Returns:
        YAML text. An empty tree renders as "{}\\n".
    """
    return _yaml.dump(
        node.to_dict(),
        Dumper=_BlockDumper,
        default_flow_style=False,
        sort_keys=False,
        indent=indent,
        allow_unicode=True,
    )


def to_json(node: tree.Node, *, indent: int = 2) -> str:
    """Render a tree as JSON, keeping key order."""
    return _json.dumps(node.to_dict(), indent=indent, ensure_ascii=False, default=str)
