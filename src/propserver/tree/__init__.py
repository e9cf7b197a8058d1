"""
Property tree: flat dot-delimited keys to nested hierarchies.

Example:
    >>> import propserver.tree as tree
    >>> tree.build([{"server.port": 8080, "server.address": "localhost"}]).to_dict()
    {'server': {'port': 8080, 'address': 'localhost'}}
"""

from propserver.tree._types import (
    DELIMITER,
    FlatEntry,
    FlatSource,
    MergedMap,
    Node,
    Scalar,
    Value,
)
from propserver.tree.builder import (
    HierarchyBuilder,
    KeyCollisionError,
    build,
    expand,
    merge,
    put,
)
from propserver.tree.flatten import flatten

__all__ = [
    "DELIMITER",
    "FlatEntry",
    "FlatSource",
    "HierarchyBuilder",
    "KeyCollisionError",
    "MergedMap",
    "Node",
    "Scalar",
    "Value",
    "build",
    "expand",
    "flatten",
    "merge",
    "put",
]
