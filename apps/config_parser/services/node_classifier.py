"""
apps.config_parser.services.node_classifier
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Decides what a node of an untyped configuration tree represents.

The classifier is the only place that inspects the runtime shape of a raw
node; the parser dispatches on the returned :class:`NodeKind`.
"""
from __future__ import annotations

import enum

#: Path fragments that mark a mapping as document-level metadata.
SPECIAL_MARKERS: tuple[str, ...] = (
    "metadata",
    "groups",
    "schema",
    "version",
    "config",
    "settings",
)

#: Keys whose presence (case-insensitive) turns a mapping into a field descriptor.
FIELD_PROPERTY_KEYS: frozenset[str] = frozenset({
    "type",
    "default",
    "description",
    "required",
    "hidden",
    "validation",
    "options",
    "group",
    "order",
    "constraints",
    "can_be_update",
    "optional",
})

#: Scalar shapes that are promoted into leaf fields.
LEAF_TYPES: tuple[type, ...] = (str, int, float, bool)


class NodeKind(enum.Enum):
    SPECIAL = "special"
    FIELD_DESCRIPTOR = "field_descriptor"
    CONTAINER = "container"
    LEAF = "leaf"
    IGNORED = "ignored"


def is_special_path(path: str) -> bool:
    """Return True if *path* contains one of :data:`SPECIAL_MARKERS`."""
    lowered = path.lower()
    return any(marker in lowered for marker in SPECIAL_MARKERS)


def has_field_properties(node: dict) -> bool:
    """Return True if any key of *node* is a recognised field property."""
    return any(str(key).lower() in FIELD_PROPERTY_KEYS for key in node)


def classify(path: str, node: object) -> NodeKind:
    """
    Classify *node* found at *path*.

    Rules, in order:

    1. A mapping whose path mentions a special marker is ``SPECIAL``.
    2. A mapping with a non-empty path and at least one field property key
       is a ``FIELD_DESCRIPTOR``.  The document root is never a descriptor
       because a descriptor needs a non-empty path.
    3. Any other mapping, and every sequence, is a ``CONTAINER``.
    4. A string, number or boolean at a non-empty path is a ``LEAF``.
    5. Everything else (``None``, root scalars) is ``IGNORED``.
    """
    if isinstance(node, dict):
        if is_special_path(path):
            return NodeKind.SPECIAL
        if path and has_field_properties(node):
            return NodeKind.FIELD_DESCRIPTOR
        return NodeKind.CONTAINER
    if isinstance(node, list):
        return NodeKind.CONTAINER
    if isinstance(node, LEAF_TYPES) and path:
        return NodeKind.LEAF
    return NodeKind.IGNORED
