"""
apps.config_parser.services.field_types
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Path construction and runtime type inference for configuration trees.

Pure Python, no Django imports.

Public API
----------
build_path(parent, child)  -> dotted addressable key
sequence_segment(index)    -> path segment for a sequence element
infer_type(value)          -> one of FIELD_TYPES
stringify_value(value)     -> text form used by the relational store
json_safe(value)           -> copy of value that JSON can encode
"""
from __future__ import annotations

import base64
import json

#: The semantic types a field can be inferred as.
STRING = "string"
NUMBER = "number"
BOOLEAN = "boolean"
ARRAY = "array"
OBJECT = "object"

FIELD_TYPES: frozenset[str] = frozenset({STRING, NUMBER, BOOLEAN, ARRAY, OBJECT})

#: Separator between path segments.
PATH_SEPARATOR = "."


def build_path(parent: str, child: object) -> str:
    """
    Return the addressable key of *child* below *parent*.

    Non-string keys (YAML allows integer or boolean mapping keys) are
    stringified.

    Example::

        build_path("", "database")        # → "database"
        build_path("database", "port")    # → "database.port"
        build_path("servers", "[0]")      # → "servers.[0]"
    """
    child_key = str(child)
    if not parent:
        return child_key
    return f"{parent}{PATH_SEPARATOR}{child_key}"


def sequence_segment(index: int) -> str:
    """Path segment for the element at *index* of a sequence, e.g. ``"[2]"``."""
    return f"[{index}]"


def infer_type(value: object) -> str:
    """
    Map *value* to a semantic field type by its runtime shape.

    ``bool`` is checked before ``int`` because it is a subclass of it.
    ``None`` and any unrecognised shape fall back to ``"string"``; the
    function never raises.
    """
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, (int, float)):
        return NUMBER
    if isinstance(value, str):
        return STRING
    if isinstance(value, (list, tuple)):
        return ARRAY
    if isinstance(value, dict):
        return OBJECT
    return STRING


def stringify_value(value: object) -> str:
    """
    Render a typed default value as the text stored in the relational store.

    Strings pass through, ``None`` becomes ``""``, booleans are lower-cased
    containers are JSON encoded and bytes
    become base64 text.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, list, tuple, set, dict)):
        safe = json_safe(value)
        if isinstance(safe, str):
            return safe
        return json.dumps(safe, ensure_ascii=False, sort_keys=True, default=str)
    return str(value)


def json_safe(value: object) -> object:
    """
    Return a copy of *value* that :func:`json.dumps` can encode.

    YAML can produce shapes JSON cannot hold: ``!!binary`` scalars become
    base64 text, ``!!set`` and tuples become lists and mapping keys are
    stringified.  Other scalars are returned unchanged.
    """
    if isinstance(value, dict):
        return {str(key): json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((json_safe(item) for item in value), key=str)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value
