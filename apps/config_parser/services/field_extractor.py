"""
apps.config_parser.services.field_extractor
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Converts classified configuration nodes into :class:`FieldDescriptor`
records.

Two constructors are provided:

``extract_field(path, node, order)``
    For mappings that carry explicit field properties (``type``,
    ``default``, ``description`` …).  Keys are resolved through a single
    case-insensitive alias table; unrecognised keys are kept verbatim in
    ``metadata``.

``extract_leaf(path, value, order)``
    For bare scalars.  The type is inferred from the value, which also
    becomes the default.

This module is pure Python and has no Django imports.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .field_types import STRING, infer_type, json_safe

#: Group name used when a field does not declare one.
DEFAULT_GROUP = "default"


@dataclass
class FieldDescriptor:
    """
    Normalised description of one addressable configuration parameter.

    Attributes:
        path: Dotted address of the field; unique within one parse.
        type: Semantic type (``string``, ``number``, ``boolean``, ``array``,
            ``object``) or an explicitly declared type string.
        default_value: Default value in its original shape.  ``None`` means
            no default was given.
        description: Human readable help text.
        required: Whether the field must be supplied.
        hidden: Whether the field is hidden from forms.
        hidden_condition: Free-form visibility expression; never evaluated.
        validation_rules: Rule name → rule value.
        options: Allowed values, in document order.
        group: Display group label; empty means :data:`DEFAULT_GROUP`.
        order: Extraction sequence number, used for stable display ordering.
        metadata: Keys that are not field properties, passed through as-is.
    """

    path: str
    type: str = STRING
    default_value: Any = None
    description: str = ""
    required: bool = False
    hidden: bool = False
    hidden_condition: str = ""
    validation_rules: dict = field(default_factory=dict)
    options: list = field(default_factory=list)
    group: str = ""
    order: int = 0
    metadata: dict = field(default_factory=dict)

    @property
    def effective_group(self) -> str:
        return self.group or DEFAULT_GROUP

    def to_dict(self) -> dict:
        """JSON-safe copy (see :func:`~.field_types.json_safe`) used by the API and the mirror."""
        return {
            "path": self.path,
            "type": self.type,
            "default_value": json_safe(self.default_value),
            "description": self.description,
            "required": self.required,
            "hidden": self.hidden,
            "hidden_condition": self.hidden_condition,
            "validation_rules": json_safe(self.validation_rules),
            "options": json_safe(self.options),
            "group": self.group,
            "order": self.order,
            "metadata": json_safe(self.metadata),
        }


# ---------------------------------------------------------------------------
# Alias table
# ---------------------------------------------------------------------------

#: Lower-cased source key → FieldDescriptor attribute.
FIELD_ALIASES: dict[str, str] = {
    "type": "type",
    "default": "default_value",
    "default_value": "default_value",
    "description": "description",
    "desc": "description",
    "help": "description",
    "required": "required",
    "mandatory": "required",
    # "visible" is a literal synonym of "hidden"; the value is not negated.
    "hidden": "hidden",
    "visible": "hidden",
    "hidden_condition": "hidden_condition",
    "hiden_condition": "hidden_condition",
    "visibility": "hidden_condition",
    "validation": "validation_rules",
    "constraints": "validation_rules",
    "rules": "validation_rules",
    "options": "options",
    "choices": "options",
    "enum": "options",
    "group": "group",
    "category": "group",
    "order": "order",
    "sort": "order",
}


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


#: Attribute → shape check.  Values failing the check are ignored.
_SHAPE_CHECKS: dict[str, Callable[[object], bool]] = {
    "type": lambda value: isinstance(value, str),
    "default_value": lambda value: True,
    "description": lambda value: isinstance(value, str),
    "required": lambda value: isinstance(value, bool),
    "hidden": lambda value: isinstance(value, bool),
    "hidden_condition": lambda value: isinstance(value, str),
    "validation_rules": lambda value: isinstance(value, dict),
    "options": lambda value: isinstance(value, list),
    "group": lambda value: isinstance(value, str),
    "order": _is_int,
}


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------

def extract_field(path: str, node: dict, order: int) -> FieldDescriptor:
    """
    Build a :class:`FieldDescriptor` from a field-descriptor mapping.

    Args:
        path: Address of *node* in the tree.
        node: Mapping holding field properties.
        order: Extraction counter value; used unless the node sets
            ``order``/``sort`` itself.

    Returns:
        The normalised descriptor.  When the declared type is ``string``
        (explicitly or by default) and a default value is present, the type
        is re-derived from the default's shape.
    """
    descriptor = FieldDescriptor(path=path, order=order)

    for key, value in node.items():
        attribute = FIELD_ALIASES.get(str(key).lower())
        if attribute is None:
            descriptor.metadata[key] = value
            continue
        if not _SHAPE_CHECKS[attribute](value):
            # best effort: a property with the wrong shape is dropped
            continue
        setattr(descriptor, attribute, value)

    if descriptor.type == STRING and descriptor.default_value is not None:
        descriptor.type = infer_type(descriptor.default_value)

    return descriptor


def extract_leaf(path: str, value: object, order: int) -> FieldDescriptor:
    """Build a minimal :class:`FieldDescriptor` for a bare scalar."""
    return FieldDescriptor(
        path=path,
        type=infer_type(value),
        default_value=value,
        order=order,
    )
