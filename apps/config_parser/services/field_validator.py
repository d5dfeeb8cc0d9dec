"""
apps.config_parser.services.field_validator
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Advisory consistency checks over an extracted field set.

Warnings never block persistence; the upload flow attaches them to its
response.
"""
from __future__ import annotations

from .field_types import ARRAY
from .yaml_parser import ParsedConfiguration


class FieldSetValidator:
    """
    Runs the fixed rule set over every field of a
    :class:`~apps.config_parser.services.yaml_parser.ParsedConfiguration`.

    Rules:

    1. A required field should declare a default value.
    2. An ``array`` field should declare its options.
    """

    @staticmethod
    def validate(parsed: ParsedConfiguration) -> list[str]:
        """Return one warning string per rule violation, in field order."""
        warnings: list[str] = []

        for path, descriptor in parsed.fields.items():
            if descriptor.required and descriptor.default_value is None:
                warnings.append(f"field '{path}' is required but has no default value")

            if descriptor.type == ARRAY and not descriptor.options:
                warnings.append(f"field '{path}' is of array type but defines no options")

        return warnings
