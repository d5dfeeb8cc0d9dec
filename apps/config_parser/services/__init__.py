"""
apps.config_parser.services package.
"""
from .field_extractor import FieldDescriptor  # noqa: F401
from .field_validator import FieldSetValidator  # noqa: F401
from .yaml_parser import (  # noqa: F401
    ParsedConfiguration,
    YAMLConfigParser,
    YAMLParseError,
    group_fields_by_group,
)
