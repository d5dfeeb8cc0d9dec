"""
apps.config_parser.services.yaml_parser
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Turns a YAML configuration document into a flat catalogue of fields.

The parser accepts both rich, schema-like documents::

    timeout:
      type: number
      default: 30
      required: true

and plain key/value files::

    database:
      host: localhost
      port: 5432

Every node is classified by
:func:`~apps.config_parser.services.node_classifier.classify` and handled
as follows:

=====================  ==================================================
Kind                   Handling
=====================  ==================================================
``SPECIAL``            Feeds ``metadata``/``groups``/``schema``/``version``.
``FIELD_DESCRIPTOR``   :func:`~.field_extractor.extract_field`.
``CONTAINER``          Children visited with paths from :func:`~.field_types.build_path`.
``LEAF``               :func:`~.field_extractor.extract_leaf`.
``IGNORED``            Skipped (``None`` values, root scalars).
=====================  ==================================================

This module is pure Python; it has no Django imports.

Public API
----------
YAMLParseError
ParsedConfiguration
YAMLConfigParser.load(text)        -> raw tree
YAMLConfigParser.parse(tree)       -> ParsedConfiguration
YAMLConfigParser.parse_text(text)  -> ParsedConfiguration
group_fields_by_group(parsed)      -> {group: [FieldDescriptor, ...]}
"""
from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from pathlib import Path

import structlog
import yaml

from .field_extractor import FieldDescriptor, extract_field, extract_leaf
from .field_types import PATH_SEPARATOR, build_path, json_safe, sequence_segment
from .node_classifier import NodeKind, classify

logger = structlog.get_logger(__name__)


class YAMLParseError(Exception):
    """Raised when a document cannot be read or is not valid YAML."""


class _ConfigLoader(yaml.SafeLoader):
    """Safe loader that keeps YAML timestamps as their source strings."""


_ConfigLoader.add_constructor(
    "tag:yaml.org,2002:timestamp", yaml.SafeLoader.construct_yaml_str
)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParsedConfiguration:
    """
    Result of one extraction pass.

    Attributes:
        fields: Field path → :class:`FieldDescriptor`, in extraction order.
        groups: Group key → display name, from a ``groups`` block.
        metadata: Free-form document metadata, from a ``metadata`` block.
        version: Document version string, empty when absent.
        schema: Document schema string, empty when absent.
    """

    fields: dict[str, FieldDescriptor] = field(default_factory=dict)
    groups: dict[str, str] = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)
    version: str = ""
    schema: str = ""

    def to_dict(self) -> dict:
        return {
            "fields": {path: fd.to_dict() for path, fd in self.fields.items()},
            "groups": dict(self.groups),
            "metadata": json_safe(self.metadata),
            "version": self.version,
            "schema": self.schema,
        }


class _ParseState:
    """Mutable accumulator used while walking one tree."""

    def __init__(self) -> None:
        self.fields: dict[str, FieldDescriptor] = {}
        self.groups: dict[str, str] = {}
        self.metadata: dict = {}
        self.version = ""
        self.schema = ""
        self.counter = itertools.count()

    def add_field(self, descriptor: FieldDescriptor) -> None:
        if not descriptor.path:
            return
        if descriptor.path in self.fields:
            logger.warning("duplicate_field_path", path=descriptor.path)
        self.fields[descriptor.path] = descriptor

    def freeze(self) -> ParsedConfiguration:
        return ParsedConfiguration(
            fields=self.fields,
            groups=self.groups,
            metadata=self.metadata,
            version=self.version,
            schema=self.schema,
        )


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class YAMLConfigParser:
    """
    Stateless YAML → :class:`ParsedConfiguration` converter.

    Usage::

        parsed = YAMLConfigParser.parse_text(path.read_text())
        for path, descriptor in parsed.fields.items():
            ...
    """

    @staticmethod
    def load(text: str | bytes) -> object:
        """
        Load *text* into a raw tree of dicts, lists and scalars.

        An empty document loads as ``None``.

        Raises:
            YAMLParseError: If *text* is not valid YAML.
        """
        try:
            return yaml.load(text, Loader=_ConfigLoader)
        except yaml.YAMLError as exc:
            raise YAMLParseError(f"Invalid YAML document: {exc}") from exc

    @staticmethod
    def load_file(file_path: str | Path) -> object:
        """Read and load the YAML file at *file_path*."""
        try:
            text = Path(file_path).read_bytes()
        except OSError as exc:
            raise YAMLParseError(f"Cannot read YAML file '{file_path}': {exc}") from exc
        return YAMLConfigParser.load(text)

    @staticmethod
    def parse(tree: object) -> ParsedConfiguration:
        """Classify every node of *tree* and return the field catalogue."""
        state = _ParseState()
        YAMLConfigParser._visit("", tree, state)
        parsed = state.freeze()
        logger.debug(
            "yaml_config_parsed",
            field_count=len(parsed.fields),
            group_count=len(parsed.groups),
        )
        return parsed

    @staticmethod
    def parse_text(text: str | bytes) -> ParsedConfiguration:
        return YAMLConfigParser.parse(YAMLConfigParser.load(text))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _visit(path: str, node: object, state: _ParseState) -> None:
        order = next(state.counter)
        kind = classify(path, node)

        if kind is NodeKind.SPECIAL:
            YAMLConfigParser._extract_special(path, node, state)
        elif kind is NodeKind.FIELD_DESCRIPTOR:
            state.add_field(extract_field(path, node, order))
        elif kind is NodeKind.CONTAINER:
            if isinstance(node, dict):
                children = node.items()
            else:
                children = ((sequence_segment(i), item) for i, item in enumerate(node))
            for key, child in children:
                YAMLConfigParser._visit(build_path(path, key), child, state)
        elif kind is NodeKind.LEAF:
            state.add_field(extract_leaf(path, node, order))
        # NodeKind.IGNORED: nothing to extract

    @staticmethod
    def _extract_special(path: str, node: dict, state: _ParseState) -> None:
        """
        Pull document-level metadata out of a special node.

        The node's own key is dispatched first (``metadata: {...}`` at any
        depth), then each of its children (``config: {version: "2"}``).
        """
        own_key = path.rsplit(PATH_SEPARATOR, 1)[-1]
        YAMLConfigParser._apply_special(own_key, node, state)
        for key, value in node.items():
            YAMLConfigParser._apply_special(key, value, state)

    @staticmethod
    def _apply_special(key: object, value: object, state: _ParseState) -> None:
        # Values with an unexpected shape are ignored; metadata extraction
        # never fails a parse.
        if key == "metadata":
            if isinstance(value, dict):
                state.metadata = dict(value)
        elif key == "groups":
            if isinstance(value, dict):
                for group_key, group_name in value.items():
                    if isinstance(group_name, str):
                        state.groups[str(group_key)] = group_name
        elif key == "schema":
            if isinstance(value, str):
                state.schema = value
        elif key == "version":
            if isinstance(value, str):
                state.version = value


def group_fields_by_group(parsed: ParsedConfiguration) -> dict[str, list[FieldDescriptor]]:
    """
    Bucket the fields of *parsed* by group, each bucket sorted by ``order``.

    Fields without a group land in ``"default"``.
    """
    grouped: dict[str, list[FieldDescriptor]] = {}
    for descriptor in parsed.fields.values():
        grouped.setdefault(descriptor.effective_group, []).append(descriptor)
    for descriptors in grouped.values():
        descriptors.sort(key=lambda fd: fd.order)
    return grouped
