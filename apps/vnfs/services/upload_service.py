"""
apps.vnfs.services.upload_service
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Upload orchestration: YAML document → field catalogue → dual-store write.

Steps:

1. Load the document (:class:`YAMLConfigParser`); a malformed document
   fails the whole upload with :class:`~common.exceptions.ConfigParseError`.
2. Extract the :class:`ParsedConfiguration` and run the advisory
   :class:`FieldSetValidator`.
3. Store the :class:`VNFInstance` in both stores.  A relational failure
   is fatal (:class:`~common.exceptions.StorageError`); a document-store
   failure becomes a warning.
4. Build one :class:`VNFDefinition` per field and store them the same way.

Uploads may be a bare ``.yaml``/``.yml`` file or a ``.zip`` archive that
contains one; archives are unpacked into a temporary directory that is
removed on every exit path.
"""
from __future__ import annotations

import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from django.conf import settings

from apps.config_parser.services import (
    FieldDescriptor,
    FieldSetValidator,
    ParsedConfiguration,
    YAMLConfigParser,
    YAMLParseError,
)
from apps.config_parser.services.field_types import json_safe, stringify_value
from apps.storage.services import dual_storage
from apps.storage.services.dual_storage import DualStorageService, StoreOutcome
from apps.vnfs.models import VNFDefinition, VNFInstance
from common.exceptions import ConfigParseError, StorageError

logger = structlog.get_logger(__name__)

YAML_SUFFIXES: tuple[str, ...] = (".yaml", ".yml")
ARCHIVE_SUFFIX = ".zip"

#: File-name fragments that make a YAML file inside an archive preferred.
PREFERRED_NAME_HINTS: tuple[str, ...] = ("config", "definition", "template", "schema")

#: Descriptor metadata key that controls ``VNFDefinition.can_be_updated``.
CAN_BE_UPDATED_KEY = "can_be_update"


@dataclass
class UploadResult:
    """
    Everything produced by one ingestion.

    Attributes:
        instance: The stored instance (relational id assigned).
        definitions: The definitions built from the parsed fields.
        parsed: The extracted configuration.
        storage: Dual-store outcome of the instance write.
        definitions_storage: Dual-store outcome of the definitions write.
        warnings: Validator warnings followed by document-store failures.
    """

    instance: VNFInstance
    definitions: list[VNFDefinition]
    parsed: ParsedConfiguration
    storage: StoreOutcome
    definitions_storage: StoreOutcome
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

def ingest_document(
    *,
    name: str,
    text: str | bytes,
    storage: DualStorageService | None = None,
) -> UploadResult:
    """
    Parse *text* and persist it as a new instance called *name*.

    Raises:
        ConfigParseError: If *text* is not valid YAML.
        StorageError: If either relational write failed.
    """
    storage = storage or dual_storage.get_dual_storage()

    try:
        tree = YAMLConfigParser.load(text)
    except YAMLParseError as exc:
        raise ConfigParseError(str(exc)) from exc

    parsed = YAMLConfigParser.parse(tree)
    warnings = FieldSetValidator.validate(parsed)

    instance = VNFInstance(name=name)
    instance_outcome = storage.store_instance(instance, parsed, tree)
    if not instance_outcome.relational.success:
        raise StorageError(
            f"Failed to store VNF instance '{name}': {instance_outcome.relational.error}"
        )
    warnings.extend(instance_outcome.warnings("vnf instance"))

    definitions = build_definitions(parsed, instance)
    definitions_outcome = storage.store_definitions(definitions, parsed.fields)
    if not definitions_outcome.relational.success:
        raise StorageError(
            f"Failed to store definitions of VNF instance '{instance.pk}': "
            f"{definitions_outcome.relational.error}"
        )
    warnings.extend(definitions_outcome.warnings("vnf definitions"))

    logger.info(
        "upload_ingested",
        vnf_id=instance.pk,
        name=name,
        field_count=len(parsed.fields),
        warning_count=len(warnings),
    )
    return UploadResult(
        instance=instance,
        definitions=definitions,
        parsed=parsed,
        storage=instance_outcome,
        definitions_storage=definitions_outcome,
        warnings=warnings,
    )


def handle_upload(
    uploaded_file,
    *,
    name: str | None = None,
    storage: DualStorageService | None = None,
) -> UploadResult:
    """
    Ingest an uploaded ``.yaml``/``.yml`` file or ``.zip`` archive.

    Args:
        uploaded_file: A Django ``UploadedFile`` (anything with ``name``,
            ``size`` and ``read()``).
        name: Instance name; defaults to the file name without extension.
        storage: Coordinator override, mainly for tests.
    """
    filename = Path(uploaded_file.name or "upload")
    suffix = filename.suffix.lower()
    max_bytes = settings.UPLOAD_MAX_BYTES
    if uploaded_file.size is not None and uploaded_file.size > max_bytes:
        raise ConfigParseError(f"Upload exceeds the {max_bytes} byte limit.", code="upload_too_large")

    instance_name = name or filename.stem
    if suffix in YAML_SUFFIXES:
        return ingest_document(name=instance_name, text=uploaded_file.read(), storage=storage)
    if suffix == ARCHIVE_SUFFIX:
        with tempfile.TemporaryDirectory(prefix="vnf-upload-") as workdir:
            yaml_path = extract_yaml_from_archive(uploaded_file, Path(workdir))
            logger.info("archive_yaml_selected", archive=filename.name, member=yaml_path.name)
            return ingest_document(name=instance_name, text=yaml_path.read_bytes(), storage=storage)
    raise ConfigParseError(
        "Only .zip, .yaml or .yml uploads are accepted.", code="unsupported_upload"
    )


# ---------------------------------------------------------------------------
# Archive helpers
# ---------------------------------------------------------------------------

def extract_yaml_from_archive(archive, destination: Path) -> Path:
    """
    Unpack *archive* into *destination* and return the YAML file to ingest.

    Raises:
        ConfigParseError: If the archive is unreadable, has a member that
            would escape *destination*, or contains no YAML file.
    """
    root = destination.resolve()
    try:
        with zipfile.ZipFile(archive) as bundle:
            for member in bundle.infolist():
                target = (root / member.filename).resolve()
                if target != root and root not in target.parents:
                    raise ConfigParseError(
                        f"Illegal path in archive: {member.filename}", code="invalid_archive"
                    )
            bundle.extractall(root)
    except zipfile.BadZipFile as exc:
        raise ConfigParseError(f"Invalid zip archive: {exc}", code="invalid_archive") from exc
    return find_yaml_file(root)


def find_yaml_file(root: Path) -> Path:
    """
    Pick the YAML file to ingest below *root*.

    The first file (in sorted path order) whose name contains one of
    :data:`PREFERRED_NAME_HINTS` wins; otherwise the first YAML file found.
    """
    candidates = [
        path for path in sorted(root.rglob("*"))
        if path.is_file() and path.suffix.lower() in YAML_SUFFIXES
    ]
    for path in candidates:
        lowered = path.name.lower()
        if any(hint in lowered for hint in PREFERRED_NAME_HINTS):
            return path
    if candidates:
        return candidates[0]
    raise ConfigParseError("No YAML file found in the archive.", code="yaml_not_found")


# ---------------------------------------------------------------------------
# Record construction
# ---------------------------------------------------------------------------

def can_be_updated(descriptor: FieldDescriptor) -> bool:
    """``can_be_update`` from the descriptor's metadata when boolean, else True."""
    for key, value in descriptor.metadata.items():
        if str(key).lower() == CAN_BE_UPDATED_KEY and isinstance(value, bool):
            return value
    return True


def build_definitions(parsed: ParsedConfiguration, instance: VNFInstance) -> list[VNFDefinition]:
    """
    One unsaved :class:`VNFDefinition` per parsed field, in extraction order.

    JSON columns receive :func:`json_safe` copies; YAML ``!!binary`` or
    ``!!set`` values would otherwise fail JSON encoding on insert.
    """
    definitions = []
    for path, descriptor in parsed.fields.items():
        default_text = stringify_value(descriptor.default_value)
        definitions.append(
            VNFDefinition(
                vnf=instance,
                parameter_name=path,
                type=descriptor.type,
                default_value=default_text,
                description_text=descriptor.description,
                required=descriptor.required,
                hidden=descriptor.hidden,
                hidden_condition=descriptor.hidden_condition,
                validation_rules=json_safe(descriptor.validation_rules),
                options=json_safe(descriptor.options),
                group=descriptor.effective_group,
                order=descriptor.order,
                metadata=json_safe(descriptor.metadata),
                can_be_updated=can_be_updated(descriptor),
                current_value=default_text,
            )
        )
    return definitions
