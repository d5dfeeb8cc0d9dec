"""
apps.storage.services.dual_storage
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Writes VNF instances and their field definitions to the relational store
and mirrors them into the document store.

The two stores share no transaction.  Each logical write is two sequential
calls, relational first, and the outcome of each call is recorded
separately in a :class:`StoreOutcome`:

==================  ==================  ====================================
relational          document            Meaning
==================  ==================  ====================================
success             success             Fully stored.
success             failure             Stored; mirror missing or stale.
failure             success             Orphan mirror; caller must fail.
failure             failure             Nothing stored.
==================  ==================  ====================================

Neither call rolls the other back and nothing is retried.  The
relational row id is copied as ``vnf_id`` onto every mirror document and
is the only key used to correlate the two stores.

Public API
----------
StoreStatus / StoreOutcome / SyncReport   – result dataclasses
DualStorageService                         – the coordinator
get_dual_storage()                         – coordinator bound to app handles
"""
from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import structlog
from django.apps import apps
from django.db import DatabaseError, connections, transaction
from django.utils import timezone

from apps.config_parser.services import FieldDescriptor, ParsedConfiguration
from apps.config_parser.services.field_types import json_safe
from apps.vnfs.models import VNFDefinition, VNFInstance

from .document_store import (
    DEFINITIONS_COLLECTION,
    DOCUMENT_STORE_ERRORS,
    INSTANCES_COLLECTION,
    DocumentStore,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

#: Top-level mirror fields a search may filter on.
SEARCHABLE_FIELDS: frozenset[str] = frozenset({"name", "vnf_id"})

#: Sub-document whose keys may be searched as ``metadata.<key>``.
SEARCHABLE_PREFIX = "metadata."

#: Record columns copied onto every definition mirror document.
_DEFINITION_COLUMNS: tuple[str, ...] = (
    "parameter_name",
    "type",
    "description_text",
    "required",
    "hidden",
    "hidden_condition",
    "validation_rules",
    "options",
    "group",
    "order",
    "metadata",
    "can_be_updated",
    "current_value",
    "modified",
    "created_at",
    "updated_at",
)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class StoreStatus:
    """Outcome of one call against one store."""

    success: bool = False
    error: str | None = None

    def as_dict(self) -> dict:
        return {"success": self.success, "error": self.error}


@dataclass
class StoreOutcome:
    """
    Per-store result of one dual write.

    Attributes:
        relational: Outcome of the relational (authoritative) write.
        document: Outcome of the document-store mirror write.
        data: The written payload, set when at least one side succeeded.
    """

    relational: StoreStatus = field(default_factory=StoreStatus)
    document: StoreStatus = field(default_factory=StoreStatus)
    data: Any = None

    # Names used by the upload API response.
    @property
    def mysql(self) -> StoreStatus:
        return self.relational

    @property
    def mongodb(self) -> StoreStatus:
        return self.document

    @property
    def partial(self) -> bool:
        return self.relational.success != self.document.success

    def as_dict(self) -> dict:
        return {"mysql": self.relational.as_dict(), "mongodb": self.document.as_dict()}

    def warnings(self, subject: str) -> list[str]:
        """Human readable messages for every failed side of this write."""
        messages = []
        if not self.relational.success:
            messages.append(f"{subject}: relational store write failed: {self.relational.error}")
        if not self.document.success:
            messages.append(f"{subject}: document store write failed: {self.document.error}")
        return messages


@dataclass
class SyncReport:
    """Result of :meth:`DualStorageService.sync_missing_mirrors`."""

    scanned: int = 0
    created: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "scanned": self.scanned,
            "created": list(self.created),
            "failed": {str(vnf_id): error for vnf_id, error in self.failed.items()},
        }


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------

class DualStorageService:
    """
    Coordinates writes across the relational store and the document mirror.

    Args:
        document_store: Handle on the mirror collections.
        using: Django database alias of the relational store.

    Example::

        storage = DualStorageService(document_store, using="default")
        outcome = storage.store_instance(instance, parsed, raw_tree)
        if not outcome.relational.success:
            raise StorageError(outcome.relational.error)
    """

    def __init__(self, document_store: DocumentStore, *, using: str = "default") -> None:
        self.document_store = document_store
        self.using = using

    # ------------------------------------------------------------------
    # Dual writes
    # ------------------------------------------------------------------

    def store_instance(
        self,
        instance: VNFInstance,
        parsed: ParsedConfiguration,
        raw_tree: object = None,
    ) -> StoreOutcome:
        """
        Insert *instance* relationally, then mirror it with the parsed
        configuration and the raw document tree.
        """
        outcome = StoreOutcome()

        self._relational(
            lambda: instance.save(using=self.using),
            outcome.relational,
            "instance_store",
        )
        self._document(
            lambda: self.document_store.insert_one(
                INSTANCES_COLLECTION,
                self._instance_document(instance, parsed, raw_tree),
            ),
            outcome.document,
            "instance_mirror",
            vnf_id=instance.pk,
        )

        if outcome.relational.success or outcome.document.success:
            outcome.data = instance
        logger.info(
            "instance_stored",
            vnf_id=instance.pk,
            relational=outcome.relational.success,
            document=outcome.document.success,
        )
        return outcome

    def store_definitions(
        self,
        definitions: list[VNFDefinition],
        descriptors: dict[str, FieldDescriptor] | None = None,
    ) -> StoreOutcome:
        """
        Bulk insert *definitions*, then mirror one document per definition.

        *descriptors* maps ``parameter_name`` to the descriptor each row was
        built from; it supplies the typed default and the raw field payload
        for the mirror.  An empty *definitions* list succeeds on both sides
        without touching either store.
        """
        outcome = StoreOutcome()
        if not definitions:
            outcome.relational.success = outcome.document.success = True
            outcome.data = []
            return outcome

        descriptors = descriptors or {}
        for definition in definitions:
            definition.refresh_modified()

        def insert_rows() -> list[VNFDefinition]:
            with transaction.atomic(using=self.using):
                return VNFDefinition.objects.using(self.using).bulk_create(definitions)

        self._relational(insert_rows, outcome.relational, "definitions_store")
        vnf_id = definitions[0].vnf_id
        self._document(
            lambda: self.document_store.insert_many(
                DEFINITIONS_COLLECTION,
                [
                    self._definition_document(d, descriptors.get(d.parameter_name))
                    for d in definitions
                ],
            ),
            outcome.document,
            "definitions_mirror",
            vnf_id=vnf_id,
        )

        if outcome.relational.success or outcome.document.success:
            outcome.data = definitions
        logger.info(
            "definitions_stored",
            vnf_id=vnf_id,
            count=len(definitions),
            relational=outcome.relational.success,
            document=outcome.document.success,
        )
        return outcome

    # ------------------------------------------------------------------
    # Targeted updates / deletes
    # ------------------------------------------------------------------

    def update_definition(self, definition: VNFDefinition, changed: list[str]) -> StoreOutcome:
        """
        Save *definition* and ``$set`` the *changed* columns on its mirror.

        The mirror is only touched once the relational save succeeded.
        """
        outcome = StoreOutcome()
        self._relational(
            lambda: definition.save(using=self.using),
            outcome.relational,
            "definition_update",
        )
        if not outcome.relational.success:
            outcome.document.error = "skipped: relational update failed"
            return outcome

        outcome.data = definition
        changes = {column: getattr(definition, column) for column in changed}
        changes["modified"] = definition.modified
        changes["updated_at"] = definition.updated_at

        def set_mirror() -> None:
            matched = self.document_store.update_one(
                DEFINITIONS_COLLECTION,
                self._definition_key(definition),
                changes,
            )
            if not matched:
                raise LookupError(
                    f"no mirror document for vnf_id={definition.vnf_id} "
                    f"parameter '{definition.parameter_name}'"
                )

        self._document(
            set_mirror,
            outcome.document,
            "definition_mirror_update",
            vnf_id=definition.vnf_id,
            catch=(*DOCUMENT_STORE_ERRORS, LookupError),
        )
        return outcome

    def delete_definition(self, definition: VNFDefinition) -> StoreOutcome:
        outcome = StoreOutcome()
        key = self._definition_key(definition)
        self._relational(
            lambda: definition.delete(using=self.using),
            outcome.relational,
            "definition_delete",
        )
        if not outcome.relational.success:
            outcome.document.error = "skipped: relational delete failed"
            return outcome
        self._document(
            lambda: self.document_store.delete_one(DEFINITIONS_COLLECTION, key),
            outcome.document,
            "definition_mirror_delete",
            vnf_id=key["vnf_id"],
        )
        return outcome

    def delete_instance(self, instance: VNFInstance) -> StoreOutcome:
        """Delete *instance* (cascading to its rows) and every mirror document for it."""
        outcome = StoreOutcome()
        vnf_id = instance.pk
        self._relational(
            lambda: instance.delete(using=self.using),
            outcome.relational,
            "instance_delete",
        )
        if not outcome.relational.success:
            outcome.document.error = "skipped: relational delete failed"
            return outcome

        def purge_mirrors() -> None:
            self.document_store.delete_many(INSTANCES_COLLECTION, {"vnf_id": vnf_id})
            self.document_store.delete_many(DEFINITIONS_COLLECTION, {"vnf_id": vnf_id})

        self._document(purge_mirrors, outcome.document, "instance_mirror_delete", vnf_id=vnf_id)
        return outcome

    # ------------------------------------------------------------------
    # Mirror reads (raise DOCUMENT_STORE_ERRORS to the caller)
    # ------------------------------------------------------------------

    def get_instance_mirror(self, vnf_id: int) -> dict | None:
        document = self.document_store.find_one(INSTANCES_COLLECTION, {"vnf_id": vnf_id})
        return _clean(document) if document is not None else None

    def get_definition_mirrors(self, vnf_id: int) -> list[dict]:
        documents = self.document_store.find(
            DEFINITIONS_COLLECTION,
            {"vnf_id": vnf_id},
            sort=[("order", 1)],
        )
        return [_clean(doc) for doc in documents]

    def get_form_fields(self, vnf_id: int) -> list[dict] | None:
        mirror = self.get_instance_mirror(vnf_id)
        if mirror is None:
            return None
        return list(mirror.get("form_fields") or [])

    def search_instance_mirrors(self, query: dict) -> list[dict]:
        """
        Search instance mirrors.

        ``name`` matches case-insensitively as a substring; ``vnf_id`` and
        ``metadata.<key>`` are equality filters on scalar values.

        Raises:
            ValueError: If a key is not searchable (see
                :func:`is_searchable_field`) or a value is not a scalar.
                Query operators such as ``$where`` never reach the store.
        """
        mongo_filter: dict = {}
        for key, value in query.items():
            if not is_searchable_field(key):
                raise ValueError(f"cannot search on '{key}'")
            if isinstance(value, (dict, list)):
                raise ValueError(f"search value for '{key}' must be a scalar")
            if key == "name":
                mongo_filter[key] = {"$regex": re.escape(str(value)), "$options": "i"}
            else:
                mongo_filter[key] = value
        documents = self.document_store.find(
            INSTANCES_COLLECTION,
            mongo_filter,
            sort=[("vnf_id", -1)],
        )
        return [_clean(doc) for doc in documents]

    # ------------------------------------------------------------------
    # Repair / status
    # ------------------------------------------------------------------

    def sync_missing_mirrors(self) -> SyncReport:
        """
        Create an instance mirror for every relational instance lacking one.

        Additive only: existing mirror documents are never modified or
        deleted.  Per-instance document-store failures are collected in the
        report and the sweep moves on.

        Raises:
            django.db.DatabaseError: If the relational instances cannot be
                enumerated.
        """
        report = SyncReport()
        logger.info("mirror_sync_started")

        for instance in VNFInstance.objects.using(self.using).order_by("id").iterator():
            report.scanned += 1
            try:
                existing = self.document_store.find_one(
                    INSTANCES_COLLECTION, {"vnf_id": instance.pk}
                )
                if existing is not None:
                    continue
                self.document_store.insert_one(
                    INSTANCES_COLLECTION,
                    {
                        "vnf_id": instance.pk,
                        "name": instance.name,
                        "created_at": instance.created_at,
                        "updated_at": instance.updated_at,
                    },
                )
            except DOCUMENT_STORE_ERRORS as exc:
                report.failed[instance.pk] = str(exc)
                logger.warning("mirror_sync_instance_failed", vnf_id=instance.pk, error=str(exc))
                continue
            report.created.append(instance.pk)
            logger.info("mirror_sync_instance_created", vnf_id=instance.pk)

        logger.info(
            "mirror_sync_finished",
            scanned=report.scanned,
            created=len(report.created),
            failed=len(report.failed),
        )
        return report

    def storage_status(self) -> dict:
        status: dict = {}
        connection = connections[self.using]
        try:
            connection.ensure_connection()
            status["mysql"] = {"connected": True, "vendor": connection.vendor}
        except DatabaseError as exc:
            status["mysql"] = {"connected": False, "vendor": connection.vendor, "error": str(exc)}

        try:
            self.document_store.ping()
            status["mongodb"] = {"connected": True}
        except DOCUMENT_STORE_ERRORS as exc:
            status["mongodb"] = {"connected": False, "error": str(exc)}
        return status

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _relational(operation: Callable[[], T], status: StoreStatus, event: str) -> T | None:
        try:
            result = operation()
        except DatabaseError as exc:
            status.error = str(exc)
            logger.error(f"{event}_failed", store="relational", error=str(exc))
            return None
        status.success = True
        return result

    @staticmethod
    def _document(
        operation: Callable[[], T],
        status: StoreStatus,
        event: str,
        *,
        vnf_id: int | None,
        catch: tuple[type[Exception], ...] = DOCUMENT_STORE_ERRORS,
    ) -> T | None:
        try:
            result = operation()
        except catch as exc:
            status.error = str(exc)
            logger.warning(f"{event}_failed", store="document", vnf_id=vnf_id, error=str(exc))
            return None
        status.success = True
        return result

    @staticmethod
    def _instance_document(
        instance: VNFInstance,
        parsed: ParsedConfiguration,
        raw_tree: object,
    ) -> dict:
        # Field paths contain dots, so fields are mirrored as a list rather
        # than as a path-keyed sub-document.
        config = parsed.to_dict()
        form_fields = list(config.pop("fields").values())
        return {
            "vnf_id": instance.pk,
            "name": instance.name,
            "created_at": instance.created_at or timezone.now(),
            "updated_at": instance.updated_at or timezone.now(),
            "yaml_config": config,
            "content": json_safe(raw_tree),
            "form_fields": form_fields,
            "metadata": json_safe(parsed.metadata),
        }

    @staticmethod
    def _definition_document(definition: VNFDefinition, descriptor: FieldDescriptor | None) -> dict:
        document = {"vnf_id": definition.vnf_id, "definition_id": definition.pk}
        for column in _DEFINITION_COLUMNS:
            document[column] = getattr(definition, column)
        if descriptor is not None:
            document["default_value"] = json_safe(descriptor.default_value)
            document["field"] = descriptor.to_dict()
        else:
            document["default_value"] = definition.default_value
        return document

    @staticmethod
    def _definition_key(definition: VNFDefinition) -> dict:
        return {"vnf_id": definition.vnf_id, "parameter_name": definition.parameter_name}


def is_searchable_field(key: str) -> bool:
    """Return True if *key* names a searchable mirror field and no query operator."""
    if key in SEARCHABLE_FIELDS:
        return True
    if not key.startswith(SEARCHABLE_PREFIX):
        return False
    segments = key[len(SEARCHABLE_PREFIX):].split(".")
    return all(segment and not segment.startswith("$") for segment in segments)


def _clean(document: dict) -> dict:
    """Stringify the Mongo ``_id`` so the document is JSON serialisable."""
    cleaned = dict(document)
    if "_id" in cleaned:
        cleaned["_id"] = str(cleaned["_id"])
    return cleaned


def get_dual_storage(using: str = "default") -> DualStorageService:
    """Coordinator bound to the document store owned by the ``storage`` app."""
    document_store = apps.get_app_config("storage").document_store
    return DualStorageService(document_store, using=using)
