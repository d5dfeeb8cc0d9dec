"""
apps.vnfs.services.definition_service
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
CRUD for persisted field records (:class:`~apps.vnfs.models.VNFDefinition`).

Every write goes through
:class:`~apps.storage.services.dual_storage.DualStorageService` so the
document mirror follows the relational row.  Relational failures raise
:class:`~common.exceptions.StorageError`; mirror failures are returned to
the caller in the :class:`StoreOutcome`.

Update rule
-----------
``current_value`` may only be changed on a record whose stored
``can_be_updated`` is ``True``.  A rejected update raises
:class:`~common.exceptions.PermissionDeniedError` before anything is
written, so the row and its mirror stay untouched.
"""
from __future__ import annotations

import structlog

from apps.storage.services import dual_storage
from apps.storage.services.dual_storage import DualStorageService, StoreOutcome
from apps.vnfs.models import VNFDefinition
from common.exceptions import ConflictError, NotFoundError, PermissionDeniedError, StorageError

from .vnf_service import get_instance, normalise_paging

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 200

#: Columns a client may change through :func:`update_definition`.
UPDATABLE_FIELDS: frozenset[str] = frozenset({
    "default_value",
    "description_text",
    "type",
    "can_be_updated",
    "required",
    "hidden",
    "hidden_condition",
    "validation_rules",
    "options",
    "group",
    "order",
    "current_value",
})


def list_definitions(
    vnf_id: int,
    *,
    page: int = 1,
    page_size: int = 10,
    modified_only: bool = False,
) -> tuple[list[VNFDefinition], int]:
    """Return one page of an instance's definitions (by id) and the total count."""
    page, page_size = normalise_paging(page, page_size, MAX_PAGE_SIZE)
    qs = VNFDefinition.objects.filter(vnf_id=vnf_id)
    if modified_only:
        qs = qs.filter(modified=True)
    total = qs.count()
    offset = (page - 1) * page_size
    return list(qs.order_by("id")[offset:offset + page_size]), total


def get_definition(vnf_id: int, def_id: int) -> VNFDefinition:
    try:
        return VNFDefinition.objects.get(pk=def_id, vnf_id=vnf_id)
    except VNFDefinition.DoesNotExist:
        raise NotFoundError(f"Definition '{def_id}' not found for VNF instance '{vnf_id}'.")


def create_definition(
    vnf_id: int,
    *,
    data: dict,
    storage: DualStorageService | None = None,
) -> tuple[VNFDefinition, StoreOutcome]:
    """
    Create one definition under an existing instance.

    ``current_value`` defaults to ``default_value`` when not supplied.

    Raises:
        NotFoundError: If the instance does not exist.
        ConflictError: If the instance already has that ``parameter_name``.
        StorageError: If the relational insert failed.
    """
    storage = storage or dual_storage.get_dual_storage()
    instance = get_instance(vnf_id)

    parameter_name = data["parameter_name"]
    if VNFDefinition.objects.filter(vnf=instance, parameter_name=parameter_name).exists():
        raise ConflictError(
            f"Parameter '{parameter_name}' already exists for VNF instance '{vnf_id}'."
        )

    values = {key: value for key, value in data.items() if key in UPDATABLE_FIELDS}
    values.setdefault("current_value", values.get("default_value", ""))
    definition = VNFDefinition(vnf=instance, parameter_name=parameter_name, **values)

    outcome = storage.store_definitions([definition])
    if not outcome.relational.success:
        raise StorageError(f"Failed to store definition '{parameter_name}': {outcome.relational.error}")

    logger.info("definition_created", vnf_id=vnf_id, def_id=definition.pk, parameter=parameter_name)
    return definition, outcome


def update_definition(
    vnf_id: int,
    def_id: int,
    *,
    data: dict,
    storage: DualStorageService | None = None,
) -> tuple[VNFDefinition, StoreOutcome]:
    """
    Partially update a definition and recompute ``modified``.

    Raises:
        NotFoundError: If the definition does not exist.
        PermissionDeniedError: If ``current_value`` is supplied for a record
            with ``can_be_updated = False``.
        StorageError: If the relational save failed.
    """
    storage = storage or dual_storage.get_dual_storage()
    definition = get_definition(vnf_id, def_id)

    if "current_value" in data and not definition.can_be_updated:
        logger.warning(
            "definition_update_rejected",
            vnf_id=vnf_id,
            def_id=def_id,
            parameter=definition.parameter_name,
        )
        raise PermissionDeniedError(
            f"Parameter '{definition.parameter_name}' cannot be updated."
        )

    changed = []
    for field_name, value in data.items():
        if field_name in UPDATABLE_FIELDS:
            setattr(definition, field_name, value)
            changed.append(field_name)

    outcome = storage.update_definition(definition, changed)
    if not outcome.relational.success:
        raise StorageError(f"Failed to update definition '{def_id}': {outcome.relational.error}")

    logger.info(
        "definition_updated",
        vnf_id=vnf_id,
        def_id=def_id,
        fields=changed,
        modified=definition.modified,
    )
    return definition, outcome


def delete_definition(
    vnf_id: int,
    def_id: int,
    *,
    storage: DualStorageService | None = None,
) -> StoreOutcome:
    storage = storage or dual_storage.get_dual_storage()
    definition = get_definition(vnf_id, def_id)
    outcome = storage.delete_definition(definition)
    if not outcome.relational.success:
        raise StorageError(f"Failed to delete definition '{def_id}': {outcome.relational.error}")
    logger.info("definition_deleted", vnf_id=vnf_id, def_id=def_id)
    return outcome
