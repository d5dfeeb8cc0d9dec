"""
apps.vnfs.services.vnf_service
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Instance listing, lookup and deletion, plus read-back of the document
mirror.

Relational reads go straight to the ORM.  Mirror reads go through
:class:`~apps.storage.services.dual_storage.DualStorageService` and are
keyed by the relational id (``vnf_id``).
"""
from __future__ import annotations

import structlog

from apps.storage.services import dual_storage
from apps.storage.services.document_store import DOCUMENT_STORE_ERRORS
from apps.storage.services.dual_storage import DualStorageService, StoreOutcome
from apps.vnfs.models import VNFInstance
from common.exceptions import InvalidQueryError, NotFoundError, StorageError

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


def normalise_paging(page: int, page_size: int, max_page_size: int) -> tuple[int, int]:
    """Clamp paging parameters: pages start at 1, oversize pages fall back to the default."""
    if page <= 0:
        page = 1
    if page_size <= 0 or page_size > max_page_size:
        page_size = DEFAULT_PAGE_SIZE
    return page, page_size


def list_instances(*, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE, keyword: str = "") -> tuple[list[VNFInstance], int]:
    """Return one page of instances (newest first) and the total match count."""
    page, page_size = normalise_paging(page, page_size, MAX_PAGE_SIZE)
    qs = VNFInstance.objects.all()
    if keyword:
        qs = qs.filter(name__icontains=keyword)
    total = qs.count()
    offset = (page - 1) * page_size
    return list(qs.order_by("-id")[offset:offset + page_size]), total


def get_instance(vnf_id: int) -> VNFInstance:
    try:
        return VNFInstance.objects.get(pk=vnf_id)
    except VNFInstance.DoesNotExist:
        raise NotFoundError(f"VNF instance '{vnf_id}' not found.")


def delete_instance(vnf_id: int, *, storage: DualStorageService | None = None) -> StoreOutcome:
    """
    Delete an instance, its definitions (cascade) and its mirror documents.

    Raises:
        NotFoundError: If the instance does not exist.
        StorageError: If the relational delete failed.
    """
    storage = storage or dual_storage.get_dual_storage()
    instance = get_instance(vnf_id)
    outcome = storage.delete_instance(instance)
    if not outcome.relational.success:
        raise StorageError(f"Failed to delete VNF instance '{vnf_id}': {outcome.relational.error}")
    logger.info("vnf_instance_deleted", vnf_id=vnf_id, mirror_deleted=outcome.document.success)
    return outcome


# ---------------------------------------------------------------------------
# Mirror read-back
# ---------------------------------------------------------------------------

def _mirror_unavailable(exc: Exception) -> StorageError:
    return StorageError(f"Document store unavailable: {exc}", code="mirror_unavailable")


def get_instance_mirror(vnf_id: int, *, storage: DualStorageService | None = None) -> dict:
    storage = storage or dual_storage.get_dual_storage()
    try:
        mirror = storage.get_instance_mirror(vnf_id)
    except DOCUMENT_STORE_ERRORS as exc:
        raise _mirror_unavailable(exc) from exc
    if mirror is None:
        raise NotFoundError(f"No mirrored configuration for VNF instance '{vnf_id}'.")
    return mirror


def get_form_fields(vnf_id: int, *, storage: DualStorageService | None = None) -> dict:
    """
    Return the mirrored field catalogue of an instance, flat and grouped.

    Returns:
        ``{"fields": [...], "grouped": {group: [...]}, "groups": {key: name}}``
        with each list sorted by extraction order.
    """
    mirror = get_instance_mirror(vnf_id, storage=storage)
    fields = sorted(mirror.get("form_fields") or [], key=lambda f: f.get("order", 0))
    grouped: dict[str, list[dict]] = {}
    for form_field in fields:
        grouped.setdefault(form_field.get("group") or "default", []).append(form_field)
    groups = (mirror.get("yaml_config") or {}).get("groups", {})
    return {"fields": fields, "grouped": grouped, "groups": groups}


def get_yaml_config(vnf_id: int, *, storage: DualStorageService | None = None) -> dict:
    """Rebuild the parsed configuration of an instance from its mirror."""
    mirror = get_instance_mirror(vnf_id, storage=storage)
    config = dict(mirror.get("yaml_config") or {})
    config["fields"] = {
        form_field["path"]: form_field
        for form_field in mirror.get("form_fields") or []
        if form_field.get("path")
    }
    return {"yaml_config": config, "content": mirror.get("content")}


def search_instances(query: dict, *, storage: DualStorageService | None = None) -> list[dict]:
    """
    Search instance mirrors by ``name``, ``vnf_id`` or ``metadata.<key>``.

    Raises:
        InvalidQueryError: If *query* filters on any other field.
        StorageError: If the document store is unavailable.
    """
    storage = storage or dual_storage.get_dual_storage()
    try:
        return storage.search_instance_mirrors(query)
    except ValueError as exc:
        raise InvalidQueryError(str(exc)) from exc
    except DOCUMENT_STORE_ERRORS as exc:
        raise _mirror_unavailable(exc) from exc
