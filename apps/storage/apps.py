"""
apps.storage.apps
"""
from django.apps import AppConfig
from django.conf import settings


class StorageConfig(AppConfig):
    """
    Owns the document-store handle used by the dual-store coordinator.

    The pymongo client is created with ``connect=False``; no network call
    happens until the first mirror operation.
    """

    name = "apps.storage"
    label = "storage"
    verbose_name = "Dual Storage"

    document_store = None

    def ready(self) -> None:
        from .services.document_store import DocumentStore  # noqa: PLC0415

        self.document_store = DocumentStore.from_uri(
            settings.MONGO_URI,
            settings.MONGO_DATABASE,
            timeout=settings.STORE_TIMEOUT_SECONDS,
            search_timeout=settings.MIRROR_SEARCH_TIMEOUT_SECONDS,
        )
