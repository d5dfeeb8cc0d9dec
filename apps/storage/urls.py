"""
apps.storage.urls
"""
from django.urls import path

from .views import StorageStatusView, StorageSyncView

urlpatterns = [
    path("storage/status/", StorageStatusView.as_view(), name="storage-status"),
    path("storage/sync/", StorageSyncView.as_view(), name="storage-sync"),
]
