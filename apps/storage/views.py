"""
apps.storage.views
~~~~~~~~~~~~~~~~~~
Operational endpoints for the dual store.

GET  /storage/status/  – per-store connectivity
POST /storage/sync/    – create missing instance mirrors (additive)
"""
from django.db import DatabaseError
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from common.exceptions import StorageError
from .services import dual_storage


class StorageStatusView(APIView):
    @extend_schema(
        summary="Storage Status",
        responses={200: OpenApiResponse(description="`mysql` and `mongodb` connectivity.")},
        tags=["Storage"],
    )
    def get(self, request: Request) -> Response:
        return Response(dual_storage.get_dual_storage().storage_status())


class StorageSyncView(APIView):
    @extend_schema(
        summary="Sync Missing Mirrors",
        description=(
            "Creates an instance mirror document for every relational instance "
            "that lacks one.  Existing mirror documents are never modified."
        ),
        request=None,
        responses={
            200: OpenApiResponse(description="`scanned`, `created` and `failed`."),
            503: OpenApiResponse(description="Relational store unavailable."),
        },
        tags=["Storage"],
    )
    def post(self, request: Request) -> Response:
        try:
            report = dual_storage.get_dual_storage().sync_missing_mirrors()
        except DatabaseError as exc:
            raise StorageError(f"Cannot enumerate VNF instances: {exc}") from exc
        return Response({"success": True, "data": report.as_dict()})
