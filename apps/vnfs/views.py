"""
apps.vnfs.views
~~~~~~~~~~~~~~~
Thin DRF API views for the VNF application.
All business logic is delegated to :mod:`apps.vnfs.services`.

Endpoints
---------
POST   /uploads/                               – Ingest a .zip/.yaml/.yml upload
GET    /vnfs/                                  – List instances
GET    /vnfs/search/                           – Search instance mirrors
GET    /vnfs/{id}/                             – Get instance
DELETE /vnfs/{id}/                             – Delete instance and mirrors
GET    /vnfs/{id}/definitions/                 – List definitions
POST   /vnfs/{id}/definitions/                 – Create definition
PATCH  /vnfs/{id}/definitions/{def_id}/        – Update definition
DELETE /vnfs/{id}/definitions/{def_id}/        – Delete definition
GET    /vnfs/{id}/form-fields/                 – Mirrored field catalogue
GET    /vnfs/{id}/yaml-config/                 – Mirrored parsed configuration
"""
from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.vnfs import services
from apps.vnfs.services.vnf_service import normalise_paging
from .serializers import (
    DefinitionCreateSerializer,
    DefinitionListQuerySerializer,
    DefinitionUpdateSerializer,
    PagedResponseSerializer,
    UploadRequestSerializer,
    UploadResponseSerializer,
    VNFDefinitionSerializer,
    VNFInstanceListQuerySerializer,
    VNFInstanceSerializer,
)

#: Mirror fields whose query-string value is compared as an integer.
INTEGER_SEARCH_KEYS = frozenset({"vnf_id"})


def _paged(results: list, total: int, page: int, page_size: int) -> dict:
    return {"total": total, "page": page, "page_size": page_size, "results": results}


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

class UploadView(APIView):
    """POST /uploads/ – parse a configuration document and store it."""

    parser_classes = [MultiPartParser, FormParser]

    @extend_schema(
        summary="Upload Configuration",
        description=(
            "Accepts a .zip archive containing a YAML document, or a bare "
            ".yaml/.yml file.  The document is parsed into a field catalogue, "
            "stored as a VNF instance with one definition per field, and "
            "mirrored to the document store.  Document-store failures are "
            "reported in `warnings` and in `data.storage`."
        ),
        request={"multipart/form-data": UploadRequestSerializer},
        responses={
            201: UploadResponseSerializer,
            400: OpenApiResponse(description="Malformed YAML, unreadable archive or unsupported file."),
            503: OpenApiResponse(description="Relational store unavailable."),
        },
        tags=["Uploads"],
    )
    def post(self, request: Request) -> Response:
        serializer = UploadRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vd = serializer.validated_data

        result = services.handle_upload(vd["file"], name=vd.get("name") or None)

        form_fields = [
            descriptor.to_dict()
            for descriptor in sorted(result.parsed.fields.values(), key=lambda f: f.order)
        ]
        payload = {
            "success": True,
            "message": f"VNF instance '{result.instance.name}' created with "
                       f"{len(result.definitions)} definitions.",
            "data": {
                "vnf": VNFInstanceSerializer(result.instance).data,
                "definitions": VNFDefinitionSerializer(result.definitions, many=True).data,
                "form_fields": form_fields,
                "yaml_config": result.parsed.to_dict(),
                "storage": result.storage.as_dict(),
                "definitions_storage": result.definitions_storage.as_dict(),
            },
        }
        if result.warnings:
            payload["warnings"] = result.warnings
        return Response(payload, status=status.HTTP_201_CREATED)


# ---------------------------------------------------------------------------
# Instances
# ---------------------------------------------------------------------------

class VNFInstanceListView(APIView):
    """GET /vnfs/ – page through instances, newest first."""

    @extend_schema(
        summary="List VNF Instances",
        parameters=[VNFInstanceListQuerySerializer],
        responses={200: PagedResponseSerializer},
        tags=["VNFs"],
    )
    def get(self, request: Request) -> Response:
        query = VNFInstanceListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        vd = query.validated_data
        page, page_size = normalise_paging(vd["page"], vd["page_size"], services.vnf_service.MAX_PAGE_SIZE)
        instances, total = services.list_instances(page=page, page_size=page_size, keyword=vd["keyword"])
        return Response(
            _paged(VNFInstanceSerializer(instances, many=True).data, total, page, page_size)
        )


class VNFInstanceSearchView(APIView):
    """GET /vnfs/search/ – search instance mirrors in the document store."""

    @extend_schema(
        summary="Search VNF Mirrors",
        description=(
            "`name` matches case-insensitively as a substring; `vnf_id` and "
            "`metadata.<key>` are equality filters.  Any other parameter is "
            "rejected with 400."
        ),
        parameters=[OpenApiParameter("name", str, required=False)],
        responses={
            200: OpenApiResponse(description="List of mirror documents."),
            400: OpenApiResponse(description="Unsupported search parameter."),
            503: OpenApiResponse(description="Document store unavailable."),
        },
        tags=["VNFs"],
    )
    def get(self, request: Request) -> Response:
        query: dict = {}
        for key, value in request.query_params.items():
            if key in INTEGER_SEARCH_KEYS and value.lstrip("-").isdigit():
                query[key] = int(value)
            else:
                query[key] = value
        return Response({"results": services.search_instances(query)})


class VNFInstanceDetailView(APIView):
    """GET / DELETE /vnfs/{id}/"""

    @extend_schema(
        summary="Get VNF Instance",
        responses={200: VNFInstanceSerializer, 404: OpenApiResponse(description="Instance not found.")},
        tags=["VNFs"],
    )
    def get(self, request: Request, vnf_id: int) -> Response:
        return Response(VNFInstanceSerializer(services.get_instance(vnf_id)).data)

    @extend_schema(
        summary="Delete VNF Instance",
        description="Deletes the instance, its definitions and every mirror document keyed by it.",
        responses={
            200: OpenApiResponse(description="Per-store outcome of the delete."),
            404: OpenApiResponse(description="Instance not found."),
        },
        tags=["VNFs"],
    )
    def delete(self, request: Request, vnf_id: int) -> Response:
        outcome = services.delete_instance(vnf_id)
        return Response({"success": True, "storage": outcome.as_dict()})


class VNFFormFieldsView(APIView):
    """GET /vnfs/{id}/form-fields/"""

    @extend_schema(
        summary="Get Form Fields",
        description="Mirrored field catalogue, flat and bucketed by group, each in extraction order.",
        responses={
            200: OpenApiResponse(description="`fields`, `grouped` and `groups`."),
            404: OpenApiResponse(description="No mirror document for this instance."),
            503: OpenApiResponse(description="Document store unavailable."),
        },
        tags=["VNFs"],
    )
    def get(self, request: Request, vnf_id: int) -> Response:
        return Response(services.get_form_fields(vnf_id))


class VNFYamlConfigView(APIView):
    """GET /vnfs/{id}/yaml-config/"""

    @extend_schema(
        summary="Get Parsed Configuration",
        responses={
            200: OpenApiResponse(description="`yaml_config` and the raw `content` tree."),
            404: OpenApiResponse(description="No mirror document for this instance."),
            503: OpenApiResponse(description="Document store unavailable."),
        },
        tags=["VNFs"],
    )
    def get(self, request: Request, vnf_id: int) -> Response:
        return Response(services.get_yaml_config(vnf_id))


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------

class DefinitionListCreateView(APIView):
    """GET / POST /vnfs/{id}/definitions/"""

    @extend_schema(
        summary="List Definitions",
        parameters=[DefinitionListQuerySerializer],
        responses={200: PagedResponseSerializer},
        tags=["Definitions"],
    )
    def get(self, request: Request, vnf_id: int) -> Response:
        query = DefinitionListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        vd = query.validated_data
        services.get_instance(vnf_id)
        page, page_size = normalise_paging(
            vd["page"], vd["page_size"], services.definition_service.MAX_PAGE_SIZE
        )
        definitions, total = services.list_definitions(
            vnf_id, page=page, page_size=page_size, modified_only=vd["modified_only"]
        )
        return Response(
            _paged(VNFDefinitionSerializer(definitions, many=True).data, total, page, page_size)
        )

    @extend_schema(
        summary="Create Definition",
        request=DefinitionCreateSerializer,
        responses={
            201: VNFDefinitionSerializer,
            404: OpenApiResponse(description="Instance not found."),
            409: OpenApiResponse(description="Parameter already exists for this instance."),
        },
        tags=["Definitions"],
    )
    def post(self, request: Request, vnf_id: int) -> Response:
        serializer = DefinitionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        definition, outcome = services.create_definition(vnf_id, data=serializer.validated_data)
        payload = VNFDefinitionSerializer(definition).data
        payload["storage"] = outcome.as_dict()
        return Response(payload, status=status.HTTP_201_CREATED)


class DefinitionDetailView(APIView):
    """PATCH / PUT / DELETE /vnfs/{id}/definitions/{def_id}/"""

    @extend_schema(
        summary="Update Definition",
        description=(
            "Partially updates a definition.  Supplying `current_value` for a "
            "definition with `can_be_updated = false` is rejected with 403 and "
            "leaves the record unchanged."
        ),
        request=DefinitionUpdateSerializer,
        responses={
            200: VNFDefinitionSerializer,
            403: OpenApiResponse(description="Definition cannot be updated."),
            404: OpenApiResponse(description="Definition not found."),
        },
        tags=["Definitions"],
    )
    def patch(self, request: Request, vnf_id: int, def_id: int) -> Response:
        serializer = DefinitionUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        definition, outcome = services.update_definition(
            vnf_id, def_id, data=serializer.validated_data
        )
        payload = VNFDefinitionSerializer(definition).data
        payload["storage"] = outcome.as_dict()
        return Response(payload)

    put = patch

    @extend_schema(
        summary="Delete Definition",
        responses={
            204: None,
            404: OpenApiResponse(description="Definition not found."),
        },
        tags=["Definitions"],
    )
    def delete(self, request: Request, vnf_id: int, def_id: int) -> Response:
        services.delete_definition(vnf_id, def_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
