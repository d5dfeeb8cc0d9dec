"""
apps.vnfs.urls
~~~~~~~~~~~~~~
URL routing for the VNF application.
Mounted at /api/v1/ by the root URLconf.
"""
from django.urls import path

from .views import (
    DefinitionDetailView,
    DefinitionListCreateView,
    UploadView,
    VNFFormFieldsView,
    VNFInstanceDetailView,
    VNFInstanceListView,
    VNFInstanceSearchView,
    VNFYamlConfigView,
)

urlpatterns = [
    # POST /api/v1/uploads/
    path("uploads/", UploadView.as_view(), name="upload"),
    # GET /api/v1/vnfs/
    path("vnfs/", VNFInstanceListView.as_view(), name="vnf-list"),
    # GET /api/v1/vnfs/search/
    path("vnfs/search/", VNFInstanceSearchView.as_view(), name="vnf-search"),
    # GET, DELETE /api/v1/vnfs/<vnf_id>/
    path("vnfs/<int:vnf_id>/", VNFInstanceDetailView.as_view(), name="vnf-detail"),
    # GET, POST /api/v1/vnfs/<vnf_id>/definitions/
    path(
        "vnfs/<int:vnf_id>/definitions/",
        DefinitionListCreateView.as_view(),
        name="vnf-definition-list",
    ),
    # PATCH, PUT, DELETE /api/v1/vnfs/<vnf_id>/definitions/<def_id>/
    path(
        "vnfs/<int:vnf_id>/definitions/<int:def_id>/",
        DefinitionDetailView.as_view(),
        name="vnf-definition-detail",
    ),
    # GET /api/v1/vnfs/<vnf_id>/form-fields/
    path("vnfs/<int:vnf_id>/form-fields/", VNFFormFieldsView.as_view(), name="vnf-form-fields"),
    # GET /api/v1/vnfs/<vnf_id>/yaml-config/
    path("vnfs/<int:vnf_id>/yaml-config/", VNFYamlConfigView.as_view(), name="vnf-yaml-config"),
]
