"""
tests.test_api
~~~~~~~~~~~~~~
Integration tests for the /api/v1/ endpoints using the test database and
the in-memory document store.
"""
from __future__ import annotations

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework import status

from apps.vnfs.models import VNFDefinition, VNFInstance

from .test_config_parser import SAMPLE_YAML

UPLOAD_URL = "/api/v1/uploads/"
VNF_LIST_URL = "/api/v1/vnfs/"
SEARCH_URL = "/api/v1/vnfs/search/"


def vnf_url(vnf_id: int, suffix: str = "") -> str:
    return f"/api/v1/vnfs/{vnf_id}/{suffix}"


def definition_url(vnf_id: int, def_id: int) -> str:
    return f"/api/v1/vnfs/{vnf_id}/definitions/{def_id}/"


@pytest.fixture
def uploaded(api_client, fake_storage) -> dict:
    """Upload SAMPLE_YAML and return the response body."""
    resp = api_client.post(
        UPLOAD_URL,
        data={"file": SimpleUploadedFile("edge-router.yaml", SAMPLE_YAML.encode())},
        format="multipart",
    )
    assert resp.status_code == status.HTTP_201_CREATED, resp.content
    return resp.json()


@pytest.mark.django_db
class TestUploadEndpoint:

    def test_upload_yaml_201(self, uploaded):
        assert uploaded["success"] is True
        data = uploaded["data"]
        assert data["vnf"]["name"] == "edge-router"
        assert data["vnf"]["definition_count"] == 6
        assert len(data["definitions"]) == 6
        assert [f["path"] for f in data["form_fields"]][:2] == ["timeout", "network.mtu"]
        assert data["yaml_config"]["metadata"] == {"owner": "teamA"}
        assert data["yaml_config"]["groups"] == {"net": "Networking"}
        assert data["storage"]["mysql"] == {"success": True, "error": None}
        assert data["storage"]["mongodb"] == {"success": True, "error": None}
        assert data["definitions_storage"]["mongodb"]["success"] is True
        assert uploaded["warnings"] == [
            "field 'admin_password' is required but has no default value"
        ]

    def test_upload_with_explicit_name(self, api_client, fake_storage):
        resp = api_client.post(
            UPLOAD_URL,
            data={"file": SimpleUploadedFile("a.yml", b"retries: 3\n"), "name": "core"},
            format="multipart",
        )
        assert resp.status_code == status.HTTP_201_CREATED
        assert resp.json()["data"]["vnf"]["name"] == "core"
        assert "warnings" not in resp.json()

    def test_upload_document_store_down_still_201(self, api_client, fake_storage, document_store):
        document_store.fail = True
        resp = api_client.post(
            UPLOAD_URL,
            data={"file": SimpleUploadedFile("a.yaml", b"retries: 3\n")},
            format="multipart",
        )
        assert resp.status_code == status.HTTP_201_CREATED
        body = resp.json()
        assert body["data"]["storage"]["mysql"]["success"] is True
        assert body["data"]["storage"]["mongodb"]["success"] is False
        assert body["warnings"]
        assert VNFInstance.objects.count() == 1

    def test_upload_invalid_yaml_400(self, api_client, fake_storage):
        resp = api_client.post(
            UPLOAD_URL,
            data={"file": SimpleUploadedFile("bad.yaml", b"a: [1, 2\n")},
            format="multipart",
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert resp.json()["code"] == "invalid_config"

    def test_upload_unsupported_file_400(self, api_client, fake_storage):
        resp = api_client.post(
            UPLOAD_URL,
            data={"file": SimpleUploadedFile("conf.txt", b"a: 1\n")},
            format="multipart",
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert resp.json()["code"] == "unsupported_upload"

    def test_upload_missing_file_400(self, api_client, fake_storage):
        resp = api_client.post(UPLOAD_URL, data={}, format="multipart")
        assert resp.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestInstanceEndpoints:

    def test_list_and_keyword(self, api_client, uploaded):
        VNFInstance.objects.create(name="core-gateway")
        resp = api_client.get(VNF_LIST_URL, {"keyword": "EDGE"})
        assert resp.status_code == status.HTTP_200_OK
        body = resp.json()
        assert body["total"] == 1
        assert body["results"][0]["name"] == "edge-router"

    def test_list_paging_clamps_page_size(self, api_client, fake_storage):
        for i in range(3):
            VNFInstance.objects.create(name=f"vnf-{i}")
        body = api_client.get(VNF_LIST_URL, {"page": 0, "page_size": 1000}).json()
        assert body["page"] == 1
        assert body["page_size"] == 10
        assert body["total"] == 3
        assert [r["name"] for r in body["results"]] == ["vnf-2", "vnf-1", "vnf-0"]

    def test_get_and_404(self, api_client, uploaded):
        vnf_id = uploaded["data"]["vnf"]["id"]
        assert api_client.get(vnf_url(vnf_id)).status_code == status.HTTP_200_OK
        resp = api_client.get(vnf_url(vnf_id + 1000))
        assert resp.status_code == status.HTTP_404_NOT_FOUND
        assert resp.json()["code"] == "not_found"

    def test_form_fields_grouped(self, api_client, uploaded):
        vnf_id = uploaded["data"]["vnf"]["id"]
        body = api_client.get(vnf_url(vnf_id, "form-fields/")).json()
        assert [f["path"] for f in body["grouped"]["net"]] == ["network.mtu"]
        assert body["groups"] == {"net": "Networking"}
        assert len(body["fields"]) == 6

    def test_yaml_config(self, api_client, uploaded):
        vnf_id = uploaded["data"]["vnf"]["id"]
        body = api_client.get(vnf_url(vnf_id, "yaml-config/")).json()
        assert body["yaml_config"]["fields"]["timeout"]["default_value"] == 30
        assert body["content"]["retries"] == 3

    def test_form_fields_mirror_unavailable_503(self, api_client, uploaded, document_store):
        document_store.fail = True
        resp = api_client.get(vnf_url(uploaded["data"]["vnf"]["id"], "form-fields/"))
        assert resp.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert resp.json()["code"] == "mirror_unavailable"

    def test_search_by_name(self, api_client, uploaded):
        body = api_client.get(SEARCH_URL, {"name": "ROUTER"}).json()
        assert [doc["name"] for doc in body["results"]] == ["edge-router"]
        vnf_id = uploaded["data"]["vnf"]["id"]
        body = api_client.get(SEARCH_URL, {"vnf_id": str(vnf_id)}).json()
        assert len(body["results"]) == 1

    def test_search_by_metadata_key(self, api_client, uploaded):
        body = api_client.get(SEARCH_URL, {"metadata.owner": "teamA"}).json()
        assert [doc["name"] for doc in body["results"]] == ["edge-router"]

    def test_search_unsupported_key_400(self, api_client, uploaded):
        for params in ({"$where": "sleep(10000)"}, {"metadata.$ne": "x"}, {"content": "x"}):
            resp = api_client.get(SEARCH_URL, params)
            assert resp.status_code == status.HTTP_400_BAD_REQUEST, params
            assert resp.json()["code"] == "invalid_query"

    def test_delete_instance(self, api_client, uploaded, document_store):
        vnf_id = uploaded["data"]["vnf"]["id"]
        resp = api_client.delete(vnf_url(vnf_id))
        assert resp.status_code == status.HTTP_200_OK
        assert resp.json()["storage"]["mongodb"]["success"] is True
        assert not VNFDefinition.objects.filter(vnf_id=vnf_id).exists()
        assert document_store.find_one("vnf_instances", {"vnf_id": vnf_id}) is None


@pytest.mark.django_db
class TestDefinitionEndpoints:

    def test_list_modified_only(self, api_client, uploaded):
        vnf_id = uploaded["data"]["vnf"]["id"]
        timeout = VNFDefinition.objects.get(vnf_id=vnf_id, parameter_name="timeout")
        api_client.patch(definition_url(vnf_id, timeout.pk), {"current_value": "60"}, format="json")

        body = api_client.get(vnf_url(vnf_id, "definitions/"), {"modified_only": "true"}).json()
        assert body["total"] == 1
        assert body["results"][0]["parameter_name"] == "timeout"
        assert body["results"][0]["current_value"] == "60"

    def test_patch_locked_definition_403(self, api_client, uploaded):
        vnf_id = uploaded["data"]["vnf"]["id"]
        mtu = VNFDefinition.objects.get(vnf_id=vnf_id, parameter_name="network.mtu")
        resp = api_client.patch(definition_url(vnf_id, mtu.pk), {"current_value": "9000"}, format="json")
        assert resp.status_code == status.HTTP_403_FORBIDDEN
        mtu.refresh_from_db()
        assert mtu.current_value == "1500"
        assert mtu.modified is False

    def test_create_and_conflict(self, api_client, uploaded):
        vnf_id = uploaded["data"]["vnf"]["id"]
        url = vnf_url(vnf_id, "definitions/")
        payload = {"parameter_name": "dns.primary", "default_value": "1.1.1.1", "can_be_updated": True}

        resp = api_client.post(url, payload, format="json")
        assert resp.status_code == status.HTTP_201_CREATED
        body = resp.json()
        assert body["current_value"] == "1.1.1.1"
        assert body["modified"] is False
        assert body["storage"]["mysql"]["success"] is True

        resp = api_client.post(url, payload, format="json")
        assert resp.status_code == status.HTTP_409_CONFLICT

    def test_delete_definition(self, api_client, uploaded, document_store):
        vnf_id = uploaded["data"]["vnf"]["id"]
        retries = VNFDefinition.objects.get(vnf_id=vnf_id, parameter_name="retries")
        resp = api_client.delete(definition_url(vnf_id, retries.pk))
        assert resp.status_code == status.HTTP_204_NO_CONTENT
        assert document_store.find_one(
            "vnf_definitions", {"vnf_id": vnf_id, "parameter_name": "retries"}
        ) is None


@pytest.mark.django_db
class TestStorageEndpoints:

    def test_status(self, api_client, fake_storage):
        body = api_client.get("/api/v1/storage/status/").json()
        assert body["mysql"]["connected"] is True
        assert body["mongodb"]["connected"] is True

    def test_sync(self, api_client, fake_storage):
        instance = VNFInstance.objects.create(name="orphan")
        resp = api_client.post("/api/v1/storage/sync/")
        assert resp.status_code == status.HTTP_200_OK
        assert resp.json()["data"]["created"] == [instance.pk]

    def test_request_id_header_echoed(self, api_client, fake_storage):
        resp = api_client.get("/api/v1/storage/status/", HTTP_X_REQUEST_ID="abc123")
        assert resp["X-Request-ID"] == "abc123"
