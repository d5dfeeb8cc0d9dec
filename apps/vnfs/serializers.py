"""
apps.vnfs.serializers
~~~~~~~~~~~~~~~~~~~~~
I/O-only serializers for the VNF API.
No business logic; shape validation only.
"""
from rest_framework import serializers

from .models import VNFDefinition, VNFInstance


# ---------------------------------------------------------------------------
# Instances
# ---------------------------------------------------------------------------

class VNFInstanceSerializer(serializers.ModelSerializer):
    definition_count = serializers.IntegerField(source="definitions.count", read_only=True)

    class Meta:
        model = VNFInstance
        fields = ["id", "name", "definition_count", "created_at", "updated_at"]
        read_only_fields = fields


class VNFInstanceListQuerySerializer(serializers.Serializer):
    """Validates GET /vnfs/ query parameters."""

    page = serializers.IntegerField(required=False, default=1)
    page_size = serializers.IntegerField(required=False, default=10)
    keyword = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------

class VNFDefinitionSerializer(serializers.ModelSerializer):
    vnf_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = VNFDefinition
        fields = [
            "id",
            "vnf_id",
            "parameter_name",
            "type",
            "default_value",
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
        ]
        read_only_fields = fields


class DefinitionListQuerySerializer(serializers.Serializer):
    """Validates GET /vnfs/{id}/definitions/ query parameters."""

    page = serializers.IntegerField(required=False, default=1)
    page_size = serializers.IntegerField(required=False, default=10)
    modified_only = serializers.BooleanField(required=False, default=False)


class DefinitionUpdateSerializer(serializers.Serializer):
    """Validates PATCH/PUT /vnfs/{id}/definitions/{def_id}/ request bodies."""

    type = serializers.CharField(required=False, max_length=64)
    default_value = serializers.CharField(required=False, allow_blank=True)
    description_text = serializers.CharField(required=False, allow_blank=True)
    required = serializers.BooleanField(required=False)
    hidden = serializers.BooleanField(required=False)
    hidden_condition = serializers.CharField(required=False, allow_blank=True, max_length=255)
    validation_rules = serializers.DictField(required=False)
    options = serializers.ListField(required=False)
    group = serializers.CharField(required=False, max_length=255)
    order = serializers.IntegerField(required=False)
    can_be_updated = serializers.BooleanField(required=False)
    current_value = serializers.CharField(required=False, allow_blank=True)


class DefinitionCreateSerializer(DefinitionUpdateSerializer):
    """Validates POST /vnfs/{id}/definitions/ request body."""

    parameter_name = serializers.CharField(max_length=512)


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

class UploadRequestSerializer(serializers.Serializer):
    """Validates the multipart POST /uploads/ body."""

    file = serializers.FileField()
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)


class StoreStatusSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    error = serializers.CharField(allow_null=True)


class StoreOutcomeSerializer(serializers.Serializer):
    mysql = StoreStatusSerializer()
    mongodb = StoreStatusSerializer()


class UploadDataSerializer(serializers.Serializer):
    vnf = VNFInstanceSerializer()
    definitions = VNFDefinitionSerializer(many=True)
    form_fields = serializers.ListField(child=serializers.DictField())
    yaml_config = serializers.DictField()
    storage = StoreOutcomeSerializer()
    definitions_storage = StoreOutcomeSerializer()


class UploadResponseSerializer(serializers.Serializer):
    """Response shape of a successful POST /uploads/."""

    success = serializers.BooleanField()
    message = serializers.CharField()
    data = UploadDataSerializer()
    warnings = serializers.ListField(child=serializers.CharField(), required=False)


class PagedResponseSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    page = serializers.IntegerField()
    page_size = serializers.IntegerField()
    results = serializers.ListField(child=serializers.DictField())
