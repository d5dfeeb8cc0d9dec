"""
apps.vnfs.admin
"""
from django.contrib import admin

from .models import VNFDefinition, VNFInstance


class VNFDefinitionInline(admin.TabularInline):
    model = VNFDefinition
    extra = 0
    fields = ["parameter_name", "type", "default_value", "current_value", "can_be_updated", "modified"]
    readonly_fields = ["modified"]
    ordering = ["order"]


@admin.register(VNFInstance)
class VNFInstanceAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "created_at", "updated_at"]
    search_fields = ["name"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["-id"]
    inlines = [VNFDefinitionInline]


@admin.register(VNFDefinition)
class VNFDefinitionAdmin(admin.ModelAdmin):
    """
    Admin interface for persisted field records.

    ``modified`` is derived from ``current_value`` and ``default_value`` on
    save, so it is read-only here.
    """

    list_display = ["parameter_name", "vnf", "type", "group", "can_be_updated", "modified"]
    list_filter = ["type", "modified", "can_be_updated", "group"]
    search_fields = ["parameter_name", "vnf__name"]
    readonly_fields = ["id", "modified", "created_at", "updated_at"]
    ordering = ["vnf", "order"]
