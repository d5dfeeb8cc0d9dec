"""
apps.vnfs.apps
"""
from django.apps import AppConfig


class VnfsConfig(AppConfig):
    name = "apps.vnfs"
    label = "vnfs"
    verbose_name = "VNF Instances"
