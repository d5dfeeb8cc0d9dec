"""
apps.config_parser.apps
"""
from django.apps import AppConfig


class ConfigParserConfig(AppConfig):
    name = "apps.config_parser"
    label = "config_parser"
    verbose_name = "Config Parser"
