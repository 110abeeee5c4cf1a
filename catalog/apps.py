"""
Catalog application configuration.
"""

from django.apps import AppConfig


class CatalogConfig(AppConfig):
    """Configuration for the catalog Django application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "catalog"
    verbose_name = "Recipe Catalog"
