"""Django app configuration for catalog."""

from django.apps import AppConfig


class CatalogConfig(AppConfig):
    """Products, weights and price tiers read by cart and checkout."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "catalog"
