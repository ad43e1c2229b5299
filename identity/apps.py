"""Django app configuration for the Identity app."""

from django.apps import AppConfig


class IdentityConfig(AppConfig):
    """AppConfig for browsing-context ownership and guest cart merge."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "identity"
