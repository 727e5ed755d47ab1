"""Django app configuration for sharing app."""

from typing import override

from django.apps import AppConfig


class SharingConfig(AppConfig):
    """Configuration for sharing app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.sharing'
    verbose_name = 'Encrypted Sharing'

    @override
    def ready(self) -> None:
        """Import signal handlers when app is ready."""
        from server.apps.sharing import signals  # noqa: F401
