"""Django app configuration for guard app."""

from django.apps import AppConfig


class GuardConfig(AppConfig):
    """Configuration for guard app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.guard'
    verbose_name = 'Access Guard'
