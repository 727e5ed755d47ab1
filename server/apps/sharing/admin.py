"""Django admin configuration for sharing app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.sharing.models import EncryptedFile


def _format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < 1024:
        return f'{size_bytes} B'
    if size_bytes < 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / 1024:.1f} KB'
    if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / (1024 * 1024):.1f} MB'
    return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'


@admin.register(EncryptedFile)
class EncryptedFileAdmin(admin.ModelAdmin[EncryptedFile]):
    """Admin interface for EncryptedFile model.

    Records are immutable, so every field is read-only. Deleting from
    here removes the blob through the post_delete handler.
    """

    list_display = [
        'filename',
        'owner',
        'size_display',
        'download_count',
        'created_at',
        'expires_at',
    ]

    list_filter = [
        'created_at',
        'expires_at',
    ]

    search_fields = [
        'id',
        'filename',
        'owner__email',
    ]

    readonly_fields = [
        'id',
        'owner',
        'blob',
        'iv',
        'filename',
        'mime_type',
        'size_bytes',
        'created_at',
        'expires_at',
        'download_count',
    ]

    fieldsets = (
        ('File Information', {
            'fields': ('id', 'owner', 'blob'),
        }),
        ('Metadata', {
            'fields': (
                'filename',
                'mime_type',
                'size_bytes',
                'iv',
            ),
        }),
        ('Lifecycle', {
            'fields': ('created_at', 'expires_at', 'download_count'),
        }),
    )

    def size_display(self, obj: EncryptedFile) -> str:
        """Display ciphertext size in human-readable format.

        Args:
            obj: EncryptedFile instance.

        Returns:
            Formatted size string.
        """
        return _format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Records are only created by uploads."""
        return False

    def get_queryset(self, request: HttpRequest) -> QuerySet[EncryptedFile]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('owner')
