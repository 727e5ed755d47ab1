"""Django admin configuration for audit app."""

from django.contrib import admin
from django.http import HttpRequest

from server.apps.audit.models import AuditEvent


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin[AuditEvent]):
    """Read-only admin view of the audit ledger."""

    list_display = [
        'timestamp',
        'event_kind',
        'source_address',
        'file_id',
    ]

    list_filter = [
        'event_kind',
        'timestamp',
    ]

    search_fields = [
        'source_address',
        'file_id',
    ]

    readonly_fields = [
        'timestamp',
        'source_address',
        'client_signature',
        'file_id',
        'event_kind',
        'detail',
    ]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Events are only appended by the application."""
        return False

    def has_change_permission(
        self,
        request: HttpRequest,
        obj: AuditEvent | None = None,
    ) -> bool:
        """Events are write-once."""
        return False

    def has_delete_permission(
        self,
        request: HttpRequest,
        obj: AuditEvent | None = None,
    ) -> bool:
        """Events are never deleted."""
        return False
