"""Database models for audit app."""

from typing import ClassVar, Final, final, override

from django.db import models
from django.utils import timezone

# Constants for field max lengths
_SOURCE_ADDRESS_MAX_LENGTH: Final = 64
_CLIENT_SIGNATURE_MAX_LENGTH: Final = 512
_EVENT_KIND_MAX_LENGTH: Final = 32


class EventKind(models.TextChoices):
    """Security-relevant events recorded in the audit ledger."""

    DOWNLOAD_OK = 'DOWNLOAD_OK', 'Download succeeded'
    NOT_FOUND = 'NOT_FOUND', 'File not found'
    EXPIRED = 'EXPIRED', 'File expired'
    RATE_LIMITED = 'RATE_LIMITED', 'Rate limited'
    AUTH_FAILED = 'AUTH_FAILED', 'Authentication failed'
    UPLOAD_OK = 'UPLOAD_OK', 'Upload succeeded'
    UPLOAD_FAILED = 'UPLOAD_FAILED', 'Upload failed'


@final
class AuditEvent(models.Model):
    """Write-once audit record.

    Rows are appended and never updated or deleted by application code.
    `file_id` is a plain UUID rather than a foreign key so events outlive
    the records they refer to.
    """

    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    source_address = models.CharField(
        max_length=_SOURCE_ADDRESS_MAX_LENGTH,
        help_text='Client IP address (first X-Forwarded-For hop)',
    )

    client_signature = models.CharField(
        max_length=_CLIENT_SIGNATURE_MAX_LENGTH,
        help_text='Client User-Agent string',
    )

    file_id = models.UUIDField(null=True, blank=True, db_index=True)

    event_kind = models.CharField(
        max_length=_EVENT_KIND_MAX_LENGTH,
        choices=EventKind.choices,
        db_index=True,
    )

    detail = models.JSONField(null=True, blank=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Audit Event'  # type: ignore[mutable-override]
        verbose_name_plural = 'Audit Events'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['-timestamp']

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.event_kind}@{self.source_address} ({self.file_id})'
