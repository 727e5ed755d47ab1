"""Database models for sharing app."""

import uuid
from datetime import datetime
from typing import ClassVar, Final, final, override

from django.contrib.auth import get_user_model
from django.db import models
from django.utils import timezone

User = get_user_model()

# Constants for field max lengths
_FILENAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_IV_MAX_LENGTH: Final = 32  # base64 of a 12-byte IV is 16 chars


@final
class EncryptedFile(models.Model):
    """Metadata of one encrypted blob.

    The server stores ciphertext and non-secret parameters only. The
    decryption key never reaches this table; it travels in the share
    link fragment.

    Records are immutable except for `download_count`. They end either
    by owner deletion or by the expiry sweep; both remove the blob too.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='encrypted_files',
        db_index=True,
    )

    # Opaque blob reference in storage: blobs/{id}.bin
    blob = models.FileField(
        upload_to='',
        max_length=_FILENAME_MAX_LENGTH,
        help_text='Ciphertext location in storage',
    )

    iv = models.CharField(
        max_length=_IV_MAX_LENGTH,
        unique=True,
        help_text='Base64 AES-GCM IV, unique per encryption',
    )

    # Display/transport metadata
    filename = models.CharField(max_length=_FILENAME_MAX_LENGTH)

    mime_type = models.CharField(max_length=_MIME_TYPE_MAX_LENGTH)

    size_bytes = models.BigIntegerField(
        help_text='Ciphertext size in bytes',
    )

    # Lifecycle
    created_at = models.DateTimeField(default=timezone.now, editable=False)

    expires_at = models.DateTimeField(db_index=True)

    download_count = models.PositiveIntegerField(default=0)

    class Meta:
        """Model metadata."""

        verbose_name = 'Encrypted File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Encrypted Files'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['-created_at']

        indexes: ClassVar[list[models.Index]] = [
            # Optimize "my files" listing
            models.Index(
                fields=['owner', '-created_at'],
                name='sharing_owner_recent_idx',
            ),
        ]

        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.CheckConstraint(
                condition=models.Q(expires_at__gte=models.F('created_at')),
                name='sharing_expiry_after_creation',
            ),
            models.CheckConstraint(
                condition=models.Q(size_bytes__gte=0),
                name='sharing_size_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.filename} ({self.id})'

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the record has lapsed.

        Args:
            now: Reference time, defaults to the current time.

        Returns:
            True once `expires_at` is reached.
        """
        return self.expires_at <= (now or timezone.now())
