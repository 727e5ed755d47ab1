"""Signal handlers for sharing app."""

import logging
from typing import TYPE_CHECKING

from django.core.files.storage import default_storage
from django.db import transaction
from django.db.models.signals import post_delete
from django.dispatch import receiver

from server.apps.sharing.models import EncryptedFile

if TYPE_CHECKING:
    from server.apps.sharing.infrastructure.storage import BlobStorage

logger = logging.getLogger(__name__)


def get_blob_storage() -> 'BlobStorage':
    """Get the configured blob store.

    Returns:
        BlobStorage instance with proper S3 configuration.
    """
    return default_storage  # type: ignore[return-value]


@receiver(post_delete, sender=EncryptedFile)
def delete_blob_from_storage(
    sender: type[EncryptedFile],
    instance: EncryptedFile,
    **kwargs: object,
) -> None:
    """Delete ciphertext from storage once its record deletion commits.

    Runs for owner deletion, the expiry sweep and cascades from a
    deleted principal alike. If the surrounding transaction rolls back,
    the record survives and so do its bytes.

    Args:
        sender: The EncryptedFile model class.
        instance: The EncryptedFile instance being deleted.
        **kwargs: Additional signal arguments.
    """
    if not instance.blob:
        return

    blob_name = instance.blob.name
    transaction.on_commit(lambda: _delete_blob(blob_name))


def _delete_blob(blob_name: str) -> None:
    logger.info('Deleting blob from storage after DB delete: %s', blob_name)
    try:
        get_blob_storage().delete_blob(blob_name)
    except Exception:
        # Record is already gone; an orphaned blob is harmless
        logger.exception(
            'Failed to delete blob from storage (orphaned): %s',
            blob_name,
        )
