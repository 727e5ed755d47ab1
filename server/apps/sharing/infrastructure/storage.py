"""Blob store for ciphertext on S3-compatible storage."""

import logging
import uuid
from typing import Any, Final, final, override

from botocore.exceptions import ClientError
from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)

_BLOB_PREFIX: Final = 'blobs'
_MISSING_OBJECT_CODES: Final = frozenset(('404', 'NoSuchKey', 'NotFound'))


class BlobMissingError(Exception):
    """Raised when a blob is not (or no longer) present in storage."""


def blob_name_for(blob_id: uuid.UUID | str) -> str:
    """Storage name for a blob identifier.

    Args:
        blob_id: Record identifier.

    Returns:
        Opaque storage key (e.g., 'blobs/1f0c...e2.bin').
    """
    return f'{_BLOB_PREFIX}/{blob_id}.bin'


@final
class BlobStorage(S3Storage):
    """S3 storage backend for encrypted blobs.

    Extends django-storages S3Storage with:
    - Identifier-addressed write/read/delete of opaque bytes
    - Rollback support for failed DB operations
    - Enhanced error logging

    Contents are never inspected; they are ciphertext.
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save blob to S3 with error handling and logging.

        Args:
            name: Storage path for the blob.
            content: File-like object with ciphertext.
            max_length: Optional maximum length for the name.

        Returns:
            Actual storage path used.

        Raises:
            Exception: If S3 upload fails.
        """
        try:
            logger.info('Uploading blob to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully uploaded blob: %s', saved_name)
        except Exception:
            logger.exception('Failed to upload blob to storage: %s', name)
            raise
        else:
            return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete blob from S3 with error handling and logging.

        Args:
            name: Storage path of blob to delete.

        Raises:
            Exception: If S3 delete fails.
        """
        try:
            logger.info('Deleting blob from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted blob: %s', name)
        except Exception:
            logger.exception('Failed to delete blob from storage: %s', name)
            raise

    def write_blob(self, blob_id: uuid.UUID | str, content: Any) -> str:
        """Persist ciphertext under the name derived from its identifier.

        If the write is interrupted (client abort, network error), any
        partially written object is discarded before re-raising.

        Args:
            blob_id: Record identifier.
            content: File-like object with ciphertext.

        Returns:
            Storage name of the blob.
        """
        name = blob_name_for(blob_id)
        try:
            return self.save(name, content)
        except Exception:
            self.rollback_upload(name)
            raise

    def read_blob(self, name: str) -> bytes:
        """Read a whole blob.

        Args:
            name: Storage name.

        Returns:
            Ciphertext bytes.

        Raises:
            BlobMissingError: If the blob is gone.
        """
        try:
            with self.open(name, 'rb') as blob_file:
                return blob_file.read()
        except FileNotFoundError as error:
            raise BlobMissingError(name) from error
        except ClientError as error:
            if _is_missing_object(error):
                raise BlobMissingError(name) from error
            raise

    def delete_blob(self, name: str) -> bool:
        """Delete a blob, tolerating that it is already gone.

        Args:
            name: Storage name.

        Returns:
            True if the blob existed and was deleted, False if it was
            already missing.
        """
        if not self.exists(name):
            logger.warning(
                'Blob not found in storage (already deleted?): %s',
                name,
            )
            return False
        self.delete(name)
        return True

    def rollback_upload(self, name: str) -> None:
        """Delete uploaded blob for DB transaction rollback.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised. An unreferenced blob is harmless
        garbage.

        Args:
            name: Storage path of blob to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting blob: %s', name)
            self.delete(name)
            logger.info('Successfully rolled back blob upload: %s', name)
        except Exception:
            # Nothing references the blob, leaving it is acceptable
            logger.exception(
                'Failed to rollback upload, orphaned blob: %s',
                name,
            )


def _is_missing_object(error: ClientError) -> bool:
    code = str(error.response.get('Error', {}).get('Code', ''))
    return code in _MISSING_OBJECT_CODES
