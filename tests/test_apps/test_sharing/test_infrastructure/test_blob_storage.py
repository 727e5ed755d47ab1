"""Tests for the ciphertext blob store."""

import uuid

import pytest
from django.core.files.base import ContentFile

from server.apps.sharing.infrastructure.storage import (
    BlobMissingError,
    BlobStorage,
    blob_name_for,
)
from server.apps.sharing.signals import get_blob_storage


def test_blob_name_for():
    """Test blob names are derived from the identifier only."""
    blob_id = uuid.uuid4()

    assert blob_name_for(blob_id) == f'blobs/{blob_id}.bin'


class TestBlobStorage:
    """Tests for BlobStorage against mocked S3."""

    def test_default_storage_is_blob_storage(self):
        """Test the configured default backend is the blob store."""
        storage = get_blob_storage()

        assert isinstance(storage, BlobStorage)

    def test_write_and_read(self, mock_s3):
        """Test bytes come back exactly as written."""
        storage = get_blob_storage()
        blob_id = uuid.uuid4()
        payload = bytes(range(256))

        name = storage.write_blob(blob_id, ContentFile(payload))

        assert name == blob_name_for(blob_id)
        assert storage.read_blob(name) == payload

    def test_read_missing(self, mock_s3):
        """Test reading an absent blob raises BlobMissingError."""
        with pytest.raises(BlobMissingError):
            get_blob_storage().read_blob(blob_name_for(uuid.uuid4()))

    def test_delete_blob(self, mock_s3):
        """Test delete removes the object and reports it existed."""
        storage = get_blob_storage()
        name = storage.write_blob(uuid.uuid4(), ContentFile(b'cipher'))

        assert storage.delete_blob(name) is True
        assert not storage.exists(name)

    def test_delete_blob_already_gone(self, mock_s3):
        """Test deleting an absent blob is not an error."""
        assert get_blob_storage().delete_blob(blob_name_for(uuid.uuid4())) is False

    def test_rollback_upload_swallows_errors(self, mock_s3, monkeypatch):
        """Test rollback failures are logged, not raised."""
        storage = get_blob_storage()

        def failing_delete(self, name):
            raise OSError('storage unavailable')

        monkeypatch.setattr(BlobStorage, 'delete', failing_delete)

        storage.rollback_upload('blobs/orphan.bin')

    def test_write_failure_rolls_back(self, mock_s3, monkeypatch):
        """Test a failed write discards any partial object."""
        storage = get_blob_storage()
        rolled_back = []

        def failing_save(self, name, content, max_length=None):
            raise OSError('connection reset')

        monkeypatch.setattr(BlobStorage, 'save', failing_save)
        monkeypatch.setattr(
            BlobStorage,
            'rollback_upload',
            lambda self, name: rolled_back.append(name),
        )

        blob_id = uuid.uuid4()
        with pytest.raises(OSError, match='connection reset'):
            storage.write_blob(blob_id, ContentFile(b'partial'))

        assert rolled_back == [blob_name_for(blob_id)]
