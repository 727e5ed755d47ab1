"""Shared fixtures for sharing app tests."""

import base64
import os
import uuid
from datetime import timedelta

import boto3
import pytest
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from django.utils import timezone
from moto import mock_aws

from server.apps.audit.logic.audit_log import DatabaseAuditLog
from server.apps.guard.logic.access_guard import AccessGuard, ClientContext
from server.apps.guard.logic.rate_limiting import (
    MemoryCounterStore,
    build_rate_limiter,
)
from server.apps.sharing.models import EncryptedFile

User = get_user_model()


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='owner@example.com',
        password='testpass123',
        email='owner@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='other@example.com',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def mock_s3():
    """Mock S3 service with zk-fileshare bucket.

    Yields:
        boto3 S3 resource with zk-fileshare bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket='zk-fileshare')

        yield conn


@pytest.fixture
def client_context():
    """Request origin used by flows under test."""
    return ClientContext(
        source_address='203.0.113.7',
        client_signature='pytest-agent/1.0',
    )


@pytest.fixture
def guard(db):
    """Guard with process-local counters and the database audit log."""
    return AccessGuard(
        limiter=build_rate_limiter(store=MemoryCounterStore()),
        audit_log=DatabaseAuditLog(),
    )


@pytest.fixture
def make_iv():
    """Factory for fresh base64 IVs.

    Returns:
        Callable producing a new 12-byte IV as text.
    """
    def factory() -> str:
        return base64.b64encode(os.urandom(12)).decode('ascii')

    return factory


@pytest.fixture
def ciphertext():
    """Opaque ciphertext upload.

    Returns:
        ContentFile with random bytes.
    """
    return ContentFile(os.urandom(64), name='blob.bin')


@pytest.fixture
def make_record(user, make_iv):
    """Factory creating records directly, without touching storage.

    Returns:
        Callable accepting optional owner, name and expiry offset.
    """
    def factory(
        owner=None,
        filename='report.pdf',
        expires_in=timedelta(hours=24),
        created_ago=timedelta(0),
    ) -> EncryptedFile:
        created_at = timezone.now() - created_ago
        record_id = uuid.uuid4()
        return EncryptedFile.objects.create(
            id=record_id,
            blob=f'blobs/{record_id}.bin',
            owner=owner or user,
            iv=make_iv(),
            filename=filename,
            mime_type='application/pdf',
            size_bytes=64,
            created_at=created_at,
            expires_at=created_at + expires_in,
        )

    return factory
