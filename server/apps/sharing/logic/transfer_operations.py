"""Upload and download flows with their boundary payloads.

Every flow runs in the same order: identify and throttle the client,
touch the registry and blob store, then audit the outcome. Keys never
pass through here; only ciphertext, the IV and display metadata do.
"""

import base64
import logging
import uuid
from typing import Any, BinaryIO

from django.conf import settings
from django.core.files.base import File as DjangoFile

from server.apps.audit.logic.audit_log import record_event
from server.apps.audit.models import EventKind
from server.apps.guard.logic.access_guard import (
    AccessGuard,
    ClientContext,
    build_access_guard,
)
from server.apps.guard.logic.rate_limiting import DOWNLOAD_POLICY, UPLOAD_POLICY
from server.apps.sharing.exceptions import (
    InvalidInputError,
    PayloadTooLargeError,
    RecordExpiredError,
    RecordNotFoundError,
    StorageError,
)
from server.apps.sharing.infrastructure.metadata import (
    decode_iv,
    extract_filename,
    validate_file_id,
    validate_mime_type,
)
from server.apps.sharing.infrastructure.storage import BlobMissingError
from server.apps.sharing.logic.registry_operations import (
    create_record,
    delete_owned,
    get_default_expiry_hours,
    get_max_expiry_hours,
    get_metadata,
    list_by_owner,
    record_download,
    resolve_for_download,
)
from server.apps.sharing.models import EncryptedFile
from server.apps.sharing.signals import get_blob_storage

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def get_max_upload_bytes() -> int:
    """Get the ciphertext size ceiling.

    Returns:
        Bytes allowed per upload (MAX_FILE_SIZE_MB, default 50).
    """
    return getattr(settings, 'MAX_FILE_SIZE_MB', 50) * 1024 * 1024


def parse_ttl_hours(raw_ttl: object) -> int | None:
    """Parse the optional client TTL.

    Args:
        raw_ttl: Hours as sent by the client, or None/'' for the default.

    Returns:
        Hours, or None to apply the configured default.

    Raises:
        InvalidInputError: If the value is not an integer between zero
            and MAX_EXPIRY_HOURS.
    """
    if raw_ttl is None or raw_ttl == '':
        return None
    try:
        ttl_hours = int(str(raw_ttl))
    except ValueError as error:
        raise InvalidInputError('Expiry hours must be an integer') from error
    if ttl_hours < 0:
        raise InvalidInputError('Expiry hours cannot be negative')
    max_hours = get_max_expiry_hours()
    if ttl_hours > max_hours:
        raise InvalidInputError(f'Expiry hours cannot exceed {max_hours}')
    return ttl_hours


def _get_content_size(content: BinaryIO | DjangoFile) -> int:
    """Get size of an uploaded file object.

    Args:
        content: File-like object.

    Returns:
        Size in bytes.
    """
    if hasattr(content, 'size'):
        return content.size
    size = len(content.read())
    content.seek(0)
    return size


def upload_encrypted_file(  # noqa: WPS211
    owner: _User,
    content: BinaryIO | DjangoFile | None,
    iv: str,
    filename: str,
    mime_type: str,
    client: ClientContext,
    ttl_hours: object = None,
    guard: AccessGuard | None = None,
) -> dict[str, str]:
    """Store an encrypted upload and its record.

    Bytes are persisted first and the record committed second; if the
    commit fails the bytes are rolled back, so a record never points at
    missing bytes.

    Args:
        owner: Authenticated uploader.
        content: Ciphertext file object.
        iv: Base64 IV used by the client.
        filename: Plaintext display filename.
        mime_type: Plaintext MIME type.
        client: Request origin.
        ttl_hours: Optional hours until expiry.
        guard: Access guard, defaults to the configured one.

    Returns:
        `{'id', 'expiryAt'}` for building the share link.

    Raises:
        AuthenticationRequiredError: If no principal is logged in.
        RateLimitedError: If the upload policy is exceeded.
        InvalidInputError: If content or metadata are missing/invalid.
        PayloadTooLargeError: If the ciphertext exceeds the ceiling.
        StorageError: If storage or database writes fail.
    """
    guard = guard or build_access_guard()
    guard.require_principal(owner)
    guard.throttle(UPLOAD_POLICY, client)

    try:
        if content is None:
            raise InvalidInputError('File is required')
        decode_iv(iv)
        filename = extract_filename(filename)
        mime_type = validate_mime_type(mime_type)
        ttl = parse_ttl_hours(ttl_hours)
        size_bytes = _get_content_size(content)
        max_bytes = get_max_upload_bytes()
        if size_bytes > max_bytes:
            raise PayloadTooLargeError(size_bytes, max_bytes)
    except InvalidInputError as error:
        _audit_upload_failure(guard, client, str(error))
        raise

    file_id = uuid.uuid4()
    storage = get_blob_storage()

    # Step 1: Persist ciphertext first
    try:
        blob_name = storage.write_blob(file_id, content)
    except Exception as error:
        logger.exception('Failed to store blob for upload %s', file_id)
        _audit_upload_failure(guard, client, 'Storage write failed')
        raise StorageError() from error

    # Step 2: Commit the record referencing it
    try:
        record = create_record(
            owner=owner,
            blob_name=blob_name,
            iv=iv,
            filename=filename,
            mime_type=mime_type,
            size_bytes=size_bytes,
            ttl_hours=ttl,
            file_id=file_id,
        )
    except (InvalidInputError, StorageError) as error:
        storage.rollback_upload(blob_name)
        _audit_upload_failure(guard, client, str(error))
        raise
    except Exception as error:
        logger.exception('Failed to commit record for upload %s', file_id)
        storage.rollback_upload(blob_name)
        _audit_upload_failure(guard, client, 'Record commit failed')
        raise StorageError() from error

    record_event(
        guard.audit_log,
        client,
        EventKind.UPLOAD_OK,
        file_id=record.id,
        detail={
            'filename': record.filename,
            'sizeBytes': record.size_bytes,
            'expiryHours': get_default_expiry_hours() if ttl is None else ttl,
        },
    )
    return {
        'id': str(record.id),
        'expiryAt': record.expires_at.isoformat(),
    }


def get_file_metadata(
    raw_file_id: str,
    client: ClientContext,
    guard: AccessGuard | None = None,
) -> dict[str, Any]:
    """Describe a record without transferring ciphertext.

    An expired record is still described, with `expired=True`; a
    missing record raises instead.

    Args:
        raw_file_id: Identifier from the request path.
        client: Request origin.
        guard: Access guard, defaults to the configured one.

    Returns:
        Metadata payload.

    Raises:
        InvalidInputError: If the identifier is malformed.
        RateLimitedError: If the download policy is exceeded.
        RecordNotFoundError: If no record exists.
    """
    guard = guard or build_access_guard()
    file_id = _throttle_download(raw_file_id, client, guard)

    try:
        record = get_metadata(file_id)
    except RecordNotFoundError:
        record_event(guard.audit_log, client, EventKind.NOT_FOUND, file_id)
        raise

    return build_metadata_payload(record)


def fetch_blob(
    raw_file_id: str,
    client: ClientContext,
    guard: AccessGuard | None = None,
) -> dict[str, Any]:
    """Read ciphertext for a live record and count the download.

    The expiry check precedes the blob read. If a sweep removes the
    blob in between, the read fails as a plain miss.

    Args:
        raw_file_id: Identifier from the request path.
        client: Request origin.
        guard: Access guard, defaults to the configured one.

    Returns:
        Blob payload with base64 ciphertext and the IV.

    Raises:
        InvalidInputError: If the identifier is malformed.
        RateLimitedError: If the download policy is exceeded.
        RecordNotFoundError: If the record or its blob is missing.
        RecordExpiredError: If the record has lapsed.
        StorageError: If the blob store fails.
    """
    guard = guard or build_access_guard()
    file_id = _throttle_download(raw_file_id, client, guard)

    try:
        record = resolve_for_download(file_id)
    except RecordNotFoundError:
        record_event(guard.audit_log, client, EventKind.NOT_FOUND, file_id)
        raise
    except RecordExpiredError:
        record_event(guard.audit_log, client, EventKind.EXPIRED, file_id)
        raise

    try:
        ciphertext = get_blob_storage().read_blob(record.blob.name)
    except BlobMissingError as error:
        logger.error('Blob missing for file %s', file_id)
        record_event(
            guard.audit_log,
            client,
            EventKind.NOT_FOUND,
            file_id,
            detail={'reason': 'Blob missing'},
        )
        raise RecordNotFoundError(file_id) from error
    except Exception as error:
        logger.exception('Failed to read blob for file %s', file_id)
        raise StorageError() from error

    try:
        download_count = record_download(file_id)
    except RecordNotFoundError:
        record_event(
            guard.audit_log,
            client,
            EventKind.NOT_FOUND,
            file_id,
            detail={'reason': 'Deleted during download'},
        )
        raise

    record_event(
        guard.audit_log,
        client,
        EventKind.DOWNLOAD_OK,
        file_id,
        detail={
            'filename': record.filename,
            'downloadCount': download_count,
        },
    )
    logger.info('File downloaded: %s (count %d)', file_id, download_count)

    return {
        'ciphertext': base64.b64encode(ciphertext).decode('ascii'),
        'iv': record.iv,
        'filename': record.filename,
        'mimeType': record.mime_type,
        'sizeBytes': record.size_bytes,
    }


def list_owner_files(
    owner: _User,
    guard: AccessGuard | None = None,
) -> list[dict[str, Any]]:
    """List the caller's uploads, newest first.

    Args:
        owner: Authenticated principal.
        guard: Access guard, defaults to the configured one.

    Returns:
        Listing entries.

    Raises:
        AuthenticationRequiredError: If no principal is logged in.
    """
    guard = guard or build_access_guard()
    guard.require_principal(owner)

    return [
        {'id': str(record.id), **_describe(record)}
        for record in list_by_owner(owner)
    ]


def delete_owner_file(
    raw_file_id: str,
    owner: _User,
    guard: AccessGuard | None = None,
) -> None:
    """Delete one of the caller's uploads.

    Args:
        raw_file_id: Identifier from the request path.
        owner: Authenticated principal.
        guard: Access guard, defaults to the configured one.

    Raises:
        AuthenticationRequiredError: If no principal is logged in.
        InvalidInputError: If the identifier is malformed.
        RecordNotFoundError: If no record exists.
        ForbiddenError: If the caller is not the owner.
    """
    guard = guard or build_access_guard()
    guard.require_principal(owner)
    delete_owned(validate_file_id(raw_file_id), owner.id)


def build_metadata_payload(record: EncryptedFile) -> dict[str, Any]:
    """Metadata read output for an existing record."""
    return {**_describe(record), 'exists': True}


def _describe(record: EncryptedFile) -> dict[str, Any]:
    return {
        'filename': record.filename,
        'mimeType': record.mime_type,
        'sizeBytes': record.size_bytes,
        'createdAt': record.created_at.isoformat(),
        'expiryAt': record.expires_at.isoformat(),
        'downloadCount': record.download_count,
        'expired': record.is_expired(),
    }


def _audit_upload_failure(
    guard: AccessGuard,
    client: ClientContext,
    reason: str,
) -> None:
    logger.warning('Upload rejected from %s: %s', client.source_address, reason)
    record_event(
        guard.audit_log,
        client,
        EventKind.UPLOAD_FAILED,
        detail={'reason': reason},
    )


def _throttle_download(
    raw_file_id: str,
    client: ClientContext,
    guard: AccessGuard,
) -> uuid.UUID:
    # Malformed ids still count against the policy
    try:
        file_id = validate_file_id(raw_file_id)
    except InvalidInputError as error:
        guard.throttle(DOWNLOAD_POLICY, client)
        record_event(
            guard.audit_log,
            client,
            EventKind.NOT_FOUND,
            detail={'reason': str(error)},
        )
        raise

    guard.throttle(DOWNLOAD_POLICY, client, file_id=file_id)
    return file_id
