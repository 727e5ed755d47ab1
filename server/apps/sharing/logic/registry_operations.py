"""Business logic for the encrypted file registry.

Lifecycle of a record:
    Active --(now >= expires_at)--> Expired --(purge)--> Deleted
    Active --(owner deletes)--> Deleted

Only `download_count` ever changes on a live record. Deleting a record
triggers best-effort blob removal once the delete commits (see
signals.py), so stale bytes may remain but no record ever points at
bytes that were removed first.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, final

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from server.apps.guard.logic.access_guard import require_owner
from server.apps.sharing.exceptions import (
    InvalidInputError,
    RecordExpiredError,
    RecordNotFoundError,
    StorageError,
)
from server.apps.sharing.infrastructure.metadata import (
    decode_iv,
    extract_filename,
    validate_mime_type,
)
from server.apps.sharing.models import EncryptedFile

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def get_default_expiry_hours() -> int:
    """Get the TTL applied when an upload sends none.

    Returns:
        Hours from settings or default of 24.
    """
    return getattr(settings, 'DEFAULT_EXPIRY_HOURS', 24)


def get_max_expiry_hours() -> int:
    """Get the longest TTL a client may request.

    Returns:
        Hours from settings or default of 720 (30 days).
    """
    return getattr(settings, 'MAX_EXPIRY_HOURS', 720)


def create_record(  # noqa: WPS211
    owner: _User,
    blob_name: str,
    iv: str,
    filename: str,
    mime_type: str,
    size_bytes: int,
    ttl_hours: int | None = None,
    file_id: uuid.UUID | None = None,
) -> EncryptedFile:
    """Commit the metadata record for an already persisted blob.

    Args:
        owner: Uploading principal.
        blob_name: Storage name returned by the blob store.
        iv: Base64 IV used for this blob (not secret).
        filename: Display filename of the plaintext.
        mime_type: MIME type of the plaintext.
        size_bytes: Ciphertext size.
        ttl_hours: Hours until expiry, defaults to the configured value.
        file_id: Identifier the blob was stored under.

    Returns:
        Created EncryptedFile.

    Raises:
        InvalidInputError: If metadata is missing or the IV was used
            before.
        StorageError: If the database write fails.
    """
    decode_iv(iv)
    filename = extract_filename(filename)
    mime_type = validate_mime_type(mime_type)

    if ttl_hours is None:
        ttl_hours = get_default_expiry_hours()
    if ttl_hours < 0:
        raise InvalidInputError('Expiry hours cannot be negative')
    max_hours = get_max_expiry_hours()
    if ttl_hours > max_hours:
        raise InvalidInputError(f'Expiry hours cannot exceed {max_hours}')

    created_at = timezone.now()
    try:
        with transaction.atomic():
            record = EncryptedFile.objects.create(
                id=file_id or uuid.uuid4(),
                owner=owner,
                blob=blob_name,
                iv=iv,
                filename=filename,
                mime_type=mime_type,
                size_bytes=size_bytes,
                created_at=created_at,
                expires_at=created_at + timedelta(hours=ttl_hours),
            )
    except IntegrityError as error:
        if EncryptedFile.objects.filter(iv=iv).exists():
            logger.warning('Rejected upload reusing an IV from owner %s', owner.id)
            raise InvalidInputError('IV has already been used') from error
        logger.exception('Failed to create file record: %s', blob_name)
        raise StorageError() from error
    except DatabaseError as error:
        logger.exception('Failed to create file record: %s', blob_name)
        raise StorageError() from error

    logger.info(
        'File record created: %s (expires %s)',
        record.id,
        record.expires_at.isoformat(),
    )
    return record


def get_metadata(file_id: uuid.UUID | str) -> EncryptedFile:
    """Look up a record regardless of expiry.

    Args:
        file_id: Record identifier.

    Returns:
        EncryptedFile instance.

    Raises:
        RecordNotFoundError: If no record exists.
    """
    try:
        return EncryptedFile.objects.get(id=file_id)
    except EncryptedFile.DoesNotExist as error:
        raise RecordNotFoundError(file_id) from error


def resolve_for_download(
    file_id: uuid.UUID | str,
    now: datetime | None = None,
) -> EncryptedFile:
    """Look up a record that may still be downloaded.

    Expiry is checked lazily here, before any sweep has removed the
    record, and reported separately from a miss.

    Args:
        file_id: Record identifier.
        now: Reference time, defaults to the current time.

    Returns:
        Active EncryptedFile.

    Raises:
        RecordNotFoundError: If no record exists.
        RecordExpiredError: If the record has lapsed.
    """
    record = get_metadata(file_id)
    if record.is_expired(now):
        raise RecordExpiredError(file_id)
    return record


def record_download(file_id: uuid.UUID | str) -> int:
    """Atomically increment the download counter.

    The increment happens in the database (UPDATE ... SET n = n + 1),
    so concurrent downloads are never lost.

    Args:
        file_id: Record identifier.

    Returns:
        Counter value after the increment.

    Raises:
        RecordNotFoundError: If the record vanished meanwhile.
    """
    with transaction.atomic():
        updated = EncryptedFile.objects.filter(id=file_id).update(
            download_count=F('download_count') + 1,
        )
        if updated == 0:
            raise RecordNotFoundError(file_id)
        count = EncryptedFile.objects.values_list(
            'download_count',
            flat=True,
        ).get(id=file_id)

    logger.debug('Download recorded for %s: %d', file_id, count)
    return count


def list_by_owner(owner: _User) -> QuerySet[EncryptedFile]:
    """List a principal's records.

    Args:
        owner: Principal whose uploads to list.

    Returns:
        QuerySet of records, newest first.
    """
    return EncryptedFile.objects.filter(owner=owner).order_by('-created_at')


def delete_owned(file_id: uuid.UUID | str, requester_id: int) -> None:
    """Delete a record on behalf of its owner.

    The blob is removed by the post_delete handler on a best-effort
    basis; a failed blob delete never blocks record removal.

    Args:
        file_id: Record identifier.
        requester_id: Authenticated principal id.

    Raises:
        RecordNotFoundError: If no record exists.
        ForbiddenError: If the requester is not the owner.
    """
    record = get_metadata(file_id)
    require_owner(record, requester_id)

    purge_record(record)


def purge_record(record: EncryptedFile) -> None:
    """Remove a record; its blob follows via post_delete.

    Args:
        record: Record to delete.

    Raises:
        StorageError: If the database delete fails.
    """
    record_id = record.id
    try:
        with transaction.atomic():
            record.delete()
    except DatabaseError as error:
        logger.exception('Failed to delete file record: %s', record_id)
        raise StorageError() from error

    logger.info('File record deleted: %s', record_id)


def list_expired(
    now: datetime | None = None,
    batch_size: int | None = None,
) -> QuerySet[EncryptedFile]:
    """Records whose expiry lies strictly in the past, oldest first.

    Args:
        now: Reference time, defaults to the current time.
        batch_size: Optional cap on returned records.

    Returns:
        QuerySet of expired records.
    """
    expired = EncryptedFile.objects.filter(
        expires_at__lt=now or timezone.now(),
    ).order_by('expires_at')
    if batch_size is not None:
        return expired[:batch_size]
    return expired


@final
@dataclass(frozen=True)
class SweepResult:
    """Outcome of one expiry sweep."""

    candidates: tuple[EncryptedFile, ...]
    deleted: int = 0
    failures: tuple[tuple[uuid.UUID, str], ...] = ()
    dry_run: bool = False

    @property
    def expired(self) -> int:
        """Records found past their expiry."""
        return len(self.candidates)

    @property
    def failed(self) -> int:
        """Records whose purge failed."""
        return len(self.failures)


def sweep_expired(
    now: datetime | None = None,
    batch_size: int | None = None,
    dry_run: bool = False,
) -> SweepResult:
    """Purge every expired record and its blob.

    Works record by record, so no lock is held across the scan and a
    failure on one record never aborts the rest.

    Args:
        now: Reference time, defaults to the current time.
        batch_size: Optional cap on records processed.
        dry_run: Only collect candidates, delete nothing.

    Returns:
        SweepResult with the candidates and deleted/failed tallies.
    """
    candidates = tuple(list_expired(now, batch_size))
    if dry_run:
        logger.info('Expiry sweep dry run: %d candidates', len(candidates))
        return SweepResult(candidates=candidates, dry_run=True)

    deleted = 0
    failures: list[tuple[uuid.UUID, str]] = []

    for record in candidates:
        try:
            purge_record(record)
        except StorageError as error:
            failures.append((record.id, str(error)))
            continue
        deleted += 1

    logger.info(
        'Expiry sweep finished: %d deleted, %d failed',
        deleted,
        len(failures),
    )
    return SweepResult(
        candidates=candidates,
        deleted=deleted,
        failures=tuple(failures),
    )
