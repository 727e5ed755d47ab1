"""Validation of identifiers and upload metadata."""

import base64
import binascii
import re
import uuid
from pathlib import PurePosixPath, PureWindowsPath
from typing import Final

from server.apps.sharing.exceptions import InvalidInputError

IV_LENGTH_BYTES: Final = 12

_FILE_ID_PATTERN: Final = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE,
)
_FILENAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255


def validate_file_id(raw_id: str) -> uuid.UUID:
    """Check identifier shape before any store lookup.

    Malformed identifiers are a client error, not a miss, which keeps
    enumeration attempts distinguishable in the audit trail.

    Args:
        raw_id: Identifier from the request path.

    Returns:
        Parsed UUID.

    Raises:
        InvalidInputError: If the identifier is not a canonical UUID.
    """
    if not isinstance(raw_id, str) or not _FILE_ID_PATTERN.match(raw_id):
        raise InvalidInputError('Invalid file ID format')
    return uuid.UUID(raw_id)


def decode_iv(iv_text: str) -> bytes:
    """Decode and length-check a textual (base64) IV.

    Args:
        iv_text: Base64 IV as sent by the client.

    Returns:
        Raw 12-byte IV.

    Raises:
        InvalidInputError: If the IV is missing, not base64 or the wrong
            length.
    """
    if not iv_text or not isinstance(iv_text, str):
        raise InvalidInputError('IV is required')

    try:
        iv_bytes = base64.b64decode(iv_text, validate=True)
    except (binascii.Error, ValueError) as error:
        raise InvalidInputError('Invalid IV format') from error

    if len(iv_bytes) != IV_LENGTH_BYTES:
        raise InvalidInputError(
            f'IV must be {IV_LENGTH_BYTES} bytes, got {len(iv_bytes)}',
        )
    return iv_bytes


def extract_filename(filename: str) -> str:
    """Reduce a client-supplied filename to its last path component.

    Args:
        filename: Display filename (e.g., 'C:\\docs\\report.pdf').

    Returns:
        Bare filename (e.g., 'report.pdf').

    Raises:
        InvalidInputError: If nothing usable remains.
    """
    if not filename or not isinstance(filename, str):
        raise InvalidInputError('Filename is required')

    name = PurePosixPath(PureWindowsPath(filename.strip()).name).name
    if not name or name in {'.', '..'}:
        raise InvalidInputError('Filename is required')
    return name[:_FILENAME_MAX_LENGTH]


def validate_mime_type(mime_type: str) -> str:
    """Check that a MIME type is present and of sane length.

    Args:
        mime_type: Client-declared MIME type of the plaintext.

    Returns:
        Stripped MIME type.

    Raises:
        InvalidInputError: If empty or too long.
    """
    if not mime_type or not isinstance(mime_type, str) or not mime_type.strip():
        raise InvalidInputError('MIME type is required')
    if len(mime_type) > _MIME_TYPE_MAX_LENGTH:
        raise InvalidInputError('MIME type is too long')
    return mime_type.strip()
