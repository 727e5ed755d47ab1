"""Exceptions for sharing app.

Each client-facing error carries the HTTP status the thin views
answer with. Messages never include storage paths or key material.
"""

from typing import ClassVar


class InvalidInputError(Exception):
    """Raised for malformed identifiers or missing upload fields."""

    status_code: ClassVar[int] = 400


class PayloadTooLargeError(InvalidInputError):
    """Raised when an uploaded ciphertext exceeds the size ceiling."""

    status_code: ClassVar[int] = 413

    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        """Initialize PayloadTooLargeError.

        Args:
            size_bytes: Size of the rejected upload.
            max_bytes: Configured ceiling in bytes.
        """
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(
            f'File too large. Max size: {max_bytes // (1024 * 1024)}MB',
        )


class RecordNotFoundError(Exception):
    """Raised when no record (or no blob) exists for an identifier."""

    status_code: ClassVar[int] = 404

    def __init__(self, file_id: object) -> None:
        """Initialize RecordNotFoundError.

        Args:
            file_id: Identifier that was looked up.
        """
        self.file_id = file_id
        super().__init__('File not found')


class RecordExpiredError(Exception):
    """Raised when a record exists but its expiry time has passed."""

    status_code: ClassVar[int] = 410

    def __init__(self, file_id: object) -> None:
        """Initialize RecordExpiredError.

        Args:
            file_id: Identifier of the lapsed record.
        """
        self.file_id = file_id
        super().__init__('File has expired')


class ForbiddenError(Exception):
    """Raised when a principal mutates a record it does not own."""

    status_code: ClassVar[int] = 403


class StorageError(Exception):
    """Raised when the blob store or database fails.

    The message is deliberately generic; details are logged server-side.
    """

    status_code: ClassVar[int] = 500

    def __init__(self, message: str = 'Internal storage error') -> None:
        """Initialize StorageError.

        Args:
            message: Caller-safe message.
        """
        super().__init__(message)
