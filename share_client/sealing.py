"""Client flows for preparing uploads and opening downloaded blobs."""

import base64
from dataclasses import dataclass, field
from typing import Any, final

from share_client.key_custody import (
    AuthenticationFailure,
    ContentKey,
    decode_from_url,
    decrypt,
    encode_for_url,
    encrypt,
    export_key,
    generate_iv,
    generate_key,
    import_key,
)


@final
@dataclass(frozen=True)
class SealedUpload:
    """Everything an upload needs, plus the key kept for the link.

    `form_fields` is what goes to the server. `url_key` never does.
    """

    ciphertext: bytes = field(repr=False)
    iv: str
    filename: str
    mime_type: str
    url_key: str = field(repr=False)

    def form_fields(self, expires_in_hours: int | None = None) -> dict[str, str]:
        """Multipart text fields accompanying the ciphertext."""
        fields = {
            'iv': self.iv,
            'filename': self.filename,
            'mimetype': self.mime_type,
        }
        if expires_in_hours is not None:
            fields['expiresIn'] = str(expires_in_hours)
        return fields


@final
@dataclass(frozen=True)
class OpenedFile:
    """Decrypted download."""

    plaintext: bytes = field(repr=False)
    filename: str
    mime_type: str


def seal(
    plaintext: bytes,
    filename: str,
    mime_type: str = 'application/octet-stream',
    key: ContentKey | None = None,
) -> SealedUpload:
    """Encrypt a file under a fresh key and IV.

    Args:
        plaintext: File contents.
        filename: Original filename.
        mime_type: Declared content type.
        key: Content key, a fresh one is generated if omitted.

    Returns:
        SealedUpload with the textual IV and URL-safe key.
    """
    key = key or generate_key()
    iv = generate_iv()
    return SealedUpload(
        ciphertext=encrypt(plaintext, key, iv),
        iv=base64.b64encode(iv).decode('ascii'),
        filename=filename,
        mime_type=mime_type or 'application/octet-stream',
        url_key=encode_for_url(export_key(key)),
    )


def open_blob(blob_response: dict[str, Any], fragment: str) -> OpenedFile:
    """Verify and decrypt a blob read response.

    Args:
        blob_response: JSON body of the blob endpoint (`ciphertext`,
            `iv`, `filename`, `mimeType`).
        fragment: Key text from the share link fragment.

    Returns:
        OpenedFile.

    Raises:
        AuthenticationFailure: If the key, IV or ciphertext do not match.
    """
    try:
        key = import_key(decode_from_url(fragment))
        iv = base64.b64decode(blob_response['iv'], validate=True)
        ciphertext = base64.b64decode(blob_response['ciphertext'], validate=True)
    except (KeyError, ValueError) as error:
        raise AuthenticationFailure() from error

    try:
        plaintext = decrypt(ciphertext, key, iv)
    except ValueError as error:
        raise AuthenticationFailure() from error

    return OpenedFile(
        plaintext=plaintext,
        filename=blob_response.get('filename', 'download'),
        mime_type=blob_response.get('mimeType', 'application/octet-stream'),
    )
