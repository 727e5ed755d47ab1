"""AES-256-GCM key custody.

- Fresh 256-bit keys, exportable as raw bytes
- A fresh 12-byte IV for every encryption, never derived from the key
- Authenticated encryption; the ciphertext ends with the 16-byte tag
- Unpadded base64url encoding for the URL fragment
"""

import base64
import binascii
import os
import re
from dataclasses import dataclass, field
from typing import Final, final, override

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

KEY_LENGTH_BITS: Final = 256
KEY_LENGTH_BYTES: Final = KEY_LENGTH_BITS // 8
IV_LENGTH_BYTES: Final = 12
TAG_LENGTH_BYTES: Final = 16

_URL_SAFE_PATTERN: Final = re.compile(r'^[A-Za-z0-9_-]*$')


class AuthenticationFailure(Exception):
    """Raised when a ciphertext fails tag verification.

    Tampering, a wrong key and a wrong IV are indistinguishable; users
    see one message for all of them.
    """

    def __init__(self) -> None:
        """Initialize AuthenticationFailure."""
        super().__init__('Link invalid or corrupted')


@final
@dataclass(frozen=True)
class ContentKey:
    """Symmetric AES-GCM key.

    The raw material is excluded from repr so keys do not leak into
    logs or tracebacks.
    """

    material: bytes = field(repr=False)
    extractable: bool = True

    def __post_init__(self) -> None:
        """Validate key length."""
        if len(self.material) != KEY_LENGTH_BYTES:
            raise ValueError(
                f'AES-256 key must be {KEY_LENGTH_BYTES} bytes, '
                f'got {len(self.material)}',
            )

    @override
    def __repr__(self) -> str:
        """Representation without key material."""
        return f'ContentKey(bits={KEY_LENGTH_BITS}, extractable={self.extractable})'


def generate_key() -> ContentKey:
    """Generate a fresh exportable 256-bit key.

    Returns:
        New ContentKey.
    """
    return ContentKey(AESGCM.generate_key(bit_length=KEY_LENGTH_BITS))


def generate_iv() -> bytes:
    """Draw a fresh IV for one encryption.

    Returns:
        12 random bytes.
    """
    return os.urandom(IV_LENGTH_BYTES)


def encrypt(plaintext: bytes, key: ContentKey, iv: bytes) -> bytes:
    """Encrypt and authenticate a payload.

    Args:
        plaintext: Data to encrypt.
        key: Content key.
        iv: Fresh 12-byte IV, never reused with the same key.

    Returns:
        Ciphertext with the authentication tag appended.
    """
    _check_iv(iv)
    return AESGCM(key.material).encrypt(iv, plaintext, None)


def decrypt(ciphertext: bytes, key: ContentKey, iv: bytes) -> bytes:
    """Verify and decrypt a payload.

    Args:
        ciphertext: Ciphertext with tag, as produced by `encrypt`.
        key: Content key.
        iv: IV used for encryption.

    Returns:
        Plaintext.

    Raises:
        AuthenticationFailure: If the tag does not verify.
    """
    _check_iv(iv)
    if len(ciphertext) < TAG_LENGTH_BYTES:
        raise AuthenticationFailure()
    try:
        return AESGCM(key.material).decrypt(iv, ciphertext, None)
    except InvalidTag as error:
        raise AuthenticationFailure() from error


def export_key(key: ContentKey) -> bytes:
    """Export raw key bytes.

    Args:
        key: Exportable content key.

    Returns:
        32 raw key bytes.

    Raises:
        ValueError: If the key is not extractable.
    """
    if not key.extractable:
        raise ValueError('Key is not extractable')
    return key.material


def import_key(raw_key: bytes) -> ContentKey:
    """Import raw key bytes.

    Args:
        raw_key: 32 bytes from `export_key` or a decoded fragment.

    Returns:
        ContentKey.

    Raises:
        ValueError: If the length is wrong.
    """
    return ContentKey(bytes(raw_key))


def encode_for_url(raw_bytes: bytes) -> str:
    """Encode bytes as unpadded base64url.

    The result uses only `A-Z a-z 0-9 - _`, so it can sit in a URL
    fragment without escaping.

    Args:
        raw_bytes: Bytes to encode.

    Returns:
        Text without `+`, `/` or `=`.
    """
    return base64.urlsafe_b64encode(raw_bytes).rstrip(b'=').decode('ascii')


def decode_from_url(text: str) -> bytes:
    """Decode unpadded base64url, restoring padding for partial groups.

    Args:
        text: Output of `encode_for_url`.

    Returns:
        Original bytes.

    Raises:
        ValueError: If the text is not valid unpadded base64url.
    """
    if len(text) % 4 == 1 or not _URL_SAFE_PATTERN.match(text):
        raise ValueError('Invalid base64url text')
    padded = text + '=' * (-len(text) % 4)
    try:
        return base64.b64decode(padded, altchars=b'-_', validate=True)
    except binascii.Error as error:
        raise ValueError('Invalid base64url text') from error


def _check_iv(iv: bytes) -> None:
    if len(iv) != IV_LENGTH_BYTES:
        raise ValueError(
            f'IV must be {IV_LENGTH_BYTES} bytes, got {len(iv)}',
        )
