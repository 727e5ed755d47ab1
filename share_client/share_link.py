"""Share links of the form `<origin>/file/<id>#<key>`.

The key lives only in the fragment. User agents do not transmit the
fragment, so building and parsing links stays on the client.
"""

from dataclasses import dataclass
from typing import Final, final
from urllib.parse import urlsplit

from share_client.key_custody import (
    ContentKey,
    decode_from_url,
    encode_for_url,
    export_key,
    import_key,
)

DOWNLOAD_ROUTE: Final = 'file'


class InvalidShareLinkError(ValueError):
    """Raised when a share link is missing its id or key."""


@final
@dataclass(frozen=True)
class ShareLink:
    """Parsed share link."""

    origin: str
    file_id: str
    key: ContentKey


def build_share_link(origin: str, file_id: str, key: ContentKey) -> str:
    """Assemble a share link carrying the key in its fragment.

    Args:
        origin: Scheme and host, e.g. `https://share.example.com`.
        file_id: Record identifier returned by the upload.
        key: Content key used for encryption.

    Returns:
        Share link text.
    """
    fragment = encode_for_url(export_key(key))
    return f'{origin.rstrip("/")}/{DOWNLOAD_ROUTE}/{file_id}#{fragment}'


def parse_share_link(url: str) -> ShareLink:
    """Split a share link into origin, file id and key.

    Args:
        url: Link produced by `build_share_link`.

    Returns:
        ShareLink.

    Raises:
        InvalidShareLinkError: If the route, id or key is missing or
            malformed.
    """
    parts = urlsplit(url)
    path_parts = [part for part in parts.path.split('/') if part]
    if len(path_parts) != 2 or path_parts[0] != DOWNLOAD_ROUTE:
        raise InvalidShareLinkError('Link does not point at a shared file')
    if not parts.fragment:
        raise InvalidShareLinkError('Link is missing its decryption key')

    try:
        key = import_key(decode_from_url(parts.fragment))
    except ValueError as error:
        raise InvalidShareLinkError('Link invalid or corrupted') from error

    return ShareLink(
        origin=f'{parts.scheme}://{parts.netloc}',
        file_id=path_parts[1],
        key=key,
    )
