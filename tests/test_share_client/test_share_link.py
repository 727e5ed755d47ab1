"""Tests for share link building and parsing."""

import uuid

import pytest

from share_client.key_custody import export_key, generate_key
from share_client.share_link import (
    InvalidShareLinkError,
    build_share_link,
    parse_share_link,
)


class TestShareLink:
    """Tests for build_share_link and parse_share_link."""

    def test_shape(self):
        """Test the key is carried only in the fragment."""
        key = generate_key()
        file_id = str(uuid.uuid4())

        link = build_share_link('https://share.example.com/', file_id, key)

        base, fragment = link.split('#')
        assert base == f'https://share.example.com/file/{file_id}'
        assert len(fragment) == 43

    def test_round_trip(self):
        """Test parsing recovers origin, id and key."""
        key = generate_key()
        file_id = str(uuid.uuid4())

        parsed = parse_share_link(
            build_share_link('https://share.example.com', file_id, key),
        )

        assert parsed.origin == 'https://share.example.com'
        assert parsed.file_id == file_id
        assert export_key(parsed.key) == export_key(key)

    def test_missing_fragment(self):
        """Test a link without its key is rejected."""
        with pytest.raises(InvalidShareLinkError, match='missing'):
            parse_share_link(f'https://share.example.com/file/{uuid.uuid4()}')

    def test_corrupted_fragment(self):
        """Test a truncated key is rejected."""
        link = build_share_link(
            'https://share.example.com',
            str(uuid.uuid4()),
            generate_key(),
        )

        with pytest.raises(InvalidShareLinkError, match='invalid or corrupted'):
            parse_share_link(link[:-4])

    @pytest.mark.parametrize('path', ['/', '/file', '/download/abc', '/file/a/b'])
    def test_wrong_route(self, path):
        """Test links not pointing at a shared file are rejected."""
        with pytest.raises(InvalidShareLinkError):
            parse_share_link(f'https://share.example.com{path}#abcd')
