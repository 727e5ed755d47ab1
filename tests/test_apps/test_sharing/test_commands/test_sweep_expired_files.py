"""Tests for sweep_expired_files management command."""

from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from server.apps.guard.models import RateLimitWindow
from server.apps.sharing.exceptions import StorageError
from server.apps.sharing.logic import registry_operations
from server.apps.sharing.models import EncryptedFile


def _expired(make_record, hours_ago=1, **kwargs):
    return make_record(
        created_ago=timedelta(hours=hours_ago + 1),
        expires_in=timedelta(hours=1),
        **kwargs,
    )


@pytest.mark.django_db
class TestSweepExpiredFilesCommand:
    """Tests for sweep_expired_files management command."""

    def test_sweep_deletes_expired(self, make_record, mock_s3):
        """Test sweep purges expired records and keeps live ones."""
        expired = _expired(make_record)
        live = make_record()

        out = StringIO()
        call_command('sweep_expired_files', stdout=out)

        assert not EncryptedFile.objects.filter(id=expired.id).exists()
        assert EncryptedFile.objects.filter(id=live.id).exists()
        assert 'Expired: 1, purged 1 files, 0 failed' in out.getvalue()

    def test_sweep_nothing_expired(self, make_record):
        """Test sweep with only live records purges nothing."""
        make_record()

        out = StringIO()
        call_command('sweep_expired_files', stdout=out)

        assert EncryptedFile.objects.count() == 1
        assert 'Expired: 0, purged 0 files, 0 failed' in out.getvalue()

    def test_sweep_dry_run(self, make_record):
        """Test --dry-run lists candidates without deleting."""
        expired = _expired(make_record, filename='stale.txt')

        out = StringIO()
        call_command('sweep_expired_files', '--dry-run', stdout=out)

        assert EncryptedFile.objects.filter(id=expired.id).exists()
        assert 'Would delete: stale.txt' in out.getvalue()
        assert 'Would purge 1 expired files' in out.getvalue()

    def test_sweep_batch_limit(self, make_record, mock_s3):
        """Test --batch-size caps records per pass, oldest expiry first."""
        oldest = _expired(make_record, hours_ago=5)
        for hours_ago in (3, 2, 1):
            _expired(make_record, hours_ago=hours_ago)

        out = StringIO()
        call_command('sweep_expired_files', '--batch-size=2', stdout=out)

        assert EncryptedFile.objects.count() == 2
        assert not EncryptedFile.objects.filter(id=oldest.id).exists()
        assert 'purged 2 files' in out.getvalue()

    def test_sweep_counts_failures(self, make_record, mock_s3, monkeypatch):
        """Test a failed purge is counted and does not stop the pass."""
        failing = _expired(make_record, hours_ago=2)
        other = _expired(make_record, hours_ago=1)

        real_purge = registry_operations.purge_record

        def flaky_purge(record):
            if record.id == failing.id:
                raise StorageError()
            real_purge(record)

        monkeypatch.setattr(registry_operations, 'purge_record', flaky_purge)

        out = StringIO()
        err = StringIO()
        call_command('sweep_expired_files', stdout=out, stderr=err)

        assert EncryptedFile.objects.filter(id=failing.id).exists()
        assert not EncryptedFile.objects.filter(id=other.id).exists()
        assert 'Expired: 2, purged 1 files, 1 failed' in out.getvalue()
        assert str(failing.id) in err.getvalue()

    def test_sweep_prunes_rate_limit_windows(self, settings):
        """Test a sweep also removes ended rate limit windows."""
        settings.RATE_LIMIT_WINDOW_SECONDS = 60
        RateLimitWindow.objects.create(
            policy='download',
            source_address='10.0.0.1',
            window_started_at=timezone.now() - timedelta(minutes=5),
            hits=7,
        )
        live = RateLimitWindow.objects.create(
            policy='download',
            source_address='10.0.0.2',
            window_started_at=timezone.now(),
            hits=1,
        )

        out = StringIO()
        call_command('sweep_expired_files', stdout=out)

        assert list(RateLimitWindow.objects.all()) == [live]
        assert 'pruned 1 rate limit windows' in out.getvalue()

    def test_dry_run_keeps_rate_limit_windows(self, settings):
        """Test --dry-run leaves rate limit windows alone."""
        settings.RATE_LIMIT_WINDOW_SECONDS = 60
        RateLimitWindow.objects.create(
            policy='download',
            source_address='10.0.0.1',
            window_started_at=timezone.now() - timedelta(minutes=5),
            hits=7,
        )

        call_command('sweep_expired_files', '--dry-run', stdout=StringIO())

        assert RateLimitWindow.objects.count() == 1
