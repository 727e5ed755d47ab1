"""Management command to purge expired encrypted files."""

import time
from typing import Any, Final

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from server.apps.guard.logic.rate_limiting import prune_rate_limit_windows
from server.apps.sharing.logic.registry_operations import sweep_expired

_DEFAULT_BATCH_SIZE: Final = 1000


class Command(BaseCommand):
    """Delete records (and blobs) whose expiry time has passed."""

    help = 'Purge expired encrypted files and their blobs'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without deleting',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max files to process per pass (default: {_DEFAULT_BATCH_SIZE})',
        )
        parser.add_argument(
            '--interval',
            type=int,
            nargs='?',
            const=getattr(settings, 'SWEEP_INTERVAL_SECONDS', 3600),
            default=None,
            help='Repeat every N seconds instead of running once '
                 '(default N: SWEEP_INTERVAL_SECONDS)',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the sweep once, or forever with --interval.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        interval = options['interval']

        if interval is None:
            self._sweep_once(options['dry_run'], options['batch_size'])
            return

        self.stdout.write(f'Sweeping expired files every {interval} seconds')
        while True:  # noqa: WPS457
            self._sweep_once(options['dry_run'], options['batch_size'])
            time.sleep(interval)

    def _sweep_once(self, dry_run: bool, batch_size: int) -> None:
        now = timezone.now()
        self.stdout.write(f'Looking for files expired before {now}')

        sweep = sweep_expired(now, batch_size, dry_run=dry_run)

        if sweep.dry_run:
            for record in sweep.candidates:
                self.stdout.write(
                    f'Would delete: {record.filename} '
                    f'(id: {record.id}, expired: {record.expires_at}, '
                    f'downloads: {record.download_count})',
                )
            self.stdout.write(
                self.style.SUCCESS(f'Would purge {sweep.expired} expired files'),
            )
            return

        for record_id, reason in sweep.failures:
            self.stderr.write(f'Failed to delete {record_id}: {reason}')

        pruned = prune_rate_limit_windows()
        self.stdout.write(
            self.style.SUCCESS(
                f'Expired: {sweep.expired}, '
                f'purged {sweep.deleted} files, {sweep.failed} failed; '
                f'pruned {pruned} rate limit windows',
            ),
        )
