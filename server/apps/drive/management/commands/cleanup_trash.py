"""Management command to clean up old items from trash."""

import logging
from typing import Any, Final

from django.conf import settings
from django.core.management.base import BaseCommand

from server.apps.drive.logic.trash_operations import purge_expired_trash

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Permanently delete folders and files that stayed in trash too long."""

    help = 'Clean up old folders and files from trash'

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
            help=(
                'Max files and max folders to process '
                f'(default: {_DEFAULT_BATCH_SIZE})'
            ),
        )
        parser.add_argument(
            '--retention-days',
            type=int,
            default=None,
            help='Days an item stays in trash (default: DRIVE_TRASH_RETENTION_DAYS)',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the cleanup command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        retention_days = options['retention_days']
        if retention_days is None:
            retention_days = settings.DRIVE_TRASH_RETENTION_DAYS

        self.stdout.write(
            f'Looking for items deleted more than {retention_days} days ago',
        )

        report = purge_expired_trash(
            retention_days=retention_days,
            batch_size=options['batch_size'],
            dry_run=dry_run,
        )

        if dry_run:
            for candidate in report.candidates:
                self.stdout.write(f'Would delete: {candidate}')
            self.stdout.write(
                self.style.SUCCESS(
                    f'Would purge {len(report.candidates)} items from trash',
                ),
            )
            return

        if report.failed:
            self.stderr.write(
                f'Failed to purge {report.failed} items, see the log',
            )
        logger.info(
            'Trash cleanup finished: %d purged, %d failed',
            report.purged,
            report.failed,
        )
        self.stdout.write(
            self.style.SUCCESS(
                f'Purged {report.purged} items from trash, '
                f'{report.failed} failed',
            ),
        )
