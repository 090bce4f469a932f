"""Management command to purge old entries from the trash."""

import logging
from datetime import timedelta
from typing import Any, Final

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from server.apps.drive.infrastructure.storage import get_blob_store
from server.apps.drive.logic.trash_operations import (
    list_expired_trash,
    permanent_delete_entry,
)
from server.apps.drive.models import Entry

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Permanently delete entries that have been in the trash too long."""

    help = 'Purge trash entries older than the retention period'

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
            help=f'Max entries to process (default: {_DEFAULT_BATCH_SIZE})',
        )
        parser.add_argument(
            '--days',
            type=int,
            default=None,
            help='Retention in days (default: DRIVE_TRASH_RETENTION_DAYS)',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the cleanup command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        batch_size = options['batch_size']
        retention_days = options['days']
        if retention_days is None:
            retention_days = settings.DRIVE_TRASH_RETENTION_DAYS

        cutoff = timezone.now() - timedelta(days=retention_days)

        self.stdout.write(
            f'Looking for entries deleted before {cutoff} '
            f'(older than {retention_days} days)',
        )

        expired = list(list_expired_trash(cutoff)[:batch_size])
        blob_store = get_blob_store()

        count = 0
        partial = 0
        failed = 0

        for entry in expired:
            if dry_run:
                self.stdout.write(
                    f'Would delete: {entry.virtual_path} '
                    f'(owner: {entry.owner_id}, deleted: {entry.deleted_at})',
                )
                count += 1
                continue

            try:
                report = permanent_delete_entry(
                    entry.owner,
                    entry.id,
                    blob_store=blob_store,
                )
            except Entry.DoesNotExist:
                logger.info('Trash entry already gone: %d', entry.id)
                continue
            except Exception as exc:
                self.stderr.write(f'Failed to delete {entry.id}: {exc}')
                logger.exception('Failed to purge trash entry: %d', entry.id)
                failed += 1
                continue

            count += 1
            if report.is_partial:
                partial += 1
            logger.info(
                'Purged entry from trash: %s (ID: %d)',
                entry.virtual_path,
                entry.id,
            )

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would purge {count} entries from trash'),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Purged {count} entries from trash '
                    f'({partial} with leftovers), {failed} failed',
                ),
            )
