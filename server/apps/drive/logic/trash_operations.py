"""Business logic for trash (soft delete) and permanent deletion."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, final

from django.db import IntegrityError, transaction
from django.db.models import ProtectedError, QuerySet
from django.utils import timezone

from server.apps.drive.exceptions import (
    FolderNameConflictError,
    StorageBackendError,
)
from server.apps.drive.infrastructure.storage import BlobStore, get_blob_store
from server.apps.drive.logic.entry_operations import (
    get_entry_for_owner,
    get_owned_entry,
)
from server.apps.drive.logic.traversal import collect_subtree_ids, walk
from server.apps.drive.models import Entry

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


@final
@dataclass(slots=True)
class DeletionReport:
    """Outcome of a permanent deletion.

    Deletion is best effort: blobs that could not be removed stay
    orphaned in storage, and records that could not be removed (a child
    appeared during the walk) stay in the trash.
    """

    entry_id: int
    removed_ids: list[int] = field(default_factory=list)
    orphaned_blob_keys: list[str] = field(default_factory=list)
    failed_entry_ids: list[int] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        """Whether any blob or record was left behind."""
        return bool(self.orphaned_blob_keys or self.failed_entry_ids)


@final
class _PurgeVisitor:
    """Removes blobs and records of a subtree, children first."""

    def __init__(self, store: BlobStore, report: DeletionReport) -> None:
        self._store = store
        self._report = report

    def enter_folder(self, entry: Entry, relative_path: str) -> None:
        logger.debug('Purging folder contents: %s', relative_path)

    def exit_folder(self, entry: Entry, relative_path: str) -> None:
        _remove_record(entry, self._report)

    def visit_file(self, entry: Entry, relative_path: str) -> None:
        _remove_blob(entry, self._store, self._report)
        _remove_record(entry, self._report)


def _remove_blob(
    entry: Entry,
    store: BlobStore,
    report: DeletionReport,
) -> None:
    if not entry.blob_key:
        return
    try:
        store.delete(entry.blob_key)
    except StorageBackendError:
        # Record removal goes ahead, the blob is left for a cleanup job
        logger.exception(
            'Failed to delete blob of entry %d (orphaned): %s',
            entry.id,
            entry.blob_key,
        )
        report.orphaned_blob_keys.append(entry.blob_key)


def _remove_record(entry: Entry, report: DeletionReport) -> None:
    try:
        Entry.objects.hard_delete(entry.id)
    except ProtectedError:
        logger.exception(
            'Entry %d still has children, record kept',
            entry.id,
        )
        report.failed_entry_ids.append(entry.id)
    else:
        report.removed_ids.append(entry.id)


def soft_delete_entry(owner: _User, entry_id: int) -> Entry:
    """Move an entry, and for a folder its whole subtree, to the trash.

    Every descendant is marked in the same UPDATE, so the trash and the
    live tree always agree on a subtree. Descendants that were already
    in the trash keep their original ``deleted_at``.

    Blobs are kept - trashed files can still be restored.

    Args:
        owner: Requesting user.
        entry_id: ID of entry to soft delete.

    Returns:
        Updated Entry instance.

    Raises:
        Entry.DoesNotExist: If entry not found.
        PermissionDenied: If owned by someone else.
    """
    entry = get_entry_for_owner(owner, entry_id)
    deleted_at = timezone.now()

    with transaction.atomic():
        entry_ids = [entry.id]
        if entry.is_folder:
            entry_ids.extend(collect_subtree_ids(entry.id, entry.owner_id))

        marked = Entry.objects.filter(
            id__in=entry_ids,
            is_deleted=False,
        ).update(
            is_deleted=True,
            deleted_at=deleted_at,
            updated_at=deleted_at,
        )

    logger.info(
        'Entry moved to trash: %s (ID: %d, %d entries marked)',
        entry.virtual_path,
        entry.id,
        marked,
    )

    entry.refresh_from_db()
    return entry


def restore_entry(owner: _User, entry_id: int) -> Entry:
    """Restore a single entry from the trash.

    Descendants are not restored with it, and an entry restored into a
    folder that is still in the trash stays out of the live tree until
    that folder is restored too.

    Args:
        owner: Requesting user.
        entry_id: ID of entry to restore.

    Returns:
        Updated Entry instance.

    Raises:
        Entry.DoesNotExist: If not found or owned by someone else.
        FolderNameConflictError: If a live sibling folder took the name
            while this folder was in the trash.
    """
    entry = get_owned_entry(owner, entry_id)
    if not entry.is_deleted:
        return entry

    entry.is_deleted = False
    entry.deleted_at = None
    try:
        with transaction.atomic():
            entry.save(update_fields=['is_deleted', 'deleted_at', 'updated_at'])
    except IntegrityError as error:
        logger.info(
            'Restore conflict for folder %r (ID: %d)',
            entry.name,
            entry.id,
        )
        raise FolderNameConflictError(entry.name, entry.parent_id) from error

    logger.info('Entry restored: %s (ID: %d)', entry.virtual_path, entry.id)
    return entry


def permanent_delete_entry(
    owner: _User,
    entry_id: int,
    *,
    blob_store: BlobStore | None = None,
) -> DeletionReport:
    """Permanently delete an entry, and for a folder its whole subtree.

    The walk includes soft-deleted descendants, so trash below the
    folder goes with it. Files lose their blob first, then their
    record; folders lose their record once their children are gone.
    Failures of single items are logged and reported, they never stop
    the walk.

    Args:
        owner: Requesting user.
        entry_id: ID of entry to delete.
        blob_store: Blob store holding contents, defaults to the
            configured one.

    Returns:
        DeletionReport listing what was removed and what was left.

    Raises:
        Entry.DoesNotExist: If entry not found.
        PermissionDenied: If owned by someone else.
    """
    entry = get_entry_for_owner(owner, entry_id)
    store = blob_store or get_blob_store()
    report = DeletionReport(entry_id=entry.id)

    if entry.is_folder:
        walk(entry.id, entry.owner_id, _PurgeVisitor(store, report))
    else:
        _remove_blob(entry, store, report)
    _remove_record(entry, report)

    if report.is_partial:
        logger.warning(
            'Entry permanently deleted with leftovers: %s (ID: %d, '
            'orphaned blobs: %d, kept records: %d)',
            entry.virtual_path,
            entry.id,
            len(report.orphaned_blob_keys),
            len(report.failed_entry_ids),
        )
    else:
        logger.info(
            'Entry permanently deleted: %s (ID: %d, %d records)',
            entry.virtual_path,
            entry.id,
            len(report.removed_ids),
        )

    return report


def _top_level_trash() -> QuerySet[Entry]:
    # Trashed entries whose parent is live (or root): deleting these
    # removes everything below them as well
    return Entry.objects.trashed().exclude(parent__is_deleted=True)


def list_expired_trash(cutoff: datetime) -> QuerySet[Entry]:
    """List top-level trash entries deleted before a cutoff.

    Args:
        cutoff: Entries deleted at or before this time are expired.

    Returns:
        QuerySet of entries, oldest deletion first.
    """
    return _top_level_trash().filter(
        deleted_at__lte=cutoff,
    ).select_related('owner').order_by('deleted_at', 'id')


def empty_trash(
    owner: _User,
    *,
    blob_store: BlobStore | None = None,
) -> list[DeletionReport]:
    """Permanently delete everything in a user's trash.

    Args:
        owner: User whose trash to empty.
        blob_store: Blob store holding contents, defaults to the
            configured one.

    Returns:
        One DeletionReport per top-level trash entry.
    """
    store = blob_store or get_blob_store()
    trash_ids = list(
        _top_level_trash().owned_by(owner).values_list('id', flat=True),
    )

    reports = [
        permanent_delete_entry(owner, trash_id, blob_store=store)
        for trash_id in trash_ids
    ]

    logger.info(
        'Trash emptied for user %s: %d top-level entries deleted',
        owner.pk,
        len(reports),
    )
    return reports
