"""Business logic for creating, listing and reading entries."""

import logging
from dataclasses import dataclass
from typing import Any, BinaryIO, final

from django.conf import settings
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import IntegrityError, transaction

from server.apps.drive.exceptions import (
    FolderNameConflictError,
    StorageBackendError,
)
from server.apps.drive.infrastructure.metadata import (
    build_blob_key,
    detect_mime_type,
    normalize_entry_name,
    validate_blob_key,
)
from server.apps.drive.infrastructure.storage import BlobStore, get_blob_store
from server.apps.drive.logic.paths import resolve_virtual_path
from server.apps.drive.logic.tree_guard import (
    validate_name_collision,
    validate_parent,
)
from server.apps.drive.models import Entry, EntryKind, EntryQuerySet, EntryView

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True, slots=True)
class DownloadRef:
    """Time-limited download reference for a file entry."""

    url: str
    entry: Entry
    expires_in: int


def get_owned_entry(owner: _User, entry_id: int) -> Entry:
    """Get an entry, treating other users' entries as missing.

    Args:
        owner: Requesting user.
        entry_id: ID of the entry.

    Returns:
        Entry instance.

    Raises:
        Entry.DoesNotExist: If not found or owned by someone else.
    """
    return Entry.objects.get(id=entry_id, owner=owner)


def get_entry_for_owner(owner: _User, entry_id: int) -> Entry:
    """Get an entry and check it belongs to ``owner``.

    Args:
        owner: Requesting user.
        entry_id: ID of the entry.

    Returns:
        Entry instance.

    Raises:
        Entry.DoesNotExist: If not found.
        PermissionDenied: If owned by someone else.
    """
    entry = Entry.objects.get(id=entry_id)
    if not entry.is_owned_by(owner):
        logger.warning(
            'Access denied: user %s on entry %d owned by %s',
            owner.pk,
            entry.id,
            entry.owner_id,
        )
        raise PermissionDenied('Access denied. You do not own this entry.')
    return entry


def list_entries(  # noqa: WPS211
    owner: _User,
    view: str = EntryView.DEFAULT,
    parent_id: int | None = None,
    search: str | None = None,
    entry_type: str | None = None,
    sort: str | None = None,
) -> EntryQuerySet:
    """List the owner's entries for one view.

    The trash and starred views span the whole tree; the default view
    lists the direct live children of ``parent_id`` (root when None).

    Args:
        owner: User whose entries to list.
        view: One of ``EntryView``.
        parent_id: Folder to list in the default view.
        search: Case-insensitive substring of the name.
        entry_type: Coarse type filter (folder, image, video, pdf).
        sort: One of ``EntrySort``, folders always come first.

    Returns:
        Lazy QuerySet of entries.
    """
    entries = Entry.objects.owned_by(owner)

    if view == EntryView.TRASH:
        entries = entries.trashed()
    elif view == EntryView.STARRED:
        entries = entries.starred()
    else:
        entries = entries.alive().in_folder(parent_id)

    return entries.matching(search).of_type(entry_type).sorted_by(sort)


def create_folder(
    owner: _User,
    name: str,
    parent_id: int | None = None,
) -> Entry:
    """Create a folder.

    The parent check, the collision check and the insert share one
    transaction; a concurrent duplicate is caught by the unique
    constraint and reported the same way as a detected one.

    Args:
        owner: Owner of the new folder.
        name: Folder name (trimmed before use).
        parent_id: Parent folder ID, None for root level.

    Returns:
        Created Entry.

    Raises:
        ValidationError: If the name is blank or invalid.
        Entry.DoesNotExist: If the parent folder is not found.
        FolderNameConflictError: If a sibling folder has the same name.
    """
    name = normalize_entry_name(name)

    with transaction.atomic():
        parent = validate_parent(owner, parent_id, lock=True)
        validate_name_collision(owner, parent, name, EntryKind.FOLDER)

        try:
            with transaction.atomic():
                folder = Entry.objects.create(
                    owner=owner,
                    parent=parent,
                    name=name,
                    kind=EntryKind.FOLDER,
                    virtual_path=resolve_virtual_path(parent, name),
                )
        except IntegrityError as error:
            logger.info(
                'Concurrent folder create lost the race: %r in parent %s',
                name,
                parent_id,
            )
            raise FolderNameConflictError(name, parent_id) from error

    logger.info(
        'Folder created: %s (ID: %d)',
        folder.virtual_path,
        folder.id,
    )
    return folder


def upload_file(  # noqa: WPS211
    owner: _User,
    name: str,
    content: bytes | BinaryIO,
    content_type: str | None = None,
    parent_id: int | None = None,
    *,
    blob_store: BlobStore | None = None,
) -> Entry:
    """Upload file contents and create the file entry.

    Transaction safety: Upload to the blob store first, then create the
    record. If the record cannot be created, the blob is deleted again
    (best effort), so a failed upload leaves no metadata behind.

    Args:
        owner: Owner of the new file.
        name: File name (trimmed before use).
        content: File contents, as bytes or a binary file object.
        content_type: MIME type, guessed from the name when empty.
        parent_id: Parent folder ID, None for root level.
        blob_store: Blob store to write to, defaults to the configured one.

    Returns:
        Created Entry.

    Raises:
        ValidationError: If the name is blank or invalid.
        Entry.DoesNotExist: If the parent folder is not found.
        StorageBackendError: If the blob upload fails.
    """
    name = normalize_entry_name(name)
    validate_parent(owner, parent_id)

    data = content if isinstance(content, bytes) else content.read()
    mime_type = content_type or detect_mime_type(name)
    store = blob_store or get_blob_store()

    # Step 1: Upload to the blob store first
    blob_key = store.put(build_blob_key(owner.pk, name), data, mime_type)

    # Step 2: Create database record (in transaction)
    try:
        validate_blob_key(owner.pk, blob_key)
        with transaction.atomic():
            parent = validate_parent(owner, parent_id, lock=True)
            file_entry = Entry.objects.create(
                owner=owner,
                parent=parent,
                name=name,
                kind=EntryKind.FILE,
                size_bytes=len(data),
                mime_type=mime_type,
                virtual_path=resolve_virtual_path(parent, name),
                blob_key=blob_key,
            )
    except Exception:
        # Rollback: Delete blob since the record was not created
        logger.exception(
            'Database transaction failed, rolling back blob upload: %s',
            blob_key,
        )
        _rollback_blob(store, blob_key)
        raise

    logger.info(
        'File uploaded: %s (ID: %d, size: %d)',
        file_entry.virtual_path,
        file_entry.id,
        file_entry.size_bytes,
    )
    return file_entry


def _rollback_blob(store: BlobStore, blob_key: str) -> None:
    try:
        store.delete(blob_key)
    except StorageBackendError:
        # The blob stays orphaned in storage, nothing references it
        logger.exception('Failed to rollback upload, orphaned: %s', blob_key)


def get_download_ref(
    owner: _User,
    entry_id: int,
    *,
    blob_store: BlobStore | None = None,
) -> DownloadRef:
    """Get a signed download URL for a file.

    Args:
        owner: Requesting user.
        entry_id: ID of the file entry.
        blob_store: Blob store to sign with, defaults to the configured one.

    Returns:
        DownloadRef with the URL and the entry metadata.

    Raises:
        Entry.DoesNotExist: If the entry is not found.
        PermissionDenied: If owned by someone else.
        ValidationError: If the entry is a folder.
        StorageBackendError: If the URL cannot be signed.
    """
    entry = get_entry_for_owner(owner, entry_id)
    if entry.is_folder:
        raise ValidationError('Cannot download folders.', code='folder')

    store = blob_store or get_blob_store()
    expires_in = settings.DRIVE_SIGNED_URL_TTL
    url = store.signed_url(entry.blob_key, expires_in)

    logger.info('Download URL issued for entry %d', entry.id)
    return DownloadRef(url=url, entry=entry, expires_in=expires_in)


def toggle_star(owner: _User, entry_id: int) -> Entry:
    """Flip the starred flag of an entry.

    Args:
        owner: Requesting user.
        entry_id: ID of the entry.

    Returns:
        Updated Entry.

    Raises:
        Entry.DoesNotExist: If not found or owned by someone else.
    """
    entry = get_owned_entry(owner, entry_id)
    entry.is_starred = not entry.is_starred
    entry.save(update_fields=['is_starred', 'updated_at'])

    logger.debug('Entry %d starred: %s', entry.id, entry.is_starred)
    return entry
