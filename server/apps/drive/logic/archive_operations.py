"""Business logic for exporting a folder as a zip archive.

The archive is produced while the subtree is walked: every member is
compressed into an in-memory buffer and handed to the consumer before
the next blob is fetched. The zip is written without seeking (data
descriptors), so the consumer can stream it straight to a client.
"""

import logging
import zipfile
from collections.abc import Iterator
from pathlib import PurePosixPath
from typing import Any, final

from server.apps.drive.exceptions import StorageBackendError
from server.apps.drive.infrastructure.storage import BlobStore, get_blob_store
from server.apps.drive.logic.entry_operations import get_owned_entry
from server.apps.drive.logic.paths import join_relative_path
from server.apps.drive.logic.traversal import StepEvent, iter_subtree
from server.apps.drive.models import Entry

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


@final
class _StreamBuffer:
    """Write-only sink that ``zipfile`` treats as unseekable."""

    def __init__(self) -> None:
        self._chunks: list[bytes] = []

    def write(self, data: bytes) -> int:
        self._chunks.append(bytes(data))
        return len(data)

    def flush(self) -> None:
        """Nothing to flush, chunks are kept until drained."""

    def drain(self) -> bytes:
        data = b''.join(self._chunks)
        self._chunks.clear()
        return data


def _unique_member_name(name: str, taken: set[str]) -> str:
    """Suffix a member name until it is unused.

    File names need not be unique inside a folder, zip member names do.

    Example: 'notes.txt' -> 'notes (1).txt'
    """
    candidate = name
    counter = 0
    while candidate in taken:
        counter += 1
        path = PurePosixPath(name)
        candidate = str(
            path.with_name(f'{path.stem} ({counter}){path.suffix}'),
        )
    taken.add(candidate)
    return candidate


@final
class FolderArchive:
    """Lazy zip export of one folder.

    Iterating runs a fresh walk and yields the archive in chunks; the
    archive is not restartable mid-way. Closing the iterator stops the
    walk before the next blob fetch. Files whose contents could not be
    fetched are left out and listed in ``skipped``.
    """

    def __init__(self, folder: Entry, blob_store: BlobStore) -> None:
        """Initialize the archive.

        Args:
            folder: Folder to export.
            blob_store: Blob store holding file contents.
        """
        self.folder = folder
        self.skipped: list[Entry] = []
        self._store = blob_store

    @property
    def filename(self) -> str:
        """Suggested download filename."""
        return f'{self.folder.name}.zip'

    def __iter__(self) -> Iterator[bytes]:
        """Stream the archive.

        Yields:
            Chunks of zip data.
        """
        self.skipped = []
        buffer = _StreamBuffer()
        archive = zipfile.ZipFile(
            buffer,
            mode='w',
            compression=zipfile.ZIP_DEFLATED,
        )
        member_names: set[str] = set()
        # Folder ID -> member path it was written under
        folder_members = {self.folder.id: ''}
        steps = iter_subtree(
            self.folder.id,
            self.folder.owner_id,
            include_deleted=False,
        )

        logger.info(
            'Exporting folder archive: %s (ID: %d)',
            self.folder.virtual_path,
            self.folder.id,
        )
        try:
            for step in steps:
                if step.event is StepEvent.EXIT_FOLDER:
                    continue

                # Children follow the path their folder was written under
                member_path = join_relative_path(
                    folder_members[step.entry.parent_id],
                    step.entry.name,
                )
                if step.event is StepEvent.ENTER_FOLDER:
                    member_path = _unique_member_name(member_path, member_names)
                    folder_members[step.entry.id] = member_path
                    archive.mkdir(member_path)
                else:
                    self._add_file(
                        archive,
                        step.entry,
                        member_path,
                        member_names,
                    )

                chunk = buffer.drain()
                if chunk:
                    yield chunk
        except GeneratorExit:
            logger.info(
                'Folder archive export cancelled by consumer: ID=%d',
                self.folder.id,
            )
            raise

        # Central directory only once the walk has finished
        archive.close()
        yield buffer.drain()

        logger.info(
            'Folder archive exported: ID=%d, %d members, %d skipped',
            self.folder.id,
            len(member_names),
            len(self.skipped),
        )

    def _add_file(
        self,
        archive: zipfile.ZipFile,
        entry: Entry,
        relative_path: str,
        member_names: set[str],
    ) -> None:
        try:
            content = self._store.get(entry.blob_key)
        except StorageBackendError:
            # Best effort export: leave the file out, keep going
            logger.exception(
                'Skipping file in archive, fetch failed: %s (ID: %d)',
                relative_path,
                entry.id,
            )
            self.skipped.append(entry)
            return

        archive.writestr(
            _unique_member_name(relative_path, member_names),
            content,
        )


def export_folder_archive(
    owner: _User,
    entry_id: int,
    *,
    blob_store: BlobStore | None = None,
) -> FolderArchive:
    """Prepare the zip export of a folder.

    Nothing is fetched until the returned archive is iterated.
    Soft-deleted entries are never included; every live subfolder
    becomes a directory member, empty ones too.

    Args:
        owner: Requesting user.
        entry_id: ID of the folder.
        blob_store: Blob store holding contents, defaults to the
            configured one.

    Returns:
        FolderArchive to iterate.

    Raises:
        Entry.DoesNotExist: If the folder is not found, is a file, is
            in the trash or belongs to someone else.
    """
    folder = get_owned_entry(owner, entry_id)
    if not folder.is_folder or folder.is_deleted:
        raise Entry.DoesNotExist('Folder not found.')

    return FolderArchive(folder, blob_store or get_blob_store())
