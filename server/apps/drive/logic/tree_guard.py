"""Structural checks that keep the entry tree well formed.

Checks here are read-then-decide. Creation runs them inside the same
transaction as the insert, and the partial unique constraints on
``Entry`` catch whatever slips through concurrently.
"""

import logging
from collections.abc import Iterator
from typing import Any, Final

from django.core.exceptions import ValidationError

from server.apps.drive.exceptions import (
    FolderNameConflictError,
    TreeIntegrityError,
)
from server.apps.drive.models import Entry, EntryKind

# User type for Django's dynamic user model
_User = Any

# Parent links followed before a chain is considered broken
_MAX_TREE_DEPTH: Final = 1024

logger = logging.getLogger(__name__)


def validate_parent(
    owner: _User,
    parent_id: int | None,
    *,
    lock: bool = False,
) -> Entry | None:
    """Resolve the parent folder for a new entry.

    Args:
        owner: User creating the entry.
        parent_id: Requested parent ID, None for root level.
        lock: Take a row lock on the parent (inside a transaction).

    Returns:
        Parent folder, or None for root level.

    Raises:
        Entry.DoesNotExist: If the parent is missing, is not a folder
            or belongs to another user.
    """
    if parent_id is None:
        return None

    queryset = Entry.objects.select_for_update() if lock else Entry.objects
    try:
        return queryset.get(
            id=parent_id,
            owner=owner,
            kind=EntryKind.FOLDER,
        )
    except (Entry.DoesNotExist, ValueError, TypeError):
        logger.info(
            'Parent folder not found: ID=%s, owner=%s',
            parent_id,
            owner.pk,
        )
        raise Entry.DoesNotExist('Parent folder not found.') from None


def validate_name_collision(
    owner: _User,
    parent: Entry | None,
    name: str,
    kind: str,
) -> None:
    """Reject a folder name already used by a live sibling folder.

    Files are never checked, neither against files nor folders.

    Args:
        owner: User creating the entry.
        parent: Parent folder, None for root level.
        name: Validated entry name.
        kind: Kind of the new entry.

    Raises:
        FolderNameConflictError: If a sibling folder has the same name.
    """
    if kind != EntryKind.FOLDER:
        return

    parent_id = parent.id if parent is not None else None
    taken = (
        Entry.objects.owned_by(owner)
        .alive()
        .in_folder(parent_id)
        .filter(kind=EntryKind.FOLDER, name=name)
        .exists()
    )
    if taken:
        logger.info(
            'Folder name conflict: %r in parent %s (owner %s)',
            name,
            parent_id,
            owner.pk,
        )
        raise FolderNameConflictError(name, parent_id)


def iter_ancestors(entry: Entry) -> Iterator[Entry]:
    """Yield the parent chain of an entry, nearest first.

    Args:
        entry: Entry to start from (not yielded).

    Yields:
        Each ancestor up to the root level folder.

    Raises:
        TreeIntegrityError: If the chain loops or is deeper than allowed.
    """
    seen = {entry.id}
    current = entry
    hops = 0

    while current.parent_id is not None:
        hops += 1
        if hops > _MAX_TREE_DEPTH or current.parent_id in seen:
            logger.error(
                'Broken parent chain at entry %d (after %d hops)',
                entry.id,
                hops,
            )
            raise TreeIntegrityError(entry.id, hops)

        seen.add(current.parent_id)
        current = Entry.objects.get(id=current.parent_id)
        yield current


def validate_move_target(entry: Entry, new_parent: Entry | None) -> None:
    """Check that an entry could be placed under ``new_parent``.

    No move operation exists yet; this is the check it has to pass.

    Args:
        entry: Entry that would move.
        new_parent: Destination folder, None for root level.

    Raises:
        ValidationError: If the destination is not a folder of the same
            owner, or is the entry itself or one of its descendants.
    """
    if new_parent is None:
        return

    if not new_parent.is_folder or new_parent.owner_id != entry.owner_id:
        raise ValidationError('Destination must be a folder of the owner.')

    if new_parent.id == entry.id:
        raise ValidationError('A folder cannot be moved into itself.')

    if any(ancestor.id == entry.id for ancestor in iter_ancestors(new_parent)):
        raise ValidationError(
            'A folder cannot be moved into one of its descendants.',
        )
