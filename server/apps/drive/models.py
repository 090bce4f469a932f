"""Database models for drive app."""

from pathlib import Path
from typing import Any, Final, final

from typing_extensions import override

from django.conf import settings
from django.db import models
from django.db.models import Case, IntegerField, Q, Value, When
from django.utils import timezone

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_KIND_MAX_LENGTH: Final = 6
_MIME_TYPE_MAX_LENGTH: Final = 255
_BLOB_KEY_MAX_LENGTH: Final = 1024
_SHARE_TOKEN_MAX_LENGTH: Final = 64


class EntryKind(models.TextChoices):
    """Kind of a tree entry."""

    FILE = 'file', 'File'
    FOLDER = 'folder', 'Folder'


class EntryView(models.TextChoices):
    """Listing views offered to the owner."""

    DEFAULT = 'default', 'Default'
    TRASH = 'trash', 'Trash'
    STARRED = 'starred', 'Starred'


class EntrySort(models.TextChoices):
    """Listing sort modes, all of them folders first."""

    NAME = 'name', 'Name'
    DATE = 'date', 'Date'
    SIZE = 'size', 'Size'


# Coarse file type filters, matched against the MIME type
_TYPE_FILTERS: Final = {
    'image': Q(mime_type__startswith='image/'),
    'video': Q(mime_type__startswith='video/'),
    'pdf': Q(mime_type='application/pdf'),
}

_SORT_ORDERINGS: Final = {
    EntrySort.NAME: ('name', 'id'),
    EntrySort.DATE: ('-created_at', '-id'),
    EntrySort.SIZE: ('-size_bytes', 'name', 'id'),
}


class EntryQuerySet(models.QuerySet['Entry']):
    """Queries over the entry tree, always composed per owner."""

    def owned_by(self, owner: Any) -> 'EntryQuerySet':
        """Restrict to entries of one owner."""
        return self.filter(owner=owner)

    def alive(self) -> 'EntryQuerySet':
        """Entries that are not in the trash."""
        return self.filter(is_deleted=False)

    def trashed(self) -> 'EntryQuerySet':
        """Entries that are in the trash."""
        return self.filter(is_deleted=True)

    def starred(self) -> 'EntryQuerySet':
        """Starred entries that are not in the trash."""
        return self.alive().filter(is_starred=True)

    def in_folder(self, parent_id: int | None) -> 'EntryQuerySet':
        """Direct children of a folder, or root level entries for None."""
        if parent_id is None:
            return self.filter(parent__isnull=True)
        return self.filter(parent_id=parent_id)

    def matching(self, search: str | None) -> 'EntryQuerySet':
        """Case-insensitive substring match on the name."""
        search = (search or '').strip()
        if not search:
            return self
        return self.filter(name__icontains=search)

    def of_type(self, entry_type: str | None) -> 'EntryQuerySet':
        """Coarse type filter.

        ``folder`` keeps folders. ``image``, ``video`` and ``pdf`` keep
        files with a matching MIME type. Any other non-empty value keeps
        all files.
        """
        if not entry_type:
            return self
        if entry_type == EntryKind.FOLDER:
            return self.filter(kind=EntryKind.FOLDER)

        files = self.filter(kind=EntryKind.FILE)
        condition = _TYPE_FILTERS.get(entry_type)
        if condition is None:
            return files
        return files.filter(condition)

    def sorted_by(self, sort: str | None = None) -> 'EntryQuerySet':
        """Order folders first, then by the requested sort mode.

        Unknown sort modes fall back to sorting by name.
        """
        ordering = _SORT_ORDERINGS.get(sort or EntrySort.NAME)
        if ordering is None:
            ordering = _SORT_ORDERINGS[EntrySort.NAME]

        return self.annotate(
            folder_rank=Case(
                When(kind=EntryKind.FOLDER, then=Value(0)),
                default=Value(1),
                output_field=IntegerField(),
            ),
        ).order_by('folder_rank', *ordering)

    def update_entry(self, entry_id: int, **changes: Any) -> int:
        """Apply field changes to one entry and bump ``updated_at``.

        Args:
            entry_id: ID of the entry to update.
            changes: Field values to set.

        Returns:
            Number of rows updated (0 if the entry does not exist).
        """
        return self.filter(id=entry_id).update(
            updated_at=timezone.now(),
            **changes,
        )

    def hard_delete(self, entry_id: int) -> bool:
        """Remove one record, never cascading to children.

        Raises ``ProtectedError`` if the entry still has children.

        Args:
            entry_id: ID of the entry to remove.

        Returns:
            True if a record was removed.
        """
        deleted, _ = self.filter(id=entry_id).delete()
        return deleted > 0


@final
class Entry(models.Model):
    """A file or folder in a user's drive.

    Structure is a flat record store: every entry points at its parent
    folder and children are found through the ``(owner, parent)`` index.
    File contents live in the blob store under ``blob_key``; folders
    have no blob.

    ``virtual_path`` is computed from the parent chain once, at
    creation. There is no move or rename, so it never goes stale.
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='drive_entries',
        db_index=True,
    )

    # Children are removed by the traversal, never by the database
    parent = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        related_name='children',
        null=True,
        blank=True,
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    kind = models.CharField(
        max_length=_KIND_MAX_LENGTH,
        choices=EntryKind.choices,
    )

    size_bytes = models.BigIntegerField(
        default=0,
        help_text='Content length in bytes, 0 for folders',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        null=True,
        blank=True,
        help_text='Content type of a file, empty for folders',
    )

    virtual_path = models.TextField(
        help_text='Path shown to the user, e.g. /Documents/report.pdf',
    )

    blob_key = models.CharField(
        max_length=_BLOB_KEY_MAX_LENGTH,
        null=True,
        blank=True,
        help_text='Object key in the blob store, empty for folders',
    )

    is_starred = models.BooleanField(default=False)

    # Trash
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    # Public link
    is_shared = models.BooleanField(default=False)
    share_token = models.CharField(
        max_length=_SHARE_TOKEN_MAX_LENGTH,
        null=True,
        blank=True,
        unique=True,
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = EntryQuerySet.as_manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'Entry'  # type: ignore[mutable-override]
        verbose_name_plural = 'Entries'  # type: ignore[mutable-override]
        ordering = ['id']

        indexes = [
            # Child lookups
            models.Index(
                fields=['owner', 'parent'],
                name='drive_owner_parent_idx',
            ),
            # Type filtered listings
            models.Index(
                fields=['owner', 'kind'],
                name='drive_owner_kind_idx',
            ),
        ]

        constraints = [
            # Live sibling folders have distinct names
            models.UniqueConstraint(
                fields=['owner', 'parent', 'name'],
                condition=Q(kind='folder', is_deleted=False),
                name='drive_folder_name_unique',
            ),
            # NULL parents never compare equal, so root level needs its own
            models.UniqueConstraint(
                fields=['owner', 'name'],
                condition=Q(
                    kind='folder',
                    is_deleted=False,
                    parent__isnull=True,
                ),
                name='drive_root_folder_name_unique',
            ),
            models.CheckConstraint(
                condition=Q(kind='file') | Q(
                    blob_key__isnull=True,
                    mime_type__isnull=True,
                    size_bytes=0,
                ),
                name='drive_folder_has_no_content',
            ),
            models.CheckConstraint(
                condition=(
                    Q(is_deleted=True, deleted_at__isnull=False)
                    | Q(is_deleted=False, deleted_at__isnull=True)
                ),
                name='drive_deleted_at_matches_flag',
            ),
            models.CheckConstraint(
                condition=(
                    Q(is_shared=True, share_token__isnull=False)
                    | Q(is_shared=False, share_token__isnull=True)
                ),
                name='drive_share_token_matches_flag',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner_id}:{self.virtual_path}'

    @property
    def is_folder(self) -> bool:
        """Whether this entry is a folder."""
        return self.kind == EntryKind.FOLDER

    def is_owned_by(self, user: Any) -> bool:
        """Check whether the given user owns this entry.

        Args:
            user: User to compare against.

        Returns:
            True if ``user`` is the owner.
        """
        return self.owner_id == user.pk

    def get_extension(self) -> str | None:
        """Extract file extension.

        Example: 'report.PDF' -> 'pdf'

        Returns:
            Extension without dot (lowercase), None for folders and
            names without an extension.
        """
        if self.is_folder:
            return None
        extension = Path(self.name).suffix
        return extension.lstrip('.').lower() or None
