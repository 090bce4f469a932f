"""Exceptions for drive app.

Missing entries are reported with ``Entry.DoesNotExist``, ownership
mismatches with ``django.core.exceptions.PermissionDenied`` and bad
input with ``django.core.exceptions.ValidationError``. The classes
below cover what Django has no exception for.
"""


class FolderNameConflictError(Exception):
    """Raised when a live sibling folder already uses the name."""

    def __init__(self, name: str, parent_id: int | None) -> None:
        """Initialize FolderNameConflictError.

        Args:
            name: Folder name that is already taken.
            parent_id: ID of the containing folder, None for root level.
        """
        self.name = name
        self.parent_id = parent_id

        location = 'root' if parent_id is None else f'folder {parent_id}'
        super().__init__(
            f'A folder named {name!r} already exists in {location}',
        )


class StorageBackendError(Exception):
    """Raised when the blob store fails to put, get, delete or sign."""

    def __init__(self, operation: str, blob_key: str) -> None:
        """Initialize StorageBackendError.

        The original backend exception is chained as ``__cause__``.

        Args:
            operation: Blob store operation that failed.
            blob_key: Key of the object involved.
        """
        self.operation = operation
        self.blob_key = blob_key
        super().__init__(f'Blob store {operation} failed for {blob_key!r}')


class TreeIntegrityError(Exception):
    """Raised when a parent chain loops or exceeds the depth bound."""

    def __init__(self, entry_id: int, hops: int) -> None:
        """Initialize TreeIntegrityError.

        Args:
            entry_id: Entry whose ancestry could not be resolved.
            hops: Number of parent links followed before giving up.
        """
        self.entry_id = entry_id
        self.hops = hops
        super().__init__(
            f'Parent chain of entry {entry_id} does not terminate '
            f'(gave up after {hops} hops)',
        )
