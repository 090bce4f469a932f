"""Naming and metadata helpers for entries and blobs."""

import mimetypes
from datetime import UTC, datetime
from pathlib import PurePosixPath
from typing import Final

from django.core.exceptions import ValidationError

_NAME_MAX_LENGTH: Final = 255
_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'

# Names that would escape their folder once joined into a path
_RESERVED_NAMES: Final = frozenset(('.', '..'))


def normalize_entry_name(name: str | None) -> str:
    """Trim and validate an entry name.

    Names become path segments of ``virtual_path`` and of archive
    members, so separators and dot segments are rejected.

    Args:
        name: Raw name supplied by the caller.

    Returns:
        Trimmed name.

    Raises:
        ValidationError: If the name is blank, too long or unsafe.
    """
    trimmed = (name or '').strip()
    if not trimmed:
        raise ValidationError('Name is required.', code='required')

    if len(trimmed) > _NAME_MAX_LENGTH:
        raise ValidationError(
            f'Name cannot be longer than {_NAME_MAX_LENGTH} characters.',
            code='max_length',
        )

    if '/' in trimmed or '\x00' in trimmed or trimmed in _RESERVED_NAMES:
        raise ValidationError(
            f'Name {trimmed!r} is not allowed.',
            code='invalid',
        )

    return trimmed


def detect_mime_type(filename: str) -> str:
    """Guess MIME type from the filename extension.

    Used when an upload arrives without a content type.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def build_blob_key(
    owner_id: int,
    name: str,
    now: datetime | None = None,
) -> str:
    """Build the blob store key for a new upload.

    Keys follow ``{owner_id}/{epoch_ms}-{name}`` so every owner has
    their own prefix in the bucket.

    Args:
        owner_id: ID of the uploading user.
        name: Validated entry name.
        now: Timestamp to embed, defaults to the current time.

    Returns:
        Blob key (e.g., '42/1767225600000-report.pdf').
    """
    moment = now or datetime.now(tz=UTC)
    epoch_ms = int(moment.timestamp() * 1000)
    return f'{owner_id}/{epoch_ms}-{name}'


def validate_blob_key(owner_id: int, blob_key: str) -> None:
    """Validate a blob key stays inside the owner's prefix.

    Args:
        owner_id: Owner's user ID.
        blob_key: Key returned by the blob store.

    Raises:
        ValidationError: If the key is empty or belongs to another owner.
    """
    parts = PurePosixPath(blob_key).parts
    if len(parts) < 2:
        raise ValidationError('Blob key must have an owner prefix.')

    if parts[0] != str(owner_id):
        raise ValidationError(
            f'Blob key owner ({parts[0]}) does not match owner ({owner_id})',
        )
