"""Public links for entries.

A share token is a capability: whoever holds it can read the entry's
metadata and, for a file, download it, until the owner turns sharing
off. Sharing a folder does not expose its children.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Any, Final, final

from django.conf import settings

from server.apps.drive.exceptions import StorageBackendError
from server.apps.drive.infrastructure.storage import BlobStore, get_blob_store
from server.apps.drive.logic.entry_operations import get_owned_entry
from server.apps.drive.models import Entry

# User type for Django's dynamic user model
_User = Any

# Token length in bytes (generates 32 hex chars, 128 bits)
_SHARE_TOKEN_BYTES: Final = 16

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True, slots=True)
class ShareState:
    """Entry after a share toggle, with its public link if shared."""

    entry: Entry
    share_url: str | None


@final
@dataclass(frozen=True, slots=True)
class SharedEntry:
    """Entry resolved from a share token.

    ``download_url`` is a signed URL for files, None for folders.
    """

    entry: Entry
    download_url: str | None


def build_share_url(token: str) -> str:
    """Build the public link for a share token.

    Args:
        token: Share token.

    Returns:
        URL like 'https://drive.example.com/shared/<token>'.
    """
    base_url = settings.DRIVE_SHARE_BASE_URL.rstrip('/')
    return f'{base_url}/shared/{token}'


def enable_share(owner: _User, entry_id: int) -> Entry:
    """Share an entry under a new random token.

    Any previous token of the entry stops working.

    Args:
        owner: Requesting user.
        entry_id: ID of the entry.

    Returns:
        Updated Entry.

    Raises:
        Entry.DoesNotExist: If not found or owned by someone else.
    """
    entry = get_owned_entry(owner, entry_id)
    entry.is_shared = True
    entry.share_token = secrets.token_hex(_SHARE_TOKEN_BYTES)
    entry.save(update_fields=['is_shared', 'share_token', 'updated_at'])

    logger.info('Sharing enabled for entry %d', entry.id)
    return entry


def disable_share(owner: _User, entry_id: int) -> Entry:
    """Stop sharing an entry, invalidating its token.

    Args:
        owner: Requesting user.
        entry_id: ID of the entry.

    Returns:
        Updated Entry.

    Raises:
        Entry.DoesNotExist: If not found or owned by someone else.
    """
    entry = get_owned_entry(owner, entry_id)
    entry.is_shared = False
    entry.share_token = None
    entry.save(update_fields=['is_shared', 'share_token', 'updated_at'])

    logger.info('Sharing disabled for entry %d', entry.id)
    return entry


def toggle_share(owner: _User, entry_id: int) -> ShareState:
    """Turn sharing on if it is off, off if it is on.

    Args:
        owner: Requesting user.
        entry_id: ID of the entry.

    Returns:
        ShareState with the public link, or None once unshared.

    Raises:
        Entry.DoesNotExist: If not found or owned by someone else.
    """
    entry = get_owned_entry(owner, entry_id)
    if entry.is_shared:
        entry = disable_share(owner, entry.id)
        return ShareState(entry=entry, share_url=None)

    entry = enable_share(owner, entry.id)
    return ShareState(entry=entry, share_url=build_share_url(entry.share_token))


def resolve_shared_entry(
    token: str,
    *,
    blob_store: BlobStore | None = None,
) -> SharedEntry:
    """Look up a shared entry by its token, without any ownership check.

    Args:
        token: Share token from a public link.
        blob_store: Blob store to sign with, defaults to the configured one.

    Returns:
        SharedEntry with a signed download URL for files.

    Raises:
        Entry.DoesNotExist: If the token is unknown or revoked, or the
            entry is in the trash.
    """
    if not token:
        raise Entry.DoesNotExist('Entry is not available or link has expired.')

    try:
        entry = Entry.objects.alive().get(share_token=token, is_shared=True)
    except Entry.DoesNotExist:
        logger.info('Share token not found or revoked')
        raise Entry.DoesNotExist(
            'Entry is not available or link has expired.',
        ) from None

    if entry.is_folder:
        return SharedEntry(entry=entry, download_url=None)

    store = blob_store or get_blob_store()
    try:
        download_url = store.signed_url(
            entry.blob_key,
            settings.DRIVE_SIGNED_URL_TTL,
        )
    except StorageBackendError:
        # Metadata is still served, only the download link is missing
        logger.exception('Could not sign shared entry %d', entry.id)
        download_url = None

    return SharedEntry(entry=entry, download_url=download_url)
