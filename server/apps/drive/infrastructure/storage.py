"""Blob store adapter over a Django storage backend.

The drive logic only ever needs four operations on file contents:
put, get, delete and sign. ``StorageBlobStore`` provides them on top of
the configured django-storages ``S3Storage`` and turns backend failures
into ``StorageBackendError``.
"""

import logging
from typing import Protocol, final

from django.core.files.base import ContentFile
from django.core.files.storage import Storage, default_storage

from server.apps.drive.exceptions import StorageBackendError

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    """Opaque byte object store keyed by blob key."""

    def put(self, blob_key: str, content: bytes, content_type: str) -> str:
        """Store bytes and return the key actually used."""

    def get(self, blob_key: str) -> bytes:
        """Fetch the bytes stored under a key."""

    def delete(self, blob_key: str) -> None:
        """Remove the object stored under a key."""

    def signed_url(self, blob_key: str, expires_in: int) -> str:
        """Return a time-limited retrieval URL for a key."""


@final
class StorageBlobStore:
    """``BlobStore`` backed by a Django ``Storage``.

    Adds to the plain storage API:
    - Logging of every backend call
    - ``StorageBackendError`` with the backend error chained
    """

    def __init__(self, storage: Storage) -> None:
        """Initialize the adapter.

        Args:
            storage: Storage backend, normally an ``S3Storage``.
        """
        self._storage = storage

    def put(self, blob_key: str, content: bytes, content_type: str) -> str:
        """Upload bytes to storage.

        Args:
            blob_key: Requested key for the object.
            content: Bytes to store.
            content_type: MIME type recorded on the object.

        Returns:
            Key actually used (the backend may add a suffix if taken).

        Raises:
            StorageBackendError: If the upload fails.
        """
        upload = ContentFile(content, name=blob_key)
        upload.content_type = content_type  # type: ignore[attr-defined]

        try:
            logger.info('Uploading blob to storage: %s', blob_key)
            saved_key = self._storage.save(blob_key, upload)
        except Exception as error:
            logger.exception('Failed to upload blob to storage: %s', blob_key)
            raise StorageBackendError('put', blob_key) from error
        else:
            logger.info('Successfully uploaded blob: %s', saved_key)
            return saved_key

    def get(self, blob_key: str) -> bytes:
        """Download the bytes of an object.

        Args:
            blob_key: Key of the object.

        Returns:
            Object contents.

        Raises:
            StorageBackendError: If the object is missing or unreadable.
        """
        try:
            with self._storage.open(blob_key, 'rb') as blob:
                return blob.read()
        except Exception as error:
            logger.exception('Failed to read blob from storage: %s', blob_key)
            raise StorageBackendError('get', blob_key) from error

    def delete(self, blob_key: str) -> None:
        """Delete an object from storage.

        Args:
            blob_key: Key of the object.

        Raises:
            StorageBackendError: If the delete fails.
        """
        try:
            logger.info('Deleting blob from storage: %s', blob_key)
            self._storage.delete(blob_key)
        except Exception as error:
            logger.exception(
                'Failed to delete blob from storage: %s',
                blob_key,
            )
            raise StorageBackendError('delete', blob_key) from error
        logger.info('Successfully deleted blob: %s', blob_key)

    def signed_url(self, blob_key: str, expires_in: int) -> str:
        """Generate a pre-signed download URL.

        Args:
            blob_key: Key of the object.
            expires_in: URL lifetime in seconds.

        Returns:
            Signed URL.

        Raises:
            StorageBackendError: If signing fails.
        """
        try:
            return self._storage.url(  # type: ignore[call-arg]
                blob_key,
                expire=expires_in,
            )
        except Exception as error:
            logger.exception('Failed to sign blob URL: %s', blob_key)
            raise StorageBackendError('sign', blob_key) from error


def get_blob_store() -> BlobStore:
    """Get the blob store over the configured default storage.

    Returns:
        StorageBlobStore wrapping ``default_storage``.
    """
    return StorageBlobStore(default_storage)
