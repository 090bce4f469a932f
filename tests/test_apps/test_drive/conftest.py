"""Shared fixtures for drive app tests."""

from pathlib import PurePosixPath

import boto3
import pytest
from django.contrib.auth import get_user_model
from moto import mock_aws

from server.apps.drive.exceptions import StorageBackendError

User = get_user_model()


class FakeBlobStore:
    """In-memory blob store that can be told to fail per key."""

    def __init__(self):
        self.blobs = {}
        self.failing_keys = set()
        self.fail_puts = False
        self.get_calls = []
        self.deleted = []

    def put(self, blob_key, content, content_type):
        if self.fail_puts:
            raise StorageBackendError('put', blob_key)
        # A taken key gets a suffix, the stored object is never replaced
        saved_key = blob_key
        counter = 0
        while saved_key in self.blobs:
            counter += 1
            path = PurePosixPath(blob_key)
            saved_key = str(
                path.with_name(f'{path.stem}_{counter}{path.suffix}'),
            )
        self.blobs[saved_key] = content
        return saved_key

    def get(self, blob_key):
        self.get_calls.append(blob_key)
        if blob_key in self.failing_keys or blob_key not in self.blobs:
            raise StorageBackendError('get', blob_key)
        return self.blobs[blob_key]

    def delete(self, blob_key):
        if blob_key in self.failing_keys:
            raise StorageBackendError('delete', blob_key)
        self.blobs.pop(blob_key, None)
        self.deleted.append(blob_key)

    def signed_url(self, blob_key, expires_in):
        if blob_key in self.failing_keys:
            raise StorageBackendError('sign', blob_key)
        return f'https://blobs.test/{blob_key}?expires={expires_in}'


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def blob_store():
    """In-memory blob store.

    Returns:
        FakeBlobStore instance.
    """
    return FakeBlobStore()


@pytest.fixture
def mock_s3():
    """Mock S3 service with cloud-drive bucket.

    Yields:
        boto3 S3 resource with cloud-drive bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket='cloud-drive')

        yield conn
