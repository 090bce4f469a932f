"""Tests for share link operations."""

import pytest

from server.apps.drive.logic.entry_operations import create_folder, upload_file
from server.apps.drive.logic.share_operations import (
    build_share_url,
    disable_share,
    enable_share,
    resolve_shared_entry,
    toggle_share,
)
from server.apps.drive.logic.trash_operations import soft_delete_entry
from server.apps.drive.models import Entry


@pytest.mark.django_db
class TestToggleShare:
    """Tests for toggle_share function."""

    def test_share_then_resolve(self, user, blob_store, settings):
        """Test a shared file resolves with a download URL."""
        settings.DRIVE_SHARE_BASE_URL = 'https://drive.example.com/'
        file_entry = upload_file(
            user,
            'a.txt',
            b'x',
            'text/plain',
            blob_store=blob_store,
        )

        state = toggle_share(user, file_entry.id)
        token = state.entry.share_token

        assert state.entry.is_shared is True
        assert len(token) == 32
        assert state.share_url == f'https://drive.example.com/shared/{token}'

        shared = resolve_shared_entry(token, blob_store=blob_store)
        assert shared.entry == file_entry
        assert shared.download_url.startswith(
            f'https://blobs.test/{file_entry.blob_key}',
        )

    def test_unshare_invalidates_token(self, user, blob_store):
        """Test the old token stops resolving once unshared."""
        file_entry = upload_file(user, 'a.txt', b'x', blob_store=blob_store)
        token = toggle_share(user, file_entry.id).entry.share_token

        state = toggle_share(user, file_entry.id)

        assert state.entry.is_shared is False
        assert state.entry.share_token is None
        assert state.share_url is None
        with pytest.raises(Entry.DoesNotExist):
            resolve_shared_entry(token, blob_store=blob_store)

    def test_reshare_issues_new_token(self, user):
        """Test sharing again never revives the old token."""
        docs = create_folder(user, 'Docs')
        first = toggle_share(user, docs.id).entry.share_token
        toggle_share(user, docs.id)

        second = toggle_share(user, docs.id).entry.share_token

        assert second != first

    def test_foreign_entry(self, user, other_user):
        """Test another user's entry is not found."""
        foreign = create_folder(other_user, 'Theirs')

        with pytest.raises(Entry.DoesNotExist):
            toggle_share(user, foreign.id)


@pytest.mark.django_db
class TestEnableDisableShare:
    """Tests for explicit share on/off."""

    def test_enable_rotates_token(self, user):
        """Test enabling twice replaces the token."""
        docs = create_folder(user, 'Docs')
        first = enable_share(user, docs.id).share_token

        second = enable_share(user, docs.id).share_token

        assert first != second
        with pytest.raises(Entry.DoesNotExist):
            resolve_shared_entry(first)

    def test_disable_unshared_entry(self, user):
        """Test disabling an unshared entry is harmless."""
        docs = create_folder(user, 'Docs')

        entry = disable_share(user, docs.id)

        assert entry.is_shared is False
        assert entry.share_token is None


@pytest.mark.django_db
class TestResolveSharedEntry:
    """Tests for resolve_shared_entry function."""

    def test_shared_folder_has_no_download(self, user, blob_store):
        """Test folders resolve with metadata only."""
        docs = create_folder(user, 'Docs')
        token = enable_share(user, docs.id).share_token

        shared = resolve_shared_entry(token, blob_store=blob_store)

        assert shared.entry == docs
        assert shared.download_url is None

    @pytest.mark.parametrize('token', ['', 'f' * 32])
    def test_unknown_token(self, token, db, blob_store):
        """Test blank and unknown tokens are not found."""
        with pytest.raises(Entry.DoesNotExist):
            resolve_shared_entry(token, blob_store=blob_store)

    def test_trashed_entry_not_resolved(self, user, blob_store):
        """Test shared entries in the trash are hidden."""
        file_entry = upload_file(user, 'a.txt', b'x', blob_store=blob_store)
        token = enable_share(user, file_entry.id).share_token
        soft_delete_entry(user, file_entry.id)

        with pytest.raises(Entry.DoesNotExist):
            resolve_shared_entry(token, blob_store=blob_store)

    def test_signing_failure_keeps_metadata(self, user, blob_store):
        """Test a signing error only drops the download URL."""
        file_entry = upload_file(user, 'a.txt', b'x', blob_store=blob_store)
        token = enable_share(user, file_entry.id).share_token
        blob_store.failing_keys.add(file_entry.blob_key)

        shared = resolve_shared_entry(token, blob_store=blob_store)

        assert shared.entry == file_entry
        assert shared.download_url is None


def test_build_share_url(settings):
    """Test trailing slashes on the base URL are ignored."""
    settings.DRIVE_SHARE_BASE_URL = 'http://localhost:5173/'

    assert build_share_url('abc') == 'http://localhost:5173/shared/abc'
