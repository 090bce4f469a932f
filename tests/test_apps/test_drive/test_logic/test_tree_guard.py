"""Tests for tree structure checks."""

import pytest
from django.core.exceptions import ValidationError

from server.apps.drive.exceptions import (
    FolderNameConflictError,
    TreeIntegrityError,
)
from server.apps.drive.logic.entry_operations import create_folder, upload_file
from server.apps.drive.logic.tree_guard import (
    iter_ancestors,
    validate_move_target,
    validate_name_collision,
    validate_parent,
)
from server.apps.drive.models import Entry, EntryKind


@pytest.mark.django_db
class TestValidateParent:
    """Tests for validate_parent function."""

    def test_root_level(self, user):
        """Test None means root level."""
        assert validate_parent(user, None) is None

    def test_own_folder(self, user):
        """Test an own folder is accepted."""
        docs = create_folder(user, 'Docs')

        assert validate_parent(user, docs.id) == docs

    @pytest.mark.parametrize('parent_id', [99999, 'not-a-number'])
    def test_unknown_parent(self, user, parent_id):
        """Test unknown or malformed IDs are not found."""
        with pytest.raises(Entry.DoesNotExist):
            validate_parent(user, parent_id)

    def test_file_parent(self, user, blob_store):
        """Test files cannot be parents."""
        file_entry = upload_file(user, 'a.txt', b'x', blob_store=blob_store)

        with pytest.raises(Entry.DoesNotExist):
            validate_parent(user, file_entry.id)

    def test_foreign_parent(self, user, other_user):
        """Test another user's folder is not found."""
        foreign = create_folder(other_user, 'Theirs')

        with pytest.raises(Entry.DoesNotExist):
            validate_parent(user, foreign.id)


@pytest.mark.django_db
class TestValidateNameCollision:
    """Tests for validate_name_collision function."""

    def test_folder_collision(self, user):
        """Test a live sibling folder blocks the name."""
        create_folder(user, 'Docs')

        with pytest.raises(FolderNameConflictError):
            validate_name_collision(user, None, 'Docs', EntryKind.FOLDER)

    def test_files_never_collide(self, user):
        """Test files are not checked."""
        create_folder(user, 'Docs')

        validate_name_collision(user, None, 'Docs', EntryKind.FILE)

    def test_name_is_case_sensitive(self, user):
        """Test names differing in case do not collide."""
        create_folder(user, 'Docs')

        validate_name_collision(user, None, 'docs', EntryKind.FOLDER)


@pytest.mark.django_db
class TestIterAncestors:
    """Tests for iter_ancestors function."""

    def test_chain_to_root(self, user):
        """Test ancestors are yielded nearest first."""
        docs = create_folder(user, 'Docs')
        reports = create_folder(user, 'Reports', docs.id)
        year = create_folder(user, '2024', reports.id)

        assert list(iter_ancestors(year)) == [reports, docs]

    def test_root_has_no_ancestors(self, user):
        """Test root level entries yield nothing."""
        docs = create_folder(user, 'Docs')

        assert list(iter_ancestors(docs)) == []

    def test_cycle_detected(self, user):
        """Test a looping chain raises instead of hanging."""
        docs = create_folder(user, 'Docs')
        reports = create_folder(user, 'Reports', docs.id)
        Entry.objects.filter(id=docs.id).update(parent_id=reports.id)

        with pytest.raises(TreeIntegrityError) as exc_info:
            list(iter_ancestors(reports))

        assert exc_info.value.entry_id == reports.id


@pytest.mark.django_db
class TestValidateMoveTarget:
    """Tests for validate_move_target function."""

    def test_move_to_root(self, user):
        """Test root level is always a valid destination."""
        docs = create_folder(user, 'Docs')

        validate_move_target(docs, None)

    def test_move_to_sibling(self, user):
        """Test an unrelated folder is a valid destination."""
        docs = create_folder(user, 'Docs')
        photos = create_folder(user, 'Photos')

        validate_move_target(docs, photos)

    def test_move_into_itself(self, user):
        """Test a folder cannot contain itself."""
        docs = create_folder(user, 'Docs')

        with pytest.raises(ValidationError):
            validate_move_target(docs, docs)

    def test_move_into_descendant(self, user):
        """Test a folder cannot move below itself."""
        docs = create_folder(user, 'Docs')
        reports = create_folder(user, 'Reports', docs.id)
        year = create_folder(user, '2024', reports.id)

        with pytest.raises(ValidationError):
            validate_move_target(docs, year)

    def test_move_into_file(self, user, blob_store):
        """Test files are not destinations."""
        docs = create_folder(user, 'Docs')
        file_entry = upload_file(user, 'a.txt', b'x', blob_store=blob_store)

        with pytest.raises(ValidationError):
            validate_move_target(docs, file_entry)

    def test_move_to_foreign_folder(self, user, other_user):
        """Test another user's folder is not a destination."""
        docs = create_folder(user, 'Docs')
        foreign = create_folder(other_user, 'Theirs')

        with pytest.raises(ValidationError):
            validate_move_target(docs, foreign)
