"""Tests for folder archive export."""

import io
import zipfile

import pytest

from server.apps.drive.logic.archive_operations import (
    _unique_member_name,
    export_folder_archive,
)
from server.apps.drive.logic.entry_operations import create_folder, upload_file
from server.apps.drive.logic.trash_operations import soft_delete_entry
from server.apps.drive.models import Entry


def _read_archive(archive):
    return zipfile.ZipFile(io.BytesIO(b''.join(archive)))


@pytest.fixture
def project(user, blob_store):
    """Build Project/{readme.md, src/main.py, empty/, old.txt (trashed)}.

    Returns:
        Dict of entries by name.
    """
    project = create_folder(user, 'Project')
    readme = upload_file(
        user,
        'readme.md',
        b'# Project',
        parent_id=project.id,
        blob_store=blob_store,
    )
    src = create_folder(user, 'src', project.id)
    main = upload_file(
        user,
        'main.py',
        b'print("hi")',
        parent_id=src.id,
        blob_store=blob_store,
    )
    empty = create_folder(user, 'empty', project.id)
    old = upload_file(
        user,
        'old.txt',
        b'stale',
        parent_id=project.id,
        blob_store=blob_store,
    )
    soft_delete_entry(user, old.id)
    return {
        'Project': project,
        'readme.md': readme,
        'src': src,
        'main.py': main,
        'empty': empty,
        'old.txt': old,
    }


@pytest.mark.django_db
class TestExportFolderArchive:
    """Tests for export_folder_archive function."""

    def test_archive_contents(self, user, project, blob_store):
        """Test files and folders keep their relative paths."""
        archive = export_folder_archive(
            user,
            project['Project'].id,
            blob_store=blob_store,
        )

        with _read_archive(archive) as zipped:
            assert zipped.testzip() is None
            assert zipped.read('readme.md') == b'# Project'
            assert zipped.read('src/main.py') == b'print("hi")'
            names = set(zipped.namelist())

        assert archive.filename == 'Project.zip'
        assert archive.skipped == []
        assert names == {'readme.md', 'src/', 'src/main.py', 'empty/'}

    def test_trashed_entries_excluded(self, user, project, blob_store):
        """Test soft-deleted entries never reach the archive."""
        soft_delete_entry(user, project['src'].id)

        archive = export_folder_archive(
            user,
            project['Project'].id,
            blob_store=blob_store,
        )

        with _read_archive(archive) as zipped:
            names = set(zipped.namelist())

        assert names == {'readme.md', 'empty/'}
        assert project['old.txt'].blob_key not in blob_store.get_calls

    def test_empty_folder(self, user, project, blob_store):
        """Test an empty folder exports an empty archive."""
        archive = export_folder_archive(
            user,
            project['empty'].id,
            blob_store=blob_store,
        )

        with _read_archive(archive) as zipped:
            assert zipped.namelist() == []

    def test_duplicate_file_names(self, user, blob_store):
        """Test same-named files get distinct member names."""
        folder = create_folder(user, 'Dupes')
        for content in (b'one', b'two'):
            upload_file(
                user,
                'a.txt',
                content,
                parent_id=folder.id,
                blob_store=blob_store,
            )

        archive = export_folder_archive(user, folder.id, blob_store=blob_store)

        with _read_archive(archive) as zipped:
            assert zipped.read('a.txt') == b'one'
            assert zipped.read('a (1).txt') == b'two'

    def test_renamed_folder_keeps_its_children(self, user, blob_store):
        """Test children follow their folder when it gets a suffix."""
        root = create_folder(user, 'Root')
        upload_file(
            user,
            'Docs',
            b'plain file',
            parent_id=root.id,
            blob_store=blob_store,
        )
        docs = create_folder(user, 'Docs', root.id)
        upload_file(
            user,
            'a.txt',
            b'nested',
            parent_id=docs.id,
            blob_store=blob_store,
        )

        archive = export_folder_archive(user, root.id, blob_store=blob_store)

        with _read_archive(archive) as zipped:
            assert zipped.namelist() == [
                'Docs',
                'Docs (1)/',
                'Docs (1)/a.txt',
            ]
            assert zipped.read('Docs') == b'plain file'
            assert zipped.read('Docs (1)/a.txt') == b'nested'

    def test_fetch_failure_skips_file(self, user, project, blob_store):
        """Test unreadable blobs are left out and reported."""
        blob_store.failing_keys.add(project['readme.md'].blob_key)

        archive = export_folder_archive(
            user,
            project['Project'].id,
            blob_store=blob_store,
        )

        with _read_archive(archive) as zipped:
            names = set(zipped.namelist())

        assert 'readme.md' not in names
        assert 'src/main.py' in names
        assert archive.skipped == [project['readme.md']]

    def test_lazy_until_iterated(self, user, project, blob_store):
        """Test nothing is fetched before iteration."""
        export_folder_archive(
            user,
            project['Project'].id,
            blob_store=blob_store,
        )

        assert blob_store.get_calls == []

    def test_cancel_stops_fetching(self, user, project, blob_store):
        """Test closing the stream stops the walk."""
        archive = export_folder_archive(
            user,
            project['Project'].id,
            blob_store=blob_store,
        )
        stream = iter(archive)

        next(stream)
        stream.close()

        assert blob_store.get_calls == [project['readme.md'].blob_key]

    def test_file_is_not_exportable(self, user, project, blob_store):
        """Test files are reported as missing folders."""
        with pytest.raises(Entry.DoesNotExist):
            export_folder_archive(
                user,
                project['readme.md'].id,
                blob_store=blob_store,
            )

    def test_trashed_folder_is_not_exportable(self, user, project, blob_store):
        """Test a folder in the trash cannot be exported."""
        soft_delete_entry(user, project['src'].id)

        with pytest.raises(Entry.DoesNotExist):
            export_folder_archive(
                user,
                project['src'].id,
                blob_store=blob_store,
            )

    def test_foreign_folder(self, user, other_user, blob_store):
        """Test another user's folder is not found."""
        foreign = create_folder(other_user, 'Theirs')

        with pytest.raises(Entry.DoesNotExist):
            export_folder_archive(user, foreign.id, blob_store=blob_store)


def test_unique_member_name():
    """Test suffixes are added before the extension."""
    taken = set()

    assert _unique_member_name('a.txt', taken) == 'a.txt'
    assert _unique_member_name('a.txt', taken) == 'a (1).txt'
    assert _unique_member_name('a.txt', taken) == 'a (2).txt'
    assert _unique_member_name('dir/README', taken) == 'dir/README'
    assert _unique_member_name('dir/README', taken) == 'dir/README (1)'
