"""Tests for file business logic."""

import hashlib
import uuid

import pytest

from server.apps.drive.exceptions import (
    ConflictError,
    DependencyFailureError,
    ErrorKind,
    InvalidInputError,
    InvalidOperationError,
    NotFoundError,
)
from server.apps.drive.infrastructure.storage import get_object_store
from server.apps.drive.logic import file_operations
from server.apps.drive.logic.file_operations import (
    ANY_FOLDER,
    copy_file,
    get_file,
    get_file_stats,
    get_preview_url,
    list_files,
    move_file,
    open_file_for_download,
    update_file,
    upload_file,
    upload_files,
)
from server.apps.drive.logic.folder_operations import create_folder
from server.apps.drive.logic.sharing_operations import set_file_visibility
from server.apps.drive.logic.trash_operations import soft_delete_folder
from server.apps.drive.models import File


class _UnavailableStore:
    """Object store whose every call fails."""

    def put_object(self, key, content):
        raise OSError('object store unavailable')

    def copy_object(self, source_key, dest_key):
        raise OSError('object store unavailable')


@pytest.mark.django_db
class TestUploadFile:
    """Tests for upload_file function."""

    def test_upload_creates_record(self, user, make_upload):
        """Test upload stores payload and metadata."""
        content = b'hello drive'
        file_instance = upload_file(user, make_upload('Report.Final.TXT', content))

        assert file_instance.name == 'Report.Final'
        assert file_instance.extension == 'txt'
        assert file_instance.original_name == 'Report.Final.TXT'
        assert file_instance.size_bytes == len(content)
        assert file_instance.mime_type == 'text/plain'
        assert file_instance.checksum_sha256 == hashlib.sha256(content).hexdigest()
        assert file_instance.folder_id is None
        assert file_instance.download_count == 0

    def test_upload_payload_in_store(self, user, make_upload):
        """Test payload is readable under the opaque storage key."""
        file_instance = upload_file(user, make_upload(content=b'payload'))
        store = get_object_store()

        assert file_instance.storage_key.startswith(f'users/{user.id}/files/')
        assert file_instance.storage_key.endswith('.txt')
        with store.open(file_instance.storage_key, 'rb') as payload:
            assert payload.read() == b'payload'

    def test_upload_into_folder(self, user, make_folder, make_upload):
        """Test upload into an owned folder."""
        folder = make_folder('Docs')
        file_instance = upload_file(user, make_upload(), folder_id=folder.id)
        assert file_instance.folder_id == folder.id

    def test_upload_into_foreign_folder_not_found(
        self,
        user,
        other_user,
        make_upload,
    ):
        """Test another user's folder cannot receive uploads."""
        foreign = create_folder(other_user, 'Theirs')

        with pytest.raises(NotFoundError):
            upload_file(user, make_upload(), folder_id=foreign.id)

    def test_upload_into_trashed_folder_not_found(
        self,
        user,
        make_folder,
        make_upload,
    ):
        """Test a trashed folder cannot receive uploads."""
        folder = make_folder('Gone')
        soft_delete_folder(user, folder.id)

        with pytest.raises(NotFoundError):
            upload_file(user, make_upload(), folder_id=folder.id)

    def test_duplicate_name_conflicts(self, user, make_upload):
        """Test same name and extension in the same folder conflicts."""
        upload_file(user, make_upload('notes.txt'))

        with pytest.raises(ConflictError):
            upload_file(user, make_upload('notes.txt'))

        assert File.objects.filter(user=user).count() == 1

    def test_same_name_other_extension(self, user, make_upload):
        """Test the extension is part of the name scope."""
        upload_file(user, make_upload('notes.txt'))
        other = upload_file(user, make_upload('notes.md', content_type='text/markdown'))
        assert other.extension == 'md'

    def test_upload_too_large(self, user, make_upload, settings):
        """Test upload over DRIVE_MAX_UPLOAD_SIZE is rejected."""
        settings.DRIVE_MAX_UPLOAD_SIZE = 4

        with pytest.raises(InvalidInputError, match='maximum upload size'):
            upload_file(user, make_upload(content=b'12345'))

    def test_upload_type_not_allowed(self, user, make_upload, settings):
        """Test MIME type outside DRIVE_ALLOWED_MIME_TYPES is rejected."""
        settings.DRIVE_ALLOWED_MIME_TYPES = ['image/*']

        with pytest.raises(InvalidInputError, match='not allowed'):
            upload_file(user, make_upload('notes.txt'))

    def test_upload_public(self, user, make_upload):
        """Test file uploaded as public gets a share link."""
        file_instance = upload_file(user, make_upload(), is_public=True)
        assert file_instance.is_public is True
        assert file_instance.public_link

    def test_store_failure_writes_nothing(self, user, make_upload, monkeypatch):
        """Test a failing upload leaves no DB record."""
        monkeypatch.setattr(
            file_operations,
            'get_object_store',
            _UnavailableStore,
        )

        with pytest.raises(DependencyFailureError):
            upload_file(user, make_upload())

        assert not File.all_objects.filter(user=user).exists()


@pytest.mark.django_db
class TestUploadFiles:
    """Tests for batch upload."""

    def test_batch_reports_each_file(self, user, make_upload):
        """Test a failing item does not stop the batch."""
        upload_file(user, make_upload('taken.txt'))

        results = upload_files(
            user,
            [make_upload('first.txt'), make_upload('taken.txt')],
        )

        assert [result.success for result in results] == [True, False]
        assert results[0].file.name == 'first'
        assert results[1].error.kind == ErrorKind.CONFLICT

    def test_batch_limit(self, user, make_upload, settings):
        """Test more than DRIVE_MAX_UPLOAD_FILES files are rejected."""
        settings.DRIVE_MAX_UPLOAD_FILES = 1

        with pytest.raises(InvalidInputError):
            upload_files(user, [make_upload('a.txt'), make_upload('b.txt')])

    def test_batch_requires_files(self, user):
        """Test an empty batch is rejected."""
        with pytest.raises(InvalidInputError):
            upload_files(user, [])


@pytest.mark.django_db
class TestGetAndListFiles:
    """Tests for get_file and list_files."""

    def test_get_touch_records_access(self, user, make_file):
        """Test touch stamps last_accessed_at."""
        file_instance = make_file()

        fetched = get_file(user, file_instance.id, touch=True)

        assert fetched.last_accessed_at is not None
        file_instance.refresh_from_db()
        assert file_instance.last_accessed_at is not None

    def test_get_foreign_file_not_found(self, user, other_user, make_file):
        """Test another user's file behaves like a missing one."""
        file_instance = make_file()

        with pytest.raises(NotFoundError):
            get_file(other_user, file_instance.id)
        with pytest.raises(NotFoundError):
            get_file(other_user, uuid.uuid4())

    def test_list_root_and_folder(self, user, make_folder, make_file):
        """Test folder_id filter: None for root, id for a folder."""
        folder = make_folder('Docs')
        make_file('inside.txt', folder=folder)
        make_file('outside.txt')

        root_names = [item.name for item in list_files(user, folder_id=None)]
        folder_names = [item.name for item in list_files(user, folder_id=folder.id)]

        assert root_names == ['outside']
        assert folder_names == ['inside']
        assert list_files(user, ANY_FOLDER).count() == 2

    def test_list_search_and_type(self, user, make_file):
        """Test name search and MIME type prefix filters."""
        make_file('holiday.png', content_type='image/png')
        make_file('holiday.txt')
        make_file('work.png', content_type='image/png')

        found = list_files(user, search='HOLI', type_prefix='image/')
        assert [item.get_filename() for item in found] == ['holiday.png']

    def test_list_ordering(self, user, make_file):
        """Test supported ordering is applied."""
        make_file('b.txt', content=b'22')
        make_file('a.txt', content=b'1')

        names = [item.name for item in list_files(user, ordering='name')]
        assert names == ['a', 'b']

    def test_list_bad_ordering(self, user):
        """Test unsupported ordering raises InvalidInputError."""
        with pytest.raises(InvalidInputError):
            list_files(user, ordering='storage_key')


@pytest.mark.django_db
class TestUpdateFile:
    """Tests for update_file function."""

    def test_rename_keeps_extension(self, user, make_file):
        """Test rename changes the name only."""
        file_instance = make_file('draft.txt')

        updated = update_file(user, file_instance.id, name='final')

        assert updated.get_filename() == 'final.txt'

    def test_rename_conflict(self, user, make_file):
        """Test rename onto an existing file raises ConflictError."""
        make_file('taken.txt')
        file_instance = make_file('free.txt')

        with pytest.raises(ConflictError):
            update_file(user, file_instance.id, name='taken')

    def test_update_description(self, user, make_file):
        """Test description can be changed."""
        file_instance = make_file()
        updated = update_file(user, file_instance.id, description='Minutes')
        assert updated.description == 'Minutes'


@pytest.mark.django_db
class TestMoveFile:
    """Tests for move_file function."""

    def test_move_changes_folder_only(self, user, make_folder, make_file):
        """Test moving keeps the payload key."""
        folder = make_folder('Docs')
        file_instance = make_file()
        storage_key = file_instance.storage_key

        moved = move_file(user, file_instance.id, folder.id)

        assert moved.folder_id == folder.id
        assert moved.storage_key == storage_key
        assert get_object_store().object_exists(storage_key)

    def test_move_to_root(self, user, make_folder, make_file):
        """Test None moves the file to the root level."""
        folder = make_folder('Docs')
        file_instance = make_file(folder=folder)

        assert move_file(user, file_instance.id, None).folder_id is None

    def test_move_conflict(self, user, make_folder, make_file):
        """Test destination must not have a file with the same name."""
        folder = make_folder('Docs')
        make_file('notes.txt', folder=folder)
        file_instance = make_file('notes.txt')

        with pytest.raises(ConflictError):
            move_file(user, file_instance.id, folder.id)

    def test_move_to_foreign_folder(self, user, other_user, make_file):
        """Test another user's folder is not a valid destination."""
        foreign = create_folder(other_user, 'Theirs')
        file_instance = make_file()

        with pytest.raises(NotFoundError):
            move_file(user, file_instance.id, foreign.id)


@pytest.mark.django_db
class TestCopyFile:
    """Tests for copy_file function."""

    def test_copy_of_public_file_is_private(self, user, make_file):
        """Test copy gets new id, no link, zero downloads."""
        source = make_file('photo.txt')
        source = set_file_visibility(user, source.id, is_public=True)
        File.objects.filter(id=source.id).update(download_count=7)

        copy = copy_file(user, source.id)

        assert copy.id != source.id
        assert copy.name == 'photo_copy'
        assert copy.is_public is False
        assert copy.public_link is None
        assert copy.download_count == 0
        assert copy.storage_key != source.storage_key
        assert copy.checksum_sha256 == source.checksum_sha256

    def test_copy_duplicates_payload(self, user, make_file):
        """Test copy has its own readable payload."""
        source = make_file(content=b'original bytes')

        copy = copy_file(user, source.id, name='duplicate')

        with get_object_store().open(copy.storage_key, 'rb') as payload:
            assert payload.read() == b'original bytes'

    def test_copy_into_folder(self, user, make_folder, make_file):
        """Test copy into another folder keeps the name."""
        folder = make_folder('Backup')
        source = make_file('notes.txt')

        copy = copy_file(user, source.id, name='notes', folder_id=folder.id)

        assert copy.folder_id == folder.id
        assert copy.get_filename() == 'notes.txt'

    def test_copy_name_conflict(self, user, make_file):
        """Test copy onto an existing name raises ConflictError."""
        source = make_file('notes.txt')

        with pytest.raises(ConflictError):
            copy_file(user, source.id, name='notes')

    def test_copy_store_failure(self, user, make_file, monkeypatch):
        """Test failed payload copy creates no record."""
        source = make_file()
        monkeypatch.setattr(
            file_operations,
            'get_object_store',
            _UnavailableStore,
        )

        with pytest.raises(DependencyFailureError):
            copy_file(user, source.id)

        assert File.objects.filter(user=user).count() == 1


@pytest.mark.django_db
class TestDownloadAndPreview:
    """Tests for open_file_for_download and get_preview_url."""

    def test_download_counts(self, user, make_file):
        """Test download returns payload and increments the counter."""
        file_instance = make_file(content=b'download me')

        downloaded, payload = open_file_for_download(user, file_instance.id)
        with payload:
            assert payload.read() == b'download me'

        assert downloaded.download_count == 1
        assert downloaded.last_accessed_at is not None

    def test_download_missing_payload(self, user, make_file):
        """Test a record without payload is reported as not found."""
        file_instance = make_file()
        get_object_store().delete_object(file_instance.storage_key)

        with pytest.raises(NotFoundError):
            open_file_for_download(user, file_instance.id)

        file_instance.refresh_from_db()
        assert file_instance.download_count == 0

    def test_preview_previewable(self, user, make_file):
        """Test previewable file returns a URL."""
        file_instance = make_file('photo.png', content_type='image/png')

        preview = get_preview_url(user, file_instance.id)

        assert preview.url
        assert preview.file_type == 'image'
        assert preview.mime_type == 'image/png'

    def test_preview_not_previewable(self, user, make_file):
        """Test archives cannot be previewed."""
        file_instance = make_file('bundle.zip', content_type='application/zip')

        with pytest.raises(InvalidOperationError):
            get_preview_url(user, file_instance.id)


@pytest.mark.django_db
class TestFileStats:
    """Tests for get_file_stats function."""

    def test_stats(self, user, make_file):
        """Test totals and per-type counts."""
        make_file('a.txt', content=b'123')
        make_file('b.png', content=b'12', content_type='image/png')
        make_file('c.png', content=b'1', content_type='image/png')

        stats = get_file_stats(user)

        assert stats.total_files == 3
        assert stats.total_size == 6
        assert stats.total_downloads == 0
        assert {
            row['mime_type']: row['count'] for row in stats.file_types
        } == {'image/png': 2, 'text/plain': 1}

    def test_stats_empty(self, user):
        """Test a user without files has zero totals."""
        stats = get_file_stats(user)
        assert stats.total_files == 0
        assert stats.total_size == 0
