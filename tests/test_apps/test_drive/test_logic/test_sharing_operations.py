"""Tests for public link sharing business logic."""

import pytest

from server.apps.drive.exceptions import NotFoundError
from server.apps.drive.logic.file_operations import upload_file
from server.apps.drive.logic.sharing_operations import (
    get_public_file,
    get_public_folder,
    open_public_file_for_download,
    set_file_visibility,
    set_folder_visibility,
)
from server.apps.drive.logic.trash_operations import (
    soft_delete_file,
    soft_delete_folder,
)


@pytest.mark.django_db
class TestSetVisibility:
    """Tests for set_folder_visibility and set_file_visibility."""

    def test_publish_folder_generates_link(self, user, make_folder):
        """Test publishing a folder assigns a public link."""
        folder = make_folder('Shared')

        result = set_folder_visibility(user, folder.id, is_public=True)

        assert result.is_public is True
        assert result.public_link

    def test_republish_keeps_link(self, user, make_file):
        """Test publishing twice keeps the same link."""
        file_instance = make_file()
        first = set_file_visibility(user, file_instance.id, is_public=True)
        link = first.public_link

        second = set_file_visibility(user, file_instance.id, is_public=True)

        assert second.public_link == link

    def test_unpublish_clears_link(self, user, make_file):
        """Test unpublishing revokes the link."""
        file_instance = make_file()
        set_file_visibility(user, file_instance.id, is_public=True)

        result = set_file_visibility(user, file_instance.id, is_public=False)

        assert result.is_public is False
        assert result.public_link is None

    def test_links_are_unique(self, user, make_file):
        """Test every published file gets its own link."""
        first = make_file('a.txt')
        second = make_file('b.txt')

        first_link = set_file_visibility(user, first.id, True).public_link
        second_link = set_file_visibility(user, second.id, True).public_link

        assert first_link != second_link

    def test_foreign_file_not_found(self, other_user, make_file):
        """Test another user cannot publish the file."""
        file_instance = make_file()

        with pytest.raises(NotFoundError):
            set_file_visibility(other_user, file_instance.id, is_public=True)


@pytest.mark.django_db
class TestPublicFolder:
    """Tests for get_public_folder function."""

    def test_shared_folder_lists_files(self, user, make_folder, make_file):
        """Test public folder exposes its active files by name."""
        folder = make_folder('Shared')
        make_file('b.txt', folder=folder)
        make_file('a.txt', folder=folder)
        trashed = make_file('c.txt', folder=folder)
        soft_delete_file(user, trashed.id)
        link = set_folder_visibility(user, folder.id, True).public_link

        shared = get_public_folder(link)

        assert shared.folder == folder
        assert [item.name for item in shared.files] == ['a', 'b']

    def test_private_folder_not_found(self, user, make_folder):
        """Test a revoked link no longer resolves."""
        folder = make_folder('Shared')
        link = set_folder_visibility(user, folder.id, True).public_link
        set_folder_visibility(user, folder.id, False)

        with pytest.raises(NotFoundError):
            get_public_folder(link)

    def test_trashed_folder_not_found(self, user, make_folder):
        """Test a trashed public folder is not reachable."""
        folder = make_folder('Shared')
        link = set_folder_visibility(user, folder.id, True).public_link
        soft_delete_folder(user, folder.id)

        with pytest.raises(NotFoundError):
            get_public_folder(link)

    def test_unknown_link_not_found(self, db):
        """Test an unknown or empty link raises NotFoundError."""
        with pytest.raises(NotFoundError):
            get_public_folder('does-not-exist')
        with pytest.raises(NotFoundError):
            get_public_folder('')


@pytest.mark.django_db
class TestPublicFile:
    """Tests for get_public_file and open_public_file_for_download."""

    def test_access_counts_download(self, user, make_file):
        """Test public access increments the download counter."""
        file_instance = make_file()
        link = set_file_visibility(user, file_instance.id, True).public_link

        result = get_public_file(link)

        assert result.id == file_instance.id
        assert result.download_count == 1
        assert result.last_accessed_at is not None

    def test_download_streams_payload(self, user, make_file):
        """Test public download returns the stored bytes."""
        file_instance = make_file(content=b'shared bytes')
        link = set_file_visibility(user, file_instance.id, True).public_link

        result, payload = open_public_file_for_download(link)
        try:
            assert payload.read() == b'shared bytes'
        finally:
            payload.close()
        assert result.download_count == 1

    def test_public_upload_reachable(self, user, make_upload):
        """Test a file uploaded as public is reachable right away."""
        file_instance = upload_file(user, make_upload(), is_public=True)

        assert get_public_file(file_instance.public_link).id == file_instance.id

    def test_trashed_file_not_found(self, user, make_file):
        """Test a trashed public file is not reachable."""
        file_instance = make_file()
        link = set_file_visibility(user, file_instance.id, True).public_link
        soft_delete_file(user, file_instance.id)

        with pytest.raises(NotFoundError):
            get_public_file(link)
        with pytest.raises(NotFoundError):
            open_public_file_for_download(link)
