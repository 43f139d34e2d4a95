"""Tests for cleanup_trash management command."""

from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from server.apps.drive.logic.trash_operations import (
    soft_delete_file,
    soft_delete_folder,
)
from server.apps.drive.models import File, Folder


def _age_trash(model, record_id, days: int) -> None:
    model.all_objects.filter(id=record_id).update(
        deleted_at=timezone.now() - timedelta(days=days),
    )


@pytest.mark.django_db
class TestCleanupTrashCommand:
    """Tests for cleanup_trash management command."""

    def test_cleanup_deletes_old_items(self, user, make_folder, make_file):
        """Test cleanup deletes items older than 30 days."""
        file_instance = make_file('old.txt')
        folder = make_folder('Old')
        soft_delete_file(user, file_instance.id)
        soft_delete_folder(user, folder.id)
        _age_trash(File, file_instance.id, days=31)
        _age_trash(Folder, folder.id, days=31)

        out = StringIO()
        call_command('cleanup_trash', stdout=out)

        assert not File.all_objects.filter(id=file_instance.id).exists()
        assert not Folder.all_objects.filter(id=folder.id).exists()
        assert 'Purged 2 items from trash, 0 failed' in out.getvalue()

    def test_cleanup_preserves_recent_items(self, user, make_file):
        """Test cleanup preserves items deleted less than 30 days ago."""
        file_instance = make_file('recent.txt')
        soft_delete_file(user, file_instance.id)
        _age_trash(File, file_instance.id, days=29)

        out = StringIO()
        call_command('cleanup_trash', stdout=out)

        assert File.all_objects.filter(id=file_instance.id).exists()
        assert 'Purged 0 items' in out.getvalue()

    def test_cleanup_dry_run(self, user, make_file):
        """Test --dry-run lists candidates without deleting."""
        file_instance = make_file('old.txt')
        soft_delete_file(user, file_instance.id)
        _age_trash(File, file_instance.id, days=31)

        out = StringIO()
        call_command('cleanup_trash', '--dry-run', stdout=out)

        output = out.getvalue()
        assert 'Would delete: file old.txt' in output
        assert 'Would purge 1 items from trash' in output
        assert File.all_objects.filter(id=file_instance.id).exists()

    def test_cleanup_batch_limit(self, user, make_file):
        """Test cleanup respects --batch-size option."""
        file_ids = []
        for index in range(5):
            file_instance = make_file(f'file{index}.txt')
            soft_delete_file(user, file_instance.id)
            _age_trash(File, file_instance.id, days=31)
            file_ids.append(file_instance.id)

        out = StringIO()
        call_command('cleanup_trash', '--batch-size=2', stdout=out)

        assert File.all_objects.filter(id__in=file_ids).count() == 3
        assert 'Purged 2 items' in out.getvalue()

    def test_cleanup_retention_days_option(self, user, make_file):
        """Test --retention-days overrides the configured period."""
        file_instance = make_file('week-old.txt')
        soft_delete_file(user, file_instance.id)
        _age_trash(File, file_instance.id, days=8)

        out = StringIO()
        call_command('cleanup_trash', '--retention-days=7', stdout=out)

        assert not File.all_objects.filter(id=file_instance.id).exists()
        assert 'more than 7 days ago' in out.getvalue()
