"""Shared fixtures for drive app tests."""

from collections.abc import Callable

import boto3
import pytest
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from moto import mock_aws

from server.apps.drive.logic.file_operations import upload_file
from server.apps.drive.logic.folder_operations import create_folder
from server.apps.drive.models import File, Folder

User = get_user_model()

_UploadFactory = Callable[..., SimpleUploadedFile]


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
def mock_s3():
    """Mock S3 service with cloud-drive bucket.

    Yields:
        boto3 S3 resource with cloud-drive bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket='cloud-drive')

        yield conn


@pytest.fixture
def make_upload() -> _UploadFactory:
    """Factory for uploaded files.

    Returns:
        Callable building a SimpleUploadedFile from name and content.
    """
    def factory(
        name: str = 'notes.txt',
        content: bytes = b'test file content',
        content_type: str = 'text/plain',
    ) -> SimpleUploadedFile:
        return SimpleUploadedFile(name, content, content_type=content_type)
    return factory


@pytest.fixture
def make_folder(user) -> Callable[..., Folder]:
    """Factory creating folders of the test user through the logic layer."""
    def factory(name: str, parent: Folder | None = None, owner=None) -> Folder:
        return create_folder(
            owner or user,
            name,
            parent_id=parent.id if parent else None,
        )
    return factory


@pytest.fixture
def make_file(user, make_upload) -> Callable[..., File]:
    """Factory uploading files of the test user through the logic layer."""
    def factory(
        name: str = 'notes.txt',
        folder: Folder | None = None,
        content: bytes = b'test file content',
        content_type: str = 'text/plain',
    ) -> File:
        return upload_file(
            user,
            make_upload(name, content, content_type),
            folder_id=folder.id if folder else None,
        )
    return factory
