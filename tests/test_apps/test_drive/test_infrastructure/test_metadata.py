"""Tests for metadata utilities."""

import pytest
from django.core.files.base import ContentFile

from server.apps.drive.exceptions import InvalidInputError
from server.apps.drive.infrastructure.metadata import (
    build_container_prefix,
    build_object_key,
    calculate_checksum,
    detect_mime_type,
    generate_public_link,
    is_mime_type_allowed,
    split_filename,
    validate_color,
    validate_description,
    validate_name,
)


def test_detect_mime_type():
    """Test MIME type detection from filename."""
    assert detect_mime_type('test.pdf') == 'application/pdf'
    assert detect_mime_type('test.txt') == 'text/plain'
    assert detect_mime_type('test.png') == 'image/png'


def test_detect_mime_type_prefers_declared():
    """Test the client-declared content type wins."""
    assert detect_mime_type('test.bin', 'image/jpeg') == 'image/jpeg'


def test_detect_mime_type_unknown():
    """Test MIME type detection for unknown extension."""
    assert detect_mime_type('test.unknown') == 'application/octet-stream'


def test_calculate_checksum():
    """Test SHA256 checksum calculation."""
    file_obj = ContentFile(b'test content')

    checksum = calculate_checksum(file_obj)

    # Should be 64 character hex string
    assert len(checksum) == 64
    assert all(char in '0123456789abcdef' for char in checksum)
    assert file_obj.tell() == 0

    assert calculate_checksum(ContentFile(b'test content')) == checksum
    assert calculate_checksum(ContentFile(b'other')) != checksum


@pytest.mark.parametrize(('filename', 'expected'), [
    ('report.pdf', ('report', 'pdf')),
    ('Report.Final.PDF', ('Report.Final', 'pdf')),
    ('archive.tar.gz', ('archive.tar', 'gz')),
    ('README', ('README', '')),
    ('.bashrc', ('.bashrc', '')),
    ('C:\\Users\\me\\photo.JPG', ('photo', 'jpg')),
    ('dir/sub/notes.txt', ('notes', 'txt')),
    ('data.averyveryverylongextension', ('data.averyveryverylongextension', '')),
])
def test_split_filename(filename, expected):
    """Test filename split into name and lowercase extension."""
    assert split_filename(filename) == expected


def test_validate_name_strips():
    """Test surrounding whitespace is removed."""
    assert validate_name('  Reports  ') == 'Reports'


@pytest.mark.parametrize('name', [None, '', '   ', '.', '..', 'a/b', 'a\\b', 'x' * 256])
def test_validate_name_invalid(name):
    """Test empty, reserved, unsafe and too long names are rejected."""
    with pytest.raises(InvalidInputError):
        validate_name(name)


def test_validate_name_reports_field():
    """Test the error names the offending field."""
    with pytest.raises(InvalidInputError) as exc_info:
        validate_name('', field='file')

    assert exc_info.value.field == 'file'


def test_validate_color():
    """Test hex colors are normalized and empty clears."""
    assert validate_color('#ff5733') == '#FF5733'
    assert validate_color('') == ''
    assert validate_color(None) == ''

    with pytest.raises(InvalidInputError, match='hex code'):
        validate_color('red')


def test_validate_description():
    """Test description must be text."""
    assert validate_description(None) == ''
    assert validate_description('notes') == 'notes'

    with pytest.raises(InvalidInputError):
        validate_description(42)


def test_is_mime_type_allowed():
    """Test exact and family patterns."""
    allowed = ['image/*', 'application/pdf']

    assert is_mime_type_allowed('image/png', allowed)
    assert is_mime_type_allowed('application/pdf', allowed)
    assert not is_mime_type_allowed('application/x-msdownload', allowed)
    assert not is_mime_type_allowed('imagex/png', allowed)


def test_build_object_key():
    """Test object keys are fresh and scoped to the user."""
    first = build_object_key(7, 'pdf')
    second = build_object_key(7, 'pdf')

    assert first.startswith('users/7/files/')
    assert first.endswith('.pdf')
    assert first != second
    assert '.' not in build_object_key(7, '').rsplit('/', 1)[-1]


def test_build_container_prefix():
    """Test container prefix follows the id chain."""
    prefix = build_container_prefix(7, ['root-id', 'child-id'])

    assert prefix == 'users/7/folders/root-id/child-id'


def test_generate_public_link():
    """Test public links are URL-safe and unique."""
    first = generate_public_link(24)

    assert len(first) == 32
    assert first != generate_public_link(24)
    assert all(char.isalnum() or char in '-_' for char in first)
