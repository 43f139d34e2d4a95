"""Metadata extraction and input validation for drive records."""

import hashlib
import mimetypes
import re
import secrets
import uuid
from collections.abc import Iterable
from pathlib import PurePosixPath
from typing import BinaryIO, Final

from server.apps.drive.exceptions import InvalidInputError
from server.apps.drive.models import EXTENSION_MAX_LENGTH, NAME_MAX_LENGTH

_CHUNK_SIZE: Final = 8192  # 8KB chunks for checksum calculation
_COLOR_PATTERN: Final = re.compile(r'^#[0-9A-Fa-f]{6}$')
_RESERVED_NAMES: Final = frozenset(('.', '..'))
_FORBIDDEN_CHARACTERS: Final = ('/', '\\', '\x00')
_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'


def detect_mime_type(filename: str, declared: str | None = None) -> str:
    """Detect MIME type of an upload.

    Trusts the client-declared type when there is one, otherwise guesses
    from the filename extension.

    Args:
        filename: Filename with extension.
        declared: Content type sent by the client, if any.

    Returns:
        MIME type string, 'application/octet-stream' when unknown.
    """
    if declared:
        return declared
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def calculate_checksum(file_obj: BinaryIO) -> str:
    """SHA256 of an upload, stored with the record for integrity checks.

    The stream is rewound before and after hashing so it can be written
    to the object store afterwards.

    Args:
        file_obj: Uploaded payload stream.

    Returns:
        Lowercase hex digest.
    """
    file_obj.seek(0)
    digest = hashlib.sha256()
    while chunk := file_obj.read(_CHUNK_SIZE):
        digest.update(chunk)
    file_obj.seek(0)
    return digest.hexdigest()


def split_filename(filename: str) -> tuple[str, str]:
    """Split an uploaded filename into display name and extension.

    Example: 'Report.Final.PDF' -> ('Report.Final', 'pdf')

    Args:
        filename: Original filename, possibly with a client path.

    Returns:
        Tuple of name without extension and lowercase extension
        without dot (empty when there is none).
    """
    basename = PurePosixPath(filename.replace('\\', '/')).name
    path = PurePosixPath(basename)
    extension = path.suffix.lstrip('.').lower()
    if not extension or not path.stem or len(extension) > EXTENSION_MAX_LENGTH:
        return basename, ''
    return path.stem, extension


def validate_name(name: object, field: str = 'name') -> str:
    """Validate a folder or file name.

    Args:
        name: Proposed name.
        field: Input field reported in the error.

    Returns:
        The name with surrounding whitespace removed.

    Raises:
        InvalidInputError: If the name is empty, too long or unsafe.
    """
    if not isinstance(name, str) or not name.strip():
        raise InvalidInputError(field, 'Name cannot be empty')

    cleaned = name.strip()
    if len(cleaned) > NAME_MAX_LENGTH:
        raise InvalidInputError(
            field,
            f'Name must be at most {NAME_MAX_LENGTH} characters',
        )
    if cleaned in _RESERVED_NAMES or any(
        character in cleaned for character in _FORBIDDEN_CHARACTERS
    ):
        raise InvalidInputError(field, f'Invalid name: {cleaned!r}')
    return cleaned


def validate_color(color: object) -> str:
    """Validate a #RRGGBB color, empty string clears it.

    Raises:
        InvalidInputError: If color is not a 6-digit hex code.
    """
    if color in {None, ''}:
        return ''
    if not isinstance(color, str) or not _COLOR_PATTERN.match(color):
        raise InvalidInputError('color', 'Color must be a hex code like #FF5733')
    return color.upper()


def validate_description(description: object) -> str:
    """Validate free-text description, None means empty.

    Raises:
        InvalidInputError: If description is not a string.
    """
    if description is None:
        return ''
    if not isinstance(description, str):
        raise InvalidInputError('description', 'Description must be text')
    return description


def is_mime_type_allowed(mime_type: str, allowed: Iterable[str]) -> bool:
    """Check MIME type against patterns like 'image/*' or 'application/pdf'.

    Args:
        mime_type: MIME type to check.
        allowed: Allowed types; entries ending with '/*' match a family.

    Returns:
        True if any pattern matches.
    """
    for pattern in allowed:
        if pattern.endswith('/*'):
            if mime_type.startswith(pattern[:-1]):
                return True
        elif mime_type == pattern:
            return True
    return False


def build_object_key(user_id: int, extension: str) -> str:
    """Build a fresh, unguessable object key for a payload.

    Example: (7, 'pdf') -> 'users/7/files/4f1c...e2.pdf'

    Args:
        user_id: Owner's user ID.
        extension: Extension without dot, may be empty.

    Returns:
        Object key under the user's files area.
    """
    filename = uuid.uuid4().hex
    if extension:
        filename = f'{filename}.{extension}'
    return f'users/{user_id}/files/{filename}'


def build_container_prefix(user_id: int, ancestor_ids: Iterable[object]) -> str:
    """Build a folder container prefix from its ancestor chain.

    Example: (7, [root_id, child_id]) -> 'users/7/folders/<root_id>/<child_id>'

    Args:
        user_id: Owner's user ID.
        ancestor_ids: Folder ids from the root down to the folder itself.

    Returns:
        Container prefix without trailing slash.
    """
    segments = '/'.join(str(folder_id) for folder_id in ancestor_ids)
    return f'users/{user_id}/folders/{segments}'


def generate_public_link(num_bytes: int) -> str:
    """Generate an unguessable URL-safe token for public sharing."""
    return secrets.token_urlsafe(num_bytes)
