"""Business logic for public link sharing.

Public lookups bypass ownership, but a private or trashed item is reported
exactly like a missing one.
"""

import logging
from dataclasses import dataclass
from typing import IO, Any

from django.conf import settings
from django.db.models import QuerySet

from server.apps.drive.exceptions import NotFoundError
from server.apps.drive.infrastructure.metadata import generate_public_link
from server.apps.drive.logic.file_operations import (
    get_owned_file,
    open_payload,
    record_download,
)
from server.apps.drive.logic.folder_operations import get_owned_folder
from server.apps.drive.models import File, Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PublicFolder:
    """Anonymous view of a shared folder."""

    folder: Folder
    files: QuerySet[File]


def _apply_visibility(
    instance: Folder | File,
    is_public: bool,
) -> Folder | File:
    """Publish or unpublish a record.

    Publishing keeps an existing link so shared URLs stay valid.
    """
    if is_public and not instance.public_link:
        instance.public_link = generate_public_link(
            settings.DRIVE_PUBLIC_LINK_BYTES,
        )
    elif not is_public:
        instance.public_link = None
    instance.is_public = is_public
    instance.save(update_fields=['is_public', 'public_link', 'modified_at'])
    return instance


def set_folder_visibility(
    user: _User,
    folder_id: object,
    is_public: bool,
) -> Folder:
    """Publish or unpublish a folder.

    Raises:
        NotFoundError: If folder not found.
    """
    folder = get_owned_folder(user, folder_id)
    _apply_visibility(folder, is_public)
    logger.info(
        'Folder visibility changed: %s (ID: %s, public: %s)',
        folder.name,
        folder.id,
        is_public,
    )
    return folder


def set_file_visibility(user: _User, file_id: object, is_public: bool) -> File:
    """Publish or unpublish a file.

    Raises:
        NotFoundError: If file not found.
    """
    file_instance = get_owned_file(user, file_id)
    _apply_visibility(file_instance, is_public)
    logger.info(
        'File visibility changed: %s (ID: %s, public: %s)',
        file_instance.get_filename(),
        file_instance.id,
        is_public,
    )
    return file_instance


def get_public_folder(public_link: str) -> PublicFolder:
    """Get a shared folder and its active files by link.

    Args:
        public_link: Token from the shared URL.

    Returns:
        PublicFolder with the folder and its files.

    Raises:
        NotFoundError: If no active public folder has this link.
    """
    folder = Folder.objects.select_related('user').filter(
        public_link=public_link,
        is_public=True,
    ).first()
    if folder is None or not public_link:
        raise NotFoundError('Public folder', public_link)

    return PublicFolder(
        folder=folder,
        files=File.objects.filter(folder=folder).order_by('name'),
    )


def get_public_file(public_link: str) -> File:
    """Get a shared file by link, counting the access as a download.

    Raises:
        NotFoundError: If no active public file has this link.
    """
    file_instance = _find_public_file(public_link)
    record_download(file_instance)
    return file_instance


def open_public_file_for_download(public_link: str) -> tuple[File, IO[bytes]]:
    """Open the payload of a shared file and count the download.

    Raises:
        NotFoundError: If no active public file has this link or its
            payload is missing.
        DependencyFailureError: If storage cannot be reached.
    """
    file_instance = _find_public_file(public_link)
    payload = open_payload(file_instance)
    record_download(file_instance)
    return file_instance, payload


def _find_public_file(public_link: str) -> File:
    file_instance = File.objects.select_related('user').filter(
        public_link=public_link,
        is_public=True,
    ).first()
    if file_instance is None or not public_link:
        raise NotFoundError('Public file', public_link)
    return file_instance
