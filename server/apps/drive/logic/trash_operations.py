"""Business logic for trash (soft delete) operations.

Lifecycle shared by folders and files::

    active --soft delete--> trashed --restore--> active
    trashed --permanent delete--> gone

Soft deletion never cascades: a folder can only be trashed once it has no
active contents. Permanent deletion of a trashed folder purges its trashed
subtree.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any
from uuid import UUID

from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from server.apps.drive.exceptions import (
    ConflictError,
    DriveError,
    InvalidOperationError,
)
from server.apps.drive.infrastructure.storage import (
    get_object_store,
    store_operation,
)
from server.apps.drive.logic.file_operations import (
    ensure_unique_file_name,
    get_owned_file,
)
from server.apps.drive.logic.folder_operations import (
    ensure_unique_folder_name,
    get_owned_folder,
)
from server.apps.drive.models import File, Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Trash:
    """Trashed records of one owner, newest first."""

    folders: QuerySet[Folder]
    files: QuerySet[File]


@dataclass(slots=True)
class PurgeReport:
    """Outcome of an expired trash purge."""

    candidates: list[str] = field(default_factory=list)
    purged: int = 0
    failed: int = 0


def soft_delete_folder(user: _User, folder_id: object) -> Folder:
    """Move an empty folder to trash.

    Args:
        user: Folder owner.
        folder_id: Folder UUID.

    Returns:
        Updated Folder instance.

    Raises:
        NotFoundError: If folder not found or already in trash.
        InvalidOperationError: If the folder has active files or
            subfolders.
    """
    folder = get_owned_folder(user, folder_id)

    has_files = File.objects.filter(folder=folder).exists()
    has_children = Folder.objects.filter(parent=folder).exists()
    if has_files or has_children:
        logger.warning(
            'Refused to delete non-empty folder: %s (ID: %s)',
            folder.name,
            folder.id,
        )
        raise InvalidOperationError(
            'Cannot delete folder: it contains files or subfolders',
        )

    folder.is_deleted = True
    folder.deleted_at = timezone.now()
    folder.save(update_fields=['is_deleted', 'deleted_at', 'modified_at'])

    logger.info('Folder moved to trash: %s (ID: %s)', folder.name, folder.id)
    return folder


def restore_folder(user: _User, folder_id: object) -> Folder:
    """Restore folder from trash to its original parent.

    Args:
        user: Folder owner.
        folder_id: Folder UUID.

    Returns:
        Updated Folder instance.

    Raises:
        NotFoundError: If folder not found.
        InvalidOperationError: If the folder is not in trash or its
            parent is.
        ConflictError: If an active sibling took the name meanwhile.
    """
    folder = get_owned_folder(user, folder_id, include_deleted=True)
    if not folder.is_deleted:
        raise InvalidOperationError('Folder is not in trash')
    if folder.parent_id is not None and folder.parent.is_deleted:
        raise InvalidOperationError(
            'Cannot restore folder: parent folder is in trash',
        )

    ensure_unique_folder_name(user, folder.parent_id, folder.name)

    folder.is_deleted = False
    folder.deleted_at = None
    try:
        with transaction.atomic():
            folder.save(
                update_fields=['is_deleted', 'deleted_at', 'modified_at'],
            )
    except IntegrityError:
        raise ConflictError('Folder', folder.name) from None

    logger.info('Folder restored: %s (ID: %s)', folder.name, folder.id)
    return folder


def _collect_subtree(folder: Folder) -> list[list[UUID]]:
    """Collect folder ids of the subtree level by level, root first."""
    levels = [[folder.id]]
    seen = {folder.id}
    while True:
        next_level = [
            child_id
            for child_id in Folder.all_objects.filter(
                parent_id__in=levels[-1],
            ).values_list('id', flat=True)
            if child_id not in seen
        ]
        if not next_level:
            return levels
        seen.update(next_level)
        levels.append(next_level)


def permanent_delete_folder(user: _User, folder_id: object) -> int:
    """Permanently delete a trashed folder and its trashed subtree.

    Payloads and containers are removed from storage first, then the
    database rows from the deepest level up.

    Args:
        user: Folder owner.
        folder_id: Folder UUID.

    Returns:
        Number of database records deleted (folders and files).

    Raises:
        NotFoundError: If folder not found.
        InvalidOperationError: If the folder is not in trash or has an
            active descendant.
        DependencyFailureError: If storage cleanup fails; the database
            is left untouched.
    """
    folder = get_owned_folder(user, folder_id, include_deleted=True)
    if not folder.is_deleted:
        raise InvalidOperationError(
            'Folder must be moved to trash before permanent deletion',
        )

    levels = _collect_subtree(folder)
    folder_ids = [subtree_id for level in levels for subtree_id in level]
    subtree_folders = Folder.all_objects.filter(id__in=folder_ids)
    subtree_files = File.all_objects.filter(folder_id__in=folder_ids)
    if (
        subtree_folders.filter(is_deleted=False).exists()
        or subtree_files.filter(is_deleted=False).exists()
    ):
        raise InvalidOperationError(
            'Cannot delete folder permanently: it contains active items',
        )

    # Step 1: Remove payloads and containers from storage
    store = get_object_store()
    for storage_key in subtree_files.values_list('storage_key', flat=True):
        with store_operation('delete_object', storage_key):
            store.delete_object(storage_key)
    for storage_prefix in subtree_folders.values_list(
        'storage_prefix',
        flat=True,
    ):
        with store_operation('delete_container', storage_prefix):
            store.delete_container(storage_prefix)

    # Step 2: Delete database rows, deepest level first
    with transaction.atomic():
        deleted_files, _ = subtree_files.delete()
        deleted_folders = 0
        for level in reversed(levels):
            level_count, _ = Folder.all_objects.filter(id__in=level).delete()
            deleted_folders += level_count

    logger.info(
        'Folder permanently deleted: %s (ID: %s, folders: %d, files: %d)',
        folder.name,
        folder.id,
        deleted_folders,
        deleted_files,
    )
    return deleted_folders + deleted_files


def soft_delete_file(user: _User, file_id: object) -> File:
    """Move file to trash.

    The payload stays in storage until the file is permanently deleted.

    Raises:
        NotFoundError: If file not found or already in trash.
    """
    file_instance = get_owned_file(user, file_id)

    file_instance.is_deleted = True
    file_instance.deleted_at = timezone.now()
    file_instance.save(
        update_fields=['is_deleted', 'deleted_at', 'modified_at'],
    )

    logger.info(
        'File moved to trash: %s (ID: %s)',
        file_instance.get_filename(),
        file_instance.id,
    )
    return file_instance


def restore_file(user: _User, file_id: object) -> File:
    """Restore file from trash to its original folder.

    Args:
        user: File owner.
        file_id: File UUID.

    Returns:
        Updated File instance.

    Raises:
        NotFoundError: If file not found.
        InvalidOperationError: If the file is not in trash or its
            folder is.
        ConflictError: If an active file took the name meanwhile.
    """
    file_instance = get_owned_file(user, file_id, include_deleted=True)
    if not file_instance.is_deleted:
        raise InvalidOperationError('File is not in trash')
    if file_instance.folder_id is not None and file_instance.folder.is_deleted:
        raise InvalidOperationError(
            'Cannot restore file: its folder is in trash',
        )

    ensure_unique_file_name(
        user,
        file_instance.folder_id,
        file_instance.name,
        file_instance.extension,
    )

    file_instance.is_deleted = False
    file_instance.deleted_at = None
    try:
        with transaction.atomic():
            file_instance.save(
                update_fields=['is_deleted', 'deleted_at', 'modified_at'],
            )
    except IntegrityError:
        raise ConflictError('File', file_instance.get_filename()) from None

    logger.info(
        'File restored: %s (ID: %s)',
        file_instance.get_filename(),
        file_instance.id,
    )
    return file_instance


def permanent_delete_file(user: _User, file_id: object) -> None:
    """Permanently delete a trashed file from storage and database.

    Raises:
        NotFoundError: If file not found.
        InvalidOperationError: If the file is not in trash.
        DependencyFailureError: If the payload cannot be deleted; the
            record is kept.
    """
    file_instance = get_owned_file(user, file_id, include_deleted=True)
    if not file_instance.is_deleted:
        raise InvalidOperationError(
            'File must be moved to trash before permanent deletion',
        )

    # Step 1: Delete payload
    store = get_object_store()
    with store_operation('delete_object', file_instance.storage_key):
        store.delete_object(file_instance.storage_key)

    # Step 2: Delete database record
    with transaction.atomic():
        file_instance.delete()

    logger.info(
        'File permanently deleted: %s (ID: %s, size: %d)',
        file_instance.get_filename(),
        file_id,
        file_instance.size_bytes,
    )


def list_trash(user: _User) -> Trash:
    """List all trashed folders and files of the user.

    Args:
        user: User whose trash to list.

    Returns:
        Trash with deleted folders and files, newest first.
    """
    return Trash(
        folders=Folder.all_objects.filter(
            user=user,
            is_deleted=True,
        ).order_by('-deleted_at'),
        files=File.all_objects.filter(
            user=user,
            is_deleted=True,
        ).order_by('-deleted_at'),
    )


def _top_level_trashed_folders(queryset: QuerySet[Folder]) -> QuerySet[Folder]:
    """Trashed folders that are not inside another trashed folder."""
    return queryset.filter(is_deleted=True).filter(
        Q(parent__isnull=True) | Q(parent__is_deleted=False),
    )


def _top_level_trashed_files(queryset: QuerySet[File]) -> QuerySet[File]:
    """Trashed files that are not inside a trashed folder."""
    return queryset.filter(is_deleted=True).filter(
        Q(folder__isnull=True) | Q(folder__is_deleted=False),
    )


def empty_trash(user: _User) -> int:
    """Permanently delete everything in the user's trash.

    Args:
        user: User whose trash to empty.

    Returns:
        Number of records deleted.
    """
    count = 0

    for file_id in _top_level_trashed_files(
        File.all_objects.filter(user=user),
    ).values_list('id', flat=True):
        permanent_delete_file(user, file_id)
        count += 1

    for folder_id in _top_level_trashed_folders(
        Folder.all_objects.filter(user=user),
    ).values_list('id', flat=True):
        count += permanent_delete_folder(user, folder_id)

    logger.info(
        'Trash emptied for user %s: %d records deleted',
        user.username,
        count,
    )
    return count


def purge_expired_trash(
    retention_days: int,
    batch_size: int,
    dry_run: bool = False,
) -> PurgeReport:
    """Permanently delete items that stayed in trash too long.

    Only top-level trashed items are purged; a trashed folder takes its
    trashed subtree with it.

    Args:
        retention_days: Minimum age of the deletion in days.
        batch_size: Maximum number of files and of folders to process.
        dry_run: Only report what would be deleted.

    Returns:
        PurgeReport with the candidate descriptions and counts.
    """
    cutoff = timezone.now() - timedelta(days=retention_days)
    report = PurgeReport()

    old_files = _top_level_trashed_files(
        File.all_objects.filter(deleted_at__lte=cutoff),
    ).select_related('user').order_by('deleted_at')[:batch_size]
    old_folders = _top_level_trashed_folders(
        Folder.all_objects.filter(deleted_at__lte=cutoff),
    ).select_related('user').order_by('deleted_at')[:batch_size]

    for file_instance in old_files:
        report.candidates.append(
            f'file {file_instance.get_filename()} '
            f'(user: {file_instance.user.username}, '
            f'deleted: {file_instance.deleted_at})',
        )
        if dry_run:
            continue
        try:
            permanent_delete_file(file_instance.user, file_instance.id)
        except DriveError:
            logger.exception(
                'Failed to purge file from trash: %s',
                file_instance.id,
            )
            report.failed += 1
        else:
            report.purged += 1

    for folder in old_folders:
        report.candidates.append(
            f'folder {folder.name} '
            f'(user: {folder.user.username}, deleted: {folder.deleted_at})',
        )
        if dry_run:
            continue
        try:
            permanent_delete_folder(folder.user, folder.id)
        except DriveError:
            logger.exception(
                'Failed to purge folder from trash: %s',
                folder.id,
            )
            report.failed += 1
        else:
            report.purged += 1

    return report
