"""Business logic for folder hierarchy operations."""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Final

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, QuerySet, Sum

from server.apps.drive.exceptions import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
)
from server.apps.drive.infrastructure.metadata import (
    build_container_prefix,
    generate_public_link,
    validate_color,
    validate_description,
    validate_name,
)
from server.apps.drive.infrastructure.storage import (
    get_object_store,
    store_operation,
)
from server.apps.drive.logic.tree import FolderNode, build_folder_tree
from server.apps.drive.models import File, Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)

# Passed as parent_id to list every folder regardless of its parent
ANY_PARENT: Final = object()


@dataclass(frozen=True, slots=True)
class FolderDetails:
    """Folder with its direct active contents."""

    folder: Folder
    children: QuerySet[Folder]
    files: QuerySet[File]
    file_count: int
    total_size: int


@dataclass(frozen=True, slots=True)
class FolderStats:
    """Folder totals of one owner."""

    total_folders: int
    folder_sizes: list[dict[str, Any]]


def get_owned_folder(
    user: _User,
    folder_id: object,
    *,
    include_deleted: bool = False,
) -> Folder:
    """Get folder owned by user.

    A missing folder, a folder of another user and (unless asked for)
    a soft-deleted folder all look the same to the caller.

    Args:
        user: Folder owner.
        folder_id: Folder UUID.
        include_deleted: Also return folders in the trash.

    Returns:
        Folder instance.

    Raises:
        NotFoundError: If folder not found.
    """
    manager = Folder.all_objects if include_deleted else Folder.objects
    try:
        return manager.get(id=folder_id, user=user)
    except (Folder.DoesNotExist, ValidationError):
        raise NotFoundError('Folder', folder_id) from None


def ensure_unique_folder_name(
    user: _User,
    parent_id: object,
    name: str,
    exclude_id: object = None,
) -> None:
    """Check that no active sibling folder already uses the name.

    Raises:
        ConflictError: If the name is taken.
    """
    siblings = Folder.objects.filter(user=user, parent_id=parent_id, name=name)
    if exclude_id is not None:
        siblings = siblings.exclude(id=exclude_id)
    if siblings.exists():
        logger.warning(
            'Folder name conflict for user %s: %s (parent: %s)',
            user.username,
            name,
            parent_id,
        )
        raise ConflictError('Folder', name)


def get_ancestor_ids(user: _User, folder_id: object) -> list[uuid.UUID]:
    """Collect the chain of folder ids from folder_id up to the root.

    The walk follows active folders of the owner and stops at the root
    or at a folder that is missing or belongs to someone else.

    Args:
        user: Folder owner.
        folder_id: Folder to start from.

    Returns:
        Folder ids, starting with folder_id itself.

    Raises:
        InvalidOperationError: If the chain is longer than
            DRIVE_MAX_FOLDER_DEPTH.
    """
    max_depth = settings.DRIVE_MAX_FOLDER_DEPTH
    chain: list[uuid.UUID] = []
    current_id = folder_id

    while current_id is not None:
        if len(chain) >= max_depth:
            raise _nesting_too_deep()
        try:
            rows = list(
                Folder.objects.filter(id=current_id, user=user).values_list(
                    'id',
                    'parent_id',
                )[:1],
            )
        except ValidationError:
            break
        if not rows:
            break
        # Row UUID, the caller may pass the id as a str
        row_id, current_id = rows[0]
        chain.append(row_id)

    return chain


def _nesting_too_deep() -> InvalidOperationError:
    return InvalidOperationError(
        'Folder nesting exceeds the maximum depth of {0}'.format(
            settings.DRIVE_MAX_FOLDER_DEPTH,
        ),
    )


def _subtree_height(folder: Folder) -> int:
    """Number of active folder levels below folder."""
    max_depth = settings.DRIVE_MAX_FOLDER_DEPTH
    height = 0
    level_ids = [folder.id]
    while height <= max_depth:
        level_ids = list(
            Folder.objects.filter(parent_id__in=level_ids).values_list(
                'id',
                flat=True,
            ),
        )
        if not level_ids:
            break
        height += 1
    return height


def create_folder(  # noqa: WPS211
    user: _User,
    name: str,
    parent_id: object = None,
    description: str = '',
    color: str = '',
    is_public: bool = False,
) -> Folder:
    """Create folder in storage and database.

    Transaction safety: the container is created in the object store
    first, then the DB record. If the DB write fails, the container
    marker is deleted again (rollback).

    Args:
        user: Owner of the folder.
        name: Folder name.
        parent_id: Parent folder UUID, None for the root level.
        description: Optional description.
        color: Optional #RRGGBB color.
        is_public: Publish the folder right away.

    Returns:
        Created Folder instance.

    Raises:
        InvalidInputError: If name, description or color is invalid.
        NotFoundError: If parent folder not found.
        InvalidOperationError: If the folder would be nested too deep.
        ConflictError: If an active sibling has the same name.
        DependencyFailureError: If the container cannot be created.
    """
    name = validate_name(name)
    description = validate_description(description)
    color = validate_color(color)

    ancestor_ids: list[uuid.UUID] = []
    if parent_id is not None:
        parent = get_owned_folder(user, parent_id)
        parent_id = parent.id
        ancestor_ids = get_ancestor_ids(user, parent.id)
        if len(ancestor_ids) >= settings.DRIVE_MAX_FOLDER_DEPTH:
            raise _nesting_too_deep()

    ensure_unique_folder_name(user, parent_id, name)

    folder_id = uuid.uuid4()
    public_link = None
    if is_public:
        public_link = generate_public_link(settings.DRIVE_PUBLIC_LINK_BYTES)
    storage_prefix = build_container_prefix(
        user.id,
        [*reversed(ancestor_ids), folder_id],
    )

    # Step 1: Create the container first
    store = get_object_store()
    with store_operation('create_container', storage_prefix):
        marker_key = store.create_container(storage_prefix)

    # Step 2: Create database record (in transaction)
    try:
        with transaction.atomic():
            folder = Folder.objects.create(
                id=folder_id,
                user=user,
                parent_id=parent_id,
                name=name,
                description=description,
                color=color,
                storage_prefix=storage_prefix,
                is_public=is_public,
                public_link=public_link,
            )
    except IntegrityError:
        logger.warning(
            'Folder insert rejected by unique constraint: %s',
            name,
        )
        store.rollback_upload(marker_key)
        raise ConflictError('Folder', name) from None
    except Exception:
        logger.exception(
            'Database transaction failed, rolling back container: %s',
            storage_prefix,
        )
        store.rollback_upload(marker_key)
        raise

    logger.info(
        'Folder created: %s (ID: %s, user: %s)',
        name,
        folder.id,
        user.username,
    )

    return folder


def get_folder(user: _User, folder_id: object) -> Folder:
    """Get an active folder of the user.

    Raises:
        NotFoundError: If folder not found.
    """
    return get_owned_folder(user, folder_id)


def get_folder_details(user: _User, folder_id: object) -> FolderDetails:
    """Get folder with its active subfolders and files.

    Args:
        user: Folder owner.
        folder_id: Folder UUID.

    Returns:
        FolderDetails with direct contents and file totals.

    Raises:
        NotFoundError: If folder not found.
    """
    folder = get_owned_folder(user, folder_id)
    children = Folder.objects.filter(user=user, parent=folder)
    files = File.objects.filter(user=user, folder=folder)
    totals = files.aggregate(
        file_count=Count('id'),
        total_size=Sum('size_bytes'),
    )
    return FolderDetails(
        folder=folder,
        children=children,
        files=files,
        file_count=totals['file_count'],
        total_size=totals['total_size'] or 0,
    )


def list_folders(
    user: _User,
    parent_id: object = ANY_PARENT,
    search: str = '',
) -> QuerySet[Folder]:
    """List active folders of the user.

    Args:
        user: Folder owner.
        parent_id: Only children of this folder; None means the root
            level, ``ANY_PARENT`` means every folder.
        search: Case-insensitive substring of the name.

    Returns:
        QuerySet of folders ordered by name.
    """
    folders = Folder.objects.filter(user=user)
    if parent_id is not ANY_PARENT:
        if parent_id is not None:
            parent_id = get_owned_folder(user, parent_id).id
        folders = folders.filter(parent_id=parent_id)
    if search:
        folders = folders.filter(name__icontains=search)
    return folders.order_by('name')


def update_folder(
    user: _User,
    folder_id: object,
    name: str | None = None,
    description: str | None = None,
    color: str | None = None,
) -> Folder:
    """Rename or restyle a folder.

    Only the arguments that are not None are changed.

    Raises:
        NotFoundError: If folder not found.
        InvalidInputError: If a new value is invalid.
        ConflictError: If the new name is taken among siblings.
    """
    folder = get_owned_folder(user, folder_id)
    update_fields = ['modified_at']

    if name is not None:
        name = validate_name(name)
        if name != folder.name:
            ensure_unique_folder_name(
                user,
                folder.parent_id,
                name,
                exclude_id=folder.id,
            )
            folder.name = name
            update_fields.append('name')
    if description is not None:
        folder.description = validate_description(description)
        update_fields.append('description')
    if color is not None:
        folder.color = validate_color(color)
        update_fields.append('color')

    try:
        with transaction.atomic():
            folder.save(update_fields=update_fields)
    except IntegrityError:
        raise ConflictError('Folder', folder.name) from None

    logger.info('Folder updated: %s (ID: %s)', folder.name, folder.id)
    return folder


def move_folder(user: _User, folder_id: object, new_parent_id: object) -> Folder:
    """Move folder under a new parent (None moves it to the root level).

    The check order is: folder exists, no cycle, parent exists, name
    free in the new location.

    Args:
        user: Folder owner.
        folder_id: Folder to move.
        new_parent_id: Destination parent UUID or None.

    Returns:
        Updated Folder instance.

    Raises:
        NotFoundError: If folder or new parent not found.
        InvalidOperationError: If the move would create a cycle or nest
            the subtree too deep.
        ConflictError: If the name is taken in the destination.
    """
    folder = get_owned_folder(user, folder_id)

    ancestor_ids: list[uuid.UUID] = []
    if new_parent_id is not None:
        ancestor_ids = get_ancestor_ids(user, new_parent_id)
        if folder.id in ancestor_ids:
            logger.warning(
                'Rejected circular move of folder %s under %s',
                folder.id,
                new_parent_id,
            )
            raise InvalidOperationError(
                'Cannot move folder: would create circular reference',
            )
        new_parent_id = get_owned_folder(user, new_parent_id).id

    depth = len(ancestor_ids) + 1 + _subtree_height(folder)
    if depth > settings.DRIVE_MAX_FOLDER_DEPTH:
        raise _nesting_too_deep()

    ensure_unique_folder_name(
        user,
        new_parent_id,
        folder.name,
        exclude_id=folder.id,
    )

    old_parent_id = folder.parent_id
    folder.parent_id = new_parent_id
    try:
        with transaction.atomic():
            folder.save(update_fields=['parent', 'modified_at'])
    except IntegrityError:
        raise ConflictError('Folder', folder.name) from None

    logger.info(
        'Folder moved: %s (ID: %s) %s -> %s',
        folder.name,
        folder.id,
        old_parent_id,
        new_parent_id,
    )
    return folder


def get_folder_tree(user: _User) -> list[FolderNode]:
    """Build nested tree of all active folders of the user."""
    folders = Folder.objects.filter(user=user).order_by('name')
    return build_folder_tree(folders)


def get_folder_path(folder: Folder) -> str:
    """Build human readable path of a folder.

    Example: folder 'C' inside 'A/B' -> '/A/B/C'

    Args:
        folder: Folder instance.

    Returns:
        Slash separated names from the root down to the folder.
    """
    names = [folder.name]
    current = folder
    for _ in range(settings.DRIVE_MAX_FOLDER_DEPTH):
        if current.parent_id is None:
            break
        current = current.parent
        names.append(current.name)
    return '/' + '/'.join(reversed(names))


def get_folder_stats(user: _User) -> FolderStats:
    """Count folders and sum file sizes per folder.

    Args:
        user: Folder owner.

    Returns:
        FolderStats; files at the root level are grouped under a None
        folder id.
    """
    total_folders = Folder.objects.filter(user=user).count()
    folder_sizes = File.objects.filter(user=user).values(
        'folder_id',
    ).annotate(
        file_count=Count('id'),
        total_size=Sum('size_bytes'),
    ).order_by('folder_id')
    return FolderStats(
        total_folders=total_folders,
        folder_sizes=list(folder_sizes),
    )
