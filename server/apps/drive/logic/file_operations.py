"""Business logic for file operations."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import IO, Any, Final

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import UploadedFile
from django.db import IntegrityError, transaction
from django.db.models import Count, F, QuerySet, Sum
from django.utils import timezone

from server.apps.drive.exceptions import (
    ConflictError,
    DriveError,
    InvalidInputError,
    InvalidOperationError,
    NotFoundError,
)
from server.apps.drive.infrastructure.metadata import (
    build_object_key,
    calculate_checksum,
    detect_mime_type,
    generate_public_link,
    is_mime_type_allowed,
    split_filename,
    validate_description,
    validate_name,
)
from server.apps.drive.infrastructure.storage import (
    get_object_store,
    store_operation,
)
from server.apps.drive.logic.folder_operations import get_owned_folder
from server.apps.drive.models import NAME_MAX_LENGTH, File

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)

# Passed as folder_id to list files regardless of their folder
ANY_FOLDER: Final = object()

ALLOWED_ORDERINGS: Final = frozenset((
    'name',
    '-name',
    'created_at',
    '-created_at',
    'modified_at',
    '-modified_at',
    'size_bytes',
    '-size_bytes',
    'download_count',
    '-download_count',
))


@dataclass(frozen=True, slots=True)
class UploadResult:
    """Outcome of one file in a batch upload."""

    filename: str
    file: File | None = None
    error: DriveError | None = None

    @property
    def success(self) -> bool:
        """Whether the file was stored."""
        return self.error is None


@dataclass(frozen=True, slots=True)
class PreviewInfo:
    """Temporary URL for displaying a file in the browser."""

    url: str
    file_type: str
    mime_type: str
    expires_in: int


@dataclass(frozen=True, slots=True)
class FileStats:
    """File totals of one owner."""

    total_files: int
    total_size: int
    total_downloads: int
    file_types: list[dict[str, Any]]


def get_owned_file(
    user: _User,
    file_id: object,
    *,
    include_deleted: bool = False,
) -> File:
    """Get file owned by user.

    Args:
        user: File owner.
        file_id: File UUID.
        include_deleted: Also return files in the trash.

    Returns:
        File instance.

    Raises:
        NotFoundError: If file not found, deleted or owned by someone else.
    """
    manager = File.all_objects if include_deleted else File.objects
    try:
        return manager.get(id=file_id, user=user)
    except (File.DoesNotExist, ValidationError):
        raise NotFoundError('File', file_id) from None


def ensure_unique_file_name(  # noqa: WPS211
    user: _User,
    folder_id: object,
    name: str,
    extension: str,
    exclude_id: object = None,
) -> None:
    """Check that no active file in the folder uses the name.

    Raises:
        ConflictError: If the name is taken.
    """
    siblings = File.objects.filter(
        user=user,
        folder_id=folder_id,
        name=name,
        extension=extension,
    )
    if exclude_id is not None:
        siblings = siblings.exclude(id=exclude_id)
    if siblings.exists():
        filename = f'{name}.{extension}' if extension else name
        logger.warning(
            'File name conflict for user %s: %s (folder: %s)',
            user.username,
            filename,
            folder_id,
        )
        raise ConflictError('File', filename)


def _resolve_folder_id(user: _User, folder_id: object) -> object:
    """Validate an optional destination folder and return its id."""
    if folder_id is None:
        return None
    return get_owned_folder(user, folder_id).id


def _validate_upload(uploaded_file: UploadedFile) -> str:
    """Check size and type limits, return the detected MIME type."""
    max_size = settings.DRIVE_MAX_UPLOAD_SIZE
    if uploaded_file.size > max_size:
        raise InvalidInputError(
            'file',
            f'File exceeds the maximum upload size of {max_size} bytes',
        )

    mime_type = detect_mime_type(
        uploaded_file.name or '',
        getattr(uploaded_file, 'content_type', None),
    )
    if not is_mime_type_allowed(mime_type, settings.DRIVE_ALLOWED_MIME_TYPES):
        raise InvalidInputError('file', f'File type not allowed: {mime_type}')
    return mime_type


def upload_file(  # noqa: WPS210
    user: _User,
    uploaded_file: UploadedFile,
    folder_id: object = None,
    description: str = '',
    is_public: bool = False,
) -> File:
    """Upload file to storage and create database record.

    Transaction safety: Upload to storage first, then create DB record.
    If DB transaction fails, the uploaded file is deleted from storage
    (rollback).

    Args:
        user: Owner of the file.
        uploaded_file: Uploaded file from the request.
        folder_id: Destination folder UUID, None for the root level.
        description: Optional description.
        is_public: Publish the file right away.

    Returns:
        Created File instance.

    Raises:
        InvalidInputError: If the upload is too large, of a disallowed
            type or badly named.
        NotFoundError: If the folder not found.
        ConflictError: If the name is taken in the folder.
        DependencyFailureError: If the payload cannot be stored.
    """
    mime_type = _validate_upload(uploaded_file)
    original_name = uploaded_file.name or ''
    name, extension = split_filename(original_name)
    name = validate_name(name, field='file')
    description = validate_description(description)

    folder_id = _resolve_folder_id(user, folder_id)
    ensure_unique_file_name(user, folder_id, name, extension)

    # Calculate metadata
    logger.info('Calculating metadata for file: %s', original_name)
    checksum = calculate_checksum(uploaded_file)

    public_link = None
    if is_public:
        public_link = generate_public_link(settings.DRIVE_PUBLIC_LINK_BYTES)

    # Step 1: Upload to storage first
    store = get_object_store()
    object_key = build_object_key(user.id, extension)
    with store_operation('put_object', object_key):
        saved_key = store.put_object(object_key, uploaded_file)

    # Step 2: Create database record (in transaction)
    try:
        with transaction.atomic():
            file_instance = File.objects.create(
                user=user,
                folder_id=folder_id,
                name=name,
                original_name=original_name[:NAME_MAX_LENGTH],
                extension=extension,
                description=description,
                mime_type=mime_type,
                size_bytes=uploaded_file.size,
                checksum_sha256=checksum,
                storage_key=saved_key,
                is_public=is_public,
                public_link=public_link,
            )
    except IntegrityError:
        logger.warning(
            'File insert rejected by unique constraint: %s',
            original_name,
        )
        store.rollback_upload(saved_key)
        raise ConflictError('File', original_name) from None
    except Exception:
        # Rollback: Delete file from storage since DB transaction failed
        logger.exception(
            'Database transaction failed, rolling back storage upload: %s',
            saved_key,
        )
        store.rollback_upload(saved_key)
        raise

    logger.info(
        'File uploaded: %s (ID: %s, size: %d)',
        file_instance.get_filename(),
        file_instance.id,
        file_instance.size_bytes,
    )
    return file_instance


def upload_files(
    user: _User,
    uploaded_files: Sequence[UploadedFile],
    folder_id: object = None,
    description: str = '',
    is_public: bool = False,
) -> list[UploadResult]:
    """Upload several files, each one independently.

    A failing file does not stop the batch; its error is reported in
    the result instead.

    Args:
        user: Owner of the files.
        uploaded_files: Files from the request.
        folder_id: Destination folder UUID, None for the root level.
        description: Description applied to every file.
        is_public: Publish the files right away.

    Returns:
        One UploadResult per file, in input order.

    Raises:
        InvalidInputError: If no files or too many files are given.
    """
    if not uploaded_files:
        raise InvalidInputError('files', 'No files uploaded')
    max_files = settings.DRIVE_MAX_UPLOAD_FILES
    if len(uploaded_files) > max_files:
        raise InvalidInputError(
            'files',
            f'At most {max_files} files can be uploaded at once',
        )

    results: list[UploadResult] = []
    for uploaded_file in uploaded_files:
        filename = uploaded_file.name or ''
        try:
            file_instance = upload_file(
                user,
                uploaded_file,
                folder_id=folder_id,
                description=description,
                is_public=is_public,
            )
        except DriveError as error:
            logger.warning('Batch upload item failed: %s (%s)', filename, error)
            results.append(UploadResult(filename=filename, error=error))
        else:
            results.append(UploadResult(filename=filename, file=file_instance))

    logger.info(
        'Batch upload for user %s: %d of %d files stored',
        user.username,
        sum(1 for result in results if result.success),
        len(results),
    )
    return results


def get_file(user: _User, file_id: object, touch: bool = False) -> File:
    """Get an active file of the user.

    Args:
        user: File owner.
        file_id: File UUID.
        touch: Record the access time.

    Returns:
        File instance.

    Raises:
        NotFoundError: If file not found.
    """
    file_instance = get_owned_file(user, file_id)
    if touch:
        file_instance.last_accessed_at = timezone.now()
        File.objects.filter(id=file_instance.id).update(
            last_accessed_at=file_instance.last_accessed_at,
        )
    return file_instance


def list_files(  # noqa: WPS211
    user: _User,
    folder_id: object = ANY_FOLDER,
    search: str = '',
    type_prefix: str = '',
    ordering: str = '-created_at',
) -> QuerySet[File]:
    """List active files of the user.

    Args:
        user: File owner.
        folder_id: Only files of this folder; None means the root level,
            ``ANY_FOLDER`` means every file.
        search: Case-insensitive substring of the name.
        type_prefix: MIME type prefix, e.g. 'image/' or 'application/pdf'.
        ordering: One of ``ALLOWED_ORDERINGS``.

    Returns:
        QuerySet of files.

    Raises:
        InvalidInputError: If ordering is not supported.
        NotFoundError: If the folder not found.
    """
    if ordering not in ALLOWED_ORDERINGS:
        raise InvalidInputError('sort', f'Unsupported ordering: {ordering}')

    files = File.objects.filter(user=user).select_related('folder')
    if folder_id is not ANY_FOLDER:
        files = files.filter(folder_id=_resolve_folder_id(user, folder_id))
    if search:
        files = files.filter(name__icontains=search)
    if type_prefix:
        files = files.filter(mime_type__startswith=type_prefix)
    return files.order_by(ordering)


def update_file(
    user: _User,
    file_id: object,
    name: str | None = None,
    description: str | None = None,
) -> File:
    """Rename a file or change its description.

    The extension is kept on rename.

    Raises:
        NotFoundError: If file not found.
        InvalidInputError: If a new value is invalid.
        ConflictError: If the new name is taken in the folder.
    """
    file_instance = get_owned_file(user, file_id)
    update_fields = ['modified_at']

    if name is not None:
        name = validate_name(name)
        if name != file_instance.name:
            ensure_unique_file_name(
                user,
                file_instance.folder_id,
                name,
                file_instance.extension,
                exclude_id=file_instance.id,
            )
            file_instance.name = name
            update_fields.append('name')
    if description is not None:
        file_instance.description = validate_description(description)
        update_fields.append('description')

    try:
        with transaction.atomic():
            file_instance.save(update_fields=update_fields)
    except IntegrityError:
        raise ConflictError('File', file_instance.get_filename()) from None

    logger.info(
        'File updated: %s (ID: %s)',
        file_instance.get_filename(),
        file_instance.id,
    )
    return file_instance


def move_file(user: _User, file_id: object, folder_id: object) -> File:
    """Move file to another folder (None moves it to the root level).

    Only the folder reference changes; the payload stays under its
    storage key.

    Raises:
        NotFoundError: If file or folder not found.
        ConflictError: If the name is taken in the destination.
    """
    file_instance = get_owned_file(user, file_id)
    folder_id = _resolve_folder_id(user, folder_id)

    ensure_unique_file_name(
        user,
        folder_id,
        file_instance.name,
        file_instance.extension,
        exclude_id=file_instance.id,
    )

    old_folder_id = file_instance.folder_id
    file_instance.folder_id = folder_id
    try:
        with transaction.atomic():
            file_instance.save(update_fields=['folder', 'modified_at'])
    except IntegrityError:
        raise ConflictError('File', file_instance.get_filename()) from None

    logger.info(
        'File moved: %s (ID: %s) %s -> %s',
        file_instance.get_filename(),
        file_instance.id,
        old_folder_id,
        folder_id,
    )
    return file_instance


def copy_file(
    user: _User,
    file_id: object,
    name: str | None = None,
    folder_id: object = None,
) -> File:
    """Copy a file to a new record with its own payload.

    The copy is always private and starts with zero downloads.

    Args:
        user: Owner of the file.
        file_id: Source file UUID.
        name: Name of the copy, defaults to '<name>_copy'.
        folder_id: Destination folder UUID, None for the root level.

    Returns:
        New File instance for the copy.

    Raises:
        NotFoundError: If source file or folder not found.
        InvalidInputError: If name is invalid.
        ConflictError: If the name is taken in the destination.
        DependencyFailureError: If the payload cannot be copied.
    """
    source = get_owned_file(user, file_id)
    copy_name = validate_name(
        f'{source.name}_copy' if name is None else name,
    )
    folder_id = _resolve_folder_id(user, folder_id)
    ensure_unique_file_name(user, folder_id, copy_name, source.extension)

    # Step 1: Copy payload in storage
    store = get_object_store()
    dest_key = build_object_key(user.id, source.extension)
    with store_operation('copy_object', source.storage_key):
        dest_key = store.copy_object(source.storage_key, dest_key)

    # Step 2: Create new database record
    try:
        with transaction.atomic():
            new_file = File.objects.create(
                user=user,
                folder_id=folder_id,
                name=copy_name,
                original_name=source.original_name,
                extension=source.extension,
                description=source.description,
                mime_type=source.mime_type,
                size_bytes=source.size_bytes,
                checksum_sha256=source.checksum_sha256,
                storage_key=dest_key,
            )
    except IntegrityError:
        store.rollback_upload(dest_key)
        raise ConflictError('File', copy_name) from None
    except Exception:
        # Rollback: Delete the copied payload
        logger.exception('Database creation failed, rolling back storage copy')
        store.rollback_upload(dest_key)
        raise

    logger.info(
        'File copied: %s -> %s (ID: %s)',
        source.id,
        new_file.get_filename(),
        new_file.id,
    )
    return new_file


def record_download(file_instance: File) -> None:
    """Increment download counter and stamp the access time."""
    now = timezone.now()
    File.all_objects.filter(id=file_instance.id).update(
        download_count=F('download_count') + 1,
        last_accessed_at=now,
    )
    file_instance.refresh_from_db(fields=['download_count', 'last_accessed_at'])


def open_payload(file_instance: File) -> IO[bytes]:
    """Open the payload of a file for reading.

    Raises:
        NotFoundError: If the payload is missing from storage.
        DependencyFailureError: If storage cannot be reached.
    """
    store = get_object_store()
    with store_operation('open_object', file_instance.storage_key):
        exists = store.object_exists(file_instance.storage_key)
    if not exists:
        logger.warning(
            'Payload missing from storage: %s (file ID: %s)',
            file_instance.storage_key,
            file_instance.id,
        )
        raise NotFoundError('File', file_instance.id)
    with store_operation('open_object', file_instance.storage_key):
        return store.open(file_instance.storage_key, 'rb')  # type: ignore[attr-defined]


def open_file_for_download(
    user: _User,
    file_id: object,
) -> tuple[File, IO[bytes]]:
    """Open a file for download and count the download.

    Args:
        user: File owner.
        file_id: File UUID.

    Returns:
        Tuple of file record and open binary stream of its payload.

    Raises:
        NotFoundError: If file or its payload not found.
        DependencyFailureError: If storage cannot be reached.
    """
    file_instance = get_owned_file(user, file_id)
    payload = open_payload(file_instance)
    record_download(file_instance)
    return file_instance, payload


def get_preview_url(user: _User, file_id: object) -> PreviewInfo:
    """Build a temporary URL for previewing a file.

    Raises:
        NotFoundError: If file not found.
        InvalidOperationError: If the file type cannot be previewed.
        DependencyFailureError: If the URL cannot be generated.
    """
    file_instance = get_owned_file(user, file_id)
    if not file_instance.is_previewable():
        raise InvalidOperationError('File type is not previewable')

    expires_in = settings.DRIVE_PRESIGNED_URL_EXPIRY
    store = get_object_store()
    with store_operation('object_url', file_instance.storage_key):
        url = store.object_url(file_instance.storage_key, expires_in)

    return PreviewInfo(
        url=url,
        file_type=file_instance.get_file_type(),
        mime_type=file_instance.mime_type,
        expires_in=expires_in,
    )


def get_file_stats(user: _User) -> FileStats:
    """Count files, bytes and downloads of the user, grouped by type."""
    files = File.objects.filter(user=user)
    totals = files.aggregate(
        total_files=Count('id'),
        total_size=Sum('size_bytes'),
        total_downloads=Sum('download_count'),
    )
    file_types = files.values('mime_type').annotate(
        count=Count('id'),
    ).order_by('mime_type')
    return FileStats(
        total_files=totals['total_files'],
        total_size=totals['total_size'] or 0,
        total_downloads=totals['total_downloads'] or 0,
        file_types=list(file_types),
    )

