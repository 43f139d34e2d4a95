"""JSON representations of drive records for the API."""

from typing import Any

from django.core.paginator import Page

from server.apps.drive.logic.file_operations import (
    FileStats,
    PreviewInfo,
    UploadResult,
)
from server.apps.drive.logic.folder_operations import (
    FolderDetails,
    FolderStats,
    get_folder_path,
)
from server.apps.drive.logic.sharing_operations import PublicFolder
from server.apps.drive.logic.trash_operations import Trash
from server.apps.drive.models import File, Folder


def _optional_id(value: object) -> str | None:
    return None if value is None else str(value)


def serialize_folder(folder: Folder) -> dict[str, Any]:
    """Serialize folder fields visible to its owner."""
    return {
        'id': str(folder.id),
        'name': folder.name,
        'description': folder.description,
        'color': folder.color,
        'parent_id': _optional_id(folder.parent_id),
        'is_public': folder.is_public,
        'public_link': folder.public_link,
        'is_deleted': folder.is_deleted,
        'deleted_at': folder.deleted_at,
        'created_at': folder.created_at,
        'modified_at': folder.modified_at,
    }


def serialize_file(file_instance: File) -> dict[str, Any]:
    """Serialize file fields visible to its owner."""
    return {
        'id': str(file_instance.id),
        'name': file_instance.name,
        'filename': file_instance.get_filename(),
        'original_name': file_instance.original_name,
        'extension': file_instance.extension,
        'description': file_instance.description,
        'mime_type': file_instance.mime_type,
        'file_type': file_instance.get_file_type(),
        'size_bytes': file_instance.size_bytes,
        'checksum_sha256': file_instance.checksum_sha256,
        'folder_id': _optional_id(file_instance.folder_id),
        'is_public': file_instance.is_public,
        'public_link': file_instance.public_link,
        'is_deleted': file_instance.is_deleted,
        'deleted_at': file_instance.deleted_at,
        'download_count': file_instance.download_count,
        'last_accessed_at': file_instance.last_accessed_at,
        'created_at': file_instance.created_at,
        'modified_at': file_instance.modified_at,
    }


def serialize_folder_details(details: FolderDetails) -> dict[str, Any]:
    """Serialize folder with path, subfolders and files."""
    data = serialize_folder(details.folder)
    data.update({
        'path': get_folder_path(details.folder),
        'children': [serialize_folder(child) for child in details.children],
        'files': [serialize_file(child) for child in details.files],
        'file_count': details.file_count,
        'total_size': details.total_size,
    })
    return data


def serialize_folder_stats(stats: FolderStats) -> dict[str, Any]:
    return {
        'total_folders': stats.total_folders,
        'folder_sizes': [
            {
                'folder_id': _optional_id(row['folder_id']),
                'file_count': row['file_count'],
                'total_size': row['total_size'] or 0,
            }
            for row in stats.folder_sizes
        ],
    }


def serialize_file_stats(stats: FileStats) -> dict[str, Any]:
    return {
        'total_files': stats.total_files,
        'total_size': stats.total_size,
        'total_downloads': stats.total_downloads,
        'file_types': stats.file_types,
    }


def serialize_preview(preview: PreviewInfo) -> dict[str, Any]:
    return {
        'preview_url': preview.url,
        'file_type': preview.file_type,
        'mime_type': preview.mime_type,
        'expires_in': preview.expires_in,
    }


def serialize_upload_result(result: UploadResult) -> dict[str, Any]:
    """Serialize one batch upload item, successful or not."""
    if result.file is not None:
        return {
            'filename': result.filename,
            'success': True,
            'file': serialize_file(result.file),
        }
    return {
        'filename': result.filename,
        'success': False,
        'error': result.error.kind.value if result.error else None,
        'message': str(result.error),
    }


def serialize_trash(trash: Trash) -> dict[str, Any]:
    return {
        'folders': [serialize_folder(folder) for folder in trash.folders],
        'files': [serialize_file(file_instance) for file_instance in trash.files],
    }


def serialize_public_file(file_instance: File) -> dict[str, Any]:
    """Serialize file fields shown to anonymous visitors."""
    return {
        'id': str(file_instance.id),
        'name': file_instance.get_filename(),
        'original_name': file_instance.original_name,
        'size_bytes': file_instance.size_bytes,
        'mime_type': file_instance.mime_type,
        'description': file_instance.description,
        'uploaded_by': file_instance.user.username,
        'uploaded_at': file_instance.created_at,
        'download_count': file_instance.download_count,
    }


def serialize_public_folder(public_folder: PublicFolder) -> dict[str, Any]:
    """Serialize shared folder and its files for anonymous visitors."""
    folder = public_folder.folder
    return {
        'id': str(folder.id),
        'name': folder.name,
        'description': folder.description,
        'uploaded_by': folder.user.username,
        'created_at': folder.created_at,
        'files': [
            {
                'id': str(file_instance.id),
                'name': file_instance.get_filename(),
                'size_bytes': file_instance.size_bytes,
                'mime_type': file_instance.mime_type,
                'created_at': file_instance.created_at,
            }
            for file_instance in public_folder.files
        ],
    }


def serialize_page(page: Page, key: str, items: list[Any]) -> dict[str, Any]:
    """Wrap a page of serialized items with pagination info.

    Args:
        page: Page from a Django paginator.
        key: Name of the list in the payload ('folders' or 'files').
        items: Serialized items of the page.

    Returns:
        Payload with the items and a 'pagination' block.
    """
    return {
        key: items,
        'pagination': {
            'current_page': page.number,
            'total_pages': page.paginator.num_pages,
            'total_items': page.paginator.count,
            'has_next_page': page.has_next(),
            'has_prev_page': page.has_previous(),
        },
    }
