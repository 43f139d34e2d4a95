"""JSON API views for drive app.

Views are thin: they parse the request, call the business logic with the
authenticated user and serialize the result. Every response has the shape
``{"success": bool, "message": str, "data": ...}``.
"""

import functools
import json
import logging
from collections.abc import Callable
from typing import Any, Final

from django.core.paginator import Paginator
from django.db import transaction
from django.http import FileResponse, HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.http import require_http_methods

from server.apps.drive import serializers
from server.apps.drive.exceptions import DriveError, ErrorKind, InvalidInputError
from server.apps.drive.logic import (
    file_operations,
    folder_operations,
    sharing_operations,
    trash_operations,
)

logger = logging.getLogger(__name__)

_STATUS_BY_KIND: Final = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 400,
    ErrorKind.INVALID_OPERATION: 400,
    ErrorKind.VALIDATION: 400,
    ErrorKind.DEPENDENCY_FAILURE: 502,
}
_DEFAULT_PAGE_SIZE: Final = 20
_MAX_PAGE_SIZE: Final = 100
_ROOT_VALUES: Final = frozenset(('', 'null', 'root'))
_TRUE_VALUES: Final = frozenset(('1', 'true', 'yes', 'on'))

_View = Callable[..., HttpResponse]


def _respond(
    data: Any = None,
    message: str = '',
    status: int = 200,
) -> JsonResponse:
    return JsonResponse(
        {'success': status < 400, 'message': message, 'data': data},
        status=status,
    )


def drive_api(view: _View) -> _View:
    """Turn drive errors into JSON error responses.

    Args:
        view: View function to wrap.

    Returns:
        Wrapped view.
    """
    @functools.wraps(view)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        try:
            return view(request, *args, **kwargs)
        except DriveError as error:
            status = _STATUS_BY_KIND[error.kind]
            logger.info(
                '%s %s rejected with %d: %s',
                request.method,
                request.path,
                status,
                error,
            )
            return _respond({'error': error.kind.value}, str(error), status)
        except Exception:
            logger.exception('Unhandled error in %s %s', request.method, request.path)
            return _respond(message='Internal server error', status=500)
    return wrapper


def login_required_api(view: _View) -> _View:
    """Reject anonymous requests with 401 instead of a login redirect."""
    @functools.wraps(view)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        if not request.user.is_authenticated:
            return _respond(message='Authentication required', status=401)
        return view(request, *args, **kwargs)
    return drive_api(wrapper)


def _json_body(request: HttpRequest) -> dict[str, Any]:
    """Parse JSON request body, empty body means no fields."""
    if not request.body:
        return {}
    try:
        body = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidInputError('body', 'Request body must be valid JSON') from None
    if not isinstance(body, dict):
        raise InvalidInputError('body', 'Request body must be a JSON object')
    return body


def _parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _optional_id(value: object) -> object:
    """Map empty and 'null' ids to None (the root level)."""
    if value is None or (isinstance(value, str) and value.lower() in _ROOT_VALUES):
        return None
    return value


def _paginate(request: HttpRequest, items: Any) -> Any:
    """Get requested page of a queryset using page and limit parameters."""
    try:
        limit = int(request.GET.get('limit', _DEFAULT_PAGE_SIZE))
    except ValueError:
        raise InvalidInputError('limit', 'limit must be an integer') from None
    limit = min(max(limit, 1), _MAX_PAGE_SIZE)
    return Paginator(items, limit).get_page(request.GET.get('page'))


# Folders

@require_http_methods(['GET', 'POST'])
@login_required_api
def folders(request: HttpRequest) -> HttpResponse:
    """List folders (GET) or create a folder (POST)."""
    if request.method == 'POST':
        body = _json_body(request)
        folder = folder_operations.create_folder(
            request.user,
            body.get('name'),  # type: ignore[arg-type]
            parent_id=_optional_id(body.get('parent_id')),
            description=body.get('description', ''),
            color=body.get('color', ''),
            is_public=_parse_bool(body.get('is_public', False)),
        )
        return _respond(
            serializers.serialize_folder(folder),
            'Folder created successfully',
            status=201,
        )

    parent_id: object = folder_operations.ANY_PARENT
    if 'parent_id' in request.GET:
        parent_id = _optional_id(request.GET['parent_id'])
    queryset = folder_operations.list_folders(
        request.user,
        parent_id=parent_id,
        search=request.GET.get('search', ''),
    )
    page = _paginate(request, queryset)
    return _respond(serializers.serialize_page(
        page,
        'folders',
        [serializers.serialize_folder(folder) for folder in page],
    ))


@require_http_methods(['GET'])
@login_required_api
def folder_tree(request: HttpRequest) -> HttpResponse:
    """Nested tree of all active folders."""
    return _respond(folder_operations.get_folder_tree(request.user))


@require_http_methods(['GET'])
@login_required_api
def folder_stats(request: HttpRequest) -> HttpResponse:
    stats = folder_operations.get_folder_stats(request.user)
    return _respond(serializers.serialize_folder_stats(stats))


@require_http_methods(['GET', 'PATCH', 'DELETE'])
@login_required_api
def folder_detail(request: HttpRequest, folder_id: str) -> HttpResponse:
    """Get details (GET), update (PATCH) or trash (DELETE) a folder."""
    user = request.user
    if request.method == 'DELETE':
        trash_operations.soft_delete_folder(user, folder_id)
        return _respond(message='Folder moved to trash')

    if request.method == 'PATCH':
        body = _json_body(request)
        with transaction.atomic():
            folder = folder_operations.update_folder(
                user,
                folder_id,
                name=body.get('name'),
                description=body.get('description'),
                color=body.get('color'),
            )
            if 'parent_id' in body:
                folder = folder_operations.move_folder(
                    user,
                    folder_id,
                    _optional_id(body['parent_id']),
                )
            if 'is_public' in body:
                folder = sharing_operations.set_folder_visibility(
                    user,
                    folder_id,
                    is_public=_parse_bool(body['is_public']),
                )
        return _respond(
            serializers.serialize_folder(folder),
            'Folder updated successfully',
        )

    details = folder_operations.get_folder_details(user, folder_id)
    return _respond(serializers.serialize_folder_details(details))


@require_http_methods(['POST'])
@login_required_api
def folder_move(request: HttpRequest, folder_id: str) -> HttpResponse:
    body = _json_body(request)
    folder = folder_operations.move_folder(
        request.user,
        folder_id,
        _optional_id(body.get('parent_id')),
    )
    return _respond(
        serializers.serialize_folder(folder),
        'Folder moved successfully',
    )


@require_http_methods(['POST'])
@login_required_api
def folder_restore(request: HttpRequest, folder_id: str) -> HttpResponse:
    folder = trash_operations.restore_folder(request.user, folder_id)
    return _respond(
        serializers.serialize_folder(folder),
        'Folder restored successfully',
    )


@require_http_methods(['DELETE'])
@login_required_api
def folder_permanent_delete(request: HttpRequest, folder_id: str) -> HttpResponse:
    deleted = trash_operations.permanent_delete_folder(request.user, folder_id)
    return _respond({'deleted': deleted}, 'Folder permanently deleted')


# Files

@require_http_methods(['GET'])
@login_required_api
def files(request: HttpRequest) -> HttpResponse:
    """List files with optional folder, search, type and sort filters."""
    folder_id: object = file_operations.ANY_FOLDER
    if 'folder_id' in request.GET:
        folder_id = _optional_id(request.GET['folder_id'])
    queryset = file_operations.list_files(
        request.user,
        folder_id=folder_id,
        search=request.GET.get('search', ''),
        type_prefix=request.GET.get('type', ''),
        ordering=request.GET.get('sort', '-created_at'),
    )
    page = _paginate(request, queryset)
    return _respond(serializers.serialize_page(
        page,
        'files',
        [serializers.serialize_file(file_instance) for file_instance in page],
    ))


@require_http_methods(['POST'])
@login_required_api
def file_upload(request: HttpRequest) -> HttpResponse:
    """Upload a single file from the multipart field 'file'."""
    uploaded_file = request.FILES.get('file')
    if uploaded_file is None:
        raise InvalidInputError('file', 'No file uploaded')
    file_instance = file_operations.upload_file(
        request.user,
        uploaded_file,
        folder_id=_optional_id(request.POST.get('folder_id')),
        description=request.POST.get('description', ''),
        is_public=_parse_bool(request.POST.get('is_public', False)),
    )
    return _respond(
        serializers.serialize_file(file_instance),
        'File uploaded successfully',
        status=201,
    )


@require_http_methods(['POST'])
@login_required_api
def file_upload_multiple(request: HttpRequest) -> HttpResponse:
    """Upload the files of the multipart field 'files'.

    Responds 201 when at least one file was stored; per-file outcomes
    are listed in the payload.
    """
    results = file_operations.upload_files(
        request.user,
        request.FILES.getlist('files'),
        folder_id=_optional_id(request.POST.get('folder_id')),
        description=request.POST.get('description', ''),
        is_public=_parse_bool(request.POST.get('is_public', False)),
    )
    stored = sum(1 for result in results if result.success)
    return _respond(
        {
            'results': [
                serializers.serialize_upload_result(result)
                for result in results
            ],
            'uploaded': stored,
            'failed': len(results) - stored,
        },
        f'{stored} of {len(results)} files uploaded successfully',
        status=201 if stored else 400,
    )


@require_http_methods(['GET'])
@login_required_api
def file_stats(request: HttpRequest) -> HttpResponse:
    stats = file_operations.get_file_stats(request.user)
    return _respond(serializers.serialize_file_stats(stats))


@require_http_methods(['GET', 'PATCH', 'DELETE'])
@login_required_api
def file_detail(request: HttpRequest, file_id: str) -> HttpResponse:
    """Get (GET), update (PATCH) or trash (DELETE) a file."""
    user = request.user
    if request.method == 'DELETE':
        trash_operations.soft_delete_file(user, file_id)
        return _respond(message='File moved to trash')

    if request.method == 'PATCH':
        body = _json_body(request)
        with transaction.atomic():
            file_instance = file_operations.update_file(
                user,
                file_id,
                name=body.get('name'),
                description=body.get('description'),
            )
            if 'is_public' in body:
                file_instance = sharing_operations.set_file_visibility(
                    user,
                    file_id,
                    is_public=_parse_bool(body['is_public']),
                )
        return _respond(
            serializers.serialize_file(file_instance),
            'File updated successfully',
        )

    file_instance = file_operations.get_file(user, file_id, touch=True)
    return _respond(serializers.serialize_file(file_instance))


@require_http_methods(['GET'])
@login_required_api
def file_download(request: HttpRequest, file_id: str) -> HttpResponse:
    file_instance, payload = file_operations.open_file_for_download(
        request.user,
        file_id,
    )
    return FileResponse(
        payload,
        as_attachment=True,
        filename=file_instance.get_filename(),
        content_type=file_instance.mime_type,
    )


@require_http_methods(['GET'])
@login_required_api
def file_preview(request: HttpRequest, file_id: str) -> HttpResponse:
    preview = file_operations.get_preview_url(request.user, file_id)
    return _respond(serializers.serialize_preview(preview))


@require_http_methods(['POST'])
@login_required_api
def file_move(request: HttpRequest, file_id: str) -> HttpResponse:
    body = _json_body(request)
    file_instance = file_operations.move_file(
        request.user,
        file_id,
        _optional_id(body.get('folder_id')),
    )
    return _respond(
        serializers.serialize_file(file_instance),
        'File moved successfully',
    )


@require_http_methods(['POST'])
@login_required_api
def file_copy(request: HttpRequest, file_id: str) -> HttpResponse:
    body = _json_body(request)
    file_instance = file_operations.copy_file(
        request.user,
        file_id,
        name=body.get('name'),
        folder_id=_optional_id(body.get('folder_id')),
    )
    return _respond(
        serializers.serialize_file(file_instance),
        'File copied successfully',
        status=201,
    )


@require_http_methods(['POST'])
@login_required_api
def file_restore(request: HttpRequest, file_id: str) -> HttpResponse:
    file_instance = trash_operations.restore_file(request.user, file_id)
    return _respond(
        serializers.serialize_file(file_instance),
        'File restored successfully',
    )


@require_http_methods(['DELETE'])
@login_required_api
def file_permanent_delete(request: HttpRequest, file_id: str) -> HttpResponse:
    trash_operations.permanent_delete_file(request.user, file_id)
    return _respond(message='File permanently deleted')


# Trash

@require_http_methods(['GET', 'DELETE'])
@login_required_api
def trash(request: HttpRequest) -> HttpResponse:
    """List (GET) or empty (DELETE) the trash."""
    if request.method == 'DELETE':
        deleted = trash_operations.empty_trash(request.user)
        return _respond({'deleted': deleted}, 'Trash emptied')
    return _respond(
        serializers.serialize_trash(trash_operations.list_trash(request.user)),
    )


# Public links

@require_http_methods(['GET'])
@drive_api
def public_folder(request: HttpRequest, public_link: str) -> HttpResponse:
    shared = sharing_operations.get_public_folder(public_link)
    return _respond(serializers.serialize_public_folder(shared))


@require_http_methods(['GET'])
@drive_api
def public_file(request: HttpRequest, public_link: str) -> HttpResponse:
    file_instance = sharing_operations.get_public_file(public_link)
    return _respond(serializers.serialize_public_file(file_instance))


@require_http_methods(['GET'])
@drive_api
def public_file_download(request: HttpRequest, public_link: str) -> HttpResponse:
    file_instance, payload = sharing_operations.open_public_file_for_download(
        public_link,
    )
    return FileResponse(
        payload,
        as_attachment=True,
        filename=file_instance.get_filename(),
        content_type=file_instance.mime_type,
    )
