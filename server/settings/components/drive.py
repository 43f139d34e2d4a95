"""Cloud drive settings."""

from decouple import Csv

from server.settings.components import config

# Upload limits
DRIVE_MAX_UPLOAD_SIZE = config(
    'DRIVE_MAX_UPLOAD_SIZE',
    cast=int,
    default=100 * 1024 * 1024,
)
DRIVE_MAX_UPLOAD_FILES = config('DRIVE_MAX_UPLOAD_FILES', cast=int, default=10)

# Patterns ending with /* match the whole MIME family
DRIVE_ALLOWED_MIME_TYPES = config(
    'DRIVE_ALLOWED_MIME_TYPES',
    cast=Csv(),
    default=','.join((
        'image/*',
        'video/*',
        'audio/*',
        'text/*',
        'application/pdf',
        'application/msword',
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
        'application/vnd.ms-excel',
        'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        'application/vnd.ms-powerpoint',
        'application/vnd.openxmlformats-officedocument.presentationml.presentation',
        'application/zip',
        'application/json',
        'application/octet-stream',
    )),
)

# Hierarchy
DRIVE_MAX_FOLDER_DEPTH = config('DRIVE_MAX_FOLDER_DEPTH', cast=int, default=64)

# Trash retention before cleanup_trash purges items
DRIVE_TRASH_RETENTION_DAYS = config(
    'DRIVE_TRASH_RETENTION_DAYS',
    cast=int,
    default=30,
)

# Sharing and previews
DRIVE_PUBLIC_LINK_BYTES = config('DRIVE_PUBLIC_LINK_BYTES', cast=int, default=24)
DRIVE_PRESIGNED_URL_EXPIRY = config(
    'DRIVE_PRESIGNED_URL_EXPIRY',
    cast=int,
    default=3600,
)
