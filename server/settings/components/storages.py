"""Django storage configuration for file payloads.

Two interchangeable backends implement the drive object store:

- ``s3``: django-storages S3Storage (MinIO locally, R2/S3 in production)
- ``memory``: Django's InMemoryStorage, used when no bucket is configured
  and by the test suite

The backend is picked once at startup from ``DRIVE_STORAGE_BACKEND``.
"""

from typing import Any, Final

from server.settings.components import config

_BACKENDS: Final = {
    's3': 'server.apps.drive.infrastructure.storage.DriveS3Storage',
    'memory': 'server.apps.drive.infrastructure.storage.DriveMemoryStorage',
}

DRIVE_STORAGE_BACKEND = config('DRIVE_STORAGE_BACKEND', default='memory')


def _storage_options(backend: str) -> dict[str, Any]:
    if backend == 's3':
        return {
            'bucket_name': config('AWS_STORAGE_BUCKET_NAME'),
            'access_key': config('AWS_ACCESS_KEY_ID'),
            'secret_key': config('AWS_SECRET_ACCESS_KEY'),
            'endpoint_url': config(
                'AWS_S3_ENDPOINT_URL',
                default=None,
            ),
            'region_name': config(
                'AWS_S3_REGION_NAME',
                default='auto',
            ),
            'file_overwrite': False,  # Prevent accidental overwrites
            'default_acl': None,  # Inherit bucket ACL
        }
    return {}


# Storage configuration dictionary
# User files go to the drive backend, static files stay on local disk
STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': _BACKENDS[DRIVE_STORAGE_BACKEND],
        'OPTIONS': _storage_options(DRIVE_STORAGE_BACKEND),
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}
