"""Object store backends for drive payloads.

The business logic talks to storage through ``DriveStorageMixin``, a thin
layer of container and object operations on top of the Django Storage API.
Two concrete backends mix it in: S3 (django-storages) and in-memory (used
when no bucket is configured and by the test suite).
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Final, final, override

from django.core.files.base import ContentFile
from django.core.files.storage import InMemoryStorage, default_storage
from storages.backends.s3 import S3Storage
from storages.utils import clean_name

from server.apps.drive.exceptions import DependencyFailureError

logger = logging.getLogger(__name__)

# Empty object marking a folder container
CONTAINER_MARKER: Final = '.folder'

# S3 DeleteObjects accepts at most 1000 keys per request
_DELETE_BATCH_SIZE: Final = 1000


class DriveStorageMixin:
    """Container and object operations used by the drive logic.

    Mixed into a Django storage backend; every method is expressed with
    the generic Storage API so it works for any backend, and backends
    override the ones they can do natively.
    """

    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Write a payload or container marker, logging the outcome.

        Args:
            name: Requested object key.
            content: Payload to write.
            max_length: Optional key length limit of the backend.

        Returns:
            Key the backend stored the object under.
        """
        logger.debug('Writing object %s', name)
        try:
            stored_key = super().save(name, content, max_length)  # type: ignore[misc]
        except Exception:
            logger.exception('Object store write failed: %s', name)
            raise
        logger.info('Object written: %s', stored_key)
        return stored_key

    def delete(self, name: str) -> None:
        """Remove one object, logging failures before re-raising."""
        logger.debug('Removing object %s', name)
        try:
            super().delete(name)  # type: ignore[misc]
        except Exception:
            logger.exception('Object store delete failed: %s', name)
            raise

    def put_object(self, key: str, content: Any) -> str:
        """Store a payload under key and return the key actually used."""
        return self.save(key, content)

    def delete_object(self, key: str) -> None:
        """Remove a single payload."""
        self.delete(key)

    def object_exists(self, key: str) -> bool:
        """Check whether a payload is present."""
        return self.exists(key)  # type: ignore[attr-defined]

    def copy_object(self, source_key: str, dest_key: str) -> str:
        """Copy a payload to a new key.

        Args:
            source_key: Existing object key.
            dest_key: Requested destination key.

        Returns:
            Destination key actually used.
        """
        source = self.open(source_key, 'rb')  # type: ignore[attr-defined]
        try:
            return self.save(dest_key, source)
        finally:
            source.close()

    def create_container(self, prefix: str) -> str:
        """Create an empty container (folder marker object).

        Args:
            prefix: Container path, without trailing slash.

        Returns:
            Key of the marker object.
        """
        marker_key = f'{prefix}/{CONTAINER_MARKER}'
        return self.save(marker_key, ContentFile(b''))

    def delete_container(self, prefix: str) -> int:
        """Delete every object under a container prefix.

        Args:
            prefix: Container path, without trailing slash.

        Returns:
            Number of objects deleted.
        """
        try:
            directories, files = self.listdir(prefix)  # type: ignore[attr-defined]
        except FileNotFoundError:
            return 0

        deleted = 0
        for filename in files:
            self.delete(f'{prefix}/{filename}')
            deleted += 1
        for directory in directories:
            deleted += self.delete_container(f'{prefix}/{directory}')
        return deleted

    def object_url(self, key: str, expires_in: int) -> str:
        """Build a URL granting temporary read access.

        Args:
            key: Object key.
            expires_in: Lifetime of the URL in seconds.

        Returns:
            URL to the object.
        """
        return self.url(key)  # type: ignore[attr-defined]

    def rollback_upload(self, name: str) -> None:
        """Remove a payload or container marker whose record was not saved.

        Failures are only logged; the caller re-raises the database
        error that made the cleanup necessary.

        Args:
            name: Key written by the failed create, upload or copy.
        """
        logger.warning('Discarding object without a record: %s', name)
        try:
            self.delete(name)
        except Exception:
            logger.exception('Object left without a record: %s', name)


@final
class DriveS3Storage(DriveStorageMixin, S3Storage):
    """S3-compatible backend (MinIO, R2, AWS) for drive payloads."""

    @override
    def copy_object(self, source_key: str, dest_key: str) -> str:
        """Server-side copy, the payload never leaves the bucket.

        Args:
            source_key: Existing object key.
            dest_key: Destination key.

        Returns:
            Destination key.
        """
        copy_source = {
            'Bucket': self.bucket_name,
            'Key': self._normalize_name(clean_name(source_key)),
        }
        logger.info('Copying object: %s -> %s', source_key, dest_key)
        self.bucket.copy(copy_source, self._normalize_name(clean_name(dest_key)))
        return dest_key

    @override
    def delete_container(self, prefix: str) -> int:
        """Delete every object under the prefix in batches.

        Args:
            prefix: Container path, without trailing slash.

        Returns:
            Number of objects deleted.
        """
        normalized = self._normalize_name(clean_name(prefix)).rstrip('/') + '/'
        keys = [
            {'Key': summary.key}
            for summary in self.bucket.objects.filter(Prefix=normalized)
        ]
        for start in range(0, len(keys), _DELETE_BATCH_SIZE):
            self.bucket.delete_objects(
                Delete={'Objects': keys[start:start + _DELETE_BATCH_SIZE]},
            )
        logger.info('Deleted %d objects under %s', len(keys), normalized)
        return len(keys)

    @override
    def object_url(self, key: str, expires_in: int) -> str:
        """Presigned GET URL valid for ``expires_in`` seconds."""
        return self.url(key, expire=expires_in)


@final
class DriveMemoryStorage(DriveStorageMixin, InMemoryStorage):
    """In-process backend used when no object store is configured."""


def get_object_store() -> DriveStorageMixin:
    """Get the configured default storage backend.

    Returns:
        Drive storage selected by ``DRIVE_STORAGE_BACKEND``.
    """
    return default_storage  # type: ignore[return-value]


@contextmanager
def store_operation(operation: str, key: str) -> Iterator[None]:
    """Translate object store failures into ``DependencyFailureError``.

    Args:
        operation: Name of the operation, used in logs and the error.
        key: Object key or container prefix involved.

    Yields:
        Control to the wrapped storage call.

    Raises:
        DependencyFailureError: If the wrapped call raises.
    """
    try:
        yield
    except Exception as error:
        logger.exception('Object storage %s failed: %s', operation, key)
        raise DependencyFailureError(operation, key) from error
