"""Database models for drive app."""

import uuid
from typing import ClassVar, Final, final, override

from django.conf import settings
from django.db import models

# Constants for field max lengths
NAME_MAX_LENGTH: Final = 255
EXTENSION_MAX_LENGTH: Final = 16
_MIME_TYPE_MAX_LENGTH: Final = 255
_CHECKSUM_MAX_LENGTH: Final = 64  # SHA256 hex length
_COLOR_MAX_LENGTH: Final = 7  # Hex color: #RRGGBB
_PUBLIC_LINK_MAX_LENGTH: Final = 64
_STORAGE_KEY_MAX_LENGTH: Final = 1024

_PREVIEWABLE_TYPES: Final = frozenset(('image', 'video', 'audio', 'pdf', 'text'))


class ActiveManager(models.Manager):
    """Default manager that hides soft-deleted records."""

    @override
    def get_queryset(self) -> models.QuerySet:
        """Exclude records that are in the trash."""
        return super().get_queryset().filter(is_deleted=False)


@final
class Folder(models.Model):
    """User folder in the drive hierarchy.

    Folders form a tree through ``parent``; a null parent is the user's
    root level. Sibling names are unique per owner among active folders.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='folders',
        db_index=True,
    )

    # RESTRICT still lets a user deletion cascade through the whole tree
    parent = models.ForeignKey(
        'self',
        on_delete=models.RESTRICT,
        related_name='children',
        null=True,
        blank=True,
    )

    name = models.CharField(max_length=NAME_MAX_LENGTH)

    description = models.TextField(blank=True, default='')

    color = models.CharField(
        max_length=_COLOR_MAX_LENGTH,
        blank=True,
        default='',
        help_text='Hex color code for UI display (e.g., #FF5733)',
    )

    storage_prefix = models.CharField(
        max_length=_STORAGE_KEY_MAX_LENGTH,
        help_text='Container path in object storage',
    )

    is_public = models.BooleanField(default=False)

    public_link = models.CharField(
        max_length=_PUBLIC_LINK_MAX_LENGTH,
        null=True,
        blank=True,
        unique=True,
    )

    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    objects = ActiveManager()
    all_objects = models.Manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['name']
        base_manager_name = 'all_objects'

        indexes: ClassVar[list[models.Index]] = [
            models.Index(
                fields=['user', 'parent'],
                name='folders_user_parent_idx',
            ),
        ]

        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.UniqueConstraint(
                fields=['user', 'parent', 'name'],
                condition=models.Q(is_deleted=False),
                name='folders_active_sibling_name_unique',
            ),
            # NULL parents never collide in SQL, root level needs its own
            models.UniqueConstraint(
                fields=['user', 'name'],
                condition=models.Q(is_deleted=False, parent__isnull=True),
                name='folders_active_root_name_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}:{self.name}'

    def is_root(self) -> bool:
        """Check whether the folder sits at the user's root level."""
        return self.parent_id is None


@final
class File(models.Model):
    """File whose payload is stored in the object store.

    ``name`` is the display name without extension; ``storage_key`` is an
    opaque key owned by the storage backend and never changes on move.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='files',
        db_index=True,
    )

    folder = models.ForeignKey(
        Folder,
        on_delete=models.RESTRICT,
        related_name='files',
        null=True,
        blank=True,
    )

    name = models.CharField(max_length=NAME_MAX_LENGTH)

    original_name = models.CharField(
        max_length=NAME_MAX_LENGTH,
        help_text='Filename as uploaded',
    )

    extension = models.CharField(
        max_length=EXTENSION_MAX_LENGTH,
        blank=True,
        default='',
        help_text='Lowercase extension without dot',
    )

    description = models.TextField(blank=True, default='')

    mime_type = models.CharField(max_length=_MIME_TYPE_MAX_LENGTH)

    size_bytes = models.BigIntegerField(help_text='File size in bytes')

    checksum_sha256 = models.CharField(
        max_length=_CHECKSUM_MAX_LENGTH,
        help_text='SHA256 hash for integrity verification',
        db_index=True,
    )

    storage_key = models.CharField(
        max_length=_STORAGE_KEY_MAX_LENGTH,
        unique=True,
        help_text='Object key in storage',
    )

    is_public = models.BooleanField(default=False)

    public_link = models.CharField(
        max_length=_PUBLIC_LINK_MAX_LENGTH,
        null=True,
        blank=True,
        unique=True,
    )

    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    download_count = models.PositiveIntegerField(default=0)
    last_accessed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    objects = ActiveManager()
    all_objects = models.Manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['-created_at']
        base_manager_name = 'all_objects'

        indexes: ClassVar[list[models.Index]] = [
            # Optimize directory listing queries
            models.Index(
                fields=['user', 'folder'],
                name='files_user_folder_idx',
            ),
            models.Index(
                fields=['mime_type'],
                name='files_mime_type_idx',
            ),
        ]

        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.UniqueConstraint(
                fields=['user', 'folder', 'name', 'extension'],
                condition=models.Q(is_deleted=False),
                name='files_active_folder_name_unique',
            ),
            models.UniqueConstraint(
                fields=['user', 'name', 'extension'],
                condition=models.Q(is_deleted=False, folder__isnull=True),
                name='files_active_root_name_unique',
            ),
            models.CheckConstraint(
                condition=models.Q(size_bytes__gte=0),
                name='files_size_bytes_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}:{self.get_filename()}'

    def get_filename(self) -> str:
        """Display filename with extension.

        Example: name='report', extension='pdf' -> 'report.pdf'

        Returns:
            Filename including extension when there is one.
        """
        if self.extension:
            return f'{self.name}.{self.extension}'
        return self.name

    def get_file_type(self) -> str:  # noqa: WPS212
        """Classify file by MIME type.

        Returns:
            One of image, video, audio, pdf, document, spreadsheet,
            presentation, text or other.
        """
        mime_type = self.mime_type
        if mime_type.startswith('image/'):
            return 'image'
        if mime_type.startswith('video/'):
            return 'video'
        if mime_type.startswith('audio/'):
            return 'audio'
        if mime_type == 'application/pdf':
            return 'pdf'
        if 'spreadsheet' in mime_type or 'excel' in mime_type:
            return 'spreadsheet'
        if 'presentation' in mime_type or 'powerpoint' in mime_type:
            return 'presentation'
        if 'document' in mime_type or 'word' in mime_type:
            return 'document'
        if mime_type.startswith('text/'):
            return 'text'
        return 'other'

    def is_previewable(self) -> bool:
        """Check whether the file can be previewed in a browser."""
        return self.get_file_type() in _PREVIEWABLE_TYPES
