"""Django admin configuration for drive app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.html import format_html

from server.apps.drive.models import File, Folder


def _format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < 1024:
        return f'{size_bytes} B'
    if size_bytes < 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / 1024:.1f} KB'
    if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / (1024 * 1024):.1f} MB'
    return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'


@admin.register(Folder)
class FolderAdmin(admin.ModelAdmin):
    """Admin interface for Folder model, trashed folders included."""

    list_display = [
        'name',
        'user',
        'parent',
        'color_display',
        'is_public',
        'is_deleted',
        'created_at',
    ]

    list_filter = [
        'is_public',
        'is_deleted',
        'user',
    ]

    search_fields = [
        'name',
        'storage_prefix',
    ]

    readonly_fields = [
        'id',
        'storage_prefix',
        'public_link',
        'deleted_at',
        'created_at',
        'modified_at',
    ]

    fieldsets = (
        ('Folder Information', {
            'fields': ('id', 'name', 'user', 'parent', 'description', 'color'),
        }),
        ('Storage', {
            'fields': ('storage_prefix',),
        }),
        ('Sharing', {
            'fields': ('is_public', 'public_link'),
        }),
        ('Trash', {
            'fields': ('is_deleted', 'deleted_at'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'modified_at'),
        }),
    )

    def color_display(self, obj: Folder) -> str:
        """Display color swatch with hex code.

        Args:
            obj: Folder instance.

        Returns:
            HTML formatted color swatch and code.
        """
        if obj.color:
            return format_html(
                '<span style="background-color: {color}; '
                'padding: 2px 10px; border: 1px solid #ccc;">'
                '&nbsp;</span> {color}',
                color=obj.color,
            )
        return '-'
    color_display.short_description = 'Color'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[Folder]:
        """Include trashed folders and load owners in one query."""
        return Folder.all_objects.select_related('user', 'parent')


@admin.register(File)
class FileAdmin(admin.ModelAdmin):
    """Admin interface for File model, trashed files included."""

    list_display = [
        'filename_display',
        'user',
        'folder',
        'size_display',
        'mime_type',
        'download_count',
        'is_deleted',
        'created_at',
    ]

    list_filter = [
        'mime_type',
        'is_public',
        'is_deleted',
        'created_at',
    ]

    search_fields = [
        'name',
        'original_name',
        'storage_key',
        'checksum_sha256',
    ]

    readonly_fields = [
        'id',
        'storage_key',
        'size_bytes',
        'mime_type',
        'checksum_sha256',
        'public_link',
        'download_count',
        'last_accessed_at',
        'deleted_at',
        'created_at',
        'modified_at',
    ]

    fieldsets = (
        ('File Information', {
            'fields': (
                'id',
                'name',
                'extension',
                'original_name',
                'user',
                'folder',
                'description',
            ),
        }),
        ('Metadata', {
            'fields': (
                'storage_key',
                'size_bytes',
                'mime_type',
                'checksum_sha256',
            ),
        }),
        ('Sharing', {
            'fields': ('is_public', 'public_link', 'download_count'),
        }),
        ('Trash', {
            'fields': ('is_deleted', 'deleted_at'),
        }),
        ('Timestamps', {
            'fields': ('last_accessed_at', 'created_at', 'modified_at'),
        }),
    )

    def filename_display(self, obj: File) -> str:
        """Display filename with extension.

        Args:
            obj: File instance.

        Returns:
            Display filename.
        """
        return obj.get_filename()
    filename_display.short_description = 'Filename'  # type: ignore[attr-defined]

    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format."""
        return _format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Include trashed files and load relations in one query."""
        return File.all_objects.select_related('user', 'folder')
