"""Django admin configuration for drive app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.drive.models import Entry

_KIB = 1024


def format_size(size_bytes: int) -> str:
    """Format a byte count for display.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234.0 KB').
    """
    if size_bytes < _KIB:
        return f'{size_bytes} B'
    if size_bytes < _KIB ** 2:
        return f'{size_bytes / _KIB:.1f} KB'
    if size_bytes < _KIB ** 3:
        return f'{size_bytes / _KIB ** 2:.1f} MB'
    return f'{size_bytes / _KIB ** 3:.1f} GB'


@admin.register(Entry)
class EntryAdmin(admin.ModelAdmin[Entry]):
    """Admin interface for Entry model.

    Everything is read-only: tree changes must go through the drive
    logic so invariants, blobs and subtrees stay consistent.
    """

    list_display = [
        'virtual_path',
        'owner',
        'kind',
        'size_display',
        'mime_type',
        'is_starred',
        'is_deleted',
        'is_shared',
        'created_at',
    ]

    list_filter = [
        'kind',
        'is_deleted',
        'is_shared',
        'is_starred',
    ]

    search_fields = [
        'name',
        'virtual_path',
        'owner__username',
    ]

    readonly_fields = [
        'owner',
        'parent',
        'name',
        'kind',
        'virtual_path',
        'size_bytes',
        'mime_type',
        'blob_key',
        'is_starred',
        'is_deleted',
        'deleted_at',
        'is_shared',
        'share_token',
        'created_at',
        'updated_at',
    ]

    fieldsets = (
        ('Entry', {
            'fields': ('owner', 'parent', 'name', 'kind', 'virtual_path'),
        }),
        ('Content', {
            'fields': ('size_bytes', 'mime_type', 'blob_key'),
        }),
        ('State', {
            'fields': (
                'is_starred',
                'is_deleted',
                'deleted_at',
                'is_shared',
                'share_token',
            ),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
        }),
    )

    @admin.display(description='Size')
    def size_display(self, obj: Entry) -> str:
        """Display entry size, a dash for folders.

        Args:
            obj: Entry instance.

        Returns:
            Human-readable size.
        """
        if obj.is_folder:
            return '-'
        return format_size(obj.size_bytes)

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Entries are only created through the drive logic."""
        return False

    def has_delete_permission(
        self,
        request: HttpRequest,
        obj: Entry | None = None,
    ) -> bool:
        """Deletion must go through the trash lifecycle."""
        return False

    def get_queryset(self, request: HttpRequest) -> QuerySet[Entry]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('owner')
