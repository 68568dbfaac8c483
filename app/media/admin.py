"""Django admin configuration for media app."""

from django.contrib import admin

from media.models import Asset, UploadSession


@admin.register(UploadSession)
class UploadSessionAdmin(admin.ModelAdmin):
    """Admin configuration for UploadSession model. Status moves only through the upload services."""

    list_display = [
        "id",
        "filename",
        "owner",
        "total_size",
        "uploaded_offset",
        "status",
        "updated_at",
    ]
    list_filter = ["status"]
    search_fields = ["filename", "owner__email", "content_hash"]
    readonly_fields = [
        "id",
        "owner",
        "filename",
        "mime_type",
        "taken_at",
        "content_hash",
        "total_size",
        "uploaded_offset",
        "staging_path",
        "status",
        "asset",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-updated_at"]


@admin.register(Asset)
class AssetAdmin(admin.ModelAdmin):
    """Admin configuration for Asset model. Assets are immutable."""

    list_display = ["id", "filename", "owner", "size", "mime_type", "created_at"]
    list_filter = ["mime_type"]
    search_fields = ["filename", "owner__email", "content_hash", "storage_key"]
    readonly_fields = [
        "id",
        "owner",
        "filename",
        "size",
        "mime_type",
        "content_hash",
        "taken_at",
        "storage_key",
        "created_at",
        "updated_at",
    ]
    raw_id_fields = ["owner"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_change_permission(self, request, obj=None):
        return False
