from django.contrib import admin
from .models import FileAttachment


@admin.register(FileAttachment)
class FileAttachmentAdmin(admin.ModelAdmin):
    list_display = ['name', 'linked_type', 'linked_id', 'size', 'uploaded_by', 'uploaded_at']
    list_filter = ['linked_type', 'uploaded_at']
    search_fields = ['name', 'storage_path']
    readonly_fields = ['storage_path', 'size', 'uploaded_at']
