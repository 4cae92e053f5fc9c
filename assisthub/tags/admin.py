from django.contrib import admin
from .models import Tag
from .services import normalize_tag_name


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'usage_count', 'created_by', 'created_at']
    list_filter = ['category', 'created_at']
    search_fields = ['name']
    ordering = ['category', 'name']

    def get_readonly_fields(self, request, obj=None):
        # Renames and counts go through the tag services so entities stay in sync
        if obj is not None:
            return ['name', 'category', 'usage_count', 'created_by', 'created_at', 'updated_at']
        return ['usage_count', 'created_at', 'updated_at']

    def save_model(self, request, obj, form, change):
        if not change:
            obj.name = normalize_tag_name(obj.name)
            obj.created_by = obj.created_by or request.user
        super().save_model(request, obj, form, change)
