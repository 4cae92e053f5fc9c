from django.contrib import admin
from .models import Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['name', 'status', 'priority', 'due_date', 'created_at']
    list_filter = ['status', 'priority']
    search_fields = ['name', 'description']
    filter_horizontal = ['clients', 'team_members']
    readonly_fields = ['tags', 'created_at', 'updated_at']
    date_hierarchy = 'created_at'
