from django.contrib import admin
from .models import Team


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_by', 'created_at']
    search_fields = ['name']
    filter_horizontal = ['members']
    readonly_fields = ['tags', 'created_at', 'updated_at']
    ordering = ['name']
