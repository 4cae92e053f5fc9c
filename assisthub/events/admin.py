from django.contrib import admin
from .models import CalendarEvent


@admin.register(CalendarEvent)
class CalendarEventAdmin(admin.ModelAdmin):
    list_display = ['title', 'user', 'type', 'start', 'end', 'all_day']
    list_filter = ['type', 'all_day']
    search_fields = ['title', 'description']
    date_hierarchy = 'start'
