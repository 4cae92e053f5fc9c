from django.contrib import admin
from .models import Client


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['company_name', 'contact_person', 'phone_mobile', 'awaiting_admin_approval', 'created_at']
    list_filter = ['awaiting_admin_approval', 'created_at']
    search_fields = ['company_name', 'contact_person', 'address']
    readonly_fields = ['tags', 'approved_by', 'approved_at', 'created_at', 'updated_at']
    ordering = ['company_name']
