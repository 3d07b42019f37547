from django.contrib import admin
from .models import Client


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['first_name', 'last_name', 'phone', 'email', 'organization', 'created_at']
    list_filter = ['organization', 'created_at']
    search_fields = ['first_name', 'last_name', 'phone', 'email']
    ordering = ['first_name', 'last_name']
