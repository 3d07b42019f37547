from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'organization', 'category', 'type', 'is_read', 'created_at']
    list_filter = ['organization', 'category', 'type', 'is_read']
    search_fields = ['title', 'message']
    ordering = ['-created_at']
    readonly_fields = ['created_at']
