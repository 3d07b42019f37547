from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Setting, AuditLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'display_name', 'organization', 'role', 'is_active', 'is_staff', 'last_login_at']
    list_filter = ['role', 'is_active', 'is_staff', 'organization']
    search_fields = ['email', 'display_name', 'firebase_uid', 'username']
    ordering = ['email']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Firebase', {'fields': ('firebase_uid', 'email_verified', 'display_name', 'photo_url', 'provider_id', 'last_login_at')}),
        ('Organization', {'fields': ('organization', 'role', 'phone')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Organization', {'fields': ('organization', 'role', 'phone')}),
    )


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'organization', 'updated_at']
    list_filter = ['organization']
    search_fields = ['key', 'description']
    ordering = ['organization', 'key']
    readonly_fields = ['updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'organization', 'action', 'model_name', 'object_id', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__email', 'model_name', 'object_id', 'object_name']
    ordering = ['-created_at']
    readonly_fields = ['organization', 'user', 'action', 'model_name', 'object_id', 'object_name', 'changes', 'ip_address', 'created_at']
