from django.contrib import admin
from .models import Organization, OrganizationInvitation, OrganizationRequest


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'nit', 'tax_regime', 'is_active', 'created_at']
    list_filter = ['is_active', 'tax_regime']
    search_fields = ['name', 'slug', 'nit']
    ordering = ['name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(OrganizationInvitation)
class OrganizationInvitationAdmin(admin.ModelAdmin):
    list_display = ['invited_email', 'organization', 'assigned_role', 'status', 'expires_at', 'created_at']
    list_filter = ['status', 'assigned_role']
    search_fields = ['invited_email', 'organization__name']
    ordering = ['-created_at']
    readonly_fields = ['token', 'accepted_by', 'accepted_at', 'created_at', 'updated_at']


@admin.register(OrganizationRequest)
class OrganizationRequestAdmin(admin.ModelAdmin):
    list_display = ['organization_name', 'requested_by', 'status', 'priority', 'created_at', 'reviewed_at']
    list_filter = ['status', 'priority']
    search_fields = ['organization_name', 'requested_by__email', 'contact_name']
    ordering = ['-created_at']
    readonly_fields = ['created_organization', 'reviewed_by', 'reviewed_at', 'created_at', 'updated_at']
