from django.urls import path
from .views import (
    auth_sync, auth_verify, custom_token,
    user_profile, organization_status,
    setting_list_create, setting_detail,
    audit_log_list, audit_log_detail,
    global_search, seed_data
)

urlpatterns = [
    # Auth endpoints
    path('auth/sync/', auth_sync, name='auth-sync'),
    path('auth/verify/', auth_verify, name='auth-verify'),
    path('auth/custom-token/', custom_token, name='auth-custom-token'),

    # Current user endpoints
    path('user/profile/', user_profile, name='user-profile'),
    path('user/organization-status/', organization_status, name='user-organization-status'),

    # Setting endpoints
    path('settings/', setting_list_create, name='setting-list-create'),
    path('settings/<int:pk>/', setting_detail, name='setting-detail'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),

    # Global search endpoint
    path('search/', global_search, name='global-search'),

    # Development tooling
    path('admin/seed/', seed_data, name='admin-seed'),
]
