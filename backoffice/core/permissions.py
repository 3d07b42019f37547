from rest_framework.permissions import BasePermission


class HasOrganization(BasePermission):
    """User must belong to an active organization"""
    message = 'User does not belong to an organization'
    code = 'NO_ORGANIZATION'

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return bool(user.organization_id) and user.organization.is_active


class IsOrganizationAdmin(BasePermission):
    """User must hold the admin role inside their organization"""
    message = 'Only organization administrators can perform this action'
    code = 'INSUFFICIENT_PERMISSIONS'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_org_admin)


class IsStaff(BasePermission):
    """Platform staff (reviews organization requests, seeds data)"""
    message = 'Only platform staff can perform this action'
    code = 'INSUFFICIENT_PERMISSIONS'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and (user.is_staff or user.is_superuser))
