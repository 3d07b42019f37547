"""Request helpers: audit logging, tenant lookups and pagination"""
import logging

from django.conf import settings
from django.core.paginator import Paginator

from .exceptions import NotFound, PermissionDenied
from .models import AuditLog, Setting

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, organization=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, stock_adjust, ...)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object
        organization: Tenant the entry belongs to (defaults to the user's organization)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        if audit_user is not None and not audit_user.is_authenticated:
            audit_user = None

        if not action or not model_name or object_id is None:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        if organization is None and audit_user is not None:
            organization = audit_user.organization

        return AuditLog.objects.create(
            organization=organization,
            user=audit_user,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            changes=changes or {},
            ip_address=get_client_ip(request) if request else None
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def get_tenant_object(model, request, pk, code='NOT_FOUND', queryset=None):
    """Fetch an object by pk inside the requesting user's organization"""
    queryset = queryset if queryset is not None else model.objects.all()
    try:
        return queryset.get(pk=pk, organization_id=request.user.organization_id)
    except (model.DoesNotExist, ValueError):
        raise NotFound(f'{model._meta.verbose_name.capitalize()} not found', code=code)


def require_org_admin(request, action='perform this action'):
    if not request.user.is_org_admin:
        logger.warning(f"User {request.user.username} attempted to {action} without admin role")
        raise PermissionDenied(f'Only organization administrators can {action}')


def parse_bool(value):
    if value is None:
        return None
    return str(value).lower() in ('1', 'true', 'yes', 'on')


def paginate(request, queryset, serializer_class, context=None):
    """Page a queryset using ?page=&page_size= and return the payload dict"""
    try:
        page = max(int(request.query_params.get('page', 1)), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        page_size = int(request.query_params.get('page_size', settings.DEFAULT_PAGE_SIZE))
    except (TypeError, ValueError):
        page_size = settings.DEFAULT_PAGE_SIZE
    page_size = min(max(page_size, 1), settings.MAX_PAGE_SIZE)

    paginator = Paginator(queryset, page_size)
    page_obj = paginator.get_page(page)
    serializer = serializer_class(page_obj, many=True, context=context or {'request': request})
    return {
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': page_size,
        'total_pages': paginator.num_pages,
    }


def get_setting_value(organization, key, default=None):
    """Read an organization setting, returning default when it is not configured"""
    if organization is None:
        return default
    value = Setting.objects.filter(organization=organization, key=key).values_list('value', flat=True).first()
    return default if value is None else value


def setting_enabled(organization, key, default=True):
    value = get_setting_value(organization, key)
    if value is None:
        return default
    return parse_bool(value)
