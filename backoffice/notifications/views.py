import logging

from django.db.models import Count, Q
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from backoffice.core.models import Setting
from backoffice.core.permissions import HasOrganization
from backoffice.core.responses import success_response, validation_error_response
from backoffice.core.utils import get_tenant_object, paginate, parse_bool, require_org_admin, setting_enabled
from .models import Notification
from .serializers import NotificationSerializer, MessageSerializer, NotificationPreferencesSerializer
from .services import notify, NOTIFICATION_SETTINGS

logger = logging.getLogger('backoffice.notifications')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasOrganization])
def notification_list_create(request):
    """List the organization's notifications or post a message to the inbox"""
    organization = request.user.organization
    if request.method == 'GET':
        notifications = Notification.objects.filter(organization=organization).select_related('created_by')
        category = request.query_params.get('category')
        if category:
            notifications = notifications.filter(category=category)
        notification_type = request.query_params.get('type')
        if notification_type:
            notifications = notifications.filter(type=notification_type)
        unread = parse_bool(request.query_params.get('unread'))
        if unread is not None:
            notifications = notifications.filter(is_read=not unread)
        return success_response(paginate(request, notifications, NotificationSerializer))

    serializer = MessageSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    notification = notify(
        organization, Notification.CATEGORY_MESSAGES, 'message',
        serializer.validated_data['title'], serializer.validated_data['message'], user=request.user,
    )
    logger.info(f"User {request.user.username} posted message notification {notification.pk}")
    return success_response(NotificationSerializer(notification).data, status_code=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasOrganization])
def notification_detail(request, pk):
    """Retrieve, mark read/unread or delete a notification"""
    notification = get_tenant_object(Notification, request, pk, code='NOTIFICATION_NOT_FOUND')

    if request.method == 'GET':
        return success_response(NotificationSerializer(notification).data)

    if request.method == 'DELETE':
        notification.delete()
        logger.info(f"User {request.user.username} deleted notification {pk}")
        return success_response(None, message='Notification deleted')

    is_read = parse_bool(request.data.get('is_read', True))
    notification.is_read = is_read
    notification.save(update_fields=['is_read'])
    return success_response(NotificationSerializer(notification).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasOrganization])
def notification_mark_all_read(request):
    """Mark every unread notification (optionally of one category) as read"""
    notifications = Notification.objects.filter(organization_id=request.user.organization_id, is_read=False)
    category = request.data.get('category') or request.query_params.get('category')
    if category:
        notifications = notifications.filter(category=category)
    updated = notifications.update(is_read=True)
    logger.info(f"User {request.user.username} marked {updated} notifications as read")
    return success_response({'updated': updated})


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def notification_summary(request):
    """Unread counts per category for the inbox sidebar"""
    counts = Notification.objects.filter(organization_id=request.user.organization_id).aggregate(
        total=Count('id'),
        unread=Count('id', filter=Q(is_read=False)),
        orders=Count('id', filter=Q(is_read=False, category=Notification.CATEGORY_ORDERS)),
        stock=Count('id', filter=Q(is_read=False, category=Notification.CATEGORY_STOCK)),
        messages=Count('id', filter=Q(is_read=False, category=Notification.CATEGORY_MESSAGES)),
    )
    return success_response({
        'total': counts['total'],
        'unread': counts['unread'],
        'by_category': {
            'orders': counts['orders'],
            'stock': counts['stock'],
            'messages': counts['messages'],
        },
    })


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated, HasOrganization])
def notification_preferences(request):
    """Read or change which notifications the organization generates"""
    organization = request.user.organization

    if request.method in ('PUT', 'PATCH'):
        require_org_admin(request, 'change notification preferences')
        serializer = NotificationPreferencesSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        for name, enabled in serializer.validated_data.items():
            key = f'notifications.{name}'
            Setting.objects.update_or_create(
                organization=organization, key=key,
                defaults={'value': 'true' if enabled else 'false', 'description': NOTIFICATION_SETTINGS[key]},
            )
        logger.info(f"User {request.user.username} updated notification preferences: {serializer.validated_data}")

    return success_response({
        key.split('.', 1)[1]: setting_enabled(organization, key)
        for key in NOTIFICATION_SETTINGS
    })
