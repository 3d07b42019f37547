import logging

from django.conf import settings as django_settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated

from . import firebase
from .exceptions import AuthenticationError, HANDLED_EXCEPTIONS, NotFound, PermissionDenied, ValidationFailed
from .models import Setting, AuditLog
from .permissions import HasOrganization, IsOrganizationAdmin, IsStaff
from .responses import error_response, success_response, validation_error_response
from .serializers import (
    UserSerializer, UserSyncSerializer, UserProfileSerializer, CustomTokenSerializer,
    SettingSerializer, AuditLogSerializer
)
from .utils import create_audit_log, get_tenant_object, require_org_admin, paginate

logger = logging.getLogger('backoffice.core')

User = get_user_model()


def _internal_error(view_name, exc):
    logger.error(f"Unexpected error in {view_name}: {str(exc)}", exc_info=True)
    return error_response('An unexpected error occurred', 'INTERNAL_SERVER_ERROR',
                          status.HTTP_500_INTERNAL_SERVER_ERROR)


# Auth endpoints
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def auth_sync(request):
    """Create or update the local user from a verified Firebase token"""
    try:
        token = firebase.get_bearer_token(request)
        if not token:
            raise AuthenticationError('Authorization token missing', code='AUTH_TOKEN_MISSING')
        decoded = firebase.verify_id_token(token)

        serializer = UserSyncSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"User sync validation failed: {serializer.errors}")
            return validation_error_response(serializer.errors)
        data = serializer.validated_data

        if decoded.get('uid') != data['firebase_uid']:
            raise ValidationFailed('Token UID does not match the submitted UID', code='UID_MISMATCH')

        with transaction.atomic():
            user = User.objects.select_for_update().filter(firebase_uid=data['firebase_uid']).first()
            is_new_user = user is None
            if is_new_user:
                user = User(
                    firebase_uid=data['firebase_uid'],
                    username=data['firebase_uid'],
                    role=User.ROLE_NONE,
                    is_active=True,
                )
                user.set_unusable_password()

            user.email = data['email']
            user.email_verified = data.get('email_verified', False)
            user.display_name = data.get('display_name') or user.display_name
            user.phone = data.get('phone_number') or user.phone
            user.photo_url = data.get('photo_url') or user.photo_url
            user.provider_id = data.get('provider_id') or user.provider_id
            user.last_login_at = timezone.now()
            user.save()

        if is_new_user:
            logger.info(f"New user synchronised: {user.email} ({user.firebase_uid})")
        else:
            logger.info(f"User updated on sync: {user.email} ({user.firebase_uid})")

        payload = UserSerializer(user).data
        payload['is_new_user'] = is_new_user
        return success_response(payload, status_code=status.HTTP_201_CREATED if is_new_user else status.HTTP_200_OK)
    except HANDLED_EXCEPTIONS:
        raise
    except Exception as e:
        return _internal_error('auth_sync', e)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def auth_verify(request):
    """Verify a Firebase ID token and report its claims"""
    token = firebase.get_bearer_token(request) or request.data.get('token')
    if not token:
        raise AuthenticationError('Authorization token missing', code='AUTH_TOKEN_MISSING')
    decoded = firebase.verify_id_token(token)

    user = User.objects.select_related('organization').filter(firebase_uid=decoded.get('uid')).first()
    return success_response({
        'uid': decoded.get('uid'),
        'email': decoded.get('email'),
        'email_verified': decoded.get('email_verified', False),
        'name': decoded.get('name'),
        'picture': decoded.get('picture'),
        'is_synced': user is not None,
        'user': UserSerializer(user).data if user else None,
    })


@api_view(['POST', 'PUT'])
@permission_classes([IsAuthenticated, HasOrganization, IsOrganizationAdmin])
def custom_token(request):
    """Create a custom token (POST) or set custom claims (PUT) for a Firebase user"""
    try:
        serializer = CustomTokenSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        uid = serializer.validated_data['uid']
        claims = serializer.validated_data['claims']

        # Admins may only manage members of their own organization
        if not User.objects.filter(firebase_uid=uid, organization_id=request.user.organization_id).exists():
            raise NotFound('User not found in your organization', code='USER_NOT_FOUND')
        if firebase.get_firebase_user(uid) is None:
            raise NotFound('Firebase user not found', code='USER_NOT_FOUND')

        if request.method == 'POST':
            token = firebase.create_custom_token(uid, claims)
            logger.info(f"User {request.user.username} created custom token for {uid}")
            return success_response({'custom_token': token, 'uid': uid, 'claims': claims})

        firebase.set_custom_claims(uid, claims)
        logger.info(f"User {request.user.username} updated custom claims for {uid}: {claims}")
        return success_response({'uid': uid, 'claims': claims}, message='Custom claims updated')
    except HANDLED_EXCEPTIONS:
        raise
    except Exception as e:
        return _internal_error('custom_token', e)


# User endpoints
@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_profile(request):
    """Get or update the current user's profile"""
    user = request.user
    if request.method == 'GET':
        return success_response(UserSerializer(user).data)

    serializer = UserProfileSerializer(user, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        logger.warning(f"Profile update validation failed for {user.username}: {serializer.errors}")
        return validation_error_response(serializer.errors)
    serializer.save()
    logger.info(f"User {user.username} updated profile")
    return success_response(UserSerializer(user).data, message='Profile updated')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def organization_status(request):
    """Tell the frontend where the user stands regarding organization membership"""
    from backoffice.organizations.models import OrganizationInvitation, OrganizationRequest
    from backoffice.organizations.serializers import (
        OrganizationSerializer, OrganizationInvitationSerializer, OrganizationRequestSerializer
    )

    user = request.user
    if user.organization_id:
        return success_response({
            'status': 'HAS_ORGANIZATION',
            'organization': OrganizationSerializer(user.organization).data,
            'role': user.role,
        })

    invitations = OrganizationInvitation.objects.pending_for_email(user.email)
    if invitations.exists():
        return success_response({
            'status': 'PENDING_INVITATION',
            'invitations': OrganizationInvitationSerializer(invitations, many=True).data,
        })

    pending_request = OrganizationRequest.objects.filter(
        requested_by=user, status__in=OrganizationRequest.OPEN_STATUSES
    ).first()
    if pending_request:
        return success_response({
            'status': 'PENDING_REQUEST',
            'request': OrganizationRequestSerializer(pending_request).data,
        })

    return success_response({'status': 'NO_ORGANIZATION'})


# Setting endpoints
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasOrganization])
def setting_list_create(request):
    """List organization settings or create one (create requires admin)"""
    organization = request.user.organization
    if request.method == 'GET':
        settings_qs = Setting.objects.filter(organization=organization)
        return success_response(SettingSerializer(settings_qs, many=True).data)

    require_org_admin(request, 'change settings')
    serializer = SettingSerializer(data=request.data, context={'organization': organization})
    if not serializer.is_valid():
        logger.warning(f"Setting creation validation failed: {serializer.errors}")
        return validation_error_response(serializer.errors)
    setting = serializer.save(organization=organization)
    logger.info(f"Setting '{setting.key}' created by {request.user.username}")
    create_audit_log(request=request, action='create', model_name='Setting',
                     object_id=setting.id, object_name=setting.key, changes={'value': setting.value})
    return success_response(serializer.data, status_code=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasOrganization])
def setting_detail(request, pk):
    """Retrieve, update or delete an organization setting"""
    setting = get_tenant_object(Setting, request, pk, code='SETTING_NOT_FOUND')
    if request.method == 'GET':
        return success_response(SettingSerializer(setting).data)

    require_org_admin(request, 'change settings')
    if request.method == 'DELETE':
        logger.info(f"User {request.user.username} deleting setting {setting.key}")
        create_audit_log(request=request, action='delete', model_name='Setting',
                         object_id=setting.id, object_name=setting.key)
        setting.delete()
        return success_response(None, message='Setting deleted')

    old_value = setting.value
    serializer = SettingSerializer(
        setting, data=request.data, partial=request.method == 'PATCH',
        context={'organization': request.user.organization}
    )
    if not serializer.is_valid():
        logger.warning(f"Setting update validation failed: {serializer.errors}")
        return validation_error_response(serializer.errors)
    serializer.save()
    create_audit_log(request=request, action='update', model_name='Setting', object_id=setting.id,
                     object_name=setting.key, changes={'old': old_value, 'new': setting.value})
    return success_response(serializer.data)


# AuditLog endpoints
@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization, IsOrganizationAdmin])
def audit_log_list(request):
    """List the organization's audit log with optional filters"""
    logs = AuditLog.objects.filter(organization_id=request.user.organization_id).select_related('user')

    action = request.query_params.get('action')
    if action:
        logs = logs.filter(action=action)
    model_name = request.query_params.get('model_name')
    if model_name:
        logs = logs.filter(model_name=model_name)
    user_id = request.query_params.get('user')
    if user_id:
        logs = logs.filter(user_id=user_id)

    return success_response(paginate(request, logs, AuditLogSerializer))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization, IsOrganizationAdmin])
def audit_log_detail(request, pk):
    log = get_tenant_object(AuditLog, request, pk, code='AUDIT_LOG_NOT_FOUND')
    return success_response(AuditLogSerializer(log).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def global_search(request):
    """Search clients, products, couriers and orders of the organization"""
    query = request.query_params.get('q', '').strip()

    if not query:
        return success_response({'clients': [], 'products': [], 'couriers': [], 'orders': []})

    from backoffice.parties.models import Client
    from backoffice.catalog.models import Product
    from backoffice.delivery.models import Courier
    from backoffice.orders.models import Order
    from backoffice.parties.serializers import ClientSerializer
    from backoffice.catalog.serializers import ProductSerializer
    from backoffice.delivery.serializers import CourierSerializer
    from backoffice.orders.serializers import OrderListSerializer
    from backoffice.catalog.filters import ProductFilter
    from backoffice.parties.filters import ClientFilter
    from backoffice.delivery.filters import CourierFilter

    organization_id = request.user.organization_id
    results = {}

    clients = ClientFilter({'search': query}, queryset=Client.objects.filter(organization_id=organization_id)).qs[:20]
    results['clients'] = ClientSerializer(clients, many=True).data

    products = ProductFilter(
        {'search': query},
        queryset=Product.objects.filter(organization_id=organization_id).select_related('category')
    ).qs[:20]
    results['products'] = ProductSerializer(products, many=True).data

    couriers = CourierFilter({'search': query}, queryset=Courier.objects.filter(organization_id=organization_id)).qs[:20]
    results['couriers'] = CourierSerializer(couriers, many=True).data

    order_filter = Q(client__first_name__icontains=query) | Q(client__last_name__icontains=query) | \
        Q(delivery_address__icontains=query)
    if query.isdigit():
        order_filter |= Q(pk=int(query))
    orders = Order.objects.filter(organization_id=organization_id).filter(order_filter) \
        .select_related('client')[:20]
    results['orders'] = OrderListSerializer(orders, many=True).data

    logger.debug(f"Global search '{query}' by {request.user.username}")
    return success_response(results)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaff])
def seed_data(request):
    """Load demo data (development only)"""
    if not django_settings.DEBUG:
        raise PermissionDenied('Seeding is disabled in production', code='SEED_DISABLED')
    from .seed import seed_demo_data
    try:
        summary = seed_demo_data(
            organization_name=request.data.get('organization_name') or 'Demo Delivery',
            admin=request.user if not request.user.organization_id else None,
        )
        logger.info(f"Demo data seeded by {request.user.username}: {summary}")
        return success_response(summary, message='Demo data created', status_code=status.HTTP_201_CREATED)
    except HANDLED_EXCEPTIONS:
        raise
    except Exception as e:
        return _internal_error('seed_data', e)
