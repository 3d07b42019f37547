import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from backoffice.core.exceptions import (
    Conflict, HANDLED_EXCEPTIONS, NotFound, PermissionDenied, ValidationFailed
)
from backoffice.core.permissions import HasOrganization, IsOrganizationAdmin
from backoffice.core.responses import error_response, success_response, validation_error_response
from backoffice.core.serializers import MemberUpdateSerializer
from backoffice.core.utils import create_audit_log, paginate
from .models import Organization, OrganizationInvitation, OrganizationRequest
from .serializers import (
    OrganizationSerializer, MemberSerializer, OrganizationInvitationSerializer,
    InvitationResponseSerializer, OrganizationRequestSerializer, OrganizationRequestReviewSerializer
)
from .services import create_organization, accept_invitation

logger = logging.getLogger('backoffice.organizations')

User = get_user_model()


def _is_staff(user):
    return user.is_staff or user.is_superuser


# Organization views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def organization_list_create(request):
    """List visible organizations or create one owned by the current user"""
    try:
        if request.method == 'GET':
            if _is_staff(request.user):
                organizations = Organization.objects.all()
            else:
                organizations = Organization.objects.filter(pk=request.user.organization_id)
            return success_response(OrganizationSerializer(organizations, many=True).data)

        logger.info(f"User {request.user.username} creating organization with data: {request.data}")
        serializer = OrganizationSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Organization creation validation failed: {serializer.errors}")
            return validation_error_response(serializer.errors)

        organization = create_organization(request.user, **serializer.validated_data)
        create_audit_log(request=request, action='create', model_name='Organization',
                         object_id=organization.id, object_name=organization.name, organization=organization)
        return success_response(
            OrganizationSerializer(organization).data,
            message='Organization created',
            status_code=status.HTTP_201_CREATED
        )
    except HANDLED_EXCEPTIONS:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in organization_list_create: {str(e)}", exc_info=True)
        return error_response('An unexpected error occurred', 'INTERNAL_SERVER_ERROR',
                              status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def organization_detail(request, pk):
    """Retrieve or update an organization (members read, admins write)"""
    try:
        organization = Organization.objects.get(pk=pk)
    except Organization.DoesNotExist:
        raise NotFound('Organization not found', code='ORGANIZATION_NOT_FOUND')

    is_member = request.user.organization_id == organization.id
    if not (is_member or _is_staff(request.user)):
        logger.warning(f"User {request.user.username} attempted to access organization {pk}")
        raise PermissionDenied('You do not have access to this organization', code='FORBIDDEN')

    if request.method == 'GET':
        return success_response(OrganizationSerializer(organization).data)

    if not ((is_member and request.user.is_org_admin) or _is_staff(request.user)):
        raise PermissionDenied('Only organization administrators can update the organization')

    serializer = OrganizationSerializer(organization, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        logger.warning(f"Organization update validation failed: {serializer.errors}")
        return validation_error_response(serializer.errors)

    new_name = serializer.validated_data.get('name')
    if new_name and new_name != organization.name:
        slug = Organization.build_slug(new_name)
        if Organization.objects.filter(slug=slug).exclude(pk=organization.pk).exists():
            raise Conflict('An organization with this name already exists', code='ORGANIZATION_SLUG_EXISTS')
        serializer.save(slug=slug)
    else:
        serializer.save()

    logger.info(f"Organization {pk} updated by {request.user.username}")
    create_audit_log(request=request, action='update', model_name='Organization', object_id=organization.id,
                     object_name=organization.name, changes=dict(request.data), organization=organization)
    return success_response(serializer.data)


# Member views
@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def member_list(request):
    """List the users of the current organization"""
    members = User.objects.filter(organization_id=request.user.organization_id).order_by('email')
    role = request.query_params.get('role')
    if role:
        members = members.filter(role=role)
    return success_response(MemberSerializer(members, many=True).data)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasOrganization, IsOrganizationAdmin])
def member_detail(request, pk):
    """Change a member's role/status or remove them from the organization"""
    try:
        member = User.objects.get(pk=pk, organization_id=request.user.organization_id)
    except User.DoesNotExist:
        raise NotFound('User not found in your organization', code='USER_NOT_FOUND')

    if request.method == 'DELETE':
        if member.pk == request.user.pk:
            raise ValidationFailed('You cannot remove yourself from the organization', code='SELF_REMOVAL_NOT_ALLOWED')
        member.organization = None
        member.role = User.ROLE_NONE
        member.save(update_fields=['organization', 'role', 'updated_at'])
        logger.info(f"User {request.user.username} removed {member.username} from organization {request.user.organization_id}")
        create_audit_log(request=request, action='member_remove', model_name='User',
                         object_id=member.id, object_name=member.email)
        return success_response(None, message='Member removed')

    serializer = MemberUpdateSerializer(member, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    if member.pk == request.user.pk and serializer.validated_data.get('role', User.ROLE_ADMIN) != User.ROLE_ADMIN:
        raise ValidationFailed('You cannot remove your own admin role', code='SELF_DEMOTION_NOT_ALLOWED')
    serializer.save()
    logger.info(f"User {request.user.username} updated member {member.username}: {serializer.validated_data}")
    create_audit_log(request=request, action='member_update', model_name='User', object_id=member.id,
                     object_name=member.email, changes=dict(serializer.validated_data))
    return success_response(MemberSerializer(member).data)


# Invitation views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def invitation_list_create(request):
    """GET: pending invitations for the current user. POST: invite someone (admins)"""
    try:
        if request.method == 'GET':
            invitations = OrganizationInvitation.objects.pending_for_email(request.user.email)
            return success_response(OrganizationInvitationSerializer(invitations, many=True).data)

        if not request.user.organization_id:
            raise PermissionDenied('User does not belong to an organization', code='NO_ORGANIZATION')
        if not request.user.is_org_admin:
            raise PermissionDenied('Only organization administrators can send invitations')

        serializer = OrganizationInvitationSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Invitation validation failed: {serializer.errors}")
            return validation_error_response(serializer.errors)

        email = serializer.validated_data['invited_email']
        if User.objects.filter(email__iexact=email, organization__isnull=False).exists():
            raise Conflict('This user already belongs to an organization', code='USER_ALREADY_HAS_ORGANIZATION')
        if OrganizationInvitation.objects.pending_for_email(email).filter(
                organization_id=request.user.organization_id).exists():
            raise Conflict('A pending invitation already exists for this email', code='INVITATION_EXISTS')

        invitation = serializer.save(organization=request.user.organization, invited_by=request.user)
        logger.info(f"User {request.user.username} invited {email} as {invitation.assigned_role}")
        create_audit_log(request=request, action='invitation_create', model_name='OrganizationInvitation',
                         object_id=invitation.id, object_name=email, changes={'role': invitation.assigned_role})
        return success_response(
            OrganizationInvitationSerializer(invitation).data,
            message='Invitation sent',
            status_code=status.HTTP_201_CREATED
        )
    except HANDLED_EXCEPTIONS:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in invitation_list_create: {str(e)}", exc_info=True)
        return error_response('An unexpected error occurred', 'INTERNAL_SERVER_ERROR',
                              status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization, IsOrganizationAdmin])
def invitation_sent_list(request):
    """Invitations sent by the current organization"""
    invitations = OrganizationInvitation.objects.filter(
        organization_id=request.user.organization_id
    ).select_related('organization', 'invited_by')
    invitation_status = request.query_params.get('status')
    if invitation_status:
        invitations = invitations.filter(status=invitation_status)
    return success_response(OrganizationInvitationSerializer(invitations, many=True).data)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def invitation_detail(request, pk):
    """PUT: invitee accepts/rejects. DELETE: inviting admin cancels"""
    try:
        invitation = OrganizationInvitation.objects.select_related('organization').get(pk=pk)
    except OrganizationInvitation.DoesNotExist:
        raise NotFound('Invitation not found', code='INVITATION_NOT_FOUND')

    if request.method == 'DELETE':
        if not (request.user.is_org_admin and request.user.organization_id == invitation.organization_id):
            raise PermissionDenied('Only administrators of the inviting organization can cancel invitations')
        if invitation.status != 'pending':
            raise ValidationFailed(f'Invitation is already {invitation.status}', code='INVITATION_NOT_PENDING')
        invitation.status = 'cancelled'
        invitation.save(update_fields=['status', 'updated_at'])
        logger.info(f"Invitation {pk} cancelled by {request.user.username}")
        return success_response(OrganizationInvitationSerializer(invitation).data, message='Invitation cancelled')

    if (request.user.email or '').lower() != invitation.invited_email.lower():
        raise PermissionDenied('This invitation was sent to another email address', code='FORBIDDEN')

    serializer = InvitationResponseSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    if serializer.validated_data['action'] == 'accept':
        accept_invitation(invitation, request.user)
        create_audit_log(request=request, action='invitation_accept', model_name='OrganizationInvitation',
                         object_id=invitation.id, object_name=invitation.invited_email,
                         organization=invitation.organization)
        message = 'Invitation accepted'
    else:
        if invitation.status != 'pending':
            raise ValidationFailed(f'Invitation is already {invitation.status}', code='INVITATION_NOT_PENDING')
        invitation.status = 'rejected'
        invitation.save(update_fields=['status', 'updated_at'])
        logger.info(f"User {request.user.username} rejected invitation {pk}")
        message = 'Invitation rejected'

    return success_response(OrganizationInvitationSerializer(invitation).data, message=message)


# Organization request views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def request_list_create(request):
    """GET: own requests (staff see all). POST: request a new organization"""
    if request.method == 'GET':
        if _is_staff(request.user):
            requests_qs = OrganizationRequest.objects.all().select_related('requested_by')
            request_status = request.query_params.get('status')
            if request_status:
                requests_qs = requests_qs.filter(status=request_status)
            priority = request.query_params.get('priority')
            if priority:
                requests_qs = requests_qs.filter(priority=priority)
        else:
            requests_qs = OrganizationRequest.objects.filter(requested_by=request.user).select_related('requested_by')
        return success_response(paginate(request, requests_qs, OrganizationRequestSerializer))

    if request.user.organization_id:
        raise Conflict('User already belongs to an organization', code='USER_ALREADY_HAS_ORGANIZATION')
    if OrganizationRequest.objects.filter(requested_by=request.user, status__in=OrganizationRequest.OPEN_STATUSES).exists():
        raise Conflict('You already have a pending organization request', code='REQUEST_EXISTS')

    serializer = OrganizationRequestSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Organization request validation failed: {serializer.errors}")
        return validation_error_response(serializer.errors)
    org_request = serializer.save(requested_by=request.user)
    logger.info(f"User {request.user.username} requested organization '{org_request.organization_name}'")
    return success_response(
        OrganizationRequestSerializer(org_request).data,
        message='Organization request submitted',
        status_code=status.HTTP_201_CREATED
    )


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def request_detail(request, pk):
    """Retrieve, review (staff) or cancel (requester) an organization request"""
    try:
        org_request = OrganizationRequest.objects.select_related('requested_by').get(pk=pk)
    except OrganizationRequest.DoesNotExist:
        raise NotFound('Organization request not found', code='REQUEST_NOT_FOUND')

    is_owner = org_request.requested_by_id == request.user.pk
    if not (is_owner or _is_staff(request.user)):
        raise PermissionDenied('You do not have access to this request', code='FORBIDDEN')

    if request.method == 'GET':
        return success_response(OrganizationRequestSerializer(org_request).data)

    if org_request.status not in OrganizationRequest.OPEN_STATUSES:
        raise ValidationFailed(f'Request is already {org_request.status}', code='REQUEST_CLOSED')

    if request.method == 'DELETE':
        if not is_owner:
            raise PermissionDenied('Only the requester can cancel a request')
        org_request.status = 'cancelled'
        org_request.save(update_fields=['status', 'updated_at'])
        logger.info(f"Organization request {pk} cancelled by {request.user.username}")
        return success_response(OrganizationRequestSerializer(org_request).data, message='Request cancelled')

    if not _is_staff(request.user):
        raise PermissionDenied('Only platform staff can review organization requests')

    serializer = OrganizationRequestReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    data = serializer.validated_data

    with transaction.atomic():
        if data['status'] == 'approved':
            organization = create_organization(
                org_request.requested_by,
                name=org_request.organization_name,
                nit=org_request.organization_nit,
                phone_service=org_request.organization_phone,
                address=org_request.organization_address,
                tax_regime=org_request.organization_tax_regime,
            )
            org_request.created_organization = organization
        org_request.status = data['status']
        org_request.review_comments = data.get('review_comments', '')
        if data.get('priority'):
            org_request.priority = data['priority']
        org_request.reviewed_by = request.user
        org_request.reviewed_at = timezone.now()
        org_request.save()

    logger.info(f"Organization request {pk} marked {org_request.status} by {request.user.username}")
    return success_response(OrganizationRequestSerializer(org_request).data)
