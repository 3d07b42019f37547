"""Organization lifecycle: creation, membership and invitations"""
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from backoffice.core.exceptions import Conflict, ValidationFailed, PermissionDenied
from .models import Organization

logger = logging.getLogger('backoffice.organizations')

User = get_user_model()


def create_organization(owner, **fields):
    """
    Create an organization and make `owner` its admin.

    Raises Conflict when the owner already belongs to an organization or the
    generated slug is taken.
    """
    if owner.organization_id:
        raise Conflict('User already belongs to an organization', code='USER_ALREADY_HAS_ORGANIZATION')

    slug = Organization.build_slug(fields.get('name', ''))
    if not slug:
        raise ValidationFailed('Organization name must contain letters or digits', code='INVALID_NAME')
    if Organization.objects.filter(slug=slug).exists():
        raise Conflict('An organization with this name already exists', code='ORGANIZATION_SLUG_EXISTS')

    with transaction.atomic():
        organization = Organization.objects.create(slug=slug, **fields)
        owner.organization = organization
        owner.role = User.ROLE_ADMIN
        owner.save(update_fields=['organization', 'role', 'updated_at'])

    logger.info(f"Organization '{organization.name}' ({organization.slug}) created, admin {owner.username}")
    return organization


def accept_invitation(invitation, user):
    """Attach the user to the inviting organization with the invitation's role"""
    if invitation.status != 'pending':
        raise ValidationFailed(f'Invitation is already {invitation.status}', code='INVITATION_NOT_PENDING')
    if invitation.is_expired:
        invitation.status = 'expired'
        invitation.save(update_fields=['status', 'updated_at'])
        raise ValidationFailed('Invitation has expired', code='INVITATION_EXPIRED')
    if user.organization_id and user.organization_id != invitation.organization_id:
        raise Conflict('User already belongs to an organization', code='USER_ALREADY_HAS_ORGANIZATION')
    if not invitation.organization.is_active:
        raise PermissionDenied('Organization is not active', code='ORGANIZATION_INACTIVE')

    with transaction.atomic():
        invitation.status = 'accepted'
        invitation.accepted_by = user
        invitation.accepted_at = timezone.now()
        invitation.save(update_fields=['status', 'accepted_by', 'accepted_at', 'updated_at'])

        user.organization = invitation.organization
        user.role = invitation.assigned_role
        user.save(update_fields=['organization', 'role', 'updated_at'])

        # Other pending invitations for the same address are void once one is accepted
        invitation.__class__.objects.filter(
            invited_email__iexact=invitation.invited_email, status='pending'
        ).exclude(pk=invitation.pk).update(status='cancelled', updated_at=timezone.now())

    logger.info(f"User {user.username} joined organization {invitation.organization_id} as {user.role}")
    return invitation
