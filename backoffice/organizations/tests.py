"""
Test suite for Organizations module
Tests: organization creation, members, invitations and organization requests
"""
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backoffice.core.models import User
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.organizations.models import Organization, OrganizationInvitation, OrganizationRequest


class OrganizationAPITests(TestCase):
    """Creating and editing organizations"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_organization_makes_creator_admin(self):
        response = self.client.post('/api/v1/organizations/', {'name': 'Rapid Deliveries'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['slug'], 'rapid-deliveries')
        self.user.refresh_from_db()
        self.assertEqual(self.user.organization.name, 'Rapid Deliveries')
        self.assertEqual(self.user.role, User.ROLE_ADMIN)

    def test_duplicate_slug_conflict(self):
        TestDataFactory.create_organization(name='Rapid Deliveries')
        response = self.client.post('/api/v1/organizations/', {'name': 'Rapid  deliveries'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'ORGANIZATION_SLUG_EXISTS')

    def test_member_cannot_create_second_organization(self):
        organization = TestDataFactory.create_organization()
        self.client.authenticate_user(TestDataFactory.create_user(organization=organization))
        response = self.client.post('/api/v1/organizations/', {'name': 'Another One'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'USER_ALREADY_HAS_ORGANIZATION')

    def test_non_member_cannot_read_organization(self):
        organization = TestDataFactory.create_organization()
        response = self.client.get(f'/api/v1/organizations/{organization.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'FORBIDDEN')

    def test_non_admin_cannot_update_organization(self):
        organization = TestDataFactory.create_organization()
        self.client.authenticate_user(TestDataFactory.create_user(organization=organization, role='delivery'))
        response = self.client.patch(f'/api/v1/organizations/{organization.id}/', {'phone_service': '123'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'INSUFFICIENT_PERMISSIONS')

    def test_admin_rename_regenerates_slug(self):
        organization = TestDataFactory.create_organization(name='Old Name')
        self.client.authenticate_user(TestDataFactory.create_user(organization=organization))
        response = self.client.patch(f'/api/v1/organizations/{organization.id}/', {'name': 'New Name'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        organization.refresh_from_db()
        self.assertEqual(organization.slug, 'new-name')

    def test_list_only_own_organization(self):
        organization = TestDataFactory.create_organization()
        TestDataFactory.create_organization()
        self.client.authenticate_user(TestDataFactory.create_user(organization=organization))
        response = self.client.get('/api/v1/organizations/')
        self.assertEqual([org['id'] for org in response.data['data']], [organization.id])


class MemberAPITests(TestCase):
    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.admin = TestDataFactory.create_user(organization=self.organization)
        self.member = TestDataFactory.create_user(organization=self.organization, role='service_client')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_list_members(self):
        response = self.client.get('/api/v1/organizations/users/')
        self.assertEqual(len(response.data['data']), 2)

    def test_change_member_role(self):
        response = self.client.patch(f'/api/v1/organizations/users/{self.member.id}/', {'role': 'delivery'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.member.refresh_from_db()
        self.assertEqual(self.member.role, 'delivery')

    def test_remove_member(self):
        response = self.client.delete(f'/api/v1/organizations/users/{self.member.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.member.refresh_from_db()
        self.assertIsNone(self.member.organization)

    def test_admin_cannot_remove_self(self):
        response = self.client.delete(f'/api/v1/organizations/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'SELF_REMOVAL_NOT_ALLOWED')

    def test_member_of_other_organization_not_found(self):
        outsider = TestDataFactory.create_user(organization=TestDataFactory.create_organization())
        response = self.client.patch(f'/api/v1/organizations/users/{outsider.id}/', {'role': 'delivery'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class InvitationAPITests(TestCase):
    """Sending, accepting and rejecting invitations"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.admin = TestDataFactory.create_user(organization=self.organization)
        self.invitee = TestDataFactory.create_user(email='invitee@test.com')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_admin_sends_invitation(self):
        response = self.client.post('/api/v1/organizations/invitations/', {
            'invited_email': 'Invitee@Test.com', 'assigned_role': 'delivery'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        invitation = OrganizationInvitation.objects.get()
        self.assertEqual(invitation.invited_email, 'invitee@test.com')
        self.assertEqual(invitation.status, 'pending')

    def test_duplicate_pending_invitation_conflict(self):
        TestDataFactory.create_invitation(self.organization, self.admin, email='invitee@test.com')
        response = self.client.post('/api/v1/organizations/invitations/', {
            'invited_email': 'invitee@test.com'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'INVITATION_EXISTS')

    def test_cannot_invite_user_with_organization(self):
        TestDataFactory.create_user(organization=TestDataFactory.create_organization(), email='taken@test.com')
        response = self.client.post('/api/v1/organizations/invitations/', {
            'invited_email': 'taken@test.com'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'USER_ALREADY_HAS_ORGANIZATION')

    def test_non_admin_cannot_invite(self):
        member = TestDataFactory.create_user(organization=self.organization, role='service_client')
        self.client.authenticate_user(member)
        response = self.client.post('/api/v1/organizations/invitations/', {
            'invited_email': 'someone@test.com'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_invitee_accepts(self):
        invitation = TestDataFactory.create_invitation(self.organization, self.admin, email='invitee@test.com',
                                                       role='delivery')
        other = TestDataFactory.create_invitation(TestDataFactory.create_organization(), self.admin,
                                                  email='invitee@test.com')
        self.client.authenticate_user(self.invitee)
        response = self.client.put(f'/api/v1/organizations/invitations/{invitation.id}/', {'action': 'accept'},
                                   format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.invitee.refresh_from_db()
        self.assertEqual(self.invitee.organization_id, self.organization.id)
        self.assertEqual(self.invitee.role, 'delivery')
        other.refresh_from_db()
        self.assertEqual(other.status, 'cancelled')

    def test_expired_invitation(self):
        invitation = TestDataFactory.create_invitation(
            self.organization, self.admin, email='invitee@test.com',
            expires_at=timezone.now() - timedelta(days=1)
        )
        self.client.authenticate_user(self.invitee)
        response = self.client.put(f'/api/v1/organizations/invitations/{invitation.id}/', {'action': 'accept'},
                                   format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVITATION_EXPIRED')
        invitation.refresh_from_db()
        self.assertEqual(invitation.status, 'expired')
        self.invitee.refresh_from_db()
        self.assertIsNone(self.invitee.organization)

    def test_other_user_cannot_answer_invitation(self):
        invitation = TestDataFactory.create_invitation(self.organization, self.admin, email='invitee@test.com')
        self.client.authenticate_user(TestDataFactory.create_user(email='intruder@test.com'))
        response = self.client.put(f'/api/v1/organizations/invitations/{invitation.id}/', {'action': 'accept'},
                                   format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'FORBIDDEN')

    def test_invitee_rejects(self):
        invitation = TestDataFactory.create_invitation(self.organization, self.admin, email='invitee@test.com')
        self.client.authenticate_user(self.invitee)
        response = self.client.put(f'/api/v1/organizations/invitations/{invitation.id}/', {'action': 'reject'},
                                   format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        invitation.refresh_from_db()
        self.assertEqual(invitation.status, 'rejected')

    def test_admin_cancels_invitation(self):
        invitation = TestDataFactory.create_invitation(self.organization, self.admin, email='invitee@test.com')
        response = self.client.delete(f'/api/v1/organizations/invitations/{invitation.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        invitation.refresh_from_db()
        self.assertEqual(invitation.status, 'cancelled')

    def test_pending_invitations_for_current_user(self):
        TestDataFactory.create_invitation(self.organization, self.admin, email='invitee@test.com')
        self.client.authenticate_user(self.invitee)
        response = self.client.get('/api/v1/organizations/invitations/')
        self.assertEqual(len(response.data['data']), 1)


class OrganizationRequestAPITests(TestCase):
    """Requests for new organizations reviewed by staff"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.staff = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.payload = {
            'organization_name': 'North Deliveries',
            'business_justification': 'We deliver meals across the northern district every day.',
        }

    def test_submit_request(self):
        response = self.client.post('/api/v1/organizations/requests/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(OrganizationRequest.objects.get().status, 'pending')

    def test_short_justification_rejected(self):
        self.payload['business_justification'] = 'too short'
        response = self.client.post('/api/v1/organizations/requests/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_JUSTIFICATION')

    def test_second_open_request_conflict(self):
        self.client.post('/api/v1/organizations/requests/', self.payload, format='json')
        response = self.client.post('/api/v1/organizations/requests/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'REQUEST_EXISTS')

    def test_staff_approval_creates_organization(self):
        org_request = OrganizationRequest.objects.create(requested_by=self.user, **self.payload)
        self.client.authenticate_user(self.staff)
        response = self.client.patch(f'/api/v1/organizations/requests/{org_request.id}/',
                                     {'status': 'approved', 'review_comments': 'ok'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        org_request.refresh_from_db()
        self.assertEqual(org_request.status, 'approved')
        self.assertIsNotNone(org_request.created_organization)
        self.user.refresh_from_db()
        self.assertEqual(self.user.organization, org_request.created_organization)
        self.assertEqual(self.user.role, User.ROLE_ADMIN)
        self.assertTrue(Organization.objects.filter(slug='north-deliveries').exists())

    def test_requester_cannot_review(self):
        org_request = OrganizationRequest.objects.create(requested_by=self.user, **self.payload)
        response = self.client.patch(f'/api/v1/organizations/requests/{org_request.id}/',
                                     {'status': 'approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_closed_request_cannot_change(self):
        org_request = OrganizationRequest.objects.create(requested_by=self.user, status='rejected', **self.payload)
        response = self.client.delete(f'/api/v1/organizations/requests/{org_request.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'REQUEST_CLOSED')
