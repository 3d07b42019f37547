"""
Test suite for the core app
Tests: Firebase authentication, user sync, organization status, settings, audit logs, search and seeding
"""
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import TestCase, override_settings
from django.urls import resolve
from firebase_admin import auth as firebase_auth
from rest_framework import status
from rest_framework.test import APIClient

from backoffice.core import firebase
from backoffice.core.exceptions import AuthenticationError
from backoffice.core.models import AuditLog, Setting, User
from backoffice.core.seed import seed_demo_data
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.orders.models import Order
from backoffice.organizations.models import OrganizationRequest


def decoded_token(uid, email=None):
    return {'uid': uid, 'email': email or f'{uid}@test.com', 'email_verified': True, 'name': 'Test User'}


class URLConfTests(TestCase):
    """Every app's views load and resolve under /api/v1/"""

    def test_api_routes_resolve(self):
        routes = {
            '/api/v1/auth/sync/': 'auth_sync',
            '/api/v1/organizations/': 'organization_list_create',
            '/api/v1/products/': 'product_list_create',
            '/api/v1/clients/': 'client_list_create',
            '/api/v1/orders/': 'order_list_create',
            '/api/v1/orders/validate/': 'order_validate',
            '/api/v1/assignments/': 'assignment_list_create',
            '/api/v1/notifications/': 'notification_list_create',
            '/api/v1/reports/dashboard/': 'dashboard',
        }
        for path, view_name in routes.items():
            self.assertEqual(resolve(path).func.view_class.__name__, view_name)

    def test_exception_handler_renders_drf_errors(self):
        response = APIClient().get('/api/v1/orders/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['code'], 'AUTH_REQUIRED')


class FirebaseAuthenticationTests(TestCase):
    """Bearer token handling on protected endpoints"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user = TestDataFactory.create_user(organization=self.organization, firebase_uid='uid_synced')
        self.client = APIClient()

    def test_missing_token_returns_401(self):
        response = self.client.get('/api/v1/user/profile/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['code'], 'AUTH_REQUIRED')

    def test_malformed_header_returns_401(self):
        response = self.client.get('/api/v1/user/profile/', HTTP_AUTHORIZATION='Token abc')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['code'], 'AUTH_TOKEN_MISSING')

    @mock.patch('backoffice.core.firebase.verify_id_token')
    def test_valid_token_authenticates_synced_user(self, verify):
        verify.return_value = decoded_token('uid_synced')
        response = self.client.get('/api/v1/user/profile/', HTTP_AUTHORIZATION='Bearer good-token')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['firebase_uid'], 'uid_synced')
        self.assertEqual(response.data['data']['organization']['id'], self.organization.id)
        verify.assert_called_once_with('good-token')

    @mock.patch('backoffice.core.firebase.verify_id_token')
    def test_unsynced_user_is_rejected(self, verify):
        verify.return_value = decoded_token('uid_unknown')
        response = self.client.get('/api/v1/user/profile/', HTTP_AUTHORIZATION='Bearer token')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['code'], 'USER_NOT_SYNCED')

    @mock.patch('backoffice.core.firebase.verify_id_token')
    def test_inactive_user_is_rejected(self, verify):
        self.user.is_active = False
        self.user.save()
        verify.return_value = decoded_token('uid_synced')
        response = self.client.get('/api/v1/user/profile/', HTTP_AUTHORIZATION='Bearer token')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['code'], 'USER_INACTIVE')

    @mock.patch('backoffice.core.firebase.verify_id_token')
    def test_invalid_token_is_rejected(self, verify):
        verify.side_effect = AuthenticationError('Invalid or expired token', code='AUTH_TOKEN_INVALID')
        response = self.client.get('/api/v1/clients/', HTTP_AUTHORIZATION='Bearer bad')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['code'], 'AUTH_TOKEN_INVALID')


class FirebaseWrapperTests(TestCase):
    """Mapping of firebase_admin errors to API errors"""

    @mock.patch('backoffice.core.firebase.get_firebase_app', return_value=None)
    @mock.patch('backoffice.core.firebase.auth.verify_id_token')
    def test_expired_token(self, verify, _app):
        verify.side_effect = firebase_auth.ExpiredIdTokenError('expired', cause=None)
        with self.assertRaises(AuthenticationError) as ctx:
            firebase.verify_id_token('token')
        self.assertEqual(ctx.exception.code, 'AUTH_TOKEN_EXPIRED')
        self.assertEqual(ctx.exception.status_code, 401)

    @mock.patch('backoffice.core.firebase.get_firebase_app', return_value=None)
    @mock.patch('backoffice.core.firebase.auth.verify_id_token')
    def test_invalid_token(self, verify, _app):
        verify.side_effect = firebase_auth.InvalidIdTokenError('bad signature')
        with self.assertRaises(AuthenticationError) as ctx:
            firebase.verify_id_token('token')
        self.assertEqual(ctx.exception.code, 'AUTH_TOKEN_INVALID')

    @mock.patch('backoffice.core.firebase.get_firebase_app', return_value=None)
    @mock.patch('backoffice.core.firebase.auth.get_user')
    def test_missing_firebase_user_returns_none(self, get_user, _app):
        get_user.side_effect = firebase_auth.UserNotFoundError('no user')
        self.assertIsNone(firebase.get_firebase_user('uid_missing'))


@mock.patch('backoffice.core.firebase.verify_id_token')
class AuthSyncTests(TestCase):
    """POST /auth/sync/ creates or updates the local user"""

    def setUp(self):
        self.client = APIClient()
        self.payload = {
            'firebase_uid': 'uid_new',
            'email': 'new@test.com',
            'email_verified': True,
            'display_name': 'New User',
        }

    def test_sync_creates_user(self, verify):
        verify.return_value = decoded_token('uid_new', 'new@test.com')
        response = self.client.post('/api/v1/auth/sync/', self.payload, format='json',
                                    HTTP_AUTHORIZATION='Bearer token')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['data']['is_new_user'])
        user = User.objects.get(firebase_uid='uid_new')
        self.assertEqual(user.username, 'uid_new')
        self.assertEqual(user.role, User.ROLE_NONE)
        self.assertIsNone(user.organization)
        self.assertFalse(user.has_usable_password())

    def test_sync_updates_existing_user(self, verify):
        TestDataFactory.create_user(firebase_uid='uid_new', email='old@test.com')
        verify.return_value = decoded_token('uid_new', 'new@test.com')
        response = self.client.post('/api/v1/auth/sync/', self.payload, format='json',
                                    HTTP_AUTHORIZATION='Bearer token')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['data']['is_new_user'])
        self.assertEqual(User.objects.filter(firebase_uid='uid_new').count(), 1)
        self.assertEqual(User.objects.get(firebase_uid='uid_new').email, 'new@test.com')

    def test_sync_rejects_uid_mismatch(self, verify):
        verify.return_value = decoded_token('uid_other')
        response = self.client.post('/api/v1/auth/sync/', self.payload, format='json',
                                    HTTP_AUTHORIZATION='Bearer token')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'UID_MISMATCH')
        self.assertFalse(User.objects.filter(firebase_uid='uid_new').exists())

    def test_sync_requires_token(self, verify):
        response = self.client.post('/api/v1/auth/sync/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['code'], 'AUTH_TOKEN_MISSING')
        verify.assert_not_called()

    def test_sync_requires_email(self, verify):
        verify.return_value = decoded_token('uid_new')
        payload = dict(self.payload)
        del payload['email']
        response = self.client.post('/api/v1/auth/sync/', payload, format='json',
                                    HTTP_AUTHORIZATION='Bearer token')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'MISSING_REQUIRED_FIELDS')

    def test_verify_reports_sync_state(self, verify):
        verify.return_value = decoded_token('uid_new')
        response = self.client.post('/api/v1/auth/verify/', {}, format='json', HTTP_AUTHORIZATION='Bearer token')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['uid'], 'uid_new')
        self.assertFalse(response.data['data']['is_synced'])


class OrganizationPermissionTests(TestCase):
    """Tenant permission checks shared by every app"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_user_without_organization_gets_403(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/clients/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'NO_ORGANIZATION')

    def test_inactive_organization_gets_403(self):
        organization = TestDataFactory.create_organization(is_active=False)
        self.client.authenticate_user(TestDataFactory.create_user(organization=organization))
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'NO_ORGANIZATION')

    def test_non_admin_cannot_read_audit_log(self):
        organization = TestDataFactory.create_organization()
        self.client.authenticate_user(TestDataFactory.create_user(organization=organization, role='delivery'))
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'INSUFFICIENT_PERMISSIONS')

    def test_unknown_object_returns_404_envelope(self):
        organization = TestDataFactory.create_organization()
        self.client.authenticate_user(TestDataFactory.create_user(organization=organization))
        response = self.client.get('/api/v1/clients/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['code'], 'CLIENT_NOT_FOUND')


class UserProfileTests(TestCase):
    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_update_profile(self):
        response = self.client.patch('/api/v1/user/profile/', {'display_name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.display_name, 'Renamed')

    def test_blank_display_name_rejected(self):
        response = self.client.patch('/api/v1/user/profile/', {'display_name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class OrganizationStatusTests(TestCase):
    """GET /user/organization-status/"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_member_has_organization(self):
        organization = TestDataFactory.create_organization()
        self.client.authenticate_user(TestDataFactory.create_user(organization=organization, role='delivery'))
        response = self.client.get('/api/v1/user/organization-status/')
        self.assertEqual(response.data['data']['status'], 'HAS_ORGANIZATION')
        self.assertEqual(response.data['data']['role'], 'delivery')

    def test_pending_invitation(self):
        organization = TestDataFactory.create_organization()
        admin = TestDataFactory.create_user(organization=organization)
        user = TestDataFactory.create_user(email='invitee@test.com')
        TestDataFactory.create_invitation(organization, admin, email='invitee@test.com')
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/user/organization-status/')
        self.assertEqual(response.data['data']['status'], 'PENDING_INVITATION')
        self.assertEqual(len(response.data['data']['invitations']), 1)

    def test_pending_request(self):
        user = TestDataFactory.create_user()
        OrganizationRequest.objects.create(
            requested_by=user, organization_name='Fast Food', business_justification='x' * 30
        )
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/user/organization-status/')
        self.assertEqual(response.data['data']['status'], 'PENDING_REQUEST')

    def test_no_organization(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/user/organization-status/')
        self.assertEqual(response.data['data']['status'], 'NO_ORGANIZATION')


class SettingAPITests(TestCase):
    """Organization settings"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.admin = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_setting(self):
        response = self.client.post('/api/v1/settings/', {'key': 'currency', 'value': 'COP'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Setting.objects.filter(organization=self.organization, key='currency').exists())
        self.assertTrue(AuditLog.objects.filter(model_name='Setting', action='create').exists())

    def test_duplicate_key_rejected(self):
        Setting.objects.create(organization=self.organization, key='currency', value='COP')
        response = self.client.post('/api/v1/settings/', {'key': 'currency', 'value': 'USD'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'SETTING_EXISTS')

    def test_same_key_allowed_in_other_organization(self):
        other = TestDataFactory.create_organization()
        Setting.objects.create(organization=other, key='currency', value='USD')
        response = self.client.post('/api/v1/settings/', {'key': 'currency', 'value': 'COP'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_member_cannot_write_settings(self):
        member = TestDataFactory.create_user(organization=self.organization, role='service_client')
        self.client.authenticate_user(member)
        response = self.client.post('/api/v1/settings/', {'key': 'currency', 'value': 'COP'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_other_organization_setting_not_found(self):
        other = TestDataFactory.create_organization()
        setting = Setting.objects.create(organization=other, key='currency', value='USD')
        response = self.client.get(f'/api/v1/settings/{setting.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'SETTING_NOT_FOUND')


class AuditLogAPITests(TestCase):
    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.admin = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_client_creation_is_audited(self):
        self.client.post('/api/v1/clients/', {
            'first_name': 'Ana', 'last_name': 'Ruiz', 'phone': '3001234567', 'address': 'Calle 1 # 2-3'
        }, format='json')
        response = self.client.get('/api/v1/audit-logs/?model_name=Client')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['count'], 1)
        entry = response.data['data']['results'][0]
        self.assertEqual(entry['action'], 'create')
        self.assertEqual(entry['user']['id'], self.admin.id)

    def test_audit_log_scoped_to_organization(self):
        other = TestDataFactory.create_organization()
        AuditLog.objects.create(organization=other, action='create', model_name='Client', object_id='1')
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.data['data']['count'], 0)


class GlobalSearchTests(TestCase):
    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(organization=self.organization))

    def test_search_is_scoped_to_organization(self):
        TestDataFactory.create_product(self.organization, name='Hawaiian Pizza')
        TestDataFactory.create_client(self.organization, first_name='Pizzeria Luigi')
        other = TestDataFactory.create_organization()
        TestDataFactory.create_product(other, name='Pizza Napoli')

        response = self.client.get('/api/v1/search/?q=pizz')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual([p['name'] for p in data['products']], ['Hawaiian Pizza'])
        self.assertEqual(len(data['clients']), 1)

    def test_empty_query(self):
        response = self.client.get('/api/v1/search/')
        self.assertEqual(response.data['data']['products'], [])


class SeedDataTests(TestCase):
    def test_seed_demo_data(self):
        admin = TestDataFactory.create_user()
        summary = seed_demo_data('Seed Test', admin=admin)
        admin.refresh_from_db()
        self.assertEqual(admin.organization_id, summary['organization']['id'])
        self.assertEqual(admin.role, User.ROLE_ADMIN)
        self.assertEqual(summary['products'], 5)
        self.assertEqual(Order.objects.filter(organization_id=admin.organization_id).count(), 3)

    def test_seed_is_idempotent(self):
        seed_demo_data('Seed Test')
        summary = seed_demo_data('Seed Test')
        self.assertFalse(summary['organization']['created'])
        self.assertEqual(summary['orders'], 0)

    def test_seed_command(self):
        out = StringIO()
        call_command('seed_demo_data', '--name', 'Command Org', stdout=out)
        self.assertIn('Command Org', out.getvalue())

    @override_settings(DEBUG=False)
    def test_seed_endpoint_disabled_without_debug(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user(is_staff=True))
        response = client.post('/api/v1/admin/seed/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'SEED_DISABLED')
