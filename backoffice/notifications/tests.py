"""
Test suite for Notifications module
Tests: generated notifications, inbox endpoints and organization preferences
"""
from django.test import TestCase
from rest_framework import status

from backoffice.core.models import Setting
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.notifications.models import Notification
from backoffice.notifications.services import notify_stock_level, SETTING_NEW_ORDERS
from backoffice.orders.services import change_status


class NotificationGenerationTests(TestCase):
    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user = TestDataFactory.create_user(organization=self.organization)

    def test_new_order_notification(self):
        order = TestDataFactory.create_order(self.organization, self.user)
        notification = Notification.objects.get(organization=self.organization, type='new_order')
        self.assertEqual(notification.related_model, 'Order')
        self.assertEqual(notification.related_id, str(order.id))
        self.assertEqual(notification.created_by, self.user)

    def test_status_change_notifications(self):
        order = TestDataFactory.create_order(self.organization, self.user)
        change_status(order, 'en_route')
        change_status(order, 'delivered')
        types = set(Notification.objects.filter(organization=self.organization).values_list('type', flat=True))
        self.assertIn('status_change', types)
        self.assertIn('delivered', types)

    def test_disabled_preference_skips_notification(self):
        Setting.objects.create(organization=self.organization, key=SETTING_NEW_ORDERS, value='false')
        TestDataFactory.create_order(self.organization, self.user)
        self.assertFalse(Notification.objects.filter(type='new_order').exists())

    def test_stock_levels(self):
        product = TestDataFactory.create_product(self.organization, stock=20, low_stock_threshold=5)
        self.assertIsNone(notify_stock_level(product, 25))
        product.stock = 5
        self.assertEqual(notify_stock_level(product, 20).type, 'low_stock')
        product.stock = 0
        self.assertEqual(notify_stock_level(product, 5).type, 'out_of_stock')

    def test_stock_level_only_on_drop_across_threshold(self):
        product = TestDataFactory.create_product(self.organization, stock=5, low_stock_threshold=5)
        # restock 4 -> 5
        self.assertIsNone(notify_stock_level(product, 4))
        product.stock = 3
        # already below the threshold
        self.assertIsNone(notify_stock_level(product, 4))
        product.stock = 0
        self.assertIsNone(notify_stock_level(product, 0))

    def test_order_draining_stock_notifies(self):
        product = TestDataFactory.create_product(self.organization, stock=2)
        TestDataFactory.create_order(self.organization, self.user, lines=[(product, 2)])
        self.assertTrue(Notification.objects.filter(type='out_of_stock', related_id=str(product.id)).exists())

    def test_consecutive_orders_below_threshold_notify_once(self):
        product = TestDataFactory.create_product(self.organization, stock=6, low_stock_threshold=5)
        TestDataFactory.create_order(self.organization, self.user, lines=[(product, 2)])
        TestDataFactory.create_order(self.organization, self.user, lines=[(product, 1)])
        self.assertEqual(Notification.objects.filter(type='low_stock', related_id=str(product.id)).count(), 1)


class NotificationAPITests(TestCase):
    """Inbox endpoints"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.admin = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def make(self, category='orders', notification_type='new_order', is_read=False, organization=None):
        return Notification.objects.create(
            organization=organization or self.organization, category=category, type=notification_type,
            title='Title', message='Message', is_read=is_read
        )

    def test_list_is_scoped_and_filterable(self):
        self.make()
        self.make(category='stock', notification_type='low_stock', is_read=True)
        self.make(organization=TestDataFactory.create_organization())

        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.data['data']['count'], 2)

        response = self.client.get('/api/v1/notifications/?unread=true')
        self.assertEqual(response.data['data']['count'], 1)

        response = self.client.get('/api/v1/notifications/?category=stock')
        self.assertEqual(response.data['data']['results'][0]['type'], 'low_stock')

    def test_post_message(self):
        response = self.client.post('/api/v1/notifications/', {'title': 'Hello', 'message': 'Team meeting'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['category'], 'messages')

    def test_mark_read(self):
        notification = self.make()
        response = self.client.patch(f'/api/v1/notifications/{notification.id}/', {'is_read': True},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        notification.refresh_from_db()
        self.assertTrue(notification.is_read)

    def test_mark_all_read_and_summary(self):
        self.make()
        self.make()
        self.make(category='stock', notification_type='low_stock')

        response = self.client.get('/api/v1/notifications/summary/')
        self.assertEqual(response.data['data']['unread'], 3)
        self.assertEqual(response.data['data']['by_category']['orders'], 2)

        response = self.client.post('/api/v1/notifications/mark-all-read/', {'category': 'orders'}, format='json')
        self.assertEqual(response.data['data']['updated'], 2)

        response = self.client.get('/api/v1/notifications/summary/')
        self.assertEqual(response.data['data']['unread'], 1)

    def test_other_organization_notification_not_found(self):
        notification = self.make(organization=TestDataFactory.create_organization())
        response = self.client.patch(f'/api/v1/notifications/{notification.id}/', {'is_read': True},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class NotificationPreferenceTests(TestCase):
    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.admin = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_defaults_enabled(self):
        response = self.client.get('/api/v1/notifications/preferences/')
        self.assertEqual(response.data['data'], {
            'new_orders': True, 'status_changes': True, 'low_stock': True, 'weekly_reports': True
        })

    def test_admin_disables_new_orders(self):
        response = self.client.patch('/api/v1/notifications/preferences/', {'new_orders': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['data']['new_orders'])
        self.assertEqual(Setting.objects.get(organization=self.organization, key=SETTING_NEW_ORDERS).value, 'false')

        TestDataFactory.create_order(self.organization, self.admin)
        self.assertFalse(Notification.objects.filter(type='new_order').exists())

    def test_member_cannot_change_preferences(self):
        member = TestDataFactory.create_user(organization=self.organization, role='delivery')
        self.client.authenticate_user(member)
        response = self.client.patch('/api/v1/notifications/preferences/', {'low_stock': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
