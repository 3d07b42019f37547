"""
Test suite for Reports module
Tests: dashboard, order series, revenue, status distribution, organization stats and caching
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from backoffice.core.cache_utils import get_reports_version
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.orders.services import change_status


class ReportsTests(TestCase):
    """Test report endpoints"""

    def setUp(self):
        cache.clear()
        self.organization = TestDataFactory.create_organization()
        self.user = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_dashboard(self):
        delivered = TestDataFactory.create_order(self.organization, self.user,
                                                 lines=[(TestDataFactory.create_product(self.organization,
                                                                                        price='20.00'), 2)])
        change_status(delivered, 'delivered')
        TestDataFactory.create_order(self.organization, self.user)
        TestDataFactory.create_order(TestDataFactory.create_organization())

        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['period_days'], 30)
        self.assertEqual(data['total_orders'], 2)
        self.assertEqual(data['delivered_orders'], 1)
        self.assertEqual(data['pending_orders'], 1)
        self.assertEqual(data['revenue'], '40.00')

    def test_invalid_days_parameter(self):
        response = self.client.get('/api/v1/reports/dashboard/?days=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_PARAMETER')

        response = self.client.get('/api/v1/reports/dashboard/?days=0')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_orders_by_day_has_one_row_per_day(self):
        TestDataFactory.create_order(self.organization, self.user)
        response = self.client.get('/api/v1/reports/orders-by-day/?days=7')
        series = response.data['data']
        self.assertEqual(len(series), 7)
        self.assertEqual(series[-1]['count'], 1)
        self.assertEqual(sum(row['count'] for row in series), 1)

    def test_revenue_by_month(self):
        order = TestDataFactory.create_order(self.organization, self.user)
        change_status(order, 'delivered')
        response = self.client.get('/api/v1/reports/revenue-by-month/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(response.data['data'][0]['orders'], 1)

    def test_status_distribution(self):
        TestDataFactory.create_order(self.organization, self.user)
        order = TestDataFactory.create_order(self.organization, self.user)
        change_status(order, 'cancelled')
        response = self.client.get('/api/v1/reports/status-distribution/')
        rows = {row['status']: row for row in response.data['data']}
        self.assertEqual(len(rows), 5)
        self.assertEqual(rows['pending']['count'], 1)
        self.assertEqual(rows['cancelled']['percentage'], 50.0)

    def test_organization_stats(self):
        TestDataFactory.create_courier(self.organization)
        TestDataFactory.create_category(self.organization)
        response = self.client.get('/api/v1/reports/organization-stats/')
        data = response.data['data']
        self.assertEqual(data['couriers'], 1)
        self.assertEqual(data['categories'], 1)
        self.assertEqual(data['users'], 1)

    def test_reports_are_cached(self):
        first = self.client.get('/api/v1/reports/organization-stats/').data['data']
        # Rows created outside a committed transaction do not invalidate the cache
        TestDataFactory.create_courier(self.organization)
        second = self.client.get('/api/v1/reports/organization-stats/').data['data']
        self.assertEqual(first, second)

    def test_cache_invalidated_on_commit(self):
        self.client.get('/api/v1/reports/organization-stats/')
        version = get_reports_version(self.organization.id)
        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_courier(self.organization)
        self.assertEqual(get_reports_version(self.organization.id), version + 1)
        response = self.client.get('/api/v1/reports/organization-stats/')
        self.assertEqual(response.data['data']['couriers'], 1)

    def test_requires_organization(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'NO_ORGANIZATION')
