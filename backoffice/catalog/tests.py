"""
Test suite for Catalog module
Tests: categories, product validation, filters, stock adjustments and deletion rules
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backoffice.catalog.models import Category, Product
from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.notifications.models import Notification


class ProductModelTests(TestCase):
    def setUp(self):
        self.organization = TestDataFactory.create_organization()

    def test_low_stock_flags(self):
        product = TestDataFactory.create_product(self.organization, stock=3, low_stock_threshold=5)
        self.assertTrue(product.is_low_stock)
        self.assertFalse(product.is_out_of_stock)

    def test_out_of_stock_is_not_low_stock(self):
        product = TestDataFactory.create_product(self.organization, stock=0)
        self.assertTrue(product.is_out_of_stock)
        self.assertFalse(product.is_low_stock)


class CategoryAPITests(TestCase):
    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(organization=self.organization))

    def test_create_category(self):
        response = self.client.post('/api/v1/categories/', {'name': 'Drinks'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Category.objects.get().organization, self.organization)

    def test_duplicate_name_rejected(self):
        TestDataFactory.create_category(self.organization, name='Drinks')
        response = self.client.post('/api/v1/categories/', {'name': 'drinks'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'CATEGORY_EXISTS')

    def test_list_is_scoped_and_counts_products(self):
        category = TestDataFactory.create_category(self.organization, name='Pizza')
        TestDataFactory.create_product(self.organization, category=category)
        TestDataFactory.create_category(TestDataFactory.create_organization(), name='Other')
        response = self.client.get('/api/v1/categories/')
        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(response.data['data'][0]['product_count'], 1)

    def test_delete_category_keeps_products(self):
        category = TestDataFactory.create_category(self.organization)
        product = TestDataFactory.create_product(self.organization, category=category)
        response = self.client.delete(f'/api/v1/categories/{category.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertIsNone(product.category)

    def test_category_stats(self):
        category = TestDataFactory.create_category(self.organization, name='Pizza')
        TestDataFactory.create_category(self.organization, name='Empty')
        TestDataFactory.create_product(self.organization, category=category)
        TestDataFactory.create_product(self.organization)
        response = self.client.get('/api/v1/categories/stats/')
        data = response.data['data']
        self.assertEqual(data['total'], 2)
        self.assertEqual(data['with_products'], 1)
        self.assertEqual(data['empty'], 1)
        self.assertEqual(data['uncategorized_products'], 1)


class ProductAPITests(TestCase):
    """Product CRUD and validation codes"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_product(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Classic Burger', 'price': '15000.00', 'stock': 20
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        product = Product.objects.get()
        self.assertEqual(product.organization, self.organization)
        self.assertEqual(product.price, Decimal('15000.00'))
        self.assertTrue(AuditLog.objects.filter(model_name='Product', action='create').exists())

    def test_invalid_price(self):
        response = self.client.post('/api/v1/products/', {'name': 'Burger', 'price': '0', 'stock': 1},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_PRICE')

    def test_negative_stock(self):
        response = self.client.post('/api/v1/products/', {'name': 'Burger', 'price': '10', 'stock': -1},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_STOCK')

    def test_short_name(self):
        response = self.client.post('/api/v1/products/', {'name': 'B', 'price': '10'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_NAME')

    def test_missing_price(self):
        response = self.client.post('/api/v1/products/', {'name': 'Burger'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'MISSING_REQUIRED_FIELDS')

    def test_category_from_other_organization(self):
        category = TestDataFactory.create_category(TestDataFactory.create_organization())
        response = self.client.post('/api/v1/products/', {
            'name': 'Burger', 'price': '10', 'category': category.id
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_CATEGORY')

    def test_list_filters_and_pagination(self):
        TestDataFactory.create_product(self.organization, name='Burger', stock=2)
        TestDataFactory.create_product(self.organization, name='Pizza', stock=50)
        TestDataFactory.create_product(self.organization, name='Salad', stock=0)
        TestDataFactory.create_product(TestDataFactory.create_organization(), name='Foreign')

        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.data['data']['count'], 3)

        response = self.client.get('/api/v1/products/?low_stock=true')
        self.assertEqual([p['name'] for p in response.data['data']['results']], ['Burger'])

        response = self.client.get('/api/v1/products/?out_of_stock=true')
        self.assertEqual([p['name'] for p in response.data['data']['results']], ['Salad'])

        response = self.client.get('/api/v1/products/?page_size=2&page=2')
        self.assertEqual(len(response.data['data']['results']), 1)
        self.assertEqual(response.data['data']['total_pages'], 2)

    def test_product_of_other_organization_not_found(self):
        product = TestDataFactory.create_product(TestDataFactory.create_organization())
        response = self.client.get(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'PRODUCT_NOT_FOUND')

    def test_product_in_order_cannot_be_deleted(self):
        product = TestDataFactory.create_product(self.organization, stock=10)
        TestDataFactory.create_order(self.organization, self.user, lines=[(product, 1)])
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'PRODUCT_IN_USE')
        self.assertTrue(Product.objects.filter(pk=product.pk).exists())

    def test_delete_unused_product(self):
        product = TestDataFactory.create_product(self.organization)
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Product.objects.filter(pk=product.pk).exists())

    def test_stats(self):
        TestDataFactory.create_product(self.organization, price='100.00', stock=3)
        TestDataFactory.create_product(self.organization, price='10.00', stock=0)
        response = self.client.get('/api/v1/products/stats/')
        self.assertEqual(response.data['data']['total_products'], 2)
        self.assertEqual(response.data['data']['low_stock'], 1)
        self.assertEqual(response.data['data']['out_of_stock'], 1)
        self.assertEqual(Decimal(response.data['data']['inventory_value']), Decimal('300.00'))


class StockAdjustmentTests(TestCase):
    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(organization=self.organization))
        self.product = TestDataFactory.create_product(self.organization, stock=10, low_stock_threshold=5)

    def test_add_stock(self):
        response = self.client.post(f'/api/v1/products/{self.product.id}/adjust-stock/',
                                    {'adjustment': 5, 'reason': 'delivery'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 15)
        self.assertTrue(AuditLog.objects.filter(action='stock_adjust').exists())

    def test_remove_more_than_available(self):
        response = self.client.post(f'/api/v1/products/{self.product.id}/adjust-stock/',
                                    {'adjustment': -11}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INSUFFICIENT_STOCK')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_zero_adjustment_rejected(self):
        response = self.client.post(f'/api/v1/products/{self.product.id}/adjust-stock/',
                                    {'adjustment': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_low_stock_notification(self):
        self.client.post(f'/api/v1/products/{self.product.id}/adjust-stock/', {'adjustment': -7}, format='json')
        self.assertTrue(Notification.objects.filter(organization=self.organization, type='low_stock').exists())

    def test_out_of_stock_notification(self):
        self.client.post(f'/api/v1/products/{self.product.id}/adjust-stock/', {'adjustment': -10}, format='json')
        self.assertTrue(Notification.objects.filter(organization=self.organization, type='out_of_stock').exists())

    def test_restock_below_threshold_does_not_notify(self):
        product = TestDataFactory.create_product(self.organization, stock=4, low_stock_threshold=5)
        response = self.client.post(f'/api/v1/products/{product.id}/adjust-stock/', {'adjustment': 1},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['stock'], 5)
        self.assertFalse(Notification.objects.filter(type__in=['low_stock', 'out_of_stock']).exists())
