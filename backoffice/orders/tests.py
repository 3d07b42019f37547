"""
Comprehensive test suite for Orders module
Tests: validation chain, stock reservation, totals, status transitions and tenancy
"""
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from rest_framework import status

from backoffice.catalog.models import Product
from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.delivery.models import OrderAssignment
from backoffice.orders.models import Order, OrderDetail
from backoffice.orders.services import (
    OrderValidationError, change_status, compute_total, validate_order_payload
)


class OrderModelTests(TestCase):
    def test_detail_subtotal_is_computed_on_save(self):
        organization = TestDataFactory.create_organization()
        order = TestDataFactory.create_order(organization)
        detail = order.details.get()
        detail.quantity = 3
        detail.unit_price = Decimal('12.50')
        detail.save()
        self.assertEqual(detail.subtotal, Decimal('37.50'))
        self.assertEqual(order.get_subtotal(), Decimal('37.50'))


class OrderValidationServiceTests(TestCase):
    """validate_order_payload runs the checks in order and stops at the first failure"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.client_obj = TestDataFactory.create_client(self.organization)
        self.burger = TestDataFactory.create_product(self.organization, name='Burger', price='15000.00', stock=5)
        self.pizza = TestDataFactory.create_product(self.organization, name='Pizza', price='25000.00', stock=2)

    def payload(self, lines, total=None, **extra):
        return TestDataFactory.order_payload(self.client_obj, lines, total=total, **extra)

    def assertCode(self, data, code):
        with self.assertRaises(OrderValidationError) as ctx:
            validate_order_payload(self.organization, data)
        self.assertEqual(ctx.exception.code, code)
        return ctx.exception

    def test_valid_payload(self):
        result = validate_order_payload(self.organization, self.payload([(self.burger, 2), (self.pizza, 1)]))
        self.assertEqual(result['computed_total'], Decimal('55000.00'))
        self.assertEqual(result['client'], self.client_obj)
        self.assertEqual(len(result['lines']), 2)

    def test_missing_client(self):
        data = self.payload([(self.burger, 1)])
        data['client'] = None
        self.assertCode(data, 'REQUIRED_FIELD')

    def test_empty_details(self):
        data = self.payload([(self.burger, 1)])
        data['details'] = []
        self.assertCode(data, 'NO_PRODUCTS')

    def test_client_from_other_organization(self):
        other_client = TestDataFactory.create_client(TestDataFactory.create_organization())
        data = self.payload([(self.burger, 1)])
        data['client'] = other_client.id
        self.assertCode(data, 'INVALID_CLIENT')

    def test_short_address(self):
        self.assertCode(self.payload([(self.burger, 1)], delivery_address='Calle 1'), 'INVALID_ADDRESS')

    def test_address_falls_back_to_client(self):
        data = self.payload([(self.burger, 1)])
        del data['delivery_address']
        result = validate_order_payload(self.organization, data)
        self.assertEqual(result['delivery_address'], self.client_obj.address)

    def test_line_without_product(self):
        data = self.payload([(self.burger, 1)])
        data['details'] = [{'quantity': 1}]
        self.assertCode(data, 'REQUIRED_PRODUCT')

    def test_invalid_quantities(self):
        for quantity in (0, -1, '1.5', 'abc', None):
            data = self.payload([(self.burger, 1)])
            data['details'][0]['quantity'] = quantity
            self.assertCode(data, 'INVALID_QUANTITY')

    def test_invalid_unit_price(self):
        data = self.payload([(self.burger, 1)])
        data['details'][0]['unit_price'] = '-5'
        self.assertCode(data, 'INVALID_PRICE')

    def test_product_from_other_organization(self):
        foreign = TestDataFactory.create_product(TestDataFactory.create_organization())
        error = self.assertCode(self.payload([(self.burger, 1), (foreign, 1)]), 'INVALID_PRODUCT')
        self.assertEqual(error.details['products'], [foreign.id])

    def test_insufficient_stock_message(self):
        error = self.assertCode(self.payload([(self.pizza, 3)]), 'INSUFFICIENT_STOCK')
        self.assertEqual(error.message, 'Pizza: Insufficient stock (available: 2, requested: 3)')

    def test_stock_is_checked_per_product_across_lines(self):
        # 3 + 3 units of the same product exceed the 5 available
        error = self.assertCode(self.payload([(self.burger, 3), (self.burger, 3)]), 'INSUFFICIENT_STOCK')
        self.assertIn('requested: 6', error.message)

    def test_total_mismatch(self):
        error = self.assertCode(self.payload([(self.burger, 1)], total='14000.00'), 'INVALID_TOTAL')
        self.assertEqual(error.details, {'submitted': '14000.00', 'computed': '15000.00'})

    def test_total_within_tolerance(self):
        result = validate_order_payload(self.organization, self.payload([(self.burger, 1)], total='15000.01'))
        self.assertEqual(result['computed_total'], Decimal('15000.00'))

    def test_total_just_outside_tolerance(self):
        self.assertCode(self.payload([(self.burger, 1)], total='15000.02'), 'INVALID_TOTAL')

    def test_stock_checked_before_total(self):
        self.assertCode(self.payload([(self.pizza, 3)], total='1.00'), 'INSUFFICIENT_STOCK')

    def test_compute_total_rounds_to_cents(self):
        lines = [{'quantity': 3, 'unit_price': Decimal('0.333')}]
        self.assertEqual(compute_total(lines), Decimal('1.00'))


class OrderCreateAPITests(TestCase):
    """POST /orders/"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.client_obj = TestDataFactory.create_client(self.organization)
        self.burger = TestDataFactory.create_product(self.organization, name='Burger', price='15000.00', stock=10)
        self.pizza = TestDataFactory.create_product(self.organization, name='Pizza', price='25000.00', stock=3)

    def test_create_order_reserves_stock(self):
        data = TestDataFactory.order_payload(self.client_obj, [(self.burger, 2), (self.pizza, 1)])
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['status'], 'pending')
        self.assertEqual(Decimal(response.data['data']['total']), Decimal('55000.00'))
        self.assertEqual(len(response.data['data']['details']), 2)

        self.burger.refresh_from_db()
        self.pizza.refresh_from_db()
        self.assertEqual(self.burger.stock, 8)
        self.assertEqual(self.pizza.stock, 2)

        order = Order.objects.get()
        self.assertEqual(order.created_by, self.user)
        self.assertEqual(order.organization, self.organization)
        self.assertTrue(AuditLog.objects.filter(action='order_create', object_id=str(order.id)).exists())

    def test_insufficient_stock_creates_nothing(self):
        data = TestDataFactory.order_payload(self.client_obj, [(self.burger, 1), (self.pizza, 4)])
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['code'], 'INSUFFICIENT_STOCK')
        self.assertEqual(response.data['error'], 'Pizza: Insufficient stock (available: 3, requested: 4)')
        self.assertEqual(Order.objects.count(), 0)
        self.burger.refresh_from_db()
        self.assertEqual(self.burger.stock, 10)

    def test_invalid_total_rejected(self):
        data = TestDataFactory.order_payload(self.client_obj, [(self.burger, 1)], total='10000.00')
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_TOTAL')
        self.assertEqual(response.data['details']['computed'], '15000.00')
        self.assertEqual(Order.objects.count(), 0)

    def test_non_positive_total_carries_details(self):
        data = TestDataFactory.order_payload(self.client_obj, [(self.burger, 1)], total='0')
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_TOTAL')
        self.assertEqual(response.data['details'], {'submitted': '0', 'computed': '15000.00'})

    def test_non_object_body_rejected(self):
        response = self.client.post('/api/v1/orders/', [{'product': self.burger.id, 'quantity': 1}],
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_DATA')
        self.assertEqual(Order.objects.count(), 0)

    def test_missing_total(self):
        data = TestDataFactory.order_payload(self.client_obj, [(self.burger, 1)])
        del data['total']
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'REQUIRED_FIELD')

    def test_cross_organization_client(self):
        foreign_client = TestDataFactory.create_client(TestDataFactory.create_organization())
        data = TestDataFactory.order_payload(foreign_client, [(self.burger, 1)])
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_CLIENT')

    def test_cross_organization_product_keeps_foreign_stock(self):
        foreign = TestDataFactory.create_product(TestDataFactory.create_organization(), stock=10)
        data = TestDataFactory.order_payload(self.client_obj, [(foreign, 1)])
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_PRODUCT')
        foreign.refresh_from_db()
        self.assertEqual(foreign.stock, 10)

    def test_create_with_courier(self):
        courier = TestDataFactory.create_courier(self.organization)
        data = TestDataFactory.order_payload(self.client_obj, [(self.burger, 1)], courier=courier.id)
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['status'], 'in_process')
        self.assertEqual(response.data['data']['assignment']['courier'], courier.id)

    def test_create_with_foreign_courier_rolls_back(self):
        courier = TestDataFactory.create_courier(TestDataFactory.create_organization())
        data = TestDataFactory.order_payload(self.client_obj, [(self.burger, 1)], courier=courier.id)
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_COURIER')
        self.assertEqual(Order.objects.count(), 0)
        self.burger.refresh_from_db()
        self.assertEqual(self.burger.stock, 10)


class OrderValidateEndpointTests(TestCase):
    """POST /orders/validate/ is a dry run"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(organization=self.organization))
        self.client_obj = TestDataFactory.create_client(self.organization)
        self.product = TestDataFactory.create_product(self.organization, name='Burger', price='10.00', stock=2)

    def test_valid_draft(self):
        data = TestDataFactory.order_payload(self.client_obj, [(self.product, 2)])
        response = self.client.post('/api/v1/orders/validate/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['valid'])
        self.assertEqual(response.data['data']['computed_total'], '20.00')
        self.assertEqual(Order.objects.count(), 0)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 2)

    def test_insufficient_stock_reports_lines(self):
        data = TestDataFactory.order_payload(self.client_obj, [(self.product, 3)])
        response = self.client.post('/api/v1/orders/validate/', data, format='json')
        result = response.data['data']
        self.assertFalse(result['valid'])
        self.assertEqual(result['error']['code'], 'INSUFFICIENT_STOCK')
        self.assertFalse(result['lines'][0]['sufficient'])
        self.assertEqual(result['lines'][0]['available'], 2)

    def test_unusable_total_reports_invalid_total(self):
        for total in ('abc', '0', '-5'):
            data = TestDataFactory.order_payload(self.client_obj, [(self.product, 1)], total=total)
            response = self.client.post('/api/v1/orders/validate/', data, format='json')
            self.assertEqual(response.status_code, status.HTTP_200_OK, total)
            result = response.data['data']
            self.assertFalse(result['valid'])
            self.assertEqual(result['error']['code'], 'INVALID_TOTAL')
            self.assertEqual(result['computed_total'], '10.00')

    def test_non_object_body_is_invalid_data(self):
        response = self.client.post('/api/v1/orders/validate/', [{'product': self.product.id}], format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['data']['valid'])
        self.assertEqual(response.data['data']['error']['code'], 'INVALID_DATA')


class OrderUpdateAPITests(TestCase):
    """Edits, status transitions and deletion"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.client_obj = TestDataFactory.create_client(self.organization)
        self.product = TestDataFactory.create_product(self.organization, name='Burger', price='10.00', stock=10)
        self.order = TestDataFactory.create_order(self.organization, self.user, client=self.client_obj,
                                                  lines=[(self.product, 4)])

    def stock(self):
        return Product.objects.get(pk=self.product.pk).stock

    def test_cancel_restores_stock(self):
        self.assertEqual(self.stock(), 6)
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'cancelled')
        self.assertEqual(self.stock(), 10)
        self.assertTrue(AuditLog.objects.filter(action='order_cancel').exists())

    def test_delivered_keeps_stock_and_is_terminal(self):
        change_status(self.order, 'delivered', user=self.user)
        self.assertEqual(self.stock(), 6)
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': 'pending'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_STATUS_TRANSITION')

    def test_cancelled_order_is_locked(self):
        change_status(self.order, 'cancelled', user=self.user)
        response = self.client.put(f'/api/v1/orders/{self.order.id}/', {
            'details': [{'product': self.product.id, 'quantity': 1}], 'total': '10.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'ORDER_LOCKED')
        self.assertEqual(self.stock(), 10)

    def test_unknown_status(self):
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_STATUS')

    def test_replace_details_counts_held_units(self):
        # The order holds 4 units and 6 remain, so 10 units are available for the edit
        response = self.client.put(f'/api/v1/orders/{self.order.id}/', {
            'details': [{'product': self.product.id, 'quantity': 10}], 'total': '100.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.stock(), 0)
        self.order.refresh_from_db()
        self.assertEqual(self.order.total, Decimal('100.00'))
        self.assertEqual(OrderDetail.objects.filter(order=self.order).count(), 1)

    def test_replace_details_beyond_stock(self):
        response = self.client.put(f'/api/v1/orders/{self.order.id}/', {
            'details': [{'product': self.product.id, 'quantity': 11}], 'total': '110.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INSUFFICIENT_STOCK')
        self.assertEqual(self.stock(), 6)

    def test_total_without_details_must_match_lines(self):
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'total': '41.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_TOTAL')

    def test_update_notes(self):
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'notes': 'Ring twice'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['notes'], 'Ring twice')

    def test_delete_pending_order_restores_stock(self):
        response = self.client.delete(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Order.objects.filter(pk=self.order.pk).exists())
        self.assertEqual(self.stock(), 10)

    def test_delete_delivered_order_keeps_stock(self):
        change_status(self.order, 'delivered')
        self.client.delete(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(self.stock(), 6)

    def test_delete_writes_audit_entry(self):
        self.client.delete(f'/api/v1/orders/{self.order.id}/')
        entry = AuditLog.objects.get(action='delete', model_name='Order')
        self.assertEqual(entry.object_id, str(self.order.id))
        self.assertEqual(entry.changes['status'], 'pending')

    def test_failed_delete_is_not_audited(self):
        with mock.patch('backoffice.orders.views.delete_order', side_effect=RuntimeError('database unavailable')):
            response = self.client.delete(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertTrue(Order.objects.filter(pk=self.order.pk).exists())
        self.assertFalse(AuditLog.objects.filter(action='delete', model_name='Order').exists())

    def test_update_with_non_object_body_rejected(self):
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', ['cancelled'], format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_DATA')
        self.assertEqual(self.stock(), 6)

    def test_delivering_closes_assignment(self):
        courier = TestDataFactory.create_courier(self.organization)
        from backoffice.delivery.services import assign_courier
        assign_courier(self.order, courier.id, user=self.user)
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': 'delivered'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        assignment = OrderAssignment.objects.get(order=self.order)
        self.assertEqual(assignment.status, 'delivered')
        courier.refresh_from_db()
        self.assertTrue(courier.is_available)

    def test_other_organization_cannot_see_order(self):
        outsider = TestDataFactory.create_user(organization=TestDataFactory.create_organization())
        self.client.authenticate_user(outsider)
        response = self.client.get(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'ORDER_NOT_FOUND')


class OrderListAPITests(TestCase):
    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_filters_by_status(self):
        pending = TestDataFactory.create_order(self.organization, self.user)
        cancelled = TestDataFactory.create_order(self.organization, self.user)
        change_status(cancelled, 'cancelled')
        TestDataFactory.create_order(TestDataFactory.create_organization())

        response = self.client.get('/api/v1/orders/')
        self.assertEqual(response.data['data']['count'], 2)

        response = self.client.get('/api/v1/orders/?status=pending')
        results = response.data['data']['results']
        self.assertEqual([o['id'] for o in results], [pending.id])
        self.assertEqual(results[0]['item_count'], 1)

    def test_stats(self):
        order = TestDataFactory.create_order(self.organization, self.user)
        change_status(order, 'delivered')
        TestDataFactory.create_order(self.organization, self.user)
        response = self.client.get('/api/v1/orders/stats/')
        self.assertEqual(response.data['data']['total'], 2)
        self.assertEqual(response.data['data']['by_status']['delivered'], 1)
        self.assertEqual(response.data['data']['by_status']['pending'], 1)
