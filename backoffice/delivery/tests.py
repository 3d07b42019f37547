"""
Test suite for Delivery module
Tests: couriers, assignments, order status sync and courier availability
"""
from django.test import TestCase
from rest_framework import status

from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.delivery.models import Courier, OrderAssignment
from backoffice.delivery.services import assign_courier
from backoffice.orders.models import Order
from backoffice.orders.services import change_status


class CourierAPITests(TestCase):
    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_courier(self):
        response = self.client.post('/api/v1/couriers/', {
            'first_name': 'Carlos', 'last_name': 'Martínez', 'phone': '+57 311 234 5678'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        courier = Courier.objects.get()
        self.assertEqual(courier.organization, self.organization)
        self.assertTrue(courier.is_available)

    def test_invalid_phone(self):
        response = self.client.post('/api/v1/couriers/', {
            'first_name': 'Carlos', 'last_name': 'Martínez', 'phone': '123'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_PHONE')

    def test_user_from_other_organization(self):
        outsider = TestDataFactory.create_user(organization=TestDataFactory.create_organization())
        response = self.client.post('/api/v1/couriers/', {
            'first_name': 'Carlos', 'last_name': 'Martínez', 'phone': '3112345678', 'user': outsider.id
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_USER')

    def test_list_available_filter(self):
        TestDataFactory.create_courier(self.organization, first_name='Free')
        busy = TestDataFactory.create_courier(self.organization, first_name='Busy')
        assign_courier(TestDataFactory.create_order(self.organization, self.user), busy.id)
        response = self.client.get('/api/v1/couriers/?available=true')
        self.assertEqual([c['first_name'] for c in response.data['data']], ['Free'])

    def test_courier_with_active_assignment_cannot_be_deleted(self):
        courier = TestDataFactory.create_courier(self.organization)
        assign_courier(TestDataFactory.create_order(self.organization, self.user), courier.id)
        response = self.client.delete(f'/api/v1/couriers/{courier.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'COURIER_HAS_ACTIVE_ASSIGNMENTS')

    def test_courier_with_history_cannot_be_deleted(self):
        courier = TestDataFactory.create_courier(self.organization)
        order = TestDataFactory.create_order(self.organization, self.user)
        assign_courier(order, courier.id)
        change_status(order, 'delivered')
        response = self.client.delete(f'/api/v1/couriers/{courier.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'COURIER_HAS_ASSIGNMENTS')

    def test_detail_includes_recent_assignments(self):
        courier = TestDataFactory.create_courier(self.organization)
        assign_courier(TestDataFactory.create_order(self.organization, self.user), courier.id)
        response = self.client.get(f'/api/v1/couriers/{courier.id}/')
        self.assertEqual(response.data['data']['active_assignments'], 1)
        self.assertEqual(len(response.data['data']['recent_assignments']), 1)


class AssignmentAPITests(TestCase):
    """Assigning couriers and keeping order status in step"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.courier = TestDataFactory.create_courier(self.organization)
        self.order = TestDataFactory.create_order(self.organization, self.user)

    def assign(self, order=None, courier=None):
        return self.client.post('/api/v1/assignments/', {
            'order': (order or self.order).id, 'courier': (courier or self.courier).id
        }, format='json')

    def test_assign_courier(self):
        response = self.assign()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['status'], 'assigned')
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_IN_PROCESS)
        self.courier.refresh_from_db()
        self.assertFalse(self.courier.is_available)

    def test_second_assignment_conflict(self):
        self.assign()
        other = TestDataFactory.create_courier(self.organization)
        response = self.assign(courier=other)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'ASSIGNMENT_EXISTS')
        self.assertEqual(OrderAssignment.objects.count(), 1)

    def test_cancelled_assignment_can_be_reassigned(self):
        assignment = assign_courier(self.order, self.courier.id, user=self.user)
        self.client.patch(f'/api/v1/assignments/{assignment.id}/', {'status': 'cancelled'}, format='json')
        other = TestDataFactory.create_courier(self.organization)
        response = self.assign(courier=other)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['courier'], other.id)
        self.assertEqual(OrderAssignment.objects.count(), 1)

    def test_cannot_assign_terminal_order(self):
        change_status(self.order, 'cancelled')
        response = self.assign()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_ORDER_STATUS')

    def test_order_from_other_organization(self):
        foreign_order = TestDataFactory.create_order(TestDataFactory.create_organization())
        response = self.assign(order=foreign_order)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_ORDER')

    def test_courier_from_other_organization(self):
        foreign_courier = TestDataFactory.create_courier(TestDataFactory.create_organization())
        response = self.assign(courier=foreign_courier)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_COURIER')

    def test_status_changes_follow_to_order(self):
        assignment = assign_courier(self.order, self.courier.id, user=self.user)

        self.client.patch(f'/api/v1/assignments/{assignment.id}/', {'status': 'en_route'}, format='json')
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_EN_ROUTE)

        response = self.client.patch(f'/api/v1/assignments/{assignment.id}/', {'status': 'delivered'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_DELIVERED)
        self.courier.refresh_from_db()
        self.assertTrue(self.courier.is_available)

    def test_cancelling_assignment_returns_order_to_pending(self):
        assignment = assign_courier(self.order, self.courier.id, user=self.user)
        self.client.patch(f'/api/v1/assignments/{assignment.id}/', {'status': 'cancelled'}, format='json')
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PENDING)

    def test_closed_assignment_cannot_change(self):
        assignment = assign_courier(self.order, self.courier.id, user=self.user)
        change_status(self.order, 'delivered')
        response = self.client.patch(f'/api/v1/assignments/{assignment.id}/', {'status': 'en_route'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_STATUS_TRANSITION')

    def test_reassign_courier_updates_availability(self):
        assignment = assign_courier(self.order, self.courier.id, user=self.user)
        other = TestDataFactory.create_courier(self.organization)
        response = self.client.patch(f'/api/v1/assignments/{assignment.id}/', {'courier': other.id},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.courier.refresh_from_db()
        other.refresh_from_db()
        self.assertTrue(self.courier.is_available)
        self.assertFalse(other.is_available)

    def test_by_order_lookup(self):
        assign_courier(self.order, self.courier.id, user=self.user)
        response = self.client.get(f'/api/v1/assignments/by-order/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['order'], self.order.id)

    def test_by_order_without_assignment(self):
        response = self.client.get(f'/api/v1/assignments/by-order/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'ASSIGNMENT_NOT_FOUND')

    def test_delete_active_assignment(self):
        assignment = assign_courier(self.order, self.courier.id, user=self.user)
        response = self.client.delete(f'/api/v1/assignments/{assignment.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PENDING)
        self.courier.refresh_from_db()
        self.assertTrue(self.courier.is_available)

    def test_list_active_filter(self):
        assign_courier(self.order, self.courier.id, user=self.user)
        done = TestDataFactory.create_order(self.organization, self.user)
        assign_courier(done, TestDataFactory.create_courier(self.organization).id)
        change_status(done, 'delivered')
        response = self.client.get('/api/v1/assignments/?active=true')
        self.assertEqual([a['order'] for a in response.data['data']['results']], [self.order.id])
