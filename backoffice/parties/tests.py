"""
Test suite for Parties module
Tests: client CRUD, validation, tenancy and deletion rules
"""
from django.test import TestCase
from rest_framework import status

from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.parties.models import Client


class ClientModelTests(TestCase):
    def test_full_name(self):
        organization = TestDataFactory.create_organization()
        client = Client.objects.create(organization=organization, first_name='Ana', last_name='', phone='3001234567')
        self.assertEqual(client.full_name, 'Ana')
        self.assertEqual(str(client), 'Ana')


class ClientAPITests(TestCase):
    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.user = TestDataFactory.create_user(organization=self.organization)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_client(self):
        response = self.client.post('/api/v1/clients/', {
            'first_name': 'María', 'last_name': 'González', 'phone': '+57 310 123 4567',
            'email': 'maria@example.com', 'address': 'Calle 123 #45-67, Bogotá'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['full_name'], 'María González')
        self.assertEqual(Client.objects.get().organization, self.organization)

    def test_phone_needs_seven_digits(self):
        response = self.client.post('/api/v1/clients/', {'first_name': 'Ana', 'phone': '12-34'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_PHONE')

    def test_first_name_required(self):
        response = self.client.post('/api/v1/clients/', {'phone': '3001234567'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'MISSING_REQUIRED_FIELDS')

    def test_list_search_and_order_count(self):
        ana = TestDataFactory.create_client(self.organization, first_name='Ana')
        TestDataFactory.create_client(self.organization, first_name='Juan')
        TestDataFactory.create_client(TestDataFactory.create_organization(), first_name='Ana Foreign')
        TestDataFactory.create_order(self.organization, self.user, client=ana)

        response = self.client.get('/api/v1/clients/?search=ana')
        results = response.data['data']['results']
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0]['order_count'], 1)

        response = self.client.get('/api/v1/clients/?has_orders=true')
        self.assertEqual([c['id'] for c in response.data['data']['results']], [ana.id])

    def test_list_is_ordered_by_name_across_pages(self):
        for name in ('Carlos', 'Ana', 'Beto'):
            TestDataFactory.create_client(self.organization, first_name=name)
        TestDataFactory.create_order(self.organization, self.user,
                                     client=Client.objects.get(first_name='Beto'))

        response = self.client.get('/api/v1/clients/?page_size=2')
        self.assertEqual([c['first_name'] for c in response.data['data']['results']], ['Ana', 'Beto'])

        response = self.client.get('/api/v1/clients/?page_size=2&page=2')
        self.assertEqual([c['first_name'] for c in response.data['data']['results']], ['Carlos'])

    def test_update_client(self):
        client = TestDataFactory.create_client(self.organization)
        response = self.client.patch(f'/api/v1/clients/{client.id}/', {'address': 'Carrera 7 # 8-90'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        client.refresh_from_db()
        self.assertEqual(client.address, 'Carrera 7 # 8-90')

    def test_client_with_orders_cannot_be_deleted(self):
        client = TestDataFactory.create_client(self.organization)
        TestDataFactory.create_order(self.organization, self.user, client=client)
        response = self.client.delete(f'/api/v1/clients/{client.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'CLIENT_HAS_ORDERS')

    def test_client_of_other_organization_not_found(self):
        client = TestDataFactory.create_client(TestDataFactory.create_organization())
        response = self.client.delete(f'/api/v1/clients/{client.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(Client.objects.filter(pk=client.pk).exists())
