"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from backoffice.catalog.models import Category, Product
from backoffice.delivery.models import Courier
from backoffice.organizations.models import Organization, OrganizationInvitation
from backoffice.parties.models import Client
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_organization(name=None, is_active=True):
        """Create a test organization"""
        if not name:
            name = f'Org {TestDataFactory.random_string(6)}'
        return Organization.objects.create(
            name=name,
            slug=Organization.build_slug(name),
            is_active=is_active
        )

    @staticmethod
    def create_user(organization=None, role='admin', email=None, firebase_uid=None,
                    is_staff=False, is_active=True):
        """Create a test user; role only applies when an organization is given"""
        if not firebase_uid:
            firebase_uid = f'uid_{TestDataFactory.random_string(12)}'
        if not email:
            email = f'{firebase_uid}@test.com'
        user = User(
            username=firebase_uid,
            firebase_uid=firebase_uid,
            email=email,
            display_name=f'User {firebase_uid}',
            organization=organization,
            role=role if organization is not None else User.ROLE_NONE,
            is_staff=is_staff,
            is_active=is_active
        )
        user.set_unusable_password()
        user.save()
        return user

    @staticmethod
    def create_category(organization, name=None):
        """Create a test category"""
        if not name:
            name = f'Category {TestDataFactory.random_string(6)}'
        return Category.objects.create(organization=organization, name=name)

    @staticmethod
    def create_product(organization, name=None, price='10000.00', stock=10, category=None, low_stock_threshold=5):
        """Create a test product"""
        if not name:
            name = f'Product {TestDataFactory.random_string(6)}'
        return Product.objects.create(
            organization=organization,
            name=name,
            price=Decimal(price),
            stock=stock,
            category=category,
            low_stock_threshold=low_stock_threshold
        )

    @staticmethod
    def create_client(organization, first_name=None, address='Calle 10 # 20-30, Bogota'):
        """Create a test client"""
        if not first_name:
            first_name = f'Client {TestDataFactory.random_string(4)}'
        return Client.objects.create(
            organization=organization,
            first_name=first_name,
            last_name='Test',
            phone=f'3{random.randint(100000000, 999999999)}',
            address=address
        )

    @staticmethod
    def create_courier(organization, first_name=None):
        """Create a test courier"""
        if not first_name:
            first_name = f'Courier {TestDataFactory.random_string(4)}'
        return Courier.objects.create(
            organization=organization,
            first_name=first_name,
            last_name='Test',
            phone=f'3{random.randint(100000000, 999999999)}'
        )

    @staticmethod
    def order_payload(client, lines, total=None, **extra):
        """Build an order request body; lines are (product, quantity) pairs"""
        details = [{'product': product.id, 'quantity': quantity} for product, quantity in lines]
        if total is None:
            total = sum((product.price * quantity for product, quantity in lines), Decimal('0'))
        payload = {
            'client': client.id,
            'delivery_address': client.address,
            'total': str(total),
            'details': details,
        }
        payload.update(extra)
        return payload

    @staticmethod
    def create_order(organization, user=None, client=None, lines=None, **extra):
        """Create an order through the order service (stock is reserved)"""
        from backoffice.orders.services import create_order
        if client is None:
            client = TestDataFactory.create_client(organization)
        if lines is None:
            lines = [(TestDataFactory.create_product(organization), 1)]
        return create_order(organization, user, TestDataFactory.order_payload(client, lines, **extra))

    @staticmethod
    def create_invitation(organization, invited_by, email=None, role='service_client', **extra):
        """Create a test invitation"""
        if not email:
            email = f'invitee_{TestDataFactory.random_string(6)}@test.com'
        return OrganizationInvitation.objects.create(
            organization=organization,
            invited_by=invited_by,
            invited_email=email,
            assigned_role=role,
            **extra
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        self.force_authenticate(user=user)
        return self

    def logout(self):
        """Remove authentication"""
        self.force_authenticate(user=None)
        self.credentials()
