"""Demo data shared by the seed_demo_data command and the admin/seed endpoint"""
import logging
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import transaction

from backoffice.catalog.models import Category, Product
from backoffice.delivery.models import Courier
from backoffice.organizations.models import Organization
from backoffice.parties.models import Client

logger = logging.getLogger('backoffice.core')

User = get_user_model()

CATEGORIES = [
    ('Burgers', 'Grilled burgers and sandwiches'),
    ('Pizza', 'Stone-baked pizzas'),
    ('Salads', 'Fresh salads'),
    ('Pasta', 'Oven pasta dishes'),
]

PRODUCTS = [
    ('Classic Burger', 'Beef, cheese, lettuce and tomato', 'Burgers', Decimal('15000.00'), 50),
    ('Margherita Pizza', 'Tomato, mozzarella and basil', 'Pizza', Decimal('25000.00'), 30),
    ('Caesar Salad', 'Romaine, croutons and parmesan', 'Salads', Decimal('12000.00'), 25),
    ('Pepperoni Pizza', 'Tomato, mozzarella and pepperoni', 'Pizza', Decimal('28000.00'), 20),
    ('Bolognese Lasagna', 'Beef ragù and bechamel', 'Pasta', Decimal('22000.00'), 15),
]

CLIENTS = [
    ('María', 'González', '+57 310 123 4567', 'maria.gonzalez@example.com', 'Calle 123 #45-67, Bogotá'),
    ('Juan', 'Pérez', '+57 315 987 6543', 'juan.perez@example.com', 'Carrera 89 #12-34, Medellín'),
    ('Ana', 'Rodríguez', '+57 320 456 7890', 'ana.rodriguez@example.com', 'Avenida 56 #78-90, Cali'),
]

COURIERS = [
    ('Carlos', 'Martínez', '+57 311 234 5678', 'carlos.martinez@example.com'),
    ('Luis', 'García', '+57 312 345 6789', 'luis.garcia@example.com'),
    ('Miguel', 'López', '+57 313 456 7890', 'miguel.lopez@example.com'),
]

# (client index, [(product name, quantity)], courier index or None)
ORDERS = [
    (0, [('Classic Burger', 2), ('Margherita Pizza', 1)], 0),
    (1, [('Caesar Salad', 1), ('Classic Burger', 1)], None),
    (2, [('Pepperoni Pizza', 1), ('Bolognese Lasagna', 2)], 1),
]


def seed_demo_data(organization_name='Demo Delivery', admin=None):
    """
    Create (or reuse) an organization filled with demo catalog, clients,
    couriers and orders. Returns a summary of what was created.
    """
    from backoffice.orders.services import create_order

    summary = {'organization': None, 'categories': 0, 'products': 0, 'clients': 0, 'couriers': 0, 'orders': 0}

    with transaction.atomic():
        organization, created = Organization.objects.get_or_create(
            slug=Organization.build_slug(organization_name),
            defaults={'name': organization_name, 'description': 'Demo organization', 'tax_regime': 'simplified'},
        )
        summary['organization'] = {'id': organization.id, 'name': organization.name, 'created': created}

        if admin is not None and not admin.organization_id:
            admin.organization = organization
            admin.role = User.ROLE_ADMIN
            admin.save(update_fields=['organization', 'role', 'updated_at'])

        categories = {}
        for name, description in CATEGORIES:
            category, created = Category.objects.get_or_create(
                organization=organization, name=name, defaults={'description': description}
            )
            categories[name] = category
            summary['categories'] += int(created)

        for name, description, category_name, price, stock in PRODUCTS:
            _, created = Product.objects.get_or_create(
                organization=organization, name=name,
                defaults={'description': description, 'category': categories[category_name],
                          'price': price, 'stock': stock},
            )
            summary['products'] += int(created)

        clients = []
        for first_name, last_name, phone, email, address in CLIENTS:
            client, created = Client.objects.get_or_create(
                organization=organization, phone=phone,
                defaults={'first_name': first_name, 'last_name': last_name, 'email': email, 'address': address},
            )
            clients.append(client)
            summary['clients'] += int(created)

        couriers = []
        for first_name, last_name, phone, email in COURIERS:
            courier, created = Courier.objects.get_or_create(
                organization=organization, phone=phone,
                defaults={'first_name': first_name, 'last_name': last_name, 'email': email},
            )
            couriers.append(courier)
            summary['couriers'] += int(created)

        if not organization.orders.exists():
            for client_index, lines, courier_index in ORDERS:
                details = []
                for product_name, quantity in lines:
                    product = Product.objects.get(organization=organization, name=product_name)
                    details.append({'product': product.id, 'quantity': quantity, 'unit_price': str(product.price)})
                total = sum(Decimal(line['unit_price']) * line['quantity'] for line in details)
                create_order(organization, admin, {
                    'client': clients[client_index].id,
                    'delivery_address': clients[client_index].address,
                    'details': details,
                    'total': str(total),
                    'courier': couriers[courier_index].id if courier_index is not None else None,
                })
                summary['orders'] += 1

    logger.info(f"Seeded demo data for organization {organization.pk}: {summary}")
    return summary
