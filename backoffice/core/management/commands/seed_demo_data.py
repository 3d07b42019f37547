"""
Management command to load a demo organization with catalog, clients, couriers and orders
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from backoffice.core.seed import seed_demo_data

User = get_user_model()


class Command(BaseCommand):
    help = "Creates a demo organization with sample categories, products, clients, couriers and orders"

    def add_arguments(self, parser):
        parser.add_argument(
            '--name',
            default='Demo Delivery',
            help='Name of the demo organization',
        )
        parser.add_argument(
            '--admin-email',
            help='Existing user to make admin of the demo organization',
        )

    def handle(self, *args, **options):
        admin = None
        if options.get('admin_email'):
            admin = User.objects.filter(email__iexact=options['admin_email']).first()
            if admin is None:
                raise CommandError(f"No user with email {options['admin_email']}")

        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("SEEDING DEMO DATA"))
        self.stdout.write(self.style.SUCCESS("=" * 80))

        summary = seed_demo_data(organization_name=options['name'], admin=admin)

        organization = summary['organization']
        state = 'created' if organization['created'] else 'reused'
        self.stdout.write(f"Organization: {organization['name']} (id {organization['id']}, {state})")
        for key in ('categories', 'products', 'clients', 'couriers', 'orders'):
            self.stdout.write(f"  {key}: {summary[key]} created")
        self.stdout.write(self.style.SUCCESS("Demo data ready."))
