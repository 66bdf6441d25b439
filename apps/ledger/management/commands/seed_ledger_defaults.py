"""
Management command to seed the default chart of accounts, funds, sources and categories.
"""
from django.core.management.base import BaseCommand

from apps.ledger import services
from apps.tenants.models import Tenant


class Command(BaseCommand):
    help = 'Seeds the default church chart of accounts, funds, sources and categories for a tenant'

    def add_arguments(self, parser):
        parser.add_argument(
            '--tenant-id',
            type=str,
            help='Tenant UUID to seed data for.',
        )
        parser.add_argument(
            '--all',
            action='store_true',
            help='Seed for all active tenants',
        )

    def handle(self, *args, **options):
        tenant_id = options.get('tenant_id')
        seed_all = options.get('all')

        if tenant_id:
            tenant = Tenant.objects.filter(id=tenant_id).first()
            if tenant is None:
                self.stderr.write(self.style.ERROR(f'Tenant {tenant_id} not found'))
                return
            self._seed_for_tenant(tenant)
        elif seed_all:
            tenants = Tenant.objects.filter(is_active=True)
            for tenant in tenants:
                self._seed_for_tenant(tenant)
            self.stdout.write(self.style.SUCCESS(f'Seeded ledger defaults for {tenants.count()} tenants'))
        else:
            self.stderr.write(self.style.WARNING('Please provide --tenant-id or --all flag'))

    def _seed_for_tenant(self, tenant):
        self.stdout.write(f'Seeding ledger for: {tenant.name} ({tenant.id})')
        counts = services.seed_ledger_defaults(tenant.id)
        self.stdout.write(self.style.SUCCESS(
            f"  Created: {counts.get('accounts', 0)} accounts, "
            f"{counts.get('funds', 0)} funds, "
            f"{counts.get('sources', 0)} sources, "
            f"{counts.get('categories', 0)} categories"
        ))
