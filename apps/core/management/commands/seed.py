from datetime import time, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from apps.audit.models import AuditLog
from apps.identity.dtos import UserCreate
from apps.identity.models import Role, UserRoleAssignment
from apps.identity.services import create_user
from apps.ledger import services as ledger_services
from apps.ledger.models import (
    Account, Category, CategoryType, FinancialSource, FiscalPeriod, FiscalYear,
    Fund, TransactionHeader, TransactionLine,
)
from apps.members import care_service, services as member_services
from apps.members.models import CarePlan, Member, MembershipStatus
from apps.notifications.models import Notification
from apps.scheduler import services as scheduler_services
from apps.scheduler.models import MinistrySchedule, ScheduleOccurrence
from apps.tenants.dtos import OnboardingRequest
from apps.tenants.models import Tenant
from apps.tenants.services import onboard_tenant

User = get_user_model()

DEMO_PASSWORD = "password123"

STAFF = [
    ('pastor', 'Paul', 'Santos', 'pastor'),
    ('treasurer', 'Tina', 'Reyes', 'finance_officer'),
    ('careteam', 'Carla', 'Mendoza', 'care_team'),
]

MEMBERS = [
    ('Ana', 'Reyes', 'ana.reyes@example.com', 'Active', ['choir']),
    ('Ben', 'Cruz', 'ben.cruz@example.com', 'Active', ['youth', 'worship team']),
    ('Cara', 'Lim', 'cara.lim@example.com', 'New Member', []),
    ('Dan', 'Uy', 'dan.uy@example.com', 'Visitor', []),
    ('Eva', 'Garcia', 'eva.garcia@example.com', 'Active', ['ushers']),
]

GIVING = [
    ('income', 'Tithes', 'Bank Account', 'General Fund', Decimal('12500.00')),
    ('income', 'Offerings', 'Cash on Hand', 'General Fund', Decimal('3200.00')),
    ('income', 'Designated Gifts', 'Online Giving', 'Building Fund', Decimal('5000.00')),
    ('expense', 'Utilities', 'Bank Account', 'General Fund', Decimal('1850.00')),
    ('expense', 'Ministry Programs', 'Cash on Hand', 'General Fund', Decimal('640.00')),
]


class Command(BaseCommand):
    help = 'Seeds a demo church with staff, members, schedules and giving.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--name',
            default='Grace Community Church',
            help='Name of the demo church',
        )
        parser.add_argument(
            '--clean',
            action='store_true',
            help='Delete the demo church and its data before seeding',
        )
        parser.add_argument(
            '--no-ledger',
            action='store_true',
            help='Skip sample income and expense entries',
        )

    def handle(self, *args, **options):
        name = options['name']

        if options['clean']:
            self.stdout.write(self.style.WARNING(f'Removing {name}...'))
            self._clean_tenant(name)

        tenant = Tenant.objects.filter(name=name).first()
        if tenant is None:
            tenant = self._onboard(name)
        else:
            self.stdout.write(f'Using existing church: {tenant.name}')

        with transaction.atomic():
            self._seed_staff(tenant)
            members = self._seed_members(tenant)
            self._seed_care_plans(tenant, members)
            self._seed_schedules(tenant)
            if not options['no_ledger']:
                self._seed_ledger(tenant)

        self.stdout.write(self.style.SUCCESS('Seeding completed successfully.'))

    def _clean_tenant(self, name):
        tenant = Tenant.objects.filter(name=name).first()
        if tenant is None:
            return
        tid = tenant.id
        with transaction.atomic():
            # Ledger rows reference each other, children first
            for model in (
                TransactionLine, TransactionHeader, FiscalPeriod, FiscalYear,
                Category, FinancialSource, Fund, Account,
                ScheduleOccurrence, MinistrySchedule,
                CarePlan, Member, MembershipStatus,
                Notification, AuditLog, UserRoleAssignment, Role,
            ):
                model.objects.filter(tenant_id=tid).delete()
            User.objects.filter(tenant_id=tid).exclude(is_superuser=True).delete()
            tenant.delete()
        self.stdout.write(self.style.SUCCESS('Demo church removed.'))

    def _onboard(self, name):
        if User.objects.filter(username='admin').exists():
            raise CommandError("Username 'admin' is taken; remove it or run with --clean")

        result = onboard_tenant(OnboardingRequest(
            tenant={'name': name, 'denomination': 'Non-denominational', 'currency': 'USD'},
            admin_user={
                'username': 'admin',
                'email': 'admin@example.com',
                'password': DEMO_PASSWORD,
                'first_name': 'Church',
                'last_name': 'Admin',
            },
        ))
        self.stdout.write(f'Created church: {name} (admin / {DEMO_PASSWORD})')
        return Tenant.objects.get(id=result.tenant.id)

    def _seed_staff(self, tenant):
        self.stdout.write('Seeding staff...')
        for username, first, last, role in STAFF:
            if User.objects.filter(username=username).exists():
                continue
            create_user(tenant.id, UserCreate(
                username=username,
                email=f'{username}@example.com',
                password=DEMO_PASSWORD,
                first_name=first,
                last_name=last,
                roles=[role],
            ))
            self.stdout.write(f' - Created {username} ({role})')

    def _seed_members(self, tenant):
        self.stdout.write('Seeding members...')
        members = []
        for first, last, email, status_name, tags in MEMBERS:
            existing = Member.objects.filter(tenant_id=tenant.id, email=email, deleted_at__isnull=True).first()
            if existing:
                members.append(existing)
                continue
            status = member_services.find_status(tenant.id, status_name)
            dto = member_services.create_member(tenant.id, {
                'first_name': first,
                'last_name': last,
                'email': email,
                'membership_status_id': status.id if status else None,
                'membership_date': timezone.localdate() - timedelta(days=365),
                'tags': tags,
            })
            members.append(Member.objects.get(id=dto.id))
        self.stdout.write(f' - {len(members)} members')
        return members

    def _seed_care_plans(self, tenant, members):
        if CarePlan.objects.filter(tenant_id=tenant.id).exists():
            return
        self.stdout.write('Seeding care plans...')
        care_user = User.objects.filter(username='careteam', tenant_id=tenant.id).first()
        care_service.create_care_plan(tenant.id, members[2].id, {
            'priority': 'high',
            'details': 'Recovering from surgery; meals and hospital visits.',
            'follow_up_at': timezone.localdate() + timedelta(days=3),
            'assigned_to_user_id': care_user.id if care_user else None,
        })
        care_service.create_care_plan(tenant.id, members[3].id, {
            'details': 'First-time visitor follow-up.',
            'follow_up_at': timezone.localdate() + timedelta(days=10),
            'assigned_to_member_id': members[0].id,
        })

    def _seed_schedules(self, tenant):
        if MinistrySchedule.objects.filter(tenant_id=tenant.id).exists():
            return
        self.stdout.write('Seeding schedules...')
        today = timezone.localdate()
        schedules = [
            {
                'name': 'Sunday Worship Service',
                'schedule_type': 'service',
                'start_time': time(9, 0),
                'end_time': time(11, 0),
                'recurrence_rule': 'FREQ=WEEKLY;BYDAY=SU',
                'location': 'Main Sanctuary',
            },
            {
                'name': 'Midweek Bible Study',
                'schedule_type': 'bible_study',
                'start_time': time(19, 0),
                'end_time': time(20, 30),
                'recurrence_rule': 'FREQ=WEEKLY;BYDAY=WE',
                'location_type': 'hybrid',
                'location': 'Fellowship Hall',
                'virtual_meeting_url': 'https://meet.example.com/bible-study',
            },
            {
                'name': 'Choir Rehearsal',
                'schedule_type': 'rehearsal',
                'start_time': time(18, 0),
                'recurrence_rule': 'FREQ=WEEKLY;INTERVAL=2;BYDAY=SA',
                'location': 'Music Room',
            },
        ]
        for data in schedules:
            view = scheduler_services.create_schedule(tenant.id, {
                'timezone': tenant.timezone,
                'recurrence_start_date': today,
                **data,
            })
            result = scheduler_services.generate_occurrences(view.id, tenant_id=tenant.id)
            self.stdout.write(f' - {view.name}: {result.created} occurrences')

    def _seed_ledger(self, tenant):
        if TransactionHeader.objects.filter(tenant_id=tenant.id).exists():
            return
        self.stdout.write('Seeding giving and expenses...')
        on_date = timezone.localdate()
        for kind, category_name, source_name, fund_name, amount in GIVING:
            category_type = CategoryType.INCOME if kind == 'income' else CategoryType.EXPENSE
            category = ledger_services.find_category(tenant.id, category_type, category_name)
            source = ledger_services.find_source(tenant.id, source_name)
            fund = ledger_services.find_fund(tenant.id, fund_name)
            record = ledger_services.record_income if kind == 'income' else ledger_services.record_expense
            entry = record(
                tenant.id,
                amount=amount,
                transaction_date=on_date,
                category_id=category.id,
                source_id=source.id,
                fund_id=fund.id,
            )
            self.stdout.write(f' - {entry.transaction_number}: {category_name} {amount}')
