"""
Tests for applying onboarding workbooks and the member import/export services.
"""
from datetime import date
from decimal import Decimal
from uuid import uuid4

from django.test import TestCase
from django.utils import timezone

from apps.imports import services
from apps.imports.excel import load_workbook_bytes, read_rows
from apps.imports.export import export_members_workbook
from apps.imports.member_import import MemberImportService
from apps.imports.onboarding import apply_onboarding_import
from apps.imports.parser import parse_import_file
from apps.imports.template import generate_onboarding_template
from apps.imports.tests.test_parser import workbook_bytes
from apps.ledger import services as ledger_services
from apps.ledger.models import CategoryType, TransactionHeader
from apps.members import services as member_services
from apps.members.models import Member


class OnboardingImportTest(TestCase):

    def setUp(self):
        self.tenant_id = uuid4()
        self.user_id = uuid4()
        member_services.seed_default_statuses(self.tenant_id)
        ledger_services.seed_ledger_defaults(self.tenant_id)

    def test_template_import_skips_existing_records(self):
        data = parse_import_file(generate_onboarding_template()).data
        result = apply_onboarding_import(self.tenant_id, data, user_id=self.user_id)

        self.assertEqual(result.created, {
            'financial_sources': 2,
            'income_categories': 1,
            'expense_categories': 2,
            'budget_categories': 2,
            'members': 2,
            'opening_balances': 3,
        })
        self.assertEqual(result.skipped, {
            'membership_statuses': 6,
            'financial_sources': 1,
            'funds': 3,
            'income_categories': 2,
            'expense_categories': 1,
        })
        self.assertEqual(len(result.opening_balance_entries), 3)

    def test_new_records_get_ledger_accounts(self):
        data = parse_import_file(generate_onboarding_template()).data
        apply_onboarding_import(self.tenant_id, data)

        source = ledger_services.find_source(self.tenant_id, 'Petty Cash')
        self.assertEqual(source.source_type, 'cash')
        self.assertEqual(source.account.account_type, 'asset')
        self.assertEqual(source.account.name, 'Petty Cash')

        category = ledger_services.find_category(self.tenant_id, CategoryType.INCOME, 'Special Offerings')
        self.assertEqual(category.account.account_type, 'revenue')
        budget = ledger_services.find_category(self.tenant_id, CategoryType.BUDGET, 'Outreach')
        self.assertIsNone(budget.account)

    def test_opening_balances_post_to_source_and_fund(self):
        data = parse_import_file(generate_onboarding_template()).data
        apply_onboarding_import(self.tenant_id, data)

        entry = TransactionHeader.objects.filter(tenant_id=self.tenant_id).order_by('transaction_number').first()
        self.assertEqual(entry.reference, 'ONBOARDING')
        self.assertEqual(entry.entry_type, 'standard')

        sheet = ledger_services.get_balance_sheet(self.tenant_id, timezone.localdate())
        self.assertEqual(sheet.total_assets, Decimal('75500.00'))
        self.assertEqual(sheet.total_equity, Decimal('75500.00'))
        self.assertTrue(sheet.is_balanced)

        equity = {line.account_name: line.amount for line in sheet.equity}
        self.assertEqual(equity['General Fund Balance'], Decimal('50500.00'))
        self.assertEqual(equity['Building Fund Balance'], Decimal('25000.00'))

    def test_members_linked_to_statuses(self):
        data = parse_import_file(generate_onboarding_template()).data
        apply_onboarding_import(self.tenant_id, data)

        john = Member.objects.get(tenant_id=self.tenant_id, email='john.smith@example.com')
        self.assertEqual(john.birthday, date(1985, 4, 12))
        self.assertEqual(john.membership_status_id, member_services.find_status(self.tenant_id, 'Active').id)

        again = apply_onboarding_import(self.tenant_id, parse_import_file(generate_onboarding_template()).data)
        self.assertEqual(again.skipped['members'], 2)

    def test_failure_rolls_back_everything(self):
        content = workbook_bytes({
            'Funds': [('Name', 'Description', 'Type'), ('Youth Fund', '', 'restricted')],
            'Opening Balances': [
                ('Fund Name', 'Financial Source', 'Amount', 'As-of Date'),
                ('Youth Fund', 'Nowhere', 100, '2025-01-01'),
            ],
        })
        data = parse_import_file(content).data
        with self.assertRaisesMessage(ValueError, "financial source 'Nowhere' not found"):
            apply_onboarding_import(self.tenant_id, data)
        self.assertIsNone(ledger_services.find_fund(self.tenant_id, 'Youth Fund'))

    def test_execute_rejects_invalid_workbook(self):
        content = workbook_bytes({'Members': [
            ('First Name', 'Last Name', 'Email'),
            ('Ana', 'Reyes', 'bad-email'),
        ]})
        with self.assertRaises(services.ImportValidationError) as ctx:
            services.execute_onboarding(self.tenant_id, content)
        self.assertFalse(ctx.exception.preview.success)
        self.assertEqual(Member.objects.filter(tenant_id=self.tenant_id).count(), 0)

    def test_preview_accepts_existing_tenant_names(self):
        content = workbook_bytes({'Opening Balances': [
            ('Fund Name', 'Financial Source', 'Amount', 'As-of Date'),
            ('general fund', 'bank account', 100, '2025-01-01'),
        ]})
        preview = services.preview_onboarding(self.tenant_id, content)
        self.assertTrue(preview.success, preview.errors)
        self.assertEqual(preview.summary['opening_balances'], 1)


class MemberImportServiceTest(TestCase):

    HEADERS = ('First Name*', 'Last Name*', 'Email', 'Gender', 'Birthday', 'Membership Status', 'Tags')

    def setUp(self):
        self.tenant_id = uuid4()
        member_services.seed_default_statuses(self.tenant_id)
        self.service = MemberImportService()

    def _file(self, *rows):
        return workbook_bytes({'Members': [self.HEADERS, *rows]})

    def test_preview_reports_row_errors(self):
        content = self._file(
            ('Ana', 'Reyes', 'ana@example.com', 'Female', '1990-01-15', 'new_member', 'choir, youth'),
            ('', 'Cruz', 'cruz@example', 'unknown', 'someday', 'Elder', ''),
        )
        preview = self.service.get_preview_result(content, self.tenant_id)
        self.assertEqual((preview.total_rows, preview.valid_rows, preview.invalid_rows), (2, 1, 1))
        self.assertEqual(preview.valid_items[0]['gender'], 'female')
        self.assertEqual(preview.valid_items[0]['tags'], ['choir', 'youth'])

        messages = {(e.row, e.column, e.message) for e in preview.errors}
        self.assertIn((3, 'First Name', 'First Name is required'), messages)
        self.assertIn((3, 'Email', 'Invalid email format'), messages)
        self.assertIn((3, 'Gender', 'Must be one of: male, female, other'), messages)
        self.assertIn((3, 'Birthday', 'Invalid date (use YYYY-MM-DD)'), messages)

    def test_execute_imports_valid_rows_only(self):
        member_services.create_member(self.tenant_id, {
            'first_name': 'Existing', 'last_name': 'Member', 'email': 'taken@example.com',
        })
        content = self._file(
            ('Ana', 'Reyes', 'ana@example.com', '', '', 'New Member', 'choir'),
            ('Ben', 'Cruz', 'taken@example.com', '', '', '', ''),
            ('Cara', 'Lim', 'ana@example.com', '', '', '', ''),
            ('Dan', 'Uy', '', '', '', 'Elder', ''),
        )
        result = self.service.execute_import(content, self.tenant_id)
        self.assertTrue(result.success)
        self.assertEqual(result.imported_count, 1)
        self.assertEqual(result.skipped_count, 3)

        messages = [e.message for e in result.errors]
        self.assertIn('A member with email taken@example.com already exists', messages)
        self.assertIn('Duplicate email in file: ana@example.com', messages)
        self.assertIn('Unknown membership status: Elder', messages)

        ana = Member.objects.get(tenant_id=self.tenant_id, email='ana@example.com')
        self.assertEqual(ana.tags, ['choir'])
        self.assertEqual(ana.membership_status_id, member_services.find_status(self.tenant_id, 'new_member').id)
        self.assertEqual(ana.middle_name, '')

    def test_no_valid_rows(self):
        result = self.service.execute_import(self._file(('', '', '', '', '', '', '')), self.tenant_id)
        self.assertFalse(result.success)
        self.assertEqual(result.error, 'No valid rows to import')

    def test_too_many_rows(self):
        self.service.max_rows = 2
        content = self._file(*[('A', 'B', '', '', '', '', '')] * 3)
        result = self.service.execute_import(content, self.tenant_id)
        self.assertEqual(result.error, 'Too many rows. Maximum allowed is 2')

    def test_large_import_runs_in_batches(self):
        rows = [(f'Member{i}', 'Batch', f'm{i}@example.com', '', '', '', '') for i in range(120)]
        result = self.service.execute_import(self._file(*rows), self.tenant_id)
        self.assertEqual(result.imported_count, 120)

    def test_template_has_instructions(self):
        workbook = load_workbook_bytes(self.service.generate_template())
        self.assertEqual(workbook.sheetnames, ['Members', 'Instructions'])
        headers = read_rows(workbook['Members'])[0]
        self.assertEqual(headers[:2], ('First Name*', 'Last Name*'))
        instructions = [row[0] for row in read_rows(workbook['Instructions'])]
        self.assertEqual(instructions[0], 'Member Import Instructions')
        self.assertIn('- Maximum 5000 members per import', instructions)

    def test_export_round_trips_through_import(self):
        member_services.create_member(self.tenant_id, {
            'first_name': 'Ana', 'last_name': 'Reyes', 'email': 'ana@example.com',
            'birthday': date(1990, 1, 15), 'tags': ['choir', 'youth'],
            'membership_status_id': member_services.find_status(self.tenant_id, 'Active').id,
        })
        content = export_members_workbook(self.tenant_id)
        rows = read_rows(load_workbook_bytes(content)['Members'])
        self.assertEqual(len(rows), 2)
        exported = dict(zip(rows[0], rows[1]))
        self.assertEqual(exported['Membership Status'], 'Active')
        self.assertEqual(exported['Tags'], 'choir, youth')

        other_tenant = uuid4()
        member_services.seed_default_statuses(other_tenant)
        result = self.service.execute_import(content, other_tenant)
        self.assertEqual(result.imported_count, 1)
        imported = Member.objects.get(tenant_id=other_tenant)
        self.assertEqual(imported.birthday, date(1990, 1, 15))
        self.assertEqual(imported.tags, ['choir', 'youth'])
