"""
Tests for workbook helpers and the onboarding workbook parser.
"""
from datetime import date, datetime
from decimal import Decimal

import openpyxl
from django.test import SimpleTestCase

from apps.imports.excel import (
    NOTE_MARKER, coerce_bool, coerce_date, coerce_decimal, coerce_string,
    find_header_row, normalize_header, workbook_to_bytes,
)
from apps.imports.parser import get_import_summary, parse_import_file
from apps.imports.template import generate_onboarding_template, get_template_sheet_names


def workbook_bytes(sheets):
    """{'Sheet name': [row, row, ...]} -> xlsx bytes"""
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets.items():
        worksheet = workbook.create_sheet(title)
        for row in rows:
            worksheet.append(list(row))
    return workbook_to_bytes(workbook)


class HeaderTest(SimpleTestCase):

    def test_normalize_header(self):
        self.assertEqual(normalize_header('  First   Name* '), 'first name')
        self.assertEqual(normalize_header('EMAIL'), 'email')
        self.assertEqual(normalize_header(None), '')

    def test_header_row_skips_notes(self):
        rows = [
            (f'{NOTE_MARKER} Fill in one member per row', None),
            (None, None),
            ('First Name', 'Last Name'),
            ('Ana', 'Reyes'),
        ]
        self.assertEqual(find_header_row(rows), 2)

    def test_header_row_defaults_to_first(self):
        self.assertEqual(find_header_row([('Name',), ('Active',)]), 0)


class CoercionTest(SimpleTestCase):

    def test_strings(self):
        self.assertIsNone(coerce_string('   '))
        self.assertEqual(coerce_string(' Grace '), 'Grace')
        self.assertEqual(coerce_string(62701.0), '62701')

    def test_dates(self):
        self.assertEqual(coerce_date('2024-03-05'), date(2024, 3, 5))
        self.assertEqual(coerce_date('03/05/2024'), date(2024, 3, 5))
        self.assertEqual(coerce_date(datetime(2024, 3, 5, 10, 30)), date(2024, 3, 5))
        self.assertEqual(coerce_date(45356), date(2024, 3, 5))
        self.assertIsNone(coerce_date(''))
        with self.assertRaises(ValueError):
            coerce_date('2024-02-30')
        with self.assertRaises(ValueError):
            coerce_date('next sunday')

    def test_booleans(self):
        self.assertTrue(coerce_bool('Yes'))
        self.assertTrue(coerce_bool(1))
        self.assertFalse(coerce_bool('n'))
        self.assertIsNone(coerce_bool(None))
        with self.assertRaises(ValueError):
            coerce_bool('maybe')

    def test_decimals(self):
        self.assertEqual(coerce_decimal('1,250.50'), Decimal('1250.50'))
        self.assertEqual(coerce_decimal(300), Decimal('300'))
        with self.assertRaises(ValueError):
            coerce_decimal('lots')


class ParseImportFileTest(SimpleTestCase):

    def test_template_parses_cleanly(self):
        result = parse_import_file(generate_onboarding_template())
        self.assertTrue(result.success, result.errors)
        self.assertEqual(result.warnings, [])
        self.assertEqual(get_import_summary(result.data), {
            'members': 2,
            'membership_statuses': 6,
            'financial_sources': 3,
            'funds': 3,
            'income_categories': 3,
            'expense_categories': 3,
            'budget_categories': 2,
            'opening_balances': 3,
        })

        member = result.data.members[0]
        self.assertEqual(member['first_name'], 'John')
        self.assertEqual(member['birthdate'], date(1985, 4, 12))
        self.assertEqual(member['address_postal_code'], '62701')

        balance = result.data.opening_balances[0]
        self.assertEqual(balance['amount'], Decimal('50000'))
        self.assertEqual(result.data.funds[1]['fund_type'], 'restricted')

    def test_template_sheet_names(self):
        self.assertEqual(get_template_sheet_names()[0], 'Members')
        self.assertIn('Opening Balances', get_template_sheet_names())

    def test_member_header_aliases(self):
        content = workbook_bytes({'members': [
            ('Firstname', 'Surname', 'E-mail', 'Mobile', 'DOB', 'Status'),
            ('Ana', 'Reyes', 'ANA@Example.com', '555-0110', '1990-01-15', 'Active'),
        ]})
        result = parse_import_file(content)
        self.assertTrue(result.success)
        member = result.data.members[0]
        self.assertEqual(member['last_name'], 'Reyes')
        self.assertEqual(member['email'], 'ana@example.com')
        self.assertEqual(member['contact_number'], '555-0110')
        self.assertEqual(member['birthdate'], date(1990, 1, 15))
        self.assertEqual(member['membership_status'], 'Active')
        self.assertEqual(member['row_number'], 2)

    def test_missing_names_reported_with_row(self):
        content = workbook_bytes({'Members': [
            ('First Name', 'Last Name'),
            ('Ana', 'Reyes'),
            ('', 'Cruz'),
        ]})
        result = parse_import_file(content)
        self.assertFalse(result.success)
        error = result.errors[0]
        self.assertEqual((error.sheet, error.row, error.message), ('Members', 3, 'First Name is required'))

    def test_sheet_names_ignore_case_and_spaces(self):
        content = workbook_bytes({
            'membership  STATUS': [('Name', 'Description'), ('Regular', 'Attends weekly')],
            'Prayer Requests': [('Name', 'Request')],
        })
        result = parse_import_file(content)
        self.assertEqual(result.data.membership_statuses[0]['name'], 'Regular')
        self.assertEqual(result.warnings, ['Unknown sheet "Prayer Requests" was ignored'])

    def test_named_sheet_requires_name_column(self):
        content = workbook_bytes({'Funds': [('Title', 'Purpose'), ('Youth', 'Youth ministry')]})
        result = parse_import_file(content)
        self.assertEqual(result.errors[0].message, 'Could not find Name column')

    def test_unknown_source_type_is_dropped(self):
        content = workbook_bytes({'Financial Sources': [
            ('Name', 'Description', 'Source Type'),
            ('Vault', 'Safe in the office', 'safe'),
            ('Bank', '', 'BANK'),
        ]})
        sources = parse_import_file(content).data.financial_sources
        self.assertIsNone(sources[0]['source_type'])
        self.assertEqual(sources[1]['source_type'], 'bank')

    def test_opening_balance_columns_required(self):
        content = workbook_bytes({'Opening Balances': [('Fund Name', 'Amount'), ('General Fund', 100)]})
        result = parse_import_file(content)
        self.assertEqual(result.errors[0].message, 'Could not find columns: Source, Date')

    def test_opening_balance_row_errors(self):
        content = workbook_bytes({'Opening Balances': [
            ('Fund Name', 'Financial Source', 'Amount', 'As-of Date'),
            ('General Fund', 'Bank Account', -5, '2025-01-01'),
            ('General Fund', 'Bank Account', 100, 'soon'),
            ('General Fund', 'Bank Account', 100, '2025-01-01'),
        ]})
        result = parse_import_file(content)
        messages = [(e.row, e.message) for e in result.errors]
        self.assertIn((2, 'Amount must be a positive number'), messages)
        self.assertIn((3, 'As-of Date is required and must be a valid date'), messages)
        self.assertEqual(len(result.data.opening_balances), 1)

    def test_unreadable_file(self):
        result = parse_import_file(b'not a workbook')
        self.assertFalse(result.success)
        self.assertIsNone(result.data)
        self.assertEqual(result.errors[0].sheet, 'File')
        self.assertTrue(result.errors[0].message.startswith('Failed to parse Excel file'))
