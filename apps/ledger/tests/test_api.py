"""
Integration tests for ledger API endpoints.
"""
import json
from datetime import date
from unittest.mock import patch
from uuid import uuid4
from django.test import TestCase, Client
from django.contrib.auth import get_user_model

from apps.audit.models import AuditLog
from apps.identity import rbac_service
from apps.ledger import services
from apps.ledger.models import CategoryType, FiscalPeriod, FiscalStatus


User = get_user_model()


class LedgerAPITestBase(TestCase):

    def setUp(self):
        self.client = Client()
        self.tenant_id = uuid4()
        rbac_service.seed_role_templates(self.tenant_id)
        services.seed_ledger_defaults(self.tenant_id)
        self.year = services.create_fiscal_year(self.tenant_id, 'FY 2025', date(2025, 1, 1), date(2025, 12, 31))

        self.treasurer = User.objects.create_user(
            username='treasurer', password='testpass123', tenant_id=self.tenant_id,
        )
        rbac_service.assign_role_by_code(self.treasurer.id, self.tenant_id, 'finance_officer')

        self.auditor = User.objects.create_user(
            username='auditor', password='testpass123', tenant_id=self.tenant_id,
        )
        rbac_service.assign_role_by_code(self.auditor.id, self.tenant_id, 'auditor')

        self.pastor = User.objects.create_user(
            username='pastor', password='testpass123', tenant_id=self.tenant_id,
        )
        rbac_service.assign_role_by_code(self.pastor.id, self.tenant_id, 'pastor')

        self.tithes = services.find_category(self.tenant_id, CategoryType.INCOME, 'Tithes')
        self.bank = services.find_source(self.tenant_id, 'Bank Account')

    def _post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type='application/json')

    def _income(self, amount='500.00', transaction_date='2025-02-02'):
        return self._post('/api/ledger/transactions/income', {
            'amount': amount,
            'transaction_date': transaction_date,
            'category_id': str(self.tithes.id),
            'source_id': str(self.bank.id),
        })


class TransactionAPITest(LedgerAPITestBase):

    def test_requires_auth(self):
        response = self.client.get('/api/ledger/accounts')
        self.assertEqual(response.status_code, 401)

    def test_pastor_has_no_finance_access(self):
        self.client.force_login(self.pastor)
        response = self.client.get('/api/ledger/accounts')
        self.assertEqual(response.status_code, 403)

    def test_auditor_can_view_but_not_record(self):
        self.client.force_login(self.auditor)
        self.assertEqual(self.client.get('/api/ledger/accounts').status_code, 200)
        self.assertEqual(self._income().status_code, 403)

    def test_record_income(self):
        self.client.force_login(self.treasurer)
        response = self._income()
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['status'], 'posted')
        self.assertTrue(data['transaction_number'].startswith('INC-20250202-'))
        self.assertTrue(AuditLog.objects.filter(tenant_id=self.tenant_id, action='RECORD_INCOME').exists())

    def test_income_outside_fiscal_year_is_bad_request(self):
        self.client.force_login(self.treasurer)
        response = self._income(transaction_date='2024-12-31')
        self.assertEqual(response.status_code, 400)

    def test_journal_entry_must_balance(self):
        self.client.force_login(self.treasurer)
        accounts = {a.code: a for a in services.list_accounts(self.tenant_id)}
        response = self._post('/api/ledger/transactions/journal', {
            'transaction_date': '2025-04-01',
            'lines': [
                {'account_id': str(accounts['1010'].id), 'debit': '100.00'},
                {'account_id': str(accounts['4090'].id), 'credit': '99.00'},
            ],
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('does not balance', response.json()['detail'])

    def test_void_transaction(self):
        self.client.force_login(self.treasurer)
        entry_id = self._income().json()['id']
        response = self._post(f'/api/ledger/transactions/{entry_id}/void', {'reason': 'Entered twice'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'voided')

    def test_transaction_not_found(self):
        self.client.force_login(self.treasurer)
        response = self.client.get(f'/api/ledger/transactions/{uuid4()}')
        self.assertEqual(response.status_code, 404)

    def test_trial_balance_report(self):
        self.client.force_login(self.treasurer)
        self._income('750.00')
        response = self.client.get('/api/ledger/reports/trial-balance?end_date=2025-12-31')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(len(data['rows']), 2)
        self.assertEqual(data['total_debit'], data['total_credit'])

    def test_income_statement_report(self):
        self.client.force_login(self.auditor)
        response = self.client.get(
            '/api/ledger/reports/income-statement?start_date=2025-12-31&end_date=2025-01-01'
        )
        self.assertEqual(response.status_code, 400)


class FiscalYearAPITest(LedgerAPITestBase):

    def _close_periods(self):
        FiscalPeriod.objects.filter(fiscal_year_id=self.year.id).update(status=FiscalStatus.CLOSED)

    def test_list_fiscal_years(self):
        self.client.force_login(self.auditor)
        response = self.client.get('/api/ledger/fiscal-years')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()[0]['periods']), 12)

    def test_close_period(self):
        self.client.force_login(self.treasurer)
        period = FiscalPeriod.objects.filter(fiscal_year_id=self.year.id).first()
        response = self._post(f'/api/ledger/periods/{period.id}/close')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'closed')

        again = self._post(f'/api/ledger/periods/{period.id}/close')
        self.assertEqual(again.status_code, 400)

    def test_close_with_open_periods_is_bad_request(self):
        self.client.force_login(self.treasurer)
        response = self._post(f'/api/ledger/fiscal-years/{self.year.id}/close')
        self.assertEqual(response.status_code, 400)
        self.assertIn('still open', response.json()['detail'])

    @patch('apps.ledger.api.TaskService.generate_financial_statement')
    def test_close_and_rollover(self, mock_statement):
        self.client.force_login(self.treasurer)
        self._income('1200.00')
        self._close_periods()

        response = self._post(f'/api/ledger/fiscal-years/{self.year.id}/close', {'rollover': True})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['net_income'], '1200.00')
        mock_statement.assert_called_once()

        actions = set(AuditLog.objects.filter(tenant_id=self.tenant_id).values_list('action', flat=True))
        self.assertIn('CLOSE_FISCAL_YEAR', actions)
        self.assertIn('ROLLOVER_FISCAL_YEAR', actions)

        years = self.client.get('/api/ledger/fiscal-years').json()
        self.assertEqual([y['name'] for y in years], ['FY 2026', 'FY 2025'])

    @patch('apps.ledger.api.TaskService.close_fiscal_year', return_value='task-123')
    def test_background_close_is_queued(self, mock_close):
        self.client.force_login(self.treasurer)
        response = self._post(f'/api/ledger/fiscal-years/{self.year.id}/close?background=true', {'rollover': True})
        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json()['task_id'], 'task-123')
        mock_close.assert_called_once()

    def test_auditor_cannot_close(self):
        self.client.force_login(self.auditor)
        response = self._post(f'/api/ledger/fiscal-years/{self.year.id}/close')
        self.assertEqual(response.status_code, 403)

    def test_rollover_open_year_is_bad_request(self):
        self.client.force_login(self.treasurer)
        response = self._post(f'/api/ledger/fiscal-years/{self.year.id}/rollover')
        self.assertEqual(response.status_code, 400)
