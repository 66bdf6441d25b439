"""
Integration tests for import API endpoints.
"""
from uuid import uuid4

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, Client

from apps.audit.models import AuditLog
from apps.identity import rbac_service
from apps.imports.excel import XLSX_CONTENT_TYPE, load_workbook_bytes
from apps.imports.template import generate_onboarding_template
from apps.imports.tests.test_parser import workbook_bytes
from apps.ledger import services as ledger_services
from apps.members import services as member_services
from apps.members.models import Member


User = get_user_model()


def upload(content, name='import.xlsx'):
    return SimpleUploadedFile(name, content, content_type=XLSX_CONTENT_TYPE)


class ImportAPITestBase(TestCase):

    def setUp(self):
        self.client = Client()
        self.tenant_id = uuid4()
        rbac_service.seed_role_templates(self.tenant_id)
        member_services.seed_default_statuses(self.tenant_id)
        ledger_services.seed_ledger_defaults(self.tenant_id)

        self.treasurer = User.objects.create_user(
            username='treasurer', password='testpass123', tenant_id=self.tenant_id,
        )
        rbac_service.assign_role_by_code(self.treasurer.id, self.tenant_id, 'finance_officer')

        self.pastor = User.objects.create_user(
            username='pastor', password='testpass123', tenant_id=self.tenant_id,
        )
        rbac_service.assign_role_by_code(self.pastor.id, self.tenant_id, 'pastor')


class TemplateAPITest(ImportAPITestBase):

    def test_requires_auth(self):
        response = self.client.get('/api/imports/templates/onboarding')
        self.assertEqual(response.status_code, 401)

    def test_pastor_cannot_import(self):
        self.client.force_login(self.pastor)
        response = self.client.get('/api/imports/templates/onboarding')
        self.assertEqual(response.status_code, 403)

    def test_download_onboarding_template(self):
        self.client.force_login(self.treasurer)
        response = self.client.get('/api/imports/templates/onboarding')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], XLSX_CONTENT_TYPE)
        self.assertIn('onboarding_template.xlsx', response['Content-Disposition'])
        self.assertIn('Opening Balances', load_workbook_bytes(response.content).sheetnames)

    def test_download_member_template(self):
        self.client.force_login(self.treasurer)
        response = self.client.get('/api/imports/templates/members')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(load_workbook_bytes(response.content).sheetnames, ['Members', 'Instructions'])


class OnboardingAPITest(ImportAPITestBase):

    def test_preview(self):
        self.client.force_login(self.treasurer)
        response = self.client.post('/api/imports/onboarding/preview', {'file': upload(generate_onboarding_template())})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['summary']['members'], 2)
        self.assertEqual(data['message'], 'Data looks good! Ready to import.')
        self.assertEqual(Member.objects.filter(tenant_id=self.tenant_id).count(), 0)

    def test_execute(self):
        self.client.force_login(self.treasurer)
        response = self.client.post('/api/imports/onboarding/execute', {'file': upload(generate_onboarding_template())})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['created']['members'], 2)
        self.assertTrue(AuditLog.objects.filter(tenant_id=self.tenant_id, action='IMPORT_ONBOARDING').exists())

    def test_execute_with_errors_returns_preview(self):
        self.client.force_login(self.treasurer)
        content = workbook_bytes({'Members': [('First Name', 'Last Name', 'Email'), ('Ana', '', 'ana@example.com')]})
        response = self.client.post('/api/imports/onboarding/execute', {'file': upload(content)})
        self.assertEqual(response.status_code, 400)
        data = response.json()
        self.assertFalse(data['success'])
        self.assertEqual(data['errors'][0]['message'], 'Last Name is required')
        self.assertEqual(data['message'], 'Found 1 error(s) that need to be fixed before import.')

    def test_rejects_non_excel_upload(self):
        self.client.force_login(self.treasurer)
        bad = SimpleUploadedFile('members.csv', b'first,last', content_type='text/csv')
        response = self.client.post('/api/imports/onboarding/preview', {'file': bad})
        self.assertEqual(response.status_code, 400)
        self.assertIn('Invalid file type', response.json()['detail'])

    def test_unreadable_workbook(self):
        self.client.force_login(self.treasurer)
        response = self.client.post('/api/imports/onboarding/preview', {'file': upload(b'garbage')})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['errors'][0]['sheet'], 'File')


class MemberImportAPITest(ImportAPITestBase):

    def _members_file(self):
        return upload(workbook_bytes({'Members': [
            ('First Name', 'Last Name', 'Email', 'Membership Status'),
            ('Ana', 'Reyes', 'ana@example.com', 'Active'),
            ('Ben', '', 'ben@example.com', 'Active'),
        ]}))

    def test_preview(self):
        self.client.force_login(self.treasurer)
        response = self.client.post('/api/imports/members/preview', {'file': self._members_file()})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual((data['valid_rows'], data['invalid_rows']), (1, 1))
        self.assertEqual(data['errors'][0]['row'], 3)

    def test_execute(self):
        self.client.force_login(self.treasurer)
        response = self.client.post('/api/imports/members/execute', {'file': self._members_file()})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['imported_count'], 1)
        log = AuditLog.objects.get(tenant_id=self.tenant_id, action='IMPORT_MEMBERS')
        self.assertEqual(log.context['skipped'], 1)

    def test_execute_without_valid_rows(self):
        self.client.force_login(self.treasurer)
        content = workbook_bytes({'Members': [('First Name', 'Last Name'), ('', 'Reyes')]})
        response = self.client.post('/api/imports/members/execute', {'file': upload(content)})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'No valid rows to import')

    def test_export_needs_only_member_view(self):
        member_services.create_member(self.tenant_id, {'first_name': 'Ana', 'last_name': 'Reyes'})
        self.client.force_login(self.pastor)
        response = self.client.get('/api/imports/members/export')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], XLSX_CONTENT_TYPE)
        self.assertTrue(AuditLog.objects.filter(tenant_id=self.tenant_id, action='EXPORT_MEMBERS').exists())
