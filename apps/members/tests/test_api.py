"""
Integration tests for member and care plan endpoints.
"""
import json
from uuid import uuid4

from django.contrib.auth import get_user_model
from django.test import TestCase, Client

from apps.audit.models import AuditLog
from apps.identity import rbac_service
from apps.members import care_service, services
from apps.members.models import Member


User = get_user_model()


class MembersAPITestBase(TestCase):

    def setUp(self):
        self.client = Client()
        self.tenant_id = uuid4()
        rbac_service.seed_role_templates(self.tenant_id)
        services.seed_default_statuses(self.tenant_id)

        self.admin = self._user('church_admin', 'tenant_admin')
        self.pastor = self._user('pastor', 'pastor')
        self.care = self._user('care', 'care_team')
        self.member_user = self._user('plain', 'member')

    def _user(self, username, role_code):
        user = User.objects.create_user(username=username, password='testpass123', tenant_id=self.tenant_id)
        rbac_service.assign_role_by_code(user.id, self.tenant_id, role_code)
        return user

    def post(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def put(self, url, payload):
        return self.client.put(url, data=json.dumps(payload), content_type='application/json')


class MemberAPITest(MembersAPITestBase):

    def test_requires_auth(self):
        response = self.client.get('/api/members/')
        self.assertEqual(response.status_code, 401)

    def test_plain_member_cannot_browse_directory(self):
        self.client.force_login(self.member_user)
        response = self.client.get('/api/members/')
        self.assertEqual(response.status_code, 403)

    def test_create_and_fetch(self):
        self.client.force_login(self.pastor)
        status = services.find_status(self.tenant_id, 'Visitor')
        response = self.post('/api/members/', {
            'first_name': 'Ana',
            'last_name': 'Reyes',
            'email': 'ana@example.com',
            'birthday': '1990-01-15',
            'membership_status_id': str(status.id),
            'tags': ['choir'],
        })
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['membership_status'], 'Visitor')
        self.assertTrue(AuditLog.objects.filter(action='CREATE_MEMBER', target_id=data['id']).exists())

        response = self.client.get(f"/api/members/{data['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['birthday'], '1990-01-15')

    def test_duplicate_email_is_bad_request(self):
        services.create_member(self.tenant_id, {'first_name': 'Ana', 'last_name': 'Reyes', 'email': 'ana@example.com'})
        self.client.force_login(self.pastor)
        response = self.post('/api/members/', {'first_name': 'Ann', 'last_name': 'R', 'email': 'ana@example.com'})
        self.assertEqual(response.status_code, 400)

    def test_update_records_changed_fields(self):
        member = services.create_member(self.tenant_id, {'first_name': 'Ana', 'last_name': 'Reyes'})
        self.client.force_login(self.pastor)
        response = self.put(f'/api/members/{member.id}', {'occupation': 'Nurse', 'contact_number': '555-0101'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['occupation'], 'Nurse')
        log = AuditLog.objects.get(action='UPDATE_MEMBER')
        self.assertEqual(log.context['fields'], ['contact_number', 'occupation'])

    def test_search(self):
        services.create_member(self.tenant_id, {'first_name': 'Ana', 'last_name': 'Reyes'})
        services.create_member(self.tenant_id, {'first_name': 'Ben', 'last_name': 'Cruz'})
        self.client.force_login(self.care)
        response = self.client.get('/api/members/?search=ben')
        self.assertEqual([m['first_name'] for m in response.json()], ['Ben'])

    def test_delete_needs_delete_permission(self):
        member = services.create_member(self.tenant_id, {'first_name': 'Ana', 'last_name': 'Reyes'})

        self.client.force_login(self.pastor)
        self.assertEqual(self.client.delete(f'/api/members/{member.id}').status_code, 403)

        self.client.force_login(self.admin)
        self.assertEqual(self.client.delete(f'/api/members/{member.id}').status_code, 204)
        self.assertEqual(self.client.get(f'/api/members/{member.id}').status_code, 404)
        self.assertTrue(Member.objects.filter(id=member.id).exists())

    def test_other_tenant_member_is_not_found(self):
        foreign = services.create_member(uuid4(), {'first_name': 'Ana', 'last_name': 'Reyes'})
        self.client.force_login(self.admin)
        self.assertEqual(self.client.get(f'/api/members/{foreign.id}').status_code, 404)

    def test_statuses(self):
        self.client.force_login(self.pastor)
        response = self.post('/api/members/statuses', {'name': 'Deacon'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['code'], 'deacon')
        names = [s['name'] for s in self.client.get('/api/members/statuses').json()]
        self.assertIn('Deacon', names)


class CarePlanAPITest(MembersAPITestBase):

    def setUp(self):
        super().setUp()
        self.member = services.create_member(self.tenant_id, {'first_name': 'Ana', 'last_name': 'Reyes'})

    def test_finance_roles_cannot_see_care(self):
        auditor = self._user('auditor', 'auditor')
        self.client.force_login(auditor)
        self.assertEqual(self.client.get('/api/members/care-plans').status_code, 403)

    def test_create_close_reopen(self):
        self.client.force_login(self.care)
        response = self.post('/api/members/care-plans', {
            'member_id': str(self.member.id),
            'priority': 'high',
            'details': 'Recovering from surgery',
            'follow_up_at': '2025-06-01',
        })
        self.assertEqual(response.status_code, 200)
        plan_id = response.json()['id']
        self.assertEqual(response.json()['member_name'], 'Ana Reyes')

        response = self.client.post(f'/api/members/care-plans/{plan_id}/close')
        self.assertEqual(response.json()['status'], 'completed')
        response = self.client.post(f'/api/members/care-plans/{plan_id}/reopen')
        self.assertEqual(response.json()['status'], 'active')

        actions = set(AuditLog.objects.filter(target_id=plan_id).values_list('action', flat=True))
        self.assertEqual(actions, {'CREATE_CARE_PLAN', 'CLOSE_CARE_PLAN', 'REOPEN_CARE_PLAN'})

    def test_invalid_priority(self):
        self.client.force_login(self.care)
        response = self.post('/api/members/care-plans', {'member_id': str(self.member.id), 'priority': 'asap'})
        self.assertEqual(response.status_code, 400)

    def test_stats_and_listing(self):
        care_service.create_care_plan(self.tenant_id, self.member.id, {'priority': 'urgent'})
        care_service.create_care_plan(self.tenant_id, self.member.id, {'status': 'pending'})
        self.client.force_login(self.pastor)

        stats = self.client.get('/api/members/care-plans/stats').json()
        self.assertEqual((stats['total'], stats['urgent'], stats['pending']), (2, 1, 1))

        response = self.client.get('/api/members/care-plans?priority=urgent')
        self.assertEqual(len(response.json()), 1)

    def test_update_and_delete(self):
        plan = care_service.create_care_plan(self.tenant_id, self.member.id, {})
        self.client.force_login(self.care)

        response = self.put(f'/api/members/care-plans/{plan.id}', {'status': 'pending'})
        self.assertEqual(response.json()['status'], 'pending')

        self.assertEqual(self.client.delete(f'/api/members/care-plans/{plan.id}').status_code, 204)
        self.assertEqual(self.client.get(f'/api/members/care-plans/{plan.id}').status_code, 404)
