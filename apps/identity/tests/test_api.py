"""
Integration tests for identity API endpoints: cookie login, users and roles.
"""
import json
from uuid import uuid4
from django.test import TestCase, Client

from apps.audit.models import AuditLog
from apps.identity import rbac_service
from apps.identity.jwt_auth import ACCESS_COOKIE, REFRESH_COOKIE
from apps.identity.models import User


class IdentityAPITestBase(TestCase):

    def setUp(self):
        self.client = Client()
        self.tenant_id = uuid4()
        rbac_service.seed_role_templates(self.tenant_id)
        self.admin = User.objects.create_user(
            username='admin', password='testpass123', tenant_id=self.tenant_id,
        )
        rbac_service.assign_role_by_code(self.admin.id, self.tenant_id, 'tenant_admin')
        self.member = User.objects.create_user(
            username='member', password='testpass123', tenant_id=self.tenant_id,
        )
        rbac_service.assign_role_by_code(self.member.id, self.tenant_id, 'member')

    def _post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type='application/json')


class AuthAPITest(IdentityAPITestBase):

    def test_login_sets_cookies(self):
        response = self._post('/api/identity/login', {'username': 'admin', 'password': 'testpass123'})
        self.assertEqual(response.status_code, 200)
        self.assertIn(ACCESS_COOKIE, response.cookies)
        self.assertIn(REFRESH_COOKIE, response.cookies)
        self.assertTrue(response.cookies[ACCESS_COOKIE]['httponly'])
        self.assertEqual(response.json()['user']['roles'], ['tenant_admin'])
        self.assertTrue(AuditLog.objects.filter(tenant_id=self.tenant_id, action='USER_LOGIN').exists())

    def test_cookie_authenticates_following_requests(self):
        self._post('/api/identity/login', {'username': 'member', 'password': 'testpass123'})
        response = self.client.get('/api/identity/me')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['permissions'], ['scheduler:view'])

    def test_wrong_password(self):
        response = self._post('/api/identity/login', {'username': 'admin', 'password': 'nope'})
        self.assertEqual(response.status_code, 401)

    def test_refresh_requires_cookie(self):
        self.assertEqual(self._post('/api/identity/refresh').status_code, 401)

    def test_refresh_issues_new_access_token(self):
        self._post('/api/identity/login', {'username': 'admin', 'password': 'testpass123'})
        response = self._post('/api/identity/refresh')
        self.assertEqual(response.status_code, 200)
        self.assertIn(ACCESS_COOKIE, response.cookies)

    def test_me_requires_auth(self):
        self.assertEqual(self.client.get('/api/identity/me').status_code, 401)


class UserAPITest(IdentityAPITestBase):

    def test_create_user_with_roles(self):
        self.client.force_login(self.admin)
        response = self._post('/api/identity/users', {
            'username': 'treasurer',
            'email': 'treasurer@example.com',
            'password': 'testpass123',
            'first_name': 'Tess',
            'last_name': 'Cruz',
            'roles': ['finance_officer'],
        })
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['roles'], ['finance_officer'])
        self.assertIn('finance:close', data['permissions'])
        self.assertEqual(User.objects.get(username='treasurer').tenant_id, self.tenant_id)

    def test_member_cannot_manage_users(self):
        self.client.force_login(self.member)
        self.assertEqual(self.client.get('/api/identity/users').status_code, 403)

    def test_deactivate_user(self):
        self.client.force_login(self.admin)
        response = self.client.delete(f'/api/identity/users/{self.member.id}')
        self.assertEqual(response.status_code, 204)
        self.member.refresh_from_db()
        self.assertFalse(self.member.is_active)

    def test_cannot_deactivate_self(self):
        self.client.force_login(self.admin)
        response = self.client.delete(f'/api/identity/users/{self.admin.id}')
        self.assertEqual(response.status_code, 400)

    def test_other_tenant_user_not_found(self):
        outsider = User.objects.create_user(username='outsider', password='pw', tenant_id=uuid4())
        self.client.force_login(self.admin)
        response = self.client.delete(f'/api/identity/users/{outsider.id}')
        self.assertEqual(response.status_code, 404)


class RoleAPITest(IdentityAPITestBase):

    def test_create_and_assign_ministry_role(self):
        self.client.force_login(self.admin)
        response = self._post('/api/identity/roles', {
            'code': 'worship_lead',
            'name': 'Worship Leader',
            'scope': 'ministry',
            'permissions': ['scheduler:view', 'scheduler:manage'],
        })
        self.assertEqual(response.status_code, 200)
        role_id = response.json()['id']

        missing_scope = self._post('/api/identity/role-assignments', {
            'user_id': str(self.member.id), 'role_id': role_id,
        })
        self.assertEqual(missing_scope.status_code, 400)

        assigned = self._post('/api/identity/role-assignments', {
            'user_id': str(self.member.id), 'role_id': role_id, 'scope_id': str(uuid4()),
        })
        self.assertEqual(assigned.status_code, 200)
        self.assertTrue(AuditLog.objects.filter(tenant_id=self.tenant_id, action='ASSIGN_ROLE').exists())

    def test_delete_assigned_role_is_bad_request(self):
        self.client.force_login(self.admin)
        role = rbac_service.get_role_by_code(self.tenant_id, 'member')
        response = self.client.delete(f'/api/identity/roles/{role.id}')
        self.assertEqual(response.status_code, 400)

    def test_permission_catalogue(self):
        self.client.force_login(self.admin)
        response = self.client.get('/api/identity/permissions')
        self.assertIn('imports:manage', response.json())
