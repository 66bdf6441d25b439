"""
Tests for role templates, role assignments and permission resolution.
"""
from uuid import uuid4
from django.test import TestCase

from apps.identity import rbac_service
from apps.identity.jwt_auth import create_token_pair, decode_token, get_user_id_from_token
from apps.identity.models import Role, RoleScope, User
from apps.identity.permissions import ALL_PERMISSIONS, Permissions, get_user_permissions, user_has_permission


class RoleTemplateTest(TestCase):

    def setUp(self):
        self.tenant_id = uuid4()

    def test_seed_creates_every_template_once(self):
        first = rbac_service.seed_role_templates(self.tenant_id)
        rbac_service.seed_role_templates(self.tenant_id)
        self.assertEqual(len(first), 7)
        self.assertEqual(Role.objects.filter(tenant_id=self.tenant_id).count(), 7)

    def test_admin_template_holds_every_permission(self):
        rbac_service.seed_role_templates(self.tenant_id)
        admin = rbac_service.get_role_by_code(self.tenant_id, 'tenant_admin')
        self.assertEqual(sorted(admin.permissions), ALL_PERMISSIONS)

    def test_unknown_permission_rejected(self):
        with self.assertRaisesMessage(ValueError, 'Unknown permissions: ledger:approve'):
            rbac_service.create_role(self.tenant_id, 'approver', 'Approver', permissions=['ledger:approve'])

    def test_tenant_cannot_create_system_role(self):
        with self.assertRaises(ValueError):
            rbac_service.create_role(self.tenant_id, 'root', 'Root', scope=RoleScope.SYSTEM)

    def test_system_roles_are_read_only(self):
        system = Role.objects.create(code='support', name='Support', scope=RoleScope.SYSTEM, is_system=True)
        with self.assertRaisesMessage(ValueError, 'System roles cannot be modified'):
            rbac_service.update_role(system.id, self.tenant_id, {'name': 'Helpdesk'})
        with self.assertRaisesMessage(ValueError, 'System roles cannot be deleted'):
            rbac_service.delete_role(system.id, self.tenant_id)

    def test_assigned_role_cannot_be_deleted(self):
        role = rbac_service.create_role(self.tenant_id, 'greeter', 'Greeter', permissions=[Permissions.MEMBERS_VIEW])
        user = User.objects.create_user(username='greeter', password='pw', tenant_id=self.tenant_id)
        rbac_service.assign_role(user.id, role.id, self.tenant_id)
        with self.assertRaisesMessage(ValueError, 'still assigned'):
            rbac_service.delete_role(role.id, self.tenant_id)


class PermissionResolutionTest(TestCase):

    def setUp(self):
        self.tenant_id = uuid4()
        rbac_service.seed_role_templates(self.tenant_id)
        self.user = User.objects.create_user(username='volunteer', password='pw', tenant_id=self.tenant_id)

    def test_auditor_is_read_only(self):
        rbac_service.assign_role_by_code(self.user.id, self.tenant_id, 'auditor')
        perms = get_user_permissions(self.user)
        self.assertIn(Permissions.FINANCE_VIEW, perms)
        self.assertNotIn(Permissions.FINANCE_MANAGE, perms)

    def test_permissions_are_a_union(self):
        rbac_service.assign_role_by_code(self.user.id, self.tenant_id, 'care_team')
        rbac_service.assign_role_by_code(self.user.id, self.tenant_id, 'member')
        perms = get_user_permissions(self.user)
        self.assertIn(Permissions.CARE_MANAGE, perms)
        self.assertIn(Permissions.SCHEDULER_VIEW, perms)

    def test_ministry_role_needs_scope(self):
        with self.assertRaisesMessage(ValueError, 'requires a scope_id'):
            rbac_service.assign_role_by_code(self.user.id, self.tenant_id, 'ministry_leader')
        with self.assertRaisesMessage(ValueError, 'cannot be limited to a scope'):
            rbac_service.assign_role_by_code(self.user.id, self.tenant_id, 'pastor', scope_id=uuid4())

    def test_scoped_assignment_only_counts_for_its_scope(self):
        worship = uuid4()
        rbac_service.assign_role_by_code(self.user.id, self.tenant_id, 'ministry_leader', scope_id=worship)
        self.assertTrue(user_has_permission(self.user, Permissions.SCHEDULER_MANAGE, scope_id=worship))
        self.assertFalse(user_has_permission(self.user, Permissions.SCHEDULER_MANAGE, scope_id=uuid4()))
        self.assertFalse(user_has_permission(self.user, Permissions.SCHEDULER_MANAGE))

    def test_duplicate_assignment_rejected(self):
        rbac_service.assign_role_by_code(self.user.id, self.tenant_id, 'member')
        with self.assertRaisesMessage(ValueError, 'already assigned'):
            rbac_service.assign_role_by_code(self.user.id, self.tenant_id, 'member')

    def test_cannot_assign_to_other_tenant_user(self):
        outsider = User.objects.create_user(username='outsider', password='pw', tenant_id=uuid4())
        with self.assertRaisesMessage(ValueError, 'User not found in this tenant'):
            rbac_service.assign_role_by_code(outsider.id, self.tenant_id, 'member')

    def test_inactive_user_has_no_permissions(self):
        rbac_service.assign_role_by_code(self.user.id, self.tenant_id, 'tenant_admin')
        self.user.is_active = False
        self.user.save()
        self.assertEqual(get_user_permissions(self.user), [])

    def test_superuser_has_everything(self):
        admin = User.objects.create_superuser(username='root', password='pw', email='root@example.com')
        self.assertEqual(get_user_permissions(admin), ALL_PERMISSIONS)

    def test_revoke(self):
        assignment = rbac_service.assign_role_by_code(self.user.id, self.tenant_id, 'care_team')
        self.assertTrue(rbac_service.revoke_role(assignment.id, self.tenant_id))
        self.assertEqual(get_user_permissions(self.user), [])


class TokenTest(TestCase):

    def test_token_types_are_not_interchangeable(self):
        user_id = uuid4()
        access, refresh = create_token_pair(user_id, uuid4())
        self.assertEqual(get_user_id_from_token(access), user_id)
        self.assertIsNone(get_user_id_from_token(refresh))
        self.assertEqual(decode_token(refresh, expected_type='refresh')['sub'], str(user_id))

    def test_tampered_token_rejected(self):
        access, _ = create_token_pair(uuid4(), None)
        self.assertIsNone(decode_token(access + 'x'))
