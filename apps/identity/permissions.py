from typing import Dict, List, Optional
from uuid import UUID

from .models import RoleScope


class Permissions:
    """Permission codes, written as '<area>:<action>'."""
    # Tenant
    TENANT_MANAGE = "tenant:manage"

    # Users & roles
    USERS_VIEW = "users:view"
    USERS_MANAGE = "users:manage"
    ROLES_VIEW = "roles:view"
    ROLES_MANAGE = "roles:manage"

    # Members
    MEMBERS_VIEW = "members:view"
    MEMBERS_MANAGE = "members:manage"
    MEMBERS_DELETE = "members:delete"

    # Pastoral care
    CARE_VIEW = "care:view"
    CARE_MANAGE = "care:manage"

    # Ministry schedules
    SCHEDULER_VIEW = "scheduler:view"
    SCHEDULER_MANAGE = "scheduler:manage"
    SCHEDULER_DELETE = "scheduler:delete"

    # Finance
    FINANCE_VIEW = "finance:view"
    FINANCE_MANAGE = "finance:manage"
    FINANCE_CLOSE = "finance:close"

    # Data import / export
    IMPORTS_MANAGE = "imports:manage"

    # Audit trail
    AUDIT_VIEW = "audit:view"


ALL_PERMISSIONS: List[str] = sorted(
    value for name, value in vars(Permissions).items()
    if name.isupper() and isinstance(value, str)
)


# Templates seeded into every tenant during onboarding
ROLE_TEMPLATES: Dict[str, dict] = {
    'tenant_admin': {
        'name': 'Church Administrator',
        'scope': RoleScope.TENANT,
        'description': 'Full access to every area of the church account.',
        'permissions': list(ALL_PERMISSIONS),
    },
    'finance_officer': {
        'name': 'Finance Officer',
        'scope': RoleScope.TENANT,
        'description': 'Records giving and expenses, closes fiscal years.',
        'permissions': [
            Permissions.FINANCE_VIEW,
            Permissions.FINANCE_MANAGE,
            Permissions.FINANCE_CLOSE,
            Permissions.IMPORTS_MANAGE,
            Permissions.MEMBERS_VIEW,
            Permissions.AUDIT_VIEW,
        ],
    },
    'pastor': {
        'name': 'Pastor',
        'scope': RoleScope.TENANT,
        'description': 'Shepherds members, care plans and ministry schedules.',
        'permissions': [
            Permissions.MEMBERS_VIEW,
            Permissions.MEMBERS_MANAGE,
            Permissions.CARE_VIEW,
            Permissions.CARE_MANAGE,
            Permissions.SCHEDULER_VIEW,
            Permissions.SCHEDULER_MANAGE,
            Permissions.USERS_VIEW,
        ],
    },
    'care_team': {
        'name': 'Care Team',
        'scope': RoleScope.TENANT,
        'description': 'Follows up on assigned care plans.',
        'permissions': [
            Permissions.MEMBERS_VIEW,
            Permissions.CARE_VIEW,
            Permissions.CARE_MANAGE,
        ],
    },
    'ministry_leader': {
        'name': 'Ministry Leader',
        'scope': RoleScope.MINISTRY,
        'description': 'Manages schedules for a single ministry.',
        'permissions': [
            Permissions.SCHEDULER_VIEW,
            Permissions.SCHEDULER_MANAGE,
            Permissions.MEMBERS_VIEW,
        ],
    },
    'member': {
        'name': 'Member',
        'scope': RoleScope.TENANT,
        'description': 'Sees the church calendar.',
        'permissions': [
            Permissions.SCHEDULER_VIEW,
        ],
    },
    'auditor': {
        'name': 'Auditor',
        'scope': RoleScope.TENANT,
        'description': 'Read-only access to finances and the audit trail.',
        'permissions': [
            Permissions.FINANCE_VIEW,
            Permissions.MEMBERS_VIEW,
            Permissions.AUDIT_VIEW,
        ],
    },
}


def get_user_permissions(user, scope_id: Optional[UUID] = None) -> List[str]:
    """
    Returns the permission codes the user holds.

    Tenant-wide assignments always count. Campus/ministry assignments only
    count when the caller asks about that campus or ministry via scope_id.
    Superusers hold every permission; inactive users hold none.
    """
    if not user or not user.is_authenticated or not user.is_active:
        return []

    if user.is_superuser:
        return list(ALL_PERMISSIONS)

    perms = set()
    assignments = user.role_assignments.select_related('role')
    for assignment in assignments:
        role = assignment.role
        if role.tenant_id is not None and role.tenant_id != user.tenant_id:
            continue
        if assignment.scope_id is not None and assignment.scope_id != scope_id:
            continue
        perms.update(role.permissions or [])

    return sorted(perms)


def user_has_permission(user, permission: str, scope_id: Optional[UUID] = None) -> bool:
    return permission in get_user_permissions(user, scope_id=scope_id)
