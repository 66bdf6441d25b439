"""
Role-based access control services.

Roles are stored per tenant (plus read-only system roles) and granted to
users through assignments that may be limited to a campus or ministry.
"""
import logging
from typing import Iterable, List, Optional
from uuid import UUID

from django.db import IntegrityError, transaction
from django.db.models import Count, Q

from .dtos import RoleDTO, RoleAssignmentDTO
from .models import Role, RoleScope, SCOPED_ROLE_SCOPES, User, UserRoleAssignment
from .permissions import ALL_PERMISSIONS, ROLE_TEMPLATES

logger = logging.getLogger(__name__)


def _to_role_dto(role: Role, assigned_users: int = 0) -> RoleDTO:
    return RoleDTO(
        id=role.id,
        tenant_id=role.tenant_id,
        code=role.code,
        name=role.name,
        description=role.description,
        scope=role.scope,
        is_system=role.is_system,
        permissions=list(role.permissions or []),
        assigned_users=assigned_users,
    )


def _to_assignment_dto(assignment: UserRoleAssignment) -> RoleAssignmentDTO:
    return RoleAssignmentDTO(
        id=assignment.id,
        user_id=assignment.user_id,
        role_id=assignment.role_id,
        role_code=assignment.role.code,
        tenant_id=assignment.tenant_id,
        scope_id=assignment.scope_id,
        assigned_at=assignment.assigned_at,
    )


def _clean_permissions(permissions: Iterable[str]) -> List[str]:
    unknown = sorted(set(permissions) - set(ALL_PERMISSIONS))
    if unknown:
        raise ValueError(f"Unknown permissions: {', '.join(unknown)}")
    return sorted(set(permissions))


def _visible_roles(tenant_id: UUID):
    return Role.objects.filter(Q(tenant_id=tenant_id) | Q(tenant_id__isnull=True))


# =============================================================================
# Roles
# =============================================================================

def seed_role_templates(tenant_id: UUID) -> List[RoleDTO]:
    """
    Create the standard church roles for a tenant.
    Idempotent: roles that already exist (by code) are left untouched.
    """
    seeded = []
    for code, template in ROLE_TEMPLATES.items():
        role, created = Role.objects.get_or_create(
            tenant_id=tenant_id,
            code=code,
            defaults={
                'name': template['name'],
                'description': template['description'],
                'scope': template['scope'],
                'permissions': list(template['permissions']),
            },
        )
        if created:
            logger.info(f"Seeded role {code} for tenant {tenant_id}")
        seeded.append(_to_role_dto(role))
    return seeded


def list_roles(tenant_id: UUID) -> List[RoleDTO]:
    roles = _visible_roles(tenant_id).annotate(user_count=Count('assignments'))
    return [_to_role_dto(role, role.user_count) for role in roles]


def get_role(role_id: UUID, tenant_id: UUID) -> Optional[Role]:
    return _visible_roles(tenant_id).filter(id=role_id).first()


def get_role_by_code(tenant_id: UUID, code: str) -> Optional[Role]:
    return Role.objects.filter(tenant_id=tenant_id, code=code).first() or \
        Role.objects.filter(tenant_id__isnull=True, code=code).first()


def create_role(
    tenant_id: UUID,
    code: str,
    name: str,
    scope: str = RoleScope.TENANT,
    permissions: Iterable[str] = (),
    description: str = "",
) -> RoleDTO:
    """Create a tenant role. System-scope roles cannot be created by tenants."""
    if scope not in RoleScope.values:
        raise ValueError(f"Invalid scope: {scope}")
    if scope == RoleScope.SYSTEM:
        raise ValueError("System roles cannot be created by a tenant")
    if not code.strip():
        raise ValueError("Role code is required")
    if Role.objects.filter(tenant_id=tenant_id, code=code).exists():
        raise ValueError(f"Role with code '{code}' already exists")

    role = Role.objects.create(
        tenant_id=tenant_id,
        code=code.strip(),
        name=name,
        scope=scope,
        description=description,
        permissions=_clean_permissions(permissions),
    )
    return _to_role_dto(role)


def update_role(role_id: UUID, tenant_id: UUID, data: dict) -> Optional[RoleDTO]:
    role = get_role(role_id, tenant_id)
    if role is None:
        return None
    if role.is_system or role.tenant_id is None:
        raise ValueError("System roles cannot be modified")

    if data.get('name') is not None:
        role.name = data['name']
    if data.get('description') is not None:
        role.description = data['description']
    if data.get('permissions') is not None:
        role.permissions = _clean_permissions(data['permissions'])
    role.save()
    return _to_role_dto(role)


def delete_role(role_id: UUID, tenant_id: UUID) -> bool:
    role = get_role(role_id, tenant_id)
    if role is None:
        return False
    if role.is_system or role.tenant_id is None:
        raise ValueError("System roles cannot be deleted")
    if role.assignments.exists():
        raise ValueError("Role is still assigned to users; revoke it first")
    role.delete()
    return True


# =============================================================================
# Assignments
# =============================================================================

def assign_role(
    user_id: UUID,
    role_id: UUID,
    tenant_id: UUID,
    scope_id: Optional[UUID] = None,
    assigned_by_id: Optional[UUID] = None,
) -> RoleAssignmentDTO:
    """
    Grant a role to a user of the same tenant.

    Campus and ministry roles must name the campus/ministry (scope_id);
    tenant-wide roles must not.
    """
    user = User.objects.filter(id=user_id, tenant_id=tenant_id).first()
    if user is None:
        raise ValueError("User not found in this tenant")

    role = get_role(role_id, tenant_id)
    if role is None:
        raise ValueError("Role not found")

    if role.scope in SCOPED_ROLE_SCOPES and scope_id is None:
        raise ValueError(f"A {role.scope} role requires a scope_id")
    if role.scope not in SCOPED_ROLE_SCOPES and scope_id is not None:
        raise ValueError(f"A {role.scope} role cannot be limited to a scope")

    if UserRoleAssignment.objects.filter(user=user, role=role, scope_id=scope_id).exists():
        raise ValueError("Role already assigned to this user")

    try:
        with transaction.atomic():
            assignment = UserRoleAssignment.objects.create(
                user=user,
                role=role,
                tenant_id=tenant_id,
                scope_id=scope_id,
                assigned_by_id=assigned_by_id,
            )
    except IntegrityError:
        raise ValueError("Role already assigned to this user")

    logger.info(f"Assigned role {role.code} to user {user_id} (scope={scope_id})")
    return _to_assignment_dto(assignment)


def assign_role_by_code(user_id: UUID, tenant_id: UUID, code: str, **kwargs) -> RoleAssignmentDTO:
    role = get_role_by_code(tenant_id, code)
    if role is None:
        raise ValueError(f"Role '{code}' not found")
    return assign_role(user_id, role.id, tenant_id, **kwargs)


def revoke_role(assignment_id: UUID, tenant_id: UUID) -> bool:
    deleted, _ = UserRoleAssignment.objects.filter(id=assignment_id, tenant_id=tenant_id).delete()
    return deleted > 0


def list_user_assignments(user_id: UUID, tenant_id: UUID) -> List[RoleAssignmentDTO]:
    assignments = UserRoleAssignment.objects.filter(
        user_id=user_id, tenant_id=tenant_id
    ).select_related('role')
    return [_to_assignment_dto(a) for a in assignments]
