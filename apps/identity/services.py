"""Services for Identity app."""
from typing import List, Optional
from uuid import UUID

from django.db import transaction

from .models import User
from .dtos import UserDTO, UserCreate
from .permissions import get_user_permissions
from . import rbac_service


def _to_user_dto(user: User) -> UserDTO:
    return UserDTO(
        id=user.id,
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        tenant_id=user.tenant_id,
        is_active=user.is_active,
        roles=sorted({a.role.code for a in user.role_assignments.select_related('role')}),
        permissions=get_user_permissions(user),
    )


def get_user_dto(user_id) -> Optional[UserDTO]:
    user = User.objects.filter(id=user_id).first()
    return _to_user_dto(user) if user else None


def create_user(tenant_id, payload: UserCreate, assigned_by_id: Optional[UUID] = None) -> UserDTO:
    """Create a user in the tenant and grant the requested role codes."""
    if User.objects.filter(username=payload.username).exists():
        raise ValueError(f"Username '{payload.username}' is already taken")

    with transaction.atomic():
        user = User.objects.create_user(
            username=payload.username,
            email=payload.email,
            password=payload.password,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone or "",
            tenant_id=tenant_id,
            is_active=True,
        )
        for code in payload.roles:
            rbac_service.assign_role_by_code(user.id, tenant_id, code, assigned_by_id=assigned_by_id)

    return _to_user_dto(user)


def list_users(tenant_id) -> List[UserDTO]:
    users = User.objects.filter(tenant_id=tenant_id).prefetch_related('role_assignments__role')
    return [_to_user_dto(u) for u in users]


def update_user(user_id, data: dict) -> Optional[UserDTO]:
    user = User.objects.filter(id=user_id).first()
    if user is None:
        return None

    for key, value in data.items():
        if value is not None:
            setattr(user, key, value)

    user.save()
    return _to_user_dto(user)


def soft_delete_user(user_id) -> bool:
    """Disable login; assignments and audit history are kept."""
    updated = User.objects.filter(id=user_id).update(is_active=False)
    return updated > 0
