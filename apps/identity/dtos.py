"""DTOs for Identity app."""
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID
from typing import Optional, List

from ninja import Schema


@dataclass(frozen=True)
class UserDTO:
    id: UUID
    username: str
    email: str
    first_name: str
    last_name: str
    tenant_id: Optional[UUID]
    is_active: bool
    roles: List[str] = field(default_factory=list)
    permissions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RoleDTO:
    id: UUID
    tenant_id: Optional[UUID]
    code: str
    name: str
    description: str
    scope: str
    is_system: bool
    permissions: List[str]
    assigned_users: int = 0


@dataclass(frozen=True)
class RoleAssignmentDTO:
    id: UUID
    user_id: UUID
    role_id: UUID
    role_code: str
    tenant_id: UUID
    scope_id: Optional[UUID]
    assigned_at: datetime


# =============================================================================
# Request Schemas
# =============================================================================

class UserCreate(Schema):
    username: str
    email: str
    password: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    roles: List[str] = []


class UserUpdate(Schema):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None


class RoleIn(Schema):
    code: str
    name: str
    scope: str = "tenant"
    description: str = ""
    permissions: List[str] = []


class RoleUpdateIn(Schema):
    name: Optional[str] = None
    description: Optional[str] = None
    permissions: Optional[List[str]] = None


class RoleAssignmentIn(Schema):
    user_id: UUID
    role_id: UUID
    scope_id: Optional[UUID] = None
