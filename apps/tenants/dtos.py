from typing import Any, Dict, Optional
from uuid import UUID

from ninja import Schema
from ninja.orm import create_schema

from apps.identity.dtos import UserCreate, UserDTO
from .models import Tenant

TenantOut = create_schema(Tenant, exclude=['created_at', 'updated_at'])


class TenantIn(Schema):
    name: str
    denomination: str = ""
    address: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    timezone: str = "UTC"
    currency: str = "USD"
    fiscal_year_start_month: int = 1
    settings: Dict[str, Any] = {}


class TenantUpdate(Schema):
    name: Optional[str] = None
    denomination: Optional[str] = None
    address: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    timezone: Optional[str] = None
    currency: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None


class OnboardingRequest(Schema):
    tenant: TenantIn
    admin_user: UserCreate


class OnboardingResponse(Schema):
    tenant: TenantOut
    admin_user: UserDTO
    fiscal_year_id: UUID
    roles_seeded: int
