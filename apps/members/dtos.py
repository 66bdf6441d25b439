"""DTOs for Members app - Data Transfer Objects for cross-app communication."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID


@dataclass(frozen=True)
class MembershipStatusDTO:
    id: UUID
    code: str
    name: str
    description: str
    sort_order: int
    is_active: bool


@dataclass(frozen=True)
class MemberDTO:
    id: UUID
    tenant_id: UUID
    first_name: str
    last_name: str
    full_name: str
    email: str
    contact_number: str
    membership_status_id: Optional[UUID]
    membership_status: Optional[str]
    user_id: Optional[UUID] = None
    middle_name: str = ""
    preferred_name: str = ""
    gender: str = ""
    marital_status: str = ""
    birthday: Optional[date] = None
    anniversary: Optional[date] = None
    occupation: str = ""
    address_street: str = ""
    address_city: str = ""
    address_state: str = ""
    address_postal_code: str = ""
    address_country: str = ""
    membership_date: Optional[date] = None
    tags: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CarePlanDTO:
    id: UUID
    tenant_id: UUID
    member_id: UUID
    member_name: str
    status: str
    priority: str
    details: str
    follow_up_at: Optional[date]
    is_active: bool
    assigned_to_member_id: Optional[UUID] = None
    assigned_to_user_id: Optional[UUID] = None
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class CarePlanStatsDTO:
    total: int
    active: int
    pending: int
    urgent: int
    completed: int
