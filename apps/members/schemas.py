"""
API Schemas for Members app.
"""
from datetime import date
from typing import List, Optional
from uuid import UUID

from ninja import Schema


class MemberIn(Schema):
    first_name: str
    last_name: str
    middle_name: str = ""
    preferred_name: str = ""
    email: str = ""
    contact_number: str = ""
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
    membership_status_id: Optional[UUID] = None
    membership_date: Optional[date] = None
    tags: List[str] = []
    user_id: Optional[UUID] = None


class MemberUpdateIn(Schema):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    middle_name: Optional[str] = None
    preferred_name: Optional[str] = None
    email: Optional[str] = None
    contact_number: Optional[str] = None
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    birthday: Optional[date] = None
    anniversary: Optional[date] = None
    occupation: Optional[str] = None
    address_street: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_postal_code: Optional[str] = None
    address_country: Optional[str] = None
    membership_status_id: Optional[UUID] = None
    membership_date: Optional[date] = None
    tags: Optional[List[str]] = None
    user_id: Optional[UUID] = None


class MembershipStatusIn(Schema):
    name: str
    description: str = ""


class CarePlanIn(Schema):
    member_id: UUID
    status: str = "new"
    priority: str = "normal"
    details: str = ""
    follow_up_at: Optional[date] = None
    assigned_to_member_id: Optional[UUID] = None
    assigned_to_user_id: Optional[UUID] = None


class CarePlanUpdateIn(Schema):
    status: Optional[str] = None
    priority: Optional[str] = None
    details: Optional[str] = None
    follow_up_at: Optional[date] = None
    assigned_to_member_id: Optional[UUID] = None
    assigned_to_user_id: Optional[UUID] = None
