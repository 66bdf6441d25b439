"""
Core services for Members app.
Member directory and membership statuses; care plans live in care_service.
"""
import logging
from typing import Dict, List, Optional
from uuid import UUID

from django.db.models import Q
from django.utils import timezone
from django.utils.text import slugify

from .models import Member, MembershipStatus, Gender, MaritalStatus
from .dtos import MemberDTO, MembershipStatusDTO

logger = logging.getLogger(__name__)


DEFAULT_MEMBERSHIP_STATUSES = [
    ('Active', 'Regular attending member'),
    ('Inactive', 'No longer actively attending'),
    ('Visitor', 'First-time or occasional visitor'),
    ('New Member', 'Recently joined the church'),
    ('Transferred', 'Transferred to another church'),
    ('Deceased', 'Member has passed away'),
]

MEMBER_FIELDS = (
    'first_name', 'middle_name', 'last_name', 'preferred_name', 'email',
    'contact_number', 'gender', 'marital_status', 'birthday', 'anniversary',
    'occupation', 'address_street', 'address_city', 'address_state',
    'address_postal_code', 'address_country', 'membership_status_id',
    'membership_date', 'tags', 'user_id',
)


def status_code_for(name: str) -> str:
    """'New Member' -> 'new_member'"""
    return slugify(name).replace('-', '_')


# =============================================================================
# Membership Statuses
# =============================================================================

def _to_status_dto(status: MembershipStatus) -> MembershipStatusDTO:
    return MembershipStatusDTO(
        id=status.id,
        code=status.code,
        name=status.name,
        description=status.description,
        sort_order=status.sort_order,
        is_active=status.is_active,
    )


def seed_default_statuses(tenant_id: UUID) -> List[MembershipStatusDTO]:
    """Create the default membership statuses for a tenant (idempotent)."""
    seeded = []
    for order, (name, description) in enumerate(DEFAULT_MEMBERSHIP_STATUSES, start=1):
        status, _ = MembershipStatus.objects.get_or_create(
            tenant_id=tenant_id,
            code=status_code_for(name),
            defaults={'name': name, 'description': description, 'sort_order': order},
        )
        seeded.append(_to_status_dto(status))
    return seeded


def list_statuses(tenant_id: UUID, active_only: bool = True) -> List[MembershipStatusDTO]:
    qs = MembershipStatus.objects.filter(tenant_id=tenant_id)
    if active_only:
        qs = qs.filter(is_active=True)
    return [_to_status_dto(s) for s in qs]


def create_status(tenant_id: UUID, name: str, description: str = "", code: Optional[str] = None) -> MembershipStatusDTO:
    code = code or status_code_for(name)
    if not code:
        raise ValueError("Membership status name is required")
    if MembershipStatus.objects.filter(tenant_id=tenant_id, code=code).exists():
        raise ValueError(f"Membership status '{name}' already exists")

    last = MembershipStatus.objects.filter(tenant_id=tenant_id).order_by('-sort_order').first()
    status = MembershipStatus.objects.create(
        tenant_id=tenant_id,
        code=code,
        name=name,
        description=description,
        sort_order=(last.sort_order + 1) if last else 1,
    )
    return _to_status_dto(status)


def find_status(tenant_id: UUID, value: str) -> Optional[MembershipStatus]:
    """Look up a status by code or (case-insensitive) name."""
    value = (value or "").strip()
    if not value:
        return None
    return MembershipStatus.objects.filter(tenant_id=tenant_id).filter(
        Q(code__iexact=value) | Q(name__iexact=value) | Q(code=status_code_for(value))
    ).first()


def _status_names(tenant_id: UUID) -> Dict[UUID, str]:
    return dict(MembershipStatus.objects.filter(tenant_id=tenant_id).values_list('id', 'name'))


# =============================================================================
# Members
# =============================================================================

def _to_member_dto(member: Member, status_names: Optional[Dict[UUID, str]] = None) -> MemberDTO:
    if status_names is None:
        status_names = _status_names(member.tenant_id)
    return MemberDTO(
        id=member.id,
        tenant_id=member.tenant_id,
        first_name=member.first_name,
        last_name=member.last_name,
        full_name=member.full_name,
        email=member.email,
        contact_number=member.contact_number,
        membership_status_id=member.membership_status_id,
        membership_status=status_names.get(member.membership_status_id),
        user_id=member.user_id,
        middle_name=member.middle_name,
        preferred_name=member.preferred_name,
        gender=member.gender,
        marital_status=member.marital_status,
        birthday=member.birthday,
        anniversary=member.anniversary,
        occupation=member.occupation,
        address_street=member.address_street,
        address_city=member.address_city,
        address_state=member.address_state,
        address_postal_code=member.address_postal_code,
        address_country=member.address_country,
        membership_date=member.membership_date,
        tags=list(member.tags or []),
    )


def _active_members(tenant_id: UUID):
    return Member.objects.filter(tenant_id=tenant_id, deleted_at__isnull=True)


def get_member(member_id: UUID, tenant_id: UUID) -> Optional[Member]:
    return _active_members(tenant_id).filter(id=member_id).first()


def get_member_dto(member_id: UUID, tenant_id: UUID) -> Optional[MemberDTO]:
    member = get_member(member_id, tenant_id)
    return _to_member_dto(member) if member else None


def list_members(
    tenant_id: UUID,
    search: Optional[str] = None,
    membership_status_id: Optional[UUID] = None,
    tag: Optional[str] = None,
) -> List[MemberDTO]:
    qs = _active_members(tenant_id)
    if search:
        qs = qs.filter(
            Q(first_name__icontains=search)
            | Q(last_name__icontains=search)
            | Q(preferred_name__icontains=search)
            | Q(email__icontains=search)
        )
    if membership_status_id:
        qs = qs.filter(membership_status_id=membership_status_id)

    status_names = _status_names(tenant_id)
    members = [_to_member_dto(m, status_names) for m in qs]
    if tag:
        members = [m for m in members if tag in m.tags]
    return members


def email_in_use(tenant_id: UUID, email: str, exclude_id: Optional[UUID] = None) -> bool:
    if not email:
        return False
    qs = _active_members(tenant_id).filter(email__iexact=email)
    if exclude_id:
        qs = qs.exclude(id=exclude_id)
    return qs.exists()


def _validate_member_data(tenant_id: UUID, data: dict, member_id: Optional[UUID] = None) -> None:
    if 'first_name' in data and not (data['first_name'] or '').strip():
        raise ValueError("First name is required")
    if 'last_name' in data and not (data['last_name'] or '').strip():
        raise ValueError("Last name is required")
    if data.get('gender') and data['gender'] not in Gender.values:
        raise ValueError(f"Invalid gender: {data['gender']}")
    if data.get('marital_status') and data['marital_status'] not in MaritalStatus.values:
        raise ValueError(f"Invalid marital status: {data['marital_status']}")
    if data.get('birthday') and data['birthday'] > timezone.localdate():
        raise ValueError("Birthday cannot be in the future")
    status_id = data.get('membership_status_id')
    if status_id and not MembershipStatus.objects.filter(id=status_id, tenant_id=tenant_id).exists():
        raise ValueError("Membership status not found")
    if email_in_use(tenant_id, data.get('email'), exclude_id=member_id):
        raise ValueError(f"A member with email {data['email']} already exists")


def create_member(tenant_id: UUID, data: dict, created_by_id: Optional[UUID] = None) -> MemberDTO:
    """Create a member. Raises ValueError on invalid or duplicate data."""
    fields = {k: v for k, v in data.items() if k in MEMBER_FIELDS and v is not None}
    fields.setdefault('first_name', '')
    fields.setdefault('last_name', '')
    _validate_member_data(tenant_id, fields)

    member = Member.objects.create(tenant_id=tenant_id, created_by_id=created_by_id, **fields)
    logger.info(f"Created member {member.id} for tenant {tenant_id}")
    return _to_member_dto(member)


def update_member(member_id: UUID, tenant_id: UUID, data: dict) -> Optional[MemberDTO]:
    member = get_member(member_id, tenant_id)
    if member is None:
        return None

    fields = {k: v for k, v in data.items() if k in MEMBER_FIELDS}
    _validate_member_data(tenant_id, fields, member_id=member_id)
    for key, value in fields.items():
        setattr(member, key, value if value is not None else _blank_for(key))
    member.save()
    return _to_member_dto(member)


def _blank_for(field_name: str):
    model_field = Member._meta.get_field(field_name)
    if model_field.null:
        return None
    return [] if field_name == 'tags' else ''


def soft_delete_member(member_id: UUID, tenant_id: UUID) -> bool:
    updated = _active_members(tenant_id).filter(id=member_id).update(deleted_at=timezone.now())
    return updated > 0
