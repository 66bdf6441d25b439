"""
Services for Tenants app.
This is the public API for other apps to interact with tenants.
"""
import logging
from datetime import date
from typing import Optional
from uuid import UUID
from zoneinfo import available_timezones

from dateutil.relativedelta import relativedelta
from django.db import transaction
from django.utils import timezone

from apps.identity import rbac_service
from apps.identity.services import create_user
from apps.ledger import services as ledger_services
from apps.members import services as member_services
from .models import Tenant
from .dtos import OnboardingRequest, OnboardingResponse, TenantOut

logger = logging.getLogger(__name__)

ADMIN_ROLE_CODE = 'tenant_admin'


def get_tenant_dto(tenant_id) -> Optional[TenantOut]:
    """
    Get a tenant by ID and return as DTO.
    This is the only way other apps should access tenant data.
    """
    tenant = Tenant.objects.filter(id=tenant_id).first()
    return TenantOut.from_orm(tenant) if tenant else None


def _validate_tenant_fields(data: dict) -> None:
    month = data.get('fiscal_year_start_month')
    if month is not None and not 1 <= month <= 12:
        raise ValueError("fiscal_year_start_month must be between 1 and 12")
    tz = data.get('timezone')
    if tz is not None and tz not in available_timezones():
        raise ValueError(f"Unknown timezone: {tz}")
    currency = data.get('currency')
    if currency is not None and (len(currency) != 3 or not currency.isalpha()):
        raise ValueError("currency must be a 3-letter ISO code")


def current_fiscal_year_bounds(start_month: int, today: Optional[date] = None) -> tuple:
    """
    (start, end) of the fiscal year containing `today` for a tenant whose
    fiscal year begins on the first of `start_month`.
    """
    today = today or timezone.localdate()
    start = date(today.year, start_month, 1)
    if start > today:
        start = start - relativedelta(years=1)
    end = start + relativedelta(years=1) - relativedelta(days=1)
    return start, end


def onboard_tenant(payload: OnboardingRequest) -> OnboardingResponse:
    """
    Register a church and everything it needs on day one.

    Runs in one transaction: the tenant, its role templates, the admin
    user (granted tenant_admin), default membership statuses, the default
    chart of accounts with funds and categories, and an open fiscal year.
    """
    tenant_data = payload.tenant.dict()
    _validate_tenant_fields(tenant_data)

    with transaction.atomic():
        tenant = Tenant.objects.create(**tenant_data)

        roles = rbac_service.seed_role_templates(tenant.id)

        admin_payload = payload.admin_user.model_copy(update={'roles': [ADMIN_ROLE_CODE]})
        user_dto = create_user(tenant_id=tenant.id, payload=admin_payload)

        member_services.seed_default_statuses(tenant.id)
        ledger_services.seed_ledger_defaults(tenant.id)

        start, end = current_fiscal_year_bounds(tenant.fiscal_year_start_month)
        fiscal_year = ledger_services.create_fiscal_year(
            tenant_id=tenant.id,
            name=f"FY {start.year}",
            start_date=start,
            end_date=end,
        )

    logger.info(f"Onboarded tenant {tenant.id} ({tenant.name})")

    return OnboardingResponse(
        tenant=TenantOut.from_orm(tenant),
        admin_user=user_dto,
        fiscal_year_id=fiscal_year.id,
        roles_seeded=len(roles),
    )


def update_tenant(tenant_id: UUID, data: dict) -> Optional[TenantOut]:
    tenant = Tenant.objects.filter(id=tenant_id).first()
    if tenant is None:
        return None

    changes = {k: v for k, v in data.items() if v is not None}
    _validate_tenant_fields(changes)
    for attr, value in changes.items():
        setattr(tenant, attr, value)
    tenant.save()
    return TenantOut.from_orm(tenant)
