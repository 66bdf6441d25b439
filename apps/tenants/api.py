from uuid import UUID
from ninja import Router
from ninja.errors import HttpError
from django.http import HttpRequest

from apps.audit.audit_service import log_action, AuditAction
from apps.identity.decorators import has_permission
from apps.identity.permissions import Permissions
from .dtos import TenantOut, TenantUpdate, OnboardingRequest, OnboardingResponse
from .services import get_tenant_dto, onboard_tenant, update_tenant

router = Router(tags=["Tenants"])


def _ensure_own_tenant(request: HttpRequest, tenant_id: UUID) -> None:
    if not request.user.is_superuser and request.user.tenant_id != tenant_id:
        raise HttpError(403, "Permission denied: Cannot access other tenants")


@router.post("/onboard", response=OnboardingResponse, auth=None)
def create_onboard(request: HttpRequest, payload: OnboardingRequest):
    """
    **Public Endpoint**: Register a new church.

    Creates the tenant, its administrator, default roles, membership
    statuses, chart of accounts and the current fiscal year.
    """
    try:
        result = onboard_tenant(payload)
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=result.tenant.id,
        action=AuditAction.ONBOARD_TENANT,
        target_type="Tenant",
        target_id=result.tenant.id,
        target_label=result.tenant.name,
        performed_by=None,
        context={"admin_user_id": str(result.admin_user.id)},
    )
    return result


@router.get("/{tenant_id}", response=TenantOut, auth=None)
@has_permission(Permissions.TENANT_MANAGE)
def get_tenant(request: HttpRequest, tenant_id: UUID):
    _ensure_own_tenant(request, tenant_id)
    tenant = get_tenant_dto(tenant_id)
    if tenant is None:
        raise HttpError(404, "Tenant not found")
    return tenant


@router.put("/{tenant_id}", response=TenantOut, auth=None)
@has_permission(Permissions.TENANT_MANAGE)
def update_tenant_settings(request: HttpRequest, tenant_id: UUID, payload: TenantUpdate):
    _ensure_own_tenant(request, tenant_id)

    try:
        tenant = update_tenant(tenant_id, payload.dict(exclude_unset=True))
    except ValueError as e:
        raise HttpError(400, str(e))
    if tenant is None:
        raise HttpError(404, "Tenant not found")

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.UPDATE_TENANT,
        target_type="Tenant",
        target_id=tenant_id,
        target_label=tenant.name,
        performed_by=request.user,
        context=payload.dict(exclude_unset=True),
    )
    return tenant
