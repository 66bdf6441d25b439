from datetime import date
from typing import List, Optional
from uuid import UUID

from ninja import Router
from ninja.errors import HttpError

from apps.identity.decorators import require_permission, get_tenant_id
from apps.identity.permissions import Permissions
from .audit_service import list_audit_logs
from .dtos import AuditLogOut
from .models import AuditLog

router = Router(tags=["Audit"])


def _serialize_log(log: AuditLog) -> AuditLogOut:
    """Convert an AuditLog model instance to its output schema."""
    performed_by_name = None
    if log.performed_by is not None:
        performed_by_name = log.performed_by.get_full_name() or log.performed_by.username

    return AuditLogOut(
        id=log.id,
        tenant_id=log.tenant_id,
        action=log.action,
        target_type=log.target_type,
        target_id=log.target_id,
        target_label=log.target_label,
        performed_by_id=log.performed_by_id,
        performed_by_name=performed_by_name,
        performed_at=log.performed_at,
        context=log.context,
    )


@router.get("/logs", response=List[AuditLogOut], auth=None)
def get_audit_logs(
    request,
    action: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 100,
):
    """
    List audit log entries for the tenant, newest first.
    Filter by action, target and date range; at most 500 rows are returned.
    """
    require_permission(request, Permissions.AUDIT_VIEW)
    logs = list_audit_logs(
        get_tenant_id(request),
        action=action,
        target_type=target_type,
        target_id=target_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return [_serialize_log(log) for log in logs]


@router.get("/logs/{log_id}", response=AuditLogOut, auth=None)
def get_audit_log(request, log_id: UUID):
    require_permission(request, Permissions.AUDIT_VIEW)
    log = AuditLog.objects.select_related("performed_by").filter(
        id=log_id, tenant_id=get_tenant_id(request)
    ).first()
    if log is None:
        raise HttpError(404, "Audit log not found")
    return _serialize_log(log)
