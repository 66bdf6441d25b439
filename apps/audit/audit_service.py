"""
Centralized audit logging service.

Use log_action() to record any critical mutation. It is fire-and-forget:
it never raises, so a logging failure cannot break the calling request.

Usage:
    from apps.audit.audit_service import log_action, AuditAction

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.CLOSE_FISCAL_YEAR,
        target_type="FiscalYear",
        target_id=fiscal_year.id,
        target_label=fiscal_year.name,
        performed_by=request.user,
        context={"net_income": "1250.00"},
    )
"""
import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from django.db import transaction

from .models import AuditLog

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 500


class AuditAction:
    """
    Canonical string constants for audit log actions.
    """
    # ── Identity ──────────────────────────────────────────────────────
    USER_LOGIN = "USER_LOGIN"
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    DEACTIVATE_USER = "DEACTIVATE_USER"

    # ── RBAC ──────────────────────────────────────────────────────────
    CREATE_ROLE = "CREATE_ROLE"
    UPDATE_ROLE = "UPDATE_ROLE"
    DELETE_ROLE = "DELETE_ROLE"
    ASSIGN_ROLE = "ASSIGN_ROLE"
    REVOKE_ROLE = "REVOKE_ROLE"

    # ── Tenants ───────────────────────────────────────────────────────
    ONBOARD_TENANT = "ONBOARD_TENANT"
    UPDATE_TENANT = "UPDATE_TENANT"

    # ── Members & Care ────────────────────────────────────────────────
    CREATE_MEMBER = "CREATE_MEMBER"
    UPDATE_MEMBER = "UPDATE_MEMBER"
    DELETE_MEMBER = "DELETE_MEMBER"
    CREATE_CARE_PLAN = "CREATE_CARE_PLAN"
    CLOSE_CARE_PLAN = "CLOSE_CARE_PLAN"
    REOPEN_CARE_PLAN = "REOPEN_CARE_PLAN"

    # ── Scheduler ─────────────────────────────────────────────────────
    CREATE_SCHEDULE = "CREATE_SCHEDULE"
    UPDATE_SCHEDULE = "UPDATE_SCHEDULE"
    DELETE_SCHEDULE = "DELETE_SCHEDULE"

    # ── Ledger ────────────────────────────────────────────────────────
    RECORD_INCOME = "RECORD_INCOME"
    RECORD_EXPENSE = "RECORD_EXPENSE"
    POST_JOURNAL_ENTRY = "POST_JOURNAL_ENTRY"
    VOID_TRANSACTION = "VOID_TRANSACTION"
    CREATE_FISCAL_YEAR = "CREATE_FISCAL_YEAR"
    CLOSE_PERIOD = "CLOSE_PERIOD"
    REOPEN_PERIOD = "REOPEN_PERIOD"
    CLOSE_FISCAL_YEAR = "CLOSE_FISCAL_YEAR"
    ROLLOVER_FISCAL_YEAR = "ROLLOVER_FISCAL_YEAR"

    # ── Imports ───────────────────────────────────────────────────────
    IMPORT_MEMBERS = "IMPORT_MEMBERS"
    IMPORT_ONBOARDING = "IMPORT_ONBOARDING"
    EXPORT_MEMBERS = "EXPORT_MEMBERS"


def log_action(
    *,
    tenant_id: UUID,
    action: str,
    target_type: str,
    target_id: UUID,
    performed_by,
    target_label: str = "",
    context: Optional[dict] = None,
) -> Optional[AuditLog]:
    """
    Create an AuditLog entry for a critical action.

    Args:
        tenant_id:     Tenant UUID for multi-tenant isolation.
        action:        Action constant from AuditAction.
        target_type:   Type of the object acted on (e.g. "FiscalYear").
        target_id:     Primary key of the object acted on.
        performed_by:  Django User instance or None.
        target_label:  Optional human-readable description of the object.
        context:       Optional JSON-serializable metadata.

    Returns:
        The created AuditLog instance, or None if creation failed.
    """
    try:
        # A failed insert rolls back only this savepoint
        with transaction.atomic():
            return AuditLog.objects.create(
                tenant_id=tenant_id,
                action=action,
                target_type=target_type,
                target_id=target_id,
                target_label=(target_label or "")[:255],
                performed_by=performed_by if getattr(performed_by, 'pk', None) else None,
                context=context or {},
            )
    except Exception as e:
        logger.warning(f"Audit log for {action} on {target_type} {target_id} failed: {e}")
        return None


def list_audit_logs(
    tenant_id: UUID,
    action: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 100,
) -> List[AuditLog]:
    qs = AuditLog.objects.filter(tenant_id=tenant_id).select_related("performed_by")

    if action:
        qs = qs.filter(action=action)
    if target_type:
        qs = qs.filter(target_type=target_type)
    if target_id:
        qs = qs.filter(target_id=target_id)
    if start_date:
        qs = qs.filter(performed_at__date__gte=start_date)
    if end_date:
        qs = qs.filter(performed_at__date__lte=end_date)

    return list(qs[:max(1, min(limit, MAX_PAGE_SIZE))])
