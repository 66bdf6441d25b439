"""
API Router for Scheduler app.
Ministry schedules, their materialized occurrences and RRULE helpers.

Ministry leaders hold scheduler permissions scoped to their ministry, so
checks pass the schedule's ministry_id as the scope.
"""
from datetime import date
from typing import List, Optional
from uuid import UUID

from ninja import Router
from ninja.errors import HttpError
from django.http import HttpRequest

from apps.audit.audit_service import log_action, AuditAction
from apps.identity.decorators import require_auth, require_permission, get_tenant_id
from apps.identity.permissions import Permissions
from .dtos import GenerationResultDTO, OccurrenceDTO, ScheduleViewDTO
from .recurrence import RecurrenceError, describe_rrule, normalize_rrule
from .schemas import (
    DescribeRecurrenceIn,
    DescribeRecurrenceOut,
    GenerateOccurrencesIn,
    ScheduleIn,
    ScheduleUpdateIn,
)
from . import services

router = Router(tags=["Scheduler"])


def _get_schedule_or_404(request: HttpRequest, schedule_id: UUID):
    schedule = services.get_schedule(schedule_id, get_tenant_id(request))
    if schedule is None:
        raise HttpError(404, "Schedule not found")
    return schedule


# =============================================================================
# Recurrence Helpers
# =============================================================================

@router.post("/recurrence/describe", response=DescribeRecurrenceOut, auth=None)
def describe_recurrence(request: HttpRequest, payload: DescribeRecurrenceIn):
    """Validate an RRULE and return its canonical form and description."""
    require_auth(request)
    try:
        canonical = normalize_rrule(payload.recurrence_rule)
    except RecurrenceError as e:
        raise HttpError(400, str(e))
    return {"recurrence_rule": canonical, "description": describe_rrule(canonical)}


# =============================================================================
# Occurrences
# =============================================================================

@router.get("/occurrences", response=List[OccurrenceDTO], auth=None)
def list_occurrences(
    request: HttpRequest,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    schedule_id: Optional[UUID] = None,
    status: Optional[str] = None,
):
    require_permission(request, Permissions.SCHEDULER_VIEW)
    return services.list_occurrences(
        get_tenant_id(request),
        start_date=start_date,
        end_date=end_date,
        schedule_id=schedule_id,
        status=status,
    )


@router.post("/occurrences/{occurrence_id}/cancel", response=OccurrenceDTO, auth=None)
def cancel_occurrence(request: HttpRequest, occurrence_id: UUID, notes: str = ""):
    require_permission(request, Permissions.SCHEDULER_MANAGE)
    try:
        occurrence = services.cancel_occurrence(occurrence_id, get_tenant_id(request), notes=notes)
    except ValueError as e:
        raise HttpError(400, str(e))
    if occurrence is None:
        raise HttpError(404, "Occurrence not found")
    return occurrence


@router.post("/generate", auth=None)
def generate_all_occurrences(request: HttpRequest, days_ahead: Optional[int] = None):
    """Fill upcoming occurrences for every active schedule of the tenant."""
    require_permission(request, Permissions.SCHEDULER_MANAGE)
    if days_ahead is not None and not 1 <= days_ahead <= 366:
        raise HttpError(400, "days_ahead must be between 1 and 366")
    created = services.generate_all_occurrences(tenant_id=get_tenant_id(request), days_ahead=days_ahead)
    return {"created": created}


# =============================================================================
# Schedules
# =============================================================================

@router.get("", response=List[ScheduleViewDTO], auth=None)
def list_schedules(
    request: HttpRequest,
    ministry_id: Optional[UUID] = None,
    schedule_type: Optional[str] = None,
    active_only: bool = False,
):
    require_permission(request, Permissions.SCHEDULER_VIEW, scope_id=ministry_id)
    return services.list_schedules(
        get_tenant_id(request),
        ministry_id=ministry_id,
        schedule_type=schedule_type,
        active_only=active_only,
    )


@router.post("", response=ScheduleViewDTO, auth=None)
def create_schedule(request: HttpRequest, payload: ScheduleIn):
    require_permission(request, Permissions.SCHEDULER_MANAGE, scope_id=payload.ministry_id)
    tenant_id = get_tenant_id(request)

    try:
        schedule = services.create_schedule(tenant_id, payload.dict(), created_by_id=request.user.id)
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.CREATE_SCHEDULE,
        target_type="MinistrySchedule",
        target_id=schedule.id,
        target_label=schedule.name,
        performed_by=request.user,
        context={"recurrence_rule": schedule.recurrence_rule},
    )
    return schedule


@router.get("/{schedule_id}", response=ScheduleViewDTO, auth=None)
def get_schedule(request: HttpRequest, schedule_id: UUID):
    schedule = _get_schedule_or_404(request, schedule_id)
    require_permission(request, Permissions.SCHEDULER_VIEW, scope_id=schedule.ministry_id)
    return services.get_schedule_view(schedule.id, schedule.tenant_id)


@router.put("/{schedule_id}", response=ScheduleViewDTO, auth=None)
def update_schedule(request: HttpRequest, schedule_id: UUID, payload: ScheduleUpdateIn):
    schedule = _get_schedule_or_404(request, schedule_id)
    require_permission(request, Permissions.SCHEDULER_MANAGE, scope_id=schedule.ministry_id)

    changes = payload.dict(exclude_unset=True)
    # Moving a schedule needs manage rights in the target ministry too
    if 'ministry_id' in changes and changes['ministry_id'] != schedule.ministry_id:
        require_permission(request, Permissions.SCHEDULER_MANAGE, scope_id=changes['ministry_id'])

    try:
        updated = services.update_schedule(schedule.id, schedule.tenant_id, changes)
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=schedule.tenant_id,
        action=AuditAction.UPDATE_SCHEDULE,
        target_type="MinistrySchedule",
        target_id=schedule.id,
        target_label=updated.name,
        performed_by=request.user,
        context={"fields": sorted(changes)},
    )
    return updated


@router.delete("/{schedule_id}", response={204: None}, auth=None)
def delete_schedule(request: HttpRequest, schedule_id: UUID):
    schedule = _get_schedule_or_404(request, schedule_id)
    require_permission(request, Permissions.SCHEDULER_DELETE, scope_id=schedule.ministry_id)
    services.soft_delete_schedule(schedule.id, schedule.tenant_id)

    log_action(
        tenant_id=schedule.tenant_id,
        action=AuditAction.DELETE_SCHEDULE,
        target_type="MinistrySchedule",
        target_id=schedule.id,
        target_label=schedule.name,
        performed_by=request.user,
    )
    return 204, None


@router.post("/{schedule_id}/generate", response=GenerationResultDTO, auth=None)
def generate_occurrences(request: HttpRequest, schedule_id: UUID, payload: GenerateOccurrencesIn):
    schedule = _get_schedule_or_404(request, schedule_id)
    require_permission(request, Permissions.SCHEDULER_MANAGE, scope_id=schedule.ministry_id)
    try:
        return services.generate_occurrences(
            schedule.id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            tenant_id=schedule.tenant_id,
        )
    except ValueError as e:
        raise HttpError(400, str(e))
