"""
API Router for Members app.
Member directory, membership statuses and pastoral care plans.
"""
from typing import List, Optional
from uuid import UUID

from ninja import Router
from ninja.errors import HttpError
from django.http import HttpRequest

from apps.audit.audit_service import log_action, AuditAction
from apps.identity.decorators import require_permission, get_tenant_id
from apps.identity.permissions import Permissions
from .dtos import CarePlanDTO, CarePlanStatsDTO, MemberDTO, MembershipStatusDTO
from .schemas import CarePlanIn, CarePlanUpdateIn, MemberIn, MemberUpdateIn, MembershipStatusIn
from . import care_service
from . import services

router = Router(tags=["Members"])


# =============================================================================
# Membership Statuses
# =============================================================================

@router.get("/statuses", response=List[MembershipStatusDTO], auth=None)
def list_membership_statuses(request: HttpRequest, include_inactive: bool = False):
    require_permission(request, Permissions.MEMBERS_VIEW)
    return services.list_statuses(get_tenant_id(request), active_only=not include_inactive)


@router.post("/statuses", response=MembershipStatusDTO, auth=None)
def create_membership_status(request: HttpRequest, payload: MembershipStatusIn):
    require_permission(request, Permissions.MEMBERS_MANAGE)
    try:
        return services.create_status(get_tenant_id(request), payload.name, payload.description)
    except ValueError as e:
        raise HttpError(400, str(e))


# =============================================================================
# Care Plans
# =============================================================================

@router.get("/care-plans", response=List[CarePlanDTO], auth=None)
def list_care_plans(
    request: HttpRequest,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assigned_to_user_id: Optional[UUID] = None,
    member_id: Optional[UUID] = None,
    active_only: bool = False,
):
    """Care plans ordered by follow-up date, plans without one last."""
    require_permission(request, Permissions.CARE_VIEW)
    return care_service.list_care_plans(
        get_tenant_id(request),
        status=status,
        priority=priority,
        assigned_to_user_id=assigned_to_user_id,
        member_id=member_id,
        active_only=active_only,
    )


@router.get("/care-plans/upcoming", response=List[CarePlanDTO], auth=None)
def upcoming_follow_ups(request: HttpRequest, days: int = care_service.UPCOMING_WINDOW_DAYS):
    require_permission(request, Permissions.CARE_VIEW)
    return care_service.get_upcoming_follow_ups(get_tenant_id(request), days=days)


@router.get("/care-plans/overdue", response=List[CarePlanDTO], auth=None)
def overdue_follow_ups(request: HttpRequest):
    require_permission(request, Permissions.CARE_VIEW)
    return care_service.get_overdue_follow_ups(get_tenant_id(request))


@router.get("/care-plans/stats", response=CarePlanStatsDTO, auth=None)
def care_plan_stats(request: HttpRequest):
    require_permission(request, Permissions.CARE_VIEW)
    return care_service.get_care_plan_stats(get_tenant_id(request))


@router.post("/care-plans", response=CarePlanDTO, auth=None)
def create_care_plan(request: HttpRequest, payload: CarePlanIn):
    require_permission(request, Permissions.CARE_MANAGE)
    tenant_id = get_tenant_id(request)

    try:
        plan = care_service.create_care_plan(
            tenant_id,
            payload.member_id,
            payload.dict(exclude={'member_id'}),
            created_by_id=request.user.id,
        )
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.CREATE_CARE_PLAN,
        target_type="CarePlan",
        target_id=plan.id,
        target_label=plan.member_name,
        performed_by=request.user,
        context={"priority": plan.priority, "status": plan.status},
    )
    return plan


@router.get("/care-plans/{plan_id}", response=CarePlanDTO, auth=None)
def get_care_plan(request: HttpRequest, plan_id: UUID):
    require_permission(request, Permissions.CARE_VIEW)
    plan = care_service.get_care_plan(plan_id, get_tenant_id(request))
    if plan is None:
        raise HttpError(404, "Care plan not found")
    return plan


@router.put("/care-plans/{plan_id}", response=CarePlanDTO, auth=None)
def update_care_plan(request: HttpRequest, plan_id: UUID, payload: CarePlanUpdateIn):
    require_permission(request, Permissions.CARE_MANAGE)
    try:
        plan = care_service.update_care_plan(plan_id, get_tenant_id(request), payload.dict(exclude_unset=True))
    except ValueError as e:
        raise HttpError(400, str(e))
    if plan is None:
        raise HttpError(404, "Care plan not found")
    return plan


@router.post("/care-plans/{plan_id}/close", response=CarePlanDTO, auth=None)
def close_care_plan(request: HttpRequest, plan_id: UUID):
    require_permission(request, Permissions.CARE_MANAGE)
    tenant_id = get_tenant_id(request)
    plan = care_service.close_care_plan(plan_id, tenant_id)
    if plan is None:
        raise HttpError(404, "Care plan not found")

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.CLOSE_CARE_PLAN,
        target_type="CarePlan",
        target_id=plan.id,
        target_label=plan.member_name,
        performed_by=request.user,
    )
    return plan


@router.post("/care-plans/{plan_id}/reopen", response=CarePlanDTO, auth=None)
def reopen_care_plan(request: HttpRequest, plan_id: UUID):
    require_permission(request, Permissions.CARE_MANAGE)
    tenant_id = get_tenant_id(request)
    plan = care_service.reopen_care_plan(plan_id, tenant_id)
    if plan is None:
        raise HttpError(404, "Care plan not found")

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.REOPEN_CARE_PLAN,
        target_type="CarePlan",
        target_id=plan.id,
        target_label=plan.member_name,
        performed_by=request.user,
    )
    return plan


@router.delete("/care-plans/{plan_id}", response={204: None}, auth=None)
def delete_care_plan(request: HttpRequest, plan_id: UUID):
    require_permission(request, Permissions.CARE_MANAGE)
    if not care_service.soft_delete_care_plan(plan_id, get_tenant_id(request)):
        raise HttpError(404, "Care plan not found")
    return 204, None


# =============================================================================
# Members
# =============================================================================

@router.get("", response=List[MemberDTO], auth=None)
def list_members(
    request: HttpRequest,
    search: Optional[str] = None,
    membership_status_id: Optional[UUID] = None,
    tag: Optional[str] = None,
):
    require_permission(request, Permissions.MEMBERS_VIEW)
    return services.list_members(
        get_tenant_id(request),
        search=search,
        membership_status_id=membership_status_id,
        tag=tag,
    )


@router.post("", response=MemberDTO, auth=None)
def create_member(request: HttpRequest, payload: MemberIn):
    require_permission(request, Permissions.MEMBERS_MANAGE)
    tenant_id = get_tenant_id(request)

    try:
        member = services.create_member(tenant_id, payload.dict(), created_by_id=request.user.id)
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.CREATE_MEMBER,
        target_type="Member",
        target_id=member.id,
        target_label=member.full_name,
        performed_by=request.user,
    )
    return member


@router.get("/{member_id}", response=MemberDTO, auth=None)
def get_member(request: HttpRequest, member_id: UUID):
    require_permission(request, Permissions.MEMBERS_VIEW)
    member = services.get_member_dto(member_id, get_tenant_id(request))
    if member is None:
        raise HttpError(404, "Member not found")
    return member


@router.put("/{member_id}", response=MemberDTO, auth=None)
def update_member(request: HttpRequest, member_id: UUID, payload: MemberUpdateIn):
    require_permission(request, Permissions.MEMBERS_MANAGE)
    tenant_id = get_tenant_id(request)

    changes = payload.dict(exclude_unset=True)
    try:
        member = services.update_member(member_id, tenant_id, changes)
    except ValueError as e:
        raise HttpError(400, str(e))
    if member is None:
        raise HttpError(404, "Member not found")

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.UPDATE_MEMBER,
        target_type="Member",
        target_id=member.id,
        target_label=member.full_name,
        performed_by=request.user,
        context={"fields": sorted(changes)},
    )
    return member


@router.delete("/{member_id}", response={204: None}, auth=None)
def delete_member(request: HttpRequest, member_id: UUID):
    require_permission(request, Permissions.MEMBERS_DELETE)
    tenant_id = get_tenant_id(request)
    if not services.soft_delete_member(member_id, tenant_id):
        raise HttpError(404, "Member not found")

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.DELETE_MEMBER,
        target_type="Member",
        target_id=member_id,
        performed_by=request.user,
    )
    return 204, None
