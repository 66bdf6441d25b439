"""
Pastoral care plan services.

Care plans are listed by follow-up date (plans without one last). Creating
a plan notifies the member receiving care and the assigned caregiver when
they have user accounts; a daily sweep reminds caregivers of due follow-ups.
"""
import logging
from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

from django.db.models import F
from django.utils import timezone

from apps.notifications import services as notification_services
from apps.notifications.models import NotificationCategory, NotificationPriority
from .dtos import CarePlanDTO, CarePlanStatsDTO
from .models import CarePlan, CarePlanPriority, CarePlanStatus, Member
from .services import get_member

logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 7

# Care priority -> notification priority
NOTIFICATION_PRIORITY = {
    CarePlanPriority.LOW: NotificationPriority.LOW,
    CarePlanPriority.NORMAL: NotificationPriority.NORMAL,
    CarePlanPriority.HIGH: NotificationPriority.HIGH,
    CarePlanPriority.URGENT: NotificationPriority.URGENT,
    CarePlanPriority.CRITICAL: NotificationPriority.URGENT,
}

URGENT_PRIORITIES = (CarePlanPriority.URGENT, CarePlanPriority.CRITICAL)
WAITING_STATUSES = (CarePlanStatus.NEW, CarePlanStatus.PENDING)

UPDATABLE_FIELDS = (
    'status', 'priority', 'details', 'follow_up_at',
    'assigned_to_member_id', 'assigned_to_user_id',
)


# =============================================================================
# DTO Helpers
# =============================================================================

def _member_names(tenant_id: UUID, member_ids) -> dict:
    members = Member.objects.filter(tenant_id=tenant_id, id__in=set(member_ids))
    return {m.id: m.full_name for m in members}


def _to_dto(plan: CarePlan, member_name: str = "") -> CarePlanDTO:
    return CarePlanDTO(
        id=plan.id,
        tenant_id=plan.tenant_id,
        member_id=plan.member_id,
        member_name=member_name,
        status=plan.status,
        priority=plan.priority,
        details=plan.details,
        follow_up_at=plan.follow_up_at,
        is_active=plan.is_active,
        assigned_to_member_id=plan.assigned_to_member_id,
        assigned_to_user_id=plan.assigned_to_user_id,
        closed_at=plan.closed_at,
        created_at=plan.created_at,
    )


def _to_dtos(tenant_id: UUID, plans) -> List[CarePlanDTO]:
    plans = list(plans)
    names = _member_names(tenant_id, [p.member_id for p in plans])
    return [_to_dto(p, names.get(p.member_id, "")) for p in plans]


def _plans(tenant_id: UUID):
    return CarePlan.objects.filter(tenant_id=tenant_id, deleted_at__isnull=True)


def _by_follow_up(qs):
    return qs.order_by(F('follow_up_at').asc(nulls_last=True), '-created_at')


# =============================================================================
# Queries
# =============================================================================

def get_care_plan(plan_id: UUID, tenant_id: UUID) -> Optional[CarePlanDTO]:
    plan = _plans(tenant_id).filter(id=plan_id).first()
    if plan is None:
        return None
    return _to_dtos(tenant_id, [plan])[0]


def list_care_plans(
    tenant_id: UUID,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assigned_to_user_id: Optional[UUID] = None,
    member_id: Optional[UUID] = None,
    active_only: bool = False,
) -> List[CarePlanDTO]:
    qs = _plans(tenant_id)
    if status:
        qs = qs.filter(status=status)
    if priority:
        qs = qs.filter(priority=priority)
    if assigned_to_user_id:
        qs = qs.filter(assigned_to_user_id=assigned_to_user_id)
    if member_id:
        qs = qs.filter(member_id=member_id)
    if active_only:
        qs = qs.filter(is_active=True)
    return _to_dtos(tenant_id, _by_follow_up(qs))


def get_upcoming_follow_ups(
    tenant_id: UUID,
    days: int = UPCOMING_WINDOW_DAYS,
    today: Optional[date] = None,
) -> List[CarePlanDTO]:
    """Active plans whose follow-up falls between today and today + days."""
    today = today or timezone.localdate()
    qs = _plans(tenant_id).filter(
        is_active=True,
        follow_up_at__gte=today,
        follow_up_at__lte=today + timedelta(days=days),
    ).order_by('follow_up_at')
    return _to_dtos(tenant_id, qs)


def get_overdue_follow_ups(tenant_id: UUID, today: Optional[date] = None) -> List[CarePlanDTO]:
    today = today or timezone.localdate()
    qs = _plans(tenant_id).filter(is_active=True, follow_up_at__lt=today).order_by('follow_up_at')
    return _to_dtos(tenant_id, qs)


def get_care_plan_stats(tenant_id: UUID) -> CarePlanStatsDTO:
    """
    Dashboard counters. Inactive plans count as completed; an active plan
    counts as urgent first, otherwise as pending when new or pending.
    """
    total = active = pending = urgent = completed = 0
    for is_active, priority, status in _plans(tenant_id).values_list('is_active', 'priority', 'status'):
        total += 1
        if not is_active:
            completed += 1
            continue
        active += 1
        if priority in URGENT_PRIORITIES:
            urgent += 1
        elif status in WAITING_STATUSES:
            pending += 1

    return CarePlanStatsDTO(total=total, active=active, pending=pending, urgent=urgent, completed=completed)


# =============================================================================
# Mutations
# =============================================================================

def _validate(tenant_id: UUID, data: dict) -> None:
    if data.get('status') and data['status'] not in CarePlanStatus.values:
        raise ValueError(f"Invalid care plan status: {data['status']}")
    if data.get('priority') and data['priority'] not in CarePlanPriority.values:
        raise ValueError(f"Invalid care plan priority: {data['priority']}")
    caregiver_id = data.get('assigned_to_member_id')
    if caregiver_id and get_member(caregiver_id, tenant_id) is None:
        raise ValueError("Assigned caregiver is not a member of this church")


def create_care_plan(tenant_id: UUID, member_id: UUID, data: dict, created_by_id: Optional[UUID] = None) -> CarePlanDTO:
    member = get_member(member_id, tenant_id)
    if member is None:
        raise ValueError("Member not found")

    fields = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
    _validate(tenant_id, fields)

    plan = CarePlan.objects.create(
        tenant_id=tenant_id,
        member_id=member.id,
        created_by_id=created_by_id,
        is_active=True,
        **fields,
    )
    logger.info(f"Created care plan {plan.id} for member {member.id}")

    send_care_plan_notifications(plan, member)
    return _to_dto(plan, member.full_name)


def update_care_plan(plan_id: UUID, tenant_id: UUID, data: dict) -> Optional[CarePlanDTO]:
    plan = _plans(tenant_id).filter(id=plan_id).first()
    if plan is None:
        return None

    fields = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}
    _validate(tenant_id, fields)
    for key, value in fields.items():
        if value is None:
            if key in ('status', 'priority'):
                continue
            if key == 'details':
                value = ''
        setattr(plan, key, value)
    plan.save()
    return get_care_plan(plan.id, tenant_id)


def close_care_plan(plan_id: UUID, tenant_id: UUID) -> Optional[CarePlanDTO]:
    plan = _plans(tenant_id).filter(id=plan_id).first()
    if plan is None:
        return None
    plan.status = CarePlanStatus.COMPLETED
    plan.is_active = False
    plan.closed_at = timezone.now()
    plan.save(update_fields=['status', 'is_active', 'closed_at', 'updated_at'])
    return get_care_plan(plan.id, tenant_id)


def reopen_care_plan(plan_id: UUID, tenant_id: UUID) -> Optional[CarePlanDTO]:
    plan = _plans(tenant_id).filter(id=plan_id).first()
    if plan is None:
        return None
    plan.status = CarePlanStatus.ACTIVE
    plan.is_active = True
    plan.closed_at = None
    plan.save(update_fields=['status', 'is_active', 'closed_at', 'updated_at'])
    return get_care_plan(plan.id, tenant_id)


def soft_delete_care_plan(plan_id: UUID, tenant_id: UUID) -> bool:
    return _plans(tenant_id).filter(id=plan_id).update(deleted_at=timezone.now()) > 0


# =============================================================================
# Notifications
# =============================================================================

def _caregiver(plan: CarePlan) -> tuple:
    """(user_id, display name) of the caregiver, either may be None."""
    caregiver_member = None
    if plan.assigned_to_member_id:
        caregiver_member = get_member(plan.assigned_to_member_id, plan.tenant_id)

    user_id = plan.assigned_to_user_id or (caregiver_member.user_id if caregiver_member else None)
    name = caregiver_member.full_name if caregiver_member else None
    return user_id, name


def send_care_plan_notifications(plan: CarePlan, member: Member) -> None:
    """
    Tell the member they are being cared for and the caregiver about the
    assignment. People without a user account are skipped.
    """
    priority = NOTIFICATION_PRIORITY.get(plan.priority, NotificationPriority.NORMAL)
    caregiver_user_id, caregiver_name = _caregiver(plan)
    payload = {'care_plan_id': str(plan.id), 'member_id': str(member.id)}

    if member.user_id:
        message = (
            f"{caregiver_name} has been assigned to walk alongside you during this season."
            if caregiver_name
            else "Someone from our church family will be reaching out to walk alongside you."
        )
        notification_services.notify(
            tenant_id=plan.tenant_id,
            recipient_id=member.user_id,
            title="You Are in Our Care",
            message=message,
            category=NotificationCategory.CARE,
            priority=priority,
            payload=payload,
        )

    if caregiver_user_id and caregiver_user_id != member.user_id:
        notification_services.notify(
            tenant_id=plan.tenant_id,
            recipient_id=caregiver_user_id,
            title="Care Ministry Assignment",
            message=(
                f"You've been invited to walk alongside {member.full_name}. "
                "Your care and prayers can make a meaningful difference."
            ),
            category=NotificationCategory.CARE,
            priority=priority,
            action_url=f"/members/care-plans/{plan.id}",
            payload=payload,
        )


def send_care_plan_reminders(today: Optional[date] = None) -> int:
    """
    Remind caregivers about active plans due today or overdue.
    Each plan is reminded at most once per day.
    """
    today = today or timezone.localdate()
    due = CarePlan.objects.filter(
        deleted_at__isnull=True,
        is_active=True,
        follow_up_at__lte=today,
    ).exclude(last_reminded_on=today)

    sent = 0
    for plan in due:
        caregiver_user_id, _ = _caregiver(plan)
        if not caregiver_user_id:
            continue

        member = get_member(plan.member_id, plan.tenant_id)
        if member is None:
            continue

        overdue = plan.follow_up_at < today
        notification_services.notify(
            tenant_id=plan.tenant_id,
            recipient_id=caregiver_user_id,
            title="Care follow-up overdue" if overdue else "Care follow-up due today",
            message=f"Follow up with {member.full_name} (scheduled {plan.follow_up_at.isoformat()}).",
            category=NotificationCategory.CARE,
            priority=NOTIFICATION_PRIORITY.get(plan.priority, NotificationPriority.NORMAL),
            action_url=f"/members/care-plans/{plan.id}",
            payload={'care_plan_id': str(plan.id), 'overdue': overdue},
        )
        plan.last_reminded_on = today
        plan.save(update_fields=['last_reminded_on'])
        sent += 1

    logger.info(f"Sent {sent} care plan reminders")
    return sent
