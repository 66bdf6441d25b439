"""
Services for Scheduler app.

Ministry schedules carry an optional RRULE. Occurrences are materialized
ahead of time into ScheduleOccurrence rows, one per (schedule, date);
re-running generation over the same window only fills gaps.
"""
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from .dtos import GenerationResultDTO, OccurrenceDTO, ScheduleViewDTO
from .models import (
    LocationType,
    MinistrySchedule,
    OccurrenceStatus,
    ScheduleOccurrence,
    ScheduleType,
)
from .recurrence import describe_rrule, expand, normalize_rrule, parse_rrule

logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = (
    'ministry_id', 'name', 'description', 'schedule_type', 'start_time',
    'end_time', 'timezone', 'recurrence_rule', 'recurrence_start_date',
    'recurrence_end_date', 'location', 'location_type', 'virtual_meeting_url',
    'capacity', 'registration_required', 'is_active',
)

# Fields where an explicit None on update means "clear"
NULLABLE_FIELDS = ('ministry_id', 'end_time', 'recurrence_rule', 'recurrence_end_date', 'capacity')


def _days_ahead(days_ahead: Optional[int]) -> int:
    return days_ahead if days_ahead is not None else settings.SCHEDULER_DAYS_AHEAD


# =============================================================================
# Views
# =============================================================================

def to_schedule_view(schedule: MinistrySchedule, upcoming_count: int = 0) -> ScheduleViewDTO:
    return ScheduleViewDTO(
        id=schedule.id,
        ministry_id=schedule.ministry_id,
        name=schedule.name,
        description=schedule.description,
        schedule_type=schedule.schedule_type,
        schedule_type_label=ScheduleType(schedule.schedule_type).label,
        start_time=schedule.start_time,
        end_time=schedule.end_time,
        timezone=schedule.timezone,
        recurrence_rule=schedule.recurrence_rule,
        recurrence_description=describe_rrule(schedule.recurrence_rule),
        recurrence_start_date=schedule.recurrence_start_date,
        recurrence_end_date=schedule.recurrence_end_date,
        location=schedule.location,
        location_type=schedule.location_type,
        virtual_meeting_url=schedule.virtual_meeting_url,
        capacity=schedule.capacity,
        registration_required=schedule.registration_required,
        is_active=schedule.is_active,
        upcoming_occurrence_count=upcoming_count,
    )


def _to_occurrence_dto(occurrence: ScheduleOccurrence, schedule_name: str) -> OccurrenceDTO:
    return OccurrenceDTO(
        id=occurrence.id,
        schedule_id=occurrence.schedule_id,
        schedule_name=schedule_name,
        occurrence_date=occurrence.occurrence_date,
        start_at=occurrence.start_at,
        end_at=occurrence.end_at,
        status=occurrence.status,
        notes=occurrence.notes,
    )


def _schedules(tenant_id: UUID):
    return MinistrySchedule.objects.filter(tenant_id=tenant_id, deleted_at__isnull=True)


def _with_upcoming_count(qs, today: date):
    return qs.annotate(
        upcoming_count=Count(
            'occurrences',
            filter=Q(
                occurrences__occurrence_date__gte=today,
                occurrences__status=OccurrenceStatus.SCHEDULED,
            ),
        )
    )


# =============================================================================
# Queries
# =============================================================================

def get_schedule(schedule_id: UUID, tenant_id: UUID) -> Optional[MinistrySchedule]:
    return _schedules(tenant_id).filter(id=schedule_id).first()


def get_schedule_view(schedule_id: UUID, tenant_id: UUID) -> Optional[ScheduleViewDTO]:
    schedule = _with_upcoming_count(_schedules(tenant_id), timezone.localdate()).filter(id=schedule_id).first()
    if schedule is None:
        return None
    return to_schedule_view(schedule, schedule.upcoming_count)


def list_schedules(
    tenant_id: UUID,
    ministry_id: Optional[UUID] = None,
    schedule_type: Optional[str] = None,
    active_only: bool = False,
) -> List[ScheduleViewDTO]:
    qs = _schedules(tenant_id)
    if ministry_id:
        qs = qs.filter(ministry_id=ministry_id)
    if schedule_type:
        qs = qs.filter(schedule_type=schedule_type)
    if active_only:
        qs = qs.filter(is_active=True)
    qs = _with_upcoming_count(qs, timezone.localdate())
    return [to_schedule_view(s, s.upcoming_count) for s in qs]


def list_occurrences(
    tenant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    schedule_id: Optional[UUID] = None,
    status: Optional[str] = None,
) -> List[OccurrenceDTO]:
    """Occurrences of live schedules in [start_date, end_date], by date."""
    qs = ScheduleOccurrence.objects.filter(
        tenant_id=tenant_id,
        schedule__deleted_at__isnull=True,
    ).select_related('schedule').order_by('occurrence_date', 'start_at')
    if start_date:
        qs = qs.filter(occurrence_date__gte=start_date)
    if end_date:
        qs = qs.filter(occurrence_date__lte=end_date)
    if schedule_id:
        qs = qs.filter(schedule_id=schedule_id)
    if status:
        qs = qs.filter(status=status)
    return [_to_occurrence_dto(o, o.schedule.name) for o in qs]


# =============================================================================
# Mutations
# =============================================================================

def _validate(data: dict) -> dict:
    """
    Check a complete set of schedule fields and return them with the
    recurrence rule in canonical form. Raises ValueError.
    """
    if not (data.get('name') or '').strip():
        raise ValueError("Schedule name is required")
    if data.get('schedule_type') not in ScheduleType.values:
        raise ValueError(f"Invalid schedule type: {data.get('schedule_type')}")
    if data.get('location_type') not in LocationType.values:
        raise ValueError(f"Invalid location type: {data.get('location_type')}")

    try:
        ZoneInfo(data.get('timezone') or '')
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {data.get('timezone')}")

    if data.get('start_time') is None:
        raise ValueError("Start time is required")
    if data.get('end_time') is not None and data['end_time'] <= data['start_time']:
        raise ValueError("End time must be after start time")

    if data.get('recurrence_start_date') is None:
        raise ValueError("Start date is required")
    end_date = data.get('recurrence_end_date')
    if end_date is not None and end_date < data['recurrence_start_date']:
        raise ValueError("Recurrence end date cannot be before the start date")

    capacity = data.get('capacity')
    if capacity is not None and capacity < 1:
        raise ValueError("Capacity must be at least 1")

    if data.get('location_type') in (LocationType.VIRTUAL, LocationType.HYBRID) and not data.get('virtual_meeting_url'):
        raise ValueError("Virtual meeting URL is required for virtual or hybrid schedules")

    data['name'] = data['name'].strip()
    data['recurrence_rule'] = normalize_rrule(data.get('recurrence_rule'))
    return data


def create_schedule(tenant_id: UUID, data: dict, created_by_id: Optional[UUID] = None) -> ScheduleViewDTO:
    fields = {k: v for k, v in data.items() if k in SCHEDULE_FIELDS}
    fields.setdefault('schedule_type', ScheduleType.SERVICE)
    fields.setdefault('location_type', LocationType.PHYSICAL)
    fields.setdefault('timezone', 'UTC')
    for key in ('description', 'location', 'virtual_meeting_url'):
        if fields.get(key) is None:
            fields[key] = ''
    fields = _validate(fields)

    schedule = MinistrySchedule.objects.create(
        tenant_id=tenant_id,
        created_by_id=created_by_id,
        **fields,
    )
    logger.info(f"Created schedule {schedule.id} '{schedule.name}' ({schedule.recurrence_rule or 'one-time'})")
    return to_schedule_view(schedule)


def update_schedule(schedule_id: UUID, tenant_id: UUID, data: dict) -> Optional[ScheduleViewDTO]:
    schedule = get_schedule(schedule_id, tenant_id)
    if schedule is None:
        return None

    current = {key: getattr(schedule, key) for key in SCHEDULE_FIELDS}
    for key, value in data.items():
        if key not in SCHEDULE_FIELDS:
            continue
        if value is None and key not in NULLABLE_FIELDS:
            continue
        current[key] = value
    current = _validate(current)

    for key, value in current.items():
        setattr(schedule, key, value)
    schedule.save()
    return get_schedule_view(schedule.id, tenant_id)


def soft_delete_schedule(schedule_id: UUID, tenant_id: UUID) -> bool:
    """Soft-delete a schedule and cancel its occurrences from today on."""
    schedule = get_schedule(schedule_id, tenant_id)
    if schedule is None:
        return False

    with transaction.atomic():
        schedule.deleted_at = timezone.now()
        schedule.is_active = False
        schedule.save(update_fields=['deleted_at', 'is_active', 'updated_at'])
        cancelled = schedule.occurrences.filter(
            occurrence_date__gte=timezone.localdate(),
            status=OccurrenceStatus.SCHEDULED,
        ).update(status=OccurrenceStatus.CANCELLED)

    logger.info(f"Deleted schedule {schedule.id}; cancelled {cancelled} future occurrences")
    return True


def cancel_occurrence(occurrence_id: UUID, tenant_id: UUID, notes: str = "") -> Optional[OccurrenceDTO]:
    occurrence = ScheduleOccurrence.objects.filter(
        id=occurrence_id, tenant_id=tenant_id
    ).select_related('schedule').first()
    if occurrence is None:
        return None
    if occurrence.status == OccurrenceStatus.COMPLETED:
        raise ValueError("Completed occurrences cannot be cancelled")

    occurrence.status = OccurrenceStatus.CANCELLED
    if notes:
        occurrence.notes = notes
    occurrence.save(update_fields=['status', 'notes'])
    return _to_occurrence_dto(occurrence, occurrence.schedule.name)


# =============================================================================
# Occurrence Generation
# =============================================================================

def generate_dates(schedule: MinistrySchedule, start_date: date, end_date: date) -> List[date]:
    """
    Dates the schedule falls on within [start_date, end_date], clamped to
    the schedule's own recurrence window.
    """
    window_start = max(start_date, schedule.recurrence_start_date)
    window_end = end_date
    if schedule.recurrence_end_date is not None:
        window_end = min(window_end, schedule.recurrence_end_date)
    if window_end < window_start:
        return []

    if not schedule.recurrence_rule:
        first = schedule.recurrence_start_date
        return [first] if window_start <= first <= window_end else []

    rule = parse_rrule(schedule.recurrence_rule)
    return expand(rule, schedule.recurrence_start_date, window_start, window_end)


def _occurrence_bounds(schedule: MinistrySchedule, day: date, tz: ZoneInfo):
    start_at = datetime.combine(day, schedule.start_time, tzinfo=tz)
    end_at = datetime.combine(day, schedule.end_time, tzinfo=tz) if schedule.end_time else None
    return start_at, end_at


def generate_occurrences(
    schedule_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    tenant_id: Optional[UUID] = None,
) -> GenerationResultDTO:
    """
    Materialize occurrences of one schedule between start_date (default
    today) and end_date (default SCHEDULER_DAYS_AHEAD days later).

    Dates that already have an occurrence are counted as skipped.
    """
    qs = MinistrySchedule.objects.filter(id=schedule_id, deleted_at__isnull=True)
    if tenant_id is not None:
        qs = qs.filter(tenant_id=tenant_id)
    schedule = qs.first()
    if schedule is None:
        raise ValueError("Schedule not found")
    if not schedule.is_active:
        raise ValueError("Schedule is not active")

    start_date = start_date or timezone.localdate()
    end_date = end_date or start_date + timedelta(days=_days_ahead(None))
    if end_date < start_date:
        raise ValueError("End date cannot be before start date")

    dates = generate_dates(schedule, start_date, end_date)
    existing = set(
        schedule.occurrences.filter(
            occurrence_date__gte=start_date,
            occurrence_date__lte=end_date,
        ).values_list('occurrence_date', flat=True)
    )
    new_dates = [d for d in dates if d not in existing]
    if not new_dates:
        return GenerationResultDTO(created=0, skipped=len(dates), occurrences=[])

    tz = ZoneInfo(schedule.timezone)
    rows = []
    for day in new_dates:
        start_at, end_at = _occurrence_bounds(schedule, day, tz)
        rows.append(ScheduleOccurrence(
            tenant_id=schedule.tenant_id,
            schedule=schedule,
            occurrence_date=day,
            start_at=start_at,
            end_at=end_at,
            status=OccurrenceStatus.SCHEDULED,
        ))
    # A concurrent run may have filled some dates since the snapshot above
    ScheduleOccurrence.objects.bulk_create(rows, ignore_conflicts=True)
    created = list(
        ScheduleOccurrence.objects.filter(id__in=[r.id for r in rows]).order_by('occurrence_date')
    )

    logger.info(
        f"Generated {len(created)} occurrences for schedule {schedule.id} "
        f"({start_date} to {end_date}, {len(dates) - len(created)} skipped)"
    )
    return GenerationResultDTO(
        created=len(created),
        skipped=len(dates) - len(created),
        occurrences=[_to_occurrence_dto(o, schedule.name) for o in created],
    )


def generate_all_occurrences(tenant_id: Optional[UUID] = None, days_ahead: Optional[int] = None) -> int:
    """
    Fill the next `days_ahead` days for every active schedule.
    Returns the number of occurrences created.
    """
    today = timezone.localdate()
    end_date = today + timedelta(days=_days_ahead(days_ahead))

    qs = MinistrySchedule.objects.filter(is_active=True, deleted_at__isnull=True)
    if tenant_id is not None:
        qs = qs.filter(tenant_id=tenant_id)

    created = 0
    for schedule_id in qs.values_list('id', flat=True):
        try:
            result = generate_occurrences(schedule_id, start_date=today, end_date=end_date)
        except ValueError as e:
            logger.error(f"Skipping schedule {schedule_id}: {e}")
            continue
        created += result.created

    logger.info(f"Occurrence sweep created {created} occurrences through {end_date}")
    return created
