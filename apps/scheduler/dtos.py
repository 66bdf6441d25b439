"""DTOs for Scheduler app - Data Transfer Objects for cross-app communication."""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Optional
from uuid import UUID


@dataclass(frozen=True)
class OccurrenceDTO:
    id: UUID
    schedule_id: UUID
    schedule_name: str
    occurrence_date: date
    start_at: datetime
    end_at: Optional[datetime]
    status: str
    notes: str = ""


@dataclass(frozen=True)
class ScheduleViewDTO:
    """Schedule as presented to clients, with labels resolved."""
    id: UUID
    ministry_id: Optional[UUID]
    name: str
    description: str
    schedule_type: str
    schedule_type_label: str
    start_time: time
    end_time: Optional[time]
    timezone: str
    recurrence_rule: Optional[str]
    recurrence_description: str
    recurrence_start_date: date
    recurrence_end_date: Optional[date]
    location: str
    location_type: str
    virtual_meeting_url: str
    capacity: Optional[int]
    registration_required: bool
    is_active: bool
    upcoming_occurrence_count: int = 0


@dataclass(frozen=True)
class GenerationResultDTO:
    created: int
    skipped: int
    occurrences: List[OccurrenceDTO] = field(default_factory=list)
