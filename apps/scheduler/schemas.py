"""
API Schemas for Scheduler app.
"""
from datetime import date, time
from typing import Optional
from uuid import UUID

from ninja import Schema


class ScheduleIn(Schema):
    name: str
    ministry_id: Optional[UUID] = None
    description: str = ""
    schedule_type: str = "service"
    start_time: time
    end_time: Optional[time] = None
    timezone: str = "UTC"
    recurrence_rule: Optional[str] = None
    recurrence_start_date: date
    recurrence_end_date: Optional[date] = None
    location: str = ""
    location_type: str = "physical"
    virtual_meeting_url: str = ""
    capacity: Optional[int] = None
    registration_required: bool = False


class ScheduleUpdateIn(Schema):
    name: Optional[str] = None
    ministry_id: Optional[UUID] = None
    description: Optional[str] = None
    schedule_type: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    timezone: Optional[str] = None
    recurrence_rule: Optional[str] = None
    recurrence_start_date: Optional[date] = None
    recurrence_end_date: Optional[date] = None
    location: Optional[str] = None
    location_type: Optional[str] = None
    virtual_meeting_url: Optional[str] = None
    capacity: Optional[int] = None
    registration_required: Optional[bool] = None
    is_active: Optional[bool] = None


class GenerateOccurrencesIn(Schema):
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class DescribeRecurrenceIn(Schema):
    recurrence_rule: Optional[str] = None


class DescribeRecurrenceOut(Schema):
    recurrence_rule: Optional[str]
    description: str
