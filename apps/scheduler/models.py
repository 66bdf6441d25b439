import uuid
from django.db import models


class ScheduleType(models.TextChoices):
    SERVICE = 'service', 'Worship Service'
    BIBLE_STUDY = 'bible_study', 'Bible Study'
    REHEARSAL = 'rehearsal', 'Rehearsal'
    CONFERENCE = 'conference', 'Conference'
    SEMINAR = 'seminar', 'Seminar'
    MEETING = 'meeting', 'Meeting'
    OTHER = 'other', 'Other'


class LocationType(models.TextChoices):
    PHYSICAL = 'physical', 'Physical'
    VIRTUAL = 'virtual', 'Virtual'
    HYBRID = 'hybrid', 'Hybrid'


class OccurrenceStatus(models.TextChoices):
    SCHEDULED = 'scheduled', 'Scheduled'
    CANCELLED = 'cancelled', 'Cancelled'
    COMPLETED = 'completed', 'Completed'


class MinistrySchedule(models.Model):
    """
    A ministry's gathering, optionally repeating via an RRULE.
    Soft-deleted via deleted_at.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)
    # Ministry scope id, matched against ministry-scoped role assignments
    ministry_id = models.UUIDField(null=True, blank=True, db_index=True)

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    schedule_type = models.CharField(max_length=20, choices=ScheduleType.choices, default=ScheduleType.SERVICE)

    start_time = models.TimeField()
    end_time = models.TimeField(null=True, blank=True)
    timezone = models.CharField(max_length=64, default='UTC')

    recurrence_rule = models.CharField(max_length=500, null=True, blank=True)
    recurrence_start_date = models.DateField()
    recurrence_end_date = models.DateField(null=True, blank=True)

    location = models.CharField(max_length=255, blank=True)
    location_type = models.CharField(max_length=10, choices=LocationType.choices, default=LocationType.PHYSICAL)
    virtual_meeting_url = models.URLField(max_length=500, blank=True)
    capacity = models.PositiveIntegerField(null=True, blank=True)
    registration_required = models.BooleanField(default=False)

    is_active = models.BooleanField(default=True)
    created_by_id = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence_rule)


class ScheduleOccurrence(models.Model):
    """
    One materialized date of a schedule.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)
    schedule = models.ForeignKey(MinistrySchedule, on_delete=models.CASCADE, related_name='occurrences')

    occurrence_date = models.DateField(db_index=True)
    start_at = models.DateTimeField()
    end_at = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=OccurrenceStatus.choices, default=OccurrenceStatus.SCHEDULED)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['occurrence_date']
        unique_together = ['schedule', 'occurrence_date']

    def __str__(self):
        return f"{self.schedule.name} on {self.occurrence_date}"
