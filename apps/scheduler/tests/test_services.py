"""
Tests for schedule services and occurrence generation.
"""
from datetime import date, time, timedelta
from uuid import uuid4
from unittest.mock import patch
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.scheduler import services
from apps.scheduler.models import MinistrySchedule, OccurrenceStatus, ScheduleOccurrence


class ScheduleServiceTest(TestCase):

    def setUp(self):
        self.tenant_id = uuid4()
        self.base = {
            'name': 'Sunday Worship',
            'schedule_type': 'service',
            'start_time': time(9, 0),
            'end_time': time(11, 0),
            'timezone': 'Asia/Manila',
            'recurrence_rule': 'RRULE:freq=weekly;byday=SU',
            'recurrence_start_date': date(2025, 1, 5),
        }

    def test_create_normalizes_rule_and_describes_it(self):
        view = services.create_schedule(self.tenant_id, dict(self.base))
        self.assertEqual(view.recurrence_rule, 'FREQ=WEEKLY;BYDAY=SU')
        self.assertEqual(view.recurrence_description, 'Every week on Sunday')
        self.assertEqual(view.schedule_type_label, 'Worship Service')

    def test_create_rejects_invalid_rule(self):
        with self.assertRaises(ValueError):
            services.create_schedule(self.tenant_id, {**self.base, 'recurrence_rule': 'FREQ=HOURLY'})

    def test_create_rejects_end_before_start(self):
        with self.assertRaisesMessage(ValueError, 'End time must be after start time'):
            services.create_schedule(self.tenant_id, {**self.base, 'end_time': time(8, 0)})

    def test_create_rejects_unknown_timezone(self):
        with self.assertRaises(ValueError):
            services.create_schedule(self.tenant_id, {**self.base, 'timezone': 'Mars/Olympus'})

    def test_virtual_schedule_requires_meeting_url(self):
        with self.assertRaises(ValueError):
            services.create_schedule(self.tenant_id, {**self.base, 'location_type': 'virtual'})

    def test_update_can_clear_rule(self):
        view = services.create_schedule(self.tenant_id, dict(self.base))
        updated = services.update_schedule(view.id, self.tenant_id, {'recurrence_rule': None, 'name': None})
        self.assertIsNone(updated.recurrence_rule)
        self.assertEqual(updated.name, 'Sunday Worship')
        self.assertEqual(updated.recurrence_description, 'One-time event')

    def test_update_other_tenant_returns_none(self):
        view = services.create_schedule(self.tenant_id, dict(self.base))
        self.assertIsNone(services.update_schedule(view.id, uuid4(), {'name': 'X'}))


class OccurrenceGenerationTest(TestCase):

    def setUp(self):
        self.tenant_id = uuid4()
        self.schedule = MinistrySchedule.objects.create(
            tenant_id=self.tenant_id,
            name='Sunday Worship',
            start_time=time(9, 0),
            end_time=time(11, 0),
            timezone='UTC',
            recurrence_rule='FREQ=WEEKLY;BYDAY=SU',
            recurrence_start_date=date(2025, 1, 5),
        )

    def test_generates_weekly_occurrences(self):
        result = services.generate_occurrences(self.schedule.id, date(2025, 1, 1), date(2025, 1, 31))
        self.assertEqual(result.created, 4)
        self.assertEqual(result.skipped, 0)
        self.assertEqual(
            [o.occurrence_date for o in result.occurrences],
            [date(2025, 1, 5), date(2025, 1, 12), date(2025, 1, 19), date(2025, 1, 26)],
        )
        first = ScheduleOccurrence.objects.get(schedule=self.schedule, occurrence_date=date(2025, 1, 5))
        self.assertEqual(first.start_at.hour, 9)
        self.assertEqual(first.end_at.hour, 11)
        self.assertEqual(first.status, OccurrenceStatus.SCHEDULED)

    def test_regeneration_skips_existing_dates(self):
        services.generate_occurrences(self.schedule.id, date(2025, 1, 1), date(2025, 1, 15))
        result = services.generate_occurrences(self.schedule.id, date(2025, 1, 1), date(2025, 1, 31))
        self.assertEqual(result.created, 2)
        self.assertEqual(result.skipped, 2)

        again = services.generate_occurrences(self.schedule.id, date(2025, 1, 1), date(2025, 1, 31))
        self.assertEqual(again.created, 0)
        self.assertEqual(again.skipped, 4)
        self.assertEqual(again.occurrences, [])

    def test_dates_filled_by_a_concurrent_run_are_skipped(self):
        real_bounds = services._occurrence_bounds

        def bounds_after_concurrent_insert(schedule, day, tz):
            # Another run claims Jan 12 after the existing-dates snapshot
            if day == date(2025, 1, 12) and not ScheduleOccurrence.objects.filter(occurrence_date=day).exists():
                start_at, end_at = real_bounds(schedule, day, tz)
                ScheduleOccurrence.objects.create(
                    tenant_id=self.tenant_id, schedule=schedule, occurrence_date=day,
                    start_at=start_at, end_at=end_at,
                )
            return real_bounds(schedule, day, tz)

        with patch.object(services, '_occurrence_bounds', side_effect=bounds_after_concurrent_insert):
            result = services.generate_occurrences(self.schedule.id, date(2025, 1, 1), date(2025, 1, 31))

        self.assertEqual(result.created, 3)
        self.assertEqual(result.skipped, 1)
        self.assertNotIn(date(2025, 1, 12), [o.occurrence_date for o in result.occurrences])
        self.assertEqual(ScheduleOccurrence.objects.filter(schedule=self.schedule).count(), 4)

    def test_respects_recurrence_end_date(self):
        self.schedule.recurrence_end_date = date(2025, 1, 12)
        self.schedule.save()
        result = services.generate_occurrences(self.schedule.id, date(2025, 1, 1), date(2025, 1, 31))
        self.assertEqual(result.created, 2)

    def test_one_time_schedule_yields_start_date_in_range(self):
        self.schedule.recurrence_rule = None
        self.schedule.recurrence_start_date = date(2025, 2, 14)
        self.schedule.save()

        outside = services.generate_occurrences(self.schedule.id, date(2025, 1, 1), date(2025, 1, 31))
        self.assertEqual(outside.created, 0)
        inside = services.generate_occurrences(self.schedule.id, date(2025, 2, 1), date(2025, 2, 28))
        self.assertEqual(inside.created, 1)
        self.assertEqual(inside.occurrences[0].occurrence_date, date(2025, 2, 14))

    def test_inactive_schedule_raises(self):
        self.schedule.is_active = False
        self.schedule.save()
        with self.assertRaisesMessage(ValueError, 'Schedule is not active'):
            services.generate_occurrences(self.schedule.id, date(2025, 1, 1), date(2025, 1, 31))

    def test_end_before_start_raises(self):
        with self.assertRaises(ValueError):
            services.generate_occurrences(self.schedule.id, date(2025, 2, 1), date(2025, 1, 1))

    @override_settings(SCHEDULER_DAYS_AHEAD=14)
    def test_generate_all_uses_default_horizon(self):
        today = timezone.localdate()
        MinistrySchedule.objects.create(
            tenant_id=self.tenant_id,
            name='Daily Prayer',
            start_time=time(6, 0),
            recurrence_rule='FREQ=DAILY',
            recurrence_start_date=today,
        )
        created = services.generate_all_occurrences(tenant_id=self.tenant_id)
        daily = ScheduleOccurrence.objects.filter(schedule__name='Daily Prayer')
        self.assertEqual(daily.count(), 15)
        self.assertGreaterEqual(created, 15)
        self.assertEqual(max(daily.values_list('occurrence_date', flat=True)), today + timedelta(days=14))

    def test_soft_delete_cancels_future_occurrences(self):
        today = timezone.localdate()
        past = ScheduleOccurrence.objects.create(
            tenant_id=self.tenant_id, schedule=self.schedule,
            occurrence_date=today - timedelta(days=7), start_at=timezone.now(),
        )
        future = ScheduleOccurrence.objects.create(
            tenant_id=self.tenant_id, schedule=self.schedule,
            occurrence_date=today + timedelta(days=7), start_at=timezone.now(),
        )

        self.assertTrue(services.soft_delete_schedule(self.schedule.id, self.tenant_id))

        past.refresh_from_db()
        future.refresh_from_db()
        self.assertEqual(past.status, OccurrenceStatus.SCHEDULED)
        self.assertEqual(future.status, OccurrenceStatus.CANCELLED)
        self.assertIsNone(services.get_schedule(self.schedule.id, self.tenant_id))

    def test_view_counts_upcoming_occurrences(self):
        today = timezone.localdate()
        for offset in (-1, 1, 2):
            ScheduleOccurrence.objects.create(
                tenant_id=self.tenant_id, schedule=self.schedule,
                occurrence_date=today + timedelta(days=offset), start_at=timezone.now(),
            )
        view = services.get_schedule_view(self.schedule.id, self.tenant_id)
        self.assertEqual(view.upcoming_occurrence_count, 2)
