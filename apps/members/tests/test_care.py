"""
Tests for pastoral care plans, their notifications and reminders.
"""
from datetime import date, timedelta
from uuid import uuid4

from django.test import TestCase

from apps.members import care_service, services
from apps.members.models import CarePlanPriority, CarePlanStatus
from apps.notifications.models import Notification


class CarePlanTestBase(TestCase):

    def setUp(self):
        self.tenant_id = uuid4()
        self.member_user_id = uuid4()
        self.caregiver_user_id = uuid4()
        self.member = services.create_member(self.tenant_id, {
            'first_name': 'Ana', 'last_name': 'Reyes', 'user_id': self.member_user_id,
        })
        self.caregiver = services.create_member(self.tenant_id, {
            'first_name': 'Ben', 'last_name': 'Cruz', 'user_id': self.caregiver_user_id,
        })

    def _plan(self, **data):
        return care_service.create_care_plan(self.tenant_id, self.member.id, data)


class CarePlanServiceTest(CarePlanTestBase):

    def test_create_defaults(self):
        plan = self._plan(details='Hospital visit')
        self.assertEqual(plan.status, CarePlanStatus.NEW)
        self.assertEqual(plan.priority, CarePlanPriority.NORMAL)
        self.assertTrue(plan.is_active)
        self.assertEqual(plan.member_name, 'Ana Reyes')

    def test_member_must_exist(self):
        with self.assertRaisesMessage(ValueError, "Member not found"):
            care_service.create_care_plan(self.tenant_id, uuid4(), {})

    def test_rejects_invalid_values(self):
        with self.assertRaisesMessage(ValueError, "Invalid care plan priority"):
            self._plan(priority='whenever')
        with self.assertRaisesMessage(ValueError, "Invalid care plan status"):
            self._plan(status='paused')
        with self.assertRaisesMessage(ValueError, "not a member of this church"):
            self._plan(assigned_to_member_id=uuid4())

    def test_close_and_reopen(self):
        plan = self._plan()
        closed = care_service.close_care_plan(plan.id, self.tenant_id)
        self.assertEqual(closed.status, CarePlanStatus.COMPLETED)
        self.assertFalse(closed.is_active)
        self.assertIsNotNone(closed.closed_at)

        reopened = care_service.reopen_care_plan(plan.id, self.tenant_id)
        self.assertEqual(reopened.status, CarePlanStatus.ACTIVE)
        self.assertTrue(reopened.is_active)
        self.assertIsNone(reopened.closed_at)

    def test_update_keeps_status_when_cleared(self):
        plan = self._plan(status='pending', details='Grief support')
        updated = care_service.update_care_plan(plan.id, self.tenant_id, {'status': None, 'details': None})
        self.assertEqual(updated.status, CarePlanStatus.PENDING)
        self.assertEqual(updated.details, '')

    def test_list_orders_by_follow_up_with_undated_last(self):
        undated = self._plan()
        later = self._plan(follow_up_at=date(2025, 6, 10))
        sooner = self._plan(follow_up_at=date(2025, 6, 1))
        ids = [p.id for p in care_service.list_care_plans(self.tenant_id)]
        self.assertEqual(ids, [sooner.id, later.id, undated.id])

    def test_upcoming_and_overdue(self):
        today = date(2025, 6, 1)
        overdue = self._plan(follow_up_at=today - timedelta(days=1))
        due = self._plan(follow_up_at=today + timedelta(days=7))
        self._plan(follow_up_at=today + timedelta(days=8))

        upcoming = care_service.get_upcoming_follow_ups(self.tenant_id, today=today)
        self.assertEqual([p.id for p in upcoming], [due.id])
        late = care_service.get_overdue_follow_ups(self.tenant_id, today=today)
        self.assertEqual([p.id for p in late], [overdue.id])

    def test_stats(self):
        self._plan(priority='critical')
        self._plan(status='pending')
        self._plan(status='active')
        done = self._plan()
        care_service.close_care_plan(done.id, self.tenant_id)

        stats = care_service.get_care_plan_stats(self.tenant_id)
        self.assertEqual(
            (stats.total, stats.active, stats.pending, stats.urgent, stats.completed),
            (4, 3, 1, 1, 1),
        )

    def test_soft_delete_hides_plan(self):
        plan = self._plan()
        self.assertTrue(care_service.soft_delete_care_plan(plan.id, self.tenant_id))
        self.assertIsNone(care_service.get_care_plan(plan.id, self.tenant_id))
        self.assertEqual(care_service.get_care_plan_stats(self.tenant_id).total, 0)


class CarePlanNotificationTest(CarePlanTestBase):

    def test_member_and_caregiver_are_notified(self):
        self._plan(assigned_to_member_id=self.caregiver.id, priority='critical')

        to_member = Notification.objects.get(recipient_id=self.member_user_id)
        self.assertEqual(to_member.title, "You Are in Our Care")
        self.assertIn("Ben Cruz", to_member.message)
        self.assertEqual(to_member.priority, 'urgent')

        to_caregiver = Notification.objects.get(recipient_id=self.caregiver_user_id)
        self.assertEqual(to_caregiver.title, "Care Ministry Assignment")
        self.assertIn("Ana Reyes", to_caregiver.message)

    def test_no_caregiver(self):
        self._plan()
        notification = Notification.objects.get()
        self.assertEqual(notification.recipient_id, self.member_user_id)
        self.assertIn("Someone from our church family", notification.message)

    def test_members_without_accounts_are_skipped(self):
        visitor = services.create_member(self.tenant_id, {'first_name': 'Cara', 'last_name': 'Lim'})
        care_service.create_care_plan(self.tenant_id, visitor.id, {})
        self.assertFalse(Notification.objects.exists())

    def test_daily_reminders(self):
        today = date(2025, 6, 1)
        self._plan(assigned_to_user_id=self.caregiver_user_id, follow_up_at=today - timedelta(days=2))
        self._plan(assigned_to_user_id=self.caregiver_user_id, follow_up_at=today)
        self._plan(assigned_to_user_id=self.caregiver_user_id, follow_up_at=today + timedelta(days=1))
        self._plan(follow_up_at=today)
        Notification.objects.all().delete()

        self.assertEqual(care_service.send_care_plan_reminders(today=today), 2)
        titles = sorted(Notification.objects.values_list('title', flat=True))
        self.assertEqual(titles, ["Care follow-up due today", "Care follow-up overdue"])

        # Already reminded today
        self.assertEqual(care_service.send_care_plan_reminders(today=today), 0)
