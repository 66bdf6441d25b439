"""
Integration tests for scheduler API endpoints.
"""
import json
from uuid import uuid4
from django.test import TestCase, Client
from django.contrib.auth import get_user_model

from apps.identity import rbac_service
from apps.scheduler.models import MinistrySchedule


User = get_user_model()


class ScheduleAPITest(TestCase):

    def setUp(self):
        self.client = Client()
        self.tenant_id = uuid4()
        self.ministry_id = uuid4()
        rbac_service.seed_role_templates(self.tenant_id)

        self.pastor = User.objects.create_user(
            username='pastor', password='testpass123', tenant_id=self.tenant_id,
        )
        rbac_service.assign_role_by_code(self.pastor.id, self.tenant_id, 'pastor')

        self.leader = User.objects.create_user(
            username='leader', password='testpass123', tenant_id=self.tenant_id,
        )
        rbac_service.assign_role_by_code(
            self.leader.id, self.tenant_id, 'ministry_leader', scope_id=self.ministry_id,
        )

        self.member = User.objects.create_user(
            username='member', password='testpass123', tenant_id=self.tenant_id,
        )
        rbac_service.assign_role_by_code(self.member.id, self.tenant_id, 'member')

    def _post(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def _schedule_payload(self, **overrides):
        payload = {
            'name': 'Youth Fellowship',
            'ministry_id': str(self.ministry_id),
            'schedule_type': 'meeting',
            'start_time': '18:00:00',
            'end_time': '20:00:00',
            'recurrence_rule': 'FREQ=WEEKLY;BYDAY=FR',
            'recurrence_start_date': '2025-01-03',
        }
        payload.update(overrides)
        return payload

    def test_requires_auth(self):
        response = self.client.get('/api/scheduler/')
        self.assertEqual(response.status_code, 401)

    def test_pastor_creates_schedule(self):
        self.client.force_login(self.pastor)
        response = self._post('/api/scheduler/', self._schedule_payload())
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['recurrence_description'], 'Every week on Friday')
        self.assertEqual(data['schedule_type_label'], 'Meeting')

    def test_invalid_rule_is_bad_request(self):
        self.client.force_login(self.pastor)
        response = self._post('/api/scheduler/', self._schedule_payload(recurrence_rule='FREQ=WEEKLY;BYDAY=XX'))
        self.assertEqual(response.status_code, 400)

    def test_member_cannot_create(self):
        self.client.force_login(self.member)
        response = self._post('/api/scheduler/', self._schedule_payload())
        self.assertEqual(response.status_code, 403)

    def test_ministry_leader_limited_to_own_ministry(self):
        self.client.force_login(self.leader)
        own = self._post('/api/scheduler/', self._schedule_payload())
        self.assertEqual(own.status_code, 200)

        other = self._post('/api/scheduler/', self._schedule_payload(ministry_id=str(uuid4())))
        self.assertEqual(other.status_code, 403)

    def test_ministry_leader_cannot_move_schedule_to_other_ministry(self):
        self.client.force_login(self.leader)
        schedule_id = self._post('/api/scheduler/', self._schedule_payload()).json()['id']

        response = self.client.put(
            f'/api/scheduler/{schedule_id}',
            data=json.dumps({'ministry_id': str(uuid4())}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 403)
        schedule = MinistrySchedule.objects.get(id=schedule_id)
        self.assertEqual(schedule.ministry_id, self.ministry_id)

        # Renaming within the own ministry still works
        response = self.client.put(
            f'/api/scheduler/{schedule_id}',
            data=json.dumps({'name': 'Youth Night', 'ministry_id': str(self.ministry_id)}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)

    def test_generate_and_list_occurrences(self):
        self.client.force_login(self.pastor)
        schedule_id = self._post('/api/scheduler/', self._schedule_payload()).json()['id']

        response = self._post(
            f'/api/scheduler/{schedule_id}/generate',
            {'start_date': '2025-01-01', 'end_date': '2025-01-31'},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['created'], 5)

        listing = self.client.get('/api/scheduler/occurrences?start_date=2025-01-01&end_date=2025-01-31')
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(len(listing.json()), 5)

    def test_delete_requires_delete_permission(self):
        self.client.force_login(self.pastor)
        schedule_id = self._post('/api/scheduler/', self._schedule_payload()).json()['id']
        response = self.client.delete(f'/api/scheduler/{schedule_id}')
        self.assertEqual(response.status_code, 403)

    def test_unknown_schedule_is_404(self):
        self.client.force_login(self.pastor)
        response = self.client.get(f'/api/scheduler/{uuid4()}')
        self.assertEqual(response.status_code, 404)

    def test_describe_recurrence(self):
        self.client.force_login(self.member)
        response = self._post('/api/scheduler/recurrence/describe', {'recurrence_rule': 'rrule:freq=monthly;interval=2'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            'recurrence_rule': 'FREQ=MONTHLY;INTERVAL=2',
            'description': 'Every 2 months',
        })

        bad = self._post('/api/scheduler/recurrence/describe', {'recurrence_rule': 'FREQ=NEVER'})
        self.assertEqual(bad.status_code, 400)
