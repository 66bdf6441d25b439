"""
Member directory import from a single-sheet workbook.
"""
import logging
from typing import Any, Dict, List, Tuple

from django.conf import settings
from django.utils import timezone

from apps.members.models import Gender, MaritalStatus, Member, MembershipStatus
from apps.members.services import status_code_for

from .base import BaseExcelImportService, ColumnDefinition, ColumnType, ImportContext

logger = logging.getLogger(__name__)


MEMBER_COLUMNS = [
    ColumnDefinition('first_name', 'First Name', required=True, width=15),
    ColumnDefinition('last_name', 'Last Name', required=True, width=15),
    ColumnDefinition('middle_name', 'Middle Name', width=15),
    ColumnDefinition('preferred_name', 'Preferred Name', width=15, description='Name the member goes by'),
    ColumnDefinition('email', 'Email', type=ColumnType.EMAIL, width=28, description='Must be unique per church'),
    ColumnDefinition('contact_number', 'Contact Number', width=18),
    ColumnDefinition('gender', 'Gender', type=ColumnType.LOOKUP, lookup_values=tuple(Gender.values), width=10),
    ColumnDefinition(
        'marital_status', 'Marital Status', type=ColumnType.LOOKUP,
        lookup_values=tuple(MaritalStatus.values), width=15,
    ),
    ColumnDefinition('birthday', 'Birthday', type=ColumnType.DATE, width=14),
    ColumnDefinition('anniversary', 'Anniversary', type=ColumnType.DATE, width=14),
    ColumnDefinition('address_street', 'Address Street', width=28),
    ColumnDefinition('address_city', 'Address City', width=15),
    ColumnDefinition('address_state', 'Address State', width=15),
    ColumnDefinition('address_postal_code', 'Address Postal Code', width=15),
    ColumnDefinition('address_country', 'Address Country', width=15),
    ColumnDefinition('occupation', 'Occupation', width=20),
    ColumnDefinition(
        'membership_status', 'Membership Status', width=20,
        description='Status code or name, e.g. active or New Member',
    ),
    ColumnDefinition('membership_date', 'Membership Date', type=ColumnType.DATE, width=16),
    ColumnDefinition('tags', 'Tags', width=25, description='Comma-separated, e.g. choir, youth'),
]


DATE_FIELDS = ('birthday', 'anniversary', 'membership_date')


def split_tags(value) -> List[str]:
    if not value:
        return []
    return [tag.strip() for tag in str(value).split(',') if tag.strip()]


class MemberImportService(BaseExcelImportService):
    entity_name = 'Member'
    entity_name_plural = 'Members'
    sheet_name = 'Members'
    max_rows = settings.IMPORT_MAX_ROWS
    batch_size = 50
    instructions_text = [
        'Fill in one member per row on the Members sheet.',
        'First Name and Last Name are required.',
        'Membership Status accepts a status code or name configured for your church.',
        'Members whose email already exists are reported and skipped.',
    ]
    example_rows = [
        {
            'first_name': 'John', 'last_name': 'Smith', 'email': 'john.smith@example.com',
            'contact_number': '555-0101', 'gender': 'male', 'marital_status': 'married',
            'birthday': '1985-04-12', 'address_city': 'Springfield', 'membership_status': 'active',
            'tags': 'choir, ushers',
        },
        {
            'first_name': 'Mary', 'last_name': 'Johnson', 'email': 'mary.johnson@example.com',
            'gender': 'female', 'marital_status': 'single', 'membership_status': 'Visitor',
        },
    ]

    def get_columns(self) -> List[ColumnDefinition]:
        return MEMBER_COLUMNS

    def load_lookups(self, context: ImportContext) -> Dict[str, Any]:
        statuses = {}
        for status in MembershipStatus.objects.filter(tenant_id=context.tenant_id, is_active=True):
            statuses[status.code.lower()] = status.id
            statuses[status.name.lower()] = status.id
        emails = Member.objects.filter(
            tenant_id=context.tenant_id, deleted_at__isnull=True,
        ).exclude(email='').values_list('email', flat=True)
        return {
            'statuses': statuses,
            'existing_emails': {e.lower() for e in emails},
            'seen_emails': set(),
        }

    def _status_id(self, value, context: ImportContext):
        if not value:
            return None
        statuses = context.lookups['statuses']
        key = value.strip().lower()
        return statuses.get(key) or statuses.get(status_code_for(value))

    def validate_row(self, data: Dict[str, Any], context: ImportContext) -> List[Tuple[str, str]]:
        errors = []
        email = data.get('email')
        if email:
            if email in context.lookups['existing_emails']:
                errors.append(('Email', f"A member with email {email} already exists"))
            elif email in context.lookups['seen_emails']:
                errors.append(('Email', f"Duplicate email in file: {email}"))
            context.lookups['seen_emails'].add(email)

        if data.get('membership_status') and self._status_id(data['membership_status'], context) is None:
            errors.append(('Membership Status', f"Unknown membership status: {data['membership_status']}"))

        if data.get('birthday') and data['birthday'] > timezone.localdate():
            errors.append(('Birthday', 'Birthday cannot be in the future'))
        return errors

    def transform_for_preview(self, data: Dict[str, Any], context: ImportContext) -> Dict[str, Any]:
        preview = dict(data)
        preview['tags'] = split_tags(data.get('tags'))
        return preview

    def transform_for_import(self, data: Dict[str, Any], context: ImportContext) -> Dict[str, Any]:
        fields = {}
        for key, value in data.items():
            if key in ('membership_status', 'tags'):
                continue
            # Text columns are blank strings on the model, dates are nullable
            fields[key] = value if value is not None or key in DATE_FIELDS else ''
        fields['membership_status_id'] = self._status_id(data.get('membership_status'), context)
        fields['tags'] = split_tags(data.get('tags'))
        return fields

    def import_rows(self, items: List[Dict[str, Any]], context: ImportContext) -> int:
        members = Member.objects.bulk_create([
            Member(tenant_id=context.tenant_id, created_by_id=context.user_id, **item) for item in items
        ])
        return len(members)
