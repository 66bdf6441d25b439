"""
Member directory export in the member import layout, so an exported file
can be edited and imported into another church.
"""
import logging
from uuid import UUID

import openpyxl

from apps.members.models import Member, MembershipStatus

from .excel import set_column_widths, style_header_row, workbook_to_bytes
from .member_import import MEMBER_COLUMNS

logger = logging.getLogger(__name__)


def _cell_value(member: Member, field_name: str, status_names: dict):
    if field_name == 'membership_status':
        return status_names.get(member.membership_status_id)
    if field_name == 'tags':
        return ', '.join(member.tags or [])
    value = getattr(member, field_name)
    return value if value != '' else None


def export_members_workbook(tenant_id: UUID) -> bytes:
    status_names = dict(
        MembershipStatus.objects.filter(tenant_id=tenant_id).values_list('id', 'name')
    )
    members = Member.objects.filter(tenant_id=tenant_id, deleted_at__isnull=True).order_by('last_name', 'first_name')

    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    worksheet.title = 'Members'
    worksheet.append([column.header for column in MEMBER_COLUMNS])
    style_header_row(worksheet, 1, len(MEMBER_COLUMNS))

    count = 0
    for member in members:
        worksheet.append([_cell_value(member, c.field, status_names) for c in MEMBER_COLUMNS])
        count += 1

    for row in worksheet.iter_rows(min_row=2):
        for cell in row:
            if cell.is_date:
                cell.number_format = 'yyyy-mm-dd'
    set_column_widths(worksheet, [c.width for c in MEMBER_COLUMNS])
    worksheet.freeze_panes = 'A2'

    logger.info(f"Exported {count} members for tenant {tenant_id}")
    return workbook_to_bytes(workbook)
