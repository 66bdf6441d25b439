"""
Onboarding workbook template.

One sheet per section. Each sheet opens with note rows (prefixed with the
note marker), an empty separator row, the header row and sample rows. The
parser skips the notes when it looks for headers, so an unchanged template
imports cleanly.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import List

import openpyxl
from django.utils import timezone

from apps.members.services import DEFAULT_MEMBERSHIP_STATUSES

from .excel import NOTE_FONT, NOTE_MARKER, set_column_widths, style_header_row, workbook_to_bytes


@dataclass(frozen=True)
class TemplateSheet:
    name: str
    headers: List[str]
    widths: List[int]
    samples: List[list] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)


def _sheets(as_of: date) -> List[TemplateSheet]:
    return [
        TemplateSheet(
            name='Members',
            headers=[
                'First Name', 'Middle Name', 'Last Name', 'Email', 'Contact Number',
                'Street', 'City', 'State', 'Postal Code', 'Country',
                'Birthdate (YYYY-MM-DD)', 'Membership Status',
            ],
            widths=[15, 15, 15, 28, 18, 28, 15, 12, 12, 15, 22, 20],
            samples=[
                ['John', 'Michael', 'Smith', 'john.smith@example.com', '555-0101',
                 '12 Church Street', 'Springfield', 'IL', '62701', 'USA', date(1985, 4, 12), 'Active'],
                ['Mary', '', 'Johnson', 'mary.johnson@example.com', '555-0102',
                 '48 Oak Avenue', 'Springfield', 'IL', '62702', 'USA', date(1990, 9, 3), 'Visitor'],
            ],
            notes=[
                'First Name and Last Name are required.',
                'Membership Status must match a status from the Membership Status sheet or a default status.',
                'Emails must be unique.',
            ],
        ),
        TemplateSheet(
            name='Membership Status',
            headers=['Name', 'Description'],
            widths=[20, 50],
            samples=[[name, description] for name, description in DEFAULT_MEMBERSHIP_STATUSES],
            notes=['Define the membership statuses your church uses.'],
        ),
        TemplateSheet(
            name='Financial Sources',
            headers=['Name', 'Description', 'Source Type'],
            widths=[25, 50, 15],
            samples=[
                ['Main Bank Account', 'Primary checking account', 'bank'],
                ['Petty Cash', 'Cash on hand for small expenses', 'cash'],
                ['Online Giving', 'Online donation platform', 'online'],
            ],
            notes=[
                'Where your church money is held.',
                'Source Type: bank, cash, online, wallet, fund or other.',
            ],
        ),
        TemplateSheet(
            name='Funds',
            headers=['Name', 'Description', 'Type (restricted/unrestricted)'],
            widths=[25, 50, 30],
            samples=[
                ['General Fund', 'Day-to-day operations', 'unrestricted'],
                ['Building Fund', 'Reserved for building projects', 'restricted'],
                ['Missions Fund', 'Support for missionaries', 'restricted'],
            ],
            notes=['Restricted funds may only be spent on their stated purpose.'],
        ),
        TemplateSheet(
            name='Income Categories',
            headers=['Name', 'Description'],
            widths=[25, 50],
            samples=[
                ['Tithes', 'Regular tithes from members'],
                ['Offerings', 'General offerings'],
                ['Special Offerings', 'Offerings for special causes'],
            ],
            notes=['Categories used when recording income.'],
        ),
        TemplateSheet(
            name='Expense Categories',
            headers=['Name', 'Description'],
            widths=[25, 50],
            samples=[
                ['Utilities', 'Electricity, water and internet'],
                ['Salaries', 'Staff salaries and benefits'],
                ['Ministry Supplies', 'Supplies for ministries'],
            ],
            notes=['Categories used when recording expenses.'],
        ),
        TemplateSheet(
            name='Budget Categories',
            headers=['Name', 'Description'],
            widths=[25, 50],
            samples=[
                ['Operations', 'Operating budget'],
                ['Outreach', 'Community outreach budget'],
            ],
            notes=['Categories used when planning budgets.'],
        ),
        TemplateSheet(
            name='Opening Balances',
            headers=['Fund Name', 'Financial Source', 'Amount', 'As-of Date (YYYY-MM-DD)'],
            widths=[25, 25, 15, 25],
            samples=[
                ['General Fund', 'Main Bank Account', 50000, as_of],
                ['Building Fund', 'Main Bank Account', 25000, as_of],
                ['General Fund', 'Petty Cash', 500, as_of],
            ],
            notes=[
                'Starting balance of each fund in each financial source.',
                'Fund Name must match a fund from the Funds sheet or an existing fund.',
                'Financial Source must match a source from the Financial Sources sheet or an existing source.',
                'Amounts must not be negative.',
                'Each row debits the source account and credits the fund balance.',
            ],
        ),
    ]


def _write_sheet(worksheet, sheet: TemplateSheet) -> None:
    worksheet.title = sheet.name
    row = 1
    for note in sheet.notes:
        cell = worksheet.cell(row=row, column=1, value=f"{NOTE_MARKER} {note}")
        cell.font = NOTE_FONT
        if len(sheet.headers) > 1:
            worksheet.merge_cells(start_row=row, start_column=1, end_row=row, end_column=len(sheet.headers))
        row += 1
    if sheet.notes:
        row += 1

    for col, header in enumerate(sheet.headers, start=1):
        worksheet.cell(row=row, column=col, value=header)
    style_header_row(worksheet, row, len(sheet.headers))
    worksheet.freeze_panes = worksheet.cell(row=row + 1, column=1)

    for sample in sheet.samples:
        row += 1
        for col, value in enumerate(sample, start=1):
            cell = worksheet.cell(row=row, column=col, value=value if value != '' else None)
            if isinstance(value, date):
                cell.number_format = 'yyyy-mm-dd'
    set_column_widths(worksheet, sheet.widths)


def get_template_sheet_names() -> List[str]:
    return [sheet.name for sheet in _sheets(date.today())]


def generate_onboarding_template() -> bytes:
    """Build the onboarding workbook as xlsx bytes."""
    workbook = openpyxl.Workbook()
    for index, sheet in enumerate(_sheets(timezone.localdate())):
        worksheet = workbook.active if index == 0 else workbook.create_sheet()
        _write_sheet(worksheet, sheet)
    return workbook_to_bytes(workbook)
