"""
Workbook helpers shared by the import and export services.

Cell values read with openpyxl arrive as str, int, float, bool, datetime or
None. The coerce_* helpers turn them into the Python types the services
store; they raise ValueError for values that cannot be converted.
"""
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import BytesIO
from typing import Iterable, List, Optional, Sequence

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.datetime import from_excel

# Rows starting with this marker are instructions, never headers
NOTE_MARKER = '\U0001F4DD'
HEADER_SCAN_ROWS = 10
XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

TRUE_VALUES = {'yes', 'true', '1', 'y'}
FALSE_VALUES = {'no', 'false', '0', 'n'}

HEADER_FONT = Font(name='Calibri', bold=True, size=11, color='FFFFFF')
HEADER_FILL = PatternFill(start_color='2F5496', end_color='2F5496', fill_type='solid')
NOTE_FONT = Font(name='Calibri', italic=True, size=10, color='595959')

_WHITESPACE = re.compile(r'\s+')
_ISO_DATE = re.compile(r'^(\d{4})-(\d{1,2})-(\d{1,2})$')
_US_DATE = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')


# =============================================================================
# Headers
# =============================================================================

def normalize_header(value) -> str:
    """' First  Name* ' -> 'first name'"""
    if value is None:
        return ''
    text = _WHITESPACE.sub(' ', str(value)).strip().lower()
    return text.rstrip('*').strip()


def normalize_sheet_name(value: str) -> str:
    """'Membership Status' -> 'membershipstatus'"""
    return _WHITESPACE.sub('', (value or '').lower())


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def is_blank_row(row: Optional[Sequence]) -> bool:
    return not row or all(is_blank(cell) for cell in row)


def find_header_row(rows: Sequence[Sequence]) -> int:
    """
    Index of the header row: the first of the leading rows with at least two
    non-empty cells whose first cell is not a note. Defaults to 0.
    """
    for index, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        if is_blank_row(row):
            continue
        first = '' if row[0] is None else str(row[0]).strip()
        if first.startswith(NOTE_MARKER):
            continue
        if sum(1 for cell in row if not is_blank(cell)) >= 2:
            return index
    return 0


# =============================================================================
# Cell coercion
# =============================================================================

def coerce_string(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def coerce_decimal(value) -> Optional[Decimal]:
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value}")
    try:
        amount = Decimal(str(value).replace(',', '').strip())
    except InvalidOperation:
        raise ValueError(f"Not a number: {value}")
    if not amount.is_finite():
        raise ValueError(f"Not a number: {value}")
    return amount


def coerce_date(value) -> Optional[date]:
    """
    Dates come as datetime cells, Excel serial numbers, YYYY-MM-DD or
    MM/DD/YYYY strings.
    """
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return from_excel(value).date()
        except (ValueError, OverflowError, TypeError):
            raise ValueError(f"Invalid date: {value}")

    text = str(value).strip()
    match = _ISO_DATE.match(text)
    if match:
        year, month, day = match.groups()
    else:
        match = _US_DATE.match(text)
        if not match:
            raise ValueError(f"Invalid date: {text}")
        month, day, year = match.groups()
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        raise ValueError(f"Invalid date: {text}")


def coerce_bool(value) -> Optional[bool]:
    if is_blank(value):
        return None
    if isinstance(value, bool):
        return value
    text = coerce_string(value).lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"Not a yes/no value: {value}")


# =============================================================================
# Workbooks
# =============================================================================

def load_workbook_bytes(content: bytes):
    """Open xlsx bytes with formula results instead of formulas."""
    return openpyxl.load_workbook(BytesIO(content), data_only=True)


def read_rows(worksheet) -> List[tuple]:
    return [tuple(row) for row in worksheet.iter_rows(values_only=True)]


def workbook_to_bytes(workbook) -> bytes:
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def style_header_row(worksheet, row: int, max_col: int) -> None:
    for col in range(1, max_col + 1):
        cell = worksheet.cell(row=row, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(vertical='center', horizontal='center')


def set_column_widths(worksheet, widths: Iterable[int]) -> None:
    for index, width in enumerate(widths, start=1):
        worksheet.column_dimensions[get_column_letter(index)].width = width
