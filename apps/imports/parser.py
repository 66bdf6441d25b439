"""
Onboarding workbook parser.

Reads every recognised sheet of an onboarding workbook into plain dicts.
Parsing never touches the database; the validator and the onboarding
service decide what to do with the rows.
"""
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from apps.ledger.models import SourceType

from .dtos import ImportErrorDTO, ParsedImportData, ParseResultDTO
from .excel import (
    coerce_date, coerce_decimal, coerce_string, find_header_row, is_blank_row,
    load_workbook_bytes, normalize_header, normalize_sheet_name, read_rows,
)

logger = logging.getLogger(__name__)


MEMBER_HEADER_ALIASES = {
    'first_name': ('first name', 'firstname', 'first', 'given name'),
    'middle_name': ('middle name', 'middlename', 'middle'),
    'last_name': ('last name', 'lastname', 'last', 'surname', 'family name'),
    'email': ('email', 'email address', 'e-mail'),
    'contact_number': ('contact number', 'phone', 'phone number', 'mobile', 'mobile number', 'telephone'),
    'address_street': ('street', 'street address', 'address'),
    'address_city': ('city',),
    'address_state': ('state', 'province', 'state/province'),
    'address_postal_code': ('postal code', 'zip', 'zip code', 'postcode'),
    'address_country': ('country',),
    'birthdate': ('birthdate (yyyy-mm-dd)', 'birthdate', 'birthday', 'date of birth', 'dob'),
    'membership_status': ('membership status', 'status'),
}

MEMBER_FIELD_LABELS = {
    'first_name': 'First Name',
    'last_name': 'Last Name',
    'birthdate': 'Birthdate',
}

SHEETS = {
    'members': 'Members',
    'membershipstatus': 'Membership Status',
    'membershipstatuses': 'Membership Status',
    'financialsources': 'Financial Sources',
    'funds': 'Funds',
    'incomecategories': 'Income Categories',
    'expensecategories': 'Expense Categories',
    'budgetcategories': 'Budget Categories',
    'openingbalances': 'Opening Balances',
}

SOURCE_TYPES = tuple(SourceType.values)

SheetResult = Tuple[List[dict], List[ImportErrorDTO]]


def _alias_lookup() -> Dict[str, str]:
    lookup = {}
    for field_name, aliases in MEMBER_HEADER_ALIASES.items():
        for alias in aliases:
            lookup[alias] = field_name
    return lookup


_MEMBER_ALIASES = _alias_lookup()


def _split(rows: Sequence[Sequence]) -> Tuple[int, List[str], List[Tuple[int, Sequence]]]:
    """Header index, normalized headers and (1-based row number, row) data rows."""
    header_index = find_header_row(rows)
    headers = [normalize_header(h) for h in rows[header_index]] if rows else []
    data = [
        (index + 1, row)
        for index, row in enumerate(rows)
        if index > header_index and not is_blank_row(row)
    ]
    return header_index, headers, data


def _cell(row: Sequence, index: Optional[int]):
    if index is None or index >= len(row):
        return None
    return row[index]


def _find_column(headers: List[str], *needles: str) -> Optional[int]:
    for index, header in enumerate(headers):
        if any(needle in header for needle in needles):
            return index
    return None


# =============================================================================
# Sheet parsers
# =============================================================================

def parse_members_sheet(rows: Sequence[Sequence], sheet: str = 'Members') -> SheetResult:
    _, headers, data = _split(rows)
    columns = {}
    for index, header in enumerate(headers):
        field_name = _MEMBER_ALIASES.get(header)
        if field_name and field_name not in columns:
            columns[field_name] = index

    members, errors = [], []
    for row_number, row in data:
        member = {'row_number': row_number}
        for field_name in MEMBER_HEADER_ALIASES:
            if field_name == 'birthdate':
                continue
            member[field_name] = coerce_string(_cell(row, columns.get(field_name)))

        try:
            member['birthdate'] = coerce_date(_cell(row, columns.get('birthdate')))
        except ValueError:
            member['birthdate'] = None
            errors.append(ImportErrorDTO(sheet, row_number, 'Birthdate must be a valid date (YYYY-MM-DD)', 'Birthdate'))

        if member.get('email'):
            member['email'] = member['email'].lower()
        for required in ('first_name', 'last_name'):
            if not member.get(required):
                label = MEMBER_FIELD_LABELS[required]
                errors.append(ImportErrorDTO(sheet, row_number, f"{label} is required", label))
        members.append(member)
    return members, errors


def _parse_named_rows(rows: Sequence[Sequence], sheet: str, extra: Optional[Callable] = None) -> SheetResult:
    _, headers, data = _split(rows)
    name_col = _find_column(headers, 'name')
    if name_col is None:
        return [], [ImportErrorDTO(sheet, 1, 'Could not find Name column', 'Name')]
    desc_col = _find_column(headers, 'description', 'purpose')

    items = []
    for row_number, row in data:
        name = coerce_string(_cell(row, name_col))
        if not name:
            continue
        item = {
            'row_number': row_number,
            'name': name,
            'description': coerce_string(_cell(row, desc_col)) or '',
        }
        if extra:
            item.update(extra(headers, row))
        items.append(item)
    return items, []


def _fund_fields(headers: List[str], row: Sequence) -> dict:
    fund_type = coerce_string(_cell(row, _find_column(headers, 'type')))
    return {'fund_type': fund_type.lower() if fund_type else 'unrestricted'}


def _source_fields(headers: List[str], row: Sequence) -> dict:
    source_type = coerce_string(_cell(row, _find_column(headers, 'type')))
    source_type = source_type.lower() if source_type else None
    return {'source_type': source_type if source_type in SOURCE_TYPES else None}


def parse_opening_balances_sheet(rows: Sequence[Sequence], sheet: str = 'Opening Balances') -> SheetResult:
    _, headers, data = _split(rows)
    columns = {
        'Fund': _find_column(headers, 'fund'),
        'Source': _find_column(headers, 'source', 'financial'),
        'Amount': _find_column(headers, 'amount'),
        'Date': _find_column(headers, 'date', 'as-of', 'as of'),
    }
    missing = [label for label, index in columns.items() if index is None]
    if missing:
        return [], [ImportErrorDTO(sheet, 1, f"Could not find columns: {', '.join(missing)}")]

    balances, errors = [], []
    for row_number, row in data:
        fund_name = coerce_string(_cell(row, columns['Fund']))
        source_name = coerce_string(_cell(row, columns['Source']))
        row_errors = []
        if not fund_name:
            row_errors.append(ImportErrorDTO(sheet, row_number, 'Fund Name is required', 'Fund Name'))
        if not source_name:
            row_errors.append(ImportErrorDTO(sheet, row_number, 'Financial Source is required', 'Financial Source'))

        try:
            amount = coerce_decimal(_cell(row, columns['Amount']))
        except ValueError:
            amount = None
        if amount is None or amount < 0:
            row_errors.append(ImportErrorDTO(sheet, row_number, 'Amount must be a positive number', 'Amount'))

        try:
            as_of_date = coerce_date(_cell(row, columns['Date']))
        except ValueError:
            as_of_date = None
        if as_of_date is None:
            row_errors.append(ImportErrorDTO(
                sheet, row_number, 'As-of Date is required and must be a valid date', 'As-of Date',
            ))

        if row_errors:
            errors.extend(row_errors)
            continue
        balances.append({
            'row_number': row_number,
            'fund_name': fund_name,
            'source_name': source_name,
            'amount': amount,
            'as_of_date': as_of_date,
        })
    return balances, errors


SHEET_PARSERS = {
    'Members': ('members', parse_members_sheet),
    'Membership Status': ('membership_statuses', lambda rows, sheet: _parse_named_rows(rows, sheet)),
    'Financial Sources': ('financial_sources', lambda rows, sheet: _parse_named_rows(rows, sheet, _source_fields)),
    'Funds': ('funds', lambda rows, sheet: _parse_named_rows(rows, sheet, _fund_fields)),
    'Income Categories': ('income_categories', lambda rows, sheet: _parse_named_rows(rows, sheet)),
    'Expense Categories': ('expense_categories', lambda rows, sheet: _parse_named_rows(rows, sheet)),
    'Budget Categories': ('budget_categories', lambda rows, sheet: _parse_named_rows(rows, sheet)),
    'Opening Balances': ('opening_balances', parse_opening_balances_sheet),
}


# =============================================================================
# Workbook
# =============================================================================

def parse_import_file(content: bytes) -> ParseResultDTO:
    """
    Parse an onboarding workbook.

    Sheets are matched by name ignoring case and spaces. A file that cannot
    be opened yields a single error on the pseudo sheet "File".
    """
    try:
        workbook = load_workbook_bytes(content)
    except Exception as e:
        logger.warning(f"Could not open onboarding workbook: {e}")
        return ParseResultDTO(
            success=False,
            data=None,
            errors=[ImportErrorDTO('File', 0, f"Failed to parse Excel file: {e}")],
        )

    data = ParsedImportData()
    errors: List[ImportErrorDTO] = []
    warnings: List[str] = []

    for worksheet in workbook.worksheets:
        canonical = SHEETS.get(normalize_sheet_name(worksheet.title))
        if canonical is None:
            warnings.append(f'Unknown sheet "{worksheet.title}" was ignored')
            continue
        attribute, parse_sheet = SHEET_PARSERS[canonical]
        rows = read_rows(worksheet)
        if not rows:
            continue
        items, sheet_errors = parse_sheet(rows, worksheet.title)
        getattr(data, attribute).extend(items)
        errors.extend(sheet_errors)

    logger.info(f"Parsed onboarding workbook: {get_import_summary(data)} ({len(errors)} errors)")
    return ParseResultDTO(success=not errors, data=data, errors=errors, warnings=warnings)


def get_import_summary(data: ParsedImportData) -> Dict[str, int]:
    return {
        'members': len(data.members),
        'membership_statuses': len(data.membership_statuses),
        'financial_sources': len(data.financial_sources),
        'funds': len(data.funds),
        'income_categories': len(data.income_categories),
        'expense_categories': len(data.expense_categories),
        'budget_categories': len(data.budget_categories),
        'opening_balances': len(data.opening_balances),
    }
