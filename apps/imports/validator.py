"""
Business-rule validation of a parsed onboarding workbook.

Errors block the import; warnings are informational. Cross-reference checks
accept names defined in the workbook plus any names the caller already
knows about (for example records that exist for the tenant).
"""
import re
from collections import Counter
from typing import Iterable, List, Optional

from django.utils import timezone

from apps.ledger.models import FundType
from apps.members.services import DEFAULT_MEMBERSHIP_STATUSES

from .dtos import ImportErrorDTO, ParsedImportData, QuickValidationDTO, ValidationResultDTO

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
LARGE_MEMBER_COUNT = 5000


def _names(values: Iterable[str]) -> set:
    return {v.strip().lower() for v in values if v and v.strip()}


def _duplicates(values: Iterable[str]) -> List[str]:
    counts = Counter(v.strip().lower() for v in values if v and v.strip())
    return sorted(name for name, count in counts.items() if count > 1)


def _validate_members(data: ParsedImportData) -> List[ImportErrorDTO]:
    errors = []
    today = timezone.localdate()
    for member in data.members:
        row = member.get('row_number', 0)
        email = member.get('email')
        if email and not EMAIL_PATTERN.match(email):
            errors.append(ImportErrorDTO('Members', row, f"Invalid email format: {email}", 'Email'))
        birthdate = member.get('birthdate')
        if birthdate and birthdate > today:
            errors.append(ImportErrorDTO('Members', row, 'Birthdate cannot be in the future', 'Birthdate'))

    duplicates = _duplicates(m.get('email') for m in data.members)
    if duplicates:
        errors.append(ImportErrorDTO('Members', 0, f"Duplicate emails found: {', '.join(duplicates)}", 'Email'))
    return errors


def _validate_unique_names(data: ParsedImportData) -> List[ImportErrorDTO]:
    sheets = (
        ('Membership Status', 'membership status', data.membership_statuses),
        ('Financial Sources', 'financial source', data.financial_sources),
        ('Funds', 'fund', data.funds),
        ('Income Categories', 'income category', data.income_categories),
        ('Expense Categories', 'expense category', data.expense_categories),
        ('Budget Categories', 'budget category', data.budget_categories),
    )
    errors = []
    for sheet, label, rows in sheets:
        duplicates = _duplicates(r['name'] for r in rows)
        if duplicates:
            errors.append(ImportErrorDTO(
                sheet, 0, f"Duplicate {label} names found: {', '.join(duplicates)}", 'Name',
            ))
    return errors


def _validate_funds_and_balances(data: ParsedImportData) -> List[ImportErrorDTO]:
    errors = []
    for fund in data.funds:
        if fund.get('fund_type') not in FundType.values:
            errors.append(ImportErrorDTO(
                'Funds', fund.get('row_number', 0),
                f"Invalid fund type \"{fund.get('fund_type')}\" for \"{fund['name']}\". "
                f"Must be \"restricted\" or \"unrestricted\"",
                'Type',
            ))
    for balance in data.opening_balances:
        amount = balance.get('amount')
        if amount is None or amount < 0:
            errors.append(ImportErrorDTO(
                'Opening Balances', balance.get('row_number', 0),
                'Opening balance amount cannot be negative', 'Amount',
            ))
    return errors


def validate_cross_references(
    data: ParsedImportData,
    known_statuses: Iterable[str] = (),
    known_funds: Iterable[str] = (),
    known_sources: Iterable[str] = (),
) -> List[ImportErrorDTO]:
    errors = []

    statuses = _names(s['name'] for s in data.membership_statuses)
    statuses |= _names(name for name, _ in DEFAULT_MEMBERSHIP_STATUSES)
    statuses |= _names(known_statuses)
    referenced = {
        m['membership_status'] for m in data.members
        if m.get('membership_status') and m['membership_status'].strip().lower() not in statuses
    }
    if referenced:
        errors.append(ImportErrorDTO(
            'Members', 0,
            f"Membership statuses referenced but not defined: {', '.join(sorted(referenced))}",
            'Membership Status',
        ))

    funds = _names(f['name'] for f in data.funds) | _names(known_funds)
    missing_funds = {b['fund_name'] for b in data.opening_balances if b['fund_name'].lower() not in funds}
    if missing_funds:
        errors.append(ImportErrorDTO(
            'Opening Balances', 0,
            f"Funds referenced but not defined: {', '.join(sorted(missing_funds))}", 'Fund Name',
        ))

    sources = _names(s['name'] for s in data.financial_sources) | _names(known_sources)
    missing_sources = {b['source_name'] for b in data.opening_balances if b['source_name'].lower() not in sources}
    if missing_sources:
        errors.append(ImportErrorDTO(
            'Opening Balances', 0,
            f"Financial Sources referenced but not defined: {', '.join(sorted(missing_sources))}",
            'Financial Source',
        ))
    return errors


def _warnings(data: ParsedImportData, known_funds: Iterable[str], known_sources: Iterable[str]) -> List[str]:
    warnings = []
    if not data.membership_statuses:
        warnings.append('No membership statuses defined. Default statuses will be used.')
    if data.opening_balances and not data.funds and not list(known_funds):
        warnings.append('Opening balances defined but no funds specified. Balances will be skipped.')
    if data.opening_balances and not data.financial_sources and not list(known_sources):
        warnings.append('Opening balances defined but no financial sources specified. Balances will be skipped.')
    if len(data.members) > LARGE_MEMBER_COUNT:
        warnings.append(f"Large number of members ({len(data.members)}). Import may take some time.")
    return warnings


def validate_import_data(
    data: ParsedImportData,
    known_statuses: Iterable[str] = (),
    known_funds: Iterable[str] = (),
    known_sources: Iterable[str] = (),
) -> ValidationResultDTO:
    known_statuses, known_funds, known_sources = list(known_statuses), list(known_funds), list(known_sources)
    errors = (
        _validate_members(data)
        + _validate_unique_names(data)
        + _validate_funds_and_balances(data)
        + validate_cross_references(data, known_statuses, known_funds, known_sources)
    )
    return ValidationResultDTO(
        is_valid=not errors,
        errors=errors,
        warnings=_warnings(data, known_funds, known_sources),
    )


def quick_validate(data: ParsedImportData, result: Optional[ValidationResultDTO] = None) -> QuickValidationDTO:
    result = result or validate_import_data(data)
    count = len(result.errors)
    if count:
        summary = f"Found {count} error(s) that need to be fixed before import."
    else:
        summary = 'Data looks good! Ready to import.'
    return QuickValidationDTO(has_errors=bool(count), error_count=count, summary=summary)
