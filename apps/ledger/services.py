"""
Core services for Ledger app.
Chart of accounts, funds, sources, categories, fiscal calendar and
double-entry journal postings. Year-end closing lives in closing_service.
"""
import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from .categories import (
    CHART_OF_ACCOUNTS, DEFAULT_FUNDS, DEFAULT_SOURCES, get_all_default_categories,
)
from .dtos import (
    AccountDTO, BalanceSheetDTO, CategoryDTO, FinancialSourceDTO, FiscalPeriodDTO,
    FiscalYearDTO, FundDTO, IncomeStatementDTO, StatementLineDTO, TransactionDTO,
    TransactionLineDTO, TrialBalanceDTO, TrialBalanceRowDTO,
)
from .models import (
    Account, AccountType, Category, CategoryType, EntryType, FinancialSource,
    FiscalPeriod, FiscalStatus, FiscalYear, Fund, FundType, SourceType,
    TransactionHeader, TransactionLine, TransactionStatus,
)

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
CENT = Decimal('0.01')

TRANSACTION_PREFIXES = {
    'journal': 'JE',
    'income': 'INC',
    'expense': 'EXP',
    EntryType.CLOSING: 'CLOSE',
    EntryType.OPENING: 'OPEN',
}


def to_amount(value) -> Decimal:
    """Parse a money value to a 2-place Decimal. Raises ValueError."""
    if value is None or value == '':
        return ZERO
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid amount: {value}")
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value}")
    return amount.quantize(CENT)


# =============================================================================
# DTO Helpers
# =============================================================================

def _to_account_dto(account: Account) -> AccountDTO:
    return AccountDTO(
        id=account.id,
        code=account.code,
        name=account.name,
        account_type=account.account_type,
        is_active=account.is_active,
        parent_id=account.parent_id,
        description=account.description,
    )


def _to_fund_dto(fund: Fund) -> FundDTO:
    return FundDTO(
        id=fund.id,
        name=fund.name,
        fund_type=fund.fund_type,
        equity_account_id=fund.equity_account_id,
        is_active=fund.is_active,
        description=fund.description,
    )


def _to_source_dto(source: FinancialSource) -> FinancialSourceDTO:
    return FinancialSourceDTO(
        id=source.id,
        name=source.name,
        source_type=source.source_type,
        account_id=source.account_id,
        is_active=source.is_active,
        account_number=source.account_number,
        description=source.description,
    )


def _to_category_dto(category: Category) -> CategoryDTO:
    return CategoryDTO(
        id=category.id,
        name=category.name,
        category_type=category.category_type,
        account_id=category.account_id,
        is_active=category.is_active,
        description=category.description,
    )


def _to_fiscal_year_dto(year: FiscalYear) -> FiscalYearDTO:
    return FiscalYearDTO(
        id=year.id,
        tenant_id=year.tenant_id,
        name=year.name,
        start_date=year.start_date,
        end_date=year.end_date,
        status=year.status,
        closed_at=year.closed_at,
        periods=[
            FiscalPeriodDTO(id=p.id, name=p.name, start_date=p.start_date, end_date=p.end_date, status=p.status)
            for p in year.periods.all()
        ],
    )


def _to_transaction_dto(header: TransactionHeader) -> TransactionDTO:
    lines = list(header.lines.select_related('account'))
    return TransactionDTO(
        id=header.id,
        tenant_id=header.tenant_id,
        transaction_number=header.transaction_number,
        transaction_date=header.transaction_date,
        description=header.description,
        reference=header.reference,
        status=header.status,
        entry_type=header.entry_type,
        total=sum((line.debit for line in lines), ZERO),
        lines=[
            TransactionLineDTO(
                id=line.id,
                account_id=line.account_id,
                account_code=line.account.code,
                account_name=line.account.name,
                debit=line.debit,
                credit=line.credit,
                fund_id=line.fund_id,
                description=line.description,
            )
            for line in lines
        ],
        category_id=header.category_id,
        source_id=header.source_id,
        posted_at=header.posted_at,
    )


# =============================================================================
# Defaults
# =============================================================================

def seed_ledger_defaults(tenant_id: UUID) -> Dict[str, int]:
    """
    Create the default church chart of accounts, funds, sources and
    categories for a tenant. Existing records are left untouched.
    """
    created = defaultdict(int)

    accounts = {}
    for entry in CHART_OF_ACCOUNTS:
        account, was_created = Account.objects.get_or_create(
            tenant_id=tenant_id,
            code=entry['code'],
            defaults={'name': entry['name'], 'account_type': entry['account_type']},
        )
        accounts[account.code] = account
        created['accounts'] += int(was_created)

    for entry in DEFAULT_FUNDS:
        _, was_created = Fund.objects.get_or_create(
            tenant_id=tenant_id,
            name=entry['name'],
            defaults={
                'fund_type': entry['fund_type'],
                'equity_account': accounts.get(entry['equity_account_code']),
                'description': entry['description'],
            },
        )
        created['funds'] += int(was_created)

    for entry in DEFAULT_SOURCES:
        _, was_created = FinancialSource.objects.get_or_create(
            tenant_id=tenant_id,
            name=entry['name'],
            defaults={'source_type': entry['source_type'], 'account': accounts.get(entry['account_code'])},
        )
        created['sources'] += int(was_created)

    for category_type, entries in get_all_default_categories().items():
        for order, entry in enumerate(entries, start=1):
            _, was_created = Category.objects.get_or_create(
                tenant_id=tenant_id,
                category_type=category_type,
                name=entry['name'],
                defaults={
                    'account': accounts.get(entry.get('account_code')),
                    'description': entry['description'],
                    'sort_order': order,
                },
            )
            created['categories'] += int(was_created)

    logger.info(f"Seeded ledger defaults for tenant {tenant_id}: {dict(created)}")
    return dict(created)


# =============================================================================
# Chart of Accounts
# =============================================================================

def list_accounts(tenant_id: UUID, account_type: Optional[str] = None, active_only: bool = False) -> List[AccountDTO]:
    qs = Account.objects.filter(tenant_id=tenant_id)
    if account_type:
        qs = qs.filter(account_type=account_type)
    if active_only:
        qs = qs.filter(is_active=True)
    return [_to_account_dto(a) for a in qs]


def get_account(account_id: UUID, tenant_id: UUID) -> Optional[Account]:
    return Account.objects.filter(id=account_id, tenant_id=tenant_id).first()


def find_retained_earnings_account(tenant_id: UUID) -> Optional[Account]:
    """Active equity account whose name reads like 'Retained Earnings'."""
    return Account.objects.filter(
        tenant_id=tenant_id,
        account_type=AccountType.EQUITY,
        is_active=True,
        name__iregex=r'retained.*earnings',
    ).order_by('code').first()


def create_account(
    tenant_id: UUID,
    code: str,
    name: str,
    account_type: str,
    parent_id: Optional[UUID] = None,
    description: str = "",
) -> AccountDTO:
    code = (code or '').strip()
    name = (name or '').strip()
    if not code or not name:
        raise ValueError("Account code and name are required")
    if account_type not in AccountType.values:
        raise ValueError(f"Invalid account type: {account_type}")
    if Account.objects.filter(tenant_id=tenant_id, code=code).exists():
        raise ValueError(f"Account code '{code}' already exists")

    parent = None
    if parent_id:
        parent = get_account(parent_id, tenant_id)
        if parent is None:
            raise ValueError("Parent account not found")
        if parent.account_type != account_type:
            raise ValueError("Parent account must have the same account type")

    account = Account.objects.create(
        tenant_id=tenant_id,
        code=code,
        name=name,
        account_type=account_type,
        parent=parent,
        description=description,
    )
    return _to_account_dto(account)


ACCOUNT_CODE_RANGES = {
    AccountType.ASSET: 1000,
    AccountType.LIABILITY: 2000,
    AccountType.EQUITY: 3000,
    AccountType.REVENUE: 4000,
    AccountType.EXPENSE: 5000,
}


def next_account_code(tenant_id: UUID, account_type: str) -> str:
    """Next free code in the account type's thousand block, in steps of 10."""
    base = ACCOUNT_CODE_RANGES[account_type]
    used = set()
    for code in Account.objects.filter(tenant_id=tenant_id).values_list('code', flat=True):
        if code.isdigit() and base <= int(code) < base + 1000:
            used.add(int(code))
    candidate = (max(used) // 10 + 1) * 10 if used else base
    if candidate >= base + 1000:
        candidate = next(c for c in range(base, base + 1000) if c not in used)
    return str(candidate)


def update_account(account_id: UUID, tenant_id: UUID, data: dict) -> Optional[AccountDTO]:
    account = get_account(account_id, tenant_id)
    if account is None:
        return None

    if 'account_type' in data and data['account_type'] and data['account_type'] != account.account_type:
        if data['account_type'] not in AccountType.values:
            raise ValueError(f"Invalid account type: {data['account_type']}")
        if account.lines.exists():
            raise ValueError("Cannot change the type of an account that has postings")
        account.account_type = data['account_type']

    for key in ('name', 'description', 'is_active'):
        if data.get(key) is not None:
            setattr(account, key, data[key])
    account.save()
    return _to_account_dto(account)


# =============================================================================
# Funds, Sources and Categories
# =============================================================================

def list_funds(tenant_id: UUID, active_only: bool = False) -> List[FundDTO]:
    qs = Fund.objects.filter(tenant_id=tenant_id)
    if active_only:
        qs = qs.filter(is_active=True)
    return [_to_fund_dto(f) for f in qs]


def find_fund(tenant_id: UUID, name: str) -> Optional[Fund]:
    return Fund.objects.filter(tenant_id=tenant_id, name__iexact=(name or '').strip()).first()


def create_fund(
    tenant_id: UUID,
    name: str,
    fund_type: str = FundType.UNRESTRICTED,
    equity_account_id: Optional[UUID] = None,
    description: str = "",
) -> FundDTO:
    name = (name or '').strip()
    if not name:
        raise ValueError("Fund name is required")
    if fund_type not in FundType.values:
        raise ValueError(f"Invalid fund type: {fund_type}")
    if find_fund(tenant_id, name):
        raise ValueError(f"Fund '{name}' already exists")

    equity_account = None
    if equity_account_id:
        equity_account = get_account(equity_account_id, tenant_id)
        if equity_account is None or equity_account.account_type != AccountType.EQUITY:
            raise ValueError("Fund balance account must be an equity account")

    fund = Fund.objects.create(
        tenant_id=tenant_id,
        name=name,
        fund_type=fund_type,
        equity_account=equity_account,
        description=description,
    )
    return _to_fund_dto(fund)


def list_sources(tenant_id: UUID, active_only: bool = False) -> List[FinancialSourceDTO]:
    qs = FinancialSource.objects.filter(tenant_id=tenant_id)
    if active_only:
        qs = qs.filter(is_active=True)
    return [_to_source_dto(s) for s in qs]


def find_source(tenant_id: UUID, name: str) -> Optional[FinancialSource]:
    return FinancialSource.objects.filter(tenant_id=tenant_id, name__iexact=(name or '').strip()).first()


def create_source(
    tenant_id: UUID,
    name: str,
    source_type: str = SourceType.BANK,
    account_id: Optional[UUID] = None,
    account_number: str = "",
    description: str = "",
) -> FinancialSourceDTO:
    name = (name or '').strip()
    if not name:
        raise ValueError("Source name is required")
    if source_type not in SourceType.values:
        raise ValueError(f"Invalid source type: {source_type}")
    if find_source(tenant_id, name):
        raise ValueError(f"Financial source '{name}' already exists")

    account = None
    if account_id:
        account = get_account(account_id, tenant_id)
        if account is None or account.account_type != AccountType.ASSET:
            raise ValueError("Financial source account must be an asset account")

    source = FinancialSource.objects.create(
        tenant_id=tenant_id,
        name=name,
        source_type=source_type,
        account=account,
        account_number=account_number or "",
        description=description or "",
    )
    return _to_source_dto(source)


def list_categories(tenant_id: UUID, category_type: Optional[str] = None, active_only: bool = False) -> List[CategoryDTO]:
    qs = Category.objects.filter(tenant_id=tenant_id)
    if category_type:
        qs = qs.filter(category_type=category_type)
    if active_only:
        qs = qs.filter(is_active=True)
    return [_to_category_dto(c) for c in qs]


def find_category(tenant_id: UUID, category_type: str, name: str) -> Optional[Category]:
    return Category.objects.filter(
        tenant_id=tenant_id, category_type=category_type, name__iexact=(name or '').strip()
    ).first()


CATEGORY_ACCOUNT_TYPES = {
    CategoryType.INCOME: AccountType.REVENUE,
    CategoryType.EXPENSE: AccountType.EXPENSE,
}


def create_category(
    tenant_id: UUID,
    name: str,
    category_type: str,
    account_id: Optional[UUID] = None,
    description: str = "",
) -> CategoryDTO:
    name = (name or '').strip()
    if not name:
        raise ValueError("Category name is required")
    if category_type not in CategoryType.values:
        raise ValueError(f"Invalid category type: {category_type}")
    if find_category(tenant_id, category_type, name):
        raise ValueError(f"Category '{name}' already exists")

    account = None
    if account_id:
        account = get_account(account_id, tenant_id)
        expected = CATEGORY_ACCOUNT_TYPES.get(category_type)
        if account is None or expected is None or account.account_type != expected:
            raise ValueError(f"{category_type.title()} categories must post to a {expected or 'matching'} account")

    last = Category.objects.filter(tenant_id=tenant_id, category_type=category_type).order_by('-sort_order').first()
    category = Category.objects.create(
        tenant_id=tenant_id,
        name=name,
        category_type=category_type,
        account=account,
        description=description or "",
        sort_order=(last.sort_order + 1) if last else 1,
    )
    return _to_category_dto(category)


# =============================================================================
# Fiscal Calendar
# =============================================================================

def list_fiscal_years(tenant_id: UUID) -> List[FiscalYearDTO]:
    qs = FiscalYear.objects.filter(tenant_id=tenant_id).prefetch_related('periods')
    return [_to_fiscal_year_dto(y) for y in qs]


def get_fiscal_year(fiscal_year_id: UUID, tenant_id: Optional[UUID] = None) -> Optional[FiscalYear]:
    qs = FiscalYear.objects.filter(id=fiscal_year_id)
    if tenant_id is not None:
        qs = qs.filter(tenant_id=tenant_id)
    return qs.first()


def get_fiscal_year_dto(fiscal_year_id: UUID, tenant_id: UUID) -> Optional[FiscalYearDTO]:
    year = get_fiscal_year(fiscal_year_id, tenant_id)
    return _to_fiscal_year_dto(year) if year else None


def fiscal_year_for_date(tenant_id: UUID, on_date: date) -> Optional[FiscalYear]:
    return FiscalYear.objects.filter(
        tenant_id=tenant_id, start_date__lte=on_date, end_date__gte=on_date
    ).first()


def _monthly_periods(start_date: date, end_date: date):
    cursor = start_date
    while cursor <= end_date:
        period_end = min(cursor + relativedelta(months=1) - timedelta(days=1), end_date)
        yield cursor.strftime('%B %Y'), cursor, period_end
        cursor = period_end + timedelta(days=1)


def create_fiscal_year(
    tenant_id: UUID,
    name: str,
    start_date: date,
    end_date: date,
    monthly_periods: bool = True,
    created_by_id: Optional[UUID] = None,
) -> FiscalYearDTO:
    """Create a fiscal year, optionally split into monthly periods."""
    name = (name or '').strip()
    if not name:
        raise ValueError("Fiscal year name is required")
    if start_date >= end_date:
        raise ValueError("Fiscal year start date must be before its end date")

    overlapping = FiscalYear.objects.filter(
        tenant_id=tenant_id, start_date__lte=end_date, end_date__gte=start_date
    ).first()
    if overlapping:
        raise ValueError(f"Fiscal year overlaps with {overlapping.name}")

    with transaction.atomic():
        year = FiscalYear.objects.create(
            tenant_id=tenant_id,
            name=name,
            start_date=start_date,
            end_date=end_date,
            created_by_id=created_by_id,
        )
        if monthly_periods:
            FiscalPeriod.objects.bulk_create([
                FiscalPeriod(
                    tenant_id=tenant_id,
                    fiscal_year=year,
                    name=period_name,
                    start_date=period_start,
                    end_date=period_end,
                )
                for period_name, period_start, period_end in _monthly_periods(start_date, end_date)
            ])

    logger.info(f"Created fiscal year {year.name} ({start_date} to {end_date}) for tenant {tenant_id}")
    return _to_fiscal_year_dto(year)


def _get_period(period_id: UUID, tenant_id: UUID) -> Optional[FiscalPeriod]:
    return FiscalPeriod.objects.filter(id=period_id, tenant_id=tenant_id).select_related('fiscal_year').first()


def close_period(period_id: UUID, tenant_id: UUID, closed_by_id: Optional[UUID] = None) -> Optional[FiscalPeriodDTO]:
    period = _get_period(period_id, tenant_id)
    if period is None:
        return None
    if period.status == FiscalStatus.CLOSED:
        raise ValueError(f"Period {period.name} is already closed")
    if TransactionHeader.objects.filter(
        tenant_id=tenant_id,
        status=TransactionStatus.DRAFT,
        transaction_date__gte=period.start_date,
        transaction_date__lte=period.end_date,
    ).exists():
        raise ValueError(f"Period {period.name} still has draft entries")

    period.status = FiscalStatus.CLOSED
    period.closed_at = timezone.now()
    period.closed_by_id = closed_by_id
    period.save(update_fields=['status', 'closed_at', 'closed_by_id'])
    return FiscalPeriodDTO(id=period.id, name=period.name, start_date=period.start_date,
                           end_date=period.end_date, status=period.status)


def reopen_period(period_id: UUID, tenant_id: UUID) -> Optional[FiscalPeriodDTO]:
    period = _get_period(period_id, tenant_id)
    if period is None:
        return None
    if period.fiscal_year.is_closed:
        raise ValueError(f"Cannot reopen a period of closed fiscal year {period.fiscal_year.name}")
    if period.status == FiscalStatus.OPEN:
        raise ValueError(f"Period {period.name} is already open")

    period.status = FiscalStatus.OPEN
    period.closed_at = None
    period.closed_by_id = None
    period.save(update_fields=['status', 'closed_at', 'closed_by_id'])
    return FiscalPeriodDTO(id=period.id, name=period.name, start_date=period.start_date,
                           end_date=period.end_date, status=period.status)


def ensure_date_is_open(tenant_id: UUID, on_date: date) -> FiscalYear:
    """
    Entries may only be dated inside an open fiscal year and, when the year
    has periods, an open period. Returns the fiscal year.
    """
    year = fiscal_year_for_date(tenant_id, on_date)
    if year is None:
        raise ValueError(f"No fiscal year covers {on_date.isoformat()}")
    if year.is_closed:
        raise ValueError(f"Fiscal year {year.name} is closed")

    periods = year.periods.all()
    if periods.exists():
        period = periods.filter(start_date__lte=on_date, end_date__gte=on_date).first()
        if period is None:
            raise ValueError(f"No fiscal period covers {on_date.isoformat()}")
        if period.status == FiscalStatus.CLOSED:
            raise ValueError(f"Fiscal period {period.name} is closed")
    return year


# =============================================================================
# Journal Entries
# =============================================================================

def next_transaction_number(tenant_id: UUID, prefix: str, on_date: date) -> str:
    """PREFIX-YYYYMMDD-NNN, numbered after the highest existing suffix."""
    stem = f"{prefix}-{on_date.strftime('%Y%m%d')}-"
    highest = 0
    for number in TransactionHeader.objects.filter(
        tenant_id=tenant_id, transaction_number__startswith=stem
    ).values_list('transaction_number', flat=True):
        suffix = number[len(stem):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{stem}{highest + 1:03d}"


def _clean_lines(tenant_id: UUID, lines: Iterable[dict], allow_inactive: bool = False) -> List[dict]:
    """
    Validate journal lines. Each needs an active account of the tenant and
    exactly one positive side; the entry must balance.
    """
    cleaned = []
    for index, line in enumerate(lines, start=1):
        debit = to_amount(line.get('debit'))
        credit = to_amount(line.get('credit'))
        if debit < 0 or credit < 0:
            raise ValueError(f"Line {index}: amounts cannot be negative")
        if (debit > 0) == (credit > 0):
            raise ValueError(f"Line {index}: enter either a debit or a credit")

        account = get_account(line.get('account_id'), tenant_id)
        if account is None:
            raise ValueError(f"Line {index}: account not found")
        if not account.is_active and not allow_inactive:
            raise ValueError(f"Line {index}: account {account.code} is inactive")

        fund = None
        if line.get('fund_id'):
            fund = Fund.objects.filter(id=line['fund_id'], tenant_id=tenant_id).first()
            if fund is None:
                raise ValueError(f"Line {index}: fund not found")

        cleaned.append({
            'account': account,
            'fund': fund,
            'debit': debit,
            'credit': credit,
            'description': (line.get('description') or '')[:255],
        })

    if len(cleaned) < 2:
        raise ValueError("A journal entry needs at least two lines")

    total_debit = sum((l['debit'] for l in cleaned), ZERO)
    total_credit = sum((l['credit'] for l in cleaned), ZERO)
    if total_debit != total_credit:
        raise ValueError(f"Entry does not balance: debits {total_debit} vs credits {total_credit}")
    return cleaned


def create_entry(
    tenant_id: UUID,
    transaction_date: date,
    lines: List[dict],
    *,
    prefix: str,
    description: str = "",
    reference: str = "",
    entry_type: str = EntryType.STANDARD,
    post: bool = True,
    user_id: Optional[UUID] = None,
    category: Optional[Category] = None,
    source: Optional[FinancialSource] = None,
    fiscal_year: Optional[FiscalYear] = None,
    number_date: Optional[date] = None,
) -> TransactionHeader:
    """
    Write a validated entry without checking the fiscal calendar.
    Callers decide which dates are allowed.
    """
    cleaned = _clean_lines(tenant_id, lines, allow_inactive=entry_type != EntryType.STANDARD)
    if fiscal_year is None:
        fiscal_year = fiscal_year_for_date(tenant_id, transaction_date)

    with transaction.atomic():
        header = TransactionHeader.objects.create(
            tenant_id=tenant_id,
            transaction_number=next_transaction_number(tenant_id, prefix, number_date or transaction_date),
            transaction_date=transaction_date,
            description=(description or '')[:255],
            reference=(reference or '')[:100],
            entry_type=entry_type,
            status=TransactionStatus.POSTED if post else TransactionStatus.DRAFT,
            fiscal_year=fiscal_year,
            category=category,
            source=source,
            posted_at=timezone.now() if post else None,
            posted_by_id=user_id if post else None,
            created_by_id=user_id,
        )
        TransactionLine.objects.bulk_create([
            TransactionLine(tenant_id=tenant_id, header=header, **line) for line in cleaned
        ])
    return header


def post_journal_entry(
    tenant_id: UUID,
    transaction_date: date,
    lines: List[dict],
    description: str = "",
    reference: str = "",
    created_by_id: Optional[UUID] = None,
    post: bool = True,
) -> TransactionDTO:
    """
    Record a manual journal entry.

    Lines are dicts with account_id, debit, credit and optional fund_id and
    description. Set post=False to keep the entry as a draft.
    """
    year = ensure_date_is_open(tenant_id, transaction_date)
    header = create_entry(
        tenant_id,
        transaction_date,
        lines,
        prefix=TRANSACTION_PREFIXES['journal'],
        description=description,
        reference=reference,
        post=post,
        user_id=created_by_id,
        fiscal_year=year,
    )
    logger.info(f"Recorded journal entry {header.transaction_number} ({header.status}) for tenant {tenant_id}")
    return _to_transaction_dto(header)


def post_draft(transaction_id: UUID, tenant_id: UUID, posted_by_id: Optional[UUID] = None) -> Optional[TransactionDTO]:
    header = TransactionHeader.objects.filter(id=transaction_id, tenant_id=tenant_id).first()
    if header is None:
        return None
    if header.status != TransactionStatus.DRAFT:
        raise ValueError("Only draft entries can be posted")
    ensure_date_is_open(tenant_id, header.transaction_date)
    if header.total_debit != header.total_credit or header.total_debit <= 0:
        raise ValueError("Entry does not balance")

    header.status = TransactionStatus.POSTED
    header.posted_at = timezone.now()
    header.posted_by_id = posted_by_id
    header.save(update_fields=['status', 'posted_at', 'posted_by_id'])
    return _to_transaction_dto(header)


def _category_and_source(tenant_id: UUID, category_id: UUID, source_id: UUID, category_type: str):
    category = Category.objects.filter(
        id=category_id, tenant_id=tenant_id, category_type=category_type
    ).select_related('account').first()
    if category is None:
        raise ValueError(f"{category_type.title()} category not found")
    if category.account_id is None:
        raise ValueError(f"Category '{category.name}' is not linked to an account")

    source = FinancialSource.objects.filter(id=source_id, tenant_id=tenant_id).select_related('account').first()
    if source is None:
        raise ValueError("Financial source not found")
    if source.account_id is None:
        raise ValueError(f"Financial source '{source.name}' is not linked to an account")
    return category, source


def _record_simple(
    tenant_id: UUID,
    *,
    kind: str,
    amount,
    transaction_date: date,
    category_id: UUID,
    source_id: UUID,
    fund_id: Optional[UUID],
    description: str,
    reference: str,
    created_by_id: Optional[UUID],
) -> TransactionDTO:
    amount = to_amount(amount)
    if amount <= 0:
        raise ValueError("Amount must be greater than zero")

    category_type = CategoryType.INCOME if kind == 'income' else CategoryType.EXPENSE
    category, source = _category_and_source(tenant_id, category_id, source_id, category_type)
    year = ensure_date_is_open(tenant_id, transaction_date)

    label = description or category.name
    if kind == 'income':
        # Money in: Dr source (asset), Cr revenue
        debit_account, credit_account = source.account_id, category.account_id
    else:
        # Money out: Dr expense, Cr source (asset)
        debit_account, credit_account = category.account_id, source.account_id

    header = create_entry(
        tenant_id,
        transaction_date,
        [
            {'account_id': debit_account, 'debit': amount, 'fund_id': fund_id, 'description': label},
            {'account_id': credit_account, 'credit': amount, 'fund_id': fund_id, 'description': label},
        ],
        prefix=TRANSACTION_PREFIXES[kind],
        description=label,
        reference=reference,
        user_id=created_by_id,
        category=category,
        source=source,
        fiscal_year=year,
    )
    logger.info(f"Recorded {kind} {header.transaction_number} of {amount} for tenant {tenant_id}")
    return _to_transaction_dto(header)


def record_income(
    tenant_id: UUID,
    *,
    amount,
    transaction_date: date,
    category_id: UUID,
    source_id: UUID,
    fund_id: Optional[UUID] = None,
    description: str = "",
    reference: str = "",
    created_by_id: Optional[UUID] = None,
) -> TransactionDTO:
    return _record_simple(
        tenant_id, kind='income', amount=amount, transaction_date=transaction_date,
        category_id=category_id, source_id=source_id, fund_id=fund_id,
        description=description, reference=reference, created_by_id=created_by_id,
    )


def record_expense(
    tenant_id: UUID,
    *,
    amount,
    transaction_date: date,
    category_id: UUID,
    source_id: UUID,
    fund_id: Optional[UUID] = None,
    description: str = "",
    reference: str = "",
    created_by_id: Optional[UUID] = None,
) -> TransactionDTO:
    return _record_simple(
        tenant_id, kind='expense', amount=amount, transaction_date=transaction_date,
        category_id=category_id, source_id=source_id, fund_id=fund_id,
        description=description, reference=reference, created_by_id=created_by_id,
    )


def void_transaction(
    transaction_id: UUID,
    tenant_id: UUID,
    voided_by_id: Optional[UUID] = None,
    reason: str = "",
) -> Optional[TransactionDTO]:
    header = TransactionHeader.objects.filter(id=transaction_id, tenant_id=tenant_id).first()
    if header is None:
        return None
    if header.status == TransactionStatus.VOIDED:
        raise ValueError("Transaction is already voided")
    if header.entry_type != EntryType.STANDARD:
        raise ValueError("Closing and opening entries cannot be voided")
    ensure_date_is_open(tenant_id, header.transaction_date)

    header.status = TransactionStatus.VOIDED
    header.voided_at = timezone.now()
    header.voided_by_id = voided_by_id
    header.void_reason = reason or ""
    header.save(update_fields=['status', 'voided_at', 'voided_by_id', 'void_reason'])
    logger.info(f"Voided transaction {header.transaction_number} for tenant {tenant_id}")
    return _to_transaction_dto(header)


def get_transaction(transaction_id: UUID, tenant_id: UUID) -> Optional[TransactionDTO]:
    header = TransactionHeader.objects.filter(id=transaction_id, tenant_id=tenant_id).first()
    return _to_transaction_dto(header) if header else None


def list_transactions(
    tenant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
    entry_type: Optional[str] = None,
    limit: int = 200,
) -> List[TransactionDTO]:
    qs = TransactionHeader.objects.filter(tenant_id=tenant_id)
    if start_date:
        qs = qs.filter(transaction_date__gte=start_date)
    if end_date:
        qs = qs.filter(transaction_date__lte=end_date)
    if status:
        qs = qs.filter(status=status)
    if entry_type:
        qs = qs.filter(entry_type=entry_type)
    return [_to_transaction_dto(h) for h in qs[:max(1, min(limit, 1000))]]


# =============================================================================
# Reports
# =============================================================================

def get_trial_balance(
    tenant_id: UUID,
    end_date: date,
    start_date: Optional[date] = None,
    include_closing: bool = True,
) -> TrialBalanceDTO:
    """
    Debit/credit totals per account from posted entries up to end_date.

    Without start_date the balances are cumulative and rollover opening
    entries are left out, since they restate balances already counted.
    With start_date only entries in [start_date, end_date] count, opening
    entries included.
    """
    lines = TransactionLine.objects.filter(
        tenant_id=tenant_id,
        header__status=TransactionStatus.POSTED,
        header__transaction_date__lte=end_date,
    )
    if start_date:
        lines = lines.filter(header__transaction_date__gte=start_date)
    else:
        lines = lines.exclude(header__entry_type=EntryType.OPENING)
    if not include_closing:
        lines = lines.exclude(header__entry_type=EntryType.CLOSING)

    totals = lines.values('account_id').annotate(debit_total=Sum('debit'), credit_total=Sum('credit'))
    by_account = {row['account_id']: row for row in totals}
    accounts = Account.objects.filter(id__in=by_account.keys()).order_by('code')

    rows = []
    for account in accounts:
        debit_total = by_account[account.id]['debit_total'] or ZERO
        credit_total = by_account[account.id]['credit_total'] or ZERO
        net = debit_total - credit_total
        rows.append(TrialBalanceRowDTO(
            account_id=account.id,
            account_code=account.code,
            account_name=account.name,
            account_type=account.account_type,
            debit_total=debit_total,
            credit_total=credit_total,
            debit_balance=net if net > 0 else ZERO,
            credit_balance=-net if net < 0 else ZERO,
        ))

    return TrialBalanceDTO(
        start_date=start_date,
        end_date=end_date,
        rows=rows,
        total_debit=sum((r.debit_balance for r in rows), ZERO),
        total_credit=sum((r.credit_balance for r in rows), ZERO),
    )


def _statement_line(row: TrialBalanceRowDTO, amount: Decimal) -> StatementLineDTO:
    return StatementLineDTO(
        account_id=row.account_id,
        account_code=row.account_code,
        account_name=row.account_name,
        amount=amount,
    )


def get_income_statement(tenant_id: UUID, start_date: date, end_date: date) -> IncomeStatementDTO:
    """Revenue and expenses for the window, before year-end closing entries."""
    if end_date < start_date:
        raise ValueError("End date cannot be before start date")
    trial = get_trial_balance(tenant_id, end_date, start_date=start_date, include_closing=False)

    revenue = [_statement_line(r, -r.net_debit) for r in trial.rows if r.account_type == AccountType.REVENUE]
    expenses = [_statement_line(r, r.net_debit) for r in trial.rows if r.account_type == AccountType.EXPENSE]
    total_revenue = sum((l.amount for l in revenue), ZERO)
    total_expenses = sum((l.amount for l in expenses), ZERO)

    return IncomeStatementDTO(
        start_date=start_date,
        end_date=end_date,
        revenue=revenue,
        expenses=expenses,
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_income=total_revenue - total_expenses,
    )


def get_balance_sheet(tenant_id: UUID, as_of: date) -> BalanceSheetDTO:
    trial = get_trial_balance(tenant_id, as_of)

    assets, liabilities, equity = [], [], []
    unclosed = ZERO
    for row in trial.rows:
        if row.account_type == AccountType.ASSET:
            assets.append(_statement_line(row, row.net_debit))
        elif row.account_type == AccountType.LIABILITY:
            liabilities.append(_statement_line(row, -row.net_debit))
        elif row.account_type == AccountType.EQUITY:
            equity.append(_statement_line(row, -row.net_debit))
        else:
            unclosed -= row.net_debit

    return BalanceSheetDTO(
        as_of=as_of,
        assets=assets,
        liabilities=liabilities,
        equity=equity,
        total_assets=sum((l.amount for l in assets), ZERO),
        total_liabilities=sum((l.amount for l in liabilities), ZERO),
        total_equity=sum((l.amount for l in equity), ZERO),
        unclosed_net_income=unclosed,
    )
