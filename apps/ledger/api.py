"""
API Router for Ledger app.
Chart of accounts, funds, sources, categories, fiscal calendar,
journal entries, financial reports and year-end closing.
"""
import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from ninja import Router
from ninja.errors import HttpError
from django.http import HttpRequest, HttpResponse

from apps.audit.audit_service import log_action, AuditAction
from apps.core.task_service import TaskService
from apps.identity.decorators import require_permission, get_tenant_id
from apps.identity.permissions import Permissions
from apps.tenants.models import Tenant
from .dtos import (
    AccountDTO, BalanceSheetDTO, CategoryDTO, ClosingResultDTO, FinancialSourceDTO,
    FiscalPeriodDTO, FiscalYearDTO, FundDTO, IncomeStatementDTO, RolloverResultDTO,
    TransactionDTO, TrialBalanceDTO,
)
from .schemas import (
    AccountIn, AccountUpdateIn, CategoryIn, CloseFiscalYearIn, FiscalYearIn,
    FundIn, IncomeExpenseIn, JournalEntryIn, SourceIn, VoidIn,
)
from . import closing_service
from . import report_service
from . import services

logger = logging.getLogger(__name__)

router = Router(tags=["Ledger"])


# =============================================================================
# Chart of Accounts
# =============================================================================

@router.get("/accounts", response=List[AccountDTO], auth=None)
def list_accounts(request: HttpRequest, account_type: Optional[str] = None, active_only: bool = False):
    require_permission(request, Permissions.FINANCE_VIEW)
    return services.list_accounts(get_tenant_id(request), account_type=account_type, active_only=active_only)


@router.post("/accounts", response=AccountDTO, auth=None)
def create_account(request: HttpRequest, payload: AccountIn):
    require_permission(request, Permissions.FINANCE_MANAGE)
    try:
        return services.create_account(get_tenant_id(request), **payload.dict())
    except ValueError as e:
        raise HttpError(400, str(e))


@router.put("/accounts/{account_id}", response=AccountDTO, auth=None)
def update_account(request: HttpRequest, account_id: UUID, payload: AccountUpdateIn):
    require_permission(request, Permissions.FINANCE_MANAGE)
    try:
        account = services.update_account(account_id, get_tenant_id(request), payload.dict(exclude_unset=True))
    except ValueError as e:
        raise HttpError(400, str(e))
    if account is None:
        raise HttpError(404, "Account not found")
    return account


# =============================================================================
# Funds, Sources and Categories
# =============================================================================

@router.get("/funds", response=List[FundDTO], auth=None)
def list_funds(request: HttpRequest, active_only: bool = False):
    require_permission(request, Permissions.FINANCE_VIEW)
    return services.list_funds(get_tenant_id(request), active_only=active_only)


@router.post("/funds", response=FundDTO, auth=None)
def create_fund(request: HttpRequest, payload: FundIn):
    require_permission(request, Permissions.FINANCE_MANAGE)
    try:
        return services.create_fund(get_tenant_id(request), **payload.dict())
    except ValueError as e:
        raise HttpError(400, str(e))


@router.get("/sources", response=List[FinancialSourceDTO], auth=None)
def list_sources(request: HttpRequest, active_only: bool = False):
    require_permission(request, Permissions.FINANCE_VIEW)
    return services.list_sources(get_tenant_id(request), active_only=active_only)


@router.post("/sources", response=FinancialSourceDTO, auth=None)
def create_source(request: HttpRequest, payload: SourceIn):
    require_permission(request, Permissions.FINANCE_MANAGE)
    try:
        return services.create_source(get_tenant_id(request), **payload.dict())
    except ValueError as e:
        raise HttpError(400, str(e))


@router.get("/categories", response=List[CategoryDTO], auth=None)
def list_categories(request: HttpRequest, category_type: Optional[str] = None, active_only: bool = False):
    require_permission(request, Permissions.FINANCE_VIEW)
    return services.list_categories(get_tenant_id(request), category_type=category_type, active_only=active_only)


@router.post("/categories", response=CategoryDTO, auth=None)
def create_category(request: HttpRequest, payload: CategoryIn):
    require_permission(request, Permissions.FINANCE_MANAGE)
    try:
        return services.create_category(get_tenant_id(request), **payload.dict())
    except ValueError as e:
        raise HttpError(400, str(e))


# =============================================================================
# Fiscal Calendar
# =============================================================================

@router.get("/fiscal-years", response=List[FiscalYearDTO], auth=None)
def list_fiscal_years(request: HttpRequest):
    require_permission(request, Permissions.FINANCE_VIEW)
    return services.list_fiscal_years(get_tenant_id(request))


@router.post("/fiscal-years", response=FiscalYearDTO, auth=None)
def create_fiscal_year(request: HttpRequest, payload: FiscalYearIn):
    require_permission(request, Permissions.FINANCE_MANAGE)
    tenant_id = get_tenant_id(request)
    try:
        year = services.create_fiscal_year(tenant_id, created_by_id=request.user.id, **payload.dict())
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.CREATE_FISCAL_YEAR,
        target_type="FiscalYear",
        target_id=year.id,
        target_label=year.name,
        performed_by=request.user,
    )
    return year


@router.get("/fiscal-years/{fiscal_year_id}", response=FiscalYearDTO, auth=None)
def get_fiscal_year(request: HttpRequest, fiscal_year_id: UUID):
    require_permission(request, Permissions.FINANCE_VIEW)
    year = services.get_fiscal_year_dto(fiscal_year_id, get_tenant_id(request))
    if year is None:
        raise HttpError(404, "Fiscal year not found")
    return year


@router.post("/fiscal-years/{fiscal_year_id}/close", response={200: ClosingResultDTO, 202: dict}, auth=None)
def close_fiscal_year(request: HttpRequest, fiscal_year_id: UUID, payload: CloseFiscalYearIn, background: bool = False):
    """
    Close the fiscal year into retained earnings.

    With background=true the closing is queued and 202 is returned.
    """
    require_permission(request, Permissions.FINANCE_CLOSE)
    tenant_id = get_tenant_id(request)
    year = services.get_fiscal_year(fiscal_year_id, tenant_id)
    if year is None:
        raise HttpError(404, "Fiscal year not found")

    if background:
        task_id = TaskService.close_fiscal_year(year.id, user_id=request.user.id, rollover=payload.rollover)
        return 202, {"task_id": task_id}

    try:
        result = closing_service.close_fiscal_year(year.id, closed_by_id=request.user.id, tenant_id=tenant_id)
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.CLOSE_FISCAL_YEAR,
        target_type="FiscalYear",
        target_id=year.id,
        target_label=year.name,
        performed_by=request.user,
        context={"net_income": str(result.net_income)},
    )

    if payload.rollover:
        try:
            carried = closing_service.rollover_balances_to_next_year(
                year.id, created_by_id=request.user.id, tenant_id=tenant_id
            )
        except ValueError as e:
            raise HttpError(400, str(e))
        _log_rollover(request, year, carried)

    try:
        TaskService.generate_financial_statement(year.id)
    except Exception as e:
        logger.error(f"Statement for fiscal year {year.id} was not generated: {e}")
    return 200, result


def _log_rollover(request: HttpRequest, year, carried: RolloverResultDTO) -> None:
    log_action(
        tenant_id=year.tenant_id,
        action=AuditAction.ROLLOVER_FISCAL_YEAR,
        target_type="FiscalYear",
        target_id=year.id,
        target_label=year.name,
        performed_by=request.user,
        context={
            "next_fiscal_year_id": str(carried.next_fiscal_year_id),
            "accounts_carried": carried.accounts_carried,
        },
    )


@router.post("/fiscal-years/{fiscal_year_id}/rollover", response=RolloverResultDTO, auth=None)
def rollover_fiscal_year(request: HttpRequest, fiscal_year_id: UUID):
    require_permission(request, Permissions.FINANCE_CLOSE)
    tenant_id = get_tenant_id(request)
    year = services.get_fiscal_year(fiscal_year_id, tenant_id)
    if year is None:
        raise HttpError(404, "Fiscal year not found")

    try:
        carried = closing_service.rollover_balances_to_next_year(
            year.id, created_by_id=request.user.id, tenant_id=tenant_id
        )
    except ValueError as e:
        raise HttpError(400, str(e))
    _log_rollover(request, year, carried)
    return carried


@router.post("/periods/{period_id}/close", response=FiscalPeriodDTO, auth=None)
def close_period(request: HttpRequest, period_id: UUID):
    require_permission(request, Permissions.FINANCE_CLOSE)
    tenant_id = get_tenant_id(request)
    try:
        period = services.close_period(period_id, tenant_id, closed_by_id=request.user.id)
    except ValueError as e:
        raise HttpError(400, str(e))
    if period is None:
        raise HttpError(404, "Fiscal period not found")

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.CLOSE_PERIOD,
        target_type="FiscalPeriod",
        target_id=period.id,
        target_label=period.name,
        performed_by=request.user,
    )
    return period


@router.post("/periods/{period_id}/reopen", response=FiscalPeriodDTO, auth=None)
def reopen_period(request: HttpRequest, period_id: UUID):
    require_permission(request, Permissions.FINANCE_CLOSE)
    tenant_id = get_tenant_id(request)
    try:
        period = services.reopen_period(period_id, tenant_id)
    except ValueError as e:
        raise HttpError(400, str(e))
    if period is None:
        raise HttpError(404, "Fiscal period not found")

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.REOPEN_PERIOD,
        target_type="FiscalPeriod",
        target_id=period.id,
        target_label=period.name,
        performed_by=request.user,
    )
    return period


# =============================================================================
# Transactions
# =============================================================================

@router.get("/transactions", response=List[TransactionDTO], auth=None)
def list_transactions(
    request: HttpRequest,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
    entry_type: Optional[str] = None,
    limit: int = 200,
):
    require_permission(request, Permissions.FINANCE_VIEW)
    return services.list_transactions(
        get_tenant_id(request),
        start_date=start_date,
        end_date=end_date,
        status=status,
        entry_type=entry_type,
        limit=limit,
    )


@router.post("/transactions/journal", response=TransactionDTO, auth=None)
def post_journal_entry(request: HttpRequest, payload: JournalEntryIn):
    require_permission(request, Permissions.FINANCE_MANAGE)
    tenant_id = get_tenant_id(request)
    try:
        entry = services.post_journal_entry(
            tenant_id,
            payload.transaction_date,
            [line.dict() for line in payload.lines],
            description=payload.description,
            reference=payload.reference,
            created_by_id=request.user.id,
            post=payload.post,
        )
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.POST_JOURNAL_ENTRY,
        target_type="TransactionHeader",
        target_id=entry.id,
        target_label=entry.transaction_number,
        performed_by=request.user,
        context={"total": str(entry.total), "status": entry.status},
    )
    return entry


def _record(request: HttpRequest, payload: IncomeExpenseIn, kind: str) -> TransactionDTO:
    require_permission(request, Permissions.FINANCE_MANAGE)
    tenant_id = get_tenant_id(request)
    record = services.record_income if kind == 'income' else services.record_expense
    try:
        entry = record(tenant_id, created_by_id=request.user.id, **payload.dict())
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.RECORD_INCOME if kind == 'income' else AuditAction.RECORD_EXPENSE,
        target_type="TransactionHeader",
        target_id=entry.id,
        target_label=entry.transaction_number,
        performed_by=request.user,
        context={"amount": str(entry.total)},
    )
    return entry


@router.post("/transactions/income", response=TransactionDTO, auth=None)
def record_income(request: HttpRequest, payload: IncomeExpenseIn):
    """Record giving or other income: Dr source account, Cr revenue account."""
    return _record(request, payload, 'income')


@router.post("/transactions/expense", response=TransactionDTO, auth=None)
def record_expense(request: HttpRequest, payload: IncomeExpenseIn):
    """Record spending: Dr expense account, Cr source account."""
    return _record(request, payload, 'expense')


@router.get("/transactions/{transaction_id}", response=TransactionDTO, auth=None)
def get_transaction(request: HttpRequest, transaction_id: UUID):
    require_permission(request, Permissions.FINANCE_VIEW)
    entry = services.get_transaction(transaction_id, get_tenant_id(request))
    if entry is None:
        raise HttpError(404, "Transaction not found")
    return entry


@router.post("/transactions/{transaction_id}/post", response=TransactionDTO, auth=None)
def post_draft(request: HttpRequest, transaction_id: UUID):
    require_permission(request, Permissions.FINANCE_MANAGE)
    try:
        entry = services.post_draft(transaction_id, get_tenant_id(request), posted_by_id=request.user.id)
    except ValueError as e:
        raise HttpError(400, str(e))
    if entry is None:
        raise HttpError(404, "Transaction not found")
    return entry


@router.post("/transactions/{transaction_id}/void", response=TransactionDTO, auth=None)
def void_transaction(request: HttpRequest, transaction_id: UUID, payload: VoidIn):
    require_permission(request, Permissions.FINANCE_MANAGE)
    tenant_id = get_tenant_id(request)
    try:
        entry = services.void_transaction(transaction_id, tenant_id, voided_by_id=request.user.id, reason=payload.reason)
    except ValueError as e:
        raise HttpError(400, str(e))
    if entry is None:
        raise HttpError(404, "Transaction not found")

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.VOID_TRANSACTION,
        target_type="TransactionHeader",
        target_id=entry.id,
        target_label=entry.transaction_number,
        performed_by=request.user,
        context={"reason": payload.reason},
    )
    return entry


# =============================================================================
# Reports
# =============================================================================

@router.get("/reports/trial-balance", response=TrialBalanceDTO, auth=None)
def trial_balance(request: HttpRequest, end_date: date, start_date: Optional[date] = None):
    require_permission(request, Permissions.FINANCE_VIEW)
    return services.get_trial_balance(get_tenant_id(request), end_date, start_date=start_date)


@router.get("/reports/income-statement", response=IncomeStatementDTO, auth=None)
def income_statement(request: HttpRequest, start_date: date, end_date: date):
    require_permission(request, Permissions.FINANCE_VIEW)
    try:
        return services.get_income_statement(get_tenant_id(request), start_date, end_date)
    except ValueError as e:
        raise HttpError(400, str(e))


@router.get("/reports/balance-sheet", response=BalanceSheetDTO, auth=None)
def balance_sheet(request: HttpRequest, as_of: date):
    require_permission(request, Permissions.FINANCE_VIEW)
    return services.get_balance_sheet(get_tenant_id(request), as_of)


@router.get("/reports/financial-statement.pdf", auth=None)
def financial_statement_pdf(request: HttpRequest, start_date: date, end_date: date):
    """Download the financial statement for a date range as PDF."""
    require_permission(request, Permissions.FINANCE_VIEW)
    tenant_id = get_tenant_id(request)
    if end_date < start_date:
        raise HttpError(400, "End date cannot be before start date")
    tenant = Tenant.objects.filter(id=tenant_id).first()

    try:
        pdf_bytes = report_service.generate_financial_statement_pdf(
            tenant_id,
            start_date,
            end_date,
            church_name=tenant.name if tenant else "",
            church_address=tenant.address if tenant else "",
            currency=tenant.currency if tenant else "",
        )
    except ImportError as e:
        raise HttpError(503, str(e))

    response = HttpResponse(pdf_bytes, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="financial_statement_{start_date}_{end_date}.pdf"'
    return response
