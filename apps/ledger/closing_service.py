"""
Fiscal year closing and balance rollover.

Closing a year:
    1. Every period of the year must already be closed.
    2. Revenue and expense balances (cumulative through the year end) are
       zeroed into the retained earnings account in one closing entry.
    3. The year is marked closed.

Rollover carries asset, liability and equity balances into the following
year as a single opening entry dated on its first day.
"""
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta
from django.db import transaction
from django.utils import timezone

from .dtos import ClosingResultDTO, RolloverResultDTO
from .models import (
    AccountType, BALANCE_SHEET_TYPES, EntryType, FiscalStatus, FiscalYear, TransactionStatus,
)
from . import services

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


def _fiscal_year_or_raise(fiscal_year_id: UUID, tenant_id: Optional[UUID] = None) -> FiscalYear:
    year = services.get_fiscal_year(fiscal_year_id, tenant_id)
    if year is None:
        raise ValueError("Fiscal year not found")
    return year


def close_fiscal_year(
    fiscal_year_id: UUID,
    closed_by_id: Optional[UUID] = None,
    tenant_id: Optional[UUID] = None,
) -> ClosingResultDTO:
    """
    Close a fiscal year. Raises ValueError when the year cannot be closed.
    """
    year = _fiscal_year_or_raise(fiscal_year_id, tenant_id)
    tenant_id = year.tenant_id

    open_periods = year.periods.filter(status=FiscalStatus.OPEN).count()
    if open_periods:
        raise ValueError(
            f"Cannot close fiscal year: {open_periods} period(s) are still open. Close all periods first."
        )
    if year.is_closed:
        raise ValueError("Fiscal year is already closed")

    retained_earnings = services.find_retained_earnings_account(tenant_id)
    if retained_earnings is None:
        raise ValueError(
            'Cannot find retained earnings account. '
            'Please create an equity account named "Retained Earnings" first.'
        )

    trial = services.get_trial_balance(tenant_id, year.end_date)

    lines = []
    total_revenue = ZERO
    total_expenses = ZERO
    for row in trial.rows:
        if row.account_type == AccountType.REVENUE:
            balance = -row.net_debit
            total_revenue += balance
            if balance:
                lines.append({
                    'account_id': row.account_id,
                    'debit': balance if balance > 0 else ZERO,
                    'credit': -balance if balance < 0 else ZERO,
                    'description': f"Close revenue: {row.account_name}",
                })
        elif row.account_type == AccountType.EXPENSE:
            balance = row.net_debit
            total_expenses += balance
            if balance:
                lines.append({
                    'account_id': row.account_id,
                    'debit': -balance if balance < 0 else ZERO,
                    'credit': balance if balance > 0 else ZERO,
                    'description': f"Close expense: {row.account_name}",
                })

    net_income = total_revenue - total_expenses
    result_word = 'income' if net_income >= 0 else 'loss'
    if net_income:
        lines.append({
            'account_id': retained_earnings.id,
            'debit': -net_income if net_income < 0 else ZERO,
            'credit': net_income if net_income > 0 else ZERO,
            'description': f"Transfer net {result_word} to retained earnings",
        })

    with transaction.atomic():
        closing_entry = None
        if lines:
            closing_entry = services.create_entry(
                tenant_id,
                year.end_date,
                lines,
                prefix=services.TRANSACTION_PREFIXES[EntryType.CLOSING],
                number_date=timezone.localdate(),
                description=f"Year-end closing entries for {year.name}",
                reference=f"FY-CLOSE-{year.name}",
                entry_type=EntryType.CLOSING,
                user_id=closed_by_id,
                fiscal_year=year,
            )

        year.status = FiscalStatus.CLOSED
        year.closed_at = timezone.now()
        year.closed_by_id = closed_by_id
        year.save(update_fields=['status', 'closed_at', 'closed_by_id'])

    message = f'Fiscal year "{year.name}" closed successfully. Net {result_word}: {abs(net_income):.2f}'
    logger.info(f"Tenant {tenant_id}: {message}")
    return ClosingResultDTO(
        success=True,
        message=message,
        net_income=net_income,
        closing_entry_id=closing_entry.id if closing_entry else None,
    )


def rollover_balances_to_next_year(
    fiscal_year_id: UUID,
    created_by_id: Optional[UUID] = None,
    tenant_id: Optional[UUID] = None,
) -> RolloverResultDTO:
    """
    Open the year after a closed fiscal year and carry balance sheet
    balances into it. An existing year starting the next day is reused.
    """
    year = _fiscal_year_or_raise(fiscal_year_id, tenant_id)
    tenant_id = year.tenant_id
    if not year.is_closed:
        raise ValueError("Close the fiscal year before rolling balances forward")

    next_start = year.end_date + timedelta(days=1)
    next_end = next_start + relativedelta(years=1) - timedelta(days=1)

    trial = services.get_trial_balance(tenant_id, year.end_date)
    lines = []
    for row in trial.rows:
        if row.account_type not in BALANCE_SHEET_TYPES:
            continue
        balance = row.net_debit
        if balance:
            lines.append({
                'account_id': row.account_id,
                'debit': balance if balance > 0 else ZERO,
                'credit': -balance if balance < 0 else ZERO,
                'description': f"Opening balance: {row.account_name}",
            })

    with transaction.atomic():
        next_year = FiscalYear.objects.filter(tenant_id=tenant_id, start_date=next_start).first()
        if next_year is None:
            created = services.create_fiscal_year(
                tenant_id=tenant_id,
                name=f"FY {next_start.year}",
                start_date=next_start,
                end_date=next_end,
                created_by_id=created_by_id,
            )
            next_year = FiscalYear.objects.get(id=created.id)
        elif next_year.entries.filter(entry_type=EntryType.OPENING).exclude(status=TransactionStatus.VOIDED).exists():
            raise ValueError(f"Balances have already been rolled over into {next_year.name}")

        opening_entry = None
        if lines:
            opening_entry = services.create_entry(
                tenant_id,
                next_start,
                lines,
                prefix=services.TRANSACTION_PREFIXES[EntryType.OPENING],
                description=f"Opening balances for {next_year.name}",
                reference=f"FY-OPEN-{next_start.year}",
                entry_type=EntryType.OPENING,
                user_id=created_by_id,
                fiscal_year=next_year,
            )

    logger.info(
        f"Rolled {len(lines)} balances from {year.name} into {next_year.name} for tenant {tenant_id}"
    )
    return RolloverResultDTO(
        fiscal_year_id=year.id,
        next_fiscal_year_id=next_year.id,
        opening_entry_id=opening_entry.id if opening_entry else None,
        accounts_carried=len(lines),
    )
