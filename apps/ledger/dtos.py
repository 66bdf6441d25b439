"""DTOs for Ledger app - Data Transfer Objects for cross-app communication."""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID


@dataclass(frozen=True)
class AccountDTO:
    id: UUID
    code: str
    name: str
    account_type: str
    is_active: bool
    parent_id: Optional[UUID] = None
    description: str = ""


@dataclass(frozen=True)
class FundDTO:
    id: UUID
    name: str
    fund_type: str
    equity_account_id: Optional[UUID]
    is_active: bool
    description: str = ""


@dataclass(frozen=True)
class FinancialSourceDTO:
    id: UUID
    name: str
    source_type: str
    account_id: Optional[UUID]
    is_active: bool
    account_number: str = ""
    description: str = ""


@dataclass(frozen=True)
class CategoryDTO:
    id: UUID
    name: str
    category_type: str
    account_id: Optional[UUID]
    is_active: bool
    description: str = ""


@dataclass(frozen=True)
class FiscalPeriodDTO:
    id: UUID
    name: str
    start_date: date
    end_date: date
    status: str


@dataclass(frozen=True)
class FiscalYearDTO:
    id: UUID
    tenant_id: UUID
    name: str
    start_date: date
    end_date: date
    status: str
    closed_at: Optional[datetime] = None
    periods: List[FiscalPeriodDTO] = field(default_factory=list)


@dataclass(frozen=True)
class TransactionLineDTO:
    id: UUID
    account_id: UUID
    account_code: str
    account_name: str
    debit: Decimal
    credit: Decimal
    fund_id: Optional[UUID] = None
    description: str = ""


@dataclass(frozen=True)
class TransactionDTO:
    id: UUID
    tenant_id: UUID
    transaction_number: str
    transaction_date: date
    description: str
    reference: str
    status: str
    entry_type: str
    total: Decimal
    lines: List[TransactionLineDTO] = field(default_factory=list)
    category_id: Optional[UUID] = None
    source_id: Optional[UUID] = None
    posted_at: Optional[datetime] = None


@dataclass(frozen=True)
class TrialBalanceRowDTO:
    account_id: UUID
    account_code: str
    account_name: str
    account_type: str
    debit_total: Decimal
    credit_total: Decimal
    debit_balance: Decimal
    credit_balance: Decimal

    @property
    def net_debit(self) -> Decimal:
        return self.debit_balance - self.credit_balance


@dataclass(frozen=True)
class TrialBalanceDTO:
    end_date: date
    rows: List[TrialBalanceRowDTO]
    total_debit: Decimal
    total_credit: Decimal
    start_date: Optional[date] = None

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


@dataclass(frozen=True)
class StatementLineDTO:
    account_id: UUID
    account_code: str
    account_name: str
    amount: Decimal


@dataclass(frozen=True)
class IncomeStatementDTO:
    start_date: date
    end_date: date
    revenue: List[StatementLineDTO]
    expenses: List[StatementLineDTO]
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal


@dataclass(frozen=True)
class BalanceSheetDTO:
    as_of: date
    assets: List[StatementLineDTO]
    liabilities: List[StatementLineDTO]
    equity: List[StatementLineDTO]
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    # Revenue less expenses not yet closed into retained earnings
    unclosed_net_income: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.total_assets == self.total_liabilities + self.total_equity + self.unclosed_net_income


@dataclass(frozen=True)
class ClosingResultDTO:
    success: bool
    message: str
    net_income: Decimal
    closing_entry_id: Optional[UUID] = None


@dataclass(frozen=True)
class RolloverResultDTO:
    fiscal_year_id: UUID
    next_fiscal_year_id: UUID
    opening_entry_id: Optional[UUID]
    accounts_carried: int
