"""
API Schemas for Ledger app.
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from ninja import Schema


class AccountIn(Schema):
    code: str
    name: str
    account_type: str
    parent_id: Optional[UUID] = None
    description: str = ""


class AccountUpdateIn(Schema):
    name: Optional[str] = None
    account_type: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class FundIn(Schema):
    name: str
    fund_type: str = "unrestricted"
    equity_account_id: Optional[UUID] = None
    description: str = ""


class SourceIn(Schema):
    name: str
    source_type: str = "bank"
    account_id: Optional[UUID] = None
    account_number: str = ""
    description: str = ""


class CategoryIn(Schema):
    name: str
    category_type: str
    account_id: Optional[UUID] = None
    description: str = ""


class FiscalYearIn(Schema):
    name: str
    start_date: date
    end_date: date
    monthly_periods: bool = True


class CloseFiscalYearIn(Schema):
    rollover: bool = False


class JournalLineIn(Schema):
    account_id: UUID
    debit: Decimal = Decimal('0')
    credit: Decimal = Decimal('0')
    fund_id: Optional[UUID] = None
    description: str = ""


class JournalEntryIn(Schema):
    transaction_date: date
    lines: List[JournalLineIn]
    description: str = ""
    reference: str = ""
    post: bool = True


class IncomeExpenseIn(Schema):
    amount: Decimal
    transaction_date: date
    category_id: UUID
    source_id: UUID
    fund_id: Optional[UUID] = None
    description: str = ""
    reference: str = ""


class VoidIn(Schema):
    reason: str = ""
