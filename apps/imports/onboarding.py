"""
Apply a parsed onboarding workbook to a tenant.

Everything runs in one transaction: a failing row rolls back the whole
import. Records that already exist (case-insensitive name, or email for
members) are skipped and counted.
"""
import logging
from collections import defaultdict
from typing import Dict, Optional
from uuid import UUID

from django.db import transaction

from apps.ledger import services as ledger_services
from apps.ledger.models import AccountType, CategoryType, SourceType
from apps.members import services as member_services

from .dtos import OnboardingImportResultDTO, ParsedImportData

logger = logging.getLogger(__name__)


OPENING_BALANCE_REFERENCE = 'ONBOARDING'


def _account_for(tenant_id: UUID, name: str, account_type: str) -> UUID:
    account = ledger_services.create_account(
        tenant_id,
        ledger_services.next_account_code(tenant_id, account_type),
        name,
        account_type,
    )
    return account.id


def _import_statuses(tenant_id, data, created, skipped):
    for row in data.membership_statuses:
        if member_services.find_status(tenant_id, row['name']):
            skipped['membership_statuses'] += 1
            continue
        member_services.create_status(tenant_id, row['name'], row.get('description', ''))
        created['membership_statuses'] += 1


def _import_sources(tenant_id, data, created, skipped):
    for row in data.financial_sources:
        if ledger_services.find_source(tenant_id, row['name']):
            skipped['financial_sources'] += 1
            continue
        ledger_services.create_source(
            tenant_id,
            row['name'],
            source_type=row.get('source_type') or SourceType.OTHER,
            account_id=_account_for(tenant_id, row['name'], AccountType.ASSET),
            description=row.get('description', ''),
        )
        created['financial_sources'] += 1


def _import_funds(tenant_id, data, created, skipped):
    for row in data.funds:
        if ledger_services.find_fund(tenant_id, row['name']):
            skipped['funds'] += 1
            continue
        ledger_services.create_fund(
            tenant_id,
            row['name'],
            fund_type=row['fund_type'],
            equity_account_id=_account_for(tenant_id, f"{row['name']} Balance", AccountType.EQUITY),
            description=row.get('description', ''),
        )
        created['funds'] += 1


CATEGORY_SHEETS = (
    ('income_categories', CategoryType.INCOME, AccountType.REVENUE),
    ('expense_categories', CategoryType.EXPENSE, AccountType.EXPENSE),
    ('budget_categories', CategoryType.BUDGET, None),
)


def _import_categories(tenant_id, data, created, skipped):
    for attribute, category_type, account_type in CATEGORY_SHEETS:
        for row in getattr(data, attribute):
            if ledger_services.find_category(tenant_id, category_type, row['name']):
                skipped[attribute] += 1
                continue
            account_id = _account_for(tenant_id, row['name'], account_type) if account_type else None
            ledger_services.create_category(
                tenant_id, row['name'], category_type,
                account_id=account_id, description=row.get('description', ''),
            )
            created[attribute] += 1


def _import_members(tenant_id, data, user_id, created, skipped):
    for row in data.members:
        if row.get('email') and member_services.email_in_use(tenant_id, row['email']):
            skipped['members'] += 1
            continue
        status = member_services.find_status(tenant_id, row.get('membership_status'))
        member_services.create_member(tenant_id, {
            'first_name': row['first_name'],
            'middle_name': row.get('middle_name') or '',
            'last_name': row['last_name'],
            'email': row.get('email') or '',
            'contact_number': row.get('contact_number') or '',
            'address_street': row.get('address_street') or '',
            'address_city': row.get('address_city') or '',
            'address_state': row.get('address_state') or '',
            'address_postal_code': row.get('address_postal_code') or '',
            'address_country': row.get('address_country') or '',
            'birthday': row.get('birthdate'),
            'membership_status_id': status.id if status else None,
        }, created_by_id=user_id)
        created['members'] += 1


def _import_opening_balances(tenant_id, data, user_id, created, skipped):
    numbers = []
    for row in data.opening_balances:
        fund = ledger_services.find_fund(tenant_id, row['fund_name'])
        source = ledger_services.find_source(tenant_id, row['source_name'])
        if fund is None:
            raise ValueError(f"Opening balance row {row['row_number']}: fund '{row['fund_name']}' not found")
        if source is None:
            raise ValueError(f"Opening balance row {row['row_number']}: financial source '{row['source_name']}' not found")
        if fund.equity_account_id is None or source.account_id is None:
            raise ValueError(
                f"Opening balance row {row['row_number']}: {fund.name} and {source.name} must both have ledger accounts"
            )
        if not row['amount']:
            skipped['opening_balances'] += 1
            continue

        year = ledger_services.fiscal_year_for_date(tenant_id, row['as_of_date'])
        if year is not None and year.is_closed:
            raise ValueError(f"Opening balance row {row['row_number']}: fiscal year {year.name} is closed")

        header = ledger_services.create_entry(
            tenant_id,
            row['as_of_date'],
            [
                {'account_id': source.account_id, 'debit': row['amount'], 'fund_id': fund.id},
                {'account_id': fund.equity_account_id, 'credit': row['amount'], 'fund_id': fund.id},
            ],
            prefix=ledger_services.TRANSACTION_PREFIXES['journal'],
            description=f"Opening balance: {fund.name} / {source.name}",
            reference=OPENING_BALANCE_REFERENCE,
            user_id=user_id,
            source=source,
            fiscal_year=year,
        )
        numbers.append(header.transaction_number)
        created['opening_balances'] += 1
    return numbers


def apply_onboarding_import(
    tenant_id: UUID,
    data: ParsedImportData,
    user_id: Optional[UUID] = None,
) -> OnboardingImportResultDTO:
    """
    Create the workbook's statuses, sources, funds, categories, members and
    opening balances. Raises ValueError and rolls back if any row fails.
    """
    created: Dict[str, int] = defaultdict(int)
    skipped: Dict[str, int] = defaultdict(int)

    with transaction.atomic():
        _import_statuses(tenant_id, data, created, skipped)
        _import_sources(tenant_id, data, created, skipped)
        _import_funds(tenant_id, data, created, skipped)
        _import_categories(tenant_id, data, created, skipped)
        _import_members(tenant_id, data, user_id, created, skipped)
        entries = _import_opening_balances(tenant_id, data, user_id, created, skipped)

    logger.info(f"Applied onboarding import for tenant {tenant_id}: created {dict(created)}, skipped {dict(skipped)}")
    return OnboardingImportResultDTO(created=dict(created), skipped=dict(skipped), opening_balance_entries=entries)
