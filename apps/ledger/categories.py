"""
Default chart of accounts, funds, financial sources and categories for the Ledger app.
These are seeded for new churches during onboarding.
"""
from typing import List, Dict


RETAINED_EARNINGS_CODE = '3000'


# Default Chart of Accounts for churches
CHART_OF_ACCOUNTS: List[Dict[str, str]] = [
    # Assets
    {'code': '1000', 'name': 'Cash on Hand', 'account_type': 'asset'},
    {'code': '1010', 'name': 'Checking Account', 'account_type': 'asset'},
    {'code': '1020', 'name': 'Savings Account', 'account_type': 'asset'},
    {'code': '1030', 'name': 'Online Giving Clearing', 'account_type': 'asset'},
    {'code': '1500', 'name': 'Property and Equipment', 'account_type': 'asset'},
    # Liabilities
    {'code': '2000', 'name': 'Accounts Payable', 'account_type': 'liability'},
    {'code': '2100', 'name': 'Payroll Liabilities', 'account_type': 'liability'},
    # Equity
    {'code': RETAINED_EARNINGS_CODE, 'name': 'Retained Earnings', 'account_type': 'equity'},
    {'code': '3100', 'name': 'General Fund Balance', 'account_type': 'equity'},
    {'code': '3200', 'name': 'Building Fund Balance', 'account_type': 'equity'},
    {'code': '3300', 'name': 'Missions Fund Balance', 'account_type': 'equity'},
    # Revenue
    {'code': '4000', 'name': 'Tithes', 'account_type': 'revenue'},
    {'code': '4010', 'name': 'Offerings', 'account_type': 'revenue'},
    {'code': '4020', 'name': 'Designated Gifts', 'account_type': 'revenue'},
    {'code': '4030', 'name': 'Fundraising Income', 'account_type': 'revenue'},
    {'code': '4090', 'name': 'Other Income', 'account_type': 'revenue'},
    # Expenses
    {'code': '5000', 'name': 'Salaries and Benefits', 'account_type': 'expense'},
    {'code': '5010', 'name': 'Utilities', 'account_type': 'expense'},
    {'code': '5020', 'name': 'Ministry Programs', 'account_type': 'expense'},
    {'code': '5030', 'name': 'Missions Support', 'account_type': 'expense'},
    {'code': '5040', 'name': 'Building Maintenance', 'account_type': 'expense'},
    {'code': '5050', 'name': 'Office Supplies', 'account_type': 'expense'},
    {'code': '5060', 'name': 'Benevolence', 'account_type': 'expense'},
    {'code': '5090', 'name': 'Other Expenses', 'account_type': 'expense'},
]


DEFAULT_FUNDS: List[Dict[str, str]] = [
    {
        'name': 'General Fund',
        'fund_type': 'unrestricted',
        'equity_account_code': '3100',
        'description': 'Day-to-day operations of the church',
    },
    {
        'name': 'Building Fund',
        'fund_type': 'restricted',
        'equity_account_code': '3200',
        'description': 'Gifts designated for facilities and construction',
    },
    {
        'name': 'Missions Fund',
        'fund_type': 'restricted',
        'equity_account_code': '3300',
        'description': 'Gifts designated for missionaries and outreach',
    },
]


DEFAULT_SOURCES: List[Dict[str, str]] = [
    {'name': 'Cash on Hand', 'source_type': 'cash', 'account_code': '1000'},
    {'name': 'Bank Account', 'source_type': 'bank', 'account_code': '1010'},
    {'name': 'Online Giving', 'source_type': 'online', 'account_code': '1030'},
]


# Default Income Categories for churches
INCOME_CATEGORIES: List[Dict[str, str]] = [
    {
        'name': 'Tithes',
        'account_code': '4000',
        'description': 'Regular tithes from members and attendees'
    },
    {
        'name': 'Offerings',
        'account_code': '4010',
        'description': 'Loose and envelope offerings during services'
    },
    {
        'name': 'Designated Gifts',
        'account_code': '4020',
        'description': 'Gifts given for a specific purpose or fund'
    },
    {
        'name': 'Fundraising',
        'account_code': '4030',
        'description': 'Proceeds from church fundraising events'
    },
    {
        'name': 'Other Income',
        'account_code': '4090',
        'description': 'Miscellaneous income not categorized elsewhere'
    },
]


# Default Expense Categories for churches
EXPENSE_CATEGORIES: List[Dict[str, str]] = [
    {
        'name': 'Salaries and Benefits',
        'account_code': '5000',
        'description': 'Compensation for pastors and church staff'
    },
    {
        'name': 'Utilities',
        'account_code': '5010',
        'description': 'Electricity, water and internet for church facilities'
    },
    {
        'name': 'Ministry Programs',
        'account_code': '5020',
        'description': 'Supplies and costs of ministry activities'
    },
    {
        'name': 'Missions Support',
        'account_code': '5030',
        'description': 'Support sent to missionaries and partner churches'
    },
    {
        'name': 'Building Maintenance',
        'account_code': '5040',
        'description': 'Repairs and upkeep of church property'
    },
    {
        'name': 'Office Supplies',
        'account_code': '5050',
        'description': 'Stationery, printing materials, and office consumables'
    },
    {
        'name': 'Benevolence',
        'account_code': '5060',
        'description': 'Assistance given to members and the community in need'
    },
    {
        'name': 'Other Expenses',
        'account_code': '5090',
        'description': 'Miscellaneous expenses not categorized elsewhere'
    },
]


# Budget categories track planned spending and carry no account
BUDGET_CATEGORIES: List[Dict[str, str]] = [
    {'name': 'Operations Budget', 'description': 'Planned operating costs'},
    {'name': 'Ministry Budget', 'description': 'Planned ministry spending'},
    {'name': 'Missions Budget', 'description': 'Planned missions giving'},
]


def get_all_default_categories() -> Dict[str, List[Dict[str, str]]]:
    """
    Returns all default categories organized by type.

    Returns:
        Dict with 'income', 'expense' and 'budget' keys containing category lists
    """
    return {
        'income': INCOME_CATEGORIES,
        'expense': EXPENSE_CATEGORIES,
        'budget': BUDGET_CATEGORIES,
    }
