import uuid
from decimal import Decimal
from django.db import models


class AccountType(models.TextChoices):
    ASSET = 'asset', 'Asset'
    LIABILITY = 'liability', 'Liability'
    EQUITY = 'equity', 'Equity'
    REVENUE = 'revenue', 'Revenue'
    EXPENSE = 'expense', 'Expense'


# Account types whose balance is carried into the next fiscal year
BALANCE_SHEET_TYPES = (AccountType.ASSET, AccountType.LIABILITY, AccountType.EQUITY)
DEBIT_NORMAL_TYPES = (AccountType.ASSET, AccountType.EXPENSE)


class FundType(models.TextChoices):
    UNRESTRICTED = 'unrestricted', 'Unrestricted'
    RESTRICTED = 'restricted', 'Restricted'


class SourceType(models.TextChoices):
    BANK = 'bank', 'Bank'
    CASH = 'cash', 'Cash'
    ONLINE = 'online', 'Online'
    WALLET = 'wallet', 'E-Wallet'
    FUND = 'fund', 'Fund'
    OTHER = 'other', 'Other'


class CategoryType(models.TextChoices):
    INCOME = 'income', 'Income'
    EXPENSE = 'expense', 'Expense'
    BUDGET = 'budget', 'Budget'


class FiscalStatus(models.TextChoices):
    OPEN = 'open', 'Open'
    CLOSED = 'closed', 'Closed'


class TransactionStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    POSTED = 'posted', 'Posted'
    VOIDED = 'voided', 'Voided'


class EntryType(models.TextChoices):
    STANDARD = 'standard', 'Standard'
    CLOSING = 'closing', 'Year-end Closing'
    OPENING = 'opening', 'Opening Balance (Rollover)'


class Account(models.Model):
    """
    Chart of accounts entry.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)

    code = models.CharField(max_length=20)
    name = models.CharField(max_length=150)
    account_type = models.CharField(max_length=10, choices=AccountType.choices)
    parent = models.ForeignKey('self', null=True, blank=True, on_delete=models.SET_NULL, related_name='children')
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['code']
        unique_together = ['tenant_id', 'code']

    def __str__(self):
        return f"{self.code} {self.name}"

    @property
    def is_debit_normal(self) -> bool:
        return self.account_type in DEBIT_NORMAL_TYPES


class Fund(models.Model):
    """
    Pool of money tracked separately (General Fund, Building Fund, ...).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)

    name = models.CharField(max_length=150)
    fund_type = models.CharField(max_length=15, choices=FundType.choices, default=FundType.UNRESTRICTED)
    equity_account = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name='funds')
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        unique_together = ['tenant_id', 'name']

    def __str__(self):
        return self.name


class FinancialSource(models.Model):
    """
    Where money is held or received (bank account, cash box, online giving).
    Backed by an asset account.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)

    name = models.CharField(max_length=150)
    source_type = models.CharField(max_length=10, choices=SourceType.choices, default=SourceType.BANK)
    account = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name='sources')
    account_number = models.CharField(max_length=50, blank=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        unique_together = ['tenant_id', 'name']

    def __str__(self):
        return self.name


class Category(models.Model):
    """
    Income, expense or budget category. Income and expense categories post
    to a revenue or expense account.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)

    name = models.CharField(max_length=150)
    category_type = models.CharField(max_length=10, choices=CategoryType.choices)
    account = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name='categories')
    description = models.TextField(blank=True)
    sort_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['category_type', 'sort_order', 'name']
        unique_together = ['tenant_id', 'category_type', 'name']
        verbose_name_plural = "Categories"

    def __str__(self):
        return f"{self.name} ({self.category_type})"


class FiscalYear(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)

    name = models.CharField(max_length=50)
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(max_length=10, choices=FiscalStatus.choices, default=FiscalStatus.OPEN)
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by_id = models.UUIDField(null=True, blank=True)
    created_by_id = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-start_date']

    def __str__(self):
        return self.name

    @property
    def is_closed(self) -> bool:
        return self.status == FiscalStatus.CLOSED


class FiscalPeriod(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)
    fiscal_year = models.ForeignKey(FiscalYear, on_delete=models.CASCADE, related_name='periods')

    name = models.CharField(max_length=50)
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(max_length=10, choices=FiscalStatus.choices, default=FiscalStatus.OPEN)
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by_id = models.UUIDField(null=True, blank=True)

    class Meta:
        ordering = ['start_date']

    def __str__(self):
        return f"{self.fiscal_year.name} / {self.name}"


class TransactionHeader(models.Model):
    """
    A journal entry. Its lines must balance before it can be posted.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)

    transaction_number = models.CharField(max_length=40)
    transaction_date = models.DateField(db_index=True)
    description = models.CharField(max_length=255, blank=True)
    reference = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=10, choices=TransactionStatus.choices, default=TransactionStatus.DRAFT)
    entry_type = models.CharField(max_length=10, choices=EntryType.choices, default=EntryType.STANDARD)

    fiscal_year = models.ForeignKey(FiscalYear, null=True, blank=True, on_delete=models.SET_NULL, related_name='entries')
    category = models.ForeignKey(Category, null=True, blank=True, on_delete=models.SET_NULL, related_name='entries')
    source = models.ForeignKey(FinancialSource, null=True, blank=True, on_delete=models.SET_NULL, related_name='entries')

    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by_id = models.UUIDField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    voided_by_id = models.UUIDField(null=True, blank=True)
    void_reason = models.TextField(blank=True)
    created_by_id = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-transaction_date', '-created_at']
        unique_together = ['tenant_id', 'transaction_number']

    def __str__(self):
        return f"{self.transaction_number} ({self.status})"

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines.all()), Decimal('0.00'))

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines.all()), Decimal('0.00'))


class TransactionLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)
    header = models.ForeignKey(TransactionHeader, on_delete=models.CASCADE, related_name='lines')

    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='lines')
    fund = models.ForeignKey(Fund, null=True, blank=True, on_delete=models.SET_NULL, related_name='lines')
    debit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    credit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    description = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ['-debit', 'credit']

    def __str__(self):
        return f"{self.account.code} Dr {self.debit} Cr {self.credit}"
