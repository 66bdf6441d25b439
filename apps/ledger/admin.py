from django.contrib import admin
from .models import (
    Account,
    Fund,
    FinancialSource,
    Category,
    FiscalYear,
    FiscalPeriod,
    TransactionHeader,
    TransactionLine,
)


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'account_type', 'is_active', 'tenant_id']
    list_filter = ['account_type', 'is_active']
    search_fields = ['code', 'name']


@admin.register(Fund)
class FundAdmin(admin.ModelAdmin):
    list_display = ['name', 'fund_type', 'equity_account', 'is_active', 'tenant_id']
    list_filter = ['fund_type', 'is_active']
    search_fields = ['name']


@admin.register(FinancialSource)
class FinancialSourceAdmin(admin.ModelAdmin):
    list_display = ['name', 'source_type', 'account', 'is_active', 'tenant_id']
    list_filter = ['source_type', 'is_active']
    search_fields = ['name', 'account_number']


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'category_type', 'account', 'is_active', 'tenant_id']
    list_filter = ['category_type', 'is_active']
    search_fields = ['name', 'description']


class FiscalPeriodInline(admin.TabularInline):
    model = FiscalPeriod
    extra = 0
    fields = ['name', 'start_date', 'end_date', 'status']


@admin.register(FiscalYear)
class FiscalYearAdmin(admin.ModelAdmin):
    list_display = ['name', 'start_date', 'end_date', 'status', 'tenant_id']
    list_filter = ['status']
    readonly_fields = ['closed_at', 'closed_by_id', 'created_at']
    inlines = [FiscalPeriodInline]


class TransactionLineInline(admin.TabularInline):
    model = TransactionLine
    extra = 0
    fields = ['account', 'fund', 'debit', 'credit', 'description']


@admin.register(TransactionHeader)
class TransactionHeaderAdmin(admin.ModelAdmin):
    list_display = ['transaction_number', 'transaction_date', 'entry_type', 'status', 'tenant_id']
    list_filter = ['entry_type', 'status']
    search_fields = ['transaction_number', 'description', 'reference']
    date_hierarchy = 'transaction_date'
    readonly_fields = ['posted_at', 'voided_at', 'created_at']
    inlines = [TransactionLineInline]
