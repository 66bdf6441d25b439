from django.contrib import admin
from .models import Tenant


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ['name', 'denomination', 'timezone', 'currency', 'fiscal_year_start_month', 'is_active']
    list_filter = ['is_active', 'currency']
    search_fields = ['name', 'contact_email']
