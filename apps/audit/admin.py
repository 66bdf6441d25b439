from django.contrib import admin
from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['action', 'target_type', 'target_label', 'performed_by', 'performed_at', 'tenant_id']
    list_filter = ['action', 'target_type']
    search_fields = ['target_label']
    readonly_fields = ['performed_at']
