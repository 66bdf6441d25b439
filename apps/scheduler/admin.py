from django.contrib import admin
from .models import MinistrySchedule, ScheduleOccurrence


@admin.register(MinistrySchedule)
class MinistryScheduleAdmin(admin.ModelAdmin):
    list_display = ['name', 'schedule_type', 'start_time', 'recurrence_rule', 'is_active', 'tenant_id']
    list_filter = ['schedule_type', 'is_active']
    search_fields = ['name']


@admin.register(ScheduleOccurrence)
class ScheduleOccurrenceAdmin(admin.ModelAdmin):
    list_display = ['schedule', 'occurrence_date', 'start_at', 'status']
    list_filter = ['status']
    date_hierarchy = 'occurrence_date'
