from django.contrib import admin
from .models import CarePlan, Member, MembershipStatus


@admin.register(MembershipStatus)
class MembershipStatusAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'sort_order', 'is_active', 'tenant_id']
    list_filter = ['is_active']


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display = ['last_name', 'first_name', 'email', 'contact_number', 'membership_date', 'tenant_id']
    search_fields = ['first_name', 'last_name', 'email']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(CarePlan)
class CarePlanAdmin(admin.ModelAdmin):
    list_display = ['id', 'member_id', 'status', 'priority', 'follow_up_at', 'is_active']
    list_filter = ['status', 'priority', 'is_active']
    date_hierarchy = 'follow_up_at'
