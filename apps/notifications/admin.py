from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'category', 'priority', 'recipient_id', 'read_at', 'created_at']
    list_filter = ['category', 'priority']
    search_fields = ['title', 'message']
