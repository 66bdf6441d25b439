import uuid
from django.db import models


class NotificationPriority(models.TextChoices):
    LOW = 'low', 'Low'
    NORMAL = 'normal', 'Normal'
    HIGH = 'high', 'High'
    URGENT = 'urgent', 'Urgent'


class NotificationCategory(models.TextChoices):
    CARE = 'care', 'Pastoral Care'
    SCHEDULE = 'schedule', 'Schedule'
    FINANCE = 'finance', 'Finance'
    SYSTEM = 'system', 'System'


class Notification(models.Model):
    """
    In-app notification addressed to a single user.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)
    recipient_id = models.UUIDField(db_index=True)  # identity.User reference

    category = models.CharField(
        max_length=20,
        choices=NotificationCategory.choices,
        default=NotificationCategory.SYSTEM,
    )
    priority = models.CharField(
        max_length=10,
        choices=NotificationPriority.choices,
        default=NotificationPriority.NORMAL,
    )
    title = models.CharField(max_length=200)
    message = models.TextField(blank=True)
    action_url = models.CharField(max_length=500, blank=True)
    payload = models.JSONField(default=dict, blank=True)

    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient_id', 'read_at']),
        ]

    def __str__(self):
        return f"{self.title} -> {self.recipient_id}"

    @property
    def is_read(self) -> bool:
        return self.read_at is not None
