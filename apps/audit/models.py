import uuid
from django.conf import settings
from django.db import models


class AuditLog(models.Model):
    """
    Audit trail for critical actions (role changes, fiscal year closing,
    imports, deletions). Keeps a record of who did what and when.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)

    action = models.CharField(max_length=50, help_text="Action performed (e.g., CLOSE_FISCAL_YEAR)")
    target_type = models.CharField(max_length=50, help_text="Type of object acted on (e.g., FiscalYear)")
    target_id = models.UUIDField(help_text="ID of the object acted on")
    target_label = models.CharField(max_length=255, blank=True, help_text="Human-readable label of the object")

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    performed_at = models.DateTimeField(auto_now_add=True, db_index=True)
    context = models.JSONField(default=dict, blank=True, help_text="Additional context/metadata")

    class Meta:
        ordering = ['-performed_at']
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"

    def __str__(self):
        return f"{self.action} on {self.target_type} by {self.performed_by}"
