import uuid
from django.conf import settings
from django.db import models
from django.contrib.auth.models import AbstractUser


class RoleScope(models.TextChoices):
    SYSTEM = 'system', 'System'
    TENANT = 'tenant', 'Tenant'
    CAMPUS = 'campus', 'Campus'
    MINISTRY = 'ministry', 'Ministry'


# Scopes whose assignments must name the campus/ministry they apply to
SCOPED_ROLE_SCOPES = (RoleScope.CAMPUS, RoleScope.MINISTRY)


class User(AbstractUser):
    """
    Custom User model bound to a single tenant (church).
    Permissions come from role assignments, not from a column on the user.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # Store tenant_id as UUID field (no FK to maintain app independence)
    tenant_id = models.UUIDField(null=True, blank=True, db_index=True)
    phone = models.CharField(max_length=20, blank=True)

    class Meta:
        ordering = ['username']

    def __str__(self):
        return self.email or self.username


class Role(models.Model):
    """
    A named bundle of permission codes.

    System roles (tenant_id is null) are visible to every tenant and are
    read-only; tenant roles are seeded from templates during onboarding
    and may be customized afterwards.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(null=True, blank=True, db_index=True)

    code = models.CharField(max_length=50)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    scope = models.CharField(
        max_length=20,
        choices=RoleScope.choices,
        default=RoleScope.TENANT,
    )
    is_system = models.BooleanField(default=False)
    permissions = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        unique_together = ['tenant_id', 'code']

    def __str__(self):
        return f"{self.name} ({self.scope})"


class UserRoleAssignment(models.Model):
    """
    Grants a role to a user, optionally limited to one campus or ministry.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='role_assignments',
    )
    role = models.ForeignKey(
        Role,
        on_delete=models.PROTECT,
        related_name='assignments',
    )
    tenant_id = models.UUIDField(db_index=True)
    # Campus or ministry the assignment is limited to (null = whole tenant)
    scope_id = models.UUIDField(null=True, blank=True, db_index=True)

    assigned_by_id = models.UUIDField(null=True, blank=True)
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-assigned_at']
        unique_together = ['user', 'role', 'scope_id']

    def __str__(self):
        return f"{self.user} -> {self.role.code}"
