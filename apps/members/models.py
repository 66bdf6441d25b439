import uuid
from django.db import models


class Gender(models.TextChoices):
    MALE = 'male', 'Male'
    FEMALE = 'female', 'Female'
    OTHER = 'other', 'Other'


class MaritalStatus(models.TextChoices):
    SINGLE = 'single', 'Single'
    MARRIED = 'married', 'Married'
    WIDOWED = 'widowed', 'Widowed'
    DIVORCED = 'divorced', 'Divorced'
    ENGAGED = 'engaged', 'Engaged'


class CarePlanStatus(models.TextChoices):
    NEW = 'new', 'New'
    ACTIVE = 'active', 'Active'
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    CLOSED = 'closed', 'Closed'


class CarePlanPriority(models.TextChoices):
    LOW = 'low', 'Low'
    NORMAL = 'normal', 'Normal'
    HIGH = 'high', 'High'
    URGENT = 'urgent', 'Urgent'
    CRITICAL = 'critical', 'Critical'


class MembershipStatus(models.Model):
    """
    Tenant-defined membership stage (Active, Visitor, New Member, ...).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)

    code = models.CharField(max_length=50)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    sort_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['sort_order', 'name']
        unique_together = ['tenant_id', 'code']
        verbose_name_plural = "Membership Statuses"

    def __str__(self):
        return self.name


class Member(models.Model):
    """
    A person in the church directory. Soft-deleted via deleted_at.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)
    # Linked login, if the member has one (identity.User reference)
    user_id = models.UUIDField(null=True, blank=True, db_index=True)

    first_name = models.CharField(max_length=100)
    middle_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100)
    preferred_name = models.CharField(max_length=100, blank=True)

    email = models.EmailField(blank=True, db_index=True)
    contact_number = models.CharField(max_length=30, blank=True)
    gender = models.CharField(max_length=10, choices=Gender.choices, blank=True)
    marital_status = models.CharField(max_length=10, choices=MaritalStatus.choices, blank=True)
    birthday = models.DateField(null=True, blank=True)
    anniversary = models.DateField(null=True, blank=True)
    occupation = models.CharField(max_length=100, blank=True)

    address_street = models.CharField(max_length=255, blank=True)
    address_city = models.CharField(max_length=100, blank=True)
    address_state = models.CharField(max_length=100, blank=True)
    address_postal_code = models.CharField(max_length=20, blank=True)
    address_country = models.CharField(max_length=100, blank=True)

    membership_status_id = models.UUIDField(null=True, blank=True, db_index=True)
    membership_date = models.DateField(null=True, blank=True)
    tags = models.JSONField(default=list, blank=True)

    created_by_id = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return self.full_name

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class CarePlan(models.Model):
    """
    Pastoral care tracking for a member: who is caring for them, how
    urgent it is and when the next follow-up is due.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)
    member_id = models.UUIDField(db_index=True)  # Member reference

    status = models.CharField(
        max_length=20,
        choices=CarePlanStatus.choices,
        default=CarePlanStatus.NEW,
    )
    priority = models.CharField(
        max_length=10,
        choices=CarePlanPriority.choices,
        default=CarePlanPriority.NORMAL,
    )
    # Caregiver: a member of the church and/or a user account
    assigned_to_member_id = models.UUIDField(null=True, blank=True, db_index=True)
    assigned_to_user_id = models.UUIDField(null=True, blank=True, db_index=True)

    details = models.TextField(blank=True)
    follow_up_at = models.DateField(null=True, blank=True, db_index=True)
    is_active = models.BooleanField(default=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    last_reminded_on = models.DateField(null=True, blank=True)

    created_by_id = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Care plan {self.id} ({self.status}/{self.priority})"
