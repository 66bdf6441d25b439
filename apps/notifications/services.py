"""
Services for Notifications app.
Other apps create notifications through notify(); delivery is in-app only.
"""
import logging
from typing import List, Optional
from uuid import UUID

from django.utils import timezone

from .dtos import NotificationDTO
from .models import Notification, NotificationCategory, NotificationPriority

logger = logging.getLogger(__name__)


def _to_dto(notification: Notification) -> NotificationDTO:
    return NotificationDTO(
        id=notification.id,
        tenant_id=notification.tenant_id,
        recipient_id=notification.recipient_id,
        category=notification.category,
        priority=notification.priority,
        title=notification.title,
        message=notification.message,
        action_url=notification.action_url,
        created_at=notification.created_at,
        read_at=notification.read_at,
        payload=notification.payload,
    )


def notify(
    *,
    tenant_id: UUID,
    recipient_id: UUID,
    title: str,
    message: str = "",
    category: str = NotificationCategory.SYSTEM,
    priority: str = NotificationPriority.NORMAL,
    action_url: str = "",
    payload: Optional[dict] = None,
) -> NotificationDTO:
    if priority not in NotificationPriority.values:
        raise ValueError(f"Invalid notification priority: {priority}")
    if category not in NotificationCategory.values:
        raise ValueError(f"Invalid notification category: {category}")

    notification = Notification.objects.create(
        tenant_id=tenant_id,
        recipient_id=recipient_id,
        title=title[:200],
        message=message,
        category=category,
        priority=priority,
        action_url=action_url,
        payload=payload or {},
    )
    logger.info(f"Notification {notification.id} ({category}) sent to user {recipient_id}")
    return _to_dto(notification)


def list_for_user(
    tenant_id: UUID,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = 50,
) -> List[NotificationDTO]:
    qs = Notification.objects.filter(tenant_id=tenant_id, recipient_id=user_id)
    if unread_only:
        qs = qs.filter(read_at__isnull=True)
    return [_to_dto(n) for n in qs[:max(1, min(limit, 200))]]


def unread_count(tenant_id: UUID, user_id: UUID) -> int:
    return Notification.objects.filter(
        tenant_id=tenant_id, recipient_id=user_id, read_at__isnull=True
    ).count()


def mark_read(notification_id: UUID, user_id: UUID) -> Optional[NotificationDTO]:
    notification = Notification.objects.filter(id=notification_id, recipient_id=user_id).first()
    if notification is None:
        return None
    if notification.read_at is None:
        notification.read_at = timezone.now()
        notification.save(update_fields=['read_at'])
    return _to_dto(notification)


def mark_all_read(tenant_id: UUID, user_id: UUID) -> int:
    return Notification.objects.filter(
        tenant_id=tenant_id, recipient_id=user_id, read_at__isnull=True
    ).update(read_at=timezone.now())
