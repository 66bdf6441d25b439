from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ninja import Router, Schema
from ninja.errors import HttpError
from django.http import HttpRequest

from apps.identity.decorators import require_auth, get_tenant_id
from . import services

router = Router(tags=["Notifications"])


class NotificationOut(Schema):
    id: UUID
    category: str
    priority: str
    title: str
    message: str
    action_url: str
    created_at: datetime
    read_at: Optional[datetime] = None
    is_read: bool


class UnreadCountOut(Schema):
    unread: int


class MarkAllReadOut(Schema):
    updated: int


def _serialize(dto) -> NotificationOut:
    return NotificationOut(
        id=dto.id,
        category=dto.category,
        priority=dto.priority,
        title=dto.title,
        message=dto.message,
        action_url=dto.action_url,
        created_at=dto.created_at,
        read_at=dto.read_at,
        is_read=dto.is_read,
    )


@router.get("", response=List[NotificationOut], auth=None)
def list_my_notifications(request: HttpRequest, unread_only: bool = False, limit: int = 50):
    """Notifications addressed to the current user, newest first."""
    user = require_auth(request)
    items = services.list_for_user(get_tenant_id(request), user.id, unread_only=unread_only, limit=limit)
    return [_serialize(n) for n in items]


@router.get("/unread-count", response=UnreadCountOut, auth=None)
def get_unread_count(request: HttpRequest):
    user = require_auth(request)
    return UnreadCountOut(unread=services.unread_count(get_tenant_id(request), user.id))


@router.post("/read-all", response=MarkAllReadOut, auth=None)
def read_all(request: HttpRequest):
    user = require_auth(request)
    return MarkAllReadOut(updated=services.mark_all_read(get_tenant_id(request), user.id))


@router.post("/{notification_id}/read", response=NotificationOut, auth=None)
def read_one(request: HttpRequest, notification_id: UUID):
    user = require_auth(request)
    dto = services.mark_read(notification_id, user.id)
    if dto is None:
        raise HttpError(404, "Notification not found")
    return _serialize(dto)
