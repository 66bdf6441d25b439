"""DTOs for Notifications app."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class NotificationDTO:
    id: UUID
    tenant_id: UUID
    recipient_id: UUID
    category: str
    priority: str
    title: str
    message: str
    action_url: str
    created_at: datetime
    read_at: Optional[datetime] = None
    payload: dict = field(default_factory=dict)

    @property
    def is_read(self) -> bool:
        return self.read_at is not None
