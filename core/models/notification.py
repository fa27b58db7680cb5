"""In-app notification models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class Notification(BaseModel):
    """A notification shown to one user."""

    id: UUID
    user_id: UUID
    title: str
    body: str | None
    type: str | None
    link_href: str | None
    link_label: str | None
    read_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}

    @property
    def is_read(self) -> bool:
        return self.read_at is not None
