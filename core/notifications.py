"""
Notification sink used by the finance core.

Handlers receive a Notifier at wiring time. NotificationService is the
database-backed one; anything with the same create() signature works.
"""

from typing import Protocol
from uuid import UUID


class Notifier(Protocol):
    """Anything that can deliver a notification to a user."""

    def create(
        self,
        user_id: UUID,
        title: str,
        body: str | None,
        type: str | None,
        link: str | None,
    ) -> object:
        ...
