"""
In-app notifications stored in the notifications table.

Implements the Notifier protocol so it can be handed to the overdue notification
handler (core/handlers/overdue_notification_handler.py).
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.errors import NotFoundError
from core.models import Notification
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for user notifications."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def create(
        self,
        user_id: UUID,
        title: str,
        body: str | None = None,
        type: str | None = None,
        link: str | None = None,
        link_label: str | None = None,
    ) -> Notification:
        """
        Store a notification for a user.

        Args:
            user_id: Recipient
            title: Short headline
            body: Optional longer text
            type: Category, e.g. "invoice_overdue"
            link: Where the notification points
            link_label: Text shown for the link

        Returns:
            Created notification
        """
        row = self.postgres.execute_returning(
            """
            INSERT INTO notifications (
                id, user_id, title, body, type, link_href, link_label, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (uuid4(), user_id, title, body, type, link, link_label, now_utc())
        )[0]

        notification = Notification.model_validate(row)
        logger.debug("Notification %s (%s) created for user %s", notification.id, type, user_id)
        return notification

    def list_for_user(self, user_id: UUID, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        """
        List a user's notifications, newest first.
        """
        query = "SELECT * FROM notifications WHERE user_id = %s"
        if unread_only:
            query += " AND read_at IS NULL"
        query += " ORDER BY created_at DESC LIMIT %s"

        rows = self.postgres.execute(query, (user_id, limit))
        return [Notification.model_validate(row) for row in rows]

    def mark_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        """
        Mark one of the user's notifications read. Already-read ones keep their read time.

        Raises:
            NotFoundError: If the user has no such notification
        """
        row = self.postgres.execute_single(
            """
            UPDATE notifications SET read_at = COALESCE(read_at, %s)
            WHERE id = %s AND user_id = %s
            RETURNING *
            """,
            (now_utc(), notification_id, user_id)
        )
        if row is None:
            raise NotFoundError("notification", notification_id)
        return Notification.model_validate(row)

    def mark_all_read(self, user_id: UUID) -> int:
        """Mark every unread notification of the user read. Returns how many changed."""
        with self.postgres.transaction() as tx:
            return tx.rowcount(
                "UPDATE notifications SET read_at = %s WHERE user_id = %s AND read_at IS NULL",
                (now_utc(), user_id)
            )
