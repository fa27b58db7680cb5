"""
Activity log for financial events.

Every issuance, void, payment and payout settlement is recorded here. The
activity log is:
- Append-only (entries never modified or deleted)
- User-attributed when a user context is set, anonymous otherwise
- Written in the same transaction as the change it describes, so a rolled
  back operation leaves no trace
"""

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient, Transaction
from utils.user_context import peek_current_user_id
from utils.timezone import now_utc


class AuditAction(str, Enum):
    """Financial events worth a line in the activity log."""

    INVOICE_ISSUED = "invoice_issued"
    INVOICE_VOIDED = "invoice_voided"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_DELETED = "payment_deleted"
    VENDOR_PAYOUT_PAID = "vendor_payout_paid"
    VENDOR_PAYOUT_REVERTED = "vendor_payout_reverted"
    REQUIREMENT_FULFILLED = "requirement_fulfilled"


class AuditLogger:
    """
    Activity log sink.

    Pass model fields through model_dump(mode="json") (or str() for single
    values) so UUIDs, dates and decimals land in JSONB as strings.

    Usage:
        audit = AuditLogger(postgres)

        with unit_of_work(postgres) as tx:
            ...
            audit.record(
                AuditAction.INVOICE_ISSUED, "invoice", invoice.id,
                {"project_id": str(invoice.project_id), "amount": str(invoice.amount)},
                tx=tx,
            )

        history = audit.get_entity_history("invoice", invoice.id)
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def record(
        self,
        action: AuditAction | str,
        entity_type: str,
        entity_id: UUID,
        meta: dict[str, Any] | None = None,
        tx: Transaction | None = None,
    ) -> None:
        """
        Append one activity entry.

        Args:
            action: What happened ("invoice_issued", ...)
            entity_type: Type of entity ("invoice", "payment_received", ...)
            entity_id: ID of the entity
            meta: JSON-serializable details
            tx: Transaction to write in; autocommitted on its own when omitted
        """
        executor = tx if tx is not None else self.postgres
        executor.execute(
            """
            INSERT INTO activity_log (id, user_id, action, entity_type, entity_id, meta, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (
                uuid4(),
                peek_current_user_id(),
                action.value if isinstance(action, AuditAction) else action,
                entity_type,
                entity_id,
                Json(meta) if meta is not None else None,
                now_utc(),
            )
        )

    def get_entity_history(
        self,
        entity_type: str,
        entity_id: UUID
    ) -> list[dict[str, Any]]:
        """
        Get full activity history for an entity.

        Returns:
            List of entries, newest first.
        """
        return self.postgres.execute(
            """
            SELECT id, user_id, action, entity_type, entity_id, meta, created_at
            FROM activity_log
            WHERE entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC
            """,
            (entity_type, entity_id)
        )
