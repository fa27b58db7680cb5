"""
Vendor payouts.

A payout is money owed to a vendor for work on a requirement. While it is
paid it owns exactly one vendor_payment ledger entry dated on its paid date;
pending and cancelled payouts own none.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from core.audit import AuditLogger, AuditAction
from core.errors import NotFoundError, ValidationError
from core.event_bus import EventBus
from core.events import VendorPayoutPaid, VendorPayoutReverted
from core.models import (
    LedgerEntryType, VendorPayout, VendorPayoutCreate, VendorPayoutUpdate, VendorPayoutStatus,
)
from core.services.ledger_service import LedgerService
from core.unit_of_work import unit_of_work
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class PayoutService:
    """Service for vendor payouts."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        ledger: LedgerService,
        event_bus: EventBus | None = None,
    ):
        self.postgres = postgres
        self.audit = audit
        self.ledger = ledger
        self.event_bus = event_bus or EventBus()

    def create(self, data: VendorPayoutCreate, tx: Transaction | None = None) -> VendorPayout:
        """
        Create a payout, already paid when a paid_date is supplied.

        Raises:
            NotFoundError: If the requirement or vendor does not exist
        """
        status = VendorPayoutStatus.PAID if data.paid_date else VendorPayoutStatus.PENDING
        now = now_utc()

        with unit_of_work(self.postgres, tx) as tx:
            project_id = self._project_of(tx, data.requirement_id)

            vendor = tx.execute_single("SELECT id FROM vendors WHERE id = %s", (data.vendor_id,))
            if vendor is None:
                raise NotFoundError("vendor", data.vendor_id)

            row = tx.execute_returning(
                """
                INSERT INTO vendor_payouts (
                    id, requirement_id, vendor_id, amount, status, paid_date,
                    created_at, updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (
                    uuid4(), data.requirement_id, data.vendor_id, data.amount,
                    status.value, data.paid_date, now, now
                )
            )[0]
            payout = VendorPayout.model_validate(row)

            if payout.is_paid:
                self._pay(tx, payout, project_id)

        if payout.is_paid:
            self.event_bus.publish(VendorPayoutPaid.create(payout))

        return payout

    def update(self, payout_id: UUID, data: VendorPayoutUpdate, tx: Transaction | None = None) -> VendorPayout:
        """
        Change a payout's status and/or paid date.

        - entering paid posts the vendor_payment entry (a paid date must be
          given or already stored)
        - leaving paid retracts the entry and clears the paid date
        - a new paid date on a paid payout moves its entry to that date

        Raises:
            NotFoundError: If the payout does not exist
            ValidationError: If the payout would be paid without a paid date
        """
        changes = data.model_dump(exclude_unset=True)
        if "status" in changes and changes["status"] is None:
            del changes["status"]

        with unit_of_work(self.postgres, tx) as tx:
            row = tx.execute_single(
                "SELECT * FROM vendor_payouts WHERE id = %s FOR UPDATE",
                (payout_id,)
            )
            if row is None:
                raise NotFoundError("vendor_payout", payout_id)
            current = VendorPayout.model_validate(row)

            new_status = changes.get("status", current.status)
            new_paid_date = changes.get("paid_date", current.paid_date)

            if new_status == VendorPayoutStatus.PAID and new_paid_date is None:
                raise ValidationError("A paid payout needs a paid date")
            if new_status != VendorPayoutStatus.PAID and current.is_paid:
                new_paid_date = None

            row = tx.execute_returning(
                """
                UPDATE vendor_payouts SET status = %s, paid_date = %s, updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (new_status.value, new_paid_date, now_utc(), payout_id)
            )[0]
            payout = VendorPayout.model_validate(row)

            entered_paid = payout.is_paid and not current.is_paid
            left_paid = current.is_paid and not payout.is_paid

            if entered_paid:
                self._pay(tx, payout, self._project_of(tx, payout.requirement_id))
            elif left_paid:
                self._revert(tx, current, payout)
            elif payout.is_paid and payout.paid_date != current.paid_date:
                self.ledger.post(
                    tx, LedgerEntryType.VENDOR_PAYMENT, payout.id,
                    self._project_of(tx, payout.requirement_id), payout.amount, payout.paid_date,
                )

        if entered_paid:
            self.event_bus.publish(VendorPayoutPaid.create(payout))
        elif left_paid:
            self.event_bus.publish(VendorPayoutReverted.create(payout))

        return payout

    def get_by_id(self, payout_id: UUID) -> VendorPayout | None:
        row = self.postgres.execute_single(
            "SELECT * FROM vendor_payouts WHERE id = %s",
            (payout_id,)
        )
        return VendorPayout.model_validate(row) if row else None

    def list_all(self, status: VendorPayoutStatus | None = None, limit: int = 100) -> list[VendorPayout]:
        """Payouts, newest first, optionally filtered by status."""
        if status is None:
            rows = self.postgres.execute(
                "SELECT * FROM vendor_payouts ORDER BY created_at DESC LIMIT %s",
                (limit,)
            )
        else:
            rows = self.postgres.execute(
                "SELECT * FROM vendor_payouts WHERE status = %s ORDER BY created_at DESC LIMIT %s",
                (status.value, limit)
            )
        return [VendorPayout.model_validate(row) for row in rows]

    def list_for_requirement(self, requirement_id: UUID) -> list[VendorPayout]:
        rows = self.postgres.execute(
            "SELECT * FROM vendor_payouts WHERE requirement_id = %s ORDER BY created_at ASC",
            (requirement_id,)
        )
        return [VendorPayout.model_validate(row) for row in rows]

    def _project_of(self, tx: Transaction, requirement_id: UUID) -> UUID:
        row = tx.execute_single(
            "SELECT project_id FROM requirements WHERE id = %s",
            (requirement_id,)
        )
        if row is None:
            raise NotFoundError("requirement", requirement_id)
        return row["project_id"]

    def _pay(self, tx: Transaction, payout: VendorPayout, project_id: UUID) -> None:
        self.ledger.post(
            tx, LedgerEntryType.VENDOR_PAYMENT, payout.id,
            project_id, payout.amount, payout.paid_date,
        )
        self.audit.record(
            AuditAction.VENDOR_PAYOUT_PAID,
            "vendor_payout",
            payout.id,
            {
                "requirement_id": str(payout.requirement_id),
                "vendor_id": str(payout.vendor_id),
                "amount": str(payout.amount),
                "paid_date": payout.paid_date.isoformat(),
            },
            tx=tx,
        )
        logger.info("Vendor payout %s paid on %s", payout.id, payout.paid_date)

    def _revert(self, tx: Transaction, previous: VendorPayout, payout: VendorPayout) -> None:
        self.ledger.retract(tx, LedgerEntryType.VENDOR_PAYMENT, payout.id)
        self.audit.record(
            AuditAction.VENDOR_PAYOUT_REVERTED,
            "vendor_payout",
            payout.id,
            {
                "requirement_id": str(payout.requirement_id),
                "status": payout.status.value,
                "previous_paid_date": previous.paid_date.isoformat() if previous.paid_date else None,
            },
            tx=tx,
        )
        logger.info("Vendor payout %s reverted to %s", payout.id, payout.status.value)
