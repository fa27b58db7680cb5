"""
Requirement snapshot and suggestion engine.

When an invoice is issued, the project's fulfilled requirements at that
moment are snapshotted into invoice_requirements ("already billed"). The
suggested amount for the next invoice is the fulfilled total minus anything
already snapshotted by a live one-time invoice. Monthly retainers never
exclude: every month suggests the full fulfilled total again.
"""

import logging
from decimal import Decimal
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from core.audit import AuditLogger, AuditAction
from core.errors import ConflictError, NotFoundError
from core.models import (
    FulfilmentStatus, InvoiceStatus, InvoiceType,
    Requirement, RequirementCreate,
)
from core.unit_of_work import unit_of_work
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# One-time invoices whose snapshot counts as billed: every status past draft except void
_EXCLUDING_STATUSES = (
    InvoiceStatus.ISSUED.value,
    InvoiceStatus.OVERDUE.value,
    InvoiceStatus.PAID.value,
)
_ONE_TIME_TYPES = tuple(t.value for t in InvoiceType if t.is_one_time)


class RequirementService:
    """Service for requirement billing state."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger):
        self.postgres = postgres
        self.audit = audit

    # -------------------------------------------------------------------------
    # Suggestion
    # -------------------------------------------------------------------------

    def suggested_amount(self, project_id: UUID) -> Decimal:
        """
        Amount still billable on a project.

        Sum of client_price over fulfilled requirements, leaving out those in
        the snapshot of any issued, overdue or paid project/milestone invoice.
        Draft and cancelled invoices and monthly invoices exclude nothing.

        Args:
            project_id: Project UUID

        Returns:
            Suggested invoice amount (0 when nothing is billable)
        """
        total = self.postgres.execute_scalar(
            """
            SELECT COALESCE(SUM(r.client_price), 0)
            FROM requirements r
            WHERE r.project_id = %s
              AND r.fulfilment_status = %s
              AND NOT EXISTS (
                  SELECT 1
                  FROM invoice_requirements ir
                  JOIN invoices i ON i.id = ir.invoice_id
                  WHERE ir.requirement_id = r.id
                    AND i.project_id = r.project_id
                    AND i.type = ANY(%s)
                    AND i.status = ANY(%s)
              )
            """,
            (
                project_id,
                FulfilmentStatus.FULFILLED.value,
                list(_ONE_TIME_TYPES),
                list(_EXCLUDING_STATUSES),
            )
        )
        return Decimal(total)

    # -------------------------------------------------------------------------
    # Snapshot (called by InvoiceService inside its transaction)
    # -------------------------------------------------------------------------

    def rebuild_snapshot(self, tx: Transaction, invoice_id: UUID, project_id: UUID) -> tuple[list[UUID], Decimal]:
        """
        Replace the invoice's snapshot with the project's currently fulfilled requirements.

        Returns:
            (snapshotted requirement ids, their client_price total)
        """
        self.clear_snapshot(tx, invoice_id)

        rows = tx.execute(
            """
            INSERT INTO invoice_requirements (invoice_id, requirement_id)
            SELECT %s, r.id
            FROM requirements r
            WHERE r.project_id = %s AND r.fulfilment_status = %s
            RETURNING requirement_id
            """,
            (invoice_id, project_id, FulfilmentStatus.FULFILLED.value)
        )
        requirement_ids = [row["requirement_id"] for row in rows]

        total = tx.execute_scalar(
            """
            SELECT COALESCE(SUM(r.client_price), 0)
            FROM invoice_requirements ir
            JOIN requirements r ON r.id = ir.requirement_id
            WHERE ir.invoice_id = %s
            """,
            (invoice_id,)
        )

        logger.info("Invoice %s snapshotted %d fulfilled requirements", invoice_id, len(requirement_ids))
        return requirement_ids, Decimal(total)

    def clear_snapshot(self, tx: Transaction, invoice_id: UUID) -> int:
        """Drop every snapshot row of the invoice. Returns how many were removed."""
        return tx.rowcount(
            "DELETE FROM invoice_requirements WHERE invoice_id = %s",
            (invoice_id,)
        )

    def snapshot_for_invoice(self, invoice_id: UUID) -> list[UUID]:
        """Requirement ids the invoice currently counts as billed."""
        rows = self.postgres.execute(
            "SELECT requirement_id FROM invoice_requirements WHERE invoice_id = %s ORDER BY requirement_id",
            (invoice_id,)
        )
        return [row["requirement_id"] for row in rows]

    # -------------------------------------------------------------------------
    # Requirements
    # -------------------------------------------------------------------------

    def get_by_id(self, requirement_id: UUID) -> Requirement | None:
        row = self.postgres.execute_single(
            "SELECT * FROM requirements WHERE id = %s",
            (requirement_id,)
        )
        return Requirement.model_validate(row) if row else None

    def list_for_project(self, project_id: UUID) -> list[Requirement]:
        rows = self.postgres.execute(
            "SELECT * FROM requirements WHERE project_id = %s ORDER BY created_at ASC",
            (project_id,)
        )
        return [Requirement.model_validate(row) for row in rows]

    def create(self, data: RequirementCreate) -> Requirement:
        """
        Create a requirement.

        Client price and expected vendor cost are derived from quantity,
        period and rates when those are given; otherwise the entered prices
        are kept.

        Raises:
            NotFoundError: If the project does not exist
        """
        data = data.priced()
        now = now_utc()

        with unit_of_work(self.postgres) as tx:
            project = tx.execute_single("SELECT id FROM projects WHERE id = %s", (data.project_id,))
            if project is None:
                raise NotFoundError("project", data.project_id)

            row = tx.execute_returning(
                """
                INSERT INTO requirements (
                    id, project_id, title,
                    client_price, expected_vendor_cost,
                    quantity, period_days, unit_rate, vendor_unit_rate,
                    fulfilment_status, created_at, updated_at
                ) VALUES (
                    %s, %s, %s,
                    %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s
                )
                RETURNING *
                """,
                (
                    uuid4(), data.project_id, data.title,
                    data.client_price, data.expected_vendor_cost,
                    data.quantity, data.period_days, data.unit_rate, data.vendor_unit_rate,
                    data.fulfilment_status.value, now, now
                )
            )[0]

            requirement = Requirement.model_validate(row)
            if requirement.fulfilment_status == FulfilmentStatus.FULFILLED:
                self._record_fulfilled(tx, requirement)

        return requirement

    def set_fulfilment_status(self, requirement_id: UUID, status: FulfilmentStatus) -> Requirement:
        """
        Move a requirement through fulfilment.

        Entering fulfilled is recorded in the activity log. Snapshots are not
        touched: a requirement fulfilled after an invoice was issued is picked
        up by the next suggestion.

        Raises:
            NotFoundError: If the requirement does not exist
        """
        with unit_of_work(self.postgres) as tx:
            row = tx.execute_single(
                "SELECT * FROM requirements WHERE id = %s FOR UPDATE",
                (requirement_id,)
            )
            if row is None:
                raise NotFoundError("requirement", requirement_id)

            current = Requirement.model_validate(row)
            previous = current.fulfilment_status
            if previous == status:
                return current

            row = tx.execute_returning(
                """
                UPDATE requirements SET fulfilment_status = %s, updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (status.value, now_utc(), requirement_id)
            )[0]

            updated = Requirement.model_validate(row)
            if status == FulfilmentStatus.FULFILLED:
                self._record_fulfilled(tx, updated)

        logger.info("Requirement %s: %s -> %s", requirement_id, previous.value, status.value)
        return updated

    def delete(self, requirement_id: UUID) -> None:
        """
        Delete a requirement.

        Raises:
            NotFoundError: If the requirement does not exist
            ConflictError: If it is on an invoice snapshot or has vendor payouts
        """
        with unit_of_work(self.postgres) as tx:
            row = tx.execute_single(
                "SELECT id FROM requirements WHERE id = %s FOR UPDATE",
                (requirement_id,)
            )
            if row is None:
                raise NotFoundError("requirement", requirement_id)

            on_invoice = tx.execute_single(
                "SELECT invoice_id FROM invoice_requirements WHERE requirement_id = %s LIMIT 1",
                (requirement_id,)
            )
            if on_invoice:
                raise ConflictError("Cannot delete: this requirement is linked to an invoice.")

            payout = tx.execute_single(
                "SELECT id FROM vendor_payouts WHERE requirement_id = %s LIMIT 1",
                (requirement_id,)
            )
            if payout:
                raise ConflictError("Cannot delete: this requirement has vendor payouts.")

            tx.execute("DELETE FROM requirements WHERE id = %s", (requirement_id,))

    def _record_fulfilled(self, tx: Transaction, requirement: Requirement) -> None:
        self.audit.record(
            AuditAction.REQUIREMENT_FULFILLED,
            "requirement",
            requirement.id,
            {"project_id": str(requirement.project_id)},
            tx=tx,
        )
