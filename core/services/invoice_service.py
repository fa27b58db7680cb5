"""
Invoice lifecycle service.

Invoices start as drafts. Issuing one bills it: a client_invoice ledger
entry is posted and the project's fulfilled requirements are snapshotted as
billed. Voiding one retracts both. Payments move it to paid and back (see
PaymentService). Overdue sync flips issued invoices past their due date.

Every status change runs in one unit of work with the invoice row locked,
so the ledger and snapshot never disagree with the invoice status.
"""

import logging
from decimal import Decimal
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from core.audit import AuditLogger, AuditAction
from core.config import FinanceConfig
from core.errors import NotFoundError, ValidationError
from core.event_bus import EventBus
from core.events import InvoiceIssued, InvoiceOverdue, InvoicePaid, InvoiceVoided
from core.models import (
    Invoice, InvoiceCreate, InvoiceUpdate, InvoiceDetail, NumberedInvoice,
    InvoiceStatus, InvoiceType, LedgerEntryType, Payment, MANUAL_TRANSITIONS,
)
from core.numbering import assign_invoice_numbers
from core.services.ledger_service import LedgerService
from core.services.requirement_service import RequirementService
from core.unit_of_work import unit_of_work
from utils.timezone import now_utc, today_utc

logger = logging.getLogger(__name__)

# Columns InvoiceService.update may write
_UPDATABLE_COLUMNS = {"type", "amount", "status", "issue_date", "due_date", "billing_month"}

# Fields that feed the client_invoice entry; frozen while the invoice is billed
_BILLING_FIELDS = ("type", "amount", "billing_month")


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        ledger: LedgerService,
        requirements: RequirementService,
        event_bus: EventBus | None = None,
        config: FinanceConfig | None = None,
    ):
        self.postgres = postgres
        self.audit = audit
        self.ledger = ledger
        self.requirements = requirements
        self.event_bus = event_bus or EventBus()
        self.config = config or FinanceConfig()

    # -------------------------------------------------------------------------
    # Create / read
    # -------------------------------------------------------------------------

    def create(self, data: InvoiceCreate, tx: Transaction | None = None) -> Invoice:
        """
        Create an invoice in DRAFT status.

        Drafts have no ledger or snapshot effect.

        Raises:
            NotFoundError: If the project does not exist
        """
        now = now_utc()

        with unit_of_work(self.postgres, tx) as tx:
            project = tx.execute_single("SELECT id FROM projects WHERE id = %s", (data.project_id,))
            if project is None:
                raise NotFoundError("project", data.project_id)

            row = tx.execute_returning(
                """
                INSERT INTO invoices (
                    id, project_id, type, amount, status,
                    issue_date, due_date, billing_month,
                    created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s, %s,
                    %s, %s, %s,
                    %s, %s
                )
                RETURNING *
                """,
                (
                    uuid4(), data.project_id, data.type.value, data.amount, InvoiceStatus.DRAFT.value,
                    data.issue_date, data.due_date, data.billing_month,
                    now, now
                )
            )[0]

        return Invoice.model_validate(row)

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        """
        Get invoice by ID.

        Returns:
            Invoice if found, None otherwise.
        """
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE id = %s",
            (invoice_id,)
        )

        if row is None:
            return None

        return Invoice.model_validate(row)

    def list_for_project(self, project_id: UUID) -> list[Invoice]:
        """
        List invoices for a project.

        Returns:
            List of invoices ordered by creation time ASC
        """
        rows = self.postgres.execute(
            """
            SELECT * FROM invoices
            WHERE project_id = %s
            ORDER BY created_at ASC
            """,
            (project_id,)
        )

        return [Invoice.model_validate(row) for row in rows]

    def list_all(self, status: InvoiceStatus | None = None, limit: int = 100) -> list[Invoice]:
        """
        List invoices, newest first, optionally filtered by status.
        """
        if status is None:
            rows = self.postgres.execute(
                "SELECT * FROM invoices ORDER BY created_at DESC LIMIT %s",
                (limit,)
            )
        else:
            rows = self.postgres.execute(
                "SELECT * FROM invoices WHERE status = %s ORDER BY created_at DESC LIMIT %s",
                (status.value, limit)
            )

        return [Invoice.model_validate(row) for row in rows]

    def get_detail(self, invoice_id: UUID) -> InvoiceDetail:
        """
        Invoice with display number, payments and balance.

        Raises:
            NotFoundError: If invoice not found
        """
        invoice = self.get_by_id(invoice_id)
        if invoice is None:
            raise NotFoundError("invoice", invoice_id)

        rows = self.postgres.execute(
            """
            SELECT * FROM payments_received
            WHERE invoice_id = %s
            ORDER BY date ASC, created_at ASC
            """,
            (invoice_id,)
        )
        payments = [Payment.model_validate(row) for row in rows]

        return InvoiceDetail(
            invoice=invoice,
            invoice_number=self.invoice_number(invoice_id),
            payments=payments,
            total_paid=sum((p.amount for p in payments), Decimal("0")),
        )

    # -------------------------------------------------------------------------
    # Numbering
    # -------------------------------------------------------------------------

    def invoice_numbers(self) -> dict[UUID, str]:
        """Display numbers of every invoice, computed from the current table."""
        rows = self.postgres.execute("SELECT id, issue_date, created_at FROM invoices")
        return assign_invoice_numbers(rows, self.config.invoice_number_width)

    def invoice_number(self, invoice_id: UUID) -> str:
        """
        Display number of one invoice (INV-YYYY-NNN).

        Raises:
            NotFoundError: If invoice not found
        """
        number = self.invoice_numbers().get(invoice_id)
        if number is None:
            raise NotFoundError("invoice", invoice_id)
        return number

    def list_for_requirement(self, requirement_id: UUID) -> list[NumberedInvoice]:
        """Invoices whose snapshot includes the requirement, with display numbers."""
        rows = self.postgres.execute(
            """
            SELECT ir.invoice_id
            FROM invoice_requirements ir
            JOIN invoices i ON i.id = ir.invoice_id
            WHERE ir.requirement_id = %s
            ORDER BY i.created_at ASC
            """,
            (requirement_id,)
        )
        if not rows:
            return []

        numbers = self.invoice_numbers()
        return [
            NumberedInvoice(id=row["invoice_id"], invoice_number=numbers[row["invoice_id"]])
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def update(self, invoice_id: UUID, data: InvoiceUpdate, tx: Transaction | None = None) -> Invoice:
        """
        Apply field changes and the side effects of any status transition.

        - draft/cancelled -> issued: post the client_invoice entry (dated
          issue_date, today if unset) and rebuild the requirement snapshot
          (straight to paid when kept payments already cover the amount)
        - any -> cancelled: retract the client_invoice entry and drop the
          snapshot; recorded payments stay as they are
        - anything else: fields only

        Args:
            invoice_id: Invoice UUID
            data: Fields to change
            tx: Caller's unit of work; a new one is used when omitted

        Returns:
            Updated invoice

        Raises:
            NotFoundError: If invoice not found
            ValidationError: If the status target is not reachable, or a billing
                field changes while the invoice is billed
        """
        changes = data.changes()
        issued_snapshot = None
        settled = False

        with unit_of_work(self.postgres, tx) as tx:
            current = self._get_for_update(tx, invoice_id)
            target = changes.get("status", current.status)
            transition = target != current.status

            if transition and target not in MANUAL_TRANSITIONS[current.status]:
                raise ValidationError(
                    f"Invoice {invoice_id} cannot move from {current.status.value} to {target.value}"
                )

            edited = [f for f in _BILLING_FIELDS if f in changes and changes[f] != getattr(current, f)]
            if edited and current.is_billed:
                raise ValidationError(
                    f"Invoice {invoice_id} is {current.status.value}; "
                    f"{', '.join(edited)} can only change while draft or cancelled"
                )

            new_type = changes.get("type", current.type)
            new_billing_month = changes.get("billing_month", current.billing_month)
            if new_billing_month and new_type != InvoiceType.MONTHLY:
                raise ValidationError("billing_month is only allowed on monthly invoices")

            issuing = transition and target == InvoiceStatus.ISSUED and not current.is_billed
            voiding = transition and target == InvoiceStatus.CANCELLED

            if issuing and changes.get("issue_date", current.issue_date) is None:
                changes["issue_date"] = today_utc()

            if not changes:
                return current

            updated = self._write(tx, invoice_id, changes)

            if issuing:
                issued_snapshot = self._issue(tx, current, updated)
                # Payments kept from before a void may already cover the amount
                if updated.amount > 0 and self._total_paid(tx, invoice_id) >= updated.amount:
                    updated = self._write(tx, invoice_id, {"status": InvoiceStatus.PAID})
                    settled = True
                    logger.info("Invoice %s re-issued already covered by its payments", invoice_id)
            elif voiding:
                self._void(tx, current, updated)

        if issued_snapshot is not None:
            self.event_bus.publish(InvoiceIssued.create(updated, issued_snapshot))
            if settled:
                self.event_bus.publish(InvoicePaid.create(updated))
        elif voiding:
            self.event_bus.publish(InvoiceVoided.create(updated))

        return updated

    def issue(self, invoice_id: UUID, tx: Transaction | None = None) -> Invoice:
        """Shorthand for update(status=issued)."""
        return self.update(invoice_id, InvoiceUpdate(status=InvoiceStatus.ISSUED), tx)

    def void(self, invoice_id: UUID, tx: Transaction | None = None) -> Invoice:
        """Shorthand for update(status=cancelled)."""
        return self.update(invoice_id, InvoiceUpdate(status=InvoiceStatus.CANCELLED), tx)

    def sync_overdue(self, tx: Transaction | None = None) -> int:
        """
        Flip issued invoices whose due date has passed to OVERDUE.

        Each flipped invoice publishes one InvoiceOverdue event (the overdue
        notification handler listens for it). Only issued invoices match, so
        calling this again is a no-op.

        Returns:
            Number of invoices moved to overdue
        """
        with unit_of_work(self.postgres, tx) as tx:
            rows = tx.execute_returning(
                """
                UPDATE invoices
                SET status = %s, updated_at = %s
                WHERE status = %s
                  AND due_date IS NOT NULL
                  AND due_date < %s
                RETURNING *
                """,
                (InvoiceStatus.OVERDUE.value, now_utc(), InvoiceStatus.ISSUED.value, today_utc())
            )

        overdue = [Invoice.model_validate(row) for row in rows]
        if overdue:
            logger.info("%d invoice(s) moved to overdue", len(overdue))

        for invoice in overdue:
            self.event_bus.publish(InvoiceOverdue.create(invoice))

        return len(overdue)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _get_for_update(self, tx: Transaction, invoice_id: UUID) -> Invoice:
        row = tx.execute_single(
            "SELECT * FROM invoices WHERE id = %s FOR UPDATE",
            (invoice_id,)
        )
        if row is None:
            raise NotFoundError("invoice", invoice_id)
        return Invoice.model_validate(row)

    def _write(self, tx: Transaction, invoice_id: UUID, changes: dict) -> Invoice:
        values = {
            k: (v.value if hasattr(v, "value") else v)
            for k, v in changes.items()
            if k in _UPDATABLE_COLUMNS
        }

        set_parts = [f"{field} = %s" for field in values]
        set_parts.append("updated_at = %s")

        row = tx.execute_returning(
            f"""
            UPDATE invoices
            SET {', '.join(set_parts)}
            WHERE id = %s
            RETURNING *
            """,
            (*values.values(), now_utc(), invoice_id)
        )[0]

        return Invoice.model_validate(row)

    def _issue(self, tx: Transaction, previous: Invoice, invoice: Invoice) -> list[UUID]:
        """Bill the invoice: ledger entry, snapshot, activity log."""
        reissue = previous.status == InvoiceStatus.CANCELLED

        self.ledger.post(
            tx, LedgerEntryType.CLIENT_INVOICE, invoice.id,
            invoice.project_id, invoice.amount, invoice.issue_date,
        )
        requirement_ids, snapshot_total = self.requirements.rebuild_snapshot(
            tx, invoice.id, invoice.project_id
        )

        # A re-issued invoice snapshots what is fulfilled now, which may no
        # longer be what its amount was set for.
        if reissue and snapshot_total != invoice.amount:
            if self.config.reject_reissue_on_snapshot_mismatch:
                raise ValidationError(
                    f"Invoice {invoice.id} amount {invoice.amount} does not match its "
                    f"fulfilled requirements ({snapshot_total}); update the amount before re-issuing"
                )
            logger.warning(
                "Invoice %s re-issued with amount %s but snapshot totals %s",
                invoice.id, invoice.amount, snapshot_total,
            )

        self.audit.record(
            AuditAction.INVOICE_ISSUED,
            "invoice",
            invoice.id,
            {
                "project_id": str(invoice.project_id),
                "amount": str(invoice.amount),
                "issue_date": invoice.issue_date.isoformat(),
                "requirement_count": len(requirement_ids),
                "snapshot_total": str(snapshot_total),
                "reissue": reissue,
            },
            tx=tx,
        )

        logger.info("Invoice %s issued (%s)", invoice.id, invoice.amount)
        return requirement_ids

    def _void(self, tx: Transaction, previous: Invoice, invoice: Invoice) -> None:
        """Unbill the invoice: ledger entry and snapshot go, payments stay."""
        self.ledger.retract(tx, LedgerEntryType.CLIENT_INVOICE, invoice.id)
        cleared = self.requirements.clear_snapshot(tx, invoice.id)

        self.audit.record(
            AuditAction.INVOICE_VOIDED,
            "invoice",
            invoice.id,
            {
                "project_id": str(invoice.project_id),
                "previous_status": previous.status.value,
                "requirements_released": cleared,
            },
            tx=tx,
        )

        logger.info("Invoice %s voided (was %s)", invoice.id, previous.status.value)


    def _total_paid(self, tx: Transaction, invoice_id: UUID) -> Decimal:
        total = tx.execute_scalar(
            "SELECT COALESCE(SUM(amount), 0) FROM payments_received WHERE invoice_id = %s",
            (invoice_id,)
        )
        return Decimal(total)
