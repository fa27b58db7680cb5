"""
Client payments.

Recording a payment posts a client_payment ledger entry and moves the
invoice to paid once the payments cover its amount. Deleting one retracts
the entry and, if the invoice was paid and no longer is covered, reopens it
as issued. Both run with the invoice row locked so concurrent payments on
the same invoice settle one after the other.
"""

import logging
from decimal import Decimal
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from core.audit import AuditLogger, AuditAction
from core.config import FinanceConfig
from core.errors import NotFoundError, ValidationError
from core.event_bus import EventBus
from core.events import InvoicePaid, InvoiceReopened, PaymentDeleted, PaymentReceived
from core.models import Invoice, InvoiceStatus, LedgerEntryType, Payment, PaymentCreate
from core.services.ledger_service import LedgerService
from core.unit_of_work import unit_of_work
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# Invoices that can take payments: anything billed
_PAYABLE_STATUSES = frozenset({InvoiceStatus.ISSUED, InvoiceStatus.OVERDUE, InvoiceStatus.PAID})


class PaymentService:
    """Service for client payments."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        ledger: LedgerService,
        event_bus: EventBus | None = None,
        config: FinanceConfig | None = None,
    ):
        self.postgres = postgres
        self.audit = audit
        self.ledger = ledger
        self.event_bus = event_bus or EventBus()
        self.config = config or FinanceConfig()

    def record_payment(self, data: PaymentCreate, tx: Transaction | None = None) -> Payment:
        """
        Record a payment against an invoice.

        Args:
            data: Invoice, amount, date and optional mode
            tx: Caller's unit of work; a new one is used when omitted

        Returns:
            The new payment

        Raises:
            NotFoundError: If the invoice does not exist
            ValidationError: If the invoice is draft or cancelled, or the mode is too long
        """
        if data.mode is not None and len(data.mode) > self.config.payment_mode_max_length:
            raise ValidationError(
                f"Payment mode must be at most {self.config.payment_mode_max_length} characters"
            )

        paid_invoice = None

        with unit_of_work(self.postgres, tx) as tx:
            invoice = self._get_invoice_for_update(tx, data.invoice_id)
            if invoice.status not in _PAYABLE_STATUSES:
                raise ValidationError(
                    f"Invoice {invoice.id} is {invoice.status.value} and cannot take payments"
                )

            row = tx.execute_returning(
                """
                INSERT INTO payments_received (id, invoice_id, amount, date, mode, created_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (uuid4(), invoice.id, data.amount, data.date, data.mode, now_utc())
            )[0]
            payment = Payment.model_validate(row)

            self.ledger.post(
                tx, LedgerEntryType.CLIENT_PAYMENT, payment.id,
                invoice.project_id, payment.amount, payment.date,
            )

            total = self._total_paid(tx, invoice.id)
            if invoice.status != InvoiceStatus.PAID and invoice.amount > 0 and total >= invoice.amount:
                paid_invoice = self._set_status(tx, invoice.id, InvoiceStatus.PAID)

            self.audit.record(
                AuditAction.PAYMENT_RECEIVED,
                "payment_received",
                payment.id,
                {
                    "invoice_id": str(invoice.id),
                    "project_id": str(invoice.project_id),
                    "amount": str(payment.amount),
                    "total_paid": str(total),
                    "invoice_paid": paid_invoice is not None,
                },
                tx=tx,
            )

        logger.info("Payment %s of %s recorded on invoice %s", payment.id, payment.amount, invoice.id)

        self.event_bus.publish(PaymentReceived.create(payment))
        if paid_invoice is not None:
            self.event_bus.publish(InvoicePaid.create(paid_invoice))

        return payment

    def delete_payment(self, payment_id: UUID, tx: Transaction | None = None) -> None:
        """
        Delete a payment.

        A paid invoice whose remaining payments fall short of its amount
        goes back to issued.

        Raises:
            NotFoundError: If the payment does not exist
        """
        reopened_invoice = None

        with unit_of_work(self.postgres, tx) as tx:
            row = tx.execute_single(
                "SELECT * FROM payments_received WHERE id = %s",
                (payment_id,)
            )
            if row is None:
                raise NotFoundError("payment", payment_id)
            payment = Payment.model_validate(row)

            invoice = self._get_invoice_for_update(tx, payment.invoice_id)

            self.ledger.retract(tx, LedgerEntryType.CLIENT_PAYMENT, payment.id)
            deleted = tx.rowcount(
                "DELETE FROM payments_received WHERE id = %s",
                (payment.id,)
            )
            if not deleted:
                # Removed by a concurrent delete while we waited on the invoice lock
                raise NotFoundError("payment", payment_id)

            total = self._total_paid(tx, invoice.id)
            if invoice.status == InvoiceStatus.PAID and invoice.amount > 0 and total < invoice.amount:
                reopened_invoice = self._set_status(tx, invoice.id, InvoiceStatus.ISSUED)

            self.audit.record(
                AuditAction.PAYMENT_DELETED,
                "payment_received",
                payment.id,
                {
                    "invoice_id": str(invoice.id),
                    "project_id": str(invoice.project_id),
                    "amount": str(payment.amount),
                    "total_paid": str(total),
                    "invoice_reopened": reopened_invoice is not None,
                },
                tx=tx,
            )

        logger.info("Payment %s deleted from invoice %s", payment.id, invoice.id)

        self.event_bus.publish(PaymentDeleted.create(payment))
        if reopened_invoice is not None:
            self.event_bus.publish(InvoiceReopened.create(reopened_invoice))

    def list_for_invoice(self, invoice_id: UUID) -> list[Payment]:
        """Payments on an invoice, oldest first."""
        rows = self.postgres.execute(
            """
            SELECT * FROM payments_received
            WHERE invoice_id = %s
            ORDER BY date ASC, created_at ASC
            """,
            (invoice_id,)
        )
        return [Payment.model_validate(row) for row in rows]

    def total_paid(self, invoice_id: UUID) -> Decimal:
        """Sum of the payments on an invoice."""
        with self.postgres.transaction() as tx:
            return self._total_paid(tx, invoice_id)

    def _total_paid(self, tx: Transaction, invoice_id: UUID) -> Decimal:
        total = tx.execute_scalar(
            "SELECT COALESCE(SUM(amount), 0) FROM payments_received WHERE invoice_id = %s",
            (invoice_id,)
        )
        return Decimal(total)

    def _get_invoice_for_update(self, tx: Transaction, invoice_id: UUID) -> Invoice:
        row = tx.execute_single(
            "SELECT * FROM invoices WHERE id = %s FOR UPDATE",
            (invoice_id,)
        )
        if row is None:
            raise NotFoundError("invoice", invoice_id)
        return Invoice.model_validate(row)

    def _set_status(self, tx: Transaction, invoice_id: UUID, status: InvoiceStatus) -> Invoice:
        row = tx.execute_returning(
            """
            UPDATE invoices SET status = %s, updated_at = %s
            WHERE id = %s
            RETURNING *
            """,
            (status.value, now_utc(), invoice_id)
        )[0]
        logger.info("Invoice %s -> %s", invoice_id, status.value)
        return Invoice.model_validate(row)
