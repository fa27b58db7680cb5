"""
Domain events for the finance core.

Immutable event objects published after a lifecycle operation has committed.
Handlers react to what happened without the publishing service knowing who
is listening.

Event Categories:
- InvoiceEvent: Invoice lifecycle (issue, void, paid, reopened, overdue)
- PaymentEvent: Client payments (received, deleted)
- PayoutEvent: Vendor payouts (paid, reverted)

Events carry the full domain object so handlers don't need to re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class FinanceEvent:
    """Base class for all finance domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


# =============================================================================
# INVOICE EVENTS
# =============================================================================


@dataclass(frozen=True)
class InvoiceEvent(FinanceEvent):
    """Events related to invoice lifecycle."""
    invoice: Any = None  # Invoice; Any avoids a circular import


@dataclass(frozen=True)
class InvoiceIssued(InvoiceEvent):
    """Invoice entered issued: billed in the ledger and snapshotted."""
    snapshot_requirement_ids: tuple = ()

    @classmethod
    def create(cls, invoice: Any, snapshot_requirement_ids=()) -> "InvoiceIssued":
        return cls(invoice=invoice, snapshot_requirement_ids=tuple(snapshot_requirement_ids))


@dataclass(frozen=True)
class InvoiceVoided(InvoiceEvent):
    """Invoice was cancelled; its ledger entry and snapshot are gone."""

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceVoided":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class InvoicePaid(InvoiceEvent):
    """Payments on the invoice reached its amount."""

    @classmethod
    def create(cls, invoice: Any) -> "InvoicePaid":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class InvoiceReopened(InvoiceEvent):
    """A paid invoice fell below its amount after a payment was removed."""

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceReopened":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class InvoiceOverdue(InvoiceEvent):
    """An issued invoice passed its due date."""

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceOverdue":
        return cls(invoice=invoice)


# =============================================================================
# PAYMENT EVENTS
# =============================================================================


@dataclass(frozen=True)
class PaymentEvent(FinanceEvent):
    """Events related to client payments."""
    payment: Any = None


@dataclass(frozen=True)
class PaymentReceived(PaymentEvent):
    """A client payment was recorded."""

    @classmethod
    def create(cls, payment: Any) -> "PaymentReceived":
        return cls(payment=payment)


@dataclass(frozen=True)
class PaymentDeleted(PaymentEvent):
    """A client payment was removed."""

    @classmethod
    def create(cls, payment: Any) -> "PaymentDeleted":
        return cls(payment=payment)


# =============================================================================
# VENDOR PAYOUT EVENTS
# =============================================================================


@dataclass(frozen=True)
class PayoutEvent(FinanceEvent):
    """Events related to vendor payouts."""
    payout: Any = None


@dataclass(frozen=True)
class VendorPayoutPaid(PayoutEvent):
    """A vendor payout entered paid."""

    @classmethod
    def create(cls, payout: Any) -> "VendorPayoutPaid":
        return cls(payout=payout)


@dataclass(frozen=True)
class VendorPayoutReverted(PayoutEvent):
    """A paid vendor payout went back to pending or cancelled."""

    @classmethod
    def create(cls, payout: Any) -> "VendorPayoutReverted":
        return cls(payout=payout)
