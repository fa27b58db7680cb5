"""Invoice domain models.

Amounts are decimals with two places. Dates are calendar dates; timestamps
are UTC.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, computed_field, model_validator

from core.models.payment import Payment


class InvoiceType(str, Enum):
    """What an invoice bills for."""

    PROJECT = "project"
    MILESTONE = "milestone"
    MONTHLY = "monthly"

    @property
    def is_one_time(self) -> bool:
        """One-time invoices bill fulfilled work once; monthly ones recur."""
        return self in (InvoiceType.PROJECT, InvoiceType.MILESTONE)


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    DRAFT = "draft"
    ISSUED = "issued"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


# Status targets a caller may request through InvoiceService.update.
# PAID is entered and left only by applying and removing payments.
MANUAL_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.ISSUED, InvoiceStatus.CANCELLED}),
    InvoiceStatus.ISSUED: frozenset({InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.ISSUED, InvoiceStatus.CANCELLED}),
    InvoiceStatus.CANCELLED: frozenset({InvoiceStatus.ISSUED}),
    InvoiceStatus.PAID: frozenset(),
}

# Statuses under which the invoice has a live client_invoice ledger entry
BILLED_STATUSES = frozenset({InvoiceStatus.ISSUED, InvoiceStatus.OVERDUE, InvoiceStatus.PAID})


class InvoiceCreate(BaseModel):
    """Data required to create an invoice. New invoices are always drafts."""

    project_id: UUID
    type: InvoiceType
    amount: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2)
    issue_date: dt.date | None = None
    due_date: dt.date | None = None
    billing_month: str | None = Field(None, max_length=20)

    @model_validator(mode="after")
    def billing_month_only_for_monthly(self):
        if self.billing_month and self.type != InvoiceType.MONTHLY:
            raise ValueError("billing_month is only allowed on monthly invoices")
        return self


class InvoiceUpdate(BaseModel):
    """
    Partial invoice update. Only fields explicitly set are applied, so a
    date can be cleared by sending it as null.
    """

    type: InvoiceType | None = None
    amount: Decimal | None = Field(None, ge=0, max_digits=14, decimal_places=2)
    status: InvoiceStatus | None = None
    issue_date: dt.date | None = None
    due_date: dt.date | None = None
    billing_month: str | None = Field(None, max_length=20)

    def changes(self) -> dict:
        """Fields the caller actually sent. Null type/amount/status mean 'unchanged'."""
        updates = self.model_dump(exclude_unset=True)
        for field in ("type", "amount", "status"):
            if field in updates and updates[field] is None:
                del updates[field]
        return updates


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: UUID
    project_id: UUID
    type: InvoiceType
    amount: Decimal
    status: InvoiceStatus
    issue_date: dt.date | None
    due_date: dt.date | None
    billing_month: str | None
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}

    @property
    def is_billed(self) -> bool:
        """Whether the invoice currently owns a client_invoice ledger entry."""
        return self.status in BILLED_STATUSES


class InvoiceDetail(BaseModel):
    """Invoice with its display number and payment position."""

    invoice: Invoice
    invoice_number: str
    payments: list[Payment]
    total_paid: Decimal

    @computed_field
    @property
    def balance(self) -> Decimal:
        """Amount still owed. Negative when overpaid."""
        return self.invoice.amount - self.total_paid


class NumberedInvoice(BaseModel):
    """Invoice reference with its display number."""

    id: UUID
    invoice_number: str
