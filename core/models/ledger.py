"""Ledger domain models.

The ledger records what actually happened financially, one entry per fact.
Entries of the derived types are projections of an invoice, payment or
vendor payout and exist exactly as long as that event is in effect.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class LedgerEntryType(str, Enum):
    """Kind of financial fact."""

    CLIENT_INVOICE = "client_invoice"
    CLIENT_PAYMENT = "client_payment"
    VENDOR_EXPECTED_COST = "vendor_expected_cost"
    VENDOR_PAYMENT = "vendor_payment"

    @property
    def is_derived(self) -> bool:
        """Whether referenced entries of this type are owned by a lifecycle event."""
        return self != LedgerEntryType.VENDOR_EXPECTED_COST


class LedgerEntryCreate(BaseModel):
    """A manually entered ledger line."""

    project_id: UUID
    type: LedgerEntryType
    amount: Decimal = Field(..., max_digits=14, decimal_places=2)
    date: dt.date
    reference_id: UUID | None = None


class LedgerEntryUpdate(BaseModel):
    """Changes to a manual ledger line. All fields optional."""

    type: LedgerEntryType | None = None
    amount: Decimal | None = Field(None, max_digits=14, decimal_places=2)
    date: dt.date | None = None


class LedgerEntry(BaseModel):
    """Full ledger entry as stored."""

    id: UUID
    project_id: UUID
    type: LedgerEntryType
    amount: Decimal
    date: dt.date
    reference_id: UUID | None
    created_at: dt.datetime

    model_config = {"from_attributes": True}

    @property
    def is_derived(self) -> bool:
        """Whether this entry mirrors an invoice, payment or payout."""
        return self.reference_id is not None and self.type.is_derived


class ProjectFinanceSummary(BaseModel):
    """Ledger totals and profit of one project."""

    project_id: UUID
    invoiced: Decimal
    received: Decimal
    expected_vendor_cost: Decimal
    paid_to_vendors: Decimal
    planned_profit: Decimal | None
    actual_profit: Decimal | None
