"""Vendor payout domain models."""

import datetime as dt
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class VendorPayoutStatus(str, Enum):
    """Vendor payout lifecycle status."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class VendorPayoutCreate(BaseModel):
    """
    Data required to create a payout.

    Supplying paid_date creates the payout already paid.
    """

    requirement_id: UUID
    vendor_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    paid_date: dt.date | None = None


class VendorPayoutUpdate(BaseModel):
    """Status and/or paid date change. Only fields explicitly set are applied."""

    status: VendorPayoutStatus | None = None
    paid_date: dt.date | None = None


class VendorPayout(BaseModel):
    """Full payout entity as stored."""

    id: UUID
    requirement_id: UUID
    vendor_id: UUID
    amount: Decimal
    status: VendorPayoutStatus
    paid_date: dt.date | None
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}

    @property
    def is_paid(self) -> bool:
        return self.status == VendorPayoutStatus.PAID
