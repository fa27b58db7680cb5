"""Requirement domain models.

A requirement is one scoped work item on a project, priced to the client and
costed from the vendor.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class FulfilmentStatus(str, Enum):
    """Delivery progress of a requirement."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


def extended_price(
    quantity: Decimal | None,
    rate: Decimal | None,
    period_days: int | None = None,
) -> Decimal | None:
    """
    Price a time-and-material line: quantity x rate, times days when a period is set.

    Returns None when quantity or rate is missing or out of range, meaning
    "keep whatever price was entered by hand".
    """
    if quantity is None or rate is None or quantity <= 0 or rate < 0:
        return None
    if period_days is not None and period_days > 0:
        return quantity * period_days * rate
    return quantity * rate


class RequirementCreate(BaseModel):
    """Data required to create a requirement."""

    project_id: UUID
    title: str = Field(..., min_length=1, max_length=300)
    client_price: Decimal | None = Field(None, ge=0, max_digits=14, decimal_places=2)
    expected_vendor_cost: Decimal | None = Field(None, ge=0, max_digits=14, decimal_places=2)
    quantity: Decimal | None = Field(None, max_digits=14, decimal_places=2)
    period_days: int | None = None
    unit_rate: Decimal | None = Field(None, max_digits=14, decimal_places=2)
    vendor_unit_rate: Decimal | None = Field(None, max_digits=14, decimal_places=2)
    fulfilment_status: FulfilmentStatus = FulfilmentStatus.PENDING

    def priced(self) -> "RequirementCreate":
        """Copy with client price and vendor cost derived from rates where given."""
        client_price = extended_price(self.quantity, self.unit_rate, self.period_days)
        vendor_cost = extended_price(self.quantity, self.vendor_unit_rate, self.period_days)
        return self.model_copy(update={
            "title": self.title.strip(),
            "client_price": client_price if client_price is not None else self.client_price,
            "expected_vendor_cost": vendor_cost if vendor_cost is not None else self.expected_vendor_cost,
        })


class Requirement(BaseModel):
    """Full requirement entity as stored."""

    id: UUID
    project_id: UUID
    title: str
    client_price: Decimal | None
    expected_vendor_cost: Decimal | None
    quantity: Decimal | None
    period_days: int | None
    unit_rate: Decimal | None
    vendor_unit_rate: Decimal | None
    fulfilment_status: FulfilmentStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
