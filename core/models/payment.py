"""Client payment domain models."""

import datetime as dt
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class PaymentCreate(BaseModel):
    """A payment received against an invoice. Each call records a new payment."""

    invoice_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    date: dt.date
    mode: str | None = None

    @field_validator("mode")
    @classmethod
    def blank_mode_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class Payment(BaseModel):
    """Full payment entity as stored. Payments are never edited in place."""

    id: UUID
    invoice_id: UUID
    amount: Decimal
    date: dt.date
    mode: str | None
    created_at: dt.datetime

    model_config = {"from_attributes": True}
