"""Tests for finance domain events."""

import dataclasses
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from core.events import FinanceEvent, InvoiceIssued, InvoiceOverdue, PaymentReceived
from core.models import Invoice, InvoiceStatus, InvoiceType
from utils.timezone import now_utc


@pytest.fixture
def _invoice():
    now = now_utc()
    return Invoice(
        id=uuid4(), project_id=uuid4(), type=InvoiceType.PROJECT,
        amount=Decimal("500.00"), status=InvoiceStatus.ISSUED,
        issue_date=date(2026, 3, 1), due_date=date(2026, 3, 31), billing_month=None,
        created_at=now, updated_at=now,
    )


class TestEventCreation:

    def test_create_sets_id_and_timestamp(self, _invoice):
        event = InvoiceOverdue.create(_invoice)

        assert event.invoice is _invoice
        assert event.event_id
        assert event.occurred_at.tzinfo is not None

    def test_each_event_gets_unique_id(self, _invoice):
        assert InvoiceOverdue.create(_invoice).event_id != InvoiceOverdue.create(_invoice).event_id

    def test_issued_carries_snapshot_as_tuple(self, _invoice):
        ids = [uuid4(), uuid4()]
        event = InvoiceIssued.create(_invoice, ids)
        assert event.snapshot_requirement_ids == tuple(ids)

    def test_events_are_immutable(self, _invoice):
        event = InvoiceOverdue.create(_invoice)
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.invoice = None

    def test_all_events_are_finance_events(self):
        assert issubclass(PaymentReceived, FinanceEvent)
        assert issubclass(InvoiceIssued, FinanceEvent)
