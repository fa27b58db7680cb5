"""Tests for EventBus."""

import logging
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from core.event_bus import EventBus
from core.events import InvoicePaid, InvoiceVoided
from core.models import Invoice, InvoiceStatus, InvoiceType
from utils.timezone import now_utc


@pytest.fixture
def _invoice():
    now = now_utc()
    return Invoice(
        id=uuid4(), project_id=uuid4(), type=InvoiceType.MILESTONE,
        amount=Decimal("200.00"), status=InvoiceStatus.PAID,
        issue_date=date(2026, 3, 1), due_date=None, billing_month=None,
        created_at=now, updated_at=now,
    )


class TestSubscribeAndPublish:

    def test_handler_receives_event(self, _invoice):
        bus = EventBus()
        received = []
        bus.subscribe("InvoicePaid", received.append)

        event = InvoicePaid.create(_invoice)
        bus.publish(event)

        assert received == [event]

    def test_only_matching_type_delivered(self, _invoice):
        bus = EventBus()
        received = []
        bus.subscribe("InvoiceVoided", received.append)

        bus.publish(InvoicePaid.create(_invoice))

        assert received == []

    def test_handlers_called_in_subscription_order(self, _invoice):
        bus = EventBus()
        calls = []
        bus.subscribe("InvoicePaid", lambda e: calls.append("first"))
        bus.subscribe("InvoicePaid", lambda e: calls.append("second"))

        bus.publish(InvoicePaid.create(_invoice))

        assert calls == ["first", "second"]


class TestHandlerFailures:

    def test_failing_handler_is_logged_not_raised(self, _invoice, caplog):
        bus = EventBus()
        after = []

        def broken(event):
            raise RuntimeError("handler bug")

        bus.subscribe("InvoiceVoided", broken)
        bus.subscribe("InvoiceVoided", after.append)

        with caplog.at_level(logging.ERROR, logger="core.event_bus"):
            bus.publish(InvoiceVoided.create(_invoice))

        assert len(after) == 1
        assert "broken" in caplog.text
