"""Tests for core domain models - custom validators and derived values only."""

import pytest
from datetime import date
from decimal import Decimal
from pydantic import ValidationError
from uuid import uuid4

from utils.timezone import now_utc


class TestInvoiceCreate:
    """Tests for InvoiceCreate custom validators."""

    def test_billing_month_only_on_monthly(self):
        from core.models import InvoiceCreate, InvoiceType

        with pytest.raises(ValidationError, match="billing_month"):
            InvoiceCreate(project_id=uuid4(), type=InvoiceType.PROJECT, amount=Decimal("10"), billing_month="2026-03")

    def test_monthly_accepts_billing_month(self):
        from core.models import InvoiceCreate, InvoiceType

        inv = InvoiceCreate(project_id=uuid4(), type=InvoiceType.MONTHLY, amount=Decimal("10"), billing_month="2026-03")
        assert inv.billing_month == "2026-03"

    def test_rejects_negative_amount(self):
        from core.models import InvoiceCreate, InvoiceType

        with pytest.raises(ValidationError):
            InvoiceCreate(project_id=uuid4(), type=InvoiceType.PROJECT, amount=Decimal("-1"))

    def test_zero_amount_allowed(self):
        from core.models import InvoiceCreate, InvoiceType

        inv = InvoiceCreate(project_id=uuid4(), type=InvoiceType.PROJECT, amount=Decimal("0"))
        assert inv.amount == 0


class TestInvoiceUpdate:
    """Tests for InvoiceUpdate.changes()."""

    def test_only_sent_fields(self):
        from core.models import InvoiceUpdate, InvoiceStatus

        changes = InvoiceUpdate(status=InvoiceStatus.ISSUED).changes()
        assert changes == {"status": InvoiceStatus.ISSUED}

    def test_null_date_clears(self):
        from core.models import InvoiceUpdate

        assert InvoiceUpdate(due_date=None).changes() == {"due_date": None}

    def test_null_status_means_unchanged(self):
        from core.models import InvoiceUpdate

        assert InvoiceUpdate(status=None, amount=None).changes() == {}


class TestInvoiceEnums:

    def test_one_time_types(self):
        from core.models import InvoiceType

        assert InvoiceType.PROJECT.is_one_time
        assert InvoiceType.MILESTONE.is_one_time
        assert not InvoiceType.MONTHLY.is_one_time

    def test_paid_has_no_manual_exit(self):
        from core.models import InvoiceStatus, MANUAL_TRANSITIONS

        assert MANUAL_TRANSITIONS[InvoiceStatus.PAID] == frozenset()
        assert all(InvoiceStatus.PAID not in targets for targets in MANUAL_TRANSITIONS.values())

    def test_cancelled_can_only_be_reissued(self):
        from core.models import InvoiceStatus, MANUAL_TRANSITIONS

        assert MANUAL_TRANSITIONS[InvoiceStatus.CANCELLED] == {InvoiceStatus.ISSUED}


class TestInvoiceDetail:

    def test_balance(self):
        from core.models import Invoice, InvoiceDetail, InvoiceStatus, InvoiceType

        now = now_utc()
        invoice = Invoice(
            id=uuid4(), project_id=uuid4(), type=InvoiceType.PROJECT,
            amount=Decimal("1000.00"), status=InvoiceStatus.ISSUED,
            issue_date=date(2026, 3, 1), due_date=None, billing_month=None,
            created_at=now, updated_at=now,
        )
        detail = InvoiceDetail(invoice=invoice, invoice_number="INV-2026-001", payments=[], total_paid=Decimal("400.00"))

        assert detail.balance == Decimal("600.00")
        assert detail.model_dump(mode="json")["balance"] == "600.00"


class TestPaymentCreate:
    """Tests for PaymentCreate custom validators."""

    def test_rejects_non_positive_amount(self):
        from core.models import PaymentCreate

        for amount in ("0", "-5"):
            with pytest.raises(ValidationError):
                PaymentCreate(invoice_id=uuid4(), amount=Decimal(amount), date=date(2026, 3, 1))

    def test_blank_mode_is_none(self):
        from core.models import PaymentCreate

        p = PaymentCreate(invoice_id=uuid4(), amount=Decimal("1"), date=date(2026, 3, 1), mode="   ")
        assert p.mode is None

    def test_mode_is_trimmed(self):
        from core.models import PaymentCreate

        p = PaymentCreate(invoice_id=uuid4(), amount=Decimal("1"), date=date(2026, 3, 1), mode=" NEFT ")
        assert p.mode == "NEFT"

    def test_requires_date(self):
        from core.models import PaymentCreate

        with pytest.raises(ValidationError, match="date"):
            PaymentCreate(invoice_id=uuid4(), amount=Decimal("1"))


class TestRequirementPricing:
    """Tests for extended_price and RequirementCreate.priced()."""

    def test_quantity_times_rate(self):
        from core.models import extended_price

        assert extended_price(Decimal("3"), Decimal("150.00")) == Decimal("450.00")

    def test_period_multiplies(self):
        from core.models import extended_price

        assert extended_price(Decimal("2"), Decimal("100.00"), period_days=5) == Decimal("1000.00")

    def test_missing_inputs_keep_manual_price(self):
        from core.models import extended_price

        assert extended_price(None, Decimal("100")) is None
        assert extended_price(Decimal("0"), Decimal("100")) is None

    def test_priced_derives_both_sides(self):
        from core.models import RequirementCreate

        req = RequirementCreate(
            project_id=uuid4(), title="  Reels  ",
            quantity=Decimal("4"), unit_rate=Decimal("250.00"), vendor_unit_rate=Decimal("100.00"),
        ).priced()

        assert req.title == "Reels"
        assert req.client_price == Decimal("1000.00")
        assert req.expected_vendor_cost == Decimal("400.00")

    def test_priced_keeps_entered_prices_without_rates(self):
        from core.models import RequirementCreate

        req = RequirementCreate(project_id=uuid4(), title="Logo", client_price=Decimal("800.00")).priced()
        assert req.client_price == Decimal("800.00")
        assert req.expected_vendor_cost is None


class TestLedgerEntryType:

    def test_only_expected_cost_is_manual(self):
        from core.models import LedgerEntryType

        assert not LedgerEntryType.VENDOR_EXPECTED_COST.is_derived
        assert LedgerEntryType.CLIENT_INVOICE.is_derived
        assert LedgerEntryType.CLIENT_PAYMENT.is_derived
        assert LedgerEntryType.VENDOR_PAYMENT.is_derived

    def test_unreferenced_entry_is_manual(self):
        from core.models import LedgerEntry, LedgerEntryType

        entry = LedgerEntry(
            id=uuid4(), project_id=uuid4(), type=LedgerEntryType.CLIENT_PAYMENT,
            amount=Decimal("10"), date=date(2026, 3, 1), reference_id=None, created_at=now_utc(),
        )
        assert not entry.is_derived


class TestVendorPayoutCreate:

    def test_rejects_zero_amount(self):
        from core.models import VendorPayoutCreate

        with pytest.raises(ValidationError):
            VendorPayoutCreate(requirement_id=uuid4(), vendor_id=uuid4(), amount=Decimal("0"))
