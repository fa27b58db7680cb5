"""Tests for FinanceConfig."""

import pytest
from pydantic import ValidationError
from uuid import uuid4

from core.config import FinanceConfig


class TestFinanceConfig:

    def test_defaults(self):
        config = FinanceConfig()
        assert config.invoice_number_width == 3
        assert config.overdue_notification_title == "Invoice overdue"
        assert config.reject_reissue_on_snapshot_mismatch is False

    def test_invoice_link(self):
        invoice_id = uuid4()
        assert FinanceConfig().invoice_link(invoice_id) == f"/finance/invoice/{invoice_id}/print"

    def test_custom_link_template(self):
        config = FinanceConfig(invoice_link_template="https://app.test/i/{invoice_id}")
        assert config.invoice_link("abc") == "https://app.test/i/abc"

    def test_rejects_zero_width(self):
        with pytest.raises(ValidationError):
            FinanceConfig(invoice_number_width=0)
