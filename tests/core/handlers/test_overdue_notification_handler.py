"""Tests for overdue notification handler.

On InvoiceOverdue: notify the user in the current user context.

Uses real NotificationService against the DB.
"""

from datetime import timedelta

import pytest

from core.config import FinanceConfig
from core.events import InvoiceOverdue
from core.handlers.overdue_notification_handler import handle_invoice_overdue
from core.models import InvoiceStatus
from utils.timezone import today_utc


@pytest.fixture
def overdue_invoice(issued_invoice):
    return issued_invoice("250.00", due_date=today_utc() - timedelta(days=3))


class TestOverdueNotification:

    def test_notifies_current_user(self, notification_service, overdue_invoice, as_test_user):
        handler = handle_invoice_overdue(notification_service)

        handler(InvoiceOverdue.create(overdue_invoice))

        notifications = notification_service.list_for_user(as_test_user)
        assert len(notifications) == 1
        assert notifications[0].type == "invoice_overdue"
        assert notifications[0].title == "Invoice overdue"
        assert notifications[0].link_href == f"/finance/invoice/{overdue_invoice.id}/print"
        assert not notifications[0].is_read

    def test_no_user_no_notification(self, notification_service, overdue_invoice, test_user_id):
        handler = handle_invoice_overdue(notification_service)

        handler(InvoiceOverdue.create(overdue_invoice))

        assert notification_service.list_for_user(test_user_id) == []

    def test_config_sets_title_and_link(self, notification_service, overdue_invoice, as_test_user):
        config = FinanceConfig(
            overdue_notification_title="Payment late",
            invoice_link_template="/invoices/{invoice_id}",
        )
        handler = handle_invoice_overdue(notification_service, config)

        handler(InvoiceOverdue.create(overdue_invoice))

        notification = notification_service.list_for_user(as_test_user)[0]
        assert notification.title == "Payment late"
        assert notification.link_href == f"/invoices/{overdue_invoice.id}"

    def test_subscribed_handler_runs_on_sync(self, notification_service, invoice_service, issued_invoice, as_test_user):
        """The invoice_service fixture subscribes the handler the way the app does."""
        invoice = issued_invoice("10.00", due_date=today_utc() - timedelta(days=1))

        invoice_service.sync_overdue()

        assert invoice_service.get_by_id(invoice.id).status == InvoiceStatus.OVERDUE
        assert [n.link_href for n in notification_service.list_for_user(as_test_user)] == [
            f"/finance/invoice/{invoice.id}/print"
        ]
