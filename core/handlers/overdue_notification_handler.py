"""
Handler for InvoiceOverdue events.

When an invoice goes overdue, notifies the user whose request noticed it
(the one in the current user context). Jobs and scripts run without a user
and notify nobody.
"""

import logging
from typing import Callable

from core.config import FinanceConfig
from core.events import InvoiceOverdue
from core.notifications import Notifier
from utils.user_context import peek_current_user_id

logger = logging.getLogger(__name__)


def handle_invoice_overdue(notifier: Notifier, config: FinanceConfig | None = None) -> Callable:
    """
    Factory that returns an InvoiceOverdue handler.

    Args:
        notifier: Where notifications are delivered (NotificationService)
        config: Title, body and link of the notification

    Returns:
        Handler callable that sends one overdue notification per event
    """
    config = config or FinanceConfig()

    def handler(event: InvoiceOverdue):
        user_id = peek_current_user_id()
        if user_id is None:
            logger.debug("Invoice %s overdue; no user to notify", event.invoice.id)
            return

        notifier.create(
            user_id,
            config.overdue_notification_title,
            config.overdue_notification_body,
            "invoice_overdue",
            config.invoice_link(event.invoice.id),
        )

    return handler
