"""Application assembly: services wired to one database, mounted on FastAPI."""

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware, UserContextMiddleware
from clients.postgres_client import PostgresClient
from core.audit import AuditLogger
from core.config import FinanceConfig
from core.event_bus import EventBus
from core.handlers.overdue_notification_handler import handle_invoice_overdue
from core.services.invoice_service import InvoiceService
from core.services.ledger_service import LedgerService
from core.services.notification_service import NotificationService
from core.services.payment_service import PaymentService
from core.services.payout_service import PayoutService
from core.services.requirement_service import RequirementService


def build_services(
    postgres: PostgresClient,
    config: FinanceConfig | None = None,
    event_bus: EventBus | None = None,
) -> dict:
    """
    Construct every finance service against one database and event bus,
    and subscribe the event handlers.
    """
    config = config or FinanceConfig()
    event_bus = event_bus or EventBus()

    audit = AuditLogger(postgres)
    ledger = LedgerService(postgres)
    requirements = RequirementService(postgres, audit)
    notifications = NotificationService(postgres)

    event_bus.subscribe("InvoiceOverdue", handle_invoice_overdue(notifications, config))

    return {
        "ledger": ledger,
        "requirement": requirements,
        "notification": notifications,
        "invoice": InvoiceService(
            postgres, audit, ledger, requirements,
            event_bus=event_bus, config=config,
        ),
        "payment": PaymentService(postgres, audit, ledger, event_bus=event_bus, config=config),
        "payout": PayoutService(postgres, audit, ledger, event_bus=event_bus),
    }


def create_app(services: dict) -> FastAPI:
    """FastAPI app with request IDs, user context, error handlers and data/actions routes."""
    app = FastAPI(title="Finance")
    # Added last runs first: the request ID exists before the user is resolved
    app.add_middleware(UserContextMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    return app
