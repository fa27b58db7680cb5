"""Shared test fixtures for the finance test suite."""

import pytest
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
# override=True ensures .env takes precedence over shell env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

import psycopg2

from utils.user_context import user_context, clear_current_user_id


SCHEMA_PATH = Path(__file__).parent.parent / "schema.sql"


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_user_id()
    yield
    clear_current_user_id()


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def as_test_user(test_user_id):
    """Run the test as the primary test user."""
    with user_context(test_user_id):
        yield test_user_id


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def db_session():
    """
    Session-scoped PostgresClient with the schema applied.

    Skips every database test when no PostgreSQL is reachable.
    """
    from clients.postgres_client import PostgresClient
    from clients.vault_client import VaultError, get_database_url

    try:
        client = PostgresClient(get_database_url())
    except (VaultError, psycopg2.OperationalError) as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    with client.transaction() as tx:
        tx.execute(SCHEMA_PATH.read_text())

    yield client
    client.close()


@pytest.fixture
def db(db_session):
    """PostgresClient on an emptied database."""
    db_session.execute("""
        TRUNCATE
            notifications, activity_log, ledger_entries, vendor_payouts,
            invoice_requirements, payments_received, invoices,
            requirements, vendors, projects
        CASCADE
    """)
    return db_session


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def audit(db):
    from core.audit import AuditLogger
    return AuditLogger(db)


@pytest.fixture
def ledger_service(db):
    from core.services.ledger_service import LedgerService
    return LedgerService(db)


@pytest.fixture
def requirement_service(db, audit):
    from core.services.requirement_service import RequirementService
    return RequirementService(db, audit)


@pytest.fixture
def notification_service(db):
    from core.services.notification_service import NotificationService
    return NotificationService(db)


@pytest.fixture
def event_bus():
    from core.event_bus import EventBus
    return EventBus()


@pytest.fixture
def invoice_service(db, audit, ledger_service, requirement_service, event_bus, notification_service):
    from core.handlers.overdue_notification_handler import handle_invoice_overdue
    from core.services.invoice_service import InvoiceService

    event_bus.subscribe("InvoiceOverdue", handle_invoice_overdue(notification_service))
    return InvoiceService(db, audit, ledger_service, requirement_service, event_bus=event_bus)


@pytest.fixture
def payment_service(db, audit, ledger_service, event_bus):
    from core.services.payment_service import PaymentService
    return PaymentService(db, audit, ledger_service, event_bus=event_bus)


@pytest.fixture
def payout_service(db, audit, ledger_service, event_bus):
    from core.services.payout_service import PayoutService
    return PayoutService(db, audit, ledger_service, event_bus=event_bus)


# =============================================================================
# TEST DATA FIXTURES
# =============================================================================


@pytest.fixture
def project(db) -> UUID:
    """A one-time project."""
    project_id = uuid4()
    db.execute(
        "INSERT INTO projects (id, name, engagement_type) VALUES (%s, %s, %s)",
        (project_id, "Website Relaunch", "one_time")
    )
    return project_id


@pytest.fixture
def vendor(db) -> UUID:
    vendor_id = uuid4()
    db.execute("INSERT INTO vendors (id, name) VALUES (%s, %s)", (vendor_id, "Studio North"))
    return vendor_id


@pytest.fixture
def make_requirement(requirement_service, project):
    """Factory for requirements on the test project."""
    from core.models import RequirementCreate, FulfilmentStatus

    def _make(client_price, fulfilled=True, title="Landing page", project_id=None):
        return requirement_service.create(RequirementCreate(
            project_id=project_id or project,
            title=title,
            client_price=Decimal(client_price),
            fulfilment_status=FulfilmentStatus.FULFILLED if fulfilled else FulfilmentStatus.PENDING,
        ))

    return _make


@pytest.fixture
def make_invoice(invoice_service, project):
    """Factory for draft invoices on the test project."""
    from core.models import InvoiceCreate, InvoiceType

    def _make(amount, type=InvoiceType.PROJECT, project_id=None, **fields):
        return invoice_service.create(InvoiceCreate(
            project_id=project_id or project,
            type=type,
            amount=Decimal(amount),
            **fields,
        ))

    return _make


@pytest.fixture
def issued_invoice(invoice_service, make_invoice):
    """Factory for invoices already issued on a fixed date."""

    def _make(amount, issue_date=date(2026, 3, 1), **fields):
        invoice = make_invoice(amount, issue_date=issue_date, **fields)
        return invoice_service.issue(invoice.id)

    return _make
