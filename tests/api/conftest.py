"""API test fixtures: TestClient over the real services and database."""

import pytest
from starlette.testclient import TestClient

from api.app import create_app


# =============================================================================
# SERVICES DICT
# =============================================================================


@pytest.fixture
def services(
    invoice_service,
    payment_service,
    payout_service,
    requirement_service,
    ledger_service,
    notification_service,
):
    return {
        "invoice": invoice_service,
        "payment": payment_service,
        "payout": payout_service,
        "requirement": requirement_service,
        "ledger": ledger_service,
        "notification": notification_service,
    }


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services):
    """FastAPI app with middleware, error handlers, and data/actions routes."""
    return create_app(services)


@pytest.fixture
def client(app, test_user_id):
    """Test client acting as the primary test user."""
    return TestClient(app, raise_server_exceptions=False, headers={"X-User-ID": str(test_user_id)})


@pytest.fixture
def anon_client(app):
    """Test client without a user header."""
    return TestClient(app, raise_server_exceptions=False)
