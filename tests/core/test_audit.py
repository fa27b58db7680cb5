"""Tests for the activity log."""

import pytest
from uuid import uuid4

from core.audit import AuditAction


class TestAuditLogger:

    def test_record_and_read_back(self, audit):
        entity_id = uuid4()

        audit.record(AuditAction.INVOICE_ISSUED, "invoice", entity_id, {"amount": "10.00"})

        history = audit.get_entity_history("invoice", entity_id)
        assert len(history) == 1
        assert history[0]["action"] == "invoice_issued"
        assert history[0]["meta"] == {"amount": "10.00"}
        assert history[0]["user_id"] is None

    def test_attributed_to_current_user(self, audit, as_test_user):
        entity_id = uuid4()

        audit.record("custom_action", "invoice", entity_id)

        entry = audit.get_entity_history("invoice", entity_id)[0]
        assert entry["user_id"] == as_test_user
        assert entry["meta"] is None

    def test_rolled_back_with_transaction(self, db, audit):
        entity_id = uuid4()

        with pytest.raises(RuntimeError):
            with db.transaction() as tx:
                audit.record(AuditAction.PAYMENT_RECEIVED, "payment_received", entity_id, tx=tx)
                raise RuntimeError("boom")

        assert audit.get_entity_history("payment_received", entity_id) == []
