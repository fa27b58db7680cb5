"""POST /api/actions: unified mutation endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.models import (
    InvoiceCreate, InvoiceUpdate,
    PaymentCreate,
    VendorPayoutCreate, VendorPayoutUpdate,
    RequirementCreate, FulfilmentStatus,
    LedgerEntryCreate, LedgerEntryUpdate,
)
from utils.user_context import peek_current_user_id


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "invoice": InvoiceHandler(services["invoice"]),
        "payment": PaymentHandler(services["payment"]),
        "payout": PayoutHandler(services["payout"]),
        "requirement": RequirementHandler(services["requirement"]),
        "ledger": LedgerHandler(services["ledger"]),
        "notification": NotificationHandler(services["notification"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(dict(body.data))
        return success_response(result, getattr(request.state, "request_id", None)).model_dump(mode="json")

    return router


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class InvoiceHandler:
    ALLOWED_ACTIONS = {"create", "update", "sync_overdue"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        invoice = self.service.create(InvoiceCreate(**data))
        return invoice.model_dump(mode="json")

    def _handle_update(self, data: dict):
        invoice_id = UUID(data.pop("id"))
        invoice = self.service.update(invoice_id, InvoiceUpdate(**data))
        return invoice.model_dump(mode="json")

    def _handle_sync_overdue(self, data: dict):
        return {"updated": self.service.sync_overdue()}


class PaymentHandler:
    ALLOWED_ACTIONS = {"record", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_record(self, data: dict):
        payment = self.service.record_payment(PaymentCreate(**data))
        return payment.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        self.service.delete_payment(UUID(data["id"]))
        return {"deleted": True}


class PayoutHandler:
    ALLOWED_ACTIONS = {"create", "update"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        payout = self.service.create(VendorPayoutCreate(**data))
        return payout.model_dump(mode="json")

    def _handle_update(self, data: dict):
        payout_id = UUID(data.pop("id"))
        payout = self.service.update(payout_id, VendorPayoutUpdate(**data))
        return payout.model_dump(mode="json")


class RequirementHandler:
    ALLOWED_ACTIONS = {"create", "set_fulfilment", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        requirement = self.service.create(RequirementCreate(**data))
        return requirement.model_dump(mode="json")

    def _handle_set_fulfilment(self, data: dict):
        requirement = self.service.set_fulfilment_status(
            UUID(data["id"]), FulfilmentStatus(data["fulfilment_status"])
        )
        return requirement.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        self.service.delete(UUID(data["id"]))
        return {"deleted": True}


class LedgerHandler:
    ALLOWED_ACTIONS = {"create", "update", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        entry = self.service.create_entry(LedgerEntryCreate(**data))
        return entry.model_dump(mode="json")

    def _handle_update(self, data: dict):
        entry_id = UUID(data.pop("id"))
        entry = self.service.update_entry(entry_id, LedgerEntryUpdate(**data))
        return entry.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        self.service.delete_entry(UUID(data["id"]))
        return {"deleted": True}


class NotificationHandler:
    ALLOWED_ACTIONS = {"mark_read", "mark_all_read"}

    def __init__(self, service):
        self.service = service

    @staticmethod
    def _user_id() -> UUID:
        user_id = peek_current_user_id()
        if user_id is None:
            raise ValueError("Notifications require the X-User-ID header")
        return user_id

    def _handle_mark_read(self, data: dict):
        notification = self.service.mark_read(UUID(data["id"]), self._user_id())
        return notification.model_dump(mode="json")

    def _handle_mark_all_read(self, data: dict):
        return {"updated": self.service.mark_all_read(self._user_id())}
