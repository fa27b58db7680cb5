"""GET /api/data: unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response
from core.models import InvoiceStatus, VendorPayoutStatus
from utils.user_context import peek_current_user_id


VALID_TYPES = {"invoices", "ledger", "payouts", "notifications"}


def _ok(request: Request, data):
    return success_response(data, getattr(request.state, "request_id", None)).model_dump(mode="json")


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]
    requirement_svc = services["requirement"]
    ledger_svc = services["ledger"]
    payout_svc = services["payout"]
    notification_svc = services["notification"]

    # -------------------------------------------------------------------------
    # Convenience routes (must be registered before the generic /data route)
    # -------------------------------------------------------------------------

    @router.get("/data/projects/{project_id}/suggested-amount")
    async def suggested_amount(request: Request, project_id: UUID):
        amount = requirement_svc.suggested_amount(project_id)
        return _ok(request, {"project_id": str(project_id), "suggested_amount": str(amount)})

    @router.get("/data/projects/{project_id}/summary")
    async def project_summary(request: Request, project_id: UUID):
        summary = ledger_svc.project_summary(project_id)
        return _ok(request, summary.model_dump(mode="json"))

    @router.get("/data/invoices/{invoice_id}")
    async def invoice_detail(request: Request, invoice_id: UUID):
        detail = invoice_svc.get_detail(invoice_id)
        data = detail.model_dump(mode="json")
        data["requirement_ids"] = [str(r) for r in requirement_svc.snapshot_for_invoice(invoice_id)]
        return _ok(request, data)

    # -------------------------------------------------------------------------
    # Generic data endpoint
    # -------------------------------------------------------------------------

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        project_id: str | None = Query(None),
        requirement_id: str | None = Query(None),
        status: str | None = Query(None),
        filter: str | None = Query(None),
        limit: int = Query(100, ge=1, le=500),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        if type == "invoices":
            if requirement_id:
                billed_by = invoice_svc.list_for_requirement(UUID(requirement_id))
                return _ok(request, [i.model_dump(mode="json") for i in billed_by])
            return _ok(request, _handle_invoices(invoice_svc, project_id, status, limit))

        if type == "ledger":
            return _ok(request, _handle_ledger(ledger_svc, project_id, limit))

        if type == "payouts":
            return _ok(request, _handle_payouts(payout_svc, requirement_id, status, limit))

        if type == "notifications":
            return _ok(request, _handle_notifications(notification_svc, filter, limit))

    return router


def _handle_invoices(invoice_svc, project_id, status, limit):
    # The list is where overdue invoices are noticed
    invoice_svc.sync_overdue()

    if project_id:
        invoices = invoice_svc.list_for_project(UUID(project_id))
        if status:
            invoices = [i for i in invoices if i.status == InvoiceStatus(status)]
    else:
        invoices = invoice_svc.list_all(InvoiceStatus(status) if status else None, limit)

    numbers = invoice_svc.invoice_numbers()
    data = []
    for invoice in invoices:
        item = invoice.model_dump(mode="json")
        item["invoice_number"] = numbers.get(invoice.id)
        data.append(item)
    return data


def _handle_ledger(ledger_svc, project_id, limit):
    if not project_id:
        raise ValueError("'ledger' type requires 'project_id' parameter")

    entries = ledger_svc.list_for_project(UUID(project_id), limit)
    return [e.model_dump(mode="json") for e in entries]


def _handle_payouts(payout_svc, requirement_id, status, limit):
    if requirement_id:
        payouts = payout_svc.list_for_requirement(UUID(requirement_id))
    else:
        payouts = payout_svc.list_all(VendorPayoutStatus(status) if status else None, limit)

    return [p.model_dump(mode="json") for p in payouts]


def _handle_notifications(notification_svc, filter, limit):
    user_id = peek_current_user_id()
    if user_id is None:
        raise ValueError("'notifications' type requires the X-User-ID header")

    notifications = notification_svc.list_for_user(user_id, unread_only=(filter == "unread"), limit=limit)
    return [n.model_dump(mode="json") for n in notifications]
