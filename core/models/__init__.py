"""Core domain models."""

from core.models.payment import Payment, PaymentCreate
from core.models.invoice import (
    Invoice, InvoiceCreate, InvoiceUpdate, InvoiceDetail, NumberedInvoice,
    InvoiceStatus, InvoiceType, MANUAL_TRANSITIONS, BILLED_STATUSES,
)
from core.models.ledger import (
    LedgerEntry, LedgerEntryCreate, LedgerEntryUpdate, LedgerEntryType, ProjectFinanceSummary,
)
from core.models.requirement import Requirement, RequirementCreate, FulfilmentStatus, extended_price
from core.models.payout import VendorPayout, VendorPayoutCreate, VendorPayoutUpdate, VendorPayoutStatus
from core.models.notification import Notification

__all__ = [
    # Payment
    "Payment", "PaymentCreate",
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceUpdate", "InvoiceDetail", "NumberedInvoice",
    "InvoiceStatus", "InvoiceType", "MANUAL_TRANSITIONS", "BILLED_STATUSES",
    # Ledger
    "LedgerEntry", "LedgerEntryCreate", "LedgerEntryUpdate", "LedgerEntryType", "ProjectFinanceSummary",
    # Requirement
    "Requirement", "RequirementCreate", "FulfilmentStatus", "extended_price",
    # Vendor payout
    "VendorPayout", "VendorPayoutCreate", "VendorPayoutUpdate", "VendorPayoutStatus",
    # Notification
    "Notification",
]
