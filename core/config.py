"""Finance configuration."""

from pydantic import BaseModel, Field


class FinanceConfig(BaseModel):
    """
    Finance core configuration.

    Defaults match what the dashboard shows today; override per deployment.
    """

    # Invoice numbering
    invoice_number_width: int = Field(
        default=3,
        description="Zero padding of the per-year sequence in INV-YYYY-NNN",
        ge=1,
        le=8,
    )

    # Overdue notifications
    overdue_notification_title: str = Field(
        default="Invoice overdue",
        description="Title of the notification sent when an invoice goes overdue",
    )
    overdue_notification_body: str = Field(
        default="An invoice has passed its due date.",
        description="Body of the overdue notification",
    )
    invoice_link_template: str = Field(
        default="/finance/invoice/{invoice_id}/print",
        description="Link attached to invoice notifications; {invoice_id} is substituted",
    )

    # Re-issuing a voided invoice
    reject_reissue_on_snapshot_mismatch: bool = Field(
        default=False,
        description=(
            "Reject re-issuing a voided invoice when the fulfilled requirements it would "
            "snapshot no longer sum to the invoice amount. When False the re-issue goes "
            "through and the mismatch is logged and recorded in the activity log."
        ),
    )

    # Payments
    payment_mode_max_length: int = Field(
        default=100,
        description="Longest accepted payment mode text",
        ge=1,
    )

    def invoice_link(self, invoice_id) -> str:
        return self.invoice_link_template.format(invoice_id=invoice_id)
