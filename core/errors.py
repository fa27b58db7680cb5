"""Typed exceptions for finance operations.

Validation and not-found failures are raised before any write. Storage
failures surface only after the enclosing unit of work has rolled back.
"""


class FinanceError(Exception):
    """Base class for every failure a finance operation reports to its caller."""

    code = "FINANCE_ERROR"


class ValidationError(FinanceError):
    """
    Input rejected before anything was written.

    Non-positive payment amounts, missing required dates, invalid status
    targets, edits that would desynchronize the ledger.
    """

    code = "VALIDATION_ERROR"


class NotFoundError(FinanceError):
    """An invoice, payment, payout, requirement or project id did not resolve."""

    code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.replace('_', ' ').capitalize()} {entity_id} not found")


class ConflictError(FinanceError):
    """The target is still referenced elsewhere or owned by another record."""

    code = "CONFLICT"


class StorageError(FinanceError):
    """The database failed mid-operation. Nothing from the operation was kept."""

    code = "STORAGE_ERROR"
