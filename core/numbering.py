"""
Human-readable invoice numbers.

Numbers are derived on read, never stored: INV-{year}-{seq}. The year comes
from the issue date, falling back to the creation date and then to the
current year. The sequence is the invoice's 1-based position among all
invoices of that year ordered by creation time. Creating or backdating an
invoice can therefore shift the numbers of its neighbours.
"""

from datetime import date, datetime
from typing import Any, Iterable
from uuid import UUID

from utils.timezone import to_utc, today_utc


def invoice_year(issue_date: date | None, created_at: datetime | None) -> int:
    """Year an invoice is numbered under."""
    if issue_date is not None:
        return issue_date.year
    if created_at is not None:
        return to_utc(created_at).year
    return today_utc().year


def format_invoice_number(year: int, sequence: int, width: int = 3) -> str:
    """INV-2026-007 style display number."""
    return f"INV-{year:04d}-{sequence:0{width}d}"


def assign_invoice_numbers(rows: Iterable[dict[str, Any]], width: int = 3) -> dict[UUID, str]:
    """
    Number every invoice in `rows`.

    Args:
        rows: Dicts with id, issue_date and created_at for ALL invoices,
            since a number depends on every other invoice of the same year
        width: Zero padding of the sequence

    Returns:
        {invoice_id: display number}
    """
    ordered = sorted(rows, key=lambda r: (to_utc(r["created_at"]), str(r["id"])))

    counters: dict[int, int] = {}
    numbers: dict[UUID, str] = {}
    for row in ordered:
        year = invoice_year(row.get("issue_date"), row["created_at"])
        counters[year] = counters.get(year, 0) + 1
        numbers[row["id"]] = format_invoice_number(year, counters[year], width)

    return numbers
