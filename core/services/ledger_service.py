"""
Ledger store.

The single record of what actually happened financially, keyed by project.
Entries derived from invoices, payments and vendor payouts are projections:
each is posted and retracted inside the same transaction as the event that
causes it, and a partial unique index guarantees at most one entry per
(type, reference_id). Manual entries (expected vendor costs, adjustments)
are managed through the create/update/delete methods below.
"""

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import psycopg2.errors

from clients.postgres_client import PostgresClient, Transaction
from core.errors import ConflictError, NotFoundError, ValidationError
from core.models import (
    LedgerEntry, LedgerEntryCreate, LedgerEntryUpdate, LedgerEntryType, ProjectFinanceSummary,
)
from core.unit_of_work import unit_of_work
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for ledger entries."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    # -------------------------------------------------------------------------
    # Derived entries (called by lifecycle services inside their transaction)
    # -------------------------------------------------------------------------

    def post(
        self,
        tx: Transaction,
        entry_type: LedgerEntryType,
        reference_id: UUID,
        project_id: UUID,
        amount: Decimal,
        entry_date: date,
    ) -> LedgerEntry:
        """
        Make the entry for (entry_type, reference_id) say amount on entry_date.

        Inserts when none exists, otherwise rewrites the existing one in place,
        so the pair never has more than one entry.
        """
        row = tx.execute_returning(
            """
            INSERT INTO ledger_entries (id, project_id, type, amount, date, reference_id, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (type, reference_id) WHERE reference_id IS NOT NULL
            DO UPDATE SET project_id = EXCLUDED.project_id,
                          amount = EXCLUDED.amount,
                          date = EXCLUDED.date
            RETURNING *
            """,
            (uuid4(), project_id, entry_type.value, amount, entry_date, reference_id, now_utc())
        )[0]

        entry = LedgerEntry.model_validate(row)
        logger.info(
            "Ledger %s posted for %s: %s on %s",
            entry_type.value, reference_id, amount, entry_date,
        )
        return entry

    def retract(self, tx: Transaction, entry_type: LedgerEntryType, reference_id: UUID) -> bool:
        """
        Remove the entry for (entry_type, reference_id).

        Returns:
            True if an entry existed.
        """
        deleted = tx.rowcount(
            "DELETE FROM ledger_entries WHERE type = %s AND reference_id = %s",
            (entry_type.value, reference_id)
        )
        if deleted:
            logger.info("Ledger %s retracted for %s", entry_type.value, reference_id)
        return deleted > 0

    def get_for_reference(
        self,
        entry_type: LedgerEntryType,
        reference_id: UUID,
        tx: Transaction | None = None,
    ) -> LedgerEntry | None:
        """The entry derived from one event, if any."""
        executor = tx if tx is not None else self.postgres
        row = executor.execute_single(
            "SELECT * FROM ledger_entries WHERE type = %s AND reference_id = %s",
            (entry_type.value, reference_id)
        )
        return LedgerEntry.model_validate(row) if row else None

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_by_id(self, entry_id: UUID) -> LedgerEntry | None:
        row = self.postgres.execute_single(
            "SELECT * FROM ledger_entries WHERE id = %s",
            (entry_id,)
        )
        return LedgerEntry.model_validate(row) if row else None

    def list_for_project(self, project_id: UUID, limit: int = 500) -> list[LedgerEntry]:
        """
        List a project's ledger.

        Returns:
            Entries ordered by date, then by when they were recorded
        """
        rows = self.postgres.execute(
            """
            SELECT * FROM ledger_entries
            WHERE project_id = %s
            ORDER BY date ASC, created_at ASC
            LIMIT %s
            """,
            (project_id, limit)
        )
        return [LedgerEntry.model_validate(row) for row in rows]

    def project_summary(self, project_id: UUID) -> ProjectFinanceSummary:
        """
        Ledger totals and profit of a project.

        Planned profit comes from requirement prices, actual profit from cash
        movements: client payments received minus vendor payouts made.

        Raises:
            NotFoundError: If the project does not exist
        """
        with self.postgres.transaction() as tx:
            project = tx.execute_single("SELECT id FROM projects WHERE id = %s", (project_id,))
            if project is None:
                raise NotFoundError("project", project_id)

            rows = tx.execute(
                """
                SELECT type, SUM(amount) AS total
                FROM ledger_entries
                WHERE project_id = %s
                GROUP BY type
                """,
                (project_id,)
            )
            planned = tx.execute_single(
                """
                SELECT COUNT(*) AS requirements,
                       COALESCE(SUM(client_price - expected_vendor_cost), 0) AS profit
                FROM requirements
                WHERE project_id = %s
                  AND client_price IS NOT NULL
                  AND expected_vendor_cost IS NOT NULL
                """,
                (project_id,)
            )

        totals = {LedgerEntryType(row["type"]): Decimal(row["total"]) for row in rows}
        zero = Decimal("0")
        received = totals.get(LedgerEntryType.CLIENT_PAYMENT, zero)
        paid_to_vendors = totals.get(LedgerEntryType.VENDOR_PAYMENT, zero)

        return ProjectFinanceSummary(
            project_id=project_id,
            invoiced=totals.get(LedgerEntryType.CLIENT_INVOICE, zero),
            received=received,
            expected_vendor_cost=totals.get(LedgerEntryType.VENDOR_EXPECTED_COST, zero),
            paid_to_vendors=paid_to_vendors,
            planned_profit=Decimal(planned["profit"]) if planned["requirements"] else None,
            actual_profit=received - paid_to_vendors if totals else None,
        )

    # -------------------------------------------------------------------------
    # Manual entries
    # -------------------------------------------------------------------------

    def create_entry(self, data: LedgerEntryCreate) -> LedgerEntry:
        """
        Record a manual ledger entry.

        Only expected vendor costs may reference something (their requirement);
        referenced entries of the other types belong to invoices, payments and
        payouts and are never entered by hand.

        Raises:
            ValidationError: If a derived type carries a reference
            NotFoundError: If the project does not exist
            ConflictError: If the reference already has an entry of this type
        """
        if data.reference_id is not None and data.type.is_derived:
            raise ValidationError(
                f"{data.type.value} entries with a reference are recorded automatically"
            )

        with unit_of_work(self.postgres) as tx:
            project = tx.execute_single("SELECT id FROM projects WHERE id = %s", (data.project_id,))
            if project is None:
                raise NotFoundError("project", data.project_id)

            if data.reference_id is not None and self.get_for_reference(data.type, data.reference_id, tx):
                raise ConflictError(
                    f"A {data.type.value} entry for {data.reference_id} already exists"
                )

            try:
                row = tx.execute_returning(
                    """
                    INSERT INTO ledger_entries (id, project_id, type, amount, date, reference_id, created_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    RETURNING *
                    """,
                    (
                        uuid4(), data.project_id, data.type.value, data.amount,
                        data.date, data.reference_id, now_utc()
                    )
                )[0]
            except psycopg2.errors.UniqueViolation as e:
                # Another writer inserted the same reference after our check
                raise ConflictError(
                    f"A {data.type.value} entry for {data.reference_id} already exists"
                ) from e

        return LedgerEntry.model_validate(row)

    def update_entry(self, entry_id: UUID, data: LedgerEntryUpdate) -> LedgerEntry:
        """
        Change a manual ledger entry.

        Raises:
            NotFoundError: If the entry does not exist
            ConflictError: If the entry is derived from an invoice, payment or payout
            ValidationError: If the change would turn a referenced entry into a derived type
        """
        updates = data.model_dump(exclude_none=True)

        with unit_of_work(self.postgres) as tx:
            current = self._get_manual_for_update(tx, entry_id)
            if not updates:
                return current

            new_type = updates.get("type", current.type)
            if current.reference_id is not None and new_type.is_derived:
                raise ValidationError(
                    f"{new_type.value} entries with a reference are recorded automatically"
                )
            if "type" in updates:
                updates["type"] = new_type.value

            set_parts = [f"{field} = %s" for field in updates]
            row = tx.execute_returning(
                f"""
                UPDATE ledger_entries
                SET {', '.join(set_parts)}
                WHERE id = %s
                RETURNING *
                """,
                (*updates.values(), entry_id)
            )[0]

        return LedgerEntry.model_validate(row)

    def delete_entry(self, entry_id: UUID) -> None:
        """
        Delete a manual ledger entry.

        Raises:
            NotFoundError: If the entry does not exist
            ConflictError: If the entry is derived from an invoice, payment or payout
        """
        with unit_of_work(self.postgres) as tx:
            self._get_manual_for_update(tx, entry_id)
            tx.execute("DELETE FROM ledger_entries WHERE id = %s", (entry_id,))

    def _get_manual_for_update(self, tx: Transaction, entry_id: UUID) -> LedgerEntry:
        row = tx.execute_single(
            "SELECT * FROM ledger_entries WHERE id = %s FOR UPDATE",
            (entry_id,)
        )
        if row is None:
            raise NotFoundError("ledger_entry", entry_id)

        entry = LedgerEntry.model_validate(row)
        if entry.is_derived:
            raise ConflictError(
                f"Ledger entry {entry_id} mirrors {entry.type.value} {entry.reference_id}; "
                "change the source record instead"
            )
        return entry
