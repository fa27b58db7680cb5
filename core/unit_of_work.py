"""
Unit of work for multi-step financial writes.

Every lifecycle operation (issue, void, pay, unpay) touches several tables.
They all run inside one unit of work: acquire a transaction, perform every
sub-write, then commit, or roll back everything on the way out.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

import psycopg2

from clients.postgres_client import PostgresClient, Transaction
from core.errors import StorageError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(postgres: PostgresClient, tx: Transaction | None = None) -> Iterator[Transaction]:
    """
    Yield a transaction for a group of writes.

    When the caller already holds a transaction it is reused and left for
    the caller to commit. Otherwise a new one is opened and committed when
    the block exits. Database errors are reported as StorageError after
    the rollback has happened.
    """
    if tx is not None:
        yield tx
        return

    try:
        with postgres.transaction() as own_tx:
            yield own_tx
    except psycopg2.Error as e:
        logger.exception("Transaction rolled back")
        raise StorageError(f"Storage failure, nothing was saved: {e.pgerror or e}") from e
