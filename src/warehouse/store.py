"""
Record stores with atomic conditional-insert semantics.

insert_if_absent() is the single operation the pipeline's idempotency
rests on: concurrent inserts of the same id resolve to exactly one
WRITTEN and any number of CONFLICT outcomes, never two WRITTEN.
"""

import json
import threading
from typing import Protocol, runtime_checkable

import psycopg

from src.core.errors import StoreError
from src.core.models import Record, WriteOutcome

from .connection import DatabaseConnectionPool
from .schema_mgmt import RECORDS_TABLE


@runtime_checkable
class RecordStore(Protocol):
    """Storage backend for Records."""

    def insert_if_absent(self, record: Record) -> WriteOutcome:
        """Insert the record unless its id exists. Raises StoreError."""
        ...

    def get(self, record_id: str) -> Record | None:
        """Read a record by id. Raises StoreError."""
        ...

    def count(self) -> int:
        ...


class PostgresRecordStore:
    """
    Record store backed by PostgreSQL.

    Uses INSERT ... ON CONFLICT DO NOTHING so the existence check and the
    insert are one atomic statement.

    data is kept as JSON text with non-ASCII escaped, so NUL characters in a
    payload never reach the database.
    """

    def __init__(self, pool: DatabaseConnectionPool, table: str = RECORDS_TABLE):
        """
        Initialize the store.

        Args:
            pool: Database connection pool
            table: Records table name
        """
        self.pool = pool
        self.table = table

    def insert_if_absent(self, record: Record) -> WriteOutcome:
        """
        Insert a record unless one with the same id exists.

        Args:
            record: Record to insert

        Returns:
            WriteOutcome.WRITTEN if inserted, WriteOutcome.CONFLICT if the id existed

        Raises:
            StoreError: On any database failure
        """
        query = f"""
            INSERT INTO {self.table} (id, created_at, request_id, data)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (id) DO NOTHING
        """

        try:
            rowcount = self.pool.execute_command(
                query,
                (record.id, record.created_at, record.request_id, json.dumps(record.data))
            )
        except psycopg.Error as e:
            raise StoreError(f"Insert failed for record {record.id}: {e}", record_id=record.id) from e

        return WriteOutcome.WRITTEN if rowcount == 1 else WriteOutcome.CONFLICT

    def get(self, record_id: str) -> Record | None:
        """
        Read a record by id.

        Args:
            record_id: Record identity

        Returns:
            Record or None if absent

        Raises:
            StoreError: On any database failure
        """
        query = f"""
            SELECT id, created_at, request_id, data
            FROM {self.table}
            WHERE id = %s
        """

        try:
            rows = self.pool.execute_query(query, (record_id,))
        except psycopg.Error as e:
            raise StoreError(f"Read failed for record {record_id}: {e}", record_id=record_id) from e

        if not rows:
            return None

        row = rows[0]
        return Record(
            id=row["id"],
            created_at=row["created_at"],
            request_id=row["request_id"],
            data=json.loads(row["data"]),
        )

    def count(self) -> int:
        """Number of stored records."""
        try:
            rows = self.pool.execute_query(f"SELECT COUNT(*) AS total FROM {self.table}")
        except psycopg.Error as e:
            raise StoreError(f"Count failed: {e}") from e
        return rows[0]["total"]


class InMemoryRecordStore:
    """
    Process-local record store.

    A lock makes the check-and-insert one step, equivalent to a
    conditional put. Used for tests and local runs.
    """

    def __init__(self):
        self._records: dict[str, Record] = {}
        self._lock = threading.Lock()

    def insert_if_absent(self, record: Record) -> WriteOutcome:
        with self._lock:
            if record.id in self._records:
                return WriteOutcome.CONFLICT
            self._records[record.id] = record
            return WriteOutcome.WRITTEN

    def get(self, record_id: str) -> Record | None:
        with self._lock:
            return self._records.get(record_id)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def ids(self) -> list[str]:
        with self._lock:
            return sorted(self._records)
