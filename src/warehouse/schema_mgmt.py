"""
Schema management operations for the record store and message queue.

Handles DDL for the tables the pipeline relies on.
"""

from .connection import DatabaseConnectionPool

RECORDS_TABLE = "records"
QUEUE_TABLE = "message_queue"

SCHEMA_STATEMENTS = [
    f"""
    CREATE TABLE IF NOT EXISTS {RECORDS_TABLE} (
        id          TEXT PRIMARY KEY,
        created_at  TEXT NOT NULL,
        request_id  TEXT,
        data        TEXT NOT NULL,
        stored_at   TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {QUEUE_TABLE} (
        message_id     TEXT PRIMARY KEY,
        body           TEXT NOT NULL,
        attributes     JSONB NOT NULL DEFAULT '{{}}'::jsonb,
        enqueued_at    TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
        visible_at     TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
        receive_count  INTEGER NOT NULL DEFAULT 0
    )
    """,
    f"""
    CREATE INDEX IF NOT EXISTS idx_{QUEUE_TABLE}_visible
        ON {QUEUE_TABLE} (visible_at, enqueued_at)
    """,
]


class SchemaManager:
    """
    Manages the pipeline tables.

    Handles:
    - Creating the records and message queue tables
    - Truncating them (tests, local resets)
    - Dropping them
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize schema manager.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def ensure_schema(self) -> None:
        """Create all tables and indexes if they do not exist."""
        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                for statement in SCHEMA_STATEMENTS:
                    cur.execute(statement)
            conn.commit()

    def truncate_all(self) -> None:
        """Remove every row from the pipeline tables."""
        self.pool.execute_command(f"TRUNCATE TABLE {RECORDS_TABLE}, {QUEUE_TABLE}")

    def drop_schema(self) -> None:
        """Drop the pipeline tables."""
        self.pool.execute_command(f"DROP TABLE IF EXISTS {RECORDS_TABLE}, {QUEUE_TABLE}")

    def table_exists(self, table_name: str) -> bool:
        """
        Check whether a table exists in the current schema.

        Args:
            table_name: Table name

        Returns:
            True if the table exists
        """
        result = self.pool.execute_query(
            "SELECT to_regclass(%s) IS NOT NULL AS present",
            (table_name,)
        )
        return bool(result and result[0]["present"])
