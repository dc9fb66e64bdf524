"""
PostgreSQL-backed message queue.

Receivers claim rows with FOR UPDATE SKIP LOCKED and push their
visible_at forward by the visibility timeout, so concurrent consumers
never receive the same message at the same time and unacknowledged
messages are redelivered once the timeout expires.
"""

import uuid

import psycopg
from psycopg.types.json import Jsonb

from src.core.errors import QueueError
from src.core.models import Batch, DeliveredMessage
from src.warehouse.connection import DatabaseConnectionPool
from src.warehouse.schema_mgmt import QUEUE_TABLE


class PostgresMessageQueue:
    """
    Durable at-least-once queue stored in a PostgreSQL table.
    """

    def __init__(self, pool: DatabaseConnectionPool, table: str = QUEUE_TABLE):
        """
        Initialize the queue.

        Args:
            pool: Database connection pool
            table: Queue table name
        """
        self.pool = pool
        self.table = table

    def send(self, body: str, attributes: dict[str, str] | None = None) -> str:
        """
        Enqueue a message.

        Args:
            body: Message body
            attributes: Message attributes

        Returns:
            The new message id

        Raises:
            QueueError: If the insert fails
        """
        message_id = str(uuid.uuid4())
        query = f"""
            INSERT INTO {self.table} (message_id, body, attributes)
            VALUES (%s, %s, %s)
        """

        try:
            self.pool.execute_command(query, (message_id, body, Jsonb(attributes or {})))
        except psycopg.Error as e:
            raise QueueError(f"Failed to enqueue message: {e}") from e

        return message_id

    def receive(self, max_messages: int, visibility_timeout: float) -> Batch:
        """
        Claim up to max_messages visible messages.

        Args:
            max_messages: Largest batch to deliver
            visibility_timeout: Seconds the claimed messages stay hidden

        Returns:
            Batch of delivered messages, oldest first

        Raises:
            QueueError: If the claim fails
        """
        query = f"""
            WITH picked AS (
                SELECT message_id
                FROM {self.table}
                WHERE visible_at <= clock_timestamp()
                ORDER BY enqueued_at
                LIMIT %(limit)s
                FOR UPDATE SKIP LOCKED
            )
            UPDATE {self.table} AS q
            SET visible_at = clock_timestamp() + make_interval(secs => %(timeout)s),
                receive_count = q.receive_count + 1
            FROM picked
            WHERE q.message_id = picked.message_id
            RETURNING q.message_id, q.body, q.attributes, q.receive_count, q.enqueued_at
        """

        try:
            with self.pool.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, {"limit": max_messages, "timeout": float(visibility_timeout)})
                    rows = cur.fetchall()
                conn.commit()
        except psycopg.Error as e:
            raise QueueError(f"Failed to receive messages: {e}") from e

        rows.sort(key=lambda row: row["enqueued_at"])
        return Batch(
            messages=[
                DeliveredMessage(
                    delivery_id=row["message_id"],
                    body=row["body"],
                    attributes={k: str(v) for k, v in (row["attributes"] or {}).items()},
                    receive_count=row["receive_count"],
                )
                for row in rows
            ]
        )

    def acknowledge(self, delivery_ids: list[str]) -> int:
        """
        Delete handled messages.

        Args:
            delivery_ids: Message ids to delete

        Returns:
            Number of messages deleted
        """
        if not delivery_ids:
            return 0

        try:
            return self.pool.execute_command(
                f"DELETE FROM {self.table} WHERE message_id = ANY(%s)",
                (list(delivery_ids),)
            )
        except psycopg.Error as e:
            raise QueueError(f"Failed to acknowledge messages: {e}") from e

    def release(self, delivery_ids: list[str]) -> int:
        """
        Make received messages visible again immediately.

        Args:
            delivery_ids: Message ids to release

        Returns:
            Number of messages released
        """
        if not delivery_ids:
            return 0

        try:
            return self.pool.execute_command(
                f"UPDATE {self.table} SET visible_at = clock_timestamp() WHERE message_id = ANY(%s)",
                (list(delivery_ids),)
            )
        except psycopg.Error as e:
            raise QueueError(f"Failed to release messages: {e}") from e

    def stats(self) -> dict[str, int]:
        """
        Get queue depth.

        Returns:
            Dictionary with total, visible and in_flight counts
        """
        query = f"""
            SELECT
                COUNT(*) AS total,
                COUNT(*) FILTER (WHERE visible_at <= clock_timestamp()) AS visible
            FROM {self.table}
        """

        try:
            row = self.pool.execute_query(query)[0]
        except psycopg.Error as e:
            raise QueueError(f"Failed to read queue stats: {e}") from e

        return {
            "total": row["total"],
            "visible": row["visible"],
            "in_flight": row["total"] - row["visible"],
        }
