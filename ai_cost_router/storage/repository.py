"""
Repository pattern for data access.

Handles database operations for the append-only usage ledger.
"""

import sqlite3
from datetime import datetime
from typing import List, Optional

from .db import DEFAULT_DB_PATH, get_connection
from .models import UsageEvent

TABLE_NAME = "ai_model_usage"

_COLUMNS = (
    "id", "timestamp", "session_id", "model_name", "model_provider",
    "input_tokens", "output_tokens", "total_tokens", "estimated_cost",
    "actual_cost", "channel", "complexity", "urgency", "customer_tier",
    "response_time_ms", "success", "error_message", "updated_at",
)

_SELECT = f"SELECT {', '.join(_COLUMNS[:-1])} FROM {TABLE_NAME}"


def _format_timestamp(value: datetime) -> str:
    # Fixed precision keeps lexical order equal to chronological order
    return value.isoformat(timespec="microseconds")


def _row_to_event(row: tuple) -> UsageEvent:
    return UsageEvent(
        id=row[0],
        timestamp=datetime.fromisoformat(row[1]),
        session_id=row[2],
        model_name=row[3],
        model_provider=row[4],
        input_tokens=row[5],
        output_tokens=row[6],
        total_tokens=row[7],
        estimated_cost=row[8],
        actual_cost=row[9],
        channel=row[10],
        complexity=row[11],
        urgency=row[12],
        customer_tier=row[13],
        response_time_ms=row[14],
        success=bool(row[15]),
        error_message=row[16],
    )


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the ai_model_usage table if it doesn't exist.

    This creates an append-only ledger of usage events. Rows are never
    deleted; actual_cost is the only column ever updated.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                id TEXT PRIMARY KEY,
                timestamp TEXT NOT NULL,
                session_id TEXT NOT NULL,
                model_name TEXT NOT NULL,
                model_provider TEXT NOT NULL,
                input_tokens INTEGER NOT NULL,
                output_tokens INTEGER NOT NULL,
                total_tokens INTEGER NOT NULL,
                estimated_cost REAL NOT NULL,
                actual_cost REAL,
                channel TEXT NOT NULL,
                complexity TEXT NOT NULL,
                urgency TEXT NOT NULL,
                customer_tier TEXT NOT NULL,
                response_time_ms INTEGER NOT NULL DEFAULT 0,
                success INTEGER NOT NULL,
                error_message TEXT,
                updated_at TEXT
            )
        """)
        conn.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{TABLE_NAME}_timestamp ON {TABLE_NAME} (timestamp)"
        )
        conn.commit()
    finally:
        conn.close()


class UsageRepository:
    """Repository for reading and writing usage events.

    Each call opens its own connection, so one repository can be shared
    between threads. Writes are single-row statements with no cross-record
    coordination.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def initialize(self) -> None:
        """Create the ledger table for this repository's database."""
        initialize_schema(self.db_path)

    def insert_event(self, event: UsageEvent) -> None:
        """Insert a single usage event into the append-only ledger.

        Args:
            event: The usage event to record

        Raises:
            sqlite3.Error: Propagated so callers can decide whether to retry
        """
        conn = get_connection(self.db_path)
        try:
            conn.execute(f"""
                INSERT INTO {TABLE_NAME}
                ({', '.join(_COLUMNS[:-1])})
                VALUES ({', '.join('?' * (len(_COLUMNS) - 1))})
            """, (
                event.id,
                _format_timestamp(event.timestamp),
                event.session_id,
                event.model_name,
                event.model_provider,
                event.input_tokens,
                event.output_tokens,
                event.total_tokens,
                event.estimated_cost,
                event.actual_cost,
                event.channel,
                event.complexity,
                event.urgency,
                event.customer_tier,
                event.response_time_ms,
                int(event.success),
                event.error_message,
            ))
            conn.commit()
        finally:
            conn.close()

    def fetch_events(self, start: datetime, end: datetime) -> List[UsageEvent]:
        """Fetch events with start <= timestamp <= end, oldest first.

        Args:
            start: Inclusive window start
            end: Inclusive window end

        Returns:
            List of usage events ordered by timestamp
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                f"{_SELECT} WHERE timestamp >= ? AND timestamp <= ? ORDER BY timestamp ASC, id ASC",
                (_format_timestamp(start), _format_timestamp(end)),
            )
            return [_row_to_event(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def fetch_recent_events(self, model: Optional[str] = None, limit: int = 100) -> List[UsageEvent]:
        """Fetch the most recent events, newest first.

        Args:
            model: Optional filter for a specific model name
            limit: Maximum number of events to return

        Returns:
            List of usage events ordered by timestamp (newest first)
        """
        conn = get_connection(self.db_path)
        try:
            query = _SELECT
            params: list = []
            if model:
                query += " WHERE model_name = ?"
                params.append(model)
            query += " ORDER BY timestamp DESC LIMIT ?"
            params.append(limit)
            cursor = conn.execute(query, params)
            return [_row_to_event(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def get_event(self, event_id: str) -> Optional[UsageEvent]:
        """Look up one event by id."""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(f"{_SELECT} WHERE id = ?", (event_id,)).fetchone()
            return _row_to_event(row) if row else None
        finally:
            conn.close()

    def update_actual_cost(self, event_id: str, actual_cost: float, updated_at: datetime) -> bool:
        """Patch the billed cost of a previously written event.

        The only mutation the ledger allows. Last write wins.

        Args:
            event_id: Id assigned when the event was recorded
            actual_cost: Billed cost from the provider
            updated_at: When the patch was applied

        Returns:
            True if an event was patched, False if the id is unknown
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                f"UPDATE {TABLE_NAME} SET actual_cost = ?, updated_at = ? WHERE id = ?",
                (actual_cost, _format_timestamp(updated_at), event_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()


# Global repository instance
_default_repository: Optional[UsageRepository] = None


def get_repository(db_path: str = DEFAULT_DB_PATH) -> UsageRepository:
    """Get a repository instance.

    Returns the shared instance, replacing it when a different database
    path is requested.

    Args:
        db_path: Path to SQLite database file

    Returns:
        An instance of UsageRepository
    """
    global _default_repository
    if _default_repository is None or _default_repository.db_path != db_path:
        _default_repository = UsageRepository(db_path)
    return _default_repository


def is_missing_table(error: Exception) -> bool:
    """Check whether an error means the ledger was never initialized."""
    return isinstance(error, sqlite3.OperationalError) and "no such table" in str(error).lower()
