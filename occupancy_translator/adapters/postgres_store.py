"""
adapters/postgres_store.py
──────────────────────────────────────────────────────────────────────────────
Implements StoragePort using psycopg2.

Database layout (created idempotently by ensure_schema()):
  Table : occupancy_codes
  Cols  : id (PK), code (UNIQUE), description, created_at
  Table : analyses
  Cols  : id (PK), business_description, suggestions JSONB,
          overall_reasoning, processing_ms, created_at
  Table : feedback
  Cols  : id (PK), analysis_id, suggestion_index, occupancy_code,
          feedback_type, correction_code, correction_reason, created_at
  Index : feedback(analysis_id), feedback(feedback_type, created_at DESC)

Uniqueness on occupancy_codes.code is enforced by the database; collisions
are absorbed with ON CONFLICT DO NOTHING so a reseed never aborts halfway.

Connection management:
  - A single autocommit connection is opened lazily and reused.
  - On OperationalError the connection is reset and one retry is attempted.
  - For multi-worker deployments each worker process owns its own adapter.
"""
from __future__ import annotations

import logging
import threading
import uuid
from typing import Any

import psycopg2
import psycopg2.extras

from occupancy_translator.config.settings import Settings
from occupancy_translator.domain.exceptions import StorageError
from occupancy_translator.domain.models import (
    Analysis,
    Feedback,
    FeedbackType,
    OccupancyCode,
    Suggestion,
)

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS occupancy_codes (
        id          VARCHAR PRIMARY KEY,
        code        TEXT NOT NULL UNIQUE,
        description TEXT NOT NULL,
        created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    CREATE TABLE IF NOT EXISTS analyses (
        id                   VARCHAR PRIMARY KEY,
        business_description TEXT NOT NULL,
        suggestions          JSONB NOT NULL,
        overall_reasoning    TEXT NOT NULL,
        processing_ms        INTEGER,
        created_at           TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    CREATE TABLE IF NOT EXISTS feedback (
        id                VARCHAR PRIMARY KEY,
        analysis_id       VARCHAR NOT NULL,
        suggestion_index  INTEGER NOT NULL,
        occupancy_code    TEXT NOT NULL,
        feedback_type     TEXT NOT NULL,
        correction_code   TEXT,
        correction_reason TEXT,
        created_at        TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    CREATE INDEX IF NOT EXISTS feedback_analysis_idx
        ON feedback (analysis_id);
    CREATE INDEX IF NOT EXISTS feedback_type_created_idx
        ON feedback (feedback_type, created_at DESC);
"""

_ANALYSIS_COLS = (
    "id, business_description, suggestions, overall_reasoning, "
    "processing_ms, created_at"
)
_FEEDBACK_COLS = (
    "id, analysis_id, suggestion_index, occupancy_code, feedback_type, "
    "correction_code, correction_reason, created_at"
)


class PostgresStorageAdapter:
    """psycopg2 implementation of StoragePort.

    Injected into the services via services/container.py.
    """

    def __init__(self, settings: Settings) -> None:
        self._dsn = settings.db_dsn
        self._conn: Any = None
        self._lock = threading.Lock()
        logger.debug("PostgresStorageAdapter ready | dsn=%s", self._dsn)

    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist yet."""
        try:
            self._execute(_SCHEMA_SQL, (), fetch=False)
        except psycopg2.Error as exc:
            raise StorageError(f"ensure_schema failed: {exc}") from exc
        logger.info("PostgresStorageAdapter: schema ready")

    # ── Occupancy codes ────────────────────────────────────────────────────

    def list_occupancy_codes(self) -> list[OccupancyCode]:
        sql = """
            SELECT id, code, description, created_at
            FROM   occupancy_codes
            ORDER  BY created_at, code
        """
        rows = self._query("list_occupancy_codes", sql, ())
        return [OccupancyCode(**row) for row in rows]

    def insert_occupancy_code(self, code: str, description: str) -> bool:
        sql = """
            INSERT INTO occupancy_codes (id, code, description)
            VALUES (%s, %s, %s)
            ON CONFLICT (code) DO NOTHING
            RETURNING id
        """
        rows = self._query(
            "insert_occupancy_code", sql, (str(uuid.uuid4()), code, description)
        )
        return bool(rows)

    # ── Analyses ───────────────────────────────────────────────────────────

    def create_analysis(
        self,
        business_description: str,
        suggestions: list[Suggestion],
        overall_reasoning: str,
        processing_ms: int | None = None,
    ) -> Analysis:
        sql = f"""
            INSERT INTO analyses
                   (id, business_description, suggestions,
                    overall_reasoning, processing_ms)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {_ANALYSIS_COLS}
        """
        payload = psycopg2.extras.Json(
            [s.model_dump(mode="json") for s in suggestions]
        )
        rows = self._query(
            "create_analysis",
            sql,
            (str(uuid.uuid4()), business_description, payload,
             overall_reasoning, processing_ms),
        )
        return _row_to_analysis(rows[0])

    def get_analysis(self, analysis_id: str) -> Analysis | None:
        sql = f"SELECT {_ANALYSIS_COLS} FROM analyses WHERE id = %s"
        rows = self._query("get_analysis", sql, (analysis_id,))
        return _row_to_analysis(rows[0]) if rows else None

    def list_analyses(self, limit: int | None = None) -> list[Analysis]:
        sql = f"""
            SELECT {_ANALYSIS_COLS}
            FROM   analyses
            ORDER  BY created_at DESC
            LIMIT  %s
        """
        rows = self._query("list_analyses", sql, (limit,))
        return [_row_to_analysis(row) for row in rows]

    # ── Feedback ───────────────────────────────────────────────────────────

    def create_feedback(
        self,
        analysis_id: str,
        suggestion_index: int,
        occupancy_code: str,
        feedback_type: FeedbackType,
        correction_code: str | None = None,
        correction_reason: str | None = None,
    ) -> Feedback:
        sql = f"""
            INSERT INTO feedback
                   (id, analysis_id, suggestion_index, occupancy_code,
                    feedback_type, correction_code, correction_reason)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING {_FEEDBACK_COLS}
        """
        rows = self._query(
            "create_feedback",
            sql,
            (str(uuid.uuid4()), analysis_id, suggestion_index, occupancy_code,
             FeedbackType(feedback_type).value, correction_code, correction_reason),
        )
        return Feedback(**rows[0])

    def list_feedback(
        self,
        feedback_type: FeedbackType | None = None,
        limit: int | None = None,
    ) -> list[Feedback]:
        type_value = FeedbackType(feedback_type).value if feedback_type else None
        sql = f"""
            SELECT {_FEEDBACK_COLS}
            FROM   feedback
            WHERE  (%s IS NULL OR feedback_type = %s)
            ORDER  BY created_at DESC
            LIMIT  %s
        """
        rows = self._query("list_feedback", sql, (type_value, type_value, limit))
        return [Feedback(**row) for row in rows]

    def feedback_for_analysis(self, analysis_id: str) -> list[Feedback]:
        sql = f"""
            SELECT {_FEEDBACK_COLS}
            FROM   feedback
            WHERE  analysis_id = %s
            ORDER  BY created_at
        """
        rows = self._query("feedback_for_analysis", sql, (analysis_id,))
        return [Feedback(**row) for row in rows]

    # ── Connection helpers ─────────────────────────────────────────────────

    def _query(self, op: str, sql: str, params: tuple) -> list[dict]:
        """Run a statement that returns rows, wrapping driver errors."""
        try:
            return self._execute(sql, params)
        except psycopg2.Error as exc:
            raise StorageError(f"{op} failed: {exc}") from exc

    def _get_conn(self) -> Any:
        """Return an open connection, creating or reusing one."""
        if self._conn is None or self._conn.closed:
            self._conn = self._new_conn()
        return self._conn

    def _new_conn(self) -> Any:
        """Open a fresh autocommit psycopg2 connection."""
        try:
            conn = psycopg2.connect(self._dsn)
            conn.autocommit = True
            logger.debug("PostgresStorageAdapter: new connection opened")
            return conn
        except psycopg2.Error as exc:
            raise StorageError(f"Cannot connect to database: {exc}") from exc

    def _execute(self, sql: str, params: tuple, fetch: bool = True) -> list[dict]:
        """Execute a statement and return rows as dicts, with one auto-reconnect."""
        with self._lock:
            for attempt in (1, 2):
                conn = self._get_conn()
                try:
                    with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                        cur.execute(sql, params)
                        if not fetch or cur.description is None:
                            return []
                        return [dict(row) for row in cur.fetchall()]
                except psycopg2.OperationalError as exc:
                    if attempt == 1:
                        logger.warning("DB OperationalError — reconnecting: %s", exc)
                        self._conn = None
                    else:
                        raise StorageError(f"DB query failed after reconnect: {exc}") from exc
        return []  # unreachable

    def close(self) -> None:
        """Explicitly close the connection (optional — GC handles it otherwise)."""
        if self._conn and not self._conn.closed:
            self._conn.close()
            logger.debug("PostgresStorageAdapter: connection closed")


def _row_to_analysis(row: dict) -> Analysis:
    # psycopg2 decodes JSONB into Python lists already
    return Analysis(
        id=row["id"],
        business_description=row["business_description"],
        suggestions=[Suggestion(**s) for s in row["suggestions"] or []],
        overall_reasoning=row["overall_reasoning"],
        processing_ms=row["processing_ms"],
        created_at=row["created_at"],
    )
