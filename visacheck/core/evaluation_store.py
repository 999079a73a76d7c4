from __future__ import annotations

import json
import logging
import os
import secrets
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from fastapi import status

from visacheck.core.config import settings
from visacheck.schemas.evaluation import EvaluationHistoryItem, EvaluationRecord

logger = logging.getLogger(__name__)


class EvaluationStoreError(RuntimeError):
    def __init__(self, message: str, *, status_code: int = status.HTTP_503_SERVICE_UNAVAILABLE):
        super().__init__(message)
        self.status_code = status_code


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_evaluation_id() -> str:
    return secrets.token_urlsafe(18)


def expiry_for(created_at: datetime, ttl_days: int | None = None) -> datetime:
    days = max(1, int(settings.evaluation_ttl_days if ttl_days is None else ttl_days))
    return created_at + timedelta(days=days)


class EvaluationStore:
    """Create-only sqlite store for completed evaluation records."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _connection(self) -> sqlite3.Connection:
        with self._lock:
            if self._conn is not None:
                return self._conn

            directory = os.path.dirname(self._db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            conn = sqlite3.connect(
                self._db_path,
                check_same_thread=False,
                timeout=5,
                isolation_level=None,
            )
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA busy_timeout=5000;")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS evaluation_records (
                    evaluation_id TEXT PRIMARY KEY,
                    email TEXT NOT NULL,
                    visa_type_id TEXT NOT NULL,
                    payload_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL
                );
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_evaluation_records_email
                ON evaluation_records (email, created_at);
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_evaluation_records_expiry
                ON evaluation_records (expires_at);
                """
            )
            self._conn = conn
            return conn

    def create(self, record: EvaluationRecord) -> None:
        """Insert a new record. An existing id is never overwritten."""
        try:
            conn = self._connection()
            with self._lock:
                conn.execute(
                    """
                    INSERT INTO evaluation_records (
                        evaluation_id, email, visa_type_id, payload_json, created_at, expires_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.evaluation_id,
                        record.applicant.email,
                        record.applicant.visa_type_id,
                        record.model_dump_json(),
                        record.created_at.isoformat(),
                        record.expires_at.isoformat(),
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise EvaluationStoreError(
                f"Evaluation '{record.evaluation_id}' already exists.",
                status_code=status.HTTP_409_CONFLICT,
            ) from exc
        except (sqlite3.Error, OSError) as exc:
            logger.error("evaluation_store_write_failed id=%s: %s", record.evaluation_id, exc)
            raise EvaluationStoreError("Could not save the evaluation. Please retry.") from exc

    def get(self, evaluation_id: str) -> EvaluationRecord | None:
        conn = self._connection()
        now_iso = utc_now().isoformat()
        with self._lock:
            row = conn.execute(
                """
                SELECT payload_json FROM evaluation_records
                WHERE evaluation_id = ? AND expires_at > ?
                """,
                (evaluation_id, now_iso),
            ).fetchone()
        if not row:
            return None
        return EvaluationRecord.model_validate(json.loads(row[0]))

    def list_for_email(self, email: str, limit: int = 20) -> list[EvaluationHistoryItem]:
        conn = self._connection()
        now_iso = utc_now().isoformat()
        with self._lock:
            rows = conn.execute(
                """
                SELECT payload_json FROM evaluation_records
                WHERE email = ? AND expires_at > ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                ((email or "").strip().lower(), now_iso, max(1, int(limit))),
            ).fetchall()

        items: list[EvaluationHistoryItem] = []
        for row in rows:
            record = EvaluationRecord.model_validate(json.loads(row[0]))
            items.append(
                EvaluationHistoryItem(
                    evaluation_id=record.evaluation_id,
                    target_country=record.applicant.target_country,
                    visa_type=record.applicant.visa_type,
                    score=record.result.final_score,
                    score_category=record.result.category,
                    created_at=record.created_at,
                    evaluated_at=record.evaluated_at,
                )
            )
        return items

    def purge_expired(self) -> int:
        conn = self._connection()
        now_iso = utc_now().isoformat()
        with self._lock:
            cur = conn.execute("DELETE FROM evaluation_records WHERE expires_at <= ?", (now_iso,))
            deleted = cur.rowcount or 0
        if deleted:
            logger.info("evaluation_retention_purge deleted=%s", deleted)
        return deleted

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


@lru_cache(maxsize=1)
def get_evaluation_store() -> EvaluationStore:
    return EvaluationStore(settings.evaluation_db_path)
