from __future__ import annotations

import json
import logging
import os
import secrets
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from resume_analyzer.core.config import settings
from resume_analyzer.core.errors import PersistenceError, StorageError
from resume_analyzer.schemas.analysis import AnalysisDraft, AnalysisResult, ResumeRecord, SkillSets

logger = logging.getLogger(__name__)

_ANALYSIS_COLUMNS = (
    "id, resume_id, user_id, skills_json, experience_summary, "
    "strengths_json, improvements_json, ats_score, created_at"
)
_RESUME_COLUMNS = "id, user_id, file_name, file_path, file_size, file_type, created_at"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class RecordStore:
    """Keyed record store for resume metadata, analyses and session tokens.

    Every read is filtered by owner so a record is only visible to the user
    that owns the underlying resume.
    """

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
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
            conn.execute("PRAGMA foreign_keys=ON;")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS resumes (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    file_name TEXT NOT NULL,
                    file_path TEXT NOT NULL UNIQUE,
                    file_size INTEGER NOT NULL,
                    file_type TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS resume_analyses (
                    id TEXT PRIMARY KEY,
                    resume_id TEXT NOT NULL REFERENCES resumes (id),
                    user_id TEXT NOT NULL,
                    skills_json TEXT NOT NULL,
                    experience_summary TEXT NOT NULL,
                    strengths_json TEXT NOT NULL,
                    improvements_json TEXT NOT NULL,
                    ats_score INTEGER NOT NULL CHECK (ats_score BETWEEN 0 AND 100),
                    created_at TEXT NOT NULL
                );
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_resume_analyses_owner
                ON resume_analyses (resume_id, user_id, created_at);
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS auth_sessions (
                    token TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
                """
            )
            self._conn = conn
            return conn

    def init(self) -> None:
        self._get_connection()

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # resumes

    def create_resume(
        self,
        *,
        user_id: str,
        file_name: str,
        file_path: str,
        file_size: int,
        file_type: str,
    ) -> ResumeRecord:
        conn = self._get_connection()
        record = ResumeRecord(
            id=_new_id(),
            user_id=user_id,
            file_name=file_name,
            file_path=file_path,
            file_size=file_size,
            file_type=file_type,
            created_at=_utc_now(),
        )
        try:
            with self._lock:
                conn.execute(
                    f"INSERT INTO resumes ({_RESUME_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.id,
                        record.user_id,
                        record.file_name,
                        record.file_path,
                        record.file_size,
                        record.file_type,
                        record.created_at.isoformat(),
                    ),
                )
        except sqlite3.Error as exc:
            logger.error("resume_insert_failed user_id=%s path=%s: %s", user_id, file_path, exc)
            raise StorageError("Failed to save resume metadata") from exc
        return record

    def get_resume(self, resume_id: str, *, user_id: str) -> ResumeRecord | None:
        conn = self._get_connection()
        with self._lock:
            row = conn.execute(
                f"SELECT {_RESUME_COLUMNS} FROM resumes WHERE id = ? AND user_id = ?",
                (resume_id, user_id),
            ).fetchone()
        if not row:
            return None
        return ResumeRecord(
            id=row[0],
            user_id=row[1],
            file_name=row[2],
            file_path=row[3],
            file_size=row[4],
            file_type=row[5],
            created_at=datetime.fromisoformat(row[6]),
        )

    # analyses

    def insert_analysis(self, *, resume_id: str, user_id: str, draft: AnalysisDraft) -> AnalysisResult:
        """Store one analysis for a resume the user owns and return it with its id.

        The ownership check is part of the insert statement itself, so a
        foreign or unknown ``resume_id`` writes nothing.
        """
        conn = self._get_connection()
        analysis_id = _new_id()
        created_at = _utc_now()
        try:
            with self._lock:
                cursor = conn.execute(
                    f"""
                    INSERT INTO resume_analyses ({_ANALYSIS_COLUMNS})
                    SELECT ?, id, user_id, ?, ?, ?, ?, ?, ?
                    FROM resumes
                    WHERE id = ? AND user_id = ?
                    """,
                    (
                        analysis_id,
                        json.dumps(draft.skills.model_dump(), ensure_ascii=False),
                        draft.experience_summary,
                        json.dumps(draft.strengths, ensure_ascii=False),
                        json.dumps(draft.improvements, ensure_ascii=False),
                        draft.ats_score,
                        created_at.isoformat(),
                        resume_id,
                        user_id,
                    ),
                )
                inserted = cursor.rowcount
        except sqlite3.Error as exc:
            logger.error("analysis_insert_failed resume_id=%s user_id=%s: %s", resume_id, user_id, exc)
            raise PersistenceError() from exc

        if inserted != 1:
            logger.warning("analysis_insert_rejected resume_id=%s user_id=%s", resume_id, user_id)
            raise PersistenceError("Failed to save analysis: resume not found for this user")

        return AnalysisResult(
            id=analysis_id,
            resume_id=resume_id,
            user_id=user_id,
            created_at=created_at,
            **draft.model_dump(),
        )

    def get_analysis(self, analysis_id: str, *, user_id: str) -> AnalysisResult | None:
        conn = self._get_connection()
        with self._lock:
            row = conn.execute(
                f"SELECT {_ANALYSIS_COLUMNS} FROM resume_analyses WHERE id = ? AND user_id = ?",
                (analysis_id, user_id),
            ).fetchone()
        return _row_to_analysis(row) if row else None

    def list_analyses(self, resume_id: str, *, user_id: str) -> list[AnalysisResult]:
        conn = self._get_connection()
        with self._lock:
            rows = conn.execute(
                f"""
                SELECT {_ANALYSIS_COLUMNS}
                FROM resume_analyses
                WHERE resume_id = ? AND user_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (resume_id, user_id),
            ).fetchall()
        return [_row_to_analysis(row) for row in rows]

    # sessions

    def create_session(self, user_id: str) -> str:
        conn = self._get_connection()
        token = secrets.token_urlsafe(32)
        with self._lock:
            conn.execute(
                "INSERT INTO auth_sessions (token, user_id, created_at) VALUES (?, ?, ?)",
                (token, user_id, _utc_now().isoformat()),
            )
        return token

    def latest_session(self, user_id: str) -> str | None:
        conn = self._get_connection()
        with self._lock:
            row = conn.execute(
                """
                SELECT token FROM auth_sessions
                WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT 1
                """,
                (user_id,),
            ).fetchone()
        return row[0] if row else None

    def resolve_session(self, token: str) -> str | None:
        conn = self._get_connection()
        with self._lock:
            row = conn.execute(
                "SELECT user_id FROM auth_sessions WHERE token = ?",
                (token,),
            ).fetchone()
        return row[0] if row else None


def _row_to_analysis(row: Any) -> AnalysisResult:
    return AnalysisResult(
        id=row[0],
        resume_id=row[1],
        user_id=row[2],
        skills=SkillSets(**json.loads(row[3])),
        experience_summary=row[4],
        strengths=json.loads(row[5]),
        improvements=json.loads(row[6]),
        ats_score=row[7],
        created_at=datetime.fromisoformat(row[8]),
    )


@lru_cache(maxsize=1)
def get_record_store() -> RecordStore:
    return RecordStore(settings.database_path)
