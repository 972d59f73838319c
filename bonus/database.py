"""aiosqlite database setup: per-day run status with a retention window."""
import json
import time
from datetime import date

import aiosqlite

from bonus.config import settings
from bonus.models.report import RunReport

_db: aiosqlite.Connection | None = None
_DAY_S = 86400


async def get_db() -> aiosqlite.Connection:
    global _db
    if _db is None:
        _db = await aiosqlite.connect(settings.database_url)
        _db.row_factory = aiosqlite.Row
        await _create_tables(_db)
    return _db


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None


async def _create_tables(db: aiosqlite.Connection) -> None:
    await db.execute("""
        CREATE TABLE IF NOT EXISTS run_status (
            key TEXT PRIMARY KEY,
            report TEXT NOT NULL,
            created_at REAL NOT NULL,
            expires_at REAL NOT NULL
        )
    """)
    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_run_status_expires_at
        ON run_status(expires_at)
    """)
    await db.commit()


def status_key(day: date) -> str:
    return f"status:{day.isoformat()}"


async def save_status(day: date, report: RunReport, now: float | None = None) -> None:
    """Upsert the day's report and drop rows past the retention window."""
    now = time.time() if now is None else now
    expires_at = now + settings.status_retention_days * _DAY_S
    db = await get_db()
    await db.execute("DELETE FROM run_status WHERE expires_at <= ?", (now,))
    await db.execute(
        """INSERT INTO run_status (key, report, created_at, expires_at)
           VALUES (?, ?, ?, ?)
           ON CONFLICT(key) DO UPDATE SET
               report=excluded.report,
               created_at=excluded.created_at,
               expires_at=excluded.expires_at""",
        (status_key(day), json.dumps(report.to_dict(), ensure_ascii=False), now, expires_at),
    )
    await db.commit()


async def load_status(day: date, now: float | None = None) -> RunReport | None:
    now = time.time() if now is None else now
    db = await get_db()
    cursor = await db.execute(
        "SELECT report FROM run_status WHERE key = ? AND expires_at > ?",
        (status_key(day), now),
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return RunReport.from_dict(json.loads(row["report"]))


async def list_statuses(now: float | None = None) -> list[dict]:
    now = time.time() if now is None else now
    db = await get_db()
    cursor = await db.execute(
        "SELECT key, report FROM run_status WHERE expires_at > ? ORDER BY key DESC",
        (now,),
    )
    rows = await cursor.fetchall()
    return [{"key": r["key"], **json.loads(r["report"])} for r in rows]
