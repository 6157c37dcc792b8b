"""SQLite-backed ingestion claim provider.

Persists one claim row per radicado to a local SQLite database at
``data/ingestion_locks.db``.  Uses ``aiosqlite`` for async I/O.  The
``radicado`` primary key makes acquisition a single insert-if-absent, so
two workers (even in separate processes sharing the file) cannot both
hold the same claim.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable

import aiosqlite
import structlog

from src.interfaces.ingestion_lock_provider import IIngestionLockProvider

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/ingestion_locks.db")
_DEFAULT_STALE_SECONDS = 900

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS ingestion_claims (
    radicado    TEXT PRIMARY KEY,
    owner       TEXT NOT NULL,
    claimed_at  REAL NOT NULL
);
"""

_DELETE_STALE_SQL = """\
DELETE FROM ingestion_claims
WHERE radicado = ? AND claimed_at < ?;
"""

_INSERT_IF_ABSENT_SQL = """\
INSERT OR IGNORE INTO ingestion_claims (radicado, owner, claimed_at)
VALUES (?, ?, ?);
"""

_SELECT_OWNER_SQL = "SELECT owner FROM ingestion_claims WHERE radicado = ?;"


class SQLiteIngestionLockProvider(IIngestionLockProvider):
    """SQLite-backed per-radicado claims with stale takeover.

    Claims older than *stale_after_seconds* are treated as abandoned (a
    worker that crashed mid-ingestion) and may be taken over.
    """

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        stale_after_seconds: int = _DEFAULT_STALE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = Path(db_path)
        self._stale_after_seconds = stale_after_seconds
        self._clock = clock

    async def initialize(self) -> None:
        """Create the claims table if it doesn't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            await db.commit()
        logger.info("ingestion_lock_db_initialized", path=str(self._db_path))

    async def acquire(self, radicado: str, owner: str) -> bool:
        now = self._clock()
        async with aiosqlite.connect(str(self._db_path)) as db:
            stale = await db.execute(
                _DELETE_STALE_SQL,
                (radicado, now - self._stale_after_seconds),
            )
            if stale.rowcount:
                logger.warning("ingestion_claim_stale_takeover", radicado=radicado, owner=owner)
            await db.execute(_INSERT_IF_ABSENT_SQL, (radicado, owner, now))
            await db.commit()
            cursor = await db.execute(_SELECT_OWNER_SQL, (radicado,))
            row = await cursor.fetchone()

        acquired = row is not None and row[0] == owner
        logger.debug(
            "ingestion_claim_acquire",
            radicado=radicado,
            owner=owner,
            acquired=acquired,
        )
        return acquired

    async def release(self, radicado: str, owner: str) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "DELETE FROM ingestion_claims WHERE radicado = ? AND owner = ?",
                (radicado, owner),
            )
            await db.commit()
        if cursor.rowcount == 0:
            logger.warning("ingestion_claim_not_held", radicado=radicado, owner=owner)

    async def is_claimed(self, radicado: str) -> bool:
        cutoff = self._clock() - self._stale_after_seconds
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT 1 FROM ingestion_claims WHERE radicado = ? AND claimed_at >= ?",
                (radicado, cutoff),
            )
            row = await cursor.fetchone()
        return row is not None
