import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from flakylens.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1"
BUSY_TIMEOUT_SECONDS = 30.0


@contextmanager
def connect(db_path: Path) -> Iterator[sqlite3.Connection]:
    """Open a connection, commit on success and always close it.

    Any ``sqlite3.Error`` raised inside the block is re-raised as
    ``StoreUnavailableError``.
    """
    try:
        conn = sqlite3.connect(db_path, timeout=BUSY_TIMEOUT_SECONDS)
    except sqlite3.Error as exc:
        raise StoreUnavailableError(f"cannot open {db_path}: {exc}") from exc

    try:
        conn.row_factory = sqlite3.Row
        yield conn
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        raise StoreUnavailableError(str(exc)) from exc
    finally:
        conn.close()


def init_database(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with connect(db_path) as conn:
        conn.execute("PRAGMA journal_mode=WAL")

        conn.execute("""
            CREATE TABLE IF NOT EXISTS metadata (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS test_executions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                test_id TEXT NOT NULL,
                outcome TEXT NOT NULL,
                duration_ms INTEGER NOT NULL,
                dom_stability_score REAL,
                wait_condition_failures INTEGER NOT NULL DEFAULT 0,
                network_call_count INTEGER NOT NULL DEFAULT 0,
                error_message TEXT,
                executed_at TEXT NOT NULL
            )
        """)

        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_executions_test_id
            ON test_executions(test_id)
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS flaky_tests (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                test_id TEXT UNIQUE NOT NULL,
                flakiness_score REAL NOT NULL,
                timing_variance REAL NOT NULL,
                failure_rate REAL NOT NULL,
                total_runs INTEGER NOT NULL,
                failed_runs INTEGER NOT NULL,
                root_causes TEXT NOT NULL,
                last_failed_at TEXT,
                is_resolved INTEGER NOT NULL DEFAULT 0,
                detected_at TEXT NOT NULL
            )
        """)

        conn.execute(
            "INSERT OR IGNORE INTO metadata (key, value) VALUES (?, ?)",
            ("schema_version", SCHEMA_VERSION),
        )

    logger.debug("Initialized database at %s", db_path)
