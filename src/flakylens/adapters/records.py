import json
import logging
import sqlite3
from datetime import datetime, timezone

from flakylens.adapters.schema import connect, init_database
from flakylens.core.models import FlakyLensConfig, FlakyRecord, FlakyRecordUpdate

logger = logging.getLogger(__name__)

_COLUMNS = """
    test_id, flakiness_score, timing_variance, failure_rate, total_runs,
    failed_runs, root_causes, last_failed_at, is_resolved, detected_at
"""


class FlakyRecordManager:
    """Keeps exactly one current classification row per test id."""

    def __init__(self, config: FlakyLensConfig) -> None:
        self.db_path = config.db_path
        init_database(self.db_path)

    def upsert(self, test_id: str, update: FlakyRecordUpdate) -> FlakyRecord:
        last_failed_at = (
            update.last_failed_at.isoformat() if update.last_failed_at else None
        )
        detected_at = datetime.now(timezone.utc).isoformat()

        with connect(self.db_path) as conn:
            (row,) = conn.execute(
                f"""
                INSERT INTO flaky_tests (
                    test_id, flakiness_score, timing_variance, failure_rate,
                    total_runs, failed_runs, root_causes, last_failed_at,
                    is_resolved, detected_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, ?)
                ON CONFLICT(test_id) DO UPDATE SET
                    flakiness_score = excluded.flakiness_score,
                    timing_variance = excluded.timing_variance,
                    failure_rate = excluded.failure_rate,
                    total_runs = excluded.total_runs,
                    failed_runs = excluded.failed_runs,
                    root_causes = excluded.root_causes,
                    last_failed_at = excluded.last_failed_at,
                    is_resolved = 0
                RETURNING {_COLUMNS}
            """,
                (
                    test_id,
                    update.flakiness_score,
                    update.timing_variance,
                    update.failure_rate,
                    update.total_runs,
                    update.failed_runs,
                    json.dumps(list(update.root_causes)),
                    last_failed_at,
                    detected_at,
                ),
            ).fetchall()

        logger.debug(
            "Upserted flaky record for %s (score %.1f)", test_id, update.flakiness_score
        )
        return self._to_record(row)

    def resolve(self, test_id: str) -> bool:
        with connect(self.db_path) as conn:
            cursor = conn.execute(
                "UPDATE flaky_tests SET is_resolved = 1 WHERE test_id = ?",
                (test_id,),
            )
            found = cursor.rowcount > 0

        if not found:
            logger.info("No flaky record to resolve for %s", test_id)
        return found

    def get(self, test_id: str) -> FlakyRecord | None:
        with connect(self.db_path) as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM flaky_tests WHERE test_id = ?",
                (test_id,),
            ).fetchone()

        return self._to_record(row) if row else None

    def list_active(self) -> list[FlakyRecord]:
        with connect(self.db_path) as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM flaky_tests
                WHERE is_resolved = 0
                ORDER BY flakiness_score DESC, test_id
            """
            ).fetchall()

        return [self._to_record(row) for row in rows]

    def list_all(self) -> list[FlakyRecord]:
        with connect(self.db_path) as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM flaky_tests
                ORDER BY flakiness_score DESC, test_id
            """
            ).fetchall()

        return [self._to_record(row) for row in rows]

    def close(self) -> None:
        pass

    @staticmethod
    def _to_record(row: sqlite3.Row) -> FlakyRecord:
        last_failed_at = row["last_failed_at"]
        return FlakyRecord(
            test_id=row["test_id"],
            flakiness_score=row["flakiness_score"],
            timing_variance=row["timing_variance"],
            failure_rate=row["failure_rate"],
            total_runs=row["total_runs"],
            failed_runs=row["failed_runs"],
            root_causes=tuple(json.loads(row["root_causes"])),
            last_failed_at=datetime.fromisoformat(last_failed_at)
            if last_failed_at
            else None,
            is_resolved=bool(row["is_resolved"]),
            detected_at=datetime.fromisoformat(row["detected_at"]),
        )
