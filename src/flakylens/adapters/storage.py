import sqlite3
from datetime import datetime

from flakylens.adapters.schema import connect, init_database
from flakylens.core.models import (
    ExecutionOutcome,
    ExecutionRecord,
    FlakyLensConfig,
    StoreStats,
)


class SQLiteExecutionStore:
    def __init__(self, config: FlakyLensConfig) -> None:
        self.db_path = config.db_path
        init_database(self.db_path)

    def save_execution(self, record: ExecutionRecord) -> None:
        with connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO test_executions (
                    test_id, outcome, duration_ms, dom_stability_score,
                    wait_condition_failures, network_call_count,
                    error_message, executed_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    record.test_id,
                    record.outcome.value,
                    record.duration_ms,
                    record.dom_stability_score,
                    record.wait_condition_failures,
                    record.network_call_count,
                    record.error_message,
                    record.executed_at.isoformat(),
                ),
            )

    def list_executions(self, test_id: str) -> list[ExecutionRecord]:
        with connect(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT test_id, outcome, duration_ms, dom_stability_score,
                       wait_condition_failures, network_call_count,
                       error_message, executed_at
                FROM test_executions
                WHERE test_id = ?
                ORDER BY executed_at DESC
            """,
                (test_id,),
            ).fetchall()

        return [self._to_record(row) for row in rows]

    def list_test_ids(self) -> list[str]:
        with connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT DISTINCT test_id FROM test_executions ORDER BY test_id"
            ).fetchall()

        return [row["test_id"] for row in rows]

    def stats(self) -> StoreStats:
        with connect(self.db_path) as conn:
            total_tests = conn.execute(
                "SELECT COUNT(DISTINCT test_id) FROM test_executions"
            ).fetchone()[0]
            total, passed = conn.execute(
                """
                SELECT COUNT(*), SUM(CASE WHEN outcome = 'passed' THEN 1 ELSE 0 END)
                FROM test_executions
            """
            ).fetchone()
            active_flaky = conn.execute(
                "SELECT COUNT(*) FROM flaky_tests WHERE is_resolved = 0"
            ).fetchone()[0]

        success_rate = (passed or 0) / total * 100 if total else 0.0
        return StoreStats(
            total_tests=total_tests,
            total_executions=total,
            active_flaky=active_flaky,
            success_rate=round(success_rate, 1),
        )

    def clear(self) -> None:
        with connect(self.db_path) as conn:
            conn.execute("DELETE FROM test_executions")
            conn.execute("DELETE FROM flaky_tests")

    def close(self) -> None:
        pass

    @staticmethod
    def _to_record(row: sqlite3.Row) -> ExecutionRecord:
        return ExecutionRecord(
            test_id=row["test_id"],
            outcome=ExecutionOutcome(row["outcome"]),
            duration_ms=row["duration_ms"],
            dom_stability_score=row["dom_stability_score"],
            wait_condition_failures=row["wait_condition_failures"] or 0,
            network_call_count=row["network_call_count"] or 0,
            error_message=row["error_message"],
            executed_at=datetime.fromisoformat(row["executed_at"]),
        )
