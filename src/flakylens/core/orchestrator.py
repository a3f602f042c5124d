import logging
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from flakylens.core.classifier import (
    INSUFFICIENT_DATA_RECOMMENDATION,
    classify_root_causes,
    recommend,
)
from flakylens.core.errors import InsufficientDataError
from flakylens.core.features import extract_features
from flakylens.core.models import (
    AnalysisEvent,
    AnalysisResult,
    BatchSummary,
    EventKind,
    ExecutionRecord,
    FlakyLensConfig,
    FlakyRecord,
    FlakyRecordUpdate,
)
from flakylens.core.scorer import evaluate_signals, round_one_decimal, score_features
from flakylens.ports.protocols import ExecutionHistoryPort, FlakyRecordPort

logger = logging.getLogger(__name__)


class AnalysisLog:
    """Per-run accumulator of analysis events, safe to share between workers."""

    def __init__(self) -> None:
        self._events: list[AnalysisEvent] = []
        self._lock = threading.Lock()

    def record(self, test_id: str, kind: EventKind, message: str = "") -> None:
        with self._lock:
            self._events.append(
                AnalysisEvent(test_id=test_id, kind=kind, message=message)
            )

    @property
    def events(self) -> list[AnalysisEvent]:
        with self._lock:
            return list(self._events)

    def by_kind(self, kind: EventKind) -> list[AnalysisEvent]:
        return [e for e in self.events if e.kind == kind]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


def insufficient_result(test_id: str, total_runs: int) -> AnalysisResult:
    return AnalysisResult(
        test_id=test_id,
        is_flaky=False,
        score=0.0,
        timing_variance=0.0,
        failure_rate=0.0,
        recommendation=INSUFFICIENT_DATA_RECOMMENDATION,
        insufficient_data=True,
        total_runs=total_runs,
    )


def analyze_executions(
    test_id: str, records: Sequence[ExecutionRecord]
) -> AnalysisResult:
    """Run extraction, scoring and cause classification over one test's records.

    Raises ``InsufficientDataError`` when there are too few records to score.
    """
    features = extract_features(test_id, records)
    signals = evaluate_signals(features)
    verdict = score_features(features, signals)
    root_causes = classify_root_causes(features, signals)

    return AnalysisResult(
        test_id=test_id,
        is_flaky=verdict.is_flaky,
        score=verdict.score,
        timing_variance=round_one_decimal(features.timing_variance_pct),
        failure_rate=round_one_decimal(features.failure_rate_pct),
        root_causes=root_causes,
        recommendation=recommend(root_causes, verdict.score),
        total_runs=features.total_runs,
        failed_runs=features.failed_runs,
        last_failed_at=features.last_failed_at,
    )


class FlakyAnalyzer:
    def __init__(
        self,
        history: ExecutionHistoryPort,
        records: FlakyRecordPort,
        config: FlakyLensConfig | None = None,
    ) -> None:
        self.history = history
        self.records = records
        self.config = config or FlakyLensConfig()

    def _run(self, test_id: str) -> tuple[AnalysisResult, FlakyRecord | None]:
        executions = self.history.list_executions(test_id)
        result = analyze_executions(test_id, executions)

        if not result.is_flaky:
            return result, None

        record = self.records.upsert(test_id, FlakyRecordUpdate.from_analysis(result))
        return result, record

    def analyze_one(self, test_id: str) -> AnalysisResult:
        try:
            result, _ = self._run(test_id)
        except InsufficientDataError as exc:
            logger.info("Skipping %s: %s", test_id, exc)
            return insufficient_result(test_id, exc.found)

        if result.is_flaky:
            logger.info("Flaky test detected: %s (score: %.1f)", test_id, result.score)
        return result

    def _process(
        self,
        test_id: str,
        log: AnalysisLog,
        stop_event: threading.Event | None,
    ) -> tuple[EventKind, FlakyRecord | None] | None:
        if stop_event is not None and stop_event.is_set():
            return None

        try:
            result, record = self._run(test_id)
        except InsufficientDataError as exc:
            logger.debug("Skipping %s: %s", test_id, exc)
            log.record(test_id, EventKind.SKIPPED, str(exc))
            return EventKind.SKIPPED, None
        except Exception as exc:
            logger.exception("Error analyzing %s", test_id)
            log.record(test_id, EventKind.ERROR, str(exc))
            return EventKind.ERROR, None

        if result.is_flaky:
            logger.info("Flaky test detected: %s (score: %.1f)", test_id, result.score)
            log.record(test_id, EventKind.FLAKY, f"score {result.score:.1f}")
            return EventKind.FLAKY, record

        logger.debug("Test appears stable: %s", test_id)
        log.record(test_id, EventKind.STABLE)
        return EventKind.STABLE, None

    def analyze_all(
        self,
        log: AnalysisLog | None = None,
        stop_event: threading.Event | None = None,
    ) -> BatchSummary:
        if log is None:
            log = AnalysisLog()

        test_ids = self.history.list_test_ids()
        logger.info(
            "Analyzing %d test(s) with %d worker(s)",
            len(test_ids),
            self.config.max_workers,
        )

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            outcomes = list(
                executor.map(lambda t: self._process(t, log, stop_event), test_ids)
            )

        counts = {kind: 0 for kind in EventKind}
        records: list[FlakyRecord] = []
        for outcome in outcomes:
            if outcome is None:
                continue
            kind, record = outcome
            counts[kind] += 1
            if record is not None:
                records.append(record)

        records.sort(key=lambda r: r.flakiness_score, reverse=True)
        summary = BatchSummary(
            analyzed=counts[EventKind.FLAKY] + counts[EventKind.STABLE],
            flaky_found=counts[EventKind.FLAKY],
            skipped=counts[EventKind.SKIPPED],
            failed=counts[EventKind.ERROR],
            records=tuple(records),
        )
        logger.info(
            "Analysis complete: %d analyzed, %d flaky, %d skipped, %d failed",
            summary.analyzed,
            summary.flaky_found,
            summary.skipped,
            summary.failed,
        )
        return summary

    def resolve(self, test_id: str) -> bool:
        return self.records.resolve(test_id)

    def list_active(self) -> list[FlakyRecord]:
        return self.records.list_active()
