import statistics
from collections.abc import Sequence

from flakylens.core.errors import InsufficientDataError
from flakylens.core.models import (
    DomStability,
    ExecutionOutcome,
    ExecutionRecord,
    FeatureSet,
    WaitConditionStats,
)

MIN_EXECUTIONS = 3
DOM_STABILITY_THRESHOLD = 70.0
WAIT_FAILURE_THRESHOLD = 1.0


def timing_variance_pct(durations: Sequence[int]) -> float:
    """Coefficient of variation of ``durations`` as a percentage.

    Uses the population standard deviation. Returns 0.0 when there are fewer
    than two values or the mean is zero.
    """
    if len(durations) < 2:
        return 0.0

    mean = statistics.fmean(durations)
    if mean == 0:
        return 0.0

    return statistics.pstdev(durations) / mean * 100


def dom_stability(records: Sequence[ExecutionRecord]) -> DomStability:
    scores = [
        r.dom_stability_score for r in records if r.dom_stability_score is not None
    ]
    # unmeasured is no evidence of instability
    if not scores:
        return DomStability(average_score=100.0, has_issue=False)

    average = statistics.fmean(scores)
    return DomStability(
        average_score=average, has_issue=average < DOM_STABILITY_THRESHOLD
    )


def wait_condition_stats(records: Sequence[ExecutionRecord]) -> WaitConditionStats:
    if not records:
        return WaitConditionStats()

    average = statistics.fmean(r.wait_condition_failures or 0 for r in records)
    return WaitConditionStats(
        average_failures=average, has_issue=average > WAIT_FAILURE_THRESHOLD
    )


def extract_features(
    test_id: str, records: Sequence[ExecutionRecord]
) -> FeatureSet:
    if len(records) < MIN_EXECUTIONS:
        raise InsufficientDataError(test_id, len(records), MIN_EXECUTIONS)

    failed = [r for r in records if r.outcome == ExecutionOutcome.FAILED]
    total_runs = len(records)
    failed_runs = len(failed)

    return FeatureSet(
        total_runs=total_runs,
        failed_runs=failed_runs,
        passed_runs=total_runs - failed_runs,
        failure_rate_pct=failed_runs / total_runs * 100,
        timing_variance_pct=timing_variance_pct([r.duration_ms for r in records]),
        dom_stability=dom_stability(records),
        wait_condition_stats=wait_condition_stats(records),
        last_failed_at=max((r.executed_at for r in failed), default=None),
    )
