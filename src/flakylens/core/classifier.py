from flakylens.core.features import MIN_EXECUTIONS
from flakylens.core.models import FeatureSet, InstabilitySignals

HIGH_TIMING_VARIANCE = "High timing variance detected"
DOM_STABILITY_ISSUES = "DOM stability issues"
WAIT_CONDITION_FAILURES = "Wait condition failures"
INTERMITTENT_FAILURES = "Intermittent failures"
EXTREME_TIMING = "Extreme timing inconsistency"

INTERMITTENT_BAND = (20.0, 80.0)
EXTREME_VARIANCE_THRESHOLD = 100.0
REWRITE_SCORE_THRESHOLD = 70.0

REMEDIATIONS: dict[str, str] = {
    HIGH_TIMING_VARIANCE: "Add explicit waits and reduce timing dependencies",
    DOM_STABILITY_ISSUES: (
        "Improve element selection strategies and wait for DOM stability"
    ),
    WAIT_CONDITION_FAILURES: "Review and optimize wait conditions",
    INTERMITTENT_FAILURES: "Investigate race conditions and async operations",
    EXTREME_TIMING: (
        "Stabilize test environment timing and isolate slow dependencies"
    ),
}

STABLE_RECOMMENDATION = "Test appears stable"
FALLBACK_RECOMMENDATION = (
    "Monitor test execution patterns and investigate failure causes"
)
REWRITE_RECOMMENDATION = "Consider rewriting test with more robust selectors"
INSUFFICIENT_DATA_RECOMMENDATION = (
    f"Need at least {MIN_EXECUTIONS} executions for analysis"
)


def classify_root_causes(
    features: FeatureSet, signals: InstabilitySignals
) -> tuple[str, ...]:
    causes: list[str] = []

    if signals.high_timing_variance:
        causes.append(HIGH_TIMING_VARIANCE)

    if signals.dom_unstable:
        causes.append(DOM_STABILITY_ISSUES)

    if signals.wait_condition_issue:
        causes.append(WAIT_CONDITION_FAILURES)

    low, high = INTERMITTENT_BAND
    if low < features.failure_rate_pct < high:
        causes.append(INTERMITTENT_FAILURES)

    if features.timing_variance_pct > EXTREME_VARIANCE_THRESHOLD:
        causes.append(EXTREME_TIMING)

    return tuple(causes)


def recommend(root_causes: tuple[str, ...], score: float) -> str:
    if score == 0:
        return STABLE_RECOMMENDATION

    recommendations = [
        REMEDIATIONS[cause] for cause in root_causes if cause in REMEDIATIONS
    ]
    if score > REWRITE_SCORE_THRESHOLD:
        recommendations.append(REWRITE_RECOMMENDATION)

    if not recommendations:
        return FALLBACK_RECOMMENDATION

    return "; ".join(recommendations)
