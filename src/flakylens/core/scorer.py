import math

from flakylens.core.models import FeatureSet, FlakinessVerdict, InstabilitySignals

HIGH_VARIANCE_THRESHOLD = 50.0

FAILURE_RATE_WEIGHT = 0.4
TIMING_VARIANCE_WEIGHT = 0.3
DOM_STABILITY_WEIGHT = 0.2
WAIT_CONDITION_WEIGHT = 0.1

WAIT_FAILURE_SCALE = 20.0


def _clamp(value: float) -> float:
    return max(0.0, min(value, 100.0))


def round_one_decimal(value: float) -> float:
    # halves round up, not to even
    return math.floor(value * 10 + 0.5) / 10


def evaluate_signals(features: FeatureSet) -> InstabilitySignals:
    return InstabilitySignals(
        intermittent=features.failed_runs > 0 and features.passed_runs > 0,
        high_timing_variance=features.timing_variance_pct > HIGH_VARIANCE_THRESHOLD,
        dom_unstable=features.dom_stability.has_issue,
        wait_condition_issue=features.wait_condition_stats.has_issue,
    )


def weighted_score(features: FeatureSet) -> float:
    """Weighted sum of the four instability terms, rounded to one decimal.

    Each term is clamped to [0, 100] before its weight is applied.
    """
    failure_term = _clamp(features.failure_rate_pct)
    timing_term = _clamp(min(features.timing_variance_pct, 100.0))
    dom_term = _clamp(max(0.0, 100.0 - features.dom_stability.average_score))
    wait_term = _clamp(
        min(features.wait_condition_stats.average_failures * WAIT_FAILURE_SCALE, 100.0)
    )

    score = (
        failure_term * FAILURE_RATE_WEIGHT
        + timing_term * TIMING_VARIANCE_WEIGHT
        + dom_term * DOM_STABILITY_WEIGHT
        + wait_term * WAIT_CONDITION_WEIGHT
    )
    return round_one_decimal(score)


def score_features(
    features: FeatureSet, signals: InstabilitySignals | None = None
) -> FlakinessVerdict:
    if signals is None:
        signals = evaluate_signals(features)

    # a test that always fails is broken, not flaky
    if not (signals.intermittent and signals.unstable):
        return FlakinessVerdict(is_flaky=False, score=0.0)

    return FlakinessVerdict(is_flaky=True, score=weighted_score(features))
