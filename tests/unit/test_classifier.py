from flakylens.core.classifier import (
    DOM_STABILITY_ISSUES,
    EXTREME_TIMING,
    FALLBACK_RECOMMENDATION,
    HIGH_TIMING_VARIANCE,
    INTERMITTENT_FAILURES,
    REWRITE_RECOMMENDATION,
    STABLE_RECOMMENDATION,
    WAIT_CONDITION_FAILURES,
    classify_root_causes,
    recommend,
)
from flakylens.core.models import DomStability, FeatureSet, WaitConditionStats
from flakylens.core.scorer import evaluate_signals


def make_features(
    failure_rate_pct: float = 40.0,
    timing_variance_pct: float = 0.0,
    dom_average: float = 100.0,
    wait_average: float = 0.0,
) -> FeatureSet:
    failed_runs = round(failure_rate_pct / 10)
    return FeatureSet(
        total_runs=10,
        failed_runs=failed_runs,
        passed_runs=10 - failed_runs,
        failure_rate_pct=failure_rate_pct,
        timing_variance_pct=timing_variance_pct,
        dom_stability=DomStability(average_score=dom_average, has_issue=dom_average < 70),
        wait_condition_stats=WaitConditionStats(
            average_failures=wait_average, has_issue=wait_average > 1
        ),
    )


def causes_for(features: FeatureSet) -> tuple[str, ...]:
    return classify_root_causes(features, evaluate_signals(features))


def test_worked_example_causes():
    causes = causes_for(make_features(failure_rate_pct=40.0, timing_variance_pct=66.8))

    assert causes == (HIGH_TIMING_VARIANCE, INTERMITTENT_FAILURES)


def test_all_causes_in_fixed_order():
    causes = causes_for(
        make_features(
            failure_rate_pct=50.0,
            timing_variance_pct=150.0,
            dom_average=20.0,
            wait_average=3.0,
        )
    )

    assert causes == (
        HIGH_TIMING_VARIANCE,
        DOM_STABILITY_ISSUES,
        WAIT_CONDITION_FAILURES,
        INTERMITTENT_FAILURES,
        EXTREME_TIMING,
    )


def test_intermittent_band_is_strict():
    assert INTERMITTENT_FAILURES not in causes_for(make_features(failure_rate_pct=20.0))
    assert INTERMITTENT_FAILURES not in causes_for(make_features(failure_rate_pct=80.0))
    assert INTERMITTENT_FAILURES in causes_for(make_features(failure_rate_pct=30.0))


def test_variance_thresholds_are_strict():
    assert causes_for(make_features(failure_rate_pct=0.0, timing_variance_pct=50.0)) == ()
    assert causes_for(
        make_features(failure_rate_pct=0.0, timing_variance_pct=100.0)
    ) == (HIGH_TIMING_VARIANCE,)


def test_stable_features_have_no_causes():
    assert causes_for(make_features(failure_rate_pct=0.0)) == ()


def test_recommend_stable_when_score_zero():
    assert recommend((HIGH_TIMING_VARIANCE,), 0.0) == STABLE_RECOMMENDATION


def test_recommend_joins_remediations_in_cause_order():
    recommendation = recommend((HIGH_TIMING_VARIANCE, INTERMITTENT_FAILURES), 36.0)

    assert recommendation == (
        "Add explicit waits and reduce timing dependencies; "
        "Investigate race conditions and async operations"
    )


def test_recommend_suggests_rewrite_for_high_scores():
    recommendation = recommend((DOM_STABILITY_ISSUES,), 75.5)

    assert recommendation.endswith(REWRITE_RECOMMENDATION)


def test_recommend_falls_back_without_causes():
    assert recommend((), 12.5) == FALLBACK_RECOMMENDATION
