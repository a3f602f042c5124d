import pytest

from flakylens.core.models import DomStability, FeatureSet, WaitConditionStats
from flakylens.core.scorer import (
    evaluate_signals,
    round_one_decimal,
    score_features,
    weighted_score,
)


def make_features(
    failed_runs: int = 4,
    total_runs: int = 10,
    timing_variance_pct: float = 0.0,
    dom_average: float = 100.0,
    wait_average: float = 0.0,
) -> FeatureSet:
    return FeatureSet(
        total_runs=total_runs,
        failed_runs=failed_runs,
        passed_runs=total_runs - failed_runs,
        failure_rate_pct=failed_runs / total_runs * 100,
        timing_variance_pct=timing_variance_pct,
        dom_stability=DomStability(average_score=dom_average, has_issue=dom_average < 70),
        wait_condition_stats=WaitConditionStats(
            average_failures=wait_average, has_issue=wait_average > 1
        ),
    )


def test_worked_example_score():
    features = make_features(failed_runs=4, timing_variance_pct=66.8044)

    verdict = score_features(features)

    assert verdict.is_flaky is True
    assert verdict.score == 36.0


def test_all_passing_is_not_flaky():
    features = make_features(failed_runs=0, total_runs=5, timing_variance_pct=200.0)

    verdict = score_features(features)

    assert verdict.is_flaky is False
    assert verdict.score == 0.0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"timing_variance_pct": 250.0},
        {"dom_average": 10.0},
        {"wait_average": 5.0},
        {"timing_variance_pct": 250.0, "dom_average": 10.0, "wait_average": 5.0},
    ],
)
def test_always_failing_is_broken_not_flaky(kwargs):
    features = make_features(failed_runs=10, total_runs=10, **kwargs)

    verdict = score_features(features)

    assert verdict.is_flaky is False
    assert verdict.score == 0.0


def test_intermittent_without_instability_is_not_flaky():
    features = make_features(failed_runs=5, timing_variance_pct=50.0, dom_average=70.0)

    verdict = score_features(features)

    assert verdict.is_flaky is False
    assert verdict.score == 0.0


def test_dom_instability_alone_opens_gate():
    features = make_features(failed_runs=2, dom_average=40.0)

    verdict = score_features(features)

    assert verdict.is_flaky is True
    # 20 * 0.4 + 0 + 60 * 0.2 + 0
    assert verdict.score == 20.0


def test_wait_condition_issue_alone_opens_gate():
    features = make_features(failed_runs=3, wait_average=2.0)

    verdict = score_features(features)

    assert verdict.is_flaky is True
    # 30 * 0.4 + 0 + 0 + 40 * 0.1
    assert verdict.score == 16.0


def test_terms_are_clamped_before_weighting():
    features = make_features(
        failed_runs=5, timing_variance_pct=400.0, dom_average=0.0, wait_average=50.0
    )

    # 50 * 0.4 + 100 * 0.3 + 100 * 0.2 + 100 * 0.1
    assert weighted_score(features) == 80.0


def test_score_never_exceeds_one_hundred():
    features = make_features(
        failed_runs=9, timing_variance_pct=1000.0, dom_average=0.0, wait_average=100.0
    )

    verdict = score_features(features)

    assert verdict.score <= 100.0


def test_score_rounded_to_one_decimal():
    features = make_features(failed_runs=1, total_runs=3, timing_variance_pct=51.17)

    verdict = score_features(features)

    assert verdict.score == round(verdict.score, 1)


def test_score_rounds_halves_up():
    features = make_features(failed_runs=1, total_runs=8, wait_average=1.125)

    verdict = score_features(features)

    assert verdict.is_flaky is True
    assert verdict.score == 7.3


@pytest.mark.parametrize(
    "value, expected",
    [(7.25, 7.3), (6.25, 6.3), (36.04, 36.0), (66.8044, 66.8), (0.0, 0.0), (100.0, 100.0)],
)
def test_round_one_decimal(value, expected):
    assert round_one_decimal(value) == expected


def test_score_monotonic_in_failure_rate():
    scores = [
        score_features(make_features(failed_runs=f, timing_variance_pct=75.0)).score
        for f in range(1, 10)
    ]

    assert scores == sorted(scores)


def test_evaluate_signals():
    signals = evaluate_signals(
        make_features(failed_runs=4, timing_variance_pct=66.8, dom_average=90.0)
    )

    assert signals.intermittent is True
    assert signals.high_timing_variance is True
    assert signals.dom_unstable is False
    assert signals.wait_condition_issue is False
    assert signals.unstable is True
