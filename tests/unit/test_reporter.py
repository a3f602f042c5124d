from datetime import datetime, timezone
from io import StringIO

import pytest
from rich.console import Console

from flakylens.core.models import AnalysisResult, BatchSummary, FlakyRecord, StoreStats
from flakylens.reporter import RichReporter


@pytest.fixture
def captured_console():
    output = StringIO()
    console = Console(file=output, force_terminal=True, color_system=None, width=200)
    return console, output


def make_record(test_id: str, score: float, **kwargs) -> FlakyRecord:
    return FlakyRecord(
        test_id=test_id,
        flakiness_score=score,
        timing_variance=kwargs.get("timing_variance", 66.8),
        failure_rate=kwargs.get("failure_rate", 40.0),
        total_runs=10,
        failed_runs=4,
        root_causes=kwargs.get("root_causes", ("Intermittent failures",)),
        last_failed_at=kwargs.get("last_failed_at"),
        detected_at=datetime.now(timezone.utc),
    )


def test_reporter_empty_list(captured_console):
    console, output = captured_console
    reporter = RichReporter(console=console)

    reporter.report([])

    assert "no flaky tests" in output.getvalue().lower()


def test_reporter_single_record(captured_console):
    console, output = captured_console
    reporter = RichReporter(console=console)

    reporter.report(
        [
            make_record(
                "test_checkout",
                36.0,
                last_failed_at=datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc),
            )
        ]
    )

    result = output.getvalue()
    assert "test_checkout" in result
    assert "36.0" in result
    assert "4/10" in result
    assert "2026-01-01 12:00" in result
    assert "Intermittent failures" in result


def test_reporter_shows_summary(captured_console):
    console, output = captured_console
    reporter = RichReporter(console=console)

    reporter.report([make_record("test_high", 82.0), make_record("test_low", 22.5)])

    result = output.getvalue().lower()
    assert "summary" in result
    assert "most flaky" in result
    assert "test_high" in result


def test_reporter_handles_record_without_causes(captured_console):
    console, output = captured_console
    reporter = RichReporter(console=console)

    reporter.report([make_record("test_quiet", 12.0, root_causes=())])

    assert "test_quiet" in output.getvalue()


def test_report_analysis_flaky(captured_console):
    console, output = captured_console
    reporter = RichReporter(console=console)

    reporter.report_analysis(
        AnalysisResult(
            test_id="test_checkout",
            is_flaky=True,
            score=36.0,
            timing_variance=66.8,
            failure_rate=40.0,
            root_causes=("High timing variance detected",),
            recommendation="Add explicit waits and reduce timing dependencies",
            total_runs=10,
            failed_runs=4,
        )
    )

    result = output.getvalue()
    assert "FLAKY" in result
    assert "36.0" in result
    assert "Add explicit waits" in result


def test_report_analysis_insufficient_data(captured_console):
    console, output = captured_console
    reporter = RichReporter(console=console)

    reporter.report_analysis(
        AnalysisResult(
            test_id="test_new",
            is_flaky=False,
            score=0.0,
            timing_variance=0.0,
            failure_rate=0.0,
            recommendation="Need at least 3 executions for analysis",
            insufficient_data=True,
            total_runs=1,
        )
    )

    assert "Need at least 3 executions" in output.getvalue()


def test_report_batch(captured_console):
    console, output = captured_console
    reporter = RichReporter(console=console)

    reporter.report_batch(
        BatchSummary(
            analyzed=5,
            flaky_found=1,
            skipped=2,
            failed=1,
            records=(make_record("test_checkout", 36.0),),
        )
    )

    result = output.getvalue()
    assert "Analyzed 5 test(s), found 1 flaky (2 skipped, 1 failed)" in result
    assert "test_checkout" in result


def test_report_stats(captured_console):
    console, output = captured_console
    reporter = RichReporter(console=console)

    reporter.report_stats(
        StoreStats(total_tests=3, total_executions=30, active_flaky=1, success_rate=86.7)
    )

    result = output.getvalue()
    assert "30" in result
    assert "86.7%" in result
