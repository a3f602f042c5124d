from rich.console import Console
from rich.table import Table

from flakylens.core.models import AnalysisResult, BatchSummary, FlakyRecord, StoreStats

HIGH_SCORE = 70.0
MEDIUM_SCORE = 40.0


def _score_color(score: float) -> str:
    if score > HIGH_SCORE:
        return "red"
    if score > MEDIUM_SCORE:
        return "yellow"
    return "green"


class RichReporter:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def report(self, records: list[FlakyRecord]) -> None:
        if not records:
            self.console.print("[green]No flaky tests detected! 🎉[/green]")
            return

        self.console.print("\n[bold]FlakyLens Report[/bold]")
        self.console.print(f"Found {len(records)} flaky test(s)\n")

        table = Table(title="Flaky Tests", show_header=True, header_style="bold cyan")
        table.add_column("Test ID", style="dim", no_wrap=False)
        table.add_column("Score", justify="right")
        table.add_column("Failure Rate", justify="right")
        table.add_column("Timing Variance", justify="right")
        table.add_column("Runs", justify="right")
        table.add_column("Last Failed", justify="right")
        table.add_column("Root Causes")

        for record in records:
            color = _score_color(record.flakiness_score)
            table.add_row(
                record.test_id,
                f"[{color}]{record.flakiness_score:.1f}[/{color}]",
                f"{record.failure_rate:.1f}%",
                f"{record.timing_variance:.1f}%",
                f"{record.failed_runs}/{record.total_runs}",
                record.last_failed_at.strftime("%Y-%m-%d %H:%M")
                if record.last_failed_at
                else "-",
                ", ".join(record.root_causes) or "-",
            )

        self.console.print(table)

        self._print_summary(records)

    def _print_summary(self, records: list[FlakyRecord]) -> None:
        self.console.print()

        high = sum(1 for r in records if r.flakiness_score > HIGH_SCORE)
        medium = sum(1 for r in records if MEDIUM_SCORE < r.flakiness_score <= HIGH_SCORE)
        low = sum(1 for r in records if r.flakiness_score <= MEDIUM_SCORE)

        self.console.print("[bold]Summary:[/bold]")
        if high > 0:
            self.console.print(f"  [red]High flakiness (>70)[/red]: {high}")
        if medium > 0:
            self.console.print(f"  [yellow]Medium flakiness (40-70)[/yellow]: {medium}")
        if low > 0:
            self.console.print(f"  [green]Low flakiness (<=40)[/green]: {low}")

        self.console.print()

        most_flaky = max(records, key=lambda r: r.flakiness_score)
        self.console.print(
            f"[bold]Most flaky:[/bold] {most_flaky.test_id} "
            f"({most_flaky.flakiness_score:.1f})"
        )

    def report_analysis(self, result: AnalysisResult) -> None:
        if result.insufficient_data:
            self.console.print(
                f"[yellow]{result.test_id}: {result.recommendation} "
                f"(found {result.total_runs})[/yellow]"
            )
            return

        status = "[red]FLAKY[/red]" if result.is_flaky else "[green]STABLE[/green]"
        self.console.print(f"[bold]{result.test_id}[/bold]: {status}")
        self.console.print(f"  Score: {result.score:.1f}")
        self.console.print(f"  Failure rate: {result.failure_rate:.1f}%")
        self.console.print(f"  Timing variance: {result.timing_variance:.1f}%")
        if result.root_causes:
            self.console.print(f"  Root causes: {', '.join(result.root_causes)}")
        self.console.print(f"  Recommendation: {result.recommendation}")

    def report_batch(self, summary: BatchSummary) -> None:
        self.console.print(
            f"Analyzed {summary.analyzed} test(s), "
            f"found {summary.flaky_found} flaky "
            f"({summary.skipped} skipped, {summary.failed} failed)"
        )
        if summary.records:
            self.report(list(summary.records))

    def report_stats(self, stats: StoreStats) -> None:
        table = Table(title="Execution History", show_header=False)
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")
        table.add_row("Tests", str(stats.total_tests))
        table.add_row("Executions", str(stats.total_executions))
        table.add_row("Active flaky tests", str(stats.active_flaky))
        table.add_row("Success rate", f"{stats.success_rate:.1f}%")
        self.console.print(table)
