from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExecutionOutcome(str, Enum):
    PASSED = "passed"
    FAILED = "failed"


class EventKind(str, Enum):
    SKIPPED = "skipped"
    STABLE = "stable"
    FLAKY = "flaky"
    ERROR = "error"


class ExecutionRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    test_id: str
    outcome: ExecutionOutcome
    duration_ms: int = Field(ge=0)
    dom_stability_score: float | None = Field(default=None, ge=0.0, le=100.0)
    wait_condition_failures: int = Field(default=0, ge=0)
    network_call_count: int = Field(default=0, ge=0)
    error_message: str | None = None
    executed_at: datetime

    @field_validator("executed_at")
    @classmethod
    def assume_utc_when_naive(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class DomStability(BaseModel):
    model_config = ConfigDict(frozen=True)

    average_score: float = 100.0
    has_issue: bool = False


class WaitConditionStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    average_failures: float = 0.0
    has_issue: bool = False


class FeatureSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_runs: int = Field(ge=0)
    failed_runs: int = Field(ge=0)
    passed_runs: int = Field(ge=0)
    failure_rate_pct: float = Field(ge=0.0, le=100.0)
    timing_variance_pct: float = Field(ge=0.0)
    dom_stability: DomStability = DomStability()
    wait_condition_stats: WaitConditionStats = WaitConditionStats()
    last_failed_at: datetime | None = None


class InstabilitySignals(BaseModel):
    model_config = ConfigDict(frozen=True)

    intermittent: bool
    high_timing_variance: bool
    dom_unstable: bool
    wait_condition_issue: bool

    @property
    def unstable(self) -> bool:
        return self.high_timing_variance or self.dom_unstable or self.wait_condition_issue


class FlakinessVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_flaky: bool
    score: float = Field(ge=0.0, le=100.0)


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    test_id: str
    is_flaky: bool
    score: float
    timing_variance: float
    failure_rate: float
    root_causes: tuple[str, ...] = ()
    recommendation: str
    insufficient_data: bool = False
    total_runs: int = 0
    failed_runs: int = 0
    last_failed_at: datetime | None = None


class FlakyRecordUpdate(BaseModel):
    model_config = ConfigDict(frozen=True)

    flakiness_score: float = Field(ge=0.0, le=100.0)
    timing_variance: float = Field(ge=0.0)
    failure_rate: float = Field(ge=0.0, le=100.0)
    total_runs: int = Field(ge=0)
    failed_runs: int = Field(ge=0)
    root_causes: tuple[str, ...] = ()
    last_failed_at: datetime | None = None

    @classmethod
    def from_analysis(cls, result: AnalysisResult) -> "FlakyRecordUpdate":
        return cls(
            flakiness_score=result.score,
            timing_variance=result.timing_variance,
            failure_rate=result.failure_rate,
            total_runs=result.total_runs,
            failed_runs=result.failed_runs,
            root_causes=result.root_causes,
            last_failed_at=result.last_failed_at,
        )


class FlakyRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    test_id: str
    flakiness_score: float = Field(ge=0.0, le=100.0)
    timing_variance: float = Field(ge=0.0)
    failure_rate: float = Field(ge=0.0, le=100.0)
    total_runs: int = Field(ge=0)
    failed_runs: int = Field(ge=0)
    root_causes: tuple[str, ...] = ()
    last_failed_at: datetime | None = None
    is_resolved: bool = False
    detected_at: datetime


class BatchSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    analyzed: int = Field(default=0, ge=0)
    flaky_found: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    records: tuple[FlakyRecord, ...] = ()


class StoreStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_tests: int = Field(ge=0)
    total_executions: int = Field(ge=0)
    active_flaky: int = Field(ge=0)
    success_rate: float = Field(ge=0.0, le=100.0)


class AnalysisEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    test_id: str
    kind: EventKind
    message: str = ""


class FlakyLensConfig(BaseModel):
    db_path: Path = Field(default=Path(".flakylens/history.db"))
    max_workers: int = Field(default=4, ge=1)
