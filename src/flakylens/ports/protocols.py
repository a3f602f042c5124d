from typing import Protocol

from flakylens.core.models import ExecutionRecord, FlakyRecord, FlakyRecordUpdate


class ExecutionHistoryPort(Protocol):
    def save_execution(self, record: ExecutionRecord) -> None: ...

    def list_executions(self, test_id: str) -> list[ExecutionRecord]: ...

    def list_test_ids(self) -> list[str]: ...


class FlakyRecordPort(Protocol):
    def upsert(self, test_id: str, update: FlakyRecordUpdate) -> FlakyRecord: ...

    def resolve(self, test_id: str) -> bool: ...

    def get(self, test_id: str) -> FlakyRecord | None: ...

    def list_active(self) -> list[FlakyRecord]: ...
