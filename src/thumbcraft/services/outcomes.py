"""Per-item bookkeeping for sequential batch loops."""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass
class ItemResult(Generic[T]):
    """Outcome of one batch item, keyed by whatever identifies the item."""

    key: str
    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchOutcome(Generic[T]):
    """Collects item outcomes so one failure never cancels its siblings."""

    results: list[ItemResult[T]] = field(default_factory=list)

    def record_success(self, key: str, value: T) -> None:
        self.results.append(ItemResult(key=key, value=value))

    def record_failure(self, key: str, error: str) -> None:
        self.results.append(ItemResult(key=key, error=error))

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> list[T]:
        return [result.value for result in self.results if result.ok]

    @property
    def failed_keys(self) -> list[str]:
        return [result.key for result in self.results if not result.ok]
