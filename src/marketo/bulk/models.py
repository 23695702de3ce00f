"""
Data types shared by the bulk engine.

A bulk run splits an ordered input collection into ``Batch`` objects, sends
each batch upstream, records a ``BatchResult`` per batch and finally maps
every input index to exactly one ``ItemOutcome``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, Sequence, TypeVar

T = TypeVar("T")


class DispatchMode(Enum):
    """How batches of one bulk run are sent upstream."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class Outcome(Enum):
    """
    Reconciled outcome of a single input item.

    CREATED/UPDATED/DELETED: upstream applied the record
    SKIPPED_WITH_REASON: upstream skipped the record and said why
    SKIPPED_UNKNOWN: upstream skipped the record (or returned an unknown
        status) without a reason
    FAILED: the whole batch holding the record was rejected
    MISSING: upstream returned no result for the record at all
    """

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    SKIPPED_WITH_REASON = "skipped_with_reason"
    SKIPPED_UNKNOWN = "skipped_unknown"
    FAILED = "failed"
    MISSING = "missing"

    @property
    def is_success(self) -> bool:
        return self in (Outcome.CREATED, Outcome.UPDATED, Outcome.DELETED)

    @property
    def is_failure(self) -> bool:
        return self in (
            Outcome.SKIPPED_WITH_REASON,
            Outcome.SKIPPED_UNKNOWN,
            Outcome.FAILED,
        )


class ReconciliationStatus(Enum):
    """Overall verdict of a reconciled bulk run."""

    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    COUNT_MISMATCH = "count_mismatch"
    TOTAL_FAILURE = "total_failure"


@dataclass(frozen=True)
class Batch(Generic[T]):
    """A contiguous slice of the input collection.

    Attributes:
        index: Zero-based batch number
        start: Global index of the first item
        items: The items, in input order
    """

    index: int
    start: int
    items: tuple[T, ...]

    @property
    def end(self) -> int:
        """Global index one past the last item."""
        return self.start + len(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass
class BatchResult(Generic[T]):
    """Outcome of one upstream call for one batch.

    Exactly one of ``response`` and ``error`` is set. A raised exception is
    kept as data so that sibling batches are unaffected.
    """

    batch: Batch[T]
    response: Optional[dict[str, Any]] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        """True when the call returned ``success: true`` with a result list."""
        if self.error is not None or not isinstance(self.response, dict):
            return False
        return bool(self.response.get("success")) and isinstance(
            self.response.get("result"), list
        )

    @property
    def failure_message(self) -> str:
        if self.error is not None:
            return str(self.error) or type(self.error).__name__
        if isinstance(self.response, dict):
            errors = self.response.get("errors") or []
            if errors:
                return "; ".join(str(e.get("message", e)) for e in errors)
        return "no result list returned"


@dataclass(frozen=True)
class ItemOutcome:
    """Reconciled outcome for one input index."""

    index: int
    outcome: Outcome
    record_id: Any = None
    message: Optional[str] = None


@dataclass
class ExternalRowCorrelation:
    """Raw rows (e.g. CSV) aligned by global index with the inputs.

    ``header`` is the optional column row, reported first when failed rows
    are collected.
    """

    rows: Sequence[Any] = field(default_factory=list)
    header: Optional[Any] = None

    @classmethod
    def from_csv_array(cls, csv_array: Optional[Sequence[Any]]) -> Optional["ExternalRowCorrelation"]:
        """Build from a parsed CSV array whose first element is the header row."""
        if not csv_array:
            return None
        return cls(rows=list(csv_array[1:]), header=csv_array[0])

    def row(self, index: int) -> Any:
        if 0 <= index < len(self.rows):
            return self.rows[index]
        return None


__all__ = [
    "Batch",
    "BatchResult",
    "DispatchMode",
    "ExternalRowCorrelation",
    "ItemOutcome",
    "Outcome",
    "ReconciliationStatus",
]
