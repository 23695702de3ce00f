"""
Map per-batch upstream results back onto the original input collection.

``reconcile`` walks BatchResults in batch order with a running starting index
of ``batch.index * batch_size`` and assigns every input index exactly one
Outcome. Nothing is reordered: every output list follows input order. A
``None`` entry in a result list marks a record upstream never reported on
and, like a short result list, leaves that record MISSING.

``reconcile_lookup`` does the same for "find by field" calls, whose results
come back keyed by value rather than by position.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import ValidationError

from marketo.bulk.models import (
    BatchResult,
    ExternalRowCorrelation,
    ItemOutcome,
    Outcome,
    ReconciliationStatus,
)
from marketo.schemas import MarketoItemResult

logger = logging.getLogger(__name__)

REQUEST_FAILED_MESSAGE = "Marketo request failed"
SKIPPED_STATUS = "skipped"

DEFAULT_STATUS_MAP: Mapping[str, Outcome] = {
    "created": Outcome.CREATED,
    "updated": Outcome.UPDATED,
    "deleted": Outcome.DELETED,
}

Identify = Callable[[Any], dict[str, Any]]


def _default_identify(item: Any) -> dict[str, Any]:
    if isinstance(item, Mapping):
        return dict(item)
    return {"value": item}


@dataclass
class ReconciliationReport:
    """Per-index outcomes plus the category lists a step reports on."""

    total: int
    outcomes: dict[int, ItemOutcome] = field(default_factory=dict)
    created: list[dict[str, Any]] = field(default_factory=list)
    updated: list[dict[str, Any]] = field(default_factory=list)
    deleted: list[dict[str, Any]] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)
    failed_original: list[Any] = field(default_factory=list)

    @property
    def returned_count(self) -> int:
        return len(self.created) + len(self.updated) + len(self.deleted) + len(self.failed)

    @property
    def missing(self) -> list[int]:
        return sorted(i for i, o in self.outcomes.items() if o.outcome is Outcome.MISSING)

    @property
    def count_mismatch(self) -> bool:
        return 0 < self.returned_count < self.total

    @property
    def status(self) -> ReconciliationStatus:
        if self.returned_count == 0:
            return ReconciliationStatus.TOTAL_FAILURE
        if self.returned_count < self.total:
            return ReconciliationStatus.COUNT_MISMATCH
        if not self.failed:
            return ReconciliationStatus.SUCCESS
        return ReconciliationStatus.PARTIAL_SUCCESS

    @property
    def passed(self) -> bool:
        return self.status is ReconciliationStatus.SUCCESS

    def summary(self, noun: str = "leads") -> str:
        """Render the pass/fail message for this report."""
        status = self.status
        if status is ReconciliationStatus.TOTAL_FAILURE:
            return f"No {noun} were processed in Marketo"
        if status is ReconciliationStatus.COUNT_MISMATCH:
            return (
                f"Only {self.returned_count} of {self.total} {noun} "
                f"were successfully sent to Marketo"
            )
        if status is ReconciliationStatus.SUCCESS:
            parts = [f"created {len(self.created)}", f"updated {len(self.updated)}"]
            if self.deleted:
                parts.append(f"removed {len(self.deleted)}")
            return f"Successfully {', '.join(parts)} {noun}"
        return f"Failed to process {len(self.failed)} of {self.total} {noun}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "total": self.total,
            "returned_count": self.returned_count,
            "count_mismatch": self.count_mismatch,
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "failed": self.failed,
            "failed_original": self.failed_original,
        }


def _raw_status(raw: Any) -> str:
    if isinstance(raw, Mapping):
        return str(raw.get("status"))
    return str(raw)


def _parse_item(raw: Any, batch_index: int) -> Optional[MarketoItemResult]:
    try:
        return MarketoItemResult.model_validate(raw)
    except ValidationError as e:
        logger.warning(
            "Malformed item in upstream result",
            extra={
                "batch_index": batch_index,
                "error_message": str(e)[:500],
            },
        )
        return None


def _classify_item(
    item: MarketoItemResult, status_map: Mapping[str, Outcome], id_field: str
) -> tuple[Outcome, Any, Optional[str]]:
    status = item.status
    if status == SKIPPED_STATUS:
        if item.reasons:
            return Outcome.SKIPPED_WITH_REASON, None, item.reasons[0].message
        return Outcome.SKIPPED_UNKNOWN, None, status
    outcome = status_map.get(status)
    if outcome is None:
        return Outcome.SKIPPED_UNKNOWN, None, status
    return outcome, item.get_field(id_field), None


def reconcile(
    inputs: Sequence[Any],
    batch_results: Sequence[BatchResult],
    *,
    batch_size: int,
    identify: Optional[Identify] = None,
    correlation: Optional[ExternalRowCorrelation] = None,
    status_map: Mapping[str, Outcome] = DEFAULT_STATUS_MAP,
    id_field: str = "id",
    request_failed_message: str = REQUEST_FAILED_MESSAGE,
) -> ReconciliationReport:
    """
    Reconcile BatchResults against the inputs they were built from.

    Args:
        inputs: The original, order-significant input collection
        batch_results: Dispatcher output, aligned with the chunker's batches
        batch_size: The chunk size the batches were built with
        identify: Extracts the identifying fields of an input for report rows
        correlation: Optional raw rows aligned by index with inputs
        status_map: Upstream status value to Outcome for applied records
        id_field: Result field holding the upstream record id
        request_failed_message: Message for items of a rejected batch

    Returns:
        ReconciliationReport covering every input index
    """
    identify = identify or _default_identify
    total = len(inputs)
    report = ReconciliationReport(total=total)

    for batch_result in batch_results:
        starting_index = batch_result.batch.index * batch_size
        batch_end = min(starting_index + len(batch_result.batch), total)

        if batch_result.succeeded:
            items = batch_result.response["result"]
            if len(items) > batch_end - starting_index:
                logger.warning(
                    "Upstream returned more results than records sent",
                    extra={
                        "batch_index": batch_result.batch.index,
                        "batch_size": len(batch_result.batch),
                        "returned_count": len(items),
                    },
                )
            for offset, raw in enumerate(items[: batch_end - starting_index]):
                if raw is None:
                    continue
                index = starting_index + offset
                item = _parse_item(raw, batch_result.batch.index)
                if item is None:
                    report.outcomes[index] = ItemOutcome(
                        index, Outcome.SKIPPED_UNKNOWN, message=_raw_status(raw)
                    )
                    continue
                outcome, record_id, message = _classify_item(item, status_map, id_field)
                report.outcomes[index] = ItemOutcome(index, outcome, record_id, message)
        else:
            for index in range(starting_index, batch_end):
                report.outcomes[index] = ItemOutcome(
                    index, Outcome.FAILED, message=request_failed_message
                )

    if correlation is not None and correlation.header is not None:
        report.failed_original.append(correlation.header)

    for index in range(total):
        item_outcome = report.outcomes.get(index)
        if item_outcome is None:
            report.outcomes[index] = ItemOutcome(index, Outcome.MISSING)
            continue

        row = identify(inputs[index])
        outcome = item_outcome.outcome
        if outcome is Outcome.CREATED:
            report.created.append({**row, "id": item_outcome.record_id})
        elif outcome is Outcome.UPDATED:
            report.updated.append({**row, "id": item_outcome.record_id})
        elif outcome is Outcome.DELETED:
            report.deleted.append({**row, "id": item_outcome.record_id})
        else:
            report.failed.append({**row, "message": item_outcome.message})
            if correlation is not None:
                original = correlation.row(index)
                if original:
                    report.failed_original.append(original)

    log_level = logging.INFO if report.passed else logging.WARNING
    logger.log(
        log_level,
        "Bulk results reconciled",
        extra={
            "records_total": total,
            "records_created": len(report.created),
            "records_updated": len(report.updated),
            "records_deleted": len(report.deleted),
            "records_failed": len(report.failed),
            "records_missing": total - report.returned_count,
            "returned_count": report.returned_count,
            "reconciliation_status": report.status.value,
        },
    )
    return report


@dataclass
class LookupReport:
    """Result of mapping "find by field" batches back onto requested keys.

    ``found`` maps each found key to its upstream record; ``missing`` holds
    one ``{key_field, "id": None, "message"}`` row per key not found or lost
    to a rejected batch, in request order.
    """

    total: int
    key_field: str
    found: dict[str, dict[str, Any]] = field(default_factory=dict)
    missing: list[dict[str, Any]] = field(default_factory=list)

    @property
    def returned_count(self) -> int:
        return len(self.found) + len(self.missing)


def reconcile_lookup(
    keys: Sequence[str],
    batch_results: Sequence[BatchResult],
    *,
    batch_size: int,
    key_field: str = "email",
) -> LookupReport:
    """Map lookup batches back onto the requested keys by key value."""
    report = LookupReport(total=len(keys), key_field=key_field)

    for batch_result in batch_results:
        starting_index = batch_result.batch.index * batch_size
        requested = keys[starting_index:starting_index + len(batch_result.batch)]

        if not batch_result.succeeded:
            for key in requested:
                report.missing.append(
                    {"id": None, key_field: key, "message": f"{REQUEST_FAILED_MESSAGE} for {key}"}
                )
            continue

        records = batch_result.response.get("result") or []
        by_key = {
            str(record.get(key_field)).lower(): record
            for record in records
            if isinstance(record, dict) and record.get(key_field) is not None
        }
        for key in requested:
            record = by_key.get(str(key).lower())
            if record is None:
                report.missing.append(
                    {
                        "id": None,
                        key_field: key,
                        "message": f"Couldn't find lead associated with {key}",
                    }
                )
            else:
                report.found[key] = record

    logger.debug(
        "Lookup results reconciled",
        extra={
            "records_total": report.total,
            "records_found": len(report.found),
            "records_missing": len(report.missing),
        },
    )
    return report


__all__ = [
    "DEFAULT_STATUS_MAP",
    "LookupReport",
    "REQUEST_FAILED_MESSAGE",
    "ReconciliationReport",
    "reconcile",
    "reconcile_lookup",
]
