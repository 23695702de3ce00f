"""Bulk engine: chunker, dispatcher, reconciler and error-shape parser."""

from marketo.bulk.chunker import chunk
from marketo.bulk.dispatcher import BatchDispatcher
from marketo.bulk.error_shapes import (
    Attribution,
    ErrorShapeParser,
    PartialFailure,
    TotalFailure,
    classify_upstream_error,
    parse_partial_failure,
)
from marketo.bulk.models import (
    Batch,
    BatchResult,
    DispatchMode,
    ExternalRowCorrelation,
    ItemOutcome,
    Outcome,
    ReconciliationStatus,
)
from marketo.bulk.reconciler import (
    LookupReport,
    ReconciliationReport,
    reconcile,
    reconcile_lookup,
)

__all__ = [
    "Attribution",
    "Batch",
    "BatchDispatcher",
    "BatchResult",
    "DispatchMode",
    "ErrorShapeParser",
    "ExternalRowCorrelation",
    "ItemOutcome",
    "LookupReport",
    "Outcome",
    "PartialFailure",
    "ReconciliationReport",
    "ReconciliationStatus",
    "TotalFailure",
    "chunk",
    "classify_upstream_error",
    "parse_partial_failure",
    "reconcile",
    "reconcile_lookup",
]
