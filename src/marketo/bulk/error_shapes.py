"""
Turn a failed membership call into per-record results.

Some upstream calls report a partial batch failure by rejecting the whole
call with an error list whose messages embed the affected record ids, e.g.
``"Lead [2307666, 2307667] not found"``. The error is first classified into
a closed set of shapes at the boundary, then the ids are attributed, and
finally a response aligned with the batch is synthesized so the reconciler
can treat it like any other batch.
"""

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from core.logging.utilities import log_exception
from marketo.api_client import MarketoApiError
from marketo.bulk.alerts import Alerter, LoggingAlerter
from marketo.bulk.models import Batch
from marketo.schemas import MarketoError

logger = logging.getLogger(__name__)

# Marketo 1004: lead not found
PARTIAL_FAILURE_CODES = frozenset({"1004"})

BRACKETED_IDS = re.compile(r"\[\s*\d+(?:\s*,\s*\d+)*\s*\]")

SUCCEEDED_STATUS = "updated"
UNKNOWN_STATUS = "unknown"
UNATTRIBUTED_ALERT_SUBJECT = "Unattributed partial failure from Marketo"
PARSER_FAILURE_ALERT_SUBJECT = "Could not parse Marketo partial failure"


@dataclass(frozen=True)
class TotalFailure:
    """The call failed with no per-record detail."""

    message: str


@dataclass(frozen=True)
class PartialFailure:
    """The call failed for some records, listed in structured sub-errors."""

    message: str
    errors: tuple[MarketoError, ...]


UpstreamFailure = Union[TotalFailure, PartialFailure]


@dataclass
class Attribution:
    """Per-identifier result of parsing a PartialFailure.

    Attributes:
        failed: identifier -> failure message
        codes: identifier -> error code of the sub-error that named it
        succeeded: identifiers inferred to have been applied
        unknown: identifiers whose outcome cannot be determined
        unattributed: sub-errors whose message named no identifiers
    """

    failed: dict[str, str] = field(default_factory=dict)
    codes: dict[str, str] = field(default_factory=dict)
    succeeded: list[str] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)
    unattributed: list[MarketoError] = field(default_factory=list)


def classify_upstream_error(
    exc: BaseException,
    partial_failure_codes: Iterable[str] = PARTIAL_FAILURE_CODES,
) -> UpstreamFailure:
    """Classify a raised error as a total or partial failure."""
    codes = set(partial_failure_codes)
    if isinstance(exc, MarketoApiError) and exc.errors:
        if any(error.code in codes for error in exc.errors):
            return PartialFailure(message=str(exc), errors=tuple(exc.errors))
    return TotalFailure(message=str(exc) or type(exc).__name__)


def parse_partial_failure(
    failure: PartialFailure, identifiers: Sequence[Any]
) -> Attribution:
    """
    Attribute each sub-error to the identifiers it names.

    Every bracketed id list in a sub-error message is expanded so each id
    receives the message with its list replaced by that id alone. Ids the
    call did not include are ignored. Ids named by no sub-error are
    ``succeeded`` unless some sub-error could not be attributed, in which
    case they are ``unknown``.
    """
    wanted = [str(identifier).strip() for identifier in identifiers]
    wanted_set = set(wanted)
    attribution = Attribution()

    for error in failure.errors:
        message = error.message or ""
        matches = list(BRACKETED_IDS.finditer(message))
        if not matches:
            attribution.unattributed.append(error)
            continue
        for match in matches:
            for raw_id in match.group(0).strip("[]").split(","):
                record_id = raw_id.strip()
                if record_id not in wanted_set:
                    logger.debug(
                        "Sub-error names a record outside the call",
                        extra={"lead_ids": record_id, "error_code": error.code},
                    )
                    continue
                if record_id in attribution.failed:
                    continue
                attribution.failed[record_id] = (
                    message[: match.start()] + record_id + message[match.end():]
                )
                attribution.codes[record_id] = error.code

    for record_id in wanted:
        if record_id in attribution.failed:
            continue
        if attribution.unattributed:
            attribution.unknown.append(record_id)
        else:
            attribution.succeeded.append(record_id)
    return attribution


def _skipped(record_id: Any, message: str, code: str = "") -> dict[str, Any]:
    return {
        "id": record_id,
        "status": "skipped",
        "reasons": [{"code": code, "message": message}],
    }


def synthesize_success(
    batch: Batch, id_of: Callable[[Any], Any] = lambda item: item
) -> dict[str, Any]:
    """Response for a call that applied every record in the batch."""
    return {
        "success": True,
        "result": [{"id": id_of(item), "status": SUCCEEDED_STATUS} for item in batch.items],
    }


class ErrorShapeParser:
    """
    Resolve a rejected batch into a response aligned 1:1 with the batch.

    ``resolve`` never raises: anything unexpected degrades every record of
    the batch to an unknown outcome and raises an alert.
    """

    def __init__(
        self,
        alerter: Alerter | None = None,
        partial_failure_codes: Iterable[str] = PARTIAL_FAILURE_CODES,
    ):
        self.alerter = alerter or LoggingAlerter()
        self.partial_failure_codes = frozenset(str(c) for c in partial_failure_codes)

    async def resolve(
        self,
        exc: BaseException,
        batch: Batch,
        id_of: Callable[[Any], Any] = lambda item: item,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        context = context or {}
        try:
            identifiers = [id_of(item) for item in batch.items]
            failure = classify_upstream_error(exc, self.partial_failure_codes)

            if isinstance(failure, TotalFailure):
                return {
                    "success": True,
                    "result": [_skipped(identifier, failure.message) for identifier in identifiers],
                }

            attribution = parse_partial_failure(failure, identifiers)
            for sub_error in attribution.unattributed:
                await self._send_alert(
                    UNATTRIBUTED_ALERT_SUBJECT,
                    {
                        **context,
                        "batch_index": batch.index,
                        "lead_ids": [str(i) for i in identifiers],
                        "code": sub_error.code,
                        "message": sub_error.message,
                    },
                )

            if attribution.unattributed:
                logger.warning(
                    "Partial failure could not be fully attributed",
                    extra={
                        **context,
                        "batch_index": batch.index,
                        "unattributed_count": len(attribution.unattributed),
                    },
                )

            result = []
            for identifier in identifiers:
                key = str(identifier).strip()
                if key in attribution.failed:
                    result.append(
                        _skipped(identifier, attribution.failed[key], attribution.codes[key])
                    )
                elif key in attribution.unknown:
                    result.append({"id": identifier, "status": UNKNOWN_STATUS})
                else:
                    result.append({"id": identifier, "status": SUCCEEDED_STATUS})
            return {"success": True, "result": result}

        except Exception as parse_error:
            log_exception(
                logger,
                parse_error,
                "Failed to parse partial failure",
                batch_index=batch.index,
                **context,
            )
            await self._send_alert(
                PARSER_FAILURE_ALERT_SUBJECT,
                {
                    **context,
                    "batch_index": batch.index,
                    "error_message": str(exc),
                    "parser_error": str(parse_error),
                },
            )
            return {
                "success": True,
                "result": [{"id": item, "status": UNKNOWN_STATUS} for item in batch.items],
            }

    async def _send_alert(self, subject: str, details: dict[str, Any]) -> None:
        """Deliver one alert; a failing channel is logged and never propagates."""
        try:
            await self.alerter.send(subject, details)
        except Exception:
            logger.error(
                "Alert delivery failed",
                exc_info=True,
                extra={"batch_index": details.get("batch_index"), "alert_subject": subject},
            )


__all__ = [
    "Attribution",
    "BRACKETED_IDS",
    "ErrorShapeParser",
    "PARTIAL_FAILURE_CODES",
    "PartialFailure",
    "TotalFailure",
    "UpstreamFailure",
    "classify_upstream_error",
    "parse_partial_failure",
    "synthesize_success",
]
