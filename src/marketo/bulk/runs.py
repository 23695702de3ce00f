"""
End-to-end bulk runs: chunk, dispatch, reconcile.

Each run takes a MarketoClient (or CachingMarketoClient) and returns a
report for the step handler to render. Batch exceptions are already data
by the time they reach the reconciler; the only error a run raises is an
operation-level one such as PartitionNotFoundError.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from core.logging.context_managers import log_phase
from marketo.bulk.models import ExternalRowCorrelation, ReconciliationStatus
from marketo.bulk.reconciler import (
    LookupReport,
    ReconciliationReport,
    reconcile,
    reconcile_lookup,
)
from marketo.capabilities.leads import DEFAULT_PARTITION_ID

logger = logging.getLogger(__name__)

NOT_IN_PROGRAM = "Not in Program"


def _email_of(lead: Any) -> str:
    if isinstance(lead, dict):
        return lead["email"]
    return str(lead)


async def bulk_create_or_update_leads(
    client,
    leads: Sequence[dict[str, Any]],
    partition_id: int = DEFAULT_PARTITION_ID,
    csv_array: Optional[Sequence[Any]] = None,
) -> ReconciliationReport:
    """Upsert leads and report which were created, updated or failed.

    Raises:
        PartitionNotFoundError: If partition_id names no partition
    """
    leads = list(leads)
    with log_phase(
        logger, "dispatch", operation="bulk_create_or_update_leads", batch_size=len(leads)
    ):
        results = await client.bulk_create_or_update_leads(leads, partition_id)

    return reconcile(
        leads,
        results,
        batch_size=client.settings.lead_batch_size,
        correlation=ExternalRowCorrelation.from_csv_array(csv_array),
    )


async def bulk_add_or_remove_program_members(
    client,
    program_id: Any,
    leads: Sequence[Any],
    member_status: str,
    csv_array: Optional[Sequence[Any]] = None,
) -> ReconciliationReport:
    """Set a membership status for many leads, or remove them.

    ``member_status == "Not in Program"`` removes the leads from the program.
    ``leads`` holds emails or dicts with an ``email`` key.
    """
    emails = [_email_of(lead) for lead in leads]
    removing = member_status == NOT_IN_PROGRAM
    operation = "bulk_remove_program_members" if removing else "bulk_set_program_member_status"

    with log_phase(logger, "dispatch", operation=operation, program_id=str(program_id)):
        if removing:
            results = await client.bulk_remove_program_members(program_id, emails)
        else:
            results = await client.bulk_set_program_member_status(
                program_id, emails, member_status
            )

    return reconcile(
        emails,
        results,
        batch_size=client.settings.program_member_batch_size,
        identify=lambda email: {"email": email},
        correlation=ExternalRowCorrelation.from_csv_array(csv_array),
        id_field="leadId",
    )


async def bulk_request_campaign(
    client,
    campaign_id: Any,
    lead_ids: Sequence[Any],
    csv_array: Optional[Sequence[Any]] = None,
) -> ReconciliationReport:
    """Add many leads to a requestable campaign."""
    lead_ids = list(lead_ids)
    with log_phase(
        logger, "dispatch", operation="bulk_request_campaign", campaign_id=str(campaign_id)
    ):
        results = await client.bulk_request_campaign(campaign_id, lead_ids)

    return reconcile(
        lead_ids,
        results,
        batch_size=client.settings.campaign_request_batch_size,
        identify=lambda lead_id: {"leadId": lead_id},
        correlation=ExternalRowCorrelation.from_csv_array(csv_array),
    )


# =============================================================================
# Field checks
# =============================================================================


class UnknownOperatorError(ValueError):
    pass


def _is_set(value: Any) -> bool:
    return value is not None and value != ""


def _as_number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{value!r} is not a number") from e


def check_field(operator: str, actual: Any, expected: Any) -> bool:
    """Evaluate ``actual <operator> expected`` as used by field check steps.

    Raises:
        UnknownOperatorError: If operator is not supported
    """
    op = (operator or "be").strip().lower()
    if op == "be set":
        return _is_set(actual)
    if op == "not be set":
        return not _is_set(actual)
    if op == "be":
        return str(actual).lower() == str(expected).lower()
    if op == "not be":
        return str(actual).lower() != str(expected).lower()
    if op == "contain":
        return str(expected).lower() in str(actual).lower()
    if op == "not contain":
        return str(expected).lower() not in str(actual).lower()
    if op == "be greater than":
        return _as_number(actual) > _as_number(expected)
    if op == "be less than":
        return _as_number(actual) < _as_number(expected)
    raise UnknownOperatorError(f"Unknown operator {operator!r}")


@dataclass
class FieldCheckReport:
    """Per-lead result of checking one field across many leads."""

    total: int
    field: str
    passed: list[dict[str, Any]] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)

    @property
    def returned_count(self) -> int:
        return len(self.passed) + len(self.failed)

    @property
    def status(self) -> ReconciliationStatus:
        if self.returned_count == 0:
            return ReconciliationStatus.TOTAL_FAILURE
        if self.returned_count < self.total:
            return ReconciliationStatus.COUNT_MISMATCH
        if not self.failed:
            return ReconciliationStatus.SUCCESS
        return ReconciliationStatus.PARTIAL_SUCCESS


async def bulk_check_lead_field(
    client,
    emails: Sequence[str],
    field_name: str,
    expectation: Any = None,
    operator: str = "be",
) -> FieldCheckReport:
    """Check that ``field_name`` satisfies the operator for every lead."""
    emails = list(emails)
    with log_phase(logger, "dispatch", operation="bulk_check_lead_field"):
        results = await client.bulk_find_leads_by_email(emails, fields=[field_name])

    lookup: LookupReport = reconcile_lookup(
        emails,
        results,
        batch_size=client.settings.lead_lookup_batch_size,
        key_field="email",
    )

    report = FieldCheckReport(total=len(emails), field=field_name)
    report.failed.extend(lookup.missing)
    for email in emails:
        record = lookup.found.get(email)
        if record is None:
            continue
        row = {"email": email, "id": record.get("id")}
        if field_name not in record:
            report.failed.append(
                {**row, "message": f"Found the lead, but there was no {field_name} field"}
            )
            continue
        actual = record[field_name]
        if check_field(operator, actual, expectation):
            report.passed.append(
                {**row, "message": f"{field_name} is expected to {operator} {expectation}"}
            )
        else:
            report.failed.append(
                {
                    **row,
                    "message": (
                        f"Expected {field_name} to {operator} {expectation}, "
                        f"but it was {actual}"
                    ),
                }
            )

    logger.info(
        "Lead field check complete",
        extra={
            "records_total": report.total,
            "records_failed": len(report.failed),
            "reconciliation_status": report.status.value,
        },
    )
    return report


__all__ = [
    "FieldCheckReport",
    "NOT_IN_PROGRAM",
    "UnknownOperatorError",
    "bulk_add_or_remove_program_members",
    "bulk_check_lead_field",
    "bulk_create_or_update_leads",
    "bulk_request_campaign",
    "check_field",
]
