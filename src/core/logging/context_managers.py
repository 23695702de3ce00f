"""Context managers for structured logging."""

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

from core.logging.context import get_log_context, set_log_context
from core.logging.utilities import log_with_context


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(scenario_id=ids["scenarioId"], step="bulk-lead-create"):
            # All logs in this block carry scenario_id and step
            await run_step()
    """

    def __init__(
        self,
        scenario_id: Optional[str] = None,
        requestor_id: Optional[str] = None,
        request_id: Optional[str] = None,
        step: Optional[str] = None,
    ):
        self.new_context = {
            "scenario_id": scenario_id,
            "requestor_id": requestor_id,
            "request_id": request_id,
            "step": step,
        }
        self.old_context: Dict[str, str] = {}

    def __enter__(self) -> "LogContext":
        self.old_context = get_log_context()
        for key, value in self.new_context.items():
            if value is not None:
                set_log_context(**{key: value})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        set_log_context(
            scenario_id=self.old_context.get("scenario_id", ""),
            requestor_id=self.old_context.get("requestor_id", ""),
            request_id=self.old_context.get("request_id", ""),
            step=self.old_context.get("step", ""),
        )
        return False


@contextmanager
def log_phase(
    logger: logging.Logger,
    phase: str,
    level: int = logging.DEBUG,
    **context: Any,
):
    """
    Context manager for timing a phase within a bulk run.

    Args:
        logger: Logger instance
        phase: Phase name
        level: Log level for completion message
        **context: Additional context fields

    Example:
        with log_phase(logger, "dispatch", operation="bulk_create_or_update_leads"):
            results = await dispatcher.dispatch(batches, send)
    """
    # Convert string level names to integers
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        log_with_context(
            logger,
            level,
            f"Phase complete: {phase}",
            duration_ms=round(duration_ms, 2),
            **context,
        )

