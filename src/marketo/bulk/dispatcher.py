"""Send batches upstream sequentially or with bounded parallelism."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime
from typing import Any

from core.errors.exceptions import is_retryable_error
from marketo.bulk.models import Batch, BatchResult, DispatchMode

logger = logging.getLogger(__name__)

BatchOperation = Callable[[Batch], Awaitable[dict[str, Any]]]


class BatchDispatcher:
    """
    Run one upstream call per batch and collect aligned BatchResults.

    A batch whose call raises becomes a failed BatchResult carrying the
    exception; sibling batches are never cancelled and nothing is retried.
    The returned list is always aligned with the input batches, whatever
    order the calls complete in.
    """

    def __init__(
        self,
        mode: DispatchMode = DispatchMode.SEQUENTIAL,
        max_concurrency: int = 5,
        operation_name: str = "bulk",
    ):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.mode = mode
        self.max_concurrency = max_concurrency
        self.operation_name = operation_name

    async def dispatch(
        self, batches: Sequence[Batch], operation: BatchOperation
    ) -> list[BatchResult]:
        if not batches:
            return []

        logger.debug(
            "Dispatching batches",
            extra={
                "operation": self.operation_name,
                "batch_count": len(batches),
                "dispatch_mode": self.mode.value,
            },
        )

        start_time = datetime.now(UTC)
        if self.mode is DispatchMode.PARALLEL:
            results = await self._dispatch_parallel(batches, operation)
        else:
            results = [await self._run_one(batch, operation) for batch in batches]

        failed = sum(1 for result in results if result.error is not None)
        elapsed_ms = (datetime.now(UTC) - start_time).total_seconds() * 1000
        logger.debug(
            "Dispatch complete",
            extra={
                "operation": self.operation_name,
                "batch_count": len(batches),
                "records_failed": failed,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        return results

    async def _dispatch_parallel(
        self, batches: Sequence[Batch], operation: BatchOperation
    ) -> list[BatchResult]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(batch: Batch) -> dict[str, Any]:
            async with semaphore:
                logger.debug(
                    "Sending batch",
                    extra={
                        "operation": self.operation_name,
                        "batch_index": batch.index,
                        "batch_size": len(batch),
                    },
                )
                return await operation(batch)

        tasks = [bounded(batch) for batch in batches]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results = []
        for batch, outcome in zip(batches, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                self._log_failure(batch, outcome)
                results.append(BatchResult(batch=batch, error=outcome))
            else:
                results.append(BatchResult(batch=batch, response=outcome))
        return results

    async def _run_one(self, batch: Batch, operation: BatchOperation) -> BatchResult:
        logger.debug(
            "Sending batch",
            extra={
                "operation": self.operation_name,
                "batch_index": batch.index,
                "batch_size": len(batch),
            },
        )
        try:
            response = await operation(batch)
        except Exception as e:
            self._log_failure(batch, e)
            return BatchResult(batch=batch, error=e)
        return BatchResult(batch=batch, response=response)

    def _log_failure(self, batch: Batch, error: Exception) -> None:
        logger.warning(
            "Batch request failed",
            extra={
                "operation": self.operation_name,
                "batch_index": batch.index,
                "batch_size": len(batch),
                "error_type": type(error).__name__,
                "error_message": str(error)[:500],
                "is_retryable": is_retryable_error(error),
            },
        )


__all__ = ["BatchDispatcher", "BatchOperation"]
