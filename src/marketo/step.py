"""
Bootstrap for step handlers.

A step process calls ``configure_logging`` once at start-up and opens a
``step_session`` per step invocation::

    configure_logging(config)

    async with step_session(id_map, "bulk-lead-create-or-update", config) as client:
        report = await bulk_create_or_update_leads(client, leads)

Every log line written inside the session carries the scenario, requestor,
request and step of the invocation, and the client it yields reads through
a cache scoped to that scenario run.
"""

import logging
import time
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

from config.config import MarketoConfig, get_config
from core.logging.context_managers import LogContext
from core.logging.setup import setup_logging
from core.logging.utilities import log_with_context
from marketo.cache.backends import CacheBackend, build_backend
from marketo.cache.caching_client import CachingMarketoClient
from marketo.cache.scope import CacheScope
from marketo.cache.scoped_cache import ScopedCache
from marketo.client import MarketoClient

logger = logging.getLogger(__name__)


def configure_logging(
    config: Optional[MarketoConfig] = None, step: Optional[str] = None
) -> logging.Logger:
    """Set up process logging from the ``logging`` config section."""
    config = config or get_config()
    settings = config.logging_settings
    return setup_logging(
        name="marketo",
        step=step,
        level=settings.level,
        log_dir=Path(settings.log_dir),
        json_format=settings.json_format,
        log_to_stdout=settings.log_to_stdout,
    )


@asynccontextmanager
async def step_session(
    id_map: Mapping[str, Any],
    step: str,
    config: Optional[MarketoConfig] = None,
    backend: Optional[CacheBackend] = None,
    client: Optional[MarketoClient] = None,
) -> AsyncIterator[CachingMarketoClient]:
    """
    Open a scoped caching client for one step invocation.

    Args:
        id_map: Orchestration ids; ``scenarioId`` and ``requestorId`` are required
        step: Step name for the log context
        config: Loaded config (default: the process singleton)
        backend: Cache backend (default: redis when configured, else in-memory)
        client: Underlying client (default: built from config)

    The backend and client are closed on exit, including the ones passed in.
    An id map without a scenario or requestor raises ValueError before
    anything is opened.
    """
    config = config or get_config()
    scope = CacheScope.from_id_map(id_map)
    backend = backend or build_backend(config.redis_url)
    client = client or MarketoClient.from_config(config)
    caching_client = CachingMarketoClient(
        client, ScopedCache(backend, scope, ttl_seconds=config.cache_ttl_seconds)
    )

    with LogContext(
        scenario_id=_optional_str(id_map.get("scenarioId")),
        requestor_id=_optional_str(id_map.get("requestorId")),
        request_id=_optional_str(id_map.get("requestId")),
        step=step,
    ):
        start = time.perf_counter()
        try:
            async with client:
                log_with_context(logger, logging.INFO, "Step started")
                yield caching_client
        finally:
            await backend.close()
            log_with_context(
                logger,
                logging.INFO,
                "Step finished",
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


__all__ = ["configure_logging", "step_session"]
