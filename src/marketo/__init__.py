"""
Marketo step core.

API client and capability groups, a scoped read-through cache in front of
them, and the bulk engine that reconciles batched upstream results back
onto the original inputs.
"""

from marketo.api_client import MarketoApiClient, MarketoApiError
from marketo.cache.caching_client import CachingMarketoClient
from marketo.capabilities.leads import PartitionNotFoundError
from marketo.client import MarketoClient
from marketo.step import configure_logging, step_session

__all__ = [
    "CachingMarketoClient",
    "MarketoApiClient",
    "MarketoApiError",
    "MarketoClient",
    "PartitionNotFoundError",
    "configure_logging",
    "step_session",
]
