"""
Core library: reusable, domain-agnostic components.

Modules:
    auth        - Access token caching
    logging     - Structured logging with scenario/request correlation
    errors      - Error classification and exception hierarchy
    utils       - JSON serialization helpers

Design Principles:
    - No dependencies on the Marketo client or cache backends
    - All modules are independently testable
    - Async-first where applicable
"""

from .types import ErrorCategory

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
]
