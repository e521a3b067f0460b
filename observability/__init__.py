"""Observability infrastructure: logging context and optional tracing.

setup_logging / set_run_context:
    Console + rotating file logging with run id and subject on every record.

setup_tracing / trace_operation:
    Optional Logfire spans around pipeline stages (pip install logfire).

Example:
    >>> from observability import setup_tracing, trace_operation
    >>> setup_tracing(enabled=True, service_name="stancecheck")
    >>> with trace_operation("summarize", {"statements": 42}):
    ...     pass
"""

from observability.logging import setup_logging, set_run_context, clear_context
from observability.tracing import setup_tracing, trace_operation, TracingContext

__all__ = [
    "setup_logging",
    "set_run_context",
    "clear_context",
    "setup_tracing",
    "trace_operation",
    "TracingContext",
]
