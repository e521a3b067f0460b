"""Optional Logfire tracing for analysis runs.

When enabled, Logfire is configured once and PydanticAI agent calls are
instrumented automatically; pipeline stages add their own spans through
trace_operation. When disabled (the default) trace_operation is a
no-op that still logs stage durations at DEBUG.

Requirements:
    pip install logfire

Enable via configuration:
    ENABLE_LOGFIRE=true
    LOGFIRE_TOKEN=your-token  # Optional for cloud dashboard
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator

logger = logging.getLogger(__name__)


@dataclass
class TracingContext:
    """Process-wide tracing state."""
    enabled: bool = False
    service_name: str = "stancecheck"
    token: str = ""
    _logfire_configured: bool = field(default=False, init=False)


_context = TracingContext()


def setup_tracing(
    enabled: bool = False,
    service_name: str = "stancecheck",
    token: str = "",
) -> TracingContext:
    """Set up tracing with Logfire.

    Safe to call more than once; Logfire is configured only the first time.

    Args:
        enabled: Whether to enable tracing
        service_name: Name of the service for tracing
        token: Logfire authentication token

    Returns:
        TracingContext for the session
    """
    _context.enabled = enabled
    _context.service_name = service_name
    _context.token = token

    if not enabled:
        logger.debug("Tracing disabled")
        return _context
    if _context._logfire_configured:
        return _context

    try:
        import logfire

        logfire.configure(
            service_name=service_name,
            token=token if token else None,
        )
        logfire.instrument_pydantic_ai()

        _context._logfire_configured = True
        logger.info("Logfire tracing enabled | service=%s", service_name)

    except ImportError:
        logger.warning("Logfire not installed. Tracing disabled.")
        _context.enabled = False
    except Exception as e:
        logger.error("Failed to configure Logfire | error=%s", e)
        _context.enabled = False

    return _context


@contextmanager
def trace_operation(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[dict[str, Any], None, None]:
    """Trace a pipeline stage.

    Args:
        name: Name of the operation
        attributes: Optional attributes to attach to the span

    Yields:
        Dictionary for adding result attributes during the operation
    """
    span_attrs = attributes or {}
    start = time.perf_counter()

    try:
        if _context.enabled and _context._logfire_configured:
            import logfire

            with logfire.span(name, **span_attrs) as span:
                result_attrs: dict[str, Any] = {}
                yield result_attrs
                for key, value in result_attrs.items():
                    span.set_attribute(key, value)
        else:
            yield {}
    finally:
        logger.debug("Operation '%s' completed in %.2fs", name, time.perf_counter() - start)
