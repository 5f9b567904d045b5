"""
Application Logging

Structured logs for every significant action: record writes,
report builds, subscription lifecycle, exports and shares.

The logger:
- Renders JSON lines with ISO timestamps
- Binds context as keyword arguments (never formatted into the message)
- Never raises into the caller
"""

import logging
from typing import Optional

import structlog


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route structlog output through the stdlib root handler.

    Call once at process start (the Streamlit app and the factory do).
    """
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )
    logging.getLogger("expense_tracker").setLevel(level.upper())


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, namespaced under expense_tracker."""
    if name and not name.startswith("expense_tracker"):
        name = f"expense_tracker.{name}"
    return structlog.get_logger(name or "expense_tracker")
