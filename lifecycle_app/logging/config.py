"""
Centralized logging configuration for the account lifecycle gate.

This module provides standardized logging configuration using structlog
for all components. Reconciliation decisions and hold timer events are
logged through the helpers below so every entry carries the account id
and the subsystem that produced it.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"  # structlog will handle formatting
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_state_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger bound for reconciliation decisions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structlog logger carrying the reconciliation subsystem binding
    """
    return get_logger(name).bind(
        subsystem="reconciliation",
        audit_trail=True
    )


def get_timer_logger(name: str) -> FilteringBoundLogger:
    """Get a logger bound for hold countdown events."""
    return get_logger(name).bind(subsystem="hold_timer")


def log_state_transition(
    logger: FilteringBoundLogger,
    account_id: Optional[str],
    from_state: Optional[str],
    to_state: Optional[str],
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a display-state transition with standardized format.

    Args:
        logger: Structlog logger instance
        account_id: Account whose profile changed
        from_state: Display state before the event ("none" if unknown)
        to_state: Display state after the event
        trigger: Event that caused the transition
        context: Additional context data
    """
    bound_logger = logger.bind(
        account_id=account_id,
        from_state=from_state or "none",
        to_state=to_state or "none",
        trigger=trigger,
        event="state_transition"
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("State transition")


def log_redirect_decision(
    logger: FilteringBoundLogger,
    account_id: Optional[str],
    action: str,
    destination: Optional[str],
    reason: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log the navigation outcome of a reconciliation step.

    Ignored and rejected events are logged at warning level so stale or
    refused input stands out in the audit trail.
    """
    bound_logger = logger.bind(
        account_id=account_id,
        decision=action,
        destination=destination,
        reason=reason,
        event="redirect_decision"
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if action in ("ignore", "reject"):
        bound_logger.warning("Reconciliation decision")
    else:
        bound_logger.info("Reconciliation decision")
