"""
Centralized logging configuration for the settlement client.

This module provides standardized logging configuration using structlog
for all components. Protocol phases and admission decisions are logged
through the helpers below so every intent leaves a consistent audit trail.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger

from ..config.defaults import LoggingParams


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
) -> None:
    """
    Configure structlog for the settlement client.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, emit one JSON object per line; otherwise
            render for a terminal
        include_timestamp: Include an ISO timestamp in log output
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=sys.stdout,
        format="%(message)s",
    )

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if format_json:
        # Amounts are Decimals; render them as exact strings.
        processors.append(structlog.processors.JSONRenderer(default=str))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_params(params: LoggingParams) -> None:
    """Configure logging from the ``logging`` section of a SettleConfig."""
    configure_logging(level=params.level, format_json=params.format_json)


def get_logger(name: str) -> FilteringBoundLogger:
    """Get a structlog logger named ``name`` (typically __name__)."""
    return structlog.get_logger(name)


def get_admission_logger(name: str) -> FilteringBoundLogger:
    """Get a logger bound for gas admission decisions."""
    return get_logger(name).bind(
        subsystem="admission",
        audit_trail=True
    )


def get_protocol_logger(name: str) -> FilteringBoundLogger:
    """Get a logger bound for commit-reveal protocol phases."""
    return get_logger(name).bind(
        subsystem="protocol",
        audit_trail=True
    )


def log_admission_decision(
    logger: FilteringBoundLogger,
    admitted: bool,
    cost: int,
    ceiling: int,
    source: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a gas admission decision with standardized format.

    Args:
        logger: Structlog logger instance
        admitted: Whether the cost fits under the ceiling
        cost: Summed gas cost of the candidate trades
        ceiling: Gas ceiling compared against
        source: Where the ceiling came from ("supplied" or "block")
        context: Additional context data
    """
    bound_logger = logger.bind(
        admission_result="ADMIT" if admitted else "REJECT",
        gas_cost=cost,
        gas_ceiling=ceiling,
        ceiling_source=source,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if admitted:
        bound_logger.info("Gas admission passed")
    else:
        bound_logger.warning("Gas admission rejected")


def log_phase_transition(
    logger: FilteringBoundLogger,
    intent_id: str,
    from_phase: str,
    to_phase: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a protocol phase transition with standardized format.

    Args:
        logger: Structlog logger instance
        intent_id: Short identifier of the intent (trade hash prefix or ids)
        from_phase: Current phase
        to_phase: Target phase
        trigger: What triggered the transition
        context: Additional context data
    """
    bound_logger = logger.bind(
        intent_id=intent_id,
        from_phase=from_phase,
        to_phase=to_phase,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("Phase transition")
