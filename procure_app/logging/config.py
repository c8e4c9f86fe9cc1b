"""
Structured logging setup for the procurement engine.

Planning code logs through ``get_planning_logger`` and execution code through
``get_execution_logger`` so every event carries its subsystem. Vehicle worker
threads are tagged with a ``worker`` field, which keeps interleaved purchase
logs from concurrent vehicles attributable.
"""
import logging
import sys
import threading
from typing import Any, Optional

import structlog
from structlog.types import EventDict, FilteringBoundLogger, WrappedLogger

WORKER_THREAD_PREFIX = "vehicle"


def add_worker_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag events emitted from a vehicle worker thread."""
    name = threading.current_thread().name
    if name.startswith(WORKER_THREAD_PREFIX):
        event_dict.setdefault("worker", name)
    return event_dict


def build_processors(
    include_timestamp: bool = True,
    include_caller: bool = False,
    format_json: bool = False,
    extra_processors: Optional[list] = None
) -> list:
    """Processor chain shared by console and JSON output."""
    processors: list = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_worker_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.MODULE,
                        structlog.processors.CallsiteParameter.LINENO]
        ))
    processors.extend(extra_processors or [])
    processors.append(
        structlog.processors.JSONRenderer() if format_json
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    return processors


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog over the standard library for the whole engine.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: Emit one JSON object per event instead of console lines
        include_timestamp: Add an ISO-8601 UTC timestamp
        include_caller: Add module and line number
        extra_processors: Processors inserted before rendering
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=sys.stdout,
        format="%(message)s",
    )

    structlog.configure(
        processors=build_processors(include_timestamp, include_caller, format_json, extra_processors),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """Module logger; pass ``__name__``."""
    return structlog.get_logger(name)


def get_planning_logger(name: str) -> FilteringBoundLogger:
    """Logger for venue selection, batch planning and fleet allocation."""
    return get_logger(name).bind(subsystem="planning", audit_trail=True)


def get_execution_logger(name: str) -> FilteringBoundLogger:
    """Logger for purchases, plan bookkeeping and delivery."""
    return get_logger(name).bind(subsystem="execution", audit_trail=True)


def log_venue_decision(
    logger: FilteringBoundLogger,
    venue_id: str,
    accepted: bool,
    good: str,
    reason: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Record whether a venue is used to source ``good``.

    Rejections log at warning level so skipped venues stand out in the
    audit trail; ``context`` carries numbers such as the offending price.
    """
    fields: dict[str, Any] = {
        "venue_id": venue_id,
        "venue_result": "ACCEPT" if accepted else "REJECT",
        "good": good,
        "reason": reason,
    }
    if context:
        fields["context"] = context

    if accepted:
        logger.info("Venue accepted", **fields)
    else:
        logger.warning("Venue rejected", **fields)


def log_state_transition(
    logger: FilteringBoundLogger,
    entity_id: str,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """Record a plan or allocation moving from ``from_state`` to ``to_state``."""
    fields: dict[str, Any] = {
        "entity_id": entity_id,
        "from_state": from_state,
        "to_state": to_state,
        "trigger": trigger,
    }
    if context:
        fields["context"] = context
    logger.info("State transition", **fields)
