"""Logging and observability utilities for Issue Cards.

Structured logging under the `issuecards` logger hierarchy, operation
timing, and event hooks that let integrations react to issue changes.
"""

from __future__ import annotations

import json
import logging as std_logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

ROOT_LOGGER = "issuecards"


def setup_logging(log_level: Union[str, int] = std_logging.INFO, log_file: Optional[Path] = None) -> None:
    """Configure console logging and, optionally, JSON logging to a file."""
    if isinstance(log_level, str):
        log_level = log_level.upper()
    logger = std_logging.getLogger(ROOT_LOGGER)
    logger.setLevel(log_level)
    logger.handlers.clear()

    console_handler = std_logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        std_logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(console_handler)

    if log_file:
        file_handler = std_logging.FileHandler(log_file)
        file_handler.setLevel(std_logging.DEBUG)
        file_handler.setFormatter(JsonFormatter())
        logger.addHandler(file_handler)

    logger.debug("Issue Cards logging initialized")


class JsonFormatter(std_logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: std_logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            entry.update(extra_fields)
        return json.dumps(entry, default=str)


class PerformanceMonitor:
    """Keep operation timings in memory."""

    def __init__(self):
        self.metrics: Dict[str, List[Dict[str, Any]]] = {}

    def record_metric(self, name: str, value: Any, tags: Optional[Dict[str, str]] = None) -> None:
        metric = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "name": name,
            "value": value,
            "tags": tags or {},
        }
        self.metrics.setdefault(name, []).append(metric)
        std_logging.getLogger(f"{ROOT_LOGGER}.performance").debug(
            f"Metric recorded: {name}={value}", extra={"extra_fields": metric}
        )

    def get_metrics(self, name: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        if name:
            return {name: self.metrics.get(name, [])}
        return dict(self.metrics)

    def clear(self) -> None:
        self.metrics.clear()


performance_monitor = PerformanceMonitor()


def log_performance(operation_name: str):
    """Decorator recording the duration and outcome of an operation."""

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                performance_monitor.record_metric(
                    f"{operation_name}_duration",
                    time.perf_counter() - start,
                    {"status": "error", "error_type": type(e).__name__},
                )
                raise
            performance_monitor.record_metric(
                f"{operation_name}_duration",
                time.perf_counter() - start,
                {"status": "success"},
            )
            return result

        return wrapper

    return decorator


@contextmanager
def log_operation(operation_name: str, **extra_fields):
    """Log the start and the outcome of an operation with custom fields."""
    logger = std_logging.getLogger(f"{ROOT_LOGGER}.operations")
    start = time.perf_counter()
    logger.debug(
        f"Starting operation: {operation_name}",
        extra={"extra_fields": {"operation": operation_name, "status": "started", **extra_fields}},
    )
    try:
        yield
    except Exception as e:
        duration = time.perf_counter() - start
        logger.warning(
            f"Failed operation: {operation_name} after {duration:.3f}s - {e}",
            extra={"extra_fields": {
                "operation": operation_name,
                "status": "failed",
                "duration": duration,
                "error_type": type(e).__name__,
                "error_message": str(e),
                **extra_fields,
            }},
        )
        raise
    duration = time.perf_counter() - start
    logger.info(
        f"Completed operation: {operation_name} in {duration:.3f}s",
        extra={"extra_fields": {
            "operation": operation_name,
            "status": "completed",
            "duration": duration,
            **extra_fields,
        }},
    )


class IssueEvents:
    """Callbacks fired when issues change."""

    def __init__(self):
        self.hooks: Dict[str, List[Callable[..., None]]] = {}
        self.logger = std_logging.getLogger(f"{ROOT_LOGGER}.events")

    def register_hook(self, event_type: str, callback: Callable[..., None]) -> None:
        self.hooks.setdefault(event_type, []).append(callback)
        self.logger.debug(f"Registered hook for event: {event_type}")

    def clear(self) -> None:
        self.hooks.clear()

    def trigger_hooks(self, event_type: str, **data) -> None:
        for hook in self.hooks.get(event_type, []):
            try:
                hook(**data)
            except Exception as e:
                # A broken integration must not fail the issue operation.
                self.logger.error(f"Hook failed for event {event_type}: {e}", exc_info=True)

    def log_issue_event(self, event_type: str, issue_number: Optional[str] = None, **data) -> None:
        event_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            "issue_number": issue_number,
            **data,
        }
        self.logger.info(f"Issue event: {event_type}", extra={"extra_fields": event_data})
        self.trigger_hooks(event_type, **{k: v for k, v in event_data.items() if k != "event_type"})


issue_events = IssueEvents()


def log_issue_event(event_type: str, issue_number: Optional[str] = None, **data) -> None:
    issue_events.log_issue_event(event_type, issue_number=issue_number, **data)


def log_error_with_context(error: Exception, context: Dict[str, Any], **extra_fields) -> None:
    """Log an error together with the operation context it happened in."""
    logger = std_logging.getLogger(f"{ROOT_LOGGER}.errors")
    error_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context,
        **extra_fields,
    }
    logger.error(
        f"Error in {context.get('operation', 'unknown operation')}: {error}",
        extra={"extra_fields": error_data},
        exc_info=error,
    )
