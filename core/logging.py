# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Structured logging with build context
# PURPOSE: Consistent, queryable logging across worker, pipeline and adapters
# CREATED: 06 OCT 2026
# ============================================================================
"""
Structured Logging

JSON or human-readable logging for the function builder.

Features:
- Build-scoped contextual fields (function_id, event_id, message_id, step)
- JSON output for log aggregation
- Named checkpoints at pipeline step boundaries, with step durations

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger("builder.pipeline")

    with log_context(function_id="f1", step="build_image"):
        logger.info("Building image")
"""

import json
import logging
import os
import sys
import threading
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union

# SDK loggers that are chatty at INFO
NOISY_LOGGERS = ("azure", "httpx", "httpcore", "aiohttp.access")


class ComponentType(str, Enum):
    """Component types for logging categorization."""
    WORKER = "worker"
    PIPELINE = "pipeline"
    PROVIDER = "provider"
    REPOSITORY = "repository"
    MESSAGING = "messaging"
    INFRASTRUCTURE = "infrastructure"


# ============================================================================
# CONTEXT
# ============================================================================

@dataclass
class LogContext:
    """Contextual fields attached to every record emitted inside a log_context block."""
    function_id: Optional[str] = None
    event_id: Optional[str] = None
    message_id: Optional[str] = None
    step: Optional[str] = None
    worker_id: Optional[str] = None
    component: Optional[str] = None
    started_at: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Named fields that are set, then extra. started_at is internal."""
        result = {
            key: value
            for key, value in asdict(self).items()
            if value is not None and key not in ("extra", "started_at")
        }
        result.update(self.extra)
        return result


_NAMED_FIELDS = frozenset(f.name for f in fields(LogContext)) - {"extra", "started_at"}

# Thread-local context storage
_local = threading.local()


def _get_context_stack() -> list:
    if not hasattr(_local, "stack"):
        _local.stack = []
    return _local.stack


def get_current_context() -> LogContext:
    """Get current logging context."""
    stack = _get_context_stack()
    return stack[-1] if stack else LogContext()


@contextmanager
def log_context(**kwargs):
    """
    Push logging context for the duration of a with-block.

    Named LogContext fields override the enclosing context; any other
    keyword (and the contents of extra=) is merged into extra. Entering a
    block that sets step restarts the step clock used by log_checkpoint.

    Example:
        with log_context(function_id="f1"):
            with log_context(step="push_image", image="mds-sf-42/foo:3"):
                logger.info("Pushing")   # function_id, step and image
    """
    parent = get_current_context()

    named = {key: kwargs.pop(key) for key in list(kwargs) if key in _NAMED_FIELDS}
    extra = {**parent.extra, **kwargs.pop("extra", {}), **kwargs}
    if "step" in named:
        named["started_at"] = time.monotonic()

    stack = _get_context_stack()
    stack.append(replace(parent, extra=extra, **named))
    try:
        yield stack[-1]
    finally:
        stack.pop()


# ============================================================================
# FORMATTERS
# ============================================================================

class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def __init__(self, include_context: bool = True, include_source: bool = True):
        super().__init__()
        self.include_context = include_context
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            context_dict = get_current_context().to_dict()
            if context_dict:
                log_data["context"] = context_dict

        data = getattr(record, "extra", None)
        if data:
            log_data["data"] = data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_source:
            log_data["source"] = f"{record.filename}:{record.lineno} {record.funcName}"

        return json.dumps(log_data, default=str)


class HumanFormatter(logging.Formatter):
    """Single-line format for terminals; context is shown as [fn=.., step=..]."""

    # (LogContext field, label) in display order
    CONTEXT_LABELS = (
        ("function_id", "fn"),
        ("event_id", "event"),
        ("message_id", "msg"),
        ("step", "step"),
    )

    def format(self, record: logging.LogRecord) -> str:
        context = get_current_context()
        parts = [
            f"{label}={getattr(context, name)}"
            for name, label in self.CONTEXT_LABELS
            if getattr(context, name)
        ]

        line = "{time} {level:<8} {name}{context}: {message}".format(
            time=datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S"),
            level=record.levelname,
            name=record.name,
            context=f" [{', '.join(parts)}]" if parts else "",
            message=record.getMessage(),
        )

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextLogger(logging.LoggerAdapter):
    """Adapter that attaches component and current context as record.extra."""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra", {}))
        if self.extra.get("component"):
            extra["component"] = self.extra["component"].value
        extra.update(get_current_context().to_dict())
        kwargs["extra"] = {"extra": extra}
        return msg, kwargs


def get_logger(
    name: str,
    component: Optional[ComponentType] = None,
) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name (e.g., "worker.main")
        component: Optional component type for categorization
    """
    return ContextLogger(logging.getLogger(name), {"component": component})


# ============================================================================
# SETUP
# ============================================================================

def configure_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = False,
    include_source: bool = True,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Use JSON format (also enabled by BUILDER_LOG_FORMAT=json)
        include_source: Include source file/line info in JSON output
        quiet_loggers: Loggers held at WARNING or above
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_output or os.getenv("BUILDER_LOG_FORMAT", "").lower() == "json":
        formatter = StructuredFormatter(include_context=True, include_source=include_source)
    else:
        formatter = HumanFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers[:] = [handler]

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


# ============================================================================
# CHECKPOINTS
# ============================================================================

def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Log a named checkpoint (e.g. "push_image") with the current build context.

    Inside a log_context(step=...) block the elapsed time of that step is
    included as duration_ms.
    """
    if logger is None:
        logger = logging.getLogger("checkpoint")

    context = get_current_context()
    checkpoint_data: Dict[str, Any] = {"checkpoint": name, **context.to_dict()}
    if context.started_at is not None:
        checkpoint_data["duration_ms"] = int((time.monotonic() - context.started_at) * 1000)
    if data:
        checkpoint_data["data"] = data

    logger.info(f"CHECKPOINT: {name}", extra={"extra": checkpoint_data})


__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
    "NOISY_LOGGERS",
]
