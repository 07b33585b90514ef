"""
Gateway Logging Infrastructure.

Provides unified logging for the gateway, with:
- Structured, contextual log records (LLM-friendly JSONL on disk)
- Console output for human monitoring
- Redaction of secret values before any record is emitted

Log Format Design:
- Optional file: <log_dir>/gqlproxy.log (JSONL, one JSON object per line)
- Each line includes timestamp, component, level, message and context
- Secrets registered at setup are masked in messages and context values
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

REDACTED = "***"

_SENSITIVE_HEADERS = frozenset({"authorization", "proxy-authorization", "x-api-key", "cookie"})

# =============================================================================
# Terminal Colors (respects NO_COLOR)
# =============================================================================

_NO_COLOR = bool(os.environ.get("NO_COLOR")) or not sys.stdout.isatty()


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "" if _NO_COLOR else "\033[0m"
    DIM = "" if _NO_COLOR else "\033[2m"

    DEBUG = "" if _NO_COLOR else "\033[36m"
    INFO = "" if _NO_COLOR else "\033[32m"
    WARNING = "" if _NO_COLOR else "\033[33m"
    ERROR = "" if _NO_COLOR else "\033[31m"
    CRITICAL = "" if _NO_COLOR else "\033[35m"

    # Components
    GATEWAY = "" if _NO_COLOR else "\033[35m"
    UPSTREAM = "" if _NO_COLOR else "\033[34m"
    RESOLVER = "" if _NO_COLOR else "\033[36m"


# =============================================================================
# Redaction
# =============================================================================


def redact(text: str, secrets: Iterable[str]) -> str:
    """Replace every occurrence of each secret in text with a mask."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy a header map with credential-bearing values masked."""
    return {
        name: (REDACTED if name.lower() in _SENSITIVE_HEADERS else value)
        for name, value in headers.items()
    }


def _redact_value(value: Any, secrets: tuple[str, ...]) -> Any:
    if isinstance(value, str):
        return redact(value, secrets)
    if isinstance(value, Mapping):
        return {k: _redact_value(v, secrets) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_redact_value(v, secrets) for v in value]
    return value


class RedactingFilter(logging.Filter):
    """Masks known secret values in the message and structured context.

    Attach to handlers so that records from every ``gqlproxy`` logger pass
    through it before formatting.
    """

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        self.secrets = tuple(s for s in secrets if s)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        record.msg = redact(record.getMessage(), self.secrets)
        record.args = None
        context = getattr(record, "context", None)
        if context:
            record.context = _redact_value(context, self.secrets)
        return True


# =============================================================================
# Formatters
# =============================================================================


class JSONLFormatter(logging.Formatter):
    """
    Formats log records as JSON Lines.

    Example output:
    {"timestamp":"2025-01-15T10:30:45.123+00:00","level":"ERROR","component":"UPSTREAM","message":"POST /v1/chat/completions -> 401","context":{"status_code":401}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", "GATEWAY"),
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.levelno >= logging.WARNING:
            entry["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        # Exception type and message only; no traceback in the structured log
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DEBUG,
        logging.INFO: Colors.INFO,
        logging.WARNING: Colors.WARNING,
        logging.ERROR: Colors.ERROR,
        logging.CRITICAL: Colors.CRITICAL,
    }

    def format(self, record: logging.LogRecord) -> str:
        component = getattr(record, "component", "GATEWAY")
        component_color = getattr(record, "component_color", Colors.GATEWAY)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        if _NO_COLOR:
            prefix = f"[{timestamp}] [{component}]"
        else:
            prefix = (
                f"{Colors.DIM}{timestamp}{Colors.RESET} "
                f"{component_color}[{component}]{Colors.RESET}"
            )

        if record.levelno != logging.INFO:
            level_name = record.levelname
            if not _NO_COLOR:
                level_name = f"{self.LEVEL_COLORS.get(record.levelno, '')}{level_name}{Colors.RESET}"
            prefix = f"{prefix} {level_name}:"

        message = f"{prefix} {record.getMessage()}"
        context = getattr(record, "context", None)
        if context:
            message = f"{message} {json.dumps(context, default=str, ensure_ascii=False)}"
        return message


# =============================================================================
# Logger Setup
# =============================================================================

ROOT_LOGGER_NAME = "gqlproxy"

_loggers: dict[str, logging.Logger] = {}


def setup_logging(
    level: int | str = logging.INFO,
    log_dir: Path | str | None = None,
    secrets: Iterable[str] = (),
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Initialize the logging infrastructure.

    Args:
        level: Minimum log level (int or level name)
        log_dir: Directory for the JSONL log file; console only when None
        secrets: Secret values to mask in every emitted record
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        The configured root gateway logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    redacting = RedactingFilter(secrets)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ConsoleFormatter())
    console_handler.setLevel(level)
    console_handler.addFilter(redacting)
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / "gqlproxy.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONLFormatter())
        file_handler.setLevel(level)
        file_handler.addFilter(redacting)
        root_logger.addHandler(file_handler)

    return root_logger


def get_logger(component: str, color: str = Colors.GATEWAY) -> logging.Logger:
    """
    Get a logger for a specific component.

    Args:
        component: Component name (e.g., "GATEWAY", "UPSTREAM")
        color: ANSI color code for the component tag

    Returns:
        Logger instance tagging its records with the component
    """
    if component in _loggers:
        return _loggers[component]

    logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component.lower()}")

    class ComponentFilter(logging.Filter):
        def filter(self, record: logging.LogRecord) -> bool:
            if not hasattr(record, "component"):
                record.component = component
            if not hasattr(record, "component_color"):
                record.component_color = color
            return True

    logger.addFilter(ComponentFilter())
    _loggers[component] = logger
    return logger


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    **kwargs: Any,
) -> None:
    """
    Log a message with structured context data.

    Args:
        logger: Logger instance
        level: Logging level (logging.INFO, logging.ERROR, etc.)
        message: Human-readable message
        context: Structured context data (included in JSONL output)
        **kwargs: Additional context items
    """
    extra = {"context": {**(context or {}), **kwargs}} if (context or kwargs) else {}
    logger.log(level, message, extra=extra)


# =============================================================================
# Component Loggers
# =============================================================================


def get_gateway_logger() -> logging.Logger:
    """Get logger for inbound request handling."""
    return get_logger("GATEWAY", Colors.GATEWAY)


def get_upstream_logger() -> logging.Logger:
    """Get logger for outbound upstream calls."""
    return get_logger("UPSTREAM", Colors.UPSTREAM)


def get_resolver_logger() -> logging.Logger:
    """Get logger for field resolution."""
    return get_logger("RESOLVER", Colors.RESOLVER)
