"""
FHEVM SDK logging.

SDK modules log under the `fhevm_sdk` namespace. Nothing is printed unless
the host application configures logging: records propagate to the root
logger as usual, and a NullHandler keeps Python's last-resort handler quiet.

configure_logging() is an opt-in helper for scripts that want SDK output
without setting up logging themselves.

Usage:
    from fhevm_sdk.logging import get_logger, configure_logging

    # Optional, for scripts
    configure_logging(level="DEBUG", json_format=True)

    # In modules
    logger = get_logger(__name__)
    logger.info("Instance ready", extra={"chain_id": 11155111})
"""

import json
import logging
import os
import sys
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "fhevm_sdk"

# Keys whose values never reach log output
REDACTED_KEYS = ("signature", "private_key", "privatekey", "mnemonic", "secret", "token", "password")

# Context fields rendered by the console formatter, in order
CONTEXT_FIELDS = ("chain_id", "contract", "path", "status_code")

_STANDARD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def redact(data: Any) -> Any:
    """Replace values of signature/key-like fields, recursing into dicts and lists."""
    if isinstance(data, dict):
        return {
            key: "[REDACTED]" if any(part in str(key).lower() for part in REDACTED_KEYS) else redact(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact(item) for item in data]
    return data


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields passed through `extra=`, redacted."""
    return redact({k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS})


class JsonFormatter(logging.Formatter):
    """One JSON object per record: time, level, logger, message and context."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = record_context(record)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """`LEVEL logger [chain 1 contract 0x..] message` lines for terminals."""

    def format(self, record: logging.LogRecord) -> str:
        context = record_context(record)
        tags = " ".join(
            f"{field.replace('_id', '')} {context[field]}" for field in CONTEXT_FIELDS if field in context
        )
        prefix = f"[{tags}] " if tags else ""
        line = f"{record.levelname:<7} {record.name} {prefix}{record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


_configured_handler: Optional[logging.Handler] = None


def configure_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
    stream: Any = None,
) -> logging.Handler:
    """
    Attach an output handler to the SDK logger.

    Calling it again replaces the handler it installed before; handlers added
    by the application are left alone and records still propagate.

    Args:
        level: Log level name. Default: FHEVM_LOG_LEVEL or INFO
        json_format: JSON lines instead of console lines. Default: FHEVM_LOG_JSON
        stream: Output stream. Default: sys.stderr

    Returns:
        The installed handler
    """
    global _configured_handler

    if level is None:
        level = os.environ.get("FHEVM_LOG_LEVEL", "INFO")
    if json_format is None:
        json_format = os.environ.get("FHEVM_LOG_JSON", "").lower() in ("1", "true", "yes")

    sdk_logger = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured_handler is not None:
        sdk_logger.removeHandler(_configured_handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter())
    sdk_logger.addHandler(handler)
    sdk_logger.setLevel(level.upper())

    _configured_handler = handler
    return handler


def get_logger(name: str) -> logging.Logger:
    """Logger for an SDK module, always under the `fhevm_sdk` namespace."""
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "configure_logging",
    "get_logger",
    "redact",
]
