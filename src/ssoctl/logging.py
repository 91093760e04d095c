"""Structured logging with audit trail support."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from ssoctl.config import get_settings


class AuditAction(str, Enum):
    """Audit log action types."""

    # Sessions and login
    SESSION_REGISTER = "sso.session_register"
    LOGIN = "sso.login"

    # Profiles
    PROFILE_WRITE = "sso.profile_write"

    # Credentials
    CREDENTIALS_EXCHANGE = "sso.credentials_exchange"
    CREDENTIALS_WRITE = "sso.credentials_write"


class JSONFormatter(logging.Formatter):
    """Format log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra"):
            log_data.update(record.extra)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno <= logging.DEBUG:
            log_data["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Format log records as human-readable text."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as text."""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname.ljust(8)
        message = record.getMessage()

        base = f"{timestamp} {level} [{record.name}] {message}"

        if hasattr(record, "extra") and record.extra:
            extras = " ".join(f"{k}={v}" for k, v in record.extra.items())
            base = f"{base} | {extras}"

        if record.exc_info:
            base = f"{base}\n{self.formatException(record.exc_info)}"

        return base


class StructuredLogger(logging.LoggerAdapter):
    """Logger adapter that adds structured context.

    Fields passed as ``extra={...}`` are merged with the adapter's context and
    stored on the record as ``record.extra`` for the formatters.
    """

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        """Add extra context to log records."""
        fields = {**self.extra, **kwargs.get("extra", {})}
        kwargs["extra"] = {"extra": fields}
        return msg, kwargs


class AuditLogger:
    """
    Audit logger for credential-relevant operations.

    Secrets (tokens, keys) are never passed in; only names and identifiers.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("ssoctl.audit")

    def log(
        self,
        action: AuditAction,
        target: str,
        details: dict[str, Any] | None = None,
        success: bool = True,
        error: str | None = None,
    ) -> None:
        """
        Log an audit event.

        Args:
            action: The action being performed
            target: Session or profile name the action applies to
            details: Additional details about the action
            success: Whether the action succeeded
            error: Error message if action failed
        """
        audit_data: dict[str, Any] = {
            "audit": True,
            "action": action.value,
            "target": target,
            "success": success,
        }
        if details:
            audit_data["details"] = details
        if error:
            audit_data["error"] = error

        level = logging.INFO if success else logging.WARNING
        self.logger.log(
            level,
            f"{action.value}: {target} {'succeeded' if success else 'failed'}",
            extra={"extra": audit_data},
        )

    def session_registered(self, session_name: str, start_url: str, region: str) -> None:
        """Log an sso-session written to the AWS config."""
        self.log(
            action=AuditAction.SESSION_REGISTER,
            target=session_name,
            details={"start_url": start_url, "region": region},
        )

    def login(self, target: str, success: bool = True, error: str | None = None) -> None:
        """Log an 'aws sso login' run."""
        self.log(action=AuditAction.LOGIN, target=target, success=success, error=error)

    def profile_written(self, profile_name: str, account_id: str, role: str) -> None:
        """Log a profile written to the AWS config."""
        self.log(
            action=AuditAction.PROFILE_WRITE,
            target=profile_name,
            details={"account_id": account_id, "role": role},
        )

    def credentials_exchanged(self, account_id: str, role: str) -> None:
        """Log a token exchanged for temporary role credentials."""
        self.log(
            action=AuditAction.CREDENTIALS_EXCHANGE,
            target=account_id,
            details={"role": role},
        )

    def credentials_written(self, profile_name: str) -> None:
        """Log temporary credentials stored into a profile."""
        self.log(action=AuditAction.CREDENTIALS_WRITE, target=profile_name)


def setup_logging(
    level: str = "WARNING",
    format: str = "text",
    logger_name: str = "ssoctl",
) -> logging.Logger:
    """
    Set up logging configuration.

    Logs go to stderr so that command output on stdout stays machine-readable.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format ("text" or "json")
        logger_name: Name of the root logger

    Returns:
        Configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper()))

    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(getattr(logging, level.upper()))

    if format.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str = "ssoctl") -> StructuredLogger:
    """
    Get a structured logger.

    Args:
        name: Logger name (will be prefixed with "ssoctl.")

    Returns:
        StructuredLogger instance
    """
    if not name.startswith("ssoctl"):
        name = f"ssoctl.{name}"

    logger = logging.getLogger(name)
    return StructuredLogger(logger, {})


def get_audit_logger() -> AuditLogger:
    """Get the audit logger."""
    return AuditLogger()


_initialized = False


def init_logging(level: str | None = None) -> None:
    """Initialize logging from settings. An explicit level overrides the setting."""
    global _initialized
    if _initialized and level is None:
        return

    settings = get_settings()
    setup_logging(
        level=level or settings.log_level,
        format=settings.log_format,
    )
    _initialized = True
