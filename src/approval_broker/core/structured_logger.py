"""
Structured Logging with Trace IDs
=================================

JSON-structured logging for the approval lifecycle. Every line carries the
component name and, inside a ``TraceContext``, the trace id of the approval
flow that produced it, so a single request can be followed from registration
to resolution.

Approval requests carry raw shell command text, which regularly contains
credentials. Messages and string fields are passed through a redaction filter
before they are serialized.
"""

import json
import logging
import re
import sys
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from approval_broker.config.settings import LoggingConfig

# Context variable to store trace_id for the current approval flow
_trace_id_var: ContextVar[str | None] = ContextVar('trace_id', default=None)

_SECRET_PATTERNS = re.compile(
    r"(xoxb-[A-Za-z0-9-]+|sk-[A-Za-z0-9]+|ghp_[A-Za-z0-9]+|"
    r"AKIA[0-9A-Z]{16}|Bearer\s+[A-Za-z0-9._~+/=-]+|"
    r"\b(?:password|passwd|token|api[_-]?key)=\S+)",
    re.IGNORECASE,
)


def _redact_secrets(text: str) -> str:
    return _SECRET_PATTERNS.sub("[REDACTED]", text)


class StructuredLogger:
    """
    Structured logger that outputs JSON logs with trace IDs

    Example output:
    {
        "timestamp": "2026-10-19T10:30:45.123+00:00",
        "level": "INFO",
        "trace_id": "abc123",
        "component": "ExecApprovalManager",
        "message": "Approval resolved",
        "approval_id": "3f0c...",
        "decision": "allow-once"
    }
    """

    def __init__(self, component: str, logger: logging.Logger | None = None) -> None:
        """
        Initialize structured logger

        Args:
            component: Component name (e.g., 'ExecApprovalManager', 'ApprovalJournal')
            logger: Optional existing logger (creates new if not provided)
        """
        self.component = component
        self.logger = logger or logging.getLogger(f"approval_broker.{component}")

    def _log(self, level: str, message: str, **kwargs) -> None:
        log_method = getattr(self.logger, level.lower())
        if not self.logger.isEnabledFor(getattr(logging, level)):
            return

        log_entry = {
            'timestamp': datetime.now(tz=UTC).isoformat(),
            'level': level,
            'component': self.component,
            'message': _redact_secrets(message),
        }

        trace_id = _trace_id_var.get()
        if trace_id:
            log_entry['trace_id'] = trace_id

        for k, v in kwargs.items():
            log_entry[k] = _redact_secrets(v) if isinstance(v, str) else v

        log_method(json.dumps(log_entry, default=str))

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message"""
        self._log('DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log info message"""
        self._log('INFO', message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message"""
        self._log('WARNING', message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        """Log error message"""
        self._log('ERROR', message, **kwargs)


class TraceContext:
    """
    Context manager for setting trace_id for an approval flow

    Usage:
        with TraceContext(record.id):
            handle = manager.register(record, timeout_ms)
    """

    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or self._generate_trace_id()
        self.token = None

    def __enter__(self) -> str:
        self.token = _trace_id_var.set(self.trace_id)
        return self.trace_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        _trace_id_var.reset(self.token)

    @staticmethod
    def _generate_trace_id() -> str:
        return str(uuid.uuid4())[:8]


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def get_logger(component: str) -> StructuredLogger:
    """
    Get a structured logger for a component

    Args:
        component: Component name

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(component)


def configure_logging(config: "LoggingConfig") -> None:
    """
    Attach a stream handler to the ``approval_broker`` logger tree.

    With ``format == "json"`` records are emitted verbatim (they are already
    JSON documents); ``text`` prefixes them with level and logger name.
    """
    root = logging.getLogger("approval_broker")
    root.setLevel(config.level)
    for handler in list(root.handlers):
        if getattr(handler, "_approval_broker_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if config.format == "json":
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler._approval_broker_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
