"""Core approval_broker module — clock, errors and logging shared by the broker."""

from approval_broker.core.clock import AsyncioClock, Clock, TimerHandle
from approval_broker.core.exceptions import (
    AlreadyResolvedError,
    BrokerClosedError,
    BrokerError,
    ErrorCode,
    ValidationError,
)
from approval_broker.core.structured_logger import TraceContext, configure_logging, get_logger

__all__ = [
    "AlreadyResolvedError",
    "AsyncioClock",
    "BrokerClosedError",
    "BrokerError",
    "Clock",
    "configure_logging",
    "ErrorCode",
    "get_logger",
    "TimerHandle",
    "TraceContext",
    "ValidationError",
]
