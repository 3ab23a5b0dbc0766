"""
Custom Exceptions for the Approval Broker
==========================================

Structured error handling lets callers react to the error type instead of
parsing messages.

Error Codes:
- 1xxx: Client errors (bad input)
- 2xxx: State errors (conflicting registration, closed broker)
- 5xxx: System errors (internal)

Expected race outcomes (resolving an unknown or already-resolved approval)
are reported as ``False`` by ``ExecApprovalManager.resolve`` and never raise.
"""

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Structured error codes"""

    # 1xxx: Client Errors
    VALIDATION_ERROR = 1001

    # 2xxx: State Errors
    CONFLICT = 2001
    BROKER_CLOSED = 2002

    # 5xxx: System Errors
    INTERNAL_ERROR = 5001


class BrokerError(Exception):
    """Base exception for all approval broker errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging"""
        return {
            'error_type': self.__class__.__name__,
            'error_code': int(self.error_code),
            'message': self.message,
            'details': self.details
        }


class ValidationError(BrokerError):
    """Raised when caller input is invalid (e.g. a negative timeout)"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class AlreadyResolvedError(BrokerError):
    """Raised when registering an approval id that has already been resolved"""

    def __init__(self, approval_id: str, details: dict[str, Any] | None = None):
        super().__init__(
            f"approval id '{approval_id}' already resolved",
            ErrorCode.CONFLICT,
            details,
        )
        self.approval_id = approval_id


class BrokerClosedError(BrokerError):
    """Raised for registrations after close(), and delivered to waiters still pending at close()"""

    def __init__(self, message: str = "approval broker is closed", details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.BROKER_CLOSED, details)
