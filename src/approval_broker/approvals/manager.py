"""
Exec Approval Manager
=====================

Human-in-the-loop approval lifecycle for shell command execution.

    create()   -> ApprovalRecord (CREATED)
    register() -> DecisionHandle, record becomes PENDING, expiry timer armed
    resolve()  -> explicit decision, first writer wins
    (timer)    -> expiry, decision None, same transition as resolve()

Every resolution goes through ``_finalize``, which checks the record state
before touching it, so whichever of {resolve(), expiry timer} gets there
first wins and the other is a no-op. Resolved entries stay in the registry for
a grace period so late ``await_decision()`` callers still see the outcome, then
they are evicted and only the journal remembers them.
"""

import uuid
import warnings
from typing import Any

from approval_broker.approvals.decision import DecisionHandle
from approval_broker.approvals.journal import ApprovalJournal
from approval_broker.approvals.models import (
    ApprovalRecord,
    ApprovalState,
    ExecApprovalDecision,
    ExecApprovalRequest,
    JournalEntry,
)
from approval_broker.approvals.registry import PendingEntry, PendingRegistry
from approval_broker.config.settings import DEFAULT_GRACE_PERIOD_MS, DEFAULT_TIMEOUT_MS, Settings
from approval_broker.core.clock import AsyncioClock, Clock
from approval_broker.core.exceptions import (
    AlreadyResolvedError,
    BrokerClosedError,
    ValidationError,
)
from approval_broker.core.structured_logger import get_logger

logger = get_logger('ExecApprovalManager')


class ExecApprovalManager:
    """Tracks in-flight exec approvals and journals their outcomes."""

    def __init__(
        self,
        journal: ApprovalJournal | None = None,
        clock: Clock | None = None,
        grace_period_ms: int = DEFAULT_GRACE_PERIOD_MS,
        journal_expirations: bool = False,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self.journal = journal or ApprovalJournal()
        self.clock = clock or AsyncioClock()
        self.grace_period_ms = grace_period_ms
        self.default_timeout_ms = default_timeout_ms
        self.journal_expirations = journal_expirations
        self._registry = PendingRegistry()
        self._closed = False

    @classmethod
    def with_persist_dir(cls, persist_dir, **kwargs) -> "ExecApprovalManager":
        """Shorthand for a manager journaling to ``persist_dir`` with default file settings."""
        return cls(journal=ApprovalJournal(persist_dir), **kwargs)

    def create(
        self,
        request: ExecApprovalRequest | dict[str, Any],
        timeout_ms: int | None = None,
        id: str | None = None,
        *,
        requested_by_conn_id: str | None = None,
        requested_by_device_id: str | None = None,
        requested_by_client_id: str | None = None,
    ) -> ApprovalRecord:
        """
        Build a new record. Does not touch the registry.

        Args:
            request: The command to approve (a dict is converted)
            timeout_ms: Milliseconds until the approval expires (defaults to default_timeout_ms)
            id: Caller-chosen id; blank or missing ids get a fresh uuid4

        Raises:
            ValidationError: If timeout_ms is negative or the request has no command
        """
        if timeout_ms is None:
            timeout_ms = self.default_timeout_ms
        if timeout_ms < 0:
            raise ValidationError("timeout_ms must not be negative", {"timeout_ms": timeout_ms})
        if isinstance(request, dict):
            if "command" not in request:
                raise ValidationError("approval request requires a command")
            request = ExecApprovalRequest.from_dict(request)

        now = self.clock.now_ms()
        approval_id = id.strip() if id and id.strip() else str(uuid.uuid4())
        return ApprovalRecord(
            id=approval_id,
            request=request,
            created_at_ms=now,
            expires_at_ms=now + timeout_ms,
            requested_by_conn_id=requested_by_conn_id,
            requested_by_device_id=requested_by_device_id,
            requested_by_client_id=requested_by_client_id,
        )

    def register(self, record: ApprovalRecord, timeout_ms: int | None = None) -> DecisionHandle:
        """
        Start tracking ``record`` and return the handle its decision arrives on.

        Without ``timeout_ms`` the timer covers the record's own window
        (``expires_at_ms - created_at_ms``). Registering an id that is still
        pending returns the existing handle without arming a second timer.

        Raises:
            AlreadyResolvedError: If the id was resolved and is still in its grace window
            BrokerClosedError: If close() has been called
        """
        if self._closed:
            raise BrokerClosedError()

        existing = self._registry.get(record.id)
        if existing is not None:
            if existing.is_pending:
                return existing.handle
            raise AlreadyResolvedError(record.id, {"resolved_at_ms": existing.record.resolved_at_ms})
        if record.resolved_at_ms is not None:
            # Evicted, but the record itself still carries its resolution
            raise AlreadyResolvedError(record.id, {"resolved_at_ms": record.resolved_at_ms})

        if timeout_ms is None:
            timeout_ms = record.expires_at_ms - record.created_at_ms

        record.state = ApprovalState.PENDING
        entry = PendingEntry(record=record)
        # Capture the entry itself; the expiry must not act on a different entry for the same id
        entry.timer = self.clock.call_later(timeout_ms, lambda: self._expire(entry))
        self._registry.insert(entry)

        logger.info(
            "Approval registered",
            approval_id=record.id,
            command=record.request.command,
            timeout_ms=timeout_ms,
        )
        return entry.handle

    async def wait_for_decision(
        self, record: ApprovalRecord, timeout_ms: int | None = None
    ) -> ExecApprovalDecision | None:
        """Deprecated: use ``register()`` and await the returned handle."""
        warnings.warn(
            "wait_for_decision() is deprecated; use register() and await the handle",
            DeprecationWarning,
            stacklevel=2,
        )
        return await self.register(record, timeout_ms)

    def resolve(
        self,
        approval_id: str,
        decision: ExecApprovalDecision,
        resolved_by: str | None = None,
    ) -> bool:
        """
        Apply an explicit decision.

        Returns:
            True on success; False if the id is unknown or already resolved
        """
        entry = self._registry.get(approval_id)
        if entry is None:
            logger.warning("Resolve for unknown approval", approval_id=approval_id)
            return False
        if not self._finalize(entry, decision, resolved_by):
            logger.warning(
                "Approval already resolved",
                approval_id=approval_id,
                decision=entry.record.decision,
            )
            return False
        logger.info(
            "Approval resolved",
            approval_id=approval_id,
            decision=decision,
            resolved_by=resolved_by,
        )
        return True

    def _expire(self, entry: PendingEntry) -> None:
        if self._finalize(entry, None, None):
            logger.info("Approval expired", approval_id=entry.record.id)

    def _finalize(
        self,
        entry: PendingEntry,
        decision: ExecApprovalDecision | None,
        resolved_by: str | None,
    ) -> bool:
        record = entry.record
        if record.state is not ApprovalState.PENDING:
            return False

        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None
        record.state = ApprovalState.RESOLVED
        record.resolved_at_ms = self.clock.now_ms()
        record.decision = decision
        record.resolved_by = resolved_by

        if decision is not None or self.journal_expirations:
            self.journal.append(record)

        entry.handle.fulfill(decision)
        entry.eviction_timer = self.clock.call_later(
            self.grace_period_ms, lambda: self._evict(entry)
        )
        return True

    def _evict(self, entry: PendingEntry) -> None:
        if self._registry.remove_if_same(entry.record.id, entry):
            logger.debug("Approval evicted", approval_id=entry.record.id)

    def get_snapshot(self, approval_id: str) -> ApprovalRecord | None:
        entry = self._registry.get(approval_id)
        return entry.record if entry else None

    def await_decision(self, approval_id: str) -> DecisionHandle | None:
        """Handle for an already-registered approval, or None if it is not tracked."""
        entry = self._registry.get(approval_id)
        return entry.handle if entry else None

    def list_pending(self) -> list[ApprovalRecord]:
        return [entry.record for entry in self._registry.pending()]

    def load_journal(self) -> list[JournalEntry]:
        """Load the audit journal from disk."""
        return self.journal.load()

    def get_audit_log(self, limit: int | None = None) -> list[JournalEntry]:
        """Recent resolved approvals from the journal."""
        return self.journal.tail(limit)

    def get_stats(self) -> dict[str, Any]:
        pending = len(self._registry.pending())
        return {
            "tracked": len(self._registry),
            "pending": pending,
            "resolved": len(self._registry) - pending,
            "journal_enabled": self.journal.enabled,
            "closed": self._closed,
        }

    def close(self) -> None:
        """
        Stop the manager: cancel all timers, reject outstanding handles with
        BrokerClosedError and forget every tracked approval.
        """
        if self._closed:
            return
        self._closed = True
        rejected = 0
        for entry in self._registry.drain():
            for timer in (entry.timer, entry.eviction_timer):
                if timer is not None:
                    timer.cancel()
            if entry.handle.reject(BrokerClosedError(details={"approval_id": entry.record.id})):
                rejected += 1
        logger.info("ExecApprovalManager closed", rejected=rejected)


def create_approval_manager(
    settings: Settings | None = None,
    clock: Clock | None = None,
) -> ExecApprovalManager:
    """
    Factory function to create an approval manager from settings

    Args:
        settings: Broker settings (environment-derived defaults if not provided)
        clock: Optional clock override

    Returns:
        ExecApprovalManager instance

    Example:
        manager = create_approval_manager(load_settings("broker.yaml"))
    """
    settings = settings or Settings()
    journal = ApprovalJournal(
        persist_dir=settings.journal.persist_dir,
        filename=settings.journal.filename,
        file_mode=settings.journal.file_mode,
    )
    return ExecApprovalManager(
        journal=journal,
        clock=clock,
        grace_period_ms=settings.approvals.grace_period_ms,
        journal_expirations=settings.journal.journal_expirations,
        default_timeout_ms=settings.approvals.default_timeout_ms,
    )
