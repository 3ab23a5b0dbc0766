"""
Exec Approvals - human-in-the-loop authorization for shell commands
===================================================================

A caller creates and registers an approval, a reviewer (reached through some
external transport) resolves it, or it expires. Resolved decisions are
appended to a JSONL journal for audit.

    manager = create_approval_manager(load_settings())
    record = manager.create({"command": "rm -rf build/"}, timeout_ms=60_000)
    handle = manager.register(record, timeout_ms=60_000)
    ...                                   # transport delivers the request
    manager.resolve(record.id, "allow-once", resolved_by="alice")
    decision = await handle               # "allow-once", or None on expiry
"""

from .decision import DecisionHandle
from .journal import ApprovalJournal
from .manager import ExecApprovalManager, create_approval_manager
from .models import (
    ApprovalRecord,
    ApprovalState,
    ExecApprovalDecision,
    ExecApprovalRequest,
    JournalEntry,
)
from .registry import PendingEntry, PendingRegistry

__all__ = [
    'ApprovalJournal',
    'ApprovalRecord',
    'ApprovalState',
    'DecisionHandle',
    'ExecApprovalDecision',
    'ExecApprovalManager',
    'ExecApprovalRequest',
    'JournalEntry',
    'PendingEntry',
    'PendingRegistry',
    'create_approval_manager',
]
