"""In-memory registry of tracked approvals (pending or inside their grace window)."""

from dataclasses import dataclass, field

from approval_broker.approvals.decision import DecisionHandle
from approval_broker.approvals.models import ApprovalRecord, ApprovalState
from approval_broker.core.clock import TimerHandle


@dataclass(eq=False)
class PendingEntry:
    """Everything the registry owns for one approval id. Compared by identity."""

    record: ApprovalRecord
    handle: DecisionHandle = field(default_factory=DecisionHandle)
    timer: TimerHandle | None = None
    eviction_timer: TimerHandle | None = None

    @property
    def is_pending(self) -> bool:
        return self.record.state is ApprovalState.PENDING


class PendingRegistry:
    """
    Mapping from approval id to its PendingEntry.

    No locking: every mutation happens on the event loop thread that owns the
    manager.
    """

    def __init__(self) -> None:
        self._entries: dict[str, PendingEntry] = {}

    def get(self, approval_id: str) -> PendingEntry | None:
        return self._entries.get(approval_id)

    def insert(self, entry: PendingEntry) -> None:
        self._entries[entry.record.id] = entry

    def remove_if_same(self, approval_id: str, entry: PendingEntry) -> bool:
        """Remove ``approval_id`` only while it still maps to ``entry``."""
        if self._entries.get(approval_id) is entry:
            del self._entries[approval_id]
            return True
        return False

    def pending(self) -> list[PendingEntry]:
        return [e for e in self._entries.values() if e.is_pending]

    def drain(self) -> list[PendingEntry]:
        entries = list(self._entries.values())
        self._entries.clear()
        return entries

    def __len__(self) -> int:
        return len(self._entries)
