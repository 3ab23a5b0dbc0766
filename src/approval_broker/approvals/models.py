"""Approval data model — requests, lifecycle records and journal entries."""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

# Opaque to the broker ("allow-once", "allow-always", "deny", ...).
# None on a resolved record means the approval expired.
ExecApprovalDecision = str


class ApprovalState(Enum):
    CREATED = "created"
    PENDING = "pending"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class ExecApprovalRequest:
    """Description of the command a caller wants approved."""

    command: str
    cwd: str | None = None
    host: str | None = None
    security: str | None = None
    ask: str | None = None
    agent_id: str | None = None
    resolved_path: str | None = None
    session_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecApprovalRequest":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class ApprovalRecord:
    """
    Full state of one approval request.

    ``resolved_at_ms`` is stamped exactly once, by the manager's resolve
    transition, together with ``state = RESOLVED``. A resolved record whose
    ``decision`` is None expired without an answer.
    """

    id: str
    request: ExecApprovalRequest
    created_at_ms: int
    expires_at_ms: int
    # Caller metadata (best-effort), used to stop other clients replaying an approval id
    requested_by_conn_id: str | None = None
    requested_by_device_id: str | None = None
    requested_by_client_id: str | None = None
    state: ApprovalState = ApprovalState.CREATED
    resolved_at_ms: int | None = None
    decision: ExecApprovalDecision | None = None
    resolved_by: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.state is ApprovalState.RESOLVED

    @property
    def is_expired_resolution(self) -> bool:
        return self.is_resolved and self.decision is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "request": self.request.to_dict(),
            "created_at_ms": self.created_at_ms,
            "expires_at_ms": self.expires_at_ms,
            "requested_by_conn_id": self.requested_by_conn_id,
            "requested_by_device_id": self.requested_by_device_id,
            "requested_by_client_id": self.requested_by_client_id,
            "state": self.state.value,
            "resolved_at_ms": self.resolved_at_ms,
            "decision": self.decision,
            "resolved_by": self.resolved_by,
        }


@dataclass(frozen=True)
class JournalEntry:
    """One line of the audit journal. Serialized with camelCase keys."""

    id: str
    command: str
    decision: ExecApprovalDecision | None
    resolved_by: str | None
    resolved_at_ms: int
    requested_by_device_id: str | None = None

    @classmethod
    def from_record(cls, record: ApprovalRecord) -> "JournalEntry":
        if record.resolved_at_ms is None:
            raise ValueError(f"approval '{record.id}' is not resolved")
        return cls(
            id=record.id,
            command=record.request.command,
            decision=record.decision,
            resolved_by=record.resolved_by,
            resolved_at_ms=record.resolved_at_ms,
            requested_by_device_id=record.requested_by_device_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "command": self.command,
            "decision": self.decision,
            "resolvedBy": self.resolved_by,
            "resolvedAtMs": self.resolved_at_ms,
            "requestedByDeviceId": self.requested_by_device_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JournalEntry":
        """
        Rebuild an entry from a decoded journal line.

        Raises:
            KeyError: if ``id``, ``command`` or ``resolvedAtMs`` is missing
        """
        return cls(
            id=data["id"],
            command=data["command"],
            decision=data.get("decision"),
            resolved_by=data.get("resolvedBy"),
            resolved_at_ms=data["resolvedAtMs"],
            requested_by_device_id=data.get("requestedByDeviceId"),
        )
