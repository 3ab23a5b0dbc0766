"""
Approval Journal
================

Append-only JSONL audit trail of resolved approvals.

Writing is best-effort: a failed append is logged and discarded so the
approval decision path never fails on storage. Reading is tolerant of
corruption: a line that does not decode is skipped, the rest of the file is
still returned. A missing file reads as an empty journal; every other read
error propagates.
"""

import json
import os
from pathlib import Path

from approval_broker.approvals.models import ApprovalRecord, JournalEntry
from approval_broker.config.settings import DEFAULT_JOURNAL_FILENAME
from approval_broker.core.structured_logger import get_logger

logger = get_logger('ApprovalJournal')


class ApprovalJournal:
    """
    Journal file inside ``persist_dir``.

    With ``persist_dir=None`` the journal is disabled: ``append`` does nothing
    and ``load`` returns an empty list.
    """

    def __init__(
        self,
        persist_dir: Path | str | None = None,
        filename: str = DEFAULT_JOURNAL_FILENAME,
        file_mode: int = 0o600,
    ):
        self.persist_dir = Path(persist_dir) if persist_dir is not None else None
        self.filename = filename
        self.file_mode = file_mode

    @property
    def enabled(self) -> bool:
        return self.persist_dir is not None

    @property
    def path(self) -> Path | None:
        if self.persist_dir is None:
            return None
        return self.persist_dir / self.filename

    def append(self, record: ApprovalRecord) -> bool:
        """
        Append one entry for a resolved record.

        Returns:
            True if the line was written, False if the journal is disabled or
            the write failed
        """
        path = self.path
        if path is None:
            return False
        try:
            line = json.dumps(JournalEntry.from_record(record).to_dict()) + "\n"
            path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, self.file_mode)
            with os.fdopen(fd, "a", encoding="utf-8") as f:
                f.write(line)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(
                "Journal append failed",
                approval_id=record.id,
                path=str(path),
                error=str(e),
            )
            return False
        return True

    def load(self) -> list[JournalEntry]:
        """
        Read every entry in append order.

        Raises:
            OSError: for any read failure other than a missing file
        """
        path = self.path
        if path is None:
            return []
        try:
            content = path.read_bytes()
        except FileNotFoundError:
            return []

        entries: list[JournalEntry] = []
        # Decoded per line so one line of bad bytes only loses that line
        for lineno, line in enumerate(content.split(b"\n"), start=1):
            stripped = line.strip()
            if not stripped:
                continue
            try:
                data = json.loads(stripped.decode("utf-8"))
                entries.append(JournalEntry.from_dict(data))
            except (ValueError, KeyError, TypeError):
                logger.debug("Skipping malformed journal line", path=str(path), line=lineno)
        return entries

    def tail(self, limit: int | None = None) -> list[JournalEntry]:
        """All entries, or the most recent ``limit`` when ``limit`` is positive."""
        entries = self.load()
        if limit is not None and limit > 0:
            return entries[-limit:]
        return entries
