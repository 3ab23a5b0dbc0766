"""
Pytest configuration for the approval broker tests — validates the environment,
registers markers and provides shared fixtures.
"""

import shutil
import sys
import tempfile
from pathlib import Path

import pytest

from approval_broker.approvals import ApprovalJournal, ExecApprovalManager
from approval_broker.core.clock import Clock, TimerHandle

# =============================================================================
# FAKE CLOCK
# =============================================================================


class FakeTimer(TimerHandle):
    def __init__(self, due_ms: int, seq: int, callback):
        self.due_ms = due_ms
        self.seq = seq
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock(Clock):
    """Manually advanced clock; timers fire only inside advance()."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms
        self.timers: list[FakeTimer] = []
        self._seq = 0

    def now_ms(self) -> int:
        return self.now

    def call_later(self, delay_ms: int, callback) -> FakeTimer:
        self._seq += 1
        timer = FakeTimer(self.now + max(delay_ms, 0), self._seq, callback)
        self.timers.append(timer)
        return timer

    def active(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while True:
            due = [t for t in self.active() if t.due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due_ms, t.seq))
            self.now = max(self.now, timer.due_ms)
            timer.fired = True
            timer.callback()
        self.now = target


# =============================================================================
# SHARED FIXTURES
# =============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    tmp_dir = tempfile.mkdtemp()
    yield Path(tmp_dir)
    shutil.rmtree(tmp_dir, ignore_errors=True)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def persist_dir(temp_dir):
    return temp_dir / "approvals"


@pytest.fixture
def manager(persist_dir, fake_clock):
    """Manager journaling to a temp directory, driven by the fake clock."""
    mgr = ExecApprovalManager(journal=ApprovalJournal(persist_dir), clock=fake_clock)
    yield mgr
    mgr.close()


@pytest.fixture
def memory_manager(fake_clock):
    """Manager with no journal directory."""
    mgr = ExecApprovalManager(clock=fake_clock)
    yield mgr
    mgr.close()


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Validate test environment and configure pytest with custom markers."""
    missing = []
    for mod in ("pydantic", "pydantic_settings", "yaml"):
        try:
            __import__(mod)
        except ImportError:
            missing.append(mod)

    if missing:
        print(
            "\n"
            "=" * 70 + "\n"
            " TEST ENVIRONMENT ERROR\n"
            "=" * 70 + "\n"
            f"\n"
            f" Missing dependencies: {', '.join(missing)}\n"
            f"\n"
            f" Run: pip install -e '.[dev]'\n"
            "=" * 70,
            file=sys.stderr,
        )
        raise SystemExit(1)

    config.addinivalue_line(
        "markers", "unit: Fast unit tests with no external dependencies"
    )
    config.addinivalue_line(
        "markers", "posix: Tests relying on POSIX permission bits"
    )
