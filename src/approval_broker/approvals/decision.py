"""Single-fulfilment decision handle returned by ExecApprovalManager.register()."""

import asyncio

from approval_broker.approvals.models import ExecApprovalDecision

_UNSET = object()


class DecisionHandle:
    """
    Result cell that is fulfilled (or rejected) at most once.

    The handle can be polled with ``done()`` / ``result()`` from synchronous
    code, or awaited from a coroutine. Awaiting a handle that is already
    fulfilled returns immediately, which is how late subscribers inside the
    grace window observe a decision. A fulfilled value of None means the
    approval expired.
    """

    def __init__(self) -> None:
        self._value: object = _UNSET
        self._error: BaseException | None = None
        self._waiters: list[asyncio.Future] = []

    def done(self) -> bool:
        return self._value is not _UNSET or self._error is not None

    def result(self) -> ExecApprovalDecision | None:
        """
        Return the decision, or raise the rejection error.

        Raises:
            asyncio.InvalidStateError: if the handle is still pending
        """
        if self._error is not None:
            # Fresh traceback per reader; the stored error is shared
            raise self._error.with_traceback(None)
        if self._value is _UNSET:
            raise asyncio.InvalidStateError("decision is not available yet")
        return self._value  # type: ignore[return-value]

    def fulfill(self, decision: ExecApprovalDecision | None) -> bool:
        if self.done():
            return False
        self._value = decision
        for waiter in self._waiters:
            if not waiter.done():
                waiter.get_loop().call_soon_threadsafe(_set_result, waiter, decision)
        self._waiters.clear()
        return True

    def reject(self, error: BaseException) -> bool:
        if self.done():
            return False
        self._error = error
        for waiter in self._waiters:
            if not waiter.done():
                waiter.get_loop().call_soon_threadsafe(_set_exception, waiter, error)
        self._waiters.clear()
        return True

    async def wait(self) -> ExecApprovalDecision | None:
        if self.done():
            return self.result()
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            return await waiter
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def __await__(self):
        return self.wait().__await__()

    def __repr__(self) -> str:
        if self._error is not None:
            state = f"rejected={self._error!r}"
        elif self._value is not _UNSET:
            state = f"decision={self._value!r}"
        else:
            state = "pending"
        return f"<DecisionHandle {state}>"


def _set_result(waiter: asyncio.Future, value: object) -> None:
    if not waiter.done():
        waiter.set_result(value)


def _set_exception(waiter: asyncio.Future, error: BaseException) -> None:
    if not waiter.done():
        waiter.set_exception(error)
