from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from vaultredeem.domain import (
    ChainRejection,
    InvalidTransition,
    PlanStep,
    RedeemPlan,
    RedeemRequest,
    RedeemSession,
    SessionBusy,
    SessionState,
    TxReceipt,
)
from vaultredeem.execution.errors import normalize_error

log = logging.getLogger("vaultredeem.executor")

PREPARE_FROM = frozenset({SessionState.IDLE, SessionState.READY, SessionState.BLOCKED, SessionState.ERROR})
IN_FLIGHT = frozenset({SessionState.APPROVING, SessionState.REDEEMING})


class RedeemExecutor:
    """Approve-then-redeem state machine over a single ``RedeemSession``.

    idle -> preparing -> ready | blocked | error
    ready -> [approving ->] redeeming -> success | error

    success and error end a run; ``execute`` refuses them until ``reset()``.
    A newer ``prepare`` or a ``reset`` makes an in-flight prepare stale and its
    result is dropped.
    """

    def __init__(self, planner, writer, journal=None):
        self.planner = planner
        self.writer = writer
        self.journal = journal
        self.session = RedeemSession()
        self._bg_tasks: set[asyncio.Future] = set()

    @property
    def state(self) -> SessionState:
        return self.session.state

    def _emit(self, event: str, **fields: Any) -> None:
        if self.journal is not None:
            self.journal.emit(event, **fields)

    def _transition(self, new: SessionState, **fields: Any) -> None:
        old = self.session.state
        self.session.state = new
        log.info("session %s -> %s", old.value, new.value)
        self._emit("state", old=old.value, new=new.value, seq=self.session.request_seq, **fields)

    async def prepare(self, request: RedeemRequest) -> RedeemPlan | None:
        """Build a plan; ``None`` when the result went stale before it arrived."""
        s = self.session
        if s.busy:
            raise SessionBusy("a prepare or execute is already running")
        if s.state not in PREPARE_FROM:
            raise InvalidTransition(f"cannot prepare from {s.state.value}; reset() first")

        s.request_seq += 1
        seq = s.request_seq
        s.busy = True
        s.plan = None
        s.error = None
        s.approval_receipts = []
        s.redeem_receipt = None
        self._transition(SessionState.PREPARING)
        try:
            plan = await self.planner.prepare(request)
        except Exception as e:
            if seq != s.request_seq:
                log.info("prepare #%d failed after being superseded: %s", seq, e)
                return None
            err = normalize_error(e)
            s.error = str(err)
            self._transition(SessionState.ERROR, error=s.error)
            if err is e:
                raise
            raise err from e
        finally:
            if seq == s.request_seq:
                s.busy = False

        if seq != s.request_seq:
            log.info("discarding stale plan from prepare #%d (current #%d)", seq, s.request_seq)
            return None

        s.plan = plan
        if plan.ok:
            self._transition(SessionState.READY, steps=[st.kind for st in plan.steps])
        else:
            self._transition(SessionState.BLOCKED, reasons=list(plan.reasons))
        return plan

    async def _confirm(self, step: PlanStep, tx_hash: str) -> TxReceipt:
        self._emit("tx_submitted", kind=step.kind, tx_hash=tx_hash, token=step.token, amount=step.amount)
        receipt = await self.writer.wait_for_receipt(tx_hash)
        self._emit("tx_confirmed", kind=step.kind, tx_hash=tx_hash, status=receipt.status, block=receipt.block_number)
        if not receipt.succeeded:
            raise ChainRejection(ChainRejection.REVERTED, f"{step.kind} transaction reverted", raw=tx_hash)
        return receipt

    async def execute(self, on_allowance_refresh: Callable[[], Any] | None = None) -> RedeemSession:
        s = self.session
        if s.busy:
            raise SessionBusy("a prepare or execute is already running")
        if s.state != SessionState.READY or s.plan is None:
            raise InvalidTransition(f"cannot execute from {s.state.value}")
        plan = s.plan
        redeem_step = plan.redeem_step
        if redeem_step is None:
            raise InvalidTransition("plan has no redeem step")

        s.busy = True
        try:
            approvals = plan.approval_steps
            if approvals:
                self._transition(SessionState.APPROVING, count=len(approvals))
                for step in approvals:
                    tx_hash = await self.writer.approve(step)
                    s.approval_receipts.append(await self._confirm(step, tx_hash))

            self._transition(SessionState.REDEEMING)
            if approvals:
                self._fire_refresh(on_allowance_refresh)

            tx_hash = await self.writer.redeem(redeem_step)
            s.redeem_receipt = await self._confirm(redeem_step, tx_hash)
            self._transition(SessionState.SUCCESS, tx_hash=tx_hash)
            return s
        except Exception as e:
            err = normalize_error(e)
            s.error = str(err)
            self._transition(SessionState.ERROR, error=s.error, category=getattr(err, "category", None))
            if err is e:
                raise
            raise err from e
        finally:
            s.busy = False

    def _fire_refresh(self, cb: Callable[[], Any] | None) -> None:
        """Run the allowance refresh once, detached from the state machine."""
        if cb is None:
            return
        try:
            out = cb()
        except Exception as e:
            log.warning("allowance refresh callback failed: %s", e)
            return
        if inspect.isawaitable(out):
            task = asyncio.ensure_future(out)
            self._bg_tasks.add(task)
            task.add_done_callback(self._refresh_done)

    def _refresh_done(self, task: asyncio.Future) -> None:
        self._bg_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.warning("allowance refresh callback failed: %s", task.exception())

    def reset(self) -> None:
        s = self.session
        if s.state in IN_FLIGHT:
            raise SessionBusy(f"cannot reset while {s.state.value}; broadcast transactions cannot be recalled")
        s.request_seq += 1
        s.busy = False
        s.plan = None
        s.error = None
        s.approval_receipts = []
        s.redeem_receipt = None
        self._transition(SessionState.IDLE)
