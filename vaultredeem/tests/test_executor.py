import asyncio

import pytest
from fakes import STABLE, TOKEN, USER, VAULT, FakeJournal, FakePlanner, FakeWriter

from vaultredeem.chain import DryRunWriter
from vaultredeem.domain import (
    ChainRejection,
    InvalidTransition,
    PlanPreview,
    PlanStep,
    RedeemPlan,
    RedeemRequest,
    SessionBusy,
    SessionState,
    TierResolution,
    UserDeclined,
    VaultRedeemError,
)
from vaultredeem.execution import RedeemExecutor

REQUEST = RedeemRequest(user=USER, token_in=TOKEN, amount_human="1", redeem_target=STABLE)
PREVIEW = PlanPreview(1, 0, 1, TierResolution.none())


def _plan(approvals=1, reasons=()):
    steps = [PlanStep(kind=PlanStep.APPROVE, token=TOKEN, amount=10**18, spender_or_target=VAULT)] * approvals
    steps.append(PlanStep(kind=PlanStep.REDEEM, token=TOKEN, amount=10**18, spender_or_target=VAULT, redeem_target=STABLE))
    return RedeemPlan(steps=tuple(steps), preview=PREVIEW, reasons=tuple(reasons))


def _executor(plan=None, writer=None, log=None):
    journal = FakeJournal()
    ex = RedeemExecutor(FakePlanner(plan or _plan()), writer or FakeWriter(log if log is not None else []), journal)
    return ex, journal


def test_approve_confirm_refresh_redeem_order() -> None:
    log: list = []
    ex, journal = _executor(log=log)

    async def go():
        await ex.prepare(REQUEST)
        return await ex.execute(on_allowance_refresh=lambda: log.append("refresh"))

    session = asyncio.run(go())
    assert session.state == SessionState.SUCCESS
    assert log == ["approve", "confirm:0xapprove1", "refresh", "redeem", "confirm:0xredeem2"]
    assert journal.states() == ["preparing", "ready", "approving", "redeeming", "success"]
    assert len(session.approval_receipts) == 1
    assert session.redeem_receipt.tx_hash == "0xredeem2"


def test_no_approvals_skips_approving_state() -> None:
    hits = []
    ex, journal = _executor(plan=_plan(approvals=0))

    async def go():
        await ex.prepare(REQUEST)
        await ex.execute(on_allowance_refresh=lambda: hits.append(1))

    asyncio.run(go())
    assert "approving" not in journal.states()
    assert ex.state == SessionState.SUCCESS
    assert hits == []


def test_refresh_callback_failures_do_not_abort() -> None:
    def boom():
        raise RuntimeError("sync refresh broke")

    async def aboom():
        raise RuntimeError("async refresh broke")

    for cb in (boom, aboom):
        ex, _ = _executor()

        async def go():
            await ex.prepare(REQUEST)
            await ex.execute(on_allowance_refresh=cb)

        asyncio.run(go())
        assert ex.state == SessionState.SUCCESS


def test_refresh_callback_fires_once() -> None:
    hits = []
    ex, _ = _executor(plan=_plan(approvals=2))

    async def go():
        await ex.prepare(REQUEST)
        await ex.execute(on_allowance_refresh=lambda: hits.append(1))

    asyncio.run(go())
    assert hits == [1]


def test_busy_session_rejects_second_prepare() -> None:
    gate = asyncio.Event()
    ex = RedeemExecutor(FakePlanner(_plan(), gate=gate), FakeWriter([]))

    async def go():
        task = asyncio.ensure_future(ex.prepare(REQUEST))
        await asyncio.sleep(0)
        with pytest.raises(SessionBusy):
            await ex.prepare(REQUEST)
        with pytest.raises(SessionBusy):
            await ex.execute()
        gate.set()
        return await task

    assert asyncio.run(go()).ok
    assert ex.state == SessionState.READY


def test_reset_makes_pending_prepare_stale() -> None:
    gate = asyncio.Event()
    ex = RedeemExecutor(FakePlanner(_plan(), gate=gate), FakeWriter([]))

    async def go():
        task = asyncio.ensure_future(ex.prepare(REQUEST))
        await asyncio.sleep(0)
        ex.reset()
        gate.set()
        return await task

    assert asyncio.run(go()) is None
    assert ex.state == SessionState.IDLE
    assert ex.session.plan is None


def test_success_is_terminal_until_reset() -> None:
    ex, _ = _executor()

    async def go():
        await ex.prepare(REQUEST)
        await ex.execute()
        with pytest.raises(InvalidTransition):
            await ex.execute()
        with pytest.raises(InvalidTransition):
            await ex.prepare(REQUEST)
        ex.reset()
        return await ex.prepare(REQUEST)

    assert asyncio.run(go()).ok
    assert ex.state == SessionState.READY


def test_ready_session_can_be_prepared_again() -> None:
    planner = FakePlanner(_plan())
    ex = RedeemExecutor(planner, FakeWriter([]))

    async def go():
        first = await ex.prepare(REQUEST)
        assert ex.state == SessionState.READY
        planner.plan = _plan(approvals=0)
        second = await ex.prepare(REQUEST)
        return first, second

    first, second = asyncio.run(go())
    assert planner.calls == 2
    assert ex.state == SessionState.READY
    assert ex.session.plan is second
    assert second is not first
    assert second.approval_steps == ()


def test_blocked_plan_cannot_execute() -> None:
    ex, _ = _executor(plan=_plan(reasons=("contract locked",)))

    async def go():
        await ex.prepare(REQUEST)
        assert ex.state == SessionState.BLOCKED
        with pytest.raises(InvalidTransition):
            await ex.execute()

    asyncio.run(go())


def test_revert_is_categorised() -> None:
    writer = FakeWriter([], fail_on={"redeem": RuntimeError("execution reverted: round not started")})
    ex, journal = _executor(plan=_plan(approvals=0), writer=writer)

    async def go():
        await ex.prepare(REQUEST)
        await ex.execute()

    with pytest.raises(ChainRejection) as exc:
        asyncio.run(go())
    assert exc.value.category == ChainRejection.ROUND_NOT_STARTED
    assert ex.state == SessionState.ERROR
    assert journal.events[-1][1]["category"] == ChainRejection.ROUND_NOT_STARTED


def test_wallet_rejection_becomes_user_declined() -> None:
    writer = FakeWriter([], fail_on={"approve": ValueError({"code": 4001, "message": "User denied"})})
    ex, _ = _executor(writer=writer)

    async def go():
        await ex.prepare(REQUEST)
        await ex.execute()

    with pytest.raises(UserDeclined):
        asyncio.run(go())
    assert ex.session.error == "User denied"


def test_failed_receipt_is_a_revert() -> None:
    writer = FakeWriter([], statuses={"0xredeem1": 0})
    ex, _ = _executor(plan=_plan(approvals=0), writer=writer)

    async def go():
        await ex.prepare(REQUEST)
        await ex.execute()

    with pytest.raises(ChainRejection) as exc:
        asyncio.run(go())
    assert exc.value.category == ChainRejection.REVERTED
    assert ex.session.redeem_receipt is None


def test_prepare_failure_sets_error_state() -> None:
    ex = RedeemExecutor(FakePlanner(error=RuntimeError("rpc down")), FakeWriter([]))
    with pytest.raises(VaultRedeemError):
        asyncio.run(ex.prepare(REQUEST))
    assert ex.state == SessionState.ERROR
    assert ex.session.busy is False


def test_reset_refused_mid_flight() -> None:
    ex, _ = _executor()
    ex.session.state = SessionState.REDEEMING
    with pytest.raises(SessionBusy):
        ex.reset()


def test_dry_run_writer_end_to_end() -> None:
    writer = DryRunWriter()
    ex = RedeemExecutor(FakePlanner(_plan()), writer)

    async def go():
        await ex.prepare(REQUEST)
        return await ex.execute()

    session = asyncio.run(go())
    assert session.state == SessionState.SUCCESS
    assert [h for h, _ in writer.submitted] == ["dry-run-approve-1", "dry-run-redeem-2"]
