from __future__ import annotations

import asyncio
from dataclasses import dataclass

from vaultredeem.chain import (
    ChainWriter,
    DryRunWriter,
    GasStrategy,
    LocalSigner,
    PromptSigner,
    VaultReader,
    connect_web3,
)
from vaultredeem.config import Settings
from vaultredeem.data import HttpService
from vaultredeem.domain import RedeemPlan, RedeemRequest, VaultRedeemError
from vaultredeem.eligibility import EligibilityVerifier, ProofCache, ProofSource
from vaultredeem.execution import RedeemExecutor
from vaultredeem.infra import RedeemJournal, get_logger
from vaultredeem.limits import LimitPreflight
from vaultredeem.numeric import format_units
from vaultredeem.planning import RedeemPlanner
from vaultredeem.pricing import (
    PriceSource,
    chainlink_provider,
    http_json_provider,
    vault_oracle_provider,
)


@dataclass(frozen=True)
class RunOptions:
    user: str
    token: str
    amount: str
    target: str
    execute: bool = False
    assume_yes: bool = False


def format_plan(plan: RedeemPlan) -> list[str]:
    p = plan.preview
    lines = [
        f"status:   {'READY' if plan.ok else 'BLOCKED'}",
        f"value:    ${p.gross_usd} (fee ${p.fee_usd}, net ${p.net_usd})",
        f"fee tier: {p.tier.tier_index if p.tier.found else '-'} {p.tier.fee_percent_text or ''}".rstrip(),
        f"fee:      {format_units(p.fee_amount, p.token_decimals)} (token units)",
        f"receive:  {format_units(p.amount_out, p.out_decimals)}",
    ]
    if p.price is not None:
        lines.append(f"price:    {format_units(p.price.price18, 18)} USD via {p.price.source_id}")
    lines.append("steps:    " + (" -> ".join(s.kind for s in plan.steps) or "-"))
    lines += [f"blocked:  {r}" for r in plan.reasons]
    lines += [f"warning:  {w}" for w in plan.warnings]
    return lines


class App:
    """Wires settings into a planner/executor pair and runs one redemption."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.log = get_logger("vaultredeem.app", settings.log_level)

    def _price_source(self, reader, http: HttpService) -> PriceSource:
        s = self.settings
        providers = []
        if s.price_feed_address:
            providers.append(chainlink_provider(reader, s.price_feed_address))
        providers.append(vault_oracle_provider(reader, invert=s.oracle_invert))
        if s.price_http_url:
            providers.append(http_json_provider(http, s.price_http_url, s.price_http_field, timeout=s.price_timeout_sec))
        return PriceSource(providers, timeout=s.price_timeout_sec, override_price18=s.oracle_price_override18)

    def _writer(self, w3, opts: RunOptions):
        s = self.settings
        if s.dry_run or not opts.execute:
            return DryRunWriter()
        if not s.can_sign:
            raise VaultRedeemError("DRY_RUN=0 needs PRIVATE_KEY to sign")
        signer = LocalSigner(s.private_key)
        if not opts.assume_yes:
            signer = PromptSigner(signer)
        gas = GasStrategy(
            force_legacy=s.force_legacy_gas,
            gas_price_override_wei=s.gas_price_override_wei,
            priority_fee_wei=s.priority_fee_wei,
        )
        return ChainWriter(w3, signer, s.vault_address, gas, gas_limit=s.gas_limit)

    async def run(self, opts: RunOptions) -> int:
        s = self.settings
        if not s.rpc_urls or not s.vault_address:
            raise VaultRedeemError("RPC_URLS and VAULT_ADDRESS must be set")
        self.log.info("starting redeem dry_run=%s execute=%s vault=%s", s.dry_run, opts.execute, s.vault_address)

        loop = asyncio.get_running_loop()
        w3 = await loop.run_in_executor(None, lambda: connect_web3(list(s.rpc_urls), poa=s.rpc_poa))
        reader = VaultReader(w3, s.vault_address)
        if s.chain_id:
            live_id = await reader.chain_id()
            if live_id != s.chain_id:
                raise VaultRedeemError(f"RPC chain id {live_id} != CHAIN_ID {s.chain_id}")

        async with HttpService(log=get_logger("vaultredeem.http", s.log_level)) as http:
            verifier = EligibilityVerifier(
                reader,
                ProofSource(s.proof_base_path, http=http, timeout=s.proof_timeout_sec),
                ProofCache(s.data_dir),
            )
            planner = RedeemPlanner(
                reader,
                verifier,
                LimitPreflight(reader),
                self._price_source(reader, http),
                spender=s.vault_address,
            )
            executor = RedeemExecutor(planner, self._writer(w3, opts), journal=RedeemJournal(s.data_dir))

            plan = await executor.prepare(
                RedeemRequest(user=opts.user, token_in=opts.token, amount_human=opts.amount, redeem_target=opts.target)
            )
            if plan is None:
                return 1
            for line in format_plan(plan):
                print(line)
            if not plan.ok or not opts.execute:
                return 0 if plan.ok else 1

            session = await executor.execute(
                on_allowance_refresh=lambda: self.log.info("approvals confirmed, allowance refreshed")
            )
            for r in session.approval_receipts:
                print(f"approve:  {r.tx_hash} block={r.block_number}")
            if session.redeem_receipt is not None:
                print(f"redeem:   {session.redeem_receipt.tx_hash} block={session.redeem_receipt.block_number}")
            return 0


def run_main(settings: Settings, opts: RunOptions) -> int:
    app = App(settings)
    try:
        return asyncio.run(app.run(opts))
    except VaultRedeemError as e:
        app.log.error("%s: %s", type(e).__name__, e)
        return 1
