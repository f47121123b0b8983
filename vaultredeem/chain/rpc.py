from __future__ import annotations

import logging
import time

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from vaultredeem.domain import SourceUnavailable

log = logging.getLogger("vaultredeem.rpc")


def build_w3(rpc: str, timeout: int = 10, poa: bool = False) -> Web3:
    w3 = Web3(Web3.HTTPProvider(rpc, request_kwargs={"timeout": timeout}))
    if poa:
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


def connect_web3(rpc_urls: list[str], timeout: int = 10, poa: bool = False) -> Web3:
    """Return the first RPC that answers ``block_number``; order is preference."""
    errors = []
    for rpc in rpc_urls:
        try:
            w3 = build_w3(rpc, timeout=timeout, poa=poa)
            t0 = time.perf_counter()
            block = w3.eth.block_number
            log.info("rpc connected %s block=%s (%.0fms)", rpc, block, (time.perf_counter() - t0) * 1000.0)
            return w3
        except Exception as e:
            log.warning("rpc %s unavailable: %s", rpc, e)
            errors.append(f"{rpc}: {e}")
    raise SourceUnavailable("rpc", "no working RPC endpoint" + (f" ({'; '.join(errors)})" if errors else ""))
