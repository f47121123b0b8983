from .gas import DEFAULT_GAS_LIMIT, LEGACY_ONLY_CHAIN_IDS, GasStrategy
from .nonce import NonceManager
from .rpc import build_w3, connect_web3
from .signer import LocalSigner, PromptSigner
from .vault_reader import VaultReader
from .writer import ChainWriter, DryRunWriter

__all__ = [
    "DEFAULT_GAS_LIMIT",
    "LEGACY_ONLY_CHAIN_IDS",
    "GasStrategy",
    "NonceManager",
    "build_w3",
    "connect_web3",
    "LocalSigner",
    "PromptSigner",
    "VaultReader",
    "ChainWriter",
    "DryRunWriter",
]
