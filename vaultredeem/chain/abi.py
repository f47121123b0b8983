from __future__ import annotations

# Minimal ABIs; only the entries the redeem flow reads or writes.

ERC20_ABI = [
    {"inputs":[],"name":"decimals","outputs":[{"name":"","type":"uint8"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[{"name":"account","type":"address"}],"name":"balanceOf",
     "outputs":[{"name":"","type":"uint256"}],"stateMutability":"view","type":"function"},
    {"inputs":[{"name":"owner","type":"address"},{"name":"spender","type":"address"}],
     "name":"allowance","outputs":[{"name":"","type":"uint256"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[{"name":"spender","type":"address"},{"name":"amount","type":"uint256"}],
     "name":"approve","outputs":[{"name":"","type":"bool"}],
     "stateMutability":"nonpayable","type":"function"},
]

VAULT_ABI = [
    {"inputs":[],"name":"dailyLimitUsd","outputs":[{"name":"","type":"uint256"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[{"name":"wallet","type":"address"}],"name":"getUserLimit",
     "outputs":[{"name":"","type":"uint256"}],"stateMutability":"view","type":"function"},
    {"inputs":[],"name":"getFeeTiers","outputs":[
        {"name":"thresholds","type":"uint256[]"},{"name":"bps","type":"uint16[]"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[{"name":"token","type":"address"}],"name":"fixedUsdPrice",
     "outputs":[{"name":"","type":"uint256"}],"stateMutability":"view","type":"function"},
    {"inputs":[{"name":"token","type":"address"}],"name":"supportedToken",
     "outputs":[{"name":"","type":"bool"}],"stateMutability":"view","type":"function"},
    {"inputs":[],"name":"getSupportedTokens","outputs":[{"name":"","type":"address[]"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[],"name":"merkleRoot","outputs":[{"name":"","type":"bytes32"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[],"name":"oracle","outputs":[{"name":"","type":"address"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[],"name":"isLocked","outputs":[{"name":"","type":"bool"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[],"name":"getRoundInfo","outputs":[
        {"name":"roundId","type":"uint256"},{"name":"startTime","type":"uint256"},
        {"name":"isActive","type":"bool"},{"name":"paused","type":"bool"},
        {"name":"limitUsd","type":"uint256"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[],"name":"getVaultBalances","outputs":[
        {"name":"woneBalance","type":"uint256"},{"name":"usdcBalance","type":"uint256"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[],"name":"wONE","outputs":[{"name":"","type":"address"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[],"name":"usdc","outputs":[{"name":"","type":"address"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[{"name":"tokenIn","type":"address"},{"name":"amount","type":"uint256"},
               {"name":"redeemIn","type":"address"},{"name":"proof","type":"bytes32[]"}],
     "name":"redeem","outputs":[],"stateMutability":"nonpayable","type":"function"},
]

# Vault-aggregated oracles come in three shapes; each ABI is tried in turn.
ORACLE_LATEST_PRICE_ABI = [
    {"inputs":[],"name":"latestPrice","outputs":[
        {"name":"price","type":"int256"},{"name":"decimals","type":"uint8"}],
     "stateMutability":"view","type":"function"},
]

ORACLE_LATEST_ANSWER_ABI = [
    {"inputs":[],"name":"latestAnswer","outputs":[{"name":"","type":"int256"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[],"name":"decimals","outputs":[{"name":"","type":"uint8"}],
     "stateMutability":"view","type":"function"},
]

CHAINLINK_ABI = [
    {"inputs":[],"name":"latestRoundData","outputs":[
        {"name":"roundId","type":"uint80"},{"name":"answer","type":"int256"},
        {"name":"startedAt","type":"uint256"},{"name":"updatedAt","type":"uint256"},
        {"name":"answeredInRound","type":"uint80"}],
     "stateMutability":"view","type":"function"},
    {"inputs":[],"name":"decimals","outputs":[{"name":"","type":"uint8"}],
     "stateMutability":"view","type":"function"},
]
