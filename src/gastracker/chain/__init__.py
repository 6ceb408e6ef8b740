"""Upstream access layer -- JSON-RPC fee reads, pool price reads, eth_subscribe streams."""

from gastracker.chain.client import ChainClient, PoolClient, Subscription
from gastracker.chain.subscription import EthSubscription
from gastracker.chain.web3_client import UniswapV3PoolClient, Web3ChainClient

__all__ = [
    "ChainClient",
    "EthSubscription",
    "PoolClient",
    "Subscription",
    "UniswapV3PoolClient",
    "Web3ChainClient",
]
