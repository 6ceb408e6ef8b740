"""web3.py-backed chain and pool clients.

Pull requests go over ``AsyncWeb3`` with an HTTP provider; push delivery uses
:class:`EthSubscription` against the network's websocket endpoint.
"""

from decimal import Decimal
from typing import Any

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from gastracker.chain.client import ChainClient, PoolClient, Subscription
from gastracker.chain.subscription import EthSubscription
from gastracker.config import MonitorSettings, NetworkConfig, OracleSettings
from gastracker.exceptions import FetchError, MalformedUpstreamValue
from gastracker.logging import get_logger
from gastracker.models import FeeQuote

logger = get_logger(__name__)

SWAP_EVENT_SIGNATURE = "Swap(address,address,int256,int256,uint160,uint128,int24)"
SWAP_TOPIC = Web3.to_hex(Web3.keccak(text=SWAP_EVENT_SIGNATURE))

_MAX_UINT160 = 2**160 - 1
_WORD_HEX_LEN = 64

SLOT0_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "slot0",
        "outputs": [
            {"internalType": "uint160", "name": "sqrtPriceX96", "type": "uint160"},
            {"internalType": "int24", "name": "tick", "type": "int24"},
            {"internalType": "uint16", "name": "observationIndex", "type": "uint16"},
            {"internalType": "uint16", "name": "observationCardinality", "type": "uint16"},
            {"internalType": "uint16", "name": "observationCardinalityNext", "type": "uint16"},
            {"internalType": "uint8", "name": "feeProtocol", "type": "uint8"},
            {"internalType": "bool", "name": "unlocked", "type": "bool"},
        ],
        "stateMutability": "view",
        "type": "function",
    }
]


def parse_quantity(value: Any, field: str) -> int:
    """Coerce an upstream quantity (int or hex/decimal string) to an int.

    Raises:
        MalformedUpstreamValue: not an integer quantity, or negative.
    """
    if isinstance(value, bool):
        raise MalformedUpstreamValue(f"{field}: boolean is not a quantity")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = int(value, 0)
        except ValueError as exc:
            raise MalformedUpstreamValue(f"{field}: unparsable {value!r}") from exc
    elif isinstance(value, Decimal) and value == value.to_integral_value():
        parsed = int(value)
    else:
        raise MalformedUpstreamValue(f"{field}: unexpected {type(value).__name__}")
    if parsed < 0:
        raise MalformedUpstreamValue(f"{field}: negative value {parsed}")
    return parsed


def decode_swap_sqrt_price(log: Any) -> int:
    """Extract sqrtPriceX96 from a raw Uniswap V3 ``Swap`` log.

    The non-indexed data is five 32-byte words:
    amount0, amount1, sqrtPriceX96, liquidity, tick.
    """
    if not isinstance(log, dict):
        raise MalformedUpstreamValue("swap log is not an object")
    data = log.get("data")
    if isinstance(data, (bytes, bytearray)):
        data = data.hex()
    if not isinstance(data, str):
        raise MalformedUpstreamValue("swap log has no data")
    data = data[2:] if data.startswith("0x") else data
    if len(data) < 5 * _WORD_HEX_LEN:
        raise MalformedUpstreamValue(f"swap log data too short ({len(data)} hex chars)")
    word = data[2 * _WORD_HEX_LEN : 3 * _WORD_HEX_LEN]
    try:
        sqrt_price = int(word, 16)
    except ValueError as exc:
        raise MalformedUpstreamValue("swap log data is not hex") from exc
    if sqrt_price > _MAX_UINT160:
        raise MalformedUpstreamValue("sqrtPriceX96 exceeds uint160")
    return sqrt_price


class Web3ChainClient(ChainClient):
    """Fee access for one EVM network via JSON-RPC."""

    def __init__(self, network: NetworkConfig, settings: MonitorSettings) -> None:
        self._network = network
        self._settings = settings
        self._w3 = AsyncWeb3(
            AsyncHTTPProvider(
                network.rpc_url,
                request_kwargs={"timeout": settings.request_timeout},
            )
        )

    @property
    def network(self) -> NetworkConfig:
        return self._network

    async def fetch_fees(self) -> FeeQuote:
        """Read the latest block's base fee and the node's priority fee estimate.

        Chains without EIP-1559 report no base fee and are read as zero. When
        the priority fee query fails, the configured fallback is used and the
        quote is flagged as estimated.
        """
        try:
            block = await self._w3.eth.get_block("latest")
        except Exception as exc:
            raise FetchError(f"{self._network.id}: get_block failed: {exc}") from exc
        if not block:
            raise FetchError(f"{self._network.id}: latest block unavailable")

        base_fee = parse_quantity(block.get("baseFeePerGas", 0) or 0, "baseFeePerGas")

        estimated = False
        try:
            raw_priority = await self._w3.eth.max_priority_fee
        except Exception:
            logger.debug("priority_fee_query_failed", network=self._network.id, exc_info=True)
            raw_priority = None
        if raw_priority is None:
            priority_fee = self._settings.fallback_priority_fee_wei
            estimated = True
        else:
            priority_fee = parse_quantity(raw_priority, "maxPriorityFeePerGas")

        return FeeQuote(
            base_fee=base_fee,
            priority_fee=priority_fee,
            priority_fee_estimated=estimated,
        )

    async def subscribe_blocks(self) -> Subscription:
        return await EthSubscription.open(
            self._network.ws_url,
            ["newHeads"],
            open_timeout=self._settings.subscribe_timeout,
        )

    async def close(self) -> None:
        await self._w3.provider.disconnect()


class UniswapV3PoolClient(PoolClient):
    """sqrtPriceX96 access for a Uniswap V3 style pool."""

    def __init__(self, settings: OracleSettings, subscribe_timeout: float = 10.0) -> None:
        self._settings = settings
        self._subscribe_timeout = subscribe_timeout
        self._address = Web3.to_checksum_address(settings.pool_address)
        self._w3 = AsyncWeb3(AsyncHTTPProvider(settings.rpc_url))
        self._pool = self._w3.eth.contract(address=self._address, abi=SLOT0_ABI)

    async def fetch_sqrt_price_x96(self) -> int:
        try:
            slot0 = await self._pool.functions.slot0().call()
        except Exception as exc:
            raise FetchError(f"slot0 call failed: {exc}") from exc
        if not slot0:
            raise MalformedUpstreamValue("slot0 returned nothing")
        return parse_quantity(slot0[0], "sqrtPriceX96")

    async def subscribe_prices(self) -> Subscription:
        return await EthSubscription.open(
            self._settings.ws_url,
            ["logs", {"address": self._address, "topics": [SWAP_TOPIC]}],
            decode=decode_swap_sqrt_price,
            open_timeout=self._subscribe_timeout,
        )

    async def close(self) -> None:
        await self._w3.provider.disconnect()
