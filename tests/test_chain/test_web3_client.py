"""Tests for the web3.py-backed clients and upstream value parsing.

The AsyncWeb3 instance is swapped for a small fake so no RPC is made.
"""

from decimal import Decimal
from types import SimpleNamespace
from typing import Any

import pytest

from gastracker.chain.web3_client import (
    SWAP_TOPIC,
    UniswapV3PoolClient,
    Web3ChainClient,
    decode_swap_sqrt_price,
    parse_quantity,
)
from gastracker.config import MonitorSettings, NetworkConfig, OracleSettings
from gastracker.exceptions import FetchError, MalformedUpstreamValue, TransportUnavailable

GWEI = 10**9
Q96 = 2**96


class FakeEth:
    """Stands in for ``AsyncWeb3.eth``."""

    def __init__(
        self,
        block: dict[str, Any] | None = None,
        priority_fee: Any = 2 * GWEI,
        block_error: Exception | None = None,
        priority_error: Exception | None = None,
    ) -> None:
        self._block = block
        self._priority_fee = priority_fee
        self._block_error = block_error
        self._priority_error = priority_error

    async def get_block(self, block_identifier: str) -> dict[str, Any] | None:
        assert block_identifier == "latest"
        if self._block_error is not None:
            raise self._block_error
        return self._block

    async def _read_priority_fee(self) -> Any:
        if self._priority_error is not None:
            raise self._priority_error
        return self._priority_fee

    @property
    def max_priority_fee(self):
        return self._read_priority_fee()


def _word(value: int) -> str:
    return format(value % 2**256, "064x")


def _swap_log(sqrt_price: int) -> dict[str, Any]:
    data = "0x" + "".join(
        [_word(-1000), _word(2_000_000), _word(sqrt_price), _word(10**18), _word(-200_000)]
    )
    return {"address": "0x0", "topics": [SWAP_TOPIC], "data": data}


@pytest.fixture
def client(alpha_network: NetworkConfig) -> Web3ChainClient:
    return Web3ChainClient(alpha_network, MonitorSettings(fallback_priority_fee_wei=3 * GWEI))


class TestParseQuantity:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (0, 0),
            (12 * GWEI, 12 * GWEI),
            ("0x2540be400", 10 * GWEI),
            ("1000", 1000),
            (Decimal("42"), 42),
        ],
    )
    def test_accepts(self, value, expected) -> None:
        assert parse_quantity(value, "fee") == expected

    @pytest.mark.parametrize("value", [-1, "-0x1", "0xzz", "", 1.5, Decimal("1.5"), True, None])
    def test_rejects(self, value) -> None:
        with pytest.raises(MalformedUpstreamValue):
            parse_quantity(value, "fee")


class TestDecodeSwap:
    def test_topic_matches_uniswap_v3_swap(self) -> None:
        assert SWAP_TOPIC == "0xc42079f94a6350d7e6235f29174924f928cc2ac818eb64fed8004e115fbcca67"

    def test_extracts_sqrt_price(self) -> None:
        assert decode_swap_sqrt_price(_swap_log(3 * Q96)) == 3 * Q96

    def test_accepts_bytes_data(self) -> None:
        log = _swap_log(Q96)
        log["data"] = bytes.fromhex(log["data"][2:])
        assert decode_swap_sqrt_price(log) == Q96

    def test_short_data(self) -> None:
        with pytest.raises(MalformedUpstreamValue):
            decode_swap_sqrt_price({"data": "0x" + _word(Q96) * 3})

    def test_sqrt_price_above_uint160(self) -> None:
        with pytest.raises(MalformedUpstreamValue):
            decode_swap_sqrt_price(_swap_log(2**160))

    @pytest.mark.parametrize("log", [None, "0x00", {}, {"data": 5}])
    def test_not_a_log(self, log) -> None:
        with pytest.raises(MalformedUpstreamValue):
            decode_swap_sqrt_price(log)


class TestFetchFees:
    @pytest.mark.asyncio
    async def test_reads_base_and_priority_fee(self, client: Web3ChainClient) -> None:
        client._w3 = SimpleNamespace(eth=FakeEth(block={"baseFeePerGas": 10 * GWEI}))
        quote = await client.fetch_fees()
        assert quote.base_fee == 10 * GWEI
        assert quote.priority_fee == 2 * GWEI
        assert quote.priority_fee_estimated is False

    @pytest.mark.asyncio
    async def test_hex_values(self, client: Web3ChainClient) -> None:
        client._w3 = SimpleNamespace(
            eth=FakeEth(block={"baseFeePerGas": "0x2540be400"}, priority_fee="0x3b9aca00")
        )
        quote = await client.fetch_fees()
        assert quote.base_fee == 10 * GWEI
        assert quote.priority_fee == GWEI

    @pytest.mark.asyncio
    async def test_missing_base_fee_reads_as_zero(self, client: Web3ChainClient) -> None:
        client._w3 = SimpleNamespace(eth=FakeEth(block={"number": 1}))
        quote = await client.fetch_fees()
        assert quote.base_fee == 0

    @pytest.mark.asyncio
    async def test_priority_fee_fallback_is_flagged(self, client: Web3ChainClient) -> None:
        client._w3 = SimpleNamespace(
            eth=FakeEth(
                block={"baseFeePerGas": GWEI},
                priority_error=ValueError("method not found"),
            )
        )
        quote = await client.fetch_fees()
        assert quote.priority_fee == 3 * GWEI
        assert quote.priority_fee_estimated is True

    @pytest.mark.asyncio
    async def test_block_failure_raises_fetch_error(self, client: Web3ChainClient) -> None:
        client._w3 = SimpleNamespace(eth=FakeEth(block_error=ConnectionError("refused")))
        with pytest.raises(FetchError, match="alpha"):
            await client.fetch_fees()

    @pytest.mark.asyncio
    async def test_empty_block_raises_fetch_error(self, client: Web3ChainClient) -> None:
        client._w3 = SimpleNamespace(eth=FakeEth(block=None))
        with pytest.raises(FetchError):
            await client.fetch_fees()

    @pytest.mark.asyncio
    async def test_negative_base_fee_is_malformed(self, client: Web3ChainClient) -> None:
        client._w3 = SimpleNamespace(eth=FakeEth(block={"baseFeePerGas": -5}))
        with pytest.raises(MalformedUpstreamValue):
            await client.fetch_fees()


class TestSubscribeWithoutEndpoint:
    @pytest.mark.asyncio
    async def test_chain_without_ws_url(self, beta_network: NetworkConfig) -> None:
        client = Web3ChainClient(beta_network, MonitorSettings())
        with pytest.raises(TransportUnavailable):
            await client.subscribe_blocks()

    @pytest.mark.asyncio
    async def test_pool_without_ws_url(self) -> None:
        pool = UniswapV3PoolClient(OracleSettings(ws_url=""))
        with pytest.raises(TransportUnavailable):
            await pool.subscribe_prices()


class TestPoolClient:
    @pytest.mark.asyncio
    async def test_reads_slot0(self) -> None:
        pool = UniswapV3PoolClient(OracleSettings())

        async def call() -> list[Any]:
            return [5 * Q96, -200_000, 1, 1, 1, 0, True]

        pool._pool = SimpleNamespace(
            functions=SimpleNamespace(slot0=lambda: SimpleNamespace(call=call))
        )
        assert await pool.fetch_sqrt_price_x96() == 5 * Q96

    @pytest.mark.asyncio
    async def test_slot0_failure(self) -> None:
        pool = UniswapV3PoolClient(OracleSettings())

        async def call() -> list[Any]:
            raise TimeoutError("node timeout")

        pool._pool = SimpleNamespace(
            functions=SimpleNamespace(slot0=lambda: SimpleNamespace(call=call))
        )
        with pytest.raises(FetchError, match="slot0"):
            await pool.fetch_sqrt_price_x96()
