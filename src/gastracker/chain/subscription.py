"""JSON-RPC ``eth_subscribe`` over a websocket connection.

Opening the subscription performs the handshake and waits for the node to
confirm the subscription id, so callers learn immediately whether push
delivery is available.
"""

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import websockets
from websockets.exceptions import WebSocketException

from gastracker.chain.client import Subscription
from gastracker.exceptions import MalformedUpstreamValue, TransportUnavailable
from gastracker.logging import get_logger

logger = get_logger(__name__)


class EthSubscription(Subscription):
    """A confirmed ``eth_subscribe`` stream.

    Use :meth:`open` to create one. Iterating yields the ``result`` payload of
    each notification, passed through ``decode`` when given. Events that
    ``decode`` rejects with MalformedUpstreamValue are skipped. A dropped or
    cleanly closed connection ends iteration with TransportUnavailable.
    """

    def __init__(
        self,
        connection: Any,
        subscription_id: str,
        decode: Callable[[Any], Any] | None = None,
    ) -> None:
        self._connection = connection
        self._subscription_id = subscription_id
        self._decode = decode
        self._closed = False

    @classmethod
    async def open(
        cls,
        url: str,
        params: list[Any],
        decode: Callable[[Any], Any] | None = None,
        open_timeout: float = 10.0,
    ) -> "EthSubscription":
        """Connect to ``url`` and subscribe with ``params``.

        Raises:
            TransportUnavailable: no URL, connection refused, handshake
                timeout, or the node rejected the subscription.
        """
        if not url:
            raise TransportUnavailable("no websocket endpoint configured")

        try:
            connection = await websockets.connect(url, open_timeout=open_timeout)
        except (OSError, WebSocketException, asyncio.TimeoutError) as exc:
            raise TransportUnavailable(f"websocket connect failed: {exc}") from exc

        request = {"jsonrpc": "2.0", "id": 1, "method": "eth_subscribe", "params": params}
        try:
            await connection.send(json.dumps(request))
            reply = json.loads(
                await asyncio.wait_for(connection.recv(), timeout=open_timeout)
            )
        except (OSError, WebSocketException, asyncio.TimeoutError, ValueError) as exc:
            await connection.close()
            raise TransportUnavailable(f"eth_subscribe handshake failed: {exc}") from exc

        subscription_id = reply.get("result") if isinstance(reply, dict) else None
        if not isinstance(subscription_id, str):
            await connection.close()
            error = reply.get("error") if isinstance(reply, dict) else reply
            raise TransportUnavailable(f"eth_subscribe rejected: {error}")

        logger.debug("eth_subscription_opened", url=url, subscription=subscription_id)
        return cls(connection, subscription_id, decode)

    async def __aiter__(self) -> AsyncIterator[Any]:
        try:
            async for message in self._connection:
                try:
                    data = json.loads(message)
                except ValueError:
                    logger.warning("eth_subscription_bad_json")
                    continue
                params = data.get("params") if isinstance(data, dict) else None
                if not isinstance(params, dict):
                    continue
                if params.get("subscription") != self._subscription_id:
                    continue
                result = params.get("result")
                if self._decode is not None:
                    try:
                        result = self._decode(result)
                    except MalformedUpstreamValue as exc:
                        logger.warning("eth_subscription_event_rejected", error=str(exc))
                        continue
                yield result
        except WebSocketException as exc:
            raise TransportUnavailable(f"subscription dropped: {exc}") from exc
        raise TransportUnavailable("subscription stream ended")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._connection.close()
