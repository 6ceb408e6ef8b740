"""Live feed state machine shared by chain monitors and the price oracle.

A feed tries push delivery first and falls back to fixed-interval polling:

  DISCONNECTED -> SUBSCRIBED -> POLLING -> STOPPED
  DISCONNECTED -> POLLING            (push unavailable or disabled)
  any state    -> STOPPED

Every transition bumps an epoch. Work started under an older epoch (a poll
tick still in flight, an event from a dropped subscription) is dropped when
it completes. STOPPED is terminal.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from typing import Any

from gastracker.chain.client import Subscription
from gastracker.exceptions import FetchError, InvalidFeedTransition, TransportUnavailable
from gastracker.logging import get_logger
from gastracker.models import FeedState

logger = get_logger(__name__)

_ALLOWED_TRANSITIONS: dict[FeedState, frozenset[FeedState]] = {
    FeedState.DISCONNECTED: frozenset(
        {FeedState.SUBSCRIBED, FeedState.POLLING, FeedState.STOPPED}
    ),
    FeedState.SUBSCRIBED: frozenset({FeedState.POLLING, FeedState.STOPPED}),
    FeedState.POLLING: frozenset({FeedState.STOPPED}),
    FeedState.STOPPED: frozenset(),
}


class LiveFeed(ABC):
    """Base class for a subscription-first, polling-fallback feed.

    Subclasses supply the transport hooks (:meth:`_open_subscription`,
    :meth:`_fetch`, :meth:`_handle_event`) and what to do with results
    (:meth:`_apply`, :meth:`_on_fetch_failure`). The base class owns
    scheduling, cancellation and stale-result suppression.

    Args:
        name: Identifier used in logs and task names.
        poll_interval: Seconds between polling ticks.
        subscribe: When False, skip the push attempt and poll immediately.
    """

    def __init__(self, name: str, poll_interval: float, subscribe: bool = True) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self._name = name
        self._poll_interval = poll_interval
        self._subscribe = subscribe
        self._state = FeedState.DISCONNECTED
        self._epoch = 0
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._inflight: set[asyncio.Task] = set()  # type: ignore[type-arg]
        self._log = logger.bind(feed=name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._task is not None and self._state is not FeedState.STOPPED

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Begin acquiring data in the background. Returns immediately."""
        if self._state is FeedState.STOPPED:
            self._log.warning("feed_start_after_stop")
            return
        if self._task is not None:
            self._log.warning("feed_already_running")
            return
        self._task = asyncio.create_task(self._run(), name=f"feed:{self._name}")
        self._log.info("feed_started", poll_interval=self._poll_interval)

    def halt(self) -> list[asyncio.Task]:  # type: ignore[type-arg]
        """Enter STOPPED and cancel all work without waiting for it.

        Once this returns no further result is applied or published. Safe to
        call repeatedly.

        Returns:
            The cancelled tasks, for callers that want to reap them.
        """
        if self._state is FeedState.STOPPED:
            return []
        self._transition(FeedState.STOPPED)
        tasks = list(self._inflight)
        if self._task is not None:
            tasks.append(self._task)
        self._inflight.clear()
        self._task = None
        for task in tasks:
            task.cancel()
        return tasks

    async def stop(self) -> None:
        """Stop the feed and wait for its cancelled tasks to unwind."""
        tasks = self.halt()
        current = asyncio.current_task()
        pending = [task for task in tasks if task is not current]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if tasks:
            self._log.info("feed_stopped")

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _transition(self, target: FeedState) -> None:
        if target not in _ALLOWED_TRANSITIONS[self._state]:
            raise InvalidFeedTransition(
                f"{self._name}: {self._state.value} -> {target.value} is not allowed"
            )
        previous = self._state
        self._state = target
        self._epoch += 1
        self._log.info(
            "feed_state_changed", from_state=previous.value, to_state=target.value
        )

    def _is_current(self, epoch: int) -> bool:
        return epoch == self._epoch and self._state is not FeedState.STOPPED

    async def _run(self) -> None:
        if self._subscribe:
            try:
                await self._run_subscribed()
            except asyncio.CancelledError:
                raise
            except TransportUnavailable as exc:
                self._log.info("feed_push_unavailable", reason=str(exc))
            except Exception:
                self._log.warning("feed_subscription_error", exc_info=True)

        if self._state is FeedState.STOPPED:
            return
        self._transition(FeedState.POLLING)
        await self._poll_loop()

    async def _run_subscribed(self) -> None:
        subscription = await self._open_subscription()
        try:
            self._transition(FeedState.SUBSCRIBED)
            epoch = self._epoch
            await self._refresh(epoch)
            async for event in subscription:
                if not self._is_current(epoch):
                    break
                await self._handle_event(event, epoch)
            self._log.info("feed_push_ended")
        finally:
            try:
                await subscription.close()
            except Exception:
                self._log.debug("feed_subscription_close_failed", exc_info=True)

    async def _poll_loop(self) -> None:
        """Fire one independent fetch per tick, starting immediately."""
        epoch = self._epoch
        while self._is_current(epoch):
            self._spawn(self._refresh(epoch))
            await asyncio.sleep(self._poll_interval)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _refresh(self, epoch: int) -> None:
        """Run one fetch and apply or discard its outcome."""
        try:
            value = await self._fetch()
        except FetchError as exc:
            if self._is_current(epoch):
                self._on_fetch_failure(exc)
            return
        except Exception as exc:
            self._log.warning("feed_fetch_unexpected_error", exc_info=True)
            if self._is_current(epoch):
                self._on_fetch_failure(exc)
            return

        if not self._is_current(epoch):
            self._log.debug("feed_stale_result_dropped", epoch=epoch)
            return
        self._apply(value)

    def _publish(self, callback: Callable[..., None] | None, *args: Any) -> None:
        """Invoke a consumer callback; a failing consumer never stops the feed."""
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            self._log.warning("feed_callback_error", exc_info=True)

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def _open_subscription(self) -> Subscription:
        """Establish push delivery or raise TransportUnavailable."""
        ...

    @abstractmethod
    async def _fetch(self) -> Any:
        """Perform one pull request; raise FetchError on failure."""
        ...

    @abstractmethod
    async def _handle_event(self, event: Any, epoch: int) -> None:
        """React to one pushed event."""
        ...

    @abstractmethod
    def _apply(self, value: Any) -> None:
        """Apply a successful fetch result. Must not await."""
        ...

    @abstractmethod
    def _on_fetch_failure(self, exc: Exception) -> None:
        """Record a failed fetch. Must not await."""
        ...
