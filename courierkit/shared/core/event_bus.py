from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeAlias

EventPayload: TypeAlias = Dict[str, Any]
EventHandler: TypeAlias = Callable[[EventPayload], Awaitable[None]]

logger = logging.getLogger(__name__)


class EventBus:
    """In-process pub/sub hub used by the state stores to announce changes.

    Handlers run as independent tasks so a slow or failing subscriber never
    blocks the store action that published the event.

    The state topics (``session.changed``, ``orders.changed``...) carry full
    snapshots, so the bus keeps the last payload per topic. A view that
    subscribes with ``replay=True`` after the stores have started gets the
    current snapshot straight away instead of waiting for the next change.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._last_payloads: Dict[str, EventPayload] = {}
        # Created lazily so the bus can be built before an event loop exists
        self._lock: Optional[asyncio.Lock] = None
        self._loop_id: Optional[int] = None
        self._pending_tasks: set[asyncio.Task] = set()

    def _ensure_lock(self) -> asyncio.Lock:
        """Return a lock bound to the running loop, recreating it after a loop change."""
        try:
            loop_id = id(asyncio.get_running_loop())
        except RuntimeError:
            loop_id = None

        if self._lock is None or (loop_id is not None and self._loop_id != loop_id):
            self._lock = asyncio.Lock()
            self._loop_id = loop_id
        return self._lock

    async def subscribe(self, topic: str, handler: EventHandler, replay: bool = False) -> None:
        """Register an async handler for a topic (duplicates are ignored).

        Args:
            topic: Topic name, see ``courierkit.shared.core.events``
            handler: Coroutine function taking the payload
            replay: Also deliver the topic's last payload, if any, right away
        """
        async with self._ensure_lock():
            if handler in self._subscribers[topic]:
                return
            self._subscribers[topic].append(handler)
            last = self._last_payloads.get(topic)

        if replay and last is not None:
            logger.debug(f"Replaying last '{topic}' payload to new subscriber")
            self._dispatch(topic, handler, last)

    async def unsubscribe(self, topic: str, handler: EventHandler) -> None:
        async with self._ensure_lock():
            if handler in self._subscribers.get(topic, []):
                self._subscribers[topic].remove(handler)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    def last_payload(self, topic: str) -> Optional[EventPayload]:
        """Most recent payload published on ``topic``."""
        return self._last_payloads.get(topic)

    async def publish(self, topic: str, payload: EventPayload) -> None:
        """Record ``payload`` as the topic's latest and schedule every handler with it."""
        async with self._ensure_lock():
            self._last_payloads[topic] = payload
            handlers = list(self._subscribers.get(topic, []))

        if not handlers:
            logger.debug(f"No subscribers for topic '{topic}'")
            return

        logger.debug(f"Publishing '{topic}' to {len(handlers)} handler(s)")
        for handler in handlers:
            self._dispatch(topic, handler, payload)

    async def wait_until_idle(self, timeout: float = 5.0) -> bool:
        """Wait for dispatched handlers to finish.

        Handlers may publish further events, so this keeps draining until no
        task is left or ``timeout`` seconds have passed.

        Returns:
            True if the bus drained, False on timeout
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while self._pending_tasks:
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning(f"EventBus: {len(self._pending_tasks)} handler(s) still running after {timeout}s")
                return False
            await asyncio.wait(list(self._pending_tasks), timeout=remaining)
            # Let handlers scheduled by the finished ones register
            await asyncio.sleep(0)
        return True

    async def drain(self, timeout: float = 5.0) -> int:
        """Shut-down helper: wait for handlers, then cancel whatever is still running.

        Returns:
            Number of handler tasks that had to be cancelled
        """
        if await self.wait_until_idle(timeout):
            return 0

        stragglers = list(self._pending_tasks)
        for task in stragglers:
            task.cancel()
        await asyncio.gather(*stragglers, return_exceptions=True)
        logger.warning(f"EventBus: cancelled {len(stragglers)} handler(s) on shutdown")
        return len(stragglers)

    def _dispatch(self, topic: str, handler: EventHandler, payload: EventPayload) -> None:
        task = asyncio.create_task(self._safe_dispatch(topic, handler, payload))
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)

    async def _safe_dispatch(
        self,
        topic: str,
        handler: EventHandler,
        payload: EventPayload,
    ) -> None:
        """Run one handler, logging its failure instead of propagating it."""
        handler_name = getattr(handler, "__name__", str(handler))
        try:
            await handler(payload)
        except Exception as exc:
            logger.exception(
                f"EventBus handler '{handler_name}' failed for topic '{topic}'",
                exc_info=exc,
            )

    def clear(self) -> None:
        """Remove all subscriptions and remembered payloads."""
        self._subscribers.clear()
        self._last_payloads.clear()
