"""Simple polling loops: location reporting and order list refresh.

Device GPS acquisition is not part of this package; callers plug in a
location provider. The default provider reports nothing, so no location
request is ever sent until a real provider is supplied.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional, Tuple

from courierkit.shared.core import events
from courierkit.shared.core.event_bus import EventBus
from courierkit.shared.domain.profile.service import ProfileService

logger = logging.getLogger(__name__)

Coordinates = Tuple[float, float]
LocationProvider = Callable[[], Awaitable[Optional[Coordinates]]]


async def no_location() -> Optional[Coordinates]:
    return None


class PeriodicTask:
    """Runs ``tick`` now and then every ``interval`` seconds until stopped."""

    name = "periodic"

    def __init__(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name=f"courierkit-{self.name}")
        logger.info(f"Started {self.name} every {self.interval}s")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info(f"Stopped {self.name}")

    async def _run(self) -> None:
        while True:
            try:
                await self.tick()
            except Exception:
                logger.exception(f"{self.name} tick failed")
            await asyncio.sleep(self.interval)

    async def tick(self) -> None:
        raise NotImplementedError


class LocationTracker(PeriodicTask):
    """Pushes the device position to the backend on a fixed interval."""

    name = "location-tracking"

    def __init__(
        self,
        profile_service: ProfileService,
        interval: float = 30.0,
        provider: LocationProvider = no_location,
        event_bus: Optional[EventBus] = None,
        on_update: Optional[Callable[[bool], None]] = None,
    ) -> None:
        super().__init__(interval)
        self.profile_service = profile_service
        self.provider = provider
        self.event_bus = event_bus
        self.on_update = on_update

    async def tick(self) -> None:
        location = await self.provider()
        if location is None:
            return

        latitude, longitude = location
        result = await self.profile_service.update_location(latitude, longitude)
        if not result.success:
            logger.warning(f"Location update failed: {result.message}")

        if self.event_bus:
            await self.event_bus.publish(
                events.TOPIC_LOCATION_UPDATED,
                events.create_location_updated_event(latitude, longitude, result.success),
            )
        if self.on_update:
            self.on_update(result.success)


class OrderRefresher(PeriodicTask):
    """Calls a refresh coroutine (normally ``OrderState.refresh_all``) periodically."""

    name = "order-refresh"

    def __init__(self, refresh: Callable[[], Awaitable[None]], interval: float = 30.0) -> None:
        super().__init__(interval)
        self.refresh = refresh

    async def tick(self) -> None:
        await self.refresh()
