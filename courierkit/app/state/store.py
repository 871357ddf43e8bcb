"""Application Store - composition root.

Builds and owns every collaborator of the client: configuration, event bus,
token store, gateway, domain services and the two state stores. Instances
are constructed explicitly and passed to consumers; there is no
process-wide singleton.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from courierkit.shared.core.configuration import ClientConfig
from courierkit.shared.core.event_bus import EventBus
from courierkit.shared.domain.auth.service import AuthService
from courierkit.shared.domain.orders.service import OrderService
from courierkit.shared.domain.profile.service import ProfileService
from courierkit.shared.domain.tracking.service import (
    LocationProvider,
    LocationTracker,
    OrderRefresher,
    no_location,
)
from courierkit.shared.infrastructure.http.gateway import ApiGateway
from courierkit.shared.infrastructure.storage.backends import KeyValueStorage, create_storage
from courierkit.shared.infrastructure.storage.token_store import TokenStore

from .order_state import OrderState
from .session_state import SessionState

logger = logging.getLogger(__name__)


class Store:
    """Wires and owns the client's state stores.

    Usage:
        store = Store(config)
        await store.initialize()
        await store.session.login(email, password)
        await store.orders.refresh_all()
        ...
        await store.aclose()
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        event_bus: Optional[EventBus] = None,
        storage: Optional[KeyValueStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        location_provider: LocationProvider = no_location,
    ) -> None:
        """Build the object graph.

        Args:
            config: Client configuration (defaults when omitted)
            event_bus: Shared bus (a new one when omitted)
            storage: Token storage backend (probed from config when omitted)
            transport: httpx transport for the gateway, used by tests
            location_provider: Device position source for location tracking
        """
        self.config = config or ClientConfig()
        self.bus = event_bus or EventBus()

        self.token_store = TokenStore(
            storage or create_storage(self.config.storage),
            key=self.config.storage.token_key,
            event_bus=self.bus,
        )
        self.gateway = ApiGateway(
            self.token_store,
            base_url=self.config.api.base_url,
            timeout=self.config.api.timeout,
            transport=transport,
        )

        self.auth_service = AuthService(self.gateway, self.token_store)
        self.profile_service = ProfileService(self.gateway)
        self.order_service = OrderService(self.gateway, self.config.api.resource_base_url)

        self.session = SessionState(self.bus, self.token_store, self.auth_service, self.profile_service)
        self.orders = OrderState(self.bus, self.order_service, self.profile_service)

        self.location_tracker = LocationTracker(
            self.profile_service,
            interval=self.config.polling.location_interval,
            provider=location_provider,
            event_bus=self.bus,
        )
        self.order_refresher = OrderRefresher(
            self.orders.refresh_all,
            interval=self.config.polling.order_refresh_interval,
        )

    async def initialize(self) -> None:
        """Load the stored token and replay the session.

        Must complete before the first authenticated request.
        """
        await self.token_store.initialize()
        await self.session.initialize()
        logger.info(f"Store initialized (authenticated: {self.session.is_authenticated})")

    def start_polling(self, location: bool = True, orders: bool = True) -> None:
        if orders:
            self.order_refresher.start()
        if location:
            self.location_tracker.start()

    async def stop_polling(self) -> None:
        await self.order_refresher.stop()
        await self.location_tracker.stop()

    async def aclose(self) -> None:
        """Stop polling, drain pending events and close the HTTP client."""
        await self.stop_polling()
        await self.bus.drain()
        await self.gateway.aclose()

    async def __aenter__(self) -> "Store":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
