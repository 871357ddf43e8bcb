"""Token Store: single source of truth for the courier's bearer credential."""

from __future__ import annotations

import logging
from typing import Optional

from courierkit.shared.core import events
from courierkit.shared.core.event_bus import EventBus
from courierkit.shared.infrastructure.storage.backends import KeyValueStorage

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_KEY = "delivery_boy_token"


def mask_token(token: Optional[str]) -> str:
    """Short, log-safe rendering of a token."""
    if not token:
        return "<none>"
    return f"{token[:6]}..." if len(token) > 6 else "***"


class TokenStore:
    """Holds the bearer token in memory and mirrors it to durable storage.

    The in-memory value is authoritative for the life of the process. Storage
    failures are logged and swallowed: a failed write only means the courier
    has to log in again after a restart.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = DEFAULT_TOKEN_KEY,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self.storage = storage
        self.key = key
        self.event_bus = event_bus
        self._token: Optional[str] = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> Optional[str]:
        """Load the persisted token into memory.

        Returns:
            The loaded token, or None when nothing was persisted
        """
        try:
            stored = await self.storage.get_item(self.key)
        except Exception as e:
            logger.error(f"Failed to load token from storage: {e}")
            stored = None

        if stored:
            self._token = stored
        self._initialized = True
        logger.info(f"Token store initialized (token present: {self._token is not None})")
        return self._token

    def current(self) -> Optional[str]:
        """Return the in-memory token. Never touches storage."""
        return self._token

    async def save(self, token: str) -> None:
        """Replace the token in memory and storage."""
        if not token:
            raise ValueError("Cannot save an empty token")

        self._token = token
        try:
            await self.storage.set_item(self.key, token)
            logger.info(f"Token saved: {mask_token(token)}")
        except Exception as e:
            logger.error(f"Failed to persist token: {e}")

        if self.event_bus:
            await self.event_bus.publish(events.TOPIC_TOKEN_SAVED, events.create_token_saved_event())

    async def clear(self, reason: str = "logout") -> None:
        """Drop the token from memory and storage. Safe to call repeatedly."""
        had_token = self._token is not None
        self._token = None
        try:
            await self.storage.remove_item(self.key)
        except Exception as e:
            logger.error(f"Failed to remove token from storage: {e}")

        if had_token:
            logger.info(f"Token cleared ({reason})")
        if self.event_bus:
            await self.event_bus.publish(
                events.TOPIC_TOKEN_CLEARED,
                events.create_token_cleared_event(reason),
            )
