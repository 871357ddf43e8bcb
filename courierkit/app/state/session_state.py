"""Session State Management.

Owns the courier session (user, profile, credential) and exposes the only
legal ways to change it. Every change is announced on the EventBus so a UI
layer can re-render.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Dict, Iterator, Optional

from courierkit.shared.core import events
from courierkit.shared.core.event_bus import EventBus, EventPayload
from courierkit.shared.domain.auth.service import AuthService
from courierkit.shared.domain.models import (
    Availability,
    DeliveryBoy,
    DeliveryBoyProfile,
    RegisterRequest,
)
from courierkit.shared.domain.profile.service import ProfileService
from courierkit.shared.infrastructure.storage.token_store import TokenStore

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


# Action families with their own last-error slot
AUTH = "auth"
PROFILE = "profile"
AVAILABILITY = "availability"
LOCATION = "location"
SESSION_ERROR_FAMILIES = (AUTH, PROFILE, AVAILABILITY, LOCATION)


class SessionState:
    """State for the authenticated courier.

    ``is_authenticated`` is derived, never stored: it is true exactly when a
    user is loaded and the TokenStore holds a credential. A 401 anywhere
    evicts the credential, which flips it to false immediately; the
    ``auth.token.cleared`` event then resets the user as well.
    """

    def __init__(
        self,
        event_bus: EventBus,
        token_store: TokenStore,
        auth_service: AuthService,
        profile_service: ProfileService,
    ) -> None:
        """Initialize session state.

        Args:
            event_bus: Bus for change notifications and token eviction events
            token_store: Holder of the bearer credential
            auth_service: Login/register/logout calls
            profile_service: Profile, availability and location calls
        """
        self.bus = event_bus
        self.token_store = token_store
        self.auth_service = auth_service
        self.profile_service = profile_service

        self.user: Optional[DeliveryBoy] = None
        self.profile: Optional[DeliveryBoyProfile] = None
        self.errors: Dict[str, Optional[str]] = {family: None for family in SESSION_ERROR_FAMILIES}

        self._in_flight = 0
        self._authenticating = 0
        self._started = False

    # --- Derived state ---

    @property
    def token(self) -> Optional[str]:
        return self.token_store.current()

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.token is not None

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def status(self) -> SessionStatus:
        if self._authenticating:
            return SessionStatus.AUTHENTICATING
        if self.is_authenticated:
            return SessionStatus.AUTHENTICATED
        return SessionStatus.UNAUTHENTICATED

    @property
    def error(self) -> Optional[str]:
        """Last login/registration error, the one a login screen shows."""
        return self.errors[AUTH]

    def error_for(self, family: str) -> Optional[str]:
        return self.errors[family]

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """Subscribe to token eviction and replay a persisted session.

        A stored token is confirmed by fetching the profile. If that fails
        (expired token, network down) the session silently stays logged out:
        no error is recorded for this startup case.
        """
        if self._started:
            return
        await self.bus.subscribe(events.TOPIC_TOKEN_CLEARED, self._handle_token_cleared)
        self._started = True

        if not self.token_store.initialized:
            await self.token_store.initialize()
        if self.token is None:
            await self._notify()
            return

        with self._loading():
            result = await self.profile_service.get_profile()

        if result.success:
            self.profile = result.data
            self.user = result.data
            logger.info(f"Session restored for courier {self.user.id}")
        else:
            self.user = None
            self.profile = None
            logger.info(f"Stored session could not be restored: {result.message}")
        await self._notify()

    # --- Public Actions ---

    async def login(self, email: str, password: str) -> bool:
        """Log in; on success the token is already persisted by the auth service."""
        self.errors[AUTH] = None
        with self._loading(authenticating=True):
            result = await self.auth_service.login(email, password)

        if result.success:
            self.user = result.data.user
            logger.info(f"Logged in as courier {self.user.id}")
        else:
            self.errors[AUTH] = result.message or "Login failed"
        await self._notify()
        return result.success

    async def register(self, request: RegisterRequest) -> bool:
        self.errors[AUTH] = None
        with self._loading(authenticating=True):
            result = await self.auth_service.register(request)

        if result.success:
            self.user = result.data.user
            logger.info(f"Registered courier {self.user.id}")
        else:
            self.errors[AUTH] = result.message or "Registration failed"
        await self._notify()
        return result.success

    async def logout(self) -> None:
        """End the session locally no matter what the server says."""
        with self._loading():
            result = await self.auth_service.logout()
        if not result.success:
            logger.warning(f"Server logout failed, clearing local session anyway: {result.message}")

        await self.auth_service.clear_auth()
        self._reset()
        await self._notify()

    async def fetch_profile(self) -> bool:
        self.errors[PROFILE] = None
        with self._loading():
            result = await self.profile_service.get_profile()

        if result.success:
            self.profile = result.data
            self.user = result.data
        else:
            self.errors[PROFILE] = result.message or "Failed to fetch profile"
        await self._notify()
        return result.success

    async def update_availability(self, status: Availability | str) -> bool:
        """Change availability; the stored user becomes the server's copy.

        Raises:
            ValueError: If ``status`` is not available/busy/offline
        """
        availability = Availability(status)
        self.errors[AVAILABILITY] = None
        with self._loading():
            result = await self.profile_service.update_availability(availability)

        if result.success:
            self.user = result.data
        else:
            self.errors[AVAILABILITY] = result.message or "Failed to update availability"
        await self._notify()
        return result.success

    async def update_location(self, latitude: float, longitude: float) -> bool:
        self.errors[LOCATION] = None
        result = await self.profile_service.update_location(latitude, longitude)
        if not result.success:
            self.errors[LOCATION] = result.message
        return result.success

    def clear_error(self, family: Optional[str] = None) -> None:
        if family is None:
            for key in self.errors:
                self.errors[key] = None
        else:
            self.errors[family] = None

    # --- Event Handlers ---

    async def _handle_token_cleared(self, payload: EventPayload) -> None:
        """Drop the user once the credential is gone (401 eviction or logout)."""
        if self.token is not None:
            # A new login landed before this event was handled
            return
        if self.user is None and self.profile is None:
            return
        logger.info(f"Session reset after token eviction ({payload.get('reason')})")
        self._reset()
        await self._notify()

    # --- Internals ---

    def _reset(self) -> None:
        self.user = None
        self.profile = None

    @contextmanager
    def _loading(self, authenticating: bool = False) -> Iterator[None]:
        self._in_flight += 1
        if authenticating:
            self._authenticating += 1
        try:
            yield
        finally:
            self._in_flight -= 1
            if authenticating:
                self._authenticating -= 1

    async def _notify(self) -> None:
        await self.bus.publish(
            events.TOPIC_SESSION_CHANGED,
            events.create_session_changed_event(
                status=self.status.value,
                is_authenticated=self.is_authenticated,
                user_id=self.user.id if self.user else None,
                error=self.error,
            ),
        )
