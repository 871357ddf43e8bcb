"""courierkit - courier delivery client core."""

from .shared.core.event_bus import EventBus
from .shared.core.configuration import ClientConfig, load_config
from .app.state import OrderState, SessionState, SessionStatus, Store

__all__ = [
    "ClientConfig",
    "EventBus",
    "OrderState",
    "SessionState",
    "SessionStatus",
    "Store",
    "load_config",
]

__version__ = "0.1.0"
