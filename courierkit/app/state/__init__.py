"""State management for the courier client.

Architecture:
- SessionState: courier session (user, profile, credential)
- OrderState: pending / assigned lists, selection and stats
- Store: composition root that builds and owns both
"""

from .order_state import OrderState, coerce_orders, sorted_for_display
from .session_state import SessionState, SessionStatus
from .store import Store

__all__ = [
    "OrderState",
    "SessionState",
    "SessionStatus",
    "Store",
    "coerce_orders",
    "sorted_for_display",
]
