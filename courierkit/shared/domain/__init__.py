"""
Shared Domain Module
====================

Wire models and the typed services over the courier backend:

- auth: register / login / logout (persists the token on success)
- profile: profile, availability, location, stats
- orders: pending / assigned lists and the delivery lifecycle
- tracking: simple polling loops
"""

from courierkit.shared.domain.models import (
    AuthSession,
    Availability,
    DeliveryBoy,
    DeliveryBoyProfile,
    DeliveryStats,
    Order,
    OrderStatus,
    RegisterRequest,
    can_transition,
)
from courierkit.shared.domain.auth import AuthService
from courierkit.shared.domain.profile import ProfileService
from courierkit.shared.domain.orders import OrderService
from courierkit.shared.domain.tracking import LocationTracker, OrderRefresher

__all__ = [
    # Models
    "AuthSession",
    "Availability",
    "DeliveryBoy",
    "DeliveryBoyProfile",
    "DeliveryStats",
    "Order",
    "OrderStatus",
    "RegisterRequest",
    "can_transition",
    # Services
    "AuthService",
    "ProfileService",
    "OrderService",
    "LocationTracker",
    "OrderRefresher",
]
