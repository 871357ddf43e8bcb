"""Canonical event topics and payload builders for courierkit."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from .event_bus import EventPayload

# Credential lifecycle
TOPIC_TOKEN_SAVED = "auth.token.saved"
TOPIC_TOKEN_CLEARED = "auth.token.cleared"

# State store changes
TOPIC_SESSION_CHANGED = "session.changed"
TOPIC_ORDERS_CHANGED = "orders.changed"
TOPIC_STATS_CHANGED = "stats.changed"
TOPIC_ORDER_SELECTED = "orders.selected"

# Polling
TOPIC_LOCATION_UPDATED = "tracking.location.updated"


def create_token_cleared_event(reason: str) -> EventPayload:
    """Create a credential cleared event.

    Args:
        reason: What evicted the credential ("logout", "unauthorized", ...)
    """
    return {"reason": reason, "ts": time.time()}


def create_token_saved_event() -> EventPayload:
    return {"ts": time.time()}


def create_session_changed_event(
    status: str,
    is_authenticated: bool,
    user_id: Optional[str] = None,
    error: Optional[str] = None,
) -> EventPayload:
    """Create a session changed event."""
    return {
        "status": status,
        "is_authenticated": is_authenticated,
        "user_id": user_id,
        "error": error,
    }


def create_orders_changed_event(
    action: str,
    pending_ids: List[str],
    assigned_ids: List[str],
    order_id: Optional[str] = None,
) -> EventPayload:
    """Create an orders changed event.

    Args:
        action: Store action that produced the change (e.g. "accept")
        pending_ids: Ids currently in the pending list
        assigned_ids: Ids currently in the assigned list
        order_id: The order the action targeted, if any
    """
    event: EventPayload = {
        "action": action,
        "pending_ids": pending_ids,
        "assigned_ids": assigned_ids,
    }
    if order_id is not None:
        event["order_id"] = order_id
    return event


def create_stats_changed_event(stats: Dict[str, Any]) -> EventPayload:
    return {"stats": stats}


def create_order_selected_event(order_id: Optional[str]) -> EventPayload:
    return {"order_id": order_id}


def create_location_updated_event(latitude: float, longitude: float, success: bool) -> EventPayload:
    return {
        "latitude": latitude,
        "longitude": longitude,
        "success": success,
        "ts": time.time(),
    }

