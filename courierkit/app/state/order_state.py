"""Order State Management.

Owns the pending and assigned order lists, the selected order and the
stats snapshot. Lists are only mutated after the server has confirmed a
transition, and always with the server's copy of the order.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional

from pydantic import ValidationError

from courierkit.shared.core import events
from courierkit.shared.core.event_bus import EventBus
from courierkit.shared.domain.models import DeliveryStats, Order, OrderStatus
from courierkit.shared.domain.orders.service import OrderService
from courierkit.shared.domain.profile.service import ProfileService

logger = logging.getLogger(__name__)

# Action families with their own last-error slot
PENDING = "pending"
ASSIGNED = "assigned"
STATS = "stats"
ACCEPT = "accept"
OUT_FOR_DELIVERY = "out_for_delivery"
DELIVERED = "delivered"
DETAILS = "details"
ORDER_ERROR_FAMILIES = (PENDING, ASSIGNED, STATS, ACCEPT, OUT_FOR_DELIVERY, DELIVERED, DETAILS)


def coerce_orders(entries: Iterable[Any], label: str) -> List[Order]:
    """Validate raw entries, dropping anything without a usable id.

    Duplicate ids keep their first occurrence. Dropped entries are logged,
    never surfaced as user-facing errors.
    """
    orders: List[Order] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning(f"Dropping {label} entry #{index}: not an object ({type(entry).__name__})")
            continue
        try:
            order = Order.from_payload(entry)
        except ValidationError as e:
            logger.warning(f"Dropping malformed {label} entry #{index}: {e.error_count()} validation error(s)")
            continue
        if order.id in seen:
            logger.warning(f"Dropping duplicate {label} entry for order {order.id}")
            continue
        seen.add(order.id)
        orders.append(order)
    return orders


def sorted_for_display(orders: Iterable[Order]) -> List[Order]:
    """Delivered orders last, otherwise in the order received."""
    return sorted(orders, key=lambda o: o.status == OrderStatus.DELIVERED)


class OrderState:
    """State for the courier's order lists."""

    def __init__(
        self,
        event_bus: EventBus,
        order_service: OrderService,
        profile_service: ProfileService,
    ) -> None:
        """Initialize order state.

        Args:
            event_bus: Bus for change notifications
            order_service: Order list and lifecycle calls
            profile_service: Source of the stats snapshot
        """
        self.bus = event_bus
        self.order_service = order_service
        self.profile_service = profile_service

        self.pending_orders: List[Order] = []
        self.assigned_orders: List[Order] = []
        self.selected_order: Optional[Order] = None
        self.stats: Optional[DeliveryStats] = None
        self.errors: Dict[str, Optional[str]] = {family: None for family in ORDER_ERROR_FAMILIES}

        self._in_flight = 0

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    def error_for(self, family: str) -> Optional[str]:
        return self.errors[family]

    def find(self, order_id: str) -> Optional[Order]:
        for order in self.assigned_orders + self.pending_orders:
            if order.id == order_id:
                return order
        return None

    # --- Fetching ---

    async def fetch_pending(self) -> bool:
        """Replace the pending list with the server's (filtered) list."""
        self.errors[PENDING] = None
        with self._loading():
            result = await self.order_service.get_pending_orders()

        if not result.success:
            logger.warning(f"Failed to fetch pending orders: {result.message}")
            self.errors[PENDING] = result.message or "Failed to fetch pending orders"
            return False

        orders = coerce_orders(result.data, "pending order")
        assigned_ids = self._ids(self.assigned_orders)
        claimed = [o.id for o in orders if o.id in assigned_ids]
        if claimed:
            logger.warning(f"Ignoring pending entries already assigned to this courier: {claimed}")
        self.pending_orders = [o for o in orders if o.id not in assigned_ids]
        logger.info(f"Pending orders: {len(self.pending_orders)}")
        await self._notify(PENDING)
        return True

    async def fetch_assigned(self) -> bool:
        """Replace the assigned list; those ids leave the pending list."""
        self.errors[ASSIGNED] = None
        with self._loading():
            result = await self.order_service.get_assigned_orders()

        if not result.success:
            logger.warning(f"Failed to fetch assigned orders: {result.message}")
            self.errors[ASSIGNED] = result.message or "Failed to fetch assigned orders"
            return False

        self.assigned_orders = coerce_orders(result.data, "assigned order")
        assigned_ids = self._ids(self.assigned_orders)
        self.pending_orders = [o for o in self.pending_orders if o.id not in assigned_ids]
        for order in self.assigned_orders:
            self._refresh_selection(order.id, order)
        logger.info(f"Assigned orders: {len(self.assigned_orders)}")
        await self._notify(ASSIGNED)
        return True

    async def fetch_stats(self) -> bool:
        self.errors[STATS] = None
        result = await self.profile_service.get_stats()
        if not result.success:
            logger.warning(f"Failed to fetch stats: {result.message}")
            self.errors[STATS] = result.message or "Failed to fetch stats"
            return False

        self.stats = result.data
        await self.bus.publish(
            events.TOPIC_STATS_CHANGED,
            events.create_stats_changed_event(self.stats.model_dump(mode="json")),
        )
        return True

    async def refresh_all(self) -> None:
        """Fetch pending, assigned and stats concurrently.

        Each fetch records its own error; one failing never stops the others.
        """
        with self._loading():
            results = await asyncio.gather(
                self.fetch_pending(),
                self.fetch_assigned(),
                self.fetch_stats(),
                return_exceptions=True,
            )
        for name, outcome in zip((PENDING, ASSIGNED, STATS), results):
            if isinstance(outcome, BaseException):
                logger.error(f"Refresh of {name} raised", exc_info=outcome)
            elif not outcome:
                logger.info(f"Refresh of {name} failed: {self.errors[name]}")

    # --- Lifecycle transitions ---

    async def accept_order(self, order_id: str) -> bool:
        """Claim a pending order; the assigned entry is the server's copy."""
        self.errors[ACCEPT] = None
        with self._loading():
            result = await self.order_service.accept_order(order_id)

        if not result.success:
            self.errors[ACCEPT] = result.message or "Failed to accept order"
            return False

        order: Order = result.data
        moved_ids = {order_id, order.id}
        self.pending_orders = [o for o in self.pending_orders if o.id not in moved_ids]
        self._upsert_assigned(order, previous_id=order_id)
        self._refresh_selection(order_id, order)
        logger.info(f"Accepted order {order.id}")
        await self._notify(ACCEPT, order.id)
        return True

    async def mark_out_for_delivery(self, order_id: str, notes: Optional[str] = None) -> bool:
        self.errors[OUT_FOR_DELIVERY] = None
        with self._loading():
            result = await self.order_service.mark_out_for_delivery(order_id, notes)

        if not result.success:
            self.errors[OUT_FOR_DELIVERY] = result.message or "Failed to mark order as out for delivery"
            return False

        order: Order = result.data
        self.pending_orders = [o for o in self.pending_orders if o.id not in (order_id, order.id)]
        self._upsert_assigned(order, previous_id=order_id)
        self._refresh_selection(order_id, order)
        logger.info(f"Order {order.id} is out for delivery")
        await self._notify(OUT_FOR_DELIVERY, order.id)
        return True

    async def mark_delivered(
        self,
        order_id: str,
        notes: Optional[str] = None,
        otp: Optional[str] = None,
    ) -> bool:
        """Complete a delivery, drop it from the lists and refresh stats."""
        self.errors[DELIVERED] = None
        with self._loading():
            result = await self.order_service.mark_delivered(order_id, notes, otp)

            if not result.success:
                self.errors[DELIVERED] = result.message or "Failed to mark order as delivered"
                return False

            done_ids = {order_id, result.data.id}
            self.assigned_orders = [o for o in self.assigned_orders if o.id not in done_ids]
            self.pending_orders = [o for o in self.pending_orders if o.id not in done_ids]
            if self.selected_order is not None and self.selected_order.id in done_ids:
                await self.select_order(None)
            logger.info(f"Order {order_id} delivered")
            await self._notify(DELIVERED, order_id)

            # Delivered count feeds the aggregate stats
            await self.fetch_stats()
        return True

    async def get_order_details(self, order_id: str) -> Optional[Order]:
        """Look an order up by id and make it the selection.

        A cached copy in either list is replaced in place by the fresh one.
        """
        self.errors[DETAILS] = None
        with self._loading():
            result = await self.order_service.get_order_details(order_id)

        if not result.success:
            self.errors[DETAILS] = result.message or "Failed to load order"
            return None

        order: Order = result.data
        self.assigned_orders = [order if o.id == order.id else o for o in self.assigned_orders]
        self.pending_orders = [order if o.id == order.id else o for o in self.pending_orders]
        await self.select_order(order)
        return order

    # --- Selection ---

    async def select_order(self, order: Optional[Order]) -> None:
        self.selected_order = order
        await self.bus.publish(
            events.TOPIC_ORDER_SELECTED,
            events.create_order_selected_event(order.id if order else None),
        )

    def clear_error(self, family: Optional[str] = None) -> None:
        if family is None:
            for key in self.errors:
                self.errors[key] = None
        else:
            self.errors[family] = None

    # --- Internals ---

    @staticmethod
    def _ids(orders: Iterable[Order]) -> set[str]:
        return {o.id for o in orders}

    def _upsert_assigned(self, order: Order, previous_id: str) -> None:
        """Replace the entry for ``order`` (or ``previous_id``) in place, else append."""
        for index, existing in enumerate(self.assigned_orders):
            if existing.id in (order.id, previous_id):
                self.assigned_orders[index] = order
                # Any second match would break id uniqueness
                self.assigned_orders = [
                    o for i, o in enumerate(self.assigned_orders)
                    if i == index or o.id not in (order.id, previous_id)
                ]
                return
        self.assigned_orders.append(order)

    def _refresh_selection(self, order_id: str, order: Order) -> None:
        if self.selected_order is not None and self.selected_order.id in (order_id, order.id):
            self.selected_order = order

    @contextmanager
    def _loading(self) -> Iterator[None]:
        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1

    async def _notify(self, action: str, order_id: Optional[str] = None) -> None:
        await self.bus.publish(
            events.TOPIC_ORDERS_CHANGED,
            events.create_orders_changed_event(
                action=action,
                pending_ids=[o.id for o in self.pending_orders],
                assigned_ids=[o.id for o in self.assigned_orders],
                order_id=order_id,
            ),
        )
