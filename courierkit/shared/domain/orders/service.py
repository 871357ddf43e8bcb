"""Order service.

List, accept and status operations are courier-scoped
(``<base_url>/orders/...``). The single-order lookup goes to the general
resource API (``<resource_base_url>/orders/<id>``) so it also works for
orders the courier has not claimed.
"""

from __future__ import annotations

import logging
from typing import Optional

from courierkit.shared.domain.base import BaseService, as_list, parse_model, path_id
from courierkit.shared.domain.models import Order
from courierkit.shared.infrastructure.http.gateway import ApiGateway
from courierkit.shared.infrastructure.http.results import ApiResult, ApiSuccess

logger = logging.getLogger(__name__)


def _parse_order(result: ApiResult, order_id: str) -> ApiResult:
    # The order is identified by the request path when the server copy omits its id
    if result.success and isinstance(result.data, dict) and not (result.data.get("_id") or result.data.get("id")):
        logger.warning(f"Order {order_id} returned without an id, using the requested one")
        result = ApiSuccess(data={**result.data, "_id": order_id}, message=result.message, body=result.body)
    return parse_model(result, Order, "order")


class OrderService(BaseService):

    def __init__(self, gateway: ApiGateway, resource_base_url: str) -> None:
        super().__init__(gateway)
        self.resource_base_url = resource_base_url.rstrip("/")

    async def get_pending_orders(self) -> ApiResult:
        """Unclaimed orders as raw entries (validated by the order store)."""
        result = await self.gateway.get("/orders/pending")
        return as_list(result, "order")

    async def get_assigned_orders(self) -> ApiResult:
        result = await self.gateway.get("/orders/assigned")
        return as_list(result, "order")

    async def accept_order(self, order_id: str) -> ApiResult:
        result = await self.gateway.post(f"/orders/{path_id(order_id)}/accept")
        return _parse_order(result, order_id)

    async def mark_out_for_delivery(self, order_id: str, notes: Optional[str] = None) -> ApiResult:
        result = await self.gateway.put(
            f"/orders/{path_id(order_id)}/out-for-delivery",
            {"notes": notes or ""},
        )
        return _parse_order(result, order_id)

    async def mark_delivered(
        self,
        order_id: str,
        notes: Optional[str] = None,
        otp: Optional[str] = None,
    ) -> ApiResult:
        """Complete a delivery. Missing notes/otp are sent as empty strings."""
        result = await self.gateway.put(
            f"/orders/{path_id(order_id)}/delivered",
            {"notes": notes or "", "otp": otp or ""},
        )
        return _parse_order(result, order_id)

    async def get_order_details(self, order_id: str) -> ApiResult:
        result = await self.gateway.get(
            f"/orders/{path_id(order_id)}",
            base_url=self.resource_base_url,
        )
        return parse_model(result, Order, "order")
