"""Shared fixtures: a route-table fake backend served through httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

from courierkit.app.state import Store
from courierkit.shared.core.configuration import ApiConfig, ClientConfig, StorageConfig
from courierkit.shared.infrastructure.storage.backends import MemoryStorage

BASE_URL = "https://courier.test/api/delivery"
RESOURCE_BASE_URL = "https://courier.test/api"
DELIVERY = "/api/delivery"


def envelope(data: Any = None, message: str = "ok", **extra: Any) -> Dict[str, Any]:
    return {"success": True, "message": message, "data": data, **extra}


def courier(**overrides: Any) -> Dict[str, Any]:
    data = {
        "_id": "c1",
        "firstName": "Asha",
        "lastName": "Rao",
        "email": "courier@example.com",
        "phone": "5550100",
        "status": "active",
        "availability": "available",
        "totalDeliveries": 10,
        "completedDeliveries": 8,
        "rating": 4.5,
    }
    data.update(overrides)
    return data


def order(order_id: str, status: str = "pending", **overrides: Any) -> Dict[str, Any]:
    data = {
        "_id": order_id,
        "orderNumber": f"ORD-{order_id}",
        "customer": {"_id": "u1", "firstName": "Ravi", "lastName": "K", "email": "r@example.com", "phone": "5550111"},
        "items": [{"product": {"_id": "p1", "name": "Milk", "category": "dairy", "price": 2.5}, "quantity": 2, "priceAtTime": 2.5, "subtotal": 5.0}],
        "deliveryAddress": {"street": "1 Main St", "city": "Pune", "state": "MH", "zipCode": "411001"},
        "contactInfo": {"phone": "5550111"},
        "pricing": {"subtotal": 5.0, "deliveryFee": 1.0, "tax": 0.5, "discount": 0.0, "total": 6.5},
        "status": status,
        "paymentInfo": {"method": "cash-on-delivery", "status": "pending"},
    }
    data.update(overrides)
    return data


def stats(**overrides: Any) -> Dict[str, Any]:
    data = {
        "totalDeliveries": 10,
        "completedDeliveries": 8,
        "rating": 4.5,
        "averageDeliveryTime": 27.0,
        "availability": "available",
        "status": "active",
    }
    data.update(overrides)
    return data


Responder = Callable[[httpx.Request], Any]


class FakeBackend:
    """Answers requests from a (method, path) route table and records them."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Responder] = {}
        self.requests: List[httpx.Request] = []

    def on(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        status: int = 200,
        handler: Optional[Responder] = None,
    ) -> None:
        if handler is None:
            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(status, json=json_body)
        self.routes[(method.upper(), path)] = handler

    def __call__(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"success": False, "message": f"No route for {request.method} {request.url.path}"})
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(
        api=ApiConfig(base_url=BASE_URL, resource_base_url=RESOURCE_BASE_URL, timeout=0.2),
        storage=StorageConfig(backend="memory"),
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest_asyncio.fixture
async def store(config: ClientConfig, backend: FakeBackend, storage: MemoryStorage):
    app_store = Store(config, storage=storage, transport=backend.transport)
    yield app_store
    await app_store.aclose()
