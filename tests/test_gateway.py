"""Tests for ApiGateway: headers, timeout, 401 eviction and normalization."""

import asyncio

import httpx
import pytest
import pytest_asyncio

from courierkit.shared.infrastructure.http.gateway import ApiGateway, normalize_response
from courierkit.shared.infrastructure.http.results import ApiFailure, ApiSuccess
from courierkit.shared.infrastructure.storage.backends import MemoryStorage
from courierkit.shared.infrastructure.storage.token_store import TokenStore

from conftest import BASE_URL, DELIVERY, RESOURCE_BASE_URL, FakeBackend, envelope


@pytest_asyncio.fixture
async def token_store():
    return TokenStore(MemoryStorage())


@pytest_asyncio.fixture
async def gateway(token_store, backend):
    gw = ApiGateway(token_store, base_url=BASE_URL, timeout=0.2, transport=backend.transport)
    yield gw
    await gw.aclose()


@pytest.mark.asyncio
async def test_attaches_bearer_token_when_present(gateway, token_store, backend):
    await token_store.save("abc123")
    backend.on("GET", f"{DELIVERY}/me", envelope({"_id": "c1"}))

    result = await gateway.get("/me")

    assert result.success
    request = backend.calls("GET", f"{DELIVERY}/me")[0]
    assert request.headers["Authorization"] == "Bearer abc123"
    assert request.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_omits_authorization_without_token_or_when_not_requested(gateway, token_store, backend):
    backend.on("POST", f"{DELIVERY}/login", envelope({"_id": "c1"}))

    await gateway.post("/login", {"email": "a@b.c"}, include_auth=False)
    await gateway.get("/stats")
    await token_store.save("abc123")
    await gateway.post("/login", {"email": "a@b.c"}, include_auth=False)

    assert all("Authorization" not in r.headers for r in backend.requests)


@pytest.mark.asyncio
async def test_timeout_returns_failure_without_raising(token_store, backend):
    async def slow(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json=envelope([]))

    backend.on("GET", f"{DELIVERY}/orders/pending", handler=slow)
    gateway = ApiGateway(token_store, base_url=BASE_URL, timeout=0.05, transport=backend.transport)

    result = await asyncio.wait_for(gateway.get("/orders/pending"), timeout=2)

    assert isinstance(result, ApiFailure)
    assert result.message == "Request timeout"
    assert result.is_timeout
    assert len(backend.requests) == 1
    await gateway.aclose()


@pytest.mark.asyncio
async def test_401_clears_token(gateway, token_store, backend):
    await token_store.save("expired")
    backend.on("GET", f"{DELIVERY}/me", {"success": False, "message": "Token expired"}, status=401)

    result = await gateway.get("/me")

    assert not result.success
    assert result.message == "Token expired"
    assert result.is_unauthorized
    assert token_store.current() is None


@pytest.mark.asyncio
async def test_other_errors_keep_token(gateway, token_store, backend):
    await token_store.save("abc123")
    backend.on("GET", f"{DELIVERY}/stats", {"success": False, "message": "Boom", "error": "trace"}, status=500)
    backend.on("GET", f"{DELIVERY}/me", {"success": False}, status=403)

    server_error = await gateway.get("/stats")
    forbidden = await gateway.get("/me")

    assert server_error.message == "Boom"
    assert server_error.error == "trace"
    assert server_error.status_code == 500
    assert forbidden.message == "Request failed"
    assert token_store.current() == "abc123"


@pytest.mark.asyncio
async def test_network_error_becomes_failure(gateway, backend):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    backend.on("GET", f"{DELIVERY}/stats", handler=refuse)

    result = await gateway.get("/stats")

    assert isinstance(result, ApiFailure)
    assert "connection refused" in result.message
    assert result.error == "ConnectError"


@pytest.mark.asyncio
async def test_non_json_error_body(gateway, backend):
    backend.on("GET", f"{DELIVERY}/stats", handler=lambda r: httpx.Response(502, text="<html>bad gateway</html>"))

    result = await gateway.get("/stats")

    assert not result.success
    assert result.message == "Request failed"
    assert result.status_code == 502


@pytest.mark.asyncio
async def test_body_is_sent_only_for_post_and_put(gateway, backend):
    backend.on("PUT", f"{DELIVERY}/availability", envelope({"_id": "c1"}))
    backend.on("DELETE", f"{DELIVERY}/thing", envelope(None))

    await gateway.put("/availability", {"availability": "busy"})
    await gateway.request("DELETE", "/thing", {"ignored": True})

    assert FakeBackend.body(backend.calls("PUT")[0]) == {"availability": "busy"}
    assert backend.calls("DELETE")[0].content == b""


@pytest.mark.asyncio
async def test_base_url_override(gateway, backend):
    backend.on("GET", "/api/orders/o1", envelope({"_id": "o1"}))

    result = await gateway.get("/orders/o1", base_url=RESOURCE_BASE_URL)

    assert result.success
    assert backend.requests[0].url.path == "/api/orders/o1"


@pytest.mark.asyncio
async def test_programmer_errors_raise(gateway):
    with pytest.raises(ValueError):
        await gateway.request("PATCH", "/me")
    with pytest.raises(ValueError):
        await gateway.request("GET", "me")


def test_normalize_envelope_data():
    result = normalize_response(200, {"success": True, "message": "Fetched", "data": [1, 2]})
    assert isinstance(result, ApiSuccess)
    assert result.data == [1, 2]
    assert result.message == "Fetched"


def test_normalize_legacy_message_payload():
    result = normalize_response(200, {"success": True, "message": [{"_id": "o1"}]})
    assert result.success
    assert result.data == [{"_id": "o1"}]
    assert result.message == ""


def test_normalize_user_fallback_and_raw_body():
    body = {"success": True, "message": "Logged in", "user": {"_id": "c1"}, "token": "t"}
    result = normalize_response(200, body)
    assert result.data == {"_id": "c1"}
    assert result.body["token"] == "t"


def test_normalize_envelope_reporting_failure_on_2xx():
    result = normalize_response(200, {"success": False, "message": "Order already taken"})
    assert isinstance(result, ApiFailure)
    assert result.message == "Order already taken"


def test_normalize_non_envelope_body_and_empty_body():
    assert normalize_response(200, [1]).data == [1]
    empty = normalize_response(204, None)
    assert empty.success and empty.data is None
