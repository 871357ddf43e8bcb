"""
API Gateway Client.

Every backend call goes through ``ApiGateway.request``: it attaches the
bearer token, races the call against a fixed timeout, evicts the token on
401 and normalizes every outcome into an ``ApiSuccess`` / ``ApiFailure``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from courierkit.shared.infrastructure.http.results import (
    NETWORK_ERROR_MESSAGE,
    REQUEST_FAILED_MESSAGE,
    TIMEOUT_ERROR,
    TIMEOUT_MESSAGE,
    ApiFailure,
    ApiResult,
    ApiSuccess,
    failure,
)
from courierkit.shared.infrastructure.storage.token_store import TokenStore, mask_token

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
METHODS_WITH_BODY = frozenset({"POST", "PUT"})
ALLOWED_METHODS = frozenset({"GET", "POST", "PUT", "DELETE"})


def _is_envelope(body: Any) -> bool:
    return isinstance(body, Mapping) and "success" in body


def normalize_response(status_code: int, body: Any) -> ApiResult:
    """Turn a status code and parsed body into an ApiResult.

    Priority order:
      1. Non-2xx: failure carrying ``body["message"]`` when it is a string,
         else a generic message.
      2. 2xx envelope with ``success`` false: failure with the envelope message.
      3. 2xx envelope: ``data`` from ``body["data"]``; when absent, the legacy
         ``body["message"]`` if it holds a list/object, then ``body["user"]``.
      4. 2xx non-envelope: the whole body is the data.
    """
    message = body.get("message") if isinstance(body, Mapping) else None
    text_message = message if isinstance(message, str) else ""

    if not 200 <= status_code < 300:
        error = body.get("error") if isinstance(body, Mapping) else None
        return failure(
            text_message or REQUEST_FAILED_MESSAGE,
            error=str(error) if error is not None else None,
            status_code=status_code,
        )

    if not _is_envelope(body):
        return ApiSuccess[Any](data=body, body=body)

    if not body.get("success"):
        error = body.get("error")
        return failure(
            text_message or REQUEST_FAILED_MESSAGE,
            error=str(error) if error is not None else None,
            status_code=status_code,
        )

    if "data" in body and body["data"] is not None:
        data = body["data"]
    elif isinstance(message, (list, dict)):
        # Server-contract bug: some endpoints put the payload under "message"
        logger.warning("Response payload found under 'message' instead of 'data'")
        data = message
        text_message = ""
    else:
        data = body.get("user")

    return ApiSuccess[Any](data=data, message=text_message, body=body)


class ApiGateway:
    """Single chokepoint for HTTP calls to the courier backend."""

    def __init__(
        self,
        token_store: TokenStore,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            token_store: Source of the bearer token (and target of 401 eviction)
            base_url: Default API base that request paths are appended to
            timeout: Seconds before a request is abandoned
            client: Pre-built httpx client (the gateway will not close it)
            transport: Transport for the internally built client, used by tests
        """
        self.token_store = token_store
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(transport=transport, timeout=timeout)

    def _build_headers(self, include_auth: bool) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        token = self.token_store.current()
        if include_auth and token:
            headers["Authorization"] = f"Bearer {token}"
        elif include_auth:
            logger.debug("Auth requested but no token is available, sending without Authorization")
        return headers

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[Mapping[str, Any]] = None,
        include_auth: bool = True,
        base_url: Optional[str] = None,
    ) -> ApiResult:
        """Perform one HTTP call and normalize its outcome.

        Args:
            method: GET, POST, PUT or DELETE
            path: Path appended to the base URL, must start with "/"
            body: JSON body, sent for POST and PUT only
            include_auth: Attach the bearer token when one is held
            base_url: Override the default base for this call

        Returns:
            ApiSuccess or ApiFailure; transport, timeout and HTTP errors never raise

        Raises:
            ValueError: On an unsupported method or a malformed path
        """
        method = method.upper()
        if method not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")
        if not path.startswith("/"):
            raise ValueError(f"Request path must start with '/': {path!r}")

        url = f"{(base_url or self.base_url).rstrip('/')}{path}"
        headers = self._build_headers(include_auth)
        json_body = dict(body) if body is not None and method in METHODS_WITH_BODY else None
        logger.debug(f"[API] {method} {url} auth={'Authorization' in headers}")

        try:
            response = await asyncio.wait_for(
                self._client.request(method, url, headers=headers, json=json_body),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"[API] {method} {path} timed out after {self.timeout}s")
            return failure(TIMEOUT_MESSAGE, error=TIMEOUT_ERROR)
        except httpx.HTTPError as e:
            logger.warning(f"[API] {method} {path} failed: {e!r}")
            return failure(str(e) or NETWORK_ERROR_MESSAGE, error=type(e).__name__)

        try:
            parsed = response.json() if response.content else None
        except ValueError:
            logger.warning(f"[API] {method} {path} returned a non-JSON body (status {response.status_code})")
            parsed = None

        if response.status_code == 401:
            logger.warning(f"[API] {method} {path} unauthorized, evicting token {mask_token(self.token_store.current())}")
            await self.token_store.clear(reason="unauthorized")

        result = normalize_response(response.status_code, parsed)
        if isinstance(result, ApiFailure):
            logger.info(f"[API] {method} {path} -> {response.status_code}: {result.message}")
        else:
            logger.debug(f"[API] {method} {path} -> {response.status_code}")
        return result

    async def get(self, path: str, include_auth: bool = True, base_url: Optional[str] = None) -> ApiResult:
        return await self.request("GET", path, include_auth=include_auth, base_url=base_url)

    async def post(self, path: str, body: Optional[Mapping[str, Any]] = None, include_auth: bool = True) -> ApiResult:
        return await self.request("POST", path, body, include_auth=include_auth)

    async def put(self, path: str, body: Optional[Mapping[str, Any]] = None, include_auth: bool = True) -> ApiResult:
        return await self.request("PUT", path, body, include_auth=include_auth)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ApiGateway":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
