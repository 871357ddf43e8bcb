"""Authentication service: register, login, logout."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from courierkit.shared.domain.base import BaseService
from courierkit.shared.domain.models import AuthSession, DeliveryBoy, LoginRequest, RegisterRequest
from courierkit.shared.infrastructure.http.gateway import ApiGateway
from courierkit.shared.infrastructure.http.results import ApiResult, ApiSuccess, failure
from courierkit.shared.infrastructure.storage.token_store import TokenStore

logger = logging.getLogger(__name__)


def _extract_token(body: Any, data: Any) -> Optional[str]:
    for source in (body, data):
        if isinstance(source, Mapping):
            token = source.get("token")
            if isinstance(token, str) and token:
                return token
    return None


class AuthService(BaseService):
    """Wraps /register, /login and /logout.

    A successful login or registration persists the returned token through
    the TokenStore before returning, so callers never handle persistence.
    A response without a token is a failure: there is no session to keep.
    """

    def __init__(self, gateway: ApiGateway, token_store: TokenStore) -> None:
        super().__init__(gateway)
        self.token_store = token_store

    async def register(self, request: RegisterRequest) -> ApiResult:
        result = await self.gateway.post("/register", request.to_wire(), include_auth=False)
        return await self._complete_auth(result, "registration")

    async def login(self, email: str, password: str) -> ApiResult:
        """Log in with email and password.

        Returns:
            ApiSuccess whose data is an AuthSession, or ApiFailure
        """
        try:
            credentials = LoginRequest(email=email.strip(), password=password)
        except ValidationError:
            return failure("Email and password are required")

        result = await self.gateway.post("/login", credentials.to_wire(), include_auth=False)
        return await self._complete_auth(result, "login")

    async def logout(self) -> ApiResult:
        """Tell the server to end the session; clears the token only when it agrees."""
        result = await self.gateway.post("/logout")
        if result.success:
            await self.token_store.clear(reason="logout")
        return result

    async def clear_auth(self) -> None:
        """Forget the credential locally, whatever the server thinks."""
        await self.token_store.clear(reason="logout")

    async def _complete_auth(self, result: ApiResult, label: str) -> ApiResult:
        if not result.success:
            return result
        if not result.data:
            return failure(f"Malformed {label} payload", error="missing user data")

        try:
            user = DeliveryBoy.model_validate(result.data)
        except ValidationError as e:
            logger.warning(f"Malformed {label} payload: {e.error_count()} validation error(s)")
            return failure(f"Malformed {label} payload", error=str(e))

        token = _extract_token(result.body, result.data)
        if not token:
            logger.warning(f"Successful {label} response carried no token")
            return failure(f"No token in {label} response", error="missing token")
        await self.token_store.save(token)

        return ApiSuccess(
            data=AuthSession(user=user, token=token),
            message=result.message,
            body=result.body,
        )
