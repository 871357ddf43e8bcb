"""Uniform result shapes returned by the gateway and the domain services."""

from __future__ import annotations

from typing import Any, Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class ApiSuccess(BaseModel, Generic[T]):
    """Successful call. ``body`` keeps the parsed response verbatim."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: Literal[True] = True
    data: T
    message: str = ""
    body: Any = None


class ApiFailure(BaseModel):
    """Failed call: network, timeout, HTTP status, validation or malformed payload."""

    success: Literal[False] = False
    message: str
    error: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    @property
    def is_timeout(self) -> bool:
        return self.error == TIMEOUT_ERROR


ApiResult = Union[ApiSuccess[Any], ApiFailure]

TIMEOUT_MESSAGE = "Request timeout"
TIMEOUT_ERROR = "timeout"
NETWORK_ERROR_MESSAGE = "Network error"
REQUEST_FAILED_MESSAGE = "Request failed"


def failure(message: str, error: Optional[str] = None, status_code: Optional[int] = None) -> ApiFailure:
    return ApiFailure(message=message, error=error, status_code=status_code)
