"""Helpers shared by the domain services."""

from __future__ import annotations

import logging
from typing import Any, List, Type
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from courierkit.shared.infrastructure.http.gateway import ApiGateway
from courierkit.shared.infrastructure.http.results import ApiResult, ApiSuccess, failure

logger = logging.getLogger(__name__)


class BaseService:
    """A typed façade over one backend resource family."""

    def __init__(self, gateway: ApiGateway) -> None:
        self.gateway = gateway


def parse_model(result: ApiResult, model: Type[BaseModel], label: str) -> ApiResult:
    """Validate a successful result's data as ``model``.

    Failures pass through untouched; a payload the model rejects becomes a
    failure so callers never see half-parsed data. Models with a
    ``from_payload`` constructor (orders) are built through it.
    """
    if not result.success:
        return result
    validate = getattr(model, "from_payload", model.model_validate)
    try:
        parsed = validate(result.data)
    except ValidationError as e:
        logger.warning(f"Malformed {label} payload: {e.error_count()} validation error(s)")
        return failure(f"Malformed {label} payload", error=str(e))
    return ApiSuccess(data=parsed, message=result.message, body=result.body)


def as_list(result: ApiResult, label: str) -> ApiResult:
    """Coerce a successful result's data into a list of raw entries.

    A single object is wrapped into a one-element list. Entries are not
    validated here; the order store filters them.
    """
    if not result.success:
        return result
    data: Any = result.data
    if isinstance(data, list):
        entries: List[Any] = data
    elif isinstance(data, dict):
        logger.warning(f"Received a single {label} object, wrapping in a list")
        entries = [data]
    else:
        return failure(f"Malformed {label} list payload", error=f"unexpected {type(data).__name__}")
    return ApiSuccess(data=entries, message=result.message, body=result.body)


def path_id(value: str) -> str:
    """Quote an identifier for use as a single path segment."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid identifier: {value!r}")
    return quote(value.strip(), safe="")
