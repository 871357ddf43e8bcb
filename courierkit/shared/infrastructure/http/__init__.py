from courierkit.shared.infrastructure.http.gateway import ApiGateway, normalize_response
from courierkit.shared.infrastructure.http.results import (
    TIMEOUT_MESSAGE,
    ApiFailure,
    ApiResult,
    ApiSuccess,
    failure,
)

__all__ = [
    "ApiGateway",
    "normalize_response",
    "ApiFailure",
    "ApiResult",
    "ApiSuccess",
    "TIMEOUT_MESSAGE",
    "failure",
]
