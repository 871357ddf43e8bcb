"""
Shared Infrastructure Module
=============================

Technical adapters: credential storage and the HTTP gateway.
"""

# Storage
from courierkit.shared.infrastructure.storage import (
    FileStorage,
    KeyValueStorage,
    MemoryStorage,
    TokenStore,
    create_storage,
)

# HTTP
from courierkit.shared.infrastructure.http import (
    ApiFailure,
    ApiGateway,
    ApiResult,
    ApiSuccess,
    normalize_response,
)

__all__ = [
    # Storage
    "FileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "TokenStore",
    "create_storage",
    # HTTP
    "ApiFailure",
    "ApiGateway",
    "ApiResult",
    "ApiSuccess",
    "normalize_response",
]
