from courierkit.shared.infrastructure.storage.backends import (
    FileStorage,
    KeyValueStorage,
    MemoryStorage,
    create_storage,
)
from courierkit.shared.infrastructure.storage.token_store import TokenStore, mask_token

__all__ = [
    "FileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "create_storage",
    "TokenStore",
    "mask_token",
]
