"""
Shared Core Module
==================

Event system and configuration.
"""

# Event System
from .event_bus import EventBus, EventPayload, EventHandler
from . import events

# Configuration
from .configuration import (
    ApiConfig,
    ClientConfig,
    ConfigManager,
    LoggingConfig,
    PollingConfig,
    StorageConfig,
    ValidationLevel,
    load_config,
)

__all__ = [
    # Event System
    "EventBus",
    "EventPayload",
    "EventHandler",
    "events",
    # Configuration
    "ApiConfig",
    "ClientConfig",
    "ConfigManager",
    "LoggingConfig",
    "PollingConfig",
    "StorageConfig",
    "ValidationLevel",
    "load_config",
]
