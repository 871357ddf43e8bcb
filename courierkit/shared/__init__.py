"""
courierkit Shared Kernel
========================

Architecture:
- core: EventBus, event topics, configuration
- infrastructure: credential storage and the HTTP gateway
- domain: wire models and backend services
"""

__version__ = "0.1.0"
