"""
FFMS Python SDK - feature flags with live updates.

Usage:
    from ffms import FFMSClient, FFMSConfig

    client = FFMSClient(FFMSConfig(
        base_url="https://ffms.example.com/api",
        api_key="your-api-key",
        project_id="project-1",
        toggle_id="toggle-1",
    ))
    await client.initialize()
    client.listen_for_updates()

    if client.get_flag("my-feature"):
        # Feature is enabled
        pass
"""

from ffms.client import FFMSClient
from ffms.config import FFMSConfig
from ffms.cache import CacheStats, FlagCache
from ffms.channel import ChannelAdapter, ChannelState, to_channel_url
from ffms.errors import (
    FFMSError,
    ErrorCategory,
    ConfigurationError,
    ValidationError,
    ProtocolError,
    InitializationError,
    NotFoundError,
    UnauthorizedError,
    AuthenticationError,
    NetworkError,
    RateLimitError,
    ServerError,
    RetryExhaustedError,
)
from ffms.events import (
    Disconnected,
    ErrorEvent,
    EventEmitter,
    FlagUpdated,
    Initialized,
    Subscription,
)
from ffms.records import (
    FlagRecord,
    parse_flag_message,
    parse_flag_record,
    validate_api_response,
)
from ffms.retry import ReconnectPolicy, RetryConfig, retry_async

__version__ = "1.0.0"
__all__ = [
    # Client
    "FFMSClient",
    "FFMSConfig",
    # Cache
    "CacheStats",
    "FlagCache",
    # Channel
    "ChannelAdapter",
    "ChannelState",
    "to_channel_url",
    # Errors
    "FFMSError",
    "ErrorCategory",
    "ConfigurationError",
    "ValidationError",
    "ProtocolError",
    "InitializationError",
    "NotFoundError",
    "UnauthorizedError",
    "AuthenticationError",
    "NetworkError",
    "RateLimitError",
    "ServerError",
    "RetryExhaustedError",
    # Events
    "Disconnected",
    "ErrorEvent",
    "EventEmitter",
    "FlagUpdated",
    "Initialized",
    "Subscription",
    # Records
    "FlagRecord",
    "parse_flag_message",
    "parse_flag_record",
    "validate_api_response",
    # Retry
    "ReconnectPolicy",
    "RetryConfig",
    "retry_async",
]
