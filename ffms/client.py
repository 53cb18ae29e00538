"""
FFMS client: validates credentials, loads flags and keeps them in sync.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from ffms.cache import CacheStats, FlagCache
from ffms.channel import ChannelAdapter, ChannelState, to_channel_url
from ffms.config import FFMSConfig
from ffms.errors import (
    FFMSError,
    InitializationError,
    NotFoundError,
    ProtocolError,
    UnauthorizedError,
    ValidationError,
    classify_error,
    error_for_status,
)
from ffms.events import (
    Disconnected,
    ErrorEvent,
    EventEmitter,
    FlagUpdated,
    Initialized,
    Subscription,
)
from ffms.records import parse_flag_message, parse_flag_record

logger = logging.getLogger("ffms")

ChannelFactory = Callable[..., ChannelAdapter]


class FFMSClient:
    """
    FFMS feature flag client.

    Example:
        ```python
        client = FFMSClient(FFMSConfig(
            base_url="https://ffms.example.com/api",
            api_key="your-api-key",
            project_id="project-1",
            toggle_id="toggle-1",
        ))
        await client.initialize()
        client.on("flag_updated", lambda name, state: print(name, state))
        client.listen_for_updates()

        if client.get_flag("new-checkout"):
            pass

        await client.close()
        ```
    """

    def __init__(
        self,
        config: FFMSConfig,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        channel_factory: Optional[ChannelFactory] = None,
    ):
        """
        Initialize the FFMS client.

        Args:
            config: Client configuration
            http_client: Optional shared HTTP client; closed by the caller, not by close()
            channel_factory: Builds the live channel; defaults to ChannelAdapter
        """
        self._config = config
        self._cache = FlagCache()
        self._events = EventEmitter()
        self._validated = False
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._channel_factory = channel_factory or ChannelAdapter
        self._channel: Optional[ChannelAdapter] = None
        self._channel_state = ChannelState.IDLE
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._reconnect_attempts = 0
        self._closed = False

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> "FFMSClient":
        """
        Create a client from an option mapping.

        Example:
            ```python
            client = FFMSClient.from_options({
                "baseUrl": "https://ffms.example.com/api",
                "apiKey": "your-api-key",
                "projectId": "project-1",
                "toggleId": "toggle-1",
                "reconnect": False,
            })
            ```

        Raises:
            ConfigurationError: If a required option is missing
        """
        return cls(FFMSConfig.from_options(options, **kwargs))

    @property
    def config(self) -> FFMSConfig:
        return self._config

    @property
    def validated(self) -> bool:
        """True once the server has accepted the credentials."""
        return self._validated

    @property
    def channel_state(self) -> ChannelState:
        """Current state of the live channel."""
        return self._channel_state

    def on(self, event: str, callback: Callable) -> "FFMSClient":
        """
        Register an event callback.

        Events: ``initialized(flags)``, ``flag_updated(name, state)``,
        ``disconnected()``, ``error(error)``.

        Args:
            event: Event name
            callback: Callback function

        Returns:
            Self for chaining
        """
        self._events.on(event, callback)
        return self

    def off(self, event: str, callback: Callable) -> "FFMSClient":
        """
        Remove an event callback.

        Returns:
            Self for chaining
        """
        self._events.off(event, callback)
        return self

    def subscribe(self, max_size: int = 0) -> Subscription:
        """Open a pull subscription yielding typed events."""
        return self._events.subscribe(max_size)

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._config.timeout)
        return self._http_client

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
        }

    async def validate(self) -> bool:
        """
        Validate the API key, project ID and toggle ID with the server.

        Returns:
            True when the server accepts the credentials

        Raises:
            ValidationError: If the server rejects them or the request fails
        """
        url = f"{self._config.base_url}/validate"
        payload = {"projectId": self._config.project_id, "toggleId": self._config.toggle_id}

        try:
            response = await self._get_http_client().post(
                url,
                json=payload,
                headers=self._headers(),
                timeout=self._config.timeout,
            )
            error = error_for_status(response)
            if error is not None:
                raise error
            data = response.json()
        except (httpx.HTTPError, FFMSError, ValueError) as e:
            cause = classify_error(e)
            logger.error(f"Validation failed: {cause.message}")
            raise ValidationError(f"Validation failed: {cause.message}", cause=cause) from e

        if not isinstance(data, dict) or data.get("valid") is not True:
            logger.error("Validation failed: server rejected credentials")
            raise ValidationError("Validation failed: Invalid API key, project ID, or toggle ID.")

        self._validated = True
        return True

    async def initialize(self) -> Dict[str, bool]:
        """
        Validate if needed, then fetch all flags into the cache.

        Records that are not ``{"name": str, "state": bool}`` are skipped.
        Repeated calls merge into the existing cache.

        Returns:
            Snapshot of the cache after loading

        Raises:
            ValidationError: If validation was needed and failed
            ProtocolError: If the response body is not a list
            InitializationError: If the request fails
        """
        if not self._validated:
            await self.validate()

        url = f"{self._config.base_url}/projects/{self._config.project_id}/feature-flags"

        try:
            response = await self._get_http_client().get(
                url,
                headers=self._headers(),
                timeout=self._config.timeout,
            )
            error = error_for_status(response)
            if error is not None:
                raise error
        except (httpx.HTTPError, FFMSError) as e:
            cause = classify_error(e)
            logger.error(f"Failed to initialize: {cause.message}")
            raise InitializationError(f"Failed to initialize: {cause.message}", cause=cause) from e

        try:
            data = response.json()
        except ValueError as e:
            raise ProtocolError("Invalid response format from server.") from e

        if not isinstance(data, list):
            raise ProtocolError("Invalid response format from server.")

        for item in data:
            record = parse_flag_record(item)
            if record is None:
                logger.warning(f"Skipping malformed flag record: {item!r}")
                continue
            self._cache.upsert_record(record)

        snapshot = self._cache.snapshot()
        self._events.emit(Initialized(dict(snapshot)))
        return snapshot

    def get_flag(self, name: str) -> bool:
        """
        Get the cached state of a flag.

        Args:
            name: Flag name

        Returns:
            The flag state

        Raises:
            NotFoundError: If the flag is not in the cache
        """
        state = self._cache.get(name)
        if state is None:
            raise NotFoundError(f'Feature toggle "{name}" does not exist.')
        return state

    def is_enabled(self, name: str, default_value: bool = False) -> bool:
        """
        Check if a flag is enabled, falling back to a default for unknown flags.

        Args:
            name: Flag name
            default_value: Value returned when the flag is not cached
        """
        state = self._cache.get(name)
        return default_value if state is None else state

    def get_all_flags(self) -> Dict[str, bool]:
        """
        Get all flags as a dictionary.

        Returns:
            A copy of the cache
        """
        return self._cache.snapshot()

    def get_cache_stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._cache.get_stats()

    def listen_for_updates(self) -> None:
        """
        Open the live channel and apply pushed updates to the cache.

        Returns immediately; connection progress is reported through events.
        Must be called from within a running event loop.

        Raises:
            UnauthorizedError: If the client has not been validated
        """
        if not self._validated:
            raise UnauthorizedError("Cannot start WebSocket updates without validation.")

        self._cancel_reconnect()
        if self._channel is not None:
            previous, self._channel = self._channel, None
            previous.close()

        self._reconnect_attempts = 0
        self._connect()

    def disconnect(self) -> None:
        """
        Close the live channel and stop any pending reconnect.

        No-op when no channel is open.
        """
        self._cancel_reconnect()

        channel = self._channel
        if channel is None:
            return

        self._channel = None
        self._channel_state = ChannelState.CLOSED
        channel.close()
        self._events.emit(Disconnected())

    def _connect(self) -> None:
        self._reconnect_handle = None
        if self._closed:
            return

        url = to_channel_url(self._config.base_url, self._config.project_id)
        channel: Optional[ChannelAdapter] = None

        def current() -> bool:
            return channel is not None and channel is self._channel

        def on_open() -> None:
            if current():
                self._handle_open()

        def on_message(payload: str) -> None:
            if current():
                self._handle_message(payload)

        def on_close() -> None:
            if current():
                self._handle_close()

        def on_error(error: BaseException) -> None:
            if current():
                self._handle_error(error)

        channel = self._channel_factory(
            url,
            self._config.api_key,
            on_open=on_open,
            on_message=on_message,
            on_close=on_close,
            on_error=on_error,
        )
        # start() raises without a running loop; keep no handle in that case
        channel.start()
        self._channel = channel
        self._channel_state = ChannelState.CONNECTING

    def _handle_open(self) -> None:
        self._channel_state = ChannelState.CONNECTED
        self._reconnect_attempts = 0
        logger.info(f"Listening for flag updates on project {self._config.project_id}")

    def _handle_message(self, payload: str) -> None:
        record = parse_flag_message(payload)
        if record is None:
            return

        self._cache.upsert_record(record)
        self._events.emit(FlagUpdated(record.name, record.state))

    def _handle_close(self) -> None:
        self._channel = None
        self._channel_state = ChannelState.CLOSED
        logger.warning("WebSocket connection closed.")
        self._events.emit(Disconnected())

        if self._config.reconnect and not self._closed:
            self._schedule_reconnect()

    def _handle_error(self, error: BaseException) -> None:
        logger.error(f"WebSocket error: {error}")
        self._events.emit(ErrorEvent(error))

    def _schedule_reconnect(self) -> None:
        policy = self._config.reconnect_policy
        if not policy.allows(self._reconnect_attempts):
            logger.error(f"Giving up after {self._reconnect_attempts} reconnect attempts")
            return

        delay = policy.delay_for(self._reconnect_attempts)
        self._reconnect_attempts += 1
        logger.info(f"Reconnecting in {delay:.1f}s...")
        self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self._connect)

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    @property
    def reconnect_pending(self) -> bool:
        """True while a reconnect attempt is scheduled."""
        return self._reconnect_handle is not None

    async def close(self) -> None:
        """Close the channel and release HTTP resources."""
        self._closed = True
        self.disconnect()
        self._events.close()

        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "FFMSClient":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
