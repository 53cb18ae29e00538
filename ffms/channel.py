"""
Live update channel over WebSocket.

The adapter is pure transport: it opens one connection, forwards raw
payloads and lifecycle notifications to its owner, and never retries.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional, Union

from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosedOK

logger = logging.getLogger("ffms.channel")


class ChannelState(str, Enum):
    """Lifecycle of the client's live channel."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


def to_channel_url(base_url: str, project_id: str) -> str:
    """
    Derive the live-update address from the HTTP base URL.

    Args:
        base_url: HTTP(S) base URL of the FFMS API
        project_id: Project identifier

    Returns:
        ``ws://`` or ``wss://`` URL of the project's update stream
    """
    base = base_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://"):]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://"):]
    return f"{base}/projects/{project_id}/updates"


class ChannelAdapter:
    """
    One WebSocket connection authenticated with a bearer token.

    Callbacks:
        on_open(): handshake completed
        on_message(payload): a text frame arrived
        on_error(error): the connection failed or closed abnormally
        on_close(): the connection ended; delivered exactly once
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        on_open: Optional[Callable[[], Any]] = None,
        on_message: Optional[Callable[[str], Any]] = None,
        on_close: Optional[Callable[[], Any]] = None,
        on_error: Optional[Callable[[BaseException], Any]] = None,
    ):
        self.url = url
        self._api_key = api_key
        self.on_open = on_open
        self.on_message = on_message
        self.on_close = on_close
        self.on_error = on_error
        self._task: Optional[asyncio.Task] = None
        self._connection = None
        self._closing = False
        self._close_notified = False

    def start(self) -> "ChannelAdapter":
        """Schedule the connection on the running event loop."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
            self._task.add_done_callback(lambda _: self._notify_closed())
        return self

    def close(self) -> None:
        """Close the connection. on_close is still delivered."""
        self._closing = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait until the connection task has finished."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    async def _run(self) -> None:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            async with connect(self.url, additional_headers=headers) as websocket:
                self._connection = websocket
                logger.info("WebSocket connection established.")
                self._dispatch(self.on_open)

                async for payload in websocket:
                    if isinstance(payload, bytes):
                        payload = payload.decode("utf-8", errors="replace")
                    self._dispatch(self.on_message, payload)
        except asyncio.CancelledError:
            if not self._closing:
                raise
        except ConnectionClosedOK:
            pass
        except Exception as e:
            logger.error(f"WebSocket error: {e}")
            self._dispatch(self.on_error, e)
        finally:
            self._connection = None
            self._notify_closed()

    def _notify_closed(self) -> None:
        # the task may be cancelled before it ever runs
        if self._close_notified:
            return
        self._close_notified = True
        self._dispatch(self.on_close)

    def _dispatch(self, callback: Optional[Callable], *args: Union[str, BaseException]) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.warning(f"Error in channel callback: {e}")
