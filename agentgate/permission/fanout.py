"""
TransportFanout - mirror permission events to every connected observer.

Each observer gets an ObserverChannel: a bounded buffer fed by its own bus
subscription and drained by the transport (a WebSocket handler). Feeding never
blocks; a channel whose buffer overflows or whose transport fails is closed and
dropped without affecting the others.
"""

import asyncio
import threading
from collections import deque
from typing import Any, AsyncIterator

from agentgate.config.settings import settings
from agentgate.permission.broker import PermissionBroker
from agentgate.permission.events import Subscription
from agentgate.permission.schema import PermissionEvent, PermissionRequest
from agentgate.utils.ids import new_client_id
from agentgate.utils.logging import get_logger

logger = get_logger(__name__)


class ObserverChannel:
    """
    Per-connection frame buffer.

    - offer(): append a frame without waiting; False once closed or full
    - read(): async iterate frames until closed
    - close(): stop the reader after the frames already buffered

    Frames are appended on the offering thread under a lock, so they keep
    publish order whichever thread the broker publishes from; only the
    reader wake-up is handed to the owning loop. Single-consumer: read() can
    only be claimed once.
    """

    def __init__(self, channel_id: str, maxsize: int = 0) -> None:
        self.id = channel_id
        self._frames: deque[dict[str, Any]] = deque()
        self._maxsize = maxsize
        self._lock = threading.Lock()
        self._ready = asyncio.Event()
        self._loop = asyncio.get_running_loop()
        self._closed = False
        self._reader_claimed = False
        self.subscription: Subscription | None = None

    def offer(self, frame: dict[str, Any]) -> bool:
        with self._lock:
            if self._closed:
                return False
            if self._maxsize and len(self._frames) >= self._maxsize:
                return False
            self._frames.append(frame)
        self._wake()
        return True

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._wake()

    async def read(self) -> AsyncIterator[dict[str, Any]]:
        if self._reader_claimed:
            raise RuntimeError("channel_read_already_claimed")
        self._reader_claimed = True
        while True:
            with self._lock:
                if self._frames:
                    frame = self._frames.popleft()
                elif self._closed:
                    return
                else:
                    frame = None
                    self._ready.clear()
            if frame is None:
                await self._ready.wait()
                continue
            yield frame

    def _wake(self) -> None:
        if self._on_loop():
            self._ready.set()
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._ready.set)

    def _on_loop(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_frames(self) -> int:
        with self._lock:
            return len(self._frames)

    def __repr__(self) -> str:
        return f"ObserverChannel(id={self.id!r}, closed={self._closed}, pending={len(self._frames)})"


class TransportFanout:
    """Registry of live observer channels bound to a PermissionBroker."""

    def __init__(self, broker: PermissionBroker, queue_size: int | None = None) -> None:
        self._broker = broker
        self._queue_size = queue_size if queue_size is not None else settings.observer_queue_size
        self._channels: dict[str, ObserverChannel] = {}
        self._lock = threading.Lock()

    def connect(self) -> ObserverChannel:
        """
        Open a channel for a new observer.

        The first queued frame is ``connected``; a ``pending-permissions``
        snapshot follows when requests are pending; live events come after.
        """
        channel = ObserverChannel(new_client_id(), maxsize=self._queue_size)
        channel.offer(
            {
                "type": "connected",
                "message": "Permission WebSocket connected",
                "clientId": channel.id,
            }
        )

        def _deliver(event: PermissionEvent) -> None:
            if not channel.offer(event.to_frame()):
                self.disconnect(channel.id, reason="overflow")

        def _send_snapshot(snapshot: list[PermissionRequest]) -> None:
            if snapshot:
                channel.offer(
                    {
                        "type": "pending-permissions",
                        "permissions": [request.to_wire() for request in snapshot],
                    }
                )

        with self._lock:
            self._channels[channel.id] = channel
            total = len(self._channels)

        _, channel.subscription = self._broker.watch(_deliver, on_snapshot=_send_snapshot)
        if channel.closed:
            channel.subscription.unsubscribe()

        logger.info("observer_connected", client_id=channel.id, clients=total)
        return channel

    def disconnect(self, channel_id: str, reason: str = "closed") -> None:
        """Drop a channel; safe to call repeatedly."""
        with self._lock:
            channel = self._channels.pop(channel_id, None)
            total = len(self._channels)
        if channel is None:
            return
        if channel.subscription is not None:
            channel.subscription.unsubscribe()
        channel.close()

        if reason == "closed":
            logger.info("observer_disconnected", client_id=channel_id, clients=total)
        else:
            logger.warning("observer_dropped", client_id=channel_id, reason=reason, clients=total)

    def close_all(self) -> None:
        with self._lock:
            channel_ids = list(self._channels)
        for channel_id in channel_ids:
            self.disconnect(channel_id)

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._channels)

    def __contains__(self, channel_id: str) -> bool:
        with self._lock:
            return channel_id in self._channels


__all__ = ["ObserverChannel", "TransportFanout"]
