"""
UDP Sender for gesture signals.

Handles:
- One outbound UDP association per sender (asyncio datagram transport)
- Connect that settles exactly once, on ready or on failure
- Datagram send that waits for the write hand-off, no retries
- Disconnect that is safe at any point, including mid-connect
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from .exceptions import (
    ConnectionCancelledError,
    EncodingError,
    NotConnectedError,
    SenderConnectionError,
)
from .signal_codec import DEFAULT_HOST, DEFAULT_PORT

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Readiness of the outbound association."""
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ConnectionStats:
    """Statistics about the UDP association."""
    connect_time: Optional[float] = None
    disconnect_time: Optional[float] = None
    messages_sent: int = 0
    messages_failed: int = 0
    last_send_time: Optional[float] = None


class _SenderProtocol(asyncio.DatagramProtocol):
    """Forwards transport events to the owning SignalSender."""

    def __init__(self, sender: "SignalSender"):
        self._sender = sender
        self._paused = False
        self._drain_waiter: Optional[asyncio.Future] = None

    def connection_made(self, transport) -> None:
        self._sender._on_ready(transport, self)

    def datagram_received(self, data: bytes, addr) -> None:
        logger.debug(f"Ignoring {len(data)} bytes received from {addr}")

    def error_received(self, exc: Exception) -> None:
        self._sender._on_failed(exc, self)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self._wake_drain()
        if exc is not None:
            self._sender._on_failed(exc, self)

    def pause_writing(self) -> None:
        self._paused = True

    def resume_writing(self) -> None:
        self._paused = False
        self._wake_drain()

    async def drain(self) -> None:
        """Wait until the transport write buffer is empty."""
        if not self._paused:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._drain_waiter = waiter
        await waiter

    def _wake_drain(self) -> None:
        waiter = self._drain_waiter
        self._drain_waiter = None
        if waiter is not None and not waiter.done():
            waiter.set_result(None)


class SignalSender:
    """
    Owns exactly one outbound UDP association to (host, port).

    Features:
    - Explicit readiness state with change callback
    - One-shot connect guarded against repeated transport reports
    - Typed failures: NotConnectedError, EncodingError, SenderConnectionError

    The target is fixed for the sender's lifetime. To change it, disconnect
    and create a new sender.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        on_state_change: Optional[Callable[[ConnectionState], None]] = None,
    ):
        """
        Initialize UDP sender.

        Args:
            host: Destination host
            port: Destination port
            on_state_change: Callback for every readiness state change
        """
        self.host = host
        self.port = port
        self.on_state_change = on_state_change

        # Association
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._protocol: Optional[_SenderProtocol] = None
        self._state = ConnectionState.IDLE
        self._last_error: Optional[Exception] = None

        # Pending connect, settled at most once
        self._connect_waiter: Optional[asyncio.Future] = None
        self._endpoint_task: Optional[asyncio.Task] = None

        # Statistics
        self.stats = ConnectionStats()

    @property
    def endpoint(self) -> Tuple[str, int]:
        return (self.host, self.port)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def last_error(self) -> Optional[Exception]:
        """Transport error behind the last FAILED state."""
        return self._last_error

    @property
    def is_ready(self) -> bool:
        """True between a successful connect and a disconnect or failure."""
        return self._state is ConnectionState.READY and self._transport is not None

    async def connect(self) -> None:
        """
        Open the UDP association and wait until it is ready.

        Raises:
            SenderConnectionError: If the transport fails before ready.
            RuntimeError: If a connect is already in progress.
            ConnectionCancelledError: If disconnect() is called meanwhile.
        """
        if self._state is ConnectionState.READY:
            return
        if self._state is ConnectionState.CONNECTING:
            raise RuntimeError("connect() already in progress")

        # Release a failed association before opening a new one
        self._release()

        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        self._connect_waiter = waiter
        self._last_error = None
        self._set_state(ConnectionState.CONNECTING)

        logger.info(f"Connecting UDP sender to {self.host}:{self.port}...")
        self._endpoint_task = loop.create_task(self._open_endpoint())

        try:
            await waiter
        except asyncio.CancelledError:
            if not waiter.done():
                waiter.cancel()
            self._release()
            self._set_state(ConnectionState.CANCELLED)
            raise
        finally:
            if self._connect_waiter is waiter:
                self._connect_waiter = None

    def disconnect(self) -> None:
        """Cancel the association and release the transport. No-op when idle."""
        waiter = self._connect_waiter
        connecting = waiter is not None and not waiter.done()

        if self._transport is None and not connecting:
            return

        self._set_state(ConnectionState.CANCELLED)

        if connecting:
            waiter.set_exception(
                ConnectionCancelledError(f"Connect to {self.host}:{self.port} cancelled")
            )
        self._release()

        self.stats.disconnect_time = time.time()
        logger.info(f"UDP sender to {self.host}:{self.port} disconnected")

    async def _open_endpoint(self) -> None:
        """Create the datagram endpoint; the protocol reports the outcome."""
        loop = asyncio.get_running_loop()
        try:
            await loop.create_datagram_endpoint(
                self._create_protocol,
                remote_addr=(self.host, self.port),
            )
        except OSError as e:
            self._on_failed(e)

    def _create_protocol(self) -> _SenderProtocol:
        self._protocol = _SenderProtocol(self)
        return self._protocol

    def _release(self) -> None:
        """Drop the endpoint task and transport, if any."""
        task = self._endpoint_task
        self._endpoint_task = None
        if task is not None and not task.done():
            task.cancel()

        if self._transport is not None:
            self._transport.close()
            self._transport = None
        self._protocol = None

    async def send(self, message: str) -> None:
        """
        Send one message as a single datagram.

        Waits until the bytes are handed to the network stack, not until the
        peer receives them.

        Raises:
            NotConnectedError: If the association is not ready.
            EncodingError: If message cannot be encoded as UTF-8.
            SenderConnectionError: If the transport reports a send failure.
        """
        if not self.is_ready:
            self.stats.messages_failed += 1
            raise NotConnectedError("UDP connection not established")

        if not isinstance(message, str):
            self.stats.messages_failed += 1
            raise EncodingError(f"Expected text message, got {type(message).__name__}")
        try:
            data = message.encode("utf-8")
        except UnicodeEncodeError as e:
            self.stats.messages_failed += 1
            raise EncodingError("Failed to encode message as UTF-8") from e

        protocol = self._protocol
        self._transport.sendto(data)
        if protocol is not None:
            await protocol.drain()

        # sendto() reports socket errors through error_received()
        if self._state is ConnectionState.FAILED:
            self.stats.messages_failed += 1
            raise SenderConnectionError(
                f"Send to {self.host}:{self.port} failed: {self._last_error}",
                cause=self._last_error,
            ) from self._last_error

        self.stats.messages_sent += 1
        self.stats.last_send_time = time.time()
        logger.debug(f"Sent {len(data)} bytes to {self.host}:{self.port}")

    def _on_ready(self, transport, protocol: _SenderProtocol) -> None:
        """Transport reported the association as usable."""
        if protocol is not self._protocol or self._state is ConnectionState.CANCELLED:
            # Torn down while the endpoint was being created
            transport.close()
            return
        if self._state is ConnectionState.READY:
            logger.debug("Ignoring repeated ready report")
            return

        self._transport = transport
        # Zero high-water mark: any buffered byte pauses writing until flushed
        transport.set_write_buffer_limits(high=0)

        self.stats.connect_time = time.time()
        self._set_state(ConnectionState.READY)
        logger.info(f"UDP sender ready for {self.host}:{self.port}")
        self._settle()

    def _on_failed(self, exc: Exception, protocol: Optional[_SenderProtocol] = None) -> None:
        """Transport reported an error."""
        if protocol is not None and protocol is not self._protocol:
            return
        if self._state is ConnectionState.CANCELLED:
            return

        was_ready = self._state is ConnectionState.READY
        self._last_error = exc
        self._set_state(ConnectionState.FAILED)

        if was_ready:
            logger.warning(f"UDP association to {self.host}:{self.port} failed: {exc}")
        else:
            logger.error(f"UDP connection to {self.host}:{self.port} failed: {exc}")

        error = SenderConnectionError(
            f"UDP connection to {self.host}:{self.port} failed: {exc}",
            cause=exc,
        )
        error.__cause__ = exc
        self._settle(error)

    def _settle(self, error: Optional[Exception] = None) -> None:
        """Resume the pending connect() once; later reports are dropped."""
        waiter = self._connect_waiter
        if waiter is None or waiter.done():
            return
        if error is not None:
            waiter.set_exception(error)
        else:
            waiter.set_result(None)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        self._state = state
        if self.on_state_change:
            try:
                self.on_state_change(state)
            except Exception as e:
                logger.error(f"Error in state change callback: {e}")

    def get_stats(self) -> dict:
        """Get connection statistics."""
        return {
            "endpoint": f"{self.host}:{self.port}",
            "state": self._state.value,
            "ready": self.is_ready,
            "connect_time": self.stats.connect_time,
            "disconnect_time": self.stats.disconnect_time,
            "messages_sent": self.stats.messages_sent,
            "messages_failed": self.stats.messages_failed,
            "last_send_time": self.stats.last_send_time,
            "last_error": str(self._last_error) if self._last_error else None,
        }
