"""
UDP Listener for gesture signals.

Handles:
- Binding a UDP port with an asyncio datagram endpoint
- One inbound flow per peer address, each with its own receive task
- Decoding and reporting every datagram, tolerant of malformed payloads
- Releasing idle flows so the listener can run forever
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from gesture_detector.exceptions import FlowReceiveError, InvalidPortError, NonUTF8PayloadError
from gesture_detector.signal_codec import (
    DEFAULT_BIND_HOST,
    DEFAULT_PORT,
    MAX_DATAGRAM_SIZE,
    decode_signal,
)

logger = logging.getLogger(__name__)

PeerAddress = Tuple[str, int]


class ListenerState(Enum):
    """Lifecycle of the listener."""
    CREATED = "created"
    STARTING = "starting"
    LISTENING = "listening"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class SignalReport:
    """One received and decoded signal."""
    timestamp: datetime
    raw_label: str
    decorated_label: str
    peer: Optional[PeerAddress] = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(timespec="seconds"),
            "raw_label": self.raw_label,
            "decorated_label": self.decorated_label,
            "peer": f"{self.peer[0]}:{self.peer[1]}" if self.peer else None,
        }


class InboundFlow:
    """
    Datagrams from one peer, received sequentially.

    The flow completes after `idle_timeout` seconds without data and fails
    when its backlog overflows.
    """

    def __init__(self, peer: PeerAddress, idle_timeout: float, backlog: int):
        self.peer = peer
        self.idle_timeout = idle_timeout
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=backlog)
        self._error: Optional[FlowReceiveError] = None
        self.task: Optional[asyncio.Task] = None
        self.datagrams = 0

    @property
    def failed(self) -> bool:
        return self._error is not None

    def feed(self, data: bytes) -> None:
        """Queue a datagram from the transport."""
        if self._error is not None:
            return
        try:
            self._queue.put_nowait(data)
        except asyncio.QueueFull:
            self.fail(FlowReceiveError(f"Receive backlog full for {self.peer[0]}:{self.peer[1]}"))

    def fail(self, error: FlowReceiveError) -> None:
        """End the flow with a receive error."""
        self._error = error
        # Wake a pending receive
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def receive(self, min_length: int, max_length: int) -> Tuple[bytes, bool]:
        """
        Wait for the next datagram.

        Returns:
            Tuple of (data, is_complete). Data longer than max_length is
            truncated; datagrams shorter than min_length are returned empty.

        Raises:
            FlowReceiveError: If the flow failed.
        """
        try:
            data = await asyncio.wait_for(self._queue.get(), timeout=self.idle_timeout)
        except asyncio.TimeoutError:
            return b"", True

        if self._error is not None:
            raise self._error

        if len(data) > max_length:
            logger.warning(
                f"Truncating {len(data)}-byte datagram from {self.peer[0]}:{self.peer[1]} "
                f"to {max_length} bytes"
            )
            data = data[:max_length]
        if len(data) < min_length:
            data = b""
        return data, False


class _ListenerProtocol(asyncio.DatagramProtocol):
    """Forwards socket events to the owning SignalListener."""

    def __init__(self, listener: "SignalListener"):
        self._listener = listener

    def datagram_received(self, data: bytes, addr) -> None:
        self._listener._on_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        self._listener._on_socket_error(exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self._listener._on_connection_lost(exc)


class SignalListener:
    """
    UDP server that reports every gesture signal it receives.

    Features:
    - Construction-time port validation
    - Independent, concurrent flows per peer
    - Receive errors end one flow, never the listener
    """

    def __init__(
        self,
        port: int = DEFAULT_PORT,
        host: str = DEFAULT_BIND_HOST,
        on_report: Optional[Callable[[SignalReport], None]] = None,
        max_receive_size: int = MAX_DATAGRAM_SIZE,
        flow_idle_timeout: float = 30.0,
        flow_backlog: int = 100,
    ):
        """
        Initialize UDP listener.

        Args:
            port: UDP port to bind, 0 for an ephemeral port
            host: Bind address
            on_report: Callback for every decoded signal
            max_receive_size: Receive window ceiling in bytes
            flow_idle_timeout: Seconds of silence before a flow is released
            flow_backlog: Datagrams queued per flow before it fails

        Raises:
            InvalidPortError: If port is not an integer in 0-65535.
        """
        if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 65535:
            raise InvalidPortError(f"Invalid port number specified: {port!r}")

        self.port = port
        self.host = host
        self.on_report = on_report
        self.max_receive_size = max_receive_size
        self.flow_idle_timeout = flow_idle_timeout
        self.flow_backlog = flow_backlog

        self._state = ListenerState.CREATED
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._flows: Dict[PeerAddress, InboundFlow] = {}
        self._stopped: Optional[asyncio.Event] = None
        self._bound_address: Optional[PeerAddress] = None

        # Statistics
        self._total_datagrams = 0
        self._total_reports = 0
        self._invalid_payloads = 0
        self._flow_errors = 0
        self._total_flows = 0
        self._last_report: Optional[SignalReport] = None

    @property
    def state(self) -> ListenerState:
        return self._state

    @property
    def address(self) -> Optional[PeerAddress]:
        """Bound (host, port) while listening."""
        return self._bound_address

    @property
    def active_flows(self) -> int:
        return len(self._flows)

    @property
    def last_report(self) -> Optional[SignalReport]:
        return self._last_report

    async def start(self) -> None:
        """
        Bind the port and serve until stop() is called.

        A bind failure is logged and leaves the listener FAILED; it is not
        raised to the caller.
        """
        if self._state is not ListenerState.CREATED:
            logger.debug(f"start() ignored in state {self._state.value}")
            return

        self._state = ListenerState.STARTING
        self._stopped = asyncio.Event()
        loop = asyncio.get_running_loop()

        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _ListenerProtocol(self),
                local_addr=(self.host, self.port),
            )
        except OSError as e:
            self._state = ListenerState.FAILED
            logger.error(f"Listener failed to bind {self.host}:{self.port}: {e}")
            return

        if self._state is not ListenerState.STARTING:
            # stop() arrived while binding
            transport.close()
            return

        self._transport = transport
        sockname = transport.get_extra_info("sockname")
        self._bound_address = (sockname[0], sockname[1]) if sockname else (self.host, self.port)
        self._state = ListenerState.LISTENING
        logger.info(f"Listening for UDP packets on {self._bound_address[0]}:{self._bound_address[1]}")

        await self._stopped.wait()

    async def stop(self) -> None:
        """Cancel all flows and close the socket. Idempotent."""
        if self._state in (ListenerState.STOPPED, ListenerState.STOPPING):
            return
        if self._state in (ListenerState.CREATED, ListenerState.FAILED):
            self._state = ListenerState.STOPPED
            return

        self._state = ListenerState.STOPPING
        logger.info("Listener stopping...")

        flows = list(self._flows.values())
        self._flows.clear()
        tasks = [flow.task for flow in flows if flow.task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._transport is not None:
            self._transport.close()
            self._transport = None
        self._bound_address = None

        self._state = ListenerState.STOPPED
        if self._stopped is not None:
            self._stopped.set()
        logger.info("Listener stopped")

    def _on_datagram(self, data: bytes, addr) -> None:
        """Route a datagram to its flow, accepting a new flow if needed."""
        if self._state is not ListenerState.LISTENING:
            return

        self._total_datagrams += 1
        peer = (addr[0], addr[1])
        flow = self._flows.get(peer)
        if flow is None or flow.failed:
            flow = self._accept_flow(peer)
        flow.feed(data)

    def _accept_flow(self, peer: PeerAddress) -> InboundFlow:
        flow = InboundFlow(peer, self.flow_idle_timeout, self.flow_backlog)
        self._flows[peer] = flow
        self._total_flows += 1
        flow.task = asyncio.get_running_loop().create_task(self._run_flow(flow))
        logger.debug(f"Accepted flow from {peer[0]}:{peer[1]}")
        return flow

    async def _run_flow(self, flow: InboundFlow) -> None:
        """Sequential receive loop for one flow."""
        try:
            while True:
                data, is_complete = await flow.receive(1, self.max_receive_size)
                if data:
                    flow.datagrams += 1
                    self._handle_datagram(data, flow.peer)
                if is_complete:
                    logger.debug(
                        f"Flow from {flow.peer[0]}:{flow.peer[1]} complete "
                        f"after {flow.datagrams} datagrams"
                    )
                    break
        except FlowReceiveError as e:
            self._flow_errors += 1
            logger.error(f"Receive error: {e}")
        finally:
            if self._flows.get(flow.peer) is flow:
                del self._flows[flow.peer]

    def _handle_datagram(self, data: bytes, peer: PeerAddress) -> None:
        """Decode one datagram and report it."""
        try:
            decoded = decode_signal(data)
        except NonUTF8PayloadError as e:
            self._invalid_payloads += 1
            logger.warning(f"{e} from {peer[0]}:{peer[1]}")
            return

        report = SignalReport(
            timestamp=datetime.now(),
            raw_label=decoded.raw_label,
            decorated_label=decoded.decorated_label,
            peer=peer,
        )
        self._total_reports += 1
        self._last_report = report

        if self.on_report:
            try:
                self.on_report(report)
            except Exception as e:
                logger.error(f"Error in report callback: {e}")

    def _on_socket_error(self, exc: Exception) -> None:
        # Not attributable to a single flow
        logger.warning(f"Listener socket error: {exc}")

    def _on_connection_lost(self, exc: Optional[Exception]) -> None:
        """Socket closed. Only unexpected while LISTENING; stop() closes it otherwise."""
        if self._state is not ListenerState.LISTENING:
            return

        self._state = ListenerState.FAILED
        logger.error(f"Listener socket closed unexpectedly: {exc or 'no error reported'}")

        for flow in self._flows.values():
            if flow.task is not None:
                flow.task.cancel()
        self._flows.clear()
        self._transport = None
        self._bound_address = None

        # Let start() return
        if self._stopped is not None:
            self._stopped.set()

    def get_stats(self) -> dict:
        """Get listener statistics."""
        return {
            "state": self._state.value,
            "address": f"{self._bound_address[0]}:{self._bound_address[1]}" if self._bound_address else None,
            "active_flows": len(self._flows),
            "total_flows": self._total_flows,
            "total_datagrams": self._total_datagrams,
            "total_reports": self._total_reports,
            "invalid_payloads": self._invalid_payloads,
            "flow_errors": self._flow_errors,
            "last_report": self._last_report.to_dict() if self._last_report else None,
        }
