"""
Detector Orchestrator - Wires classifier output to the UDP sender.

Classifier -> StabilityGate -> SignalSender, plus the policies the core
components leave out: the post-trigger cooldown and reconnecting when the
target host changes.
"""

import asyncio
import logging
import time
from typing import AsyncIterable, Optional

from .exceptions import ConnectionCancelledError, SignalError
from .gestures import ClassificationResult, GestureLabel
from .signal_codec import DEFAULT_HOST, DEFAULT_PORT, encode_signal
from .stability_gate import StabilityGate
from .udp_sender import ConnectionState, SignalSender

logger = logging.getLogger(__name__)


class DetectorOrchestrator:
    """
    Main detector pipeline that integrates:
    - Per-frame classification results
    - Stability gate (one confirmation per stable run)
    - UDP signal sender
    - Cooldown after each trigger

    All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        required_frames: int = 5,
        cooldown_ms: int = 750,
        min_confidence: float = 0.0,
    ):
        """
        Initialize the orchestrator.

        Args:
            host: Listener host to send signals to
            port: Listener UDP port
            required_frames: Consecutive frames needed to confirm a gesture
            cooldown_ms: Time the gate stays fired after a trigger
            min_confidence: Results below this confidence count as no gesture
        """
        self.host = host
        self.port = port
        self.cooldown_ms = cooldown_ms
        self.min_confidence = min_confidence

        # Components
        self.gate: StabilityGate[GestureLabel] = StabilityGate(
            required_count=required_frames,
            on_stable=self._on_stable,
        )
        self.sender = self._create_sender(host)

        # Observable state
        self.detected_label = GestureLabel.NONE
        self.last_trigger_time: Optional[float] = None
        self.last_error: Optional[str] = None

        # Tasks
        self._trigger_task: Optional[asyncio.Task] = None
        self._running = False

        # Statistics
        self._triggers = 0
        self._skipped_triggers = 0

    @property
    def progress(self) -> float:
        return self.gate.progress

    @property
    def connected(self) -> bool:
        return self.sender.is_ready

    async def start(self) -> None:
        """Connect the sender. A connection failure is logged, not raised."""
        self._running = True
        await self._connect()
        logger.info("Detector orchestrator started")

    async def stop(self) -> None:
        """Cancel pending work and disconnect."""
        logger.info("Stopping detector orchestrator...")
        self._running = False

        if self._trigger_task and not self._trigger_task.done():
            self._trigger_task.cancel()
            try:
                await self._trigger_task
            except asyncio.CancelledError:
                pass
        self._trigger_task = None

        self.sender.disconnect()
        self.gate.reset()
        logger.info("Detector orchestrator stopped")

    async def set_host(self, host: str) -> None:
        """
        Retarget signals to a new host.

        The old association is fully torn down before a new sender is
        created; an existing sender is never retargeted.
        """
        if host == self.host and self.sender.is_ready:
            return

        logger.info(f"Reconfiguring target host: {self.host} -> {host}")
        self.sender.disconnect()

        self.host = host
        self.sender = self._create_sender(host)
        await self._connect()

    def handle_result(self, result: ClassificationResult) -> Optional[GestureLabel]:
        """
        Feed one classification result into the gate.

        Returns:
            The label confirmed by this frame, if any.
        """
        label = result.label
        if result.confidence < self.min_confidence:
            label = GestureLabel.NONE

        self.detected_label = label
        return self.gate.process(label, is_positive=label.is_positive)

    async def run(self, results: AsyncIterable[ClassificationResult]) -> None:
        """Consume a classification stream until it ends or stop() is called."""
        async for result in results:
            if not self._running:
                break
            self.handle_result(result)

    async def trigger_action(self, label: GestureLabel) -> None:
        """Send the signal for a confirmed gesture, then hold the cooldown."""
        self.last_trigger_time = time.time()
        self._triggers += 1

        if not self.sender.is_ready and self.sender.state is not ConnectionState.CONNECTING:
            # Manual reconnect policy: one attempt per trigger
            await self._connect()

        try:
            await self.sender.send(encode_signal(label))
            self.last_error = None
            logger.info(f"Signal dispatched: {label.value}")
        except SignalError as e:
            self.last_error = f"Signal failed: {e}"
            logger.error(f"Failed to dispatch signal {label.value}: {e}")

        # Grace period before the same gesture may fire again
        await asyncio.sleep(self.cooldown_ms / 1000.0)
        self.gate.reset()

    def _on_stable(self, label: GestureLabel) -> None:
        """Gate confirmation callback."""
        if self._trigger_task and not self._trigger_task.done():
            self._skipped_triggers += 1
            logger.debug(f"Trigger in progress, ignoring confirmation of {label.value}")
            return
        self._trigger_task = asyncio.get_running_loop().create_task(self.trigger_action(label))

    async def _connect(self) -> None:
        sender = self.sender
        try:
            await sender.connect()
        except ConnectionCancelledError:
            # Sender replaced or orchestrator stopping
            logger.debug(f"Connect to {sender.host} cancelled")
        except SignalError as e:
            self.last_error = str(e)
            logger.warning(f"UDP connection failed: {e}")

    def _create_sender(self, host: str) -> SignalSender:
        return SignalSender(host=host, port=self.port, on_state_change=self._on_connection_state)

    def _on_connection_state(self, state: ConnectionState) -> None:
        logger.debug(f"Sender state: {state.value}")

    def get_stats(self) -> dict:
        """Get pipeline statistics."""
        return {
            "host": self.host,
            "port": self.port,
            "connected": self.connected,
            "detected_label": self.detected_label.value,
            "progress": self.progress,
            "triggers": self._triggers,
            "skipped_triggers": self._skipped_triggers,
            "last_trigger_time": self.last_trigger_time,
            "last_error": self.last_error,
            "gate": self.gate.get_stats(),
            "sender": self.sender.get_stats(),
        }
