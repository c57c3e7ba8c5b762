#!/usr/bin/env python3
"""
Gesture Detector - Main Entry Point

Captures camera frames, classifies the hand pose with MediaPipe, and sends
a UDP signal to the listener for every stable gesture.

Usage:
    python -m gesture_detector.main --host 127.0.0.1 --port 8080 --camera 0
    python -m gesture_detector.main --host 192.168.1.20 --preview
"""

import argparse
import asyncio
import logging
import signal
import sys
import time
from typing import AsyncIterator, Optional

import cv2
import mediapipe as mp

from .gestures import ClassificationResult
from .hand_classifier import classify_hand_results
from .orchestrator import DetectorOrchestrator
from .signal_codec import DEFAULT_HOST, DEFAULT_PORT

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# MediaPipe setup
mp_hands = mp.solutions.hands
mp_draw = mp.solutions.drawing_utils


class CameraClassifier:
    """
    Produces one ClassificationResult per captured frame.

    Owns the capture device, the MediaPipe Hands instance and the optional
    preview window.
    """

    def __init__(
        self,
        orchestrator: DetectorOrchestrator,
        camera_index: int = 0,
        rate: float = 30.0,
        show_preview: bool = False,
    ):
        self.orchestrator = orchestrator
        self.camera_index = camera_index
        self.rate = rate
        self.show_preview = show_preview

        self.cap: Optional[cv2.VideoCapture] = None
        self.hands: Optional[mp_hands.Hands] = None
        self._running = False
        self.font = cv2.FONT_HERSHEY_SIMPLEX

    def open(self) -> None:
        logger.info(f"Opening camera index: {self.camera_index}")
        self.cap = cv2.VideoCapture(self.camera_index)
        if not self.cap.isOpened():
            raise RuntimeError("Failed to open camera source")

        width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info(f"Camera opened: {width}x{height}")

        self.hands = mp_hands.Hands(
            static_image_mode=False,
            max_num_hands=1,
            model_complexity=1,
            min_detection_confidence=0.5,
            min_tracking_confidence=0.5,
        )
        self._running = True

    def close(self) -> None:
        self._running = False
        if self.cap:
            self.cap.release()
            self.cap = None
        if self.hands:
            self.hands.close()
            self.hands = None
        if self.show_preview:
            cv2.destroyAllWindows()

    async def results(self) -> AsyncIterator[ClassificationResult]:
        """Rate-limited classification stream, ends when closed or quit."""
        target_dt = 1.0 / self.rate

        while self._running:
            loop_start = time.time()

            ok, frame = self.cap.read()
            if not ok or frame is None:
                logger.debug("Frame read failed")
                yield ClassificationResult.none("Frame read failed")
            else:
                frame = cv2.flip(frame, 1)
                rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                try:
                    hand_results = self.hands.process(rgb)
                except Exception as e:
                    logger.warning(f"MediaPipe processing error: {e}")
                    hand_results = None

                result = classify_hand_results(hand_results)
                yield result

                if self.show_preview:
                    self._draw_preview(frame, hand_results, result)
                    cv2.imshow("Gesture Detector", frame)
                    key = cv2.waitKey(1) & 0xFF
                    if key in (27, ord('q')):
                        logger.info("Quit requested")
                        self._running = False

            # Rate limiting
            elapsed = time.time() - loop_start
            await asyncio.sleep(max(0.0, target_dt - elapsed))

    def _draw_preview(self, frame, hand_results, result: ClassificationResult) -> None:
        """Draw landmarks and pipeline state on the frame."""
        h = frame.shape[0]
        if hand_results is not None and hand_results.multi_hand_landmarks:
            mp_draw.draw_landmarks(
                frame, hand_results.multi_hand_landmarks[0], mp_hands.HAND_CONNECTIONS
            )

        cv2.putText(
            frame,
            f"Gesture: {result.label.display_name} ({result.confidence:.2f})",
            (20, 40), self.font, 0.8, (255, 255, 0), 2
        )

        progress = int(self.orchestrator.progress * 100)
        cv2.putText(frame, f"Stability: {progress}%", (20, 70), self.font, 0.6, (0, 200, 0), 2)

        connected = self.orchestrator.connected
        conn_color = (0, 255, 0) if connected else (0, 0, 255)
        cv2.putText(
            frame,
            f"Target {self.orchestrator.host}:{self.orchestrator.port} "
            f"{'ready' if connected else 'not connected'}",
            (20, h - 20), self.font, 0.5, conn_color, 1
        )


async def main_async(args: argparse.Namespace) -> None:
    """Async main entry point."""
    orchestrator = DetectorOrchestrator(
        host=args.host,
        port=args.port,
        required_frames=args.required_frames,
        cooldown_ms=args.cooldown_ms,
        min_confidence=args.min_confidence,
    )
    camera = CameraClassifier(
        orchestrator,
        camera_index=args.camera,
        rate=args.rate,
        show_preview=args.preview,
    )

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Shutdown signal received")
        camera.close()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        camera.open()
        await orchestrator.start()
        await orchestrator.run(camera.results())
    except Exception as e:
        logger.error(f"Detector error: {e}")
    finally:
        await orchestrator.stop()
        camera.close()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Gesture Detector",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--host",
        type=str,
        default=DEFAULT_HOST,
        help="Listener host",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help="Listener UDP port",
    )
    parser.add_argument(
        "--camera",
        type=int,
        default=0,
        help="Camera device index",
    )
    parser.add_argument(
        "--rate",
        type=float,
        default=30.0,
        help="Frame rate (Hz)",
    )
    parser.add_argument(
        "--required-frames",
        type=int,
        default=5,
        help="Consecutive frames needed to confirm a gesture",
    )
    parser.add_argument(
        "--cooldown-ms",
        type=int,
        default=750,
        help="Cooldown after each signal (ms)",
    )
    parser.add_argument(
        "--min-confidence",
        type=float,
        default=0.0,
        help="Results below this confidence count as no gesture",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Show preview window",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.required_frames < 1:
        parser.error("--required-frames must be >= 1")

    try:
        asyncio.run(main_async(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
