#!/usr/bin/env python3
"""
Gesture Listener - Main Entry Point

Receives gesture signals over UDP and prints one line per signal.

Environment Variables:
    LISTENER_HOST: Bind address (default: 0.0.0.0)
    LISTENER_PORT: UDP port (default: 8080)
    STATUS_PORT: HTTP port for the /health endpoint (default: disabled)
    LOG_LEVEL: Logging level (default: INFO)

Usage:
    python -m gesture_listener.main
    LISTENER_PORT=9000 STATUS_PORT=8081 python -m gesture_listener.main
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Optional

import uvicorn

from gesture_detector.exceptions import InvalidPortError
from gesture_detector.signal_codec import DEFAULT_BIND_HOST, DEFAULT_PORT

from .status_api import create_app
from .udp_listener import SignalListener, SignalReport

# Configure logging
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def print_report(report: SignalReport) -> None:
    """Console output for one received signal."""
    timestamp = report.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    logger.info(f"[{timestamp}] {report.decorated_label} Gesture Received")
    logger.info(f"   Triggering System Reaction for {report.raw_label}...")


async def run_status_server(listener: SignalListener, host: str, port: int) -> None:
    """Run the status API with uvicorn."""
    config = uvicorn.Config(
        create_app(listener),
        host=host,
        port=port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)
    await server.serve()


async def main_async() -> int:
    """Async main entry point. Returns the process exit code."""
    # Load configuration from environment
    host = os.environ.get("LISTENER_HOST", DEFAULT_BIND_HOST)
    try:
        port = int(os.environ.get("LISTENER_PORT", str(DEFAULT_PORT)))
        status_port: Optional[int] = (
            int(os.environ["STATUS_PORT"]) if os.environ.get("STATUS_PORT") else None
        )
    except ValueError as e:
        logger.error(f"Invalid port configuration: {e}")
        return 1

    try:
        listener = SignalListener(port=port, host=host, on_report=print_report)
    except InvalidPortError as e:
        logger.error(f"Critical initialization error: {e}")
        return 1

    logger.info(f"GestureLink Listener - Protocol: UDP - Port: {port}")

    # Setup signal handlers
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def signal_handler():
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    tasks = [
        asyncio.create_task(listener.start()),
        asyncio.create_task(shutdown_event.wait()),
    ]
    if status_port is not None:
        tasks.append(asyncio.create_task(run_status_server(listener, host, status_port)))
        logger.info(f"Status API on http://{host}:{status_port}/health")

    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

        # Cancel pending tasks
        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
    finally:
        await listener.stop()

    if shutdown_event.is_set():
        logger.info("Shutting down listener. Goodbye!")
        return 0
    return 1


def main() -> None:
    """Main entry point."""
    try:
        sys.exit(asyncio.run(main_async()))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
