"""
HTTP status endpoint for the gesture listener.

Exposes listener state and counters for monitoring. Served by uvicorn
alongside the UDP listener when a status port is configured.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .udp_listener import ListenerState, SignalListener

logger = logging.getLogger(__name__)


def create_app(listener: SignalListener) -> FastAPI:
    """
    Create FastAPI application reporting on a listener.

    Args:
        listener: The SignalListener to report on

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(title="Gesture Signal Listener")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        stats = listener.get_stats()
        return {
            "status": "ok" if listener.state is ListenerState.LISTENING else "degraded",
            "port": listener.port,
            **stats,
        }

    @app.get("/last")
    async def last_signal():
        """Most recent decoded signal, if any."""
        report = listener.last_report
        return {"report": report.to_dict() if report else None}

    return app
