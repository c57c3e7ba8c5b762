"""
Exceptions raised by the signal sender, the wire codec and the listener.
"""

from typing import Optional


class SignalError(Exception):
    """Base exception for gesture signal errors."""
    pass


class NotConnectedError(SignalError):
    """Raised when a send is attempted without a live UDP association."""
    pass


class EncodingError(SignalError):
    """Raised when a message cannot be encoded as UTF-8."""
    pass


class SenderConnectionError(SignalError, ConnectionError):
    """Raised when the transport fails before the association is ready."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class InvalidPortError(SignalError, ValueError):
    """Raised when a listener is configured with a port outside 0-65535."""
    pass


class NonUTF8PayloadError(SignalError):
    """Raised when a received datagram is not valid UTF-8."""
    pass


class FlowReceiveError(SignalError):
    """Raised when receiving on an inbound flow fails."""
    pass


class ConnectionCancelledError(SignalError):
    """Raised by a pending connect when disconnect() tears it down."""
    pass
