"""
Wire format for gesture signals.

A signal is one UDP datagram whose payload is UTF-8 text of the form
`<gesture_name>_detected`, e.g. `thumbs_up_detected`. There is no length
prefix, checksum or version field.
"""

from dataclasses import dataclass
from typing import Optional

from .exceptions import NonUTF8PayloadError
from .gestures import GestureLabel

DEFAULT_HOST = "127.0.0.1"
DEFAULT_BIND_HOST = "0.0.0.0"
DEFAULT_PORT = 8080

# Receive buffer ceiling
MAX_DATAGRAM_SIZE = 65536

SIGNAL_SUFFIX = "_detected"
UNKNOWN_MARKER = "❓"


@dataclass(frozen=True)
class DecodedSignal:
    """
    A received signal after decoding.

    Attributes:
        raw_label: Gesture name with the `_detected` suffix removed
        gesture: Matching GestureLabel, or None if the name is unknown
        decorated_label: Human readable label with emoji
    """
    raw_label: str
    gesture: Optional[GestureLabel]
    decorated_label: str


def encode_signal(label: GestureLabel) -> str:
    """
    Build the payload text for a confirmed gesture.

    Raises:
        ValueError: If label is the NONE sentinel.
    """
    if not label.is_positive:
        raise ValueError("GestureLabel.NONE is never signalled")
    return f"{label.value}{SIGNAL_SUFFIX}"


def decode_signal(data: bytes) -> DecodedSignal:
    """
    Decode a received datagram.

    Unknown gesture names are accepted and rendered with a fallback marker,
    since senders are not validated upstream.

    Raises:
        NonUTF8PayloadError: If the payload is not valid UTF-8.
    """
    try:
        text = bytes(data).decode("utf-8")
    except UnicodeDecodeError as e:
        raise NonUTF8PayloadError(f"Received non-UTF8 payload ({len(data)} bytes)") from e

    name = text.strip()
    if name.endswith(SIGNAL_SUFFIX):
        name = name[: -len(SIGNAL_SUFFIX)]

    gesture = GestureLabel.from_name(name)
    if gesture is not None and gesture.is_positive:
        decorated = f"{gesture.emoji} {gesture.display_name}"
    else:
        gesture = None
        decorated = f"{UNKNOWN_MARKER} {name.replace('_', ' ').title()}"

    return DecodedSignal(raw_label=name, gesture=gesture, decorated_label=decorated)
