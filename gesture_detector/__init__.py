"""
Gesture Detector - Turns classified hand gestures into UDP action signals.

This package runs on the camera machine: per-frame gesture classifications
are debounced by a stability gate and every confirmed gesture is sent to a
remote listener as a single UDP datagram.
"""

__version__ = "1.1.0"
