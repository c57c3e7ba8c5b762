"""
Gesture Listener - Receives gesture signals over UDP.

This module runs on the machine that reacts to gestures:
- Binds a UDP port and accepts datagrams from any detector
- Decodes each `<gesture>_detected` payload and reports it
- Optionally serves a status endpoint over HTTP
"""

__version__ = "1.1.0"
