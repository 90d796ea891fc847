"""
Protocols
Lightweight Protocols for interface clarity and decoupling.
"""

from .transport import Connector, Frame, PushTransport, websocket_connector

__all__ = [
    "Connector",
    "Frame",
    "PushTransport",
    "websocket_connector",
]
