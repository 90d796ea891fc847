"""
Push Transport Protocol
Defines the interface the push channel needs from a live connection.
"""

from typing import AsyncIterator, Awaitable, Callable, Protocol, Union
from abc import abstractmethod

import websockets

Frame = Union[str, bytes]


class PushTransport(Protocol):
    """An open bidirectional connection yielding inbound frames in arrival order.

    Iteration ends when the peer closes cleanly and raises on abnormal closure.
    """

    @abstractmethod
    async def send(self, message: str) -> None:
        """Send one text frame."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection; safe to call more than once."""
        ...

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[Frame]:
        ...


Connector = Callable[[str], Awaitable[PushTransport]]


async def websocket_connector(url: str) -> PushTransport:
    """Open a WebSocket with the websockets library."""
    return await websockets.connect(url, close_timeout=10)
