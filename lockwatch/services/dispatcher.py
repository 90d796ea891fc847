"""
Inbound push frame dispatcher.
Parses each frame, validates the envelope and routes it by ``type``.
Malformed frames are dropped; nothing raised here reaches the connection.
"""

import json
import logging
from typing import Callable, Optional, Union

from pydantic import ValidationError

from lockwatch.errors import ProtocolError
from lockwatch.schemas.accounts import RankedSnapshot, SnapshotSource
from lockwatch.schemas.messages import (
    SERVER_MESSAGE_TYPES,
    ConnectedMessage,
    ErrorMessage,
    HotAccountsUpdateMessage,
    server_message_adapter,
)

logger = logging.getLogger("dispatcher")

UNKNOWN_SERVER_ERROR = "Unknown error"


class MessageDispatcher:
    """Routes server messages to the snapshot sink and the channel error cell."""

    def __init__(
        self,
        on_snapshot: Callable[[RankedSnapshot], None],
        on_error: Callable[[Optional[str]], None],
        clock: Callable[[], float],
    ):
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._clock = clock

        self.frames_received = 0
        self.frames_dropped = 0
        self.frames_ignored = 0

    def dispatch(self, frame: Union[str, bytes]) -> None:
        """Handle one inbound frame."""
        self.frames_received += 1
        try:
            message = self.parse(frame)
        except ProtocolError as e:
            self.frames_dropped += 1
            logger.debug(f"[dispatcher] Dropped frame: {e.message}")
            return
        except Exception as e:
            self.frames_dropped += 1
            logger.warning(f"[dispatcher] Dropped unparseable frame: {e!r}")
            return

        if message is None:
            self.frames_ignored += 1
            return

        if isinstance(message, ConnectedMessage):
            logger.info(f"[dispatcher] Server message: {message.message}")
            self._on_error(None)
        elif isinstance(message, HotAccountsUpdateMessage):
            snapshot = RankedSnapshot.from_records(message.data, SnapshotSource.PUSH, self._clock())
            self._on_snapshot(snapshot)
        elif isinstance(message, ErrorMessage):
            text = message.message or UNKNOWN_SERVER_ERROR
            logger.warning(f"[dispatcher] Server error: {text}")
            self._on_error(text)

    def parse(self, frame: Union[str, bytes]):
        """Parse a frame into a server message.

        Returns None for well-formed envelopes of an unknown type.

        Raises:
            ProtocolError: frame is not a valid envelope
        """
        if isinstance(frame, (bytes, bytearray)):
            try:
                frame = frame.decode("utf-8")
            except UnicodeDecodeError:
                raise ProtocolError("Frame is not UTF-8")

        try:
            envelope = json.loads(frame)
        except (TypeError, ValueError) as e:
            raise ProtocolError("Frame is not JSON", {"error": str(e)})
        except RecursionError:
            raise ProtocolError("Frame is nested too deeply")

        if not isinstance(envelope, dict):
            raise ProtocolError("Envelope is not an object")

        message_type = envelope.get("type")
        if not isinstance(message_type, str):
            raise ProtocolError("Envelope has no type")

        if message_type not in SERVER_MESSAGE_TYPES:
            logger.debug(f"[dispatcher] Ignoring message type: {message_type}")
            return None

        try:
            return server_message_adapter.validate_python(envelope)
        except ValidationError as e:
            raise ProtocolError(f"Invalid {message_type} message", {"errors": e.error_count()})
