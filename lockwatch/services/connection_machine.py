"""
Push channel connection lifecycle as an explicit state machine.

``transition`` is pure: it maps (state, event) to the next state plus the
side effects the driver must perform, in order. The driver in
``push_channel`` owns the transport and the retry timer and executes them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"


class ChannelEvent(str, Enum):
    START = "start"
    RECONNECT_REQUESTED = "reconnect_requested"
    TRANSPORT_OPENED = "transport_opened"
    TRANSPORT_FAILED = "transport_failed"  # error before the transport opened, or fatal error while open
    TRANSPORT_CLOSED = "transport_closed"
    RETRY_TIMER_FIRED = "retry_timer_fired"
    STOP = "stop"


class Effect(str, Enum):
    OPEN_TRANSPORT = "open_transport"
    CLOSE_TRANSPORT = "close_transport"
    SEND_SUBSCRIBE = "send_subscribe"
    START_RETRY_TIMER = "start_retry_timer"
    CANCEL_RETRY_TIMER = "cancel_retry_timer"
    CLEAR_ERROR = "clear_error"
    RECORD_ERROR = "record_error"


@dataclass(frozen=True)
class Transition:
    state: ConnectionState
    effects: Tuple[Effect, ...] = ()
    changed: bool = True


_RESTART = (Effect.CANCEL_RETRY_TIMER, Effect.CLOSE_TRANSPORT, Effect.OPEN_TRANSPORT)
_SHUTDOWN = (Effect.CANCEL_RETRY_TIMER, Effect.CLOSE_TRANSPORT)

_TABLE: Dict[Tuple[ConnectionState, ChannelEvent], Transition] = {
    (ConnectionState.DISCONNECTED, ChannelEvent.START):
        Transition(ConnectionState.CONNECTING, (Effect.OPEN_TRANSPORT,)),

    (ConnectionState.CONNECTING, ChannelEvent.TRANSPORT_OPENED):
        Transition(ConnectionState.OPEN, (Effect.CLEAR_ERROR, Effect.SEND_SUBSCRIBE)),
    (ConnectionState.CONNECTING, ChannelEvent.TRANSPORT_FAILED):
        Transition(ConnectionState.RECONNECTING, (Effect.RECORD_ERROR, Effect.START_RETRY_TIMER)),

    (ConnectionState.OPEN, ChannelEvent.TRANSPORT_CLOSED):
        Transition(ConnectionState.RECONNECTING, (Effect.START_RETRY_TIMER,)),
    (ConnectionState.OPEN, ChannelEvent.TRANSPORT_FAILED):
        Transition(ConnectionState.RECONNECTING, (Effect.RECORD_ERROR, Effect.START_RETRY_TIMER)),

    (ConnectionState.RECONNECTING, ChannelEvent.RETRY_TIMER_FIRED):
        Transition(ConnectionState.CONNECTING, (Effect.OPEN_TRANSPORT,)),
}


def transition(state: ConnectionState, event: ChannelEvent) -> Transition:
    """Next state and effects for ``event`` in ``state``.

    Manual reconnect and stop are accepted from every state. Any other pair
    missing from the table leaves the state unchanged with no effects.
    """
    if event is ChannelEvent.STOP:
        return Transition(ConnectionState.DISCONNECTED, _SHUTDOWN, state is not ConnectionState.DISCONNECTED)
    if event is ChannelEvent.RECONNECT_REQUESTED:
        return Transition(ConnectionState.CONNECTING, _RESTART, state is not ConnectionState.CONNECTING)
    found = _TABLE.get((state, event))
    if found is None:
        return Transition(state, (), False)
    return found


def is_connected(state: ConnectionState) -> bool:
    return state is ConnectionState.OPEN


def is_connecting(state: ConnectionState) -> bool:
    return state is ConnectionState.CONNECTING


def status_label(state: ConnectionState) -> str:
    """Label for the dashboard status indicator."""
    if state is ConnectionState.CONNECTING:
        return "Connecting"
    if state is ConnectionState.OPEN:
        return "Live"
    return "Disconnected"
