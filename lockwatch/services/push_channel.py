"""
Push channel: one long-lived WebSocket with automatic reconnection.

Drives ``connection_machine`` and executes its effects. The transport and the
retry timer belong to this instance only. Every transport attempt gets a
generation number; events from a superseded attempt are dropped.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from websockets.exceptions import ConnectionClosed

from lockwatch.protocols.transport import Connector, PushTransport, websocket_connector
from lockwatch.schemas.accounts import RankedSnapshot
from lockwatch.schemas.messages import SubscribeMessage
from lockwatch.services.connection_machine import (
    ChannelEvent,
    ConnectionState,
    Effect,
    transition,
)
from lockwatch.services.dispatcher import MessageDispatcher
from lockwatch.util.async_tools import WallClock, timeout

logger = logging.getLogger("push_channel")

RECONNECT_DELAY_S = 5.0
CONNECT_TIMEOUT_S = 10.0
CONNECTION_ERROR = "Connection error"

StateListener = Callable[[ConnectionState, ConnectionState], None]


class PushChannel:
    """Owns the connection lifecycle for the hot-accounts push feed."""

    def __init__(
        self,
        url: str,
        on_snapshot: Callable[[RankedSnapshot], None],
        connector: Optional[Connector] = None,
        clock=None,
        reconnect_delay: float = RECONNECT_DELAY_S,
        connect_timeout: float = CONNECT_TIMEOUT_S,
    ):
        self.url = url
        self.reconnect_delay = reconnect_delay
        self.connect_timeout = connect_timeout
        self._connector = connector or websocket_connector
        self._clock = clock or WallClock()
        self._dispatcher = MessageDispatcher(on_snapshot, self._set_error, self._clock.time)

        self._state = ConnectionState.DISCONNECTED
        self._error: Optional[str] = None
        self._generation = 0
        self._transport: Optional[PushTransport] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._closing: Set[asyncio.Task] = set()
        self._listeners: List[StateListener] = []
        self._started = False
        self._stopped = False

        # Health metrics
        self.connect_attempts = 0
        self.opens = 0
        self.subscriptions_sent = 0
        self.manual_reconnects = 0
        self.last_open_ts = 0.0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def retry_pending(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def add_state_listener(self, listener: StateListener) -> None:
        """Call ``listener(previous, current)`` on every state change."""
        self._listeners.append(listener)

    async def start(self) -> None:
        """Open the connection. A stopped channel cannot be restarted."""
        if self._stopped:
            logger.warning("[push_channel] Channel was stopped; create a new instance")
            return
        if self._started:
            logger.warning("[push_channel] Channel already running")
            return
        self._started = True
        logger.info(f"[push_channel] Starting for {self.url}")
        self._fire(ChannelEvent.START)

    async def stop(self) -> None:
        """Cancel the retry timer, close the transport and go terminal. Idempotent."""
        if self._stopped:
            return
        self._fire(ChannelEvent.STOP)
        self._stopped = True
        pending = [task for task in self._closing if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._closing.clear()
        logger.info("[push_channel] Stopped")

    def reconnect(self) -> None:
        """Drop any pending retry and current transport and connect again now.

        Safe from every state; a no-op once the channel is stopped.
        """
        if self._stopped:
            logger.warning("[push_channel] Reconnect ignored, channel stopped")
            return
        self._started = True
        self.manual_reconnects += 1
        logger.info("[push_channel] Manual reconnect requested")
        self._fire(ChannelEvent.RECONNECT_REQUESTED)

    def _fire(self, event: ChannelEvent, generation: Optional[int] = None) -> Tuple[Effect, ...]:
        """Apply one event and execute its effects; returns the effects."""
        if self._stopped:
            logger.debug(f"[push_channel] Ignoring {event.value} after stop")
            return ()
        if generation is not None and generation != self._generation:
            logger.debug(f"[push_channel] Ignoring {event.value} from superseded connection #{generation}")
            return ()

        result = transition(self._state, event)
        previous = self._state
        self._state = result.state

        if result.changed:
            logger.info(
                f"[push_channel] {previous.value} -> {result.state.value} on {event.value}",
                extra={"evt": "ws_state", "from": previous.value, "to": result.state.value}
            )
            for listener in list(self._listeners):
                try:
                    listener(previous, result.state)
                except Exception as e:
                    logger.error(f"[push_channel] State listener failed: {e}")

        for effect in result.effects:
            self._execute(effect)
        return result.effects

    def _execute(self, effect: Effect) -> None:
        if effect is Effect.OPEN_TRANSPORT:
            self._generation += 1
            self.connect_attempts += 1
            self._reader_task = asyncio.get_running_loop().create_task(
                self._run_transport(self._generation), name=f"push_channel#{self._generation}"
            )
        elif effect is Effect.CLOSE_TRANSPORT:
            self._transport = None
            self._retire(self._reader_task)
            self._reader_task = None
        elif effect is Effect.START_RETRY_TIMER:
            self._timer_task = asyncio.get_running_loop().create_task(
                self._retry_after(self.reconnect_delay), name="push_channel_retry"
            )
        elif effect is Effect.CANCEL_RETRY_TIMER:
            self._retire(self._timer_task)
            self._timer_task = None
        elif effect is Effect.CLEAR_ERROR:
            self._error = None
        elif effect is Effect.RECORD_ERROR:
            self._error = CONNECTION_ERROR
        # SEND_SUBSCRIBE is performed by the reader, which holds the open transport

    def _retire(self, task: Optional[asyncio.Task]) -> None:
        """Cancel a task and keep it until it finishes so stop() can await it."""
        if task is None or task.done():
            return
        task.cancel()
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    def _set_error(self, message: Optional[str]) -> None:
        self._error = message

    async def _retry_after(self, delay: float) -> None:
        logger.info(f"[push_channel] Reconnecting in {delay}s")
        await self._clock.sleep(delay)
        if self._timer_task is asyncio.current_task():
            self._timer_task = None
        logger.info("[push_channel] Attempting to reconnect...")
        self._fire(ChannelEvent.RETRY_TIMER_FIRED)

    async def _run_transport(self, generation: int) -> None:
        transport: Optional[PushTransport] = None
        try:
            try:
                transport = await timeout(self._connector(self.url), self.connect_timeout)
            except Exception as e:
                logger.warning(f"[push_channel] Connect failed: {e}")
                self._fire(ChannelEvent.TRANSPORT_FAILED, generation)
                return

            effects = self._fire(ChannelEvent.TRANSPORT_OPENED, generation)
            if not effects:
                return

            self._transport = transport
            self.opens += 1
            self.last_open_ts = self._clock.time()

            if Effect.SEND_SUBSCRIBE in effects:
                await transport.send(SubscribeMessage().model_dump_json())
                self.subscriptions_sent += 1
                logger.info("[push_channel] Subscribed to hot-accounts")

            async for frame in transport:
                self._dispatcher.dispatch(frame)

            logger.info("[push_channel] Disconnected")
            self._fire(ChannelEvent.TRANSPORT_CLOSED, generation)

        except ConnectionClosed as e:
            logger.info(f"[push_channel] Disconnected: {e}")
            self._fire(ChannelEvent.TRANSPORT_CLOSED, generation)
        except Exception as e:
            logger.warning(f"[push_channel] Transport error: {e}")
            self._fire(ChannelEvent.TRANSPORT_FAILED, generation)
        finally:
            if generation == self._generation and self._transport is transport:
                self._transport = None
            if transport is not None:
                await self._close_quietly(transport)

    async def _close_quietly(self, transport: PushTransport) -> None:
        try:
            await transport.close()
        except Exception as e:
            logger.debug(f"[push_channel] Error while closing transport: {e}")

    def get_health_metrics(self) -> Dict[str, Any]:
        """Get push channel health metrics."""
        dispatcher = self._dispatcher
        return {
            "state": self._state.value,
            "error": self._error,
            "connect_attempts": self.connect_attempts,
            "opens": self.opens,
            "subscriptions_sent": self.subscriptions_sent,
            "manual_reconnects": self.manual_reconnects,
            "retry_pending": self.retry_pending,
            "last_open_ts": self.last_open_ts or None,
            "frames_received": dispatcher.frames_received,
            "frames_dropped": dispatcher.frames_dropped,
            "frames_ignored": dispatcher.frames_ignored,
        }
