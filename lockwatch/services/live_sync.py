"""
LiveSync - what presentation code reads.

Owns one Reconciler, one PushChannel and one PollChannel for its lifetime.
start() mounts both channels, stop() tears everything down.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from lockwatch.config import settings
from lockwatch.protocols.transport import Connector
from lockwatch.schemas.accounts import DashboardStats, HotAccountRecord, RankedSnapshot
from lockwatch.services.api_client import DashboardAPIClient
from lockwatch.services.connection_machine import (
    ConnectionState,
    is_connected,
    is_connecting,
    status_label,
)
from lockwatch.services.poll_channel import PollChannel
from lockwatch.services.push_channel import PushChannel
from lockwatch.services.reconciler import Reconciler
from lockwatch.util.async_tools import WallClock

logger = logging.getLogger("live_sync")


class LiveSync:
    """Reconciled hot-account view plus push connection health."""

    def __init__(
        self,
        ws_url: Optional[str] = None,
        api: Optional[DashboardAPIClient] = None,
        connector: Optional[Connector] = None,
        clock=None,
        poll_interval: Optional[float] = None,
        reconnect_delay: Optional[float] = None,
    ):
        self._clock = clock or WallClock()
        interval = poll_interval if poll_interval is not None else settings.POLL_INTERVAL_S

        self.reconciler = Reconciler(poll_interval=interval)
        self.push = PushChannel(
            ws_url or settings.WS_URL,
            on_snapshot=self.reconciler.offer,
            connector=connector,
            clock=self._clock,
            reconnect_delay=reconnect_delay if reconnect_delay is not None else settings.RECONNECT_DELAY_S,
        )
        self.poll = PollChannel(
            api or DashboardAPIClient(settings.API_URL, timeout=settings.HTTP_TIMEOUT_S),
            on_snapshot=self.reconciler.offer,
            clock=self._clock,
            interval=interval,
            limit=settings.HOT_ACCOUNTS_LIMIT,
            window=settings.WINDOW_MINUTES,
        )
        self.state_changed_at: Optional[float] = None
        self.push.add_state_listener(self._on_state_change)

    def _on_state_change(self, previous: ConnectionState, current: ConnectionState) -> None:
        self.state_changed_at = self._clock.time()
        if status_label(previous) != status_label(current):
            logger.info(f"[live_sync] Status {status_label(previous)} -> {status_label(current)}")

    async def start(self) -> None:
        logger.info("[live_sync] Mounting push and poll channels")
        await self.push.start()
        await self.poll.start()

    async def stop(self) -> None:
        await self.push.stop()
        await self.poll.stop()
        logger.info("[live_sync] Unmounted")

    def reconnect(self) -> None:
        """Manual retry for the push connection."""
        self.push.reconnect()

    @property
    def state(self) -> ConnectionState:
        return self.push.state

    @property
    def connected(self) -> bool:
        return is_connected(self.push.state)

    @property
    def connecting(self) -> bool:
        return is_connecting(self.push.state)

    @property
    def status_label(self) -> str:
        return status_label(self.push.state)

    @property
    def error(self) -> Optional[str]:
        """Last push-channel error, None when healthy."""
        return self.push.error

    @property
    def poll_errors(self) -> Dict[str, Optional[str]]:
        return dict(self.poll.errors)

    @property
    def hot_accounts(self) -> Tuple[HotAccountRecord, ...]:
        return self.reconciler.records

    @property
    def view(self) -> Optional[RankedSnapshot]:
        return self.reconciler.view

    @property
    def dashboard_stats(self) -> Optional[DashboardStats]:
        return self.poll.dashboard_stats

    def get_health_metrics(self) -> Dict[str, Any]:
        """Connection status, view summary and per-channel health."""
        view = self.reconciler.view
        return {
            "status": self.status_label,
            "connected": self.connected,
            "connecting": self.connecting,
            "error": self.error,
            "state_changed_at": self.state_changed_at,
            "view": {
                "source": view.source.value if view else None,
                "retrieved_at": view.retrieved_at if view else None,
                "age_s": self.reconciler.age(self._clock.time()),
                "records": len(self.hot_accounts),
            },
            "push": self.push.get_health_metrics(),
            "poll": self.poll.get_health_info(),
        }
