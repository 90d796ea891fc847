"""
Poll channel: fixed-interval REST snapshots, independent of the push socket.
A failed request is recorded and retried on the next tick; nothing else.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from lockwatch.errors import FetchError, create_structured_error_response
from lockwatch.schemas.accounts import DashboardStats, RankedSnapshot, SnapshotSource
from lockwatch.services.api_client import DashboardAPIClient
from lockwatch.util.async_tools import WallClock

logger = logging.getLogger("poll_channel")

POLL_INTERVAL_S = 5.0

HOT_ACCOUNTS_REQUEST = "hot_accounts"
STATS_REQUEST = "stats"


class PollChannel:
    """Periodic puller for hot accounts and dashboard totals."""

    def __init__(
        self,
        api: DashboardAPIClient,
        on_snapshot: Callable[[RankedSnapshot], None],
        clock=None,
        interval: float = POLL_INTERVAL_S,
        limit: int = 20,
        window: int = 5,
    ):
        self.api = api
        self.interval = interval
        self.limit = limit
        self.window = window
        self._on_snapshot = on_snapshot
        self._clock = clock or WallClock()
        self._task: Optional[asyncio.Task] = None
        self.running = False

        self.errors: Dict[str, Optional[str]] = {HOT_ACCOUNTS_REQUEST: None, STATS_REQUEST: None}
        self.dashboard_stats: Optional[DashboardStats] = None
        self.last_success_ts: Optional[float] = None
        self.polls = 0
        self.failures = 0
        self.last_failure: Optional[Dict[str, Any]] = None

    async def start(self) -> None:
        """Start polling; the first cycle runs immediately."""
        if self.running:
            return
        self.running = True
        self._task = asyncio.get_running_loop().create_task(self._poll_loop(), name="poll_channel")
        logger.info(f"[poll_channel] Started, interval {self.interval}s")

    async def stop(self) -> None:
        """Cancel the poll loop and release the HTTP client. Idempotent."""
        was_running = self.running
        self.running = False
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await self.api.aclose()
        if was_running:
            logger.info("[poll_channel] Stopped")

    async def _poll_loop(self) -> None:
        while self.running:
            try:
                await self.poll_once()
            except Exception as e:
                self.failures += 1
                self.last_failure = create_structured_error_response(e)
                logger.error(f"[poll_channel] Poll error: {e!r}")
            await self._clock.sleep(self.interval)

    async def poll_once(self) -> None:
        """Run one poll cycle: hot accounts, then dashboard totals."""
        self.polls += 1
        await self._poll_hot_accounts()
        await self._poll_stats()

    async def _poll_hot_accounts(self) -> None:
        try:
            records = await self.api.fetch_hot_accounts(limit=self.limit, window=self.window)
        except FetchError as e:
            self._record_failure(HOT_ACCOUNTS_REQUEST, e)
            return
        retrieved_at = self._clock.time()
        self.errors[HOT_ACCOUNTS_REQUEST] = None
        self.last_success_ts = retrieved_at
        self._on_snapshot(RankedSnapshot.from_records(records, SnapshotSource.POLL, retrieved_at))

    async def _poll_stats(self) -> None:
        try:
            self.dashboard_stats = await self.api.fetch_dashboard_stats(window=self.window)
        except FetchError as e:
            self._record_failure(STATS_REQUEST, e)
            return
        self.errors[STATS_REQUEST] = None

    def _record_failure(self, request: str, error: FetchError) -> None:
        self.failures += 1
        self.errors[request] = error.message
        self.last_failure = create_structured_error_response(error)
        logger.warning(f"[poll_channel] {request} poll failed: {error.message}")

    def get_health_info(self) -> Dict[str, Any]:
        """Get poll channel health information."""
        return {
            "running": self.running,
            "interval": self.interval,
            "polls": self.polls,
            "failures": self.failures,
            "last_success_ts": self.last_success_ts,
            "errors": dict(self.errors),
            "last_failure": self.last_failure,
        }
