"""
Reconciliation of push and poll snapshots into one current view.

Push snapshots always win. A poll snapshot replaces a poll-sourced view
outright, or a push-sourced view that has gone without a refresh for longer
than one poll interval. Poll over poll carries no timestamp check.
"""

import logging
from typing import Callable, List, Optional, Tuple

from lockwatch.schemas.accounts import HotAccountRecord, RankedSnapshot, SnapshotSource

logger = logging.getLogger("reconciler")

ViewListener = Callable[[RankedSnapshot], None]


def accepts(current: Optional[RankedSnapshot], candidate: RankedSnapshot, poll_interval: float) -> bool:
    """Whether ``candidate`` should replace ``current``."""
    if candidate.source is SnapshotSource.PUSH or current is None or current.source is SnapshotSource.POLL:
        return True
    return candidate.retrieved_at - current.retrieved_at > poll_interval


def arbitrate(current: Optional[RankedSnapshot], candidate: RankedSnapshot,
              poll_interval: float) -> RankedSnapshot:
    """Return the view after offering ``candidate``; never mutates either input."""
    return candidate if accepts(current, candidate, poll_interval) else current


class Reconciler:
    """Holds the single authoritative snapshot. Only ``offer`` mutates it."""

    def __init__(self, poll_interval: float = 5.0):
        self.poll_interval = poll_interval
        self._view: Optional[RankedSnapshot] = None
        self._listeners: List[ViewListener] = []

        self.accepted = {SnapshotSource.PUSH: 0, SnapshotSource.POLL: 0}
        self.rejected = 0

    @property
    def view(self) -> Optional[RankedSnapshot]:
        return self._view

    @property
    def records(self) -> Tuple[HotAccountRecord, ...]:
        """Current records, empty before anything has been accepted."""
        return self._view.records if self._view is not None else ()

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """Register a listener for accepted views; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def offer(self, candidate: RankedSnapshot) -> bool:
        """Apply the precedence rule. Returns True when the candidate became current."""
        new_view = arbitrate(self._view, candidate, self.poll_interval)
        if new_view is not candidate:
            self.rejected += 1
            logger.debug(
                f"[reconciler] Rejected {candidate.source.value} snapshot "
                f"({len(candidate.records)} records), keeping {self._view.source.value} view"
            )
            return False

        self._view = candidate
        self.accepted[candidate.source] += 1
        logger.debug(f"[reconciler] Accepted {candidate.source.value} snapshot ({len(candidate.records)} records)")

        for listener in list(self._listeners):
            try:
                listener(candidate)
            except Exception as e:
                logger.error(f"[reconciler] View listener failed: {e}")
        return True

    def age(self, now: float) -> Optional[float]:
        """Seconds since the current view was retrieved."""
        if self._view is None:
            return None
        return now - self._view.retrieved_at
