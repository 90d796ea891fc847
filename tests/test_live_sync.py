"""
LiveSync tests.
Push and poll feeding one reconciled view, driven by a shared manual clock.
"""

import pytest

from lockwatch.schemas.accounts import SnapshotSource
from lockwatch.services.connection_machine import ConnectionState
from lockwatch.services.live_sync import LiveSync
from lockwatch.util.async_tools import drain_loop

WS_URL = "ws://lockwatch.test/ws"


@pytest.fixture
async def live_sync(connector, mock_api, manual_clock):
    live_sync = LiveSync(
        ws_url=WS_URL,
        api=mock_api.client(),
        connector=connector,
        clock=manual_clock,
        poll_interval=5.0,
        reconnect_delay=5.0,
    )
    yield live_sync
    connector.release()
    await live_sync.stop()


def push_row(pubkey, contention):
    return {"pubkey": pubkey, "contention_score": contention, "lock_attempts": 10, "avg_priority_fee": 100}


@pytest.mark.asyncio
@pytest.mark.deterministic
class TestLiveSync:
    """Test the reconciled view exposed to presentation code."""

    async def test_empty_before_start(self, live_sync):
        assert live_sync.hot_accounts == ()
        assert live_sync.view is None
        assert live_sync.state is ConnectionState.DISCONNECTED
        assert live_sync.status_label == "Disconnected"
        assert not live_sync.connected
        assert live_sync.dashboard_stats is None

    async def test_start_opens_push_and_polls(self, live_sync, connector, mock_api, make_poll_record):
        mock_api.hot_accounts = [make_poll_record("P", 2.0)]
        await live_sync.start()
        await drain_loop()

        assert live_sync.connected
        assert live_sync.status_label == "Live"
        assert connector.urls == [WS_URL]
        assert [r.pubkey for r in live_sync.hot_accounts] == ["P"]
        assert live_sync.dashboard_stats.unique_accounts == 3

    async def test_poll_covers_push_outage(self, live_sync, connector, mock_api, make_poll_record, manual_clock):
        connector.fail_always = OSError("down")
        mock_api.hot_accounts = [make_poll_record("P1", 2.0)]
        await live_sync.start()
        await drain_loop()

        assert live_sync.state is ConnectionState.RECONNECTING
        assert live_sync.error == "Connection error"
        assert live_sync.view.source is SnapshotSource.POLL

        mock_api.hot_accounts = [make_poll_record("P2", 4.0), make_poll_record("P1", 2.0)]
        await manual_clock.advance(5.0)
        assert [r.pubkey for r in live_sync.hot_accounts] == ["P2", "P1"]

    async def test_fresh_push_not_overwritten_by_next_poll(self, live_sync, connector, mock_api,
                                                           make_poll_record, make_push_update, manual_clock):
        mock_api.hot_accounts = [make_poll_record("poll", 1.0)]
        await live_sync.start()
        await drain_loop()

        connector.latest.feed(make_push_update(push_row("push", 9.0)))
        await drain_loop()
        assert live_sync.view.source is SnapshotSource.PUSH
        pushed_at = live_sync.view.retrieved_at

        await manual_clock.advance(5.0)
        assert live_sync.view.source is SnapshotSource.PUSH
        assert live_sync.view.retrieved_at == pushed_at

        await manual_clock.advance(5.0)
        assert live_sync.view.source is SnapshotSource.POLL
        assert [r.pubkey for r in live_sync.hot_accounts] == ["poll"]

    async def test_poll_takes_over_after_push_drops(self, live_sync, connector, mock_api,
                                                    make_poll_record, make_push_update, manual_clock):
        mock_api.hot_accounts = [make_poll_record("poll", 1.0)]
        await live_sync.start()
        await drain_loop()
        connector.latest.feed(make_push_update(push_row("push", 9.0)))
        await drain_loop()
        assert live_sync.view.source is SnapshotSource.PUSH

        connector.fail_always = OSError("down")
        connector.latest.server_close()
        await drain_loop()
        assert live_sync.state is ConnectionState.RECONNECTING

        await manual_clock.advance(5.0)
        assert live_sync.view.source is SnapshotSource.PUSH
        assert [r.pubkey for r in live_sync.hot_accounts] == ["push"]

        await manual_clock.advance(5.0)
        assert live_sync.state in (ConnectionState.RECONNECTING, ConnectionState.CONNECTING)
        assert live_sync.view.source is SnapshotSource.POLL
        assert [r.pubkey for r in live_sync.hot_accounts] == ["poll"]

    async def test_push_wins_after_poll(self, live_sync, connector, mock_api, make_poll_record, make_push_update):
        mock_api.hot_accounts = [make_poll_record("poll", 1.0)]
        await live_sync.start()
        await drain_loop()
        assert live_sync.view.source is SnapshotSource.POLL

        connector.latest.feed(make_push_update(push_row("push", 0.5)))
        await drain_loop()
        assert [r.pubkey for r in live_sync.hot_accounts] == ["push"]

    async def test_reconnect_delegates_to_push(self, live_sync, connector):
        await live_sync.start()
        await drain_loop()
        connector.hold()
        live_sync.reconnect()
        assert live_sync.state is ConnectionState.CONNECTING
        assert live_sync.connecting
        assert live_sync.status_label == "Connecting"

    async def test_stop_halts_both_channels(self, live_sync, connector, mock_api, manual_clock):
        await live_sync.start()
        await drain_loop()
        await live_sync.stop()

        await manual_clock.advance(60.0)
        assert mock_api.count("/api/hot-accounts") == 1
        assert len(connector.urls) == 1
        assert live_sync.state is ConnectionState.DISCONNECTED
        assert connector.latest.closed

    async def test_health_metrics(self, live_sync, mock_api, make_poll_record):
        mock_api.hot_accounts = [make_poll_record("P", 2.0)]
        await live_sync.start()
        await drain_loop()
        metrics = live_sync.get_health_metrics()
        assert metrics["status"] == "Live"
        assert metrics["view"]["source"] == "poll"
        assert metrics["view"]["records"] == 1
        assert metrics["view"]["age_s"] == 0.0
        assert metrics["poll"]["errors"] == {"hot_accounts": None, "stats": None}

    async def test_state_change_time_tracked(self, live_sync, connector, manual_clock):
        assert live_sync.state_changed_at is None
        await live_sync.start()
        await drain_loop()
        opened_at = manual_clock.time()
        assert live_sync.state_changed_at == opened_at

        await manual_clock.advance(3.0)
        connector.latest.server_close()
        await drain_loop()
        assert live_sync.state is ConnectionState.RECONNECTING
        assert live_sync.state_changed_at == opened_at + 3.0
        assert live_sync.get_health_metrics()["state_changed_at"] == opened_at + 3.0
