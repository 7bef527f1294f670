"""Tests for the analytics session controller."""

import json

import pytest

from usage_analytics.errors import ConfigurationError, NotInitializedError, ValidationError
from usage_analytics.session import AnalyticsSession
from usage_analytics.telemetry.delivery import DeliveryState

from tests.mocks.transport import ScriptedTransport, settle


class TestInit:
    @pytest.mark.parametrize("account_id, app_name", [("", "app1"), ("acc1", ""), (None, None)])
    def test_missing_ids_raise(self, session, account_id, app_name):
        with pytest.raises(ConfigurationError):
            session.init(account_id, app_name)
        assert not session.initialized

    def test_snapshot_before_init_raises(self, session):
        with pytest.raises(NotInitializedError):
            session.current_snapshot()

    def test_record_before_init_raises(self, session):
        with pytest.raises(NotInitializedError):
            session.record("ev1", "cat1", "sub1")

    @pytest.mark.asyncio
    async def test_fresh_snapshot(self, session):
        session.init("acc1", "app1")
        try:
            snapshot = session.current_snapshot()

            assert snapshot.account_id == "acc1"
            assert snapshot.app_name == "app1"
            assert snapshot.total_event_count == 0
            assert snapshot.events == {}
            assert snapshot.schema_version == 1
            assert isinstance(snapshot.user_id, str) and snapshot.user_id
            assert isinstance(snapshot.session_id, str) and snapshot.session_id
            assert snapshot.started_at_utc > 1_600_000_000_000
        finally:
            await session.close()

    @pytest.mark.asyncio
    async def test_identity_reused_across_inits(self, session):
        session.init("acc1", "app1")
        first = session.current_snapshot()
        session.init("acc1", "app1")
        second = session.current_snapshot()
        await session.close()

        assert first.user_id == second.user_id
        assert first.session_id == second.session_id

    @pytest.mark.asyncio
    async def test_reinit_does_not_leak_timers(self, session):
        session.init("acc1", "app1")
        first_clock_task = session.clock._task
        first_flush_task = session.delivery._flush_task

        session.init("acc1", "app2")
        await settle()

        assert first_clock_task.cancelled()
        assert first_flush_task.cancelled()
        assert session.clock.running
        assert session.delivery.running
        assert session.current_snapshot().app_name == "app2"
        await session.close()
        assert not session.clock.running
        assert not session.delivery.running


class TestRecord:
    @pytest.mark.asyncio
    async def test_events_across_ticks(self, session):
        session.init("acc1", "app1", post_interval_seconds=10, granularity_seconds=0.1)
        await settle()
        session.clock.stop()

        session.record("ev1", "cat1", "sub1")
        session.record("ev1", "cat2", "sub1", 5)
        session.clock.tick()
        session.clock.tick()
        session.record("ev1", "cat2", "sub1", 2)

        snapshot = session.current_snapshot().to_dict()
        assert snapshot["events"] == {
            "ev1": {
                "cat1": {"sub1": {"time": [0], "valueCount": [1]}},
                "cat2": {"sub1": {"time": [0, 0.2], "valueCount": [5, 2]}},
            }
        }
        assert snapshot["numEventsTotal"] == 3
        await session.close()

    @pytest.mark.asyncio
    async def test_value_merges_with_prior_count(self, session):
        session.init("acc1", "app1", post_interval_seconds=10, granularity_seconds=0.1)
        await settle()
        session.clock.stop()

        session.record("ev1", "cat1", "sub1")
        session.record("ev1", "cat2", "sub1", 5)
        session.record("ev1", "cat2", "sub1", 5, 1)
        session.clock.tick()
        session.clock.tick()
        session.record("ev1", "cat2", "sub1", 2)

        events = session.current_snapshot().to_dict()["events"]
        assert events["ev1"]["cat2"]["sub1"] == {
            "time": [0, 0.2],
            "valueCount": [{"0": 5, "1": 5}, 2],
        }
        await session.close()

    @pytest.mark.asyncio
    async def test_events_land_in_current_tick(self, session):
        session.init("acc1", "app1", granularity_seconds=0.02)
        await settle(0.07)

        session.record("ev1", "cat1", "sub1")

        bucket = session.current_snapshot().get_bucket("ev1", "cat1", "sub1")
        assert bucket.times[0] >= 0.04
        await session.close()

    @pytest.mark.asyncio
    async def test_invalid_record_leaves_state(self, session):
        session.init("acc1", "app1")
        session.record("ev1", "cat1", "sub1")

        with pytest.raises(ValidationError):
            session.record("ev1", "cat1", "sub1", -1)

        snapshot = session.current_snapshot()
        assert snapshot.total_event_count == 1
        assert snapshot.to_dict()["events"]["ev1"]["cat1"]["sub1"]["valueCount"] == [1]
        await session.close()

    @pytest.mark.asyncio
    async def test_snapshot_is_isolated(self, session):
        session.init("acc1", "app1")
        session.record("ev1", "cat1", "sub1")

        snapshot = session.current_snapshot()
        snapshot.get_bucket("ev1", "cat1", "sub1").add(0, 100, 0)
        snapshot.total_event_count = 99
        snapshot.events["ev2"] = {}

        live = session.current_snapshot()
        assert live.total_event_count == 1
        assert "ev2" not in live.events
        assert live.to_dict()["events"]["ev1"]["cat1"]["sub1"]["valueCount"] == [1]
        await session.close()


class TestRemoteConfig:
    @pytest.mark.asyncio
    async def test_server_overrides_apply(self, session, transport):
        transport.config_response = {
            "postIntervalSecondsInit": 4646,
            "granularitySecInit": 53,
            "analyticsURLInit": "https://lols",
            "custom": {"hello": "world"},
        }
        session.init("acc1", "app1")
        await settle()

        config = session.get_config()
        assert config["post_interval_seconds"] == 4646
        assert config["granularity_seconds"] == 53
        assert config["base_url"] == "https://lols"
        assert config["disabled"] is False
        assert config["server_config"]["custom"] == {"hello": "world"}
        assert session.clock.granularity_seconds == 53
        assert session.delivery.post_interval_seconds == 4646
        assert session.delivery.ingest_url == "https://lols/ingest"
        await session.close()

    @pytest.mark.asyncio
    async def test_init_values_beat_server_timing(self, session, transport):
        transport.config_response = {
            "postIntervalSecondsInit": 4646,
            "granularitySecInit": 53,
            "analyticsURLInit": "https://lols",
        }
        session.init("acc1", "app1", "https://uyer", 45, 12)
        await settle()

        config = session.get_config()
        assert config["post_interval_seconds"] == 45
        assert config["granularity_seconds"] == 12
        assert config["base_url"] == "https://lols"
        assert transport.gets[0][0] == "https://uyer/getAppConfig"
        assert transport.gets[0][1] == {"accountID": "acc1", "appName": "app1"}
        await session.close()

    @pytest.mark.asyncio
    async def test_failed_config_call_keeps_defaults(self, session, transport):
        transport.config_response = ConnectionError("unreachable")
        session.init("acc1", "app1", "https://someURL")
        await settle()

        config = session.get_config()
        assert config["post_interval_seconds"] == 600
        assert config["granularity_seconds"] == 3
        assert config["base_url"] == "https://someURL"
        assert config["disabled"] is False
        assert config["server_config"] == {}
        await session.close()

    @pytest.mark.asyncio
    async def test_disabled_by_server(self, session, transport):
        transport.config_response = {"disabled": True}
        session.init("acc2", "app1", post_interval_seconds=10, granularity_seconds=0.1)
        await settle()

        session.record("ev1", "cat1", "sub1")
        session.record("ev1", "cat2", "sub1", 5)
        # Invalid arguments are ignored too once disabled
        session.record("ev1", "cat2", "sub1", -5)

        snapshot = session.current_snapshot()
        assert snapshot.events == {}
        assert snapshot.total_event_count == 0
        assert session.disabled
        assert not session.clock.running
        assert not session.delivery.running
        assert session.flush() is None
        await session.close()

    @pytest.mark.asyncio
    async def test_disabled_survives_reinit(self, session, transport):
        transport.config_response = {"disabled": True}
        session.init("acc1", "app1", post_interval_seconds=10, granularity_seconds=0.1)
        await settle()
        assert session.disabled

        # A later init with the collector unreachable must not re-enable
        transport.config_response = ConnectionError("unreachable")
        session.init("acc1", "app1", post_interval_seconds=10, granularity_seconds=0.1)
        await settle()
        session.record("ev1", "cat1", "sub1")

        snapshot = session.current_snapshot()
        assert session.disabled
        assert snapshot.total_event_count == 0
        assert snapshot.events == {}
        assert not session.clock.running
        assert not session.delivery.running
        assert len(transport.gets) == 1
        await session.close()

    @pytest.mark.asyncio
    async def test_remote_config_error_is_contained(self, session, transport, monkeypatch):
        async def broken_resolve(*args, **kwargs):
            raise RuntimeError("resolver crashed")

        monkeypatch.setattr(session._resolver, "resolve", broken_resolve)
        session.init("acc1", "app1", post_interval_seconds=45, granularity_seconds=12)
        await settle()

        config = session.get_config()
        assert session.stats["errors"] == 1
        assert config["disabled"] is False
        assert config["post_interval_seconds"] == 45
        assert config["granularity_seconds"] == 12
        assert session.clock.running
        assert session.delivery.running
        await session.close()


class TestFlush:
    @pytest.mark.asyncio
    async def test_flush_swaps_before_sending(self, session, transport):
        session.init("acc1", "app1")
        await settle()
        session.record("ev1", "cat1", "sub1")
        session.clock.tick()

        delivery = session.flush()
        session.record("ev2", "cat1", "sub1")

        live = session.current_snapshot()
        assert live.total_event_count == 1
        assert list(live.events) == ["ev2"]
        assert live.get_bucket("ev2", "cat1", "sub1").times == [0]
        assert delivery.record.total_event_count == 1
        assert list(delivery.record.events) == ["ev1"]

        await session.delivery.wait_for_deliveries(timeout=1)
        assert delivery.state == DeliveryState.SENT
        sent = json.loads(transport.posts[0].body)
        assert list(sent["events"]) == ["ev1"]
        await session.close()

    @pytest.mark.asyncio
    async def test_close_with_flush_delivers(self, session, transport):
        session.init("acc1", "app1")
        session.record("ev1", "cat1", "sub1", 3)

        await session.close(flush=True)

        assert len(transport.posts) == 1
        assert json.loads(transport.posts[0].body)["numEventsTotal"] == 1

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, config, identity):
        transport = ScriptedTransport()
        async with AnalyticsSession(config=config, identity=identity, transport=transport) as session:
            session.init("acc1", "app1")
            assert session.clock.running

        assert not session.clock.running
        assert not session.delivery.running
