"""Tests for the performance report, turn metrics and the Redis turn publisher."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from ledgerquest import events
from ledgerquest.memory import initialize_memory, update_memory
from ledgerquest.metrics import (
    MetricsCollector,
    get_current_collector,
    reset_current_collector,
    set_current_collector,
)
from ledgerquest.models import ActionKind, ActionOutcome
from ledgerquest.profiles import assign_identities
from ledgerquest.report import build_report, log_report


def _fight(won: bool) -> ActionOutcome:
    return ActionOutcome(action=ActionKind.FIGHT_MONSTER, success=won, gold_delta=40 if won else -20)


class TestPerformanceReport:
    def test_fleet_totals(self):
        identities = assign_identities(["0xA1", "0xB2"])
        a = initialize_memory()
        for won in (True, True, False):
            a = update_memory(a, _fight(won))

        report = build_report({"0xA1": a}, identities, started_at=1000.0, completed_turns=7, now=1000.0 + 600)

        assert report.uptime_minutes == 10
        assert report.completed_turns == 7
        assert [r.name for r in report.agents] == ["Bjorn", "Kenji"]
        assert report.agents[0].win_rate == pytest.approx(2 / 3)
        assert report.agents[0].net_gold == 60
        assert report.agents[1].total_actions == 0
        assert report.agents[1].win_rate is None
        assert report.total_battles == 3
        assert report.fleet_win_rate == pytest.approx(2 / 3)
        assert report.fleet_net_gold == 60

    def test_empty_fleet_history(self):
        report = build_report({}, assign_identities(["0xA1"]), started_at=0.0, completed_turns=0, now=30.0)
        assert report.fleet_win_rate is None
        assert report.uptime_minutes == 0

    def test_log_render(self, caplog):
        report = build_report({}, assign_identities(["0xA1"]), started_at=0.0, completed_turns=0, now=0.0)
        with caplog.at_level(logging.INFO):
            log_report(report)
        assert "PERFORMANCE REPORT" in caplog.text
        assert "Bjorn" in caplog.text


class TestMetricsCollector:
    def test_emits_once(self, caplog):
        collector = MetricsCollector("0xA1", "abcdef1234")
        collector.oracle_attempt(failed=True).oracle_attempt().ledger_attempt()
        collector.set_outcome("executed", "train")
        with caplog.at_level(logging.INFO):
            collector.emit()
            collector.emit()
        assert caplog.text.count("METRICS") == 1
        snap = collector.snapshot()
        assert (snap.oracle_attempts, snap.oracle_failures) == (2, 1)
        assert "elapsed_s" in snap.extra
        assert json.loads(snap.to_json())["status"] == "executed"

    def test_context_propagation(self):
        assert get_current_collector() is None
        collector = MetricsCollector("0xA1", "t")
        token = set_current_collector(collector)
        try:
            assert get_current_collector() is collector
        finally:
            reset_current_collector(token)
        assert get_current_collector() is None


class TestTurnEvents:
    @pytest.fixture(autouse=True)
    def _fresh_client(self, monkeypatch):
        monkeypatch.setattr(events, "_client", None)
        monkeypatch.setattr(events, "_client_url", None)

    async def test_disabled_without_url(self):
        assert await events.publish_turn_event(None, address="0xA1", name="Bjorn", status="executed") is False

    async def test_publishes_compact_payload(self, monkeypatch):
        redis = AsyncMock()
        monkeypatch.setattr(events, "_get_client", AsyncMock(return_value=redis))

        sent = await events.publish_turn_event(
            "redis://localhost:6379/0",
            address="0xA1", name="Bjorn", status="executed", action="train", gold_delta=15,
        )

        assert sent is True
        channel, raw = redis.publish.await_args.args
        payload = json.loads(raw)
        assert channel == events.CHANNEL
        assert payload["a"] == "0xA1"
        assert payload["s"] == "executed"
        assert payload["x"] == "train"
        assert payload["g"] == 15
        assert "o" not in payload and "e" not in payload

    async def test_publish_failure_never_raises(self, monkeypatch):
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("gone")
        monkeypatch.setattr(events, "_get_client", AsyncMock(return_value=redis))

        assert await events.publish_turn_event(
            "redis://localhost:6379/0", address="0xA1", name="Bjorn", status="failed",
        ) is False
        redis.aclose.assert_awaited_once()

    async def test_redis_unavailable(self, monkeypatch):
        monkeypatch.setattr(events, "_get_client", AsyncMock(return_value=None))
        assert await events.publish_turn_event(
            "redis://localhost:6379/0", address="0xA1", name="Bjorn", status="executed",
        ) is False

    async def test_failed_ping_closes_cached_client(self, monkeypatch):
        url = "redis://localhost:6379/0"
        stale = AsyncMock()
        stale.ping.side_effect = ConnectionError("reset")
        fresh = AsyncMock()
        monkeypatch.setattr(events, "_client", stale)
        monkeypatch.setattr(events, "_client_url", url)
        monkeypatch.setattr(events.aioredis, "from_url", MagicMock(return_value=fresh))

        assert await events._get_client(url) is fresh
        stale.aclose.assert_awaited_once()
        fresh.aclose.assert_not_awaited()

    async def test_unreachable_server_closes_new_client(self, monkeypatch):
        fresh = AsyncMock()
        fresh.ping.side_effect = ConnectionError("refused")
        monkeypatch.setattr(events.aioredis, "from_url", MagicMock(return_value=fresh))

        assert await events._get_client("redis://localhost:6379/0") is None
        fresh.aclose.assert_awaited_once()
        assert events._client is None

    async def test_url_change_closes_previous_client(self, monkeypatch):
        old = AsyncMock()
        fresh = AsyncMock()
        monkeypatch.setattr(events, "_client", old)
        monkeypatch.setattr(events, "_client_url", "redis://old:6379/0")
        monkeypatch.setattr(events.aioredis, "from_url", MagicMock(return_value=fresh))

        assert await events._get_client("redis://new:6379/0") is fresh
        old.aclose.assert_awaited_once()
        old.ping.assert_not_awaited()
