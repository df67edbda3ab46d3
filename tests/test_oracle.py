"""Tests for reply parsing and the retrying decision oracle."""

import json
from unittest.mock import AsyncMock, call

import pytest

from ledgerquest.config import OracleSettings
from ledgerquest.metrics import MetricsCollector, reset_current_collector, set_current_collector
from ledgerquest.models import ActionKind
from ledgerquest.oracle import (
    FALLBACK_DECISION,
    REDACTED_REASONING,
    DecisionOracle,
    MalformedReply,
    ValidReply,
    parse_reply,
)
from ledgerquest.services.llm.interface import LLMProvider


class _ScriptedProvider(LLMProvider):
    """Replays a fixed list of replies; exceptions in the list are raised."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def generate(self, messages, *, model=None, max_tokens=150, temperature=0.7, response_format=None):
        self.calls.append({"messages": messages, "model": model, "response_format": response_format})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def _reply(**fields) -> str:
    return json.dumps(fields)


class TestParseReply:
    def test_valid_fight(self):
        parsed = parse_reply(_reply(action="fightMonster", reasoning="odds are good", confidence=0.8))
        assert isinstance(parsed, ValidReply)
        assert parsed.decision.action is ActionKind.FIGHT_MONSTER
        assert parsed.decision.confidence == 0.8

    def test_valid_purchase(self):
        parsed = parse_reply(_reply(action="buyItem", itemId=1, reasoning="sword"))
        assert isinstance(parsed, ValidReply)
        assert parsed.decision.item_id == 1

    def test_action_is_case_insensitive(self):
        parsed = parse_reply(_reply(action="FightMonster", reasoning="go"))
        assert isinstance(parsed, ValidReply)

    def test_code_fenced_reply(self):
        raw = '```json\n{"action": "train", "reasoning": "build up"}\n```'
        assert isinstance(parse_reply(raw), ValidReply)

    def test_item_id_dropped_for_other_actions(self):
        parsed = parse_reply(_reply(action="train", itemId=2, reasoning="later"))
        assert isinstance(parsed, ValidReply)
        assert parsed.decision.item_id is None

    def test_refusal_wording_keeps_decision(self):
        parsed = parse_reply(_reply(
            action="fightMonster",
            reasoning="I am unable to afford the Steel Armor, so a 55% fight is the best use of this turn.",
        ))
        assert isinstance(parsed, ValidReply)
        assert parsed.decision.action is ActionKind.FIGHT_MONSTER
        assert parsed.decision.reasoning == REDACTED_REASONING

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "   ",
        "I think you should fight.",
        "[1, 2, 3]",
        _reply(reasoning="no action"),
        _reply(action=3, reasoning="numeric action"),
        _reply(action="dance", reasoning="unknown action"),
        _reply(action="train"),
        _reply(action="train", reasoning=""),
        _reply(action="train", reasoning=42),
        _reply(action="train", reasoning="   "),
        _reply(action="buyItem", reasoning="no id"),
        _reply(action="buyItem", itemId="1", reasoning="string id"),
        _reply(action="buyItem", itemId=True, reasoning="boolean id"),
        _reply(action="buyItem", itemId=1.5, reasoning="fractional id"),
        _reply(action="buyItem", itemId=-1, reasoning="negative id"),
        _reply(action="train", reasoning="sure", confidence=1.5),
        _reply(action="train", reasoning="sure", confidence="high"),
    ])
    def test_malformed(self, raw):
        parsed = parse_reply(raw)
        assert isinstance(parsed, MalformedReply)
        assert parsed.reason


class TestDecide:
    @pytest.fixture
    def settings(self):
        return OracleSettings(max_retries=3, backoff_base=2.0)

    async def test_valid_reply_first_try(self, settings, identity, state, analysis, sim_settings):
        provider = _ScriptedProvider([_reply(action="fightMonster", reasoning="strike")])
        sleep = AsyncMock()
        oracle = DecisionOracle(settings, sim_settings.item_shop, provider=provider, sleep=sleep)

        decision = await oracle.decide(identity, state, *analysis)

        assert decision.action is ActionKind.FIGHT_MONSTER
        assert len(provider.calls) == 1
        assert provider.calls[0]["response_format"] == {"type": "json_object"}
        assert provider.calls[0]["model"] == settings.model
        sleep.assert_not_awaited()

    async def test_prompt_carries_identity_and_status(self, settings, identity, state, analysis, sim_settings):
        provider = _ScriptedProvider([_reply(action="train", reasoning="ok")])
        oracle = DecisionOracle(settings, sim_settings.item_shop, provider=provider, sleep=AsyncMock())
        await oracle.decide(identity, state, *analysis)

        user_prompt = provider.calls[0]["messages"][1]["content"]
        assert "Kenji" in user_prompt
        assert "Gold: 100" in user_prompt
        assert "Next Battle Win Probability: 50.0%" in user_prompt
        assert "[1] Iron Sword (100g)" in user_prompt

    async def test_fallback_after_repeated_malformed(self, settings, identity, state, analysis, sim_settings):
        provider = _ScriptedProvider(["garbage", "{}", _reply(action="buyItem", reasoning="no id")])
        sleep = AsyncMock()
        oracle = DecisionOracle(settings, sim_settings.item_shop, provider=provider, sleep=sleep)

        decision = await oracle.decide(identity, state, *analysis)

        assert decision == FALLBACK_DECISION
        assert decision.action is ActionKind.TRAIN
        assert decision.reasoning == "fallback"
        assert len(provider.calls) == 3
        assert sleep.await_args_list == [call(2.0), call(4.0)]

    async def test_provider_errors_and_empty_replies_burn_attempts(
        self, settings, identity, state, analysis, sim_settings,
    ):
        provider = _ScriptedProvider([RuntimeError("connection reset"), None, _reply(action="train", reasoning="ok")])
        oracle = DecisionOracle(settings, sim_settings.item_shop, provider=provider, sleep=AsyncMock())

        decision = await oracle.decide(identity, state, *analysis)

        assert decision.action is ActionKind.TRAIN
        assert decision.reasoning == "ok"
        assert len(provider.calls) == 3

    async def test_refusal_wording_does_not_burn_attempts(self, settings, identity, state, analysis, sim_settings):
        provider = _ScriptedProvider([_reply(
            action="fightMonster",
            reasoning="I am unable to afford the Steel Armor, so a 55% fight is the best use of this turn.",
        )])
        sleep = AsyncMock()
        oracle = DecisionOracle(settings, sim_settings.item_shop, provider=provider, sleep=sleep)

        decision = await oracle.decide(identity, state, *analysis)

        assert decision.action is ActionKind.FIGHT_MONSTER
        assert decision.reasoning == REDACTED_REASONING
        assert len(provider.calls) == 1
        sleep.assert_not_awaited()

    async def test_recovers_after_one_bad_reply(self, settings, identity, state, analysis, sim_settings):
        provider = _ScriptedProvider(["nope", _reply(action="levelUp", reasoning="ready")])
        sleep = AsyncMock()
        oracle = DecisionOracle(settings, sim_settings.item_shop, provider=provider, sleep=sleep)

        decision = await oracle.decide(identity, state, *analysis)

        assert decision.action is ActionKind.LEVEL_UP
        sleep.assert_awaited_once_with(2.0)

    async def test_metrics_record_attempts_and_fallback(self, settings, identity, state, analysis, sim_settings):
        provider = _ScriptedProvider(["x", "y", "z"])
        oracle = DecisionOracle(settings, sim_settings.item_shop, provider=provider, sleep=AsyncMock())
        collector = MetricsCollector("0xA1", "turn-1")
        token = set_current_collector(collector)
        try:
            await oracle.decide(identity, state, *analysis)
        finally:
            reset_current_collector(token)

        snap = collector.snapshot()
        assert snap.oracle_attempts == 3
        assert snap.oracle_failures == 3
        assert snap.used_fallback is True

    async def test_mock_provider_end_to_end(self, settings, identity, state, analysis, sim_settings):
        oracle = DecisionOracle(settings, sim_settings.item_shop, sleep=AsyncMock())
        decision = await oracle.decide(identity, state, *analysis)
        assert decision.action in set(ActionKind)
        assert decision.reasoning != "fallback"
