import os

import pytest

from ledgerquest.config import BehaviorSettings, Settings
from ledgerquest.memory import initialize_memory
from ledgerquest.models import ObservedState
from ledgerquest.prediction import predict_battle_outcome
from ledgerquest.investment import analyze_shop
from ledgerquest.profiles import Profile
from ledgerquest.services.llm.factory import reset_llm_provider


@pytest.fixture(autouse=True)
def _mock_llm(monkeypatch):
    """Every test runs against the deterministic mock provider."""
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    reset_llm_provider()
    yield
    reset_llm_provider()


@pytest.fixture
def fast_behavior() -> BehaviorSettings:
    return BehaviorSettings(
        min_delay=0,
        max_delay=0,
        report_interval=25,
        simulation_delay=0,
        retry_backoff_base=3.0,
    )


@pytest.fixture
def sim_settings(tmp_path, fast_behavior) -> Settings:
    return Settings(
        simulation_mode=True,
        addresses=["0xA1", "0xB2"],
        memory_path=str(tmp_path / "bot-memories.json"),
        behavior=fast_behavior,
    )


@pytest.fixture
def live_settings(tmp_path, fast_behavior) -> Settings:
    return Settings(
        simulation_mode=False,
        addresses=["0xA1", "0xB2"],
        memory_path=str(tmp_path / "bot-memories.json"),
        behavior=fast_behavior,
    )


@pytest.fixture
def identity():
    return Profile.KENJI.identity_for("0xA1")


@pytest.fixture
def state() -> ObservedState:
    return ObservedState(
        name="Kenji", level=1, experience=0, gold=100, strength=10, defense=10, exists=True,
    )


@pytest.fixture
def analysis(sim_settings, state):
    """(memory, prediction, reports) for a fresh agent with starter stats."""
    memory = initialize_memory()
    prediction = predict_battle_outcome(state.strength, state.defense, memory)
    reports = analyze_shop(sim_settings.item_shop, state, memory)
    return memory, prediction, reports


@pytest.fixture
def clean_env(monkeypatch):
    """Strip every variable the config loader reads."""
    for key in list(os.environ):
        if key in {
            "SIMULATION_MODE", "AGENT_ADDRESSES", "MEMORY_PATH", "LEDGER_BACKEND",
            "LEDGER_URL", "EVENT_STREAM_URL", "ORACLE_MODEL", "TURN_MIN_DELAY",
            "TURN_MAX_DELAY", "LEDGER_TIMEOUT", "LEDGERQUEST_CONFIG",
        }:
            monkeypatch.delenv(key, raising=False)
