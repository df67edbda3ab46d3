"""Tests for settings defaults, YAML loading and environment overrides."""

import pytest
import yaml

from ledgerquest.config import Settings, load_settings


def _write_yaml(tmp_path, data) -> str:
    path = tmp_path / "ledgerquest.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


class TestDefaults:
    def test_documented_defaults(self):
        s = load_settings(environ={})
        assert s.simulation_mode is True
        assert s.ledger_backend == "simulated"
        assert s.memory_path == "bot-memories.json"
        assert (s.behavior.min_delay, s.behavior.max_delay) == (60.0, 300.0)
        assert s.behavior.congestion_threshold == 50.0
        assert s.behavior.max_retries == 3
        assert s.behavior.retry_backoff_base == 3.0
        assert s.behavior.report_interval == 25
        assert s.behavior.autosave_interval == 300.0
        assert s.oracle.temperature == 0.8
        assert s.oracle.max_tokens == 1024
        assert s.oracle.timeout == 30.0
        assert s.guardrails.max_consecutive_losses == 5
        assert s.guardrails.min_gold_for_fight == 20
        assert s.guardrails.max_congestion == 100.0
        assert [i.name for i in s.item_shop] == ["Wooden Shield", "Iron Sword", "Steel Armor"]

    def test_item_lookup(self):
        s = Settings()
        assert s.item_by_id(2).cost == 250
        assert s.item_by_id(99) is None


class TestYaml:
    def test_yaml_overrides_defaults(self, tmp_path):
        path = _write_yaml(tmp_path, {
            "simulation_mode": False,
            "behavior": {"min_delay": 1, "max_delay": 2},
            "guardrails": {"min_gold_for_fight": 40},
        })
        s = load_settings(path, environ={})
        assert s.simulation_mode is False
        assert s.behavior.max_delay == 2
        assert s.behavior.report_interval == 25
        assert s.guardrails.min_gold_for_fight == 40
        assert s.guardrails.max_consecutive_losses == 5

    def test_path_from_environment(self, tmp_path):
        path = _write_yaml(tmp_path, {"memory_path": "elsewhere.json"})
        s = load_settings(environ={"LEDGERQUEST_CONFIG": path})
        assert s.memory_path == "elsewhere.json"

    def test_empty_yaml_is_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_settings(str(path), environ={}) == Settings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            load_settings(str(tmp_path / "missing.yaml"), environ={})

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("behavior: [unclosed", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_settings(str(path), environ={})

    def test_non_mapping_root(self, tmp_path):
        path = _write_yaml(tmp_path, ["a", "b"])
        with pytest.raises(ValueError, match="mapping"):
            load_settings(path, environ={})


class TestValidation:
    def test_min_delay_above_max(self, tmp_path):
        path = _write_yaml(tmp_path, {"behavior": {"min_delay": 10, "max_delay": 5}})
        with pytest.raises(ValueError, match="Config validation failed"):
            load_settings(path, environ={})

    def test_duplicate_item_ids(self, tmp_path):
        path = _write_yaml(tmp_path, {"item_shop": [
            {"id": 1, "name": "A", "cost": 1},
            {"id": 1, "name": "B", "cost": 2},
        ]})
        with pytest.raises(ValueError, match="unique"):
            load_settings(path, environ={})

    def test_unknown_ledger_backend(self):
        with pytest.raises(ValueError):
            load_settings(environ={"LEDGER_BACKEND": "carrier-pigeon"})


class TestEnvironment:
    def test_env_beats_yaml(self, tmp_path):
        path = _write_yaml(tmp_path, {"simulation_mode": True, "oracle": {"model": "yaml/model"}})
        s = load_settings(path, environ={"SIMULATION_MODE": "false", "ORACLE_MODEL": "env/model"})
        assert s.simulation_mode is False
        assert s.oracle.model == "env/model"

    def test_addresses_are_split_and_trimmed(self):
        s = load_settings(environ={"AGENT_ADDRESSES": " 0xA1, 0xB2 ,,0xC3 "})
        assert s.addresses == ["0xA1", "0xB2", "0xC3"]

    def test_delay_bounds_from_env(self):
        s = load_settings(environ={"TURN_MIN_DELAY": "5", "TURN_MAX_DELAY": "9"})
        assert (s.behavior.min_delay, s.behavior.max_delay) == (5.0, 9.0)

    def test_backend_and_stream(self):
        s = load_settings(environ={
            "LEDGER_BACKEND": "http",
            "LEDGER_URL": "http://gateway:8080",
            "LEDGER_TIMEOUT": "12.5",
            "EVENT_STREAM_URL": "redis://localhost:6379/0",
        })
        assert s.ledger_backend == "http"
        assert s.ledger_url == "http://gateway:8080"
        assert s.ledger_timeout == 12.5
        assert s.oracle.timeout == 30.0
        assert s.event_stream_url == "redis://localhost:6379/0"

    def test_reads_process_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv("MEMORY_PATH", "/tmp/agents.json")
        assert load_settings().memory_path == "/tmp/agents.json"
