"""Settings schema and loader for ledgerquest.

Reads an optional YAML file, layers environment variables on top, and
validates the result with Pydantic v2. Loading order (later wins):

    defaults  <-  YAML file (LEDGERQUEST_CONFIG)  <-  environment

Sample YAML:

    simulation_mode: true
    addresses: ["0xabc...", "0xdef..."]
    behavior:
      min_delay: 60
      max_delay: 300
      report_interval: 25
    oracle:
      model: "anthropic/claude-3.5-sonnet"
      temperature: 0.8
    guardrails:
      max_consecutive_losses: 5
      min_gold_for_fight: 20
    item_shop:
      - {id: 0, name: "Wooden Shield", cost: 50, strength: 0, defense: 5}

Environment variables (usually from .env, loaded in __main__):
    SIMULATION_MODE, AGENT_ADDRESSES (comma separated), MEMORY_PATH,
    LEDGER_BACKEND, LEDGER_URL, EVENT_STREAM_URL, ORACLE_MODEL,
    TURN_MIN_DELAY, TURN_MAX_DELAY
"""

import os
from pathlib import Path
from typing import Any, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from ledgerquest.models import ItemData

DEFAULT_ITEM_SHOP: list[dict[str, Any]] = [
    {"id": 0, "name": "Wooden Shield", "cost": 50, "strength": 0, "defense": 5},
    {"id": 1, "name": "Iron Sword", "cost": 100, "strength": 10, "defense": 0},
    {"id": 2, "name": "Steel Armor", "cost": 250, "strength": 5, "defense": 20},
]


class BehaviorSettings(BaseModel):
    min_delay: float = Field(default=60.0, ge=0.0)
    max_delay: float = Field(default=300.0, ge=0.0)
    congestion_threshold: float = Field(default=50.0, ge=0.0)
    min_balance: float = Field(default=0.000001, ge=0.0)
    max_retries: int = Field(default=3, ge=1, le=10)
    retry_backoff_base: float = Field(default=3.0, ge=0.0)
    report_interval: int = Field(default=25, ge=1)
    autosave_interval: float = Field(default=300.0, gt=0.0)
    simulation_delay: float = Field(default=0.5, ge=0.0)

    @model_validator(mode="after")
    def delay_bounds_ordered(self) -> "BehaviorSettings":
        if self.min_delay > self.max_delay:
            raise ValueError("behavior.min_delay must not exceed behavior.max_delay")
        return self


class OracleSettings(BaseModel):
    model: str = Field(default="anthropic/claude-3.5-sonnet", min_length=1)
    temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1024, ge=16, le=32000)
    timeout: float = Field(default=30.0, gt=0.0)
    max_retries: int = Field(default=3, ge=1, le=10)
    backoff_base: float = Field(default=2.0, ge=0.0)


class GuardrailSettings(BaseModel):
    max_consecutive_losses: int = Field(default=5, ge=1)
    min_gold_for_fight: int = Field(default=20, ge=0)
    max_congestion: float = Field(default=100.0, ge=0.0)


class Settings(BaseModel):
    simulation_mode: bool = True
    addresses: List[str] = Field(default_factory=list)
    memory_path: str = "bot-memories.json"
    ledger_backend: str = Field(default="simulated", pattern=r"^(simulated|http)$")
    ledger_url: str = "http://localhost:8545"
    ledger_timeout: float = Field(default=30.0, gt=0.0)
    event_stream_url: Optional[str] = None
    behavior: BehaviorSettings = Field(default_factory=BehaviorSettings)
    oracle: OracleSettings = Field(default_factory=OracleSettings)
    guardrails: GuardrailSettings = Field(default_factory=GuardrailSettings)
    item_shop: List[ItemData] = Field(
        default_factory=lambda: [ItemData(**item) for item in DEFAULT_ITEM_SHOP]
    )

    @model_validator(mode="after")
    def unique_item_ids(self) -> "Settings":
        ids = [item.id for item in self.item_shop]
        if len(ids) != len(set(ids)):
            raise ValueError("item_shop ids must be unique")
        return self

    def item_by_id(self, item_id: int) -> Optional[ItemData]:
        for item in self.item_shop:
            if item.id == item_id:
                return item
        return None


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Translate recognised environment variables into a nested settings dict."""
    overrides: dict[str, Any] = {}

    if "SIMULATION_MODE" in environ:
        overrides["simulation_mode"] = environ["SIMULATION_MODE"].strip().lower() == "true"
    if environ.get("AGENT_ADDRESSES"):
        overrides["addresses"] = [
            a.strip() for a in environ["AGENT_ADDRESSES"].split(",") if a.strip()
        ]
    for env_key, field in (
        ("MEMORY_PATH", "memory_path"),
        ("LEDGER_BACKEND", "ledger_backend"),
        ("LEDGER_URL", "ledger_url"),
        ("EVENT_STREAM_URL", "event_stream_url"),
    ):
        if environ.get(env_key):
            overrides[field] = environ[env_key].strip()

    if environ.get("ORACLE_MODEL"):
        overrides.setdefault("oracle", {})["model"] = environ["ORACLE_MODEL"].strip()
    if environ.get("LEDGER_TIMEOUT"):
        overrides["ledger_timeout"] = environ["LEDGER_TIMEOUT"].strip()
    if environ.get("TURN_MIN_DELAY"):
        overrides.setdefault("behavior", {})["min_delay"] = environ["TURN_MIN_DELAY"]
    if environ.get("TURN_MAX_DELAY"):
        overrides.setdefault("behavior", {})["max_delay"] = environ["TURN_MAX_DELAY"]

    return overrides


def _merge(base: dict[str, Any], extra: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in extra.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _merge(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: str) -> dict[str, Any]:
    config_path = Path(path)

    if not config_path.is_file():
        raise ValueError(f"Config file not found: {path}")

    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read config file: {exc}") from exc

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML syntax: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("YAML root must be a mapping (dict), got: "
                         f"{type(data).__name__}")
    return data


def load_settings(
    path: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Build validated Settings from YAML + environment.

    Args:
        path: Optional YAML file. Falls back to the LEDGERQUEST_CONFIG env var.
        environ: Environment mapping (defaults to os.environ).

    Raises:
        ValueError: If the file is missing, unparseable, or fails validation.
    """
    env = os.environ if environ is None else environ
    path = path or env.get("LEDGERQUEST_CONFIG")

    data = _read_yaml(path) if path else {}
    data = _merge(data, _env_overrides(env))

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Config validation failed: {exc}") from exc
