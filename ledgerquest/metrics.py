"""Per-turn metrics model and collection.

One MetricsCollector lives for exactly one agent turn. The scheduler
activates it, the oracle, guardrails and executor push counters into it,
and the scheduler emits it once the turn ends (whatever the exit path).

Uses ``contextvars`` so the active collector propagates through awaited
calls (e.g. into TrackedProvider) without threading it through every
signature.
"""
from __future__ import annotations

import contextvars
import json
import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger("ledgerquest.metrics")

_current_metrics: contextvars.ContextVar[Optional["MetricsCollector"]] = (
    contextvars.ContextVar("_ledgerquest_current_metrics", default=None)
)


@dataclass
class TurnMetrics:
    """Observability snapshot for one agent turn."""

    agent: str
    turn_id: str
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    # --- Oracle ---
    oracle_attempts: int = 0
    oracle_failures: int = 0
    used_fallback: bool = False
    input_tokens: int = 0
    output_tokens: int = 0
    token_cost: float = 0.0           # Estimated USD cost of oracle calls

    # --- Guardrails ---
    override_rule: Optional[str] = None

    # --- Ledger ---
    ledger_attempts: int = 0
    ledger_retries: int = 0

    # --- Outcome ---
    action: Optional[str] = None
    status: str = "pending"
    error: Optional[str] = None

    extra: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str)


class MetricsCollector:
    """Builds and emits a TurnMetrics snapshot for one turn."""

    def __init__(self, agent: str, turn_id: str) -> None:
        self._start = time.monotonic()
        self._m = TurnMetrics(agent=agent, turn_id=turn_id)
        self._emitted = False

    # --- Fluent builder API ---

    def oracle_attempt(self, failed: bool = False) -> "MetricsCollector":
        self._m.oracle_attempts += 1
        if failed:
            self._m.oracle_failures += 1
        return self

    def oracle_fallback(self) -> "MetricsCollector":
        self._m.used_fallback = True
        return self

    def increment_tokens(
        self,
        input_tokens: int = 0,
        output_tokens: int = 0,
        cost: float = 0.0,
    ) -> "MetricsCollector":
        """Accumulate token usage across every oracle call in this turn."""
        self._m.input_tokens += input_tokens
        self._m.output_tokens += output_tokens
        self._m.token_cost += cost
        return self

    def guardrail_override(self, rule: str) -> "MetricsCollector":
        self._m.override_rule = rule
        return self

    def ledger_attempt(self, retry: bool = False) -> "MetricsCollector":
        self._m.ledger_attempts += 1
        if retry:
            self._m.ledger_retries += 1
        return self

    def set_outcome(self, status: str, action: Optional[str] = None) -> "MetricsCollector":
        self._m.status = status
        if action is not None:
            self._m.action = action
        return self

    def set_error(self, error: BaseException) -> "MetricsCollector":
        self._m.error = type(error).__name__
        return self

    def snapshot(self) -> TurnMetrics:
        return self._m

    def emit(self) -> TurnMetrics:
        """Finalise timing and log the structured metrics line (once)."""
        if self._emitted:
            return self._m
        self._emitted = True
        self._m.extra["elapsed_s"] = round(time.monotonic() - self._start, 3)
        logger.info(
            "METRICS agent=%s turn=%s status=%s action=%s oracle=%d/%d fallback=%s "
            "override=%s ledger=%d retries=%d tokens=%d/%d error=%s",
            self._m.agent,
            self._m.turn_id[:8],
            self._m.status,
            self._m.action,
            self._m.oracle_failures,
            self._m.oracle_attempts,
            self._m.used_fallback,
            self._m.override_rule,
            self._m.ledger_attempts,
            self._m.ledger_retries,
            self._m.input_tokens,
            self._m.output_tokens,
            self._m.error,
        )
        return self._m


# --- Context propagation helpers ---

def get_current_collector() -> Optional[MetricsCollector]:
    """Return the MetricsCollector active in the current async context, or None."""
    return _current_metrics.get()


def set_current_collector(collector: Optional[MetricsCollector]) -> contextvars.Token:
    """Activate a collector in the current async context. Returns reset token."""
    return _current_metrics.set(collector)


def reset_current_collector(token: contextvars.Token) -> None:
    _current_metrics.reset(token)
