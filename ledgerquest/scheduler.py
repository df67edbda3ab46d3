"""Turn scheduler: one agent at a time, forever (or for max_turns).

Per-agent turn:

  | Step            | Simulation           | Live                                    |
  |-----------------|----------------------|-----------------------------------------|
  | CheckCongestion | skipped              | > congestion_threshold -> "skipped"     |
  | FetchState      | ledger.get_state     | ledger.get_state                        |
  | CreateIfAbsent  | executor (no-op)     | executor submits createPlayer only      |
  | Analyze         | predictor + shop ROI | predictor + shop ROI                    |
  | Decide          | oracle               | oracle                                  |
  | Validate        | guardrails           | guardrails                              |
  | Execute         | executor (no-op)     | executor (pre-flight + retries)         |
  | RecordOutcome   | simulate_outcome     | external observer calls store.record()  |
  | Idle            | uniform [min,max] s  | uniform [min,max] s                     |

Any exception inside a turn is caught, logged with its class, and the loop
moves on to the next agent. Only cancellation escapes.

Lifecycle: start() -> run() -> stop(). SIGINT/SIGTERM set the stop event;
the loop exits after the current step and stop() does the final flush and
report before the process exits.
"""

import asyncio
import contextlib
import enum
import logging
import random
import signal
import time
import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from ledgerquest.config import Settings
from ledgerquest.events import close_event_stream, publish_turn_event
from ledgerquest.executor import ActionExecutor
from ledgerquest.guardrails import review_decision
from ledgerquest.investment import analyze_shop
from ledgerquest.memory import MemoryStore, simulate_outcome
from ledgerquest.metrics import MetricsCollector, reset_current_collector, set_current_collector
from ledgerquest.models import (
    ActionKind,
    ActionOutcome,
    AgentIdentity,
    Decision,
    GuardrailOverride,
)
from ledgerquest.oracle import DecisionOracle
from ledgerquest.prediction import predict_battle_outcome
from ledgerquest.report import PerformanceReport, build_report, log_report
from ledgerquest.services.ledger.interface import LedgerClient

logger = logging.getLogger("scheduler")

_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class TurnStatus(str, enum.Enum):
    CREATED = "created"
    EXECUTED = "executed"
    WAITED = "waited"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class TurnResult:
    agent: str
    status: Optional[TurnStatus] = None
    decision: Optional[Decision] = None
    override: Optional[GuardrailOverride] = None
    outcome: Optional[ActionOutcome] = None
    error: Optional[BaseException] = None


class TurnScheduler:
    def __init__(
        self,
        settings: Settings,
        identities: Sequence[AgentIdentity],
        store: MemoryStore,
        ledger: LedgerClient,
        oracle: DecisionOracle,
        executor: ActionExecutor,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        if not identities:
            raise ValueError("TurnScheduler needs at least one agent identity")
        self._settings = settings
        self._identities = list(identities)
        self._store = store
        self._ledger = ledger
        self._oracle = oracle
        self._executor = executor
        self._rng = rng or random.Random()

        self._stop = asyncio.Event()
        self._autosave_task: Optional[asyncio.Task] = None
        self._signals_installed = False
        self._started_at = time.time()
        self.completed_turns = 0

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def start(self) -> None:
        """Load memory, install signal handlers, start autosave, log the banner."""
        loaded = self._store.load()
        self._started_at = time.time()

        loop = asyncio.get_running_loop()
        for sig in _SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_stop, sig)
                self._signals_installed = True
            except (NotImplementedError, RuntimeError) as exc:
                logger.warning("Cannot install handler for %s: %s", sig, exc)

        self._autosave_task = asyncio.create_task(self._autosave())

        s = self._settings
        logger.info("=" * 70)
        logger.info(
            "LEDGERQUEST starting: mode=%s agents=%d ledger=%s oracle=%s memories=%d",
            "SIMULATION" if s.simulation_mode else "LIVE",
            len(self._identities),
            s.ledger_backend,
            s.oracle.model,
            loaded,
        )
        for identity in self._identities:
            logger.info("  %s (%s) -> %s", identity.name, identity.style, identity.address)
        logger.info("=" * 70)

    async def stop(self) -> PerformanceReport:
        """Remove handlers, cancel autosave, flush memory and log the final report."""
        self._stop.set()
        if self._signals_installed:
            loop = asyncio.get_running_loop()
            for sig in _SIGNALS:
                loop.remove_signal_handler(sig)
            self._signals_installed = False

        if self._autosave_task is not None:
            self._autosave_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._autosave_task
            self._autosave_task = None

        self._store.save()
        report = self.report()
        await close_event_stream()
        logger.info("Shutdown complete.")
        return report

    def request_stop(self, sig: Optional[signal.Signals] = None) -> None:
        if sig is not None:
            logger.warning("Received %s, stopping after the current step", signal.Signals(sig).name)
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    async def _autosave(self) -> None:
        interval = self._settings.behavior.autosave_interval
        while True:
            await asyncio.sleep(interval)
            self._store.save()

    # ========================================================================
    # Loop
    # ========================================================================

    async def run(self, max_turns: Optional[int] = None) -> int:
        """Cycle through the roster until stopped. Returns turns completed by this call."""
        turns = 0
        index = 0
        while not self._stop.is_set():
            if max_turns is not None and turns >= max_turns:
                break

            await self.run_turn(index)
            index = (index + 1) % len(self._identities)
            turns += 1
            self.completed_turns += 1

            if self.completed_turns % self._settings.behavior.report_interval == 0:
                self.report()

            if max_turns is not None and turns >= max_turns:
                break
            await self._idle()
        return turns

    async def serve(self, max_turns: Optional[int] = None) -> None:
        await self.start()
        try:
            await self.run(max_turns)
        finally:
            await self.stop()

    async def _idle(self) -> None:
        behavior = self._settings.behavior
        delay = self._rng.uniform(behavior.min_delay, behavior.max_delay)
        logger.info("Next turn in %.1fs", delay)
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stop.wait(), timeout=delay)

    def report(self) -> PerformanceReport:
        report = build_report(
            self._store.snapshot(),
            self._identities,
            started_at=self._started_at,
            completed_turns=self.completed_turns,
        )
        log_report(report)
        return report

    # ========================================================================
    # One turn
    # ========================================================================

    async def run_turn(self, index: int) -> TurnResult:
        identity = self._identities[index % len(self._identities)]
        turn_id = uuid.uuid4().hex
        collector = MetricsCollector(identity.address, turn_id)
        result = TurnResult(agent=identity.address)

        token = set_current_collector(collector)
        try:
            await self._play(identity, turn_id[:8], collector, result)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error(
                "[%s] [%s] Turn failed (%s): %s",
                turn_id[:8], identity.name, type(exc).__name__, exc,
            )
            result.status = TurnStatus.FAILED
            result.error = exc
            collector.set_error(exc)
        finally:
            reset_current_collector(token)

        collector.set_outcome(
            result.status.value if result.status else "failed",
            result.decision.action.value if result.decision else None,
        )
        collector.emit()

        await publish_turn_event(
            self._settings.event_stream_url,
            address=identity.address,
            name=identity.name,
            status=result.status.value if result.status else "failed",
            action=result.decision.action.value if result.decision else None,
            override=result.override.rule if result.override else None,
            gold_delta=result.outcome.gold_delta if result.outcome else None,
            error=type(result.error).__name__ if result.error else None,
        )
        return result

    async def _play(
        self,
        identity: AgentIdentity,
        tid: str,
        collector: MetricsCollector,
        result: TurnResult,
    ) -> None:
        s = self._settings

        if not s.simulation_mode:
            congestion = await self._ledger.congestion_level()
            if congestion > s.behavior.congestion_threshold:
                logger.warning(
                    "[%s] [%s] Congestion %.1f above %.1f, skipping turn",
                    tid, identity.name, congestion, s.behavior.congestion_threshold,
                )
                result.status = TurnStatus.SKIPPED
                return

        state = await self._ledger.get_state(identity.address)
        if not state.exists:
            result.decision = Decision(
                action=ActionKind.CREATE_PLAYER,
                reasoning=f"register {identity.name} on the ledger",
            )
            logger.info("[%s] [%s] No player yet, creating one", tid, identity.name)
            await self._executor.execute(identity, result.decision)
            result.status = TurnStatus.CREATED
            return

        memory = self._store.get(identity.address)
        prediction = predict_battle_outcome(state.strength, state.defense, memory)
        reports = analyze_shop(s.item_shop, state, memory)
        logger.info(
            "[%s] [%s] L%d gold=%d str=%d def=%d win_p=%.0f%% (%s)",
            tid, identity.name, state.level, state.gold, state.strength, state.defense,
            prediction.win_probability * 100, prediction.risk_level.value,
        )

        proposal = await self._oracle.decide(identity, state, memory, prediction, reports)
        verdict = review_decision(proposal, state, memory, s.guardrails, s.item_shop)
        if verdict.override is not None:
            logger.warning(
                "[%s] [%s] Guardrail %s: %s -> %s",
                tid, identity.name, verdict.override.rule,
                proposal.action.value, verdict.decision.action.value,
            )
            collector.guardrail_override(verdict.override.rule)
            result.override = verdict.override

        decision = verdict.decision
        result.decision = decision
        logger.info(
            "[%s] [%s] Decision: %s (%s)", tid, identity.name, decision.action.value, decision.reasoning,
        )

        if decision.action is ActionKind.WAIT:
            result.status = TurnStatus.WAITED
            return

        await self._executor.execute(identity, decision)

        if s.simulation_mode:
            item = s.item_by_id(decision.item_id) if decision.item_id is not None else None
            result.outcome = simulate_outcome(
                decision.action,
                self._rng,
                item_id=decision.item_id,
                item_cost=item.cost if item is not None else 0,
            )
            self._store.record(identity.address, result.outcome)
            logger.info(
                "[%s] [%s] Simulated %s: success=%s gold=%+d xp=%+d",
                tid, identity.name, decision.action.value, result.outcome.success,
                result.outcome.gold_delta, result.outcome.experience_delta,
            )
        result.status = TurnStatus.EXECUTED
