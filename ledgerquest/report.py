"""Read-only fleet performance report.

Built from a MemoryStore snapshot every ``behavior.report_interval`` turns and
once more at shutdown. Nothing here mutates memory.
"""

import logging
import time
from typing import Mapping, Optional, Sequence

from pydantic import BaseModel

from ledgerquest.memory import initialize_memory
from ledgerquest.models import AgentIdentity, AgentMemory

logger = logging.getLogger("report")


class AgentReport(BaseModel):
    address: str
    name: str
    nationality: str
    total_actions: int
    total_battles: int
    battles_won: int
    battles_lost: int
    win_rate: Optional[float]
    net_gold: int
    best_win_streak: int
    owned_items: list[int]


class PerformanceReport(BaseModel):
    uptime_minutes: int
    completed_turns: int
    agents: list[AgentReport]
    total_actions: int
    total_battles: int
    fleet_win_rate: Optional[float]
    fleet_net_gold: int


def _agent_report(identity: AgentIdentity, memory: AgentMemory) -> AgentReport:
    return AgentReport(
        address=identity.address,
        name=identity.name,
        nationality=identity.nationality,
        total_actions=memory.total_actions,
        total_battles=memory.total_battles,
        battles_won=memory.battles_won,
        battles_lost=memory.battles_lost,
        win_rate=memory.win_rate,
        net_gold=memory.net_gold,
        best_win_streak=memory.best_win_streak,
        owned_items=sorted(memory.owned_items),
    )


def build_report(
    memories: Mapping[str, AgentMemory],
    identities: Sequence[AgentIdentity],
    *,
    started_at: float,
    completed_turns: int,
    now: Optional[float] = None,
) -> PerformanceReport:
    now = time.time() if now is None else now
    agents = [
        _agent_report(identity, memories.get(identity.address, initialize_memory()))
        for identity in identities
    ]
    battles = sum(a.total_battles for a in agents)
    won = sum(a.battles_won for a in agents)
    return PerformanceReport(
        uptime_minutes=max(int((now - started_at) // 60), 0),
        completed_turns=completed_turns,
        agents=agents,
        total_actions=sum(a.total_actions for a in agents),
        total_battles=battles,
        fleet_win_rate=(won / battles) if battles else None,
        fleet_net_gold=sum(a.net_gold for a in agents),
    )


def _pct(rate: Optional[float]) -> str:
    return "N/A" if rate is None else f"{rate * 100:.1f}%"


def log_report(report: PerformanceReport) -> None:
    logger.info("=" * 70)
    logger.info(
        "PERFORMANCE REPORT uptime=%dm turns=%d actions=%d battles=%d win_rate=%s net_gold=%+d",
        report.uptime_minutes,
        report.completed_turns,
        report.total_actions,
        report.total_battles,
        _pct(report.fleet_win_rate),
        report.fleet_net_gold,
    )
    for agent in report.agents:
        logger.info(
            "  %-10s %-45s actions=%4d W/L=%d/%d win=%s gold=%+d best=%d items=%s",
            agent.name,
            agent.nationality[:45],
            agent.total_actions,
            agent.battles_won,
            agent.battles_lost,
            _pct(agent.win_rate),
            agent.net_gold,
            agent.best_win_streak,
            agent.owned_items,
        )
    logger.info("=" * 70)
