"""ledgerquest: LLM-driven agent roster for an on-ledger RPG.

A fixed roster of personalities takes turns against a game ledger. Each turn
a local battle model and item ROI analysis feed an LLM oracle, whose proposal
passes deterministic guardrails before the executor submits it. Per-agent
memory survives restarts in a JSON snapshot.

Run it::

    SIMULATION_MODE=true AGENT_ADDRESSES=0xA1,0xB2 python -m ledgerquest

Pipeline::

    ledger state -> predict + ROI -> oracle -> guardrails -> executor -> memory
"""

from ledgerquest.config import Settings, load_settings
from ledgerquest.memory import MemoryStore, update_memory
from ledgerquest.models import ActionKind, AgentMemory, Decision
from ledgerquest.scheduler import TurnResult, TurnScheduler

__version__ = "1.0.0"
__all__ = [
    "ActionKind",
    "AgentMemory",
    "Decision",
    "MemoryStore",
    "Settings",
    "TurnResult",
    "TurnScheduler",
    "load_settings",
    "update_memory",
]
