"""Process entry point: ``python -m ledgerquest [config.yaml]``.

Environment is read from ``.env`` in the working directory (python-dotenv),
then settings are built by config.load_settings().
"""

import asyncio
import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from ledgerquest.config import Settings, load_settings
from ledgerquest.executor import ActionExecutor
from ledgerquest.memory import JsonFileStore, MemoryStore
from ledgerquest.oracle import DecisionOracle
from ledgerquest.profiles import assign_identities
from ledgerquest.scheduler import TurnScheduler
from ledgerquest.services.ledger import LedgerClient, get_ledger_client

logger = logging.getLogger("ledgerquest")


def build_scheduler(settings: Settings, ledger: LedgerClient) -> TurnScheduler:
    """Wire every collaborator for one process around a shared ledger client."""
    return TurnScheduler(
        settings,
        assign_identities(settings.addresses),
        MemoryStore(JsonFileStore(settings.memory_path)),
        ledger,
        DecisionOracle(settings.oracle, settings.item_shop),
        ActionExecutor(settings, ledger),
    )


async def _run(settings: Settings) -> None:
    ledger = get_ledger_client(settings)
    try:
        await build_scheduler(settings, ledger).serve()
    finally:
        await ledger.aclose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    try:
        settings = load_settings(args[0] if args else None)
    except ValueError as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    if not settings.addresses:
        logger.error("No agent addresses configured. Set AGENT_ADDRESSES or 'addresses' in the config file.")
        return 2

    asyncio.run(_run(settings))
    return 0


if __name__ == "__main__":
    sys.exit(main())
