"""Ledger abstraction layer.

get_ledger_client() picks the backend from Settings.ledger_backend:
    "simulated" - in-process game state, no network (default)
    "http"      - JSON signing gateway at Settings.ledger_url
"""

import logging

from ledgerquest.config import Settings
from ledgerquest.services.ledger.interface import LedgerClient

logger = logging.getLogger("ledger.factory")


def get_ledger_client(settings: Settings) -> LedgerClient:
    if settings.ledger_backend == "http":
        from ledgerquest.services.ledger.http_client import HttpLedgerClient
        client: LedgerClient = HttpLedgerClient(
            settings.ledger_url, timeout=settings.ledger_timeout,
        )
    else:
        from ledgerquest.services.ledger.simulated import SimulatedLedgerClient
        client = SimulatedLedgerClient(settings.item_shop)
    logger.info("Ledger backend selected: %s", settings.ledger_backend)
    return client


__all__ = ["get_ledger_client", "LedgerClient"]
