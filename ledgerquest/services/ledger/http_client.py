"""HTTP gateway ledger client.

Talks JSON to a signing gateway that fronts the game contract:

    GET  /players/{address}            -> {"name", "level", "experience", "gold",
                                           "strength", "defense", "exists"}
    POST /actions                      <- {"address", "action", "args": {...}}
                                       -> {"txHash", "status", "gasUsed"}
    GET  /network/congestion           -> {"level": float}
    GET  /accounts/{address}/balance   -> {"balance": float}

Error mapping:
    timeouts / connection errors / 408 / 429 / 5xx -> TransientExternalError
    any other 4xx                                  -> TerminalExternalError
The gateway's "error" message is carried in the exception text.
"""

import logging
from typing import Any, Optional

import httpx

from ledgerquest.errors import TerminalExternalError, TransientExternalError
from ledgerquest.models import ActionKind, ObservedState, Receipt
from ledgerquest.services.ledger.interface import LedgerClient

logger = logging.getLogger("ledger.http")

_TRANSIENT_STATUS = {408, 429}


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or resp.reason_phrase
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or body)[:200]
    return str(body)[:200]


class HttpLedgerClient(LedgerClient):
    """One shared httpx.AsyncClient serves every agent and every turn."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        logger.info("Ledger gateway client initialized (base=%s)", base_url)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise TransientExternalError(f"{method} {path} timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransientExternalError(f"{method} {path} transport error: {exc}") from exc

        if resp.status_code >= 500 or resp.status_code in _TRANSIENT_STATUS:
            raise TransientExternalError(
                f"{method} {path} -> {resp.status_code}: {_error_message(resp)}"
            )
        if resp.status_code >= 400 and resp.status_code != 404:
            raise TerminalExternalError(
                f"{method} {path} -> {resp.status_code}: {_error_message(resp)}"
            )
        return resp

    async def get_state(self, address: str) -> ObservedState:
        resp = await self._request("GET", f"/players/{address}")
        if resp.status_code == 404:
            return ObservedState(exists=False)
        return ObservedState.model_validate(resp.json())

    async def submit(
        self,
        action: ActionKind,
        address: str,
        *,
        player_name: Optional[str] = None,
        item_id: Optional[int] = None,
    ) -> Receipt:
        args: dict[str, Any] = {}
        if player_name is not None:
            args["name"] = player_name
        if item_id is not None:
            args["itemId"] = item_id

        resp = await self._request(
            "POST", "/actions",
            json={"address": address, "action": action.value, "args": args},
        )
        if resp.status_code == 404:
            raise TerminalExternalError(f"{action.value}: player {address} not found")

        body = resp.json()
        return Receipt(
            tx_hash=str(body.get("txHash", "")),
            status=str(body.get("status", "confirmed")),
            gas_used=body.get("gasUsed"),
            raw=body,
        )

    async def congestion_level(self) -> float:
        resp = await self._request("GET", "/network/congestion")
        return float(resp.json()["level"])

    async def balance(self, address: str) -> float:
        resp = await self._request("GET", f"/accounts/{address}/balance")
        if resp.status_code == 404:
            return 0.0
        return float(resp.json()["balance"])

    async def aclose(self) -> None:
        await self._client.aclose()
