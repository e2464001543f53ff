"""
Ledger state reads.

:class:`LedgerStateReader` is the interface every classifier depends on.
:class:`HubLedgerReader` implements it against a hub's light-client
websocket API: each call sends ``["request", {command, params, tag}]`` and
waits for the ``["response", {tag, response}]`` frame with the same tag.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from typing import Any, Iterable, Protocol

import websockets
import websockets.asyncio.client

from config.settings import settings
from core.logger import get_logger
from core.models import AARow

log = get_logger("ledger")


class LedgerReadError(RuntimeError):
    """The hub answered with an error or the connection went away."""


class LedgerStateReader(Protocol):
    async def read_aa_state_vars(self, address: str, prefix: str = "") -> dict[str, Any]: ...

    async def read_aa_state_var(self, address: str, name: str) -> Any: ...

    async def read_aa_params(self, address: str) -> dict[str, Any]: ...

    async def get_aas_by_base_aas(self, base_aas: Iterable[str]) -> list[AARow]: ...

    async def read_aa_definitions(self, addresses: Iterable[str]) -> list[AARow]: ...


def _parse_definition(raw: Any) -> list[Any]:
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, list):
        raise LedgerReadError(f"Malformed AA definition: {raw!r}")
    return raw


class HubLedgerReader:
    """Light-client reader over a single hub websocket."""

    def __init__(self, hub_url: str | None = None, ping_interval: float | None = None) -> None:
        self._url = hub_url or settings.hub_url
        self._ping_interval = ping_interval or settings.hub_ping_interval
        self._ws: Any = None
        self._pending: dict[str, asyncio.Future[Any]] = {}
        self._reader_task: asyncio.Task[None] | None = None

    # -- lifecycle -----------------------------------------------------------

    async def connect(self) -> None:
        log.info("Connecting to hub %s", self._url)
        self._ws = await websockets.asyncio.client.connect(
            self._url,
            ping_interval=self._ping_interval,
            ping_timeout=10,
            close_timeout=5,
            max_size=None,
        )
        self._reader_task = asyncio.create_task(self._consume(), name="ledger:hub")
        log.info("Hub connected.")

    async def close(self) -> None:
        if self._reader_task:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None
        if self._ws:
            await self._ws.close()
            self._ws = None
        self._fail_pending("Hub connection closed.")
        log.info("Hub connection closed.")

    # -- framing -------------------------------------------------------------

    async def _send(self, msg: list[Any]) -> None:
        if self._ws is None:
            raise LedgerReadError("Hub is not connected. Call connect() first.")
        await self._ws.send(json.dumps(msg))

    async def _request(self, command: str, params: Any) -> Any:
        if self._reader_task is None or self._reader_task.done():
            raise LedgerReadError("Hub connection is down. Reconnect before reading.")
        tag = uuid.uuid4().hex
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[tag] = future
        try:
            await self._send(["request", {"command": command, "params": params, "tag": tag}])
            response = await future
        finally:
            self._pending.pop(tag, None)
        if isinstance(response, dict) and "error" in response:
            raise LedgerReadError(f"{command} failed: {response['error']}")
        return response

    async def _consume(self) -> None:
        """Route response frames to waiting requests; answer heartbeats."""
        try:
            async for raw in self._ws:
                try:
                    msg_type, body = json.loads(raw)
                except (ValueError, TypeError):
                    log.warning("Dropping unparseable hub frame: %.200s", raw)
                    continue
                if not isinstance(body, dict):
                    log.warning("Dropping hub frame with non-object body: %.200s", raw)
                    continue
                if msg_type == "response":
                    future = self._pending.get(body.get("tag"))
                    if future is not None and not future.done():
                        future.set_result(body.get("response"))
                elif msg_type == "request":
                    await self._answer(body)
                else:
                    log.debug("Hub says %s", body.get("subject"))
        except websockets.exceptions.ConnectionClosed as exc:
            log.warning("Hub connection lost: %s", exc)
        except Exception as exc:
            log.exception("Hub reader failed", extra={"error": str(exc)})
        finally:
            self._fail_pending("Hub connection lost.")

    async def _answer(self, body: dict[str, Any]) -> None:
        tag = body.get("tag")
        if body.get("command") == "heartbeat":
            await self._send(["response", {"tag": tag}])
        else:
            await self._send(["response", {"tag": tag, "response": {"error": "unsupported"}}])

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(LedgerReadError(reason))
        self._pending.clear()

    # -- LedgerStateReader ---------------------------------------------------

    async def read_aa_state_vars(self, address: str, prefix: str = "") -> dict[str, Any]:
        params: dict[str, Any] = {"address": address}
        if prefix:
            params["var_prefix"] = prefix
        return await self._request("light/get_aa_state_vars", params) or {}

    async def read_aa_state_var(self, address: str, name: str) -> Any:
        state_vars = await self.read_aa_state_vars(address, name)
        return state_vars.get(name)

    async def read_aa_params(self, address: str) -> dict[str, Any]:
        rows = await self.read_aa_definitions([address])
        if not rows:
            raise LedgerReadError(f"No definition for AA {address}")
        return rows[0].params

    async def get_aas_by_base_aas(self, base_aas: Iterable[str]) -> list[AARow]:
        rows = await self._request("light/get_aas_by_base_aas", {"base_aas": list(base_aas)})
        return [
            AARow(address=row["address"], definition=_parse_definition(row["definition"]))
            for row in rows or []
        ]

    async def read_aa_definitions(self, addresses: Iterable[str]) -> list[AARow]:
        rows: list[AARow] = []
        for address in addresses:
            definition = await self._request("light/get_definition", address)
            if definition:
                rows.append(AARow(address=address, definition=_parse_definition(definition)))
        return rows
