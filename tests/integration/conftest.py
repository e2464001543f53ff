"""
Integration test fixtures for aaindex.

Provides TrackingBus (routes notifications to subscribed services), a
dispatcher factory wired to the shared fake ledger, and inject/wait helpers.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import pytest

from core.message_bus import STREAM_AA_DEFINITION_SAVED, aa_response_stream
from core.models import AADefinitionSaved, AAResponse
from indexer.dispatcher import EventDispatcher


# ---------------------------------------------------------------------------
# TrackingBus: mock that routes published messages to subscribers
# ---------------------------------------------------------------------------

class TrackingBus:
    """Mock message bus that routes published messages to subscribers.

    - publish_to() delivers payload to all subscriber queues on that stream
    - subscribe_aa_definitions/responses return an async iterator fed from a per-subscriber queue
    - Tracks all calls for assertion in tests
    """

    def __init__(self) -> None:
        self.published: dict[str, list[Any]] = {}
        self._subscriber_queues: dict[str, list[asyncio.Queue]] = {}
        self._subscription_log: list[tuple[str, str, str]] = []

    # -- lifecycle -----------------------------------------------------------

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def ensure_group(self, stream: str, group: str) -> None:
        pass

    # -- publishing ----------------------------------------------------------

    async def publish_to(self, stream: str, model: Any) -> str:
        self.published.setdefault(stream, []).append(model)

        if hasattr(model, "model_dump_json"):
            payload = json.loads(model.model_dump_json())
        else:
            payload = model

        for q in self._subscriber_queues.get(stream, []):
            await q.put(("msg-id", payload))

        return "msg-id"

    async def publish_aa_definition(self, event: AADefinitionSaved) -> str:
        return await self.publish_to(STREAM_AA_DEFINITION_SAVED, event)

    async def publish_aa_response(self, event: AAResponse) -> str:
        return await self.publish_to(aa_response_stream(event.aa_address), event)

    # -- subscribing ---------------------------------------------------------

    def _subscribe(self, stream: str, group: str, consumer: str, **kw: Any):
        self._subscription_log.append((stream, group, consumer))
        q: asyncio.Queue = asyncio.Queue()
        self._subscriber_queues.setdefault(stream, []).append(q)
        return self._iter_queue(q)

    def subscribe_aa_definitions(self, group: str, consumer: str, **kw: Any):
        return self._subscribe(STREAM_AA_DEFINITION_SAVED, group, consumer, **kw)

    def subscribe_aa_responses(self, address: str, group: str, consumer: str, **kw: Any):
        return self._subscribe(aa_response_stream(address), group, consumer, **kw)

    async def _iter_queue(self, q: asyncio.Queue):
        while True:
            yield await q.get()

    # -- test helpers --------------------------------------------------------

    async def inject(self, stream: str, payload: dict) -> None:
        """Push a raw dict into all subscriber queues for *stream*."""
        for q in self._subscriber_queues.get(stream, []):
            await q.put(("injected-id", payload))

    def get_published(self, stream: str) -> list[Any]:
        return self.published.get(stream, [])

    def get_subscriptions(self) -> list[tuple[str, str, str]]:
        """Return list of (stream, group, consumer) tuples."""
        return list(self._subscription_log)

    def subscribed_streams(self) -> set[str]:
        return {s for s, _, _ in self._subscription_log}


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* until it holds or *timeout* seconds pass."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.01)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tracking_bus() -> TrackingBus:
    return TrackingBus()


@pytest.fixture
async def running_dispatcher(tracking_bus, classifier, scanner, test_settings):
    """A started dispatcher with both of its subscriptions in place."""
    dispatcher = EventDispatcher(tracking_bus, classifier, scanner, settings=test_settings)
    await dispatcher.start()
    await wait_for(lambda: len(tracking_bus.get_subscriptions()) == 2)
    yield dispatcher
    await dispatcher.stop()
