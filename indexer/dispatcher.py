"""
EventDispatcher: keeps the registry current after bootstrap.

Two listeners:
  a) ``aa:definition_saved``           → classify the new AA by its base AA
  b) ``aa:response:<factory AA>``      → re-scan the factory's pools

Each notification runs as its own task, so a slow ledger read delays only
the notification waiting on it.  Handlers for different AAs interleave at
await points; each writes only under its own AA's key.  The ledger
announces an AA's construction once, so one AA is never classified by two
concurrent handlers.
"""

from __future__ import annotations

from typing import Any

from config.kind_registry import AgentKind, KindEntry, build_base_table, kind_entries
from config.settings import Settings, settings as default_settings
from core.message_bus import MessageBus
from core.models import AADefinitionSaved, AAResponse
from indexer.base_service import BaseService, Listener
from indexer.classifiers import AAClassifier
from indexer.pool_scanner import OswapPoolScanner


class EventDispatcher(BaseService):
    """Routes ledger notifications to classifiers and the pool scanner."""

    def __init__(
        self,
        bus: MessageBus,
        classifier: AAClassifier,
        scanner: OswapPoolScanner,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or default_settings
        super().__init__(
            service_id="dispatcher", bus=bus, retry_delay=self.settings.dispatcher_retry_delay,
        )
        self.classifier = classifier
        self.scanner = scanner
        self._base_table: dict[str, AgentKind] = build_base_table(self.settings)
        self._entries: dict[AgentKind, KindEntry] = {
            entry.kind: entry for entry in kind_entries(self.settings)
        }

        # Counters for health.
        self._classified_count = 0
        self._ignored_count = 0
        self._scan_count = 0

    def listeners(self) -> dict[str, Listener]:
        return {
            "definitions": self._definition_listener,
            "factory": self._factory_listener,
        }

    # -- listeners -----------------------------------------------------------

    async def _definition_listener(self) -> None:
        async for _msg_id, payload in self.bus.subscribe_aa_definitions(
            group=self.settings.dispatcher_consumer_group,
            consumer=self.settings.dispatcher_consumer_name,
        ):
            try:
                event = AADefinitionSaved.model_validate(payload)
            except Exception:
                self.log.exception("Malformed AA definition notification: %s", payload)
                continue
            self._spawn(self.handle_definition_saved(event), f"ed:aa:{event.address}")

    async def _factory_listener(self) -> None:
        async for _mid, payload in self.bus.subscribe_aa_responses(
            self.settings.oswap_factory_aa,
            group=f"{self.settings.dispatcher_consumer_group}_factory",
            consumer=self.settings.dispatcher_consumer_name,
        ):
            try:
                event = AAResponse.model_validate(payload)
            except Exception:
                self.log.exception("Malformed factory response notification: %s", payload)
                continue
            self._spawn(self.handle_factory_response(event), f"ed:factory:{event.trigger_unit}")

    # -- handlers ------------------------------------------------------------

    async def handle_definition_saved(self, event: AADefinitionSaved) -> AgentKind | None:
        """Classify a freshly constructed AA; returns the kind, or None if ignored."""
        log = self.log.bind(aa=event.address)
        log.info("New AA %s", event.address)
        base_aa = event.base_aa
        if not base_aa:
            log.info("New non-parameterized AA %s", event.address)
            self._ignored_count += 1
            return None

        kind = self._base_table.get(base_aa)
        if kind is None:
            log.info("New foreign AA %s", event.address, extra={"base_aa": base_aa})
            self._ignored_count += 1
            return None

        definition = event.definition if self._entries[kind].takes_definition else None
        await self.classifier.classify(kind, event.address, definition)
        self._classified_count += 1
        return kind

    async def handle_factory_response(self, event: AAResponse) -> int:
        added = await self.scanner.scan()
        self._scan_count += 1
        return added

    # -- health --------------------------------------------------------------

    def health(self) -> dict[str, Any]:
        base = super().health()
        base.update({
            "classified": self._classified_count,
            "ignored": self._ignored_count,
            "pool_scans": self._scan_count,
        })
        return base
