"""
aaindex: main entry-point.

Connects to the hub and Redis, bootstraps the registries from the ledger,
arms the event dispatcher, and runs the async event loop until
interrupted.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from api.registry_api import start_api
from config.settings import settings
from core.ledger import HubLedgerReader
from core.logger import get_logger
from core.message_bus import MessageBus
from core.referrals import ReferralWatcher
from core.registry import AssetRegistry
from indexer.bootstrap import bootstrap
from indexer.classifiers import AAClassifier
from indexer.dispatcher import EventDispatcher
from indexer.pool_scanner import OswapPoolScanner

log = get_logger(name="aaindex.main")


async def _connect_infra(bus: MessageBus, ledger: HubLedgerReader) -> None:
    """Establish connections to Redis and the hub."""
    log.info("Connecting to Redis …")
    await bus.connect()

    log.info("Connecting to hub …")
    await ledger.connect()

    log.info("Infrastructure ready.")


async def _disconnect_infra(bus: MessageBus, ledger: HubLedgerReader) -> None:
    """Tear down infrastructure connections (tolerates partial startup)."""
    try:
        await ledger.close()
    except Exception:
        log.exception("Error closing hub connection.")
    try:
        await bus.close()
    except Exception:
        log.exception("Error closing Redis connection.")
    log.info("Infrastructure connections closed.")


async def run(registry: AssetRegistry | None = None) -> None:
    """Main async entry-point."""
    registry = registry or AssetRegistry()
    bus = MessageBus()
    ledger = HubLedgerReader()

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _handle_signal() -> None:
        log.info("Shutdown signal received.")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _handle_signal)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler for all signals.
            pass

    dispatcher: EventDispatcher | None = None
    api_task: asyncio.Task | None = None
    try:
        await _connect_infra(bus, ledger)

        classifier = AAClassifier(ledger, registry, referrals=ReferralWatcher(bus))
        scanner = OswapPoolScanner(ledger, registry)

        report = await bootstrap(ledger, classifier, scanner)

        # Armed only now: the registry is complete up to the bootstrap point.
        dispatcher = EventDispatcher(bus, classifier, scanner)
        await dispatcher.start()

        if settings.api_enabled:
            api_task = asyncio.create_task(
                start_api(registry, services=[dispatcher]), name="api",
            )

        log.info(
            "aaindex is live  |  primary_assets=%d  |  pools=%d  |  t1_arbs=%d  |  interest_arbs=%d",
            len(registry.primary_assets),
            report.pools_added,
            len(registry.t1_arbs),
            len(registry.interest_arbs),
        )

        # Block until a termination signal arrives.
        await shutdown_event.wait()

    except Exception:
        log.exception("Fatal error during startup.")
        raise

    finally:
        log.info("Shutting down …")
        if api_task:
            api_task.cancel()
            try:
                await api_task
            except asyncio.CancelledError:
                pass
        if dispatcher:
            await dispatcher.stop()
        await _disconnect_infra(bus, ledger)
        log.info("aaindex stopped.")


def main() -> None:
    missing = settings.missing_required()
    if missing:
        log.error("Missing required settings: %s", ", ".join(missing))
        sys.exit(1)
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass
    except Exception:
        sys.exit(1)


if __name__ == "__main__":
    main()
