"""
Startup scan: classify every existing AA of every tracked kind, then scan
the pool factory.

Kinds run one after another in :func:`kind_entries` order and AAs within a
kind one at a time, so arbitrage AAs only look up curves that are already
classified and the pool scan sees every primary asset.
"""

from __future__ import annotations

import time

from config.kind_registry import kind_entries
from config.settings import Settings, settings as default_settings
from core.ledger import LedgerStateReader
from core.logger import get_logger
from core.models import BootstrapReport
from indexer.classifiers import AAClassifier
from indexer.pool_scanner import OswapPoolScanner

log = get_logger("bootstrap")


async def bootstrap(
    ledger: LedgerStateReader,
    classifier: AAClassifier,
    scanner: OswapPoolScanner,
    settings: Settings | None = None,
) -> BootstrapReport:
    """Populate the registry from the ledger.

    A failed classification aborts the run unless
    ``bootstrap_skip_failed_agents`` is set, in which case the AA is logged,
    listed in the report and skipped.  Pool validation errors always abort.
    """
    settings = settings or default_settings
    started = time.monotonic()
    report = BootstrapReport()

    for entry in kind_entries(settings):
        if not entry.base_aas:
            log.warning("No base AAs configured for %s, skipping", entry.kind, extra={"kind": entry.kind})
            continue

        rows = await ledger.get_aas_by_base_aas(entry.base_aas)
        log.info("Classifying %d %s AAs", len(rows), entry.kind, extra={"kind": entry.kind})
        classified = 0
        for row in rows:
            try:
                await classifier.classify(
                    entry.kind, row.address, row.definition if entry.takes_definition else None,
                )
            except Exception:
                if not settings.bootstrap_skip_failed_agents:
                    raise
                log.exception(
                    "Failed to classify %s AA %s, skipping", entry.kind, row.address,
                    extra={"aa": row.address, "kind": entry.kind},
                )
                report.failed.setdefault(entry.kind.value, []).append(row.address)
                continue
            classified += 1
        report.classified[entry.kind.value] = classified

    report.pools_added = await scanner.scan()
    report.duration_ms = round((time.monotonic() - started) * 1000, 1)
    log.info(
        "Bootstrap complete: %s, %d pools", report.classified, report.pools_added,
        extra={"duration_ms": report.duration_ms},
    )
    return report
