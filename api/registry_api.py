"""
Registry API: FastAPI read-only view of the indexer's registries.

Runs inside the indexer process next to the dispatcher and serves straight
from the live :class:`AssetRegistry`; every response is a fresh copy, so
two calls may disagree while classification is in progress.

Start via: ``asyncio.create_task(start_api(registry))``
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

from config.settings import settings
from core.registry import AssetRegistry

logger = logging.getLogger("aaindex.api")


def _registry_gauges(registry: AssetRegistry) -> CollectorRegistry:
    """Per-app Prometheus registry with one size gauge per registry."""
    collector = CollectorRegistry()
    sizes = Gauge(
        "aaindex_registry_size", "Number of entries per registry", ["registry"],
        registry=collector,
    )
    for name in registry.counts():
        sizes.labels(registry=name).set_function(
            lambda name=name: registry.counts()[name],
        )
    return collector


def create_app(registry: AssetRegistry, services: list | None = None) -> FastAPI:
    """Create the FastAPI application bound to *registry*."""
    services = services or []
    metrics_registry = _registry_gauges(registry)

    app = FastAPI(title="aaindex registry", version="1.0.0")

    @app.get("/")
    async def root() -> dict[str, Any]:
        return {
            "name": "aaindex",
            "status": "running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "oswap_factory_aa": settings.oswap_factory_aa,
            "counts": registry.counts(),
            "services": [s.health() for s in services],
        }

    @app.get("/snapshot")
    async def snapshot() -> dict[str, Any]:
        """Every registry copied at one instant, unlike the per-registry routes."""
        return registry.snapshot().model_dump(mode="json")

    @app.get("/primary-assets")
    async def primary_assets() -> list[str]:
        return registry.primary_assets

    @app.get("/oswap/assets")
    async def oswap_assets() -> list[str]:
        return registry.oswap_assets

    @app.get("/oswap/pools")
    async def oswap_pools() -> dict[str, Any]:
        return {k: v.model_dump() for k, v in registry.oswap_pools.items()}

    @app.get("/oswap/pools/{address}")
    async def oswap_pool(address: str):
        pool = registry.oswap_pools.get(address)
        if pool is None:
            return JSONResponse({"error": "Pool not found"}, status_code=404)
        return pool.model_dump()

    @app.get("/arbs/t1")
    async def t1_arbs() -> dict[str, Any]:
        return {k: v.model_dump() for k, v in registry.t1_arbs.items()}

    @app.get("/arbs/interest")
    async def interest_arbs() -> dict[str, Any]:
        return {k: v.model_dump() for k, v in registry.interest_arbs.items()}

    @app.get("/governance")
    async def governance_aas() -> dict[str, Any]:
        return {k: v.model_dump() for k, v in registry.governance_aas.items()}

    @app.get("/governance/{address}")
    async def governance_aa(address: str):
        record = registry.governance_aas.get(address)
        if record is None:
            return JSONResponse({"error": "Governance AA not found"}, status_code=404)
        return record.model_dump()

    @app.get("/metrics")
    async def metrics():
        return PlainTextResponse(
            generate_latest(metrics_registry).decode("utf-8"),
            media_type=CONTENT_TYPE_LATEST,
        )

    return app


# ---------------------------------------------------------------------------
# Entry-point for in-process startup
# ---------------------------------------------------------------------------

async def start_api(registry: AssetRegistry, services: list | None = None) -> None:
    """Serve the API as an async task within the indexer process."""
    import uvicorn

    app = create_app(registry, services=services)
    config = uvicorn.Config(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)
    logger.info(
        "Registry API starting on http://%s:%d",
        settings.api_host,
        settings.api_port,
    )
    await server.serve()
