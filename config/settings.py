"""
aaindex global configuration loaded from environment / .env file.

All base-AA allow-lists and connection endpoints live here so the rest of
the codebase never touches ``os.environ`` directly.  List-valued fields
are read from the environment as JSON, e.g.
``CURVE_BASE_AAS='["<base AA address>"]'``.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Single source of truth for every configurable knob in aaindex."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -- Ledger hub -----------------------------------------------------------
    hub_url: str = "wss://obyte.org/bb"
    hub_ping_interval: float = Field(
        default=20.0,
        description="Websocket keepalive ping interval in seconds.",
    )

    # -- Infrastructure -------------------------------------------------------
    redis_url: str = "redis://localhost:6379/0"

    # -- Logging --------------------------------------------------------------
    log_level: str = "INFO"

    # -- Base AAs -------------------------------------------------------------
    curve_base_aas: list[str] = Field(
        default_factory=list,
        description="Base AAs of bonding curves; also the approved list for arbitrage curves.",
    )
    deposit_base_aa: str = ""
    stable_base_aa: str = ""
    fund_base_aa: str = ""
    t1_arb_base_aas: list[str] = Field(default_factory=list)
    interest_arb_base_aa: str = ""
    interest_arb_curve_base_aas: list[str] = Field(
        default_factory=list,
        description="Approved curve bases for interest arbitrage. Empty means reuse curve_base_aas.",
    )
    oswap_factory_aa: str = Field(
        default="",
        description="Factory AA whose pools.* state vars list the liquidity pools.",
    )

    # -- Bootstrap ------------------------------------------------------------
    bootstrap_skip_failed_agents: bool = Field(
        default=False,
        description="Log and skip an AA whose classification fails instead of aborting bootstrap.",
    )

    # -- Event dispatcher -----------------------------------------------------
    dispatcher_consumer_group: str = "aaindex"
    dispatcher_consumer_name: str = "aaindex-1"
    dispatcher_retry_delay: float = Field(
        default=1.0,
        description="Seconds before a failed stream listener re-subscribes.",
    )

    # -- Read API -------------------------------------------------------------
    api_enabled: bool = Field(
        default=True,
        description="Serve the read-only registry API inside the indexer process.",
    )
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    @property
    def approved_interest_curve_base_aas(self) -> list[str]:
        return self.interest_arb_curve_base_aas or self.curve_base_aas

    def missing_required(self) -> list[str]:
        """Names of required fields that are still unset."""
        required = (
            "curve_base_aas",
            "deposit_base_aa",
            "stable_base_aa",
            "fund_base_aa",
            "t1_arb_base_aas",
            "interest_arb_base_aa",
            "oswap_factory_aa",
        )
        return [name for name in required if not getattr(self, name)]


settings = Settings()
