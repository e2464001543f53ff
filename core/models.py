"""
Canonical Pydantic v2 domain models shared across every aaindex component.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

NATIVE_ASSET = "base"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Ledger rows
# ---------------------------------------------------------------------------

class AARow(BaseModel):
    """An AA address with its construction definition.

    A definition is ``["autonomous agent", {...}]``; parameterized AAs carry
    ``base_aa`` and ``params`` in the second element.
    """

    address: str
    definition: list[Any] = Field(default_factory=list)

    @property
    def body(self) -> dict[str, Any]:
        if len(self.definition) > 1 and isinstance(self.definition[1], dict):
            return self.definition[1]
        return {}

    @property
    def base_aa(self) -> str | None:
        return self.body.get("base_aa") or None

    @property
    def params(self) -> dict[str, Any]:
        return self.body.get("params") or {}


# ---------------------------------------------------------------------------
# Registry records
# ---------------------------------------------------------------------------

class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class OswapPool(_Record):
    """A liquidity pool whose both sides are native or primary assets."""

    asset0: str
    asset1: str
    asset: str = Field(description="Pool share (LP) asset.")


class T1Arb(_Record):
    shares_asset: str
    reserve_asset: str = NATIVE_ASSET
    asset1: str


class InterestArb(_Record):
    shares_asset: str
    interest_asset: str


class GovernanceAA(_Record):
    asset: str = Field(description="Voting asset.")


class RegistrySnapshot(BaseModel):
    """Point-in-time copy of every registry, for the read API."""

    timestamp: datetime = Field(default_factory=_utcnow)
    primary_assets: list[str] = Field(default_factory=list)
    oswap_assets: list[str] = Field(default_factory=list)
    oswap_pools: dict[str, OswapPool] = Field(default_factory=dict)
    t1_arbs: dict[str, T1Arb] = Field(default_factory=dict)
    interest_arbs: dict[str, InterestArb] = Field(default_factory=dict)
    governance_aas: dict[str, GovernanceAA] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class AADefinitionSaved(AARow):
    """A new AA was constructed on the ledger."""

    timestamp: datetime = Field(default_factory=_utcnow)


class AAResponse(BaseModel):
    """An AA (the pool factory, for our purposes) produced a response."""

    aa_address: str
    trigger_address: str = ""
    trigger_unit: str = ""
    response_unit: str | None = None
    bounced: bool = False
    timestamp: datetime = Field(default_factory=_utcnow)


class WatchAARequest(BaseModel):
    """Ask the referral tracker to start watching an AA."""

    address: str
    kind: str
    timestamp: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Bootstrap reporting
# ---------------------------------------------------------------------------

class BootstrapReport(BaseModel):
    classified: dict[str, int] = Field(default_factory=dict)
    failed: dict[str, list[str]] = Field(default_factory=dict)
    pools_added: int = 0
    duration_ms: float = 0.0
