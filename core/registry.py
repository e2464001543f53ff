"""
In-memory registries of classified AAs and the assets they expose.

One :class:`AssetRegistry` is owned by the process and handed to every
classifier, the pool scanner and the read API.  All registries only ever
grow.  Readers get copies of the sequences and read-only views of the
maps; sizes may change between two reads.

``primary_assets`` keeps discovery order and duplicates (an asset shared by
two curves is appended twice).  Eligibility only ever asks for membership,
which is answered from a companion set.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from core.logger import get_logger
from core.models import (
    NATIVE_ASSET,
    GovernanceAA,
    InterestArb,
    OswapPool,
    RegistrySnapshot,
    T1Arb,
)

log = get_logger("registry")


class AssetRegistry:
    """Process-wide registries, append/insert only."""

    def __init__(self) -> None:
        self._primary_assets: list[str] = []
        self._primary_set: set[str] = set()
        self._oswap_assets: list[str] = []
        self._oswap_pools: dict[str, OswapPool] = {}
        self._t1_arbs: dict[str, T1Arb] = {}
        self._interest_arbs: dict[str, InterestArb] = {}
        self._governance_aas: dict[str, GovernanceAA] = {}

    # -- primary assets ------------------------------------------------------

    def add_primary_assets(self, *assets: str | None) -> None:
        for asset in assets:
            if asset is None:
                continue
            self._primary_assets.append(asset)
            self._primary_set.add(asset)

    def is_primary(self, asset: str) -> bool:
        return asset in self._primary_set

    def is_eligible_for_oswap(self, asset: str | None) -> bool:
        return asset == NATIVE_ASSET or (asset is not None and self.is_primary(asset))

    # -- oswap ---------------------------------------------------------------

    def has_oswap_pool(self, address: str) -> bool:
        return address in self._oswap_pools

    def add_oswap_pool(self, address: str, pool: OswapPool) -> bool:
        """Record *pool*; returns False (and changes nothing) if already known."""
        if address in self._oswap_pools:
            return False
        self._oswap_assets.append(pool.asset)
        self._oswap_pools[address] = pool
        return True

    # -- arbitrage & governance ----------------------------------------------

    def set_t1_arb(self, address: str, record: T1Arb) -> None:
        self._t1_arbs[address] = record

    def set_interest_arb(self, address: str, record: InterestArb) -> None:
        self._interest_arbs[address] = record

    def set_governance_aa(self, address: str, record: GovernanceAA) -> None:
        previous = self._governance_aas.get(address)
        if previous is not None and previous != record:
            log.warning(
                "Governance AA %s voting asset changed %s -> %s",
                address, previous.asset, record.asset,
                extra={"aa": address, "asset": record.asset},
            )
        self._governance_aas[address] = record

    # -- read-only surface ---------------------------------------------------

    @property
    def primary_assets(self) -> list[str]:
        return list(self._primary_assets)

    @property
    def oswap_assets(self) -> list[str]:
        return list(self._oswap_assets)

    @property
    def oswap_pools(self) -> Mapping[str, OswapPool]:
        return MappingProxyType(self._oswap_pools)

    @property
    def t1_arbs(self) -> Mapping[str, T1Arb]:
        return MappingProxyType(self._t1_arbs)

    @property
    def interest_arbs(self) -> Mapping[str, InterestArb]:
        return MappingProxyType(self._interest_arbs)

    @property
    def governance_aas(self) -> Mapping[str, GovernanceAA]:
        return MappingProxyType(self._governance_aas)

    def snapshot(self) -> RegistrySnapshot:
        return RegistrySnapshot(
            primary_assets=list(self._primary_assets),
            oswap_assets=list(self._oswap_assets),
            oswap_pools=dict(self._oswap_pools),
            t1_arbs=dict(self._t1_arbs),
            interest_arbs=dict(self._interest_arbs),
            governance_aas=dict(self._governance_aas),
        )

    def counts(self) -> dict[str, int]:
        return {
            "primary_assets": len(self._primary_assets),
            "oswap_assets": len(self._oswap_assets),
            "oswap_pools": len(self._oswap_pools),
            "t1_arbs": len(self._t1_arbs),
            "interest_arbs": len(self._interest_arbs),
            "governance_aas": len(self._governance_aas),
        }
