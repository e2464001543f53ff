"""
Oswap pool scanner.

The factory AA keeps one state var per pool field::

    pools.<POOL ADDRESS>.asset0
    pools.<POOL ADDRESS>.asset1
    pools.<POOL ADDRESS>.asset

A pool is admitted when both of its assets are the native asset or a
primary asset.  Each scan re-reads the whole ``pools.`` prefix and only
adds pools not seen before, so scans may overlap safely.
"""

from __future__ import annotations

from typing import Any

from config.settings import Settings, settings as default_settings
from core.ledger import LedgerStateReader
from core.logger import get_logger
from core.models import OswapPool
from core.registry import AssetRegistry
from core.validation import is_valid_address

POOLS_PREFIX = "pools."
ADDRESS_LENGTH = 32
_POOL_FIELDS = ("asset0", "asset1", "asset")


class InvalidPoolAddressError(ValueError):
    """The factory lists a pool under a malformed address."""


def group_pool_vars(state_vars: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Group ``pools.*`` vars by pool address, in first-seen order."""
    pools: dict[str, dict[str, Any]] = {}
    for var_name, value in state_vars.items():
        if not var_name.startswith(POOLS_PREFIX):
            continue
        rest = var_name[len(POOLS_PREFIX):]
        address, field = rest[:ADDRESS_LENGTH], rest[ADDRESS_LENGTH + 1:]
        fields = pools.setdefault(address, {})
        if field in _POOL_FIELDS:
            fields[field] = value
    return pools


class OswapPoolScanner:
    """Admits factory pools whose assets are known to the registry."""

    def __init__(
        self,
        ledger: LedgerStateReader,
        registry: AssetRegistry,
        settings: Settings | None = None,
    ) -> None:
        self.ledger = ledger
        self.registry = registry
        self.factory_aa = (settings or default_settings).oswap_factory_aa
        self.log = get_logger("pool_scanner")

    async def scan(self) -> int:
        """Read the factory's pools and admit the eligible new ones.

        Returns the number of pools added.  Raises
        :class:`InvalidPoolAddressError` on a malformed pool address.
        """
        state_vars = await self.ledger.read_aa_state_vars(self.factory_aa, POOLS_PREFIX)
        added = 0
        for address, fields in group_pool_vars(state_vars).items():
            if self._admit(address, fields):
                added += 1
        self.log.info(
            "Pool scan done: %d added, %d known", added, len(self.registry.oswap_pools),
            extra={"aa": self.factory_aa},
        )
        return added

    def _admit(self, address: str, fields: dict[str, Any]) -> bool:
        missing = [f for f in _POOL_FIELDS if fields.get(f) is None]
        if missing:
            self.log.debug(
                "Pool %s incomplete (missing %s), skipping", address, ",".join(missing),
                extra={"pool": address},
            )
            return False

        asset0, asset1, asset = fields["asset0"], fields["asset1"], fields["asset"]
        if not self.registry.is_eligible_for_oswap(asset0) or not self.registry.is_eligible_for_oswap(asset1):
            self.log.info(
                "Skipping oswap pool %s as its asset is not a primary asset", address,
                extra={"pool": address, "asset": asset},
            )
            return False

        if not is_valid_address(address):
            raise InvalidPoolAddressError(f"bad AA {address}")

        if not self.registry.add_oswap_pool(address, OswapPool(asset0=asset0, asset1=asset1, asset=asset)):
            self.log.debug(
                "Pool asset %s on AA %s already added", asset, address,
                extra={"pool": address, "asset": asset},
            )
            return False

        self.log.info(
            "Adding oswap pool asset %s on AA %s", asset, address,
            extra={"pool": address, "asset": asset},
        )
        return True
