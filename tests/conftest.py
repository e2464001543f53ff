"""
Shared fixtures for the aaindex test suite.

Provides:
- MockMessageBus: captures publishes, no Redis needed
- FakeLedger: in-memory AA state and definitions, no hub needed
- Checksummed test addresses and a fully configured Settings instance
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable

import pytest

from config.settings import Settings
from core.ledger import LedgerReadError
from core.models import AARow
from core.registry import AssetRegistry
from indexer.classifiers import AAClassifier
from indexer.pool_scanner import OswapPoolScanner


# ---------------------------------------------------------------------------
# Addresses (valid checksums)
# ---------------------------------------------------------------------------

CURVE_BASE = "LORHOZFHKVU4A75ME5IKZDW5RIEKC4UE"
CURVE_BASE_V2 = "RO7ICZEASJH42UPRBIEPGO42HLJSIASP"
DEPOSIT_BASE = "43MUF3MK4TVFNKWCWWPVJQGERSEG73KR"
STABLE_BASE = "RCAJUNFY6TOX57LI2QPKX3F7FWZNL2WA"
FUND_BASE = "ZFGO4CPBXLA26MOAXDGH7AD5IVCWMNLC"
T1_ARB_BASE = "EMOOQ7TBKPI7HOX5SIGK3QYHRUPL3O7S"
INTEREST_ARB_BASE = "R7J6JHZLDII2KPV73VBHUWHEFACXEAR2"
FOREIGN_BASE = "RRXTMMTCNCC2ANHGYYNVWK36RC4OB4RV"
OSWAP_FACTORY = "4EDY4WIPDPIHBI6RIS7V6TKXPIKKL4LM"

CURVE1 = "D5CXG63OL6CY6PDFQNDPO3CAWLYQNDPR"
CURVE2 = "K4QNDMTXHYJNAD46S42JUDKNCAVCITCV"
FOREIGN_CURVE = "QG7YAWVQKU6X2XQYXOG4LAWMVT3MXYPA"
FUND1 = "VJEP7UPWNB37D33VRY5H4SELNBKBYIAD"
GOVERNANCE1 = "BDI73NZEKQXMUZ3ZPN2TBRQXQAI2IHMH"
GOVERNANCE2 = "WQ33IQ7PIXKNUS5GKZHLOZO5CLJMPENR"
ARB_GOVERNANCE = "6INQXWMUDMX26ENREYNPJYO2CA55FYNG"
DEPOSIT1 = "GCWSONZUQCXJWEXGFRXRBR6QCID6CVBF"
STABLE1 = "TRRKBSPC3UJPOUWOJYEMIBNUNZ5OG5L7"
T1_ARB1 = "LQGZBH64UP5RPFCZGLP4QKEQA55JIMP2"
T1_ARB2 = "SOABJ3A7AUBAGQCX5VYEQ577JM45J335"
INTEREST_ARB1 = "JJJNMXOS74XER5Y5H34L5NXD6N6KNRCC"
POOL1 = "BWBWGEQMSWGHCZ3F6QUMNMTLHFYF657S"
POOL2 = "EVETPVSWP7PJ52R4JEUAZYE65TNBEGS6"
POOL3 = "KX2IKFTVHPYFCYTHRHBAYWIJMYFDEJLT"

# Same shape as a valid address, wrong checksum.
BAD_POOL = "LORHOZFHKVU4A75ME5IKZDW5RIEKC4UF"


def definition(base_aa: str | None = None, **params: Any) -> list[Any]:
    """Build an AA definition, parameterized when *base_aa* is given."""
    if base_aa is None:
        return ["autonomous agent", {"messages": []}]
    return ["autonomous agent", {"base_aa": base_aa, "params": params}]


# ---------------------------------------------------------------------------
# MockMessageBus
# ---------------------------------------------------------------------------

class MockMessageBus:
    """In-memory message bus that captures all publishes."""

    def __init__(self) -> None:
        self.published: dict[str, list[Any]] = {}

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def ensure_group(self, stream: str, group: str) -> None:
        pass

    async def publish_to(self, stream: str, model: Any) -> str:
        self.published.setdefault(stream, []).append(model)
        return "mock-id"

    def subscribe_aa_definitions(self, group: str, consumer: str, **kw: Any):
        return self._empty_iter()

    def subscribe_aa_responses(self, address: str, group: str, consumer: str, **kw: Any):
        return self._empty_iter()

    async def _empty_iter(self):
        # Yield nothing; the caller's async-for will block, but tests
        # cancel via stop() so this is fine.
        while True:
            await asyncio.sleep(3600)
            yield  # pragma: no cover

    def get_published(self, stream: str) -> list[Any]:
        return self.published.get(stream, [])


@pytest.fixture
def mock_bus() -> MockMessageBus:
    return MockMessageBus()


# ---------------------------------------------------------------------------
# FakeLedger
# ---------------------------------------------------------------------------

class FakeLedger:
    """In-memory ledger; every read yields to the event loop once."""

    def __init__(self) -> None:
        self.state: dict[str, dict[str, Any]] = {}
        self.definitions: dict[str, list[Any]] = {}
        self.reads: list[tuple[str, str]] = []
        self.failing: set[str] = set()

    def add_aa(
        self,
        address: str,
        base_aa: str | None = None,
        params: dict[str, Any] | None = None,
        state: dict[str, Any] | None = None,
    ) -> list[Any]:
        self.definitions[address] = definition(base_aa, **(params or {}))
        self.state[address] = dict(state or {})
        return self.definitions[address]

    async def _touch(self, op: str, address: str) -> None:
        self.reads.append((op, address))
        await asyncio.sleep(0)
        if address in self.failing:
            raise LedgerReadError(f"read failed for {address}")

    async def read_aa_state_vars(self, address: str, prefix: str = "") -> dict[str, Any]:
        await self._touch("state_vars", address)
        return {k: v for k, v in self.state.get(address, {}).items() if k.startswith(prefix)}

    async def read_aa_state_var(self, address: str, name: str) -> Any:
        await self._touch("state_var", address)
        return self.state.get(address, {}).get(name)

    async def read_aa_params(self, address: str) -> dict[str, Any]:
        await self._touch("params", address)
        return AARow(address=address, definition=self.definitions.get(address, [])).params

    async def get_aas_by_base_aas(self, base_aas: Iterable[str]) -> list[AARow]:
        bases = set(base_aas)
        await self._touch("by_base", ",".join(sorted(bases)))
        rows = [AARow(address=a, definition=d) for a, d in self.definitions.items()]
        return [row for row in rows if row.base_aa in bases]

    async def read_aa_definitions(self, addresses: Iterable[str]) -> list[AARow]:
        rows = []
        for address in addresses:
            await self._touch("definition", address)
            if address in self.definitions:
                rows.append(AARow(address=address, definition=self.definitions[address]))
        return rows


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


# ---------------------------------------------------------------------------
# Configured components
# ---------------------------------------------------------------------------

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        curve_base_aas=[CURVE_BASE, CURVE_BASE_V2],
        deposit_base_aa=DEPOSIT_BASE,
        stable_base_aa=STABLE_BASE,
        fund_base_aa=FUND_BASE,
        t1_arb_base_aas=[T1_ARB_BASE],
        interest_arb_base_aa=INTEREST_ARB_BASE,
        interest_arb_curve_base_aas=[],
        oswap_factory_aa=OSWAP_FACTORY,
        bootstrap_skip_failed_agents=False,
        dispatcher_retry_delay=0.01,
    )


@pytest.fixture
def registry() -> AssetRegistry:
    return AssetRegistry()


@pytest.fixture
def classifier(ledger: FakeLedger, registry: AssetRegistry, test_settings: Settings) -> AAClassifier:
    return AAClassifier(ledger, registry, settings=test_settings)


@pytest.fixture
def scanner(ledger: FakeLedger, registry: AssetRegistry, test_settings: Settings) -> OswapPoolScanner:
    return OswapPoolScanner(ledger, registry, settings=test_settings)


# ---------------------------------------------------------------------------
# Ledger population helpers
# ---------------------------------------------------------------------------

def add_v1_curve(
    ledger: FakeLedger,
    address: str = CURVE1,
    asset1: str = "T1-ASSET",
    asset2: str = "T2-ASSET",
    governance_aa: str = GOVERNANCE1,
    base_aa: str = CURVE_BASE,
    reserve_asset: str | None = None,
) -> None:
    params = {"reserve_asset": reserve_asset} if reserve_asset else {}
    ledger.add_aa(address, base_aa, params, state={
        "asset1": asset1,
        "asset2": asset2,
        "governance_aa": governance_aa,
        "supply1": 1000,
    })


def add_pool(ledger: FakeLedger, pool: str, asset0: str, asset1: str, asset: str) -> None:
    state = ledger.state.setdefault(OSWAP_FACTORY, {})
    state[f"pools.{pool}.asset0"] = asset0
    state[f"pools.{pool}.asset1"] = asset1
    state[f"pools.{pool}.asset"] = asset
