"""
AA classifiers: one handler per :class:`AgentKind`.

Every handler reads the few state vars it needs, then records what it
found in the shared :class:`AssetRegistry`.  Handlers are idempotent: a
second run for the same AA writes identical map values and only appends
primary assets that are already present.

Read failures are not caught here; the caller (bootstrap or the event
dispatcher) decides whether one failed AA aborts the run.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from config.kind_registry import AgentKind
from config.settings import Settings, settings as default_settings
from core.ledger import LedgerReadError, LedgerStateReader
from core.logger import get_logger
from core.models import NATIVE_ASSET, AARow, GovernanceAA, InterestArb, T1Arb
from core.referrals import ReferralWatcher
from core.registry import AssetRegistry

Handler = Callable[..., Awaitable[None]]


class AAClassifier:
    """Classifies AAs of every tracked kind into the registry."""

    def __init__(
        self,
        ledger: LedgerStateReader,
        registry: AssetRegistry,
        referrals: ReferralWatcher | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.ledger = ledger
        self.registry = registry
        self.referrals = referrals
        self.settings = settings or default_settings
        self.log = get_logger("classifier")
        self._handlers: dict[AgentKind, Handler] = {
            AgentKind.CURVE: lambda aa, _definition: self.add_curve_aa(aa),
            AgentKind.DEPOSIT: lambda aa, _definition: self.add_deposit_aa(aa),
            AgentKind.STABLE: lambda aa, _definition: self.add_stable_aa(aa),
            AgentKind.FUND: lambda aa, _definition: self.add_fund_aa(aa),
            AgentKind.T1_ARB: self.add_t1_arb_aa,
            AgentKind.INTEREST_ARB: self.add_interest_arb_aa,
        }

    async def classify(self, kind: AgentKind, aa: str, definition: list[Any] | None = None) -> None:
        """Run the handler registered for *kind*."""
        await self._handlers[kind](aa, definition)

    # -- simple kinds --------------------------------------------------------

    async def add_curve_aa(self, aa: str) -> None:
        await self._watch_referrals(aa, AgentKind.CURVE)
        state_vars = await self.ledger.read_aa_state_vars(aa, "")
        fund_aa = state_vars.get("fund_aa")
        if fund_aa:  # v2: governance votes with fund shares
            voting_asset = await self.ledger.read_aa_state_var(fund_aa, "shares_asset")
        else:  # v1: governance votes with T1 tokens
            voting_asset = state_vars.get("asset1")
        self._set_governance(state_vars.get("governance_aa"), voting_asset)
        self.registry.add_primary_assets(state_vars.get("asset1"), state_vars.get("asset2"))
        self.log.info(
            "Curve AA %s (%s) classified", aa, "v2" if fund_aa else "v1",
            extra={"aa": aa, "kind": AgentKind.CURVE, "asset": voting_asset},
        )

    async def add_deposit_aa(self, aa: str) -> None:
        asset = await self.ledger.read_aa_state_var(aa, "asset")
        self.registry.add_primary_assets(asset)
        self.log.info("Deposit AA %s classified", aa, extra={"aa": aa, "asset": asset})

    async def add_stable_aa(self, aa: str) -> None:
        asset = await self.ledger.read_aa_state_var(aa, "asset")
        self.registry.add_primary_assets(asset)
        self.log.info("Stable AA %s classified", aa, extra={"aa": aa, "asset": asset})

    async def add_fund_aa(self, aa: str) -> None:
        await self._watch_referrals(aa, AgentKind.FUND)
        shares_asset = await self.ledger.read_aa_state_var(aa, "shares_asset")
        self.registry.add_primary_assets(shares_asset)
        self.log.info("Fund AA %s classified", aa, extra={"aa": aa, "asset": shares_asset})

    # -- arbitrage kinds -----------------------------------------------------

    async def add_t1_arb_aa(self, aa: str, definition: list[Any] | None) -> None:
        state_vars = await self.ledger.read_aa_state_vars(aa, "")
        shares_asset = state_vars.get("shares_asset")
        curve_aa = AARow(address=aa, definition=definition or []).params.get("curve_aa")
        if not curve_aa:
            self.log.warning("T1 arb %s has no curve_aa param, ignoring", aa, extra={"aa": aa})
            return

        curve_base_aa = await self._base_aa_of(curve_aa)
        if curve_base_aa not in self.settings.curve_base_aas:
            self.log.info(
                "T1 arb %s based on a curve that is based on a foreign base AA %s",
                aa, curve_base_aa,
                extra={"aa": aa, "base_aa": curve_base_aa},
            )
            return

        curve_params = await self.ledger.read_aa_params(curve_aa)
        asset1 = await self.ledger.read_aa_state_var(curve_aa, "asset1")
        self.registry.add_primary_assets(shares_asset)
        self.registry.set_t1_arb(aa, T1Arb(
            shares_asset=shares_asset,
            reserve_asset=curve_params.get("reserve_asset") or NATIVE_ASSET,
            asset1=asset1,
        ))
        self._set_governance(state_vars.get("governance_aa"), shares_asset)
        self.log.info(
            "T1 arb AA %s on curve %s classified", aa, curve_aa,
            extra={"aa": aa, "kind": AgentKind.T1_ARB, "asset": shares_asset},
        )

    async def add_interest_arb_aa(self, aa: str, definition: list[Any] | None) -> None:
        shares_asset = await self.ledger.read_aa_state_var(aa, "shares_asset")
        deposit_aa = AARow(address=aa, definition=definition or []).params.get("deposit_aa")
        if not deposit_aa:
            self.log.warning("Interest arb %s has no deposit_aa param, ignoring", aa, extra={"aa": aa})
            return

        deposit_params = await self.ledger.read_aa_params(deposit_aa)
        curve_aa = deposit_params.get("curve_aa")
        curve_base_aa = await self._base_aa_of(curve_aa) if curve_aa else None
        if curve_base_aa not in self.settings.approved_interest_curve_base_aas:
            self.log.info(
                "Interest arb %s based on a curve that is based on a foreign base AA %s",
                aa, curve_base_aa,
                extra={"aa": aa, "base_aa": curve_base_aa},
            )
            return

        interest_asset = await self.ledger.read_aa_state_var(curve_aa, "asset2")
        self.registry.add_primary_assets(shares_asset)
        self.registry.set_interest_arb(aa, InterestArb(
            shares_asset=shares_asset,
            interest_asset=interest_asset,
        ))
        self.log.info(
            "Interest arb AA %s on deposit %s classified", aa, deposit_aa,
            extra={"aa": aa, "kind": AgentKind.INTEREST_ARB, "asset": shares_asset},
        )

    # -- helpers -------------------------------------------------------------

    async def _base_aa_of(self, address: str) -> str | None:
        rows = await self.ledger.read_aa_definitions([address])
        if not rows:
            raise LedgerReadError(f"No definition for AA {address}")
        return rows[0].base_aa

    def _set_governance(self, governance_aa: str | None, voting_asset: str | None) -> None:
        if not governance_aa or voting_asset is None:
            self.log.warning("No governance AA or voting asset, skipping", extra={"aa": governance_aa})
            return
        self.registry.set_governance_aa(governance_aa, GovernanceAA(asset=voting_asset))

    async def _watch_referrals(self, aa: str, kind: AgentKind) -> None:
        if self.referrals is not None:
            await self.referrals.watch_aa(aa, kind)
