"""
Central registry describing every autonomous-agent kind aaindex tracks.

Each entry declares the kind, the base AA(s) it is instantiated from and
whether its classifier needs the AA's construction definition.  The order
of :func:`kind_entries` is the bootstrap order: arbitrage kinds resolve
curves and deposits that must already be classified.
"""

from __future__ import annotations

from enum import StrEnum
from typing import NamedTuple

from config.settings import Settings


class AgentKind(StrEnum):
    """Functional role of an AA, derived from its base AA."""

    CURVE = "curve"
    DEPOSIT = "deposit"
    STABLE = "stable"
    FUND = "fund"
    T1_ARB = "t1_arb"
    INTEREST_ARB = "interest_arb"


class KindEntry(NamedTuple):
    """Immutable descriptor for a tracked AA kind."""

    kind: AgentKind
    description: str
    base_aas: tuple[str, ...]
    takes_definition: bool   # Classifier reads params from the definition.


def _bases(*values: str | list[str]) -> tuple[str, ...]:
    out: list[str] = []
    for value in values:
        if isinstance(value, str):
            if value:
                out.append(value)
        else:
            out.extend(v for v in value if v)
    return tuple(out)


# ---------------------------------------------------------------------------
# Master list: add new kinds here.
# ---------------------------------------------------------------------------

def kind_entries(settings: Settings) -> list[KindEntry]:
    """Every tracked kind, in bootstrap order."""
    return [
        KindEntry(
            kind=AgentKind.CURVE,
            description="Bonding curve; registers its governance AA and both tokens.",
            base_aas=_bases(settings.curve_base_aas),
            takes_definition=False,
        ),
        KindEntry(
            kind=AgentKind.DEPOSIT,
            description="Deposit AA issuing interest-bearing deposit tokens.",
            base_aas=_bases(settings.deposit_base_aa),
            takes_definition=False,
        ),
        KindEntry(
            kind=AgentKind.STABLE,
            description="Stable-value AA wrapping deposits.",
            base_aas=_bases(settings.stable_base_aa),
            takes_definition=False,
        ),
        KindEntry(
            kind=AgentKind.FUND,
            description="Fund AA issuing shares against a curve's tokens.",
            base_aas=_bases(settings.fund_base_aa),
            takes_definition=False,
        ),
        KindEntry(
            kind=AgentKind.T1_ARB,
            description="Arbitrageur between a curve's T1 token and its reserve.",
            base_aas=_bases(settings.t1_arb_base_aas),
            takes_definition=True,
        ),
        KindEntry(
            kind=AgentKind.INTEREST_ARB,
            description="Arbitrageur between interest tokens and deposit tokens.",
            base_aas=_bases(settings.interest_arb_base_aa),
            takes_definition=True,
        ),
    ]


def build_base_table(settings: Settings) -> dict[str, AgentKind]:
    """Map every configured base AA to the kind of AAs built from it."""
    table: dict[str, AgentKind] = {}
    for entry in kind_entries(settings):
        for base_aa in entry.base_aas:
            table.setdefault(base_aa, entry.kind)
    return table
