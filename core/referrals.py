"""
Hand-off to the referral tracker.

Curves and funds are the AAs users interact with through referral links;
the tracker that credits referrers runs elsewhere and learns which AAs to
watch from ``referrals:watch``.
"""

from __future__ import annotations

from core.logger import get_logger
from core.message_bus import STREAM_REFERRALS_WATCH, MessageBus
from core.models import WatchAARequest

log = get_logger("referrals")


class ReferralWatcher:
    """Publishes watch requests; never blocks classification on failure."""

    def __init__(self, bus: MessageBus) -> None:
        self.bus = bus
        self._watched: set[str] = set()

    async def watch_aa(self, address: str, kind: str) -> None:
        if address in self._watched:
            return
        try:
            await self.bus.publish_to(
                STREAM_REFERRALS_WATCH, WatchAARequest(address=address, kind=kind),
            )
        except Exception:
            log.exception("Failed to request referral watch for %s", address, extra={"aa": address})
            return
        self._watched.add(address)
        log.debug("Referral watch requested for %s", address, extra={"aa": address, "kind": kind})
