#!/usr/bin/env python3
"""
aaindex Event Injector: publish a synthetic ledger notification to Redis.

Useful to exercise a running indexer without waiting for the ledger:

    # announce a new AA built from a base AA
    python scripts/inject_event.py definition --address <AA> --base-aa <BASE> \
        --param curve_aa=<CURVE>

    # pretend the pool factory responded (triggers a pool re-scan)
    python scripts/inject_event.py factory-response

Requires: Redis at ``REDIS_URL``.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

# Ensure project root is on sys.path
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)
os.chdir(_project_root)

from config.settings import settings
from core.message_bus import MessageBus
from core.models import AADefinitionSaved, AAResponse

G = "\033[32m"
N = "\033[0m"


def _parse_params(pairs: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise SystemExit(f"--param expects key=value, got {pair!r}")
        params[key] = value
    return params


async def inject(args: argparse.Namespace) -> int:
    bus = MessageBus()
    await bus.connect()
    try:
        if args.event == "definition":
            body: dict = {"params": _parse_params(args.param)}
            if args.base_aa:
                body["base_aa"] = args.base_aa
            event = AADefinitionSaved(
                address=args.address, definition=["autonomous agent", body],
            )
            msg_id = await bus.publish_aa_definition(event)
        else:
            event = AAResponse(aa_address=args.factory or settings.oswap_factory_aa)
            msg_id = await bus.publish_aa_response(event)
    finally:
        await bus.close()

    print(f"{G}Published {args.event} notification: {msg_id}{N}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="aaindex Event Injector")
    sub = parser.add_subparsers(dest="event", required=True)

    definition = sub.add_parser("definition", help="New AA definition saved")
    definition.add_argument("--address", required=True, help="Address of the new AA")
    definition.add_argument("--base-aa", default="", help="Base AA (omit for a non-parameterized AA)")
    definition.add_argument("--param", action="append", default=[], help="Definition param key=value")

    response = sub.add_parser("factory-response", help="Pool factory produced a response")
    response.add_argument("--factory", default="", help="Factory AA (default: OSWAP_FACTORY_AA)")

    args = parser.parse_args()
    return asyncio.run(inject(args))


if __name__ == "__main__":
    sys.exit(main())
