#!/usr/bin/env python3
"""Probe the Ariston cloud for a plant's data variant.

Logs in, lists the account's Velis plants when no plant id is given,
resolves the best variant for the plant and prints the result as JSON.

Credentials come from the command line or the environment:
ARISTON_USER, ARISTON_PASS, ARISTON_PLANT, ARISTON_CACHE_DIR.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path

import httpx

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from custom_components.ariston_velis import api  # noqa: E402
from custom_components.ariston_velis.const import (  # noqa: E402
    CACHE_FILENAME,
    REQUEST_TIMEOUT,
)
from custom_components.ariston_velis.resolver import VariantResolver  # noqa: E402
from custom_components.ariston_velis.session import AristonSessionManager  # noqa: E402
from custom_components.ariston_velis.storage import VariantCache  # noqa: E402

_LOGGER = logging.getLogger("probe_variants")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--username", default=os.environ.get("ARISTON_USER"))
    parser.add_argument("--password", default=os.environ.get("ARISTON_PASS"))
    parser.add_argument("--plant", default=os.environ.get("ARISTON_PLANT"))
    parser.add_argument(
        "--cache-dir",
        default=os.environ.get("ARISTON_CACHE_DIR", os.getcwd()),
        help="Directory holding the variant cache file",
    )
    parser.add_argument("--debug", action="store_true", help="Log every request")
    return parser.parse_args(argv)


async def _probe(args: argparse.Namespace) -> dict:
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as session:
        session_manager = AristonSessionManager(session, args.username, args.password)
        token = await session_manager.async_login()

        plant = args.plant
        result: dict = {}
        if not plant:
            devices = await api.async_list_devices(session, token)
            result["devices"] = [device.raw for device in devices]
            if not devices:
                return result
            plant = devices[0].id

        cache = VariantCache.load(Path(args.cache_dir) / CACHE_FILENAME)
        resolution = await VariantResolver(session, session_manager, cache).async_resolve(
            plant
        )
        result.update(
            {
                "plant": plant,
                "variant": str(resolution.variant),
                "fields": asdict(resolution.fields),
                "raw": resolution.raw,
            }
        )
        return result


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not args.username or not args.password:
        _LOGGER.error("Username and password are required (ARISTON_USER/ARISTON_PASS)")
        return 1

    try:
        result = asyncio.run(_probe(args))
    except api.AristonApiClientError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
