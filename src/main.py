# src/main.py — v1
"""CLI entry point: detect, cache stats, cache clear.

Usage:
    sitesense detect --sites sites.json --lat <lat> --lon <lon> [options]
    sitesense cache stats
    sitesense cache clear
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from sitesense.config.settings import ConfigurationError, Settings, load_settings
from sitesense.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = _load_cli_settings(args)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="sitesense",
        description=f"SiteSense v{__version__}: site detection from Wi-Fi and GPS",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--cache-root", type=Path, default=None,
        help="Override CACHE_ROOT",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- detect ---
    p_detect = subparsers.add_parser(
        "detect", help="Run one detection from a supplied fix",
    )
    p_detect.add_argument(
        "--sites", type=Path, required=True,
        help="JSON file listing registered sites",
    )
    p_detect.add_argument("--lat", type=float, default=None, help="Latitude of the fix")
    p_detect.add_argument("--lon", type=float, default=None, help="Longitude of the fix")
    p_detect.add_argument(
        "--accuracy", type=float, default=10.0,
        help="Horizontal accuracy in meters (default: 10)",
    )
    p_detect.add_argument("--ssid", default=None, help="Connected Wi-Fi network name")
    p_detect.add_argument("--bssid", default=None, help="Connected access point MAC")
    p_detect.add_argument(
        "--confirm", default=None, metavar="SITE_ID",
        help="Confirm this site after detection (writes the cache)",
    )
    p_detect.add_argument(
        "--no-retry", action="store_true",
        help="Do not retry timeouts",
    )
    p_detect.set_defaults(func=_cmd_detect)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Inspect or clear the fingerprint cache")
    cache_sub = p_cache.add_subparsers(dest="cache_command", required=True)
    p_stats = cache_sub.add_parser("stats", help="Show cache occupancy")
    p_stats.set_defaults(func=_cmd_cache_stats)
    p_clear = cache_sub.add_parser("clear", help="Delete every cached fingerprint")
    p_clear.set_defaults(func=_cmd_cache_clear)

    return parser


async def _cmd_detect(args: argparse.Namespace, settings: Settings) -> int:
    """Detect the site for a single fix and print result + outcome."""
    from sitesense.api.facade import open_session
    from sitesense.core.models import Coordinate, WirelessObservation
    from sitesense.positioning.replay_source import ReplayPositioningSource
    from sitesense.registry.memory_registry import load_sites

    if not args.sites.exists():
        logger.error("Sites file not found: %s", args.sites)
        return 1
    if (args.lat is None) != (args.lon is None):
        logger.error("--lat and --lon must be given together")
        return 1

    registry = load_sites(args.sites)
    fixes = []
    if args.lat is not None:
        fixes.append(
            (0.0, Coordinate(latitude=args.lat, longitude=args.lon, accuracy_m=args.accuracy))
        )
    observation = None
    if args.ssid or args.bssid:
        observation = WirelessObservation(ssid=args.ssid, bssid=args.bssid)
    source = ReplayPositioningSource(fixes=fixes, observation=observation)

    async with await open_session(settings, source, registry) as session:
        outcome = await session.detect(retry=not args.no_retry)
        payload: dict[str, object] = {"outcome": json.loads(outcome.model_dump_json())}
        if args.confirm:
            record = await session.confirm(outcome, args.confirm)
            payload["record"] = json.loads(record.model_dump_json(by_alias=True))

    print(json.dumps(payload, indent=2))
    return 0


async def _cmd_cache_stats(args: argparse.Namespace, settings: Settings) -> int:
    """Print cache occupancy."""
    from sitesense.cache.cache_factory import create_cache_store
    from sitesense.cache.fingerprint_cache import FingerprintCache

    store = create_cache_store(settings)
    try:
        cache = FingerprintCache(
            store,
            retention_days=settings.cache_retention_days,
            max_entries=settings.cache_max_entries,
        )
        stats = await cache.stats()
    finally:
        await store.close()

    print(f"\nFingerprint cache ({settings.cache_backend}):")
    print(f"  Entries:  {stats.entries}/{stats.max_entries}")
    if stats.oldest_confirmed_at is not None:
        print(f"  Oldest:   {stats.oldest_confirmed_at.isoformat()}")
        print(f"  Newest:   {stats.newest_confirmed_at.isoformat()}")  # type: ignore[union-attr]
    return 0


async def _cmd_cache_clear(args: argparse.Namespace, settings: Settings) -> int:
    """Empty the cache."""
    from sitesense.cache.cache_factory import create_cache_store
    from sitesense.cache.fingerprint_cache import FingerprintCache

    store = create_cache_store(settings)
    try:
        await FingerprintCache(store).clear()
    finally:
        await store.close()
    print("Fingerprint cache cleared")
    return 0


def _load_cli_settings(args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if args.cache_root is not None:
        overrides["cache_root"] = args.cache_root
    return load_settings(**overrides)


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from sitesense.logging.logger import setup_logging_from_settings

    setup_logging_from_settings(settings, level="DEBUG" if verbose else None)


if __name__ == "__main__":
    sys.exit(main())
