"""
Weather feed updater.

Fetches current conditions for every configured location, writes one JSON
document per location plus ``locations.json`` into the output directory, and
optionally repeats on a fixed interval.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .clients import ADDRESS_TYPES, CLIENT_CLASSES, ProviderClient, create_client, make_session
from .core import ConfigError, PipelineRuntime
from .exporters import JsonStore, Pipeline, StoreError
from .scheduler import Scheduler

CONFIG_PATH = Path("config.json")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Publish current weather for configured locations as JSON files")
    parser.add_argument("--config", type=Path, default=CONFIG_PATH, help="Path to config.json (optional)")
    parser.add_argument("--output", type=str, default=None, help="Output directory for the JSON documents")
    parser.add_argument("--provider", choices=sorted(CLIENT_CLASSES), default=None, help="Default provider")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="Run a single pass and exit")
    mode.add_argument("--interval", type=float, default=None, help="Repeat every N seconds")
    parser.add_argument("--concurrency", type=int, default=None, help="Locations fetched in parallel (0 = all)")
    parser.add_argument("--locations", type=str, default=None, help="Comma-separated location ids")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def build_clients(runtime: PipelineRuntime) -> Dict[str, ProviderClient]:
    """One client per provider in use, sharing a single HTTP session."""
    session = make_session()
    clients: Dict[str, ProviderClient] = {}
    for provider_key in sorted({location.provider for location in runtime.locations}):
        clients[provider_key] = create_client(
            provider_key,
            session,
            runtime.settings,
            base_url=runtime.provider_setting(provider_key, "baseUrl"),
        )
    return clients


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.log_file)

    overrides: Dict[str, object] = {
        "outputDir": args.output,
        "provider": args.provider,
        "concurrency": args.concurrency,
    }
    if args.interval is not None:
        overrides["periodic"] = True
        overrides["intervalSeconds"] = args.interval
    if args.once:
        overrides["periodic"] = False

    wanted = args.locations.split(",") if args.locations else None
    try:
        runtime = PipelineRuntime(args.config, ADDRESS_TYPES, overrides=overrides, only_locations=wanted)
        store = JsonStore(runtime.output_dir)
    except (ConfigError, StoreError) as exc:
        logger.error(f"Setup failed: {exc}")
        return 1

    pipeline = Pipeline(store, build_clients(runtime), concurrency_limit=runtime.concurrency)
    logger.info(f"Writing {len(runtime.locations)} location(s) to {store.root}")

    index_failed = False

    def run_pass() -> None:
        nonlocal index_failed
        run_start = time.time()
        try:
            pipeline.run_once(runtime.locations, runtime.registry)
        except StoreError as exc:
            index_failed = True
            logger.error(f"Index write failed: {exc}")
            return
        logger.info(f"Pass completed in {time.time() - run_start:.2f} seconds")

    if not runtime.periodic:
        run_pass()
        return 1 if index_failed else 0

    try:
        scheduler = Scheduler(run_pass, runtime.interval_seconds)
    except ValueError as exc:
        logger.error(f"Setup failed: {exc}")
        return 1
    scheduler.run_forever(periodic=True)
    logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
