"""Warm-cache command line — run a warm pass outside the API server.

Usage:
  wayvora-warm                          # full run over the curated city list
  wayvora-warm "Paris, France" Tokyo    # just these cities
  wayvora-warm --mode geocoding-only
  wayvora-warm --skip-existing          # resume: leave fresh entries alone
  wayvora-warm --retry-failed           # only cities in the failure file
"""

import argparse
import asyncio
import logging
import sys

from wayvora.config import LOG_FORMAT, settings
from wayvora.dependencies import Services
from wayvora.orchestrator.failures import FailurePersistenceError
from wayvora.orchestrator.schemas import StepStatus, WarmMode, WarmRun

logger = logging.getLogger("wayvora.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wayvora-warm",
        description="Pre-warm the geocoding and POI caches for a list of cities.",
    )
    parser.add_argument("cities", nargs="*", help="city names (default: curated list)")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in WarmMode],
        default=WarmMode.FULL.value,
        help="which phases to run",
    )
    parser.add_argument("--skip-existing", action="store_true", help="skip entries that are still fresh")
    parser.add_argument("--retry-failed", action="store_true", help="re-run only previously failed cities")
    return parser


def print_report(run: WarmRun) -> None:
    print(f"\n{'='*60}")
    print(f"  Warm run {run.id} ({run.mode.value})")
    print(f"{'='*60}\n")
    for outcome in run.cities:
        if outcome.result is StepStatus.FAILED:
            failure = outcome.failure()
            print(f"  ❌ {outcome.name}: {failure.stage.value} | {failure.error}")
        elif outcome.result is StepStatus.SKIPPED:
            print(f"  ⏭  {outcome.name}: fresh in cache")
        elif outcome.result is StepStatus.SUCCESS:
            print(f"  ✅ {outcome.name}")
    print(f"\n  {run.summary()}")


async def run_warm(args: argparse.Namespace, services: Services) -> WarmRun:
    redis_ok = await services.store.connect()
    if not redis_ok:
        logger.warning("Redis unavailable, warmed entries only live in this process")
    try:
        mode = WarmMode(args.mode)
        if args.retry_failed:
            return await services.warmer.retry_failed(mode, args.skip_existing)
        return await services.warmer.run(args.cities or None, mode, args.skip_existing)
    finally:
        await services.store.disconnect()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    try:
        run = asyncio.run(run_warm(args, Services.from_settings(settings)))
    except FailurePersistenceError as e:
        print(f"  ❌ {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n  Interrupted", file=sys.stderr)
        return 130

    print_report(run)
    return 0


if __name__ == "__main__":
    sys.exit(main())
