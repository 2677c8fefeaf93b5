"""
Command-line entry point.

Usage:
    gallery-harvest --url https://www.cosmos.so/rlphoto/swim --out public/gallery.json
    python -m galleryharvest --max-scrolls 40 --stable-checks 4 --verbose
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from galleryharvest.core.config import DEFAULT_TARGET_URL, Config
from galleryharvest.core.error_models import ErrorComponent, ErrorStage, ErrorType
from galleryharvest.core.logging import get_logger, init_harvest_logging
from galleryharvest.harvester.file_manager import write_payload
from galleryharvest.harvester.harvest import record_failure, run_harvest
from galleryharvest.harvester.models import HarvestPayload

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="gallery-harvest",
        description="Scroll a media gallery and write every image and video as one ordered JSON feed.",
    )
    ap.add_argument("--url", help="Gallery page (overrides TARGET_URL)")
    ap.add_argument("--out", help="Output JSON path (overrides OUT_FILE)")
    ap.add_argument("--max-scrolls", type=int, help="Step ceiling (overrides MAX_SCROLLS)")
    ap.add_argument("--wait-between", type=int, help="Settle wait per step in ms (overrides WAIT_BETWEEN)")
    ap.add_argument("--first-idle", type=int, help="Initial settle after load in ms (overrides FIRST_IDLE)")
    ap.add_argument("--stable-checks", type=int, help="Quiet steps required to stop (overrides STABLE_CHECKS)")
    ap.add_argument("--viewport-width", type=int)
    ap.add_argument("--viewport-height", type=int)
    ap.add_argument("--headed", action="store_true", help="Show the browser window")
    ap.add_argument("--reverse", action="store_true", help="Reverse the final order")
    ap.add_argument("--force-top-tier", action="store_true", help="Rewrite streamed clips to the top rendition")
    ap.add_argument("--allow-third-party-images", action="store_true",
                    help="Keep images from any host (overrides TRUSTED_IMAGES_ONLY)")
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    ap.add_argument("--env", type=Path, help="Path to .env file (default: configs/.env)")
    return ap


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Copy every flag the user actually passed onto the config."""
    if args.url:
        config.target_url = args.url
    if args.out:
        config.out_file = Path(args.out)
    if args.max_scrolls is not None:
        config.max_scrolls = args.max_scrolls
    if args.wait_between is not None:
        config.wait_between_ms = args.wait_between
    if args.first_idle is not None:
        config.first_idle_ms = args.first_idle
    if args.stable_checks is not None:
        config.stable_checks = args.stable_checks
    if args.viewport_width is not None:
        config.viewport_width = args.viewport_width
    if args.viewport_height is not None:
        config.viewport_height = args.viewport_height
    if args.headed:
        config.headless = False
    if args.reverse:
        config.reverse_output = True
    if args.force_top_tier:
        config.force_top_tier = True
    if args.allow_third_party_images:
        config.trusted_images_only = False
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = apply_overrides(Config(env_path=args.env), args)
    except ValueError as e:
        # a numeric setting that does not parse
        print(f"[error] Could not load configuration: {e}", file=sys.stderr)
        record_failure(e, ErrorStage.LOAD_CONFIG, args.url or DEFAULT_TARGET_URL,
                       component=ErrorComponent.CONFIG, error_type=ErrorType.CONFIG_ERROR)
        return EXIT_FAILED

    try:
        config.validate()
    except ValueError as e:
        print(f"[error] {e}", file=sys.stderr)
        record_failure(e, ErrorStage.VALIDATE_CONFIG, config.target_url,
                       component=ErrorComponent.CONFIG, error_type=ErrorType.CONFIG_ERROR)
        return EXIT_FAILED

    init_harvest_logging(verbose=args.verbose or config.log_level.upper() == "DEBUG", log_dir=config.log_dir)
    logger.debug(f"Running with {config!r}")

    try:
        payload = asyncio.run(run_harvest(config))
    except KeyboardInterrupt:
        logger.warning("Interrupted - stopping harvest.")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.critical(f"Uncaught error during harvest: {e}", exc_info=True)
        payload = HarvestPayload.failure(config.target_url, str(e) or type(e).__name__)

    try:
        path = write_payload(payload, config.out_file)
    except OSError as e:
        logger.error(f"Could not write {config.out_file}: {e}")
        record_failure(e, ErrorStage.WRITE_OUTPUT, config.target_url,
                       component=ErrorComponent.OUTPUT, error_type=ErrorType.FILE_ERROR)
        return EXIT_FAILED

    if payload.ok:
        logger.info(f"Wrote {payload.count} items to {path}")
        return EXIT_OK

    logger.error(f"Harvest failed: {payload.error} (payload written to {path})")
    return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
