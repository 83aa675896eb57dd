#!/usr/bin/env python3
"""
cli to harvest hemi stake and unstake operations from the staking subgraph into csv
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from stake_harvester.config import REQUEST_DELAY_SECONDS, get_config
from stake_harvester.errors import ConfigurationError
from stake_harvester.exporter import OperationCSVExporter, default_output_path
from stake_harvester.harvest import StreamResult, exit_code, harvest, resume_block
from stake_harvester.tokens import TokenRegistry

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export stake and unstake operations from the Hemi staking subgraph to CSV.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=(
            "Examples:\n"
            "  Full mainnet export:\n"
            "    python stake_fetcher.py --key <api key>\n\n"
            "  Resume testnet export from a block:\n"
            "    python stake_fetcher.py --key <api key> --chain testnet --from 1200000\n"
        ),
    )
    parser.add_argument("--key", default=None,
                        help="The Graph gateway api key (defaults to SUBGRAPH_API_KEY)")
    parser.add_argument("--from", dest="from_block", type=int, default=0,
                        help="First block to include (default: 0)")
    parser.add_argument("--chain", default="mainnet",
                        help="'mainnet' or anything else for testnet (default: mainnet)")
    parser.add_argument("--output-dir", default=".",
                        help="Directory for the csv output (default: current directory)")
    parser.add_argument("--delay", type=float, default=REQUEST_DELAY_SECONDS,
                        help=f"Minimum seconds per request (default: {REQUEST_DELAY_SECONDS})")
    parser.add_argument("--token-list", default=None,
                        help="Token list json file or url used for symbol/decimals (default: bundled list)")
    parser.add_argument("--parquet", action="store_true",
                        help="Also write a parquet copy of the csv when done")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose logging (DEBUG)")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Reduce logging output (ERROR)")
    return parser


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """configure logging output"""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def print_summary(results: Sequence[StreamResult], elapsed: float, from_block: int = 0) -> None:
    print(f"\n[final summary] stake operations ({elapsed:.1f}s)")
    print("=" * 60)
    for r in results:
        if r.ok:
            status = "ok"
        elif r.cancelled:
            status = "cancelled"
        else:
            status = f"failed: {r.error}"
        print(f"{r.stream:<8} pages={r.pages:<6} rows={r.rows:<8} {status}")
    resume = resume_block(results, from_block)
    if resume is not None:
        print(f"re-run with --from {resume}")
    print("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    try:
        config = get_config(args.key, args.chain, request_delay=args.delay)
    except ConfigurationError as e:
        parser.error(str(e))

    registry = TokenRegistry.load(args.token_list)
    started_at = datetime.now(timezone.utc)
    exporter = OperationCSVExporter(
        default_output_path(started_at, args.output_dir))

    logger.info("Starting to collect stake information...")
    logger.info(
        f"network={config.network} chain_id={config.chain_id} from_block={args.from_block}")
    start = time.time()
    results = asyncio.run(
        harvest(config, exporter, registry, from_block=args.from_block))
    print_summary(results, time.time() - start, args.from_block)

    code = exit_code(results)
    if code != 0:
        logger.error(f"Harvest failed; partial output kept in {exporter.output_path}")
        return code

    logger.info(f"All stake information saved to {exporter.output_path}")
    if args.parquet:
        exporter.export_to_parquet()
    return 0


if __name__ == "__main__":
    sys.exit(main())
