#!/usr/bin/env python3
"""
Crypto Risk Guard - Comprehensive Crypto Risk Assessment

Pipeline:
  identifier -> [Chain | Sentiment | Market | DEX] (parallel) -> Aggregation -> Report

Usage:
  python3 riskguard.py 0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984   # token address
  python3 riskguard.py uni --json                                   # JSON output
  python3 riskguard.py "pepe" --categories market,dex --timeout 15
  python3 riskguard.py eth --output data/reports                    # also save JSON
"""
import argparse
import logging
import sys

import config
from errors import RiskGuardError
from orchestrator import RiskAssessor
from report import JsonFileSink, LogSink, StreamSink
from utils import get_logger, setup_logging

log = get_logger("riskguard")


def parse_categories(value: str) -> tuple:
    categories = tuple(c.strip().lower() for c in value.split(",") if c.strip())
    unknown = [c for c in categories if c not in config.CATEGORY_WEIGHTS]
    if unknown or not categories:
        raise argparse.ArgumentTypeError(
            f"unknown categories: {', '.join(unknown) or value!r} "
            f"(choose from {', '.join(config.CATEGORY_WEIGHTS)})")
    return categories


def build_assessor(args) -> RiskAssessor:
    sinks = [LogSink() if args.verbose else None,
             StreamSink(as_json=args.json),
             JsonFileSink(args.output) if args.output else None]
    settings = config.AssessorConfig(
        categories=args.categories,
        branch_timeout=args.timeout,
    )
    return RiskAssessor(
        provider_config=config.ProviderConfig.from_env(),
        assessor_config=settings,
        sinks=[s for s in sinks if s is not None],
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Crypto Risk Guard - multi-source crypto risk assessment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Setup (each key enables one data source; missing ones are reported as absent):
  export ETHERSCAN_API_KEY="your_key"      # contract verification, age, transactions
  export CHAINBASE_API_KEY="your_key"      # top holder distribution
  export COINGECKO_API_KEY="your_key"      # optional, raises CoinGecko limits
  export TWITTER_BEARER_TOKEN="your_token" # social sentiment
Keys can also be placed in a .env file next to this script.
        """,
    )
    parser.add_argument("identifier", nargs="+",
                        help="Token address, symbol or project name (free text is accepted)")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of markdown")
    parser.add_argument("--output", metavar="DIR",
                        help="Also save the assessment as JSON under DIR")
    parser.add_argument("--categories", type=parse_categories,
                        default=tuple(config.CATEGORY_WEIGHTS),
                        help="Comma-separated subset of chain,sentiment,market,dex")
    parser.add_argument("--timeout", type=float, default=config.ASSESS_BRANCH_TIMEOUT,
                        help=f"Per-category timeout in seconds (default: {config.ASSESS_BRANCH_TIMEOUT})")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        assessor = build_assessor(args)
        assessor.assess(" ".join(args.identifier))
    except (RiskGuardError, ValueError) as e:
        log.error(f"Assessment failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
