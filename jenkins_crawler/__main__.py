#!/usr/bin/env python3
"""
Poll a Jenkins Pipeline build until it finishes.

Usage:
    python -m jenkins_crawler <build-url> <build-id> [options]

Examples:
    python -m jenkins_crawler https://ci.example.com/job/app/42/ 42
    python -m jenkins_crawler https://ci.example.com/job/app/42/ 42 --output-dir out --error-policy record
"""

import argparse
import logging
import sys
from typing import List, Optional

from jenkins_crawler.ci_providers.models import ErrorPolicy
from jenkins_crawler.core.logging import setup_logging
from jenkins_crawler.crawler import run_crawl

logger = logging.getLogger("jenkins_crawler")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jenkins-log-crawler",
        description="Poll a Jenkins Pipeline build and snapshot its stage logs",
    )
    parser.add_argument("build_url", help="Build URL, e.g. https://ci/job/app/42/")
    parser.add_argument("build_id", help="Identifier used in the snapshot file name")
    parser.add_argument("--output-dir", help="Directory for out_<build-id>.json")
    parser.add_argument("--interval", type=float, help="Seconds between polls")
    parser.add_argument(
        "--error-policy",
        choices=[p.value for p in ErrorPolicy],
        help="degrade: log failed requests; record: also write them to the snapshot",
    )
    parser.add_argument("--log-format", choices=["text", "json"], help="Log output format")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(log_format=args.log_format, level="DEBUG" if args.verbose else None)

    try:
        snapshot = run_crawl(
            args.build_url,
            args.build_id,
            output_dir=args.output_dir,
            interval=args.interval,
            policy=ErrorPolicy(args.error_policy) if args.error_policy else None,
        )
    except KeyboardInterrupt:
        logger.warning("Interrupted, pending polls cancelled")
        return 130

    logger.info(f"build {snapshot.build_id} finished: {snapshot.status}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
