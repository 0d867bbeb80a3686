"""
Resolver command line entrypoint.

    python -m resolver.main "Real Madrid squad" [--bust-cache] [--verbose] [--valid-only]

Prints the resolution result as camelCase JSON on stdout; logs go to stderr.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Optional, Sequence

from shared.config import get_settings
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from resolver.config import get_resolver_settings
from resolver.engine import build_engine
from resolver.validation import filter_valid_players, needs_verification

logger = get_logger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="resolver", description="Resolve a football team or player from multiple sources."
    )
    parser.add_argument("query", nargs="+", help="team, player or free-form question")
    parser.add_argument("--bust-cache", action="store_true", help="ignore cached data for this query")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    parser.add_argument(
        "--valid-only", action="store_true", help="drop players scoring below FA_RESOLVER_MIN_PLAYER_SCORE"
    )
    parser.add_argument("--metrics", action="store_true", help="expose Prometheus metrics while running")
    parser.add_argument("--indent", type=int, default=2, help="JSON indent (0 for compact)")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    resolver_settings = get_resolver_settings()
    if args.metrics and settings.metrics_enabled:
        start_metrics_server(settings.metrics_port)

    query = " ".join(args.query)
    async with build_engine(settings, resolver_settings) as engine:
        result = await engine.resolve(query, bust_cache=args.bust_cache)

    if args.valid_only and result.players:
        kept = filter_valid_players(result.players, min_score=resolver_settings.min_player_score)
        logger.info("players_filtered", kept=len(kept), dropped=len(result.players) - len(kept))
        result = result.model_copy(update={"players": kept})

    payload = result.to_wire()
    payload["needsVerification"] = needs_verification(result)
    print(json.dumps(payload, ensure_ascii=False, indent=args.indent or None))
    return 1 if result.failed else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging("resolver", level="DEBUG" if args.verbose else None)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("resolver_interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
