"""Runs a Socket Mode session with repository-relative imports."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a Socket Mode client session.")
    parser.add_argument(
        "--handler",
        default=None,
        help="Event handler as 'module:attribute' (defaults to ack-only).",
    )
    parser.add_argument(
        "--debug-reconnects",
        action="store_true",
        help="Request short-lived connections to exercise reconnects (overrides settings/env).",
    )
    parser.add_argument(
        "--log-level",
        choices=["critical", "error", "warning", "info", "debug"],
        default=None,
        help="Log level (overrides settings/env).",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))

    # Lazy import after adjusting sys.path
    from socketmode.bootstrap import DEFAULT_HANDLER, load_handler, run  # type: ignore
    from socketmode.config import get_settings  # type: ignore

    settings = get_settings()
    overrides = {}
    if args.debug_reconnects:
        overrides["debug_reconnects"] = True
    if args.log_level:
        overrides["log_level"] = args.log_level.upper()
    if overrides:
        settings = settings.model_copy(update=overrides)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    handler = load_handler(args.handler or DEFAULT_HANDLER)
    return run(handler, settings=settings)


if __name__ == "__main__":
    raise SystemExit(main())
