"""Runs the play-session client against the configured backend."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Validate a play session and stream scores.")
    parser.add_argument("url", nargs="?", help="Page URL carrying the session query parameters.")
    parser.add_argument("--log-level", help="Override the configured log level.")
    args = parser.parse_args()

    from scorestream.bootstrap import serve_forever
    from scorestream.config import get_settings

    settings = get_settings()
    level = (args.log_level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(serve_forever(args.url))


if __name__ == "__main__":
    main()
