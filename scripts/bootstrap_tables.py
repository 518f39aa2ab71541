#!/usr/bin/env python3
"""Create the slots, bookings and conversation_states tables for DATABASE_URL."""

from __future__ import annotations

import argparse
import sys

from wa_gateway.database import build_engine, init_db
from wa_gateway.logging_config import logger


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create the gateway tables")
    parser.add_argument("--database-url", default=None, help="Database URL (default: DATABASE_URL from the environment)")
    args = parser.parse_args(argv)

    engine = build_engine(args.database_url)
    init_db(engine)
    logger.info("tables_created", url=str(engine.url))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
