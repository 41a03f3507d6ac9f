#!/usr/bin/env python3
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from order_confirm.core.config import MessagingSettings  # noqa: E402
from order_confirm.core.database import SessionLocal  # noqa: E402
from order_confirm.core.logging_setup import configure_logging  # noqa: E402
from order_confirm.services.order_confirm_sweep import (  # noqa: E402
    SWEEP_CONFIG_ERROR,
    run_order_confirm_sweep,
)

logger = logging.getLogger("order_confirm.scripts.sweep")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one WhatsApp order confirmation sweep.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build and log messages without calling the provider (overrides DRY_RUN)",
    )
    parser.add_argument("--limit", type=int, help="Max orders for this run (overrides SWEEP_BATCH_LIMIT)")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    configure_logging()

    settings = MessagingSettings.from_env()
    overrides = {}
    if args.dry_run:
        overrides["dry_run"] = True
    if args.limit:
        overrides["batch_limit"] = max(args.limit, 1)
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    db = SessionLocal()
    try:
        summary = run_order_confirm_sweep(db, settings)
    except Exception:
        logger.exception("order confirmation sweep crashed")
        return 1
    finally:
        db.close()

    print(json.dumps(summary.as_dict(), ensure_ascii=False))
    return 1 if summary.status == SWEEP_CONFIG_ERROR else 0


if __name__ == "__main__":
    raise SystemExit(main())
