"""
Run one retention sweep: delete complaints resolved longer ago than
RESOLVED_RETENTION_DAYS, together with their message threads.

Usage (e.g. from cron):
    python scripts/cleanup_resolved_complaints.py
"""
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.config import settings
from app.core.exceptions import StoreError
from app.services.retention_sweeper import run_sweep_once


async def main() -> int:
    try:
        result = await run_sweep_once()
    except StoreError as e:
        print(f"❌ {e.message}")
        return 1
    print(
        f"✅ Removed {result.deleted_complaints} complaints and "
        f"{result.deleted_messages} messages resolved before {result.cutoff:%Y-%m-%d %H:%M}"
    )
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    sys.exit(asyncio.run(main()))
