"""
Remote no-show expiry job - Cron entry point.

Usage:
    # Run via cron (e.g., every minute):
    * * * * * cd /app && python -m tablequeue.jobs.expire_overdue

    # Or run directly:
    python -m tablequeue.jobs.expire_overdue

    # With specific restaurant:
    python -m tablequeue.jobs.expire_overdue --restaurant-id <uuid>

    # As a long-running worker instead of cron:
    python -m tablequeue.jobs.expire_overdue --loop
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from typing import Optional
from uuid import UUID

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("expire-overdue")


async def run_expiry_sweep(restaurant_id: Optional[UUID] = None) -> dict:
    """
    Cancel overdue remote entries for one restaurant or all of them.

    A failure at one restaurant is logged and does not stop the sweep.

    Args:
        restaurant_id: Specific restaurant, or None for all

    Returns:
        Dict with job results
    """
    from tablequeue.database import get_session_context
    from tablequeue.services.queue_manager import QueueManager
    from tablequeue.services.remote_checkin import RemoteCheckinHandler

    started = time.monotonic()
    cancelled = 0
    processed = 0
    errors = []

    async with get_session_context() as session:
        handler = RemoteCheckinHandler(QueueManager(session))

        if restaurant_id is not None:
            restaurant_ids = [restaurant_id]
        else:
            restaurant_ids = await handler.store.get_all_restaurant_ids()

        for rid in restaurant_ids:
            try:
                cancelled += await handler.expire_overdue(rid)
                processed += 1
            except Exception as e:
                logger.error("Error expiring entries for restaurant %s: %s", rid, e)
                errors.append(f"{rid}: {e}")

    return {
        "success": not errors,
        "restaurants_processed": processed,
        "entries_cancelled": cancelled,
        "errors": errors,
        "duration_seconds": time.monotonic() - started,
    }


async def run_forever(restaurant_id: Optional[UUID], interval_seconds: int) -> None:
    while True:
        result = await run_expiry_sweep(restaurant_id)
        if result["entries_cancelled"] or result["errors"]:
            logger.info("Sweep result: %s", result)
        await asyncio.sleep(interval_seconds)


def main():
    """CLI entry point."""
    from tablequeue.config import get_settings

    parser = argparse.ArgumentParser(
        description="Cancel remote waitlist entries past their arrival grace window"
    )
    parser.add_argument(
        "--restaurant-id",
        type=str,
        default=None,
        help="Specific restaurant UUID (default: all restaurants)",
    )
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Keep running, sweeping every --interval seconds",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=get_settings().expire_interval_seconds,
        help="Seconds between sweeps in --loop mode",
    )

    args = parser.parse_args()

    # Parse restaurant ID
    restaurant_id = None
    if args.restaurant_id:
        try:
            restaurant_id = UUID(args.restaurant_id)
        except ValueError:
            logger.error(f"Invalid restaurant ID: {args.restaurant_id}")
            sys.exit(1)

    if args.loop:
        try:
            asyncio.run(run_forever(restaurant_id, args.interval))
        except KeyboardInterrupt:
            logger.info("Expiry worker stopped")
        sys.exit(0)

    result = asyncio.run(run_expiry_sweep(restaurant_id))

    # Log results
    if result["success"]:
        logger.info(
            f"Job completed successfully: "
            f"{result['restaurants_processed']} restaurants, "
            f"{result['entries_cancelled']} entries cancelled, "
            f"{result['duration_seconds']:.1f}s"
        )
        sys.exit(0)
    else:
        logger.error(f"Job failed with errors: {result['errors']}")
        sys.exit(1)


if __name__ == "__main__":
    main()
