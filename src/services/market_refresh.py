"""Periodic sweep over stale price cache entries.

The scheduler in ``src/main.py`` calls ``run_refresh_job`` on an interval; the
sweep itself never raises for a single bad key.
"""

import logging
from dataclasses import dataclass

from src.crud import ReadData
from src.db import transaction
from src.errors import StoreUnavailable
from src.services.price_cache import PriceResolver

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


@dataclass
class RefreshReport:
    selected: int = 0
    succeeded: int = 0
    failed: int = 0


async def refresh_stale_batch(resolver: PriceResolver, limit: int = DEFAULT_BATCH_SIZE) -> RefreshReport:
    """Refresh up to ``limit`` cache entries older than the resolver TTL, oldest first

    A key whose market lookup fails still gets its fallback price stored, but is
    counted as failed. A key that cannot be stored is logged and counted as failed.

    Args:
        resolver (PriceResolver): Resolver whose cache and source are used
        limit (int, optional): Maximum number of keys. Defaults to 100.

    Raises:
        StoreUnavailable: The stale set could not be read

    Returns:
        RefreshReport: Selected, succeeded and failed counts
    """
    cutoff = resolver.clock() - resolver.ttl
    async with transaction(resolver.session_factory) as session:
        keys = await ReadData.read_stale_price_keys(cutoff, limit, session)

    report = RefreshReport(selected=len(keys))
    for key in keys:
        try:
            _, from_market = await resolver.refresh(key)
        except Exception as e:
            logger.error(f"Refreshing {key} failed: {e}")
            report.failed += 1
            continue
        if from_market:
            report.succeeded += 1
        else:
            report.failed += 1
    return report


async def run_refresh_job(resolver: PriceResolver, limit: int = DEFAULT_BATCH_SIZE) -> None:
    """Scheduler entry point: one sweep, outcome logged, store outages left to the next tick."""
    try:
        report = await refresh_stale_batch(resolver, limit)
    except StoreUnavailable as e:
        logger.error(f"Market refresh skipped, store unavailable: {e}")
        return
    logger.info(
        f"Market refresh: selected={report.selected} succeeded={report.succeeded} failed={report.failed}"
    )
