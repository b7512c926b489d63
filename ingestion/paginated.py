# ingestion/paginated.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import httpx

from app.domain.errors import DuplicateRecord, StoreUnavailable
from app.domain.models import NewProduct
from app.domain.ports import CatalogRepoPort
from ingestion.store import LoadStats

log = logging.getLogger("aimed.ingest.paged")

FetchPage = Callable[[int], Awaitable[List[Dict[str, Any]]]]
LoadItem = Callable[[Dict[str, Any]], Awaitable[Optional[NewProduct]]]


async def harvest(
    catalog: CatalogRepoPort,
    fetch_page: FetchPage,
    load_item: LoadItem,
    *,
    max_pages: int,
    item_delay: float = 0.0,
) -> LoadStats:
    """
    Page through a remote catalog and insert new products.

    Stops on the first empty page or after `max_pages`. A failed page or item is
    counted as an error and skipped. Names seen earlier in the run are skipped
    before touching storage; the rest are checked for existence, then inserted.
    """
    stats = LoadStats()
    seen: Set[str] = set()

    for page in range(max_pages):
        try:
            records = await fetch_page(page)
        except (httpx.HTTPError, ValueError) as e:
            log.warning("page %d failed: %s", page, e.__class__.__name__)
            stats.errors += 1
            continue
        if not records:
            log.info("page %d empty; end of data", page)
            break

        parsed: List[NewProduct] = []
        for rec in records:
            try:
                item = await load_item(rec)
            except (httpx.HTTPError, AttributeError, KeyError, TypeError, ValueError) as e:
                log.debug("record failed: %s", e)
                item = None
                stats.errors += 1
            else:
                if item is None:
                    stats.skipped += 1
                elif item.name in seen:
                    stats.skipped += 1
                else:
                    seen.add(item.name)
                    parsed.append(item)
            if item_delay > 0:
                await asyncio.sleep(item_delay)

        for item in parsed:
            try:
                if await catalog.product_exists(item.name):
                    stats.skipped += 1
                    continue
                await catalog.insert_product(item)
                stats.loaded += 1
            except DuplicateRecord:
                stats.skipped += 1
            except StoreUnavailable:
                stats.errors += 1

        log.info("page %d: %d records, %s", page, len(records), stats)

    return stats
