# ingestion/jobs/backfill_interactions.py
import argparse
import asyncio
import logging
from pathlib import Path

import httpx

from app.application.resolve_use_case import CatalogResolver
from app.domain.errors import StoreUnavailable
from ingestion import drugbank, rxnorm
from ingestion.backfill import backfill_product
from ingestion.http_client import client
from ingestion.jobs.common import job_settings, open_repos
from ingestion.store import LoadStats

log = logging.getLogger("aimed.ingest")

PROGRESS_EVERY = 100  # products / drugs


async def run_rxnorm(catalog, interactions, *, limit=None, delay=rxnorm.ITEM_DELAY, transport=None) -> LoadStats:
    resolver = CatalogResolver(catalog)
    stats = LoadStats()
    products = await catalog.list_products(limit)
    async with client(transport) as c:
        for i, product in enumerate(products, 1):
            try:
                rxcui = await rxnorm.find_rxcui(c, product.generic_name or product.name)
                if rxcui is None:
                    stats.skipped += 1
                    continue
                partners = await rxnorm.fetch_partners(c, rxcui)
            except (httpx.HTTPError, ValueError) as e:
                log.warning("rxnav failed for %r: %s", product.name, e.__class__.__name__)
                stats.errors += 1
                continue
            finally:
                if delay > 0:
                    await asyncio.sleep(delay)
            stats.merge(await backfill_product(product, partners, resolver, interactions, "RxNorm"))
            if i % PROGRESS_EVERY == 0:
                log.info("rxnorm: %d/%d products, %s", i, len(products), stats)
    return stats


async def run_drugbank(catalog, interactions, path: Path) -> LoadStats:
    resolver = CatalogResolver(catalog)
    stats = LoadStats()
    matched = 0
    for i, (name, partners) in enumerate(drugbank.iter_drugs(path), 1):
        try:
            product = await resolver.find_product(name)
        except StoreUnavailable:
            stats.errors += 1
            continue
        if product is None:
            stats.skipped += 1
            continue
        matched += 1
        stats.merge(await backfill_product(product, partners, resolver, interactions, "DrugBank"))
        if i % PROGRESS_EVERY == 0:
            log.info("drugbank: %d drugs read, %d matched, %s", i, matched, stats)
    return stats


async def main() -> int:
    parser = argparse.ArgumentParser(description="Backfill pairwise interactions from RxNav or a DrugBank XML file")
    parser.add_argument("--source", choices=["rxnorm", "drugbank"], default="rxnorm")
    parser.add_argument("--file", type=str, default=None, help="DrugBank XML path (for --source drugbank)")
    parser.add_argument("--limit", type=int, default=None, help="Only the first N products (rxnorm)")
    args = parser.parse_args()

    settings = job_settings()
    if args.source == "drugbank" and (not args.file or not Path(args.file).is_file()):
        log.error("--file must point to a DrugBank XML file")
        return 2

    try:
        catalog, interactions = await open_repos(settings)
        if args.source == "rxnorm":
            stats = await run_rxnorm(catalog, interactions, limit=args.limit)
        else:
            stats = await run_drugbank(catalog, interactions, Path(args.file))
    except StoreUnavailable:
        log.error("MongoDB unavailable at %s", settings.mongo_uri)
        return 1

    log.info("%s backfill finished: %s", args.source, stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
