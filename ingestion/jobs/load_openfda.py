# ingestion/jobs/load_openfda.py
import argparse
import asyncio
import logging

from app.domain.errors import StoreUnavailable
from ingestion import openfda
from ingestion.http_client import client
from ingestion.jobs.common import job_settings, open_repos
from ingestion.paginated import harvest

log = logging.getLogger("aimed.ingest")


async def main() -> int:
    parser = argparse.ArgumentParser(description="Harvest OpenFDA drug labels as medicine products")
    parser.add_argument("--max-pages", type=int, default=openfda.MAX_PAGES, help="Page ceiling (safety valve)")
    parser.add_argument("--page-size", type=int, default=openfda.PAGE_SIZE)
    parser.add_argument("--delay", type=float, default=openfda.ITEM_DELAY, help="Seconds between records")
    args = parser.parse_args()

    settings = job_settings()
    try:
        catalog, _ = await open_repos(settings)
    except StoreUnavailable:
        log.error("MongoDB unavailable at %s", settings.mongo_uri)
        return 1

    async with client() as c:
        async def fetch_page(page: int):
            return await openfda.fetch_page(c, page, args.page_size)

        async def load_item(rec):
            return openfda.parse_drug(rec)

        stats = await harvest(catalog, fetch_page, load_item, max_pages=args.max_pages, item_delay=args.delay)

    log.info("OpenFDA load finished: %s", stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
