# ingestion/jobs/seed.py
import argparse
import asyncio
import logging
from pathlib import Path

from app.domain.errors import StoreUnavailable
from ingestion.jobs.common import job_settings, open_repos
from ingestion.seed import SEED_DIR, load_yaml, seed_interactions, seed_products

log = logging.getLogger("aimed.ingest")


async def main() -> int:
    parser = argparse.ArgumentParser(description="Load starter products and curated interactions")
    parser.add_argument("--products", type=str, default=str(SEED_DIR / "starter_products.yaml"))
    parser.add_argument("--interactions", type=str, default=str(SEED_DIR / "seed_interactions.yaml"))
    parser.add_argument("--skip-interactions", action="store_true")
    args = parser.parse_args()

    settings = job_settings()
    try:
        catalog, interactions = await open_repos(settings)
        p_stats = await seed_products(catalog, load_yaml(Path(args.products), "products"))
        log.info("products: %s", p_stats)
        if not args.skip_interactions:
            i_stats = await seed_interactions(catalog, interactions, load_yaml(Path(args.interactions), "interactions"))
            log.info("interactions: %s", i_stats)
    except StoreUnavailable:
        log.error("MongoDB unavailable at %s", settings.mongo_uri)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
