# ingestion/jobs/predict_pairs.py
import argparse
import asyncio
import logging
from typing import List, Optional, Sequence

from app.application.predict_use_case import InteractionPredictor, all_pairs
from app.domain.errors import ConfigError, StoreUnavailable
from app.domain.models import Product, ProductResolution, SubstanceDescriptor
from app.domain.ports import CatalogRepoPort, InteractionRepoPort
from app.infra.llm.openai_adapter import OpenAILlm
from app.infra.rate_limit import RateLimiter
from app.services.prompt_service import PromptService
from ingestion.jobs.common import job_settings, open_repos
from ingestion.store import LoadStats

log = logging.getLogger("aimed.ingest")


def _descriptor(p: Product) -> SubstanceDescriptor:
    return SubstanceDescriptor.from_resolution(ProductResolution(input=p.name, product=p))


async def run_predictions(
    catalog: CatalogRepoPort,
    interactions: InteractionRepoPort,
    predictor: InteractionPredictor,
    *,
    ids: Optional[Sequence[int]] = None,
    limit: Optional[int] = None,
) -> LoadStats:
    """Predict every uncovered pair among the chosen products and store the hits."""
    if ids:
        products: List[Product] = await catalog.get_products_by_ids(ids)
    else:
        products = await catalog.list_products(limit)

    stats = LoadStats()
    for a, b in all_pairs([_descriptor(p) for p in products]):
        if await interactions.exists(a.product_id, b.product_id):
            stats.skipped += 1
            continue
        row = await predictor.predict_pair(a, b)
        if row is None:
            continue
        if row.id is None:
            # predicted but not stored
            stats.errors += 1
            continue
        stats.loaded += 1
        log.info("stored %s: %s / %s", row.severity.value, a.name, b.name)
    return stats


async def main() -> int:
    parser = argparse.ArgumentParser(description="Predict and store interactions for catalog pairs with no stored row")
    parser.add_argument("--ids", type=int, nargs="*", default=None, help="Product ids to pair up")
    parser.add_argument("--limit", type=int, default=20, help="First N catalog products when --ids is absent")
    args = parser.parse_args()

    settings = job_settings()
    try:
        settings.require("llm_api_key")
    except ConfigError as e:
        log.error("%s", e)
        return 2

    try:
        catalog, interactions = await open_repos(settings)
        predictor = InteractionPredictor(
            OpenAILlm(settings),
            PromptService(settings.prompt_path),
            interactions,
            limiter=RateLimiter(settings.predict_min_interval),
            reasoning_marker=settings.reasoning_marker,
            persist=True,
        )
        stats = await run_predictions(catalog, interactions, predictor, ids=args.ids, limit=args.limit)
    except StoreUnavailable:
        log.error("MongoDB unavailable at %s", settings.mongo_uri)
        return 1

    log.info("prediction run finished: %s", stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
