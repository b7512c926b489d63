# ingestion/backfill.py
from __future__ import annotations

import logging
from typing import Iterable, Tuple

from app.application.resolve_use_case import CatalogResolver
from app.domain.errors import DuplicateRecord, StoreUnavailable
from app.domain.models import Interaction, Product
from app.domain.ports import InteractionRepoPort
from app.domain.severity import classify_description
from ingestion.store import LoadStats

log = logging.getLogger("aimed.ingest.backfill")

Partner = Tuple[str, str]  # (counterpart name, free-text description)


async def backfill_product(
    product: Product,
    partners: Iterable[Partner],
    resolver: CatalogResolver,
    interactions: InteractionRepoPort,
    source: str,
) -> LoadStats:
    """Store one row per partner that resolves to another catalog product."""
    stats = LoadStats()
    for name, description in partners:
        try:
            other = await resolver.find_product(name)
            if other is None or other.id == product.id:
                stats.skipped += 1
                continue
            if await interactions.exists(product.id, other.id):
                stats.skipped += 1
                continue
            text = description or name
            await interactions.insert(Interaction(
                product_id_1=product.id,
                product_id_2=other.id,
                description=text,
                severity=classify_description(text),
                notes=f"From {source}",
                sources=[source],
            ).canonical())
            stats.loaded += 1
        except DuplicateRecord:
            stats.skipped += 1
        except StoreUnavailable:
            stats.errors += 1
    return stats
