# app/application/lookup_use_case.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from app.domain.errors import LookupFailed, StoreUnavailable
from app.domain.models import Interaction, Product
from app.domain.ports import CatalogRepoPort, InteractionRepoPort

logger = logging.getLogger("aimed.lookup")


class InteractionLookup:
    """Stored pairwise rows among a set of resolved products."""

    def __init__(self, interactions: InteractionRepoPort, catalog: CatalogRepoPort):
        self.interactions = interactions
        self.catalog = catalog

    async def find(self, products: Iterable[Product]) -> List[Interaction]:
        by_id: Dict[int, Product] = {}
        for p in products:
            by_id.setdefault(p.id, p)
        if len(by_id) < 2:
            return []

        try:
            rows = await self.interactions.find_among(sorted(by_id))
            missing = {
                pid for r in rows for pid in (r.product_id_1, r.product_id_2)
                if pid is not None and pid not in by_id
            }
            if missing:
                for p in await self.catalog.get_products_by_ids(sorted(missing)):
                    by_id[p.id] = p
        except StoreUnavailable as e:
            logger.warning("interaction lookup failed for %d products", len(by_id))
            raise LookupFailed("interaction lookup failed") from e

        out: List[Interaction] = []
        for r in rows:
            a, b = by_id.get(r.product_id_1), by_id.get(r.product_id_2)
            out.append(r.model_copy(update={
                "substance_1": a.name if a else r.substance_1,
                "substance_2": b.name if b else r.substance_2,
            }))
        return out
