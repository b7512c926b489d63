# app/application/resolve_use_case.py
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

from app.domain.models import IngredientResolution, Product, ProductResolution
from app.domain.normalizer import normalize_name
from app.domain.ports import CatalogRepoPort

logger = logging.getLogger("aimed.resolve")


class CatalogResolver:
    """
    Map free-text inputs to catalog products, or to bare ingredient names.

    Tiers, first hit wins (ties inside a tier go to the lowest name):
      1. exact name, case-insensitive
      2. exact normalized name
      3. normalized prefix
      4. normalized substring
    StoreUnavailable from the repo propagates; nothing else raises.
    """

    def __init__(self, catalog: CatalogRepoPort):
        self.catalog = catalog

    async def find_product(self, text: str) -> Optional[Product]:
        raw = (text or "").strip()
        key = normalize_name(raw)
        if not key:
            return None
        for mode, value in (("name", raw), ("key", key), ("prefix", key), ("contains", key)):
            hit = await self.catalog.match_product(value, mode)
            if hit is not None:
                logger.debug("resolved %r via %s -> #%s", raw, mode, hit.id)
                return hit
        return None

    async def resolve_one(self, text: str) -> Optional[Union[ProductResolution, IngredientResolution]]:
        raw = (text or "").strip()
        if not raw or not normalize_name(raw):
            return None
        product = await self.find_product(raw)
        if product is not None:
            return ProductResolution(
                input=raw,
                product=product,
                derived_ingredients=list(product.active_ingredients),
            )
        return IngredientResolution(input=raw, name=raw)

    async def resolve(self, items: Sequence[str]) -> List[Union[ProductResolution, IngredientResolution]]:
        out: List[Union[ProductResolution, IngredientResolution]] = []
        for item in items or []:
            r = await self.resolve_one(str(item) if item is not None else "")
            if r is not None:
                out.append(r)
        return out
