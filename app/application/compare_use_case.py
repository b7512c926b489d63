# app/application/compare_use_case.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from app.application.resolve_use_case import CatalogResolver
from app.domain.errors import StoreUnavailable
from app.domain.models import Product
from app.domain.ports import CatalogRepoPort

logger = logging.getLogger("aimed.compare")

NA = "N/A"
MAX_FACT_INGREDIENTS = 10


def _dose(product: Product, facts: List[Dict[str, Any]]) -> str:
    if facts:
        first = facts[0]
        amount = first.get("amount_per_serving")
        if amount not in (None, ""):
            unit = first.get("amount_unit") or ""
            return f"{amount} {unit}".strip()
    return product.strength or NA


class CompareUseCase:
    """Side-by-side detail for two or more named products (read-only)."""

    def __init__(self, resolver: CatalogResolver, catalog: CatalogRepoPort):
        self.resolver = resolver
        self.catalog = catalog

    async def detail(self, product: Product) -> Dict[str, Any]:
        facts: List[Dict[str, Any]] = []
        if product.dsld_id is not None:
            rows = (await self.catalog.get_facts(product.dsld_id)).get("supplement_facts", [])
            facts = sorted(rows, key=lambda r: str(r.get("ingredient") or ""))[:MAX_FACT_INGREDIENTS]
        ingredients = [f["ingredient"] for f in facts if f.get("ingredient")] or list(product.active_ingredients)
        return {
            "id": product.id,
            "name": product.name,
            "kind": product.kind,
            "brand": product.brand_names[0] if product.brand_names else None,
            "generic_name": product.generic_name,
            "dose": _dose(product, facts),
            "form": product.dosage_form or NA,
            "serving_size": product.serving_size or NA,
            "ingredients": ingredients,
            "suggested_use": product.suggested_use or NA,
            "market_status": product.market_status,
        }

    async def run(self, names: Sequence[str]) -> Dict[str, Any]:
        cleaned = [str(n).strip() for n in names or [] if str(n).strip()]
        if len(cleaned) < 2:
            return {"comparison": [], "not_found": [], "error": "at_least_two_products_required"}

        details: List[Dict[str, Any]] = []
        not_found: List[str] = []
        try:
            for name in cleaned:
                product: Optional[Product] = await self.resolver.find_product(name)
                if product is None:
                    not_found.append(name)
                    continue
                details.append(await self.detail(product))
        except StoreUnavailable:
            logger.warning("catalog unavailable; compare aborted")
            return {"comparison": [], "not_found": [], "error": "database_unavailable"}

        return {"comparison": [{"products": details}], "not_found": not_found}
