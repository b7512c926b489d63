# ingestion/dsld_api.py
"""NIH DSLD label API (v9) → supplement products."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from app.domain.models import NewProduct
from ingestion.http_client import fetch_json

DSLD_API_URL = "https://dsld-api.app.cloud.gov/api/v9"
PAGE_SIZE = 100
MAX_PAGES = 50
ITEM_DELAY = 0.1


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_label(label: Dict[str, Any]) -> Optional[NewProduct]:
    if not isinstance(label, dict):
        return None
    title = _text(label.get("productName"))
    if not title:
        return None
    rows = label.get("ingredientRows")
    ingredients = [
        str(row["name"]).strip()
        for row in (rows if isinstance(rows, list) else [])
        if isinstance(row, dict) and row.get("name")
    ]
    brand = _text(label.get("brandName"))
    dsld_id = label.get("dsldId") or label.get("id")
    return NewProduct(
        name=title.lower(),
        kind="supplement",
        brand_names=[brand] if brand else [],
        dosage_form=_text(label.get("supplementForm")) or _text(label.get("productForm")),
        description=title,
        active_ingredients=list(dict.fromkeys(ingredients)),
        market_status=_text(label.get("marketStatus")) or "Unknown",
        dsld_id=int(dsld_id) if dsld_id is not None else None,
    )


async def fetch_page(c: httpx.AsyncClient, page: int, page_size: int = PAGE_SIZE) -> List[Dict[str, Any]]:
    params = {"method": "by_keyword", "q": "*", "size": page_size, "from": page * page_size}
    data = await fetch_json(c, f"{DSLD_API_URL}/browse-products/", params=params)
    return list(data.get("results") or data.get("hits") or [])


async def load_label(c: httpx.AsyncClient, hit: Dict[str, Any]) -> Optional[NewProduct]:
    dsld_id = hit.get("dsldId") or hit.get("id") or (hit.get("_source") or {}).get("dsldId")
    if dsld_id is None:
        return None
    label = await fetch_json(c, f"{DSLD_API_URL}/label/{dsld_id}")
    return parse_label(label) if isinstance(label, dict) else None
