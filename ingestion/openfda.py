# ingestion/openfda.py
"""OpenFDA drug labels (https://open.fda.gov/apis/drug/label/) → medicine products."""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import httpx

from app.domain.models import NewProduct
from ingestion.http_client import fetch_json

OPENFDA_URL = "https://api.fda.gov/drug/label.json"
PAGE_SIZE = 100
MAX_PAGES = 50          # 5,000 labels
ITEM_DELAY = 0.05       # 240 requests/minute budget

MAX_INGREDIENTS = 10
MAX_BRANDS = 5

_LEADING_TEXT = re.compile(r"^([^0-9]+)")


def _first(values: Any) -> Optional[str]:
    if isinstance(values, list) and values:
        s = str(values[0]).strip()
        return s or None
    return None


def _strings(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]


def parse_drug(drug: Dict[str, Any]) -> Optional[NewProduct]:
    """One label record → NewProduct, or None when it has no usable name."""
    if not isinstance(drug, dict):
        return None
    fda = drug.get("openfda")
    if not isinstance(fda, dict):
        fda = {}

    ingredients: List[str] = []
    for ing in _strings(drug.get("active_ingredient")):
        m = _LEADING_TEXT.match(ing)
        if m and m.group(1).strip():
            ingredients.append(m.group(1).strip())
    ingredients.extend(_strings(fda.get("substance_name"))[:5])

    brands = _strings(fda.get("brand_name"))[:MAX_BRANDS]
    generic = _first(fda.get("generic_name"))
    name = (brands[0] if brands else None) or generic or _first(fda.get("product_ndc"))
    if not name:
        return None

    return NewProduct(
        name=name,
        kind="medicine",
        generic_name=generic,
        brand_names=brands,
        dosage_form=_first(fda.get("dosage_form")),
        description=name,
        active_ingredients=list(dict.fromkeys(ingredients))[:MAX_INGREDIENTS],
        market_status="Active",
    )


async def fetch_page(c: httpx.AsyncClient, page: int, page_size: int = PAGE_SIZE) -> List[Dict[str, Any]]:
    try:
        data = await fetch_json(c, OPENFDA_URL, params={"skip": page * page_size, "limit": page_size})
    except httpx.HTTPStatusError as e:
        # OpenFDA answers 404 once skip runs past the last result
        if e.response.status_code == 404:
            return []
        raise
    return list(data.get("results") or [])
