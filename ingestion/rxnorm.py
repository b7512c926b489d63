# ingestion/rxnorm.py
"""RxNav REST: name → RxCUI → interaction pairs."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from ingestion.backfill import Partner
from ingestion.http_client import fetch_json

RXNAV_URL = "https://rxnav.nlm.nih.gov/REST"
ITEM_DELAY = 0.2


async def find_rxcui(c: httpx.AsyncClient, name: str) -> Optional[str]:
    data = await fetch_json(c, f"{RXNAV_URL}/rxcui.json", params={"name": name, "search": 2})
    ids = ((data or {}).get("idGroup") or {}).get("rxnormId") or []
    return str(ids[0]) if ids else None


def parse_interactions(data: Dict[str, Any]) -> List[Partner]:
    """interactionTypeGroup[].interactionType[].interactionPair[] → (counterpart, description)."""
    out: List[Partner] = []
    for group in (data or {}).get("interactionTypeGroup") or []:
        for itype in group.get("interactionType") or []:
            for pair in itype.get("interactionPair") or []:
                concepts = pair.get("interactionConcept") or []
                if len(concepts) < 2:
                    continue
                other = ((concepts[1].get("minConceptItem") or {}).get("name")
                         or (concepts[1].get("sourceConceptItem") or {}).get("name")
                         or concepts[1].get("name"))
                if other:
                    out.append((str(other), str(pair.get("description") or "")))
    return out


async def fetch_partners(c: httpx.AsyncClient, rxcui: str) -> List[Partner]:
    data = await fetch_json(c, f"{RXNAV_URL}/interaction/interaction.json", params={"rxcui": rxcui})
    return parse_interactions(data)
