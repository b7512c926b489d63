# ingestion/seed.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import ValidationError

from app.application.resolve_use_case import CatalogResolver
from app.domain.errors import DuplicateRecord, StoreUnavailable
from app.domain.models import Interaction, NewProduct
from app.domain.ports import CatalogRepoPort, InteractionRepoPort
from app.domain.severity import Severity, to_severity
from ingestion.store import LoadStats

log = logging.getLogger("aimed.ingest.seed")

SEED_DIR = Path(__file__).resolve().parent.parent / "config" / "seeds"


def load_yaml(path: Path, key: str) -> List[Dict[str, Any]]:
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    return list(data.get(key) or [])


async def seed_products(catalog: CatalogRepoPort, entries: List[Dict[str, Any]]) -> LoadStats:
    stats = LoadStats()
    for entry in entries:
        try:
            item = NewProduct.model_validate(entry)
        except ValidationError:
            log.warning("bad product entry: %r", entry.get("name"))
            stats.errors += 1
            continue
        try:
            if await catalog.product_exists(item.name):
                stats.skipped += 1
                continue
            await catalog.insert_product(item)
            stats.loaded += 1
        except DuplicateRecord:
            stats.skipped += 1
        except StoreUnavailable:
            stats.errors += 1
    return stats


async def seed_interactions(
    catalog: CatalogRepoPort,
    interactions: InteractionRepoPort,
    entries: List[Dict[str, Any]],
) -> LoadStats:
    resolver = CatalogResolver(catalog)
    stats = LoadStats()
    for entry in entries:
        try:
            a = await resolver.find_product(str(entry.get("a") or ""))
            b = await resolver.find_product(str(entry.get("b") or ""))
            if a is None or b is None or a.id == b.id:
                log.warning("seed pair %r / %r does not resolve to two products", entry.get("a"), entry.get("b"))
                stats.skipped += 1
                continue
            if await interactions.exists(a.id, b.id):
                stats.skipped += 1
                continue
            label = str(entry.get("severity") or "")
            await interactions.insert(Interaction(
                product_id_1=a.id,
                product_id_2=b.id,
                description=entry.get("description") or "",
                severity=to_severity(label) or Severity.MODERATE,
                source_severity=label or None,
                notes=entry.get("notes"),
                evidence_level="curated",
                sources=list(entry.get("sources") or []),
            ))
            stats.loaded += 1
        except DuplicateRecord:
            stats.skipped += 1
        except StoreUnavailable:
            stats.errors += 1
    return stats
