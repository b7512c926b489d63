# ingestion/dsld_csv.py
"""
NIH DSLD bulk CSV dump → MongoDB.

The dump is split into numbered files per table (ProductOverview_1.csv,
ProductOverview_2.csv, ...). Each TableSpec maps the CSV headers onto document
fields; rows are streamed with csv.DictReader and written in unordered batches.

  ProductOverview_*        → products (one Product per row, unique by name)
  DietarySupplementFacts_* → supplement_facts, and the ingredient is added to the
                             owning product's active_ingredients
  OtherIngredients_*, LabelStatements_*, CompanyInformation_*
                           → their own collections

Rows in the label tables get a content-hash _id, so a second run over the same
files inserts nothing and only bumps `skipped`.
"""
from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.domain.errors import StoreUnavailable
from app.domain.models import NewProduct
from app.domain.ports import CatalogRepoPort
from ingestion.store import LoadStats, content_id

log = logging.getLogger("aimed.ingest.dsld")

PROGRESS_EVERY = 10  # batches

_COMMON = {"URL": "url", "DSLD ID": "dsld_id", "Product Name": "product_name"}


@dataclass(frozen=True)
class TableSpec:
    name: str
    prefix: str
    mapping: Dict[str, str]


PRODUCTS = TableSpec("products", "ProductOverview_", {
    **_COMMON,
    "Brand Name": "brand_name",
    "Bar Code": "bar_code",
    "Net Contents": "net_contents",
    "Serving Size": "serving_size",
    "Product Type [LanguaL]": "product_type",
    "Supplement Form [LanguaL]": "supplement_form",
    "Date Entered into DSLD": "date_entered",
    "Market Status": "market_status",
    "Suggested Use": "suggested_use",
})

SUPPLEMENT_FACTS = TableSpec("supplement_facts", "DietarySupplementFacts_", {
    **_COMMON,
    "Serving Size": "serving_size",
    "Ingredient": "ingredient",
    "DSLD Ingredient Categories": "ingredient_category",
    "Amount Per Serving": "amount_per_serving",
    "Amount Per Serving Unit": "amount_unit",
    "% Daily Value per Serving": "daily_value",
    "Daily Value Target Group": "daily_value_target_group",
})

OTHER_INGREDIENTS = TableSpec("other_ingredients", "OtherIngredients_", {
    **_COMMON,
    "Other Ingredients": "other_ingredients",
})

LABEL_STATEMENTS = TableSpec("label_statements", "LabelStatements_", {
    **_COMMON,
    "Statement Type": "statement_type",
    "Statement": "statement",
})

COMPANY_INFORMATION = TableSpec("company_information", "CompanyInformation_", {
    **_COMMON,
    "Company Name": "company_name",
    "Address": "address",
    "City": "city",
    "State": "state",
    "ZIP": "zip",
    "Country": "country",
    "Manufacturer": "manufacturer",
    "Distributor": "distributor",
    "Packager": "packager",
    "Reseller": "reseller",
    "Other": "other",
})

# products first so supplement-facts rows find their owner
TABLES: List[TableSpec] = [PRODUCTS, SUPPLEMENT_FACTS, OTHER_INGREDIENTS, LABEL_STATEMENTS, COMPANY_INFORMATION]


# ── row mapping ──────────────────────────────────────────────────
def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _to_int(value: Any) -> Optional[int]:
    s = _clean(value)
    if s is None:
        return None
    try:
        return int(float(s))
    except ValueError:
        return None


def map_row(spec: TableSpec, record: Dict[str, Any]) -> Dict[str, Any]:
    """CSV record → destination fields. Unknown headers are dropped; dsld_id becomes int."""
    out: Dict[str, Any] = {}
    for src, dst in spec.mapping.items():
        raw = record.get(src)
        out[dst] = _to_int(raw) if dst == "dsld_id" else _clean(raw)
    return out


def row_to_product(row: Dict[str, Any]) -> Optional[NewProduct]:
    name = row.get("product_name")
    if not name:
        return None
    brand = row.get("brand_name")
    return NewProduct(
        name=name,
        kind="supplement",
        brand_names=[brand] if brand else [],
        dosage_form=row.get("supplement_form"),
        description=row.get("product_type"),
        market_status=row.get("market_status") or "Unknown",
        dsld_id=row.get("dsld_id"),
        serving_size=row.get("serving_size"),
        suggested_use=row.get("suggested_use"),
    )


# ── files ────────────────────────────────────────────────────────
def _natural_key(p: Path):
    return [int(t) if t.isdigit() else t.lower() for t in re.split(r"(\d+)", p.name)]


def find_files(data_dir: Path, prefix: str) -> List[Path]:
    """CSV files for one table, in numeric order (…_2 before …_10)."""
    files = [p for p in Path(data_dir).iterdir() if p.name.startswith(prefix) and p.suffix.lower() == ".csv"]
    return sorted(files, key=_natural_key)


def _iter_records(path: Path) -> Iterable[Dict[str, Any]]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        for record in csv.DictReader(f):
            if any(_clean(v) for v in record.values()):
                yield record


# ── batch writes ─────────────────────────────────────────────────
async def _flush(catalog: CatalogRepoPort, spec: TableSpec, batch: Sequence[Dict[str, Any]]) -> Dict[str, int]:
    try:
        if spec is PRODUCTS:
            items = [row_to_product(r) for r in batch]
            missing = sum(1 for i in items if i is None)
            counts = dict(await catalog.insert_products([i for i in items if i is not None]))
            counts["errors"] = counts.get("errors", 0) + missing
            return counts

        docs = [{"_id": content_id(spec.name, r), **r} for r in batch]
        counts = await catalog.insert_rows(spec.name, docs)
        if spec is SUPPLEMENT_FACTS:
            by_id: Dict[int, List[str]] = {}
            for r in batch:
                if r.get("dsld_id") is not None and r.get("ingredient"):
                    by_id.setdefault(r["dsld_id"], []).append(r["ingredient"])
            await catalog.add_ingredients(by_id)
        return counts
    except StoreUnavailable:
        log.warning("%s: batch of %d failed", spec.name, len(batch))
        return {"errors": len(batch)}


async def ingest_file(catalog: CatalogRepoPort, spec: TableSpec, path: Path, batch_size: int = 2000) -> LoadStats:
    stats = LoadStats()
    batch: List[Dict[str, Any]] = []
    batches = 0
    log.info("%s ← %s", spec.name, path.name)
    try:
        for record in _iter_records(path):
            try:
                batch.append(map_row(spec, record))
            except (AttributeError, TypeError, ValueError):
                stats.errors += 1
                continue
            if len(batch) >= batch_size:
                stats.add(await _flush(catalog, spec, batch))
                batch = []
                batches += 1
                if batches % PROGRESS_EVERY == 0:
                    log.info("%s: %d batches, %s", path.name, batches, stats)
    except (UnicodeDecodeError, csv.Error) as e:
        # rows read before the bad byte are still written below
        log.warning("%s unreadable, rest of file skipped: %s", path.name, e)
        stats.errors += 1
    if batch:
        stats.add(await _flush(catalog, spec, batch))
    log.info("%s done: %s", path.name, stats)
    return stats


async def ingest_directory(
    catalog: CatalogRepoPort,
    data_dir: Path,
    batch_size: int = 2000,
    tables: Optional[Sequence[str]] = None,
) -> LoadStats:
    total = LoadStats()
    for spec in TABLES:
        if tables and spec.name not in tables:
            continue
        files = find_files(data_dir, spec.prefix)
        if not files:
            log.info("no %s*.csv files in %s", spec.prefix, data_dir)
            continue
        for path in files:
            total.merge(await ingest_file(catalog, spec, path, batch_size))
    return total
