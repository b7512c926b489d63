# ingestion/jobs/check_duplicates.py
import argparse
import asyncio
import logging
from typing import Any, Dict, List

from app.domain.errors import StoreUnavailable
from app.domain.ports import CatalogRepoPort, InteractionRepoPort
from ingestion.jobs.common import job_settings, open_repos

log = logging.getLogger("aimed.ingest")

FIELDS = ("name_lc", "dsld_id")


async def find_all(catalog: CatalogRepoPort) -> Dict[str, List[Dict[str, Any]]]:
    return {f: await catalog.find_duplicates(f) for f in FIELDS}


def merge_plan(groups: Dict[str, List[Dict[str, Any]]]) -> Dict[int, int]:
    """
    Surplus id → the id that survives it.

    Groups that share an id (same name in one group, same dsld_id in another)
    collapse together, so every surplus id maps to the lowest id of the whole set.
    """
    parent: Dict[int, int] = {}

    def root(i: int) -> int:
        while parent.setdefault(i, i) != i:
            i = parent[i]
        return i

    for dups in groups.values():
        for g in dups:
            ids = sorted(g["ids"])
            for i in ids[1:]:
                a, b = root(ids[0]), root(i)
                if a != b:
                    parent[max(a, b)] = min(a, b)
    return {i: root(i) for i in sorted(parent) if root(i) != i}


def surplus_ids(groups: Dict[str, List[Dict[str, Any]]]) -> List[int]:
    """Every id in a duplicate group except the lowest one."""
    return sorted(merge_plan(groups))


async def fix_duplicates(
    catalog: CatalogRepoPort,
    interactions: InteractionRepoPort,
    groups: Dict[str, List[Dict[str, Any]]],
) -> Dict[str, int]:
    """Re-point interaction rows at the surviving ids, then delete the surplus products."""
    plan = merge_plan(groups)
    if not plan:
        return {"moved": 0, "dropped": 0, "deleted": 0}
    counts = dict(await interactions.repoint(plan))
    counts["deleted"] = await catalog.delete_products(sorted(plan))
    return counts


async def main() -> int:
    parser = argparse.ArgumentParser(description="Report (and optionally remove) duplicate catalog products")
    parser.add_argument("--fix", action="store_true", help="Merge each group into its lowest id")
    args = parser.parse_args()

    settings = job_settings()
    try:
        catalog, interactions = await open_repos(settings)
        groups = await find_all(catalog)
        for field, dups in groups.items():
            log.info("%s: %d duplicate group(s)", field, len(dups))
            for g in dups[:20]:
                log.info("  %r -> %s", g["value"], g["ids"])
        extra = surplus_ids(groups)
        if args.fix and extra:
            counts = await fix_duplicates(catalog, interactions, groups)
            log.info("interactions moved %d, dropped %d; deleted %d product(s)",
                     counts["moved"], counts["dropped"], counts["deleted"])
        elif extra:
            log.info("%d product(s) would be removed with --fix", len(extra))
    except StoreUnavailable:
        log.error("MongoDB unavailable at %s", settings.mongo_uri)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
