# ingestion/drugbank.py
"""Stream drug → drug-interaction pairs out of a DrugBank full-database XML."""
from __future__ import annotations

from pathlib import Path
from typing import Iterator, List, Tuple

from lxml import etree

from ingestion.backfill import Partner


def _local(tag) -> str:
    return etree.QName(tag).localname if isinstance(tag, str) else ""


def iter_drugs(path: Path) -> Iterator[Tuple[str, List[Partner]]]:
    """
    Yield (drug name, [(partner name, description), ...]) per top-level <drug>.

    Elements are cleared as soon as they are read, so memory stays flat on the
    multi-GB release file. Works with or without the drugbank.ca namespace.
    """
    for _, elem in etree.iterparse(str(path), events=("end",), tag="{*}drug"):
        parent = elem.getparent()
        if parent is None or _local(parent.tag) != "drugbank":
            continue
        name = (elem.findtext("{*}name") or "").strip()
        partners: List[Partner] = []
        for di in elem.iterfind("{*}drug-interactions/{*}drug-interaction"):
            other = (di.findtext("{*}name") or "").strip()
            if other:
                partners.append((other, (di.findtext("{*}description") or "").strip()))
        if name:
            yield name, partners
        elem.clear()
        while elem.getprevious() is not None:
            del parent[0]
