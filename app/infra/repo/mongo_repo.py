# app/infra/repo/mongo_repo.py
from __future__ import annotations

import functools
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument, UpdateOne
from pymongo.errors import BulkWriteError, DuplicateKeyError, OperationFailure, PyMongoError

from app.config import Settings
from app.domain.errors import DuplicateRecord, StoreUnavailable
from app.domain.models import Interaction, NewProduct, Product
from app.domain.ports import CatalogRepoPort, InteractionRepoPort

log = logging.getLogger("aimed.repo")

# DSLD label tables that sit beside `products`, keyed by dsld_id.
FACT_TABLES = ("supplement_facts", "other_ingredients", "label_statements", "company_information")

_DUP_KEY = 11000


def open_database(settings: Settings) -> AsyncIOMotorDatabase:
    client = AsyncIOMotorClient(settings.mongo_uri, serverSelectionTimeoutMS=5000)
    return client[settings.mongo_db]


def _store_errors(fn):
    """Translate driver failures into StoreUnavailable (DuplicateKeyError passes through)."""
    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            log.warning("%s failed: %s", fn.__name__, e.__class__.__name__)
            raise StoreUnavailable(fn.__name__) from e
    return wrapper


def _bulk_counts(n: int, err: Optional[BulkWriteError] = None) -> Dict[str, int]:
    """loaded/skipped/errors for an unordered insert_many of n docs."""
    if err is None:
        return {"loaded": n, "skipped": 0, "errors": 0}
    details = err.details or {}
    write_errors = details.get("writeErrors") or []
    dups = sum(1 for w in write_errors if w.get("code") == _DUP_KEY)
    return {
        "loaded": int(details.get("nInserted", 0)),
        "skipped": dups,
        "errors": len(write_errors) - dups,
    }


async def _safe_index(coll: AsyncIOMotorCollection, keys, **kw) -> None:
    try:
        await coll.create_index(keys, **kw)
    except OperationFailure as e:
        # an index with the same keys but other options already exists
        log.warning("index %s on %s skipped: %s", keys, coll.name, e.details.get("errmsg") if e.details else e)


class MongoCatalogRepo(CatalogRepoPort):
    """
    Async repository for `products` and the DSLD label tables.

    Product ids are integers allocated from `counters` (doc `_id: "products"`), so
    they stay stable across re-imports and match what clients already hold.
    Lookup helpers work on two denormalized fields written at insert time:
      - name_lc  : lower-cased name  (case-insensitive exact match)
      - name_key : normalize_name(name) (normalized exact/prefix/contains)
    """

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self.db = db
        self.coll: AsyncIOMotorCollection = db["products"]
        self.counters: AsyncIOMotorCollection = db["counters"]

    # ──────────────────────────────────────────────────────────────
    #  Indexing / health
    # ──────────────────────────────────────────────────────────────
    @_store_errors
    async def ensure_indexes(self) -> None:
        await _safe_index(self.coll, [("name", ASCENDING)], unique=True)
        await _safe_index(self.coll, [("name_lc", ASCENDING)])
        await _safe_index(self.coll, [("name_key", ASCENDING)])
        await _safe_index(self.coll, [("dsld_id", ASCENDING)], sparse=True)
        await _safe_index(self.coll, [("active_ingredients", ASCENDING)])
        for t in FACT_TABLES:
            await _safe_index(self.db[t], [("dsld_id", ASCENDING)])

    async def ping(self) -> bool:
        try:
            await self.db.command("ping")
            return True
        except PyMongoError:
            return False

    # ──────────────────────────────────────────────────────────────
    #  Serving reads
    # ──────────────────────────────────────────────────────────────
    @_store_errors
    async def search_products(self, q: str, limit: int = 20) -> List[Product]:
        q = (q or "").strip()
        flt: Dict[str, Any] = {}
        if q:
            rx = re.compile(re.escape(q), re.IGNORECASE)
            flt = {"$or": [{"name": rx}, {"generic_name": rx}, {"brand_names": rx}]}
        cursor = self.coll.find(flt).sort("name", ASCENDING).limit(limit)
        return [Product.from_doc(d) async for d in cursor]

    @_store_errors
    async def match_product(self, value: str, mode: str) -> Optional[Product]:
        if not value:
            return None
        if mode == "name":
            flt = {"name_lc": value.strip().lower()}
        elif mode == "key":
            flt = {"name_key": value}
        elif mode == "prefix":
            flt = {"name_key": {"$regex": "^" + re.escape(value)}}
        elif mode == "contains":
            flt = {"name_key": {"$regex": re.escape(value)}}
        else:
            raise ValueError(f"unknown match mode: {mode}")
        cursor = self.coll.find(flt).sort("name", ASCENDING).limit(1)
        async for d in cursor:
            return Product.from_doc(d)
        return None

    @_store_errors
    async def get_products_by_ids(self, ids: Iterable[int]) -> List[Product]:
        ids = list(ids)
        if not ids:
            return []
        cursor = self.coll.find({"_id": {"$in": ids}})
        return [Product.from_doc(d) async for d in cursor]

    @_store_errors
    async def list_products(self, limit: Optional[int] = None) -> List[Product]:
        cursor = self.coll.find({}).sort("_id", ASCENDING)
        if limit:
            cursor = cursor.limit(limit)
        return [Product.from_doc(d) async for d in cursor]

    @_store_errors
    async def search_ingredients(self, q: str, limit: int = 20) -> List[str]:
        q = (q or "").strip()
        if not q:
            return []
        rx = re.compile(re.escape(q), re.IGNORECASE)
        pipeline = [
            {"$match": {"active_ingredients": rx}},
            {"$unwind": "$active_ingredients"},
            {"$match": {"active_ingredients": rx}},
            {"$group": {"_id": "$active_ingredients"}},
            {"$sort": {"_id": 1}},
            {"$limit": limit},
        ]
        return [d["_id"] async for d in self.coll.aggregate(pipeline)]

    @_store_errors
    async def get_facts(self, dsld_id: int) -> Dict[str, List[Dict[str, Any]]]:
        out: Dict[str, List[Dict[str, Any]]] = {}
        for t in FACT_TABLES:
            cursor = self.db[t].find({"dsld_id": dsld_id}, {"_id": 0, "dsld_id": 0})
            out[t] = [d async for d in cursor]
        return out

    # ──────────────────────────────────────────────────────────────
    #  Ingestion writes
    # ──────────────────────────────────────────────────────────────
    async def _allocate_ids(self, n: int) -> List[int]:
        doc = await self.counters.find_one_and_update(
            {"_id": "products"},
            {"$inc": {"seq": n}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        last = int(doc["seq"])
        return list(range(last - n + 1, last + 1))

    @_store_errors
    async def product_exists(self, name: str) -> bool:
        return await self.coll.count_documents({"name": name}, limit=1) > 0

    @_store_errors
    async def insert_product(self, item: NewProduct) -> Product:
        (pid,) = await self._allocate_ids(1)
        product = item.with_id(pid)
        try:
            await self.coll.insert_one(product.to_doc())
        except DuplicateKeyError as e:
            raise DuplicateRecord(item.name) from e
        return product

    @_store_errors
    async def insert_products(self, items: Sequence[NewProduct]) -> Dict[str, int]:
        if not items:
            return _bulk_counts(0)
        ids = await self._allocate_ids(len(items))
        docs = [it.with_id(pid).to_doc() for it, pid in zip(items, ids)]
        try:
            await self.coll.insert_many(docs, ordered=False)
        except BulkWriteError as e:
            return _bulk_counts(len(docs), e)
        return _bulk_counts(len(docs))

    @_store_errors
    async def insert_rows(self, table: str, rows: Sequence[Dict[str, Any]]) -> Dict[str, int]:
        if table not in FACT_TABLES:
            raise ValueError(f"unknown table: {table}")
        if not rows:
            return _bulk_counts(0)
        try:
            await self.db[table].insert_many(list(rows), ordered=False)
        except BulkWriteError as e:
            return _bulk_counts(len(rows), e)
        return _bulk_counts(len(rows))

    @_store_errors
    async def add_ingredients(self, by_dsld_id: Dict[int, Sequence[str]]) -> int:
        ops = [
            UpdateOne({"dsld_id": did}, {"$addToSet": {"active_ingredients": {"$each": list(names)}}})
            for did, names in by_dsld_id.items() if names
        ]
        if not ops:
            return 0
        res = await self.coll.bulk_write(ops, ordered=False)
        return res.modified_count

    @_store_errors
    async def count(self) -> int:
        return await self.coll.count_documents({})

    @_store_errors
    async def find_duplicates(self, field: str) -> List[Dict[str, Any]]:
        pipeline = [
            {"$match": {field: {"$ne": None}}},
            {"$group": {"_id": f"${field}", "ids": {"$push": "$_id"}, "n": {"$sum": 1}}},
            {"$match": {"n": {"$gt": 1}}},
            {"$sort": {"_id": 1}},
        ]
        return [
            {"value": d["_id"], "ids": sorted(d["ids"])}
            async for d in self.coll.aggregate(pipeline)
        ]

    @_store_errors
    async def delete_products(self, ids: Sequence[int]) -> int:
        if not ids:
            return 0
        res = await self.coll.delete_many({"_id": {"$in": list(ids)}})
        return res.deleted_count


class MongoInteractionRepo(InteractionRepoPort):
    """Pairwise rows, stored with product_id_1 < product_id_2."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self.coll: AsyncIOMotorCollection = db["interactions"]

    @_store_errors
    async def ensure_indexes(self) -> None:
        await _safe_index(self.coll, [("product_id_1", ASCENDING), ("product_id_2", ASCENDING)], unique=True)
        await _safe_index(self.coll, [("product_id_2", ASCENDING)])

    @_store_errors
    async def find_among(self, ids: Sequence[int]) -> List[Interaction]:
        ids = sorted(set(ids))
        if len(ids) < 2:
            return []
        cursor = self.coll.find({"product_id_1": {"$in": ids}, "product_id_2": {"$in": ids}})
        return [Interaction.from_doc(d) async for d in cursor if d.get("product_id_1") != d.get("product_id_2")]

    @_store_errors
    async def exists(self, id_a: int, id_b: int) -> bool:
        lo, hi = sorted((id_a, id_b))
        flt = {"$or": [
            {"product_id_1": lo, "product_id_2": hi},
            {"product_id_1": hi, "product_id_2": lo},
        ]}
        return await self.coll.count_documents(flt, limit=1) > 0

    @_store_errors
    async def insert(self, row: Interaction) -> Interaction:
        row = row.canonical()
        doc = row.to_doc()
        try:
            res = await self.coll.insert_one(doc)
        except DuplicateKeyError as e:
            raise DuplicateRecord(f"{row.product_id_1}-{row.product_id_2}") from e
        return row.model_copy(update={"id": str(res.inserted_id), "created_at": doc["created_at"]})

    @_store_errors
    async def repoint(self, mapping: Dict[int, int]) -> Dict[str, int]:
        counts = {"moved": 0, "dropped": 0}
        ids = list(mapping)
        if not ids:
            return counts
        flt = {"$or": [{"product_id_1": {"$in": ids}}, {"product_id_2": {"$in": ids}}]}
        docs = [d async for d in self.coll.find(flt, {"product_id_1": 1, "product_id_2": 1})]
        for d in docs:
            a = mapping.get(d.get("product_id_1"), d.get("product_id_1"))
            b = mapping.get(d.get("product_id_2"), d.get("product_id_2"))
            if a == b:
                await self.coll.delete_one({"_id": d["_id"]})
                counts["dropped"] += 1
                continue
            lo, hi = sorted((a, b))
            try:
                await self.coll.update_one({"_id": d["_id"]}, {"$set": {"product_id_1": lo, "product_id_2": hi}})
            except DuplicateKeyError:
                # the surviving product already has a row for this pair
                await self.coll.delete_one({"_id": d["_id"]})
                counts["dropped"] += 1
            else:
                counts["moved"] += 1
        return counts

    @_store_errors
    async def count(self) -> int:
        return await self.coll.count_documents({})
