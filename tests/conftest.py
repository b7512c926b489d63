# tests/conftest.py
import datetime as dt
import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pytest

from app.config import Settings
from app.domain.errors import DuplicateRecord, StoreUnavailable
from app.domain.models import Interaction, NewProduct, Product
from app.domain.normalizer import normalize_name
from app.domain.ports import CatalogRepoPort, InteractionRepoPort, LlmPort
from app.domain.severity import Severity
from app.services.prompt_service import PromptService


# ── in-memory ports ───────────────────────────────────────────────
class FakeCatalogRepo(CatalogRepoPort):
    def __init__(self, products: Iterable[Product] = ()):
        self.products: Dict[int, Product] = {p.id: p for p in products}
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.down = False
        self.writes = 0

    def _check(self):
        if self.down:
            raise StoreUnavailable("fake store down")

    def _sorted(self) -> List[Product]:
        return sorted(self.products.values(), key=lambda p: p.name)

    async def ensure_indexes(self) -> None:
        self._check()

    async def ping(self) -> bool:
        return not self.down

    async def search_products(self, q: str, limit: int = 20) -> List[Product]:
        self._check()
        q = (q or "").strip().lower()
        return [p for p in self._sorted() if q in p.name.lower()][:limit]

    async def match_product(self, value: str, mode: str) -> Optional[Product]:
        self._check()
        for p in self._sorted():
            key = normalize_name(p.name)
            if mode == "name" and p.name.lower() == value.lower():
                return p
            if mode == "key" and key == value:
                return p
            if mode == "prefix" and key.startswith(value):
                return p
            if mode == "contains" and value in key:
                return p
        return None

    async def get_products_by_ids(self, ids: Iterable[int]) -> List[Product]:
        self._check()
        return [self.products[i] for i in ids if i in self.products]

    async def list_products(self, limit: Optional[int] = None) -> List[Product]:
        self._check()
        rows = sorted(self.products.values(), key=lambda p: p.id)
        return rows[:limit] if limit else rows

    async def search_ingredients(self, q: str, limit: int = 20) -> List[str]:
        self._check()
        q = q.strip().lower()
        names = {i for p in self.products.values() for i in p.active_ingredients if q in i.lower()}
        return sorted(names)[:limit]

    async def get_facts(self, dsld_id: int) -> Dict[str, List[Dict[str, Any]]]:
        self._check()
        rows = self.tables.get("supplement_facts", {}).values()
        return {"supplement_facts": [r for r in rows if r.get("dsld_id") == dsld_id]}

    async def product_exists(self, name: str) -> bool:
        self._check()
        return any(p.name == name for p in self.products.values())

    async def insert_product(self, item: NewProduct) -> Product:
        self._check()
        if any(p.name == item.name for p in self.products.values()):
            raise DuplicateRecord(item.name)
        product = item.with_id(max(self.products, default=0) + 1)
        self.products[product.id] = product
        self.writes += 1
        return product

    async def insert_products(self, items: Sequence[NewProduct]) -> Dict[str, int]:
        counts = {"loaded": 0, "skipped": 0, "errors": 0}
        for item in items:
            try:
                await self.insert_product(item)
                counts["loaded"] += 1
            except DuplicateRecord:
                counts["skipped"] += 1
        return counts

    async def insert_rows(self, table: str, rows: Sequence[Dict[str, Any]]) -> Dict[str, int]:
        self._check()
        t = self.tables.setdefault(table, {})
        counts = {"loaded": 0, "skipped": 0, "errors": 0}
        for r in rows:
            if r["_id"] in t:
                counts["skipped"] += 1
            else:
                t[r["_id"]] = dict(r)
                counts["loaded"] += 1
                self.writes += 1
        return counts

    async def add_ingredients(self, by_dsld_id: Dict[int, Sequence[str]]) -> int:
        self._check()
        touched = 0
        for pid, p in list(self.products.items()):
            names = by_dsld_id.get(p.dsld_id) if p.dsld_id is not None else None
            if not names:
                continue
            merged = list(p.active_ingredients) + [n for n in names if n not in p.active_ingredients]
            self.products[pid] = p.model_copy(update={"active_ingredients": list(dict.fromkeys(merged))})
            touched += 1
        return touched

    async def count(self) -> int:
        return len(self.products)

    async def find_duplicates(self, field: str) -> List[Dict[str, Any]]:
        groups: Dict[Any, List[int]] = {}
        for p in self.products.values():
            value = p.name.lower() if field == "name_lc" else getattr(p, field)
            if value is not None:
                groups.setdefault(value, []).append(p.id)
        return [{"value": v, "ids": sorted(ids)} for v, ids in sorted(groups.items()) if len(ids) > 1]

    async def delete_products(self, ids: Sequence[int]) -> int:
        n = 0
        for i in ids:
            if self.products.pop(i, None) is not None:
                n += 1
        return n


class FakeInteractionRepo(InteractionRepoPort):
    def __init__(self, rows: Iterable[Interaction] = ()):
        self.rows: Dict[frozenset, Interaction] = {}
        self.down = False
        self.queries = 0
        for r in rows:
            self._put(r)

    def _put(self, row: Interaction) -> Interaction:
        saved = row.canonical().model_copy(update={
            "id": row.id or f"row-{len(self.rows) + 1}",
            "created_at": row.created_at or dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc),
        })
        self.rows[saved.pair] = saved
        return saved

    async def ensure_indexes(self) -> None:
        pass

    async def find_among(self, ids: Sequence[int]) -> List[Interaction]:
        self.queries += 1
        if self.down:
            raise StoreUnavailable("fake store down")
        wanted = set(ids)
        return [r.model_copy(update={"substance_1": None, "substance_2": None})
                for r in self.rows.values() if set(r.pair) <= wanted and len(r.pair) == 2]

    async def exists(self, id_a: int, id_b: int) -> bool:
        if self.down:
            raise StoreUnavailable("fake store down")
        return frozenset((id_a, id_b)) in self.rows

    async def insert(self, row: Interaction) -> Interaction:
        if self.down:
            raise StoreUnavailable("fake store down")
        if row.pair in self.rows:
            raise DuplicateRecord(str(sorted(row.pair)))
        return self._put(row)

    async def repoint(self, mapping: Dict[int, int]) -> Dict[str, int]:
        counts = {"moved": 0, "dropped": 0}
        for key, row in list(self.rows.items()):
            if not key & set(mapping):
                continue
            del self.rows[key]
            a = mapping.get(row.product_id_1, row.product_id_1)
            b = mapping.get(row.product_id_2, row.product_id_2)
            moved = row.model_copy(update={"product_id_1": a, "product_id_2": b}).canonical()
            if a == b or moved.pair in self.rows:
                counts["dropped"] += 1
            else:
                self.rows[moved.pair] = moved
                counts["moved"] += 1
        return counts

    async def count(self) -> int:
        return len(self.rows)


class FakeLlm(LlmPort):
    """Replies are handed out in call order; a reply may be a str, None, or an exception to raise."""

    def __init__(self, replies: Sequence[Any] = (), configured: bool = True):
        self.replies = list(replies)
        self._configured = configured
        self.calls: List[Dict[str, Any]] = []

    @property
    def configured(self) -> bool:
        return self._configured

    @property
    def model(self) -> str:
        return "test-model"

    async def complete(self, *, system: str, user: str, temperature: Optional[float] = None) -> Optional[str]:
        self.calls.append({"system": system, "user": user})
        if not self.replies:
            return None
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def chat(self, messages: List[Dict[str, Any]], model: Optional[str] = None) -> Dict[str, Any]:
        self.calls.append({"model": model or self.model, "messages": messages})
        reply = self.replies.pop(0) if self.replies else {}
        if isinstance(reply, Exception):
            raise reply
        return reply


# ── fixtures ──────────────────────────────────────────────────────
def make_products() -> List[Product]:
    return [
        Product(id=1, name="Warfarin", kind="medicine", generic_name="warfarin",
                active_ingredients=["warfarin sodium"], strength="5 mg", market_status="Active"),
        Product(id=2, name="Vitamin K2 (MK-7)", kind="supplement",
                active_ingredients=["menaquinone-7"], dsld_id=1001, serving_size="1 capsule"),
        Product(id=3, name="Aspirin", kind="medicine", generic_name="acetylsalicylic acid",
                active_ingredients=["aspirin"], strength="81 mg"),
        Product(id=4, name="Fish Oil", kind="supplement",
                active_ingredients=["omega-3 fatty acids"], dsld_id=1002, brand_names=["Nordic"]),
        Product(id=5, name="St. John's Wort", kind="supplement", active_ingredients=["hypericum perforatum"]),
        Product(id=6, name="Metformin", kind="medicine", generic_name="metformin"),
    ]


def k2_warfarin_row() -> Interaction:
    # stored in reverse column order on purpose
    return Interaction(
        product_id_1=2, product_id_2=1,
        description="Vitamin K reduces the anticoagulant effect of warfarin.",
        severity=Severity.SEVERE, source_severity="high",
        sources=["curated"],
    )


@pytest.fixture
def catalog() -> FakeCatalogRepo:
    return FakeCatalogRepo(make_products())


@pytest.fixture
def interactions() -> FakeInteractionRepo:
    return FakeInteractionRepo([k2_warfarin_row()])


@pytest.fixture
def settings() -> Settings:
    return Settings(llm_api_key="test-key", predict_min_interval=0.0, persist_predictions=False)


@pytest.fixture
def prompts(settings) -> PromptService:
    return PromptService(settings.prompt_path)


def reply_json(has_interaction=True, severity="moderate", description="Some effect.", **extra) -> str:
    body = {"has_interaction": has_interaction, "severity": severity, "description": description, **extra}
    return "<think>weighing both labels</think>\n```json\n" + json.dumps(body) + "\n```"
