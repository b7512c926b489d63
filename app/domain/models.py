# app/domain/models.py
from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field

from app.domain.normalizer import normalize_name
from app.domain.severity import Severity, to_severity

ProductKind = Literal["medicine", "supplement"]


class Product(BaseModel):
    id: int
    name: str
    kind: ProductKind = "supplement"
    generic_name: str | None = None
    brand_names: List[str] = []
    dosage_form: str | None = None
    strength: str | None = None
    description: str | None = None
    active_ingredients: List[str] = []
    market_status: str = "Unknown"
    dsld_id: int | None = None
    serving_size: str | None = None
    suggested_use: str | None = None

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Product":
        d = {k: v for k, v in doc.items() if k not in ("_id", "name_lc", "name_key")}
        d["id"] = int(doc["_id"])
        # drop nulls so list/str defaults apply
        return cls(**{k: v for k, v in d.items() if v is not None})

    def to_doc(self) -> Dict[str, Any]:
        d = self.model_dump(exclude={"id"})
        d["_id"] = self.id
        d["name_lc"] = self.name.lower()
        d["name_key"] = normalize_name(self.name)
        return d


class NewProduct(BaseModel):
    """Product shape before an id is allocated (ingestion side)."""
    name: str
    kind: ProductKind = "supplement"
    generic_name: str | None = None
    brand_names: List[str] = []
    dosage_form: str | None = None
    strength: str | None = None
    description: str | None = None
    active_ingredients: List[str] = []
    market_status: str = "Unknown"
    dsld_id: int | None = None
    serving_size: str | None = None
    suggested_use: str | None = None

    def with_id(self, pid: int) -> Product:
        return Product(id=pid, **self.model_dump())


class Interaction(BaseModel):
    id: str | None = None
    product_id_1: int | None = None
    product_id_2: int | None = None
    substance_1: str | None = None
    substance_2: str | None = None
    description: str = ""
    severity: Severity = Severity.MODERATE
    source_severity: str | None = None
    mechanism: str | None = None
    effect: str | None = None
    evidence_level: str | None = None
    notes: str | None = None
    sources: List[str] = []
    origin: Literal["stored", "predicted"] = "stored"
    created_at: dt.datetime | None = None

    @property
    def pair(self) -> frozenset:
        return frozenset((self.product_id_1, self.product_id_2))

    def canonical(self) -> "Interaction":
        """Order endpoints so product_id_1 < product_id_2 (storage key)."""
        a, b = self.product_id_1, self.product_id_2
        if a is not None and b is not None and a > b:
            return self.model_copy(update={
                "product_id_1": b, "product_id_2": a,
                "substance_1": self.substance_2, "substance_2": self.substance_1,
            })
        return self

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Interaction":
        d = {k: v for k, v in doc.items() if k != "_id" and v is not None}
        # tolerate rows written with a source label instead of the canonical value
        d["severity"] = to_severity(d.get("severity")) or Severity.MODERATE
        d["id"] = str(doc.get("_id")) if doc.get("_id") is not None else None
        # rows written before origin was stored: predictions are tagged by evidence_level
        d.setdefault("origin", "predicted" if d.get("evidence_level") == "predicted" else "stored")
        return cls(**d)

    def to_doc(self) -> Dict[str, Any]:
        d = self.canonical().model_dump(exclude={"id", "substance_1", "substance_2"})
        d["severity"] = self.severity.value
        d["created_at"] = d.get("created_at") or dt.datetime.now(dt.timezone.utc)
        return d


# ── Resolution (tagged variant) ───────────────────────────────────
class ProductResolution(BaseModel):
    type: Literal["product"] = "product"
    input: str
    product: Product
    derived_ingredients: List[str] = []


class IngredientResolution(BaseModel):
    type: Literal["ingredient"] = "ingredient"
    input: str
    name: str


Resolution = Annotated[Union[ProductResolution, IngredientResolution], Field(discriminator="type")]


class SubstanceDescriptor(BaseModel):
    """What the prediction prompt knows about one side of a pair."""
    name: str
    kind: Literal["product", "ingredient", "unknown"] = "unknown"
    product_type: ProductKind | None = None
    generic_name: str | None = None
    active_ingredients: List[str] = []
    product_id: int | None = None

    @classmethod
    def from_resolution(cls, r: Union[ProductResolution, IngredientResolution]) -> "SubstanceDescriptor":
        if isinstance(r, ProductResolution):
            p = r.product
            return cls(
                name=p.name,
                kind="product",
                product_type=p.kind,
                generic_name=p.generic_name,
                active_ingredients=list(p.active_ingredients),
                product_id=p.id,
            )
        return cls(name=r.name, kind="ingredient")
