# app/domain/ports.py
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.domain.models import Interaction, NewProduct, Product

# Match modes used by the resolver, in the order it tries them.
MATCH_MODES = ("name", "key", "prefix", "contains")


class CatalogRepoPort(ABC):
    """Products plus the DSLD label tables that hang off them."""

    @abstractmethod
    async def ensure_indexes(self) -> None: ...

    @abstractmethod
    async def ping(self) -> bool: ...

    # ---- serving (read-only) ----
    @abstractmethod
    async def search_products(self, q: str, limit: int = 20) -> List[Product]: ...

    @abstractmethod
    async def match_product(self, value: str, mode: str) -> Optional[Product]:
        """
        First product (by name sort) matching `value` under `mode`:
          name     → name equals value, case-insensitive
          key      → normalized name equals value
          prefix   → normalized name starts with value
          contains → normalized name contains value
        """

    @abstractmethod
    async def get_products_by_ids(self, ids: Iterable[int]) -> List[Product]: ...

    @abstractmethod
    async def list_products(self, limit: Optional[int] = None) -> List[Product]: ...

    @abstractmethod
    async def search_ingredients(self, q: str, limit: int = 20) -> List[str]: ...

    @abstractmethod
    async def get_facts(self, dsld_id: int) -> Dict[str, List[Dict[str, Any]]]: ...

    # ---- ingestion (write) ----
    @abstractmethod
    async def product_exists(self, name: str) -> bool: ...

    @abstractmethod
    async def insert_product(self, item: NewProduct) -> Product: ...

    @abstractmethod
    async def insert_products(self, items: Sequence[NewProduct]) -> Dict[str, int]: ...

    @abstractmethod
    async def insert_rows(self, table: str, rows: Sequence[Dict[str, Any]]) -> Dict[str, int]: ...

    @abstractmethod
    async def add_ingredients(self, by_dsld_id: Dict[int, Sequence[str]]) -> int:
        """Append ingredient names to each DSLD product; returns products touched."""

    @abstractmethod
    async def count(self) -> int: ...

    @abstractmethod
    async def find_duplicates(self, field: str) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def delete_products(self, ids: Sequence[int]) -> int: ...


class InteractionRepoPort(ABC):
    @abstractmethod
    async def ensure_indexes(self) -> None: ...

    @abstractmethod
    async def find_among(self, ids: Sequence[int]) -> List[Interaction]:
        """Rows whose two endpoints are both in `ids`, either column order."""

    @abstractmethod
    async def exists(self, id_a: int, id_b: int) -> bool: ...

    @abstractmethod
    async def insert(self, row: Interaction) -> Interaction: ...

    @abstractmethod
    async def repoint(self, mapping: Dict[int, int]) -> Dict[str, int]:
        """
        Move rows off each id in `mapping` onto the id it maps to.
        A row that would pair a product with itself, or repeat a pair that is
        already stored, is deleted instead. Returns {"moved": n, "dropped": m}.
        """

    @abstractmethod
    async def count(self) -> int: ...


class LlmPort(ABC):
    @property
    @abstractmethod
    def configured(self) -> bool: ...

    @property
    @abstractmethod
    def model(self) -> str: ...

    @abstractmethod
    async def complete(self, *, system: str, user: str, temperature: Optional[float] = None) -> Optional[str]:
        """Raw reply text, or None on any transport/content failure."""

    @abstractmethod
    async def chat(self, messages: List[Dict[str, Any]], model: Optional[str] = None) -> Dict[str, Any]:
        """Raw chat-completion body for caller-supplied messages. Raises UpstreamError."""
