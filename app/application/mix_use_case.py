# app/application/mix_use_case.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from app.application.lookup_use_case import InteractionLookup
from app.application.predict_use_case import InteractionPredictor, all_pairs
from app.application.resolve_use_case import CatalogResolver
from app.domain.errors import LookupFailed, StoreUnavailable
from app.domain.models import Interaction, ProductResolution, SubstanceDescriptor

logger = logging.getLogger("aimed.mix")


class MixUseCase:
    """
    Resolve → stored lookup → predict the pairs nothing covers.

    Prediction only runs when the model is configured, MIX_PREDICT_MISSING is on and
    the request has at most `max_items` substances (pair count grows as N²).
    """

    def __init__(
        self,
        resolver: CatalogResolver,
        lookup: InteractionLookup,
        predictor: InteractionPredictor,
        *,
        predict_missing: bool = True,
        max_items: int = 6,
    ):
        self.resolver = resolver
        self.lookup = lookup
        self.predictor = predictor
        self.predict_missing = predict_missing
        self.max_items = max_items

    async def run(self, items: Sequence[str]) -> Dict[str, Any]:
        try:
            resolved = await self.resolver.resolve(items)
        except StoreUnavailable:
            logger.warning("catalog unavailable; mix aborted")
            return {"interactions": [], "resolved": [], "error": "database_unavailable"}

        products = [r.product for r in resolved if isinstance(r, ProductResolution)]
        result: Dict[str, Any] = {"interactions": [], "resolved": resolved}

        lookup_failed = False
        try:
            stored = await self.lookup.find(products)
        except LookupFailed:
            stored, lookup_failed = [], True

        covered = {r.pair for r in stored}
        predicted: List[Interaction] = []
        if self._should_predict(len(resolved)):
            descriptors = [SubstanceDescriptor.from_resolution(r) for r in resolved]
            pending = [
                (a, b) for a, b in all_pairs(descriptors)
                if a.product_id is None or b.product_id is None
                or frozenset((a.product_id, b.product_id)) not in covered
            ]
            logger.info("mix: %d stored, predicting %d uncovered pairs", len(stored), len(pending))
            predicted = await self.predictor.predict_pairs(pending)
        elif lookup_failed:
            result["error"] = "database_unavailable"

        result["interactions"] = list(stored) + predicted
        return result

    def _should_predict(self, n: int) -> bool:
        if n < 2 or not self.predict_missing or not self.predictor.enabled:
            return False
        if n > self.max_items:
            logger.info("mix: %d items exceeds prediction cap %d", n, self.max_items)
            return False
        return True
