# app/application/predict_interactions_use_case.py
from __future__ import annotations

import logging
from typing import Any, Dict, Sequence

from app.application.predict_use_case import InteractionPredictor
from app.application.resolve_use_case import CatalogResolver
from app.domain.errors import StoreUnavailable
from app.domain.models import IngredientResolution, SubstanceDescriptor

logger = logging.getLogger("aimed.predict")


class PredictInteractionsUseCase:
    """Run the model over every pair of the submitted items, no stored lookup."""

    def __init__(self, resolver: CatalogResolver, predictor: InteractionPredictor, *, max_items: int = 6):
        self.resolver = resolver
        self.predictor = predictor
        self.max_items = max_items

    async def run(self, items: Sequence[str]) -> Dict[str, Any]:
        cleaned = [str(i).strip() for i in items or [] if str(i).strip()]
        if len(cleaned) < 2:
            return {"interactions": [], "error": "at_least_two_items_required"}
        if len(cleaned) > self.max_items:
            return {"interactions": [], "error": "too_many_items"}
        if not self.predictor.enabled:
            return {"interactions": [], "error": "k2_api_key_missing"}

        try:
            resolved = await self.resolver.resolve(cleaned)
        except StoreUnavailable:
            # catalog down: the model can still judge the raw names
            logger.warning("catalog unavailable; predicting on raw names")
            resolved = [IngredientResolution(input=i, name=i) for i in cleaned]

        descriptors = [SubstanceDescriptor.from_resolution(r) for r in resolved]
        return {"interactions": await self.predictor.predict_all(descriptors)}
