# app/application/predict_use_case.py
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, ValidationError

from app.domain.errors import DuplicateRecord, StoreUnavailable
from app.domain.models import Interaction, SubstanceDescriptor
from app.domain.normalizer import normalize_name
from app.domain.ports import InteractionRepoPort, LlmPort
from app.domain.severity import Severity, to_severity
from app.domain.text_json import parse_model_json
from app.infra.rate_limit import RateLimiter
from app.services.prompt_service import PromptService

logger = logging.getLogger("aimed.predict")

Pair = Tuple[SubstanceDescriptor, SubstanceDescriptor]


class PredictionReply(BaseModel):
    """The JSON object the model is asked to return."""
    has_interaction: bool
    severity: str
    description: str = ""
    mechanism: Optional[str] = None
    notes: Optional[str] = None


def _same_substance(a: SubstanceDescriptor, b: SubstanceDescriptor) -> bool:
    if a.product_id is not None and a.product_id == b.product_id:
        return True
    return normalize_name(a.name) == normalize_name(b.name)


def all_pairs(descriptors: Sequence[SubstanceDescriptor]) -> List[Pair]:
    """(i, j) for i < j in input order, skipping a substance paired with itself."""
    out: List[Pair] = []
    for i in range(len(descriptors)):
        for j in range(i + 1, len(descriptors)):
            if not _same_substance(descriptors[i], descriptors[j]):
                out.append((descriptors[i], descriptors[j]))
    return out


class InteractionPredictor:
    """
    Ask the external model about one pair at a time.

    Every failure (transport, timeout, empty reply, bad JSON, schema mismatch,
    unknown severity) yields None for that pair only. Calls are spaced by the
    rate limiter and run strictly in the order given.
    """

    def __init__(
        self,
        llm: LlmPort,
        prompts: PromptService,
        interactions: Optional[InteractionRepoPort] = None,
        *,
        limiter: Optional[RateLimiter] = None,
        reasoning_marker: str = "</think>",
        persist: bool = False,
    ):
        self.llm = llm
        self.prompts = prompts
        self.interactions = interactions
        self.limiter = limiter or RateLimiter(0)
        self.marker = reasoning_marker
        self.persist = persist and interactions is not None

    @property
    def enabled(self) -> bool:
        return self.llm.configured

    # ── single pair ──────────────────────────────────────────────
    async def predict_pair(self, a: SubstanceDescriptor, b: SubstanceDescriptor) -> Optional[Interaction]:
        if not self.enabled:
            return None
        try:
            row = await self._ask(a, b)
        except Exception:
            logger.exception("prediction failed for %r / %r", a.name, b.name)
            return None
        if row is None:
            return None
        if self.persist and row.product_id_1 is not None and row.product_id_2 is not None:
            row = await self._persist(row)
        return row

    async def _ask(self, a: SubstanceDescriptor, b: SubstanceDescriptor) -> Optional[Interaction]:
        await self.limiter.wait()
        text = await self.llm.complete(
            system=self.prompts.interaction_system(),
            user=self.prompts.interaction_prompt(a, b),
        )
        if not text:
            logger.info("no reply for %r / %r", a.name, b.name)
            return None

        obj = parse_model_json(text, self.marker)
        if obj is None:
            logger.warning("unparseable reply for %r / %r: %.200s", a.name, b.name, text)
            return None
        try:
            reply = PredictionReply.model_validate(obj)
        except ValidationError as e:
            logger.warning("reply schema mismatch for %r / %r: %s", a.name, b.name, e.error_count())
            return None

        if not reply.has_interaction:
            return None
        sev = to_severity(reply.severity)
        if sev is None:
            logger.warning("unknown severity %r for %r / %r", reply.severity, a.name, b.name)
            return None
        if sev is Severity.NONE:
            return None

        provenance = f"Predicted by {self.llm.model}"
        return Interaction(
            product_id_1=a.product_id,
            product_id_2=b.product_id,
            substance_1=a.name,
            substance_2=b.name,
            description=reply.description,
            severity=sev,
            source_severity=reply.severity,
            mechanism=reply.mechanism or None,
            evidence_level="predicted",
            notes=f"{provenance}. {reply.notes}" if reply.notes else provenance,
            sources=[self.llm.model],
            origin="predicted",
        )

    async def _persist(self, row: Interaction) -> Interaction:
        try:
            if await self.interactions.exists(row.product_id_1, row.product_id_2):
                return row
            saved = await self.interactions.insert(row)
        except DuplicateRecord:
            logger.info("pair %s-%s stored concurrently; keeping the existing row", row.product_id_1, row.product_id_2)
            return row
        except StoreUnavailable:
            logger.warning("could not persist prediction %s-%s", row.product_id_1, row.product_id_2)
            return row
        # keep the caller's column order for display
        return row.model_copy(update={"id": saved.id, "created_at": saved.created_at})

    # ── batches ──────────────────────────────────────────────────
    async def predict_pairs(self, pairs: Sequence[Pair]) -> List[Interaction]:
        out: List[Interaction] = []
        for a, b in pairs:
            row = await self.predict_pair(a, b)
            if row is not None:
                out.append(row)
        return out

    async def predict_all(self, descriptors: Sequence[SubstanceDescriptor]) -> List[Interaction]:
        return await self.predict_pairs(all_pairs(descriptors))
