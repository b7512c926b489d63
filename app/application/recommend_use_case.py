# app/application/recommend_use_case.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from app.domain.ports import LlmPort
from app.domain.text_json import parse_model_json
from app.services.prompt_service import PromptService
from app.services.risk_classifier import assess_profile

logger = logging.getLogger("aimed.recommend")

REC_FIELDS = ("option", "category", "whyDiscussed", "keyCautions", "evidenceStrength", "interactionRisk", "avoidIf")
MAX_RECOMMENDATIONS = 5


def _clean_list(items: Optional[List[Any]]) -> List[str]:
    out: List[str] = []
    if not isinstance(items, (list, tuple)):
        return out
    for i in items:
        s = str(i).strip()
        if s and s not in out:
            out.append(s)
    return out


def _coerce_recommendations(raw: Any) -> List[Dict[str, str]]:
    if not isinstance(raw, list):
        return []
    out: List[Dict[str, str]] = []
    for r in raw:
        if not isinstance(r, dict) or not str(r.get("option") or "").strip():
            continue
        out.append({k: str(r.get(k) or "").strip() for k in REC_FIELDS})
    return out[:MAX_RECOMMENDATIONS]


class RecommendUseCase:
    """
    Structured wellness suggestions.

    Order of checks: symptoms present → high-risk screen (blocks) → model configured
    → model reply. A missing or unusable reply falls back to the static defaults in
    recommendation.yaml; the disclaimer is always attached.
    """

    def __init__(self, llm: LlmPort, prompts: PromptService, *, reasoning_marker: str = "</think>"):
        self.llm = llm
        self.prompts = prompts
        self.marker = reasoning_marker

    def _default(self, warnings: List[str]) -> Dict[str, Any]:
        d = self.prompts.default_recommendations()
        return {
            "disclaimer": self.prompts.disclaimer,
            "warnings": warnings + list(d.get("warnings") or []),
            "recommendations": list(d.get("recommendations") or []),
            "nextSteps": list(d.get("nextSteps") or []),
            "source": "default",
        }

    async def run(
        self,
        *,
        symptoms: List[str],
        medications: List[str],
        supplements: List[str],
        considerations: Dict[str, bool],
        preferences: Dict[str, Any],
    ) -> Dict[str, Any]:
        symptoms = _clean_list(symptoms)
        medications = _clean_list(medications)
        supplements = _clean_list(supplements)

        if not symptoms:
            return {
                "disclaimer": self.prompts.disclaimer,
                "warnings": [],
                "recommendations": [],
                "nextSteps": [],
                "error": "symptoms_required",
            }

        risk = assess_profile(symptoms, medications, supplements, considerations)
        if risk.blocked:
            logger.info("recommendation blocked: %d risk findings", len(risk.warnings))
            return {
                "blocked": True,
                "disclaimer": self.prompts.disclaimer,
                "warnings": risk.warnings,
                "recommendations": [],
                "nextSteps": self.prompts.blocked_next_steps(),
            }

        if not self.llm.configured:
            out = self._default(risk.warnings)
            out["error"] = "k2_api_key_missing"
            return out

        text = await self.llm.complete(
            system=self.prompts.recommendation_system(),
            user=self.prompts.recommendation_prompt(
                symptoms=symptoms,
                medications=medications,
                supplements=supplements,
                considerations=considerations,
                preferences=preferences,
            ),
        )
        obj = parse_model_json(text, self.marker) if text else None
        recs = _coerce_recommendations(obj.get("recommendations")) if obj else []
        if not recs:
            logger.warning("recommendation reply unusable; serving defaults")
            return self._default(risk.warnings)

        return {
            "disclaimer": self.prompts.disclaimer,
            "warnings": risk.warnings + _clean_list(obj.get("warnings")),
            "recommendations": recs,
            "nextSteps": _clean_list(obj.get("nextSteps")),
            "source": "model",
        }
