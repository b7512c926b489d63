# app/services/prompt_service.py
from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from app.domain.models import SubstanceDescriptor


def _load(path: Path) -> Dict[str, Any]:
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


def _join(items: Optional[List[str]], empty: str = "none reported") -> str:
    items = [str(i).strip() for i in (items or []) if str(i).strip()]
    return ", ".join(items) if items else empty


class PromptService:
    """
    Renders the chat prompts from YAML templates under PROMPT_DIR.

    Rendering is pure string formatting: the same inputs always produce the same
    prompt text.
    """

    def __init__(self, prompt_dir: Path):
        self.prompt_dir = Path(prompt_dir)
        self.interaction = _load(self.prompt_dir / "interaction.yaml")
        self.recommendation = _load(self.prompt_dir / "recommendation.yaml")

    # ==== Interaction prediction ====
    def interaction_system(self) -> str:
        return self.interaction["system"]

    def _substance_block(self, index: int, d: SubstanceDescriptor) -> str:
        t = self.interaction["substance"]
        kind = d.product_type or d.kind
        lines = [
            t["header"].format(index=index, name=d.name),
            t["type"].format(type=kind),
        ]
        if d.generic_name:
            lines.append(t["generic"].format(generic_name=d.generic_name))
        if d.active_ingredients:
            lines.append(t["ingredients"].format(ingredients=", ".join(d.active_ingredients)))
        return "\n".join(lines)

    def interaction_prompt(self, a: SubstanceDescriptor, b: SubstanceDescriptor) -> str:
        return self.interaction["user"].format(
            first=self._substance_block(1, a),
            second=self._substance_block(2, b),
        )

    # ==== Recommendations ====
    @property
    def disclaimer(self) -> str:
        return self.recommendation["disclaimer"]

    def recommendation_system(self) -> str:
        return self.recommendation["system"]

    def recommendation_prompt(
        self,
        *,
        symptoms: List[str],
        medications: List[str],
        supplements: List[str],
        considerations: Dict[str, bool],
        preferences: Dict[str, Any],
    ) -> str:
        flagged = [k for k, v in (considerations or {}).items() if v]
        prefs = [f"{k}={v}" for k, v in (preferences or {}).items() if v not in (None, False, "")]
        return self.recommendation["user"].format(
            symptoms=_join(symptoms),
            medications=_join(medications),
            supplements=_join(supplements),
            considerations=_join(flagged),
            preferences=_join(prefs, empty="no preference"),
        )

    def default_recommendations(self) -> Dict[str, Any]:
        return copy.deepcopy(self.recommendation["default"])

    def blocked_next_steps(self) -> List[str]:
        return list(self.recommendation["blocked"]["nextSteps"])
