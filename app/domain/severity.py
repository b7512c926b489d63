# app/domain/severity.py
from __future__ import annotations

import re
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Severity(str, Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    CONTRAINDICATED = "contraindicated"


# Source vocabularies → canonical scale. Keys are lower-cased, trimmed labels.
SEVERITY_ALIASES: Dict[str, Severity] = {
    "none": Severity.NONE,
    "no interaction": Severity.NONE,
    "no_interaction": Severity.NONE,
    "low": Severity.MILD,
    "minor": Severity.MILD,
    "mild": Severity.MILD,
    "medium": Severity.MODERATE,
    "moderate": Severity.MODERATE,
    "high": Severity.SEVERE,
    "major": Severity.SEVERE,
    "serious": Severity.SEVERE,
    "severe": Severity.SEVERE,
    "contraindicated": Severity.CONTRAINDICATED,
    "avoid": Severity.CONTRAINDICATED,
}


def to_severity(label: Optional[str]) -> Optional[Severity]:
    """Map an external severity label to the canonical enum; None if unknown."""
    if label is None:
        return None
    if isinstance(label, Severity):
        return label
    return SEVERITY_ALIASES.get(str(label).strip().lower())


# ==== Keyword classifier for free-text interaction descriptions ====
# Order matters: first rule that hits wins.
KEYWORD_RULES: List[Tuple[Severity, List[str]]] = [
    (Severity.CONTRAINDICATED, [r"contraindicat\w*", r"\bavoid\w*"]),
    (Severity.SEVERE,          [r"\bsevere\b", r"\bserious\w*"]),
    (Severity.MODERATE,        [r"\bmoderate\w*"]),
    (Severity.MILD,            [r"\bminor\b", r"\bmild\w*"]),
]
_COMPILED = [(sev, [re.compile(p, re.I) for p in pats]) for sev, pats in KEYWORD_RULES]


def classify_description(text: Optional[str], default: Severity = Severity.MODERATE) -> Severity:
    s = text or ""
    for sev, pats in _COMPILED:
        if any(p.search(s) for p in pats):
            return sev
    return default
