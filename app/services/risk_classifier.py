# app/services/risk_classifier.py
from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

# ==== High-risk medication classes (narrow therapeutic index / many interactions) ====
HIGH_RISK_MEDS = {
    "anticoagulant": [
        r"\bwarfarin\b", r"\bcoumadin\b", r"\bjantoven\b", r"\bapixaban\b", r"\beliquis\b",
        r"\brivaroxaban\b", r"\bxarelto\b", r"\bdabigatran\b", r"\bheparin\b", r"\bclopidogrel\b",
    ],
    "MAO inhibitor": [r"\bphenelzine\b", r"\btranylcypromine\b", r"\bselegiline\b", r"\bisocarboxazid\b"],
    "lithium": [r"\blithium\b"],
    "immunosuppressant": [r"\bcyclosporine\b", r"\btacrolimus\b", r"\bmycophenolate\b"],
    "chemotherapy": [r"\bmethotrexate\b", r"\bchemo\w*\b", r"\btamoxifen\b"],
    "antiarrhythmic": [r"\bamiodarone\b", r"\bdigoxin\b"],
    "anticonvulsant": [r"\bphenytoin\b", r"\bcarbamazepine\b", r"\bvalproate\b"],
}

# ==== Symptoms that need a clinician, not a supplement ====
RED_FLAG_SYMPTOMS = [
    r"\bchest pain\b", r"\bshortness of breath\b", r"\bcan'?t breathe\b", r"\bfaint\w*\b",
    r"\bsuicid\w*\b", r"\bself[- ]harm\b", r"\bseizure\w*\b", r"\bstroke\b",
    r"\bcoughing (up )?blood\b", r"\bblood in (stool|urine)\b", r"\bsevere bleeding\b",
    r"\bslurred speech\b", r"\bnumbness\b", r"\bhigh fever\b",
]

_MEDS = {label: [re.compile(p, re.I) for p in pats] for label, pats in HIGH_RISK_MEDS.items()}
_RED = [re.compile(p, re.I) for p in RED_FLAG_SYMPTOMS]


@dataclass
class RiskAssessment:
    blocked: bool = False
    warnings: List[str] = field(default_factory=list)


def _match_any(text: str, patterns) -> bool:
    return any(p.search(text) for p in patterns)


def assess_profile(
    symptoms: List[str],
    medications: List[str],
    supplements: Optional[List[str]] = None,
    considerations: Optional[Dict[str, bool]] = None,
) -> RiskAssessment:
    """
    Screen a recommendation request. Any blocking finding means no suggestions are
    generated at all; non-blocking ones become warnings on the normal payload.
    """
    c = considerations or {}
    out = RiskAssessment()

    if c.get("pregnancy"):
        out.blocked = True
        out.warnings.append("Pregnancy or breastfeeding: supplements and OTC products need clinician review first.")
    if c.get("kidneyLiverIssues"):
        out.blocked = True
        out.warnings.append("Kidney or liver issues change how many products are cleared from the body.")

    for med in list(medications or []) + list(supplements or []):
        for label, pats in _MEDS.items():
            if _match_any(med, pats):
                out.blocked = True
                out.warnings.append(f"{med.strip()} is a high-risk medication ({label}) with many known interactions.")
                break

    for s in symptoms or []:
        if _match_any(s, _RED):
            out.blocked = True
            out.warnings.append(f"'{s.strip()}' may need prompt medical attention.")

    # non-blocking
    if c.get("allergies"):
        out.warnings.append("Check every label for ingredients you are allergic to.")
    if c.get("bloodPressureConcerns"):
        out.warnings.append("Blood pressure concerns: avoid stimulants and decongestants unless a clinician approves.")

    return out
