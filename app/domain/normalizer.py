# app/domain/normalizer.py
import re

_NON_ALNUM = re.compile(r"[\W_]+", re.UNICODE)


def normalize_name(raw: str) -> str:
    """
    Comparison key for free-text substance names.

    "  Vitamin K2 (MK-7) " -> "vitamin k2 mk 7". Empty/blank input gives "" which
    callers treat as "no match".
    """
    s = (raw or "").strip().lower()
    return _NON_ALNUM.sub(" ", s).strip()
