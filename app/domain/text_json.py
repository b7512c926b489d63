# app/domain/text_json.py
"""
Pull a JSON object out of free model text.

Chat models wrap JSON in prose, markdown fences, or a reasoning block that ends
with a marker such as ``</think>``. ``parse_model_json`` strips that preamble and
returns the first balanced ``{...}`` that decodes to a dict.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Iterator, Optional, Tuple


def strip_preamble(text: Optional[str], marker: Optional[str] = "</think>") -> str:
    s = text or ""
    if marker and marker in s:
        s = s.rsplit(marker, 1)[1]
    return s.strip()


def _balanced_spans(s: str) -> Iterator[Tuple[int, int]]:
    """Yield (start, end) of each top-level balanced {...} span, string-aware."""
    i, n = 0, len(s)
    while i < n:
        start = s.find("{", i)
        if start < 0:
            return
        depth = 0
        in_str = False
        esc = False
        end = -1
        for j in range(start, n):
            ch = s[j]
            if in_str:
                if esc:
                    esc = False
                elif ch == "\\":
                    esc = True
                elif ch == '"':
                    in_str = False
                continue
            if ch == '"':
                in_str = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    end = j + 1
                    break
        if end >= 0:
            yield start, end
        # unclosed '{' may still contain a balanced object further in
        i = start + 1


def extract_first_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    s = text or ""
    for start, end in _balanced_spans(s):
        try:
            obj = json.loads(s[start:end])
        except ValueError:
            continue
        if isinstance(obj, dict):
            return obj
    return None


def parse_model_json(text: Optional[str], marker: Optional[str] = "</think>") -> Optional[Dict[str, Any]]:
    return extract_first_json_object(strip_preamble(text, marker))
