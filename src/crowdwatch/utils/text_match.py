"""
Word-boundary keyword matching.

Plain substring checks misfire on short terms ("hot" in "shot", "kl" in
"weekly"), so every lookup goes through a compiled, boundary-anchored regex.
"""

import re
from functools import lru_cache
from typing import Iterable, List, Pattern, Tuple

_INFLECTION = r"(?:s|es|d|ed|ing)?"


@lru_cache(maxsize=256)
def _compile(terms: Tuple[str, ...], inflect: bool) -> Pattern:
    # Longest first so multi-word terms win over their prefixes
    ordered = sorted(set(terms), key=len, reverse=True)
    suffix = _INFLECTION if inflect else ""
    alternation = "|".join(re.escape(t) for t in ordered)
    return re.compile(rf"(?<![\w-])({alternation}){suffix}(?![\w-])", re.IGNORECASE)


def compile_terms(terms: Iterable[str], inflect: bool = True) -> Pattern:
    return _compile(tuple(t.lower() for t in terms if t), inflect)


def find_terms(text: str, terms: Iterable[str], inflect: bool = True) -> List[str]:
    """
    Return the terms present in text, in the order of the given term list.
    """
    if not text:
        return []
    terms = [t.lower() for t in terms]
    hits = {m.group(1).lower() for m in compile_terms(terms, inflect).finditer(text)}
    found: List[str] = []
    for term in terms:
        if term in hits and term not in found:
            found.append(term)
    return found


def contains_any(text: str, terms: Iterable[str], inflect: bool = True) -> bool:
    if not text:
        return False
    return compile_terms(terms, inflect).search(text) is not None


def normalise_text(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "")).strip().lower()
