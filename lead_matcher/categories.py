"""Fuzzy category matching between lead requests and professional specialisations."""
from __future__ import annotations

import logging
import re
from typing import FrozenSet, Iterable, Optional

LOGGER = logging.getLogger(__name__)

TOKEN = "token"
SUBSTRING = "substring"
CATEGORY_MODES = (TOKEN, SUBSTRING)

_WORD = re.compile(r"[a-z0-9]+")


def category_tokens(value: str) -> FrozenSet[str]:
    return frozenset(_tokens_in_order(value))


def _tokens_in_order(value: str) -> list[str]:
    return [_singular(word) for word in _WORD.findall((value or "").lower())]


def _singular(word: str) -> str:
    if len(word) > 4 and word.endswith("ies"):
        return word[:-3] + "y"
    if len(word) > 3 and word.endswith(("ches", "shes", "sses", "xes")):
        return word[:-2]
    if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def substring_match(offered: str, requested: str) -> bool:
    """Bidirectional, case-insensitive containment."""

    left = (offered or "").strip().lower()
    right = (requested or "").strip().lower()
    if not left or not right:
        return False
    return left == right or left in right or right in left


def token_match(offered: str, requested: str) -> bool:
    """Match when one side's word tokens are all present on the other side."""

    left = category_tokens(offered)
    right = category_tokens(requested)
    if not left or not right:
        return False
    return left <= right or right <= left


def category_matches(offered: str, requested: str, mode: str = TOKEN) -> bool:
    if mode == SUBSTRING:
        return substring_match(offered, requested)
    if mode != TOKEN:
        raise ValueError(f"Unknown category matching mode '{mode}'. Expected one of {CATEGORY_MODES}")

    if token_match(offered, requested):
        return True
    if substring_match(offered, requested):
        LOGGER.warning(
            "Category near-miss: offered %r vs requested %r match as substrings but not as words",
            offered,
            requested,
        )
    return False


def matches_any_category(
    offered: Iterable[str],
    requested: str,
    mode: str = TOKEN,
    *,
    professional_id: Optional[str] = None,
) -> bool:
    """Return ``True`` when any offered category covers the requested one."""

    for category in offered:
        if category_matches(category, requested, mode):
            return True
    if professional_id:
        LOGGER.debug("Professional %s offers no category matching %r", professional_id, requested)
    return False


__all__ = [
    "CATEGORY_MODES",
    "SUBSTRING",
    "TOKEN",
    "category_matches",
    "category_tokens",
    "matches_any_category",
    "substring_match",
    "token_match",
]
