"""Heuristic intent scoring for incoming leads.

The score is additive from a base of 5 and capped at 10. No rule subtracts, so
every lead scores at least 5; the [1, 10] contract is enforced by the clamp
in :func:`score` regardless.

Budgets are compared in whole US dollars.
"""
from __future__ import annotations

from typing import Optional

from .models import LeadRequest, Urgency

BASE_SCORE = 5
MIN_SCORE = 1
MAX_SCORE = 10

URGENCY_KEYWORDS = ("urgent", "asap")
BUDGET_THRESHOLD_USD = 1000
DETAILS_MIN_LENGTH = 50
TIMELINE_KEYWORD = "month"


def score(lead: LeadRequest) -> int:
    """Return the 1-10 intent score for ``lead``."""

    total = BASE_SCORE

    message = (lead.message or "").lower()
    if any(keyword in message for keyword in URGENCY_KEYWORDS):
        total += 3

    if lead.budget is not None and lead.budget > BUDGET_THRESHOLD_USD:
        total += 2

    if _present(lead.customer_phone) and _present(lead.customer_email):
        total += 1

    if lead.project_details and len(lead.project_details) > DETAILS_MIN_LENGTH:
        total += 1

    if TIMELINE_KEYWORD in (lead.timeline or "").lower():
        total += 1

    return max(MIN_SCORE, min(total, MAX_SCORE))


def urgency_for(intent_score: int) -> Urgency:
    if intent_score >= 8:
        return "high"
    if intent_score >= 6:
        return "medium"
    return "low"


def _present(value: Optional[str]) -> bool:
    return bool(value and str(value).strip())


__all__ = ["BASE_SCORE", "BUDGET_THRESHOLD_USD", "MAX_SCORE", "MIN_SCORE", "score", "urgency_for"]
