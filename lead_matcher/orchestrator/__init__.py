"""Workflow orchestration for matching, persisting, and re-matching leads."""

from .service import MatchingEngine, new_lead_id

__all__ = ["MatchingEngine", "new_lead_id"]
