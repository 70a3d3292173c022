# src/credfeed/credibility/__init__.py

"""
Credibility scoring system for credfeed.
Scores content from evidence sources, applies contests, and filters by score bucket.
"""

from .scorer import ScoreEngine, evidence_weight
from .contest import ContestLedger
from .filtering import FilterPolicyManager, classify, is_visible

__all__ = [
    "ScoreEngine",
    "ContestLedger",
    "FilterPolicyManager",
    "classify",
    "evidence_weight",
    "is_visible",
]
