"""
Study partner matching.

Ranks candidate study partners for a user with a transparent compatibility score
built from shared courses, program similarity, year proximity and institution.
"""

from partnermatch.models import MatchResult, ScoreResult, SearchCriteria, UserProfile
from partnermatch.normalizer import normalize_profile
from partnermatch.ranking import list_partners, rank, search
from partnermatch.scoring import compute_score

__version__ = "1.0.0"

__all__ = [
    "MatchResult",
    "ScoreResult",
    "SearchCriteria",
    "UserProfile",
    "compute_score",
    "list_partners",
    "normalize_profile",
    "rank",
    "search",
]
