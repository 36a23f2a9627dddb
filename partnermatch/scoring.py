"""
Compatibility scoring.

The score is a plain weighted sum with no hidden factors:

* **Shared courses**: 15 points per shared course, counting at most four (max 60).
* **Program similarity**: Jaccard similarity of tokenized program names, scaled
  to 30 points.
* **Year proximity**: 7 for the same year, 4 for one apart, 2 for two apart.
* **Same institution**: 3 points.

Every factor that contributes adds one line to the breakdown, in the order above.
The course cap only limits points; the caller still shows every shared course.
"""

from __future__ import annotations

import math
import re
from typing import Iterable, List, Optional, Set

from partnermatch.models import ScoreDetails, ScoreResult, UserProfile
from partnermatch.overlap import compute_overlap

MAX_SCORE = 100

SHARED_COURSE_POINTS = 15
SHARED_COURSE_CAP = 4
PROGRAM_SIMILARITY_POINTS = 30
YEAR_PROXIMITY_POINTS = {0: 7, 1: 4, 2: 2}
SAME_INSTITUTION_POINTS = 3

SIMILAR_PROGRAM_THRESHOLD = 0.6
ACTIVE_STUDIER_HOURS = 10

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
# One suffix only, so "classes" becomes "classe".
_SUFFIX = re.compile(r"(ing|ers|er|s)$")


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def tokenize(text: Optional[str]) -> List[str]:
    """Lower-case, strip punctuation, split on whitespace and chop one common suffix."""
    cleaned = _NON_ALNUM.sub(" ", str(text or "").lower())
    tokens = (_SUFFIX.sub("", tok) for tok in cleaned.split())
    return [tok for tok in tokens if tok]


def jaccard_similarity(a_tokens: Iterable[str], b_tokens: Iterable[str]) -> float:
    a: Set[str] = set(a_tokens)
    b: Set[str] = set(b_tokens)
    union = len(a | b) or 1
    return len(a & b) / union


def program_similarity(a: Optional[str], b: Optional[str]) -> float:
    if not a or not b:
        return 0.0
    return jaccard_similarity(tokenize(a), tokenize(b))


def score_components(
    shared_course_count: int,
    similarity: float,
    year_diff: Optional[int],
    same_institution: bool,
) -> ScoreResult:
    """Apply the weighting table to pre-computed inputs."""
    score = 0
    breakdown: List[str] = []

    # 1. Shared courses (max 60)
    capped = max(0, min(shared_course_count, SHARED_COURSE_CAP))
    if capped > 0:
        pts = capped * SHARED_COURSE_POINTS
        score += pts
        breakdown.append(f"Shared courses ×{shared_course_count}: +{pts}")

    # 2. Program similarity (max 30)
    pts = round_half_up(similarity * PROGRAM_SIMILARITY_POINTS)
    if pts > 0:
        score += pts
        breakdown.append(f"Program similarity {round_half_up(similarity * 100)}%: +{pts}")

    # 3. Year proximity (max 7)
    if year_diff is not None:
        pts = YEAR_PROXIMITY_POINTS.get(year_diff, 0)
        if year_diff == 0:
            breakdown.append(f"Same year: +{pts}")
        elif pts:
            breakdown.append(f"Year proximity (±{year_diff}): +{pts}")
        score += pts

    # 4. Same institution (max 3)
    if same_institution:
        score += SAME_INSTITUTION_POINTS
        breakdown.append(f"Same institution: +{SAME_INSTITUTION_POINTS}")

    final = max(0, min(MAX_SCORE, round_half_up(score)))
    return ScoreResult(
        score=final,
        breakdown=breakdown,
        details=ScoreDetails(
            shared_course_count=shared_course_count,
            program_similarity=similarity,
            year_diff=year_diff,
            same_institution=same_institution,
        ),
    )


def year_difference(a: Optional[int], b: Optional[int]) -> Optional[int]:
    if a is None or b is None:
        return None
    return abs(a - b)


def same_institution(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a) and bool(b) and a == b


def compute_score(current: UserProfile, candidate: UserProfile) -> ScoreResult:
    """
    Score ``candidate`` as a study partner for ``current``.

    Used both for ranked search and for listing existing connections, so the two
    views always agree on a pair's score and breakdown.
    """
    overlap = compute_overlap(candidate.enrolled_courses, current.enrolled_courses)
    result = score_components(
        overlap.shared_course_count,
        program_similarity(current.program_name, candidate.program_name),
        year_difference(current.year_of_study, candidate.year_of_study),
        same_institution(current.institution, candidate.institution),
    )
    result.overlap = overlap
    return result


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n > 1 else ''}"


def match_reasons(
    details: ScoreDetails,
    shared_topics: int,
    current: UserProfile,
    candidate: UserProfile,
) -> List[str]:
    """Short human-readable reasons shown alongside a suggestion."""
    reasons: List[str] = []

    if details.shared_course_count > 0:
        reasons.append(_plural(details.shared_course_count, "similar course"))

    if shared_topics > 0:
        reasons.append(_plural(shared_topics, "shared topic"))

    if details.program_similarity >= SIMILAR_PROGRAM_THRESHOLD:
        reasons.append("Similar program/field")
    elif candidate.program_name and candidate.program_name == current.program_name:
        reasons.append("Same program")

    if details.year_diff == 0:
        reasons.append("Same year")
    elif details.year_diff == 1:
        reasons.append("Similar year")

    if candidate.total_study_hours > ACTIVE_STUDIER_HOURS and current.total_study_hours > ACTIVE_STUDIER_HOURS:
        reasons.append("Active studier")

    return reasons


def course_match_percent(shared_course_count: int, current: UserProfile, candidate: UserProfile) -> int:
    """Shared courses as a percentage of the larger active course load."""
    largest = max(len(current.active_courses) or 1, len(candidate.active_courses) or 1)
    return round_half_up(shared_course_count / largest * 100)
