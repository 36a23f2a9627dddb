"""
Ranking and search orchestration.

``search`` is the single entry point used by the request-handling layer: it takes a
snapshot of the current user, the candidate pool and the current user's connection
records, and returns ranked ``MatchResult`` objects.  It never touches storage.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from partnermatch.connections import index_by_counterparty, state_from_record
from partnermatch.errors import InvalidCriteria
from partnermatch.models import (
    CONNECTION_ACCEPTED,
    DEFAULT_SEARCH_LIMIT,
    FALLBACK_RECOMMENDATION,
    ConnectionRecord,
    MatchResult,
    SearchCriteria,
    UserProfile,
)
from partnermatch.normalizer import normalize_profile
from partnermatch.scoring import compute_score, course_match_percent, match_reasons

logger = logging.getLogger(__name__)

MAX_LIMIT = 1000

CandidateLike = Union[UserProfile, Mapping[str, Any]]


def validate_criteria(criteria: SearchCriteria, max_limit: int = MAX_LIMIT) -> int:
    """Return the effective limit, or raise ``InvalidCriteria``."""
    limit = criteria.limit
    if limit is None:
        return DEFAULT_SEARCH_LIMIT
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidCriteria(f"limit must be an integer, got {limit!r}", field="limit")
    if limit < 1:
        raise InvalidCriteria(f"limit must be at least 1, got {limit}", field="limit")
    if limit > max_limit:
        raise InvalidCriteria(f"limit must be at most {max_limit}, got {limit}", field="limit")
    return limit


def rank(results: Iterable[MatchResult], limit: int = DEFAULT_SEARCH_LIMIT) -> List[MatchResult]:
    """Sort by score descending, then candidate id ascending, and keep ``limit``."""
    return sorted(results, key=lambda r: (-r.score, r.candidate_id))[:limit]


def matches_filter(candidate: UserProfile, criteria: SearchCriteria) -> bool:
    """Local equivalent of the store-side institution / search-term filter."""
    if criteria.institution and candidate.institution != criteria.institution:
        return False
    term = (criteria.search_term or "").strip().lower()
    if not term:
        return True
    fields = [candidate.first_name, candidate.last_name, candidate.email, candidate.program_name]
    for course in candidate.active_courses:
        fields.extend([course.name, course.code])
    return any(term in (f or "").lower() for f in fields)


def _as_profile(candidate: CandidateLike) -> UserProfile:
    if isinstance(candidate, UserProfile):
        return candidate
    return normalize_profile(candidate)


def build_match(
    current_user: UserProfile,
    candidate: UserProfile,
    record: Optional[ConnectionRecord] = None,
) -> MatchResult:
    scored = compute_score(current_user, candidate)
    overlap = scored.overlap
    state = state_from_record(current_user.id, record)
    reasons = match_reasons(scored.details, overlap.shared_topic_count, current_user, candidate)

    return MatchResult(
        candidate_id=candidate.id,
        score=scored.score,
        breakdown=scored.breakdown,
        shared_courses=list(overlap.shared_course_names),
        shared_topics_count=overlap.shared_topic_count,
        connection_status=state.status,
        connection_id=state.connection_id,
        is_pending_sent=state.is_pending_sent,
        is_pending_received=state.is_pending_received,
        name=candidate.display_name,
        email=candidate.email,
        institution=candidate.institution,
        program_name=candidate.program_name,
        year_of_study=candidate.year_of_study,
        bio=candidate.bio,
        all_courses=[c.name for c in candidate.active_courses if c.name],
        course_match_percent=course_match_percent(overlap.shared_course_count, current_user, candidate),
        match_reasons=reasons,
        recommendation_reason=" • ".join(reasons) if reasons else FALLBACK_RECOMMENDATION,
        study_hours=candidate.total_study_hours,
        preferences=candidate.preferences,
    )


def search(
    current_user: UserProfile,
    criteria: SearchCriteria,
    candidates: Sequence[CandidateLike],
    connections: Iterable[ConnectionRecord],
    max_limit: int = MAX_LIMIT,
) -> List[MatchResult]:
    """
    Rank candidate study partners for ``current_user``.

    Criteria are validated before anything else.  A candidate that cannot be scored
    is logged and left out; it never fails the whole search.
    """
    limit = validate_criteria(criteria, max_limit=max_limit)
    by_counterparty = index_by_counterparty(current_user.id, connections)

    results: List[MatchResult] = []
    skipped = 0
    for raw in candidates:
        try:
            candidate = _as_profile(raw)
            if not candidate.id or candidate.id == current_user.id:
                continue
            if not candidate.is_active or not candidate.active_courses:
                continue
            if not matches_filter(candidate, criteria):
                continue
            results.append(build_match(current_user, candidate, by_counterparty.get(candidate.id)))
        except Exception:
            skipped += 1
            logger.exception("Skipping candidate that could not be scored")

    ranked = rank(results, limit)
    logger.info(
        "Partner search for %s: pool=%d scored=%d skipped=%d returned=%d",
        current_user.id, len(candidates), len(results), skipped, len(ranked),
    )
    if ranked:
        logger.info(
            "Top matches: %s",
            [(r.candidate_id, r.score, len(r.shared_courses)) for r in ranked[:3]],
        )
    return ranked


def list_partners(
    current_user: UserProfile,
    partners: Sequence[CandidateLike],
    connections: Iterable[ConnectionRecord],
) -> List[MatchResult]:
    """
    Score the current user's accepted partners for display.

    Ordered by most recently updated connection first; partners without an accepted
    connection are left out.
    """
    accepted = {
        other: rec
        for other, rec in index_by_counterparty(current_user.id, connections).items()
        if rec.status == CONNECTION_ACCEPTED
    }
    out = []
    for raw in partners:
        partner = _as_profile(raw)
        record = accepted.get(partner.id)
        if record is None:
            continue
        out.append((record.updated_at or "", build_match(current_user, partner, record)))
    out.sort(key=lambda pair: (pair[0], pair[1].candidate_id), reverse=True)
    return [m for _, m in out]
