"""
Course and topic overlap between two users.

A candidate's course counts as shared with the current user when it matches any of
the current user's active courses under the tiers below, tried in order (first
match wins, each candidate course counted once):

* **id**: same stored course id.
* **name**: one course name contains the other, case-insensitively.
* **token**: a word longer than two characters from one name appears inside the
  other name.
* **code**: module codes share their first three characters.
* **description**: both descriptions are longer than 20 characters and the first
  50 characters of one appear inside the other.

Topic overlap is then counted only inside the courses found above.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Set, Tuple

from partnermatch.models import CourseEnrollment, OverlapFacts

TIER_ID = "id"
TIER_NAME = "name"
TIER_TOKEN = "token"
TIER_CODE = "code"
TIER_DESCRIPTION = "description"

MIN_TOKEN_LENGTH = 3
CODE_PREFIX_LENGTH = 3
MIN_DESCRIPTION_LENGTH = 21
DESCRIPTION_PREFIX_LENGTH = 50


def _name_contains(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    if not a or not b:
        return False
    return a in b or b in a


def _tokens_within(source: str, target: str) -> bool:
    target = target.lower()
    if not target:
        return False
    return any(len(tok) >= MIN_TOKEN_LENGTH and tok in target for tok in source.lower().split())


def _code_prefix_match(a: str, b: str) -> bool:
    a, b = a.strip().lower(), b.strip().lower()
    if not a or not b:
        return False
    return a.startswith(b[:CODE_PREFIX_LENGTH]) or b.startswith(a[:CODE_PREFIX_LENGTH])


def _description_overlap(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    if len(a) < MIN_DESCRIPTION_LENGTH or len(b) < MIN_DESCRIPTION_LENGTH:
        return False
    a, b = a.lower(), b.lower()
    return a[:DESCRIPTION_PREFIX_LENGTH] in b or b[:DESCRIPTION_PREFIX_LENGTH] in a


def match_tier(a: CourseEnrollment, b: CourseEnrollment) -> Optional[str]:
    """Return the first tier under which two courses match, or None."""
    if a.course_id and a.course_id == b.course_id:
        return TIER_ID
    if _name_contains(a.name, b.name):
        return TIER_NAME
    if _tokens_within(a.name, b.name) or _tokens_within(b.name, a.name):
        return TIER_TOKEN
    if _code_prefix_match(a.code, b.code):
        return TIER_CODE
    if _description_overlap(a.description, b.description):
        return TIER_DESCRIPTION
    return None


def _course_identity(course: CourseEnrollment) -> Tuple[str, str]:
    return (course.course_id, "" if course.course_id else course.name.lower())


def find_shared_courses(
    candidate_courses: Sequence[CourseEnrollment],
    current_courses: Sequence[CourseEnrollment],
) -> List[Tuple[CourseEnrollment, List[CourseEnrollment]]]:
    """
    Pair each shared candidate course with the current user's courses it matched.

    Only active enrollments on either side take part.  The result keeps the
    candidate's enrollment order and holds each candidate course at most once.
    """
    mine = [c for c in current_courses if c.is_active]
    shared: List[Tuple[CourseEnrollment, List[CourseEnrollment]]] = []
    seen: Set[Tuple[str, str]] = set()

    for course in candidate_courses:
        if not course.is_active:
            continue
        key = _course_identity(course)
        if key in seen:
            continue
        partners = [other for other in mine if match_tier(course, other) is not None]
        if partners:
            seen.add(key)
            shared.append((course, partners))
    return shared


def count_shared_topics(
    shared: Sequence[Tuple[CourseEnrollment, List[CourseEnrollment]]],
) -> int:
    """
    Count distinct candidate topic names that match a topic of a paired course.

    Names match on case-insensitive equality or containment in either direction.
    """
    matched: Set[str] = set()
    for course, partners in shared:
        theirs = {t.name.lower() for p in partners for t in p.topics if t.name}
        if not theirs:
            continue
        for topic in course.topics:
            name = topic.name.lower()
            if not name or name in matched:
                continue
            if any(name == other or name in other or other in name for other in theirs):
                matched.add(name)
    return len(matched)


def compute_overlap(
    candidate_courses: Sequence[CourseEnrollment],
    current_courses: Sequence[CourseEnrollment],
) -> OverlapFacts:
    shared = find_shared_courses(candidate_courses, current_courses)
    return OverlapFacts(
        shared_course_ids={c.course_id for c, _ in shared if c.course_id},
        shared_course_names=[c.name or c.code or c.course_id for c, _ in shared],
        shared_topic_count=count_shared_topics(shared),
    )
