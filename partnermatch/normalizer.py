"""
Profile normalization.

Turns raw profile records (DynamoDB items, AttributeValue JSON, or legacy rows that
still use the ``university`` / ``course`` / ``study_preferences`` column names) into
canonical ``UserProfile`` objects.  Nothing in here raises on bad data: a malformed
preferences blob becomes empty preferences, unparseable numbers become "no signal".
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from partnermatch.models import (
    ENROLLMENT_ACTIVE,
    CourseEnrollment,
    StudyPreferences,
    Topic,
    UserProfile,
)

logger = logging.getLogger(__name__)

_AV_TAGS = {"S", "N", "BOOL", "NULL", "L", "M", "SS", "NS"}

# Integers wider than this are left as floats
_MAX_INT_DIGITS = 18


def _av_number(x):
    try:
        number = Decimal(str(x).strip())
    except (InvalidOperation, ValueError):
        return x
    if not number.is_finite():
        return x
    if number == number.to_integral_value() and number.adjusted() <= _MAX_INT_DIGITS:
        return int(number)
    return float(number)


def unwrap_attr(av):
    """
    Unwrap a DynamoDB AttributeValue (``{"S": "x"}``) into a plain value.

    A tag whose payload has the wrong shape is left as it is.
    """
    if not isinstance(av, dict) or len(av) != 1:
        return av
    t, v = next(iter(av.items()))
    if t not in _AV_TAGS:
        return av
    if t == "S": return v
    if t == "N": return _av_number(v)
    if t == "BOOL": return bool(v)
    if t == "NULL": return None
    if t in ("L", "SS", "NS") and not isinstance(v, (list, tuple)):
        return av
    if t == "L": return [unwrap_attr(x) for x in v]
    if t == "M":
        if not isinstance(v, dict):
            return av
        return {k: unwrap_attr(val) for k, val in v.items()}
    if t == "SS": return list(v)
    return [_av_number(x) for x in v]


def _first(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in raw and raw[k] is not None:
            return raw[k]
    return default


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return str(value)
    return ""


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number != number.to_integral_value():
        return None
    if number.adjusted() > _MAX_INT_DIGITS:
        return None
    return int(number)


def _as_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if number == number else 0.0


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [x.strip() for x in value.split(",") if x.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(x).strip() for x in value if x is not None and str(x).strip()]
    return []


def parse_preferences(blob: Any) -> StudyPreferences:
    """
    Parse the loosely-typed preferences blob.

    Accepts a dict or a JSON string.  Anything else, or a string that fails to
    parse, yields empty preferences.
    """
    data = blob
    if isinstance(blob, (str, bytes)):
        try:
            data = json.loads(blob)
        except (ValueError, TypeError):
            logger.debug("Ignoring malformed preferences blob")
            return StudyPreferences()
    if not isinstance(data, dict):
        return StudyPreferences()
    try:
        data = {k: unwrap_attr(v) for k, v in data.items()}
        return StudyPreferences(
            study_style=_as_text(_first(data, "studyStyle", "study_style")) or None,
            group_size=_as_text(_first(data, "groupSize", "group_size")) or None,
            availability=_as_list(_first(data, "availability")),
            environment=_as_text(_first(data, "environment")) or None,
        )
    except (ValueError, TypeError, AttributeError):
        logger.debug("Ignoring preferences blob with unexpected shape")
        return StudyPreferences()


def _parse_topics(value: Any, course_id: str) -> List[Topic]:
    topics: List[Topic] = []
    if not isinstance(value, (list, tuple)):
        return topics
    for t in value:
        t = unwrap_attr(t)
        if isinstance(t, dict):
            name = _as_text(_first(t, "name", "topicName", "topic_name"))
        else:
            name = _as_text(t)
        if name:
            topics.append(Topic(name=name, course_id=course_id))
    return topics


def normalize_course(raw: Any) -> Optional[CourseEnrollment]:
    """Normalize one enrollment; returns None for entries that are not mappings."""
    raw = unwrap_attr(raw)
    if not isinstance(raw, dict):
        return None
    course_id = _as_text(_first(raw, "courseId", "course_id", "moduleId", "module_id", "id"))
    description = _first(raw, "description")
    return CourseEnrollment(
        course_id=course_id,
        code=_as_text(_first(raw, "code", "moduleCode", "module_code")),
        name=_as_text(_first(raw, "name", "moduleName", "module_name")),
        description=description if isinstance(description, str) else None,
        enrollment_status=_as_text(
            _first(raw, "enrollmentStatus", "enrollment_status", "status", default=ENROLLMENT_ACTIVE)
        ).lower() or ENROLLMENT_ACTIVE,
        topics=_parse_topics(_first(raw, "topics"), course_id),
    )


def normalize_profile(raw: Any) -> UserProfile:
    """
    Build a ``UserProfile`` from a raw record.

    Never raises.  A record that is not a mapping at all produces an empty profile
    with an empty id, which callers treat as unusable.
    """
    if not isinstance(raw, Mapping):
        logger.warning("Profile record is not a mapping: %s", type(raw).__name__)
        return UserProfile(id="")

    data: Dict[str, Any] = {k: unwrap_attr(v) for k, v in raw.items()}

    courses_raw = _first(data, "courses", "enrolledCourses", "enrolled_courses", "modules", default=[])
    courses: List[CourseEnrollment] = []
    if isinstance(courses_raw, (list, tuple)):
        for c in courses_raw:
            course = normalize_course(c)
            if course is not None:
                courses.append(course)

    is_active = _first(data, "isActive", "is_active", default=True)

    return UserProfile(
        id=_as_text(_first(data, "userId", "user_id", "id")),
        institution=_as_text(_first(data, "institution", "university")),
        program_name=_as_text(_first(data, "programName", "program_name", "course")),
        year_of_study=_as_int(_first(data, "yearOfStudy", "year_of_study")),
        bio=_as_text(_first(data, "bio")),
        preferences=parse_preferences(
            _first(data, "preferences", "studyPreferences", "study_preferences")
        ),
        enrolled_courses=courses,
        total_study_hours=_as_float(_first(data, "totalStudyHours", "total_study_hours")),
        first_name=_as_text(_first(data, "firstName", "first_name")),
        last_name=_as_text(_first(data, "lastName", "last_name")),
        email=_as_text(_first(data, "email")).lower(),
        created_at=_as_text(_first(data, "createdAt", "created_at")),
        is_active=is_active not in (False, 0, "0", "false", "False"),
    )
