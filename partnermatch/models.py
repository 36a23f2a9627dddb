"""
Data models for study partner matching.

This module defines lightweight data classes for user profiles, course enrollments,
connection records and the derived, per-request match results.  Profiles and
connection records provide helper methods for generating DynamoDB items and
computing partition keys; the derived types only know how to render themselves
for a JSON response.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Set


CONNECTION_NONE = "none"
CONNECTION_PENDING = "pending"
CONNECTION_ACCEPTED = "accepted"
CONNECTION_DECLINED = "declined"

ENROLLMENT_ACTIVE = "active"

DEFAULT_SEARCH_LIMIT = 100
FALLBACK_RECOMMENDATION = "Active student looking for study partners"


def now_iso() -> str:
    """Return the current UTC time as an ISO 8601 formatted string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class StudyPreferences:
    """
    Study preferences parsed from the loosely-typed preferences blob.

    Attributes:
        study_style: e.g. 'visual', 'collaborative'.
        group_size: e.g. 'small', 'medium'.
        availability: List of time slots such as 'morning'.
        environment: e.g. 'quiet', 'flexible'.
    """

    study_style: Optional[str] = None
    group_size: Optional[str] = None
    availability: List[str] = field(default_factory=list)
    environment: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.study_style or self.group_size or self.availability or self.environment)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "studyStyle": self.study_style,
            "groupSize": self.group_size,
            "availability": list(self.availability),
            "environment": self.environment,
        }


@dataclass
class Topic:
    """A named topic owned by the course it belongs to."""

    name: str
    course_id: str


@dataclass
class CourseEnrollment:
    """
    A user's enrollment in a course (module).

    Attributes:
        course_id: Stored course identifier.
        code: Module code such as 'CS101'; may be empty.
        name: Course name.
        description: Free-text description, or None.
        enrollment_status: 'active' or 'inactive'.
        topics: Topics belonging to the course.
    """

    course_id: str
    code: str = ""
    name: str = ""
    description: Optional[str] = None
    enrollment_status: str = ENROLLMENT_ACTIVE
    topics: List[Topic] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.enrollment_status == ENROLLMENT_ACTIVE

    def to_item(self) -> Dict[str, Any]:
        item: Dict[str, Any] = {
            "courseId": self.course_id,
            "code": self.code,
            "name": self.name,
            "enrollmentStatus": self.enrollment_status,
            "topics": [t.name for t in self.topics],
        }
        if self.description is not None:
            item["description"] = self.description
        return item


@dataclass
class UserProfile:
    """
    Canonical, read-only snapshot of a user for the duration of one ranking request.

    Attributes:
        id: User identifier.
        institution: University or college name; empty when unknown.
        program_name: Degree program, e.g. 'Computer Science'; empty when unknown.
        year_of_study: Year as an integer, or None when unknown.
        bio: Free-text biography.
        preferences: Parsed study preferences.
        enrolled_courses: All course enrollments, active or not.
        total_study_hours: Sum of logged study hours.
    """

    id: str
    institution: str = ""
    program_name: str = ""
    year_of_study: Optional[int] = None
    bio: str = ""
    preferences: StudyPreferences = field(default_factory=StudyPreferences)
    enrolled_courses: List[CourseEnrollment] = field(default_factory=list)
    total_study_hours: float = 0.0
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    created_at: str = ""
    is_active: bool = True

    @property
    def pk(self) -> str:
        """Compute the partition key for the profile record."""
        return f"USER#{self.id}"

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.email or "Unknown"

    @property
    def active_courses(self) -> List[CourseEnrollment]:
        return [c for c in self.enrolled_courses if c.is_active]

    def to_item(self) -> Dict[str, Any]:
        """Convert the profile into a DynamoDB item (dictionary)."""
        item: Dict[str, Any] = {
            "pk": self.pk,
            "userId": self.id,
            "institution": self.institution,
            "programName": self.program_name,
            "bio": self.bio,
            "preferences": self.preferences.to_dict(),
            "courses": [c.to_item() for c in self.enrolled_courses],
            "totalStudyHours": str(self.total_study_hours),
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email.lower(),
            "createdAt": self.created_at,
            "isActive": self.is_active,
        }
        if self.year_of_study is not None:
            item["yearOfStudy"] = self.year_of_study
        # Institution GSI partition key for pool queries
        if self.institution:
            item["gsi1pk"] = f"INSTITUTION#{self.institution}"
        return item


@dataclass
class ConnectionRecord:
    """
    Durable representation of a partner request and its lifecycle.

    Status moves from 'pending' to 'accepted' or 'declined' and records are never
    deleted.
    """

    id: str
    requester_id: str
    recipient_id: str
    status: str
    created_at: str = ""
    updated_at: str = ""
    message: str = ""

    @property
    def pk(self) -> str:
        return f"CONNECTION#{self.id}"

    def involves(self, user_a: str, user_b: str) -> bool:
        return {self.requester_id, self.recipient_id} == {user_a, user_b}

    def other_party(self, user_id: str) -> str:
        return self.recipient_id if self.requester_id == user_id else self.requester_id

    def to_item(self) -> Dict[str, Any]:
        """Convert the connection into a DynamoDB item (dictionary)."""
        return {
            "pk": self.pk,
            "connectionId": self.id,
            "requesterId": self.requester_id,
            "recipientId": self.recipient_id,
            "status": self.status,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "message": self.message,
        }

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "ConnectionRecord":
        return cls(
            id=str(item.get("connectionId") or ""),
            requester_id=str(item.get("requesterId") or ""),
            recipient_id=str(item.get("recipientId") or ""),
            status=str(item.get("status") or CONNECTION_PENDING),
            created_at=str(item.get("createdAt") or ""),
            updated_at=str(item.get("updatedAt") or ""),
            message=str(item.get("message") or ""),
        )


@dataclass
class OverlapFacts:
    """Derived overlap between two users' enrollments."""

    shared_course_ids: Set[str] = field(default_factory=set)
    shared_course_names: List[str] = field(default_factory=list)
    shared_topic_count: int = 0

    @property
    def shared_course_count(self) -> int:
        return len(self.shared_course_names)


@dataclass
class ScoreDetails:
    shared_course_count: int = 0
    program_similarity: float = 0.0
    year_diff: Optional[int] = None
    same_institution: bool = False


@dataclass
class ScoreResult:
    """Compatibility score in [0, 100] with its ordered breakdown."""

    score: int
    breakdown: List[str]
    details: ScoreDetails
    overlap: OverlapFacts = field(default_factory=OverlapFacts)


@dataclass
class ConnectionState:
    status: str = CONNECTION_NONE
    connection_id: Optional[str] = None
    is_pending_sent: bool = False
    is_pending_received: bool = False


@dataclass
class SearchCriteria:
    """
    Caller-supplied search constraints.

    ``institution`` and ``search_term`` narrow the candidate pool; ``limit`` caps
    the number of ranked results.
    """

    institution: Optional[str] = None
    search_term: Optional[str] = None
    limit: Any = DEFAULT_SEARCH_LIMIT


@dataclass
class MatchResult:
    """Ranked candidate as returned to the request-handling layer. Not persisted."""

    candidate_id: str
    score: int
    breakdown: List[str]
    shared_courses: List[str]
    shared_topics_count: int
    connection_status: str = CONNECTION_NONE
    connection_id: Optional[str] = None
    is_pending_sent: bool = False
    is_pending_received: bool = False
    name: str = ""
    email: str = ""
    institution: str = ""
    program_name: str = ""
    year_of_study: Optional[int] = None
    bio: str = ""
    all_courses: List[str] = field(default_factory=list)
    course_match_percent: int = 0
    match_reasons: List[str] = field(default_factory=list)
    recommendation_reason: Optional[str] = None
    study_hours: float = 0.0
    preferences: StudyPreferences = field(default_factory=StudyPreferences)

    @property
    def has_matched_courses(self) -> bool:
        return bool(self.shared_courses)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.candidate_id,
            "name": self.name,
            "email": self.email,
            "university": self.institution,
            "course": self.program_name,
            "yearOfStudy": self.year_of_study,
            "bio": self.bio,
            "studyPreferences": self.preferences.to_dict(),
            "sharedCourses": list(self.shared_courses),
            "allCourses": list(self.all_courses),
            "sharedTopicsCount": self.shared_topics_count,
            "courseMatchPercent": self.course_match_percent,
            "matchReasons": list(self.match_reasons),
            "recommendationReason": self.recommendation_reason,
            "connectionStatus": self.connection_status,
            "connectionId": self.connection_id,
            "isPendingSent": self.is_pending_sent,
            "isPendingReceived": self.is_pending_received,
            "studyHours": self.study_hours,
            "compatibilityScore": self.score,
            "scoreBreakdown": list(self.breakdown),
            "hasMatchedCourses": self.has_matched_courses,
        }
