"""
Exceptions raised by the partner matching engine and its storage collaborators.

Malformed preference data and missing profile fields are absorbed by the
normalizer and never show up here; everything in this module is meant to reach
the caller.
"""

from __future__ import annotations

from typing import Optional


class PartnerMatchError(Exception):
    """Base class for all partner matching errors."""

    retryable = False


class InvalidCriteria(PartnerMatchError, ValueError):
    """Search criteria were rejected before any computation began."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class ProfileNotFound(PartnerMatchError, LookupError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User profile not found: {user_id}")
        self.user_id = user_id


class CandidatePoolFetchError(PartnerMatchError):
    """The backing store failed while listing candidates. Safe to retry."""

    retryable = True


class ConnectionNotFound(PartnerMatchError, LookupError):
    def __init__(self, connection_id: str) -> None:
        super().__init__(f"Partner request not found or already processed: {connection_id}")
        self.connection_id = connection_id


class SelfConnection(PartnerMatchError, ValueError):
    def __init__(self) -> None:
        super().__init__("Cannot send buddy request to yourself")


class ConnectionExists(PartnerMatchError):
    """A connection record already links the two users."""

    MESSAGES = {
        "pending": ("REQUEST_PENDING", "A buddy request is already pending between these users"),
        "accepted": ("ALREADY_CONNECTED", "These users are already connected as study buddies"),
        "declined": ("REQUEST_DECLINED", "This person has declined your previous buddy request"),
    }

    def __init__(self, status: str) -> None:
        code, message = self.MESSAGES.get(
            status, ("CONNECTION_EXISTS", f"A {status} connection already exists between these users")
        )
        super().__init__(message)
        self.status = status
        self.code = code
