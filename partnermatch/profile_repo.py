"""
DynamoDB repository for user profiles.

Profiles are stored one item per user (``pk = USER#<id>``) with enrollments and
their topics embedded.  A GSI keyed on ``gsi1pk = INSTITUTION#<name>`` lets the
candidate pool be narrowed to one institution without a full scan.  Which optional
attributes exist is decided by the injected ``StoreCapabilities``, never by
inspecting items.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from partnermatch.config import StoreCapabilities
from partnermatch.errors import CandidatePoolFetchError, ProfileNotFound
from partnermatch.models import SearchCriteria, UserProfile
from partnermatch.normalizer import normalize_profile
from partnermatch.ranking import matches_filter

logger = logging.getLogger(__name__)


@dataclass
class PoolFilter:
    institution: Optional[str] = None
    search_term: Optional[str] = None
    exclude_user_id: Optional[str] = None


class ProfileRepo:
    """Repository for reading user profiles stored in DynamoDB."""

    def __init__(
        self,
        table_name: str,
        capabilities: Optional[StoreCapabilities] = None,
        institution_index: str = "gsi_institution",
        table: Any = None,
        region: Optional[str] = None,
    ) -> None:
        self.table_name = table_name
        self.capabilities = capabilities or StoreCapabilities()
        self.institution_index = institution_index
        self.table = table if table is not None else boto3.resource("dynamodb", region_name=region).Table(table_name)

    def _apply_capabilities(self, profile: UserProfile) -> UserProfile:
        caps = self.capabilities
        if not caps.has_study_hours:
            profile.total_study_hours = 0.0
        for course in profile.enrolled_courses:
            if not caps.has_topics:
                course.topics = []
            if not caps.has_descriptions:
                course.description = None
        return profile

    def get_user_profile(self, user_id: str) -> UserProfile:
        """
        Fetch one profile.

        Raises:
            ProfileNotFound: If no item exists for ``user_id``.
            ClientError: For DynamoDB failures.
        """
        resp = self.table.get_item(Key={"pk": f"USER#{user_id}"})
        item = resp.get("Item")
        if not item:
            raise ProfileNotFound(user_id)
        return self._apply_capabilities(normalize_profile(item))

    def get_profiles(self, user_ids: List[str]) -> List[UserProfile]:
        """Fetch several profiles, silently leaving out ids that do not exist."""
        out: List[UserProfile] = []
        for uid in user_ids:
            try:
                out.append(self.get_user_profile(uid))
            except ProfileNotFound:
                logger.warning("Connected user %s has no profile", uid)
        return out

    def _paginate(self, op, **kwargs) -> List[Dict[str, Any]]:
        resp = op(**kwargs)
        items = resp.get("Items", [])
        while "LastEvaluatedKey" in resp:
            resp = op(ExclusiveStartKey=resp["LastEvaluatedKey"], **kwargs)
            items.extend(resp.get("Items", []))
        return items

    def list_candidate_pool(self, pool_filter: Optional[PoolFilter] = None) -> List[UserProfile]:
        """
        List active candidate profiles matching the filter.

        Malformed items are normalized on a best-effort basis rather than rejected.

        Raises:
            CandidatePoolFetchError: If DynamoDB fails; the caller may retry.
        """
        pool_filter = pool_filter or PoolFilter()
        active = Attr("isActive").ne(False)
        try:
            if pool_filter.institution:
                items = self._paginate(
                    self.table.query,
                    IndexName=self.institution_index,
                    KeyConditionExpression=Key("gsi1pk").eq(f"INSTITUTION#{pool_filter.institution}"),
                    FilterExpression=active,
                )
            else:
                items = self._paginate(
                    self.table.scan,
                    FilterExpression=Attr("pk").begins_with("USER#") & active,
                )
        except (ClientError, BotoCoreError) as e:
            logger.error("Candidate pool fetch failed: %s", e)
            raise CandidatePoolFetchError(f"Failed to list candidate pool: {e}") from e

        criteria = SearchCriteria(
            institution=pool_filter.institution,
            search_term=pool_filter.search_term,
        )
        profiles: List[UserProfile] = []
        for item in items:
            profile = self._apply_capabilities(normalize_profile(item))
            if not profile.id or profile.id == pool_filter.exclude_user_id:
                continue
            if matches_filter(profile, criteria):
                profiles.append(profile)
        return profiles

    def put_profile(self, profile: UserProfile) -> None:
        """Write a profile item; used by seeding scripts and tests."""
        self.table.put_item(Item=profile.to_item())
