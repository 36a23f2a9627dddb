"""
Environment-driven configuration.

Settings are read once from the environment (the Lambda configuration) and passed
to the repositories and handlers.  Optional profile fields are described by a
versioned ``StoreCapabilities`` object resolved from ``SCHEMA_VERSION`` rather than
discovered by probing the table at runtime.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Optional


# Schema version -> optional profile attributes the store populates.
# v1: bare profiles and enrollments
# v2: adds module descriptions and per-module topics
# v3: adds aggregated study hours
_CAPABILITIES_BY_VERSION: Dict[int, FrozenSet[str]] = {
    1: frozenset(),
    2: frozenset({"descriptions", "topics"}),
    3: frozenset({"descriptions", "topics", "study_hours"}),
}

LATEST_SCHEMA_VERSION = max(_CAPABILITIES_BY_VERSION)


@dataclass(frozen=True)
class StoreCapabilities:
    """Optional attributes available in the profile store for a given schema version."""

    schema_version: int = LATEST_SCHEMA_VERSION
    features: FrozenSet[str] = field(
        default_factory=lambda: _CAPABILITIES_BY_VERSION[LATEST_SCHEMA_VERSION]
    )

    @classmethod
    def for_version(cls, version: int) -> "StoreCapabilities":
        if version not in _CAPABILITIES_BY_VERSION:
            raise ValueError(f"Unknown schema version: {version}")
        return cls(schema_version=version, features=_CAPABILITIES_BY_VERSION[version])

    @property
    def has_topics(self) -> bool:
        return "topics" in self.features

    @property
    def has_descriptions(self) -> bool:
        return "descriptions" in self.features

    @property
    def has_study_hours(self) -> bool:
        return "study_hours" in self.features


@dataclass(frozen=True)
class Settings:
    region: str = "us-east-1"
    profiles_table: str = "studybuddy_profiles"
    connections_table: str = "studybuddy_connections"
    requester_index: str = "gsi_requester"
    recipient_index: str = "gsi_recipient"
    institution_index: str = "gsi_institution"
    default_limit: int = 100
    max_limit: int = 1000
    allow_origin: str = "*"
    capabilities: StoreCapabilities = field(default_factory=StoreCapabilities)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            region=env.get("AWS_REGION", "us-east-1"),
            profiles_table=env.get("PROFILES_TABLE", "studybuddy_profiles"),
            connections_table=env.get("CONNECTIONS_TABLE", "studybuddy_connections"),
            requester_index=env.get("CONNECTIONS_GSI_REQUESTER", "gsi_requester"),
            recipient_index=env.get("CONNECTIONS_GSI_RECIPIENT", "gsi_recipient"),
            institution_index=env.get("PROFILES_GSI_INSTITUTION", "gsi_institution"),
            default_limit=int(env.get("SEARCH_DEFAULT_LIMIT", "100")),
            max_limit=int(env.get("SEARCH_MAX_LIMIT", "1000")),
            allow_origin=env.get("ALLOW_ORIGIN", "*"),
            capabilities=StoreCapabilities.for_version(
                int(env.get("SCHEMA_VERSION", str(LATEST_SCHEMA_VERSION)))
            ),
        )
