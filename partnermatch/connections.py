"""
Resolve the relationship between the requesting user and a candidate.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from partnermatch.models import (
    CONNECTION_NONE,
    CONNECTION_PENDING,
    ConnectionRecord,
    ConnectionState,
)

logger = logging.getLogger(__name__)


def _recency_key(record: ConnectionRecord):
    return (record.updated_at or "", record.created_at or "", record.id)


def latest_connection(
    current_user_id: str,
    candidate_id: str,
    records: Iterable[ConnectionRecord],
) -> Optional[ConnectionRecord]:
    """
    Return the connection record between two users, if any.

    Only one record per pair is expected.  If the store returns more, the most
    recently updated one wins (then most recently created, then highest id).
    """
    found = [r for r in records if r.involves(current_user_id, candidate_id)]
    if not found:
        return None
    if len(found) > 1:
        logger.warning(
            "Found %d connection records between %s and %s; using most recent",
            len(found), current_user_id, candidate_id,
        )
    return max(found, key=_recency_key)


def state_from_record(current_user_id: str, record: Optional[ConnectionRecord]) -> ConnectionState:
    if record is None:
        return ConnectionState(status=CONNECTION_NONE)
    if record.status == CONNECTION_PENDING:
        sent = record.requester_id == current_user_id
        return ConnectionState(
            status=CONNECTION_PENDING,
            connection_id=record.id,
            is_pending_sent=sent,
            is_pending_received=not sent,
        )
    return ConnectionState(status=record.status, connection_id=record.id)


def resolve_connection_state(
    current_user_id: str,
    candidate_id: str,
    records: Iterable[ConnectionRecord],
) -> ConnectionState:
    return state_from_record(current_user_id, latest_connection(current_user_id, candidate_id, records))


def index_by_counterparty(
    current_user_id: str,
    records: Iterable[ConnectionRecord],
) -> Dict[str, ConnectionRecord]:
    """
    Map each counterparty id to its winning record, for resolving a whole pool at once.

    Applies the same tie-break as ``latest_connection``.
    """
    grouped: Dict[str, List[ConnectionRecord]] = {}
    for r in records:
        if current_user_id not in (r.requester_id, r.recipient_id):
            continue
        if r.requester_id == r.recipient_id:
            continue
        grouped.setdefault(r.other_party(current_user_id), []).append(r)

    index: Dict[str, ConnectionRecord] = {}
    for other, group in grouped.items():
        if len(group) > 1:
            logger.warning(
                "Found %d connection records between %s and %s; using most recent",
                len(group), current_user_id, other,
            )
        index[other] = max(group, key=_recency_key)
    return index
