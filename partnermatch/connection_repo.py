"""
DynamoDB repository for partner connections.

Each connection is one item (``pk = CONNECTION#<id>``).  Two GSIs, one keyed on
``requesterId`` and one on ``recipientId``, let all of a user's connections be
listed without a scan.  Status only ever moves forward from ``pending`` to
``accepted`` or ``declined``; records are never deleted.  The matching engine reads
from here but all writes go through this class.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from partnermatch.connections import latest_connection
from partnermatch.errors import ConnectionExists, ConnectionNotFound, SelfConnection
from partnermatch.models import (
    CONNECTION_ACCEPTED,
    CONNECTION_DECLINED,
    CONNECTION_PENDING,
    ConnectionRecord,
    now_iso,
)

logger = logging.getLogger(__name__)


class ConnectionRepo:
    """Repository for working with connection records stored in DynamoDB."""

    def __init__(
        self,
        table_name: str,
        requester_index: str = "gsi_requester",
        recipient_index: str = "gsi_recipient",
        table: Any = None,
        region: Optional[str] = None,
    ) -> None:
        self.table_name = table_name
        self.requester_index = requester_index
        self.recipient_index = recipient_index
        self.table = table if table is not None else boto3.resource("dynamodb", region_name=region).Table(table_name)

    def _query_index(self, index_name: str, attr: str, user_id: str) -> List[Dict[str, Any]]:
        kwargs = {
            "IndexName": index_name,
            "KeyConditionExpression": Key(attr).eq(user_id),
        }
        resp = self.table.query(**kwargs)
        items = resp.get("Items", [])
        while "LastEvaluatedKey" in resp:
            resp = self.table.query(ExclusiveStartKey=resp["LastEvaluatedKey"], **kwargs)
            items.extend(resp.get("Items", []))
        return items

    def list_connections(self, user_id: str) -> List[ConnectionRecord]:
        """All connection records where the user is requester or recipient."""
        sent = self._query_index(self.requester_index, "requesterId", user_id)
        received = self._query_index(self.recipient_index, "recipientId", user_id)
        seen = set()
        records: List[ConnectionRecord] = []
        for item in sent + received:
            record = ConnectionRecord.from_item(item)
            if record.id in seen:
                continue
            seen.add(record.id)
            records.append(record)
        return records

    def get_connection(self, connection_id: str) -> Optional[ConnectionRecord]:
        resp = self.table.get_item(Key={"pk": f"CONNECTION#{connection_id}"})
        item = resp.get("Item")
        return ConnectionRecord.from_item(item) if item else None

    def request_connection(self, requester_id: str, recipient_id: str, message: str = "") -> ConnectionRecord:
        """
        Create a pending request from ``requester_id`` to ``recipient_id``.

        Raises:
            SelfConnection: If both ids are the same.
            ConnectionExists: If any record already links the pair.
        """
        if requester_id == recipient_id:
            raise SelfConnection()

        existing = latest_connection(requester_id, recipient_id, self.list_connections(requester_id))
        if existing is not None:
            raise ConnectionExists(existing.status)

        now = now_iso()
        record = ConnectionRecord(
            id=uuid.uuid4().hex,
            requester_id=requester_id,
            recipient_id=recipient_id,
            status=CONNECTION_PENDING,
            created_at=now,
            updated_at=now,
            message=(message or "")[:500],
        )
        self.table.put_item(
            Item=record.to_item(),
            ConditionExpression="attribute_not_exists(pk)",
        )
        logger.info("Partner request %s sent from %s to %s", record.id, requester_id, recipient_id)
        return record

    def _resolve(self, connection_id: str, user_id: str, status: str) -> ConnectionRecord:
        record = self.get_connection(connection_id)
        if record is None or record.recipient_id != user_id or record.status != CONNECTION_PENDING:
            raise ConnectionNotFound(connection_id)

        now = now_iso()
        try:
            self.table.update_item(
                Key={"pk": record.pk},
                UpdateExpression="SET #s = :s, updatedAt = :u",
                ConditionExpression="#s = :pending AND recipientId = :r",
                ExpressionAttributeNames={"#s": "status"},
                ExpressionAttributeValues={
                    ":s": status,
                    ":u": now,
                    ":pending": CONNECTION_PENDING,
                    ":r": user_id,
                },
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                # Someone else resolved it first
                raise ConnectionNotFound(connection_id) from e
            raise

        record.status = status
        record.updated_at = now
        logger.info("Partner request %s %s by %s", connection_id, status, user_id)
        return record

    def accept_connection(self, connection_id: str, user_id: str) -> ConnectionRecord:
        """Accept a pending request addressed to ``user_id``."""
        return self._resolve(connection_id, user_id, CONNECTION_ACCEPTED)

    def decline_connection(self, connection_id: str, user_id: str) -> ConnectionRecord:
        """Decline a pending request addressed to ``user_id``."""
        return self._resolve(connection_id, user_id, CONNECTION_DECLINED)

    def list_pending_invitations(self, user_id: str) -> List[ConnectionRecord]:
        """Pending requests received by ``user_id``, newest first."""
        items = self._query_index(self.recipient_index, "recipientId", user_id)
        pending = [
            ConnectionRecord.from_item(it) for it in items if it.get("status") == CONNECTION_PENDING
        ]
        pending.sort(key=lambda r: r.created_at, reverse=True)
        return pending
