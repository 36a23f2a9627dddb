import base64
import json
import logging

from partnermatch.config import Settings
from partnermatch.connection_repo import ConnectionRepo
from partnermatch.errors import ConnectionExists, ConnectionNotFound, SelfConnection

logger = logging.getLogger()
logger.setLevel(logging.INFO)

SETTINGS = Settings.from_env()

_connection_repo = None


def _repo():
    global _connection_repo
    if _connection_repo is None:
        _connection_repo = ConnectionRepo(
            SETTINGS.connections_table,
            requester_index=SETTINGS.requester_index,
            recipient_index=SETTINGS.recipient_index,
            region=SETTINGS.region,
        )
    return _connection_repo


def _resp(status: int, body):
    return {
        "statusCode": status,
        "headers": {
            "Access-Control-Allow-Origin": SETTINGS.allow_origin,
            "Access-Control-Allow-Headers": "Content-Type,Authorization",
            "Access-Control-Allow-Methods": "OPTIONS,GET,POST",
            "Content-Type": "application/json",
        },
        "body": json.dumps(body),
    }


def _method(event) -> str:
    return (
        event.get("requestContext", {}).get("http", {}).get("method")
        or event.get("httpMethod")
        or ""
    ).upper()


def _path_parts(event):
    path = event.get("rawPath") or event.get("path") or ""
    return [p for p in path.split("/") if p]


def _current_user_id(event) -> str:
    ctx = event.get("requestContext") or {}
    authorizer = ctx.get("authorizer") or {}
    claims = (authorizer.get("jwt") or {}).get("claims") or authorizer.get("claims") or {}
    if claims.get("sub"):
        return str(claims["sub"])
    for k, v in (event.get("headers") or {}).items():
        if k.lower() == "x-user-id" and v:
            return str(v).strip()
    return ""


def _json_body(event) -> dict:
    raw = event.get("body") or "{}"
    if event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode("utf-8", errors="replace")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("JSON body must be an object")
    return data


def _record_body(record) -> dict:
    return {
        "id": record.id,
        "requesterId": record.requester_id,
        "recipientId": record.recipient_id,
        "status": record.status,
        "createdAt": record.created_at,
        "updatedAt": record.updated_at,
    }


def handle_request(user_id: str, event):
    try:
        data = _json_body(event)
    except ValueError:
        return _resp(400, {"ok": False, "error": "Invalid JSON body"})

    recipient_id = str(data.get("recipientId") or data.get("matched_user_id") or "").strip()
    if not recipient_id:
        return _resp(400, {"ok": False, "error": "Recipient ID is required"})

    try:
        record = _repo().request_connection(user_id, recipient_id, data.get("message") or "")
    except SelfConnection as e:
        return _resp(400, {"ok": False, "error": str(e)})
    except ConnectionExists as e:
        return _resp(400, {"ok": False, "error": str(e), "code": e.code, "status": e.status})

    body = _record_body(record)
    body["message"] = "Buddy request sent successfully"
    return _resp(201, body)


def handle_resolve(user_id: str, request_id: str, accept: bool):
    repo = _repo()
    try:
        if accept:
            record = repo.accept_connection(request_id, user_id)
        else:
            record = repo.decline_connection(request_id, user_id)
    except ConnectionNotFound as e:
        return _resp(404, {"ok": False, "error": str(e)})
    verb = "accepted" if accept else "rejected"
    return _resp(200, {
        "message": f"Partner request {verb} successfully",
        "requestId": record.id,
        "status": record.status,
    })


def handle_pending(user_id: str):
    pending = _repo().list_pending_invitations(user_id)
    return _resp(200, [
        {
            "requestId": r.id,
            "requesterId": r.requester_id,
            "message": r.message,
            "timestamp": r.created_at,
        }
        for r in pending
    ])


def lambda_handler(event, context):
    event = event or {}
    method = _method(event)
    if method == "OPTIONS":
        return _resp(200, {"ok": True})

    user_id = _current_user_id(event)
    if not user_id:
        return _resp(401, {"ok": False, "error": "Authentication required"})

    parts = _path_parts(event)
    try:
        if method == "POST" and parts[-1:] in (["request"], ["match"]):
            return handle_request(user_id, event)
        if method == "POST" and len(parts) >= 2 and parts[-2] in ("accept", "reject"):
            return handle_resolve(user_id, parts[-1], accept=parts[-2] == "accept")
        if method == "GET" and parts[-1:] == ["pending-invitations"]:
            return handle_pending(user_id)
        return _resp(404, {"ok": False, "error": "Not found"})
    except Exception as e:
        logger.exception("partner_request_failed: %s", e)
        return _resp(500, {"ok": False, "error": "Failed to process partner request"})
